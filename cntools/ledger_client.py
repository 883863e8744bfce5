"""Interface to the ledger used by the workflows."""
import abc
import pathlib as pl

from cntools import consts
from cntools import structs
from cntools import types as itp


class LedgerClient(abc.ABC):
    """Query, fee estimation, build, sign and submit operations of a Cardano node client."""

    # Number of slots the transactions are valid for
    ttl_length: int = consts.DEFAULT_TTL_SLOTS

    @abc.abstractmethod
    def get_tip(self, want_slot: bool = False) -> int:
        """Return current block number, or current slot number when `want_slot` is set."""

    @abc.abstractmethod
    def get_utxo(self, address: str) -> list[structs.UTXOData]:
        """Return all UTxOs of the address, in the order returned by the node."""

    @abc.abstractmethod
    def get_protocol_params(self) -> structs.ProtocolParams:
        """Return current protocol parameters."""

    @abc.abstractmethod
    def estimate_fee(self, fee_request: structs.FeeRequest) -> int:
        """Return minimal fee for a transaction described by the `fee_request`."""

    @abc.abstractmethod
    def build_raw_tx(self, tx_draft: structs.TxDraft, tx_name: str) -> structs.TxRawOutput:
        """Build unsigned transaction body out of the transaction draft."""

    @abc.abstractmethod
    def sign_tx(
        self,
        tx_raw_output: structs.TxRawOutput,
        signing: structs.SigningContext,
        tx_name: str,
    ) -> pl.Path:
        """Sign the transaction body, return path to the signed transaction."""

    @abc.abstractmethod
    def submit_tx(self, tx_file: itp.FileType) -> None:
        """Submit the signed transaction."""

    def record_activity(self, message: str) -> None:
        """Record operator activity, no-op unless the client keeps an activity log."""
