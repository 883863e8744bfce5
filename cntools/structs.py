import dataclasses
import pathlib as pl

from cntools import consts
from cntools import exceptions
from cntools import types as itp


@dataclasses.dataclass(frozen=True)
class CLIOut:
    stdout: bytes
    stderr: bytes


@dataclasses.dataclass(frozen=True, order=True)
class KeyPair:
    vkey_file: pl.Path
    skey_file: pl.Path


@dataclasses.dataclass(frozen=True, order=True)
class ColdKeyPair:
    vkey_file: pl.Path
    skey_file: pl.Path
    counter_file: pl.Path


@dataclasses.dataclass(frozen=True, order=True)
class AddressRecord:
    address: str
    vkey_file: pl.Path
    skey_file: pl.Path


@dataclasses.dataclass(frozen=True, order=True)
class UTXOData:
    utxo_hash: str
    utxo_ix: int
    amount: int
    address: str = ""
    coin: str = consts.DEFAULT_COIN

    @property
    def utxo_id(self) -> str:
        return f"{self.utxo_hash}#{self.utxo_ix}"


@dataclasses.dataclass(frozen=True, order=True)
class TxOut:
    address: str
    amount: int
    coin: str = consts.DEFAULT_COIN


@dataclasses.dataclass(frozen=True)
class AddressBalance:
    address: str
    utxos: tuple[UTXOData, ...]  # Sorted by amount, highest first
    total: int

    @property
    def utxo_count(self) -> int:
        return len(self.utxos)

    def __bool__(self) -> bool:
        return bool(self.utxos)


@dataclasses.dataclass(frozen=True)
class ProtocolParams:
    key_deposit: int
    pool_deposit: int
    pparams_file: pl.Path | None = None
    raw: dict = dataclasses.field(default_factory=dict, compare=False)


@dataclasses.dataclass(frozen=True, order=True)
class SigningKey:
    role: str
    skey_file: pl.Path


@dataclasses.dataclass(frozen=True)
class SigningContext:
    """Signing keys needed to authorize a transaction, in signing order."""

    keys: tuple[SigningKey, ...]

    @classmethod
    def from_roles(cls, *role_files: tuple[str, itp.FileType]) -> "SigningContext":
        """Create the context from `(role, skey_file)` pairs, roles are `consts.KeyRoles`."""
        return cls(keys=tuple(SigningKey(role=r, skey_file=pl.Path(f)) for r, f in role_files))

    @property
    def files(self) -> list[pl.Path]:
        return [k.skey_file for k in self.keys]

    @property
    def roles(self) -> list[str]:
        return [k.role for k in self.keys]

    def __len__(self) -> int:
        return len(self.keys)


@dataclasses.dataclass(frozen=True)
class TxDraft:
    txins: tuple[UTXOData, ...]
    txouts: tuple[TxOut, ...]
    ttl: int
    fee: int
    certificate_files: tuple[pl.Path, ...] = ()
    deposit: int = 0

    @property
    def input_amount(self) -> int:
        return sum(i.amount for i in self.txins)

    @property
    def output_amount(self) -> int:
        return sum(o.amount for o in self.txouts)

    def check_balance(self) -> None:
        """Check that inputs are exactly matched by outputs, fee and deposit."""
        if not self.txins:
            raise exceptions.UnbalancedTxError("Transaction has no inputs.")

        negative = [o for o in self.txouts if o.amount < 0]
        if negative or self.fee < 0:
            msg = f"Negative amounts in transaction - fee: {self.fee}; outputs: {negative}"
            raise exceptions.UnbalancedTxError(msg)

        spent = self.output_amount + self.fee + self.deposit
        if self.input_amount != spent:
            msg = (
                f"Transaction is not balanced - inputs: {self.input_amount}; "
                f"outputs + fee + deposit: {spent}"
            )
            raise exceptions.UnbalancedTxError(msg)


@dataclasses.dataclass(frozen=True)
class FeeRequest:
    """Data needed for estimating a transaction fee."""

    txins: tuple[UTXOData, ...]
    txouts: tuple[TxOut, ...]
    ttl: int
    signing: SigningContext
    pparams: ProtocolParams
    certificate_files: tuple[pl.Path, ...] = ()

    @property
    def txin_count(self) -> int:
        return len(self.txins)

    @property
    def txout_count(self) -> int:
        return len(self.txouts)

    def validate(self) -> None:
        if self.txin_count < 1:
            msg = "At least one transaction input is needed for fee estimation."
            raise exceptions.FeeEstimationError(msg)
        if self.txout_count < 1:
            msg = "At least one transaction output is needed for fee estimation."
            raise exceptions.FeeEstimationError(msg)
        if self.ttl < 0:
            raise exceptions.FeeEstimationError(f"Invalid ttl: {self.ttl}")
        if not self.signing.keys:
            raise exceptions.FeeEstimationError("No signing keys given for fee estimation.")


@dataclasses.dataclass(frozen=True)
class TxRawOutput:
    tx_draft: TxDraft
    out_file: pl.Path  # Output file path for the transaction body
    build_args: list[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(frozen=True)
class TxResult:
    tx_raw_output: TxRawOutput
    tx_signed_file: pl.Path

    @property
    def tx_draft(self) -> TxDraft:
        return self.tx_raw_output.tx_draft


@dataclasses.dataclass(frozen=True)
class BlockWaitResult:
    initial_block: int
    block: int
    cancelled: bool = False

    @property
    def new_block(self) -> bool:
        return self.block > self.initial_block

    @property
    def timed_out(self) -> bool:
        return not (self.new_block or self.cancelled)


@dataclasses.dataclass(frozen=True, order=True)
class PoolData:
    pool_name: str
    pool_pledge: int
    pool_cost: int
    pool_margin: float
    pool_metadata_url: str = ""
    pool_metadata_hash: str = ""
    pool_relay_dns: str = ""
    pool_relay_ipv4: str = ""
    pool_relay_port: int = 0


@dataclasses.dataclass(frozen=True, order=True)
class PoolUser:
    payment: AddressRecord
    stake: KeyPair
