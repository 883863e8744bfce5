"""Wrapper for cardano-cli for administering Cardano wallets and stake pools."""
import json
import logging
import pathlib as pl
import subprocess
import threading
import typing as tp

from packaging import version

from cntools import address_group
from cntools import cntools_helpers
from cntools import consts
from cntools import exceptions
from cntools import helpers
from cntools import key_group
from cntools import ledger_client
from cntools import node_group
from cntools import query_group
from cntools import stake_address_group
from cntools import stake_pool_group
from cntools import structs
from cntools import transaction_group
from cntools import types as itp
from cntools import workflows

LOGGER = logging.getLogger(__name__)


class CNTools(ledger_client.LedgerClient):
    """Methods for working with Cardano wallets and stake pools using `cardano-cli`.

    Attributes:
        state_dir: A directory with node configuration (Shelley genesis) and where transaction
            artifacts are stored.
        socket_path: A path to socket file for communication with the node. This overrides the
            `CARDANO_NODE_SOCKET_PATH` environment variable.
        command_era: An era used for CLI commands (e.g. "shelley" for legacy `cardano-cli`).
        cli_bin: A name or path of the `cardano-cli` binary.
        cli_version: A version of `cardano-cli`, detected when not given.
        ttl_length: A number of slots the transactions are valid for.
        activity_log: A path to append-only activity log file (optional).
    """

    # pylint: disable=too-many-instance-attributes

    def __init__(
        self,
        state_dir: itp.FileType,
        socket_path: itp.FileType = "",
        command_era: str = "",
        cli_bin: str = "cardano-cli",
        cli_version: str = "",
        ttl_length: int = consts.DEFAULT_TTL_SLOTS,
        activity_log: itp.FileType = "",
    ):
        self._rand_str = helpers.get_rand_str(4)
        self.activity_log = activity_log
        self.command_era = command_era.lower()
        self.cli_bin = cli_bin
        self._cli_version = version.parse(cli_version) if cli_version else None
        self.ttl_length = ttl_length

        self.state_dir = pl.Path(state_dir).expanduser().resolve()
        if not self.state_dir.exists():
            raise exceptions.CLIError(f"The state dir `{self.state_dir}` doesn't exist.")
        self.tx_dir = self.state_dir / "txs"

        self.socket_path: tp.Optional[pl.Path] = None
        self.socket_args: tp.List[str] = []
        self.set_socket_path(socket_path=socket_path)

        self.pparams_file = self.tx_dir / f"pparams-{self._rand_str}.json"

        self.genesis_json = cntools_helpers._find_genesis_json(state_dir=self.state_dir)
        with open(self.genesis_json, encoding="utf-8") as in_json:
            self.genesis = json.load(in_json)

        self.slot_length = float(self.genesis.get("slotLength") or consts.DEFAULT_SLOT_LENGTH)
        self.network_magic = self.genesis["networkMagic"]
        if self.network_magic == consts.MAINNET_MAGIC:
            self.magic_args = ["--mainnet"]
        else:
            self.magic_args = ["--testnet-magic", str(self.network_magic)]

        self.overwrite_outfiles = True

        # Groups of commands
        self._transaction_group: tp.Optional[transaction_group.TransactionGroup] = None
        self._query_group: tp.Optional[query_group.QueryGroup] = None
        self._address_group: tp.Optional[address_group.AddressGroup] = None
        self._stake_address_group: tp.Optional[stake_address_group.StakeAddressGroup] = None
        self._stake_pool_group: tp.Optional[stake_pool_group.StakePoolGroup] = None
        self._node_group: tp.Optional[node_group.NodeGroup] = None
        self._key_group: tp.Optional[key_group.KeyGroup] = None

    def set_socket_path(self, socket_path: tp.Optional[itp.FileType]) -> None:
        """Set a path to socket file for communication with the node."""
        if not socket_path:
            self.socket_path = None
            self.socket_args = []
            return

        socket_path = pl.Path(socket_path).expanduser().resolve()
        if not socket_path.exists():
            raise exceptions.CLIError(f"The socket `{socket_path}` doesn't exist.")

        self.socket_path = socket_path
        self.socket_args = ["--socket-path", str(self.socket_path)]

    @property
    def g_transaction(self) -> transaction_group.TransactionGroup:
        """Transaction group."""
        if not self._transaction_group:
            self._transaction_group = transaction_group.TransactionGroup(cntools_obj=self)
        return self._transaction_group

    @property
    def g_query(self) -> query_group.QueryGroup:
        """Query group."""
        if not self._query_group:
            self._query_group = query_group.QueryGroup(cntools_obj=self)
        return self._query_group

    @property
    def g_address(self) -> address_group.AddressGroup:
        """Address group."""
        if not self._address_group:
            self._address_group = address_group.AddressGroup(cntools_obj=self)
        return self._address_group

    @property
    def g_stake_address(self) -> stake_address_group.StakeAddressGroup:
        """Stake address group."""
        if not self._stake_address_group:
            self._stake_address_group = stake_address_group.StakeAddressGroup(cntools_obj=self)
        return self._stake_address_group

    @property
    def g_stake_pool(self) -> stake_pool_group.StakePoolGroup:
        """Stake pool group."""
        if not self._stake_pool_group:
            self._stake_pool_group = stake_pool_group.StakePoolGroup(cntools_obj=self)
        return self._stake_pool_group

    @property
    def g_node(self) -> node_group.NodeGroup:
        """Node group."""
        if not self._node_group:
            self._node_group = node_group.NodeGroup(cntools_obj=self)
        return self._node_group

    @property
    def g_key(self) -> key_group.KeyGroup:
        """Key protection group."""
        if not self._key_group:
            self._key_group = key_group.KeyGroup(cntools_obj=self)
        return self._key_group

    @property
    def cli_version(self) -> version.Version:
        """Version of `cardano-cli`."""
        if self._cli_version is None:
            version_out = self.cli([self.cli_bin, "--version"], add_default_args=False)
            self._cli_version = cntools_helpers._parse_cli_version(
                version_out.stdout.decode("utf-8")
            )
        return self._cli_version

    def cli(
        self,
        cli_args: tp.List[str],
        timeout: tp.Optional[float] = None,
        add_default_args: bool = True,
        stdin: tp.Optional[bytes] = None,
    ) -> structs.CLIOut:
        """Run the `cardano-cli` command.

        Args:
            cli_args: A list of arguments for cardano-cli.
            timeout: A timeout for the command, in seconds (optional).
            add_default_args: Whether to prepend the `cardano-cli` binary and command era
                to the command (optional). When False, `cli_args` contain the whole command.
            stdin: Data passed to standard input of the command (optional).

        Returns:
            structs.CLIOut: A tuple containing command stdout and stderr.
        """
        cli_args_strs = [str(arg) for arg in cli_args]

        if add_default_args:
            if self.command_era:
                cli_args_strs.insert(0, self.command_era)
            cli_args_strs.insert(0, self.cli_bin)

        cmd_str = cntools_helpers._format_cli_args(cli_args=cli_args_strs)
        cntools_helpers._write_activity_log(activity_log=self.activity_log, message=cmd_str)
        LOGGER.debug("Running `%s`", cmd_str)

        try:
            with subprocess.Popen(
                cli_args_strs,
                stdin=subprocess.PIPE if stdin is not None else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            ) as p:
                try:
                    stdout, stderr = p.communicate(input=stdin, timeout=timeout)
                except subprocess.TimeoutExpired:
                    p.kill()
                    raise
                retcode = p.returncode
        except (OSError, subprocess.TimeoutExpired) as exc:
            msg = f"Failed to run a CLI command `{cmd_str}`: {exc}"
            raise exceptions.CLIError(msg) from exc

        if retcode != 0:
            msg = (
                f"An error occurred running a CLI command `{cmd_str}` on path "
                f"`{pl.Path.cwd()}`: {stderr.decode()}"
            )
            raise exceptions.CLIError(msg)

        return structs.CLIOut(stdout or b"", stderr or b"")

    def record_activity(self, message: str) -> None:
        """Append message to the activity log."""
        cntools_helpers._write_activity_log(activity_log=self.activity_log, message=message)

    def get_tip(self, want_slot: bool = False) -> int:
        """Return current block number, or current slot number when `want_slot` is set."""
        if want_slot:
            return self.g_query.get_slot_no()
        return self.g_query.get_block_no()

    def get_utxo(self, address: str) -> tp.List[structs.UTXOData]:
        """Return UTxOs of the address."""
        return self.g_query.get_utxo(address=address)

    def get_protocol_params(self) -> structs.ProtocolParams:
        """Return current protocol parameters, refreshed from the node."""
        return self.g_query.get_protocol_params()

    def estimate_fee(self, fee_request: structs.FeeRequest) -> int:
        """Return minimal fee for a transaction described by the `fee_request`."""
        return self.g_transaction.estimate_fee(fee_request=fee_request)

    def build_raw_tx(self, tx_draft: structs.TxDraft, tx_name: str) -> structs.TxRawOutput:
        """Build unsigned transaction body out of the transaction draft."""
        return self.g_transaction.build_raw_tx(tx_draft=tx_draft, tx_name=tx_name)

    def sign_tx(
        self,
        tx_raw_output: structs.TxRawOutput,
        signing: structs.SigningContext,
        tx_name: str,
    ) -> pl.Path:
        """Sign the transaction body."""
        return self.g_transaction.sign_tx(
            tx_body_file=tx_raw_output.out_file,
            signing_key_files=signing.files,
            tx_name=tx_name,
        )

    def submit_tx(self, tx_file: itp.FileType) -> None:
        """Submit the signed transaction."""
        self.g_transaction.submit_tx(tx_file=tx_file)

    def wait_for_new_block(
        self,
        timeout_slots: int = consts.DEFAULT_TIMEOUT_SLOTS,
        cancel_event: tp.Optional[threading.Event] = None,
    ) -> structs.BlockWaitResult:
        """Wait for new block to be created.

        Args:
            timeout_slots: A maximal number of slots to wait for (optional).
            cancel_event: An event that cancels the waiting when set (optional).

        Returns:
            structs.BlockWaitResult: A result of the waiting, check `timed_out` and `cancelled`.
        """
        return workflows.wait_for_new_block(
            ledger_obj=self,
            slot_duration=self.slot_length,
            timeout_slots=timeout_slots,
            cancel_event=cancel_event,
        )

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__}: network_magic={self.network_magic}, "
            f"command_era={self.command_era}>"
        )
