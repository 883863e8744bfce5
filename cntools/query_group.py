"""Group of methods for querying the ledger."""

import json
import logging
import typing as tp

from cntools import exceptions
from cntools import helpers
from cntools import structs
from cntools import txtools
from cntools import types as itp

LOGGER = logging.getLogger(__name__)


class QueryGroup:
    def __init__(self, cntools_obj: "itp.CNTools") -> None:
        self._cntools_obj = cntools_obj

    def query_cli(self, cli_args: itp.UnpackableSequence) -> str:
        """Run the `cardano-cli query` command."""
        try:
            stdout = self._cntools_obj.cli(
                [
                    "query",
                    *cli_args,
                    *self._cntools_obj.magic_args,
                    *self._cntools_obj.socket_args,
                ]
            ).stdout
        except exceptions.CLIError as exc:
            raise exceptions.QueryError(str(exc)) from exc

        stdout_dec = stdout.decode("utf-8") if stdout else ""
        return stdout_dec

    def _load_json(self, query_out: str, what: str) -> tp.Any:
        try:
            return json.loads(query_out)
        except json.JSONDecodeError as exc:
            msg = f"Malformed output of {what} query: {query_out!r}"
            raise exceptions.QueryError(msg) from exc

    def get_tip(self) -> dict[str, tp.Any]:
        """Return current tip - last block successfully applied to the ledger."""
        tip: dict[str, tp.Any] = self._load_json(self.query_cli(["tip"]), what="tip")
        if not isinstance(tip, dict):
            raise exceptions.QueryError(f"Malformed output of tip query: {tip!r}")
        return tip

    def _get_tip_value(self, *keys: str) -> int:
        tip = self.get_tip()
        # older CLI versions use "blockNo" and "slotNo"
        for key in keys:
            if key in tip:
                try:
                    return int(tip[key])
                except (TypeError, ValueError) as exc:
                    msg = f"Malformed `{key}` value in tip: {tip[key]!r}"
                    raise exceptions.QueryError(msg) from exc

        msg = f"None of {keys} found in tip: {tip}"
        raise exceptions.QueryError(msg)

    def get_block_no(self) -> int:
        """Return block number of last block that was successfully applied to the ledger."""
        return self._get_tip_value("block", "blockNo")

    def get_slot_no(self) -> int:
        """Return slot number of last block that was successfully applied to the ledger."""
        return self._get_tip_value("slot", "slotNo")

    def get_utxo(self, address: str | list[str]) -> list[structs.UTXOData]:
        """Return UTxO info for payment address(es).

        Args:
            address: Payment address(es).

        Returns:
            list[structs.UTXOData]: A list of UTxO data.
        """
        address_single = ""
        if isinstance(address, str):
            address_single = address
            address = [address]

        cli_args = ["utxo", "--output-json", *helpers._prepend_flag("--address", address)]
        utxo_dict = self._load_json(self.query_cli(cli_args), what="UTxO")

        try:
            return txtools.get_utxo(utxo_dict=utxo_dict, address=address_single)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            msg = f"Malformed output of UTxO query: {utxo_dict!r}"
            raise exceptions.QueryError(msg) from exc

    def get_protocol_params(self) -> structs.ProtocolParams:
        """Return the current protocol parameters."""
        pparams_file = self._cntools_obj.pparams_file
        pparams_file.parent.mkdir(parents=True, exist_ok=True)
        self.query_cli(["protocol-parameters", "--out-file", str(pparams_file)])

        try:
            with open(pparams_file, encoding="utf-8") as in_json:
                pparams: dict = json.load(in_json)
        except (OSError, json.JSONDecodeError) as exc:
            msg = f"Failed to load protocol parameters from `{pparams_file}`: {exc}"
            raise exceptions.QueryError(msg) from exc

        # older CLI versions use "keyDeposit" and "poolDeposit"
        key_deposit = pparams.get("stakeAddressDeposit", pparams.get("keyDeposit"))
        pool_deposit = pparams.get("stakePoolDeposit", pparams.get("poolDeposit"))
        if key_deposit is None or pool_deposit is None:
            msg = f"Deposit values missing in protocol parameters `{pparams_file}`."
            raise exceptions.QueryError(msg)

        return structs.ProtocolParams(
            key_deposit=int(key_deposit),
            pool_deposit=int(pool_deposit),
            pparams_file=pparams_file,
            raw=pparams,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: cntools_obj={id(self._cntools_obj)}>"
