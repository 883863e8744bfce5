"""Group of methods for working with transactions."""

import logging
import pathlib as pl
import typing as tp

from packaging import version

from cntools import cntools_helpers
from cntools import consts
from cntools import exceptions
from cntools import helpers
from cntools import structs
from cntools import txtools
from cntools import types as itp

LOGGER = logging.getLogger(__name__)


class TransactionGroup:
    def __init__(self, cntools_obj: "itp.CNTools") -> None:
        self._cntools_obj = cntools_obj

    def get_txid(self, tx_body_file: itp.FileType = "", tx_file: itp.FileType = "") -> str:
        """Return the transaction identifier.

        Args:
            tx_body_file: A path to the transaction body file (optional).
            tx_file: A path to the signed transaction file (optional).

        Returns:
            str: A transaction ID.
        """
        if tx_body_file:
            cli_args = ["--tx-body-file", str(tx_body_file)]
        elif tx_file:
            cli_args = ["--tx-file", str(tx_file)]
        else:
            msg = "Either `tx_body_file` or `tx_file` is needed."
            raise AssertionError(msg)

        return (
            self._cntools_obj.cli(["transaction", "txid", *cli_args])
            .stdout.rstrip()
            .decode("ascii")
        )

    def _get_out_file(
        self, tx_name: str, suffix: str, destination_dir: itp.FileType | None
    ) -> pl.Path:
        destination_dir = pl.Path(destination_dir or self._cntools_obj.tx_dir).expanduser()
        destination_dir.mkdir(parents=True, exist_ok=True)
        out_file = destination_dir / f"{tx_name}_tx.{suffix}"
        cntools_helpers._check_files_exist(out_file, cntools_obj=self._cntools_obj)
        return out_file

    def build_raw_tx_bare(
        self,
        out_file: itp.FileType,
        txins: tp.Sequence[structs.UTXOData],
        txouts: tp.Sequence[structs.TxOut],
        ttl: int,
        fee: int,
        certificate_files: itp.OptionalFiles = (),
    ) -> list[str]:
        """Build a raw transaction, without any checks of the inputs and outputs.

        Args:
            out_file: An output file.
            txins: A list of `structs.UTXOData`, specifying input UTxOs.
            txouts: A list of `structs.TxOut`, specifying transaction outputs.
            ttl: A last slot when the transaction is still valid.
            fee: A fee amount.
            certificate_files: A list of paths to certificate files (optional).

        Returns:
            list[str]: The arguments passed to `transaction build-raw`.
        """
        build_args = [
            "transaction",
            "build-raw",
            *helpers._prepend_flag("--tx-in", txtools._get_txin_strings(txins)),
            *txtools._list_txouts(txouts),
            "--ttl",
            str(ttl),
            "--fee",
            str(fee),
            *helpers._prepend_flag("--certificate-file", certificate_files),
            "--out-file",
            str(out_file),
        ]

        cli_out = self._cntools_obj.cli(build_args)
        if cli_out.stderr:
            raise exceptions.BuildError(cli_out.stderr.decode("utf-8").strip())

        helpers._check_outfiles(out_file)
        return build_args

    def build_raw_tx(
        self,
        tx_draft: structs.TxDraft,
        tx_name: str,
        destination_dir: itp.FileType | None = None,
    ) -> structs.TxRawOutput:
        """Build a raw transaction out of balanced transaction draft.

        Args:
            tx_draft: A `structs.TxDraft` with inputs, outputs, fee and certificates.
            tx_name: A name of the transaction.
            destination_dir: A path to directory for storing artifacts (the `txs` directory
                in the state dir by default).

        Returns:
            structs.TxRawOutput: A tuple with transaction output details.
        """
        try:
            tx_draft.check_balance()
        except exceptions.UnbalancedTxError as exc:
            raise exceptions.BuildError(str(exc)) from exc

        try:
            out_file = self._get_out_file(
                tx_name=tx_name, suffix="body", destination_dir=destination_dir
            )
            build_args = self.build_raw_tx_bare(
                out_file=out_file,
                txins=tx_draft.txins,
                txouts=tx_draft.txouts,
                ttl=tx_draft.ttl,
                fee=tx_draft.fee,
                certificate_files=tx_draft.certificate_files,
            )
        except exceptions.StageError:
            raise
        except exceptions.CLIError as exc:
            raise exceptions.BuildError(str(exc)) from exc

        return structs.TxRawOutput(tx_draft=tx_draft, out_file=out_file, build_args=build_args)

    def _estimate_fee_legacy(self, fee_request: structs.FeeRequest) -> list[str]:
        return [
            "transaction",
            "calculate-min-fee",
            "--tx-in-count",
            str(fee_request.txin_count),
            "--tx-out-count",
            str(fee_request.txout_count),
            "--ttl",
            str(fee_request.ttl),
            *self._cntools_obj.magic_args,
            *helpers._prepend_flag("--signing-key-file", fee_request.signing.files),
            *helpers._prepend_flag("--certificate-file", fee_request.certificate_files),
            "--protocol-params-file",
            str(fee_request.pparams.pparams_file),
        ]

    def _estimate_fee_from_body(
        self, fee_request: structs.FeeRequest, draft_file: pl.Path
    ) -> list[str]:
        self.build_raw_tx_bare(
            out_file=draft_file,
            txins=fee_request.txins,
            txouts=fee_request.txouts,
            ttl=fee_request.ttl,
            fee=0,
            certificate_files=fee_request.certificate_files,
        )

        script_size_args = []
        if self._cntools_obj.cli_version >= version.parse(
            consts.REFERENCE_SCRIPT_SIZE_CLI_VERSION
        ):
            script_size_args = ["--reference-script-size", "0"]

        return [
            "transaction",
            "calculate-min-fee",
            "--tx-body-file",
            str(draft_file),
            "--tx-in-count",
            str(fee_request.txin_count),
            "--tx-out-count",
            str(fee_request.txout_count),
            *self._cntools_obj.magic_args,
            "--witness-count",
            str(len(fee_request.signing)),
            "--byron-witness-count",
            "0",
            *script_size_args,
            "--protocol-params-file",
            str(fee_request.pparams.pparams_file),
        ]

    def estimate_fee(self, fee_request: structs.FeeRequest) -> int:
        """Estimate the minimum fee for a transaction.

        Args:
            fee_request: A `structs.FeeRequest` describing the candidate transaction.

        Returns:
            int: An estimated fee.
        """
        fee_request.validate()
        if fee_request.pparams.pparams_file is None:
            msg = "Protocol parameters file is needed for fee estimation."
            raise exceptions.FeeEstimationError(msg)

        draft_file: tp.Optional[pl.Path] = None
        try:
            if self._cntools_obj.cli_version >= version.parse(
                consts.FEE_FROM_TX_BODY_CLI_VERSION
            ):
                draft_file = self._get_out_file(
                    tx_name=f"fee-{helpers.get_rand_str(4)}", suffix="draft", destination_dir=None
                )
                cli_args = self._estimate_fee_from_body(
                    fee_request=fee_request, draft_file=draft_file
                )
            else:
                cli_args = self._estimate_fee_legacy(fee_request=fee_request)
            stdout = self._cntools_obj.cli(cli_args).stdout
        except exceptions.CLIError as exc:
            raise exceptions.FeeEstimationError(str(exc)) from exc
        finally:
            # the draft is only needed for the fee calculation
            if draft_file is not None:
                draft_file.unlink(missing_ok=True)

        try:
            fee, *__ = stdout.decode().split()
            return int(fee)
        except ValueError as exc:
            msg = f"Unexpected output of fee calculation: {stdout!r}"
            raise exceptions.FeeEstimationError(msg) from exc

    def sign_tx(
        self,
        tx_body_file: itp.FileType,
        signing_key_files: itp.OptionalFiles,
        tx_name: str,
        destination_dir: itp.FileType | None = None,
    ) -> pl.Path:
        """Sign a transaction.

        Args:
            tx_body_file: A path to file with transaction body.
            signing_key_files: A list of paths to signing key files.
            tx_name: A name of the transaction.
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            Path: A path to signed transaction file.
        """
        if not signing_key_files:
            raise exceptions.SignError("No signing keys given.")

        try:
            out_file = self._get_out_file(
                tx_name=tx_name, suffix="signed", destination_dir=destination_dir
            )
            cli_out = self._cntools_obj.cli(
                [
                    "transaction",
                    "sign",
                    "--tx-body-file",
                    str(tx_body_file),
                    *self._cntools_obj.magic_args,
                    *helpers._prepend_flag("--signing-key-file", signing_key_files),
                    "--out-file",
                    str(out_file),
                ]
            )
            if cli_out.stderr:
                raise exceptions.SignError(cli_out.stderr.decode("utf-8").strip())
            helpers._check_outfiles(out_file)
        except exceptions.StageError:
            raise
        except exceptions.CLIError as exc:
            raise exceptions.SignError(str(exc)) from exc

        return out_file

    def submit_tx(self, tx_file: itp.FileType) -> str:
        """Submit a transaction, don't do any verification that it made it to the chain.

        Args:
            tx_file: A path to signed transaction file.

        Returns:
            str: An ID of the submitted transaction.
        """
        try:
            txid = self.get_txid(tx_file=tx_file)
            cli_out = self._cntools_obj.cli(
                [
                    "transaction",
                    "submit",
                    *self._cntools_obj.magic_args,
                    *self._cntools_obj.socket_args,
                    "--tx-file",
                    str(tx_file),
                ]
            )
        except exceptions.CLIError as exc:
            raise exceptions.SubmitError(str(exc)) from exc

        if cli_out.stderr:
            raise exceptions.SubmitError(cli_out.stderr.decode("utf-8").strip())

        LOGGER.info(f"Submitted transaction '{txid}' (from '{tx_file}').")
        return txid

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: cntools_obj={id(self._cntools_obj)}>"
