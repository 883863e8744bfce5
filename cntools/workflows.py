"""End-to-end operations composed of ledger queries, fee estimation and build, sign, submit."""
import logging
import pathlib as pl
import threading
import time
import typing as tp

from cntools import consts
from cntools import exceptions
from cntools import helpers
from cntools import structs
from cntools import txtools
from cntools import types as itp

LOGGER = logging.getLogger(__name__)


def get_balance(ledger_obj: "itp.LedgerClient", address: str) -> structs.AddressBalance:
    """Return UTxOs of the address sorted by amount, and the total balance.

    Args:
        ledger_obj: An instance of `LedgerClient`.
        address: A payment address.

    Returns:
        structs.AddressBalance: UTxOs sorted by amount (highest first) and the total balance.
    """
    balance = txtools.get_address_balance(
        address=address, utxos=ledger_obj.get_utxo(address=address)
    )

    LOGGER.info(
        f"Balance of `{address}`: {helpers.format_ada(balance.total)} "
        f"in {balance.utxo_count} UTxO(s)"
    )
    for utxo in balance.utxos[: consts.TOP_UTXOS_SHOWN]:
        LOGGER.info(f"  {utxo.utxo_id}: {utxo.amount} Lovelace")
    if balance.utxo_count > consts.TOP_UTXOS_SHOWN:
        LOGGER.info(f"  ... {balance.utxo_count - consts.TOP_UTXOS_SHOWN} more UTxO(s)")

    return balance


def _get_ttl(ledger_obj: "itp.LedgerClient") -> int:
    return ledger_obj.get_tip(want_slot=True) + ledger_obj.ttl_length


def _get_fee_func(
    ledger_obj: "itp.LedgerClient",
    ttl: int,
    signing: structs.SigningContext,
    pparams: structs.ProtocolParams,
    certificate_files: tp.Tuple[itp.FileType, ...] = (),
) -> txtools.FeeFunc:
    """Return callable estimating fee for candidate inputs and outputs of one transaction."""
    certificates = tuple(pl.Path(c) for c in certificate_files)

    def _fee_func(
        txins: tp.Tuple[structs.UTXOData, ...], txouts: tp.Tuple[structs.TxOut, ...]
    ) -> int:
        fee_request = structs.FeeRequest(
            txins=txins,
            txouts=txouts,
            ttl=ttl,
            signing=signing,
            pparams=pparams,
            certificate_files=certificates,
        )
        return ledger_obj.estimate_fee(fee_request=fee_request)

    return _fee_func


def _run_stage(
    error_cls: tp.Type[exceptions.StageError], func: tp.Callable[..., tp.Any], **kwargs: tp.Any
) -> tp.Any:
    """Run one stage of the transaction, report CLI failures as failure of the stage."""
    try:
        return func(**kwargs)
    except exceptions.StageError:
        raise
    except exceptions.CLIError as exc:
        raise error_cls(str(exc)) from exc


def build_sign_submit(
    ledger_obj: "itp.LedgerClient",
    tx_draft: structs.TxDraft,
    signing: structs.SigningContext,
    tx_name: str,
) -> structs.TxResult:
    """Build, sign and submit a transaction.

    The stages run in order and any failure stops the sequence. Inputs of the transaction
    are not spent until the submission succeeds, so the whole sequence can be safely repeated.

    Args:
        ledger_obj: An instance of `LedgerClient`.
        tx_draft: A balanced `structs.TxDraft`.
        signing: A `structs.SigningContext` with signing keys.
        tx_name: A name of the transaction.

    Returns:
        structs.TxResult: A tuple with the transaction output details and signed transaction.
    """
    tx_draft.check_balance()

    LOGGER.info(
        f"Building transaction '{tx_name}': {len(tx_draft.txins)} input(s), "
        f"{len(tx_draft.txouts)} output(s), fee {tx_draft.fee}, deposit {tx_draft.deposit}"
    )
    tx_raw_output: structs.TxRawOutput = _run_stage(
        exceptions.BuildError, ledger_obj.build_raw_tx, tx_draft=tx_draft, tx_name=tx_name
    )

    tx_raw_output.tx_draft.check_balance()
    LOGGER.info(f"Signing transaction '{tx_name}' with {', '.join(signing.roles)} key(s)")
    tx_signed_file: pl.Path = _run_stage(
        exceptions.SignError,
        ledger_obj.sign_tx,
        tx_raw_output=tx_raw_output,
        signing=signing,
        tx_name=tx_name,
    )

    LOGGER.info(f"Submitting transaction '{tx_name}'")
    _run_stage(exceptions.SubmitError, ledger_obj.submit_tx, tx_file=tx_signed_file)
    ledger_obj.record_activity(f"transaction '{tx_name}' submitted from `{tx_signed_file}`")

    return structs.TxResult(tx_raw_output=tx_raw_output, tx_signed_file=tx_signed_file)


def _get_source_balance(ledger_obj: "itp.LedgerClient", address: str) -> structs.AddressBalance:
    balance = get_balance(ledger_obj=ledger_obj, address=address)
    if not balance:
        LOGGER.error(f"No UTxO available at `{address}`.")
        raise exceptions.EmptySourceError(address)
    return balance


def send_funds(
    ledger_obj: "itp.LedgerClient",
    src_address: str,
    src_skey_file: itp.FileType,
    dst_address: str,
    amount: tp.Union[str, int, float],
    fee_mode: consts.FeeMode = consts.FeeMode.SENDER_PAYS,
    tx_name: str = "send_funds",
) -> structs.TxResult:
    """Send funds from source address to destination address.

    Args:
        ledger_obj: An instance of `LedgerClient`.
        src_address: A source payment address.
        src_skey_file: A path to signing key of the source address.
        dst_address: A destination address.
        amount: An amount of ADA to send, or "all" for all available funds.
        fee_mode: Whether the sender pays the fee on top of the amount, or the fee
            is deducted from the amount (`consts.FeeMode`).
        tx_name: A name of the transaction (optional).

    Returns:
        structs.TxResult: A tuple with the transaction output details and signed transaction.
    """
    if not dst_address:
        raise exceptions.CNToolsError("Destination address is empty.")
    lovelace = helpers.parse_amount(amount)

    balance = _get_source_balance(ledger_obj=ledger_obj, address=src_address)
    signing = structs.SigningContext.from_roles((consts.KeyRoles.PAYMENT, src_skey_file))
    ttl = _get_ttl(ledger_obj)
    fee_func = _get_fee_func(
        ledger_obj=ledger_obj,
        ttl=ttl,
        signing=signing,
        pparams=ledger_obj.get_protocol_params(),
    )

    try:
        tx_draft = txtools.get_transfer_draft(
            balance=balance,
            dst_address=dst_address,
            amount=lovelace,
            fee_func=fee_func,
            ttl=ttl,
            fee_mode=fee_mode,
        )
    except exceptions.InsufficientFundsError as exc:
        LOGGER.error(f"Can't send funds from `{src_address}`: {exc}")
        raise

    LOGGER.info(
        f"Sending {helpers.format_ada(tx_draft.txouts[0].amount)} to `{dst_address}`, "
        f"fee {tx_draft.fee} Lovelace"
    )
    return build_sign_submit(
        ledger_obj=ledger_obj, tx_draft=tx_draft, signing=signing, tx_name=tx_name
    )


def _send_single_utxo_tx(
    ledger_obj: "itp.LedgerClient",
    payment_address: str,
    change_address: str,
    signing: structs.SigningContext,
    certificate_files: tp.Tuple[itp.FileType, ...],
    pparams: structs.ProtocolParams,
    deposit: int,
    tx_name: str,
) -> structs.TxResult:
    """Spend the highest UTxO of payment address, attach certificates and pay the deposit."""
    balance = _get_source_balance(ledger_obj=ledger_obj, address=payment_address)
    ttl = _get_ttl(ledger_obj)
    fee_func = _get_fee_func(
        ledger_obj=ledger_obj,
        ttl=ttl,
        signing=signing,
        pparams=pparams,
        certificate_files=certificate_files,
    )

    try:
        tx_draft = txtools.get_single_utxo_draft(
            balance=balance,
            change_address=change_address,
            fee_func=fee_func,
            ttl=ttl,
            certificate_files=list(certificate_files),
            deposit=deposit,
        )
    except exceptions.InsufficientFundsError as exc:
        LOGGER.error(f"Not enough funds at `{payment_address}` for '{tx_name}': {exc}")
        raise

    return build_sign_submit(
        ledger_obj=ledger_obj, tx_draft=tx_draft, signing=signing, tx_name=tx_name
    )


def register_stake_key(
    ledger_obj: "itp.LedgerClient",
    payment_address: str,
    payment_skey_file: itp.FileType,
    stake_skey_file: itp.FileType,
    base_address: str,
    stake_reg_cert_file: itp.FileType,
    tx_name: str = "register_stake_key",
) -> structs.TxResult:
    """Register stake key, the remaining funds go to the base address.

    Args:
        ledger_obj: An instance of `LedgerClient`.
        payment_address: A payment address paying the fee and the key deposit.
        payment_skey_file: A path to signing key of the payment address.
        stake_skey_file: A path to signing key of the stake address.
        base_address: A base address (payment + stake key) receiving the remaining funds.
        stake_reg_cert_file: A path to stake address registration certificate.
        tx_name: A name of the transaction (optional).

    Returns:
        structs.TxResult: A tuple with the transaction output details and signed transaction.
    """
    pparams = ledger_obj.get_protocol_params()
    signing = structs.SigningContext.from_roles(
        (consts.KeyRoles.PAYMENT, payment_skey_file), (consts.KeyRoles.STAKE, stake_skey_file)
    )
    return _send_single_utxo_tx(
        ledger_obj=ledger_obj,
        payment_address=payment_address,
        change_address=base_address,
        signing=signing,
        certificate_files=(stake_reg_cert_file,),
        pparams=pparams,
        deposit=pparams.key_deposit,
        tx_name=tx_name,
    )


def register_stake_pool(
    ledger_obj: "itp.LedgerClient",
    payment_address: str,
    payment_skey_file: itp.FileType,
    cold_skey_file: itp.FileType,
    stake_skey_file: itp.FileType,
    pool_reg_cert_file: itp.FileType,
    pledge_deleg_cert_file: itp.FileType,
    tx_name: str = "register_stake_pool",
) -> structs.TxResult:
    """Register stake pool together with delegation of the owner's pledge.

    Args:
        ledger_obj: An instance of `LedgerClient`.
        payment_address: A payment address paying the fee and the pool deposit.
        payment_skey_file: A path to signing key of the payment address.
        cold_skey_file: A path to pool cold signing key.
        stake_skey_file: A path to signing key of the owner stake address.
        pool_reg_cert_file: A path to pool registration certificate.
        pledge_deleg_cert_file: A path to delegation certificate of the owner stake address.
        tx_name: A name of the transaction (optional).

    Returns:
        structs.TxResult: A tuple with the transaction output details and signed transaction.
    """
    pparams = ledger_obj.get_protocol_params()
    signing = structs.SigningContext.from_roles(
        (consts.KeyRoles.PAYMENT, payment_skey_file),
        (consts.KeyRoles.POOL_COLD, cold_skey_file),
        (consts.KeyRoles.STAKE, stake_skey_file),
    )
    return _send_single_utxo_tx(
        ledger_obj=ledger_obj,
        payment_address=payment_address,
        change_address=payment_address,
        signing=signing,
        certificate_files=(pool_reg_cert_file, pledge_deleg_cert_file),
        pparams=pparams,
        deposit=pparams.pool_deposit,
        tx_name=tx_name,
    )


def delegate_stake(
    ledger_obj: "itp.LedgerClient",
    payment_address: str,
    payment_skey_file: itp.FileType,
    stake_skey_file: itp.FileType,
    deleg_cert_file: itp.FileType,
    tx_name: str = "delegate_stake",
) -> structs.TxResult:
    """Delegate stake to a stake pool, the remaining funds go back to the payment address."""
    signing = structs.SigningContext.from_roles(
        (consts.KeyRoles.PAYMENT, payment_skey_file), (consts.KeyRoles.STAKE, stake_skey_file)
    )
    return _send_single_utxo_tx(
        ledger_obj=ledger_obj,
        payment_address=payment_address,
        change_address=payment_address,
        signing=signing,
        certificate_files=(deleg_cert_file,),
        pparams=ledger_obj.get_protocol_params(),
        deposit=0,
        tx_name=tx_name,
    )


def wait_for_new_block(
    ledger_obj: "itp.LedgerClient",
    slot_duration: float = consts.DEFAULT_SLOT_LENGTH,
    timeout_slots: int = consts.DEFAULT_TIMEOUT_SLOTS,
    cancel_event: tp.Optional[threading.Event] = None,
) -> structs.BlockWaitResult:
    """Wait for new block to be created.

    The tip is polled once per slot. Waiting ends without an exception when the timeout
    is reached or when `cancel_event` is set.

    Args:
        ledger_obj: An instance of `LedgerClient`.
        slot_duration: A duration of slot in seconds (optional).
        timeout_slots: A maximal number of polls (optional).
        cancel_event: An event that cancels the waiting when set (optional).

    Returns:
        structs.BlockWaitResult: A result of the waiting.
    """
    initial_block = ledger_obj.get_tip()
    block = initial_block
    LOGGER.debug(f"Waiting for new block, initial block no: {initial_block}")

    for __ in range(timeout_slots):
        if cancel_event is not None:
            if cancel_event.wait(slot_duration):
                LOGGER.info("Waiting for new block was cancelled.")
                return structs.BlockWaitResult(
                    initial_block=initial_block, block=block, cancelled=True
                )
        else:
            time.sleep(slot_duration)

        block = ledger_obj.get_tip()
        if block > initial_block:
            LOGGER.debug(f"New block no: {block}")
            return structs.BlockWaitResult(initial_block=initial_block, block=block)

    LOGGER.warning(f"Timeout waiting for new block, waited {timeout_slots} slot(s).")
    return structs.BlockWaitResult(initial_block=initial_block, block=block)
