"""Tools used by `CNTools` and the workflows for constructing transactions."""
import functools
import logging
import pathlib as pl
from typing import Callable
from typing import Dict
from typing import List
from typing import Sequence
from typing import Tuple
from typing import Union

from cntools import consts
from cntools import exceptions
from cntools import structs
from cntools import types as itp

LOGGER = logging.getLogger(__name__)

# Returns fee for the given candidate transaction inputs and outputs
FeeFunc = Callable[[Tuple[structs.UTXOData, ...], Tuple[structs.TxOut, ...]], int]


def _get_coin_amounts(utxo_data: dict) -> Dict[str, int]:
    """Return amounts per coin for single UTxO record of `query utxo` JSON output."""
    # older CLI versions use "amount", with lovelace either alone or as the first item
    if "amount" in utxo_data:
        amount = utxo_data["amount"]
        if isinstance(amount, list):
            amount = amount[0]
        return {consts.DEFAULT_COIN: int(amount)}

    coin_amounts: Dict[str, int] = {}
    for policyid, coin_data in utxo_data["value"].items():
        if policyid == consts.DEFAULT_COIN:
            coin_amounts[consts.DEFAULT_COIN] = int(coin_data)
            continue
        for asset_name, amount in coin_data.items():
            coin = f"{policyid}.{asset_name}" if asset_name else policyid
            coin_amounts[coin] = int(amount)

    return coin_amounts


def get_utxo(utxo_dict: dict, address: str = "") -> List[structs.UTXOData]:
    """Return UTxO info for payment address.

    Args:
        utxo_dict: A JSON output of `query utxo`.
        address: A payment address.

    Returns:
        List[structs.UTXOData]: A list of UTxO data, in the order returned by the query.
    """
    utxo = []
    for utxo_rec, utxo_data in utxo_dict.items():
        utxo_hash, utxo_ix = utxo_rec.split("#")
        utxo_address = utxo_data.get("address") or ""
        for coin, amount in _get_coin_amounts(utxo_data).items():
            utxo.append(
                structs.UTXOData(
                    utxo_hash=utxo_hash,
                    utxo_ix=int(utxo_ix),
                    amount=amount,
                    address=address or utxo_address,
                    coin=coin,
                )
            )

    return utxo


def calculate_utxos_balance(
    utxos: Union[Sequence[structs.UTXOData], Sequence[structs.TxOut]],
    coin: str = consts.DEFAULT_COIN,
) -> int:
    """Calculate sum of UTxO balances.

    Args:
        utxos: A list of UTxO data (either `structs.UTXOData` or `structs.TxOut`).
        coin: A coin name (asset IDs).

    Returns:
        int: A total balance.
    """
    filtered_utxos = [u for u in utxos if u.coin == coin]
    address_balance = functools.reduce(lambda x, y: x + y.amount, filtered_utxos, 0)
    return int(address_balance)


def sort_utxos(
    utxos: Sequence[structs.UTXOData], coin: str = consts.DEFAULT_COIN
) -> List[structs.UTXOData]:
    """Return UTxOs with given coin sorted by amount, highest first.

    The sort is stable, UTxOs with the same amount keep the original order.
    """
    filtered_utxos = [u for u in utxos if u.coin == coin]
    return sorted(filtered_utxos, key=lambda u: u.amount, reverse=True)


def get_address_balance(
    address: str, utxos: Sequence[structs.UTXOData]
) -> structs.AddressBalance:
    """Aggregate Lovelace UTxOs of an address."""
    sorted_utxos = sort_utxos(utxos)
    return structs.AddressBalance(
        address=address,
        utxos=tuple(sorted_utxos),
        total=calculate_utxos_balance(sorted_utxos),
    )


def filter_utxo_with_highest_amount(
    utxos: Sequence[structs.UTXOData],
    coin: str = consts.DEFAULT_COIN,
) -> structs.UTXOData:
    """Return data for UTxO with the highest amount.

    Args:
        utxos: A list of UTxO data.
        coin: A coin name (asset IDs).

    Returns:
        structs.UTXOData: An UTxO record with the highest amount.
    """
    filtered_utxos = [u for u in utxos if u.coin == coin]
    highest_amount_rec = max(filtered_utxos, key=lambda x: x.amount)
    return highest_amount_rec


def _collect_utxos_amount(
    utxos: Sequence[structs.UTXOData], amount: int
) -> List[structs.UTXOData]:
    """Collect UTxOs so their total combined amount >= `amount`.

    At least one UTxO is always collected, the fee needs an input.
    """
    collected_utxos: List[structs.UTXOData] = []
    collected_amount = 0
    for utxo in utxos:
        if collected_utxos and collected_amount >= amount:
            break
        collected_utxos.append(utxo)
        collected_amount += utxo.amount

    return collected_utxos


def _get_transfer_txouts(
    dst_address: str, amount: int, change_address: str, change: int
) -> Tuple[structs.TxOut, ...]:
    txouts = [structs.TxOut(address=dst_address, amount=amount)]
    if change > 0:
        txouts.append(structs.TxOut(address=change_address, amount=change))
    return tuple(txouts)


def _get_deduct_fee_draft(
    balance: structs.AddressBalance,
    dst_address: str,
    amount: int,
    fee_func: FeeFunc,
    ttl: int,
    change_address: str,
) -> structs.TxDraft:
    """Return transaction draft where fee is deducted from the amount sent."""
    txins = tuple(_collect_utxos_amount(utxos=balance.utxos, amount=amount))
    collected = calculate_utxos_balance(txins)
    if collected < amount:
        raise exceptions.InsufficientFundsError(
            available=collected, needed=amount, reason="requested amount exceeds balance"
        )

    change = collected - amount
    txouts = _get_transfer_txouts(
        dst_address=dst_address, amount=amount, change_address=change_address, change=change
    )
    fee = fee_func(txins, txouts)
    if amount < fee:
        raise exceptions.InsufficientFundsError(
            available=amount, needed=fee, reason="requested amount doesn't cover the fee"
        )

    txouts = (structs.TxOut(address=dst_address, amount=amount - fee), *txouts[1:])
    return structs.TxDraft(txins=txins, txouts=txouts, ttl=ttl, fee=fee)


def _get_sender_pays_draft(
    balance: structs.AddressBalance,
    dst_address: str,
    amount: int,
    fee_func: FeeFunc,
    ttl: int,
    change_address: str,
) -> structs.TxDraft:
    """Return transaction draft where fee is paid by the sender on top of the amount sent."""
    txins: Tuple[structs.UTXOData, ...] = ()
    collected = 0
    for utxo in balance.utxos:
        txins = (*txins, utxo)
        collected += utxo.amount
        # fee is not known until there's something left over the amount
        if collected <= amount:
            continue
        txouts = _get_transfer_txouts(
            dst_address=dst_address,
            amount=amount,
            change_address=change_address,
            change=collected - amount,
        )
        if collected >= amount + fee_func(txins, txouts):
            break

    # try with change output first
    txouts = _get_transfer_txouts(
        dst_address=dst_address,
        amount=amount,
        change_address=change_address,
        change=max(collected - amount, 1),
    )
    fee = fee_func(txins, txouts)
    change = collected - amount - fee
    if change > 0:
        txouts = _get_transfer_txouts(
            dst_address=dst_address, amount=amount, change_address=change_address, change=change
        )
        return structs.TxDraft(txins=txins, txouts=txouts, ttl=ttl, fee=fee)

    txouts = _get_transfer_txouts(
        dst_address=dst_address, amount=amount, change_address=change_address, change=0
    )
    fee = fee_func(txins, txouts)
    leftover = collected - amount - fee
    if leftover < 0:
        raise exceptions.InsufficientFundsError(
            available=collected, needed=amount + fee, reason="amount + fee exceeds balance"
        )
    if leftover:
        LOGGER.warning(
            f"Remaining {leftover} Lovelace is not enough for change output, adding it to fee."
        )

    return structs.TxDraft(txins=txins, txouts=txouts, ttl=ttl, fee=fee + leftover)


def get_transfer_draft(
    balance: structs.AddressBalance,
    dst_address: str,
    amount: int,
    fee_func: FeeFunc,
    ttl: int,
    fee_mode: consts.FeeMode = consts.FeeMode.SENDER_PAYS,
    change_address: str = "",
) -> structs.TxDraft:
    """Select transaction inputs and split outputs for sending funds.

    Args:
        balance: A `structs.AddressBalance` of the source address.
        dst_address: A destination address.
        amount: An amount of Lovelace to send, or `consts.ALL_FUNDS`.
        fee_func: A callable returning fee for candidate inputs and outputs.
        ttl: A last slot when the transaction is still valid.
        fee_mode: Whether the sender pays the fee on top of the amount, or the fee
            is deducted from the amount (`consts.FeeMode`). Sending all funds always deducts
            the fee from the amount.
        change_address: An address for change (the source address by default).

    Returns:
        structs.TxDraft: A balanced transaction draft.
    """
    if not balance:
        raise exceptions.EmptySourceError(balance.address)
    if not dst_address:
        raise exceptions.CNToolsError("Destination address is empty.")

    change_address = change_address or balance.address
    if amount == consts.ALL_FUNDS:
        amount = balance.total
        fee_mode = consts.FeeMode.DEDUCT_FROM_AMOUNT
    elif amount <= 0:
        msg = f"Invalid amount `{amount}`, expected positive amount of Lovelace."
        raise exceptions.InvalidAmountError(msg)

    if fee_mode == consts.FeeMode.DEDUCT_FROM_AMOUNT:
        draft_func = _get_deduct_fee_draft
    else:
        draft_func = _get_sender_pays_draft

    tx_draft = draft_func(
        balance=balance,
        dst_address=dst_address,
        amount=amount,
        fee_func=fee_func,
        ttl=ttl,
        change_address=change_address,
    )
    tx_draft.check_balance()
    return tx_draft


def get_single_utxo_draft(
    balance: structs.AddressBalance,
    change_address: str,
    fee_func: FeeFunc,
    ttl: int,
    certificate_files: itp.OptionalFiles = (),
    deposit: int = 0,
) -> structs.TxDraft:
    """Return transaction draft that spends the single UTxO with the highest amount.

    The whole amount, less fee and deposit, goes to single output on `change_address`.
    """
    if not balance:
        raise exceptions.EmptySourceError(balance.address)

    txins = (filter_utxo_with_highest_amount(balance.utxos),)
    available = txins[0].amount
    certificates = tuple(pl.Path(c) for c in certificate_files)

    txouts = (structs.TxOut(address=change_address, amount=max(available - deposit, 0)),)
    fee = fee_func(txins, txouts)
    needed = fee + deposit
    if available < needed:
        raise exceptions.InsufficientFundsError(
            available=available, needed=needed, reason=f"fee {fee} + deposit {deposit}"
        )

    change = available - needed
    # Without change the whole remainder is the fee, it is never lower than the fee
    # for the same transaction without outputs, so the one-output estimate is kept
    txouts = (structs.TxOut(address=change_address, amount=change),) if change > 0 else ()
    tx_draft = structs.TxDraft(
        txins=txins,
        txouts=txouts,
        ttl=ttl,
        fee=fee,
        certificate_files=certificates,
        deposit=deposit,
    )
    tx_draft.check_balance()
    return tx_draft


def _get_txin_strings(txins: Sequence[structs.UTXOData]) -> List[str]:
    """Get list of txin strings, without duplicates."""
    return list(dict.fromkeys(t.utxo_id for t in txins))


def _list_txouts(txouts: Sequence[structs.TxOut]) -> List[str]:
    txout_args: List[str] = []

    for rec in txouts:
        txout_args.extend(["--tx-out", f"{rec.address}+{rec.amount}"])

    return txout_args
