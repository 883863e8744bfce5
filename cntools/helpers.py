import decimal
import itertools
import pathlib as pl
import random
import string
import typing as tp

from cntools import consts
from cntools import exceptions
from cntools import types as itp


def get_rand_str(length: int = 8) -> str:
    """Return random ASCII lowercase string."""
    if length < 1:
        return ""
    return "".join(random.choice(string.ascii_lowercase) for i in range(length))


def read_address_from_file(addr_file: itp.FileType) -> str:
    """Read address stored in file."""
    with open(pl.Path(addr_file).expanduser(), encoding="utf-8") as in_file:
        return in_file.read().strip()


def parse_amount(amount: str | int | float | decimal.Decimal) -> int:
    """Convert amount of ADA to Lovelace.

    Fractional amounts are allowed, anything below one Lovelace is truncated.

    Args:
        amount: An amount of ADA, or "all" (`consts.ALL_FUNDS_ARG`) for all available funds.

    Returns:
        int: An amount of Lovelace, or `consts.ALL_FUNDS`.
    """
    if isinstance(amount, str) and amount.strip().lower() == consts.ALL_FUNDS_ARG:
        return consts.ALL_FUNDS
    if isinstance(amount, bool):
        msg = f"Invalid amount `{amount}`."
        raise exceptions.InvalidAmountError(msg)

    try:
        ada = decimal.Decimal(str(amount).strip())
    except decimal.InvalidOperation as exc:
        msg = f"Invalid amount `{amount}`, expected number of ADA or '{consts.ALL_FUNDS_ARG}'."
        raise exceptions.InvalidAmountError(msg) from exc

    if not ada.is_finite() or ada < 0:
        msg = f"Invalid amount `{amount}`, expected non-negative number of ADA."
        raise exceptions.InvalidAmountError(msg)

    return int(ada * consts.LOVELACE_PER_ADA)


def format_ada(lovelace: int) -> str:
    """Format amount of Lovelace as ADA."""
    ada = decimal.Decimal(lovelace) / consts.LOVELACE_PER_ADA
    return f"{ada:,.6f} ADA"


def _prepend_flag(flag: str, contents: itp.UnpackableSequence) -> tp.List[str]:
    """Prepend flag to every item of the sequence.

    Args:
        flag: A flag to prepend to every item of the `contents`.
        contents: A list (iterable) of content to be prepended.

    Returns:
        List[str]: A list of flag followed by content, see below.

    >>> _prepend_flag("--foo", [1, 2, 3])
    ['--foo', '1', '--foo', '2', '--foo', '3']
    """
    return list(itertools.chain.from_iterable([flag, str(x)] for x in contents))


def _check_outfiles(*out_files: itp.FileType) -> None:
    """Check that the expected output files were created.

    Args:
        *out_files: Variable length list of expected output files.
    """
    for out_file in out_files:
        out_file_p = pl.Path(out_file).expanduser()
        if not out_file_p.exists():
            msg = f"The expected file `{out_file}` doesn't exist."
            raise exceptions.CLIError(msg)
