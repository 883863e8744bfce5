"""Helper functions for `CNTools`."""

import datetime
import logging
import pathlib as pl
import re
import typing as tp

from packaging import version

from cntools import exceptions
from cntools import helpers
from cntools import structs
from cntools import types as itp

LOGGER = logging.getLogger(__name__)

SPECIAL_ARG_CHARS_RE = re.compile("[^A-Za-z0-9/._-]")
CLI_VERSION_RE = re.compile(r"cardano-cli (\d+\.\d+\.\d+(?:\.\d+)?)")


def _find_genesis_json(state_dir: pl.Path) -> pl.Path:
    """Find Shelley genesis JSON file in state dir."""
    default = state_dir / "shelley" / "genesis.json"
    if default.exists():
        return default

    potential = [
        *state_dir.glob("*shelley*genesis.json"),
        *state_dir.glob("*genesis*shelley.json"),
    ]
    if not potential:
        msg = f"Shelley genesis JSON file not found in `{state_dir}`."
        raise exceptions.CLIError(msg)

    genesis_json = potential[0]
    LOGGER.debug(f"Using shelley genesis JSON file `{genesis_json}")
    return genesis_json


def _check_files_exist(*out_files: itp.FileType, cntools_obj: "itp.CNTools") -> None:
    """Check that the output files don't already exist.

    Args:
        *out_files: Variable length list of expected output files.
        cntools_obj: An instance of `CNTools`.
    """
    if cntools_obj.overwrite_outfiles:
        return

    for out_file in out_files:
        out_file_p = pl.Path(out_file).expanduser()
        if out_file_p.exists():
            msg = f"The expected file `{out_file}` already exist."
            raise exceptions.CLIError(msg)


def _gen_key_pair(
    cntools_obj: "itp.CNTools",
    key_gen_cmd: tp.List[str],
    file_stem: str,
    destination_dir: itp.FileType,
) -> structs.KeyPair:
    """Generate a `<file_stem>.vkey` / `<file_stem>.skey` key pair with the `key_gen_cmd`.

    Args:
        cntools_obj: An instance of `CNTools`.
        key_gen_cmd: A CLI command generating the keys, e.g. `["address", "key-gen"]`.
        file_stem: A name of the key files, without suffix.
        destination_dir: A path to directory for storing the key files.

    Returns:
        structs.KeyPair: A tuple containing the key pair.
    """
    destination_dir = pl.Path(destination_dir).expanduser()
    vkey = destination_dir / f"{file_stem}.vkey"
    skey = destination_dir / f"{file_stem}.skey"
    _check_files_exist(vkey, skey, cntools_obj=cntools_obj)

    cntools_obj.cli(
        [*key_gen_cmd, "--verification-key-file", str(vkey), "--signing-key-file", str(skey)]
    )

    helpers._check_outfiles(vkey, skey)
    LOGGER.debug(f"Generated key pair `{skey}` with `{' '.join(key_gen_cmd)}`.")
    return structs.KeyPair(vkey, skey)


def _format_cli_args(cli_args: list[str]) -> str:
    """Format CLI arguments for logging.

    Quote arguments with spaces and other "special" characters in them.

    Args:
        cli_args: List of CLI arguments.
    """
    processed_args = []
    for arg in cli_args:
        arg_p = f'"{arg}"' if SPECIAL_ARG_CHARS_RE.search(arg) else arg
        processed_args.append(arg_p)
    return " ".join(processed_args)


def _write_activity_log(activity_log: itp.FileType, message: str) -> None:
    if not activity_log:
        return

    with open(activity_log, "a", encoding="utf-8") as logfile:
        logfile.write(f"{datetime.datetime.now(tz=datetime.timezone.utc)}: {message}\n")


def _parse_cli_version(version_out: str) -> version.Version:
    """Parse the output of `cardano-cli --version`.

    >>> _parse_cli_version("cardano-cli 1.35.7 - linux-x86_64 - ghc-8.10")
    <Version('1.35.7')>
    """
    match = CLI_VERSION_RE.search(version_out)
    if not match:
        msg = f"Failed to get `cardano-cli` version from `{version_out.strip()}`."
        raise exceptions.CLIError(msg)
    return version.parse(match.group(1))
