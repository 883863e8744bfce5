"""Group of methods for working with payment addresses."""
import logging
import pathlib as pl
import typing as tp

from cntools import cntools_helpers
from cntools import helpers
from cntools import structs
from cntools import types as itp

LOGGER = logging.getLogger(__name__)


class AddressGroup:
    def __init__(self, cntools_obj: "itp.CNTools") -> None:
        self._cntools_obj = cntools_obj

    def gen_payment_addr(
        self,
        addr_name: str,
        payment_vkey_file: itp.FileType,
        stake_vkey_file: tp.Optional[itp.FileType] = None,
        destination_dir: itp.FileType = ".",
    ) -> str:
        """Generate a payment address, with optional delegation to a stake address.

        With `stake_vkey_file` the result is a base address.

        Args:
            addr_name: A name of payment address.
            payment_vkey_file: A path to corresponding vkey file.
            stake_vkey_file: A path to corresponding stake vkey file (optional).
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            str: A generated payment address.
        """
        destination_dir = pl.Path(destination_dir).expanduser()
        suffix = "base.addr" if stake_vkey_file else "addr"
        out_file = destination_dir / f"{addr_name}.{suffix}"
        cntools_helpers._check_files_exist(out_file, cntools_obj=self._cntools_obj)

        cli_args = ["--payment-verification-key-file", str(payment_vkey_file)]
        if stake_vkey_file:
            cli_args.extend(["--stake-verification-key-file", str(stake_vkey_file)])

        self._cntools_obj.cli(
            [
                "address",
                "build",
                *self._cntools_obj.magic_args,
                *cli_args,
                "--out-file",
                str(out_file),
            ]
        )

        helpers._check_outfiles(out_file)
        return helpers.read_address_from_file(out_file)

    def gen_payment_key_pair(
        self, key_name: str, destination_dir: itp.FileType = "."
    ) -> structs.KeyPair:
        """Generate an address key pair.

        Args:
            key_name: A name of the key pair.
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            structs.KeyPair: A tuple containing the key pair.
        """
        return cntools_helpers._gen_key_pair(
            cntools_obj=self._cntools_obj,
            key_gen_cmd=["address", "key-gen"],
            file_stem=key_name,
            destination_dir=destination_dir,
        )

    def gen_payment_addr_and_keys(
        self,
        name: str,
        stake_vkey_file: tp.Optional[itp.FileType] = None,
        destination_dir: itp.FileType = ".",
    ) -> structs.AddressRecord:
        """Generate payment address and key pair.

        Args:
            name: A name of the address and key pair.
            stake_vkey_file: A path to corresponding stake vkey file (optional).
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            structs.AddressRecord: A tuple containing the address and key pair / script file.
        """
        key_pair = self.gen_payment_key_pair(key_name=name, destination_dir=destination_dir)
        addr = self.gen_payment_addr(
            addr_name=name,
            payment_vkey_file=key_pair.vkey_file,
            stake_vkey_file=stake_vkey_file,
            destination_dir=destination_dir,
        )
        LOGGER.debug(f"Generated payment address `{addr}`.")

        return structs.AddressRecord(
            address=addr, vkey_file=key_pair.vkey_file, skey_file=key_pair.skey_file
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: cntools_obj={id(self._cntools_obj)}>"
