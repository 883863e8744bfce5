"""Group of methods for working with stake addresses."""

import logging
import pathlib as pl
import typing as tp

from cntools import cntools_helpers
from cntools import helpers
from cntools import structs
from cntools import types as itp
from cntools import workflows

LOGGER = logging.getLogger(__name__)


class StakeAddressGroup:
    def __init__(self, cntools_obj: "itp.CNTools") -> None:
        self._cntools_obj = cntools_obj

    def _get_pool_key_args(
        self,
        cold_vkey_file: tp.Optional[itp.FileType] = None,
        stake_pool_id: str = "",
    ) -> tp.List[str]:
        """Return CLI args for pool key."""
        if cold_vkey_file:
            pool_key_args = ["--cold-verification-key-file", str(cold_vkey_file)]
        elif stake_pool_id:
            pool_key_args = ["--stake-pool-id", stake_pool_id]
        else:
            msg = "Either `cold_vkey_file` or `stake_pool_id` is needed."
            raise AssertionError(msg)

        return pool_key_args

    def gen_stake_addr(
        self, addr_name: str, stake_vkey_file: itp.FileType, destination_dir: itp.FileType = "."
    ) -> str:
        """Generate a stake address.

        Args:
            addr_name: A name of payment address.
            stake_vkey_file: A path to corresponding stake vkey file.
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            str: A generated stake address.
        """
        destination_dir = pl.Path(destination_dir).expanduser()
        out_file = destination_dir / f"{addr_name}_stake.addr"
        cntools_helpers._check_files_exist(out_file, cntools_obj=self._cntools_obj)

        self._cntools_obj.cli(
            [
                "stake-address",
                "build",
                "--stake-verification-key-file",
                str(stake_vkey_file),
                *self._cntools_obj.magic_args,
                "--out-file",
                str(out_file),
            ]
        )

        helpers._check_outfiles(out_file)
        return helpers.read_address_from_file(out_file)

    def gen_stake_key_pair(
        self, key_name: str, destination_dir: itp.FileType = "."
    ) -> structs.KeyPair:
        """Generate a stake address key pair.

        Args:
            key_name: A name of the key pair.
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            structs.KeyPair: A tuple containing the key pair.
        """
        return cntools_helpers._gen_key_pair(
            cntools_obj=self._cntools_obj,
            key_gen_cmd=["stake-address", "key-gen"],
            file_stem=f"{key_name}_stake",
            destination_dir=destination_dir,
        )

    def gen_stake_addr_registration_cert(
        self, addr_name: str, stake_vkey_file: itp.FileType, destination_dir: itp.FileType = "."
    ) -> pl.Path:
        """Generate a stake address registration certificate.

        Args:
            addr_name: A name of stake address.
            stake_vkey_file: A path to corresponding stake vkey file.
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            Path: A path to the generated certificate.
        """
        destination_dir = pl.Path(destination_dir).expanduser()
        out_file = destination_dir / f"{addr_name}_stake_reg.cert"
        cntools_helpers._check_files_exist(out_file, cntools_obj=self._cntools_obj)

        self._cntools_obj.cli(
            [
                "stake-address",
                "registration-certificate",
                "--stake-verification-key-file",
                str(stake_vkey_file),
                "--out-file",
                str(out_file),
            ]
        )

        helpers._check_outfiles(out_file)
        return out_file

    def gen_stake_addr_delegation_cert(
        self,
        addr_name: str,
        stake_vkey_file: itp.FileType,
        cold_vkey_file: tp.Optional[itp.FileType] = None,
        stake_pool_id: str = "",
        destination_dir: itp.FileType = ".",
    ) -> pl.Path:
        """Generate a stake address delegation certificate.

        Args:
            addr_name: A name of stake address.
            stake_vkey_file: A path to corresponding stake vkey file.
            cold_vkey_file: A path to pool cold vkey file (optional).
            stake_pool_id: An ID of the stake pool (optional).
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            Path: A path to the generated certificate.
        """
        destination_dir = pl.Path(destination_dir).expanduser()
        out_file = destination_dir / f"{addr_name}_stake_deleg.cert"
        cntools_helpers._check_files_exist(out_file, cntools_obj=self._cntools_obj)

        pool_key_args = self._get_pool_key_args(
            cold_vkey_file=cold_vkey_file, stake_pool_id=stake_pool_id
        )

        self._cntools_obj.cli(
            [
                "stake-address",
                "delegation-certificate",
                "--stake-verification-key-file",
                str(stake_vkey_file),
                *pool_key_args,
                "--out-file",
                str(out_file),
            ]
        )

        helpers._check_outfiles(out_file)
        return out_file

    def gen_stake_addr_and_keys(
        self, name: str, destination_dir: itp.FileType = "."
    ) -> structs.AddressRecord:
        """Generate stake address and key pair.

        Args:
            name: A name of the address and key pair.
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            structs.AddressRecord: A tuple containing the address and key pair.
        """
        key_pair = self.gen_stake_key_pair(key_name=name, destination_dir=destination_dir)
        addr = self.gen_stake_addr(
            addr_name=name, stake_vkey_file=key_pair.vkey_file, destination_dir=destination_dir
        )

        return structs.AddressRecord(
            address=addr, vkey_file=key_pair.vkey_file, skey_file=key_pair.skey_file
        )

    def register_stake_key(
        self,
        payment: structs.AddressRecord,
        stake: structs.KeyPair,
        name: str,
        destination_dir: itp.FileType = ".",
    ) -> structs.TxResult:
        """Register stake key, move the funds of payment address to the new base address.

        Args:
            payment: A `structs.AddressRecord` of the payment address paying the fee
                and the deposit.
            stake: A `structs.KeyPair` with the stake keys.
            name: A name used for the generated files and the transaction.
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            structs.TxResult: A tuple with the transaction output details and signed transaction.
        """
        stake_reg_cert_file = self.gen_stake_addr_registration_cert(
            addr_name=name, stake_vkey_file=stake.vkey_file, destination_dir=destination_dir
        )
        base_address = self._cntools_obj.g_address.gen_payment_addr(
            addr_name=name,
            payment_vkey_file=payment.vkey_file,
            stake_vkey_file=stake.vkey_file,
            destination_dir=destination_dir,
        )

        return workflows.register_stake_key(
            ledger_obj=self._cntools_obj,
            payment_address=payment.address,
            payment_skey_file=payment.skey_file,
            stake_skey_file=stake.skey_file,
            base_address=base_address,
            stake_reg_cert_file=stake_reg_cert_file,
            tx_name=f"{name}_reg_stake_key",
        )

    def delegate_stake(
        self,
        payment: structs.AddressRecord,
        stake: structs.KeyPair,
        name: str,
        cold_vkey_file: tp.Optional[itp.FileType] = None,
        stake_pool_id: str = "",
        destination_dir: itp.FileType = ".",
    ) -> structs.TxResult:
        """Delegate stake to a stake pool.

        Args:
            payment: A `structs.AddressRecord` of the payment address paying the fee.
            stake: A `structs.KeyPair` with the stake keys.
            name: A name used for the generated files and the transaction.
            cold_vkey_file: A path to pool cold vkey file (optional).
            stake_pool_id: An ID of the stake pool (optional).
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            structs.TxResult: A tuple with the transaction output details and signed transaction.
        """
        deleg_cert_file = self.gen_stake_addr_delegation_cert(
            addr_name=name,
            stake_vkey_file=stake.vkey_file,
            cold_vkey_file=cold_vkey_file,
            stake_pool_id=stake_pool_id,
            destination_dir=destination_dir,
        )

        return workflows.delegate_stake(
            ledger_obj=self._cntools_obj,
            payment_address=payment.address,
            payment_skey_file=payment.skey_file,
            stake_skey_file=stake.skey_file,
            deleg_cert_file=deleg_cert_file,
            tx_name=f"{name}_deleg_stake",
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: cntools_obj={id(self._cntools_obj)}>"
