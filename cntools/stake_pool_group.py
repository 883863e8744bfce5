"""Group of methods for working with stake pools."""
import logging
import pathlib as pl
import typing as tp

from cntools import cntools_helpers
from cntools import helpers
from cntools import structs
from cntools import types as itp
from cntools import workflows

LOGGER = logging.getLogger(__name__)


class StakePoolGroup:
    def __init__(self, cntools_obj: "itp.CNTools") -> None:
        self._cntools_obj = cntools_obj

    def gen_pool_metadata_hash(self, pool_metadata_file: itp.FileType) -> str:
        """Generate the hash of pool metadata.

        Args:
            pool_metadata_file: A path to the pool metadata file.

        Returns:
            str: A metadata hash.
        """
        return (
            self._cntools_obj.cli(
                ["stake-pool", "metadata-hash", "--pool-metadata-file", str(pool_metadata_file)]
            )
            .stdout.rstrip()
            .decode("ascii")
        )

    def gen_pool_registration_cert(
        self,
        pool_data: structs.PoolData,
        vrf_vkey_file: itp.FileType,
        cold_vkey_file: itp.FileType,
        owner_stake_vkey_files: itp.FileTypeList,
        reward_account_vkey_file: tp.Optional[itp.FileType] = None,
        destination_dir: itp.FileType = ".",
    ) -> pl.Path:
        """Generate a stake pool registration certificate.

        Args:
            pool_data: A `structs.PoolData` tuple containing info about the stake pool.
            vrf_vkey_file: A path to node VRF vkey file.
            cold_vkey_file: A path to pool cold vkey file.
            owner_stake_vkey_files: A list of paths to pool owner stake vkey files.
            reward_account_vkey_file: A path to pool reward account vkey file (optional,
                the first owner stake vkey by default).
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            Path: A path to the generated certificate.
        """
        destination_dir = pl.Path(destination_dir).expanduser()
        out_file = destination_dir / f"{pool_data.pool_name}_pool_reg.cert"
        cntools_helpers._check_files_exist(out_file, cntools_obj=self._cntools_obj)

        metadata_cmd = []
        if pool_data.pool_metadata_url and pool_data.pool_metadata_hash:
            metadata_cmd = [
                "--metadata-url",
                str(pool_data.pool_metadata_url),
                "--metadata-hash",
                str(pool_data.pool_metadata_hash),
            ]

        relay_cmd = []
        if pool_data.pool_relay_dns:
            relay_cmd.extend(["--single-host-pool-relay", pool_data.pool_relay_dns])
        if pool_data.pool_relay_ipv4:
            relay_cmd.extend(["--pool-relay-ipv4", pool_data.pool_relay_ipv4])
        if pool_data.pool_relay_port:
            relay_cmd.extend(["--pool-relay-port", str(pool_data.pool_relay_port)])

        reward_vkey_file = reward_account_vkey_file or list(owner_stake_vkey_files)[0]

        self._cntools_obj.cli(
            [
                "stake-pool",
                "registration-certificate",
                "--pool-pledge",
                str(pool_data.pool_pledge),
                "--pool-cost",
                str(pool_data.pool_cost),
                "--pool-margin",
                str(pool_data.pool_margin),
                "--vrf-verification-key-file",
                str(vrf_vkey_file),
                "--cold-verification-key-file",
                str(cold_vkey_file),
                "--pool-reward-account-verification-key-file",
                str(reward_vkey_file),
                *helpers._prepend_flag(
                    "--pool-owner-stake-verification-key-file", owner_stake_vkey_files
                ),
                *self._cntools_obj.magic_args,
                "--out-file",
                str(out_file),
                *metadata_cmd,
                *relay_cmd,
            ]
        )

        helpers._check_outfiles(out_file)
        return out_file

    def get_stake_pool_id(self, cold_vkey_file: itp.FileType) -> str:
        """Return pool ID from the offline key.

        Args:
            cold_vkey_file: A path to pool cold vkey file.

        Returns:
            str: A pool ID.
        """
        pool_id = (
            self._cntools_obj.cli(
                ["stake-pool", "id", "--cold-verification-key-file", str(cold_vkey_file)]
            )
            .stdout.strip()
            .decode("utf-8")
        )
        return pool_id

    def register_stake_pool(
        self,
        pool_data: structs.PoolData,
        pool_owner: structs.PoolUser,
        vrf_vkey_file: itp.FileType,
        cold_key_pair: structs.ColdKeyPair,
        destination_dir: itp.FileType = ".",
    ) -> tp.Tuple[pl.Path, structs.TxResult]:
        """Register a stake pool and delegate the owner's pledge to it.

        Args:
            pool_data: A `structs.PoolData` tuple containing info about the stake pool.
            pool_owner: A `structs.PoolUser` structure containing pool owner address and keys.
            vrf_vkey_file: A path to node VRF vkey file.
            cold_key_pair: A `structs.ColdKeyPair` tuple containing the key pair and the counter.
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            Tuple[Path, structs.TxResult]: A tuple with pool registration cert file and
                transaction output details.
        """
        pool_reg_cert_file = self.gen_pool_registration_cert(
            pool_data=pool_data,
            vrf_vkey_file=vrf_vkey_file,
            cold_vkey_file=cold_key_pair.vkey_file,
            owner_stake_vkey_files=[pool_owner.stake.vkey_file],
            destination_dir=destination_dir,
        )
        pledge_deleg_cert_file = self._cntools_obj.g_stake_address.gen_stake_addr_delegation_cert(
            addr_name=f"{pool_data.pool_name}_owner",
            stake_vkey_file=pool_owner.stake.vkey_file,
            cold_vkey_file=cold_key_pair.vkey_file,
            destination_dir=destination_dir,
        )

        tx_result = workflows.register_stake_pool(
            ledger_obj=self._cntools_obj,
            payment_address=pool_owner.payment.address,
            payment_skey_file=pool_owner.payment.skey_file,
            cold_skey_file=cold_key_pair.skey_file,
            stake_skey_file=pool_owner.stake.skey_file,
            pool_reg_cert_file=pool_reg_cert_file,
            pledge_deleg_cert_file=pledge_deleg_cert_file,
            tx_name=f"{pool_data.pool_name}_reg_pool",
        )

        return pool_reg_cert_file, tx_result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: cntools_obj={id(self._cntools_obj)}>"
