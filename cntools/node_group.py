"""Group of methods for generating stake pool operator keys."""
import logging
import pathlib as pl

from cntools import cntools_helpers
from cntools import helpers
from cntools import structs
from cntools import types as itp

LOGGER = logging.getLogger(__name__)


class NodeGroup:
    def __init__(self, cntools_obj: "itp.CNTools") -> None:
        self._cntools_obj = cntools_obj

    def gen_vrf_key_pair(
        self, node_name: str, destination_dir: itp.FileType = "."
    ) -> structs.KeyPair:
        """Generate a key pair for a node VRF operational key.

        Args:
            node_name: A name of the node the key pair is generated for.
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            structs.KeyPair: A tuple containing the key pair.
        """
        return cntools_helpers._gen_key_pair(
            cntools_obj=self._cntools_obj,
            key_gen_cmd=["node", "key-gen-VRF"],
            file_stem=f"{node_name}_vrf",
            destination_dir=destination_dir,
        )

    def gen_cold_key_pair_and_counter(
        self, node_name: str, destination_dir: itp.FileType = "."
    ) -> structs.ColdKeyPair:
        """Generate a key pair for operator's offline key and a new certificate issue counter.

        Args:
            node_name: A name of the node the key pair and the counter is generated for.
            destination_dir: A path to directory for storing artifacts (optional).

        Returns:
            structs.ColdKeyPair: A tuple containing the key pair and the counter.
        """
        destination_dir = pl.Path(destination_dir).expanduser()
        vkey = destination_dir / f"{node_name}_cold.vkey"
        skey = destination_dir / f"{node_name}_cold.skey"
        counter = destination_dir / f"{node_name}_cold.counter"
        cntools_helpers._check_files_exist(vkey, skey, counter, cntools_obj=self._cntools_obj)

        self._cntools_obj.cli(
            [
                "node",
                "key-gen",
                "--cold-verification-key-file",
                str(vkey),
                "--cold-signing-key-file",
                str(skey),
                "--operational-certificate-issue-counter-file",
                str(counter),
            ]
        )

        helpers._check_outfiles(vkey, skey, counter)
        return structs.ColdKeyPair(vkey, skey, counter)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: cntools_obj={id(self._cntools_obj)}>"
