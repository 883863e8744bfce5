"""Group of methods for protecting key files with `gpg` symmetric encryption."""
import contextlib
import logging
import pathlib as pl
import typing as tp

from cntools import consts
from cntools import exceptions
from cntools import helpers
from cntools import types as itp

LOGGER = logging.getLogger(__name__)


def _get_encrypted_path(file: itp.FileType) -> pl.Path:
    file = pl.Path(file).expanduser()
    if file.suffix == consts.ENCRYPTED_SUFFIX:
        return file
    return file.with_name(f"{file.name}{consts.ENCRYPTED_SUFFIX}")


def _get_plain_path(file: itp.FileType) -> pl.Path:
    file = pl.Path(file).expanduser()
    if file.suffix == consts.ENCRYPTED_SUFFIX:
        return file.with_suffix("")
    return file


class KeyGroup:
    def __init__(self, cntools_obj: "itp.CNTools") -> None:
        self._cntools_obj = cntools_obj
        self.gpg_bin = "gpg"

    def _gpg(self, gpg_args: tp.List[str], passphrase: str) -> None:
        self._cntools_obj.cli(
            [
                self.gpg_bin,
                "--batch",
                "--yes",
                "--pinentry-mode",
                "loopback",
                "--passphrase-fd",
                "0",
                *gpg_args,
            ],
            add_default_args=False,
            stdin=passphrase.encode("utf-8"),
        )

    def check_passphrase(self, passphrase: str, confirmation: tp.Optional[str] = None) -> None:
        """Check that the passphrase is long enough and matches its confirmation.

        Args:
            passphrase: A passphrase.
            confirmation: The passphrase entered for the second time (optional).
        """
        if len(passphrase) < consts.PASSPHRASE_MIN_LEN:
            msg = f"Passphrase must be at least {consts.PASSPHRASE_MIN_LEN} characters long."
            raise exceptions.EncryptionError(msg)
        if confirmation is not None and confirmation != passphrase:
            raise exceptions.EncryptionError("Passphrases don't match.")

    def is_encrypted(self, file: itp.FileType) -> bool:
        """Check if the key file is stored encrypted."""
        return _get_encrypted_path(file).exists()

    def encrypt_file(
        self, file: itp.FileType, passphrase: str, confirmation: tp.Optional[str] = None
    ) -> pl.Path:
        """Encrypt the file, the plaintext file is removed.

        Args:
            file: A path to the file.
            passphrase: A passphrase.
            confirmation: The passphrase entered for the second time (optional).

        Returns:
            Path: A path to the encrypted file.
        """
        self.check_passphrase(passphrase=passphrase, confirmation=confirmation)

        plain_file = _get_plain_path(file)
        out_file = _get_encrypted_path(file)
        if not plain_file.exists():
            raise exceptions.EncryptionError(f"The file `{plain_file}` doesn't exist.")

        try:
            self._gpg(
                ["--symmetric", "--output", str(out_file), str(plain_file)],
                passphrase=passphrase,
            )
            helpers._check_outfiles(out_file)
        except exceptions.CLIError as exc:
            raise exceptions.EncryptionError(f"Failed to encrypt `{plain_file}`: {exc}") from exc

        plain_file.unlink()
        LOGGER.debug(f"Encrypted `{plain_file}` to `{out_file}`.")
        return out_file

    def decrypt_file(self, file: itp.FileType, passphrase: str) -> pl.Path:
        """Decrypt the file, the encrypted file is removed.

        Args:
            file: A path to the encrypted file (with or without the `.gpg` suffix).
            passphrase: A passphrase.

        Returns:
            Path: A path to the decrypted file.
        """
        enc_file = _get_encrypted_path(file)
        out_file = _get_plain_path(file)
        if not enc_file.exists():
            raise exceptions.DecryptionError(f"The file `{enc_file}` doesn't exist.")

        try:
            self._gpg(
                ["--decrypt", "--output", str(out_file), str(enc_file)], passphrase=passphrase
            )
            helpers._check_outfiles(out_file)
        except exceptions.CLIError as exc:
            raise exceptions.DecryptionError(f"Failed to decrypt `{enc_file}`: {exc}") from exc

        enc_file.unlink()
        LOGGER.debug(f"Decrypted `{enc_file}` to `{out_file}`.")
        return out_file

    @contextlib.contextmanager
    def decrypted_files(
        self, files: itp.FileTypeList, passphrase: str
    ) -> tp.Iterator[tp.List[pl.Path]]:
        """Decrypt the encrypted key files for the duration of the context.

        Files that are not encrypted are used as they are. Files decrypted on entry
        are encrypted again on exit. All of them are tried even when encryption of some
        fails, the files left unencrypted are then named in the `EncryptionError`.

        Args:
            files: A list of paths to key files.
            passphrase: A passphrase.

        Yields:
            List[Path]: Paths to the plaintext key files.
        """
        decrypted: tp.List[pl.Path] = []
        try:
            plain_files = []
            for file in files:
                if self.is_encrypted(file):
                    plain_file = self.decrypt_file(file=file, passphrase=passphrase)
                    decrypted.append(plain_file)
                else:
                    plain_file = _get_plain_path(file)
                plain_files.append(plain_file)

            yield plain_files
        finally:
            unencrypted: tp.List[pl.Path] = []
            for plain_file in decrypted:
                try:
                    self.encrypt_file(file=plain_file, passphrase=passphrase)
                except exceptions.EncryptionError as exc:
                    LOGGER.error(f"Key file `{plain_file}` left unencrypted: {exc}")
                    unencrypted.append(plain_file)

            if unencrypted:
                files_str = ", ".join(f"`{f}`" for f in unencrypted)
                msg = f"Failed to encrypt again, key files left unencrypted: {files_str}"
                raise exceptions.EncryptionError(msg)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: cntools_obj={id(self._cntools_obj)}>"
