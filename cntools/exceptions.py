import typing as tp

from cntools import consts


class CNToolsError(Exception):
    pass


class CLIError(CNToolsError):
    pass


class QueryError(CLIError):
    pass


class FeeEstimationError(CLIError):
    pass


class StageError(CLIError):
    """Failure of one stage of the build -> sign -> submit pipeline."""

    stage: tp.ClassVar[consts.TxStage]

    def __str__(self) -> str:
        return f"Transaction {self.stage.value} failed: {super().__str__()}"


class BuildError(StageError):
    stage = consts.TxStage.BUILDING


class SignError(StageError):
    stage = consts.TxStage.SIGNING


class SubmitError(StageError):
    stage = consts.TxStage.SUBMITTING


class EmptySourceError(CNToolsError):
    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"No UTxO available at '{address}', the wallet is empty.")


class InsufficientFundsError(CNToolsError):
    def __init__(self, available: int, needed: int, reason: str = "") -> None:
        self.available = available
        self.needed = needed
        self.shortfall = needed - available
        msg = (
            f"Not enough funds - available: {available}; needed: {needed}; "
            f"shortfall: {self.shortfall}"
        )
        super().__init__(f"{msg} ({reason})" if reason else msg)


class InvalidAmountError(CNToolsError, ValueError):
    pass


class UnbalancedTxError(CNToolsError):
    pass


class KeyProtectionError(CNToolsError):
    pass


class EncryptionError(KeyProtectionError):
    pass


class DecryptionError(KeyProtectionError):
    pass
