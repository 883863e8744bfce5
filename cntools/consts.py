import enum
import typing as tp

DEFAULT_COIN: tp.Final[str] = "lovelace"
MAINNET_MAGIC: tp.Final[int] = 764824073
LOVELACE_PER_ADA: tp.Final[int] = 1_000_000

# The value "-1" means all available funds
ALL_FUNDS: tp.Final[int] = -1
ALL_FUNDS_ARG: tp.Final[str] = "all"

DEFAULT_TTL_SLOTS: tp.Final[int] = 1000
DEFAULT_SLOT_LENGTH: tp.Final[float] = 1.0
DEFAULT_TIMEOUT_SLOTS: tp.Final[int] = 300
TOP_UTXOS_SHOWN: tp.Final[int] = 10

PASSPHRASE_MIN_LEN: tp.Final[int] = 8
ENCRYPTED_SUFFIX: tp.Final[str] = ".gpg"

# CLI versions older than this take `--ttl`, `--signing-key-file` and `--certificate-file`
# for `transaction calculate-min-fee` instead of a transaction body file
FEE_FROM_TX_BODY_CLI_VERSION: tp.Final[str] = "1.24.0"
# CLI versions starting with this one need `--reference-script-size` for fee calculation
REFERENCE_SCRIPT_SIZE_CLI_VERSION: tp.Final[str] = "8.22.0.0"


class FeeMode(enum.Enum):
    SENDER_PAYS = 1
    DEDUCT_FROM_AMOUNT = 2


class TxStage(enum.Enum):
    BUILDING = "build"
    SIGNING = "sign"
    SUBMITTING = "submit"


class KeyRoles:
    PAYMENT: tp.Final[str] = "payment"
    STAKE: tp.Final[str] = "stake"
    POOL_COLD: tp.Final[str] = "pool_cold"
