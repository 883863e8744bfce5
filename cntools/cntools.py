"""Top-level module.

Import everything that is needed for common use of the library.
"""
# pylint: disable=unused-import
# flake8: noqa
from cntools.cntools_klass import CNTools
from cntools.consts import ALL_FUNDS
from cntools.consts import DEFAULT_COIN
from cntools.consts import FeeMode
from cntools.consts import KeyRoles
from cntools.consts import LOVELACE_PER_ADA
from cntools.consts import MAINNET_MAGIC
from cntools.consts import TxStage
from cntools.exceptions import BuildError
from cntools.exceptions import CLIError
from cntools.exceptions import CNToolsError
from cntools.exceptions import DecryptionError
from cntools.exceptions import EmptySourceError
from cntools.exceptions import EncryptionError
from cntools.exceptions import FeeEstimationError
from cntools.exceptions import InsufficientFundsError
from cntools.exceptions import InvalidAmountError
from cntools.exceptions import KeyProtectionError
from cntools.exceptions import QueryError
from cntools.exceptions import SignError
from cntools.exceptions import StageError
from cntools.exceptions import SubmitError
from cntools.exceptions import UnbalancedTxError
from cntools.helpers import format_ada
from cntools.helpers import get_rand_str
from cntools.helpers import parse_amount
from cntools.helpers import read_address_from_file
from cntools.ledger_client import LedgerClient
from cntools.structs import AddressBalance
from cntools.structs import AddressRecord
from cntools.structs import BlockWaitResult
from cntools.structs import CLIOut
from cntools.structs import ColdKeyPair
from cntools.structs import FeeRequest
from cntools.structs import KeyPair
from cntools.structs import PoolData
from cntools.structs import PoolUser
from cntools.structs import ProtocolParams
from cntools.structs import SigningContext
from cntools.structs import SigningKey
from cntools.structs import TxDraft
from cntools.structs import TxOut
from cntools.structs import TxRawOutput
from cntools.structs import TxResult
from cntools.structs import UTXOData
from cntools.txtools import calculate_utxos_balance
from cntools.txtools import filter_utxo_with_highest_amount
from cntools.txtools import get_address_balance
from cntools.types import FileType
from cntools.workflows import build_sign_submit
from cntools.workflows import delegate_stake
from cntools.workflows import get_balance
from cntools.workflows import register_stake_key
from cntools.workflows import register_stake_pool
from cntools.workflows import send_funds
from cntools.workflows import wait_for_new_block
