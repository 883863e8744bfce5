"""
Test configuration for cntools tests.
"""

from __future__ import annotations

import dataclasses
import json
import pathlib as pl
import typing as tp

import pytest

from cntools import cntools_klass
from cntools import consts
from cntools import exceptions
from cntools import ledger_client
from cntools import structs

SRC_ADDRESS = "addr_test1vsource"
DST_ADDRESS = "addr_test1vdestination"
BASE_ADDRESS = "addr_test1qbase"

# Flags followed by paths of files created by `cardano-cli` and `gpg`
OUT_FILE_FLAGS = (
    "--out-file",
    "--output",
    "--verification-key-file",
    "--signing-key-file",
    "--cold-verification-key-file",
    "--cold-signing-key-file",
    "--operational-certificate-issue-counter-file",
)


def make_utxos(*amounts: int, address: str = SRC_ADDRESS) -> list[structs.UTXOData]:
    """Create UTxOs with the given amounts, in the given order."""
    return [
        structs.UTXOData(utxo_hash=f"{i:064x}", utxo_ix=i, amount=a, address=address)
        for i, a in enumerate(amounts)
    ]


class FakeLedger(ledger_client.LedgerClient):
    """In-memory ledger with scripted UTxOs, fees and stage failures."""

    def __init__(
        self,
        amounts: tp.Sequence[int] = (),
        fee: int | tp.Callable[[structs.FeeRequest], int] = 10,
        key_deposit: int = 2_000_000,
        pool_deposit: int = 500_000_000,
        slot: int = 1000,
        blocks: tp.Sequence[int] = (1,),
    ) -> None:
        self.utxos = make_utxos(*amounts)
        self.fee = fee
        self.pparams = structs.ProtocolParams(
            key_deposit=key_deposit,
            pool_deposit=pool_deposit,
            pparams_file=pl.Path("pparams.json"),
        )
        self.slot = slot
        self.blocks = list(blocks)
        self.failures: dict[consts.TxStage, Exception] = {}

        self.tip_queries = 0
        self.fee_requests: list[structs.FeeRequest] = []
        self.build_attempts: list[structs.TxDraft] = []
        self.built: list[structs.TxDraft] = []
        self.signed: list[tuple[pl.Path, structs.SigningContext]] = []
        self.submitted: list[pl.Path] = []
        self.activity: list[str] = []

    def fail_at(self, stage: consts.TxStage, exc: Exception | None = None) -> None:
        self.failures[stage] = exc or exceptions.CLIError(f"{stage.value} failed in CLI")

    def _maybe_fail(self, stage: consts.TxStage) -> None:
        if stage in self.failures:
            raise self.failures[stage]

    def get_tip(self, want_slot: bool = False) -> int:
        if want_slot:
            return self.slot
        self.tip_queries += 1
        if len(self.blocks) > 1:
            return self.blocks.pop(0)
        return self.blocks[0]

    def get_utxo(self, address: str) -> list[structs.UTXOData]:
        return list(self.utxos)

    def get_protocol_params(self) -> structs.ProtocolParams:
        return self.pparams

    def estimate_fee(self, fee_request: structs.FeeRequest) -> int:
        fee_request.validate()
        self.fee_requests.append(fee_request)
        if callable(self.fee):
            return self.fee(fee_request)
        return self.fee

    def build_raw_tx(self, tx_draft: structs.TxDraft, tx_name: str) -> structs.TxRawOutput:
        self.build_attempts.append(tx_draft)
        self._maybe_fail(consts.TxStage.BUILDING)
        self.built.append(tx_draft)
        return structs.TxRawOutput(tx_draft=tx_draft, out_file=pl.Path(f"{tx_name}_tx.body"))

    def sign_tx(
        self,
        tx_raw_output: structs.TxRawOutput,
        signing: structs.SigningContext,
        tx_name: str,
    ) -> pl.Path:
        self._maybe_fail(consts.TxStage.SIGNING)
        self.signed.append((tx_raw_output.out_file, signing))
        return pl.Path(f"{tx_name}_tx.signed")

    def submit_tx(self, tx_file: pl.Path) -> None:  # type: ignore[override]
        self._maybe_fail(consts.TxStage.SUBMITTING)
        self.submitted.append(tx_file)

    def record_activity(self, message: str) -> None:
        self.activity.append(message)


@dataclasses.dataclass
class FakeResponse:
    stdout: bytes = b""
    stderr: bytes = b""
    out_content: str = ""
    error: Exception | None = None


class FakeCLI:
    """Replacement of `CNTools.cli` recording the commands and returning canned output.

    Files named after the output flags are created, so the checks for output files pass.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.stdins: list[bytes | None] = []
        self.responses: list[tuple[tuple[str, ...], FakeResponse]] = []

    def add(self, *prefix: str, **kwargs: tp.Any) -> None:
        """Set response for commands starting with `prefix`, the latest added wins."""
        self.responses.insert(0, (prefix, FakeResponse(**kwargs)))

    def find_calls(self, *prefix: str) -> list[list[str]]:
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]

    def __call__(
        self,
        cli_args: list[str],
        timeout: float | None = None,
        add_default_args: bool = True,
        stdin: bytes | None = None,
    ) -> structs.CLIOut:
        args = [str(a) for a in cli_args]
        self.calls.append(args)
        self.stdins.append(stdin)

        response = FakeResponse()
        for prefix, resp in self.responses:
            if tuple(args[: len(prefix)]) == prefix:
                response = resp
                break

        if response.error is not None:
            raise response.error

        for idx, arg in enumerate(args[:-1]):
            if arg not in OUT_FILE_FLAGS:
                continue
            out_file = pl.Path(args[idx + 1])
            if response.out_content or not out_file.exists():
                out_file.parent.mkdir(parents=True, exist_ok=True)
                out_file.write_text(response.out_content, encoding="utf-8")

        return structs.CLIOut(stdout=response.stdout, stderr=response.stderr)


@pytest.fixture
def ledger_factory() -> tp.Callable[..., FakeLedger]:
    """Factory for in-memory ledgers."""
    return FakeLedger


@pytest.fixture
def state_dir(tmp_path: pl.Path) -> pl.Path:
    """State dir with Shelley genesis of a testnet."""
    genesis_dir = tmp_path / "state" / "shelley"
    genesis_dir.mkdir(parents=True)
    (genesis_dir / "genesis.json").write_text(
        json.dumps({"networkMagic": 42, "slotLength": 1}), encoding="utf-8"
    )
    return tmp_path / "state"


@pytest.fixture
def fake_cli() -> FakeCLI:
    return FakeCLI()


@pytest.fixture
def cntools_factory(
    state_dir: pl.Path, fake_cli: FakeCLI, monkeypatch: pytest.MonkeyPatch
) -> tp.Callable[..., cntools_klass.CNTools]:
    """Factory for `CNTools` instances running the fake CLI."""

    def _factory(**kwargs: tp.Any) -> cntools_klass.CNTools:
        kwargs.setdefault("cli_version", "8.1.2")
        cntools_obj = cntools_klass.CNTools(state_dir=state_dir, **kwargs)
        monkeypatch.setattr(cntools_obj, "cli", fake_cli)
        return cntools_obj

    return _factory


@pytest.fixture
def cntools_obj(cntools_factory: tp.Callable[..., cntools_klass.CNTools]) -> cntools_klass.CNTools:
    return cntools_factory()
