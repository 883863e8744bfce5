"""
Tests for the end-to-end workflows, run against in-memory ledger.
"""

from __future__ import annotations

import logging
import pathlib as pl
import threading

import pytest
from conftest import BASE_ADDRESS
from conftest import DST_ADDRESS
from conftest import SRC_ADDRESS
from conftest import make_utxos

from cntools import consts
from cntools import exceptions
from cntools import structs
from cntools import workflows


class TestGetBalance:
    """Tests for balance queries."""

    def test_balance(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[300, 500])
        balance = workflows.get_balance(ledger_obj=ledger, address=SRC_ADDRESS)

        assert balance.total == 800
        assert balance.utxo_count == 2
        assert [u.amount for u in balance.utxos] == [500, 300]

    def test_empty(self, ledger_factory) -> None:
        balance = workflows.get_balance(ledger_obj=ledger_factory(), address=SRC_ADDRESS)

        assert balance.total == 0
        assert balance.utxo_count == 0

    def test_top_utxos_logged(self, ledger_factory, caplog) -> None:
        ledger = ledger_factory(amounts=range(1, 16))
        with caplog.at_level(logging.INFO, logger="cntools.workflows"):
            workflows.get_balance(ledger_obj=ledger, address=SRC_ADDRESS)

        utxo_lines = [r for r in caplog.records if "Lovelace" in r.getMessage()]
        assert len(utxo_lines) == consts.TOP_UTXOS_SHOWN
        assert "5 more UTxO(s)" in caplog.text


class TestSendFunds:
    """Tests for the transfer workflow."""

    def test_send_all(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[500, 300], fee=10)
        tx_result = workflows.send_funds(
            ledger_obj=ledger,
            src_address=SRC_ADDRESS,
            src_skey_file="payment.skey",
            dst_address=DST_ADDRESS,
            amount="all",
        )

        tx_draft = tx_result.tx_draft
        assert len(tx_draft.txins) == 2
        assert tx_draft.txouts == (structs.TxOut(address=DST_ADDRESS, amount=790),)
        assert tx_draft.fee == 10
        assert ledger.submitted == [tx_result.tx_signed_file]

    def test_ttl_and_signing(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[10_000_000], slot=5_000)
        ledger.ttl_length = 200
        workflows.send_funds(
            ledger_obj=ledger,
            src_address=SRC_ADDRESS,
            src_skey_file="payment.skey",
            dst_address=DST_ADDRESS,
            amount="1",
        )

        assert ledger.built[0].ttl == 5_200
        __, signing = ledger.signed[0]
        assert signing.roles == [consts.KeyRoles.PAYMENT]
        assert signing.files == [pl.Path("payment.skey")]
        assert all(r.ttl == 5_200 for r in ledger.fee_requests)

    def test_sender_pays(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[3_000_000, 2_000_000], fee=200_000)
        tx_result = workflows.send_funds(
            ledger_obj=ledger,
            src_address=SRC_ADDRESS,
            src_skey_file="payment.skey",
            dst_address=DST_ADDRESS,
            amount="4",
        )

        assert tx_result.tx_draft.txouts == (
            structs.TxOut(address=DST_ADDRESS, amount=4_000_000),
            structs.TxOut(address=SRC_ADDRESS, amount=800_000),
        )

    def test_deduct_from_amount(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[1_000_000_000], fee=170_000)
        tx_result = workflows.send_funds(
            ledger_obj=ledger,
            src_address=SRC_ADDRESS,
            src_skey_file="payment.skey",
            dst_address=DST_ADDRESS,
            amount="1",
            fee_mode=consts.FeeMode.DEDUCT_FROM_AMOUNT,
        )

        assert tx_result.tx_draft.txouts == (
            structs.TxOut(address=DST_ADDRESS, amount=830_000),
            structs.TxOut(address=SRC_ADDRESS, amount=999_000_000),
        )

    def test_deduct_amount_below_fee(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[1_000_000_000], fee=2_000_000)
        with pytest.raises(exceptions.InsufficientFundsError):
            workflows.send_funds(
                ledger_obj=ledger,
                src_address=SRC_ADDRESS,
                src_skey_file="payment.skey",
                dst_address=DST_ADDRESS,
                amount="1",
                fee_mode=consts.FeeMode.DEDUCT_FROM_AMOUNT,
            )
        assert not ledger.build_attempts

    def test_empty_source(self, ledger_factory) -> None:
        ledger = ledger_factory()
        with pytest.raises(exceptions.EmptySourceError):
            workflows.send_funds(
                ledger_obj=ledger,
                src_address=SRC_ADDRESS,
                src_skey_file="payment.skey",
                dst_address=DST_ADDRESS,
                amount="all",
            )
        assert not ledger.build_attempts
        assert not ledger.fee_requests

    def test_empty_destination(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[1_000_000])
        with pytest.raises(exceptions.CNToolsError, match="Destination"):
            workflows.send_funds(
                ledger_obj=ledger,
                src_address=SRC_ADDRESS,
                src_skey_file="payment.skey",
                dst_address="",
                amount="all",
            )

    def test_invalid_amount(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[1_000_000])
        with pytest.raises(exceptions.InvalidAmountError):
            workflows.send_funds(
                ledger_obj=ledger,
                src_address=SRC_ADDRESS,
                src_skey_file="payment.skey",
                dst_address=DST_ADDRESS,
                amount="lots",
            )

    def test_insufficient_logged(self, ledger_factory, caplog) -> None:
        ledger = ledger_factory(amounts=[1_000_000], fee=10)
        with caplog.at_level(logging.ERROR, logger="cntools.workflows"):
            with pytest.raises(exceptions.InsufficientFundsError):
                workflows.send_funds(
                    ledger_obj=ledger,
                    src_address=SRC_ADDRESS,
                    src_skey_file="payment.skey",
                    dst_address=DST_ADDRESS,
                    amount="2",
                )
        assert "shortfall" in caplog.text


class TestRegisterStakeKey:
    """Tests for the stake key registration workflow."""

    def _register(self, ledger) -> structs.TxResult:
        return workflows.register_stake_key(
            ledger_obj=ledger,
            payment_address=SRC_ADDRESS,
            payment_skey_file="payment.skey",
            stake_skey_file="stake.skey",
            base_address=BASE_ADDRESS,
            stake_reg_cert_file="stake_reg.cert",
        )

    def test_register(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[1_000_000], fee=2_000, key_deposit=500_000)
        tx_result = self._register(ledger)

        tx_draft = tx_result.tx_draft
        assert tx_draft.txouts == (structs.TxOut(address=BASE_ADDRESS, amount=498_000),)
        assert tx_draft.deposit == 500_000
        assert tx_draft.fee == 2_000
        assert tx_draft.certificate_files == (pl.Path("stake_reg.cert"),)

        __, signing = ledger.signed[0]
        assert signing.roles == [consts.KeyRoles.PAYMENT, consts.KeyRoles.STAKE]

        fee_request = ledger.fee_requests[-1]
        assert fee_request.certificate_files == (pl.Path("stake_reg.cert"),)
        assert len(fee_request.signing) == 2

    def test_highest_utxo_used(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[300_000, 1_000_000], fee=2_000, key_deposit=500_000)
        tx_result = self._register(ledger)

        assert [u.amount for u in tx_result.tx_draft.txins] == [1_000_000]

    def test_insufficient(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[501_999], fee=2_000, key_deposit=500_000)
        with pytest.raises(exceptions.InsufficientFundsError) as excinfo:
            self._register(ledger)

        assert excinfo.value.shortfall == 1
        assert not ledger.build_attempts

    def test_empty_source(self, ledger_factory) -> None:
        ledger = ledger_factory()
        with pytest.raises(exceptions.EmptySourceError):
            self._register(ledger)
        assert not ledger.build_attempts


class TestRegisterStakePool:
    """Tests for the stake pool registration workflow."""

    def test_register(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[600_000_000], fee=3_000, pool_deposit=500_000_000)
        tx_result = workflows.register_stake_pool(
            ledger_obj=ledger,
            payment_address=SRC_ADDRESS,
            payment_skey_file="payment.skey",
            cold_skey_file="pool_cold.skey",
            stake_skey_file="stake.skey",
            pool_reg_cert_file="pool_reg.cert",
            pledge_deleg_cert_file="pledge_deleg.cert",
        )

        tx_draft = tx_result.tx_draft
        assert tx_draft.txouts == (structs.TxOut(address=SRC_ADDRESS, amount=99_997_000),)
        assert tx_draft.deposit == 500_000_000
        assert tx_draft.certificate_files == (
            pl.Path("pool_reg.cert"),
            pl.Path("pledge_deleg.cert"),
        )

        __, signing = ledger.signed[0]
        assert signing.roles == [
            consts.KeyRoles.PAYMENT,
            consts.KeyRoles.POOL_COLD,
            consts.KeyRoles.STAKE,
        ]

    def test_insufficient(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[400_000_000], fee=3_000, pool_deposit=500_000_000)
        with pytest.raises(exceptions.InsufficientFundsError):
            workflows.register_stake_pool(
                ledger_obj=ledger,
                payment_address=SRC_ADDRESS,
                payment_skey_file="payment.skey",
                cold_skey_file="pool_cold.skey",
                stake_skey_file="stake.skey",
                pool_reg_cert_file="pool_reg.cert",
                pledge_deleg_cert_file="pledge_deleg.cert",
            )


class TestDelegateStake:
    """Tests for the delegation workflow."""

    def test_delegate(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[5_000_000], fee=2_500)
        tx_result = workflows.delegate_stake(
            ledger_obj=ledger,
            payment_address=SRC_ADDRESS,
            payment_skey_file="payment.skey",
            stake_skey_file="stake.skey",
            deleg_cert_file="deleg.cert",
        )

        tx_draft = tx_result.tx_draft
        assert tx_draft.deposit == 0
        assert tx_draft.txouts == (structs.TxOut(address=SRC_ADDRESS, amount=4_997_500),)

    def test_insufficient(self, ledger_factory) -> None:
        ledger = ledger_factory(amounts=[2_000], fee=2_500)
        with pytest.raises(exceptions.InsufficientFundsError) as excinfo:
            workflows.delegate_stake(
                ledger_obj=ledger,
                payment_address=SRC_ADDRESS,
                payment_skey_file="payment.skey",
                stake_skey_file="stake.skey",
                deleg_cert_file="deleg.cert",
            )
        assert excinfo.value.shortfall == 500


class TestBuildSignSubmit:
    """Tests for the build, sign and submit sequence."""

    def _draft(self) -> structs.TxDraft:
        return structs.TxDraft(
            txins=tuple(make_utxos(1_000)),
            txouts=(structs.TxOut(address=DST_ADDRESS, amount=990),),
            ttl=100,
            fee=10,
        )

    def _signing(self) -> structs.SigningContext:
        return structs.SigningContext.from_roles(("payment", "payment.skey"))

    @pytest.mark.parametrize(
        ("stage", "exc_cls"),
        [
            (consts.TxStage.BUILDING, exceptions.BuildError),
            (consts.TxStage.SIGNING, exceptions.SignError),
            (consts.TxStage.SUBMITTING, exceptions.SubmitError),
        ],
    )
    def test_stage_failure(self, ledger_factory, stage, exc_cls) -> None:
        ledger = ledger_factory()
        ledger.fail_at(stage)

        with pytest.raises(exc_cls) as excinfo:
            workflows.build_sign_submit(
                ledger_obj=ledger, tx_draft=self._draft(), signing=self._signing(), tx_name="t"
            )

        assert excinfo.value.stage == stage
        assert isinstance(excinfo.value.__cause__, exceptions.CLIError)
        assert not ledger.submitted
        assert not ledger.activity

    def test_sign_not_attempted_after_build_failure(self, ledger_factory) -> None:
        ledger = ledger_factory()
        ledger.fail_at(consts.TxStage.BUILDING)

        with pytest.raises(exceptions.BuildError):
            workflows.build_sign_submit(
                ledger_obj=ledger, tx_draft=self._draft(), signing=self._signing(), tx_name="t"
            )
        assert not ledger.signed

    def test_stage_error_not_wrapped(self, ledger_factory) -> None:
        ledger = ledger_factory()
        original = exceptions.SignError("bad key")
        ledger.fail_at(consts.TxStage.SIGNING, exc=original)

        with pytest.raises(exceptions.SignError) as excinfo:
            workflows.build_sign_submit(
                ledger_obj=ledger, tx_draft=self._draft(), signing=self._signing(), tx_name="t"
            )
        assert excinfo.value is original

    def test_unbalanced_draft(self, ledger_factory) -> None:
        ledger = ledger_factory()
        tx_draft = structs.TxDraft(
            txins=tuple(make_utxos(1_000)),
            txouts=(structs.TxOut(address=DST_ADDRESS, amount=1_000),),
            ttl=100,
            fee=10,
        )

        with pytest.raises(exceptions.UnbalancedTxError):
            workflows.build_sign_submit(
                ledger_obj=ledger, tx_draft=tx_draft, signing=self._signing(), tx_name="t"
            )
        assert not ledger.build_attempts

    def test_activity_recorded(self, ledger_factory) -> None:
        ledger = ledger_factory()
        workflows.build_sign_submit(
            ledger_obj=ledger, tx_draft=self._draft(), signing=self._signing(), tx_name="t"
        )
        assert len(ledger.activity) == 1
        assert "'t'" in ledger.activity[0]

    @pytest.mark.parametrize("stage", [consts.TxStage.BUILDING, consts.TxStage.SIGNING])
    def test_rerun_after_failure(self, ledger_factory, stage) -> None:
        ledger = ledger_factory(amounts=[500, 300], fee=10)
        ledger.fail_at(stage)
        kwargs = {
            "ledger_obj": ledger,
            "src_address": SRC_ADDRESS,
            "src_skey_file": "payment.skey",
            "dst_address": DST_ADDRESS,
            "amount": "all",
        }

        with pytest.raises(exceptions.StageError):
            workflows.send_funds(**kwargs)

        ledger.failures.clear()
        tx_result = workflows.send_funds(**kwargs)

        assert ledger.build_attempts[0] == tx_result.tx_draft
        assert len(ledger.submitted) == 1


class TestWaitForNewBlock:
    """Tests for waiting for new block."""

    def test_new_block(self, ledger_factory) -> None:
        ledger = ledger_factory(blocks=[5, 5, 5, 6])
        result = workflows.wait_for_new_block(
            ledger_obj=ledger, slot_duration=0, timeout_slots=10
        )

        assert result.new_block
        assert not result.timed_out
        assert not result.cancelled
        assert (result.initial_block, result.block) == (5, 6)

    def test_timeout(self, ledger_factory) -> None:
        ledger = ledger_factory(blocks=[5])
        result = workflows.wait_for_new_block(ledger_obj=ledger, slot_duration=0, timeout_slots=3)

        assert result.timed_out
        assert not result.new_block
        assert ledger.tip_queries == 4

    def test_cancelled(self, ledger_factory) -> None:
        ledger = ledger_factory(blocks=[5])
        cancel_event = threading.Event()
        cancel_event.set()

        result = workflows.wait_for_new_block(
            ledger_obj=ledger, slot_duration=10, timeout_slots=100, cancel_event=cancel_event
        )

        assert result.cancelled
        assert not result.timed_out
        assert ledger.tip_queries == 1

    def test_cancelled_from_other_thread(self, ledger_factory) -> None:
        ledger = ledger_factory(blocks=[5])
        cancel_event = threading.Event()
        timer = threading.Timer(0.05, cancel_event.set)
        timer.start()
        try:
            result = workflows.wait_for_new_block(
                ledger_obj=ledger,
                slot_duration=0.01,
                timeout_slots=10_000,
                cancel_event=cancel_event,
            )
        finally:
            timer.cancel()

        assert result.cancelled
