"""
Tests for payment value objects and the Disbursement aggregate.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from nexus_kernel.values import Money
from nexus_modules.payment.exceptions import InvalidDisbursementTransitionError
from nexus_modules.payment.models import (
    Disbursement,
    DisbursementStatus,
    ExchangeRateSnapshot,
    PaymentMethodType,
    PaymentReference,
    PaymentReferenceType,
    Recipient,
)

CAPTURED_AT = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def usd_myr(rate="4.50"):
    return ExchangeRateSnapshot.capture("USD", "MYR", rate, CAPTURED_AT, "oanda", "mid")


class TestExchangeRateSnapshot:

    def test_capture_keeps_rate_text(self):
        snapshot = usd_myr()
        assert snapshot.rate == "4.50"
        assert snapshot.provider == "oanda"
        assert snapshot.currency_pair == "USD/MYR"

    @pytest.mark.parametrize("rate", ["0", "-1.5", "abc"])
    def test_rate_must_be_positive(self, rate):
        with pytest.raises(ValueError, match="Exchange rate must be a positive number"):
            usd_myr(rate)

    def test_non_iso_codes_allowed(self):
        snapshot = ExchangeRateSnapshot.capture("BTC", "USD", "45678.12345678", CAPTURED_AT)
        assert snapshot.rate == "45678.12345678"

    def test_lowercase_code_rejected(self):
        with pytest.raises(ValueError, match="three uppercase letters"):
            ExchangeRateSnapshot.capture("usd", "MYR", "4.5", CAPTURED_AT)

    def test_same_currency(self):
        snapshot = ExchangeRateSnapshot.same_currency("MYR", CAPTURED_AT)
        assert snapshot.rate == "1.000000"
        assert snapshot.provider == "system"
        assert snapshot.rate_type == "identity"
        assert snapshot.is_same_currency
        assert not usd_myr().is_same_currency

    def test_convert_to_six_places(self):
        assert str(usd_myr().convert("100")) == "450.000000"
        jpy = ExchangeRateSnapshot.capture("USD", "JPY", "148.567", CAPTURED_AT)
        assert str(jpy.convert("100.50")) == "14930.983500"

    def test_convert_back(self):
        assert str(usd_myr().convert_back("450")) == "100.000000"

    def test_inverse(self):
        snapshot = usd_myr("4.00")
        assert snapshot.inverse_rate == "0.2500000000"

        inverse = snapshot.inverse()
        assert inverse.source_currency == "MYR"
        assert inverse.target_currency == "USD"
        assert inverse.rate == "0.2500000000"
        assert inverse.provider == "oanda"
        assert inverse.captured_at == CAPTURED_AT

    def test_dict_round_trip(self):
        original = usd_myr()
        data = original.to_dict()

        assert data["captured_at"] == "2024-01-15T10:30:00+00:00"
        assert ExchangeRateSnapshot.from_dict(data) == original

    def test_from_dict_missing_field(self):
        with pytest.raises(ValueError, match="rate"):
            ExchangeRateSnapshot.from_dict({"source_currency": "USD", "target_currency": "MYR",
                                            "captured_at": CAPTURED_AT.isoformat()})


class TestPaymentReference:

    def test_formatted(self):
        assert PaymentReference.invoice("123").formatted() == "INV: 123"
        assert PaymentReference(PaymentReferenceType.PURCHASE_ORDER, "PO-9").formatted() == "PO: PO-9"

    def test_empty_rejected(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            PaymentReference.invoice("  ")

    def test_length_limit(self):
        PaymentReference.invoice("x" * 140)
        with pytest.raises(ValueError, match="140"):
            PaymentReference.invoice("x" * 141)


def make_disbursement(requires_approval=True, **kwargs):
    return Disbursement.create(
        "tenant-1",
        Money.of("2500.00", "USD"),
        Recipient("VND-1", "Acme Supplies"),
        PaymentMethodType.ACH,
        "clerk-1",
        NOW,
        requires_approval=requires_approval,
        **kwargs,
    )


class TestDisbursement:

    def test_create_requiring_approval_starts_in_draft(self):
        disbursement = make_disbursement()
        assert disbursement.status is DisbursementStatus.DRAFT
        assert disbursement.disbursement_id.startswith("DSB-")
        assert disbursement.reference_number.startswith("DISB-20240101-")

    def test_create_without_approval_starts_approved(self):
        assert make_disbursement(requires_approval=False).status is DisbursementStatus.APPROVED

    def test_happy_path_is_copy_on_write(self):
        draft = make_disbursement()
        pending = draft.submit_for_approval()
        approved = pending.approve("manager-1", NOW, notes="ok")
        processing = approved.mark_processing(NOW)
        completed = processing.mark_completed("PTX-1", NOW)

        assert draft.status is DisbursementStatus.DRAFT
        assert approved.approved_by == "manager-1"
        assert approved.metadata["approval_notes"] == "ok"
        assert completed.status is DisbursementStatus.COMPLETED
        assert completed.payment_transaction_id == "PTX-1"
        assert completed.is_terminal

    def test_illegal_jump(self):
        with pytest.raises(InvalidDisbursementTransitionError, match="draft to completed"):
            make_disbursement().mark_completed("PTX-1", NOW)

    def test_failed_can_retry(self):
        failed = (
            make_disbursement(requires_approval=False)
            .mark_processing(NOW)
            .mark_failed("R01", "Insufficient funds")
        )
        assert failed.is_failed
        assert failed.metadata["failure_code"] == "R01"
        assert failed.mark_processing(NOW).status is DisbursementStatus.PROCESSING

    def test_rejected_is_terminal(self):
        rejected = make_disbursement().submit_for_approval().reject("manager-1", "duplicate", NOW)
        assert rejected.is_terminal
        assert rejected.rejection_reason == "duplicate"
        assert rejected.status.allowed_transitions() == frozenset()

    def test_cancel_records_reason(self):
        cancelled = make_disbursement().cancel("vendor paid by check")
        assert cancelled.is_cancelled
        assert cancelled.metadata["cancellation_reason"] == "vendor paid by check"

    def test_ready_for_processing_respects_schedule(self):
        approved = make_disbursement(requires_approval=False)
        scheduled = approved.schedule(NOW + timedelta(days=3))

        assert approved.is_ready_for_processing(NOW)
        assert not scheduled.is_ready_for_processing(NOW)
        assert scheduled.is_ready_for_processing(NOW + timedelta(days=3))

    def test_cannot_schedule_terminal(self):
        cancelled = make_disbursement().cancel()
        with pytest.raises(InvalidDisbursementTransitionError, match="cannot schedule"):
            cancelled.schedule(NOW + timedelta(days=1))

    def test_link_source_documents_deduplicates(self):
        disbursement = make_disbursement(source_document_ids=["INV-1"])
        linked = disbursement.link_source_documents(["INV-1", "INV-2"])
        assert linked.source_document_ids == ("INV-1", "INV-2")

    def test_amount_must_be_positive(self):
        with pytest.raises(ValueError, match="positive"):
            Disbursement.create(
                "tenant-1", Money.of("0", "USD"), Recipient("VND-1", "Acme"),
                PaymentMethodType.WIRE, "clerk-1", NOW,
            )

    def test_to_dict(self):
        data = make_disbursement().to_dict()
        assert data["status"] == "draft"
        assert data["amount"] == {"amount": "2500.00", "currency": "USD"}
        assert data["recipient_name"] == "Acme Supplies"
        assert Decimal(data["amount"]["amount"]) == Decimal("2500")
