"""
Tests for NACHA file construction, formatting and parsing.
"""

from datetime import UTC, date, datetime

import pytest

from nexus_kernel.values import Money
from nexus_modules.payment_rails.codes import SecCode
from nexus_modules.payment_rails.exceptions import NachaFormatError
from nexus_modules.payment_rails.models import AccountType, RoutingNumber
from nexus_modules.payment_rails.nacha import (
    FILLER_RECORD,
    AchBatch,
    AchEntry,
    AchFile,
    NachaFormatter,
    ServiceClassCode,
    TransactionCode,
    format_field,
    trace_number,
)

ORIGIN = RoutingNumber("121000358")


def usd(amount):
    return Money.of(amount, "USD")


def payroll_batch(**overrides):
    fields = dict(
        sec_code=SecCode.PPD,
        company_name="ACME CORP",
        company_id="1234567890",
        company_entry_description="PAYROLL",
        originating_dfi=ORIGIN,
        effective_entry_date=date(2024, 1, 2),
    )
    fields.update(overrides)
    batch = AchBatch(**fields)
    batch = batch.with_entry(
        AchEntry(
            TransactionCode.CHECKING_CREDIT,
            RoutingNumber("021000021"),
            "123456789",
            usd("1500.00"),
            "JANE DOE",
            individual_id="EMP001",
        )
    )
    return batch.with_entry(
        AchEntry(
            TransactionCode.SAVINGS_CREDIT,
            RoutingNumber("011000015"),
            "987654321",
            usd("250.50"),
            "JOHN ROE",
            individual_id="EMP002",
            addenda="Invoice 42",
        )
    )


@pytest.fixture
def ach_file():
    return AchFile(
        immediate_destination=RoutingNumber("021000021"),
        immediate_origin=ORIGIN,
        immediate_destination_name="FEDERAL RESERVE",
        immediate_origin_name="ACME CORP",
        created_at=datetime(2024, 1, 1, 12, 0, tzinfo=UTC),
        batches=(payroll_batch(),),
        reference_code="REF00001",
    )


class TestTransactionCode:

    def test_flags(self):
        assert TransactionCode.CHECKING_CREDIT.is_credit
        assert TransactionCode.CHECKING_DEBIT.is_debit
        assert TransactionCode.SAVINGS_CREDIT_PRENOTE.is_prenote
        assert TransactionCode.SAVINGS_CREDIT_PRENOTE.is_credit
        assert TransactionCode.SAVINGS_DEBIT.is_savings
        assert not TransactionCode.CHECKING_CREDIT.is_prenote
        assert TransactionCode.CHECKING_DEBIT_PRENOTE.account_type is AccountType.CHECKING


class TestFileStructure:

    def test_batch_totals(self):
        batch = payroll_batch()
        assert batch.service_class_code is ServiceClassCode.CREDITS_ONLY
        assert batch.entry_count == 2
        assert batch.addenda_count == 1
        assert batch.entry_hash == 2100002 + 1100001
        assert batch.total_credits == usd("1750.50")
        assert batch.total_debits.is_zero

    def test_mixed_batch(self):
        batch = payroll_batch().with_entry(
            AchEntry(TransactionCode.CHECKING_DEBIT, ORIGIN, "555", usd("10"), "ACME CORP")
        )
        assert batch.service_class_code is ServiceClassCode.MIXED
        assert batch.total_debits == usd("10")

    def test_file_counts(self, ach_file):
        assert ach_file.batch_count == 1
        assert ach_file.entry_count == 2
        assert ach_file.record_count == 7
        assert ach_file.block_count == 1

    def test_entry_rules(self):
        with pytest.raises(ValueError, match="USD"):
            AchEntry(TransactionCode.CHECKING_CREDIT, ORIGIN, "1", Money.of("1", "EUR"), "X")
        with pytest.raises(ValueError, match="zero"):
            AchEntry(TransactionCode.CHECKING_CREDIT_PRENOTE, ORIGIN, "1", usd("1"), "X")
        with pytest.raises(ValueError, match="1-17"):
            AchEntry(TransactionCode.CHECKING_CREDIT, ORIGIN, "1" * 18, usd("1"), "X")


class TestFieldHelpers:

    def test_format_field(self):
        assert format_field("ABC", 5) == "ABC  "
        assert format_field("ABCDEF", 3) == "ABC"
        assert format_field(42, 5, numeric=True) == "00042"
        assert format_field("12-34", 6, numeric=True) == "001234"
        assert format_field(None, 2) == "  "

    def test_trace_number(self):
        assert trace_number("12100035", 1) == "121000350000001"


class TestNachaFormatter:

    def test_records_are_blocked(self, ach_file, captured_logs):
        lines = NachaFormatter().format_file(ach_file).split("\n")
        assert len(lines) == 10
        assert all(len(line) == 94 for line in lines)
        assert lines[7:] == [FILLER_RECORD] * 3
        assert any(r["message"] == "nacha_file_formatted" for r in captured_logs())

    def test_file_header(self, ach_file):
        header = NachaFormatter().format_file(ach_file).split("\n")[0]
        assert header[:3] == "101"
        assert header[3:13] == " 021000021"
        assert header[13:23] == " 121000358"
        assert header[23:33] == "2401011200"
        assert header[33:40] == "A094101"
        assert header[40:63].rstrip() == "FEDERAL RESERVE"
        assert header[86:94] == "REF00001"

    def test_batch_and_entries(self, ach_file):
        lines = NachaFormatter().format_file(ach_file).split("\n")
        batch_header, first, second, addenda, control = lines[1:6]

        assert batch_header[:4] == "5220"
        assert batch_header[50:53] == "PPD"
        assert batch_header[69:75] == "240102"
        assert batch_header[79:94] == "121000350000001"

        assert first[:12] == "622021000021"
        assert first[29:39] == "0000150000"
        assert first[78] == "0"
        assert first[79:94] == "121000350000001"
        assert second[78] == "1"
        assert second[79:94] == "121000350000002"

        assert addenda[:3] == "705"
        assert addenda[3:83].rstrip() == "Invoice 42"
        assert addenda[83:94] == "00010000002"

        assert control[:10] == "8220000003"
        assert control[10:20] == "0003200003"
        assert control[20:44] == "000000000000000000175050"
        assert control[44:54] == "1234567890"

    def test_file_control(self, ach_file):
        control = NachaFormatter().format_file(ach_file).split("\n")[6]
        assert control[:21] == "900000100000100000003"
        assert control[21:31] == "0003200003"
        assert control[43:55] == "000000175050"

    def test_parse_formatted_file(self, ach_file, captured_logs):
        formatter = NachaFormatter()
        parsed = formatter.parse_file(formatter.format_file(ach_file))

        assert parsed.immediate_destination == RoutingNumber("021000021")
        assert parsed.immediate_origin_name == "ACME CORP"
        assert parsed.created_at == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        assert parsed.reference_code == "REF00001"

        (batch,) = parsed.batches
        assert batch.company_name == "ACME CORP"
        assert batch.effective_entry_date == date(2024, 1, 2)
        assert batch.batch_number == 1
        assert batch.originating_dfi == ORIGIN
        assert [e.amount for e in batch.entries] == [usd("1500.00"), usd("250.50")]
        assert batch.entries[1].addenda == "Invoice 42"
        assert batch.entries[0].trace_number == "121000350000001"
        assert parsed.entry_hash == ach_file.entry_hash
        assert any(r["message"] == "nacha_file_parsed" for r in captured_logs())

    def test_parse_rejects_empty_and_headerless(self):
        with pytest.raises(NachaFormatError, match="empty"):
            NachaFormatter().parse_file("")
        with pytest.raises(NachaFormatError, match="header"):
            NachaFormatter().parse_file("5" + " " * 93)

    def test_parse_rejects_unknown_transaction_code(self, ach_file):
        lines = NachaFormatter().format_file(ach_file).split("\n")
        lines[2] = "699" + lines[2][3:]
        with pytest.raises(NachaFormatError, match="Record 3"):
            NachaFormatter().parse_file("\n".join(lines))

    def test_validate_format(self, ach_file):
        formatter = NachaFormatter()
        content = formatter.format_file(ach_file)
        assert formatter.validate_format(content) == []

        lines = content.split("\n")
        lines[1] = lines[1][:50]
        assert formatter.validate_format("\n".join(lines)) == ["Record 2 is not 94 characters."]

        header_only = content.split("\n")[0]
        assert formatter.validate_format(header_only) == ["Missing file control record."]

        bad_type = "4" + content.split("\n")[0][1:]
        assert "Record 1 has invalid record type: 4" in formatter.validate_format(bad_type)
