"""
Tests for the ACH rail: returns, notifications of change and prenotes.
"""

from datetime import UTC, date, datetime

import pytest

from nexus_modules.payment_rails.ach import (
    AchNotificationOfChange,
    AchPrenoteRequest,
    AchRail,
    AchReturn,
    AchTransactionRecord,
    add_business_days,
)
from nexus_modules.payment_rails.codes import AchReturnCode, NocCode, SecCode
from nexus_modules.payment_rails.models import AccountType, RoutingNumber
from nexus_modules.payment_rails.nacha import NachaFormatter, TransactionCode

ORIGIN = RoutingNumber("121000358")
BANK = RoutingNumber("021000021")
TRACE = "121000350000001"


class InMemoryAchRepository:

    def __init__(self, *records):
        self.records = {r.transaction_id: r for r in records}
        self.failed = {}
        self.statuses = {}

    def save(self, record):
        self.records[record.transaction_id] = record

    def find_by_id(self, transaction_id):
        return self.records.get(transaction_id)

    def find_by_trace_number(self, trace_number):
        return next((r for r in self.records.values() if r.trace_number == trace_number), None)

    def mark_failed(self, transaction_id, errors):
        self.failed[transaction_id] = errors

    def update_status(self, transaction_id, status):
        self.statuses[transaction_id] = status


@pytest.fixture
def repository():
    return InMemoryAchRepository(AchTransactionRecord("ENTRY-1", TRACE))


@pytest.fixture
def rail(repository, deterministic_clock):
    return AchRail(
        repository,
        company_id="1234567890",
        immediate_destination=BANK,
        immediate_origin=ORIGIN,
        clock=deterministic_clock,
    )


class TestBusinessDays:

    def test_skips_weekend(self):
        assert add_business_days(date(2024, 1, 5), 1) == date(2024, 1, 8)
        assert add_business_days(date(2024, 1, 5), 6) == date(2024, 1, 15)

    def test_effective_date_after_friday(self, rail, deterministic_clock):
        assert rail.next_effective_date() == date(2024, 1, 2)
        deterministic_clock.set_time(datetime(2024, 1, 5, 15, 0, tzinfo=UTC))
        assert rail.next_effective_date() == date(2024, 1, 8)


class TestReturns:

    def test_matched_by_trace_number(self, rail, repository, captured_logs):
        ach_return = AchReturn(TRACE, AchReturnCode.R01, date(2024, 1, 5), addenda_information="NSF")

        assert rail.process_return(ach_return)
        assert repository.failed["ENTRY-1"] == [
            "ACH return R01: Insufficient Funds",
            "Addenda: NSF",
            "Suggested action: Retry payment after sufficient funds are available",
            "Retriable: yes",
        ]
        record = next(r for r in captured_logs() if r["message"] == "ach_return_processed")
        assert record["return_code"] == "R01"
        assert record["retriable"] is True

    def test_entry_id_takes_precedence(self, rail, repository):
        repository.save(AchTransactionRecord("ENTRY-2", "121000350000002"))
        ach_return = AchReturn(TRACE, AchReturnCode.R02, date(2024, 1, 5), original_entry_id="ENTRY-2")

        assert rail.process_return(ach_return)
        assert list(repository.failed) == ["ENTRY-2"]
        assert repository.failed["ENTRY-2"][-1] == "Retriable: no"

    def test_unknown_entry_id_falls_back_to_trace(self, rail, repository):
        ach_return = AchReturn(TRACE, AchReturnCode.R03, date(2024, 1, 5), original_entry_id="ENTRY-9")
        assert rail.process_return(ach_return)
        assert "ENTRY-1" in repository.failed

    def test_unmatched_return(self, rail, repository, captured_logs):
        ach_return = AchReturn("999999990000001", AchReturnCode.R01, date(2024, 1, 5))

        assert not rail.process_return(ach_return)
        assert repository.failed == {}
        assert any(r["message"] == "ach_return_unmatched" for r in captured_logs())


class TestNotificationsOfChange:

    def test_marks_entry(self, rail, repository, captured_logs):
        noc = AchNotificationOfChange(TRACE, NocCode.C01, date(2024, 1, 1), "98765432101")

        assert rail.process_noc(noc)
        assert repository.statuses == {"ENTRY-1": "noc_received"}
        record = next(r for r in captured_logs() if r["message"] == "ach_noc_processed")
        assert record["fields_to_update"] == ["account_number"]
        assert record["within_update_window"] is True

    def test_unmatched_noc(self, rail, repository):
        noc = AchNotificationOfChange("999999990000001", NocCode.C02, date(2024, 1, 1), "021000021")
        assert not rail.process_noc(noc)
        assert repository.statuses == {}

    @pytest.mark.parametrize(
        "code,data,expected",
        [
            (NocCode.C01, "98765432101", {"account_number": "98765432101"}),
            (NocCode.C02, "021000021", {"routing_number": "021000021"}),
            (
                NocCode.C03,
                "021000021   12345678901234567",
                {"routing_number": "021000021", "account_number": "12345678901234567"},
            ),
            (NocCode.C05, "32", {"transaction_code": "32"}),
            (
                NocCode.C06,
                "12345678901234567   27",
                {"account_number": "12345678901234567", "transaction_code": "27"},
            ),
            (NocCode.C10, "ACME CORPORATION ", {"company_name": "ACME CORPORATION"}),
        ],
    )
    def test_parse_corrections(self, code, data, expected):
        noc = AchNotificationOfChange(TRACE, code, date(2024, 1, 5), data)
        assert noc.parse_corrections() == expected

    def test_update_window_counts_business_days(self):
        noc = AchNotificationOfChange(TRACE, NocCode.C01, date(2024, 1, 5), "1")
        assert noc.is_within_update_window(date(2024, 1, 15))
        assert not noc.is_within_update_window(date(2024, 1, 16))


class TestPrenote:

    @pytest.mark.parametrize(
        "account_type,is_debit,code",
        [
            (AccountType.CHECKING, False, TransactionCode.CHECKING_CREDIT_PRENOTE),
            (AccountType.CHECKING, True, TransactionCode.CHECKING_DEBIT_PRENOTE),
            (AccountType.SAVINGS, False, TransactionCode.SAVINGS_CREDIT_PRENOTE),
            (AccountType.SAVINGS, True, TransactionCode.SAVINGS_DEBIT_PRENOTE),
        ],
    )
    def test_transaction_code(self, rail, account_type, is_debit, code):
        submission = rail.send_prenote(
            AchPrenoteRequest(BANK, "123456789", account_type, "JANE DOE", is_debit=is_debit)
        )
        entry = submission.ach_file.batches[0].entries[0]
        assert entry.transaction_code is code
        assert entry.amount.is_zero

    def test_file_contents(self, rail, repository):
        submission = rail.send_prenote(
            AchPrenoteRequest(BANK, " 123456789 ", AccountType.CHECKING, "JANE DOE")
        )
        batch = submission.ach_file.batches[0]

        assert batch.sec_code is SecCode.PPD
        assert batch.company_entry_description == "PRENOTE"
        assert batch.company_id == "1234567890"
        assert batch.effective_entry_date == date(2024, 1, 2)

        parsed = NachaFormatter().parse_file(submission.contents)
        entry = parsed.batches[0].entries[0]
        assert entry.transaction_code is TransactionCode.CHECKING_CREDIT_PRENOTE
        assert entry.account_number == "123456789"
        assert entry.amount_cents == 0

        [(entry_id, trace)] = submission.trace_numbers.items()
        assert trace == "121000350000001"
        assert repository.find_by_trace_number(trace).transaction_id == entry_id

    def test_company_overrides(self, rail):
        submission = rail.send_prenote(
            AchPrenoteRequest(
                BANK, "123456789", AccountType.CHECKING, "JANE DOE",
                company_name="ACME PAYROLL", company_id="9876543210",
            )
        )
        batch = submission.ach_file.batches[0]
        assert (batch.company_name, batch.company_id) == ("ACME PAYROLL", "9876543210")

    @pytest.mark.parametrize(
        "account_number,receiver_name,message",
        [("   ", "JANE DOE", "account number"), ("123456789", " ", "receiver name")],
    )
    def test_required_fields(self, rail, account_number, receiver_name, message):
        with pytest.raises(ValueError, match=message):
            rail.send_prenote(AchPrenoteRequest(BANK, account_number, AccountType.CHECKING, receiver_name))
