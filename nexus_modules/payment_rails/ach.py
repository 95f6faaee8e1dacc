"""
ACH rail operations (``nexus_modules.payment_rails.ach``).

Responsibility
--------------
Handles what comes back from the ACH network after a file is sent
(returns and notifications of change) and sends zero-dollar
prenotifications to verify a receiver's account before live entries.

Architecture position
---------------------
**Modules layer** -- submitted entries are tracked in a host-supplied
``AchTransactionRepository``; files are rendered by ``NachaFormatter``.
Transmitting the file to the ODFI stays with the host.

Invariants enforced
-------------------
* Returns and NOCs are matched on the original entry id first, then on
  the original trace number.
* A prenote is a single zero-amount PPD entry with a prenote
  transaction code (23, 28, 33 or 38).
* Prenotes settle on the next business day, never on a weekend.

Failure modes
-------------
* ``ValueError`` -- prenote without an account number or receiver name.
* Unmatched returns and NOCs are logged and reported as ``False``; they
  never raise.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.ids import generate_id
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.payment_rails.codes import AchReturnCode, NocCode, SecCode
from nexus_modules.payment_rails.models import AccountType, RoutingNumber
from nexus_modules.payment_rails.nacha import (
    AchBatch,
    AchEntry,
    AchFile,
    NachaFormatter,
    TransactionCode,
    trace_number,
)

logger = get_logger("modules.payment_rails.ach")

NOC_UPDATE_WINDOW_BUSINESS_DAYS = 6
PRENOTE_DESCRIPTION = "PRENOTE"
NOC_RECEIVED = "noc_received"

# (field, start, length) inside the 29-character corrected data of a NOC addenda
_CORRECTION_LAYOUT: dict[NocCode, tuple[tuple[str, int, int], ...]] = {
    NocCode.C01: (("account_number", 0, 17),),
    NocCode.C02: (("routing_number", 0, 9),),
    NocCode.C03: (("routing_number", 0, 9), ("account_number", 12, 17)),
    NocCode.C05: (("transaction_code", 0, 2),),
    NocCode.C06: (("account_number", 0, 17), ("transaction_code", 20, 2)),
    NocCode.C07: (("routing_number", 0, 9), ("account_number", 9, 17), ("transaction_code", 26, 2)),
}

_PRENOTE_CODES = {
    (AccountType.CHECKING, False): TransactionCode.CHECKING_CREDIT_PRENOTE,
    (AccountType.CHECKING, True): TransactionCode.CHECKING_DEBIT_PRENOTE,
    (AccountType.SAVINGS, False): TransactionCode.SAVINGS_CREDIT_PRENOTE,
    (AccountType.SAVINGS, True): TransactionCode.SAVINGS_DEBIT_PRENOTE,
}


def add_business_days(start: date, days: int) -> date:
    """``start`` moved forward ``days`` weekdays; holidays are not considered."""
    current = start
    remaining = days
    while remaining > 0:
        current += timedelta(days=1)
        if current.weekday() < 5:
            remaining -= 1
    return current


@dataclass(frozen=True)
class AchReturn:
    """An entry handed back by the receiving bank with a reason code."""

    original_trace_number: str
    return_code: AchReturnCode
    return_date: date
    original_entry_id: str | None = None
    addenda_information: str | None = None
    dishonored: bool = False
    contested: bool = False

    @property
    def description(self) -> str:
        return self.return_code.description

    @property
    def suggested_action(self) -> str:
        return self.return_code.suggested_action

    @property
    def is_retriable(self) -> bool:
        return self.return_code.is_retriable

    def failure_details(self) -> list[str]:
        details = [f"ACH return {self.return_code.value}: {self.description}"]
        if self.addenda_information:
            details.append(f"Addenda: {self.addenda_information}")
        details.append(f"Suggested action: {self.suggested_action}")
        details.append(f"Retriable: {'yes' if self.is_retriable else 'no'}")
        return details


@dataclass(frozen=True)
class AchNotificationOfChange:
    """A request from the receiving bank to correct stored account details."""

    original_trace_number: str
    noc_code: NocCode
    noc_date: date
    corrected_data: str
    original_entry_id: str | None = None

    @property
    def fields_to_update(self) -> tuple[str, ...]:
        return self.noc_code.field_to_update

    def parse_corrections(self) -> dict[str, str]:
        """Corrected values keyed by field; codes without a fixed layout get the whole string."""
        layout = _CORRECTION_LAYOUT.get(self.noc_code)
        if layout is None:
            return {name: self.corrected_data.strip() for name in self.fields_to_update}
        return {
            name: self.corrected_data[start:start + length].strip()
            for name, start, length in layout
        }

    def is_within_update_window(self, as_of: date) -> bool:
        """Originators must apply the change within six banking days of receipt."""
        return as_of <= add_business_days(self.noc_date, NOC_UPDATE_WINDOW_BUSINESS_DAYS)


@dataclass(frozen=True)
class AchTransactionRecord:
    """What the host keeps about one submitted entry."""

    transaction_id: str
    trace_number: str
    status: str = "submitted"
    errors: tuple[str, ...] = ()


class AchTransactionRepository(Protocol):
    def save(self, record: AchTransactionRecord) -> None: ...

    def find_by_id(self, transaction_id: str) -> AchTransactionRecord | None: ...

    def find_by_trace_number(self, trace_number: str) -> AchTransactionRecord | None: ...

    def mark_failed(self, transaction_id: str, errors: list[str]) -> None: ...

    def update_status(self, transaction_id: str, status: str) -> None: ...


@dataclass(frozen=True)
class AchPrenoteRequest:
    routing_number: RoutingNumber
    account_number: str
    account_type: AccountType
    receiver_name: str
    is_debit: bool = False
    company_name: str | None = None
    company_id: str | None = None


@dataclass(frozen=True)
class AchSubmission:
    """A rendered file and the trace number assigned to each entry id."""

    ach_file: AchFile
    contents: str
    trace_numbers: dict[str, str] = field(default_factory=dict)


class AchRail:
    """
    Returns, notifications of change and prenotes for one originator.

    Usage::

        rail = AchRail(repository, company_id="1234567890",
                       immediate_destination=bank, immediate_origin=ours)
        rail.send_prenote(AchPrenoteRequest(routing, "123456789", AccountType.CHECKING, "JANE DOE"))
        rail.process_return(AchReturn("121000350000001", AchReturnCode.R01, date(2024, 1, 5)))
    """

    def __init__(
        self,
        repository: AchTransactionRepository,
        *,
        company_id: str,
        immediate_destination: RoutingNumber,
        immediate_origin: RoutingNumber,
        destination_name: str = "DESTINATION",
        origin_name: str = "ORIGIN",
        formatter: NachaFormatter | None = None,
        clock: Clock | None = None,
    ):
        self._repository = repository
        self._company_id = company_id
        self._destination = immediate_destination
        self._origin = immediate_origin
        self._destination_name = destination_name
        self._origin_name = origin_name
        self._formatter = formatter or NachaFormatter()
        self._clock = clock or SystemClock()

    def next_effective_date(self) -> date:
        return add_business_days(self._clock.today(), 1)

    # -- prenotes ----------------------------------------------------------

    def send_prenote(self, request: AchPrenoteRequest) -> AchSubmission:
        account_number = request.account_number.strip()
        if not account_number:
            raise ValueError("Missing account number for ACH prenote")
        receiver_name = request.receiver_name.strip()
        if not receiver_name:
            raise ValueError("Missing receiver name for ACH prenote")

        trace = trace_number(self._origin.dfi_identification, 1)
        entry = AchEntry(
            _PRENOTE_CODES[(request.account_type, request.is_debit)],
            request.routing_number,
            account_number,
            Money.zero("USD"),
            receiver_name,
            trace_number=trace,
            entry_id=generate_id("PRENOTE"),
        )
        batch = AchBatch(
            sec_code=SecCode.PPD,
            company_name=request.company_name or "Prenote",
            company_id=request.company_id or self._company_id,
            company_entry_description=PRENOTE_DESCRIPTION,
            originating_dfi=self._origin,
            effective_entry_date=self.next_effective_date(),
            entries=(entry,),
            batch_number=1,
        )
        ach_file = AchFile(
            immediate_destination=self._destination,
            immediate_origin=self._origin,
            immediate_destination_name=self._destination_name,
            immediate_origin_name=self._origin_name,
            created_at=self._clock.now(),
            batches=(batch,),
        )
        contents = self._formatter.format_file(ach_file)
        self._repository.save(AchTransactionRecord(entry.entry_id, trace))
        logger.info(
            "ach_prenote_sent",
            extra={
                "entry_id": entry.entry_id,
                "transaction_code": entry.transaction_code.value,
                "routing_number": request.routing_number.masked,
                "effective_date": batch.effective_entry_date.isoformat(),
            },
        )
        return AchSubmission(ach_file, contents, {entry.entry_id: trace})

    # -- network responses -------------------------------------------------

    def process_return(self, ach_return: AchReturn) -> bool:
        """Fail the returned entry; ``False`` when no submitted entry matches."""
        record = self._find(ach_return.original_entry_id, ach_return.original_trace_number)
        context = {
            "return_code": ach_return.return_code.value,
            "return_date": ach_return.return_date.isoformat(),
            "retriable": ach_return.is_retriable,
        }
        if record is None:
            logger.warning(
                "ach_return_unmatched",
                extra={"trace_number": ach_return.original_trace_number, **context},
            )
            return False

        self._repository.mark_failed(record.transaction_id, ach_return.failure_details())
        logger.info(
            "ach_return_processed",
            extra={
                "transaction_id": record.transaction_id,
                "dishonored": ach_return.dishonored,
                "contested": ach_return.contested,
                **context,
            },
        )
        return True

    def process_noc(self, noc: AchNotificationOfChange) -> bool:
        """
        Flag the original entry as having a notification of change.

        The corrections are logged for the host to apply to its stored
        account; ``False`` when no submitted entry matches.
        """
        record = self._find(noc.original_entry_id, noc.original_trace_number)
        if record is not None:
            self._repository.update_status(record.transaction_id, NOC_RECEIVED)

        logger.info(
            "ach_noc_processed",
            extra={
                "transaction_id": record.transaction_id if record else None,
                "trace_number": noc.original_trace_number,
                "noc_code": noc.noc_code.value,
                "noc_date": noc.noc_date.isoformat(),
                "within_update_window": noc.is_within_update_window(self._clock.today()),
                "fields_to_update": list(noc.fields_to_update),
            },
        )
        return record is not None

    def _find(self, entry_id: str | None, trace: str) -> AchTransactionRecord | None:
        record = self._repository.find_by_id(entry_id) if entry_id is not None else None
        return record or self._repository.find_by_trace_number(trace)
