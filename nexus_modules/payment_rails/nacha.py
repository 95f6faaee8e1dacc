"""
NACHA file format (``nexus_modules.payment_rails.nacha``).

Responsibility
--------------
Builds and reads fixed-width ACH files: file header (1), batch header (5),
entry detail (6), addenda (7), batch control (8) and file control (9)
records of 94 characters each, blocked in tens with all-9 filler lines.

Invariants enforced
-------------------
* Every emitted record is exactly 94 characters.
* Batch and file control totals are computed from the entries, never
  supplied by the caller.
* Entry hash is the sum of the 8-digit receiving DFI identifiers modulo
  10^10.

Failure modes
-------------
* ``NachaFormatError`` -- ``parse_file`` given empty or headerless content.
* ``ValueError`` -- entry, batch or file construction with invalid data.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from enum import Enum
from typing import Self

from nexus_kernel.ids import generate_id
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.payment_rails.codes import SecCode
from nexus_modules.payment_rails.exceptions import NachaFormatError
from nexus_modules.payment_rails.models import AccountType, RoutingNumber

logger = get_logger("modules.payment_rails.nacha")

RECORD_LENGTH = 94
BLOCKING_FACTOR = 10
FILLER_RECORD = "9" * RECORD_LENGTH
ENTRY_HASH_MODULUS = 10**10

RECORD_TYPES = ("1", "5", "6", "7", "8", "9")

_NON_DIGITS = re.compile(r"\D+")


class TransactionCode(str, Enum):
    CHECKING_CREDIT = "22"
    CHECKING_CREDIT_PRENOTE = "23"
    CHECKING_DEBIT = "27"
    CHECKING_DEBIT_PRENOTE = "28"
    SAVINGS_CREDIT = "32"
    SAVINGS_CREDIT_PRENOTE = "33"
    SAVINGS_DEBIT = "37"
    SAVINGS_DEBIT_PRENOTE = "38"

    @property
    def is_credit(self) -> bool:
        return self.value[1] in "23"

    @property
    def is_debit(self) -> bool:
        return self.value[1] in "78"

    @property
    def is_prenote(self) -> bool:
        return self.value[1] in "38"

    @property
    def is_savings(self) -> bool:
        return self.value[0] == "3"

    @property
    def account_type(self) -> AccountType:
        return AccountType.SAVINGS if self.is_savings else AccountType.CHECKING


class ServiceClassCode(str, Enum):
    MIXED = "200"
    CREDITS_ONLY = "220"
    DEBITS_ONLY = "225"


# =============================================================================
# File structure
# =============================================================================


@dataclass(frozen=True)
class AchEntry:
    transaction_code: TransactionCode
    routing_number: RoutingNumber
    account_number: str
    amount: Money
    individual_name: str
    individual_id: str = ""
    discretionary_data: str | None = None
    addenda: str | None = None
    trace_number: str | None = None
    entry_id: str = field(default_factory=lambda: generate_id("ACHE"))

    def __post_init__(self) -> None:
        if self.amount.currency.code != "USD":
            raise ValueError("ACH entries must be in USD")
        if self.amount.is_negative:
            raise ValueError("ACH entry amount cannot be negative")
        if self.transaction_code.is_prenote and not self.amount.is_zero:
            raise ValueError("Prenotification entries must have a zero amount")
        if not 1 <= len(self.account_number) <= 17:
            raise ValueError("DFI account number must be 1-17 characters")

    @property
    def amount_cents(self) -> int:
        return self.amount.minor_units

    @property
    def has_addenda(self) -> bool:
        return bool(self.addenda)

    @property
    def addenda_indicator(self) -> str:
        return "1" if self.has_addenda else "0"


@dataclass(frozen=True)
class AchBatch:
    sec_code: SecCode
    company_name: str
    company_id: str
    company_entry_description: str
    originating_dfi: RoutingNumber
    effective_entry_date: date
    entries: tuple[AchEntry, ...] = ()
    company_discretionary_data: str | None = None
    company_descriptive_date: date | None = None
    batch_number: int = 0

    def __post_init__(self) -> None:
        if not self.company_name.strip():
            raise ValueError("Batch company name is required")
        if not self.company_id.strip():
            raise ValueError("Batch company identification is required")
        if self.batch_number < 0:
            raise ValueError("Batch number cannot be negative")

    def with_entry(self, entry: AchEntry) -> Self:
        return replace(self, entries=(*self.entries, entry))

    @property
    def service_class_code(self) -> ServiceClassCode:
        has_credits = any(e.transaction_code.is_credit for e in self.entries)
        has_debits = any(e.transaction_code.is_debit for e in self.entries)
        if has_credits and not has_debits:
            return ServiceClassCode.CREDITS_ONLY
        if has_debits and not has_credits:
            return ServiceClassCode.DEBITS_ONLY
        return ServiceClassCode.MIXED

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    @property
    def addenda_count(self) -> int:
        return sum(1 for e in self.entries if e.has_addenda)

    @property
    def entry_hash(self) -> int:
        return entry_hash(e.routing_number.value for e in self.entries)

    @property
    def total_debits(self) -> Money:
        return _total(e.amount for e in self.entries if e.transaction_code.is_debit)

    @property
    def total_credits(self) -> Money:
        return _total(e.amount for e in self.entries if e.transaction_code.is_credit)


@dataclass(frozen=True)
class AchFile:
    immediate_destination: RoutingNumber
    immediate_origin: RoutingNumber
    immediate_destination_name: str
    immediate_origin_name: str
    created_at: datetime
    batches: tuple[AchBatch, ...] = ()
    file_id_modifier: str = "A"
    reference_code: str | None = None

    def __post_init__(self) -> None:
        if len(self.file_id_modifier) != 1 or not self.file_id_modifier.isalnum():
            raise ValueError("File ID modifier must be a single letter or digit")

    def with_batch(self, batch: AchBatch) -> Self:
        return replace(self, batches=(*self.batches, batch))

    @property
    def batch_count(self) -> int:
        return len(self.batches)

    @property
    def entry_count(self) -> int:
        return sum(b.entry_count for b in self.batches)

    @property
    def addenda_count(self) -> int:
        return sum(b.addenda_count for b in self.batches)

    @property
    def entry_hash(self) -> int:
        return sum(b.entry_hash for b in self.batches) % ENTRY_HASH_MODULUS

    @property
    def total_debits(self) -> Money:
        return _total(b.total_debits for b in self.batches)

    @property
    def total_credits(self) -> Money:
        return _total(b.total_credits for b in self.batches)

    @property
    def record_count(self) -> int:
        """Records before block filler: header, control, and per batch header, control, entries, addenda."""
        return 2 + sum(2 + b.entry_count + b.addenda_count for b in self.batches)

    @property
    def block_count(self) -> int:
        return math.ceil(self.record_count / BLOCKING_FACTOR)


def _total(amounts) -> Money:
    total = Money.zero("USD")
    for amount in amounts:
        total = total + amount
    return total


def entry_hash(routing_numbers) -> int:
    return sum(int(value[:8]) for value in routing_numbers) % ENTRY_HASH_MODULUS


def trace_number(originating_dfi: str, sequence: int) -> str:
    """15-digit trace: the ODFI's 8-digit identifier and a 7-digit sequence."""
    return f"{originating_dfi[:8]:0>8}{sequence:07d}"


def format_field(value: object, length: int, numeric: bool = False) -> str:
    """
    Fit ``value`` into a fixed-width field.

    Numeric fields drop non-digits and are right-justified with zeros;
    alphanumeric fields are left-justified with spaces. Both truncate.
    """
    text = "" if value is None else str(value)
    if numeric:
        return _NON_DIGITS.sub("", text)[:length].rjust(length, "0")
    return text[:length].ljust(length, " ")


def _record(*parts: str) -> str:
    return "".join(parts)[:RECORD_LENGTH].ljust(RECORD_LENGTH)


# =============================================================================
# Formatter
# =============================================================================


class NachaFormatter:
    """Renders ``AchFile``s to NACHA text and reads them back."""

    PRIORITY_CODE = "01"
    RECORD_SIZE = "094"
    FORMAT_CODE = "1"
    ORIGINATOR_STATUS_CODE = "1"
    ADDENDA_TYPE_CODE = "05"

    def format_file(self, ach_file: AchFile) -> str:
        lines = [self._file_header(ach_file)]
        for index, batch in enumerate(ach_file.batches, start=1):
            batch_number = batch.batch_number or index
            odfi = batch.originating_dfi.dfi_identification
            lines.append(self._batch_header(batch, batch_number))
            for sequence, entry in enumerate(batch.entries, start=1):
                lines.append(self._entry_detail(entry, entry.trace_number or trace_number(odfi, sequence)))
                if entry.has_addenda:
                    lines.append(self._addenda(entry.addenda or "", sequence))
            lines.append(self._batch_control(batch, batch_number))
        lines.append(self._file_control(ach_file))

        remainder = len(lines) % BLOCKING_FACTOR
        if remainder:
            lines.extend([FILLER_RECORD] * (BLOCKING_FACTOR - remainder))

        logger.info(
            "nacha_file_formatted",
            extra={
                "batch_count": ach_file.batch_count,
                "entry_count": ach_file.entry_count,
                "block_count": ach_file.block_count,
            },
        )
        return "\n".join(lines)

    def _file_header(self, ach_file: AchFile) -> str:
        return _record(
            "1",
            self.PRIORITY_CODE,
            format_field(f" {ach_file.immediate_destination.value}", 10),
            format_field(f" {ach_file.immediate_origin.value}", 10),
            ach_file.created_at.strftime("%y%m%d"),
            ach_file.created_at.strftime("%H%M"),
            format_field(ach_file.file_id_modifier, 1),
            self.RECORD_SIZE,
            f"{BLOCKING_FACTOR:02d}",
            self.FORMAT_CODE,
            format_field(ach_file.immediate_destination_name, 23),
            format_field(ach_file.immediate_origin_name, 23),
            format_field(ach_file.reference_code, 8),
        )

    def _batch_header(self, batch: AchBatch, batch_number: int) -> str:
        descriptive = batch.company_descriptive_date.strftime("%y%m%d") if batch.company_descriptive_date else ""
        return _record(
            "5",
            batch.service_class_code.value,
            format_field(batch.company_name, 16),
            format_field(batch.company_discretionary_data, 20),
            format_field(batch.company_id, 10),
            batch.sec_code.value,
            format_field(batch.company_entry_description, 10),
            format_field(descriptive, 6),
            batch.effective_entry_date.strftime("%y%m%d"),
            "   ",
            self.ORIGINATOR_STATUS_CODE,
            format_field(batch.originating_dfi.dfi_identification, 8, numeric=True),
            format_field(batch_number, 7, numeric=True),
        )

    def _entry_detail(self, entry: AchEntry, trace: str) -> str:
        return _record(
            "6",
            entry.transaction_code.value,
            entry.routing_number.dfi_identification,
            entry.routing_number.check_digit,
            format_field(entry.account_number, 17),
            format_field(entry.amount_cents, 10, numeric=True),
            format_field(entry.individual_id, 15),
            format_field(entry.individual_name, 22),
            format_field(entry.discretionary_data, 2),
            entry.addenda_indicator,
            format_field(trace, 15, numeric=True),
        )

    def _addenda(self, information: str, entry_sequence: int) -> str:
        return _record(
            "7",
            self.ADDENDA_TYPE_CODE,
            format_field(information, 80),
            format_field(1, 4, numeric=True),
            format_field(entry_sequence, 7, numeric=True),
        )

    def _batch_control(self, batch: AchBatch, batch_number: int) -> str:
        return _record(
            "8",
            batch.service_class_code.value,
            format_field(batch.entry_count + batch.addenda_count, 6, numeric=True),
            format_field(batch.entry_hash, 10, numeric=True),
            format_field(batch.total_debits.minor_units, 12, numeric=True),
            format_field(batch.total_credits.minor_units, 12, numeric=True),
            format_field(batch.company_id, 10),
            " " * 19,
            " " * 6,
            format_field(batch.originating_dfi.dfi_identification, 8, numeric=True),
            format_field(batch_number, 7, numeric=True),
        )

    def _file_control(self, ach_file: AchFile) -> str:
        return _record(
            "9",
            format_field(ach_file.batch_count, 6, numeric=True),
            format_field(ach_file.block_count, 6, numeric=True),
            format_field(ach_file.entry_count + ach_file.addenda_count, 8, numeric=True),
            format_field(ach_file.entry_hash, 10, numeric=True),
            format_field(ach_file.total_debits.minor_units, 12, numeric=True),
            format_field(ach_file.total_credits.minor_units, 12, numeric=True),
            " " * 39,
        )

    # -- reading -----------------------------------------------------------

    def parse_file(self, content: str) -> AchFile:
        lines = [line for line in content.splitlines() if line and line != FILLER_RECORD]
        if not lines:
            raise NachaFormatError.empty()
        header = lines[0]
        if header[0] != "1":
            raise NachaFormatError.missing_file_header()

        origin = RoutingNumber(header[13:23].strip())
        batches: list[AchBatch] = []
        current: dict | None = None
        entries: list[AchEntry] = []

        for number, line in enumerate(lines[1:], start=2):
            record_type = line[0]
            if record_type == "5":
                if current is not None:
                    batches.append(self._finish_batch(current, entries, origin))
                current, entries = self._parse_batch_header(line), []
            elif record_type == "6":
                entries.append(self._parse_entry(line, number))
            elif record_type == "7":
                if entries:
                    entries[-1] = replace(entries[-1], addenda=line[3:83].rstrip())
            elif record_type == "8":
                if current is not None:
                    batches.append(self._finish_batch(current, entries, origin))
                    current, entries = None, []
            elif record_type == "9":
                break
        if current is not None:
            batches.append(self._finish_batch(current, entries, origin))

        ach_file = AchFile(
            immediate_destination=RoutingNumber(header[3:13].strip()),
            immediate_origin=origin,
            immediate_destination_name=header[40:63].rstrip(),
            immediate_origin_name=header[63:86].rstrip(),
            created_at=datetime.strptime(header[23:33], "%y%m%d%H%M").replace(tzinfo=UTC),
            batches=tuple(batches),
            file_id_modifier=header[33:34].strip() or "A",
            reference_code=header[86:94].strip() or None,
        )
        logger.info(
            "nacha_file_parsed",
            extra={"batch_count": ach_file.batch_count, "entry_count": ach_file.entry_count},
        )
        return ach_file

    @staticmethod
    def _parse_batch_header(line: str) -> dict:
        return {
            "company_name": line[4:20].rstrip(),
            "company_discretionary_data": line[20:40].rstrip() or None,
            "company_id": line[40:50].rstrip(),
            "sec_code": SecCode(line[50:53]),
            "company_entry_description": line[53:63].rstrip(),
            "company_descriptive_date": line[63:69].strip(),
            "effective_entry_date": line[69:75],
            "batch_number": int(line[87:94]),
        }

    @staticmethod
    def _parse_entry(line: str, number: int) -> AchEntry:
        try:
            code = TransactionCode(line[1:3])
        except ValueError:
            raise NachaFormatError.invalid_record(number, f"unknown transaction code {line[1:3]!r}") from None
        trace = line[79:94].strip()
        return AchEntry(
            transaction_code=code,
            routing_number=RoutingNumber(line[3:12]),
            account_number=line[12:29].rstrip(),
            amount=Money.from_minor_units(int(line[29:39]), "USD"),
            individual_id=line[39:54].rstrip(),
            individual_name=line[54:76].rstrip(),
            discretionary_data=line[76:78].rstrip() or None,
            trace_number=trace,
            entry_id=f"parsed-entry-{trace}",
        )

    @staticmethod
    def _finish_batch(header: dict, entries: list[AchEntry], origin: RoutingNumber) -> AchBatch:
        # Batch headers carry only the 8-digit ODFI id; the file origin supplies the full routing number.
        descriptive = header["company_descriptive_date"]
        return AchBatch(
            sec_code=header["sec_code"],
            company_name=header["company_name"],
            company_id=header["company_id"],
            company_entry_description=header["company_entry_description"],
            originating_dfi=origin,
            effective_entry_date=datetime.strptime(header["effective_entry_date"], "%y%m%d").date(),
            entries=tuple(entries),
            company_discretionary_data=header["company_discretionary_data"],
            company_descriptive_date=datetime.strptime(descriptive, "%y%m%d").date() if descriptive else None,
            batch_number=header["batch_number"],
        )

    def validate_format(self, content: str) -> list[str]:
        lines = [line for line in content.splitlines() if line]
        if not lines:
            return ["NACHA content is empty."]
        errors = []
        has_file_control = False
        for number, line in enumerate(lines, start=1):
            if len(line) != RECORD_LENGTH:
                errors.append(f"Record {number} is not {RECORD_LENGTH} characters.")
                continue
            if line[0] not in RECORD_TYPES:
                errors.append(f"Record {number} has invalid record type: {line[0]}")
            if line[0] == "9" and line != FILLER_RECORD:
                has_file_control = True
        if not has_file_control:
            errors.append("Missing file control record.")
        return errors
