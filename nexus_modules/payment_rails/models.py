"""
Payment Rail Models.

Routing numbers, bank accounts, rail transaction requests and the
capability profile of each payment rail.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Self
from zoneinfo import ZoneInfo

from nexus_kernel.values import Money
from nexus_modules.payment_rails.codes import SecCode
from nexus_modules.payment_rails.exceptions import InvalidRoutingNumberError

ABA_WEIGHTS = (3, 7, 1, 3, 7, 1, 3, 7, 1)


class RailType(str, Enum):
    ACH = "ach"
    WIRE = "wire"
    CHECK = "check"
    RTGS = "rtgs"
    VIRTUAL_CARD = "virtual_card"


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"


# =============================================================================
# Routing numbers
# =============================================================================


def routing_number_errors(value: str) -> list[str]:
    """Every ABA rule ``value`` breaks; empty when it is a usable routing number."""
    if len(value) != 9:
        return ["Routing number must be exactly 9 digits."]
    if not value.isdigit():
        return ["Routing number must contain only digits."]
    errors = []
    if sum(int(digit) * weight for digit, weight in zip(value, ABA_WEIGHTS)) % 10 != 0:
        errors.append("Routing number checksum is invalid.")
    if value[0] == "5":
        errors.append("Routing numbers starting with 5 are not valid ABA numbers.")
    return errors


@dataclass(frozen=True)
class RoutingNumber:
    """A nine-digit ABA routing transit number."""

    value: str

    def __post_init__(self) -> None:
        errors = routing_number_errors(self.value or "")
        if errors:
            raise InvalidRoutingNumberError(self.value, errors[0])

    @classmethod
    def try_parse(cls, value: str) -> Self | None:
        try:
            return cls(value.strip())
        except InvalidRoutingNumberError:
            return None

    @property
    def dfi_identification(self) -> str:
        """The first eight digits, as carried in NACHA records."""
        return self.value[:8]

    @property
    def check_digit(self) -> str:
        return self.value[8]

    @property
    def federal_reserve_district(self) -> int | None:
        """
        District 1-12 from the leading two digits.

        01-12 are primary institutions, 21-32 thrifts (minus 20) and
        61-72 electronic-only numbers (minus 60). Anything else, such as
        80 for travellers' cheques, has no district.
        """
        prefix = int(self.value[:2])
        for offset in (0, 20, 60):
            if 1 <= prefix - offset <= 12:
                return prefix - offset
        return None

    @property
    def masked(self) -> str:
        return f"*****{self.value[-4:]}"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# Accounts and requests
# =============================================================================


@dataclass(frozen=True)
class BankAccount:
    account_number: str
    routing_number: str | None = None
    swift_code: str | None = None
    iban: str | None = None
    account_type: AccountType = AccountType.CHECKING
    bank_name: str | None = None

    @property
    def masked_account_number(self) -> str:
        return f"****{self.account_number[-4:]}"


@dataclass(frozen=True)
class RailTransactionRequest:
    """Everything a rail needs to validate and originate one payment."""

    amount: Money
    beneficiary_name: str
    beneficiary_account: BankAccount | None = None
    routing_number: str | None = None
    beneficiary_country: str | None = None
    beneficiary_address: str | None = None
    purpose_of_payment: str | None = None
    memo: str | None = None
    is_international: bool = False
    sec_code: SecCode | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Capabilities
# =============================================================================


def _usd(amount: str) -> Money:
    return Money.of(amount, "USD")


@dataclass(frozen=True)
class RailCapabilities:
    """
    What a rail can carry and when.

    Amount limits are expressed in their own currency and are only
    applied to amounts in that currency.
    """

    rail_type: RailType
    supported_currencies: tuple[str, ...]
    minimum_amount: Money | None = None
    maximum_amount: Money | None = None
    supports_credit: bool = True
    supports_debit: bool = True
    supports_scheduled_payments: bool = True
    supports_recurring: bool = True
    supports_batch_processing: bool = True
    requires_prenotification: bool = False
    typical_settlement_days: int = 1
    cutoff_hour: int = 17
    cutoff_minute: int = 0
    cutoff_timezone: str = "America/New_York"
    required_fields: tuple[str, ...] = ()
    additional_capabilities: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0 <= self.cutoff_hour <= 23 or not 0 <= self.cutoff_minute <= 59:
            raise ValueError(f"Invalid cutoff time {self.cutoff_hour}:{self.cutoff_minute}")
        if self.typical_settlement_days < 0:
            raise ValueError("Settlement days cannot be negative")

    @classmethod
    def for_ach(cls) -> Self:
        return cls(
            RailType.ACH,
            ("USD",),
            minimum_amount=_usd("0.01"),
            maximum_amount=_usd("99999999.99"),
            typical_settlement_days=2,
            required_fields=("routing_number", "account_number", "account_type"),
            additional_capabilities={
                "supports_addenda": True,
                "max_addenda_records": 9999,
                "supports_same_day": True,
                "same_day_cutoff_hour": 14,
            },
        )

    @classmethod
    def for_domestic_wire(cls) -> Self:
        return cls(
            RailType.WIRE,
            ("USD",),
            minimum_amount=_usd("1.00"),
            supports_debit=False,
            supports_recurring=False,
            supports_batch_processing=False,
            typical_settlement_days=0,
            required_fields=("routing_number", "account_number", "beneficiary_name", "beneficiary_bank_name"),
            additional_capabilities={"is_real_time": True, "supports_intermediary_bank": True},
        )

    @classmethod
    def for_international_wire(cls) -> Self:
        return cls(
            RailType.WIRE,
            ("USD", "EUR", "GBP", "MYR", "SGD", "CAD", "AUD", "JPY", "CHF"),
            minimum_amount=_usd("1.00"),
            supports_debit=False,
            supports_recurring=False,
            supports_batch_processing=False,
            typical_settlement_days=2,
            cutoff_hour=15,
            required_fields=("swift_code", "beneficiary_name", "beneficiary_bank_name", "beneficiary_address"),
            additional_capabilities={
                "supports_iban": True,
                "supports_intermediary_bank": True,
                "requires_purpose_of_payment": True,
            },
        )

    @classmethod
    def for_check(cls) -> Self:
        return cls(
            RailType.CHECK,
            ("USD",),
            minimum_amount=_usd("0.01"),
            maximum_amount=_usd("9999999.99"),
            supports_debit=False,
            typical_settlement_days=5,
            cutoff_hour=23,
            cutoff_minute=59,
            required_fields=("payee_name", "payee_address"),
            additional_capabilities={"supports_positive_pay": True, "supports_check_printing": True},
        )

    @classmethod
    def for_rtgs(cls) -> Self:
        return cls(
            RailType.RTGS,
            ("USD",),
            minimum_amount=_usd("25000.00"),
            supports_debit=False,
            supports_scheduled_payments=False,
            supports_recurring=False,
            supports_batch_processing=False,
            typical_settlement_days=0,
            cutoff_hour=18,
            required_fields=("routing_number", "account_number", "beneficiary_name"),
            additional_capabilities={"is_real_time": True, "is_irrevocable": True},
        )

    @classmethod
    def for_virtual_card(cls) -> Self:
        return cls(
            RailType.VIRTUAL_CARD,
            ("USD", "EUR", "GBP", "CAD"),
            minimum_amount=_usd("0.01"),
            maximum_amount=_usd("250000.00"),
            supports_debit=False,
            typical_settlement_days=2,
            cutoff_hour=23,
            cutoff_minute=59,
            required_fields=("vendor_email", "vendor_name"),
            additional_capabilities={
                "supports_single_use": True,
                "supports_multi_use": True,
                "supports_merchant_lock": True,
                "max_card_validity_days": 365,
            },
        )

    def supports_currency(self, currency_code: str) -> bool:
        return currency_code.upper() in self.supported_currencies

    def is_amount_within_limits(self, amount: Money) -> bool:
        minimum, maximum = self.minimum_amount, self.maximum_amount
        if minimum is not None and minimum.currency == amount.currency and amount < minimum:
            return False
        if maximum is not None and maximum.currency == amount.currency and amount > maximum:
            return False
        return True

    def is_before_cutoff(self, at: datetime) -> bool:
        """Whether ``at`` (timezone aware) falls before today's cutoff in the rail's timezone."""
        if at.tzinfo is None:
            raise ValueError("Cutoff checks require a timezone-aware datetime")
        local = at.astimezone(ZoneInfo(self.cutoff_timezone))
        cutoff = local.replace(hour=self.cutoff_hour, minute=self.cutoff_minute, second=0, microsecond=0)
        return local < cutoff

    @property
    def cutoff_time_formatted(self) -> str:
        return f"{self.cutoff_hour:02d}:{self.cutoff_minute:02d} {self.cutoff_timezone}"

    def has_capability(self, capability: str) -> bool:
        return self.additional_capabilities.get(capability) is True

    def get_capability(self, capability: str, default: Any = None) -> Any:
        return self.additional_capabilities.get(capability, default)

    @property
    def is_real_time(self) -> bool:
        return self.typical_settlement_days == 0 or self.has_capability("is_real_time")

    def utilization(self, amount: Money) -> Decimal | None:
        """``amount`` as a fraction of the maximum, when one applies."""
        if self.maximum_amount is None or self.maximum_amount.currency != amount.currency:
            return None
        return amount.amount / self.maximum_amount.amount


@dataclass(frozen=True)
class PaymentRail:
    """A rail as offered by the host: its capabilities and whether it is open for business."""

    capabilities: RailCapabilities
    available: bool = True

    @property
    def rail_type(self) -> RailType:
        return self.capabilities.rail_type

    def is_available(self) -> bool:
        return self.available
