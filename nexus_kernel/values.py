"""
Values -- Immutable, self-validating monetary value objects.

Responsibility:
    Provides Currency and Money, the shared primitives every domain package
    uses for amounts. Money replaces raw Decimal wherever a monetary figure
    crosses a package boundary.

Architecture position:
    Kernel -- pure functional core, zero I/O. Imported by every domain
    package. No outward dependencies except nexus_kernel.currency.

Invariants enforced:
    - Amount and currency are never separated.
    - Amounts are Decimal; float input is rejected at the factory.
    - Currency codes are validated against ISO 4217 at construction.
    - Arithmetic and comparison never mix currencies silently.
    - ``allocate`` preserves the total to the minor unit.

Failure modes:
    - ValueError on construction with invalid amounts or currencies.
    - CurrencyMismatchError (a ValueError) when operands differ in currency.
    - ZeroDivisionError when dividing by zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Sequence

from nexus_kernel.currency import CurrencyRegistry
from nexus_kernel.exceptions import CurrencyMismatchError


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Contract:
        Wraps a three-letter ISO 4217 code, normalized to uppercase.
        Invalid codes are rejected immediately.
    """

    code: str

    def __post_init__(self) -> None:
        normalized = self.code.upper().strip() if isinstance(self.code, str) else ""
        if not CurrencyRegistry.is_valid(normalized):
            raise ValueError(f"Invalid ISO 4217 currency code: {self.code}")
        object.__setattr__(self, "code", normalized)

    @property
    def decimal_places(self) -> int:
        return CurrencyRegistry.get_decimal_places(self.code)

    @property
    def symbol(self) -> str:
        return CurrencyRegistry.get_symbol(self.code) or self.code

    @property
    def name(self) -> str:
        info = CurrencyRegistry.get_info(self.code)
        return info.name if info else self.code

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


def _to_decimal(value: Decimal | str | int, what: str) -> Decimal:
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"{what} must be Decimal, str or int, got {type(value).__name__}")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid {what}: {value!r}") from e


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs a Decimal amount with its Currency. This is the canonical
        representation of monetary values across all packages.

    Guarantees:
        - Immutable and hashable
        - Arithmetic operations enforce the same-currency constraint
        - No auto-rounding; callers call ``round()`` explicitly

    Non-goals:
        - Does NOT look up exchange rates (see ExchangeRateSnapshot in
          nexus_modules.payment)
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", _to_decimal(self.amount, "amount"))
        if not self.amount.is_finite():
            raise ValueError(f"Invalid amount: {self.amount}")

        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    # -- factories ---------------------------------------------------------

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        """
        Factory method for creating Money.

        Preconditions:
            - amount is a Decimal, str or int (float is rejected)
            - currency is a valid ISO 4217 code or Currency object

        Raises:
            ValueError: If amount cannot be converted or currency is invalid.
        """
        return cls(amount=_to_decimal(amount, "amount"), currency=_as_currency(currency))

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        return cls(amount=Decimal("0"), currency=_as_currency(currency))

    @classmethod
    def from_minor_units(cls, units: int, currency: str | Currency) -> Money:
        """Build from an integer count of minor units (cents, sen)."""
        cur = _as_currency(currency)
        return cls(amount=Decimal(int(units)).scaleb(-cur.decimal_places), currency=cur)

    # -- predicates --------------------------------------------------------

    @property
    def is_zero(self) -> bool:
        return self.amount == Decimal("0")

    @property
    def is_positive(self) -> bool:
        return self.amount > Decimal("0")

    @property
    def is_negative(self) -> bool:
        return self.amount < Decimal("0")

    @property
    def minor_units(self) -> int:
        """Amount as an integer count of minor units, rounded half up."""
        rounded = self.round().amount
        return int(rounded.scaleb(self.currency.decimal_places))

    # -- arithmetic --------------------------------------------------------

    def round(self, rounding: str = ROUND_HALF_UP) -> Money:
        """Round to the currency's ISO 4217 decimal places."""
        places = self.currency.decimal_places
        quantum = Decimal(1).scaleb(-places)
        return Money(amount=self.amount.quantize(quantum, rounding=rounding), currency=self.currency)

    def _check_currency(self, other: Money, operation: str) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency.code, other.currency.code, operation)

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "add")
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "subtract")
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __neg__(self) -> Money:
        return Money(amount=-self.amount, currency=self.currency)

    def __abs__(self) -> Money:
        return Money(amount=abs(self.amount), currency=self.currency)

    def negate(self) -> Money:
        return -self

    def abs(self) -> Money:
        return abs(self)

    def __mul__(self, factor: Decimal | int | str) -> Money:
        if isinstance(factor, (int, str)) and not isinstance(factor, bool):
            factor = Decimal(str(factor))
        if not isinstance(factor, Decimal):
            return NotImplemented
        return Money(amount=self.amount * factor, currency=self.currency)

    def __rmul__(self, factor: Decimal | int | str) -> Money:
        return self.__mul__(factor)

    def __truediv__(self, divisor: Decimal | int | str) -> Money:
        if isinstance(divisor, (int, str)) and not isinstance(divisor, bool):
            divisor = Decimal(str(divisor))
        if not isinstance(divisor, Decimal):
            return NotImplemented
        if divisor == 0:
            raise ZeroDivisionError("Cannot divide Money by zero")
        return Money(amount=self.amount / divisor, currency=self.currency)

    def allocate(self, ratios: Sequence[int | Decimal]) -> list[Money]:
        """
        Split into shares proportional to ``ratios`` without losing a minor unit.

        Each share receives the floor of its proportional minor units; the
        leftover units go one at a time to the first shares.

        Raises:
            ValueError: If ratios is empty, contains a negative value, or sums to zero.
        """
        if not ratios:
            raise ValueError("Cannot allocate to an empty list of ratios")
        weights = [_to_decimal(r, "ratio") for r in ratios]
        if any(w < 0 for w in weights):
            raise ValueError("Allocation ratios cannot be negative")
        total_weight = sum(weights, Decimal("0"))
        if total_weight == 0:
            raise ValueError("Allocation ratios must sum to more than zero")

        total_units = self.minor_units
        sign = -1 if total_units < 0 else 1
        remaining_units = abs(total_units)

        shares = [
            int((Decimal(remaining_units) * w / total_weight).to_integral_value(rounding=ROUND_FLOOR))
            for w in weights
        ]
        leftover = remaining_units - sum(shares)
        for i in range(leftover):
            shares[i % len(shares)] += 1

        return [Money.from_minor_units(sign * units, self.currency) for units in shares]

    def convert(self, rate: Decimal | str, target_currency: str | Currency) -> Money:
        """Convert at ``rate`` (target units per source unit), rounded to the target."""
        rate_value = _to_decimal(rate, "rate")
        if rate_value <= 0:
            raise ValueError("Exchange rate must be a positive number")
        return Money(amount=self.amount * rate_value, currency=_as_currency(target_currency)).round()

    # -- comparisons -------------------------------------------------------

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    # -- presentation ------------------------------------------------------

    def format(self) -> str:
        """Plain ``CODE 1,234.56`` rendering; locale-aware output lives in localization."""
        places = self.currency.decimal_places
        return f"{self.currency.code} {self.round().amount:,.{places}f}"

    def to_dict(self) -> dict[str, Any]:
        return {"amount": str(self.amount), "currency": self.currency.code}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Money:
        return cls.of(data["amount"], data["currency"])

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"


def _as_currency(currency: str | Currency) -> Currency:
    return Currency(currency) if isinstance(currency, str) else currency
