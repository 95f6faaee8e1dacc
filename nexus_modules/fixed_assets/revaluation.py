"""
Asset Revaluation (``nexus_modules.fixed_assets.revaluation``).

Responsibility
--------------
Revalues assets to fair value under the revaluation model: records the
increment or decrement against the current book value, tracks the
revaluation reserve, reverses and posts revaluations, and re-projects
depreciation over the remaining life.

Architecture position
---------------------
**Modules layer** -- asset data comes from the host's
``RevaluationAssetRepository``; revaluation records are kept in the
host's ``RevaluationRepository``. Journal entries are created by the
host; ``post_to_gl`` only records the resulting entry id.

Invariants enforced
-------------------
* Accumulated depreciation is eliminated on revaluation: the new book
  value has cost equal to the revalued amount and nothing accumulated.
* Increments credit the reserve; decrements draw the reserve down first
  and expense only what the reserve cannot absorb.
* A revaluation is reversed at most once, and only pending revaluations
  can be posted.

Failure modes
-------------
* ``DepreciationError.asset_not_found`` -- unknown asset.
* ``RevaluationError`` -- inactive asset, invalid values, no change,
  unknown revaluation or wrong status.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.ids import generate_id
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.fixed_assets.config import DepreciationConfig
from nexus_modules.fixed_assets.exceptions import DepreciationError, RevaluationError
from nexus_modules.fixed_assets.generator import DepreciationScheduleGenerator
from nexus_modules.fixed_assets.models import DepreciationSchedule, FixedAsset
from nexus_modules.fixed_assets.service import AssetRepository

logger = get_logger("modules.fixed_assets.revaluation")

SIGNIFICANT_CHANGE = Decimal("0.5")
WARNING_PREFIX = "Warning: "


class RevaluationType(str, Enum):
    INCREMENT = "increment"
    DECREMENT = "decrement"

    def opposite(self) -> RevaluationType:
        if self is RevaluationType.INCREMENT:
            return RevaluationType.DECREMENT
        return RevaluationType.INCREMENT


class RevaluationStatus(str, Enum):
    PENDING = "pending"
    POSTED = "posted"
    REVERSED = "reversed"


@dataclass(frozen=True)
class BookValue:
    """Cost, salvage and accumulated depreciation of an asset at a point in time."""

    cost: Money
    salvage_value: Money
    accumulated: Money

    @property
    def net_book_value(self) -> Money:
        return self.cost - self.accumulated

    @property
    def depreciable_base(self) -> Money:
        return self.cost - self.salvage_value

    @property
    def remaining_depreciable(self) -> Money:
        return self.net_book_value - self.salvage_value

    def to_dict(self) -> dict[str, Any]:
        return {
            "cost": str(self.cost.amount),
            "salvage_value": str(self.salvage_value.amount),
            "accumulated": str(self.accumulated.amount),
            "net_book_value": str(self.net_book_value.amount),
        }


@dataclass(frozen=True)
class RevaluationAmount:
    """
    Change in carrying amount caused by a revaluation.

    ``depreciation_impact`` is the change in what is still to be
    depreciated over the remaining life.
    """

    previous_value: Money
    new_value: Money
    depreciation_impact: Money

    @classmethod
    def between(cls, previous: BookValue, new: BookValue) -> RevaluationAmount:
        return cls(
            previous_value=previous.net_book_value,
            new_value=new.net_book_value,
            depreciation_impact=new.remaining_depreciable - previous.remaining_depreciable,
        )

    @property
    def amount(self) -> Money:
        return self.new_value - self.previous_value

    @property
    def is_increment(self) -> bool:
        return self.amount.is_positive

    @property
    def is_decrement(self) -> bool:
        return self.amount.is_negative

    @property
    def percentage_change(self) -> Decimal:
        """Change as a fraction of the previous value, e.g. ``0.10`` for ten percent."""
        if self.previous_value.is_zero:
            return Decimal("1") if self.is_increment else Decimal("0")
        return self.amount.amount / self.previous_value.amount

    @property
    def reserve_impact(self) -> Money:
        """Credit to the revaluation reserve; decrements never credit it."""
        if self.is_increment:
            return self.amount
        return Money.zero(self.amount.currency)

    def expense_impact(self, available_reserve: Money) -> tuple[Money, Money]:
        """``(expense, offset_from_reserve)`` for a decrement against ``available_reserve``."""
        zero = Money.zero(self.amount.currency)
        if not self.is_decrement:
            return zero, zero
        loss = abs(self.amount)
        offset = min(loss, max(available_reserve, zero))
        return loss - offset, offset

    def negate(self) -> RevaluationAmount:
        return RevaluationAmount(
            previous_value=self.new_value,
            new_value=self.previous_value,
            depreciation_impact=-self.depreciation_impact,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": str(self.amount.amount),
            "currency": self.amount.currency.code,
            "previous_value": str(self.previous_value.amount),
            "new_value": str(self.new_value.amount),
            "depreciation_impact": str(self.depreciation_impact.amount),
        }


@dataclass(frozen=True)
class AssetRevaluation:
    """One revaluation of one asset; reversals point at what they reverse."""

    revaluation_id: str
    asset_id: str
    revaluation_date: date
    revaluation_type: RevaluationType
    previous_book_value: BookValue
    new_book_value: BookValue
    amount: RevaluationAmount
    remaining_life_months: int
    reason: str
    gl_account_id: str | None = None
    status: RevaluationStatus = RevaluationStatus.PENDING
    journal_entry_id: str | None = None
    posted_at: datetime | None = None
    created_at: datetime | None = None
    reverses_revaluation_id: str | None = None

    @property
    def is_reversal(self) -> bool:
        return self.reverses_revaluation_id is not None

    def with_posting(self, journal_entry_id: str, posted_at: datetime) -> AssetRevaluation:
        if self.status is not RevaluationStatus.PENDING:
            raise RevaluationError.invalid_status(self.revaluation_id, self.status.value, "post")
        return replace(
            self,
            status=RevaluationStatus.POSTED,
            journal_entry_id=journal_entry_id,
            posted_at=posted_at,
        )

    def mark_reversed(self) -> AssetRevaluation:
        if self.status is RevaluationStatus.REVERSED:
            raise RevaluationError.invalid_status(self.revaluation_id, self.status.value, "reverse")
        return replace(self, status=RevaluationStatus.REVERSED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "revaluation_id": self.revaluation_id,
            "asset_id": self.asset_id,
            "revaluation_date": self.revaluation_date.isoformat(),
            "revaluation_type": self.revaluation_type.value,
            "previous_book_value": self.previous_book_value.to_dict(),
            "new_book_value": self.new_book_value.to_dict(),
            "amount": self.amount.to_dict(),
            "remaining_life_months": self.remaining_life_months,
            "reason": self.reason,
            "gl_account_id": self.gl_account_id,
            "status": self.status.value,
            "journal_entry_id": self.journal_entry_id,
            "reverses_revaluation_id": self.reverses_revaluation_id,
        }


@dataclass(frozen=True)
class RevaluationImpact:
    """What a proposed revaluation would do, without recording it."""

    amount: RevaluationAmount
    remaining_months: int
    previous_annual_depreciation: Money
    new_annual_depreciation: Money

    @property
    def revaluation_type(self) -> RevaluationType:
        return RevaluationType.INCREMENT if self.amount.is_increment else RevaluationType.DECREMENT

    @property
    def annual_depreciation_change(self) -> Money:
        return self.new_annual_depreciation - self.previous_annual_depreciation

    @property
    def reserve_impact(self) -> Money:
        return self.amount.reserve_impact


class RevaluationAssetRepository(AssetRepository, Protocol):
    """Asset data needed to revalue; implemented by the host application."""

    def accumulated_depreciation(self, asset_id: str) -> Money: ...

    def is_active(self, asset_id: str) -> bool: ...


class RevaluationRepository(Protocol):
    def save(self, revaluation: AssetRevaluation) -> None: ...

    def get(self, revaluation_id: str) -> AssetRevaluation | None: ...

    def for_asset(self, asset_id: str) -> Sequence[AssetRevaluation]: ...


class AssetRevaluationService:
    """
    Revaluations over host-held assets.

    Usage::

        service = AssetRevaluationService(assets, revaluations)
        revaluation, schedule = service.process_full_revaluation(
            "FA-1", Money.of("15000", "USD"), Money.of("0", "USD"),
            "Independent appraisal", "3200-REVALUATION-RESERVE",
        )
        service.post_to_gl(revaluation.revaluation_id, "JE-1001")
    """

    def __init__(
        self,
        assets: RevaluationAssetRepository,
        revaluations: RevaluationRepository,
        clock: Clock | None = None,
        config: DepreciationConfig | None = None,
        generator: DepreciationScheduleGenerator | None = None,
    ):
        self._assets = assets
        self._revaluations = revaluations
        self._clock = clock or SystemClock()
        self._generator = generator or DepreciationScheduleGenerator(config)

    # -- queries -----------------------------------------------------------

    def current_book_value(self, asset_id: str) -> BookValue:
        return self._book_value(self._load(asset_id))

    def can_revalue(self, asset_id: str) -> bool:
        return self._assets.get_asset(asset_id) is not None and self._assets.is_active(asset_id)

    def validate(self, asset_id: str, new_value: Money, new_salvage: Money) -> list[str]:
        """
        Problems with revaluing ``asset_id`` to ``new_value``.

        Entries starting with ``"Warning: "`` flag a change of more than
        half the current book value; they do not block ``revalue``.
        """
        asset = self._assets.get_asset(asset_id)
        if asset is None:
            return ["Asset not found"]
        errors = self._value_errors(asset, new_value, new_salvage)
        if errors:
            return errors
        return self._warnings(self._book_value(asset), new_value)

    def calculate_impact(self, asset_id: str, proposed_value: Money) -> RevaluationImpact:
        asset = self._load(asset_id)
        previous = self._book_value(asset)
        proposed = BookValue(proposed_value, asset.salvage_value, Money.zero(asset.currency))
        remaining = self._remaining_months(asset, previous)
        new_base = max(proposed.depreciable_base, Money.zero(asset.currency))
        return RevaluationImpact(
            amount=RevaluationAmount.between(previous, proposed),
            remaining_months=remaining,
            previous_annual_depreciation=(
                previous.depreciable_base / asset.useful_life_months * 12
            ).round(),
            new_annual_depreciation=(new_base / remaining * 12).round(),
        )

    def history(self, asset_id: str) -> list[AssetRevaluation]:
        """Revaluations of ``asset_id``, oldest first."""
        return sorted(
            self._revaluations.for_asset(asset_id),
            key=lambda r: (r.revaluation_date, r.created_at.timestamp() if r.created_at else 0.0),
        )

    def reserve_balance(self, asset_id: str) -> Money:
        """
        Revaluation reserve held for ``asset_id``.

        Reversed revaluations and the reversals themselves are left out;
        each decrement uses up reserve built by earlier increments.
        """
        balance = Money.zero(self._load(asset_id).currency)
        for revaluation in self.history(asset_id):
            if revaluation.status is RevaluationStatus.REVERSED or revaluation.is_reversal:
                continue
            _, offset = revaluation.amount.expense_impact(balance)
            balance = balance + revaluation.amount.reserve_impact - offset
        return balance

    # -- commands ----------------------------------------------------------

    def revalue(
        self,
        asset_id: str,
        new_value: Money,
        new_salvage: Money,
        reason: str,
        *,
        revaluation_date: date | None = None,
        gl_account_id: str | None = None,
    ) -> AssetRevaluation:
        """Record a revaluation of ``asset_id`` to ``new_value``; increment or decrement follows the sign."""
        asset = self._load(asset_id)
        if not self._assets.is_active(asset_id):
            raise RevaluationError.asset_not_revaluable(asset_id)
        errors = self._value_errors(asset, new_value, new_salvage)
        if errors:
            raise RevaluationError.invalid_values(asset_id, errors)

        previous = self._book_value(asset)
        new = BookValue(new_value, new_salvage, Money.zero(asset.currency))
        amount = RevaluationAmount.between(previous, new)
        if amount.amount.is_zero:
            raise RevaluationError.no_change(asset_id)

        revaluation = AssetRevaluation(
            revaluation_id=generate_id("REV"),
            asset_id=asset_id,
            revaluation_date=revaluation_date or self._clock.today(),
            revaluation_type=(
                RevaluationType.INCREMENT if amount.is_increment else RevaluationType.DECREMENT
            ),
            previous_book_value=previous,
            new_book_value=new,
            amount=amount,
            remaining_life_months=self._remaining_months(asset, previous),
            reason=reason,
            gl_account_id=gl_account_id,
            created_at=self._clock.now(),
        )
        self._revaluations.save(revaluation)
        logger.info(
            "asset_revalued",
            extra={
                "asset_id": asset_id,
                "revaluation_id": revaluation.revaluation_id,
                "revaluation_type": revaluation.revaluation_type.value,
                "amount": str(amount.amount.amount),
                "previous_net_book_value": str(previous.net_book_value.amount),
                "new_net_book_value": str(new.net_book_value.amount),
            },
        )
        return revaluation

    def reverse(self, revaluation_id: str, reason: str) -> AssetRevaluation:
        """Record the mirror image of ``revaluation_id`` and mark the original reversed."""
        original = self._get(revaluation_id)
        if original.is_reversal:
            raise RevaluationError.invalid_status(revaluation_id, "reversal", "reverse")
        reversed_original = original.mark_reversed()

        reversal = AssetRevaluation(
            revaluation_id=generate_id("REV"),
            asset_id=original.asset_id,
            revaluation_date=self._clock.today(),
            revaluation_type=original.revaluation_type.opposite(),
            previous_book_value=original.new_book_value,
            new_book_value=original.previous_book_value,
            amount=original.amount.negate(),
            remaining_life_months=original.remaining_life_months,
            reason=f"Reversal: {reason}",
            gl_account_id=original.gl_account_id,
            created_at=self._clock.now(),
            reverses_revaluation_id=revaluation_id,
        )
        self._revaluations.save(reversed_original)
        self._revaluations.save(reversal)
        logger.warning(
            "asset_revaluation_reversed",
            extra={
                "asset_id": original.asset_id,
                "revaluation_id": revaluation_id,
                "reversal_id": reversal.revaluation_id,
                "amount": str(reversal.amount.amount.amount),
            },
        )
        return reversal

    def post_to_gl(self, revaluation_id: str, journal_entry_id: str) -> AssetRevaluation:
        """Mark a pending revaluation as posted under the host's journal entry."""
        posted = self._get(revaluation_id).with_posting(journal_entry_id, self._clock.now())
        self._revaluations.save(posted)
        logger.info(
            "asset_revaluation_posted",
            extra={
                "asset_id": posted.asset_id,
                "revaluation_id": revaluation_id,
                "journal_entry_id": journal_entry_id,
            },
        )
        return posted

    def revalued_schedule(self, revaluation_id: str) -> DepreciationSchedule:
        """Depreciation from the revaluation date over the remaining life."""
        revaluation = self._get(revaluation_id)
        asset = self._load(revaluation.asset_id)
        if not asset.method.supports_recalculation:
            raise DepreciationError.unsupported_method(asset.method.value, "revaluation")
        revalued = replace(
            asset,
            cost=revaluation.new_book_value.cost,
            salvage_value=revaluation.new_book_value.salvage_value,
            useful_life_months=revaluation.remaining_life_months,
            acquisition_date=revaluation.revaluation_date,
        )
        return self._generator.generate(revalued, schedule_id=f"DEP-{asset.asset_id}-{revaluation_id}")

    def process_full_revaluation(
        self,
        asset_id: str,
        fair_value: Money,
        salvage_value: Money,
        reason: str,
        reserve_account_id: str,
    ) -> tuple[AssetRevaluation, DepreciationSchedule]:
        """Revalue to ``fair_value`` and re-project depreciation from there."""
        asset = self._load(asset_id)
        if not asset.method.supports_recalculation:
            raise DepreciationError.unsupported_method(asset.method.value, "revaluation")
        revaluation = self.revalue(
            asset_id, fair_value, salvage_value, reason, gl_account_id=reserve_account_id
        )
        return revaluation, self.revalued_schedule(revaluation.revaluation_id)

    # -- internals ---------------------------------------------------------

    def _load(self, asset_id: str) -> FixedAsset:
        asset = self._assets.get_asset(asset_id)
        if asset is None:
            raise DepreciationError.asset_not_found(asset_id)
        return asset

    def _get(self, revaluation_id: str) -> AssetRevaluation:
        revaluation = self._revaluations.get(revaluation_id)
        if revaluation is None:
            raise RevaluationError.not_found(revaluation_id)
        return revaluation

    def _book_value(self, asset: FixedAsset) -> BookValue:
        return BookValue(
            asset.cost,
            asset.salvage_value,
            self._assets.accumulated_depreciation(asset.asset_id),
        )

    @staticmethod
    def _value_errors(asset: FixedAsset, new_value: Money, new_salvage: Money) -> list[str]:
        if new_value.currency != asset.cost.currency or new_salvage.currency != asset.cost.currency:
            return [f"Revalued amounts must be in {asset.currency}"]
        errors = []
        if not new_value.is_positive:
            errors.append("Revalued amount must be positive")
        if new_salvage.is_negative:
            errors.append("Salvage value cannot be negative")
        if new_salvage >= new_value:
            errors.append("Salvage value must be less than the revalued amount")
        return errors

    @staticmethod
    def _warnings(current: BookValue, new_value: Money) -> list[str]:
        net = current.net_book_value
        if not net.is_positive:
            return []
        change = abs(new_value - net).amount / net.amount
        if change <= SIGNIFICANT_CHANGE:
            return []
        return [f"{WARNING_PREFIX}Revaluation represents a {change * 100:.1f}% change from current book value"]

    @staticmethod
    def _remaining_months(asset: FixedAsset, book: BookValue) -> int:
        """Life left in proportion to the depreciable base not yet used, at least one month."""
        base = book.depreciable_base
        if not base.is_positive:
            return 1
        used = book.accumulated.amount / base.amount
        return max(1, math.ceil(asset.useful_life_months * (1 - used)))
