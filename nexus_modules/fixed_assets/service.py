"""
Depreciation Service (``nexus_modules.fixed_assets.service``).

Responsibility
--------------
Answers depreciation questions for assets held by the host application:
the charge for a given month, the full schedule, and a forward forecast
from the current month.

Architecture position
---------------------
**Modules layer** -- thin orchestration over ``DepreciationScheduleGenerator``.
Assets and units-produced figures come from an injected ``AssetRepository``.

Failure modes
-------------
* Unknown asset  -> ``DepreciationError.asset_not_found``.
* Malformed period id  -> ``ValueError``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from decimal import Decimal
from typing import Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.fixed_assets.config import DepreciationConfig
from nexus_modules.fixed_assets.exceptions import DepreciationError
from nexus_modules.fixed_assets.generator import DepreciationScheduleGenerator
from nexus_modules.fixed_assets.models import (
    DepreciationAmount,
    DepreciationMethod,
    DepreciationPeriod,
    DepreciationSchedule,
    FixedAsset,
    period_id_for,
)

logger = get_logger("modules.fixed_assets.service")

_PERIOD_ID = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class AssetRepository(Protocol):
    """Read access to fixed assets; implemented by the host application."""

    def get_asset(self, asset_id: str) -> FixedAsset | None: ...

    def units_produced(self, asset_id: str) -> Mapping[str, Decimal]:
        """Units produced per ``YYYY-MM`` period, for units-of-production assets."""
        ...


class DepreciationService:
    """
    Depreciation queries over assets from an ``AssetRepository``.

    Schedules are regenerated on each call; nothing is cached between calls.
    """

    def __init__(
        self,
        repository: AssetRepository,
        clock: Clock | None = None,
        config: DepreciationConfig | None = None,
        generator: DepreciationScheduleGenerator | None = None,
    ):
        self._repository = repository
        self._clock = clock or SystemClock()
        self._config = config or DepreciationConfig.with_defaults()
        self._generator = generator or DepreciationScheduleGenerator(self._config)

    def generate_schedule(
        self,
        asset_id: str,
        method: DepreciationMethod | None = None,
    ) -> DepreciationSchedule:
        asset = self._load(asset_id)
        method = method or asset.method
        units = self._repository.units_produced(asset_id) if method.requires_units else None
        return self._generator.generate(asset, method, units_by_period=units)

    def calculate_for_period(self, asset_id: str, period_id: str) -> DepreciationAmount:
        """
        Depreciation charged to ``asset_id`` in ``period_id``.

        Months before acquisition or after the asset is fully depreciated
        yield a zero amount carrying the book value at that point.
        """
        if not _PERIOD_ID.match(period_id):
            raise ValueError(f"Period id must be YYYY-MM, got '{period_id}'")

        schedule = self.generate_schedule(asset_id)
        period = schedule.period(period_id)
        if period is not None:
            amount = DepreciationAmount(
                amount=period.depreciation,
                method=schedule.method,
                period_id=period_id,
                accumulated=period.accumulated,
                book_value_after=period.closing_book_value,
            )
        elif schedule.first_period_id is None or period_id < schedule.first_period_id:
            amount = DepreciationAmount.zero(
                schedule.method,
                period_id,
                Money.zero(schedule.cost.currency),
                schedule.cost,
            )
        else:
            amount = DepreciationAmount.zero(
                schedule.method,
                period_id,
                schedule.total_depreciation,
                schedule.final_book_value,
            )

        logger.info(
            "depreciation_calculated",
            extra={
                "asset_id": asset_id,
                "period_id": period_id,
                "method": schedule.method.value,
                "amount": str(amount.amount.amount),
                "book_value_after": str(amount.book_value_after.amount),
            },
        )
        return amount

    def forecast(self, asset_id: str, months: int) -> list[DepreciationPeriod]:
        """The next ``months`` scheduled periods, starting with the current month."""
        if months <= 0:
            raise ValueError("Forecast horizon must be at least one month")
        schedule = self.generate_schedule(asset_id)
        current = period_id_for(self._clock.today())
        upcoming = [p for p in schedule.periods if p.period_id >= current][:months]
        logger.debug(
            "depreciation_forecast_built",
            extra={
                "asset_id": asset_id,
                "from_period": current,
                "requested": months,
                "returned": len(upcoming),
            },
        )
        return upcoming

    def _load(self, asset_id: str) -> FixedAsset:
        asset = self._repository.get_asset(asset_id)
        if asset is None:
            raise DepreciationError.asset_not_found(asset_id)
        return asset
