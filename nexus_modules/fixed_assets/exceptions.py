"""Fixed-asset depreciation exceptions."""

from decimal import Decimal
from typing import Any

from nexus_kernel.exceptions import NexusError


class DepreciationError(NexusError):
    """Depreciation could not be calculated or adjusted."""

    code: str = "DEPRECIATION_ERROR"

    def __init__(self, message: str, *, asset_id: str | None = None, **context: Any):
        self.asset_id = asset_id
        super().__init__(message, **context)

    @classmethod
    def invalid_cost(cls, asset_id: str, cost: Decimal) -> "DepreciationError":
        return cls(f"Asset {asset_id} has invalid cost {cost}; cost must be positive", asset_id=asset_id, cost=cost)

    @classmethod
    def invalid_useful_life(cls, asset_id: str, months: int, minimum: int = 1) -> "DepreciationError":
        return cls(
            f"Asset {asset_id} has invalid useful life of {months} months (minimum {minimum})",
            asset_id=asset_id,
            months=months,
            minimum=minimum,
        )

    @classmethod
    def salvage_exceeds_cost(cls, asset_id: str, salvage: Decimal, cost: Decimal) -> "DepreciationError":
        return cls(
            f"Asset {asset_id} salvage value {salvage} must be less than cost {cost}",
            asset_id=asset_id,
            salvage=salvage,
            cost=cost,
        )

    @classmethod
    def unsupported_method(cls, method: str, operation: str | None = None) -> "DepreciationError":
        message = f"Depreciation method '{method}' is not supported"
        if operation:
            message = f"{message} for {operation}"
        return cls(message, method=method, operation=operation)

    @classmethod
    def units_required(cls, asset_id: str) -> "DepreciationError":
        return cls(
            f"Asset {asset_id} uses units of production but has no total unit estimate",
            asset_id=asset_id,
        )

    @classmethod
    def asset_not_found(cls, asset_id: str) -> "DepreciationError":
        return cls(f"Asset not found: {asset_id}", asset_id=asset_id)

    @classmethod
    def period_not_found(cls, schedule_id: str, period_id: str) -> "DepreciationError":
        return cls(
            f"Period {period_id} is not part of schedule {schedule_id}",
            schedule_id=schedule_id,
            period_id=period_id,
        )

    @classmethod
    def invalid_adjustment(cls, asset_id: str, errors: list[str]) -> "DepreciationError":
        return cls(
            f"Invalid depreciation adjustment for asset {asset_id}: {'; '.join(errors)}",
            asset_id=asset_id,
            errors=list(errors),
        )


class RevaluationError(DepreciationError):
    """An asset revaluation was rejected or cannot be changed."""

    code: str = "REVALUATION_ERROR"

    @classmethod
    def asset_not_revaluable(cls, asset_id: str) -> "RevaluationError":
        return cls(f"Asset {asset_id} is not active and cannot be revalued", asset_id=asset_id)

    @classmethod
    def invalid_values(cls, asset_id: str, errors: list[str]) -> "RevaluationError":
        return cls(
            f"Invalid revaluation for asset {asset_id}: {'; '.join(errors)}",
            asset_id=asset_id,
            errors=list(errors),
        )

    @classmethod
    def no_change(cls, asset_id: str) -> "RevaluationError":
        return cls(f"Revaluation of asset {asset_id} does not change its book value", asset_id=asset_id)

    @classmethod
    def not_found(cls, revaluation_id: str) -> "RevaluationError":
        return cls(f"Revaluation not found: {revaluation_id}", revaluation_id=revaluation_id)

    @classmethod
    def invalid_status(cls, revaluation_id: str, status: str, operation: str) -> "RevaluationError":
        return cls(
            f"Cannot {operation} revaluation {revaluation_id} in status '{status}'",
            revaluation_id=revaluation_id,
            status=status,
            operation=operation,
        )
