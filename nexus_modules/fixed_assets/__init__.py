"""
Fixed Asset Depreciation Module (``nexus_modules.fixed_assets``).

Responsibility
--------------
Depreciation calculations for fixed assets: pure per-period formulas for
book and tax methods, month-by-month schedules, prospective revisions of
useful life and salvage, a service answering per-period questions, and
revaluation to fair value with its reserve and re-projected depreciation.

Architecture position
---------------------
**Modules layer** -- pure helpers, immutable models, a schedule generator
and ``DepreciationService``. Asset data is read through the
``AssetRepository`` Protocol; revaluations are kept in a
``RevaluationRepository``.

Invariants enforced
-------------------
* Amounts are ``Decimal`` quantized to cents, half up.
* Book value never falls below salvage; the last month of life lands on it.
* Declining-balance methods need at least twelve months of life.

Failure modes
-------------
* ``DepreciationError`` -- invalid cost, life or salvage, unsupported
  method, missing unit estimate, unknown asset or bad revision.
* ``RevaluationError`` -- inactive asset, invalid revalued amounts or a
  revaluation in the wrong status.
"""

from nexus_modules.fixed_assets.config import DepreciationConfig
from nexus_modules.fixed_assets.exceptions import DepreciationError, RevaluationError
from nexus_modules.fixed_assets.generator import DepreciationScheduleGenerator
from nexus_modules.fixed_assets.helpers import (
    MACRS_RATES,
    annuity_monthly,
    bonus_depreciation,
    declining_balance_monthly,
    macrs,
    straight_line_daily,
    straight_line_monthly,
    sum_of_years_digits_monthly,
    units_of_production,
    validate_inputs,
)
from nexus_modules.fixed_assets.models import (
    DepreciationAmount,
    DepreciationMethod,
    DepreciationPeriod,
    DepreciationSchedule,
    FixedAsset,
)
from nexus_modules.fixed_assets.revaluation import (
    AssetRevaluation,
    AssetRevaluationService,
    BookValue,
    RevaluationAmount,
    RevaluationAssetRepository,
    RevaluationImpact,
    RevaluationRepository,
    RevaluationStatus,
    RevaluationType,
)
from nexus_modules.fixed_assets.service import AssetRepository, DepreciationService

__all__ = [
    "AssetRepository",
    "AssetRevaluation",
    "AssetRevaluationService",
    "BookValue",
    "DepreciationAmount",
    "DepreciationConfig",
    "DepreciationError",
    "DepreciationMethod",
    "DepreciationPeriod",
    "DepreciationSchedule",
    "DepreciationScheduleGenerator",
    "DepreciationService",
    "FixedAsset",
    "MACRS_RATES",
    "RevaluationAmount",
    "RevaluationAssetRepository",
    "RevaluationError",
    "RevaluationImpact",
    "RevaluationRepository",
    "RevaluationStatus",
    "RevaluationType",
    "annuity_monthly",
    "bonus_depreciation",
    "declining_balance_monthly",
    "macrs",
    "straight_line_daily",
    "straight_line_monthly",
    "sum_of_years_digits_monthly",
    "units_of_production",
    "validate_inputs",
]
