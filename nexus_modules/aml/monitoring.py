"""
Transaction Monitoring (``nexus_modules.aml.monitoring``).

Responsibility
--------------
Runs rule-based red-flag detectors over a party's transactions and folds
the resulting alerts into a ``TransactionMonitoringResult``.

Architecture position
---------------------
**Modules layer** -- stateless analysis over caller-supplied transactions.
No I/O; the clock stamps ``analyzed_at`` only.

Invariants enforced
-------------------
* Thresholds come from ``AmlMonitoringConfig`` and are expressed in the
  currency of the analyzed transactions.
* A result is suspicious as soon as any detector raises an alert.
* Risk score = sum of detected pattern weights times the multiplier of
  the worst alert severity, rounded half up and clamped to 100.

Failure modes
-------------
* Transactions in mixed currencies  -> ``CurrencyMismatchError``.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import date, datetime
from decimal import Decimal

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Currency, Money
from nexus_modules.aml.config import AmlMonitoringConfig
from nexus_modules.aml.helpers import is_round_amount
from nexus_modules.aml.models import (
    Transaction,
    TransactionAlert,
    TransactionMonitoringResult,
    round_score,
)

logger = get_logger("modules.aml.monitoring")


class TransactionMonitor:
    """
    Detects structuring, velocity, geographic spread, round amounts,
    large single transactions, daily aggregation and dormancy.

    Usage::

        monitor = TransactionMonitor(clock=clock)
        result = monitor.analyze("PTY-1", transactions)
        if result.should_consider_sar:
            sar_manager.create_from_monitoring(result, created_by="officer-1")
    """

    def __init__(self, config: AmlMonitoringConfig | None = None, clock: Clock | None = None):
        self._config = config or AmlMonitoringConfig.with_defaults()
        self._clock = clock or SystemClock()

    @property
    def config(self) -> AmlMonitoringConfig:
        return self._config

    def analyze(
        self,
        party_id: str,
        transactions: Sequence[Transaction],
        *,
        historical_average: Money | None = None,
        last_activity: datetime | None = None,
    ) -> TransactionMonitoringResult:
        """
        Analyze ``transactions`` for one party.

        ``historical_average`` is the party's usual volume for a period of
        the same length; ``last_activity`` is the last activity before
        this batch, used for the dormancy check.
        """
        now = self._clock.now()
        if not transactions:
            logger.debug("aml_monitoring_no_transactions", extra={"party_id": party_id})
            return TransactionMonitoringResult.clean(party_id, now)

        currency = transactions[0].amount.currency
        total = sum((t.amount for t in transactions), Money.zero(currency))
        ordered = sorted(transactions, key=lambda t: t.occurred_at)

        alerts: list[TransactionAlert] = []
        patterns: list[str] = []

        def record(pattern: str, found: list[TransactionAlert]) -> None:
            if found:
                alerts.extend(found)
                patterns.append(pattern)

        record("structuring", self._detect_structuring(ordered, currency, now))
        record("velocity", self._detect_velocity(ordered, total, historical_average, now))
        record("geographic", self._detect_geographic(ordered, now))
        record("round_amounts", self._detect_round_amounts(ordered, now))
        record("large_amount", self._detect_large_amounts(ordered, currency, now))
        record("daily_aggregation", self._detect_daily_aggregation(ordered, currency, now))
        record("dormancy", self._detect_dormancy(ordered, last_activity, now))

        score = self._score(patterns, alerts)
        result = TransactionMonitoringResult(
            party_id=party_id,
            is_suspicious=bool(alerts),
            risk_score=score,
            analyzed_at=now,
            alerts=tuple(alerts),
            patterns=tuple(patterns),
            transaction_count=len(transactions),
            total_volume=total,
            period_start=ordered[0].occurred_at,
            period_end=ordered[-1].occurred_at,
        )
        logger.info(
            "aml_monitoring_completed",
            extra={
                "party_id": party_id,
                "transaction_count": result.transaction_count,
                "patterns": list(result.patterns),
                "risk_score": result.risk_score,
                "is_suspicious": result.is_suspicious,
            },
        )
        return result

    # -- scoring -----------------------------------------------------------

    def _score(self, patterns: list[str], alerts: list[TransactionAlert]) -> int:
        if not patterns:
            return 0
        base = sum(self._config.weight_for(p) for p in patterns)
        worst = max((a.severity for a in alerts), key=lambda s: s.rank)
        return round_score(Decimal(base) * worst.weight)

    # -- detectors ---------------------------------------------------------

    def _threshold(self, value: Decimal, currency: Currency) -> Money:
        return Money(amount=value, currency=currency)

    def _detect_structuring(
        self, transactions: list[Transaction], currency: Currency, now: datetime
    ) -> list[TransactionAlert]:
        cfg = self._config
        threshold = self._threshold(cfg.structuring_threshold, currency)
        floor = threshold * (1 - cfg.structuring_margin)
        near = [t for t in transactions if floor <= t.amount.abs() < threshold]
        if len(near) < cfg.structuring_min_count:
            return []
        near_total = sum((t.amount for t in near), Money.zero(currency))
        return [
            TransactionAlert.structuring(
                tuple(t.transaction_id for t in near), near_total, threshold, now
            )
        ]

    def _detect_velocity(
        self,
        transactions: list[Transaction],
        total: Money,
        historical_average: Money | None,
        now: datetime,
    ) -> list[TransactionAlert]:
        """
        Volume against ``historical_average`` when one is supplied,
        otherwise the busiest day's count against the batch's daily mean.
        """
        if historical_average is not None:
            if not historical_average.is_positive:
                return []
            ratio = total.abs().amount / historical_average.amount
            if ratio < self._config.velocity_multiplier:
                return []
            return [TransactionAlert.velocity(ratio, total, now)]

        daily_counts: dict[date, int] = defaultdict(int)
        for t in transactions:
            daily_counts[t.occurred_at.date()] += 1
        if len(daily_counts) < 2:
            return []

        average = Decimal(len(transactions)) / Decimal(len(daily_counts))
        peak = max(daily_counts.values())
        ratio = Decimal(peak) / average
        if ratio < self._config.velocity_multiplier:
            return []
        return [
            TransactionAlert.velocity(
                ratio,
                total,
                now,
                basis="the period's daily average",
                evidence={
                    "max_daily_count": peak,
                    "average_daily_count": str(average),
                    "days": len(daily_counts),
                },
            )
        ]

    def _detect_geographic(
        self, transactions: list[Transaction], now: datetime
    ) -> list[TransactionAlert]:
        countries = tuple(
            dict.fromkeys(t.counterparty_country for t in transactions if t.counterparty_country)
        )
        if len(countries) <= self._config.geographic_country_limit:
            return []
        risky = tuple(c for c in countries if c in self._config.high_risk_countries)
        return [TransactionAlert.geographic(countries, risky, now)]

    def _detect_round_amounts(
        self, transactions: list[Transaction], now: datetime
    ) -> list[TransactionAlert]:
        cfg = self._config
        if len(transactions) < cfg.round_amount_min_count:
            return []
        rounds = [t for t in transactions if is_round_amount(t.amount.amount)]
        ratio = Decimal(len(rounds)) / Decimal(len(transactions))
        if ratio < cfg.round_amount_ratio:
            return []
        return [TransactionAlert.round_amounts(tuple(t.transaction_id for t in rounds), ratio, now)]

    def _detect_large_amounts(
        self, transactions: list[Transaction], currency: Currency, now: datetime
    ) -> list[TransactionAlert]:
        threshold = self._threshold(self._config.large_amount_threshold, currency)
        return [
            TransactionAlert.large_amount(t.transaction_id, t.amount.abs(), threshold, now)
            for t in transactions
            if t.amount.abs() >= threshold
        ]

    def _detect_daily_aggregation(
        self, transactions: list[Transaction], currency: Currency, now: datetime
    ) -> list[TransactionAlert]:
        limit = self._threshold(self._config.daily_aggregate_limit, currency)
        by_day: dict[date, list[Transaction]] = defaultdict(list)
        for t in transactions:
            by_day[t.occurred_at.date()].append(t)

        alerts = []
        for day, day_txns in sorted(by_day.items()):
            day_total = sum((t.amount.abs() for t in day_txns), Money.zero(currency))
            if day_total >= limit:
                alerts.append(
                    TransactionAlert.daily_aggregation(
                        day, day_total, limit, tuple(t.transaction_id for t in day_txns), now
                    )
                )
        return alerts

    def _detect_dormancy(
        self, transactions: list[Transaction], last_activity: datetime | None, now: datetime
    ) -> list[TransactionAlert]:
        if last_activity is None:
            return []
        dormant_days = (transactions[0].occurred_at - last_activity).days
        if dormant_days < self._config.dormancy_days:
            return []
        return [
            TransactionAlert.dormancy(
                dormant_days, tuple(t.transaction_id for t in transactions), now
            )
        ]
