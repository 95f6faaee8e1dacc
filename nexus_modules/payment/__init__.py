"""
Payment Module (``nexus_modules.payment``).

Responsibility
--------------
Payments: exchange-rate snapshots and payment references, disbursements
with approval and recurring schedules, disbursement limits, payment
transactions executed through a pluggable executor, and processor
settlement batches.

Architecture position
---------------------
**Modules layer** -- immutable models, three workflows, a config schema,
``DisbursementManager``, ``DisbursementScheduler`` and ``PaymentManager``.
Storage, period usage and payment execution are injected Protocols.

Invariants enforced
-------------------
* Disbursement, payment and settlement-batch status changes follow their
  workflows.
* Exchange rates are positive; conversions keep six decimal places.
* A settlement batch only accepts payments in its own currency while open.

Failure modes
-------------
* ``InvalidDisbursementTransitionError`` -- illegal disbursement move.
* ``InvalidPaymentTransitionError`` -- illegal payment transaction move.
* ``DisbursementLimitExceededError`` -- amount or count limit breached.
* ``InvalidSettlementBatchStatusError`` -- batch modified after close.
* ``ValueError`` -- value-object construction with invalid data.
"""

from nexus_modules.payment.config import DisbursementConfig
from nexus_modules.payment.exceptions import (
    DisbursementLimitExceededError,
    DisbursementNotFoundError,
    DuplicatePaymentError,
    InvalidDisbursementScheduleError,
    InvalidDisbursementTransitionError,
    InvalidPaymentTransitionError,
    InvalidSettlementBatchStatusError,
    PaymentError,
    PaymentExecutionError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from nexus_modules.payment.limits import DisbursementLimits, LimitPeriod
from nexus_modules.payment.manager import PaymentExecutor, PaymentManager, PaymentTransactionRepository
from nexus_modules.payment.models import (
    Disbursement,
    DisbursementStatus,
    ExchangeRateSnapshot,
    PaymentMethodType,
    PaymentReference,
    PaymentReferenceType,
    Recipient,
)
from nexus_modules.payment.scheduling import (
    DisbursementSchedule,
    DisbursementScheduler,
    DisbursementScheduleStorage,
    RecurrenceFrequency,
    ScheduleType,
)
from nexus_modules.payment.service import (
    DisbursementManager,
    DisbursementRepository,
    DisbursementUsageProvider,
)
from nexus_modules.payment.settlement import SettlementBatch, SettlementBatchStatus
from nexus_modules.payment.transactions import (
    PaymentDirection,
    PaymentResult,
    PaymentStatus,
    PaymentTransaction,
)
from nexus_modules.payment.workflows import (
    DISBURSEMENT_WORKFLOW,
    PAYMENT_TRANSACTION_WORKFLOW,
    SETTLEMENT_BATCH_WORKFLOW,
)

__all__ = [
    "DISBURSEMENT_WORKFLOW",
    "Disbursement",
    "DisbursementConfig",
    "DisbursementLimitExceededError",
    "DisbursementLimits",
    "DisbursementManager",
    "DisbursementNotFoundError",
    "DisbursementRepository",
    "DisbursementSchedule",
    "DisbursementScheduleStorage",
    "DisbursementScheduler",
    "DisbursementStatus",
    "DisbursementUsageProvider",
    "DuplicatePaymentError",
    "ExchangeRateSnapshot",
    "InvalidDisbursementScheduleError",
    "InvalidDisbursementTransitionError",
    "InvalidPaymentTransitionError",
    "InvalidSettlementBatchStatusError",
    "LimitPeriod",
    "PAYMENT_TRANSACTION_WORKFLOW",
    "PaymentDirection",
    "PaymentError",
    "PaymentExecutionError",
    "PaymentExecutor",
    "PaymentManager",
    "PaymentMethodType",
    "PaymentNotFoundError",
    "PaymentReference",
    "PaymentReferenceType",
    "PaymentResult",
    "PaymentStatus",
    "PaymentTransaction",
    "PaymentTransactionRepository",
    "PaymentValidationError",
    "Recipient",
    "RecurrenceFrequency",
    "SETTLEMENT_BATCH_WORKFLOW",
    "ScheduleType",
    "SettlementBatch",
    "SettlementBatchStatus",
]
