"""
Payment Rails Module (``nexus_modules.payment_rails``).

Responsibility
--------------
Bank-network reference data and tooling: ACH return, change and entry
class codes, ABA routing numbers, card brand detection, rail capability
profiles, request validation, rail selection, NACHA file handling, and
the ACH return, notification-of-change and prenote flows.

Architecture position
---------------------
**Modules layer** -- pure value objects and stateless services. Nothing
here moves money; callers use it to decide how and whether to.

Invariants enforced
-------------------
* A ``RoutingNumber`` always passes the ABA checksum.
* Capability limits apply only to amounts in the limit's own currency.
* NACHA records are 94 characters and files are blocked in tens.
* ``RailSelector`` never returns an unavailable rail.

Failure modes
-------------
* ``InvalidRoutingNumberError`` -- malformed routing number.
* ``RailValidationError`` -- a request breaks one or more rail rules.
* ``NoEligibleRailError`` -- no offered rail can carry a payment.
* ``NachaFormatError`` -- unreadable NACHA content.
"""

from nexus_modules.payment_rails.ach import (
    AchNotificationOfChange,
    AchPrenoteRequest,
    AchRail,
    AchReturn,
    AchSubmission,
    AchTransactionRecord,
    AchTransactionRepository,
)
from nexus_modules.payment_rails.cards import CardBrand, luhn_valid
from nexus_modules.payment_rails.codes import AchReturnCode, NocCode, SecCode
from nexus_modules.payment_rails.exceptions import (
    InvalidRoutingNumberError,
    NachaFormatError,
    NoEligibleRailError,
    RailError,
    RailValidationError,
)
from nexus_modules.payment_rails.models import (
    AccountType,
    BankAccount,
    PaymentRail,
    RailCapabilities,
    RailTransactionRequest,
    RailType,
    RoutingNumber,
    routing_number_errors,
)
from nexus_modules.payment_rails.nacha import (
    AchBatch,
    AchEntry,
    AchFile,
    NachaFormatter,
    ServiceClassCode,
    TransactionCode,
)
from nexus_modules.payment_rails.selector import RailSelectionCriteria, RailSelector, Urgency
from nexus_modules.payment_rails.validator import RailValidator, is_valid_iban, is_valid_swift

__all__ = [
    "AccountType",
    "AchBatch",
    "AchEntry",
    "AchFile",
    "AchNotificationOfChange",
    "AchPrenoteRequest",
    "AchRail",
    "AchReturn",
    "AchReturnCode",
    "AchSubmission",
    "AchTransactionRecord",
    "AchTransactionRepository",
    "BankAccount",
    "CardBrand",
    "InvalidRoutingNumberError",
    "NachaFormatError",
    "NachaFormatter",
    "NoEligibleRailError",
    "NocCode",
    "PaymentRail",
    "RailCapabilities",
    "RailError",
    "RailSelectionCriteria",
    "RailSelector",
    "RailTransactionRequest",
    "RailType",
    "RailValidationError",
    "RailValidator",
    "RoutingNumber",
    "SecCode",
    "ServiceClassCode",
    "TransactionCode",
    "Urgency",
    "is_valid_iban",
    "is_valid_swift",
    "luhn_valid",
    "routing_number_errors",
]
