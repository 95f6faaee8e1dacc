"""
AML Compliance Module (``nexus_modules.aml``).

Responsibility
--------------
Anti-money-laundering building blocks: party risk scoring, rule-based
transaction monitoring, and the Suspicious Activity Report lifecycle
(draft, review, approval, filing, closure).

Architecture position
---------------------
**Modules layer** -- immutable models, a SAR workflow, a monitoring
config schema and two services (``AmlRiskAssessor``, ``SarManager``).
Reference data, persistence and regulatory filing are injected
Protocols.

Invariants enforced
-------------------
* Risk scores and factor scores lie in [0, 100].
* SAR status changes follow ``SAR_WORKFLOW``; illegal jumps such as
  DRAFT -> SUBMITTED are rejected.
* A SAR is approved by someone other than its preparer.

Failure modes
-------------
* ``SarGenerationFailedError`` -- lifecycle or evidence problems; the
  ``reason`` attribute names which.
* ``AmlAssessmentError`` -- party domiciled in a prohibited jurisdiction.
* ``ValueError`` -- value-object construction with out-of-range data.

Audit relevance
---------------
SARs are regulatory records. Every lifecycle step is logged with the
SAR id and acting officer, and filing deadlines are tracked from creation.
"""

from nexus_modules.aml.assessment import (
    AmlRiskAssessor,
    PartyProfile,
    RiskDataProvider,
    SanctionsScreening,
    TransactionProfile,
)
from nexus_modules.aml.config import AmlMonitoringConfig
from nexus_modules.aml.exceptions import AmlAssessmentError, AmlError, SarGenerationFailedError
from nexus_modules.aml.models import (
    AlertSeverity,
    AlertType,
    AmlRiskScore,
    RiskFactors,
    RiskLevel,
    SarStatus,
    SarType,
    SuspiciousActivityReport,
    Transaction,
    TransactionAlert,
    TransactionDirection,
    TransactionMonitoringResult,
)
from nexus_modules.aml.monitoring import TransactionMonitor
from nexus_modules.aml.service import MIN_NARRATIVE_LENGTH, SarFilingGateway, SarManager, SarRepository
from nexus_modules.aml.workflows import SAR_WORKFLOW

__all__ = [
    "AlertSeverity",
    "AlertType",
    "AmlAssessmentError",
    "AmlError",
    "AmlMonitoringConfig",
    "AmlRiskAssessor",
    "AmlRiskScore",
    "MIN_NARRATIVE_LENGTH",
    "PartyProfile",
    "RiskDataProvider",
    "RiskFactors",
    "RiskLevel",
    "SAR_WORKFLOW",
    "SanctionsScreening",
    "SarFilingGateway",
    "SarGenerationFailedError",
    "SarManager",
    "SarRepository",
    "SarStatus",
    "SarType",
    "SuspiciousActivityReport",
    "Transaction",
    "TransactionAlert",
    "TransactionDirection",
    "TransactionMonitor",
    "TransactionMonitoringResult",
    "TransactionProfile",
]
