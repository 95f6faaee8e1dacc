"""
AML Workflows.

State machine for the Suspicious Activity Report lifecycle.
"""

from nexus_kernel.logging_config import get_logger
from nexus_kernel.workflow import Guard, Transition, Workflow

logger = get_logger("modules.aml.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

NARRATIVE_COMPLETE = Guard(
    name="narrative_complete",
    description="Narrative meets the minimum length and references activity",
)

INDEPENDENT_APPROVER = Guard(
    name="independent_approver",
    description="Approver is a different officer than the preparer",
)

FILING_REFERENCE_ISSUED = Guard(
    name="filing_reference_issued",
    description="Regulator acknowledged the filing with a reference",
)


# -----------------------------------------------------------------------------
# SAR Workflow
# -----------------------------------------------------------------------------

SAR_WORKFLOW = Workflow(
    name="suspicious_activity_report",
    description="SAR preparation, review and regulatory filing",
    initial_state="draft",
    states=(
        "draft",
        "pending_review",
        "approved",
        "rejected",
        "submitted",
        "closed",
        "cancelled",
    ),
    transitions=(
        Transition("draft", "pending_review", action="submit_for_review", guard=NARRATIVE_COMPLETE),
        Transition("draft", "cancelled", action="cancel"),
        Transition("pending_review", "approved", action="approve", guard=INDEPENDENT_APPROVER,
                   requires_approval=True),
        Transition("pending_review", "rejected", action="reject"),
        Transition("pending_review", "cancelled", action="cancel"),
        Transition("rejected", "draft", action="reopen"),
        Transition("rejected", "cancelled", action="cancel"),
        Transition("approved", "submitted", action="submit_to_authority", guard=FILING_REFERENCE_ISSUED),
        Transition("approved", "cancelled", action="cancel"),
        Transition("submitted", "closed", action="close"),
    ),
    terminal_states=("closed", "cancelled"),
)

logger.info(
    "sar_workflow_defined",
    extra={
        "workflow": SAR_WORKFLOW.name,
        "states": list(SAR_WORKFLOW.states),
        "transitions": len(SAR_WORKFLOW.transitions),
    },
)
