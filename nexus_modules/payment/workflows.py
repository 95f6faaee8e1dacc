"""
Payment Workflows.

State machines for outgoing disbursements, payment transactions and
processor settlement batches.
"""

from nexus_kernel.logging_config import get_logger
from nexus_kernel.workflow import Guard, Transition, Workflow

logger = get_logger("modules.payment.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

WITHIN_LIMITS = Guard(
    name="within_limits",
    description="Amount is within per-transaction and period disbursement limits",
)

SCHEDULE_REACHED = Guard(
    name="schedule_reached",
    description="Scheduled date, if any, is not in the future",
)


# -----------------------------------------------------------------------------
# Disbursement Workflow
# -----------------------------------------------------------------------------

DISBURSEMENT_WORKFLOW = Workflow(
    name="disbursement",
    description="Outgoing payment approval and execution",
    initial_state="draft",
    states=(
        "draft",
        "pending_approval",
        "approved",
        "rejected",
        "processing",
        "completed",
        "failed",
        "cancelled",
    ),
    transitions=(
        Transition("draft", "pending_approval", action="submit_for_approval", guard=WITHIN_LIMITS),
        Transition("draft", "cancelled", action="cancel"),
        Transition("pending_approval", "approved", action="approve", requires_approval=True),
        Transition("pending_approval", "rejected", action="reject"),
        Transition("pending_approval", "cancelled", action="cancel"),
        Transition("approved", "processing", action="mark_processing", guard=SCHEDULE_REACHED),
        Transition("approved", "cancelled", action="cancel"),
        Transition("processing", "completed", action="mark_completed"),
        Transition("processing", "failed", action="mark_failed"),
        Transition("failed", "processing", action="retry"),
        Transition("failed", "cancelled", action="cancel"),
    ),
    terminal_states=("completed", "rejected", "cancelled"),
)


# -----------------------------------------------------------------------------
# Payment Transaction Workflow
# -----------------------------------------------------------------------------

PAYMENT_TRANSACTION_WORKFLOW = Workflow(
    name="payment_transaction",
    description="Execution of a single inbound or outbound payment",
    initial_state="pending",
    states=("pending", "processing", "completed", "failed", "cancelled", "reversed"),
    transitions=(
        Transition("pending", "processing", action="execute"),
        Transition("pending", "cancelled", action="cancel"),
        Transition("processing", "completed", action="mark_completed"),
        Transition("processing", "failed", action="mark_failed"),
        Transition("failed", "processing", action="retry"),
        Transition("failed", "cancelled", action="cancel"),
        Transition("completed", "reversed", action="reverse"),
    ),
    terminal_states=("cancelled", "reversed"),
)


# -----------------------------------------------------------------------------
# Settlement Batch Workflow
# -----------------------------------------------------------------------------

SETTLEMENT_BATCH_WORKFLOW = Workflow(
    name="settlement_batch",
    description="Processor settlement batch close and reconciliation",
    initial_state="open",
    states=("open", "closed", "reconciled", "disputed"),
    transitions=(
        Transition("open", "closed", action="close"),
        Transition("closed", "reconciled", action="reconcile"),
        Transition("closed", "disputed", action="mark_disputed"),
        Transition("disputed", "reconciled", action="reconcile"),
    ),
    terminal_states=("reconciled",),
)

logger.info(
    "payment_workflows_defined",
    extra={
        "workflows": [
            DISBURSEMENT_WORKFLOW.name,
            PAYMENT_TRANSACTION_WORKFLOW.name,
            SETTLEMENT_BATCH_WORKFLOW.name,
        ],
    },
)
