"""
Payroll Workflows.

State machine for payslips from draft calculation through payment.
"""

from nexus_kernel.logging_config import get_logger
from nexus_kernel.workflow import Transition, Workflow

logger = get_logger("modules.payroll.workflows")


PAYSLIP_WORKFLOW = Workflow(
    name="payslip",
    description="Payslip review and payment",
    initial_state="draft",
    states=("draft", "approved", "paid", "cancelled"),
    transitions=(
        Transition("draft", "approved", action="approve", requires_approval=True),
        Transition("draft", "cancelled", action="cancel"),
        Transition("approved", "paid", action="mark_paid"),
        Transition("approved", "cancelled", action="cancel"),
    ),
    terminal_states=("paid", "cancelled"),
)

logger.info("payroll_workflows_defined", extra={"workflows": [PAYSLIP_WORKFLOW.name]})
