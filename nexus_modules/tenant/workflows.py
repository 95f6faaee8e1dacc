"""
Tenant Workflows.

Tenant lifecycle from signup through trial, activation, suspension and
archiving.
"""

from nexus_kernel.logging_config import get_logger
from nexus_kernel.workflow import Transition, Workflow

logger = get_logger("modules.tenant.workflows")


TENANT_WORKFLOW = Workflow(
    name="tenant",
    description="Tenant account lifecycle",
    initial_state="pending",
    states=("pending", "trial", "active", "suspended", "archived"),
    transitions=(
        Transition("pending", "active", action="activate"),
        Transition("pending", "trial", action="start_trial"),
        Transition("pending", "archived", action="archive"),
        Transition("trial", "active", action="activate"),
        Transition("trial", "suspended", action="suspend"),
        Transition("trial", "archived", action="archive"),
        Transition("active", "suspended", action="suspend"),
        Transition("active", "archived", action="archive"),
        Transition("suspended", "active", action="reactivate"),
        Transition("suspended", "archived", action="archive"),
    ),
    terminal_states=("archived",),
)

logger.info("tenant_workflows_defined", extra={"workflows": [TENANT_WORKFLOW.name]})
