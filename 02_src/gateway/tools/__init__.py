"""Tool module: the dispatch table and the collaborators it calls."""

from .dispatch import ToolDispatchTable, ToolHandler, parse_arguments
from .pricing import PricingCatalog, PricingRequest, PricingTool
from .scheduling import SchedulingTool
from .workflow import get_next_workflow_step, get_workflow_guidance


def build_dispatch_table(
    pricing: PricingTool,
    scheduling: SchedulingTool,
) -> ToolDispatchTable:
    """Register every tool the assistant is configured with."""
    table = ToolDispatchTable()
    table.register(PricingTool.name, pricing)
    table.register(SchedulingTool.name, scheduling)
    table.register("get_workflow_guidance", get_workflow_guidance)
    table.register("get_next_workflow_step", get_next_workflow_step)
    return table


__all__ = [
    "PricingCatalog",
    "PricingRequest",
    "PricingTool",
    "SchedulingTool",
    "ToolDispatchTable",
    "ToolHandler",
    "build_dispatch_table",
    "get_next_workflow_step",
    "get_workflow_guidance",
    "parse_arguments",
]
