"""Function (tool) definitions and execution for generation tasks."""

from gentask.toolkit.executor import FunctionProcessor
from gentask.toolkit.models import FunctionDefinition, FunctionResult

__all__ = [
    "FunctionDefinition",
    "FunctionProcessor",
    "FunctionResult",
]
