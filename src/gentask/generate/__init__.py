"""The self-correcting generation loop and its components."""

from gentask.generate.assembler import assemble_completion
from gentask.generate.dispatcher import TASK_DONE, dispatch_function_calls
from gentask.generate.driver import Generate, RunContext, RunState
from gentask.generate.guidance import assertion_guidance, guidance_for, validation_guidance
from gentask.generate.program import Program
from gentask.generate.resolver import (
    FUNCTION_ARGUMENTS_FIELD,
    FUNCTION_NAME_FIELD,
    Assertion,
    NativeFunctionCalls,
    OutputResolver,
    SimulatedFunctionCalls,
)

__all__ = [
    "Assertion",
    "FUNCTION_ARGUMENTS_FIELD",
    "FUNCTION_NAME_FIELD",
    "Generate",
    "NativeFunctionCalls",
    "OutputResolver",
    "Program",
    "RunContext",
    "RunState",
    "SimulatedFunctionCalls",
    "TASK_DONE",
    "assemble_completion",
    "assertion_guidance",
    "dispatch_function_calls",
    "guidance_for",
    "validation_guidance",
]
