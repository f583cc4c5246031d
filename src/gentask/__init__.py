"""gentask: self-correcting structured generation with tool use.

Build a task from a signature, run it against a completion service, and
get validated output values back. Failed extractions and assertions are
fed back to the model as guidance and retried.

Usage::

    from gentask import Generate, OpenAIClient

    async with OpenAIClient() as client:
        task = Generate(client, "question -> answer, confidence:number")
        out = await task.forward({"question": "Is water wet?"})
"""

from gentask.exceptions import (
    AssertionFailure,
    ExhaustionError,
    FunctionError,
    GenerationError,
    GentaskError,
    NoResultError,
    SignatureError,
    StepsExhaustedError,
    ValidationFailure,
)
from gentask.extract import extract_values
from gentask.formatting import pprint_history, pprint_result
from gentask.generate import Assertion, Generate, Program
from gentask.llm import ChatRequest, CompletionService, Features, OpenAIClient
from gentask.memory import HistoryStore, Memory
from gentask.models import (
    ChatMessage,
    CompletionResponse,
    CompletionResult,
    Field,
    FieldType,
    ForwardOptions,
    FunctionCall,
    ModelConfig,
    Signature,
)
from gentask.prompt import PromptTemplate
from gentask.storage import SqlHistoryStore
from gentask.toolkit import FunctionDefinition, FunctionProcessor, FunctionResult

__version__ = "0.1.0"

__all__ = [
    "Assertion",
    "AssertionFailure",
    "ChatMessage",
    "ChatRequest",
    "CompletionResponse",
    "CompletionResult",
    "CompletionService",
    "ExhaustionError",
    "Features",
    "Field",
    "FieldType",
    "ForwardOptions",
    "FunctionCall",
    "FunctionDefinition",
    "FunctionError",
    "FunctionProcessor",
    "FunctionResult",
    "Generate",
    "GenerationError",
    "GentaskError",
    "HistoryStore",
    "Memory",
    "ModelConfig",
    "NoResultError",
    "OpenAIClient",
    "Program",
    "PromptTemplate",
    "Signature",
    "SignatureError",
    "SqlHistoryStore",
    "StepsExhaustedError",
    "ValidationFailure",
    "extract_values",
    "pprint_history",
    "pprint_result",
]
