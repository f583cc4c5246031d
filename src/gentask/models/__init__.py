"""Data models for gentask: signatures, messages, configuration."""

from gentask.models.config import ForwardOptions, ModelConfig
from gentask.models.messages import (
    ChatMessage,
    CompletionResponse,
    CompletionResult,
    FunctionCall,
)
from gentask.models.signature import Field, FieldType, Signature, title_from_name

__all__ = [
    "ChatMessage",
    "CompletionResponse",
    "CompletionResult",
    "Field",
    "FieldType",
    "ForwardOptions",
    "FunctionCall",
    "ModelConfig",
    "Signature",
    "title_from_name",
]
