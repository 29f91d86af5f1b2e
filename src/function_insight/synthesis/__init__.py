"""Narrative synthesis via an external LLM."""

from .client import SynthesisClient
from .llm import LLMService, OpenAIService, UnconfiguredLLMService, create_llm_service
from .prompt import (
    ComplexityInputs,
    NarrativeInputs,
    Prompt,
    PromptBuilder,
    StructuralInputs,
    diff_excerpt,
)
from .reply import parse_reply
from .tokens import count_tokens

__all__ = [
    "SynthesisClient",
    "LLMService",
    "OpenAIService",
    "UnconfiguredLLMService",
    "create_llm_service",
    "NarrativeInputs",
    "StructuralInputs",
    "ComplexityInputs",
    "Prompt",
    "PromptBuilder",
    "diff_excerpt",
    "count_tokens",
    "parse_reply",
]
