"""
Provider layer: adapter interface, Ollama adapter and prompt construction.
"""

from persuader.llm.base_client import ProviderAdapter
from persuader.llm.example_generator import synthesize_example
from persuader.llm.exceptions import (
    LLMClientError,
    LLMConnectionError,
    LLMGenerationError,
    LLMModelNotAvailableError,
    LLMRateLimitError,
    LLMSessionError,
    LLMTimeoutError,
)
from persuader.llm.ollama_client import OllamaProvider
from persuader.llm.prompt_builder import (
    PromptBuilder,
    PromptParts,
    augment_prompt_with_errors,
    combine_prompt_parts,
)

__all__ = [
    "ProviderAdapter",
    "synthesize_example",
    "LLMClientError",
    "LLMConnectionError",
    "LLMGenerationError",
    "LLMModelNotAvailableError",
    "LLMRateLimitError",
    "LLMSessionError",
    "LLMTimeoutError",
    "OllamaProvider",
    "PromptBuilder",
    "PromptParts",
    "augment_prompt_with_errors",
    "combine_prompt_parts",
]
