"""Base class for LLM providers."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseLLMProvider(ABC):
    """Abstract base for LLM provider implementations."""

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        """Send a single-turn prompt and return the model's raw text.

        Args:
            prompt: The full instruction payload.
            max_tokens: Upper bound on generated tokens.
            temperature: Sampling temperature (kept low by callers).

        Returns:
            The concatenated text of the response. May be empty.
        """

    def close(self) -> None:
        """Release the underlying SDK client."""

    @staticmethod
    @abstractmethod
    def check_api_key() -> tuple[bool, str]:
        """Check whether the required API key is set.

        Returns:
            (is_set, env_var_name) — e.g. (True, "ANTHROPIC_API_KEY").
        """
