"""Google Gemini / Gemma LLM provider."""

from __future__ import annotations

import os

from google import genai
from google.genai import types

from powerguard.core.providers.base import BaseLLMProvider


class GoogleProvider(BaseLLMProvider):
    """Provider for Google Gemini and hosted Gemma models."""

    def __init__(self, model: str):
        super().__init__(model)
        self.client = genai.Client()

    def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                max_output_tokens=max_tokens,
                temperature=temperature,
            ),
        )
        return response.text or ""

    @staticmethod
    def check_api_key() -> tuple[bool, str]:
        return bool(os.environ.get("GOOGLE_API_KEY")), "GOOGLE_API_KEY"
