"""Inference configuration, resolved from defaults and environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

DEFAULT_MODEL = "claude-sonnet-4-20250514"

ENV_MODEL = "POWERGUARD_MODEL"
ENV_TIMEOUT = "POWERGUARD_TIMEOUT"
ENV_MAX_ATTEMPTS = "POWERGUARD_MAX_ATTEMPTS"
ENV_OFFLINE = "POWERGUARD_OFFLINE"


@dataclass(frozen=True)
class InferenceConfig:
    """Settings for the inference client.

    Timeouts are in seconds. ``timeout_s`` bounds a single generation
    attempt; a call makes at most ``max_attempts`` attempts separated by
    ``retry_delay_s``. ``init_timeout_s`` bounds the wait for engine
    construction on the primary context.
    """

    model: str = DEFAULT_MODEL
    timeout_s: float = 10.0
    max_attempts: int = 2
    retry_delay_s: float = 1.0
    init_timeout_s: float = 5.0
    max_tokens: int = 512
    temperature: float = 0.2
    classify_max_tokens: int = 8
    classify_temperature: float = 0.1
    offline: bool = False
    connectivity_host: str = "1.1.1.1"
    connectivity_port: int = 443
    connectivity_timeout_s: float = 2.0

    @classmethod
    def from_env(
        cls,
        model: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "InferenceConfig":
        """Resolve config from an explicit model → env vars → defaults."""
        env = os.environ if environ is None else environ
        config = cls()

        resolved_model = model or env.get(ENV_MODEL)
        if resolved_model:
            config = replace(config, model=resolved_model)

        timeout = env.get(ENV_TIMEOUT)
        if timeout:
            config = replace(config, timeout_s=float(timeout))

        attempts = env.get(ENV_MAX_ATTEMPTS)
        if attempts:
            config = replace(config, max_attempts=max(1, int(attempts)))

        if env.get(ENV_OFFLINE, "").lower() in ("1", "true", "on", "yes"):
            config = replace(config, offline=True)

        return config
