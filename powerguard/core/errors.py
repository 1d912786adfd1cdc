"""Error taxonomy for the analysis pipeline."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    CLASSIFICATION_FAILURE = "classification_failure"
    UNAVAILABLE = "unavailable"
    RESPONSE_MALFORMED = "response_malformed"
    ENGINE_INIT_TIMEOUT = "engine_init_timeout"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    GENERATION_FAILED = "generation_failed"


class PowerGuardError(Exception):
    """Base class for errors raised inside the analysis pipeline."""

    kind = ErrorKind.GENERATION_FAILED


class InferenceUnavailable(PowerGuardError):
    """No connectivity, missing SDK/API key, or the engine failed to build."""

    kind = ErrorKind.UNAVAILABLE


class EngineInitTimeout(PowerGuardError):
    """Engine construction on the primary context did not finish in time."""

    kind = ErrorKind.ENGINE_INIT_TIMEOUT


class ClassificationFailure(PowerGuardError):
    """A classification answer was missing or outside the expected set."""

    kind = ErrorKind.CLASSIFICATION_FAILURE
