"""Analysis pipeline — classify, prompt, infer, validate, or fall back."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from powerguard.core.classifier import QueryClassifier
from powerguard.core.config import InferenceConfig
from powerguard.core.errors import ErrorKind
from powerguard.core.fallback import FallbackHeuristicEngine
from powerguard.core.inference import InferenceClient
from powerguard.core.models import (
    DEFAULT_CLASSIFICATION,
    AnalysisResponse,
    DeviceSnapshot,
)
from powerguard.core.prompts import build_prompt
from powerguard.core.validator import ResponseValidator

logger = logging.getLogger(__name__)


class PowerGuardAnalyzer:
    """Turns a device snapshot and optional goal into an AnalysisResponse.

    The analyzer owns its :class:`InferenceClient`; call :meth:`shutdown`
    (or use it as a context manager) to release the engine.
    """

    def __init__(
        self,
        client: Optional[InferenceClient] = None,
        config: Optional[InferenceConfig] = None,
        validator: Optional[ResponseValidator] = None,
        fallback: Optional[FallbackHeuristicEngine] = None,
    ):
        self.client = client or InferenceClient(config or InferenceConfig.from_env())
        self.classifier = QueryClassifier(self.client)
        self.validator = validator or ResponseValidator()
        self.fallback = fallback or FallbackHeuristicEngine()

    def analyze(
        self,
        snapshot: DeviceSnapshot,
        goal: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnalysisResponse:
        """Run the pipeline; setting ``cancel_event`` stops pending generation.

        A cancelled analysis still answers, from the heuristic engine.
        """
        if cancel_event is not None and cancel_event.is_set():
            return self._cancelled(snapshot, goal)

        if not self.client.is_available():
            logger.info("Inference unavailable, using heuristic analysis")
            return self.fallback.analyze_for(
                snapshot, DEFAULT_CLASSIFICATION, goal,
                message="Analysis (heuristic fallback): inference unavailable",
            )

        classification = self.classifier.classify(goal, snapshot, cancel_event)
        prompt = build_prompt(
            snapshot, classification.focus, classification.category, goal
        )
        logger.debug("Analysis prompt is %d characters", len(prompt))

        result = self.client.generate_json(prompt, cancel_event=cancel_event)
        if not result.ok:
            reason = result.error.value if result.error else "unknown"
            logger.warning(
                "Inference failed after %d attempt(s) (%s), using heuristic analysis",
                result.attempts, reason,
            )
            return self.fallback.analyze_for(
                snapshot, classification, goal,
                message=f"Analysis (heuristic fallback): {reason}",
            )

        return self.validator.validate(
            result.payload, classification, snapshot,
            message="Analysis completed",
        )

    def _cancelled(
        self, snapshot: DeviceSnapshot, goal: Optional[str]
    ) -> AnalysisResponse:
        logger.info("Analysis cancelled before inference, using heuristic analysis")
        return self.fallback.analyze_for(
            snapshot, DEFAULT_CLASSIFICATION, goal,
            message=f"Analysis (heuristic fallback): {ErrorKind.CANCELLED.value}",
        )

    def shutdown(self) -> None:
        self.client.shutdown()

    def __enter__(self) -> "PowerGuardAnalyzer":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
