"""Query classification — resource focus and intent category."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from powerguard.core.errors import ClassificationFailure
from powerguard.core.inference import InferenceClient
from powerguard.core.models import (
    DEFAULT_CLASSIFICATION,
    Classification,
    DeviceSnapshot,
    QueryCategory,
    ResourceFocus,
)
from powerguard.core.prompts import build_category_prompt, build_resource_prompt

logger = logging.getLogger(__name__)


class QueryClassifier:
    """Maps a free-text goal to a :class:`Classification`.

    Two short inference calls are made, one for the resource focus and one
    for the category. Any failure yields the default ``{OTHER, INVALID}``.
    """

    def __init__(self, client: InferenceClient):
        self.client = client

    def classify(
        self,
        goal: Optional[str],
        snapshot: Optional[DeviceSnapshot] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Classification:
        if not goal or not goal.strip():
            return DEFAULT_CLASSIFICATION
        if cancel_event is not None and cancel_event.is_set():
            return DEFAULT_CLASSIFICATION
        try:
            focus = self._resource_focus(goal, cancel_event)
            category = self._category(goal, focus, cancel_event)
        except ClassificationFailure as e:
            logger.warning("Query classification failed: %s", e)
            return DEFAULT_CLASSIFICATION
        logger.info("Classified goal as %s / %s", focus.value, category.name)
        return Classification(focus=focus, category=category)

    def _ask(self, prompt: str, cancel_event: Optional[threading.Event]) -> str:
        config = self.client.config
        result = self.client.generate_text(
            prompt,
            max_tokens=config.classify_max_tokens,
            temperature=config.classify_temperature,
            cancel_event=cancel_event,
        )
        if not result.ok:
            raise ClassificationFailure(
                f"inference failed ({result.error.value if result.error else 'unknown'})"
            )
        return result.text.strip().strip(".\"'").strip()

    def _resource_focus(
        self, goal: str, cancel_event: Optional[threading.Event]
    ) -> ResourceFocus:
        answer = self._ask(build_resource_prompt(goal), cancel_event).upper()
        try:
            return ResourceFocus(answer)
        except ValueError:
            raise ClassificationFailure(f"unexpected resource answer {answer!r}")

    def _category(
        self, goal: str, focus: ResourceFocus, cancel_event: Optional[threading.Event]
    ) -> QueryCategory:
        answer = self._ask(build_category_prompt(goal, focus), cancel_event)
        try:
            return QueryCategory(int(answer))
        except ValueError:
            raise ClassificationFailure(f"unexpected category answer {answer!r}")
