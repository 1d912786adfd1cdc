"""Handler registry — binds each actionable type to exactly one handler."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping, Union

from powerguard.actionables.base import CapabilityHandler
from powerguard.actionables.handlers import HANDLER_CLASSES
from powerguard.actionables.platform import DevicePlatform
from powerguard.actionables.types import ActionableType

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Immutable type → handler mapping."""

    def __init__(self, handlers: Mapping[ActionableType, CapabilityHandler]):
        self._handlers = MappingProxyType(dict(handlers))

    def __len__(self) -> int:
        return len(self._handlers)

    def supported_types(self) -> list[str]:
        return [t.value for t in self._handlers]

    def is_supported(self, actionable_type: Union[ActionableType, str]) -> bool:
        parsed = ActionableType.parse(actionable_type)
        return parsed is not None and parsed in self._handlers

    def get_handler(
        self, actionable_type: Union[ActionableType, str]
    ) -> CapabilityHandler:
        """Return the handler for a type, or raise ValueError."""
        parsed = ActionableType.parse(actionable_type)
        if parsed is None or parsed not in self._handlers:
            available = ", ".join(self.supported_types()) or "(none)"
            raise ValueError(
                f"Unknown actionable type: {actionable_type!r}. "
                f"Available: {available}"
            )
        return self._handlers[parsed]


def build_registry(platform: DevicePlatform) -> HandlerRegistry:
    """Instantiate every handler against ``platform``."""
    handlers: dict[ActionableType, CapabilityHandler] = {}
    for handler_class in HANDLER_CLASSES:
        handler = handler_class(platform)
        if handler.actionable_type in handlers:
            raise ValueError(
                f"Duplicate handler for {handler.actionable_type.value}: "
                f"{handler_class.__name__}"
            )
        handlers[handler.actionable_type] = handler
    logger.debug("Registered %d actionable handlers", len(handlers))
    return HandlerRegistry(handlers)
