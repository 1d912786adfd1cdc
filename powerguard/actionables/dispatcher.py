"""Actionable dispatcher — concurrent execution with per-item isolation."""

from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Sequence, Union

from powerguard.actionables.base import CapabilityHandler
from powerguard.actionables.registry import HandlerRegistry
from powerguard.actionables.types import ActionableType
from powerguard.core.models import Actionable, ActionableResult

logger = logging.getLogger(__name__)

HandlerCall = Callable[[CapabilityHandler, Actionable], ActionableResult]


def result_keys(actionables: Sequence[Actionable]) -> list[str]:
    """Unique result key per item: the id, suffixed ``#n`` on repeats."""
    used: set[str] = set()
    keys = []
    for actionable in actionables:
        key, n = actionable.id, 1
        while key in used:
            n += 1
            key = f"{actionable.id}#{n}"
        used.add(key)
        keys.append(key)
    return keys


class ActionableDispatcher:
    """Runs actionables through their registered handlers.

    Every item gets exactly one :class:`ActionableResult`; an unknown type
    or a handler exception becomes a failed result instead of propagating.
    """

    def __init__(self, registry: HandlerRegistry, max_workers: int = 4):
        self.registry = registry
        self.max_workers = max(1, max_workers)

    def is_supported(self, actionable_type: Union[ActionableType, str]) -> bool:
        return self.registry.is_supported(actionable_type)

    def supported_types(self) -> list[str]:
        return self.registry.supported_types()

    def dispatch(self, actionables: Sequence[Actionable]) -> dict[str, ActionableResult]:
        """Execute a batch; the result dict has one entry per item, in order.

        Repeated ids keep the first occurrence under the plain id and later
        ones under ``<id>#2``, ``<id>#3`` and so on.
        """
        return self._run(actionables, lambda h, a: h.execute(a), "execute")

    def revert(self, actionables: Sequence[Actionable]) -> dict[str, ActionableResult]:
        return self._run(actionables, lambda h, a: h.revert(a), "revert")

    def _run(
        self,
        actionables: Sequence[Actionable],
        call: HandlerCall,
        operation: str,
    ) -> dict[str, ActionableResult]:
        if not actionables:
            return {}
        self._warn_on_conflicts(actionables)

        workers = min(self.max_workers, len(actionables))
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="powerguard-dispatch"
        ) as pool:
            futures = [
                (key, pool.submit(self._invoke, a, call, operation))
                for key, a in zip(result_keys(actionables), actionables)
            ]
            results = {key: f.result() for key, f in futures}

        failed = sum(1 for r in results.values() if not r.succeeded)
        logger.info(
            "%s: %d actionable(s), %d failed", operation, len(results), failed
        )
        return results

    def _invoke(
        self, actionable: Actionable, call: HandlerCall, operation: str
    ) -> ActionableResult:
        if not self.registry.is_supported(actionable.type):
            return ActionableResult.failure(
                actionable.id, f"Unsupported actionable type: {actionable.type_name}"
            )
        handler = self.registry.get_handler(actionable.type)
        try:
            return call(handler, actionable)
        except Exception as e:
            logger.warning(
                "Handler %s raised during %s of %s",
                type(handler).__name__, operation, actionable.id, exc_info=True,
            )
            return ActionableResult.failure(
                actionable.id, f"Handler error: {e}"
            )

    def _warn_on_conflicts(self, actionables: Sequence[Actionable]) -> None:
        ids = Counter(a.id for a in actionables)
        for actionable_id, count in ids.items():
            if count > 1:
                logger.warning(
                    "Actionable id %r appears %d times; repeats are keyed with a #n suffix",
                    actionable_id, count,
                )
        pairs = Counter(
            (a.type_name, a.target_package) for a in actionables if a.target_package
        )
        for (type_name, target), count in pairs.items():
            if count > 1:
                logger.warning(
                    "%d %s actionables target %s in one batch", count, type_name, target
                )
