"""Inference client — engine lifecycle, timeouts, retries and JSON extraction."""

from __future__ import annotations

import json
import logging
import socket
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Optional

from powerguard.core.config import InferenceConfig
from powerguard.core.errors import (
    EngineInitTimeout,
    ErrorKind,
    InferenceUnavailable,
    PowerGuardError,
)
from powerguard.core.providers import create_provider
from powerguard.core.providers.base import BaseLLMProvider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str], BaseLLMProvider]
ConnectivityCheck = Callable[[], bool]

_POLL_S = 0.05


@dataclass
class InferenceResult:
    ok: bool
    text: str = ""
    payload: Optional[dict[str, Any]] = None
    error: Optional[ErrorKind] = None
    detail: str = ""
    attempts: int = 0


def extract_json(text: str) -> Optional[dict[str, Any]]:
    """Parse the span from the first ``{`` to the last ``}`` as a JSON object."""
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        value = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def check_connectivity(host: str, port: int, timeout: float) -> bool:
    """Return True if a TCP connection to ``host:port`` can be opened."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


class InferenceClient:
    """Owns the inference engine and runs bounded generation calls.

    The engine (an LLM provider) is built lazily, at most once, on the
    primary execution context: inline when called from the main thread,
    otherwise on ``primary_executor`` with a bounded rendezvous. Generation
    never raises; every call returns an :class:`InferenceResult`.
    """

    def __init__(
        self,
        config: Optional[InferenceConfig] = None,
        provider_factory: Optional[ProviderFactory] = None,
        connectivity_check: Optional[ConnectivityCheck] = None,
        primary_executor: Optional[Executor] = None,
    ):
        self.config = config or InferenceConfig()
        self._provider_factory = provider_factory or create_provider
        self._connectivity_check = connectivity_check or self._probe_network
        self._primary_executor = primary_executor
        self._owns_primary = primary_executor is None
        self._engine: Optional[BaseLLMProvider] = None
        self._lock = threading.RLock()
        self._workers: Optional[ThreadPoolExecutor] = None

    # ------------------------------------------------------------------
    # Engine lifecycle
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    def engine(self) -> BaseLLMProvider:
        """Return the engine, constructing it on first use.

        Raises:
            InferenceUnavailable: If the provider cannot be built.
            EngineInitTimeout: If construction on the primary context does
                not finish within ``init_timeout_s``.
        """
        if self._engine is not None:
            return self._engine
        with self._lock:
            if self._engine is None:
                self._engine = self._construct()
            return self._engine

    def _construct(self) -> BaseLLMProvider:
        if threading.current_thread() is threading.main_thread():
            engine = self._build()
            logger.debug("Inference engine created on main thread")
            return engine

        future = self._get_primary_executor().submit(self._build)
        try:
            engine = future.result(timeout=self.config.init_timeout_s)
        except FutureTimeoutError:
            # A late success is adopted so later calls can reuse it.
            future.add_done_callback(self._adopt_late_engine)
            raise EngineInitTimeout(
                f"Timed out after {self.config.init_timeout_s}s waiting for "
                f"engine initialization on the primary context"
            )
        logger.debug("Inference engine created via primary context")
        return engine

    def _build(self) -> BaseLLMProvider:
        try:
            return self._provider_factory(self.config.model)
        except Exception as e:
            raise InferenceUnavailable(
                f"Failed to create inference engine for {self.config.model}: {e}"
            ) from e

    def _adopt_late_engine(self, future: Future) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        with self._lock:
            if self._engine is None:
                self._engine = future.result()
                logger.info("Adopted inference engine from late initialization")

    def _get_primary_executor(self) -> Executor:
        with self._lock:
            if self._primary_executor is None:
                self._primary_executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="powerguard-primary"
                )
            return self._primary_executor

    def _get_workers(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._workers is None:
                self._workers = ThreadPoolExecutor(
                    max_workers=4, thread_name_prefix="powerguard-inference"
                )
            return self._workers

    def shutdown(self) -> None:
        """Release the engine and worker threads. The client can be reused."""
        with self._lock:
            engine, self._engine = self._engine, None
            if engine is not None:
                try:
                    engine.close()
                except Exception:
                    logger.warning("Error closing inference engine", exc_info=True)
            if self._workers is not None:
                self._workers.shutdown(wait=False, cancel_futures=True)
                self._workers = None
            if self._owns_primary and self._primary_executor is not None:
                self._primary_executor.shutdown(wait=False, cancel_futures=True)
                self._primary_executor = None

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def _probe_network(self) -> bool:
        return check_connectivity(
            self.config.connectivity_host,
            self.config.connectivity_port,
            self.config.connectivity_timeout_s,
        )

    def is_available(self) -> bool:
        """Return False when offline mode is set or the network is down."""
        if self.config.offline:
            return False
        return bool(self._connectivity_check())

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_text(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> InferenceResult:
        """Generate raw text with per-attempt timeout and bounded retries."""
        if cancel_event is not None and cancel_event.is_set():
            return InferenceResult(
                ok=False,
                error=ErrorKind.CANCELLED,
                detail="Cancelled before generation",
            )

        if not self.is_available():
            return InferenceResult(
                ok=False,
                error=ErrorKind.UNAVAILABLE,
                detail="No network connectivity",
            )

        try:
            engine = self.engine()
        except PowerGuardError as e:
            logger.warning("Inference engine unavailable: %s", e)
            return InferenceResult(ok=False, error=e.kind, detail=str(e))

        max_tokens = max_tokens or self.config.max_tokens
        if temperature is None:
            temperature = self.config.temperature

        result = InferenceResult(ok=False, error=ErrorKind.GENERATION_FAILED)
        for attempt in range(1, self.config.max_attempts + 1):
            if attempt > 1:
                if cancel_event is not None and cancel_event.wait(
                    self.config.retry_delay_s
                ):
                    return InferenceResult(
                        ok=False,
                        error=ErrorKind.CANCELLED,
                        detail="Cancelled between attempts",
                        attempts=attempt - 1,
                    )
                if cancel_event is None:
                    time.sleep(self.config.retry_delay_s)

            result = self._attempt(
                engine, prompt, max_tokens, temperature, cancel_event
            )
            result.attempts = attempt
            if result.ok or result.error is ErrorKind.CANCELLED:
                return result
            logger.warning(
                "Generation attempt %d/%d failed (%s): %s",
                attempt, self.config.max_attempts,
                result.error.value if result.error else "unknown", result.detail,
            )

        return result

    def generate_json(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> InferenceResult:
        """Generate text and extract its JSON object.

        A response without an extractable object is a failed call; it is not
        retried.
        """
        result = self.generate_text(prompt, max_tokens, temperature, cancel_event)
        if not result.ok:
            return result
        payload = extract_json(result.text)
        if payload is None:
            logger.warning("Model response contained no JSON object")
            return InferenceResult(
                ok=False,
                text=result.text,
                error=ErrorKind.RESPONSE_MALFORMED,
                detail="No JSON object in model response",
                attempts=result.attempts,
            )
        result.payload = payload
        return result

    def _attempt(
        self,
        engine: BaseLLMProvider,
        prompt: str,
        max_tokens: int,
        temperature: float,
        cancel_event: Optional[threading.Event],
    ) -> InferenceResult:
        future = self._get_workers().submit(
            engine.complete, prompt, max_tokens, temperature
        )
        deadline = time.monotonic() + self.config.timeout_s
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                future.cancel()
                return InferenceResult(
                    ok=False,
                    error=ErrorKind.TIMEOUT,
                    detail=f"Generation timed out after {self.config.timeout_s}s",
                )
            done, _ = wait([future], timeout=min(remaining, _POLL_S))
            if done:
                break
            if cancel_event is not None and cancel_event.is_set():
                future.cancel()
                return InferenceResult(
                    ok=False,
                    error=ErrorKind.CANCELLED,
                    detail="Cancelled during generation",
                )

        try:
            text = future.result()
        except Exception as e:
            return InferenceResult(
                ok=False, error=ErrorKind.GENERATION_FAILED, detail=str(e)
            )
        return InferenceResult(ok=True, text=text or "")
