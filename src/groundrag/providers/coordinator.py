"""Provider coordinator — preferred-provider state plus retry-with-fallback.

Every embed/generate call site goes through :class:`ProviderCoordinator`.
Providers are tried in priority order (preferred first, then the remaining
ones in configured order). Each provider gets up to ``max_retries`` attempts
with exponential backoff between them. A transient "service unavailable"
failure abandons the provider at once and moves on without waiting.

A successful fallback never moves the preferred pointer. Only
:meth:`ProviderCoordinator.switch_provider` does that.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from groundrag.config import Settings
from groundrag.errors import (
    ProviderError,
    ProvidersExhaustedError,
    ProviderTransientError,
    UnknownProviderError,
)
from groundrag.providers.base import GenerationOptions, Provider
from groundrag.providers.factory import get_provider, provider_kwargs

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# State and policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProviderInfo:
    """Static, display-safe description of one configured provider."""

    name: str
    has_credentials: bool
    embed_model: str
    llm_model: str
    preferred: bool = False


class ProviderState:
    """Process-wide preferred-provider pointer.

    Read on every call; written only through :meth:`set_preferred`.
    """

    def __init__(self, available: Iterable[str], preferred: str | None = None):
        self._available: tuple[str, ...] = tuple(available)
        if not self._available:
            raise ValueError("ProviderState needs at least one provider")
        self._lock = threading.Lock()
        self._preferred = self._validate(preferred or self._available[0])

    @property
    def available(self) -> tuple[str, ...]:
        return self._available

    @property
    def preferred(self) -> str:
        with self._lock:
            return self._preferred

    def set_preferred(self, name: str) -> None:
        validated = self._validate(name)
        with self._lock:
            previous, self._preferred = self._preferred, validated
        logger.info("Preferred provider switched: %s -> %s", previous, validated)

    def priority_order(self) -> list[str]:
        """Preferred provider first, the rest in configured order."""
        preferred = self.preferred
        return [preferred] + [name for name in self._available if name != preferred]

    def _validate(self, name: str) -> str:
        key = name.lower()
        if key not in self._available:
            raise UnknownProviderError(
                f"Unknown provider: {name}. Available: {list(self._available)}"
            )
        return key


@dataclass(frozen=True)
class RetryPolicy:
    """Per-provider attempt budget and backoff schedule."""

    max_retries: int = 3
    initial_delay: float = 1.0
    backoff_factor: float = 2.0
    max_elapsed: float | None = None

    def delay_for(self, attempt: int) -> float:
        """Delay after the given (1-based) failed attempt."""
        return self.initial_delay * self.backoff_factor ** (attempt - 1)


@dataclass(frozen=True)
class CallTrace:
    """Outcome of one coordinated call."""

    value: Any
    provider: str
    attempts: int
    attempts_by_provider: dict[str, int] = field(default_factory=dict)


def is_transient(exc: BaseException) -> bool:
    """Whether a failure signals temporary unavailability of the backend."""
    if isinstance(exc, ProviderTransientError):
        return True
    if isinstance(exc, ProviderError) and exc.status_code == 503:
        return True
    message = str(exc).lower()
    return "503" in message or "unavailable" in message


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


class ProviderCoordinator:
    """Routes embed/generate calls across providers with retry and fallback."""

    def __init__(
        self,
        providers: Mapping[str, Provider],
        order: Sequence[str] | None = None,
        preferred: str | None = None,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        names = [name.lower() for name in (order or list(providers))]
        missing = [name for name in names if name not in providers]
        if missing:
            raise UnknownProviderError(f"No provider instance for: {missing}")

        self._providers = {name: providers[name] for name in names}
        self.state = ProviderState(names, preferred)
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> ProviderCoordinator:
        """Build providers named in ``settings.providers.order``.

        A provider whose optional dependency is not installed is skipped with
        a warning, as long as at least one provider remains.
        """
        cfg = settings.providers
        order = [name.lower() for name in cfg.order]
        preferred = cfg.preferred.lower()
        if preferred not in order:
            order.insert(0, preferred)

        providers: dict[str, Provider] = {}
        skipped: dict[str, ImportError] = {}
        for name in order:
            try:
                providers[name] = get_provider(name, **provider_kwargs(name, settings))
            except ImportError as exc:
                logger.warning("Skipping provider %s: %s", name, exc)
                skipped[name] = exc

        if not providers:
            raise ImportError(
                f"No provider could be loaded: {', '.join(str(e) for e in skipped.values())}"
            )

        order = [name for name in order if name in providers]
        if preferred not in providers:
            logger.warning("Preferred provider %s unavailable, using %s", preferred, order[0])
            preferred = order[0]

        policy = RetryPolicy(
            max_retries=cfg.max_retries,
            initial_delay=cfg.initial_backoff_ms / 1000.0,
            backoff_factor=cfg.backoff_factor,
            max_elapsed=cfg.max_elapsed_seconds,
        )
        return cls(providers, order=order, preferred=preferred, policy=policy)

    # ------------------------------------------------------------------
    # Administrative surface
    # ------------------------------------------------------------------

    @property
    def active_provider(self) -> str:
        return self.state.preferred

    def switch_provider(self, name: str) -> None:
        self.state.set_preferred(name)

    def describe(self) -> list[ProviderInfo]:
        preferred = self.state.preferred
        return [
            ProviderInfo(
                name=name,
                has_credentials=provider.has_credentials,
                embed_model=provider.embed_model,
                llm_model=provider.llm_model,
                preferred=name == preferred,
            )
            for name, provider in self._providers.items()
        ]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def embed(self, text: str) -> list[float]:
        return self.embed_traced(text).value

    def generate(self, prompt: str, options: GenerationOptions | None = None) -> str:
        return self.generate_traced(prompt, options).value

    def embed_traced(self, text: str) -> CallTrace:
        return self._call("embed", lambda provider: provider.embed(text))

    def generate_traced(self, prompt: str, options: GenerationOptions | None = None) -> CallTrace:
        return self._call("generate", lambda provider: provider.generate(prompt, options))

    # ------------------------------------------------------------------
    # Retry-with-fallback
    # ------------------------------------------------------------------

    def _call(self, operation: str, fn: Callable[[Provider], Any]) -> CallTrace:
        started = self._clock()
        attempts: dict[str, int] = {}
        last_error: Exception | None = None
        order = self.state.priority_order()

        for name in order:
            provider = self._providers[name]

            for attempt in range(1, self.policy.max_retries + 1):
                if self._out_of_time(started):
                    logger.error("%s: deadline of %.1fs reached", operation, self.policy.max_elapsed)
                    raise ProvidersExhaustedError(operation, attempts, last_error)

                attempts[name] = attempt
                try:
                    value = fn(provider)
                except Exception as exc:
                    last_error = exc
                    if is_transient(exc):
                        logger.warning(
                            "%s: provider %s unavailable, falling back (%s)", operation, name, exc
                        )
                        break
                    if attempt < self.policy.max_retries:
                        delay = self.policy.delay_for(attempt)
                        logger.warning(
                            "%s: provider %s attempt %d/%d failed, retrying in %.2fs (%s)",
                            operation, name, attempt, self.policy.max_retries, delay, exc,
                        )
                        self._sleep(delay)
                    else:
                        logger.warning(
                            "%s: provider %s failed %d times (%s)", operation, name, attempt, exc
                        )
                    continue

                if name != order[0]:
                    logger.info("%s served by fallback provider %s", operation, name)
                return CallTrace(
                    value=value,
                    provider=name,
                    attempts=sum(attempts.values()),
                    attempts_by_provider=dict(attempts),
                )

        error = ProvidersExhaustedError(operation, attempts, last_error)
        logger.error("%s", error)
        raise error

    def _out_of_time(self, started: float) -> bool:
        if self.policy.max_elapsed is None:
            return False
        return self._clock() - started >= self.policy.max_elapsed
