"""Provider fallback execution.

Runs a unit of work against an ordered chain of interchangeable backends.
Each backend gets a fixed number of attempts with a backoff schedule
between them; once a backend is exhausted the next one in the chain is
tried. The executor knows nothing about what a backend is: the ``work``
coroutine maps a ``BackendConfig`` to a concrete call.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_chain,
    wait_fixed,
)

from utils.resilience import AllBackendsExhaustedError, get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES_PER_BACKEND = 3
DEFAULT_BACKOFF_SCHEDULE: tuple[float, ...] = (1.0, 2.0, 4.0, 8.0)


@dataclass(frozen=True)
class BackendConfig:
    """Identity of one backend in a fallback chain.

    Attributes:
        backend_id: Provider identifier, e.g. ``"openai"``
        model: Model name for that provider
        options: Extra provider-specific settings (api key, timeout...)
    """

    backend_id: str
    model: str = ""
    options: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass
class FallbackOutcome(Generic[T]):
    """What ``execute_with_fallback`` hands back.

    Attributes:
        result: Return value of the successful ``work`` call
        backend_used: The backend that produced it
        attempts: Total attempts across all backends, including the successful one
        retries: Attempts that failed before success
        duration_ms: Wall time spent in the executor
    """

    result: T
    backend_used: BackendConfig
    attempts: int
    retries: int
    duration_ms: float


def backoff_delay(schedule: Sequence[float], attempt: int) -> float:
    """Delay to sleep after failed attempt number *attempt* (1-based).

    Indexes into *schedule*, clamped to its last entry.
    """
    if not schedule:
        return 0.0
    return schedule[min(attempt - 1, len(schedule) - 1)]


class ProviderFallbackExecutor:
    """Retry-then-failover executor over a chain of backends.

    Example:
        executor = ProviderFallbackExecutor()
        outcome = await executor.execute_with_fallback(
            [BackendConfig("openai", "gpt-4-turbo"), BackendConfig("anthropic", "claude")],
            lambda backend: call_model(backend, prompt),
        )
        outcome.backend_used.backend_id
    """

    def __init__(
        self,
        max_retries_per_backend: int = DEFAULT_MAX_RETRIES_PER_BACKEND,
        backoff_schedule: Sequence[float] = DEFAULT_BACKOFF_SCHEDULE,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the executor.

        Args:
            max_retries_per_backend: Attempts per backend before failing over
            backoff_schedule: Seconds to wait after attempt 1, 2, 3...,
                clamped to the last entry
            retry_on: Exception types that count as a failed attempt
            sleep: Awaitable sleep used between attempts, injectable for tests
        """
        if max_retries_per_backend < 1:
            raise ValueError("max_retries_per_backend must be at least 1")
        self.max_retries_per_backend = max_retries_per_backend
        self.backoff_schedule = tuple(backoff_schedule)
        self.retry_on = retry_on
        self._sleep = sleep

    def _wait_strategy(self):
        delays = [
            backoff_delay(self.backoff_schedule, attempt)
            for attempt in range(1, self.max_retries_per_backend)
        ]
        if not delays:
            return wait_fixed(0)
        return wait_chain(*[wait_fixed(delay) for delay in delays])

    async def execute_with_fallback(
        self,
        chain: Sequence[BackendConfig],
        work: Callable[[BackendConfig], Awaitable[T]],
    ) -> FallbackOutcome[T]:
        """Run *work* against the first backend in *chain* that succeeds.

        Args:
            chain: Backends in priority order
            work: Coroutine function performing the call for one backend

        Returns:
            FallbackOutcome with the result and the backend that produced it

        Raises:
            AllBackendsExhaustedError: If every backend failed every attempt,
                or the chain is empty
        """
        start_time = time.perf_counter()
        attempts = 0
        last_error: Optional[BaseException] = None

        for position, backend in enumerate(chain):

            def before_sleep(retry_state: RetryCallState, backend=backend) -> None:
                error = retry_state.outcome.exception() if retry_state.outcome else None
                logger.warning(
                    "backend_attempt_failed",
                    backend=backend.backend_id,
                    model=backend.model,
                    attempt=retry_state.attempt_number,
                    sleep_s=retry_state.next_action.sleep if retry_state.next_action else 0,
                    error_type=type(error).__name__,
                    error=str(error)[:100],
                )

            retrying = AsyncRetrying(
                stop=stop_after_attempt(self.max_retries_per_backend),
                wait=self._wait_strategy(),
                retry=retry_if_exception_type(self.retry_on),
                sleep=self._sleep,
                before_sleep=before_sleep,
                reraise=True,
            )

            async def counted(target: BackendConfig) -> T:
                nonlocal attempts
                attempts += 1
                return await work(target)

            try:
                result = await retrying(counted, backend)
            except asyncio.CancelledError:
                raise
            except self.retry_on as e:
                last_error = e
                next_backend = chain[position + 1].backend_id if position + 1 < len(chain) else None
                logger.warning(
                    "backend_failover",
                    failed_backend=backend.backend_id,
                    next_backend=next_backend,
                    error_type=type(e).__name__,
                    error=str(e)[:100],
                )
                continue

            duration_ms = (time.perf_counter() - start_time) * 1000
            if position > 0 or attempts > 1:
                logger.info(
                    "backend_recovered",
                    backend=backend.backend_id,
                    attempts=attempts,
                )
            return FallbackOutcome(
                result=result,
                backend_used=backend,
                attempts=attempts,
                retries=attempts - 1,
                duration_ms=round(duration_ms, 2),
            )

        chain_ids = [backend.backend_id for backend in chain]
        logger.error(
            "all_backends_exhausted",
            chain=chain_ids,
            attempts=attempts,
            last_error=str(last_error)[:100] if last_error else None,
        )
        raise AllBackendsExhaustedError(
            f"All backends exhausted ({' -> '.join(chain_ids) or 'empty chain'}): "
            f"{last_error if last_error else 'no backend configured'}",
            details={
                "chain": chain_ids,
                "attempts": attempts,
                "last_error": str(last_error) if last_error else None,
                "last_error_type": type(last_error).__name__ if last_error else None,
            },
        )
