"""Bounded retries around individual provider steps."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from toolrelay.config.models import StepRetryConfig
from toolrelay.errors import ProviderError, RunActiveError
from toolrelay.observability.logging import get_logger
from toolrelay.observability.metrics import PROVIDER_RETRIES

logger = get_logger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


async def retry_step(
    step: str,
    operation: Callable[[], Awaitable[T]],
    config: StepRetryConfig,
    *,
    sleep: SleepFunc = asyncio.sleep,
    **context: Any,
) -> T:
    """Run a provider operation with the step's retry budget.

    Each attempt is bounded by config.timeout_seconds. Retryable
    ProviderErrors and timeouts are retried after config.delay_seconds;
    RunActiveError and non-retryable errors surface immediately.

    Raises:
        ProviderError: When the budget is exhausted or the error is final
    """
    attempt = 1
    while True:
        try:
            if config.timeout_seconds is None:
                return await operation()
            return await asyncio.wait_for(operation(), timeout=config.timeout_seconds)
        except RunActiveError as e:
            e.add_context(step=step, **context)
            raise
        except TimeoutError:
            last_error = ProviderError(
                f"{step} timed out after {config.timeout_seconds}s",
                context={"step": step, **context},
            )
        except ProviderError as e:
            e.add_context(step=step, **context)
            if not e.retryable:
                raise
            last_error = e

        if attempt >= config.attempts:
            break

        PROVIDER_RETRIES.labels(step=step).inc()
        logger.warning(
            "provider_step_retry",
            step=step,
            attempt=attempt,
            max_attempts=config.attempts,
            error=last_error.detail,
            **context,
        )
        await sleep(config.delay_seconds)
        attempt += 1

    logger.error(
        "provider_step_failed",
        step=step,
        attempts=config.attempts,
        error=last_error.detail,
        **context,
    )
    raise ProviderError(
        f"{step} failed after {config.attempts} attempt(s): {last_error.detail}",
        retryable=last_error.retryable,
        context={**last_error.context, "step": step},
    ) from last_error
