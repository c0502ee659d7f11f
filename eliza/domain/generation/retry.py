from dataclasses import dataclass
from typing import Optional
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    stop_after_attempt,
    stop_after_delay,
    stop_any,
    stop_never,
    wait_exponential,
)

logger = structlog.get_logger(__name__)


@dataclass
class RetryPolicy:
    """Backoff schedule and bound for generate-until-parseable loops.

    Both bounds default to None, which retries until a parseable answer
    arrives. Delays start at ``initial_delay`` seconds and grow by
    ``multiplier`` each attempt, capped at ``max_delay`` when set.
    """
    max_attempts: Optional[int] = None
    max_elapsed: Optional[float] = None
    initial_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: Optional[float] = None

    @property
    def bounded(self) -> bool:
        return self.max_attempts is not None or self.max_elapsed is not None

    def retrying(self, operation: str) -> AsyncRetrying:
        """Build a tenacity loop that re-raises the last error when it gives up"""

        stops = []
        if self.max_attempts is not None:
            stops.append(stop_after_attempt(self.max_attempts))
        if self.max_elapsed is not None:
            stops.append(stop_after_delay(self.max_elapsed))

        wait_kwargs = {"multiplier": self.initial_delay, "exp_base": self.multiplier}
        if self.max_delay is not None:
            wait_kwargs["max"] = self.max_delay

        def log_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "Retrying generation",
                operation=operation,
                attempt=retry_state.attempt_number,
                next_delay_s=retry_state.next_action.sleep if retry_state.next_action else None,
                error=str(error) if error else None,
            )

        return AsyncRetrying(
            stop=stop_any(*stops) if stops else stop_never,
            wait=wait_exponential(**wait_kwargs),
            before_sleep=log_retry,
            reraise=True,
        )
