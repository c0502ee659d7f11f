from typing import Optional, TYPE_CHECKING
import asyncio
import structlog

from eliza.domain.action.base_action import Provider
from eliza.domain.models.agent_state import State
from eliza.domain.models.memory import Memory

if TYPE_CHECKING:
    from eliza.domain.orchestration.core.agent_runtime import AgentRuntime

logger = structlog.get_logger(__name__)


async def _provide(
    provider: Provider,
    runtime: "AgentRuntime",
    message: Optional[Memory],
    state: Optional[State],
) -> Optional[str]:
    try:
        return await provider.provide(runtime, message, state)
    except Exception as e:
        logger.error("Provider failed, skipping", provider=provider.name, error=str(e), exc_info=True)
        return None


async def get_providers(
    runtime: "AgentRuntime",
    message: Optional[Memory] = None,
    state: Optional[State] = None,
) -> str:
    """Concurrent provider output, joined by newlines in registration order.

    A failing provider is logged and left out; the others still contribute.
    """
    results = await asyncio.gather(*(
        _provide(provider, runtime, message, state) for provider in runtime.providers
    ))
    return "\n".join(result for result in results if result)
