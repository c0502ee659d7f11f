from typing import List, TYPE_CHECKING
import hashlib
import structlog

if TYPE_CHECKING:
    from eliza.domain.orchestration.core.agent_runtime import AgentRuntime

logger = structlog.get_logger(__name__)


def embedding_cache_key(text: str) -> str:
    return "embedding:" + hashlib.sha1(text.encode("utf-8")).hexdigest()


async def embed(runtime: "AgentRuntime", text: str) -> List[float]:
    """Embed text with the runtime's embedding model, through the cache.

    Without an embedding model the zero vector of the configured dimension
    is returned, so similarity search simply finds nothing.
    """
    dimension = runtime.settings.embedding_dimension
    if runtime.embeddings is None:
        logger.debug("No embedding model configured, using zero vector", dimension=dimension)
        return [0.0] * dimension

    key = embedding_cache_key(text)
    cached = await runtime.cache_manager.get(key)
    if cached is not None:
        return list(cached)

    vector = await runtime.embeddings.aembed_query(text)
    await runtime.cache_manager.set(key, list(vector))
    return list(vector)
