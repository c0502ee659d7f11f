from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING
import asyncio
import structlog
from langchain_core.messages import HumanMessage
from langchain_text_splitters import RecursiveCharacterTextSplitter

from eliza.domain.errors import UnparseableResponseError
from eliza.domain.generation.parsing import (
    parse_boolean_from_text,
    parse_json_array_from_text,
    parse_json_object_from_text,
    parse_should_respond,
)
from eliza.domain.models.character import ModelClass
from eliza.domain.models.memory import Content

if TYPE_CHECKING:
    from eliza.domain.orchestration.core.agent_runtime import AgentRuntime

logger = structlog.get_logger(__name__)


def trim_context(context: str, max_chars: Optional[int]) -> str:
    """Keep the most recent ``max_chars`` characters of a prompt"""
    if not context or not max_chars or len(context) <= max_chars:
        return context or ""
    return context[-max_chars:]


def _message_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


async def generate_text(
    runtime: "AgentRuntime",
    context: str,
    model_class: ModelClass = ModelClass.SMALL,
    stop: Optional[Sequence[str]] = None,
) -> str:
    """Raw completion for ``context``; empty context yields an empty string.

    Provider errors propagate. When ``generation_timeout`` is configured a
    hung call raises ``asyncio.TimeoutError``.
    """
    if not context:
        logger.error("generate_text context is empty")
        return ""

    model = runtime.get_model(model_class)
    context = trim_context(context, runtime.settings.max_context_chars)

    call = model.ainvoke([HumanMessage(content=context)], stop=list(stop) if stop else None)
    timeout = runtime.settings.generation_timeout
    response = await asyncio.wait_for(call, timeout) if timeout else await call

    text = _message_text(response)
    logger.debug("Generated text", model_class=ModelClass(model_class).value, length=len(text))
    return text


async def generate_should_respond(
    runtime: "AgentRuntime",
    context: str,
    model_class: ModelClass = ModelClass.SMALL,
) -> Optional[str]:
    """RESPOND, IGNORE or STOP, retried until the model answers in that shape"""

    async for attempt in runtime.retry_policy.retrying("generate_should_respond"):
        with attempt:
            response = await generate_text(runtime, context, model_class)
            result = parse_should_respond(response.strip())
            if result is None:
                raise UnparseableResponseError("RESPOND/IGNORE/STOP", response)
    return result


async def generate_true_or_false(
    runtime: "AgentRuntime",
    context: str,
    model_class: ModelClass = ModelClass.SMALL,
) -> bool:
    stop = runtime.settings.boolean_stop_sequences

    async for attempt in runtime.retry_policy.retrying("generate_true_or_false"):
        with attempt:
            response = await generate_text(runtime, context, model_class, stop=stop)
            result = parse_boolean_from_text(response)
            if result is None:
                raise UnparseableResponseError("boolean", response)
    return result


async def generate_text_array(
    runtime: "AgentRuntime",
    context: str,
    model_class: ModelClass = ModelClass.SMALL,
) -> List[Any]:
    if not context:
        logger.error("generate_text_array context is empty")
        return []

    async for attempt in runtime.retry_policy.retrying("generate_text_array"):
        with attempt:
            response = await generate_text(runtime, context, model_class)
            result = parse_json_array_from_text(response)
            if result is None:
                raise UnparseableResponseError("JSON array", response)
    return result


async def generate_object_array(
    runtime: "AgentRuntime",
    context: str,
    model_class: ModelClass = ModelClass.SMALL,
) -> List[Dict[str, Any]]:
    """Like generate_text_array, keeping only object elements"""
    if not context:
        logger.error("generate_object_array context is empty")
        return []

    async for attempt in runtime.retry_policy.retrying("generate_object_array"):
        with attempt:
            response = await generate_text(runtime, context, model_class)
            result = parse_json_array_from_text(response)
            if result is None:
                raise UnparseableResponseError("JSON object array", response)
    return [item for item in result if isinstance(item, dict)]


async def generate_message_response(
    runtime: "AgentRuntime",
    context: str,
    model_class: ModelClass = ModelClass.LARGE,
) -> Content:
    """Reply content parsed from a JSON object in the model output"""

    async for attempt in runtime.retry_policy.retrying("generate_message_response"):
        with attempt:
            logger.debug("Generating message response")
            response = await generate_text(runtime, context, model_class)
            parsed = parse_json_object_from_text(response)
            if parsed is None:
                raise UnparseableResponseError("JSON object", response)
            content = Content.model_validate(parsed)
    return content


def split_chunks(content: str, chunk_size: int = 512, bleed: int = 20) -> List[str]:
    """Split text into overlapping chunks of at most ``chunk_size`` characters"""
    splitter = RecursiveCharacterTextSplitter(chunk_size=int(chunk_size), chunk_overlap=int(bleed))
    return splitter.split_text(content)
