from typing import List, Optional, TYPE_CHECKING
import asyncio
import re
import structlog

from eliza.domain.generation.embedding import embed
from eliza.domain.generation.generation import split_chunks
from eliza.domain.models.memory import Content, KnowledgeItem, Memory, string_to_uuid

if TYPE_CHECKING:
    from eliza.domain.orchestration.core.agent_runtime import AgentRuntime

logger = structlog.get_logger(__name__)

KNOWLEDGE_MATCH_THRESHOLD = 0.1
KNOWLEDGE_MATCH_COUNT = 5

# Applied in order; each pass only removes or shortens text
_PREPROCESS_RULES = [
    (re.compile(r"```[\s\S]*?```"), ""),
    (re.compile(r"`.*?`"), ""),
    (re.compile(r"#{1,6}\s*(.*)"), r"\1"),
    (re.compile(r"!\[(.*?)\]\(.*?\)"), r"\1"),
    (re.compile(r"\[(.*?)\]\(.*?\)"), r"\1"),
    (re.compile(r"(https?://)?(www\.)?([^\s]+\.[^\s]+)"), r"\3"),
    (re.compile(r"<@[!&]?\d+>"), ""),
    (re.compile(r"<[^>]*>"), ""),
    (re.compile(r"^\s*[-*_]{3,}\s*$", re.MULTILINE), ""),
    (re.compile(r"/\*[\s\S]*?\*/"), ""),
    (re.compile(r"//.*"), ""),
    (re.compile(r"\s+"), " "),
    (re.compile(r"[^a-zA-Z0-9\s\-_./:?=&]"), ""),
]


def _preprocess_once(text: str) -> str:
    for pattern, replacement in _PREPROCESS_RULES:
        text = pattern.sub(replacement, text)
    return text.strip().lower()


def preprocess(content: Optional[str]) -> str:
    """Normalize text before it is embedded.

    Rules are reapplied until the text stops changing, so the function is
    idempotent.
    """
    if not content or not isinstance(content, str):
        logger.warning("Invalid input for preprocessing")
        return ""

    text = content
    while True:
        processed = _preprocess_once(text)
        if processed == text:
            break
        text = processed
    return text


class KnowledgeManager:
    """Documents split into embedded fragments, queried by similarity"""

    def __init__(self, runtime: "AgentRuntime"):
        self.runtime = runtime

    @property
    def documents(self):
        return self.runtime.documents_manager

    @property
    def fragments(self):
        return self.runtime.knowledge_manager

    async def get(self, message: Memory) -> List[KnowledgeItem]:
        """Parent documents of the fragments closest to the message text"""

        text = message.content.text if message and message.content else None
        if not text or not isinstance(text, str) or not text.strip():
            logger.warning("Invalid message for knowledge query", message_id=getattr(message, "id", None))
            return []

        processed = preprocess(text)
        if not processed.strip():
            return []

        embedding = await embed(self.runtime, processed)
        fragments = await self.fragments.search_memories_by_embedding(
            embedding,
            room_id=self.runtime.agent_id,
            count=KNOWLEDGE_MATCH_COUNT,
            match_threshold=KNOWLEDGE_MATCH_THRESHOLD,
        )

        sources = list(dict.fromkeys(f.content.source for f in fragments if f.content.source))
        documents = await asyncio.gather(*(self.documents.get_memory_by_id(source) for source in sources))

        return [KnowledgeItem(id=doc.id, content=doc.content) for doc in documents if doc is not None]

    async def set(self, item: KnowledgeItem, chunk_size: int = 512, bleed: int = 20) -> None:
        """Store a document and one embedded fragment per chunk"""

        agent_id = self.runtime.agent_id
        await self.documents.create_memory(Memory(
            id=item.id,
            agent_id=agent_id,
            room_id=agent_id,
            user_id=agent_id,
            content=item.content,
        ))

        preprocessed = preprocess(item.content.text)
        chunks = split_chunks(preprocessed, chunk_size, bleed) if preprocessed else []

        for chunk in chunks:
            vector = await embed(self.runtime, chunk)
            await self.fragments.create_memory(Memory(
                id=string_to_uuid(item.id + chunk),
                agent_id=agent_id,
                room_id=agent_id,
                user_id=agent_id,
                content=Content(source=item.id, text=chunk),
                embedding=vector,
            ))

        logger.info("Stored knowledge document", document_id=item.id, fragments=len(chunks))
