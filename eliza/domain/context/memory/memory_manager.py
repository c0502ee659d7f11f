from typing import List, Optional, Sequence, TYPE_CHECKING
import structlog

from eliza.domain.generation.embedding import embed
from eliza.domain.models.memory import Memory

if TYPE_CHECKING:
    from eliza.domain.orchestration.core.agent_runtime import AgentRuntime

logger = structlog.get_logger(__name__)


class MemoryManager:
    """Room-scoped access to one logical table of memories.

    Adapter errors propagate unchanged; retries belong to callers.
    """

    def __init__(self, runtime: "AgentRuntime", table_name: str):
        self.runtime = runtime
        self.table_name = table_name

    @property
    def adapter(self):
        return self.runtime.database_adapter

    async def add_embedding_to_memory(self, memory: Memory) -> Memory:
        """Return a copy of the memory with its embedding filled in"""

        if memory.embedding:
            return memory

        vector = await embed(self.runtime, memory.content.text)
        return memory.model_copy(update={"embedding": vector})

    async def create_memory(self, memory: Memory, unique: bool = False) -> None:
        existing = await self.adapter.get_memory_by_id(memory.id, self.table_name)
        if existing:
            logger.debug("Memory already exists, skipping", memory_id=memory.id, table=self.table_name)
            return

        await self.adapter.create_memory(memory, self.table_name, unique)

    async def get_memories(
        self,
        room_id: str,
        count: int = 10,
        unique: bool = True,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> List[Memory]:
        """Newest-first memories of a room, at most ``count``"""

        return await self.adapter.get_memories(
            room_id=room_id,
            table_name=self.table_name,
            agent_id=self.runtime.agent_id,
            count=count,
            unique=unique,
            start=start,
            end=end,
        )

    async def get_memories_by_room_ids(self, room_ids: Sequence[str], limit: Optional[int] = None) -> List[Memory]:
        return await self.adapter.get_memories_by_room_ids(
            room_ids=list(room_ids),
            table_name=self.table_name,
            agent_id=self.runtime.agent_id,
            limit=limit,
        )

    async def get_memory_by_id(self, memory_id: str) -> Optional[Memory]:
        return await self.adapter.get_memory_by_id(memory_id, self.table_name)

    async def search_memories_by_embedding(
        self,
        embedding: Sequence[float],
        room_id: Optional[str] = None,
        match_threshold: float = 0.1,
        count: int = 10,
        unique: bool = False,
    ) -> List[Memory]:
        """Memories ranked by similarity, none below ``match_threshold``"""

        return await self.adapter.search_memories_by_embedding(
            embedding=embedding,
            table_name=self.table_name,
            room_id=room_id,
            agent_id=self.runtime.agent_id,
            match_threshold=match_threshold,
            count=count,
            unique=unique,
        )

    async def remove_memory(self, memory_id: str) -> None:
        await self.adapter.remove_memory(memory_id, self.table_name)

    async def remove_all_memories(self, room_id: str) -> None:
        await self.adapter.remove_all_memories(room_id, self.table_name)

    async def count_memories(self, room_id: str, unique: bool = True) -> int:
        return await self.adapter.count_memories(room_id, self.table_name, unique)
