from typing import Dict, List, Optional, Sequence
import asyncio
import uuid
import numpy as np
import structlog

from eliza.domain.context.memory.database_adapter import DatabaseAdapter
from eliza.domain.models.agent_state import Actor, ActorDetails, Goal, GoalStatus
from eliza.domain.models.memory import Account, Memory, Participant

logger = structlog.get_logger(__name__)

# Similarity at or above which a new memory counts as a near-duplicate
DUPLICATE_THRESHOLD = 0.95


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity, 0.0 for zero or mismatched vectors"""
    va = np.asarray(a, dtype="float32")
    vb = np.asarray(b, dtype="float32")
    if va.shape != vb.shape or not va.size:
        return 0.0
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    return float(np.dot(va, vb) / norm)


class InMemoryDatabaseAdapter(DatabaseAdapter):
    """Process-local adapter used for tests and single-process agents"""

    def __init__(self):
        self.accounts: Dict[str, Account] = {}
        self.rooms: Dict[str, str] = {}
        self.participants: List[Participant] = []
        self.memories: Dict[str, Dict[str, Memory]] = {}
        self.goals: Dict[str, Goal] = {}
        self._lock = asyncio.Lock()

    # Accounts

    async def get_account_by_id(self, user_id: str) -> Optional[Account]:
        return self.accounts.get(user_id)

    async def create_account(self, account: Account) -> bool:
        async with self._lock:
            if account.id in self.accounts:
                return False
            self.accounts[account.id] = account
            return True

    async def get_actor_details(self, room_id: str) -> List[Actor]:
        actors = []
        for user_id in await self.get_participants_for_room(room_id):
            account = self.accounts.get(user_id)
            if account is None:
                continue
            details = account.details or {}
            actors.append(Actor(
                id=account.id,
                name=account.name,
                username=account.username,
                details=ActorDetails(
                    tagline=details.get("tagline", ""),
                    summary=details.get("summary", ""),
                    quote=details.get("quote", ""),
                ),
            ))
        return actors

    # Rooms and participants

    async def get_room(self, room_id: str) -> Optional[str]:
        return self.rooms.get(room_id)

    async def create_room(self, room_id: Optional[str] = None) -> str:
        room_id = room_id or str(uuid.uuid4())
        async with self._lock:
            self.rooms.setdefault(room_id, room_id)
        return room_id

    async def get_participants_for_account(self, user_id: str) -> List[Participant]:
        return [p for p in self.participants if p.user_id == user_id]

    async def get_participants_for_room(self, room_id: str) -> List[str]:
        return [p.user_id for p in self.participants if p.room_id == room_id]

    async def add_participant(self, user_id: str, room_id: str) -> bool:
        async with self._lock:
            if any(p.user_id == user_id and p.room_id == room_id for p in self.participants):
                return False
            self.participants.append(Participant(user_id=user_id, room_id=room_id))
            return True

    async def get_rooms_for_participant(self, user_id: str) -> List[str]:
        return [p.room_id for p in self.participants if p.user_id == user_id]

    async def get_rooms_for_participants(self, user_ids: Sequence[str]) -> List[str]:
        if not user_ids:
            return []
        rooms = None
        for user_id in user_ids:
            member_of = set(await self.get_rooms_for_participant(user_id))
            rooms = member_of if rooms is None else rooms & member_of
        # Keep a stable order: first membership order of the first user
        ordered = await self.get_rooms_for_participant(user_ids[0])
        return [room_id for room_id in dict.fromkeys(ordered) if room_id in rooms]

    # Memories

    def _table(self, table_name: str) -> Dict[str, Memory]:
        return self.memories.setdefault(table_name, {})

    async def create_memory(self, memory: Memory, table_name: str, unique: bool = False) -> None:
        async with self._lock:
            table = self._table(table_name)
            is_unique = not self._has_near_duplicate(table, memory)

            if unique and not is_unique:
                logger.debug("Skipping near-duplicate memory", memory_id=memory.id, table=table_name)
                return

            table[memory.id] = memory.model_copy(update={"unique": is_unique})

    def _has_near_duplicate(self, table: Dict[str, Memory], memory: Memory) -> bool:
        for existing in table.values():
            if existing.room_id != memory.room_id:
                continue
            if memory.content.text and existing.content.text == memory.content.text:
                return True
            if memory.embedding and existing.embedding:
                if cosine_similarity(memory.embedding, existing.embedding) >= DUPLICATE_THRESHOLD:
                    return True
        return False

    async def get_memories(
        self,
        room_id: str,
        table_name: str,
        agent_id: Optional[str] = None,
        count: Optional[int] = None,
        unique: bool = False,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> List[Memory]:
        results = [
            m for m in self._table(table_name).values()
            if m.room_id == room_id
            and (agent_id is None or m.agent_id == agent_id)
            and (not unique or m.unique)
            and (start is None or m.created_at >= start)
            and (end is None or m.created_at <= end)
        ]
        results.sort(key=lambda m: m.created_at, reverse=True)
        return results[:count] if count is not None else results

    async def get_memories_by_room_ids(
        self,
        room_ids: Sequence[str],
        table_name: str,
        agent_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Memory]:
        wanted = set(room_ids)
        results = [
            m for m in self._table(table_name).values()
            if m.room_id in wanted and (agent_id is None or m.agent_id == agent_id)
        ]
        results.sort(key=lambda m: m.created_at, reverse=True)
        return results[:limit] if limit is not None else results

    async def get_memory_by_id(self, memory_id: str, table_name: Optional[str] = None) -> Optional[Memory]:
        if table_name is not None:
            return self._table(table_name).get(memory_id)
        for table in self.memories.values():
            if memory_id in table:
                return table[memory_id]
        return None

    async def search_memories_by_embedding(
        self,
        embedding: Sequence[float],
        table_name: str,
        room_id: Optional[str] = None,
        agent_id: Optional[str] = None,
        match_threshold: float = 0.1,
        count: int = 10,
        unique: bool = False,
    ) -> List[Memory]:
        scored = []
        for memory in self._table(table_name).values():
            if not memory.embedding:
                continue
            if room_id is not None and memory.room_id != room_id:
                continue
            if agent_id is not None and memory.agent_id != agent_id:
                continue
            if unique and not memory.unique:
                continue

            similarity = cosine_similarity(embedding, memory.embedding)
            if similarity >= match_threshold:
                scored.append(memory.model_copy(update={"similarity": similarity}))

        scored.sort(key=lambda m: m.similarity, reverse=True)
        return scored[:count]

    async def remove_memory(self, memory_id: str, table_name: str) -> None:
        async with self._lock:
            self._table(table_name).pop(memory_id, None)

    async def remove_all_memories(self, room_id: str, table_name: str) -> None:
        async with self._lock:
            table = self._table(table_name)
            for memory_id in [k for k, m in table.items() if m.room_id == room_id]:
                del table[memory_id]

    async def count_memories(self, room_id: str, table_name: str, unique: bool = True) -> int:
        return sum(
            1 for m in self._table(table_name).values()
            if m.room_id == room_id and (not unique or m.unique)
        )

    # Goals

    async def get_goals(
        self,
        room_id: str,
        user_id: Optional[str] = None,
        only_in_progress: bool = True,
        count: int = 5,
    ) -> List[Goal]:
        goals = [
            g for g in self.goals.values()
            if g.room_id == room_id
            and (user_id is None or g.user_id == user_id)
            and (not only_in_progress or g.status == GoalStatus.IN_PROGRESS)
        ]
        return goals[:count]

    async def create_goal(self, goal: Goal) -> None:
        async with self._lock:
            self.goals[goal.id] = goal

    async def update_goal(self, goal: Goal) -> None:
        async with self._lock:
            self.goals[goal.id] = goal

    async def remove_goal(self, goal_id: str) -> None:
        async with self._lock:
            self.goals.pop(goal_id, None)
