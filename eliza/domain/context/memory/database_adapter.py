from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from eliza.domain.models.agent_state import Actor, Goal
from eliza.domain.models.memory import Account, Memory, Participant


class DatabaseAdapter(ABC):
    """Persistence boundary used by the runtime and its memory managers.

    Identity writes must be idempotent-safe: callers check for existence
    before writing, and ``add_participant`` must not create a second row
    for the same (user, room) pair.
    """

    # Accounts

    @abstractmethod
    async def get_account_by_id(self, user_id: str) -> Optional[Account]:
        pass

    @abstractmethod
    async def create_account(self, account: Account) -> bool:
        pass

    @abstractmethod
    async def get_actor_details(self, room_id: str) -> List[Actor]:
        """Actors for every participant of a room"""
        pass

    # Rooms and participants

    @abstractmethod
    async def get_room(self, room_id: str) -> Optional[str]:
        pass

    @abstractmethod
    async def create_room(self, room_id: Optional[str] = None) -> str:
        pass

    @abstractmethod
    async def get_participants_for_account(self, user_id: str) -> List[Participant]:
        pass

    @abstractmethod
    async def get_participants_for_room(self, room_id: str) -> List[str]:
        """User ids participating in a room"""
        pass

    @abstractmethod
    async def add_participant(self, user_id: str, room_id: str) -> bool:
        pass

    @abstractmethod
    async def get_rooms_for_participant(self, user_id: str) -> List[str]:
        pass

    @abstractmethod
    async def get_rooms_for_participants(self, user_ids: Sequence[str]) -> List[str]:
        """Rooms in which every given user participates"""
        pass

    # Memories

    @abstractmethod
    async def create_memory(self, memory: Memory, table_name: str, unique: bool = False) -> None:
        pass

    @abstractmethod
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
        """Memories of a room, newest first"""
        pass

    @abstractmethod
    async def get_memories_by_room_ids(
        self,
        room_ids: Sequence[str],
        table_name: str,
        agent_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Memory]:
        pass

    @abstractmethod
    async def get_memory_by_id(self, memory_id: str, table_name: Optional[str] = None) -> Optional[Memory]:
        pass

    @abstractmethod
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
        """Most similar first, each copy annotated with ``similarity``"""
        pass

    @abstractmethod
    async def remove_memory(self, memory_id: str, table_name: str) -> None:
        pass

    @abstractmethod
    async def remove_all_memories(self, room_id: str, table_name: str) -> None:
        pass

    @abstractmethod
    async def count_memories(self, room_id: str, table_name: str, unique: bool = True) -> int:
        pass

    # Goals

    @abstractmethod
    async def get_goals(
        self,
        room_id: str,
        user_id: Optional[str] = None,
        only_in_progress: bool = True,
        count: int = 5,
    ) -> List[Goal]:
        pass

    @abstractmethod
    async def create_goal(self, goal: Goal) -> None:
        pass

    @abstractmethod
    async def update_goal(self, goal: Goal) -> None:
        pass

    @abstractmethod
    async def remove_goal(self, goal_id: str) -> None:
        pass
