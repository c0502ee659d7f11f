from typing import Dict, Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum
import uuid

from eliza.domain.models.memory import Memory, Media


class GoalStatus(str, Enum):
    """Goal lifecycle status"""
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    FAILED = "FAILED"


class Objective(BaseModel):
    """Single step of a goal"""
    id: Optional[str] = None
    description: str
    completed: bool = False


class Goal(BaseModel):
    """Named objective tracked per room and user"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    room_id: str
    user_id: Optional[str] = None
    name: str
    status: GoalStatus = Field(default=GoalStatus.IN_PROGRESS)
    objectives: List[Objective] = Field(default_factory=list)

    def is_finished(self) -> bool:
        return self.status in (GoalStatus.DONE, GoalStatus.FAILED)


class ActorDetails(BaseModel):
    tagline: str = ""
    summary: str = ""
    quote: str = ""


class Actor(BaseModel):
    """Display identity of a room participant, rebuilt per request"""
    id: str
    name: str = ""
    username: str = ""
    details: ActorDetails = Field(default_factory=ActorDetails)


class State(BaseModel):
    """Per-turn snapshot handed to templates and plugins.

    Every documented key has a default so templates never see a missing
    value. Callers may attach extra keys; derived copies are made with
    ``model_copy(update=...)`` and the original is left untouched.
    """
    model_config = ConfigDict(extra="allow")

    agent_id: str = ""
    room_id: str = ""
    user_id: str = ""
    agent_name: str = ""
    sender_name: str = ""

    # Character flavor
    bio: str = ""
    lore: str = ""
    adjective: str = ""
    topic: str = ""
    topics: str = ""
    message_directions: str = ""
    post_directions: str = ""
    character_post_examples: str = ""
    character_message_examples: str = ""

    # Room context
    actors: str = ""
    actors_data: List[Actor] = Field(default_factory=list)
    goals: str = ""
    goals_data: List[Goal] = Field(default_factory=list)
    recent_messages: str = ""
    recent_messages_data: List[Memory] = Field(default_factory=list)
    recent_posts: str = ""
    recent_interactions: str = ""
    recent_interactions_data: List[Memory] = Field(default_factory=list)
    recent_message_interactions: str = ""
    recent_post_interactions: str = ""
    attachments: str = ""
    attachments_data: List[Media] = Field(default_factory=list)
    knowledge: str = ""
    knowledge_data: List[Any] = Field(default_factory=list)

    # Capabilities advertised to the model
    action_names: str = ""
    actions: str = ""
    action_examples: str = ""
    actions_data: List[Any] = Field(default_factory=list)
    evaluators: str = ""
    evaluator_names: str = ""
    evaluator_examples: str = ""
    evaluators_data: List[Any] = Field(default_factory=list)
    providers: str = ""

    def get(self, key: str, default: Any = None) -> Any:
        """Dict-style lookup covering declared and extra keys"""
        value = getattr(self, key, None)
        return default if value is None else value

    def get_state_summary(self) -> Dict[str, Any]:
        """Get a compact summary for logging"""
        return {
            "agent_id": self.agent_id,
            "room_id": self.room_id,
            "recent_messages": len(self.recent_messages_data),
            "goals": len(self.goals_data),
            "actors": len(self.actors_data),
            "actions": len(self.actions_data),
            "evaluators": len(self.evaluators_data),
            "knowledge": len(self.knowledge_data),
        }
