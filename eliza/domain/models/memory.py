from typing import Dict, Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field
import time
import uuid


def string_to_uuid(text: str) -> str:
    """Derive a stable UUID string from arbitrary text"""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, str(text)))


def now_ms() -> int:
    """Current time as epoch milliseconds"""
    return int(time.time() * 1000)


class Media(BaseModel):
    """Attachment carried by a message"""
    id: str = Field(description="Attachment identifier")
    url: str = ""
    title: str = ""
    source: str = ""
    description: str = ""
    text: str = ""
    content_type: Optional[str] = None


class Content(BaseModel):
    """Message payload: free text plus optional structured fields"""
    model_config = ConfigDict(extra="allow")

    text: str = ""
    action: Optional[str] = None
    source: Optional[str] = Field(None, description="Origin platform, or parent document id for fragments")
    url: Optional[str] = None
    in_reply_to: Optional[str] = None
    attachments: List[Media] = Field(default_factory=list)


class Memory(BaseModel):
    """Timestamped, room-scoped record"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    agent_id: str
    room_id: str
    content: Content = Field(default_factory=Content)
    created_at: int = Field(default_factory=now_ms, description="Epoch milliseconds")
    embedding: Optional[List[float]] = None
    similarity: Optional[float] = Field(None, description="Populated by similarity queries only")
    unique: bool = True


class KnowledgeItem(BaseModel):
    """A knowledge document as returned to callers"""
    id: str
    content: Content


class Account(BaseModel):
    """Registered identity behind an actor"""
    id: str
    name: str = ""
    username: str = ""
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class Participant(BaseModel):
    """Membership of an account in a room"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    room_id: str
