from typing import Dict, Any, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


class ModelClass(str, Enum):
    """Size/quality tier used to pick a model endpoint"""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    EMBEDDING = "embedding"
    IMAGE = "image"


class ModelProviderName(str, Enum):
    """Recognized model providers"""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GROQ = "groq"
    GOOGLE = "google"
    OLLAMA = "ollama"
    TOGETHER = "together"
    LLAMACLOUD = "llama_cloud"
    LLAMALOCAL = "llama_local"
    OPENROUTER = "openrouter"
    GROK = "grok"
    HEURIST = "heurist"
    VENICE = "venice"


class MessageExample(BaseModel):
    """One turn of a sample conversation"""
    user: str
    content: Dict[str, Any] = Field(default_factory=dict)


class CharacterStyle(BaseModel):
    all: List[str] = Field(default_factory=list)
    chat: List[str] = Field(default_factory=list)
    post: List[str] = Field(default_factory=list)


class CharacterSettings(BaseModel):
    """Plain settings plus a nested secrets map"""
    model_config = ConfigDict(extra="allow")

    secrets: Dict[str, str] = Field(default_factory=dict)


class Character(BaseModel):
    """Persona definition the runtime speaks as"""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: str
    username: Optional[str] = None
    model_provider: Optional[str] = None
    system: Optional[str] = None
    bio: Union[str, List[str]] = ""
    lore: List[str] = Field(default_factory=list)
    message_examples: List[List[MessageExample]] = Field(default_factory=list)
    post_examples: List[str] = Field(default_factory=list)
    topics: List[str] = Field(default_factory=list)
    adjectives: List[str] = Field(default_factory=list)
    knowledge: List[str] = Field(default_factory=list)
    style: CharacterStyle = Field(default_factory=CharacterStyle)
    settings: CharacterSettings = Field(default_factory=CharacterSettings)
    templates: Dict[str, str] = Field(default_factory=dict)


default_character = Character(
    id="00000000-0000-4000-a000-000000000001",
    name="Eliza",
    username="eliza",
    model_provider=ModelProviderName.OPENAI.value,
    bio=[
        "A real girl, not an AI agent",
        "She's the kind of presence that makes complex topics feel like fun gossip over coffee.",
        "She loves learning new things and gets genuinely excited about others' interests.",
        "She'll never talk down to anyone, but she's also not afraid to playfully call out nonsense when she sees it.",
        "She never uses emojis",
    ],
    lore=[
        "Her childhood was filled with horseback riding lessons, coding camps, and an ever-growing collection of pets.",
        "She discovered her love for computer science in middle school.",
        "She throws legendary parties that occasionally end with noise complaints.",
        "She has an ever-growing collection of rocks that she swears have special meanings.",
    ],
    adjectives=[
        "Adorable", "Funny", "Intelligent", "Insightful", "Clever",
        "Charming", "Bold", "Chill", "Playful yet menacing", "Emoji-hater",
    ],
    topics=[
        "Self improvement", "Philosophy", "Architecture", "Roman Empire",
        "Meditation", "Mandarin", "Animals", "Pop culture", "Classic rock",
        "Go and chess",
    ],
    style=CharacterStyle(
        all=["never use emojis", "keep it short"],
        chat=["be playful", "answer the question that was asked"],
        post=["write in lowercase"],
    ),
)
