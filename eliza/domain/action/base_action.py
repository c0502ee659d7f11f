from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, TYPE_CHECKING

from eliza.domain.models.agent_state import State
from eliza.domain.models.memory import Content, Memory

if TYPE_CHECKING:
    from eliza.domain.orchestration.core.agent_runtime import AgentRuntime


HandlerCallback = Callable[[Content], Awaitable[List[Memory]]]
Validator = Callable[["AgentRuntime", Memory, Optional[State]], Awaitable[bool]]
Handler = Callable[
    ["AgentRuntime", Memory, Optional[State], Dict[str, Any], Optional[HandlerCallback]],
    Awaitable[Any],
]


@dataclass
class ActionExample:
    """Sample message line; ``user`` may be a ``{{userN}}`` placeholder"""
    user: str
    content: Content


@dataclass
class EvaluationExample:
    context: str
    messages: List[ActionExample]
    outcome: str


@dataclass
class Action:
    """Named capability the model can trigger from a response"""
    name: str
    description: str
    validate: Validator
    handler: Optional[Handler] = None
    similes: List[str] = field(default_factory=list)
    examples: List[List[ActionExample]] = field(default_factory=list)


@dataclass
class Evaluator:
    """Post-response hook selected by validation and model relevance"""
    name: str
    description: str
    validate: Validator
    handler: Optional[Handler] = None
    similes: List[str] = field(default_factory=list)
    examples: List[EvaluationExample] = field(default_factory=list)
    always_run: bool = False
    prepare_context: Optional[Callable[["AgentRuntime", Memory, State], Awaitable[State]]] = None


@dataclass
class Provider:
    """Contributes free text to composed state"""
    name: str
    provide: Callable[["AgentRuntime", Optional[Memory], Optional[State]], Awaitable[Optional[str]]]


class BaseService(ABC):
    """Base class for long-lived runtime services"""

    service_type: str = ""

    @abstractmethod
    async def initialize(self, runtime: "AgentRuntime") -> None:
        """Prepare the service for use by the runtime"""
        pass


@dataclass
class Plugin:
    """Bundle of capabilities registered together"""
    name: str
    description: str = ""
    actions: List[Action] = field(default_factory=list)
    evaluators: List[Evaluator] = field(default_factory=list)
    providers: List[Provider] = field(default_factory=list)
    services: List[BaseService] = field(default_factory=list)
