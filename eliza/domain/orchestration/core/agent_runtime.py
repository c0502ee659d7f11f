from typing import Any, Dict, Iterable, List, Optional, Sequence
import asyncio
import time
import structlog
from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel

from eliza.domain.action.action_registry import ActionRegistry
from eliza.domain.action.base_action import (
    Action,
    BaseService,
    Evaluator,
    HandlerCallback,
    Plugin,
    Provider,
)
from eliza.domain.context.context_manager import ContextManager
from eliza.domain.context.memory.cache_memory_store import CacheManager, CacheMemoryStore
from eliza.domain.context.memory.database_adapter import DatabaseAdapter
from eliza.domain.context.memory.knowledge_manager import KnowledgeManager
from eliza.domain.context.memory.memory_manager import MemoryManager
from eliza.domain.errors import GenerationError, RuntimeConfigurationError
from eliza.domain.formatting.context import EVALUATION_TEMPLATE, compose_context
from eliza.domain.formatting.evaluators import (
    format_evaluator_examples,
    format_evaluator_names,
    format_evaluators,
)
from eliza.domain.formatting.sampling import make_rng
from eliza.domain.generation.generation import generate_text
from eliza.domain.generation.parsing import parse_json_array_from_text
from eliza.domain.generation.retry import RetryPolicy
from eliza.domain.models.agent_state import State
from eliza.domain.models.character import Character, ModelClass, ModelProviderName, default_character
from eliza.domain.models.memory import Account, Content, KnowledgeItem, Memory, string_to_uuid
from eliza.infrastructure.config.settings import RuntimeSettings, resolve_character_settings
from eliza.infrastructure.observability.logging import MetricsCollector, runtime_logger

logger = structlog.get_logger(__name__)


class AgentRuntime:
    """Single orchestration point for one agent.

    Holds the agent's identity and registered capabilities, composes
    per-turn state and dispatches actions and evaluators. Registration is
    expected to finish before messages are processed; lookups afterwards
    are read-only.
    """

    def __init__(
        self,
        database_adapter: Optional[DatabaseAdapter] = None,
        character: Optional[Character] = None,
        settings: Optional[RuntimeSettings] = None,
        model: Optional[BaseChatModel] = None,
        models: Optional[Dict[ModelClass, BaseChatModel]] = None,
        embeddings: Optional[Embeddings] = None,
        cache_manager: Optional[CacheManager] = None,
        agent_id: Optional[str] = None,
        plugins: Iterable[Plugin] = (),
        actions: Iterable[Action] = (),
        evaluators: Iterable[Evaluator] = (),
        providers: Iterable[Provider] = (),
        services: Iterable[BaseService] = (),
        managers: Iterable[MemoryManager] = (),
        conversation_length: Optional[int] = None,
        model_provider: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        if database_adapter is None:
            raise RuntimeConfigurationError("No database adapter provided")

        self.database_adapter = database_adapter
        self.settings = settings or RuntimeSettings()
        self.character = character or default_character
        self.agent_id = self.character.id or agent_id or string_to_uuid(self.character.name)
        self.conversation_length = conversation_length or self.settings.conversation_length

        provider_name = self.character.model_provider or model_provider or self.settings.model_provider
        try:
            self.model_provider = ModelProviderName(str(getattr(provider_name, "value", provider_name)).lower())
        except ValueError:
            raise RuntimeConfigurationError(f"Invalid model provider: {provider_name}") from None

        self.model = model
        self.models: Dict[ModelClass, BaseChatModel] = {ModelClass(k): v for k, v in (models or {}).items()}
        self.embeddings = embeddings
        self.cache_manager = cache_manager or CacheMemoryStore()
        self.retry_policy = retry_policy or self.settings.retry_policy()
        self.metrics = MetricsCollector()
        self._resolved_settings = resolve_character_settings(self.character)

        self.action_registry = ActionRegistry()
        self.evaluators: List[Evaluator] = []
        self.providers: List[Provider] = []
        self.services: Dict[str, BaseService] = {}
        self.memory_managers: Dict[str, MemoryManager] = {}

        self.message_manager = MemoryManager(self, "messages")
        self.description_manager = MemoryManager(self, "descriptions")
        self.lore_manager = MemoryManager(self, "lore")
        self.documents_manager = MemoryManager(self, "documents")
        self.knowledge_manager = MemoryManager(self, "fragments")
        for manager in (
            self.message_manager,
            self.description_manager,
            self.lore_manager,
            self.documents_manager,
            self.knowledge_manager,
        ):
            self.register_memory_manager(manager)

        self.knowledge = KnowledgeManager(self)
        self.context_manager = ContextManager(self)

        for plugin in plugins:
            self._register_plugin(plugin)
        for action in actions:
            self.register_action(action)
        for provider in providers:
            self.register_context_provider(provider)
        for evaluator in evaluators:
            self.register_evaluator(evaluator)
        for service in services:
            self.register_service(service)
        for manager in managers:
            self.register_memory_manager(manager)

        logger.info(
            "Agent runtime created",
            agent_id=self.agent_id,
            character=self.character.name,
            model_provider=self.model_provider.value,
            actions=len(self.action_registry),
            evaluators=len(self.evaluators),
            providers=len(self.providers),
        )

    # Registration

    @property
    def actions(self) -> List[Action]:
        return self.action_registry.get_available_actions()

    def _register_plugin(self, plugin: Plugin) -> None:
        logger.debug("Registering plugin", plugin=plugin.name)
        for action in plugin.actions:
            self.register_action(action)
        for evaluator in plugin.evaluators:
            self.register_evaluator(evaluator)
        for provider in plugin.providers:
            self.register_context_provider(provider)
        for service in plugin.services:
            self.register_service(service)

    def register_action(self, action: Action) -> None:
        logger.debug("Registering action", action=action.name)
        self.action_registry.register_action(action)

    def register_evaluator(self, evaluator: Evaluator) -> None:
        self.evaluators.append(evaluator)

    def register_context_provider(self, provider: Provider) -> None:
        self.providers.append(provider)

    def register_service(self, service: BaseService) -> None:
        service_type = service.service_type
        if service_type in self.services:
            logger.warning("Service already registered, skipping", service_type=service_type)
            return
        self.services[service_type] = service
        logger.debug("Service registered", service_type=service_type)

    def register_memory_manager(self, manager: MemoryManager) -> None:
        if not manager.table_name:
            raise RuntimeConfigurationError("Memory manager must have a table_name")

        if manager.table_name in self.memory_managers:
            logger.warning("Memory manager already registered, skipping", table=manager.table_name)
            return
        self.memory_managers[manager.table_name] = manager

    def get_memory_manager(self, table_name: str) -> Optional[MemoryManager]:
        return self.memory_managers.get(table_name)

    def get_service(self, service_type: str) -> Optional[BaseService]:
        service = self.services.get(service_type)
        if service is None:
            logger.error("Service not found", service_type=service_type)
            return None
        return service

    # Configuration

    def get_setting(self, key: str) -> Optional[Any]:
        """Character setting, with secrets taking precedence"""
        return self._resolved_settings.get(key)

    def get_conversation_length(self) -> int:
        return self.conversation_length

    def get_model(self, model_class: ModelClass = ModelClass.SMALL) -> BaseChatModel:
        model = self.models.get(ModelClass(model_class))
        if model is None:
            model = self.model
        if model is None:
            raise GenerationError(f"No chat model configured for {ModelClass(model_class).value}")
        return model

    def rng(self):
        """Sampling generator; reproducible when a random seed is configured"""
        return make_rng(self.settings.random_seed)

    async def initialize(self) -> None:
        """Bootstrap the agent's own records, start services, load knowledge"""

        await self.ensure_room_exists(self.agent_id)
        await self.ensure_user_exists(
            self.agent_id,
            self.character.username or self.character.name,
            self.character.name,
        )
        await self.ensure_participant_exists(self.agent_id, self.agent_id)

        for service_type, service in self.services.items():
            logger.info("Initializing service", service_type=service_type)
            await service.initialize(self)

        if self.character.knowledge:
            await self.process_character_knowledge(self.character.knowledge)

    async def process_character_knowledge(self, items: Sequence[str]) -> None:
        """Load knowledge strings once each, keyed by a hash of their text"""

        for item in items:
            knowledge_id = string_to_uuid(item)
            existing = await self.documents_manager.get_memory_by_id(knowledge_id)
            if existing:
                continue

            logger.info("Processing knowledge", agent_id=self.agent_id, preview=item[:100])
            await self.knowledge.set(KnowledgeItem(id=knowledge_id, content=Content(text=item)))

    # Identity

    async def ensure_user_exists(
        self,
        user_id: str,
        user_name: Optional[str],
        name: Optional[str] = None,
        email: Optional[str] = None,
        source: Optional[str] = None,
    ) -> None:
        account = await self.database_adapter.get_account_by_id(user_id)
        if account:
            return

        await self.database_adapter.create_account(Account(
            id=user_id,
            name=name or user_name or "Unknown User",
            username=user_name or name or "Unknown",
            email=email or user_id,
            details={"summary": "", "source": source} if source else {"summary": ""},
        ))
        logger.info("User created", user_id=user_id, user_name=user_name)

    async def ensure_room_exists(self, room_id: str) -> None:
        room = await self.database_adapter.get_room(room_id)
        if not room:
            await self.database_adapter.create_room(room_id)
            logger.info("Room created", room_id=room_id)

    async def ensure_participant_exists(self, user_id: str, room_id: str) -> None:
        participants = await self.database_adapter.get_participants_for_account(user_id)
        if not participants:
            await self.database_adapter.add_participant(user_id, room_id)

    async def ensure_participant_in_room(self, user_id: str, room_id: str) -> None:
        participants = await self.database_adapter.get_participants_for_room(room_id)
        if user_id not in participants:
            await self.database_adapter.add_participant(user_id, room_id)
            logger.info("Participant linked to room", user_id=user_id, room_id=room_id)

    async def ensure_connection(
        self,
        user_id: str,
        room_id: str,
        user_name: Optional[str] = None,
        user_screen_name: Optional[str] = None,
        source: Optional[str] = None,
    ) -> None:
        """Both users and the room exist, and both users are in the room"""

        await asyncio.gather(
            self.ensure_user_exists(
                self.agent_id,
                self.character.username or self.character.name,
                self.character.name,
                source=source,
            ),
            self.ensure_user_exists(
                user_id,
                user_name or f"User{user_id}",
                user_screen_name,
                source=source,
            ),
            self.ensure_room_exists(room_id),
        )
        await asyncio.gather(
            self.ensure_participant_in_room(user_id, room_id),
            self.ensure_participant_in_room(self.agent_id, room_id),
        )

    # State

    async def compose_state(self, message: Memory, additional_keys: Optional[Dict[str, Any]] = None) -> State:
        return await self.context_manager.build_state(message, additional_keys)

    async def update_recent_message_state(self, state: State) -> State:
        return await self.context_manager.update_recent_message_state(state)

    # Dispatch

    async def process_actions(
        self,
        message: Memory,
        responses: Sequence[Memory],
        state: Optional[State] = None,
        callback: Optional[HandlerCallback] = None,
    ) -> None:
        """Run the handler named by each response's action, one at a time"""

        for response in responses:
            requested = response.content.action
            if not requested:
                continue

            action = self.action_registry.resolve(requested)
            if action is None:
                logger.warning("No action found", action=requested)
                continue
            if action.handler is None:
                logger.warning("Action has no handler", action=action.name)
                continue

            started = time.perf_counter()
            try:
                await action.handler(self, message, state, {}, callback)
            except Exception as e:
                logger.error("Action handler failed", action=action.name, error=str(e), exc_info=True)
                runtime_logger.log_action_execution(
                    action_name=action.name,
                    agent_id=self.agent_id,
                    room_id=message.room_id,
                    success=False,
                    error=str(e),
                )
                self.metrics.increment_counter("actions.failed")
                continue

            duration_ms = (time.perf_counter() - started) * 1000
            runtime_logger.log_action_execution(
                action_name=action.name,
                agent_id=self.agent_id,
                room_id=message.room_id,
                duration_ms=duration_ms,
            )
            self.metrics.record_latency("action." + action.name, duration_ms)

    async def evaluate(
        self,
        message: Memory,
        state: Optional[State] = None,
        did_respond: bool = False,
        callback: Optional[HandlerCallback] = None,
    ) -> List[str]:
        """Run the evaluators that validate and that the model judges relevant.

        Evaluators without ``always_run`` are skipped when the agent did not
        respond. Selected handlers run one at a time in registration order.
        Returns the names selected for execution.
        """
        candidates = [
            e for e in self.evaluators
            if e.handler is not None and (e.always_run or did_respond)
        ]
        checks = await asyncio.gather(*(self._validate_evaluator(e, message, state) for e in candidates))
        evaluators = [e for e, ok in zip(candidates, checks) if ok]
        if not evaluators:
            return []

        base_state = state or await self.compose_state(message)
        evaluation_state = base_state.model_copy(update={
            "evaluators": format_evaluators(evaluators),
            "evaluator_names": format_evaluator_names(evaluators),
            "evaluator_examples": format_evaluator_examples(evaluators, self.rng()),
            "evaluators_data": evaluators,
        })
        template = self.character.templates.get("evaluation_template") or EVALUATION_TEMPLATE
        context = compose_context(evaluation_state, template)

        try:
            result = await generate_text(self, context, ModelClass.SMALL)
        except Exception as e:
            logger.error("Evaluator selection failed", error=str(e))
            return []

        names = parse_json_array_from_text(result)
        if names is None:
            logger.warning("Could not parse evaluator selection", response=result[:200])
            return []

        wanted = {str(name).strip().strip("'\"").upper() for name in names}
        selected = [e for e in evaluators if e.name.upper() in wanted]

        for evaluator in selected:
            await self._run_evaluator(evaluator, message, evaluation_state, callback)
        return [e.name for e in selected]

    async def _validate_evaluator(self, evaluator: Evaluator, message: Memory, state: Optional[State]) -> bool:
        try:
            return bool(await evaluator.validate(self, message, state))
        except Exception as e:
            logger.error("Evaluator validation failed", evaluator=evaluator.name, error=str(e))
            return False

    async def _run_evaluator(
        self,
        evaluator: Evaluator,
        message: Memory,
        state: State,
        callback: Optional[HandlerCallback],
    ) -> None:
        try:
            if evaluator.prepare_context:
                state = await evaluator.prepare_context(self, message, state)
            await evaluator.handler(self, message, state, {}, callback)
        except Exception as e:
            logger.error("Evaluator failed", evaluator=evaluator.name, error=str(e), exc_info=True)
            runtime_logger.log_evaluator_run(evaluator.name, self.agent_id, message.room_id, success=False, error=str(e))
            return
        runtime_logger.log_evaluator_run(evaluator.name, self.agent_id, message.room_id)
