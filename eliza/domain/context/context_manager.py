from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING
import asyncio
import time
import structlog

from eliza.domain.context.provider_aggregator import get_providers
from eliza.domain.formatting.actions import (
    EXAMPLE_NAMES,
    compose_action_examples,
    format_action_names,
    format_actions,
    render_example_conversation,
)
from eliza.domain.formatting.context import add_header
from eliza.domain.formatting.evaluators import (
    format_evaluator_examples,
    format_evaluator_names,
    format_evaluators,
)
from eliza.domain.formatting.goals import format_goals_as_string, get_goals
from eliza.domain.formatting.messages import (
    format_actors,
    format_attachments,
    format_messages,
    get_actor_name,
)
from eliza.domain.formatting.posts import format_posts
from eliza.domain.formatting.sampling import choice, sample
from eliza.domain.action.base_action import ActionExample
from eliza.domain.models.agent_state import Actor, State
from eliza.domain.models.memory import Content, Media, Memory
from eliza.infrastructure.observability.logging import runtime_logger

if TYPE_CHECKING:
    from eliza.domain.orchestration.core.agent_runtime import AgentRuntime

logger = structlog.get_logger(__name__)

HIDDEN_ATTACHMENT_TEXT = "[Hidden]"


def collect_attachments(
    recent_messages: Sequence[Memory],
    window_seconds: int,
    current: Optional[Memory] = None,
) -> List[Media]:
    """Attachments visible to the model this turn.

    Everything attached in the recent window is kept. Attachments from
    messages older than ``window_seconds`` before the newest
    attachment-bearing message keep their structure with text masked.
    The current message's own attachments are always visible.
    """
    with_attachments = [m for m in recent_messages if m.content.attachments]
    collected: Dict[str, Media] = {}

    if with_attachments:
        newest = max(m.created_at for m in with_attachments)
        cutoff = newest - window_seconds * 1000
        for memory in sorted(with_attachments, key=lambda m: m.created_at):
            for attachment in memory.content.attachments:
                if memory.created_at < cutoff:
                    attachment = attachment.model_copy(update={"text": HIDDEN_ATTACHMENT_TEXT})
                collected[attachment.id] = attachment

    if current is not None:
        for attachment in current.content.attachments:
            collected[attachment.id] = attachment

    return list(collected.values())


class ContextManager:
    """Assembles per-turn State from memory stores, character and plugins"""

    def __init__(self, runtime: "AgentRuntime"):
        self.runtime = runtime

    async def build_state(self, message: Memory, additional_keys: Optional[Dict[str, Any]] = None) -> State:
        """Build the full snapshot for one inbound message"""

        runtime = self.runtime
        settings = runtime.settings
        character = runtime.character
        room_id = message.room_id
        user_id = message.user_id
        started = time.perf_counter()
        rng = runtime.rng()

        logger.debug("Composing state", room_id=room_id, user_id=user_id)

        actors_data, recent_messages_data, goals_data = await asyncio.gather(
            runtime.database_adapter.get_actor_details(room_id),
            runtime.message_manager.get_memories(
                room_id=room_id,
                count=runtime.get_conversation_length(),
                unique=False,
            ),
            get_goals(runtime, room_id=room_id, only_in_progress=False, count=settings.goals_count),
        )

        sender_name = get_actor_name(actors_data, user_id) or ""
        agent_name = get_actor_name(actors_data, runtime.agent_id) or character.name

        attachments_data = collect_attachments(
            recent_messages_data,
            settings.attachment_window_seconds,
            current=message,
        )

        recent_interactions_data, knowledge_data = await asyncio.gather(
            self.get_recent_interactions(user_id),
            runtime.knowledge.get(message),
        )
        interaction_actors = await self._actors_for(recent_interactions_data, actors_data)

        # Character flavor, sampled fresh each turn
        bio = character.bio
        if isinstance(bio, list):
            bio = " ".join(sample(bio, settings.bio_lines, rng))
        lore = "\n".join(sample(character.lore, settings.lore_count, rng))
        post_examples = "\n".join(sample(character.post_examples, settings.post_examples_count, rng))
        message_examples = "\n\n".join(
            render_example_conversation(
                [ActionExample(user=line.user, content=Content.model_validate(line.content)) for line in example],
                sample(EXAMPLE_NAMES, 5, rng),
            )
            for example in sample(character.message_examples, settings.message_examples_count, rng)
        )
        topics = sample(character.topics, 5, rng)

        initial_state = State(
            agent_id=runtime.agent_id,
            room_id=room_id,
            user_id=user_id,
            agent_name=agent_name,
            sender_name=sender_name,
            bio=bio,
            lore=lore,
            adjective=choice(character.adjectives, rng) or "",
            topic=choice(character.topics, rng) or "",
            topics=f"{character.name} is interested in " + ", ".join(topics) if topics else "",
            message_directions=add_header(
                f"# Message Directions for {character.name}",
                "\n".join(character.style.all + character.style.chat),
            ),
            post_directions=add_header(
                f"# Post Directions for {character.name}",
                "\n".join(character.style.all + character.style.post),
            ),
            character_post_examples=add_header(f"# Example Posts for {character.name}", post_examples),
            character_message_examples=add_header(f"# Example Conversations for {character.name}", message_examples),
            actors=add_header("# Actors", format_actors(actors_data)),
            actors_data=actors_data,
            goals=add_header(
                f"# Goals\n{agent_name} should prioritize accomplishing the objectives that are in progress.",
                format_goals_as_string(goals_data),
            ),
            goals_data=goals_data,
            recent_messages=add_header("# Conversation Messages", format_messages(recent_messages_data, actors_data)),
            recent_messages_data=recent_messages_data,
            recent_posts=add_header(
                "# Posts in Thread",
                format_posts(recent_messages_data, actors_data, conversation_header=False),
            ),
            recent_interactions=add_header(
                f"# Recent interactions between {sender_name or 'the user'} and {agent_name}",
                format_messages(recent_interactions_data, interaction_actors),
            ),
            recent_interactions_data=recent_interactions_data,
            recent_message_interactions=self._format_message_interactions(recent_interactions_data, interaction_actors),
            recent_post_interactions=format_posts(recent_interactions_data, interaction_actors, conversation_header=True),
            attachments=add_header("# Attachments", format_attachments(attachments_data)),
            attachments_data=attachments_data,
            knowledge="\n".join(item.content.text for item in knowledge_data),
            knowledge_data=knowledge_data,
        )
        if additional_keys:
            initial_state = initial_state.model_copy(update=additional_keys)

        action_state = await self._capability_state(message, initial_state, agent_name, rng)
        action_state.update(additional_keys or {})
        state = initial_state.model_copy(update=action_state)

        duration_ms = (time.perf_counter() - started) * 1000
        runtime.metrics.record_latency("compose_state", duration_ms)
        runtime_logger.log_state_composed(
            agent_id=runtime.agent_id,
            room_id=room_id,
            duration_ms=duration_ms,
            state_summary=state.get_state_summary(),
        )
        return state

    async def update_recent_message_state(self, state: State) -> State:
        """Copy of ``state`` with the recent-message window and attachments refreshed"""

        runtime = self.runtime
        recent = await runtime.message_manager.get_memories(
            room_id=state.room_id,
            count=runtime.get_conversation_length(),
            unique=False,
        )
        recent = [memory.model_copy(update={"embedding": None}) for memory in recent]
        attachments_data = collect_attachments(recent, runtime.settings.attachment_window_seconds)

        return state.model_copy(update={
            "recent_messages": add_header("# Conversation Messages", format_messages(recent, state.actors_data)),
            "recent_messages_data": recent,
            "attachments": add_header("# Attachments", format_attachments(attachments_data)),
            "attachments_data": attachments_data,
        })

    async def get_recent_interactions(self, user_id: str) -> List[Memory]:
        """Newest-first messages from rooms shared by the user and the agent"""

        runtime = self.runtime
        if not user_id or user_id == runtime.agent_id:
            return []

        rooms = await runtime.database_adapter.get_rooms_for_participants([user_id, runtime.agent_id])
        if not rooms:
            return []

        memories = await runtime.message_manager.get_memories_by_room_ids(rooms)
        memories = sorted(memories, key=lambda m: m.created_at, reverse=True)
        return memories[:runtime.settings.recent_interactions_limit]

    async def _actors_for(self, memories: Sequence[Memory], known: Sequence[Actor]) -> List[Actor]:
        runtime = self.runtime
        actors = {actor.id: actor for actor in known}
        missing = [uid for uid in dict.fromkeys(m.user_id for m in memories) if uid not in actors]
        accounts = await asyncio.gather(*(runtime.database_adapter.get_account_by_id(uid) for uid in missing))

        for account in accounts:
            if account is not None:
                actors[account.id] = Actor(id=account.id, name=account.name, username=account.username)
        if runtime.agent_id not in actors:
            actors[runtime.agent_id] = Actor(id=runtime.agent_id, name=runtime.character.name)
        return list(actors.values())

    def _format_message_interactions(self, memories: Sequence[Memory], actors: Sequence[Actor]) -> str:
        usernames = {actor.id: actor.username or actor.name for actor in actors}
        lines = []
        for memory in memories:
            if memory.user_id == self.runtime.agent_id:
                sender = self.runtime.character.name
            else:
                sender = usernames.get(memory.user_id) or "unknown"
            lines.append(f"{sender}: {memory.content.text}")
        return "\n".join(lines)

    async def _capability_state(self, message: Memory, state: State, agent_name: str, rng) -> Dict[str, Any]:
        """Advertised actions/evaluators plus provider output"""

        runtime = self.runtime
        action_checks, evaluator_checks, providers = await asyncio.gather(
            asyncio.gather(*(self._validate(a, "action", message, state) for a in runtime.actions)),
            asyncio.gather(*(self._validate(e, "evaluator", message, state) for e in runtime.evaluators)),
            get_providers(runtime, message, state),
        )

        actions_data = [a for a, ok in zip(runtime.actions, action_checks) if ok]
        evaluators_data = [e for e, ok in zip(runtime.evaluators, evaluator_checks) if ok]

        return {
            "action_names": "Possible response actions: " + format_action_names(actions_data, rng) if actions_data else "",
            "actions": add_header(
                "# Available Actions",
                format_actions(actions_data, rng),
            ),
            "action_examples": add_header(
                "# Action Examples",
                compose_action_examples(actions_data, runtime.settings.action_examples_count, rng),
            ),
            "actions_data": actions_data,
            "evaluators": add_header("# Available Evaluators", format_evaluators(evaluators_data)),
            "evaluator_names": format_evaluator_names(evaluators_data),
            "evaluator_examples": add_header(
                "# Evaluator Examples",
                format_evaluator_examples(evaluators_data, rng),
            ),
            "evaluators_data": evaluators_data,
            "providers": add_header(
                f"# Additional Information About {agent_name} and The World",
                providers,
            ),
        }

    async def _validate(self, item: Any, kind: str, message: Memory, state: State) -> bool:
        try:
            return bool(await item.validate(self.runtime, message, state))
        except Exception as e:
            logger.error("Validation failed", kind=kind, name=item.name, error=str(e))
            return False
