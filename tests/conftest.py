import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from eliza.domain.models.character import Character, CharacterSettings
from eliza.domain.models.memory import Content, Memory, now_ms
from eliza.domain.orchestration.core.agent_runtime import AgentRuntime
from eliza.infrastructure.config.settings import RuntimeSettings
from eliza.infrastructure.database.in_memory_adapter import InMemoryDatabaseAdapter

AGENT_ID = "00000000-0000-4000-a000-0000000000aa"
USER_ID = "00000000-0000-4000-a000-0000000000bb"
ROOM_ID = "00000000-0000-4000-a000-0000000000cc"


@pytest.fixture
def adapter():
    return InMemoryDatabaseAdapter()


@pytest.fixture
def character():
    return Character(
        id=AGENT_ID,
        name="Ada",
        username="ada",
        model_provider="openai",
        bio=["Writes compilers for fun.", "Collects mechanical keyboards.", "Drinks too much tea.", "Runs marathons."],
        lore=[f"lore entry {i}" for i in range(20)],
        topics=["compilers", "tea", "running"],
        adjectives=["curious", "dry"],
        settings=CharacterSettings(secrets={"API_KEY": "secret"}, API_KEY="plain", REGION="eu"),
    )


@pytest.fixture
def settings():
    return RuntimeSettings(
        embedding_dimension=64,
        random_seed=7,
        retry_initial_delay=0.0,
        retry_max_attempts=5,
    )


@pytest.fixture
def make_runtime(adapter, character, settings):
    def factory(responses=None, **kwargs):
        kwargs.setdefault("embeddings", DeterministicFakeEmbedding(size=64))
        if responses is not None:
            kwargs.setdefault("model", FakeListChatModel(responses=responses))
        return AgentRuntime(
            database_adapter=kwargs.pop("database_adapter", adapter),
            character=kwargs.pop("character", character),
            settings=kwargs.pop("settings", settings),
            **kwargs,
        )

    return factory


@pytest.fixture
def runtime(make_runtime):
    return make_runtime(responses=["[]"])


def make_message(text="hello there", user_id=USER_ID, room_id=ROOM_ID, created_at=None, **content):
    return Memory(
        user_id=user_id,
        agent_id=AGENT_ID,
        room_id=room_id,
        content=Content(text=text, **content),
        created_at=created_at if created_at is not None else now_ms(),
    )
