import pytest

from eliza.domain.models.memory import Memory, Content, now_ms
from tests.conftest import AGENT_ID, ROOM_ID, USER_ID, make_message


@pytest.mark.asyncio
async def test_get_memories_respects_count_and_newest_first(runtime):
    base = now_ms()
    for i in range(5):
        await runtime.message_manager.create_memory(make_message(f"message {i}", created_at=base + i))

    memories = await runtime.message_manager.get_memories(ROOM_ID, count=3)
    assert len(memories) == 3
    assert [m.content.text for m in memories] == ["message 4", "message 3", "message 2"]


@pytest.mark.asyncio
async def test_get_memories_time_bounds(runtime):
    base = now_ms()
    for i in range(4):
        await runtime.message_manager.create_memory(make_message(f"bounded {i}", created_at=base + i * 1000))

    memories = await runtime.message_manager.get_memories(ROOM_ID, count=10, start=base + 1000, end=base + 2000)
    assert sorted(m.content.text for m in memories) == ["bounded 1", "bounded 2"]


@pytest.mark.asyncio
async def test_create_memory_skips_existing_id(runtime):
    message = make_message("first")
    await runtime.message_manager.create_memory(message)
    await runtime.message_manager.create_memory(message.model_copy(update={"content": Content(text="second")}))

    stored = await runtime.message_manager.get_memory_by_id(message.id)
    assert stored.content.text == "first"
    assert await runtime.message_manager.count_memories(ROOM_ID, unique=False) == 1


@pytest.mark.asyncio
async def test_unique_flag_deduplicates_near_identical_content(runtime):
    await runtime.message_manager.create_memory(make_message("same text"), unique=True)
    await runtime.message_manager.create_memory(make_message("same text"), unique=True)
    await runtime.message_manager.create_memory(make_message("same text"))

    assert await runtime.message_manager.count_memories(ROOM_ID, unique=False) == 2
    assert await runtime.message_manager.count_memories(ROOM_ID, unique=True) == 1


@pytest.mark.asyncio
async def test_search_by_embedding_respects_threshold(runtime):
    texts = ["alpha beta", "gamma delta", "epsilon zeta", "eta theta"]
    for text in texts:
        memory = await runtime.message_manager.add_embedding_to_memory(make_message(text))
        await runtime.message_manager.create_memory(memory)

    query = await runtime.embeddings.aembed_query("gamma delta")
    results = await runtime.message_manager.search_memories_by_embedding(
        query, room_id=ROOM_ID, match_threshold=0.5, count=10
    )

    assert results
    assert all(m.similarity >= 0.5 for m in results)
    assert results[0].content.text == "gamma delta"
    assert results[0].similarity == pytest.approx(1.0, abs=1e-5)


@pytest.mark.asyncio
async def test_search_results_are_ranked(runtime):
    for text in ["one", "two", "three"]:
        memory = await runtime.message_manager.add_embedding_to_memory(make_message(text))
        await runtime.message_manager.create_memory(memory)

    query = await runtime.embeddings.aembed_query("two")
    results = await runtime.message_manager.search_memories_by_embedding(
        query, room_id=ROOM_ID, match_threshold=-1.0, count=3
    )
    similarities = [m.similarity for m in results]
    assert similarities == sorted(similarities, reverse=True)


@pytest.mark.asyncio
async def test_remove_memory_and_room_purge(runtime):
    keep = make_message("keep", room_id="other-room")
    drop = make_message("drop")
    also_drop = make_message("also drop")
    for memory in (keep, drop, also_drop):
        await runtime.message_manager.create_memory(memory)

    await runtime.message_manager.remove_memory(drop.id)
    assert await runtime.message_manager.get_memory_by_id(drop.id) is None

    await runtime.message_manager.remove_all_memories(ROOM_ID)
    assert await runtime.message_manager.count_memories(ROOM_ID, unique=False) == 0
    assert await runtime.message_manager.get_memory_by_id(keep.id) is not None


@pytest.mark.asyncio
async def test_get_memories_by_room_ids(runtime):
    await runtime.message_manager.create_memory(make_message("in a", room_id="room-a"))
    await runtime.message_manager.create_memory(make_message("in b", room_id="room-b"))
    await runtime.message_manager.create_memory(make_message("in c", room_id="room-c"))

    memories = await runtime.message_manager.get_memories_by_room_ids(["room-a", "room-b"])
    assert sorted(m.content.text for m in memories) == ["in a", "in b"]


@pytest.mark.asyncio
async def test_tables_are_isolated(runtime):
    memory = Memory(user_id=USER_ID, agent_id=AGENT_ID, room_id=ROOM_ID, content=Content(text="lore"))
    await runtime.lore_manager.create_memory(memory)

    assert await runtime.message_manager.get_memory_by_id(memory.id) is None
    assert await runtime.lore_manager.get_memory_by_id(memory.id) is not None


@pytest.mark.asyncio
async def test_add_embedding_returns_copy(runtime):
    message = make_message("embed me")
    embedded = await runtime.message_manager.add_embedding_to_memory(message)

    assert message.embedding is None
    assert len(embedded.embedding) == 64
