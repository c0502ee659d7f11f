import pytest
from hypothesis import given, strategies as st

from eliza.domain.context.memory.knowledge_manager import preprocess
from eliza.domain.models.memory import Content, KnowledgeItem, Memory, string_to_uuid
from tests.conftest import AGENT_ID, make_message


@given(st.text())
def test_preprocess_is_idempotent(text):
    once = preprocess(text)
    assert preprocess(once) == once


def test_preprocess_runs_until_stable():
    text = "www." * 20 + "example.com"
    assert preprocess(text) == "example.com"
    assert preprocess(preprocess(text)) == "example.com"


def test_preprocess_strips_code_and_html():
    result = preprocess("hello ```code``` <b>world</b>")
    assert "code" not in result
    assert "<b>" not in result
    assert result == "hello world"


def test_preprocess_keeps_url_domain_and_path():
    assert preprocess("Visit https://www.example.com/docs today") == "visit example.com/docs today"


def test_preprocess_keeps_link_text():
    assert preprocess("[the docs](http://x.io/a)") == "the docs"


def test_preprocess_invalid_input():
    assert preprocess(None) == ""
    assert preprocess("") == ""


@pytest.mark.asyncio
async def test_set_then_get_returns_parent_document(runtime):
    item = KnowledgeItem(id="doc-paris", content=Content(text="The capital of France is Paris."))
    await runtime.knowledge.set(item)

    results = await runtime.knowledge.get(make_message("The capital of France is Paris."))

    assert "doc-paris" in [r.id for r in results]
    match = next(r for r in results if r.id == "doc-paris")
    assert match.content.text == "The capital of France is Paris."


@pytest.mark.asyncio
async def test_set_splits_long_documents_into_fragments(runtime, adapter):
    text = " ".join(f"sentence number {i} talks about topic {i}." for i in range(60))
    await runtime.knowledge.set(KnowledgeItem(id="doc-long", content=Content(text=text)), chunk_size=200, bleed=20)

    fragments = list(adapter.memories["fragments"].values())
    assert len(fragments) > 1
    assert all(f.content.source == "doc-long" for f in fragments)
    assert all(len(f.content.text) <= 200 for f in fragments)
    assert all(f.embedding for f in fragments)
    assert await runtime.documents_manager.get_memory_by_id("doc-long") is not None


@pytest.mark.asyncio
async def test_get_deduplicates_by_source(runtime):
    query = "shared knowledge"
    vector = await runtime.embeddings.aembed_query(preprocess(query))
    await runtime.documents_manager.create_memory(
        Memory(id="doc-shared", user_id=AGENT_ID, agent_id=AGENT_ID, room_id=AGENT_ID, content=Content(text=query))
    )
    for i in range(2):
        await runtime.knowledge_manager.create_memory(Memory(
            id=f"fragment-{i}",
            user_id=AGENT_ID,
            agent_id=AGENT_ID,
            room_id=AGENT_ID,
            content=Content(text=f"{query} {i}", source="doc-shared"),
            embedding=vector,
        ))

    results = await runtime.knowledge.get(make_message(query))
    assert [r.id for r in results] == ["doc-shared"]


@pytest.mark.asyncio
async def test_get_with_empty_text_returns_nothing(runtime):
    assert await runtime.knowledge.get(make_message("")) == []
    assert await runtime.knowledge.get(make_message("```only code```")) == []


@pytest.mark.asyncio
async def test_process_character_knowledge_is_idempotent(runtime, adapter):
    items = ["Ada prefers green tea.", "Ada ran the Berlin marathon."]
    await runtime.process_character_knowledge(items)
    await runtime.process_character_knowledge(items)

    documents = adapter.memories["documents"]
    assert len(documents) == 2
    assert set(documents) == {string_to_uuid(text) for text in items}
