"""Unit tests for the key-value chat history store."""
from __future__ import annotations

from unittest.mock import AsyncMock, call

import pytest
from langchain_core.messages import AIMessage, HumanMessage
from pydantic import ValidationError

from dragonchat.chat_history import (
    BackendReadError,
    BackendWriteError,
    ChatHistoryConfig,
    ChatHistoryStore,
    Exchange,
    InMemoryListBackend,
    interleave_turns,
)


def _contents(messages):
    return [(type(message).__name__, message.content) for message in messages]


def test_keys_follow_session_and_memory_key(backend):
    store = ChatHistoryStore.for_session(backend, "demo-session", memory_key="chat_history")
    assert store.human_key == "demo-session:chat_history:human"
    assert store.ai_key == "demo-session:chat_history:ai"


def test_list_memory_slots_returns_configured_key(backend):
    store = ChatHistoryStore.for_session(backend, "s", memory_key="notes")
    assert store.list_memory_slots() == ["notes"]


def test_config_rejects_empty_session_and_non_positive_ttl():
    with pytest.raises(ValidationError):
        ChatHistoryConfig(session_id="")
    with pytest.raises(ValidationError):
        ChatHistoryConfig(session_id="s", ttl_seconds=0)


@pytest.mark.asyncio
async def test_two_exchanges_come_back_interleaved(store):
    await store.append({"input": "hi", "output": "hello"})
    await store.append({"input": "bye", "output": "goodbye"})

    history = await store.load_history()

    assert list(history) == ["chat_history"]
    assert _contents(history["chat_history"]) == [
        ("HumanMessage", "hi"),
        ("AIMessage", "hello"),
        ("HumanMessage", "bye"),
        ("AIMessage", "goodbye"),
    ]


@pytest.mark.asyncio
async def test_n_exchanges_yield_2n_messages_in_order(store):
    pairs = [(f"question {i}", f"answer {i}") for i in range(7)]
    for human, ai in pairs:
        await store.append({"input": human, "output": ai})

    messages = (await store.load_history())["chat_history"]

    assert len(messages) == 14
    expected = [text for pair in pairs for text in pair]
    assert [message.content for message in messages] == expected
    assert all(isinstance(m, HumanMessage) for m in messages[0::2])
    assert all(isinstance(m, AIMessage) for m in messages[1::2])


@pytest.mark.asyncio
async def test_empty_session_loads_empty_list(store):
    assert await store.load_history() == {"chat_history": []}


@pytest.mark.asyncio
async def test_interrupted_append_leaves_human_ahead(backend, store):
    await store.append({"input": "one", "output": "uno"})
    backend.fail_on.add(("rpush", store.ai_key))

    with pytest.raises(BackendWriteError):
        await store.append({"input": "two", "output": "dos"})

    backend.fail_on.clear()
    await store.append({"input": "three", "output": "tres"})
    messages = (await store.load_history())["chat_history"]

    # human list: one, two, three; ai list: uno, tres
    assert _contents(messages) == [
        ("HumanMessage", "one"),
        ("AIMessage", "uno"),
        ("HumanMessage", "two"),
        ("AIMessage", "tres"),
        ("HumanMessage", "three"),
    ]


@pytest.mark.asyncio
async def test_human_list_longer_than_ai_list(backend, store):
    for text in ("a", "b", "c"):
        await backend.rpush(store.human_key, text)
    await backend.rpush(store.ai_key, "A")

    messages = (await store.load_history())["chat_history"]

    assert _contents(messages) == [
        ("HumanMessage", "a"),
        ("AIMessage", "A"),
        ("HumanMessage", "b"),
        ("HumanMessage", "c"),
    ]


def test_interleave_tolerates_longer_ai_side():
    messages = interleave_turns(["q"], ["a1", "a2"])
    assert _contents(messages) == [
        ("HumanMessage", "q"),
        ("AIMessage", "a1"),
        ("AIMessage", "a2"),
    ]


@pytest.mark.asyncio
async def test_clear_then_load_is_empty(backend, store):
    await store.append({"input": "hi", "output": "hello"})
    await store.clear()

    assert await store.load_history() == {"chat_history": []}
    assert backend.keys() == []


@pytest.mark.asyncio
async def test_clear_on_unwritten_session_is_noop(store):
    await store.clear()
    await store.clear()
    assert await store.load_history() == {"chat_history": []}


@pytest.mark.asyncio
async def test_memory_keys_do_not_leak_into_each_other(backend):
    store_a = ChatHistoryStore.for_session(backend, "shared", memory_key="a")
    store_b = ChatHistoryStore.for_session(backend, "shared", memory_key="b")

    await store_a.append({"input": "only in a", "output": "reply in a"})

    assert await store_b.load_history() == {"b": []}
    assert len((await store_a.load_history())["a"]) == 2

    await store_b.clear()
    assert len((await store_a.load_history())["a"]) == 2


@pytest.mark.asyncio
async def test_sessions_are_isolated(backend):
    first = ChatHistoryStore.for_session(backend, "first")
    second = ChatHistoryStore.for_session(backend, "second")
    await first.append({"input": "x", "output": "y"})
    assert (await second.load_history())["chat_history"] == []


@pytest.mark.asyncio
async def test_ttl_applied_to_both_keys_after_appends():
    backend = AsyncMock()
    store = ChatHistoryStore.for_session(backend, "s", memory_key="m", ttl_seconds=300)

    await store.append({"input": "hi", "output": "hello"})

    assert backend.mock_calls == [
        call.rpush("s:m:human", "hi"),
        call.rpush("s:m:ai", "hello"),
        call.expire("s:m:human", 300),
        call.expire("s:m:ai", 300),
    ]


@pytest.mark.asyncio
async def test_no_expire_without_ttl():
    backend = AsyncMock()
    store = ChatHistoryStore.for_session(backend, "s")

    await store.append({"input": "hi", "output": "hello"})

    backend.expire.assert_not_awaited()
    assert backend.rpush.await_count == 2


@pytest.mark.asyncio
async def test_ttl_refreshed_on_every_append():
    clock = [1000.0]
    backend = InMemoryListBackend(clock=lambda: clock[0])
    store = ChatHistoryStore.for_session(backend, "s", ttl_seconds=60)

    await store.append({"input": "hi", "output": "hello"})
    clock[0] += 50
    await store.append({"input": "again", "output": "still here"})
    clock[0] += 50

    assert backend.ttl(store.human_key) == pytest.approx(10)
    assert backend.ttl(store.ai_key) == pytest.approx(10)
    assert len((await store.load_history())["chat_history"]) == 4
    assert backend.expire_calls == [
        (store.human_key, 60),
        (store.ai_key, 60),
        (store.human_key, 60),
        (store.ai_key, 60),
    ]


@pytest.mark.asyncio
async def test_expired_history_reads_as_empty():
    clock = [0.0]
    backend = InMemoryListBackend(clock=lambda: clock[0])
    store = ChatHistoryStore.for_session(backend, "s", ttl_seconds=5)

    await store.append({"input": "hi", "output": "hello"})
    clock[0] = 6.0

    assert await store.load_history() == {"chat_history": []}


@pytest.mark.asyncio
async def test_custom_exchange_fields(backend):
    store = ChatHistoryStore.for_session(backend, "s", input_field="question", output_field="answer")
    await store.append({"question": "2+2?", "answer": "4", "ignored": "x"})

    messages = (await store.load_history())["chat_history"]
    assert _contents(messages) == [("HumanMessage", "2+2?"), ("AIMessage", "4")]


@pytest.mark.asyncio
async def test_missing_exchange_field_raises_before_writing(backend, store):
    with pytest.raises(KeyError):
        await store.append({"input": "no output here"})
    assert backend.keys() == []


@pytest.mark.asyncio
async def test_read_failure_propagates(backend, store):
    backend.fail_on.add(("lrange", store.ai_key))
    with pytest.raises(BackendReadError):
        await store.load_history()


@pytest.mark.asyncio
async def test_exchange_payload_uses_configured_field_names(store):
    exchange = Exchange(human="hi", ai="hello")
    assert exchange.as_payload() == {"input": "hi", "output": "hello"}
    assert exchange.as_payload("q", "a") == {"q": "hi", "a": "hello"}

    await store.append(exchange.as_payload())
    assert len((await store.load_history())["chat_history"]) == 2


def test_exchange_rejects_non_text():
    with pytest.raises(ValidationError):
        Exchange(human="hi", ai=42)
