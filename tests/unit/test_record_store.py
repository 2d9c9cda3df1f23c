"""Contract tests run against both record store substrates."""

import asyncio
from datetime import timedelta

import pytest
from pydantic import ValidationError

from models import Conversation, MessageRole
from tests.factories import ConversationFactory, MessageFactory


@pytest.mark.asyncio
class TestRecordStoreContract:
    """Test cases shared by DocumentRecordStore and KeyValueRecordStore."""

    async def test_load_empty(self, message_store):
        snapshot = await message_store.load()
        assert snapshot.data == {}
        assert snapshot.last_modified > 0

    async def test_upsert_and_find_by_id(self, message_store):
        message = MessageFactory(content="hello")
        await message_store.upsert(message.id, message)

        found = await message_store.find_by_id(message.id)
        assert found == message
        assert found is not message

    async def test_upsert_accepts_dict(self, message_store):
        await message_store.upsert(
            "m1",
            {"conversation_id": "c1", "role": "assistant", "content": "hi", "created_at": 1704067200000},
        )
        found = await message_store.find_by_id("m1")
        assert found.id == "m1"
        assert found.role == MessageRole.ASSISTANT
        assert found.created_at.year == 2024

    async def test_upsert_overwrites(self, message_store):
        message = MessageFactory(content="first")
        await message_store.upsert(message.id, message)
        await message_store.upsert(message.id, message.model_copy(update={"content": "second"}))

        assert (await message_store.find_by_id(message.id)).content == "second"
        assert await message_store.count() == 1

    async def test_upsert_validates_records(self, message_store):
        with pytest.raises(ValidationError):
            await message_store.upsert("bad", {"conversation_id": "c1", "role": "robot", "content": "x"})
        assert await message_store.count() == 0

    async def test_find_by_id_missing(self, message_store):
        assert await message_store.find_by_id("nope") is None

    async def test_find_many_with_predicate(self, message_store):
        for conversation_id in ("a", "a", "b"):
            message = MessageFactory(conversation_id=conversation_id)
            await message_store.upsert(message.id, message)

        assert len(await message_store.find_many()) == 3
        only_a = await message_store.find_many(lambda m: m.conversation_id == "a")
        assert [m.conversation_id for m in only_a] == ["a", "a"]

    async def test_returned_records_are_copies(self, message_store):
        message = MessageFactory(content="original")
        await message_store.upsert(message.id, message)

        fetched = (await message_store.find_many())[0]
        fetched.content = "mutated by caller"
        assert (await message_store.find_by_id(message.id)).content == "original"

    async def test_update_merges(self, conversation_store):
        conversation = ConversationFactory(title="Old")
        await conversation_store.upsert(conversation.id, conversation)

        updated = await conversation_store.update(conversation.id, {"title": "New"})
        assert updated.title == "New"
        assert updated.user_id == conversation.user_id
        assert (await conversation_store.find_by_id(conversation.id)).title == "New"

    async def test_update_missing_returns_none(self, conversation_store):
        assert await conversation_store.update("missing", {"title": "x"}) is None

    async def test_delete(self, message_store):
        message = MessageFactory()
        await message_store.upsert(message.id, message)

        assert await message_store.delete(message.id) is True
        assert await message_store.delete(message.id) is False
        assert await message_store.find_by_id(message.id) is None

    async def test_count(self, message_store):
        for role in (MessageRole.USER, MessageRole.ASSISTANT, MessageRole.USER):
            message = MessageFactory(role=role)
            await message_store.upsert(message.id, message)

        assert await message_store.count() == 3
        assert await message_store.count(lambda m: m.role == MessageRole.USER) == 2

    async def test_clear(self, message_store):
        for _ in range(3):
            message = MessageFactory()
            await message_store.upsert(message.id, message)
        await message_store.clear()
        assert await message_store.count() == 0

    async def test_last_modified_is_monotonic(self, message_store):
        stamps = []
        for _ in range(5):
            message = MessageFactory()
            await message_store.upsert(message.id, message)
            stamps.append((await message_store.load()).last_modified)
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == len(stamps)

    async def test_mutate_applies_several_changes(self, message_store):
        keep = MessageFactory(conversation_id="c1")
        drop = MessageFactory(conversation_id="c1")
        for message in (keep, drop):
            await message_store.upsert(message.id, message)

        def mutator(store):
            del store.data[drop.id]
            added = MessageFactory(conversation_id="c1", content="added")
            store.data[added.id] = added
            return added.id

        added_id = await message_store.mutate(mutator)
        ids = {m.id for m in await message_store.find_many()}
        assert ids == {keep.id, added_id}

    async def test_mutate_accepts_async_function(self, message_store):
        async def mutator(store):
            await asyncio.sleep(0)
            message = MessageFactory()
            store.data[message.id] = message
            return "done"

        assert await message_store.mutate(mutator) == "done"
        assert await message_store.count() == 1

    async def test_failed_mutate_changes_nothing(self, message_store):
        existing = MessageFactory()
        await message_store.upsert(existing.id, existing)

        def mutator(store):
            store.data.clear()
            raise RuntimeError("halfway")

        with pytest.raises(RuntimeError):
            await message_store.mutate(mutator)
        assert await message_store.count() == 1

        # The queue keeps working after a failure.
        assert await message_store.delete(existing.id) is True

    async def test_failed_mutate_discards_in_place_edits(self, conversation_store):
        conversation = ConversationFactory(title="before")
        await conversation_store.upsert(conversation.id, conversation)

        def mutator(store):
            store.data[conversation.id].title = "after"
            raise RuntimeError("halfway")

        with pytest.raises(RuntimeError):
            await conversation_store.mutate(mutator)
        assert (await conversation_store.find_by_id(conversation.id)).title == "before"
        assert not conversation_store.dirty

    async def test_concurrent_mutations_match_sequential(self, message_store):
        async def append(i):
            async def mutator(store):
                await asyncio.sleep(0)
                message = MessageFactory(content=f"m{i}", seq=len(store.data) + 1)
                store.data[message.id] = message

            await message_store.mutate(mutator)

        await asyncio.gather(*(append(i) for i in range(25)))
        messages = sorted(await message_store.find_many(), key=lambda m: m.seq)
        assert [m.seq for m in messages] == list(range(1, 26))
        assert [m.content for m in messages] == [f"m{i}" for i in range(25)]

    async def test_round_trip_preserves_fields(self, conversation_store):
        conversation = ConversationFactory(
            title="Round trip",
            preset_id="preset-1",
            version_graph={"nodes": [1, 2], "head": "v2"},
        )
        conversation.updated_at = conversation.created_at + timedelta(seconds=5)
        await conversation_store.upsert(conversation.id, conversation)

        found = await conversation_store.find_by_id(conversation.id)
        assert found == conversation
        assert found.updated_at - found.created_at == timedelta(seconds=5)

    async def test_flush_and_close(self, conversation_store):
        conversation = ConversationFactory()
        await conversation_store.upsert(conversation.id, conversation)
        await conversation_store.flush()
        await conversation_store.close()
        assert conversation_store.dirty is False
        assert isinstance(await conversation_store.find_by_id(conversation.id), Conversation)
