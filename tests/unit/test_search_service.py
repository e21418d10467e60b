"""Unit tests for conversational search."""
from __future__ import annotations

import json
import uuid

import pytest

from shotshare.clients import GroundedChunk
from shotshare.core.exceptions import StreamError
from shotshare.models.schemas import ConversationMessage
from shotshare.repositories import PostRepository
from shotshare.services import DoneEvent, ErrorEvent, SearchService, TextEvent
from shotshare.services.search_service import SEARCH_SYSTEM_PROMPT, AttributionCollector
from tests.factories import PostFactory
from tests.fakes import FakeGroundedModel


def grounding(post_id: str) -> str:
    return json.dumps({"post_id": post_id, "caption": "..."})


async def collect(events):
    return [event async for event in events]


class TestAttributionCollector:
    """Test post id extraction from grounding texts."""

    def test_first_seen_order_without_duplicates(self):
        collector = AttributionCollector()
        collector.add_grounding([grounding("A"), grounding("B")])
        collector.add_grounding([grounding("A"), grounding("C")])

        assert collector.post_ids == ["A", "B", "C"]

    def test_texts_without_post_id_are_ignored(self):
        collector = AttributionCollector()
        collector.add_grounding(["no identifier here", '{"postId": "X"}'])

        assert collector.post_ids == []


class TestBuildContents:
    """Test conversation assembly."""

    def test_first_turn_carries_system_prompt(self):
        service = SearchService(FakeGroundedModel())

        contents = service.build_contents("night shots of the city")

        assert len(contents) == 1
        text = contents[0]["parts"][0]["text"]
        assert text.startswith(SEARCH_SYSTEM_PROMPT)
        assert text.endswith("User search: night shots of the city")

    def test_follow_up_is_sent_verbatim(self):
        service = SearchService(FakeGroundedModel())
        history = [
            ConversationMessage(role="user", parts="night shots"),
            ConversationMessage(role="model", parts="Try f/1.8 at ISO 3200."),
        ]

        contents = service.build_contents("what about without a tripod?", history)

        assert [turn["role"] for turn in contents] == ["user", "model", "user"]
        assert contents[-1]["parts"][0]["text"] == "what about without a tripod?"
        assert SEARCH_SYSTEM_PROMPT not in contents[-1]["parts"][0]["text"]


@pytest.mark.asyncio
class TestStreamSearch:
    """Test the event stream."""

    async def test_text_then_done_with_ordered_ids(self):
        model = FakeGroundedModel([
            GroundedChunk(text="Use a ", grounding_texts=[grounding("A")]),
            GroundedChunk(text="wide aperture.", grounding_texts=[grounding("B"), grounding("A")]),
            GroundedChunk(grounding_texts=[grounding("C")]),
        ])
        service = SearchService(model)

        events = await collect(service.stream_search("bokeh portraits"))

        assert events[:2] == [TextEvent("Use a "), TextEvent("wide aperture.")]
        done = events[-1]
        assert isinstance(done, DoneEvent)
        assert done.post_ids == ["A", "B", "C"]
        assert done.text == "Use a wide aperture."
        assert done.conversation_id.startswith("conv_")
        assert len(events) == 3

    async def test_error_is_terminal(self):
        """Text already streamed stands; the stream ends with one error and no done."""
        model = FakeGroundedModel(
            [GroundedChunk(text="Partial answer")],
            error=StreamError("quota exceeded")
        )
        service = SearchService(model)

        events = await collect(service.stream_search("anything"))

        assert events[0] == TextEvent("Partial answer")
        assert isinstance(events[-1], ErrorEvent)
        assert "quota exceeded" in events[-1].message
        assert not any(isinstance(e, DoneEvent) for e in events)
        assert model.closed

    async def test_no_grounding_gives_empty_ids(self):
        service = SearchService(FakeGroundedModel([GroundedChunk(text="Nothing matched.")]))

        events = await collect(service.stream_search("unicorns"))

        assert events[-1].post_ids == []

    async def test_closing_early_closes_model_stream(self):
        model = FakeGroundedModel([GroundedChunk(text="one"), GroundedChunk(text="two")])
        service = SearchService(model)

        events = service.stream_search("anything")
        first = await events.__anext__()
        await events.aclose()

        assert first == TextEvent("one")
        assert model.closed

    async def test_payloads(self):
        assert TextEvent("hi").to_payload() == {"type": "text", "content": "hi"}
        assert DoneEvent(["A"], "conv_1").to_payload() == {
            "type": "done",
            "postIds": ["A"],
            "conversationId": "conv_1",
        }
        assert ErrorEvent("boom").to_payload() == {"type": "error", "message": "boom"}


@pytest.mark.asyncio
class TestSearch:
    """Test the non-streaming search."""

    async def test_resolves_attributed_posts_in_order(self, db_session):
        repo = PostRepository(db_session)
        first, second = PostFactory.create_batch(2)
        for post in (first, second):
            await repo.create(post)
        await db_session.commit()

        model = FakeGroundedModel([
            GroundedChunk(
                text="Two matches.",
                grounding_texts=[grounding(str(second.id)), grounding("not-a-uuid"), grounding(str(first.id))]
            )
        ])
        result = await SearchService(model, db_session).search("harbour")

        assert [p.id for p in result.posts] == [second.id, first.id]
        assert result.ai_response == "Two matches."
        assert not result.fallback

    async def test_falls_back_to_recent_posts(self, db_session):
        repo = PostRepository(db_session)
        for post in PostFactory.create_batch(3):
            await repo.create(post)
        await db_session.commit()

        model = FakeGroundedModel([
            GroundedChunk(text="Nothing.", grounding_texts=[grounding(str(uuid.uuid4()))])
        ])
        result = await SearchService(model, db_session).search("unicorns")

        assert result.fallback
        assert len(result.posts) == 3

    async def test_stream_failure_raises(self, db_session):
        model = FakeGroundedModel(error=RuntimeError("connection reset"))

        with pytest.raises(StreamError):
            await SearchService(model, db_session).search("anything")
