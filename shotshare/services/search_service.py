"""Conversational search grounded on the retrieval index."""
import asyncio
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shotshare.clients.base import GroundedModelClient
from shotshare.core.config import settings
from shotshare.core.exceptions import StreamError
from shotshare.models.database import Post
from shotshare.models.schemas import ConversationMessage
from shotshare.repositories import PostRepository

logger = logging.getLogger(__name__)

POST_ID_PATTERN = re.compile(r'"post_id":\s*"([^"]+)"')

SEARCH_SYSTEM_PROMPT = """You are an assistant who knows camera settings well. Explain things so that beginners can follow.
Analyze the EXIF data of the photos found by the search and answer in this format:

## 📸 Recommended camera settings
Settings: f/[value] / [shutter speed] / [focal length]mm / ISO[value]
Camera: [model] | Lens: [lens name]

### Why these settings?
• f/[value]: [why this aperture, for beginners]
• [shutter speed]: [why this shutter speed, for beginners]
• [focal length]mm: [why this focal length, for beginners]

## 💡 Shooting tips

### 📸 Composition
• [composition tip 1]
• [composition tip 2]

### 💡 Using light
• [lighting tip 1]
• [lighting tip 2]

### ⚙️ Technique
• [technique 1]
• [technique 2]

Keep the whole answer concise, around 300 characters.
Always use the actual values when EXIF data is available.
Show "-" for any value that is unknown."""


@dataclass
class TextEvent:
    content: str

    def to_payload(self) -> Dict[str, Any]:
        return {"type": "text", "content": self.content}


@dataclass
class DoneEvent:
    post_ids: List[str]
    conversation_id: str
    text: str = ""

    def to_payload(self) -> Dict[str, Any]:
        return {
            "type": "done",
            "postIds": self.post_ids,
            "conversationId": self.conversation_id,
        }


@dataclass
class ErrorEvent:
    message: str

    def to_payload(self) -> Dict[str, Any]:
        return {"type": "error", "message": self.message}


SearchEvent = Union[TextEvent, DoneEvent, ErrorEvent]


@dataclass
class AttributionCollector:
    """Accumulates answer text and attributed post ids in first-seen order."""

    text_parts: List[str] = field(default_factory=list)
    post_ids: List[str] = field(default_factory=list)
    _seen: set = field(default_factory=set)

    @property
    def text(self) -> str:
        return "".join(self.text_parts)

    def add_text(self, fragment: str):
        self.text_parts.append(fragment)

    def add_grounding(self, grounding_texts: Sequence[str]):
        for grounding_text in grounding_texts:
            match = POST_ID_PATTERN.search(grounding_text)
            if not match:
                continue
            post_id = match.group(1)
            if post_id not in self._seen:
                self._seen.add(post_id)
                self.post_ids.append(post_id)


@dataclass
class SearchResult:
    posts: List[Post]
    ai_response: str
    conversation_id: str
    fallback: bool = False


def new_conversation_id() -> str:
    return f"conv_{uuid.uuid4().hex}"


def _as_turn(message: Union[ConversationMessage, Dict[str, str]]) -> Dict[str, Any]:
    if isinstance(message, ConversationMessage):
        role, text = message.role, message.parts
    else:
        role, text = message["role"], message["parts"]
    return {"role": role, "parts": [{"text": text}]}


class SearchService:
    """Streams grounded answers and attributes them to posts."""

    def __init__(
        self,
        model: GroundedModelClient,
        db: Optional[AsyncSession] = None
    ):
        """
        Initialize search service.

        Args:
            model: Grounded generative model
            db: Database session, needed only by the non-streaming ``search``
        """
        self.model = model
        self.db = db

    def build_contents(
        self,
        query: str,
        history: Optional[Sequence[Union[ConversationMessage, Dict[str, str]]]] = None
    ) -> List[Dict[str, Any]]:
        """
        Prior turns followed by the new query.

        The first turn of a conversation carries the system prompt.
        """
        contents = [_as_turn(message) for message in (history or [])]

        user_query = query if history else f"{SEARCH_SYSTEM_PROMPT}\n\n---\n\nUser search: {query}"
        contents.append({"role": "user", "parts": [{"text": user_query}]})
        return contents

    async def stream_search(
        self,
        query: str,
        history: Optional[Sequence[Union[ConversationMessage, Dict[str, str]]]] = None
    ) -> AsyncIterator[SearchEvent]:
        """
        Stream answer text, then a terminal event.

        Text fragments are yielded as they arrive. The stream always ends with
        exactly one ``DoneEvent`` (ordered, de-duplicated post ids) or one
        ``ErrorEvent``; text already yielded before an error stands.
        Closing this generator early closes the model stream.
        """
        contents = self.build_contents(query, history)
        collector = AttributionCollector()
        stream = self.model.stream(contents)

        logger.info(f"Grounded search started ({len(contents)} turn(s))")

        try:
            try:
                async for chunk in stream:
                    if chunk.text:
                        collector.add_text(chunk.text)
                        yield TextEvent(content=chunk.text)
                    if chunk.grounding_texts:
                        collector.add_grounding(chunk.grounding_texts)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                message = e.message if isinstance(e, StreamError) else str(e)
                logger.error(f"Search stream failed after {len(collector.text)} chars: {message}")
                yield ErrorEvent(message=message)
                return
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        logger.info(f"Search stream finished with {len(collector.post_ids)} attributed post(s)")
        yield DoneEvent(
            post_ids=collector.post_ids,
            conversation_id=new_conversation_id(),
            text=collector.text
        )

    async def search(
        self,
        query: str,
        history: Optional[Sequence[Union[ConversationMessage, Dict[str, str]]]] = None
    ) -> SearchResult:
        """
        Run the grounded search to completion and resolve attributed posts.

        Attributed ids are resolved against public posts in attribution
        order. When nothing is attributed, the most recent public posts are
        returned and ``fallback`` is set.

        Raises:
            StreamError: If the model call fails
        """
        if self.db is None:
            raise RuntimeError("SearchService.search requires a database session")

        done: Optional[DoneEvent] = None
        async for event in self.stream_search(query, history):
            if isinstance(event, ErrorEvent):
                raise StreamError(event.message)
            if isinstance(event, DoneEvent):
                done = event

        post_repo = PostRepository(self.db)
        ids = []
        for raw_id in done.post_ids:
            try:
                ids.append(UUID(raw_id))
            except ValueError:
                logger.warning(f"Ignoring attributed id that is not a UUID: {raw_id!r}")

        posts = await post_repo.get_public_by_ids(ids)
        if posts:
            return SearchResult(
                posts=posts,
                ai_response=done.text,
                conversation_id=done.conversation_id
            )

        logger.info("No attributed posts; falling back to recent posts")
        recent = await post_repo.list_public(limit=settings.fallback_recent_limit)
        return SearchResult(
            posts=recent,
            ai_response=done.text,
            conversation_id=done.conversation_id,
            fallback=True
        )
