"""Interfaces to the external retrieval index and grounded generative model."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional


@dataclass
class IndexOperation:
    """Handle to a long-running document upload job."""

    name: str
    done: bool = False
    document_ref: Optional[str] = None
    error: Optional[str] = None
    raw: Any = None


@dataclass
class GroundedChunk:
    """One increment of a grounded model stream."""

    text: str = ""
    grounding_texts: List[str] = field(default_factory=list)


class RetrievalIndexClient(ABC):
    """External retrieval index that accepts documents as long-running jobs."""

    @abstractmethod
    async def submit(
        self,
        payload: bytes,
        display_name: str,
        metadata: Dict[str, str]
    ) -> IndexOperation:
        """Start an upload job and return its handle."""
        pass

    @abstractmethod
    async def poll(self, operation: IndexOperation) -> IndexOperation:
        """Refresh a job handle. ``done`` and ``document_ref`` are set on completion."""
        pass

    @abstractmethod
    async def delete(self, document_ref: str) -> None:
        """Remove an indexed document."""
        pass


class GroundedModelClient(ABC):
    """Generative model that answers with retrieval grounding over the index."""

    @abstractmethod
    def stream(self, contents: List[Dict[str, Any]]) -> AsyncIterator[GroundedChunk]:
        """
        Stream a grounded answer for a multi-turn conversation.

        Args:
            contents: Turns as ``{"role": "user"|"model", "parts": [{"text": ...}]}``

        Yields:
            Chunks in arrival order
        """
        pass
