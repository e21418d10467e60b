"""Business logic layer - services."""
from .storage_service import StorageService
from .document_indexer import DocumentIndexer, IndexDocument, IndexingResult, IndexingState
from .indexing_pipeline import IndexingDispatcher, IndexingOutcome, IndexingPipeline
from .post_service import PostService
from .search_service import DoneEvent, ErrorEvent, SearchService, TextEvent
from .similarity_cache import SimilarityCache, SimilarityCacheEntry
from .similarity_service import SimilarityService, SimilarResult
from .vector_search_service import Neighbor, VectorSearchService

__all__ = [
    "StorageService",
    "DocumentIndexer",
    "IndexDocument",
    "IndexingResult",
    "IndexingState",
    "IndexingDispatcher",
    "IndexingOutcome",
    "IndexingPipeline",
    "PostService",
    "SearchService",
    "TextEvent",
    "DoneEvent",
    "ErrorEvent",
    "SimilarityCache",
    "SimilarityCacheEntry",
    "SimilarityService",
    "SimilarResult",
    "Neighbor",
    "VectorSearchService",
]
