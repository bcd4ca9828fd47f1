"""
Qdrant Vector Database Schemas
Defines the payload structure for paper summaries stored in Qdrant.
"""

from typing import List, Dict, Any
from dataclasses import dataclass, field
from datetime import datetime, timezone

from schemas.paper_schemas import Paper


@dataclass
class CacheEntryMetadata:
    """Metadata stored next to every summary vector."""

    title: str
    authors: List[str]
    source: str  # "arxiv" or "pubmed"
    link: str
    inserted_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@dataclass
class CacheEntry:
    """Complete cache record: embedding, summary text and metadata."""

    vector: List[float]
    summary: str
    metadata: CacheEntryMetadata


class QdrantCollectionSchema:
    """Schema definition for Qdrant collection structure."""

    # Collection configuration
    COLLECTION_NAME = "research_papers"
    VECTOR_SIZE = 384  # all-MiniLM-L6-v2 dimension
    DISTANCE_METRIC = "Cosine"

    # Payload field definitions for Qdrant
    PAYLOAD_FIELDS = {
        "title": {"type": "text", "index": False},
        "authors": {"type": "keyword", "index": False},
        "source": {"type": "keyword", "index": True},
        "link": {"type": "keyword", "index": False},
        "inserted_at": {"type": "keyword", "index": False},
        "summary": {"type": "text", "index": False}
    }

    @classmethod
    def indexed_fields(cls) -> List[str]:
        return [name for name, spec in cls.PAYLOAD_FIELDS.items() if spec["index"]]


def entry_from_paper(paper: Paper, summary: str, vector: List[float]) -> CacheEntry:
    return CacheEntry(
        vector=vector,
        summary=summary,
        metadata=CacheEntryMetadata(
            title=paper.title,
            authors=list(paper.authors),
            source=paper.source,
            link=paper.link,
        ),
    )


def entry_to_payload(entry: CacheEntry) -> Dict[str, Any]:
    """Convert a CacheEntry to the dictionary stored as Qdrant payload."""
    return {
        "title": entry.metadata.title,
        "authors": entry.metadata.authors,
        "source": entry.metadata.source,
        "link": entry.metadata.link,
        "inserted_at": entry.metadata.inserted_at,
        "summary": entry.summary
    }


def paper_from_payload(payload: Dict[str, Any], score: float) -> Paper:
    """Rebuild a Paper from a stored payload; score is cosine similarity (1 - distance)."""
    return Paper(
        title=payload.get("title", ""),
        authors=payload.get("authors", []) or [],
        summary=payload.get("summary", ""),
        link=payload.get("link", ""),
        source=payload.get("source", "arxiv"),
        relevance_score=min(max(float(score), 0.0), 1.0),
    )
