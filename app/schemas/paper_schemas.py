"""
Paper record shared by the paper sources, the summarizer and the vector cache.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional

PaperSource = Literal["arxiv", "pubmed"]
SourceFilter = Literal["all", "arxiv", "pubmed"]


class Paper(BaseModel):
    """A single paper as returned to clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(..., description="Paper title")
    authors: List[str] = Field(default_factory=list, description="Author names in publication order")
    summary: Optional[str] = Field(None, description="Generated or cached summary, absent until summarized")
    abstract: Optional[str] = Field(None, description="Raw abstract text from the source")
    link: str = Field(..., description="Link to the paper")
    source: PaperSource = Field(..., description="Where the paper was found")
    relevance_score: Optional[float] = Field(
        None, ge=0.0, le=1.0, description="Similarity to the query, only set on cache hits"
    )

    def summarization_text(self) -> str:
        """Text fed to the summarizer: abstract, then title, then nothing."""
        return self.abstract or self.title or ""


def normalize_title(title: str) -> str:
    """Identity key used for de-duplication: trimmed and case-insensitive."""
    return (title or "").strip().lower()
