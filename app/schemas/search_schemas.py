"""
Search request and response schemas for the search, health and cache-status endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional

from schemas.paper_schemas import Paper, SourceFilter

QUERY_MIN_LENGTH = 2
QUERY_MAX_LENGTH = 200

CacheStatus = Literal["connected", "disconnected", "disabled"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchRequest(BaseModel):
    """Schema for search request."""
    
    query: str = Field(..., description="Free-text research query")
    source: SourceFilter = Field(default="all", description="Restrict results to one paper source")
    
    @field_validator('query')
    @classmethod
    def validate_query(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('query cannot be empty or whitespace only')
        if len(v) < QUERY_MIN_LENGTH:
            raise ValueError(f'query must be at least {QUERY_MIN_LENGTH} characters long')
        if len(v) > QUERY_MAX_LENGTH:
            raise ValueError(f'query cannot exceed {QUERY_MAX_LENGTH} characters')
        return v


class SearchResponse(CamelModel):
    """Schema for search response. summaries[i] always belongs to papers[i]."""
    
    papers: List[Paper] = Field(..., description="Cache hits followed by newly fetched papers")
    summaries: List[str] = Field(..., description="Summaries aligned with papers by position")
    total: int = Field(..., description="Number of papers returned")
    from_cache: int = Field(..., description="Number of papers served from the vector cache")
    newly_fetched: int = Field(..., description="Number of papers fetched and summarized for this request")
    cache_status: CacheStatus = Field(..., description="State of the vector cache while serving the request")


class HealthResponse(CamelModel):
    """Schema for health endpoint."""
    
    status: str
    timestamp: str
    cache_status: CacheStatus
    port: int


class CacheStatusResponse(CamelModel):
    """Schema for cache-status endpoint."""
    
    status: str
    documents_stored: Optional[int] = None
    collection_name: str
    error: Optional[str] = None
