"""
Pytest configuration and common fixtures for testing.
"""

import pytest
from unittest.mock import Mock, AsyncMock
from typing import List

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

from app import create_app
from schemas.outcome_schemas import Outcome
from schemas.paper_schemas import Paper
from utils.rate_limiter import SlidingWindowRateLimiter
from utils.search_orchestrator import SearchOrchestrator


def make_paper(title: str, source: str = "arxiv", **overrides) -> Paper:
    """Build a Paper with sensible defaults for tests."""
    fields = {
        "title": title,
        "authors": ["Ada Lovelace", "Alan Turing"],
        "abstract": f"Abstract of {title}. It has a few sentences. They describe the work.",
        "link": f"https://example.com/{title.lower().replace(' ', '-')}",
        "source": source,
    }
    fields.update(overrides)
    return Paper(**fields)


def make_hit(title: str, summary: str, score: float = 0.9, source: str = "arxiv") -> Paper:
    """Build a cached Paper as returned by a vector cache lookup."""
    return make_paper(title, source=source, abstract=None, summary=summary, relevance_score=score)


@pytest.fixture
def sample_papers() -> List[Paper]:
    """Two arXiv papers followed by one PubMed paper."""
    return [
        make_paper("Attention Is All You Need"),
        make_paper("Graph Neural Networks for Molecules"),
        make_paper("CRISPR Screening in Human Cells", source="pubmed"),
    ]


@pytest.fixture
def mock_fetcher(sample_papers):
    """Mock paper fetcher returning the sample papers."""
    fetcher = Mock()
    fetcher.fetch_papers = AsyncMock(return_value=Outcome.success(list(sample_papers)))
    return fetcher


@pytest.fixture
def mock_summary_manager():
    """Mock summary manager producing one summary per paper, tagged with its title."""
    manager = Mock()

    async def summarize_papers(papers):
        return [Outcome.success(f"Summary of {paper.title}") for paper in papers]

    manager.summarize_papers = AsyncMock(side_effect=summarize_papers)
    return manager


@pytest.fixture
def mock_cache():
    """Mock vector cache with no stored entries."""
    cache = Mock()
    cache.status = "connected"
    cache.collection_name = "research_papers"
    cache.lookup = AsyncMock(return_value=Outcome.success([]))
    cache.insert = AsyncMock(return_value=Outcome.success(0))
    cache.connect = AsyncMock(return_value=True)
    cache.get_collection_info = AsyncMock(
        return_value={"name": "research_papers", "vector_size": 384, "points_count": 0}
    )
    return cache


@pytest.fixture
def orchestrator(mock_fetcher, mock_summary_manager, mock_cache):
    return SearchOrchestrator(fetcher=mock_fetcher, summary_manager=mock_summary_manager, cache=mock_cache)


@pytest.fixture
def rate_limiter():
    return SlidingWindowRateLimiter(max_requests=1000, window_seconds=60)


@pytest.fixture
def client(orchestrator, rate_limiter):
    """TestClient over an app wired to the mocked orchestrator."""
    return TestClient(create_app(orchestrator=orchestrator, rate_limiter=rate_limiter))


@pytest.fixture
def mock_embeddings():
    """Mock embeddings manager returning fixed 5-dimensional vectors."""
    embeddings = Mock()
    embeddings.create_single_embedding = AsyncMock(return_value=[0.1, 0.2, 0.3, 0.4, 0.5])

    async def create_embeddings(texts):
        return [[0.1, 0.2, 0.3, 0.4, 0.5] for _ in texts]

    embeddings.create_embeddings = AsyncMock(side_effect=create_embeddings)
    return embeddings


@pytest.fixture
def mock_qdrant_client():
    """Mock Qdrant client for testing."""
    client = Mock()
    client.query_points = Mock()
    client.upsert = Mock()
    client.get_collection = Mock()
    client.get_collections = Mock()
    return client


# Test markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )
