"""
Tests for the search pipeline: de-duplication, pairing and fail-soft behaviour.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from conftest import make_hit, make_paper
from schemas.outcome_schemas import DegradedReason, Outcome
from schemas.paper_schemas import normalize_title
from utils.search_orchestrator import SearchOrchestrator
from utils.summary import SummaryManager


class InMemoryCache:
    """Stores inserted summaries and returns every one whose source matches."""

    status = "connected"
    collection_name = "research_papers"

    def __init__(self):
        self.entries = []

    async def lookup(self, query, source="all", k=5):
        hits = [
            paper.model_copy(update={"summary": summary, "relevance_score": 0.8, "abstract": None})
            for paper, summary in self.entries
            if source == "all" or paper.source == source
        ]
        return Outcome.success(hits[:k])

    async def insert(self, papers, summaries):
        self.entries.extend(zip(papers, summaries))
        return Outcome.success(len(papers))


def assert_paired(response):
    assert len(response.papers) == len(response.summaries) == response.total
    for paper, summary in zip(response.papers, response.summaries):
        assert paper.summary == summary


class TestSearchOrchestrator:

    @pytest.mark.asyncio
    async def test_fresh_results_are_summarized_and_cached(self, orchestrator, mock_cache, sample_papers):
        response = await orchestrator.search("neural networks", "all")

        assert response.total == 3
        assert response.from_cache == 0
        assert response.newly_fetched == 3
        assert response.cache_status == "connected"
        assert response.summaries == [f"Summary of {paper.title}" for paper in sample_papers]
        assert_paired(response)
        stored_papers, stored_summaries = mock_cache.insert.await_args.args
        assert [paper.title for paper in stored_papers] == [paper.title for paper in sample_papers]
        assert stored_summaries == response.summaries

    @pytest.mark.asyncio
    async def test_cache_hits_come_first_and_duplicates_are_dropped(
        self, orchestrator, mock_cache, mock_summary_manager
    ):
        mock_cache.lookup.return_value = Outcome.success([
            make_hit("  attention is ALL you need ", "Cached summary A"),
            make_hit("Unrelated Cached Paper", "Cached summary B"),
        ])

        response = await orchestrator.search("neural networks", "all")

        titles = [paper.title for paper in response.papers]
        assert titles == [
            "  attention is ALL you need ",
            "Unrelated Cached Paper",
            "Graph Neural Networks for Molecules",
            "CRISPR Screening in Human Cells",
        ]
        assert response.summaries[:2] == ["Cached summary A", "Cached summary B"]
        assert response.from_cache == 2
        assert response.newly_fetched == 2
        assert_paired(response)
        assert len({normalize_title(title) for title in titles}) == len(titles)
        summarized = mock_summary_manager.summarize_papers.await_args.args[0]
        assert "Attention Is All You Need" not in [paper.title for paper in summarized]

    @pytest.mark.asyncio
    async def test_unreachable_cache_still_answers(self, orchestrator, mock_cache):
        mock_cache.status = "disconnected"
        mock_cache.lookup.return_value = Outcome.failure([], DegradedReason.UNAVAILABLE, "refused")
        mock_cache.insert.return_value = Outcome.failure(0, DegradedReason.UNAVAILABLE, "refused")

        response = await orchestrator.search("neural networks", "all")

        assert response.from_cache == 0
        assert response.newly_fetched == 3
        assert response.cache_status == "disconnected"
        assert_paired(response)

    @pytest.mark.asyncio
    async def test_cache_raising_is_absorbed(self, orchestrator, mock_cache):
        mock_cache.lookup.side_effect = RuntimeError("boom")
        mock_cache.insert.side_effect = RuntimeError("boom")

        response = await orchestrator.search("neural networks", "all")

        assert response.newly_fetched == 3
        assert_paired(response)

    @pytest.mark.asyncio
    async def test_nothing_new_skips_summarization(self, orchestrator, mock_cache, mock_fetcher, mock_summary_manager):
        mock_fetcher.fetch_papers.return_value = Outcome.success([make_paper("Cached Only")])
        mock_cache.lookup.return_value = Outcome.success([make_hit("cached only", "Cached summary")])

        response = await orchestrator.search("cached", "arxiv")

        assert response.total == 1
        assert response.newly_fetched == 0
        mock_summary_manager.summarize_papers.assert_not_called()
        mock_cache.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_degraded_sources_return_partial_results(self, orchestrator, mock_fetcher):
        mock_fetcher.fetch_papers.return_value = Outcome.failure(
            [make_paper("PubMed Survivor", source="pubmed")], DegradedReason.TIMEOUT, "arxiv timed out"
        )

        response = await orchestrator.search("survivor", "all")

        assert [paper.title for paper in response.papers] == ["PubMed Survivor"]

    @pytest.mark.asyncio
    async def test_lookup_and_fetch_receive_same_request(self, orchestrator, mock_cache, mock_fetcher):
        await orchestrator.search("graph learning", "pubmed")

        mock_cache.lookup.assert_awaited_once_with("graph learning", "pubmed", k=5)
        mock_fetcher.fetch_papers.assert_awaited_once_with("graph learning", "pubmed")

    @pytest.mark.asyncio
    async def test_disabled_cache(self, mock_fetcher, mock_summary_manager):
        orchestrator = SearchOrchestrator(fetcher=mock_fetcher, summary_manager=mock_summary_manager)

        response = await orchestrator.search("neural networks", "all")

        assert response.cache_status == "disabled"
        assert response.from_cache == 0
        assert response.newly_fetched == 3

    @pytest.mark.asyncio
    async def test_repeated_query_does_not_lose_cache_hits(self, mock_fetcher, mock_summary_manager):
        cache = InMemoryCache()
        orchestrator = SearchOrchestrator(fetcher=mock_fetcher, summary_manager=mock_summary_manager, cache=cache)

        first = await orchestrator.search("neural networks", "all")
        second = await orchestrator.search("neural networks", "all")

        assert first.from_cache == 0
        assert second.from_cache >= first.from_cache
        assert second.from_cache == 3
        assert second.newly_fetched == 0
        assert_paired(second)

    @pytest.mark.asyncio
    async def test_failed_summaries_are_not_cached(self, mock_fetcher):
        attempts = {"count": 0}

        async def summarize(text):
            if "Attention" in text:
                attempts["count"] += 1
                if attempts["count"] == 1:
                    raise RuntimeError("rate limited by model provider")
            return f"summary: {text[:30]}"

        summarizer = Mock()
        summarizer.summarize = AsyncMock(side_effect=summarize)
        cache = InMemoryCache()
        orchestrator = SearchOrchestrator(
            fetcher=mock_fetcher,
            summary_manager=SummaryManager(summarizer=summarizer, timeout_seconds=1),
            cache=cache,
        )

        first = await orchestrator.search("neural networks", "all")

        assert first.summaries[0] == 'Summary unavailable for "Attention Is All You Need"'
        assert_paired(first)
        stored_titles = [paper.title for paper, _ in cache.entries]
        assert "Attention Is All You Need" not in stored_titles
        assert len(stored_titles) == 2
        assert not any(summary.startswith("Summary unavailable") for _, summary in cache.entries)

        second = await orchestrator.search("neural networks", "all")

        assert second.from_cache == 2
        assert second.newly_fetched == 1
        assert second.papers[-1].title == "Attention Is All You Need"
        assert second.summaries[-1].startswith("summary: Abstract of Attention")
        assert_paired(second)

    @pytest.mark.asyncio
    async def test_all_summaries_failing_skips_cache_write(self, orchestrator, mock_cache, mock_summary_manager):
        mock_summary_manager.summarize_papers.side_effect = None
        mock_summary_manager.summarize_papers.return_value = [
            Outcome.failure('Summary unavailable for "A"', DegradedReason.TIMEOUT),
            Outcome.failure('Summary unavailable for "B"', DegradedReason.UPSTREAM_ERROR),
            Outcome.failure('Summary unavailable for "C"', DegradedReason.UPSTREAM_ERROR),
        ]

        response = await orchestrator.search("neural networks", "all")

        assert response.newly_fetched == 3
        assert response.summaries[0] == 'Summary unavailable for "A"'
        mock_cache.insert.assert_not_called()

    def test_deduplicate_is_exact_title_match_only(self):
        fetched = [make_paper("Attention Is All You Need"), make_paper("Attention is all you need!")]
        hits = [make_hit("attention is all you need", "cached")]

        remaining = SearchOrchestrator.deduplicate(fetched, hits)

        # Punctuation differences are treated as different papers
        assert [paper.title for paper in remaining] == ["Attention is all you need!"]
