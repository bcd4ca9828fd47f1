"""
Search pipeline: cache lookup, paper fetch, de-duplication, summarization and cache write.
"""

import asyncio
import logging
from typing import List, Optional

from schemas.outcome_schemas import DegradedReason, Outcome
from schemas.paper_schemas import Paper, normalize_title
from schemas.search_schemas import SearchResponse
from utils.paper_fetcher import PaperFetcher
from utils.qdrant_client import VectorCache
from utils.summary import SummaryManager

logger = logging.getLogger(__name__)


class SearchOrchestrator:
    """Builds a best-effort answer from whichever dependencies respond."""

    def __init__(
        self,
        fetcher: PaperFetcher,
        summary_manager: SummaryManager,
        cache: Optional[VectorCache] = None,
        cache_k: int = 5,
    ):
        self.fetcher = fetcher
        self.summary_manager = summary_manager
        self.cache = cache
        self.cache_k = cache_k

    @property
    def cache_enabled(self) -> bool:
        return self.cache is not None

    @property
    def cache_status(self) -> str:
        if self.cache is None:
            return "disabled"
        return self.cache.status

    async def _lookup(self, query: str, source: str) -> Outcome[List[Paper]]:
        if self.cache is None:
            return Outcome.failure([], DegradedReason.DISABLED)
        try:
            return await self.cache.lookup(query, source, k=self.cache_k)
        except Exception as e:
            logger.error(f"Cache lookup raised, continuing without cache: {e}")
            return Outcome.failure([], DegradedReason.UNAVAILABLE, str(e))

    async def _store(self, papers: List[Paper], summaries: List[str]) -> None:
        if self.cache is None:
            return
        try:
            outcome = await self.cache.insert(papers, summaries)
        except Exception as e:
            logger.error(f"Cache insert raised: {e}")
            return
        if not outcome.ok:
            logger.warning(f"Summaries not cached ({outcome.degraded.value}): {outcome.detail}")

    @staticmethod
    def deduplicate(fetched: List[Paper], hits: List[Paper]) -> List[Paper]:
        """Drop fetched papers whose normalized title matches a cache hit."""
        seen = {normalize_title(hit.title) for hit in hits}
        return [paper for paper in fetched if normalize_title(paper.title) not in seen]

    async def search(self, query: str, source: str = "all") -> SearchResponse:
        """
        Run one search request.

        Args:
            query: Validated, trimmed query
            source: "all", "arxiv" or "pubmed"

        Returns:
            SearchResponse with cache hits first, then newly summarized papers
        """
        logger.info(f"Searching for '{query}' in {source}")

        cached, fetched = await asyncio.gather(
            self._lookup(query, source),
            self.fetcher.fetch_papers(query, source),
        )
        if not cached.ok and cached.degraded is not DegradedReason.DISABLED:
            logger.warning(f"Continuing without cache ({cached.degraded.value}): {cached.detail}")
        if not fetched.ok:
            logger.warning(f"Paper sources degraded ({fetched.degraded.value}): {fetched.detail}")

        hits = cached.value
        hit_pairs = [(hit, hit.summary or "") for hit in hits]

        new_papers = self.deduplicate(fetched.value, hits)
        skipped = len(fetched.value) - len(new_papers)
        if skipped:
            logger.info(f"Skipped {skipped} fetched papers already in cache")

        new_pairs = []
        if new_papers:
            outcomes = await self.summary_manager.summarize_papers(new_papers)
            new_pairs = [
                (paper.model_copy(update={"summary": outcome.value}), outcome.value)
                for paper, outcome in zip(new_papers, outcomes)
            ]
            # Placeholders are shown for this request only, never cached
            summarized = [
                (paper, outcome.value)
                for paper, outcome in zip(new_papers, outcomes)
                if outcome.ok
            ]
            if len(summarized) < len(new_pairs):
                logger.warning(f"{len(new_pairs) - len(summarized)} summaries failed and will not be cached")
            if summarized:
                await self._store([paper for paper, _ in summarized], [summary for _, summary in summarized])

        pairs = hit_pairs + new_pairs
        logger.info(f"Search complete: {len(hit_pairs)} from cache, {len(new_pairs)} newly fetched")
        return SearchResponse(
            papers=[paper for paper, _ in pairs],
            summaries=[summary for _, summary in pairs],
            total=len(pairs),
            from_cache=len(hit_pairs),
            newly_fetched=len(new_pairs),
            cache_status=self.cache_status,
        )
