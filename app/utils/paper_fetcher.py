"""
Fetch candidate papers from arXiv and PubMed and normalize them into Paper records.
"""

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional

import aiohttp # type: ignore
import feedparser

from config.app_config import settings
from schemas.outcome_schemas import DegradedReason, Outcome
from schemas.paper_schemas import Paper

logger = logging.getLogger(__name__)

ARXIV_API_URL = "http://export.arxiv.org/api/query"
PUBMED_EUTILS_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
PUBMED_ARTICLE_URL = "https://pubmed.ncbi.nlm.nih.gov"
MAX_RESULTS_PER_SOURCE = 5


class SourceParseError(ValueError):
    """Raised when an upstream payload does not have the expected shape."""


def _clean(text: Optional[str]) -> str:
    """Collapse the line breaks and indentation arXiv puts inside titles and abstracts."""
    return re.sub(r"\s+", " ", text or "").strip()


def _reason_for(error: Exception) -> DegradedReason:
    if isinstance(error, asyncio.TimeoutError):
        return DegradedReason.TIMEOUT
    if isinstance(error, aiohttp.ClientResponseError):
        return DegradedReason.UPSTREAM_ERROR
    if isinstance(error, aiohttp.ClientError):
        return DegradedReason.UNAVAILABLE
    return DegradedReason.PARSE_ERROR


def parse_arxiv_feed(xml_text: str) -> List[Paper]:
    """
    Parse an arXiv Atom feed into Paper records.

    Args:
        xml_text: Raw Atom document returned by the arXiv query API

    Returns:
        List[Paper]: One paper per feed entry, in feed order

    Raises:
        SourceParseError: If the document is not a readable feed
    """
    feed = feedparser.parse(xml_text)
    if feed.bozo and not feed.entries:
        raise SourceParseError(f"Unreadable arXiv feed: {feed.get('bozo_exception')}")

    papers = []
    for entry in feed.entries:
        title = _clean(entry.get("title"))
        if not title:
            continue
        papers.append(
            Paper(
                title=title,
                authors=[_clean(author.get("name")) for author in entry.get("authors", []) if author.get("name")],
                abstract=_clean(entry.get("summary")) or None,
                link=entry.get("id") or entry.get("link", ""),
                source="arxiv",
            )
        )
    return papers


def parse_pubmed_summaries(ids: List[str], payload: Dict[str, Any]) -> List[Paper]:
    """
    Turn an esummary JSON payload into Paper records, keeping esearch id order.

    Args:
        ids: PubMed ids in the order esearch returned them
        payload: Decoded esummary response

    Returns:
        List[Paper]: Papers for every record that carries a uid
    """
    result = payload.get("result")
    if not isinstance(result, dict):
        raise SourceParseError("esummary response has no result object")

    papers = []
    for pubmed_id in ids:
        record = result.get(pubmed_id)
        if not isinstance(record, dict) or not record.get("uid"):
            continue
        title = _clean(record.get("title")) or "No title available"
        papers.append(
            Paper(
                title=title,
                authors=[author["name"] for author in record.get("authors", []) if author.get("name")],
                abstract=_clean(record.get("abstract")) or title or "No abstract available",
                link=f"{PUBMED_ARTICLE_URL}/{record['uid']}",
                source="pubmed",
            )
        )
    return papers


class PaperFetcher:
    """Queries the public paper APIs. Every call is fail-soft and bounded by a timeout."""

    def __init__(self, timeout_seconds: Optional[float] = None, max_results: int = MAX_RESULTS_PER_SOURCE):
        self.timeout_seconds = timeout_seconds or settings.HTTP_TIMEOUT_SECONDS
        self.max_results = max_results

    async def _get_text(self, session: aiohttp.ClientSession, url: str, params: Dict[str, Any]) -> str:
        async with session.get(url, params=params) as response:
            response.raise_for_status()
            return await response.text()

    async def _get_json(self, session: aiohttp.ClientSession, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        async with session.get(url, params=params) as response:
            response.raise_for_status()
            return await response.json(content_type=None)

    async def fetch_from_arxiv(self, session: aiohttp.ClientSession, query: str) -> Outcome[List[Paper]]:
        """Run one bounded arXiv search."""
        try:
            logger.info(f"Fetching from arXiv: {query}")
            xml_text = await self._get_text(
                session,
                ARXIV_API_URL,
                {"search_query": f"all:{query}", "start": 0, "max_results": self.max_results},
            )
            papers = parse_arxiv_feed(xml_text)
            if not papers:
                logger.info("No results found in arXiv")
            return Outcome.success(papers)
        except Exception as e:
            reason = _reason_for(e)
            logger.error(f"arXiv API error ({reason.value}): {e}")
            return Outcome.failure([], reason, str(e))

    async def fetch_from_pubmed(self, session: aiohttp.ClientSession, query: str) -> Outcome[List[Paper]]:
        """Two-step PubMed lookup: esearch for ids, then esummary for the id batch."""
        try:
            logger.info(f"Fetching from PubMed: {query}")
            search = await self._get_json(
                session,
                f"{PUBMED_EUTILS_URL}/esearch.fcgi",
                {"db": "pubmed", "term": query, "retmax": self.max_results, "retmode": "json"},
            )
            try:
                ids = [str(pubmed_id) for pubmed_id in search["esearchresult"].get("idlist", [])]
            except (KeyError, AttributeError, TypeError) as e:
                raise SourceParseError(f"esearch response missing idlist: {e}") from e

            if not ids:
                logger.info("No results found in PubMed")
                return Outcome.success([])

            details = await self._get_json(
                session,
                f"{PUBMED_EUTILS_URL}/esummary.fcgi",
                {"db": "pubmed", "id": ",".join(ids), "retmode": "json"},
            )
            return Outcome.success(parse_pubmed_summaries(ids, details))
        except Exception as e:
            reason = _reason_for(e)
            logger.error(f"PubMed API error ({reason.value}): {e}")
            return Outcome.failure([], reason, str(e))

    async def fetch_papers(self, query: str, source: str = "all") -> Outcome[List[Paper]]:
        """
        Fetch papers for a query from the requested sources.

        Args:
            query: Trimmed search query
            source: "all", "arxiv" or "pubmed"

        Returns:
            Outcome holding arXiv papers followed by PubMed papers. The outcome is
            degraded when at least one source failed; papers from the sources that
            answered are still returned.
        """
        if not isinstance(query, str) or len(query.strip()) < 2:
            raise ValueError("Query must be at least 2 characters long")
        if source not in ("all", "arxiv", "pubmed"):
            raise ValueError(f"Unknown source: {source}")
        query = query.strip()

        logger.info(f"Fetching papers for \"{query}\" from {source}")
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            calls = []
            if source in ("all", "arxiv"):
                calls.append(self.fetch_from_arxiv(session, query))
            if source in ("all", "pubmed"):
                calls.append(self.fetch_from_pubmed(session, query))
            outcomes = await asyncio.gather(*calls)

        papers: List[Paper] = []
        failures = []
        for outcome in outcomes:
            papers.extend(outcome.value)
            if not outcome.ok:
                failures.append(outcome)

        logger.info(f"Found {len(papers)} papers in total")
        if failures:
            return Outcome.failure(
                papers,
                failures[0].degraded,
                "; ".join(f"{o.degraded.value}: {o.detail}" for o in failures),
            )
        return Outcome.success(papers)
