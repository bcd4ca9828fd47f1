"""
Browser page: a search form that posts back to itself and lists the results.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import Response
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from api.routes import get_orchestrator
from schemas.search_schemas import SearchRequest
from utils.search_orchestrator import SearchOrchestrator

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
SOURCE_OPTIONS = [("all", "All Sources"), ("arxiv", "arXiv"), ("pubmed", "PubMed")]

pages_router = APIRouter()


def summary_blocks(summary: Optional[str]) -> List[Dict]:
    """
    Split a summary into paragraphs and bullet lists.

    Lines starting with "- " or "* " become list items; consecutive items
    share one list. Other non-empty lines become paragraphs.
    """
    blocks: List[Dict] = []
    for line in (summary or "").split("\n"):
        line = line.strip()
        if line.startswith("- ") or line.startswith("* "):
            if not blocks or blocks[-1]["kind"] != "list":
                blocks.append({"kind": "list", "items": []})
            blocks[-1]["items"].append(line[2:])
        elif line:
            blocks.append({"kind": "paragraph", "text": line})
    return blocks


templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["summary_blocks"] = summary_blocks


def _render(request: Request, **context) -> Response:
    context.setdefault("query", "")
    context.setdefault("source", "all")
    context.setdefault("results", [])
    context.setdefault("error", None)
    context["source_options"] = SOURCE_OPTIONS
    return templates.TemplateResponse(request, "index.html", context)


@pages_router.get("/", include_in_schema=False)
async def search_page(request: Request):
    return _render(request)


@pages_router.post("/", include_in_schema=False)
async def search_page_submit(
    request: Request,
    query: str = Form(""),
    source: str = Form("all"),
    orchestrator: SearchOrchestrator = Depends(get_orchestrator)
):
    if not query.strip():
        return _render(request, query=query, source=source, error="Please enter a search query")

    try:
        search_request = SearchRequest(query=query, source=source)
    except ValidationError as e:
        message = e.errors()[0].get("msg", "Invalid search")
        return _render(request, query=query, source=source, error=message)

    try:
        response = await orchestrator.search(search_request.query, search_request.source)
    except Exception as e:
        logger.error(f"Search page error: {e}")
        return _render(
            request, query=query, source=source,
            error="Failed to fetch results. Please try again."
        )

    if not response.papers:
        return _render(
            request, query=query, source=source,
            error="No results found. Try a different search term."
        )

    results = [
        paper.model_copy(update={"summary": summary or "Summary not available"})
        for paper, summary in zip(response.papers, response.summaries)
    ]
    return _render(request, query=search_request.query, source=search_request.source, results=results)
