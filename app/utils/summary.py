"""
Summary utility for paper abstracts: an extractive sentence scorer and an LLM chain.
"""

import asyncio
import logging
import re
from typing import List, Optional
from langchain_openai import ChatOpenAI
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.output_parsers import StrOutputParser

from config.app_config import settings as app_settings
from config.llm_config import settings as llm_settings
from schemas.outcome_schemas import DegradedReason, Outcome
from schemas.paper_schemas import Paper

logger = logging.getLogger(__name__)

SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")

# Texts at or below these lengths are returned untouched
EXTRACTIVE_MIN_LENGTH = 100
LLM_MIN_LENGTH = 50

SYSTEM_PROMPT = (
    "You are an expert research analyst. Provide a comprehensive summary of the research paper "
    "you are given, covering its main objectives, methodology, key findings, conclusions and "
    "their significance. Keep it clear, well-structured and faithful to the text."
)


def extract_sentences(text: str, max_sentences: int = 3) -> str:
    """
    Pick the most salient sentences of a text.

    Sentences score (reverse position) + (word count / 20). The top
    max_sentences are kept and re-ordered by position.

    Args:
        text: Text to summarize
        max_sentences: Number of sentences to keep

    Returns:
        str: The selected sentences joined by spaces, or the text itself when it
        has no more than max_sentences sentences
    """
    sentences = SENTENCE_PATTERN.findall(text)
    if len(sentences) <= max_sentences:
        return text

    count = len(sentences)
    scored = [
        (count - index + len(sentence.split()) / 20, index, sentence.strip())
        for index, sentence in enumerate(sentences)
    ]
    # sorted() is stable, so equal scores keep document order
    top = sorted(scored, key=lambda item: item[0], reverse=True)[:max_sentences]
    top.sort(key=lambda item: item[1])
    return " ".join(sentence for _, _, sentence in top)


class ExtractiveSummarizer:
    """Offline summarizer; no network calls."""

    def __init__(self, max_sentences: int = 3):
        self.max_sentences = max_sentences

    async def summarize(self, text: str) -> str:
        if len(text) <= EXTRACTIVE_MIN_LENGTH:
            return text
        return extract_sentences(text, self.max_sentences)


class LLMSummarizer:
    """Summarizes through a chat model; the model is only built on first use."""

    def __init__(self, model_name: Optional[str] = None, temperature: Optional[float] = None):
        self.model_name = model_name or llm_settings.model_name
        self.temperature = llm_settings.temperature if temperature is None else temperature
        self._chain = None

    def _create_summary_chain(self):
        """Create the summarization chain with prompt and parser."""
        prompt = ChatPromptTemplate.from_messages([
            ("system", SYSTEM_PROMPT),
            ("user", "Summarize this research paper:\n\n{text}")
        ])
        llm = ChatOpenAI(
            model=self.model_name,
            temperature=self.temperature,
            api_key=llm_settings.openai_api_key or None
        )
        return prompt | llm | StrOutputParser()

    @property
    def chain(self):
        if self._chain is None:
            logger.info(f"Creating summary chain with {self.model_name}")
            self._chain = self._create_summary_chain()
        return self._chain

    async def summarize(self, text: str) -> str:
        if len(text) < LLM_MIN_LENGTH:
            return text
        return await self.chain.ainvoke({"text": text})


class SummaryManager:
    """Fans summarization out over papers; one failure never affects the others."""

    def __init__(self, summarizer=None, timeout_seconds: Optional[float] = None):
        if summarizer is None:
            summarizer = (
                ExtractiveSummarizer()
                if llm_settings.summarizer_strategy == "extractive"
                else LLMSummarizer()
            )
        self.summarizer = summarizer
        self.timeout_seconds = timeout_seconds or app_settings.HTTP_TIMEOUT_SECONDS

    @staticmethod
    def placeholder(title: str) -> str:
        return f'Summary unavailable for "{title}"'

    async def _summarize_one(self, index: int, paper: Paper) -> Outcome[str]:
        try:
            text = paper.summarization_text()
            logger.info(f"Summarizing document {index}, length: {len(text)}")
            summary = await asyncio.wait_for(self.summarizer.summarize(text), timeout=self.timeout_seconds)
            return Outcome.success(summary)
        except asyncio.TimeoutError:
            logger.error(f"Summarizing document {index} ('{paper.title}') timed out")
            return Outcome.failure(self.placeholder(paper.title), DegradedReason.TIMEOUT, "summary timed out")
        except Exception as e:
            logger.error(f"Error summarizing document {index} ('{paper.title}'): {e!r}")
            return Outcome.failure(self.placeholder(paper.title), DegradedReason.UPSTREAM_ERROR, str(e))

    async def summarize_papers(self, papers: List[Paper]) -> List[Outcome[str]]:
        """
        Summarize every paper concurrently.

        Args:
            papers: Papers to summarize

        Returns:
            List[Outcome[str]]: One outcome per paper, in the same order. Failed
            papers carry the placeholder text as value and are not ok.
        """
        logger.info(f"Processing {len(papers)} documents")
        return list(await asyncio.gather(
            *(self._summarize_one(index, paper) for index, paper in enumerate(papers))
        ))
