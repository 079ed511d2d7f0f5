"""Query pipeline: Retrieve → Generate a grounded answer."""

from __future__ import annotations

from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from pydantic import BaseModel, Field

from docqa.config import Settings, get_settings
from docqa.errors import ValidationError
from docqa.llm.callbacks import TokenUsageCallback
from docqa.llm.factory import get_llm
from docqa.llm.prompts import ANSWER_PROMPT, NO_CONTEXT_ANSWER
from docqa.llm.resilience import call_upstream
from docqa.logger import get_logger
from docqa.retrieval.retriever import RetrievalEngine, RetrievalHit

logger = get_logger(__name__)


class Answer(BaseModel):
    """A generated answer and the chunks it was grounded on."""

    query: str
    answer: str
    sources: list[RetrievalHit] = Field(default_factory=list)
    usage: dict[str, Any] = Field(default_factory=dict)


class QueryPipeline:
    """Answers a question from the top-k retrieved chunks."""

    def __init__(
        self,
        retrieval: RetrievalEngine | None = None,
        llm: BaseChatModel | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._retrieval = retrieval or RetrievalEngine(settings=self._settings)
        self._llm = llm

    def _chain(self):
        if self._llm is None:
            self._llm = get_llm(self._settings)
        return ANSWER_PROMPT | self._llm | StrOutputParser()

    async def answer(
        self,
        query: str,
        top_k: int | None = None,
        document_id: str | None = None,
    ) -> Answer:
        if not query or not query.strip():
            raise ValidationError("Query is required")

        result = await self._retrieval.retrieve(query, k=top_k, document_id=document_id)
        if result.is_empty:
            logger.info("No context found for query", query=query[:80])
            return Answer(query=query, answer=NO_CONTEXT_ANSWER)

        chain = self._chain()
        usage = TokenUsageCallback()
        text = await call_upstream(
            "generate answer",
            lambda: chain.ainvoke(
                {"context": result.context_text, "query": query},
                config={"callbacks": [usage]},
            ),
            self._settings,
        )

        logger.info("Answer generated", sources=len(result.hits), **usage.summary())
        return Answer(query=query, answer=text, sources=result.hits, usage=usage.summary())
