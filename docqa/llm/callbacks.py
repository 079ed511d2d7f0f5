"""LangChain callback that records token usage and latency of answer generation."""

from __future__ import annotations

import time
from typing import Any
from uuid import UUID

from langchain_core.callbacks import BaseCallbackHandler
from langchain_core.outputs import LLMResult

from docqa.logger import get_logger

logger = get_logger(__name__)


class TokenUsageCallback(BaseCallbackHandler):
    """Accumulate prompt/completion tokens across the LLM calls of one request."""

    def __init__(self) -> None:
        super().__init__()
        self.input_tokens: int = 0
        self.output_tokens: int = 0
        self.calls: int = 0
        self.latency_ms: float = 0.0
        self._started: dict[UUID, float] = {}

    def on_chat_model_start(
        self,
        serialized: dict[str, Any],
        messages: list[list[Any]],
        *,
        run_id: UUID,
        **kwargs: Any,
    ) -> None:
        self._started[run_id] = time.perf_counter()
        self.calls += 1

    def on_llm_start(
        self,
        serialized: dict[str, Any],
        prompts: list[str],
        *,
        run_id: UUID,
        **kwargs: Any,
    ) -> None:
        self._started[run_id] = time.perf_counter()
        self.calls += 1

    def on_llm_end(
        self,
        response: LLMResult,
        *,
        run_id: UUID,
        **kwargs: Any,
    ) -> None:
        start = self._started.pop(run_id, None)
        if start is not None:
            self.latency_ms += (time.perf_counter() - start) * 1000

        usage = (response.llm_output or {}).get("token_usage") or {}
        self.input_tokens += usage.get("prompt_tokens", 0) or usage.get("input_tokens", 0)
        self.output_tokens += usage.get("completion_tokens", 0) or usage.get("output_tokens", 0)

    def on_llm_error(
        self,
        error: BaseException,
        *,
        run_id: UUID,
        **kwargs: Any,
    ) -> None:
        self._started.pop(run_id, None)
        logger.warning("LLM call failed", run_id=str(run_id), error=str(error))

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def summary(self) -> dict[str, Any]:
        return {
            "calls": self.calls,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
            "latency_ms": round(self.latency_ms, 2),
        }
