from __future__ import annotations

import asyncio
from enum import Enum

from loguru import logger

from deep_research.agents.analyzer import process_contents
from deep_research.agents.feedback import generate_feedback
from deep_research.agents.query_generator import generate_serp_queries
from deep_research.config import settings
from deep_research.llm_client import get_model
from deep_research.models.schemas import ResearchReport, ResearchRequest, ResearchResult
from deep_research.services import logger as log_service
from deep_research.services.web_search import search_web


class ResearchPhase(str, Enum):
    AWAITING_FEEDBACK = "awaiting_feedback"
    GENERATING_QUERIES = "generating_queries"
    SEARCHING = "searching"
    ANALYZING = "analyzing"
    REPORTING = "reporting"


def build_enhanced_query(query: str, questions: list[str], answers: list[str]) -> str:
    """Fold the user's answers to the feedback questions into the research query."""
    context = "\n".join(
        f"Q: {question}\nA: {answers[i] if i < len(answers) else ''}"
        for i, question in enumerate(questions)
    )
    return f"Original Query: {query}\n\nContext from user:\n{context}".strip()


class ResearchOrchestrator:
    """Runs one research request end to end.

    Flow:
      1. Feedback questions only, when breadth and depth are both 1
      2. Generate up to `breadth` search queries
      3. Search each query in turn, pausing between them
      4. Analyze the gathered content chunk by chunk
      5. Assemble the report

    deep_research always returns a ResearchResult; a failure in any phase is
    reported through its `error` field.
    """

    def __init__(self, model: str | None = None):
        self.model = model or get_model()
        self.search_pause_seconds = float(settings.search_pause_seconds)
        self.feedback_questions = max(int(settings.feedback_questions), 1)
        self.phase_history: list[ResearchPhase] = []

    def _enter(self, phase: ResearchPhase, query: str, **data) -> None:
        if phase in self.phase_history:
            raise RuntimeError(f"Research phase revisited: {phase.value}")
        self.phase_history.append(phase)
        log_service.log_research_step(query, phase.value, "started", data or None)

    async def deep_research(self, query: str, breadth: int, depth: int) -> ResearchResult:
        self.phase_history = []
        logger.info(f"Starting deep research: query={query[:80]!r} breadth={breadth} depth={depth}")
        try:
            request = ResearchRequest(query=query, breadth=breadth, depth=depth)

            if request.is_feedback_only:
                self._enter(ResearchPhase.AWAITING_FEEDBACK, query)
                questions = await generate_feedback(
                    request.query,
                    self.feedback_questions,
                    model=self.model,
                )
                return ResearchResult(query=request.query, feedback_questions=questions)

            self._enter(ResearchPhase.GENERATING_QUERIES, query, breadth=request.breadth)
            search_queries = await generate_serp_queries(
                request.query,
                request.breadth,
                model=self.model,
            )

            self._enter(ResearchPhase.SEARCHING, query, queries=len(search_queries))
            all_contents: list[str] = []
            for index, search_query in enumerate(search_queries):
                all_contents.extend(await search_web(search_query, request.depth))
                if index < len(search_queries) - 1:
                    await asyncio.sleep(self.search_pause_seconds)

            self._enter(ResearchPhase.ANALYZING, query, contents=len(all_contents))
            analysis = await process_contents(request.query, all_contents, model=self.model)

            self._enter(ResearchPhase.REPORTING, query)
            return ResearchResult(
                query=request.query,
                search_queries=search_queries,
                report=ResearchReport(
                    executive_summary=analysis.summary,
                    key_findings=analysis.key_findings,
                    sources=analysis.sources,
                ),
            )
        except Exception as e:
            logger.exception(f"Error in deep research: {e}")
            log_service.log_research_step(query, "failed", "error", {"error": str(e)})
            return ResearchResult(
                query=query,
                error=f"Research failed: {e}",
                report=ResearchReport(
                    executive_summary="Research could not be completed due to an error.",
                ),
            )
