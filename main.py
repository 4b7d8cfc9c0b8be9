"""deep-research - interactive research assistant

Asks a few clarifying questions, searches the web, and writes a Markdown report.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Awaitable, Callable

from loguru import logger

from deep_research.agents.orchestrator import ResearchOrchestrator, build_enhanced_query
from deep_research.config import settings
from deep_research.models.schemas import ResearchRequest
from deep_research.services import logger as log_service
from deep_research.services.report_writer import format_report, report_filename, save_report

Ask = Callable[[str], Awaitable[str]]


async def ask_question(question: str) -> str:
    answer = await asyncio.to_thread(input, f"{question}\n> ")
    return answer.strip()


async def collect_request(args: argparse.Namespace, ask: Ask = ask_question) -> ResearchRequest | None:
    """Fill in whatever the command line left out by prompting."""
    query = (args.query or "").strip() or (await ask("\nWhat would you like to research?")).strip()
    if not query:
        return None

    breadth_raw = args.breadth
    if breadth_raw is None:
        breadth_raw = await ask(
            f"\nResearch breadth (1-10, default: {settings.default_breadth}):"
        )
    depth_raw = args.depth
    if depth_raw is None:
        depth_raw = await ask(f"\nResearch depth (1-5, default: {settings.default_depth}):")

    return ResearchRequest.from_user_input(
        query,
        breadth_raw,
        depth_raw,
        default_breadth=settings.default_breadth,
        default_depth=settings.default_depth,
    )


async def run_research(
    request: ResearchRequest,
    *,
    model: str | None = None,
    output_dir: str | None = None,
    ask: Ask = ask_question,
) -> Path:
    """Ask the feedback questions, run the research, save and print the report."""
    orchestrator = ResearchOrchestrator(model=model)

    print("\nLet me ask you a few questions to better understand your research needs...")
    initial = await orchestrator.deep_research(request.query, 1, 1)

    answers: list[str] = []
    for question in initial.feedback_questions:
        answers.append(await ask(f"\n{question}"))

    enhanced_query = build_enhanced_query(request.query, initial.feedback_questions, answers)

    print("\nThanks! Now I'll start the deep research with your context...")
    result = await orchestrator.deep_research(enhanced_query, request.breadth, request.depth)

    formatted = format_report(request.query, result)
    path = save_report(formatted, report_filename(request.query), output_dir)
    log_service.log_event("report_saved", "Research report written", path=str(path), error=result.error)

    print(f"\n{'=' * 50}")
    print("RESEARCH RESULTS")
    print(f"{'=' * 50}\n")
    print(formatted)
    return path


async def _run(args: argparse.Namespace) -> int:
    request = await collect_request(args)
    if request is None:
        logger.error("Please provide a research query")
        return 1
    await run_research(request, model=args.model, output_dir=args.output_dir)
    return 0


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="deep-research interactive research assistant")
    parser.add_argument("--query", "-q", help="Research query (prompted when omitted)")
    parser.add_argument("--breadth", "-b", help="Number of search queries, 1-10")
    parser.add_argument("--depth", "-d", help="Results per query factor, 1-5")
    parser.add_argument("--model", "-m", help="Model to use (default: from config)")
    parser.add_argument("--output-dir", "-o", help=f"Report directory (default: {settings.output_dir})")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_arguments(argv)

    missing = settings.missing_credentials()
    if missing:
        logger.error(f"Missing required environment variables: {', '.join(missing)}")
        return 1

    try:
        return asyncio.run(_run(args))
    except (KeyboardInterrupt, EOFError):
        print("\nAborted.")
        return 130
    except Exception as e:
        logger.exception(f"An error occurred: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
