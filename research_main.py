#!/usr/bin/env python3
"""Research supervisor CLI entrypoint.

Usage:
    # Run a research brief and print the execution tree and notes
    python research_main.py "Compare X vs Y vs Z"

    # Skip the clarifying question and go straight to the research brief
    python research_main.py "Compare X vs Y vs Z" --no-clarify

    # Bound the number of supervisor rounds
    python research_main.py "Compare X vs Y vs Z" --max-rounds 3

    # Rebuild the execution tree of an earlier run from the event log
    python research_main.py --replay <thread-id>
"""

import argparse
import asyncio
import logging
import sys
import uuid
from pathlib import Path

# Add project root to sys.path for imports
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from langchain_core.messages import HumanMessage

from researchAgent.config import get_settings
from researchAgent.persistence import EventLog
from researchAgent.runtime import build_research_app
from researchAgent.utils import log_error, setup_logging
from researchViewer import (
    BatchingScheduler,
    ExecutionView,
    StreamReconstructor,
    consume_stream,
    replay_events,
)

LOGGER = logging.getLogger("researchAgent.cli")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Deep research supervisor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("brief", nargs="?", help="Research brief / question")
    parser.add_argument("--thread-id", type=str, help="Thread id (default: random)")
    parser.add_argument(
        "--max-rounds",
        type=int,
        help="Maximum supervisor rounds (default: MAX_RESEARCHER_ITERATIONS or 6)",
    )
    parser.add_argument(
        "--no-clarify",
        action="store_true",
        help="Never ask a clarifying question before writing the research brief",
    )
    parser.add_argument("--replay", metavar="THREAD_ID", help="Replay a thread from the event log")
    parser.add_argument("--verbose", action="store_true", help="Print INFO logs to the console")
    return parser.parse_args(argv)


async def run_research(brief: str, thread_id: str, max_rounds=None, clarify=True) -> int:
    settings = get_settings()
    if max_rounds:
        settings = settings.model_copy(
            update={"governance": settings.governance.model_copy(update={"max_researcher_iterations": max_rounds})}
        )
    if not clarify:
        settings = settings.model_copy(
            update={"scope": settings.scope.model_copy(update={"allow_clarification": False})}
        )

    app, initial_state, _ = build_research_app(settings=settings)
    state = initial_state(brief, thread_id)
    config = {"configurable": {"thread_id": thread_id}}

    view = ExecutionView()
    final_state: dict = {}

    async def chunks(run_input):
        async for mode, payload in app.astream(run_input, config=config, stream_mode=["values", "custom"]):
            if mode == "values":
                final_state.update(payload)
            yield mode, payload

    print(f"Thread: {thread_id}")
    while True:
        # one scheduler per run on the thread; the view accumulates across runs
        scheduler = BatchingScheduler(StreamReconstructor(), view, interval=settings.viewer.flush_interval)
        await consume_stream(chunks(state), scheduler)
        if not final_state.get("need_clarification"):
            break

        print(f"\n{final_state['messages'][-1].content}")
        answer = input("> ").strip()
        if not answer:
            print("No answer given, stopping")
            return 1
        final_state["need_clarification"] = False
        state = {"messages": [HumanMessage(content=answer)]}

    print("\n=== Execution ===")
    print(view.render())

    if final_state.get("research_brief"):
        print("\n=== Brief ===")
        print(final_state["research_brief"])

    print("\n=== Notes ===")
    for index, note in enumerate(final_state.get("notes", []), 1):
        print(f"\n[{index}] {note}")

    if final_state.get("limit_notice"):
        print(f"\n{final_state['limit_notice']}")
    print(f"\nStopped: {final_state.get('stop_reason')} after {final_state.get('research_iterations', 0)} round(s)")
    return 0


def replay(thread_id: str) -> int:
    settings = get_settings()
    event_log = EventLog(settings.observability.event_log_path or "data/events.db")
    events = event_log.events_for_thread(thread_id)
    if not events:
        print(f"No events recorded for thread {thread_id}")
        return 1

    view = replay_events(events)
    print(view.render())
    return 0


async def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(
        level=logging.INFO if args.verbose else logging.WARNING,
        preview_length=get_settings().observability.log_prompt_max_length,
    )

    if args.replay:
        return replay(args.replay)

    if not args.brief:
        print("A research brief is required (or --replay THREAD_ID)")
        return 2

    try:
        return await run_research(
            args.brief,
            args.thread_id or str(uuid.uuid4()),
            args.max_rounds,
            clarify=not args.no_clarify,
        )
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except Exception as e:
        log_error(LOGGER, e, context="research run")
        print(f"Error: {getattr(e, 'user_message', str(e))}")
        return 1


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
