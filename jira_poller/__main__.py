"""Command-line entry point: poll Jira once, or on a schedule."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from jira_poller.config import get_settings
from jira_poller.schemas.event import IssueEvent
from jira_poller.services.checkpoint import Checkpoint
from jira_poller.services.poller import IssuePoller
from jira_poller.tasks.scheduler import PollState, setup_scheduler, shutdown_scheduler

logger = logging.getLogger("jira_poller")
settings = get_settings()


def load_checkpoint(path: Path | None) -> Checkpoint:
    """Read the checkpoint from a JSON memory file, if there is one."""
    if path is None or not path.exists():
        return Checkpoint()
    return Checkpoint.from_memory(json.loads(path.read_text(encoding="utf-8")))


def save_checkpoint(path: Path | None, checkpoint: Checkpoint) -> None:
    if path is None:
        return
    path.write_text(json.dumps(checkpoint.to_memory(), indent=2), encoding="utf-8")


def print_event(event: IssueEvent) -> None:
    print(json.dumps(event.payload), flush=True)


async def poll_once(memory: Path | None) -> int:
    """Run a single poll; the memory file is only rewritten on success."""
    result = await IssuePoller().run(load_checkpoint(memory))
    if not result.ok:
        return 1

    for event in result.events:
        print_event(event)
    save_checkpoint(memory, result.checkpoint)
    return 0


async def poll_forever(memory: Path | None) -> None:
    state = PollState(checkpoint=load_checkpoint(memory))

    setup_scheduler(
        IssuePoller(),
        state,
        print_event,
        on_checkpoint=lambda checkpoint: save_checkpoint(memory, checkpoint),
    )
    try:
        await asyncio.Event().wait()
    finally:
        shutdown_scheduler()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="jira_poller", description=__doc__)
    parser.add_argument("--memory", type=Path, help="JSON file holding the last run checkpoint")
    parser.add_argument(
        "--schedule",
        action="store_true",
        help=f"poll every {settings.poll_interval_minutes} minutes instead of once",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.schedule:
        try:
            asyncio.run(poll_forever(args.memory))
        except KeyboardInterrupt:
            logger.info("Interrupted")
        return 0

    return asyncio.run(poll_once(args.memory))


if __name__ == "__main__":
    sys.exit(main())
