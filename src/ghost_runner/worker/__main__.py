"""Worker entry point: ``python -m ghost_runner.worker --task=<name>``."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from ghost_runner.config import Settings
from ghost_runner.worker.runner import run_task


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="ghost_runner.worker",
        description="Run a single ghost-runner task and report its status on stdout",
    )
    parser.add_argument("--task", required=True, help="Name of the task to run")
    parser.add_argument("--tasks-dir", default=None, help="Directory containing task scripts")
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    # Log lines share stdout with status markers; the supervisor tells them apart
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
        force=True,
    )

    tasks_dir = Path(args.tasks_dir) if args.tasks_dir else Settings().tasks_path
    sys.exit(asyncio.run(run_task(args.task, tasks_dir)))


if __name__ == "__main__":
    main()
