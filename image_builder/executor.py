"""Retry executor: runs the build command with bounded retries and linear backoff."""

import subprocess
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable

from image_builder.command import BuildCommand

# Seconds to wait per failed attempt: attempt k is followed by a k * BACKOFF_STEP pause
BACKOFF_STEP = 10


class AttemptState(Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class BuildAttempt:
    """Outcome of a single build invocation"""
    index: int
    started_at: datetime
    finished_at: datetime
    duration: float
    success: bool


@dataclass
class BuildResult:
    """Final outcome of the retry loop"""
    success: bool
    attempts: int
    image_ref: str
    elapsed: float | None = None
    history: list[BuildAttempt] = field(default_factory=list)


def backoff_delay(attempt: int) -> int:
    """Pause before the attempt following `attempt` (1-based)."""
    return attempt * BACKOFF_STEP


def run_command(command: BuildCommand, cwd: Path | None = None) -> bool:
    """Run a build command to completion, output goes straight to the terminal."""
    try:
        result = subprocess.run(command.argv, cwd=cwd)
    except OSError as e:
        print(f"Warning: Could not start build command: {e}", file=sys.stderr)
        return False
    return result.returncode == 0


class RetryExecutor:
    """Runs a build command up to `retry_limit` times.

    States move Idle -> Attempting -> Succeeded | Retrying | Exhausted;
    Retrying sleeps and returns to Attempting. Attempts are strictly
    sequential.
    """

    def __init__(
        self,
        retry_limit: int,
        run: Callable[[BuildCommand], bool] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if retry_limit < 1:
            raise ValueError(f"retry_limit must be >= 1, got {retry_limit}")
        self.retry_limit = retry_limit
        self.run = run or run_command
        self.sleep = sleep
        self.clock = clock
        self.state = AttemptState.IDLE

    def execute(self, command: BuildCommand, image_ref: str) -> BuildResult:
        history: list[BuildAttempt] = []
        attempt = 1
        self.state = AttemptState.ATTEMPTING

        while True:
            print(f"Build attempt {attempt} of {self.retry_limit}...")
            started_at = datetime.now(timezone.utc)
            start = self.clock()
            success = self.run(command)
            duration = self.clock() - start

            history.append(BuildAttempt(
                index=attempt,
                started_at=started_at,
                finished_at=datetime.now(timezone.utc),
                duration=duration,
                success=success,
            ))

            if success:
                self.state = AttemptState.SUCCEEDED
                print(f"Image built in {duration:.0f}s: {image_ref}")
                return BuildResult(
                    success=True,
                    attempts=attempt,
                    image_ref=image_ref,
                    elapsed=duration,
                    history=history,
                )

            print(f"Warning: Build attempt {attempt} failed after {duration:.0f}s", file=sys.stderr)

            if attempt >= self.retry_limit:
                self.state = AttemptState.EXHAUSTED
                print(f"Error: Failed to build image after {self.retry_limit} attempts", file=sys.stderr)
                return BuildResult(
                    success=False,
                    attempts=attempt,
                    image_ref=image_ref,
                    history=history,
                )

            self.state = AttemptState.RETRYING
            wait = backoff_delay(attempt)
            print(f"Retrying in {wait} seconds...")
            self.sleep(wait)
            attempt += 1
            self.state = AttemptState.ATTEMPTING
