import itertools
from unittest.mock import patch

import pytest

from image_builder.command import BuildCommand
from image_builder.executor import AttemptState, RetryExecutor, backoff_delay, run_command

COMMAND = BuildCommand(subcommand=("build",), flags=("-t", "x:latest"))


def scripted_run(outcomes):
    """Build runner returning the given outcomes in order, recording calls."""
    calls = []
    results = iter(outcomes)

    def run(command):
        calls.append(command)
        return next(results)

    return run, calls


def fake_clock(step=5):
    counter = itertools.count(0, step)
    return lambda: next(counter)


@pytest.mark.parametrize("limit", [1, 2, 3, 5])
def test_permanent_failure_uses_all_attempts(limit):
    run, calls = scripted_run([False] * limit)
    sleeps = []
    executor = RetryExecutor(limit, run=run, sleep=sleeps.append, clock=fake_clock())

    result = executor.execute(COMMAND, "x:latest")

    assert result.success is False
    assert result.attempts == limit
    assert len(calls) == limit
    assert result.elapsed is None
    assert executor.state == AttemptState.EXHAUSTED


@pytest.mark.parametrize("limit", [1, 3, 4])
def test_linear_backoff(limit):
    run, _ = scripted_run([False] * limit)
    sleeps = []
    RetryExecutor(limit, run=run, sleep=sleeps.append, clock=fake_clock()).execute(COMMAND, "x:latest")
    assert sleeps == [k * 10 for k in range(1, limit)]


@pytest.mark.parametrize("success_at", [1, 2, 3])
def test_success_stops_retrying(success_at):
    outcomes = [False] * (success_at - 1) + [True]
    run, calls = scripted_run(outcomes)
    sleeps = []
    executor = RetryExecutor(3, run=run, sleep=sleeps.append, clock=fake_clock())

    result = executor.execute(COMMAND, "x:v1")

    assert result.success is True
    assert result.attempts == success_at
    assert len(calls) == success_at
    assert len(sleeps) == success_at - 1
    assert executor.state == AttemptState.SUCCEEDED


def test_durations_recorded_for_every_attempt():
    run, _ = scripted_run([False, True])
    result = RetryExecutor(3, run=run, sleep=lambda s: None, clock=fake_clock(7)).execute(COMMAND, "x:v1")

    assert [a.index for a in result.history] == [1, 2]
    assert [a.success for a in result.history] == [False, True]
    assert all(a.duration == 7 for a in result.history)
    assert all(a.finished_at >= a.started_at for a in result.history)
    assert result.elapsed == 7


def test_backoff_delay():
    assert backoff_delay(1) == 10
    assert backoff_delay(4) == 40


def test_invalid_retry_limit():
    with pytest.raises(ValueError):
        RetryExecutor(0)


def test_run_command_missing_binary_counts_as_failure():
    with patch("image_builder.executor.subprocess.run", side_effect=FileNotFoundError("docker")):
        assert run_command(COMMAND) is False


def test_run_command_passes_argv_without_shell(tmp_path):
    with patch("image_builder.executor.subprocess.run") as mock_run:
        mock_run.return_value.returncode = 0
        assert run_command(COMMAND, cwd=tmp_path) is True
    mock_run.assert_called_once_with(["docker", "build", "-t", "x:latest", "."], cwd=tmp_path)
