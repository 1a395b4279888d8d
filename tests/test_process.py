"""
Tests for the execution primitives (spawn real, short-lived children)
"""

import os
import time

import pytest

from fatvol.drivers.vfat import MountOutcome
from fatvol.utils import process as process_module
from fatvol.utils.process import (
    ProcessLaunchError, ProcessResult, ProcessRunner, ProcessTimeoutError
)


def _add(a, b):
    return a + b


def _child_pid():
    return os.getpid()


def _sleep_forever():
    time.sleep(60)


def _explode():
    raise RuntimeError('boom')


def _hard_exit():
    os._exit(3)


def _mount_outcome():
    return MountOutcome(0, True)


@pytest.fixture
def runner():
    return ProcessRunner()


class TestExecute:
    """Test cases for ProcessRunner.execute"""

    def test_exit_status(self, runner):
        """Test the exit status and output are captured"""
        result = runner.execute(['sh', '-c', 'echo out; echo err >&2; exit 3'])

        assert isinstance(result, ProcessResult)
        assert result.returncode == 3
        assert result.stdout.strip() == 'out'
        assert result.stderr.strip() == 'err'

    def test_success(self, runner):
        """Test a successful command"""
        assert runner.execute(['true']).returncode == 0

    def test_launch_failure(self, runner, tmp_path):
        """Test a missing binary raises a launch error"""
        with pytest.raises(ProcessLaunchError):
            runner.execute([str(tmp_path / 'no-such-tool')])

    def test_timeout_kills_command(self, runner):
        """Test a command past its deadline is killed"""
        start = time.monotonic()

        with pytest.raises(ProcessTimeoutError):
            runner.execute(['sleep', '30'], timeout=0.5)

        assert time.monotonic() - start < 10

    def test_undecodable_output(self, runner):
        """Test output that is not valid UTF-8 is decoded with replacement"""
        result = runner.execute(['sh', '-c', "printf 'FOUND.000\\377\\376.TXT\\n'; exit 0"])

        assert result.returncode == 0
        assert result.stdout.startswith('FOUND.000')
        assert result.stdout.rstrip().endswith('.TXT')

    def test_timeout_kills_detached_descendant(self, runner):
        """Test a descendant in its own session does not hold up the timeout"""
        start = time.monotonic()

        with pytest.raises(ProcessTimeoutError):
            runner.execute(['sh', '-c', 'setsid sleep 30 & sleep 30'], timeout=0.5)

        assert time.monotonic() - start < 3

    def test_timeout_abandons_open_output(self, runner, monkeypatch):
        """Test the timeout is bounded when an escaped process keeps the pipes open"""
        monkeypatch.setattr(process_module, 'KILL_GRACE_PERIOD', 0.5)
        start = time.monotonic()

        with pytest.raises(ProcessTimeoutError):
            runner.execute(['sh', '-c', '(setsid sleep 5 &); sleep 30'], timeout=0.5)

        assert time.monotonic() - start < 3


class TestRunWithTimeout:
    """Test cases for ProcessRunner.run_with_timeout"""

    def test_returns_result(self, runner):
        """Test the child's return value reaches the parent"""
        assert runner.run_with_timeout(_add, (2, 3), timeout=10) == 5

    def test_runs_in_child(self, runner):
        """Test the task runs in a different process"""
        assert runner.run_with_timeout(_child_pid, timeout=10) != os.getpid()

    def test_namedtuple_result(self, runner):
        """Test a mount outcome survives the trip through the pipe"""
        assert runner.run_with_timeout(_mount_outcome, timeout=10) == MountOutcome(0, True)

    def test_timeout_kills_child(self, runner):
        """Test a task past its deadline is killed"""
        start = time.monotonic()

        with pytest.raises(ProcessTimeoutError):
            runner.run_with_timeout(_sleep_forever, timeout=0.5)

        assert time.monotonic() - start < 10

    def test_child_exception(self, runner):
        """Test an exception in the child is reported to the parent"""
        with pytest.raises(ProcessLaunchError, match='boom'):
            runner.run_with_timeout(_explode, timeout=10)

    def test_child_dies_without_result(self, runner):
        """Test a child exiting without a result is reported"""
        with pytest.raises(ProcessLaunchError, match='without a result'):
            runner.run_with_timeout(_hard_exit, timeout=10)
