"""
Execution primitives used by the vfat driver

Two capabilities:
1. execute(): run an external command to completion and capture its exit status
2. run_with_timeout(): run a Python callable in a forked child with a deadline

Both kill what they started once the deadline passes, so a tool or a kernel
call stuck on faulty media never hangs the caller.
"""

import multiprocessing
import os
import signal
import subprocess
from typing import Any, Callable, List, NamedTuple, Optional, Sequence

import psutil

from fatvol.utils.logger import get_logger

LOG = get_logger(__name__)

# Seconds to wait for a killed child before abandoning it
KILL_GRACE_PERIOD = 5

_FORK_CONTEXT = multiprocessing.get_context('fork')


class ProcessLaunchError(Exception):
    """Raised when a command or forked task could not be started"""
    pass


class ProcessTimeoutError(Exception):
    """Raised when a command or forked task exceeded its deadline"""
    pass


class ProcessResult(NamedTuple):
    returncode: int
    stdout: str
    stderr: str


def _task_entry(conn, func: Callable, args: Sequence[Any]):
    """Body of the forked child: run func and ship its result to the parent"""
    try:
        conn.send(('ok', func(*args)))
    except Exception as e:
        conn.send(('error', f"{type(e).__name__}: {e}"))
    finally:
        conn.close()


class ProcessRunner:
    """Runs external commands and forked tasks under an optional deadline"""

    def execute(self, cmd: List[str], timeout: Optional[float] = None) -> ProcessResult:
        """
        Run a command to completion.

        Args:
            cmd: Fully constructed command as list of strings
            timeout: Seconds before the command is killed (None waits forever)

        Returns:
            ProcessResult with exit status and captured output

        Raises:
            ProcessLaunchError: the command could not be started
            ProcessTimeoutError: the command exceeded the timeout
        """
        LOG.debug(f"Executing: {' '.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                universal_newlines=True,
                errors='replace',
                start_new_session=True
            )
        except OSError as e:
            raise ProcessLaunchError(f"Failed to start {cmd[0]}: {e}") from e

        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            LOG.warning(f"{cmd[0]} (PID {process.pid}) timed out after {timeout}s, killing")
            self._kill_tree(process.pid)
            try:
                os.killpg(process.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
            try:
                process.communicate(timeout=KILL_GRACE_PERIOD)
            except subprocess.TimeoutExpired:
                # A detached descendant still holds the output pipes
                LOG.error(f"{cmd[0]} (PID {process.pid}) left its output open, abandoning it")
                process.stdout.close()
                process.stderr.close()
            raise ProcessTimeoutError(f"{cmd[0]} timed out after {timeout} seconds")

        if stderr:
            LOG.debug(f"{cmd[0]} stderr: {stderr.strip()}")

        return ProcessResult(process.returncode, stdout, stderr)

    def run_with_timeout(self, func: Callable, args: Sequence[Any] = (),
                         timeout: Optional[float] = None) -> Any:
        """
        Run func(*args) in a forked child and return its result.

        The result travels back over a pipe, so it must be picklable.

        Args:
            func: Callable executed in the child
            args: Positional arguments for func
            timeout: Seconds before the child is killed (None waits forever)

        Returns:
            Whatever func returned in the child

        Raises:
            ProcessLaunchError: fork failed, or the child died or raised
            ProcessTimeoutError: the child did not finish in time
        """
        reader, writer = _FORK_CONTEXT.Pipe(duplex=False)
        process = _FORK_CONTEXT.Process(
            target=_task_entry,
            args=(writer, func, tuple(args)),
            daemon=True
        )

        try:
            process.start()
        except OSError as e:
            reader.close()
            raise ProcessLaunchError(f"Failed to fork task: {e}") from e
        finally:
            writer.close()

        try:
            if not reader.poll(timeout):
                LOG.warning(f"Forked task (PID {process.pid}) timed out after {timeout}s, killing")
                self._kill_tree(process.pid)
                process.join(KILL_GRACE_PERIOD)
                if process.is_alive():
                    LOG.error(f"Forked task (PID {process.pid}) did not die, abandoning it")
                raise ProcessTimeoutError(f"Task timed out after {timeout} seconds")

            try:
                status, value = reader.recv()
            except EOFError:
                process.join(KILL_GRACE_PERIOD)
                raise ProcessLaunchError(
                    f"Forked task exited with code {process.exitcode} without a result"
                )
        finally:
            reader.close()

        process.join(KILL_GRACE_PERIOD)

        if status == 'error':
            raise ProcessLaunchError(f"Forked task failed: {value}")

        return value

    @staticmethod
    def _kill_tree(pid: int):
        """Kill a process and all of its descendants"""
        try:
            parent = psutil.Process(pid)
            procs = parent.children(recursive=True) + [parent]
        except psutil.NoSuchProcess:
            return

        for proc in procs:
            try:
                proc.kill()
            except psutil.NoSuchProcess:
                pass

        psutil.wait_procs(procs, timeout=KILL_GRACE_PERIOD)
