from functools import partial
import logging
import math
import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass, field
from typing import IO

import psutil


logger = logging.getLogger(__name__)


@dataclass
class ProcessExecuteResult:
    stdout: str
    stderr: str
    exit_code: int | None  # None when the process was killed on timeout
    cost: float # in seconds
    timed_out: bool = False
    success: bool = field(init=False)

    def __post_init__(self):
        self.success = not self.timed_out and self.exit_code == 0


DEFAULT_MAX_OUTPUT_BYTES = 1024 * 1024
# how long to wait for the pipes to drain after the process group was killed
KILL_GRACE_PERIOD = 1.0
_READ_CHUNK_SIZE = 64 * 1024


def _init_limits(timeout: float | None = None, max_memory: int | None = None):
    import resource

    def _set_soft_limit(kind, value):
        soft, hard = resource.getrlimit(kind)
        if hard != resource.RLIM_INFINITY:
            value = min(value, hard)
        resource.setrlimit(kind, (value, hard))

    # no core dumps from crashing submissions
    resource.setrlimit(resource.RLIMIT_CORE, (0, 0))

    if timeout:
        # cpu time backstop, one second over the wall clock limit enforced by the parent
        _set_soft_limit(resource.RLIMIT_CPU, math.ceil(timeout) + 1)

    if max_memory:
        _set_soft_limit(resource.RLIMIT_AS, max_memory)


class _StreamReader(threading.Thread):
    """Drains one pipe of the child into a bounded buffer.

    Bytes beyond ``limit`` are read and dropped so the child never blocks on
    a full pipe.
    """

    def __init__(self, stream: IO[bytes], limit: int, name: str):
        super().__init__(name=name, daemon=True)
        self.stream = stream
        self.limit = limit
        self.buffer = bytearray()
        self.truncated = False

    def run(self):
        try:
            while True:
                chunk = self.stream.read1(_READ_CHUNK_SIZE)
                if not chunk:
                    break
                room = self.limit - len(self.buffer)
                if room > 0:
                    self.buffer += chunk[:room]
                if len(chunk) > room:
                    self.truncated = True
        except (OSError, ValueError):
            # the pipe was closed under us after a kill
            logger.debug(f'Stopped reading {self.name}', exc_info=True)
        finally:
            self.stream.close()

    def text(self) -> str:
        return bytes(self.buffer).decode(errors='replace')


def _feed_stdin(stream: IO[bytes], data: bytes):
    try:
        stream.write(data)
        stream.flush()
    except (BrokenPipeError, ValueError):
        # the child exited (or was killed) without consuming all of its input
        logger.debug('Child closed stdin before reading all input')
    finally:
        try:
            stream.close()
        except BrokenPipeError:
            pass


def kill_process_tree(process: subprocess.Popen, with_descendants: bool = True):
    """Kill the process group of ``process`` and every descendant still alive.

    Descendants that moved to their own session escape ``killpg``, so they are
    collected with psutil first and killed one by one. Only do that while
    ``process`` is not reaped yet, its pid may be reused afterwards.
    """
    children = []
    if with_descendants:
        try:
            children = psutil.Process(process.pid).children(recursive=True)
        except psutil.NoSuchProcess:
            pass

    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        # group already gone
        pass
    except PermissionError:
        logger.warning(f'Not allowed to kill process group {process.pid}, killing the process only')
        process.kill()

    for child in children:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            pass


def execute(
    args: list[str],
    stdin: str | None = None,
    timeout: float | None = None,
    max_memory: int | None = None,
    cwd: str | None = None,
    merge_stderr: bool = False,
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
    env: dict[str, str] | None = None,
) -> ProcessExecuteResult:
    """Run ``args`` with all three standard streams piped.

    stdout and stderr are drained by two reader threads while the input is
    written by a third one, so a chatty child can never deadlock on a full
    pipe. On timeout the whole process group is killed and whatever was
    captured so far is returned.
    """
    # lone surrogates from JSON input become '?' instead of failing after the spawn
    input_data = stdin.encode(errors='replace') if stdin else b''

    time_start = time.perf_counter()
    process = subprocess.Popen(
        args,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
        preexec_fn=partial(_init_limits, timeout, max_memory),
        start_new_session=True,
        close_fds=True,
        shell=False,
        cwd=cwd,
        env=env,
    )

    try:
        stdout_reader, stderr_reader, timed_out, exit_code = _communicate(
            process, input_data, timeout, time_start, merge_stderr, max_output_bytes,
        )
    except BaseException:
        logger.warning(f'Killing process {process.pid} after an error while running it')
        kill_process_tree(process)
        process.wait()
        raise

    time_end = time.perf_counter()

    return ProcessExecuteResult(
        stdout=stdout_reader.text(),
        stderr=stderr_reader.text() if stderr_reader is not None else '',
        exit_code=exit_code,
        cost=time_end - time_start,
        timed_out=timed_out,
    )


def _communicate(process, input_data, timeout, time_start, merge_stderr, max_output_bytes):
    stdout_reader = _StreamReader(process.stdout, max_output_bytes, f'stdout-{process.pid}')
    stdout_reader.start()
    readers = [stdout_reader]
    stderr_reader = None
    if not merge_stderr:
        stderr_reader = _StreamReader(process.stderr, max_output_bytes, f'stderr-{process.pid}')
        stderr_reader.start()
        readers.append(stderr_reader)

    writer = None
    if input_data:
        writer = threading.Thread(
            target=_feed_stdin,
            args=(process.stdin, input_data),
            name=f'stdin-{process.pid}',
            daemon=True,
        )
        writer.start()
    else:
        # a program blocked on read gets EOF right away
        process.stdin.close()

    timed_out = False
    try:
        exit_code = process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        timed_out = True
        exit_code = None
        logger.info(f'Process {process.pid} exceeded {timeout}s, killing its process group')
        kill_process_tree(process)
        process.wait()

    if timed_out:
        for reader in readers:
            reader.join(KILL_GRACE_PERIOD)
    else:
        # an orphaned grandchild may still hold the pipes open
        for reader in readers:
            left_time = None if timeout is None else max(timeout - (time.perf_counter() - time_start), 0)
            reader.join(left_time)
        if any(reader.is_alive() for reader in readers):
            logger.info(f'Descendants of process {process.pid} kept its pipes open, killing them')
            # the group outlives its reaped leader as long as members remain
            kill_process_tree(process, with_descendants=False)
            for reader in readers:
                reader.join(KILL_GRACE_PERIOD)
    if writer is not None:
        writer.join(KILL_GRACE_PERIOD)
    for reader in readers:
        if reader.truncated:
            logger.info(f'Output of process {process.pid} on {reader.name} cut at {reader.limit} bytes')

    return stdout_reader, stderr_reader, timed_out, exit_code


class Executor:
    """Runs a compiled program. Swap the implementation to change the sandbox."""

    def execute(self, binary_path: str, stdin: str | None = None, cwd: str | None = None) -> ProcessExecuteResult:
        raise NotImplementedError


class ProcessExecutor(Executor):
    """Plain child process in its own process group, with optional rlimits."""

    def __init__(
        self,
        timeout: float,
        max_memory: int | None = None,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
    ):
        self.timeout = timeout
        self.max_memory = max_memory
        self.max_output_bytes = max_output_bytes

    def execute(self, binary_path, stdin=None, cwd=None):
        return execute(
            [binary_path],
            stdin=stdin,
            timeout=self.timeout,
            max_memory=self.max_memory,
            cwd=cwd,
            max_output_bytes=self.max_output_bytes,
        )
