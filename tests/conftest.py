import os
import shutil
import stat
import tempfile

# configuration is read at import time, so it has to be in place before cjudge is imported
os.environ['SCRATCH_DIR'] = tempfile.mkdtemp(prefix='cjudge-test-')
os.environ['HINTS_ENABLED'] = '0'
os.environ['MAX_EXECUTION_TIME'] = '2'
os.environ['ERROR_CASE_SAVE_PATH'] = ''

import pytest

from cjudge.libs.executors.c_compiler import CompileOutcome
from cjudge.libs.executors.executor import ProcessExecuteResult
from cjudge.libs.workspace import WorkspaceManager


requires_gcc = pytest.mark.skipif(shutil.which('gcc') is None, reason='gcc is not installed')


@pytest.fixture
def workspaces(tmp_path):
    return WorkspaceManager(str(tmp_path / 'scratch'), retention=3600, sweep_interval=1800)


@pytest.fixture
def fake_tool(tmp_path):
    """Write an executable shell script and return its path."""
    def _make(name: str, body: str) -> str:
        path = tmp_path / name
        path.write_text('#!/bin/sh\n' + body)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)
    return _make


class FakeCompiler:
    def __init__(self, outcome: CompileOutcome | None = None):
        self.outcome = outcome or CompileOutcome(ok=True)
        self.calls = []

    def compile(self, source_path, binary_path):
        self.calls.append((source_path, binary_path))
        if self.outcome.ok:
            with open(binary_path, 'wb') as f:
                f.write(b'binary')
        return self.outcome


class FakeExecutor:
    timeout = 2

    def __init__(self, result: ProcessExecuteResult | None = None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = []

    def execute(self, binary_path, stdin=None, cwd=None):
        self.calls.append((binary_path, stdin, cwd))
        if self.error is not None:
            raise self.error
        return self.result


def process_result(stdout='', stderr='', exit_code=0, timed_out=False):
    return ProcessExecuteResult(stdout=stdout, stderr=stderr, exit_code=exit_code, cost=0.01, timed_out=timed_out)
