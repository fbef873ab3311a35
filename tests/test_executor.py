import shutil
import signal
import sys

import pytest

from cjudge.libs.executors import executor as executor_module
from cjudge.libs.executors.executor import ProcessExecutor, execute


pytestmark = pytest.mark.skipif(sys.platform == 'win32', reason='needs a POSIX shell and process groups')


def sh(script):
    return ['/bin/sh', '-c', script]


def test_input_is_fed_and_output_captured():
    result = execute(sh('read a b; echo $((a + b))'), stdin='5 10', timeout=5)
    assert result.success
    assert result.exit_code == 0
    assert result.stdout == '15\n'
    assert result.stderr == ''
    assert not result.timed_out


def test_empty_input_closes_stdin_immediately():
    result = execute(['cat'], stdin='', timeout=5)
    assert result.success
    assert result.stdout == ''
    assert result.cost < 5


def test_stderr_is_captured_separately():
    result = execute(sh('echo out; echo oops >&2; exit 3'), timeout=5)
    assert not result.success
    assert result.exit_code == 3
    assert result.stdout == 'out\n'
    assert result.stderr == 'oops\n'


def test_merge_stderr_puts_everything_on_stdout():
    result = execute(sh('echo out; echo oops >&2'), timeout=5, merge_stderr=True)
    assert 'out' in result.stdout
    assert 'oops' in result.stdout
    assert result.stderr == ''


def test_timeout_kills_and_keeps_partial_output():
    result = execute(sh('echo partial; sleep 30'), timeout=0.5)
    assert result.timed_out
    assert not result.success
    assert result.exit_code is None
    assert result.stdout == 'partial\n'
    assert result.cost < 5


def test_timeout_kills_the_whole_process_group():
    # the background sleep holds the pipes open; only a group kill releases them
    result = execute(sh('sleep 30 & sleep 30; echo never'), timeout=0.5)
    assert result.timed_out
    assert result.stdout == ''
    assert result.cost < 5


def test_program_blocked_on_read_is_stopped_by_timeout():
    # keeps asking for input that never comes
    result = execute(sh('while ! read x; do :; done'), stdin='', timeout=0.5)
    assert result.timed_out


def test_large_output_on_both_streams_does_not_deadlock():
    script = 'head -c 300000 /dev/zero | tr "\\0" a; head -c 300000 /dev/zero | tr "\\0" b >&2'
    result = execute(sh(script), timeout=10)
    assert result.success
    assert len(result.stdout) == 300000
    assert len(result.stderr) == 300000


def test_output_beyond_limit_is_dropped_without_blocking():
    result = execute(sh('head -c 500000 /dev/zero | tr "\\0" a'), timeout=10, max_output_bytes=1000)
    assert result.success
    assert result.stdout == 'a' * 1000


def test_unread_input_is_not_an_error():
    result = execute(sh('exit 0'), stdin='x' * (1024 * 1024), timeout=5)
    assert result.success


def test_orphan_holding_pipes_is_killed_after_exit():
    result = execute(sh('sleep 30 & echo done'), timeout=1)
    assert not result.timed_out
    assert result.exit_code == 0
    assert result.stdout == 'done\n'
    assert result.cost < 5


def test_invalid_utf8_is_replaced():
    result = execute(sh("printf '\\377ok'"), timeout=5)
    assert result.stdout == '\ufffdok'


def test_missing_binary_raises():
    with pytest.raises(FileNotFoundError):
        execute(['/nonexistent/program'], timeout=1)


def test_process_executor_runs_in_cwd(tmp_path):
    program = tmp_path / 'prog'
    program.write_text('#!/bin/sh\npwd -P\n')
    program.chmod(0o755)
    executor = ProcessExecutor(timeout=5)
    result = executor.execute(str(program), cwd=str(tmp_path))
    assert result.success
    assert result.stdout.strip() == str(tmp_path.resolve())


def test_unencodable_input_is_replaced():
    result = execute(sh('cat'), stdin='a\ud800b', timeout=5)
    assert result.success
    assert result.stdout == 'a?b'


def test_child_is_killed_when_running_it_fails(monkeypatch):
    spawned = []

    def broken(process, *args):
        spawned.append(process)
        raise RuntimeError('reader thread could not start')

    monkeypatch.setattr(executor_module, '_communicate', broken)
    with pytest.raises(RuntimeError):
        execute(sh('sleep 30'), timeout=5)
    assert spawned[0].returncode == -signal.SIGKILL


@pytest.mark.skipif(shutil.which('setsid') is None, reason='setsid is not installed')
def test_descendant_in_its_own_session_does_not_hold_the_call():
    # it escapes the group kill, the call still returns once the budget is spent
    result = execute(sh('setsid sleep 10 & echo done'), timeout=1)
    assert result.exit_code == 0
    assert result.stdout == 'done\n'
    assert result.cost < 5


def test_env_is_passed_to_the_child():
    result = execute(sh('echo "$CJUDGE_VALUE"'), timeout=5, env={'CJUDGE_VALUE': 'scratch', 'PATH': '/usr/bin:/bin'})
    assert result.stdout == 'scratch\n'
