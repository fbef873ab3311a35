from enum import Enum
import json
import logging
from pathlib import Path
import signal
import traceback

import cjudge.config as app_config
from cjudge.libs.compare import outputs_equal
from cjudge.libs.executors.c_compiler import CCompiler
from cjudge.libs.executors.executor import Executor, ProcessExecuteResult, ProcessExecutor
from cjudge.libs.utils import truncate
from cjudge.libs.workspace import WorkspaceManager
from cjudge.model import Submission, Verdict


logger = logging.getLogger(__name__)


class PipelineState(Enum):
    RECEIVED = 'received'
    COMPILING = 'compiling'
    COMPILE_FAILED = 'compile_failed'
    COMPILED = 'compiled'
    EXECUTING = 'executing'
    TIMED_OUT = 'timed_out'
    RUNTIME_FAILED = 'runtime_failed'
    EXECUTED = 'executed'
    COMPARING = 'comparing'
    CORRECT = 'correct'
    INCORRECT = 'incorrect'


def save_error_case(sub: Submission, exception: Exception, state: PipelineState):
    if not app_config.ERROR_CASE_SAVE_PATH:
        return

    try:
        save_path = Path(app_config.ERROR_CASE_SAVE_PATH) / sub.sub_id
        save_path.mkdir(parents=True, exist_ok=True)
        with open(save_path / 'submission.json', 'w') as f:
            f.write(sub.model_dump_json(by_alias=True, indent=True))
        with open(save_path / 'main.c', 'w') as f:
            f.write(sub.code)
        with open(save_path / 'state.json', 'w') as f:
            json.dump({'state': state.value}, f)
        with open(save_path / 'exception.txt', 'w') as f:
            for line in traceback.format_exception(exception):
                f.write(line)
    except Exception:
        logger.exception(f'Failed to save error case for submission {sub.sub_id}')


def describe_runtime_failure(result: ProcessExecuteResult) -> str:
    stderr = result.stderr.strip()
    if stderr:
        return f'Runtime error:\n{stderr}'
    if result.exit_code is not None and result.exit_code < 0:
        try:
            name = signal.Signals(-result.exit_code).name
        except ValueError:
            name = f'signal {-result.exit_code}'
        return f'Runtime error: program terminated by {name}'
    return f'Runtime error: program exited with code {result.exit_code}'


class JudgePipeline:
    """write source -> compile -> run with input -> compare, one submission at a time.

    Each call to ``judge`` owns its workspace for its whole lifetime; nothing
    else is shared between concurrent calls.
    """

    def __init__(
        self,
        workspaces: WorkspaceManager,
        compiler: CCompiler,
        executor: Executor,
        max_output_length: int = 0,
    ):
        self.workspaces = workspaces
        self.compiler = compiler
        self.executor = executor
        self.max_output_length = max_output_length

    def judge(self, sub: Submission) -> Verdict:
        state = PipelineState.RECEIVED
        try:
            with self.workspaces.workspace(sub.sub_id) as workspace:
                with open(workspace.source_path, 'w', encoding='utf-8') as f:
                    f.write(sub.code)

                state = PipelineState.COMPILING
                compiled = self.compiler.compile(workspace.source_path, workspace.binary_path)
                if not compiled.ok:
                    state = PipelineState.COMPILE_FAILED
                    logger.info(f'Submission {sub.sub_id} (exercise {sub.exercise_id}) failed to compile')
                    return Verdict.compilation_error(compiled.diagnostic)
                state = PipelineState.COMPILED

                state = PipelineState.EXECUTING
                result = self.executor.execute(workspace.binary_path, stdin=sub.input, cwd=workspace.directory)

            if result.timed_out:
                state = PipelineState.TIMED_OUT
                logger.info(f'Submission {sub.sub_id} timed out after {result.cost:.2f}s')
                return Verdict.runtime_error(
                    f'Time limit exceeded: the program did not finish within {self._timeout_text()}',
                    output=truncate(result.stdout, self.max_output_length),
                )
            if not result.success and not result.stdout:
                state = PipelineState.RUNTIME_FAILED
                logger.info(f'Submission {sub.sub_id} crashed with exit code {result.exit_code}')
                return Verdict.runtime_error(truncate(describe_runtime_failure(result), self.max_output_length))
            # a non-zero exit that still printed something is judged on its output
            state = PipelineState.EXECUTED

            state = PipelineState.COMPARING
            is_correct = outputs_equal(result.stdout, sub.expected_output)
            state = PipelineState.CORRECT if is_correct else PipelineState.INCORRECT
            logger.info(f'Submission {sub.sub_id} (exercise {sub.exercise_id}) judged {state.value} in {result.cost:.2f}s')
            return Verdict.compared(
                output=truncate(result.stdout, self.max_output_length),
                expected_output=sub.expected_output,
                is_correct=is_correct,
            )
        except Exception as e:
            logger.exception(f'Failed to judge submission {sub.sub_id} while {state.value}')
            save_error_case(sub, e, state)
            return Verdict.internal_error()

    def _timeout_text(self) -> str:
        timeout = getattr(self.executor, 'timeout', None)
        return f'{timeout:g} seconds' if timeout else 'the time limit'


def create_pipeline(workspaces: WorkspaceManager) -> JudgePipeline:
    return JudgePipeline(
        workspaces=workspaces,
        compiler=CCompiler(
            compiler_path=app_config.C_COMPILER_PATH,
            flags=app_config.C_COMPILER_FLAGS,
            timeout=app_config.COMPILE_TIMEOUT,
        ),
        executor=ProcessExecutor(
            timeout=app_config.MAX_EXECUTION_TIME,
            max_memory=app_config.MAX_MEMORY * 1024 * 1024,
            max_output_bytes=app_config.MAX_OUTPUT_BYTES,
        ),
        max_output_length=app_config.MAX_STDOUT_ERROR_LENGTH,
    )
