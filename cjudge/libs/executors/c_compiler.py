import logging
import os
import re
from dataclasses import dataclass

from cjudge.libs.executors.executor import execute


logger = logging.getLogger(__name__)


# name shown to students in place of the scratch path of their source file
SOURCE_PLACEHOLDER = 'main.c'
# gcc names its intermediate objects like ccAbC123.o
TEMP_OBJECT_PATTERN = re.compile(r"\bcc[A-Za-z0-9]{6}\.o\b")


@dataclass
class CompileOutcome:
    ok: bool
    diagnostic: str | None = None  # only set when ok is False
    cost: float = 0 # in seconds


def format_diagnostic(text: str, source_path: str) -> str:
    """Hide the scratch directory from compiler output and drop blank lines."""
    directory = os.path.dirname(source_path)
    text = text.replace(source_path, SOURCE_PLACEHOLDER)
    text = text.replace(directory + os.sep, '')
    text = text.replace(directory, '.')
    text = TEMP_OBJECT_PATTERN.sub('main.o', text)
    return '\n'.join(line for line in text.splitlines() if line.strip())


class CCompiler:
    def __init__(self, compiler_path: str, flags: list[str] | None = None, timeout: float | None = None):
        self.compiler_path = compiler_path
        self.flags = list(flags) if flags is not None else []
        self.timeout = timeout

    def command(self, source_path: str, binary_path: str) -> list[str]:
        # libraries given in flags (-lm) must come after the source file
        return [self.compiler_path, source_path, '-o', binary_path, *self.flags]

    def compile(self, source_path: str, binary_path: str) -> CompileOutcome:
        """Compile ``source_path`` into ``binary_path``.

        A rejected source is a normal outcome, not an exception. A missing
        compiler raises ``FileNotFoundError`` since that is a server problem.
        """
        result = execute(
            self.command(source_path, binary_path),
            timeout=self.timeout,
            cwd=os.path.dirname(source_path),
            merge_stderr=True,
            # intermediates land in the workspace, which format_diagnostic hides
            env={**os.environ, 'TMPDIR': os.path.dirname(source_path)},
        )
        if result.timed_out:
            logger.warning(f'Compiler timed out after {self.timeout}s on {source_path}')
            return CompileOutcome(
                ok=False,
                diagnostic=f'Compilation timed out after {self.timeout:g} seconds',
                cost=result.cost,
            )
        if not result.success:
            diagnostic = format_diagnostic(result.stdout, source_path)
            return CompileOutcome(
                ok=False,
                diagnostic=diagnostic or f'Compiler exited with code {result.exit_code}',
                cost=result.cost,
            )
        return CompileOutcome(ok=True, cost=result.cost)
