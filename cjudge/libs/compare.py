"""Whitespace-tolerant comparison of program output.

Students must match the expected output in content and line structure but
not in incidental spacing. Runs of spaces or tabs inside a line collapse to
one space, so ``"1  2"`` and ``"1 2"`` compare equal. This is a product
decision for beginner exercises, not an accident.
"""
import re


_LINE_ENDINGS = re.compile(r'\r\n?')
_TRAILING_SPACE = re.compile(r'[^\S\n]+$', re.MULTILINE)
_BLANK_LINES = re.compile(r'\n{3,}')
_SPACE_RUNS = re.compile(r'[^\S\n]+')


def normalize(text: str) -> str:
    text = text.strip()
    text = _LINE_ENDINGS.sub('\n', text)
    text = _TRAILING_SPACE.sub('', text)
    # more than one empty line in a row becomes a single empty line
    text = _BLANK_LINES.sub('\n\n', text)
    text = _SPACE_RUNS.sub(' ', text)
    return text.strip()


def outputs_equal(actual: str, expected: str) -> bool:
    return normalize(actual) == normalize(expected)
