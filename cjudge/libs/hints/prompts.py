from cjudge.model import ErrorType, Subject, Submission, Verdict


SUBJECTS = [
    Subject(
        id='fundamentals',
        name='Programming Fundamentals',
        description='Basic programming concepts in C',
        level=1,
    ),
    Subject(
        id='data_structures',
        name='Algorithms and Data Structures',
        description='Fundamental data structures and algorithms',
        level=2,
        prerequisites=['fundamentals'],
    ),
    Subject(
        id='algorithms',
        name='Algorithm Analysis and Design',
        description='Complexity analysis and advanced algorithm design',
        level=3,
        prerequisites=['fundamentals', 'data_structures'],
    ),
]
SUBJECT_NAMES = {subject.id: subject.name for subject in SUBJECTS}

# keep prompts small, the student code is what matters
MAX_PROMPT_CODE_LENGTH = 6000
MAX_PROMPT_OUTPUT_LENGTH = 2000


def subject_name(subject: str) -> str:
    return SUBJECT_NAMES.get(subject, subject)


def _clip(text: str | None, size: int) -> str:
    text = text or ''
    return text if len(text) <= size else text[:size] + '\n...'


COMPILATION_TEMPLATE = """
You are an expert C programming tutor for students of {subject}.

A student got the following compilation error:

CODE:
```c
{code}
```

ERROR:
{error}

Give a clear, simple and educational explanation that covers:
- What the error means
- How to fix it (without giving the complete solution)
- A tip to avoid this error in the future

Be brief (50 words at most) and friendly.
""".strip()


RUNTIME_TEMPLATE = """
You are an expert C programming tutor for students of {subject}.

A student's program failed while running:

CODE:
```c
{code}
```

ERROR:
{error}

Briefly explain:
- What caused the error
- Where in the code it probably comes from
- A hint to fix it

50 words at most, friendly.
""".strip()


INCORRECT_OUTPUT_TEMPLATE = """
You are a C programming tutor for students of {subject}.

The code compiles but its output is not the expected one:

CODE:
```c
{code}
```

OUTPUT:
{output}

EXPECTED OUTPUT:
{expected_output}

Briefly analyze:
1. The differences between both outputs
2. Possible logic or formatting mistakes
3. Specific hints on what to check

Do NOT give the complete solution. 50 words at most.
""".strip()


def build_prompt(sub: Submission, verdict: Verdict) -> str | None:
    """Prompt for the failure in ``verdict``, None when there is nothing to explain."""
    fields = {
        'subject': subject_name(sub.subject),
        'code': _clip(sub.code, MAX_PROMPT_CODE_LENGTH),
    }
    if verdict.error_type == ErrorType.COMPILATION:
        return COMPILATION_TEMPLATE.format(error=_clip(verdict.error, MAX_PROMPT_OUTPUT_LENGTH), **fields)
    if verdict.error_type == ErrorType.RUNTIME:
        return RUNTIME_TEMPLATE.format(error=_clip(verdict.error, MAX_PROMPT_OUTPUT_LENGTH), **fields)
    if verdict.error_type == ErrorType.INCORRECT_OUTPUT:
        return INCORRECT_OUTPUT_TEMPLATE.format(
            output=_clip(verdict.output, MAX_PROMPT_OUTPUT_LENGTH),
            expected_output=_clip(verdict.expected_output, MAX_PROMPT_OUTPUT_LENGTH),
            **fields,
        )
    return None
