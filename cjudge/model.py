from enum import Enum
import uuid

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class Submission(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sub_id: str = Field(default_factory=lambda: str(uuid.uuid4()), exclude=True)
    code: str
    expected_output: str = Field(..., alias='expectedOutput')
    exercise_id: str | int = Field(..., alias='exerciseId')
    input: str = Field('', validation_alias=AliasChoices('input', 'userInputs'))
    subject: str = 'fundamentals'  # exercise context given to the hint generator

    @field_validator('code')
    @classmethod
    def _code_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError('No code was provided')
        return value

    @field_validator('input', mode='before')
    @classmethod
    def _input_to_str(cls, value):
        return '' if value is None else str(value)


class ErrorType(Enum):
    COMPILATION = 'compilation'
    RUNTIME = 'runtime'
    INCORRECT_OUTPUT = 'incorrect_output'
    INTERNAL = 'internal'


class Verdict(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool           # Indicates if the program compiled and ran (exit code 0, or output produced)
    is_correct: bool = Field(False, alias='isCorrect')  # success and output matches
    error_type: ErrorType | None = Field(None, alias='errorType')
    output: str | None = None
    expected_output: str | None = Field(None, alias='expectedOutput')
    error: str | None = None
    hint: str | None = None

    @model_validator(mode='after')
    def _check_consistency(self):
        if self.is_correct and (not self.success or self.error_type is not None):
            raise ValueError('A correct verdict must be successful and carry no error type')
        if not self.success and self.error_type in (None, ErrorType.INCORRECT_OUTPUT):
            raise ValueError('A failed verdict needs compilation, runtime or internal error type')
        return self

    @classmethod
    def compared(cls, output: str, expected_output: str, is_correct: bool):
        return cls(
            success=True,
            is_correct=is_correct,
            error_type=None if is_correct else ErrorType.INCORRECT_OUTPUT,
            output=output,
            expected_output=expected_output,
        )

    @classmethod
    def compilation_error(cls, diagnostic: str):
        return cls(success=False, error_type=ErrorType.COMPILATION, error=diagnostic)

    @classmethod
    def runtime_error(cls, message: str, output: str | None = None):
        return cls(success=False, error_type=ErrorType.RUNTIME, error=message, output=output)

    @classmethod
    def internal_error(cls):
        # never expose paths or tracebacks to the caller
        return cls(success=False, error_type=ErrorType.INTERNAL, error='Internal server error')


class ServerStatus(BaseModel):
    active: int
    max_workers: int
    scratch_entries: int


class Subject(BaseModel):
    """A course a submission can belong to. Later courses include the earlier ones."""
    id: str
    name: str
    description: str
    level: int
    prerequisites: list[str] = []
