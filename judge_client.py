import requests
from dataclasses import dataclass, asdict
from concurrent.futures import ThreadPoolExecutor


@dataclass
class Submission:
    code: str
    expectedOutput: str
    exerciseId: str | int
    input: str = ''
    subject: str = 'fundamentals'


@dataclass
class Verdict:
    success: bool
    isCorrect: bool
    errorType: str | None = None
    output: str | None = None
    expectedOutput: str | None = None
    error: str | None = None
    hint: str | None = None

    @classmethod
    def from_response(cls, response: dict):
        fields = cls.__dataclass_fields__
        return cls(**{k: v for k, v in response.items() if k in fields})


@dataclass
class ServerStatus:
    active: int
    max_workers: int
    scratch_entries: int


class JudgeClient:
    def __init__(self, url, *, max_workers=4, timeout=60):
        self.url = url.rstrip('/')
        self.max_workers = max_workers
        self.timeout = timeout

    def get_status(self, timeout: int = 10) -> ServerStatus:
        response = requests.get(
            f'{self.url}/status',
            timeout=timeout,
        )
        response.raise_for_status()
        return ServerStatus(**response.json())

    def judge_one(self, submission: Submission) -> Verdict:
        response = requests.post(
            f'{self.url}/api/compile',
            json=asdict(submission),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return Verdict.from_response(response.json())

    def judge(self, submissions: list[Submission]) -> list[Verdict]:
        if not submissions:
            return []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(self.judge_one, submissions))
