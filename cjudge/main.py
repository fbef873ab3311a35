import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

import fastapi
from fastapi.concurrency import run_in_threadpool
import uvicorn.logging

from cjudge.model import Submission, Verdict, ServerStatus, Subject
from cjudge.judge import create_pipeline
from cjudge.libs.hints.dispatcher import create_hint_dispatcher
from cjudge.libs.hints.prompts import SUBJECTS
from cjudge.libs.workspace import WorkspaceManager
from cjudge.version import __version__ as version
import cjudge.config as app_config


logger = logging.getLogger(__name__)


workspace_manager = WorkspaceManager(
    app_config.SCRATCH_DIR,
    retention=app_config.FILE_RETENTION,
    sweep_interval=app_config.SWEEP_INTERVAL,
)
judge_pipeline = create_pipeline(workspace_manager)
hint_dispatcher = create_hint_dispatcher()

_pipeline_slots: asyncio.Semaphore | None = None
_active_pipelines = 0


@asynccontextmanager
async def _lifespan(_: fastapi.FastAPI):
    access_logger = logging.getLogger('uvicorn.access')
    old = None
    if access_logger.handlers:
        console_formatter = uvicorn.logging.AccessFormatter(
            '%(levelprefix)s %(asctime)s - %(client_addr)s - "%(request_line)s" %(status_code)s',
            datefmt="%Y-%m-%d %H:%M:%S",
            use_colors=True,
        )
        old = access_logger.handlers[0].formatter
        access_logger.handlers[0].setFormatter(console_formatter)

    logger = logging.getLogger('cjudge')
    logger.setLevel(logging.INFO)
    handler = logging.StreamHandler()
    handler.setLevel(logging.INFO)
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    global _pipeline_slots
    _pipeline_slots = asyncio.Semaphore(app_config.MAX_WORKERS)
    workspace_manager.start()
    yield
    workspace_manager.stop()

    logger.removeHandler(handler)
    if old is not None:
        access_logger.handlers[0].setFormatter(old)


app = fastapi.FastAPI(title='cjudge', version=version, lifespan=_lifespan)


@app.get('/ping')
def ping():
    return 'pong'


@app.get('/api/health')
def health():
    return {
        'status': 'ok',
        'version': version,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }


@app.post('/api/compile', response_model=Verdict, response_model_exclude_none=True)
async def compile_and_run(submission: Submission):
    global _active_pipelines
    logger.info(f'Judging exercise {submission.exercise_id} as submission {submission.sub_id}')
    async with _pipeline_slots:
        _active_pipelines += 1
        try:
            verdict = await run_in_threadpool(judge_pipeline.judge, submission)
        finally:
            _active_pipelines -= 1
    # hints are generated outside the pipeline slot
    if hint_dispatcher is not None:
        await run_in_threadpool(hint_dispatcher.attach_hint, verdict, submission)
    return verdict


@app.get('/api/subjects', response_model=dict[str, list[Subject]])
def subjects():
    return {'subjects': SUBJECTS}


@app.get('/status')
async def status():
    return ServerStatus(
        active=_active_pipelines,
        max_workers=app_config.MAX_WORKERS,
        scratch_entries=workspace_manager.count_entries(),
    )
