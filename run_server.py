import os
if os.environ.get('ERROR_CASE_SAVE_PATH') is None:
    os.environ['ERROR_CASE_SAVE_PATH'] = './error_cases'

import logging
logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

import uvicorn

from cjudge.main import app


if __name__ == '__main__':
    uvicorn.run(
        app,
        host=os.environ.get('HOST', '0.0.0.0'),
        port=int(os.environ.get('PORT', 3001)),
        log_level='info',
    )
