"""
App Entry Point

    python -m checkplease                      # API + cable
    taskiq worker checkplease.worker.tasks:broker
    taskiq scheduler checkplease.worker.scheduler:scheduler
"""

import uvicorn

from checkplease.core.config import settings
from checkplease.core.log import uvicorn_log_config

if __name__ == "__main__":
    uvicorn.run(
        "checkplease.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        workers=settings.APP_WORKERS,
        log_config=uvicorn_log_config,
        reload=False,
        forwarded_allow_ips="*",
    )
