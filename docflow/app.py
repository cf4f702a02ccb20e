import logging
import os
from contextlib import asynccontextmanager
from logging.config import dictConfig
from pathlib import Path

import yaml
from fastapi import FastAPI

from docflow.core.config import get_settings
from docflow.core.db.engine import get_engine
from docflow.core.features.workflows.router import router as workflow_router
from docflow.core.version import __version__

logger = logging.getLogger(__name__)
config = get_settings()
prefix = config.api_prefix


@asynccontextmanager
async def lifespan(app: FastAPI):
	"""Application lifespan handler for startup/shutdown events."""
	logger.info("Starting docflow API server...")

	yield

	logger.info("Shutting down docflow API server...")
	await get_engine().dispose()


app = FastAPI(
	title="docflow document lifecycle API",
	version=__version__,
	lifespan=lifespan,
)

app.include_router(workflow_router, prefix=prefix)


logging_config_path = Path(
    os.environ.get("DOCFLOW__LOGGING_CFG", str(config.log_config or "/etc/docflow/logging.yaml"))
)

if logging_config_path.exists() and logging_config_path.is_file():
    with open(logging_config_path, "r") as stream:
        logging_config = yaml.load(stream, Loader=yaml.FullLoader)

    dictConfig(logging_config)
