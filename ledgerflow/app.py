# (c) Copyright Datacraft, 2026
import logging
from contextlib import asynccontextmanager
from logging.config import dictConfig

import yaml
from fastapi import FastAPI

from ledgerflow.core.config import get_settings
from ledgerflow.core.features.approvals.dependencies import configure_collaborators
from ledgerflow.core.features.approvals.router import router as approvals_router
from ledgerflow.core.version import __version__

logger = logging.getLogger(__name__)
config = get_settings()
prefix = config.api_prefix


@asynccontextmanager
async def lifespan(app: FastAPI):
	"""Application lifespan handler for startup/shutdown events."""
	logger.info("Starting ledgerflow approval API...")

	if config.db_create_tables:
		from ledgerflow.core.db.engine import create_tables
		create_tables()

	# deployments replace these with their directory and notification adapters
	configure_collaborators(settings=config)

	yield

	logger.info("Shutting down ledgerflow approval API...")


app = FastAPI(
	title="Ledgerflow Approvals REST API",
	version=__version__,
	lifespan=lifespan,
)

app.include_router(approvals_router, prefix=prefix)


if config.log_config is not None and config.log_config.is_file():
	with open(config.log_config, "r") as stream:
		dictConfig(yaml.safe_load(stream))
