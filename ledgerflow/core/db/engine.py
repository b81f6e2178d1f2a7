# (c) Copyright Datacraft, 2026
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ledgerflow.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

connect_args = {}
if settings.db_url.startswith("sqlite"):
	# sessions are handed to FastAPI's threadpool
	connect_args["check_same_thread"] = False

engine = create_engine(
	settings.db_url,
	echo=settings.db_echo,
	connect_args=connect_args,
)

SessionLocal = sessionmaker(engine, expire_on_commit=False)


def get_db():
	with SessionLocal() as session:
		yield session


def create_tables() -> None:
	from ledgerflow.core.db.base import Base
	from ledgerflow.core.features.approvals.db import orm  # noqa: F401

	Base.metadata.create_all(engine)
	logger.info("Database tables created")
