# (c) Copyright Datacraft, 2026
from datetime import datetime, timezone


def utc_now() -> datetime:
	return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
	"""Naive values are taken as UTC; aware values are converted to UTC."""
	if value is None:
		return None
	if value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value.astimezone(timezone.utc)
