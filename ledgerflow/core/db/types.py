# (c) Copyright Datacraft, 2026
from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

from ledgerflow.core.utils.tz import ensure_utc


class UTCDateTime(TypeDecorator):
	"""
	Timestamp column that always stores and returns aware UTC values.

	SQLite keeps no offset, so values are converted to UTC before they are
	bound (including in comparisons) and tagged as UTC when read back.
	"""
	impl = DateTime
	cache_ok = True

	def __init__(self, timezone: bool = True, **kw):
		super().__init__(timezone=timezone, **kw)

	def process_bind_param(self, value, dialect):
		return ensure_utc(value)

	def process_result_value(self, value, dialect):
		return ensure_utc(value)
