# (c) Copyright Datacraft, 2026
"""Timezone helpers and the injectable clock."""
from datetime import datetime, timezone
from typing import Protocol


def utc_now() -> datetime:
	return datetime.now(timezone.utc)


def ensure_aware(value: datetime | None) -> datetime | None:
	"""Treat naive datetimes coming back from the database as UTC."""
	if value is None or value.tzinfo is not None:
		return value
	return value.replace(tzinfo=timezone.utc)


class Clock(Protocol):
	def now(self) -> datetime: ...


class SystemClock:
	"""Wall clock in UTC."""

	def now(self) -> datetime:
		return utc_now()
