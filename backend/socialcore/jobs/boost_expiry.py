"""Background job expiring boosted posts whose end date has passed."""

from __future__ import annotations

from datetime import datetime, timezone

from socialcore.domain.common import db
from socialcore.domain.feed.boosts import expire_due_boosts
from socialcore.domain.feed.repo import BoostRepository
from socialcore.obs import metrics as obs_metrics

_JOB_NAME = "boost-expiry"


class BoostExpiryJob:
	"""Transitions due boosts to ``expired``; re-running is a no-op."""

	def __init__(self, *, repository: BoostRepository | None = None) -> None:
		self.repo = repository or BoostRepository()

	async def run_once(self) -> int:
		started = datetime.now(timezone.utc)
		result = "success"
		try:
			async with db.connection() as conn:
				return await expire_due_boosts(conn, trigger="scheduler", repository=self.repo)
		except Exception:
			result = "error"
			raise
		finally:
			duration = (datetime.now(timezone.utc) - started).total_seconds()
			obs_metrics.record_job(_JOB_NAME, result, duration)
