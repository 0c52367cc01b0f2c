"""Boost lifecycle: creation guards, cancellation, listings and expiry."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import asyncpg

from socialcore.domain.common import db
from socialcore.domain.common.errors import (
	ConflictError,
	ForbiddenError,
	InvalidStateError,
	NotFoundError,
	RateLimitError,
)
from socialcore.domain.common.pagination import window
from socialcore.domain.feed.models import BoostStatus
from socialcore.domain.feed.repo import BoostRepository
from socialcore.domain.feed.schemas import (
	BoostCreateResponse,
	BoostList,
	BoostStats,
	BoostSummary,
)
from socialcore.obs import metrics as obs_metrics
from socialcore.settings import settings

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


def _now() -> datetime:
	return datetime.now(timezone.utc)


async def expire_due_boosts(
	conn: asyncpg.Connection,
	*,
	trigger: str,
	repository: BoostRepository | None = None,
) -> int:
	"""Mark boosts whose end date has passed as expired. Safe to run repeatedly."""
	repo = repository or BoostRepository()
	expired = await repo.expire_due(conn)
	if expired:
		logger.info("expired boosted posts", extra={"count": expired, "trigger": trigger})
	obs_metrics.inc_boosts_expired(trigger, expired)
	return expired


class BoostService:
	"""Pro-user post boosting with a rolling weekly limit."""

	def __init__(self, *, repository: BoostRepository | None = None) -> None:
		self.repo = repository or BoostRepository()

	@property
	def window_days(self) -> int:
		return max(1, settings.boost_window_days)

	def _window_start(self, now: datetime) -> datetime:
		return now - timedelta(days=self.window_days)

	def _remaining(self, used: int) -> int:
		return max(0, settings.boost_weekly_limit - used)

	async def _require_pro(self, conn: asyncpg.Connection, user_id: str, *, lock: bool = False) -> None:
		is_pro = await self.repo.account_is_pro(conn, user_id, for_update=lock)
		if is_pro is None:
			raise NotFoundError("user_not_found")
		if not is_pro:
			raise ForbiddenError("pro_required")

	async def create_boost(
		self,
		actor_id: str,
		post_id: str,
		*,
		end_date: Optional[datetime] = None,
	) -> BoostCreateResponse:
		actor_id = str(actor_id)
		now = _now()
		if end_date is not None:
			if end_date.tzinfo is None:
				end_date = end_date.replace(tzinfo=timezone.utc)
			if end_date <= now:
				obs_metrics.inc_boost_created("invalid_end_date")
				raise InvalidStateError("end_date_in_past")
		async with db.connection() as conn:
			async with conn.transaction():
				# Actor and post rows stay locked until commit; the checks below rely on it.
				await self._require_pro(conn, actor_id, lock=True)
				target = await self.repo.get_target(conn, str(post_id), for_update=True)
				if target is None:
					raise NotFoundError("post_not_found")
				if target.manager_id != actor_id:
					obs_metrics.inc_boost_created("forbidden")
					raise ForbiddenError("not_post_owner")
				await expire_due_boosts(conn, trigger="create", repository=self.repo)
				if await self.repo.has_active_boost(conn, target.post_id):
					obs_metrics.inc_boost_created("already_boosted")
					raise ConflictError("already_boosted")
				used = await self.repo.count_since(conn, actor_id, self._window_start(now))
				if used >= settings.boost_weekly_limit:
					obs_metrics.inc_boost_created("rate_limited")
					raise RateLimitError("weekly_boost_limit")
				boost = await self.repo.insert(conn, target.post_id, end_date=end_date)
		obs_metrics.inc_boost_created("created")
		logger.info("boost created", extra={"boost_id": boost.id, "post_id": boost.post_id})
		return BoostCreateResponse(
			boost=BoostSummary.from_model(boost, now=now),
			remaining_boosts=self._remaining(used + 1),
		)

	async def cancel_boost(self, actor_id: str, boost_id: str) -> BoostSummary:
		actor_id = str(actor_id)
		async with db.connection() as conn:
			async with conn.transaction():
				found = await self.repo.get_with_target(conn, str(boost_id))
				if found is None:
					raise NotFoundError("boost_not_found")
				boost, target = found
				if target.manager_id != actor_id:
					raise ForbiddenError("not_post_owner")
				if boost.status in (BoostStatus.REJECTED, BoostStatus.EXPIRED):
					raise InvalidStateError("boost_not_active")
				cancelled = await self.repo.cancel(conn, boost.id)
		logger.info("boost cancelled", extra={"boost_id": cancelled.id})
		return BoostSummary.from_model(cancelled, now=_now())

	async def list_my_boosts(self, actor_id: str, *, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> BoostList:
		actor_id = str(actor_id)
		win = window(page, limit, default=DEFAULT_PAGE_SIZE, maximum=settings.feed_max_page_size)
		now = _now()
		async with db.connection() as conn:
			await expire_due_boosts(conn, trigger="listing", repository=self.repo)
			boosts = await self.repo.list_for_author(conn, actor_id, limit=win.limit, offset=win.offset)
			total = await self.repo.count_for_author(conn, actor_id)
			weekly = await self.repo.count_since(conn, actor_id, self._window_start(now))
		return BoostList(
			items=[BoostSummary.from_model(boost, now=now) for boost in boosts],
			pagination=win.info(total=total, returned=len(boosts)),
			weekly_boosts=weekly,
			remaining_boosts=self._remaining(weekly),
		)

	async def boost_stats(self, actor_id: str) -> BoostStats:
		actor_id = str(actor_id)
		now = _now()
		since = self._window_start(now)
		async with db.connection() as conn:
			await self._require_pro(conn, actor_id)
			await expire_due_boosts(conn, trigger="listing", repository=self.repo)
			total = await self.repo.count_for_author(conn, actor_id)
			active = await self.repo.count_for_author(conn, actor_id, active_only=True)
			weekly = await self.repo.count_since(conn, actor_id, since)
			oldest = await self.repo.oldest_since(conn, actor_id, since)
		next_reset = oldest + timedelta(days=self.window_days) if oldest else None
		return BoostStats(
			total_boosts=total,
			active_boosts=active,
			weekly_boosts=weekly,
			remaining_boosts=self._remaining(weekly),
			next_reset=next_reset,
		)
