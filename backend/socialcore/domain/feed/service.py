"""Feed composition for a viewer.

A page of feed is a fixed overlay of active boosted posts followed by organic
posts. Boosted items never count toward the organic total or the pagination
offset. Boosts past their end date are expired inline before boosted content
is read, so a late background sweep cannot leak them into the feed.
"""

from __future__ import annotations

import logging
import time

from socialcore.domain.common import db
from socialcore.domain.common.pagination import window
from socialcore.domain.feed.boosts import expire_due_boosts
from socialcore.domain.feed.models import Origin
from socialcore.domain.feed.repo import BoostRepository, FeedRepository
from socialcore.domain.feed.schemas import FeedItem, FeedResponse, FeedStats
from socialcore.obs import metrics as obs_metrics
from socialcore.settings import settings

logger = logging.getLogger(__name__)


class FeedComposer:
	def __init__(
		self,
		*,
		repository: FeedRepository | None = None,
		boost_repository: BoostRepository | None = None,
	) -> None:
		self.repo = repository or FeedRepository()
		self.boost_repo = boost_repository or BoostRepository()

	async def compose_feed(self, viewer_id: str, *, page: int = 1, limit: int | None = None) -> FeedResponse:
		viewer_id = str(viewer_id)
		win = window(page, limit, default=settings.feed_default_page_size, maximum=settings.feed_max_page_size)
		quota = max(0, min(settings.feed_boost_quota, win.limit))
		started = time.perf_counter()
		async with db.connection() as conn:
			audience = await self.repo.audience(conn, viewer_id)
			await expire_due_boosts(conn, trigger="feed", repository=self.boost_repo)
			boosted = await self.repo.active_boosted(conn, audience, limit=quota)
			boosted_ids = {post.id for post in boosted}
			organic = await self.repo.organic(
				conn,
				audience,
				exclude=boosted_ids,
				limit=win.limit - len(boosted),
				offset=win.offset,
			)
			total = await self.repo.count_organic(conn, audience, exclude=boosted_ids)
		items = [FeedItem.from_post(post, Origin.BOOSTED) for post in boosted]
		items.extend(FeedItem.from_post(post, Origin.ORGANIC) for post in organic)
		info = win.info(total=total, returned=len(organic))
		obs_metrics.observe_feed(time.perf_counter() - started, boosted=len(boosted), organic=len(organic))
		logger.debug(
			"feed composed",
			extra={"viewer_id": viewer_id, "boosted": len(boosted), "organic": len(organic), "page": win.page},
		)
		return FeedResponse(
			items=items,
			has_more=info.has_more,
			pagination=info,
			boosted_count=len(boosted),
			organic_count=len(organic),
		)

	async def compose_stats(self, viewer_id: str) -> FeedStats:
		viewer_id = str(viewer_id)
		async with db.connection() as conn:
			audience = await self.repo.audience(conn, viewer_id)
			await expire_due_boosts(conn, trigger="feed", repository=self.boost_repo)
			user_posts, page_posts = await self.repo.post_counts(conn, audience)
			boosted = await self.repo.count_active_boosted(conn, audience)
		return FeedStats(
			total_posts=user_posts + page_posts,
			user_posts=user_posts,
			page_posts=page_posts,
			boosted_posts=boosted,
			following_users=len(audience.user_ids - {viewer_id}),
			following_pages=len(audience.page_ids),
		)
