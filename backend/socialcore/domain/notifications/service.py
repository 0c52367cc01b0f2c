"""Notification dispatch and read-side operations."""

from __future__ import annotations

import logging
from typing import Iterable, Union
from uuid import UUID

from socialcore.domain.common import db
from socialcore.domain.common.errors import NotFoundError
from socialcore.domain.common.pagination import window
from socialcore.domain.notifications import events
from socialcore.domain.notifications.models import (
	DispatchSkipped,
	MarkReadResponse,
	Notification,
	NotificationListResponse,
	NotificationResponse,
	UnreadCountResponse,
)
from socialcore.domain.notifications.repo import NotificationRepository
from socialcore.obs import metrics as obs_metrics
from socialcore.settings import settings

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


def _valid_ids(ids: Iterable[str]) -> list[str]:
	valid: list[str] = []
	for raw in ids:
		try:
			valid.append(str(UUID(str(raw))))
		except ValueError:
			continue
	return valid


class NotificationDispatcher:
	"""Resolves recipients for domain events and persists one row per delivery."""

	def __init__(self, *, repository: NotificationRepository | None = None) -> None:
		self.repo = repository or NotificationRepository()

	async def _load_target(self, conn, event: events.Event) -> events.Target:
		post = None
		page = None
		user_id = None
		post_id = events.referenced_post(event)
		if post_id is not None:
			post = await self.repo.load_post(conn, post_id)
		page_id = events.referenced_page(event)
		if page_id is not None:
			page = await self.repo.load_page(conn, page_id)
		addressed = events.addressed_user(event)
		if addressed is not None and await self.repo.account_alive(conn, addressed):
			user_id = addressed
		return events.Target(post=post, page=page, user_id=user_id)

	async def dispatch(self, event: events.Event) -> Union[Notification, DispatchSkipped]:
		"""Persist the notification for ``event``.

		Never raises: a failure is logged and reported as ``DispatchSkipped("failed")``
		so that the mutation which triggered the event is unaffected.
		"""
		name = events.event_name(event)
		try:
			async with db.connection() as conn:
				target = await self._load_target(conn, event)
				recipient = events.resolve_recipient(event, target)
				if isinstance(recipient, events.Skip):
					obs_metrics.inc_notification(name, recipient.reason)
					return DispatchSkipped(recipient.reason)
				actor = await self.repo.load_actor(conn, event.actor_id)
				if actor is None:
					obs_metrics.inc_notification(name, "actor_missing")
					return DispatchSkipped("actor_missing")
				rendered = events.render(event, actor, target)
				notification = await self.repo.insert(
					conn,
					recipient_id=recipient,
					sender_id=actor.id,
					rendered=rendered,
				)
		except Exception:  # noqa: BLE001
			logger.exception("notification dispatch failed", extra={"event": name, "actor_id": event.actor_id})
			obs_metrics.inc_notification(name, "failed")
			return DispatchSkipped("failed")
		obs_metrics.inc_notification(rendered.type, "created")
		return notification

	async def list_for_user(self, user_id: str, *, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> NotificationListResponse:
		win = window(page, limit, default=DEFAULT_PAGE_SIZE, maximum=settings.notifications_max_page_size)
		async with db.connection() as conn:
			items = await self.repo.list_for_user(conn, user_id, limit=win.limit, offset=win.offset)
			total = await self.repo.count_for_user(conn, user_id)
		info = win.info(total=total, returned=len(items))
		return NotificationListResponse(
			items=[NotificationResponse.from_model(item) for item in items],
			page=info.page,
			limit=info.limit,
			total=info.total,
			has_more=info.has_more,
			total_pages=info.total_pages,
		)

	async def unread_count(self, user_id: str) -> UnreadCountResponse:
		async with db.connection() as conn:
			count = await self.repo.count_for_user(conn, user_id, unread_only=True)
		return UnreadCountResponse(unread_count=count)

	async def mark_read(self, user_id: str, ids: Iterable[str]) -> MarkReadResponse:
		valid = _valid_ids(ids)
		if not valid:
			return MarkReadResponse(updated=0)
		async with db.connection() as conn:
			updated = await self.repo.mark_read(conn, user_id, valid)
		return MarkReadResponse(updated=updated)

	async def mark_all_read(self, user_id: str) -> MarkReadResponse:
		async with db.connection() as conn:
			updated = await self.repo.mark_all_read(conn, user_id)
		return MarkReadResponse(updated=updated)

	async def get(self, user_id: str, notification_id: str) -> NotificationResponse:
		"""Return one of the caller's notifications and mark it read."""
		if not _valid_ids([notification_id]):
			raise NotFoundError("notification_not_found")
		async with db.connection() as conn:
			async with conn.transaction():
				notification = await self.repo.get_for_user(conn, user_id, notification_id)
				if notification is None:
					raise NotFoundError("notification_not_found")
				if not notification.is_read:
					await self.repo.mark_read(conn, user_id, [notification.id])
					notification.is_read = True
		return NotificationResponse.from_model(notification)

	async def delete(self, user_id: str, notification_id: str) -> None:
		if not _valid_ids([notification_id]):
			raise NotFoundError("notification_not_found")
		async with db.connection() as conn:
			deleted = await self.repo.delete(conn, user_id, notification_id)
		if not deleted:
			raise NotFoundError("notification_not_found")


_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
	global _dispatcher
	if _dispatcher is None:
		_dispatcher = NotificationDispatcher()
	return _dispatcher
