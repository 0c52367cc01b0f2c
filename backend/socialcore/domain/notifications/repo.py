"""asyncpg data access for notifications."""

from __future__ import annotations

from typing import Sequence
from uuid import uuid4

import asyncpg

from socialcore.domain.common.visibility import ACCOUNT, NOTIFICATION, PAGE, POST, affected_rows, alive
from socialcore.domain.notifications.events import Actor, PageContext, PostContext, Rendered
from socialcore.domain.notifications.models import Notification

_SELECT_WITH_SENDER = """
	SELECT n.*, s.name AS sender_name, s.username AS sender_username,
		s.profile_picture AS sender_profile_picture
	FROM notifications n
	LEFT JOIN users s ON s.id = n.sender_id
"""


class NotificationRepository:
	"""Persistence for notification rows and the context used to render them."""

	async def load_post(self, conn: asyncpg.Connection, post_id: str) -> PostContext | None:
		record = await conn.fetchrow(
			f"""
			SELECT p.id, p.author_id, p.type, p.page_id, p.content, pg.owner_id AS page_owner_id
			FROM posts p
			LEFT JOIN pages pg ON pg.id = p.page_id
			WHERE p.id = $1 AND {alive(POST, "p")}
			""",
			post_id,
		)
		if not record:
			return None
		return PostContext(
			id=str(record["id"]),
			author_id=str(record["author_id"]),
			type=record["type"],
			page_id=str(record["page_id"]) if record["page_id"] else None,
			content=record["content"],
			page_owner_id=str(record["page_owner_id"]) if record["page_owner_id"] else None,
		)

	async def load_page(self, conn: asyncpg.Connection, page_id: str) -> PageContext | None:
		record = await conn.fetchrow(
			f"SELECT pg.id, pg.owner_id, pg.name FROM pages pg WHERE pg.id = $1 AND {alive(PAGE, 'pg')}",
			page_id,
		)
		if not record:
			return None
		return PageContext(id=str(record["id"]), owner_id=str(record["owner_id"]), name=record["name"])

	async def load_actor(self, conn: asyncpg.Connection, user_id: str) -> Actor | None:
		record = await conn.fetchrow(
			f"SELECT u.id, u.name, u.username FROM users u WHERE u.id = $1 AND {alive(ACCOUNT, 'u')}",
			user_id,
		)
		if not record:
			return None
		return Actor(id=str(record["id"]), name=record["name"], username=record["username"])

	async def account_alive(self, conn: asyncpg.Connection, user_id: str) -> bool:
		value = await conn.fetchval(
			f"SELECT 1 FROM users u WHERE u.id = $1 AND {alive(ACCOUNT, 'u')}",
			user_id,
		)
		return value is not None

	async def insert(
		self,
		conn: asyncpg.Connection,
		*,
		recipient_id: str,
		sender_id: str,
		rendered: Rendered,
	) -> Notification:
		record = await conn.fetchrow(
			"""
			INSERT INTO notifications (id, user_id, sender_id, type, title, content, post_id, comment_id, page_id)
			VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
			RETURNING *
			""",
			uuid4(),
			recipient_id,
			sender_id,
			rendered.type,
			rendered.title,
			rendered.content,
			rendered.post_id,
			rendered.comment_id,
			rendered.page_id,
		)
		return Notification.from_record(dict(record))

	async def list_for_user(
		self,
		conn: asyncpg.Connection,
		user_id: str,
		*,
		limit: int,
		offset: int,
	) -> list[Notification]:
		rows = await conn.fetch(
			f"""
			{_SELECT_WITH_SENDER}
			WHERE n.user_id = $1 AND {alive(NOTIFICATION, "n")}
			ORDER BY n.created_at DESC, n.id ASC
			LIMIT $2 OFFSET $3
			""",
			user_id,
			limit,
			offset,
		)
		return [Notification.from_record(dict(row)) for row in rows]

	async def count_for_user(self, conn: asyncpg.Connection, user_id: str, *, unread_only: bool = False) -> int:
		unread = " AND n.is_read = FALSE" if unread_only else ""
		value = await conn.fetchval(
			f"SELECT COUNT(*) FROM notifications n WHERE n.user_id = $1{unread} AND {alive(NOTIFICATION, 'n')}",
			user_id,
		)
		return int(value or 0)

	async def get_for_user(self, conn: asyncpg.Connection, user_id: str, notification_id: str) -> Notification | None:
		record = await conn.fetchrow(
			f"""
			{_SELECT_WITH_SENDER}
			WHERE n.id = $1 AND n.user_id = $2 AND {alive(NOTIFICATION, "n")}
			""",
			notification_id,
			user_id,
		)
		return Notification.from_record(dict(record)) if record else None

	async def mark_read(self, conn: asyncpg.Connection, user_id: str, ids: Sequence[str]) -> int:
		status = await conn.execute(
			"""
			UPDATE notifications SET is_read = TRUE
			WHERE user_id = $1 AND id = ANY($2::uuid[]) AND is_read = FALSE AND deleted_at IS NULL
			""",
			user_id,
			list(ids),
		)
		return affected_rows(status)

	async def mark_all_read(self, conn: asyncpg.Connection, user_id: str) -> int:
		status = await conn.execute(
			"""
			UPDATE notifications SET is_read = TRUE
			WHERE user_id = $1 AND is_read = FALSE AND deleted_at IS NULL
			""",
			user_id,
		)
		return affected_rows(status)

	async def delete(self, conn: asyncpg.Connection, user_id: str, notification_id: str) -> bool:
		status = await conn.execute(
			"""
			UPDATE notifications SET deleted_at = NOW()
			WHERE id = $1 AND user_id = $2 AND deleted_at IS NULL
			""",
			notification_id,
			user_id,
		)
		return affected_rows(status) > 0
