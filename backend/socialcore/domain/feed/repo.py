"""asyncpg queries backing the feed composer and the boost lifecycle."""

from __future__ import annotations

from datetime import datetime
from typing import Collection, Optional
from uuid import uuid4

import asyncpg

from socialcore.domain.common.visibility import (
	ACCOUNT,
	BOOSTED_POST,
	COMMENT,
	FOLLOW_EDGE,
	PAGE_FOLLOW,
	PAGE_MEMBERSHIP,
	POST,
	REACTION,
	affected_rows,
	alive,
)
from socialcore.domain.feed.models import Audience, BoostedPost, BoostTarget, FeedPost

_POST_COLUMNS = f"""
	p.id, p.author_id, p.page_id, p.type, p.content, p.created_at, p.updated_at,
	a.username AS author_username, a.name AS author_name,
	a.profile_picture AS author_profile_picture, a.is_verified AS author_is_verified,
	pg.name AS page_name,
	(SELECT COUNT(*) FROM reactions r WHERE r.post_id = p.id AND {alive(REACTION, "r", skip=("post_id",))})
		AS reactions_count,
	(SELECT COUNT(*) FROM comments c WHERE c.post_id = p.id AND {alive(COMMENT, "c", skip=("post_id",))})
		AS comments_count
"""

_POST_FROM = """
	FROM posts p
	JOIN users a ON a.id = p.author_id
	LEFT JOIN pages pg ON pg.id = p.page_id
"""

# $1 = audience user ids, $2 = audience page ids
_AUDIENCE_MATCH = (
	"((p.type = 'user' AND p.author_id = ANY($1::uuid[]))"
	" OR (p.type = 'page' AND p.page_id = ANY($2::uuid[])))"
)

_ACTIVE_BOOST = "b.status = 'accepted' AND b.start_date <= NOW() AND (b.end_date IS NULL OR b.end_date > NOW())"


def _audience_args(audience: Audience) -> tuple[list[str], list[str]]:
	return sorted(audience.user_ids), sorted(audience.page_ids)


class FeedRepository:
	"""Audience resolution and post selection for the feed."""

	async def audience(self, conn: asyncpg.Connection, viewer_id: str) -> Audience:
		users = await conn.fetch(
			f"""
			SELECT fe.following_id AS id
			FROM follows fe
			WHERE fe.follower_id = $1 AND {alive(FOLLOW_EDGE, "fe")}
			""",
			viewer_id,
		)
		pages = await conn.fetch(
			f"""
			SELECT pf.page_id AS id
			FROM page_followers pf
			WHERE pf.user_id = $1 AND {alive(PAGE_FOLLOW, "pf")}
			UNION
			SELECT pm.page_id AS id
			FROM page_members pm
			WHERE pm.user_id = $1 AND pm.status = 'accepted' AND {alive(PAGE_MEMBERSHIP, "pm")}
			""",
			viewer_id,
		)
		user_ids = {str(row["id"]) for row in users}
		user_ids.add(str(viewer_id))
		return Audience(user_ids=user_ids, page_ids={str(row["id"]) for row in pages})

	async def active_boosted(self, conn: asyncpg.Connection, audience: Audience, *, limit: int) -> list[FeedPost]:
		if limit <= 0:
			return []
		users, pages = _audience_args(audience)
		rows = await conn.fetch(
			f"""
			SELECT DISTINCT ON (p.created_at, p.id)
				{_POST_COLUMNS},
				b.id AS boost_id, b.end_date AS boost_end_date
			FROM boosted_posts b
			JOIN posts p ON p.id = b.post_id
			JOIN users a ON a.id = p.author_id
			LEFT JOIN pages pg ON pg.id = p.page_id
			WHERE {_ACTIVE_BOOST}
				AND {alive(BOOSTED_POST, "b", skip=("post_id",))}
				AND {alive(POST, "p")}
				AND {_AUDIENCE_MATCH}
			ORDER BY p.created_at DESC, p.id ASC, b.created_at DESC
			LIMIT $3
			""",
			users,
			pages,
			limit,
		)
		return [FeedPost.from_record(dict(row)) for row in rows]

	async def organic(
		self,
		conn: asyncpg.Connection,
		audience: Audience,
		*,
		exclude: Collection[str],
		limit: int,
		offset: int,
	) -> list[FeedPost]:
		if limit <= 0:
			return []
		users, pages = _audience_args(audience)
		rows = await conn.fetch(
			f"""
			SELECT {_POST_COLUMNS}
			{_POST_FROM}
			WHERE {alive(POST, "p")}
				AND {_AUDIENCE_MATCH}
				AND NOT (p.id = ANY($3::uuid[]))
			ORDER BY p.created_at DESC, p.id ASC
			LIMIT $4 OFFSET $5
			""",
			users,
			pages,
			sorted(exclude),
			limit,
			offset,
		)
		return [FeedPost.from_record(dict(row)) for row in rows]

	async def count_organic(self, conn: asyncpg.Connection, audience: Audience, *, exclude: Collection[str]) -> int:
		users, pages = _audience_args(audience)
		value = await conn.fetchval(
			f"""
			SELECT COUNT(*)
			FROM posts p
			WHERE {alive(POST, "p")}
				AND {_AUDIENCE_MATCH}
				AND NOT (p.id = ANY($3::uuid[]))
			""",
			users,
			pages,
			sorted(exclude),
		)
		return int(value or 0)

	async def post_counts(self, conn: asyncpg.Connection, audience: Audience) -> tuple[int, int]:
		"""Return (user post count, page post count) visible to the audience."""
		users, pages = _audience_args(audience)
		record = await conn.fetchrow(
			f"""
			SELECT
				COUNT(*) FILTER (WHERE p.type = 'user') AS user_posts,
				COUNT(*) FILTER (WHERE p.type = 'page') AS page_posts
			FROM posts p
			WHERE {alive(POST, "p")} AND {_AUDIENCE_MATCH}
			""",
			users,
			pages,
		)
		if not record:
			return 0, 0
		return int(record["user_posts"] or 0), int(record["page_posts"] or 0)

	async def count_active_boosted(self, conn: asyncpg.Connection, audience: Audience) -> int:
		users, pages = _audience_args(audience)
		value = await conn.fetchval(
			f"""
			SELECT COUNT(DISTINCT p.id)
			FROM boosted_posts b
			JOIN posts p ON p.id = b.post_id
			WHERE {_ACTIVE_BOOST}
				AND {alive(BOOSTED_POST, "b", skip=("post_id",))}
				AND {alive(POST, "p")}
				AND {_AUDIENCE_MATCH}
			""",
			users,
			pages,
		)
		return int(value or 0)


class BoostRepository:
	"""Boost rows and the ownership context needed to manage them."""

	async def expire_due(self, conn: asyncpg.Connection) -> int:
		status = await conn.execute(
			"""
			UPDATE boosted_posts
			SET status = 'expired', updated_at = NOW()
			WHERE status IN ('accepted', 'pending')
				AND end_date IS NOT NULL
				AND end_date < NOW()
				AND deleted_at IS NULL
			"""
		)
		return affected_rows(status)

	async def account_is_pro(
		self,
		conn: asyncpg.Connection,
		user_id: str,
		*,
		for_update: bool = False,
	) -> Optional[bool]:
		"""Return the pro flag, or ``None`` when the account is not visible.

		With ``for_update`` the account row stays locked until the transaction ends,
		which serializes boost creation per account.
		"""
		lock = " FOR UPDATE OF u" if for_update else ""
		record = await conn.fetchrow(
			f"SELECT u.is_pro_user FROM users u WHERE u.id = $1 AND {alive(ACCOUNT, 'u')}{lock}",
			user_id,
		)
		if not record:
			return None
		return bool(record["is_pro_user"])

	async def get_target(
		self,
		conn: asyncpg.Connection,
		post_id: str,
		*,
		for_update: bool = False,
	) -> BoostTarget | None:
		lock = "FOR UPDATE OF p" if for_update else ""
		record = await conn.fetchrow(
			f"""
			SELECT p.id, p.author_id, p.type, p.page_id, pg.owner_id AS page_owner_id
			FROM posts p
			LEFT JOIN pages pg ON pg.id = p.page_id
			WHERE p.id = $1 AND {alive(POST, "p")}
			{lock}
			""",
			post_id,
		)
		return _target_from_record(record) if record else None

	async def has_active_boost(self, conn: asyncpg.Connection, post_id: str) -> bool:
		value = await conn.fetchval(
			f"""
			SELECT 1 FROM boosted_posts b
			WHERE b.post_id = $1 AND {_ACTIVE_BOOST} AND b.deleted_at IS NULL
			LIMIT 1
			""",
			post_id,
		)
		return value is not None

	async def count_since(self, conn: asyncpg.Connection, user_id: str, since: datetime) -> int:
		value = await conn.fetchval(
			f"""
			SELECT COUNT(*)
			FROM boosted_posts b
			JOIN posts p ON p.id = b.post_id
			WHERE p.author_id = $1 AND b.created_at >= $2
				AND {alive(BOOSTED_POST, "b", skip=("post_id",))}
				AND p.deleted_at IS NULL
			""",
			user_id,
			since,
		)
		return int(value or 0)

	async def oldest_since(self, conn: asyncpg.Connection, user_id: str, since: datetime) -> Optional[datetime]:
		return await conn.fetchval(
			f"""
			SELECT MIN(b.created_at)
			FROM boosted_posts b
			JOIN posts p ON p.id = b.post_id
			WHERE p.author_id = $1 AND b.created_at >= $2
				AND {alive(BOOSTED_POST, "b", skip=("post_id",))}
				AND p.deleted_at IS NULL
			""",
			user_id,
			since,
		)

	async def insert(self, conn: asyncpg.Connection, post_id: str, *, end_date: Optional[datetime]) -> BoostedPost:
		record = await conn.fetchrow(
			"""
			INSERT INTO boosted_posts (id, post_id, end_date, status)
			VALUES ($1, $2, $3, 'accepted')
			RETURNING *
			""",
			uuid4(),
			post_id,
			end_date,
		)
		return BoostedPost.from_record(record)

	async def get_with_target(
		self,
		conn: asyncpg.Connection,
		boost_id: str,
	) -> tuple[BoostedPost, BoostTarget] | None:
		record = await conn.fetchrow(
			f"""
			SELECT b.*, p.author_id, p.type, p.page_id, pg.owner_id AS page_owner_id
			FROM boosted_posts b
			JOIN posts p ON p.id = b.post_id
			LEFT JOIN pages pg ON pg.id = p.page_id AND pg.deleted_at IS NULL
			WHERE b.id = $1 AND {alive(BOOSTED_POST, "b")}
			FOR UPDATE OF b
			""",
			boost_id,
		)
		if not record:
			return None
		target = BoostTarget(
			post_id=str(record["post_id"]),
			author_id=str(record["author_id"]),
			type=record["type"],
			page_id=str(record["page_id"]) if record["page_id"] else None,
			page_owner_id=str(record["page_owner_id"]) if record["page_owner_id"] else None,
		)
		return BoostedPost.from_record(record), target

	async def cancel(self, conn: asyncpg.Connection, boost_id: str) -> BoostedPost:
		record = await conn.fetchrow(
			"""
			UPDATE boosted_posts
			SET status = 'rejected', end_date = NOW(), updated_at = NOW()
			WHERE id = $1
			RETURNING *
			""",
			boost_id,
		)
		return BoostedPost.from_record(record)

	async def list_for_author(
		self,
		conn: asyncpg.Connection,
		user_id: str,
		*,
		limit: int,
		offset: int,
	) -> list[BoostedPost]:
		rows = await conn.fetch(
			f"""
			SELECT b.*
			FROM boosted_posts b
			WHERE {alive(BOOSTED_POST, "b")}
				AND EXISTS (SELECT 1 FROM posts bp WHERE bp.id = b.post_id AND bp.author_id = $1)
			ORDER BY b.created_at DESC, b.id ASC
			LIMIT $2 OFFSET $3
			""",
			user_id,
			limit,
			offset,
		)
		return [BoostedPost.from_record(row) for row in rows]

	async def count_for_author(self, conn: asyncpg.Connection, user_id: str, *, active_only: bool = False) -> int:
		active = f" AND {_ACTIVE_BOOST}" if active_only else ""
		value = await conn.fetchval(
			f"""
			SELECT COUNT(*)
			FROM boosted_posts b
			WHERE {alive(BOOSTED_POST, "b")}{active}
				AND EXISTS (SELECT 1 FROM posts bp WHERE bp.id = b.post_id AND bp.author_id = $1)
			""",
			user_id,
		)
		return int(value or 0)


def _target_from_record(record) -> BoostTarget:
	return BoostTarget(
		post_id=str(record["id"]),
		author_id=str(record["author_id"]),
		type=record["type"],
		page_id=str(record["page_id"]) if record["page_id"] else None,
		page_owner_id=str(record["page_owner_id"]) if record["page_owner_id"] else None,
	)
