"""asyncpg data access for follow edges, friendships and page follows.

Every read composes the shared visibility predicates so that rows pointing at a
soft-deleted account or page never surface. Methods take an open connection so
callers can group several statements into one transaction.
"""

from __future__ import annotations

from typing import Iterable
from uuid import uuid4

import asyncpg

from socialcore.domain.common import visibility
from socialcore.domain.common.errors import DuplicateRowError
from socialcore.domain.common.visibility import (
	ACCOUNT,
	FOLLOW_EDGE,
	FRIENDSHIP,
	PAGE,
	PAGE_FOLLOW,
	affected_rows,
	alive,
)
from socialcore.domain.social.models import (
	Account,
	FollowEdge,
	Friendship,
	FriendshipStatus,
	PageFollow,
	PageRef,
)

_ACCOUNT_COLUMNS = "u.id, u.username, u.name, u.profile_picture, u.is_verified, u.is_pro_user, u.status"


def like_pattern(search: str | None) -> str | None:
	"""Build an ILIKE pattern with wildcards in the user input escaped."""
	if not search:
		return None
	term = search.strip()
	if not term:
		return None
	escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
	return f"%{escaped}%"


class GraphRepository:
	"""Thin data-access layer for the relationship graph."""

	# --- Accounts and pages -------------------------------------------------

	async def get_account(self, conn: asyncpg.Connection, user_id: str) -> Account | None:
		record = await conn.fetchrow(
			f"""
			SELECT {_ACCOUNT_COLUMNS}
			FROM users u
			WHERE u.id = $1 AND {alive(ACCOUNT, "u")}
			""",
			user_id,
		)
		return Account.from_record(dict(record)) if record else None

	async def list_accounts(self, conn: asyncpg.Connection, user_ids: Iterable[str]) -> list[Account]:
		ids = list(user_ids)
		if not ids:
			return []
		rows = await conn.fetch(
			f"""
			SELECT {_ACCOUNT_COLUMNS}
			FROM users u
			WHERE u.id = ANY($1::uuid[]) AND {alive(ACCOUNT, "u")}
			ORDER BY u.name ASC, u.id ASC
			""",
			ids,
		)
		return [Account.from_record(dict(row)) for row in rows]

	async def get_page(self, conn: asyncpg.Connection, page_id: str) -> PageRef | None:
		record = await conn.fetchrow(
			f"""
			SELECT pg.id, pg.owner_id, pg.name, pg.is_public
			FROM pages pg
			WHERE pg.id = $1 AND {alive(PAGE, "pg")}
			""",
			page_id,
		)
		return PageRef.from_record(dict(record)) if record else None

	# --- Friendships --------------------------------------------------------

	async def find_friendship(
		self,
		conn: asyncpg.Connection,
		user_id: str,
		other_id: str,
		*,
		for_update: bool = False,
	) -> Friendship | None:
		"""Return the alive friendship between two users in either direction."""
		lock = " FOR UPDATE OF f" if for_update else ""
		record = await conn.fetchrow(
			f"""
			SELECT f.*
			FROM friendships f
			WHERE ((f.user_a_id = $1 AND f.user_b_id = $2) OR (f.user_a_id = $2 AND f.user_b_id = $1))
				AND {alive(FRIENDSHIP, "f")}
			ORDER BY f.created_at DESC
			LIMIT 1{lock}
			""",
			user_id,
			other_id,
		)
		return Friendship.from_record(record) if record else None

	async def get_friendship(
		self,
		conn: asyncpg.Connection,
		friendship_id: str,
		*,
		for_update: bool = False,
	) -> Friendship | None:
		lock = " FOR UPDATE OF f" if for_update else ""
		record = await conn.fetchrow(
			f"SELECT f.* FROM friendships f WHERE f.id = $1 AND {alive(FRIENDSHIP, 'f')}{lock}",
			friendship_id,
		)
		return Friendship.from_record(record) if record else None

	async def insert_friendship(
		self,
		conn: asyncpg.Connection,
		user_a_id: str,
		user_b_id: str,
		status: FriendshipStatus,
	) -> Friendship:
		try:
			record = await conn.fetchrow(
				"""
				INSERT INTO friendships (id, user_a_id, user_b_id, status)
				VALUES ($1, $2, $3, $4)
				RETURNING *
				""",
				uuid4(),
				user_a_id,
				user_b_id,
				status.value,
			)
		except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
			raise DuplicateRowError("friendship_exists") from exc
		return Friendship.from_record(record)

	async def transition_friendship(
		self,
		conn: asyncpg.Connection,
		friendship_id: str,
		*,
		from_status: FriendshipStatus,
		to_status: FriendshipStatus,
	) -> Friendship | None:
		"""Move a friendship between states; ``None`` when the row changed underneath."""
		record = await conn.fetchrow(
			"""
			UPDATE friendships
			SET status = $3, updated_at = NOW()
			WHERE id = $1 AND status = $2 AND deleted_at IS NULL
			RETURNING *
			""",
			friendship_id,
			from_status.value,
			to_status.value,
		)
		return Friendship.from_record(record) if record else None

	async def remove_friendship(self, conn: asyncpg.Connection, friendship_id: str) -> bool:
		return await visibility.soft_delete(conn, FRIENDSHIP, friendship_id)

	async def count_friends(self, conn: asyncpg.Connection, user_id: str, *, search: str | None = None) -> int:
		value = await conn.fetchval(
			f"""
			SELECT COUNT(*)
			FROM friendships f
			JOIN users u ON u.id = CASE WHEN f.user_a_id = $1 THEN f.user_b_id ELSE f.user_a_id END
			WHERE (f.user_a_id = $1 OR f.user_b_id = $1)
				AND f.status = 'accepted'
				AND {alive(FRIENDSHIP, "f")}
				AND {alive(ACCOUNT, "u")}
				AND ($2::text IS NULL OR u.username ILIKE $2 OR u.name ILIKE $2)
			""",
			user_id,
			like_pattern(search),
		)
		return int(value or 0)

	async def list_friends(
		self,
		conn: asyncpg.Connection,
		user_id: str,
		*,
		limit: int,
		offset: int,
		search: str | None = None,
	) -> list[tuple[Friendship, Account]]:
		rows = await conn.fetch(
			f"""
			SELECT f.id AS f_id, f.user_a_id, f.user_b_id, f.status AS f_status,
				f.created_at AS f_created_at, f.updated_at AS f_updated_at,
				{_ACCOUNT_COLUMNS}
			FROM friendships f
			JOIN users u ON u.id = CASE WHEN f.user_a_id = $1 THEN f.user_b_id ELSE f.user_a_id END
			WHERE (f.user_a_id = $1 OR f.user_b_id = $1)
				AND f.status = 'accepted'
				AND {alive(FRIENDSHIP, "f")}
				AND {alive(ACCOUNT, "u")}
				AND ($2::text IS NULL OR u.username ILIKE $2 OR u.name ILIKE $2)
			ORDER BY f.created_at DESC, f.id ASC
			LIMIT $3 OFFSET $4
			""",
			user_id,
			like_pattern(search),
			limit,
			offset,
		)
		return [(_friendship_from_joined(row), Account.from_record(dict(row))) for row in rows]

	async def friend_ids(self, conn: asyncpg.Connection, user_id: str) -> set[str]:
		rows = await conn.fetch(
			f"""
			SELECT CASE WHEN f.user_a_id = $1 THEN f.user_b_id ELSE f.user_a_id END AS friend_id
			FROM friendships f
			WHERE (f.user_a_id = $1 OR f.user_b_id = $1)
				AND f.status = 'accepted'
				AND {alive(FRIENDSHIP, "f")}
			""",
			user_id,
		)
		return {str(row["friend_id"]) for row in rows}

	async def list_requests(
		self,
		conn: asyncpg.Connection,
		user_id: str,
		*,
		direction: str,
	) -> list[tuple[Friendship, Account]]:
		"""List pending requests received by (``incoming``) or sent by (``outgoing``) a user."""
		if direction == "incoming":
			own_column, other_column = "user_b_id", "user_a_id"
		else:
			own_column, other_column = "user_a_id", "user_b_id"
		rows = await conn.fetch(
			f"""
			SELECT f.id AS f_id, f.user_a_id, f.user_b_id, f.status AS f_status,
				f.created_at AS f_created_at, f.updated_at AS f_updated_at,
				{_ACCOUNT_COLUMNS}
			FROM friendships f
			JOIN users u ON u.id = f.{other_column}
			WHERE f.{own_column} = $1
				AND f.status = 'pending'
				AND {alive(FRIENDSHIP, "f")}
				AND {alive(ACCOUNT, "u")}
			ORDER BY f.created_at DESC, f.id ASC
			""",
			user_id,
		)
		return [(_friendship_from_joined(row), Account.from_record(dict(row))) for row in rows]

	async def lock_pair(self, conn: asyncpg.Connection, user_id: str, other_id: str) -> None:
		"""Serialize transactions touching the same unordered user pair."""
		low, high = sorted((str(user_id), str(other_id)))
		await conn.execute("SELECT pg_advisory_xact_lock(hashtextextended($1, 0))", f"{low}:{high}")

	# --- Follow edges -------------------------------------------------------

	async def get_follow(self, conn: asyncpg.Connection, follower_id: str, following_id: str) -> FollowEdge | None:
		record = await conn.fetchrow(
			f"""
			SELECT fe.id, fe.follower_id, fe.following_id, fe.created_at
			FROM follows fe
			WHERE fe.follower_id = $1 AND fe.following_id = $2 AND {alive(FOLLOW_EDGE, "fe")}
			""",
			follower_id,
			following_id,
		)
		return FollowEdge.from_record(record) if record else None

	async def insert_follow(self, conn: asyncpg.Connection, follower_id: str, following_id: str) -> FollowEdge:
		try:
			record = await conn.fetchrow(
				"""
				INSERT INTO follows (id, follower_id, following_id)
				VALUES ($1, $2, $3)
				RETURNING id, follower_id, following_id, created_at
				""",
				uuid4(),
				follower_id,
				following_id,
			)
		except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
			raise DuplicateRowError("follow_exists") from exc
		return FollowEdge.from_record(record)

	async def ensure_follow(self, conn: asyncpg.Connection, follower_id: str, following_id: str) -> bool:
		"""Create the edge unless an alive one exists; returns whether a row was written."""
		created = await conn.fetchval(
			"""
			INSERT INTO follows (id, follower_id, following_id)
			VALUES ($1, $2, $3)
			ON CONFLICT (follower_id, following_id) WHERE deleted_at IS NULL DO NOTHING
			RETURNING id
			""",
			uuid4(),
			follower_id,
			following_id,
		)
		return created is not None

	async def remove_follow(self, conn: asyncpg.Connection, follower_id: str, following_id: str) -> bool:
		status = await conn.execute(
			"""
			UPDATE follows SET deleted_at = NOW()
			WHERE follower_id = $1 AND following_id = $2 AND deleted_at IS NULL
			""",
			follower_id,
			following_id,
		)
		return affected_rows(status) > 0

	async def count_follows(self, conn: asyncpg.Connection, user_id: str, *, direction: str) -> int:
		own_column, _ = _follow_columns(direction)
		value = await conn.fetchval(
			f"""
			SELECT COUNT(*)
			FROM follows fe
			WHERE fe.{own_column} = $1 AND {alive(FOLLOW_EDGE, "fe")}
			""",
			user_id,
		)
		return int(value or 0)

	async def list_follows(
		self,
		conn: asyncpg.Connection,
		user_id: str,
		*,
		direction: str,
		limit: int,
		offset: int,
	) -> list[tuple[FollowEdge, Account]]:
		"""List the followers (``followers``) or followees (``following``) of a user."""
		own_column, other_column = _follow_columns(direction)
		rows = await conn.fetch(
			f"""
			SELECT fe.id AS fe_id, fe.follower_id, fe.following_id, fe.created_at AS fe_created_at,
				{_ACCOUNT_COLUMNS}
			FROM follows fe
			JOIN users u ON u.id = fe.{other_column}
			WHERE fe.{own_column} = $1
				AND {alive(FOLLOW_EDGE, "fe", skip=(other_column,))}
				AND {alive(ACCOUNT, "u")}
			ORDER BY fe.created_at DESC, fe.id ASC
			LIMIT $2 OFFSET $3
			""",
			user_id,
			limit,
			offset,
		)
		edges = []
		for row in rows:
			edge = FollowEdge(
				id=str(row["fe_id"]),
				follower_id=str(row["follower_id"]),
				following_id=str(row["following_id"]),
				created_at=row["fe_created_at"],
			)
			edges.append((edge, Account.from_record(dict(row))))
		return edges

	# --- Page follows -------------------------------------------------------

	async def get_page_follow(self, conn: asyncpg.Connection, user_id: str, page_id: str) -> PageFollow | None:
		record = await conn.fetchrow(
			f"""
			SELECT pf.id, pf.user_id, pf.page_id, pf.created_at
			FROM page_followers pf
			WHERE pf.user_id = $1 AND pf.page_id = $2 AND {alive(PAGE_FOLLOW, "pf")}
			""",
			user_id,
			page_id,
		)
		return PageFollow.from_record(record) if record else None

	async def insert_page_follow(self, conn: asyncpg.Connection, user_id: str, page_id: str) -> PageFollow:
		try:
			record = await conn.fetchrow(
				"""
				INSERT INTO page_followers (id, user_id, page_id)
				VALUES ($1, $2, $3)
				RETURNING id, user_id, page_id, created_at
				""",
				uuid4(),
				user_id,
				page_id,
			)
		except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
			raise DuplicateRowError("page_follow_exists") from exc
		return PageFollow.from_record(record)

	async def remove_page_follow(self, conn: asyncpg.Connection, user_id: str, page_id: str) -> bool:
		status = await conn.execute(
			"""
			UPDATE page_followers SET deleted_at = NOW()
			WHERE user_id = $1 AND page_id = $2 AND deleted_at IS NULL
			""",
			user_id,
			page_id,
		)
		return affected_rows(status) > 0


def _follow_columns(direction: str) -> tuple[str, str]:
	if direction == "followers":
		return "following_id", "follower_id"
	return "follower_id", "following_id"


def _friendship_from_joined(row) -> Friendship:
	return Friendship(
		id=str(row["f_id"]),
		user_a_id=str(row["user_a_id"]),
		user_b_id=str(row["user_b_id"]),
		status=FriendshipStatus(row["f_status"]),
		created_at=row["f_created_at"],
		updated_at=row["f_updated_at"],
	)
