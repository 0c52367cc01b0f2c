"""Guard checks for friendship and follow operations."""

from __future__ import annotations

import asyncpg

from socialcore.domain.common.errors import (
	ForbiddenError,
	InvalidStateError,
	NotFoundError,
	SelfTargetError,
)
from socialcore.domain.social.models import Account, Friendship, FriendshipStatus, PageRef
from socialcore.domain.social.repo import GraphRepository


def guard_not_self(user_id: str, target_id: str) -> None:
	if str(user_id) == str(target_id):
		raise SelfTargetError()


async def require_account(repo: GraphRepository, conn: asyncpg.Connection, user_id: str) -> Account:
	account = await repo.get_account(conn, user_id)
	if account is None:
		raise NotFoundError("user_not_found")
	return account


async def require_page(repo: GraphRepository, conn: asyncpg.Connection, page_id: str) -> PageRef:
	page = await repo.get_page(conn, page_id)
	if page is None:
		raise NotFoundError("page_not_found")
	return page


def require_friendship(friendship: Friendship | None) -> Friendship:
	if friendship is None:
		raise NotFoundError("friend_request_not_found")
	return friendship


def guard_receiver(friendship: Friendship, actor_id: str) -> None:
	if friendship.user_b_id != str(actor_id):
		raise ForbiddenError("not_request_receiver")


def guard_sender(friendship: Friendship, actor_id: str) -> None:
	if friendship.user_a_id != str(actor_id):
		raise ForbiddenError("not_request_sender")


def guard_pending(friendship: Friendship) -> None:
	if friendship.status is not FriendshipStatus.PENDING:
		raise InvalidStateError("request_not_pending")
