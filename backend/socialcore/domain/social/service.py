"""Relationship graph operations: friend requests, friendships and follows.

Every mutation runs in one transaction. Inserts are guarded by partial unique
indexes; when a concurrent writer wins the race the whole read-then-decide pass
is retried against the fresh state, up to ``settings.graph_conflict_retries``.
Audit events, metrics and notifications are emitted only after commit.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

import asyncpg

from socialcore.domain.common import db
from socialcore.domain.common.errors import (
	AlreadyFollowingError,
	AlreadyFriendsError,
	AlreadyRequestedError,
	DuplicateRowError,
	InvalidStateError,
	NotFoundError,
)
from socialcore.domain.common.pagination import window
from socialcore.domain.notifications import events
from socialcore.domain.notifications.service import NotificationDispatcher, get_dispatcher
from socialcore.domain.social import audit, policy
from socialcore.domain.social.models import (
	FollowResult,
	Friendship,
	FriendRequestResult,
	FriendshipStatus,
	UnfollowResult,
)
from socialcore.domain.social.repo import GraphRepository
from socialcore.domain.social.schemas import (
	AccountSummary,
	FollowList,
	FollowResponse,
	FollowRow,
	FollowStatus,
	FriendList,
	FriendRequestResponse,
	FriendRequestRow,
	FriendRow,
	FriendshipSummary,
	GraphStatus,
	PageFollowResponse,
	UnfollowResponse,
)
from socialcore.obs import metrics as obs_metrics
from socialcore.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LIST_SIZE = 20
MAX_LIST_SIZE = 100


class GraphService:
	"""Friendship state machine and follow-edge mutations."""

	def __init__(
		self,
		*,
		repository: GraphRepository | None = None,
		dispatcher: NotificationDispatcher | None = None,
	) -> None:
		self.repo = repository or GraphRepository()
		self._dispatcher = dispatcher

	@property
	def dispatcher(self) -> NotificationDispatcher:
		return self._dispatcher or get_dispatcher()

	async def _with_retries(self, operation: str, attempt: Callable[[], Awaitable[T]]) -> T:
		retries = max(0, settings.graph_conflict_retries)
		for attempt_no in range(retries + 1):
			try:
				return await attempt()
			except DuplicateRowError as exc:
				if attempt_no >= retries:
					raise
				obs_metrics.inc_graph_retry(operation)
				logger.info(
					"graph write lost a race; re-checking",
					extra={"operation": operation, "reason": exc.reason, "attempt": attempt_no + 1},
				)
		raise AssertionError("unreachable")

	async def _ensure_mutual_follows(self, conn: asyncpg.Connection, user_a: str, user_b: str) -> int:
		created = 0
		if await self.repo.ensure_follow(conn, user_a, user_b):
			created += 1
		if await self.repo.ensure_follow(conn, user_b, user_a):
			created += 1
		return created

	# --- Friend requests ----------------------------------------------------

	async def send_friend_request(self, sender_id: str, receiver_id: str) -> FriendRequestResponse:
		sender_id, receiver_id = str(sender_id), str(receiver_id)
		policy.guard_not_self(sender_id, receiver_id)

		async def attempt() -> FriendRequestResult:
			async with db.connection() as conn:
				async with conn.transaction():
					await policy.require_account(self.repo, conn, sender_id)
					await policy.require_account(self.repo, conn, receiver_id)
					existing = await self.repo.find_friendship(conn, sender_id, receiver_id, for_update=True)
					if existing is not None:
						if existing.status is FriendshipStatus.ACCEPTED:
							raise AlreadyFriendsError()
						if existing.status is FriendshipStatus.PENDING:
							if existing.user_a_id == sender_id:
								raise AlreadyRequestedError()
							accepted = await self.repo.transition_friendship(
								conn,
								existing.id,
								from_status=FriendshipStatus.PENDING,
								to_status=FriendshipStatus.ACCEPTED,
							)
							if accepted is None:
								raise DuplicateRowError("friendship_changed")
							follows = await self._ensure_mutual_follows(conn, sender_id, receiver_id)
							return FriendRequestResult(friendship=accepted, auto_accepted=True, follows_created=follows)
						await self.repo.remove_friendship(conn, existing.id)
					created = await self.repo.insert_friendship(
						conn, sender_id, receiver_id, FriendshipStatus.PENDING
					)
					follows = 1 if await self.repo.ensure_follow(conn, sender_id, receiver_id) else 0
					return FriendRequestResult(friendship=created, auto_accepted=False, follows_created=follows)

		try:
			result = await self._with_retries("send_friend_request", attempt)
		except (AlreadyFriendsError, AlreadyRequestedError) as exc:
			audit.inc_friend_request(exc.reason)
			raise

		friendship = result.friendship
		if result.auto_accepted:
			audit.inc_friend_request("auto_accept")
			audit.inc_friendship_accepted("auto_accept")
			await audit.log_friend_event(
				"friendship.accepted",
				{"friendship_id": friendship.id, "user_a": friendship.user_a_id, "user_b": friendship.user_b_id, "via": "auto_accept"},
			)
			await self.dispatcher.dispatch(events.FriendAccept(actor_id=sender_id, requester_id=receiver_id))
		else:
			audit.inc_friend_request("sent")
			await audit.log_friend_event(
				"friendship.requested",
				{"friendship_id": friendship.id, "from": sender_id, "to": receiver_id},
			)
			await self.dispatcher.dispatch(events.FriendRequest(actor_id=sender_id, receiver_id=receiver_id))
		if result.follows_created:
			audit.inc_follow("user", "follow")
		return FriendRequestResponse(
			friendship=FriendshipSummary.from_model(friendship),
			auto_accepted=result.auto_accepted,
		)

	async def accept_friend_request(self, friendship_id: str, actor_id: str) -> FriendshipSummary:
		actor_id = str(actor_id)
		async with db.connection() as conn:
			async with conn.transaction():
				friendship = policy.require_friendship(
					await self.repo.get_friendship(conn, friendship_id, for_update=True)
				)
				policy.guard_receiver(friendship, actor_id)
				policy.guard_pending(friendship)
				accepted = await self.repo.transition_friendship(
					conn,
					friendship.id,
					from_status=FriendshipStatus.PENDING,
					to_status=FriendshipStatus.ACCEPTED,
				)
				if accepted is None:
					raise InvalidStateError("request_not_pending")
				await self._ensure_mutual_follows(conn, friendship.user_a_id, friendship.user_b_id)
		audit.inc_friendship_accepted("request")
		await audit.log_friend_event(
			"friendship.accepted",
			{"friendship_id": accepted.id, "user_a": accepted.user_a_id, "user_b": accepted.user_b_id, "via": "request"},
		)
		await self.dispatcher.dispatch(events.FriendAccept(actor_id=actor_id, requester_id=accepted.user_a_id))
		return FriendshipSummary.from_model(accepted)

	async def _remove_pending(self, friendship_id: str, actor_id: str, *, as_receiver: bool) -> Friendship:
		async with db.connection() as conn:
			async with conn.transaction():
				friendship = policy.require_friendship(
					await self.repo.get_friendship(conn, friendship_id, for_update=True)
				)
				if as_receiver:
					policy.guard_receiver(friendship, actor_id)
				else:
					policy.guard_sender(friendship, actor_id)
				policy.guard_pending(friendship)
				await self.repo.remove_friendship(conn, friendship.id)
		return friendship

	async def reject_friend_request(self, friendship_id: str, actor_id: str) -> None:
		friendship = await self._remove_pending(friendship_id, str(actor_id), as_receiver=True)
		audit.inc_friend_request("rejected")
		await audit.log_friend_event(
			"friendship.rejected",
			{"friendship_id": friendship.id, "from": friendship.user_a_id, "to": friendship.user_b_id},
		)

	async def cancel_friend_request(self, friendship_id: str, actor_id: str) -> None:
		friendship = await self._remove_pending(friendship_id, str(actor_id), as_receiver=False)
		audit.inc_friend_request("cancelled")
		await audit.log_friend_event(
			"friendship.cancelled",
			{"friendship_id": friendship.id, "from": friendship.user_a_id, "to": friendship.user_b_id},
		)

	async def unfriend(self, user_id: str, other_id: str) -> None:
		user_id, other_id = str(user_id), str(other_id)
		policy.guard_not_self(user_id, other_id)
		async with db.connection() as conn:
			async with conn.transaction():
				friendship = await self.repo.find_friendship(conn, user_id, other_id, for_update=True)
				if friendship is None or friendship.status is not FriendshipStatus.ACCEPTED:
					raise NotFoundError("not_friends")
				await self.repo.remove_friendship(conn, friendship.id)
				await self.repo.remove_follow(conn, user_id, other_id)
				await self.repo.remove_follow(conn, other_id, user_id)
		audit.inc_friendship_removed("unfriend")
		await audit.log_friend_event(
			"friendship.removed",
			{"friendship_id": friendship.id, "by": user_id, "other": other_id, "via": "unfriend"},
		)

	# --- Follow edges -------------------------------------------------------

	async def follow(self, follower_id: str, target_id: str) -> FollowResponse:
		follower_id, target_id = str(follower_id), str(target_id)
		policy.guard_not_self(follower_id, target_id)

		async def attempt() -> FollowResult:
			async with db.connection() as conn:
				async with conn.transaction():
					await policy.require_account(self.repo, conn, target_id)
					await self.repo.lock_pair(conn, follower_id, target_id)
					if await self.repo.get_follow(conn, follower_id, target_id) is not None:
						raise AlreadyFollowingError()
					edge = await self.repo.insert_follow(conn, follower_id, target_id)
					friendship = None
					if await self.repo.get_follow(conn, target_id, follower_id) is not None:
						if await self.repo.find_friendship(conn, follower_id, target_id, for_update=True) is None:
							friendship = await self.repo.insert_friendship(
								conn, follower_id, target_id, FriendshipStatus.ACCEPTED
							)
					return FollowResult(edge=edge, friendship=friendship)

		result = await self._with_retries("follow", attempt)
		audit.inc_follow("user", "follow")
		await audit.log_follow_event("follow.created", {"follower": follower_id, "following": target_id})
		await self.dispatcher.dispatch(events.UserFollow(actor_id=follower_id, target_id=target_id))
		if result.friendship is not None:
			audit.inc_friendship_accepted("mutual_follow")
			await audit.log_friend_event(
				"friendship.accepted",
				{
					"friendship_id": result.friendship.id,
					"user_a": follower_id,
					"user_b": target_id,
					"via": "mutual_follow",
				},
			)
			await self.dispatcher.dispatch(
				events.FriendAccept(actor_id=follower_id, requester_id=target_id, via="mutual_follow")
			)
		return FollowResponse(following=True, friendship_created=result.friendship_created)

	async def unfollow(self, follower_id: str, target_id: str) -> UnfollowResponse:
		follower_id, target_id = str(follower_id), str(target_id)
		policy.guard_not_self(follower_id, target_id)
		async with db.connection() as conn:
			async with conn.transaction():
				if not await self.repo.remove_follow(conn, follower_id, target_id):
					raise NotFoundError("not_following")
				result = UnfollowResult(friendship_removed=False)
				friendship = await self.repo.find_friendship(conn, follower_id, target_id, for_update=True)
				if friendship is not None and friendship.status is FriendshipStatus.ACCEPTED:
					await self.repo.remove_friendship(conn, friendship.id)
					result = UnfollowResult(friendship_removed=True)
		audit.inc_follow("user", "unfollow")
		await audit.log_follow_event("follow.removed", {"follower": follower_id, "following": target_id})
		if result.friendship_removed:
			audit.inc_friendship_removed("unfollow")
			await audit.log_friend_event(
				"friendship.removed",
				{"friendship_id": friendship.id, "by": follower_id, "other": target_id, "via": "unfollow"},
			)
		return UnfollowResponse(following=False, friendship_removed=result.friendship_removed)

	async def follow_page(self, user_id: str, page_id: str) -> PageFollowResponse:
		user_id, page_id = str(user_id), str(page_id)

		async def attempt() -> None:
			async with db.connection() as conn:
				async with conn.transaction():
					await policy.require_page(self.repo, conn, page_id)
					if await self.repo.get_page_follow(conn, user_id, page_id) is not None:
						raise AlreadyFollowingError("already_following_page")
					await self.repo.insert_page_follow(conn, user_id, page_id)

		await self._with_retries("follow_page", attempt)
		audit.inc_follow("page", "follow")
		await audit.log_follow_event("page_follow.created", {"user": user_id, "page": page_id})
		await self.dispatcher.dispatch(events.PageFollow(actor_id=user_id, page_id=page_id))
		return PageFollowResponse(page_id=page_id, following=True)

	async def unfollow_page(self, user_id: str, page_id: str) -> PageFollowResponse:
		user_id, page_id = str(user_id), str(page_id)
		async with db.connection() as conn:
			async with conn.transaction():
				await policy.require_page(self.repo, conn, page_id)
				if not await self.repo.remove_page_follow(conn, user_id, page_id):
					raise NotFoundError("not_following_page")
		audit.inc_follow("page", "unfollow")
		await audit.log_follow_event("page_follow.removed", {"user": user_id, "page": page_id})
		return PageFollowResponse(page_id=page_id, following=False)

	# --- Reads --------------------------------------------------------------

	async def get_status(self, viewer_id: str, other_id: str) -> GraphStatus:
		viewer_id, other_id = str(viewer_id), str(other_id)
		policy.guard_not_self(viewer_id, other_id)
		async with db.connection() as conn:
			friendship = await self.repo.find_friendship(conn, viewer_id, other_id)
		if friendship is None or friendship.status is FriendshipStatus.REJECTED:
			return GraphStatus(status="none")
		perspective = "sent" if friendship.user_a_id == viewer_id else "received"
		return GraphStatus(
			status=friendship.status.value,
			perspective=perspective,
			friendship=FriendshipSummary.from_model(friendship),
		)

	async def follow_status(self, viewer_id: str, other_id: str) -> FollowStatus:
		viewer_id, other_id = str(viewer_id), str(other_id)
		policy.guard_not_self(viewer_id, other_id)
		async with db.connection() as conn:
			outgoing = await self.repo.get_follow(conn, viewer_id, other_id)
			incoming = await self.repo.get_follow(conn, other_id, viewer_id)
		return FollowStatus(
			is_following=outgoing is not None,
			is_followed_by=incoming is not None,
			is_mutual=outgoing is not None and incoming is not None,
			followed_at=outgoing.created_at if outgoing else None,
			followed_by_at=incoming.created_at if incoming else None,
		)

	async def list_friends(
		self,
		user_id: str,
		*,
		page: int = 1,
		limit: int = DEFAULT_LIST_SIZE,
		search: str | None = None,
	) -> FriendList:
		user_id = str(user_id)
		win = window(page, limit, default=DEFAULT_LIST_SIZE, maximum=MAX_LIST_SIZE)
		async with db.connection() as conn:
			await policy.require_account(self.repo, conn, user_id)
			rows = await self.repo.list_friends(conn, user_id, limit=win.limit, offset=win.offset, search=search)
			total = await self.repo.count_friends(conn, user_id, search=search)
		items = [
			FriendRow(
				friendship_id=friendship.id,
				friends_since=friendship.updated_at,
				user=AccountSummary.from_account(account),
			)
			for friendship, account in rows
		]
		return FriendList(items=items, pagination=win.info(total=total, returned=len(items)))

	async def _list_follows(self, user_id: str, direction: str, page: int, limit: int) -> FollowList:
		user_id = str(user_id)
		win = window(page, limit, default=DEFAULT_LIST_SIZE, maximum=MAX_LIST_SIZE)
		async with db.connection() as conn:
			await policy.require_account(self.repo, conn, user_id)
			rows = await self.repo.list_follows(conn, user_id, direction=direction, limit=win.limit, offset=win.offset)
			total = await self.repo.count_follows(conn, user_id, direction=direction)
		items = [FollowRow(followed_at=edge.created_at, user=AccountSummary.from_account(account)) for edge, account in rows]
		return FollowList(items=items, pagination=win.info(total=total, returned=len(items)))

	async def list_followers(self, user_id: str, *, page: int = 1, limit: int = DEFAULT_LIST_SIZE) -> FollowList:
		return await self._list_follows(user_id, "followers", page, limit)

	async def list_following(self, user_id: str, *, page: int = 1, limit: int = DEFAULT_LIST_SIZE) -> FollowList:
		return await self._list_follows(user_id, "following", page, limit)

	async def list_mutual_friends(self, viewer_id: str, other_id: str) -> list[AccountSummary]:
		viewer_id, other_id = str(viewer_id), str(other_id)
		policy.guard_not_self(viewer_id, other_id)
		async with db.connection() as conn:
			await policy.require_account(self.repo, conn, other_id)
			mine = await self.repo.friend_ids(conn, viewer_id)
			theirs = await self.repo.friend_ids(conn, other_id)
			accounts = await self.repo.list_accounts(conn, sorted(mine & theirs))
		return [AccountSummary.from_account(account) for account in accounts]

	async def _list_requests(self, user_id: str, direction: str) -> list[FriendRequestRow]:
		async with db.connection() as conn:
			rows = await self.repo.list_requests(conn, str(user_id), direction=direction)
		return [
			FriendRequestRow(
				friendship_id=friendship.id,
				created_at=friendship.created_at,
				user=AccountSummary.from_account(account),
			)
			for friendship, account in rows
		]

	async def list_received_requests(self, user_id: str) -> list[FriendRequestRow]:
		return await self._list_requests(user_id, "incoming")

	async def list_sent_requests(self, user_id: str) -> list[FriendRequestRow]:
		return await self._list_requests(user_id, "outgoing")
