"""Notification events, recipient rules and templates.

Each event type is a frozen dataclass carrying only the fields its rule needs.
:func:`resolve_recipient` and :func:`render` look the event type up in a table,
so adding an event means adding one row to each table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Union


class NotificationType:
	LIKE = "like"
	COMMENT = "comment"
	FOLLOW = "follow"
	FRIEND_REQUEST = "friend_request"
	FRIEND_ACCEPT = "friend_accept"
	PAGE_FOLLOW = "page_follow"
	PAGE_LIKE = "page_like"
	MENTION = "mention"

	ALL = (LIKE, COMMENT, FOLLOW, FRIEND_REQUEST, FRIEND_ACCEPT, PAGE_FOLLOW, PAGE_LIKE, MENTION)


REACTION_EMOJIS = {
	"LIKE": "👍",
	"LOVE": "❤️",
	"HAHA": "😂",
	"WOW": "😮",
	"SAD": "😢",
	"ANGRY": "😠",
}

REACTION_EXCERPT_CHARS = 50
COMMENT_EXCERPT_CHARS = 100


# --- Event variants -----------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PostReaction:
	actor_id: str
	post_id: str
	reaction: str = "LIKE"


@dataclass(frozen=True, slots=True)
class PostComment:
	actor_id: str
	post_id: str
	comment_id: str
	text: str


@dataclass(frozen=True, slots=True)
class UserFollow:
	actor_id: str
	target_id: str


@dataclass(frozen=True, slots=True)
class PageFollow:
	actor_id: str
	page_id: str


@dataclass(frozen=True, slots=True)
class FriendRequest:
	actor_id: str
	receiver_id: str


@dataclass(frozen=True, slots=True)
class FriendAccept:
	"""``actor_id`` became friends with ``requester_id``.

	``via`` is ``"request"`` when a friend request was accepted and
	``"mutual_follow"`` when the friendship came from both users following each other.
	"""

	actor_id: str
	requester_id: str
	via: str = "request"


@dataclass(frozen=True, slots=True)
class PageJoinRequest:
	actor_id: str
	page_id: str


@dataclass(frozen=True, slots=True)
class PageJoinDecision:
	actor_id: str
	page_id: str
	applicant_id: str
	approved: bool


Event = Union[
	PostReaction,
	PostComment,
	UserFollow,
	PageFollow,
	FriendRequest,
	FriendAccept,
	PageJoinRequest,
	PageJoinDecision,
]


# --- Resolved context ---------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PostContext:
	id: str
	author_id: str
	type: str
	page_id: Optional[str]
	content: Optional[str]
	page_owner_id: Optional[str] = None

	@property
	def is_page_post(self) -> bool:
		return self.type == "page"


@dataclass(frozen=True, slots=True)
class PageContext:
	id: str
	owner_id: str
	name: str


@dataclass(frozen=True, slots=True)
class Target:
	"""Alive rows an event refers to; missing entries mean not found or deleted."""

	post: Optional[PostContext] = None
	page: Optional[PageContext] = None
	user_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Actor:
	id: str
	name: str
	username: str


@dataclass(frozen=True, slots=True)
class Skip:
	reason: str


@dataclass(frozen=True, slots=True)
class Rendered:
	type: str
	title: str
	content: str
	post_id: Optional[str] = None
	comment_id: Optional[str] = None
	page_id: Optional[str] = None


# --- Lookups the loader performs ------------------------------------------------


def addressed_user(event: Event) -> Optional[str]:
	"""User id an event names directly, if any."""
	if isinstance(event, UserFollow):
		return event.target_id
	if isinstance(event, FriendRequest):
		return event.receiver_id
	if isinstance(event, FriendAccept):
		return event.requester_id
	if isinstance(event, PageJoinDecision):
		return event.applicant_id
	return None


def referenced_post(event: Event) -> Optional[str]:
	if isinstance(event, (PostReaction, PostComment)):
		return event.post_id
	return None


def referenced_page(event: Event) -> Optional[str]:
	if isinstance(event, (PageFollow, PageJoinRequest, PageJoinDecision)):
		return event.page_id
	return None


# --- Recipient rules ------------------------------------------------------------


def _post_owner(event: Event, target: Target) -> Optional[str]:
	post = target.post
	if post is None:
		return None
	if post.is_page_post:
		return post.page_owner_id
	return post.author_id


def _page_owner(event: Event, target: Target) -> Optional[str]:
	return target.page.owner_id if target.page else None


def _addressed(event: Event, target: Target) -> Optional[str]:
	return target.user_id


def _decision_applicant(event: Event, target: Target) -> Optional[str]:
	if target.page is None:
		return None
	return target.user_id


_RECIPIENT_RULES: dict[type, Callable[[Event, Target], Optional[str]]] = {
	PostReaction: _post_owner,
	PostComment: _post_owner,
	UserFollow: _addressed,
	PageFollow: _page_owner,
	FriendRequest: _addressed,
	FriendAccept: _addressed,
	PageJoinRequest: _page_owner,
	PageJoinDecision: _decision_applicant,
}


def resolve_recipient(event: Event, target: Target) -> Union[str, Skip]:
	"""Return the recipient account id for ``event`` or the reason to skip it."""
	rule = _RECIPIENT_RULES[type(event)]
	recipient = rule(event, target)
	if recipient is None:
		return Skip("target_missing")
	if str(recipient) == str(event.actor_id):
		return Skip("self_action")
	return str(recipient)


# --- Templates ------------------------------------------------------------------


def _excerpt(text: Optional[str], limit: int) -> str:
	return f"{(text or '')[:limit]}..."


def _render_reaction(event: PostReaction, actor: Actor, target: Target) -> Rendered:
	post = target.post
	assert post is not None
	emoji = REACTION_EMOJIS.get(event.reaction.upper(), REACTION_EMOJIS["LIKE"])
	title = f"{actor.name} liked your page's post" if post.is_page_post else f"{actor.name} liked your post"
	return Rendered(
		type=NotificationType.PAGE_LIKE if post.is_page_post else NotificationType.LIKE,
		title=title,
		content=f'{actor.name} reacted with {emoji} to "{_excerpt(post.content, REACTION_EXCERPT_CHARS)}"',
		post_id=post.id,
		page_id=post.page_id,
	)


def _render_comment(event: PostComment, actor: Actor, target: Target) -> Rendered:
	post = target.post
	assert post is not None
	if post.is_page_post:
		title = f"{actor.name} commented on your page's post"
	else:
		title = f"{actor.name} commented on your post"
	return Rendered(
		type=NotificationType.COMMENT,
		title=title,
		content=f'{actor.name}: "{_excerpt(event.text, COMMENT_EXCERPT_CHARS)}"',
		post_id=post.id,
		comment_id=event.comment_id,
		page_id=post.page_id,
	)


def _render_follow(event: UserFollow, actor: Actor, target: Target) -> Rendered:
	return Rendered(
		type=NotificationType.FOLLOW,
		title=f"{actor.name} started following you",
		content=f"{actor.name} (@{actor.username}) is now following you",
	)


def _render_page_follow(event: PageFollow, actor: Actor, target: Target) -> Rendered:
	page = target.page
	assert page is not None
	return Rendered(
		type=NotificationType.PAGE_FOLLOW,
		title=f"{actor.name} followed your page",
		content=f'{actor.name} started following "{page.name}"',
		page_id=page.id,
	)


def _render_friend_request(event: FriendRequest, actor: Actor, target: Target) -> Rendered:
	return Rendered(
		type=NotificationType.FRIEND_REQUEST,
		title=f"{actor.name} sent you a friend request",
		content=f"{actor.name} (@{actor.username}) wants to be your friend",
	)


def _render_friend_accept(event: FriendAccept, actor: Actor, target: Target) -> Rendered:
	if event.via == "mutual_follow":
		title = f"{actor.name} followed you back"
	else:
		title = f"{actor.name} accepted your friend request"
	return Rendered(
		type=NotificationType.FRIEND_ACCEPT,
		title=title,
		content=f"You and {actor.name} are now friends!",
	)


def _render_join_request(event: PageJoinRequest, actor: Actor, target: Target) -> Rendered:
	page = target.page
	assert page is not None
	return Rendered(
		type=NotificationType.PAGE_FOLLOW,
		title="New Join Request",
		content=f'{actor.name} requested to join your page "{page.name}"',
		page_id=page.id,
	)


def _render_join_decision(event: PageJoinDecision, actor: Actor, target: Target) -> Rendered:
	page = target.page
	assert page is not None
	verdict = "approved" if event.approved else "rejected"
	return Rendered(
		type=NotificationType.PAGE_FOLLOW,
		title=f"Join Request {verdict.capitalize()}",
		content=f'Your request to join "{page.name}" has been {verdict}',
		page_id=page.id,
	)


_TEMPLATES: dict[type, Callable[..., Rendered]] = {
	PostReaction: _render_reaction,
	PostComment: _render_comment,
	UserFollow: _render_follow,
	PageFollow: _render_page_follow,
	FriendRequest: _render_friend_request,
	FriendAccept: _render_friend_accept,
	PageJoinRequest: _render_join_request,
	PageJoinDecision: _render_join_decision,
}


def render(event: Event, actor: Actor, target: Target) -> Rendered:
	return _TEMPLATES[type(event)](event, actor, target)


def event_name(event: Event) -> str:
	"""Label used for metrics before the stored type is known."""
	return {
		PostReaction: "reaction",
		PostComment: NotificationType.COMMENT,
		UserFollow: NotificationType.FOLLOW,
		PageFollow: NotificationType.PAGE_FOLLOW,
		FriendRequest: NotificationType.FRIEND_REQUEST,
		FriendAccept: NotificationType.FRIEND_ACCEPT,
		PageJoinRequest: "page_join_request",
		PageJoinDecision: "page_join_decision",
	}[type(event)]
