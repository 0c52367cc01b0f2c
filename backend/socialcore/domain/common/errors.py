"""Error taxonomy shared by the graph, feed and notification services."""

from __future__ import annotations


class SocialCoreError(Exception):
	"""Base class for domain errors."""

	reason: str = "unknown"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class NotFoundError(SocialCoreError):
	"""Referenced entity is missing or not visible."""

	reason = "not_found"


class ForbiddenError(SocialCoreError):
	"""Actor lacks rights over the target."""

	reason = "forbidden"


class ConflictError(SocialCoreError):
	"""Relationship already in the attempted or a mutually-exclusive state."""

	reason = "conflict"


class SelfTargetError(ConflictError):
	reason = "self_target"


class AlreadyFriendsError(ConflictError):
	reason = "already_friends"


class AlreadyRequestedError(ConflictError):
	reason = "already_requested"


class AlreadyFollowingError(ConflictError):
	reason = "already_following"


class DuplicateRowError(ConflictError):
	"""A concurrent writer inserted the same alive row first."""

	reason = "duplicate"


class InvalidStateError(SocialCoreError):
	"""Entity is not in a state that permits the operation."""

	reason = "invalid_state"


class RateLimitError(SocialCoreError):
	reason = "rate_limited"


class InternalError(SocialCoreError):
	"""Unexpected store failure."""

	reason = "internal"


__all__ = [
	"SocialCoreError",
	"NotFoundError",
	"ForbiddenError",
	"ConflictError",
	"SelfTargetError",
	"AlreadyFriendsError",
	"AlreadyRequestedError",
	"AlreadyFollowingError",
	"DuplicateRowError",
	"InvalidStateError",
	"RateLimitError",
	"InternalError",
]
