"""Domain models for follows and friendships."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class FriendshipStatus(str, Enum):
	"""Friendship states tracked in the database."""

	PENDING = "pending"
	ACCEPTED = "accepted"
	REJECTED = "rejected"


class AccountStatus(str, Enum):
	PENDING = "pending"
	ACTIVE = "active"
	SUSPENDED = "suspended"
	INACTIVE = "inactive"
	DELETED = "deleted"


@dataclass(slots=True)
class Account:
	"""Public projection of a user row."""

	id: str
	username: str
	name: str
	profile_picture: Optional[str] = None
	is_verified: bool = False
	is_pro_user: bool = False
	status: str = AccountStatus.ACTIVE.value

	@classmethod
	def from_record(cls, record) -> "Account":
		return cls(
			id=str(record["id"]),
			username=record["username"],
			name=record["name"],
			profile_picture=record.get("profile_picture"),
			is_verified=bool(record.get("is_verified") or False),
			is_pro_user=bool(record.get("is_pro_user") or False),
			status=record.get("status") or AccountStatus.ACTIVE.value,
		)


@dataclass(slots=True)
class PageRef:
	id: str
	owner_id: str
	name: str
	is_public: bool = True

	@classmethod
	def from_record(cls, record) -> "PageRef":
		return cls(
			id=str(record["id"]),
			owner_id=str(record["owner_id"]),
			name=record["name"],
			is_public=bool(record.get("is_public", True)),
		)


@dataclass(slots=True)
class FollowEdge:
	"""Directed follow edge follower -> following."""

	id: str
	follower_id: str
	following_id: str
	created_at: datetime

	@classmethod
	def from_record(cls, record) -> "FollowEdge":
		return cls(
			id=str(record["id"]),
			follower_id=str(record["follower_id"]),
			following_id=str(record["following_id"]),
			created_at=record["created_at"],
		)


@dataclass(slots=True)
class Friendship:
	"""Undirected friendship stored with the requester as ``user_a_id``."""

	id: str
	user_a_id: str
	user_b_id: str
	status: FriendshipStatus
	created_at: datetime
	updated_at: datetime

	@classmethod
	def from_record(cls, record) -> "Friendship":
		return cls(
			id=str(record["id"]),
			user_a_id=str(record["user_a_id"]),
			user_b_id=str(record["user_b_id"]),
			status=FriendshipStatus(record["status"]),
			created_at=record["created_at"],
			updated_at=record["updated_at"],
		)

	def other(self, user_id: str) -> str:
		return self.user_b_id if self.user_a_id == user_id else self.user_a_id

	def involves(self, user_id: str) -> bool:
		return user_id in (self.user_a_id, self.user_b_id)


@dataclass(slots=True)
class PageFollow:
	id: str
	user_id: str
	page_id: str
	created_at: datetime

	@classmethod
	def from_record(cls, record) -> "PageFollow":
		return cls(
			id=str(record["id"]),
			user_id=str(record["user_id"]),
			page_id=str(record["page_id"]),
			created_at=record["created_at"],
		)


@dataclass(slots=True)
class FriendRequestResult:
	friendship: Friendship
	auto_accepted: bool
	follows_created: int = 0


@dataclass(slots=True)
class FollowResult:
	edge: FollowEdge
	friendship: Optional[Friendship] = None

	@property
	def friendship_created(self) -> bool:
		return self.friendship is not None


@dataclass(slots=True)
class UnfollowResult:
	friendship_removed: bool
