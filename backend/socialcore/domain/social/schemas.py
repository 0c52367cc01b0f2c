"""Pydantic schemas for follows and friendships."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from socialcore.domain.common.pagination import PageInfo
from socialcore.domain.social.models import Account, Friendship


class FriendRequestPayload(BaseModel):
	receiver_id: UUID = Field(..., description="User receiving the request")


class AccountSummary(BaseModel):
	id: str
	username: str
	name: str
	profile_picture: Optional[str] = None
	is_verified: bool = False

	@classmethod
	def from_account(cls, account: Account) -> "AccountSummary":
		return cls(
			id=account.id,
			username=account.username,
			name=account.name,
			profile_picture=account.profile_picture,
			is_verified=account.is_verified,
		)


class FriendshipSummary(BaseModel):
	id: str
	user_a_id: str
	user_b_id: str
	status: Literal["pending", "accepted", "rejected"]
	created_at: datetime
	updated_at: datetime

	@classmethod
	def from_model(cls, friendship: Friendship) -> "FriendshipSummary":
		return cls(
			id=friendship.id,
			user_a_id=friendship.user_a_id,
			user_b_id=friendship.user_b_id,
			status=friendship.status.value,
			created_at=friendship.created_at,
			updated_at=friendship.updated_at,
		)


class FriendRequestResponse(BaseModel):
	friendship: FriendshipSummary
	auto_accepted: bool = False


class FriendRow(BaseModel):
	friendship_id: str
	friends_since: datetime
	user: AccountSummary


class FriendRequestRow(BaseModel):
	friendship_id: str
	created_at: datetime
	user: AccountSummary


class FollowRow(BaseModel):
	followed_at: datetime
	user: AccountSummary


class FriendList(BaseModel):
	items: list[FriendRow]
	pagination: PageInfo


class FollowList(BaseModel):
	items: list[FollowRow]
	pagination: PageInfo


class FollowResponse(BaseModel):
	following: bool = True
	friendship_created: bool = False


class UnfollowResponse(BaseModel):
	following: bool = False
	friendship_removed: bool = False


class GraphStatus(BaseModel):
	"""Friendship state between a viewer and another user."""

	status: Literal["none", "pending", "accepted"]
	perspective: Literal["none", "sent", "received"] = "none"
	friendship: Optional[FriendshipSummary] = None


class FollowStatus(BaseModel):
	is_following: bool
	is_followed_by: bool
	is_mutual: bool
	followed_at: Optional[datetime] = None
	followed_by_at: Optional[datetime] = None


class PageFollowResponse(BaseModel):
	page_id: str
	following: bool
