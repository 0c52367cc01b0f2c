"""Pydantic schemas for feed and boost endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel

from socialcore.domain.common.pagination import PageInfo
from socialcore.domain.feed.models import BoostedPost, FeedPost, Origin


class FeedAuthor(BaseModel):
	id: str
	username: Optional[str] = None
	name: Optional[str] = None
	profile_picture: Optional[str] = None
	is_verified: bool = False


class FeedItem(BaseModel):
	id: str
	origin: Literal["boosted", "organic"]
	type: Literal["user", "page"]
	content: Optional[str] = None
	created_at: datetime
	updated_at: datetime
	author: FeedAuthor
	page_id: Optional[str] = None
	page_name: Optional[str] = None
	reactions_count: int = 0
	comments_count: int = 0
	boost_id: Optional[str] = None
	boost_end_date: Optional[datetime] = None

	@classmethod
	def from_post(cls, post: FeedPost, origin: Origin) -> "FeedItem":
		return cls(
			id=post.id,
			origin=origin.value,
			type=post.type,
			content=post.content,
			created_at=post.created_at,
			updated_at=post.updated_at,
			author=FeedAuthor(
				id=post.author_id,
				username=post.author_username,
				name=post.author_name,
				profile_picture=post.author_profile_picture,
				is_verified=post.author_is_verified,
			),
			page_id=post.page_id,
			page_name=post.page_name,
			reactions_count=post.reactions_count,
			comments_count=post.comments_count,
			boost_id=post.boost_id if origin is Origin.BOOSTED else None,
			boost_end_date=post.boost_end_date if origin is Origin.BOOSTED else None,
		)


class FeedResponse(BaseModel):
	items: list[FeedItem]
	has_more: bool
	pagination: PageInfo
	boosted_count: int = 0
	organic_count: int = 0


class FeedStats(BaseModel):
	total_posts: int
	user_posts: int
	page_posts: int
	boosted_posts: int
	following_users: int
	following_pages: int


class BoostCreateRequest(BaseModel):
	post_id: UUID
	end_date: Optional[datetime] = None


class BoostSummary(BaseModel):
	id: str
	post_id: str
	status: Literal["pending", "accepted", "rejected", "expired"]
	start_date: datetime
	end_date: Optional[datetime] = None
	created_at: datetime
	is_active: bool = False

	@classmethod
	def from_model(cls, boost: BoostedPost, *, now: datetime) -> "BoostSummary":
		return cls(
			id=boost.id,
			post_id=boost.post_id,
			status=boost.status.value,
			start_date=boost.start_date,
			end_date=boost.end_date,
			created_at=boost.created_at,
			is_active=boost.is_active(now),
		)


class BoostCreateResponse(BaseModel):
	boost: BoostSummary
	remaining_boosts: int


class BoostList(BaseModel):
	items: list[BoostSummary]
	pagination: PageInfo
	weekly_boosts: int
	remaining_boosts: int


class BoostStats(BaseModel):
	total_boosts: int
	active_boosts: int
	weekly_boosts: int
	remaining_boosts: int
	next_reset: Optional[datetime] = None
