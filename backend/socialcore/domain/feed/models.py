"""Domain models for feed composition and post boosts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class BoostStatus(str, Enum):
	PENDING = "pending"
	ACCEPTED = "accepted"
	REJECTED = "rejected"
	EXPIRED = "expired"


class Origin(str, Enum):
	BOOSTED = "boosted"
	ORGANIC = "organic"


@dataclass(slots=True)
class Audience:
	"""Accounts and pages whose posts a viewer's feed draws from."""

	user_ids: set[str] = field(default_factory=set)
	page_ids: set[str] = field(default_factory=set)


@dataclass(slots=True)
class FeedPost:
	id: str
	author_id: str
	type: str
	content: Optional[str]
	created_at: datetime
	updated_at: datetime
	page_id: Optional[str] = None
	author_username: Optional[str] = None
	author_name: Optional[str] = None
	author_profile_picture: Optional[str] = None
	author_is_verified: bool = False
	page_name: Optional[str] = None
	reactions_count: int = 0
	comments_count: int = 0
	boost_id: Optional[str] = None
	boost_end_date: Optional[datetime] = None

	@classmethod
	def from_record(cls, record) -> "FeedPost":
		page_id = record.get("page_id")
		boost_id = record.get("boost_id")
		return cls(
			id=str(record["id"]),
			author_id=str(record["author_id"]),
			type=record["type"],
			content=record.get("content"),
			created_at=record["created_at"],
			updated_at=record["updated_at"],
			page_id=str(page_id) if page_id else None,
			author_username=record.get("author_username"),
			author_name=record.get("author_name"),
			author_profile_picture=record.get("author_profile_picture"),
			author_is_verified=bool(record.get("author_is_verified") or False),
			page_name=record.get("page_name"),
			reactions_count=int(record.get("reactions_count") or 0),
			comments_count=int(record.get("comments_count") or 0),
			boost_id=str(boost_id) if boost_id else None,
			boost_end_date=record.get("boost_end_date"),
		)


@dataclass(slots=True)
class BoostedPost:
	id: str
	post_id: str
	status: BoostStatus
	start_date: datetime
	end_date: Optional[datetime]
	created_at: datetime
	updated_at: datetime

	@classmethod
	def from_record(cls, record) -> "BoostedPost":
		return cls(
			id=str(record["id"]),
			post_id=str(record["post_id"]),
			status=BoostStatus(record["status"]),
			start_date=record["start_date"],
			end_date=record["end_date"],
			created_at=record["created_at"],
			updated_at=record["updated_at"],
		)

	def is_active(self, now: datetime) -> bool:
		if self.status is not BoostStatus.ACCEPTED:
			return False
		return self.end_date is None or self.end_date > now


@dataclass(slots=True)
class BoostTarget:
	"""Alive post being boosted, with the account allowed to manage its boosts."""

	post_id: str
	author_id: str
	type: str
	page_id: Optional[str]
	page_owner_id: Optional[str]

	@property
	def manager_id(self) -> Optional[str]:
		if self.type == "page":
			return self.page_owner_id
		return self.author_id
