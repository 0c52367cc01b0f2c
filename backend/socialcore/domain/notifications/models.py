"""Notification rows and API schemas."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


@dataclass(slots=True)
class Notification:
	id: str
	user_id: str
	type: str
	title: str
	content: str
	is_read: bool
	created_at: datetime
	sender_id: Optional[str] = None
	post_id: Optional[str] = None
	comment_id: Optional[str] = None
	page_id: Optional[str] = None
	sender_name: Optional[str] = None
	sender_username: Optional[str] = None
	sender_profile_picture: Optional[str] = None

	@classmethod
	def from_record(cls, record) -> "Notification":
		def _opt(key: str) -> Optional[str]:
			value = record.get(key)
			return str(value) if value is not None else None

		return cls(
			id=str(record["id"]),
			user_id=str(record["user_id"]),
			type=record["type"],
			title=record["title"],
			content=record["content"],
			is_read=bool(record["is_read"]),
			created_at=record["created_at"],
			sender_id=_opt("sender_id"),
			post_id=_opt("post_id"),
			comment_id=_opt("comment_id"),
			page_id=_opt("page_id"),
			sender_name=record.get("sender_name"),
			sender_username=record.get("sender_username"),
			sender_profile_picture=record.get("sender_profile_picture"),
		)


@dataclass(frozen=True, slots=True)
class DispatchSkipped:
	"""Returned by dispatch when no row was written."""

	reason: str


class SenderSummary(BaseModel):
	id: str
	name: Optional[str] = None
	username: Optional[str] = None
	profile_picture: Optional[str] = None


class NotificationResponse(BaseModel):
	id: str
	type: str
	title: str
	content: str
	is_read: bool
	created_at: datetime
	sender: Optional[SenderSummary] = None
	post_id: Optional[str] = None
	comment_id: Optional[str] = None
	page_id: Optional[str] = None

	@classmethod
	def from_model(cls, notification: Notification) -> "NotificationResponse":
		sender = None
		if notification.sender_id:
			sender = SenderSummary(
				id=notification.sender_id,
				name=notification.sender_name,
				username=notification.sender_username,
				profile_picture=notification.sender_profile_picture,
			)
		return cls(
			id=notification.id,
			type=notification.type,
			title=notification.title,
			content=notification.content,
			is_read=notification.is_read,
			created_at=notification.created_at,
			sender=sender,
			post_id=notification.post_id,
			comment_id=notification.comment_id,
			page_id=notification.page_id,
		)


class NotificationListResponse(BaseModel):
	items: list[NotificationResponse]
	page: int
	limit: int
	total: int
	has_more: bool
	total_pages: int


class UnreadCountResponse(BaseModel):
	unread_count: int


class MarkReadRequest(BaseModel):
	ids: list[str] = Field(..., min_length=1, max_length=500)


class MarkReadResponse(BaseModel):
	updated: int
