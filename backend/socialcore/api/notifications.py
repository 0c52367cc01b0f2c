"""Notification inbox endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from socialcore.domain.notifications.models import (
	MarkReadRequest,
	MarkReadResponse,
	NotificationListResponse,
	NotificationResponse,
	UnreadCountResponse,
)
from socialcore.domain.notifications.service import NotificationDispatcher, get_dispatcher
from socialcore.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=20, ge=1, le=100),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> NotificationListResponse:
	return await dispatcher.list_for_user(auth_user.id, page=page, limit=limit)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> UnreadCountResponse:
	return await dispatcher.unread_count(auth_user.id)


@router.post("/mark-read", response_model=MarkReadResponse)
async def mark_read(
	payload: MarkReadRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> MarkReadResponse:
	return await dispatcher.mark_read(auth_user.id, payload.ids)


@router.post("/mark-all-read", response_model=MarkReadResponse)
async def mark_all_read(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> MarkReadResponse:
	return await dispatcher.mark_all_read(auth_user.id)


@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(
	notification_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> NotificationResponse:
	return await dispatcher.get(auth_user.id, str(notification_id))


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
	notification_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> None:
	await dispatcher.delete(auth_user.id, str(notification_id))
