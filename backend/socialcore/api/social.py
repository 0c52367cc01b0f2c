"""REST API surface for friendships and follows."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from socialcore.domain.social.schemas import (
	AccountSummary,
	FollowList,
	FollowResponse,
	FollowStatus,
	FriendList,
	FriendRequestPayload,
	FriendRequestResponse,
	FriendRequestRow,
	FriendshipSummary,
	GraphStatus,
	PageFollowResponse,
	UnfollowResponse,
)
from socialcore.domain.social.service import GraphService
from socialcore.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["social"])

_service = GraphService()


def get_graph_service() -> GraphService:
	return _service


# --- Friend requests ----------------------------------------------------------


@router.post("/friends/requests", response_model=FriendRequestResponse, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
	payload: FriendRequestPayload,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> FriendRequestResponse:
	return await service.send_friend_request(auth_user.id, str(payload.receiver_id))


@router.get("/friends/requests/received", response_model=List[FriendRequestRow])
async def list_received_requests(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> List[FriendRequestRow]:
	return await service.list_received_requests(auth_user.id)


@router.get("/friends/requests/sent", response_model=List[FriendRequestRow])
async def list_sent_requests(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> List[FriendRequestRow]:
	return await service.list_sent_requests(auth_user.id)


@router.post("/friends/requests/{friendship_id}/accept", response_model=FriendshipSummary)
async def accept_friend_request(
	friendship_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> FriendshipSummary:
	return await service.accept_friend_request(str(friendship_id), auth_user.id)


@router.post("/friends/requests/{friendship_id}/reject", status_code=status.HTTP_204_NO_CONTENT)
async def reject_friend_request(
	friendship_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> None:
	await service.reject_friend_request(str(friendship_id), auth_user.id)


@router.delete("/friends/requests/{friendship_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_friend_request(
	friendship_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> None:
	await service.cancel_friend_request(str(friendship_id), auth_user.id)


# --- Friendships --------------------------------------------------------------


@router.get("/friends", response_model=FriendList)
async def list_my_friends(
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=20, ge=1, le=100),
	search: Optional[str] = Query(default=None, max_length=100),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> FriendList:
	return await service.list_friends(auth_user.id, page=page, limit=limit, search=search)


@router.get("/users/{user_id}/friends", response_model=FriendList)
async def list_friends(
	user_id: UUID,
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=20, ge=1, le=100),
	search: Optional[str] = Query(default=None, max_length=100),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> FriendList:
	return await service.list_friends(str(user_id), page=page, limit=limit, search=search)


@router.get("/users/{user_id}/mutual-friends", response_model=List[AccountSummary])
async def list_mutual_friends(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> List[AccountSummary]:
	return await service.list_mutual_friends(auth_user.id, str(user_id))


@router.get("/users/{user_id}/friendship", response_model=GraphStatus)
async def get_status(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> GraphStatus:
	return await service.get_status(auth_user.id, str(user_id))


@router.delete("/friends/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfriend(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> None:
	await service.unfriend(auth_user.id, str(user_id))


# --- Follows ------------------------------------------------------------------


@router.post("/users/{user_id}/follow", response_model=FollowResponse, status_code=status.HTTP_201_CREATED)
async def follow(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> FollowResponse:
	return await service.follow(auth_user.id, str(user_id))


@router.delete("/users/{user_id}/follow", response_model=UnfollowResponse)
async def unfollow(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> UnfollowResponse:
	return await service.unfollow(auth_user.id, str(user_id))


@router.get("/users/{user_id}/follow-status", response_model=FollowStatus)
async def follow_status(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> FollowStatus:
	return await service.follow_status(auth_user.id, str(user_id))


@router.get("/users/{user_id}/followers", response_model=FollowList)
async def list_followers(
	user_id: UUID,
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=20, ge=1, le=100),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> FollowList:
	return await service.list_followers(str(user_id), page=page, limit=limit)


@router.get("/users/{user_id}/following", response_model=FollowList)
async def list_following(
	user_id: UUID,
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=20, ge=1, le=100),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> FollowList:
	return await service.list_following(str(user_id), page=page, limit=limit)


@router.post("/pages/{page_id}/follow", response_model=PageFollowResponse, status_code=status.HTTP_201_CREATED)
async def follow_page(
	page_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> PageFollowResponse:
	return await service.follow_page(auth_user.id, str(page_id))


@router.delete("/pages/{page_id}/follow", response_model=PageFollowResponse)
async def unfollow_page(
	page_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: GraphService = Depends(get_graph_service),
) -> PageFollowResponse:
	return await service.unfollow_page(auth_user.id, str(page_id))
