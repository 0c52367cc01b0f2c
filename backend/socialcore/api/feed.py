"""Feed and boost endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from socialcore.domain.feed.boosts import BoostService
from socialcore.domain.feed.schemas import (
	BoostCreateRequest,
	BoostCreateResponse,
	BoostList,
	BoostStats,
	BoostSummary,
	FeedResponse,
	FeedStats,
)
from socialcore.domain.feed.service import FeedComposer
from socialcore.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["feed"])

_composer = FeedComposer()
_boosts = BoostService()


def get_feed_composer() -> FeedComposer:
	return _composer


def get_boost_service() -> BoostService:
	return _boosts


@router.get("/feed", response_model=FeedResponse)
async def compose_feed(
	page: int = Query(default=1, ge=1),
	limit: int | None = Query(default=None, ge=1, le=200),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	composer: FeedComposer = Depends(get_feed_composer),
) -> FeedResponse:
	return await composer.compose_feed(auth_user.id, page=page, limit=limit)


@router.get("/feed/stats", response_model=FeedStats)
async def compose_stats(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	composer: FeedComposer = Depends(get_feed_composer),
) -> FeedStats:
	return await composer.compose_stats(auth_user.id)


@router.post("/boosts", response_model=BoostCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_boost(
	payload: BoostCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	boosts: BoostService = Depends(get_boost_service),
) -> BoostCreateResponse:
	return await boosts.create_boost(auth_user.id, str(payload.post_id), end_date=payload.end_date)


@router.get("/boosts/mine", response_model=BoostList)
async def list_my_boosts(
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=10, ge=1, le=50),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	boosts: BoostService = Depends(get_boost_service),
) -> BoostList:
	return await boosts.list_my_boosts(auth_user.id, page=page, limit=limit)


@router.get("/boosts/stats", response_model=BoostStats)
async def boost_stats(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	boosts: BoostService = Depends(get_boost_service),
) -> BoostStats:
	return await boosts.boost_stats(auth_user.id)


@router.delete("/boosts/{boost_id}", response_model=BoostSummary)
async def cancel_boost(
	boost_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	boosts: BoostService = Depends(get_boost_service),
) -> BoostSummary:
	return await boosts.cancel_boost(auth_user.id, str(boost_id))
