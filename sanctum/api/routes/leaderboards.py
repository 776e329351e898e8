"""
sanctum.api.routes.leaderboards — Leaderboards & live feed
===========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from sanctum.api.deps import get_services
from sanctum.engine.ranking import LeaderboardCategory
from sanctum.services.registry import SanctumServices

router = APIRouter(tags=["leaderboards"])


@router.get("/leaderboards/{category}")
def leaderboard(
    category: LeaderboardCategory,
    limit: int = Query(10, ge=1, le=100),
    services: SanctumServices = Depends(get_services),
):
    entries = services.leaderboards.leaderboard(category, limit)
    return {"category": category.value, "entries": [e.to_dict() for e in entries]}


@router.get("/leaderboards/{category}/stats")
def leaderboard_stats(
    category: LeaderboardCategory, services: SanctumServices = Depends(get_services)
):
    return services.leaderboards.stats(category).to_dict()


@router.get("/leaderboards/{category}/users/{user_id}")
def user_rank(
    category: LeaderboardCategory,
    user_id: int,
    services: SanctumServices = Depends(get_services),
):
    rank = services.leaderboards.user_rank(user_id, category)
    if rank is None:
        raise HTTPException(404, "User not ranked in this category")
    return rank


@router.get("/feed")
def live_feed(
    limit: int = Query(20, ge=1, le=100),
    services: SanctumServices = Depends(get_services),
):
    return {"events": [item.to_dict() for item in services.feed.recent_feed(limit)]}
