"""
sanctum.api.routes.members — Membership Directory lookups
==========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from sanctum.api.deps import get_services
from sanctum.api.serializers import member_dict
from sanctum.services.registry import SanctumServices

router = APIRouter(prefix="/members", tags=["members"])


@router.get("/{user_id}")
def get_member(user_id: int, services: SanctumServices = Depends(get_services)):
    member = services.directory.get(user_id)
    if member is None:
        raise HTTPException(404, "User not found")
    return member_dict(member)
