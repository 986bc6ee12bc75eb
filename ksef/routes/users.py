"""
User Profile API Routes

Administrators create users below them in the hierarchy and maintain judge
qualifications.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.database import get_db
from ksef.orm.user import UserStatus
from ksef.rbac import ActorContext, ADMIN_ROLES, get_current_actor, require_roles
from ksef.schemas.user import JudgeQualification, UserCreate
from ksef.services.user_service import (
    create_user, get_user, list_judges, set_judge_assignments, set_user_status
)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me")
async def me(
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor),
) -> Dict[str, Any]:
    user = await get_user(db, actor.id)
    return {"success": True, "user": user.to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    user = await create_user(db, data, actor)
    return {"success": True, "user": user.to_dict()}


@router.get("/judges")
async def judges(
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    found = await list_judges(db, actor)
    return {"success": True, "judges": [j.to_dict() for j in found]}


@router.put("/{user_id}/qualifications")
async def update_qualifications(
    user_id: int,
    qualifications: List[JudgeQualification],
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    judge = await set_judge_assignments(db, user_id, qualifications, actor)
    return {"success": True, "user": judge.to_dict()}


@router.post("/{user_id}/status/{new_status}")
async def change_status(
    user_id: int,
    new_status: UserStatus,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    user = await set_user_status(db, user_id, new_status, actor)
    return {"success": True, "user": user.to_dict()}
