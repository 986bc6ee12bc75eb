"""
User Profile Service

Administrators create the users below them in the hierarchy and keep judge
qualifications up to date. Scope fields are checked against ROLE_SCOPE_FIELDS
so the same table drives validation and ranking scope.
"""
import logging
from typing import Iterable, List, Optional

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.errors import ErrorCode, ServiceError
from ksef.orm.user import User, UserRole, UserStatus
from ksef.rbac import ActorContext, ROLE_HIERARCHY, validate_scope_fields, ScopeValidationError
from ksef.reference.geography import is_valid_location, counties_in_region, all_regions
from ksef.schemas.user import UserCreate, JudgeQualification

logger = logging.getLogger(__name__)


class UserServiceError(ServiceError):
    """Base exception for user management errors."""
    def __init__(self, message: str, code: str = "USER_ERROR"):
        super().__init__(message, code)


class UserNotFoundError(UserServiceError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found", ErrorCode.USER_NOT_FOUND)


class UserPermissionError(UserServiceError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.FORBIDDEN)


class DuplicateEmailError(UserServiceError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, email: str):
        super().__init__(f"A user with email {email} already exists", "DUPLICATE_EMAIL")


def _check_location(region: Optional[str], county: Optional[str], sub_county: Optional[str]) -> None:
    """Scope fields that are present must describe a real place."""
    if region and region not in all_regions() and region != "National":
        raise UserServiceError(f"Unknown region: {region}", ErrorCode.INVALID_INPUT)
    if county and region and county not in counties_in_region(region):
        raise UserServiceError(f"{county} is not a county of {region}", ErrorCode.INVALID_INPUT)
    if sub_county and county and region and not is_valid_location(region, county, sub_county):
        raise UserServiceError(f"{sub_county} is not a sub-county of {county}", ErrorCode.INVALID_INPUT)


def _can_manage(actor: ActorContext, role: UserRole) -> bool:
    if actor.role == UserRole.SUPERADMIN:
        return True
    return actor.is_admin and ROLE_HIERARCHY.get(actor.role, 0) > ROLE_HIERARCHY.get(role, 0)


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def create_user(db: AsyncSession, data: UserCreate, actor: ActorContext) -> User:
    if not _can_manage(actor, data.role):
        raise UserPermissionError(f"{actor.role.value} cannot create a {data.role.value}")
    try:
        validate_scope_fields(data.role, data.assigned_region, data.assigned_county, data.assigned_sub_county)
    except ScopeValidationError as e:
        raise UserServiceError(str(e), ErrorCode.INVALID_INPUT)
    _check_location(data.assigned_region, data.assigned_county, data.assigned_sub_county)
    if data.assigned_region and not actor.covers(data.assigned_region, data.assigned_county, data.assigned_sub_county):
        raise UserPermissionError("User scope is outside your jurisdiction")

    user = User(
        name=data.name.strip(),
        email=data.email.lower(),
        role=data.role,
        status=UserStatus.ACTIVE,
        school=data.school,
        phone_number=data.phone_number,
        assigned_region=data.assigned_region,
        assigned_county=data.assigned_county,
        assigned_sub_county=data.assigned_sub_county,
        assignments=[{"category": a.category, "section": a.section.value} for a in data.assignments],
        coordinator_category=data.coordinator_category,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateEmailError(data.email)

    logger.info(f"User {user.id} created as {user.role.value} by user {actor.id}")
    return user


async def set_judge_assignments(
    db: AsyncSession,
    user_id: int,
    assignments: Iterable[JudgeQualification],
    actor: ActorContext,
) -> User:
    """Replace a judge's category/section qualifications (duplicates collapse)."""
    judge = await get_user(db, user_id)
    if judge.role != UserRole.JUDGE:
        raise UserServiceError(f"User {user_id} is not a judge", ErrorCode.INVALID_INPUT)
    if not _can_manage(actor, judge.role):
        raise UserPermissionError(f"{actor.role.value} cannot manage judges")
    if judge.assigned_region and not actor.covers(judge.assigned_region, judge.assigned_county, judge.assigned_sub_county):
        raise UserPermissionError("Judge is outside your jurisdiction")

    pairs = dict.fromkeys((a.category, a.section.value) for a in assignments)
    judge.assignments = [{"category": category, "section": section} for category, section in pairs]
    await db.commit()
    logger.info(f"Judge {user_id} qualifications set to {judge.assignments}")
    return judge


async def set_user_status(db: AsyncSession, user_id: int, new_status: UserStatus, actor: ActorContext) -> User:
    user = await get_user(db, user_id)
    if not _can_manage(actor, user.role):
        raise UserPermissionError(f"{actor.role.value} cannot manage a {user.role.value}")
    user.status = new_status
    await db.commit()
    return user


async def list_judges(db: AsyncSession, actor: ActorContext) -> List[User]:
    query = select(User).where(User.role == UserRole.JUDGE)
    for field, value in actor.scope().items():
        query = query.where(getattr(User, f"assigned_{field}") == value)
    result = await db.execute(query.order_by(User.id))
    return list(result.scalars().all())
