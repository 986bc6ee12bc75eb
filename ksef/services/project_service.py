"""
Project Registration Service

Patrons register projects at Sub-County level. Each project gets a
registration number KSEF/<year>/<COUNTY CODE>/<sequence>, where the county
code is the first three letters of the county name (spaces removed,
uppercased) and the sequence counts registrations under that prefix.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import status
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.errors import ErrorCode, ServiceError
from ksef.orm.project import Project, ProjectLevel, ProjectStatus
from ksef.orm.user import UserRole
from ksef.rbac import ActorContext
from ksef.reference.schools import get_school_mapping
from ksef.schemas.project import ProjectCreate

logger = logging.getLogger(__name__)

REG_NO_PREFIX = "KSEF"
MAX_REG_NO_ATTEMPTS = 3

REGISTERING_ROLES = {
    UserRole.PATRON,
    UserRole.SUPERADMIN,
    UserRole.NATIONAL_ADMIN,
    UserRole.REGIONAL_ADMIN,
    UserRole.COUNTY_ADMIN,
    UserRole.SUB_COUNTY_ADMIN,
}


class ProjectError(ServiceError):
    """Base exception for project errors."""
    def __init__(self, message: str, code: str = "PROJECT_ERROR"):
        super().__init__(message, code)


class ProjectNotFoundError(ProjectError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, project_id: int):
        super().__init__(f"Project {project_id} not found", ErrorCode.PROJECT_NOT_FOUND)


class ProjectPermissionError(ProjectError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.FORBIDDEN)


class RegistrationNumberError(ProjectError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, county: str):
        super().__init__(
            f"Could not allocate a registration number for {county}; please retry",
            "REG_NO_CONFLICT",
        )


def county_code(county: str) -> str:
    return "".join(county.split())[:3].upper()


def reg_no_prefix(county: str, year: int) -> str:
    return f"{REG_NO_PREFIX}/{year}/{county_code(county)}/"


def generate_reg_no(county: str, sequence: int, year: Optional[int] = None) -> str:
    """
    >>> generate_reg_no("Nairobi City", 7, 2024)
    'KSEF/2024/NAI/0007'
    """
    year = year or datetime.utcnow().year
    return f"{reg_no_prefix(county, year)}{sequence:04d}"


async def next_reg_no(db: AsyncSession, county: str, year: Optional[int] = None) -> str:
    year = year or datetime.utcnow().year
    prefix = reg_no_prefix(county, year)
    result = await db.execute(
        select(func.count(Project.id)).where(Project.reg_no.like(f"{prefix}%"))
    )
    return generate_reg_no(county, (result.scalar() or 0) + 1, year)


async def register_project(
    db: AsyncSession,
    data: ProjectCreate,
    actor: ActorContext,
) -> Project:
    """Create a Qualified Sub-County project with a fresh registration number."""
    if actor.role not in REGISTERING_ROLES:
        raise ProjectPermissionError(f"{actor.role.value} cannot register projects")
    if actor.is_admin and not actor.covers(data.region, data.county, data.sub_county):
        raise ProjectPermissionError("Project location is outside your jurisdiction")

    zone = data.zone
    if zone is None:
        mapping = get_school_mapping(data.school)
        if mapping is not None and mapping.county == data.county:
            zone = mapping.zone

    for attempt in range(1, MAX_REG_NO_ATTEMPTS + 1):
        project = Project(
            patron_id=actor.id if actor.role == UserRole.PATRON else None,
            title=data.title,
            category=data.category,
            reg_no=await next_reg_no(db, data.county),
            presenters=list(data.presenters),
            school=data.school,
            zone=zone,
            sub_county=data.sub_county,
            county=data.county,
            region=data.region,
            level=ProjectLevel.SUB_COUNTY,
            status=ProjectStatus.QUALIFIED,
            eliminated=False,
        )
        db.add(project)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning(f"Registration number collision for {data.county} (attempt {attempt})")
            continue
        logger.info(f"Project {project.id} registered as {project.reg_no}")
        return project

    raise RegistrationNumberError(data.county)


async def get_project(db: AsyncSession, project_id: int) -> Project:
    project = await db.get(Project, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


async def list_projects(
    db: AsyncSession,
    actor: ActorContext,
    level: Optional[ProjectLevel] = None,
    category: Optional[str] = None,
) -> List[Project]:
    """Projects visible to the actor: patrons see their own, admins their scope."""
    query = select(Project)
    if level is not None:
        query = query.where(Project.level == level)
    if category is not None:
        query = query.where(Project.category == category)
    if actor.role == UserRole.PATRON:
        query = query.where(Project.patron_id == actor.id)
    for field, value in actor.scope().items():
        query = query.where(getattr(Project, field) == value)

    result = await db.execute(query.order_by(Project.id))
    return list(result.scalars().all())
