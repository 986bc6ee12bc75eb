"""
Project Registration and Judging Progress API Routes

- Patrons and administrators register projects
- Everyone signed in lists the projects visible to them
- Administrators follow judging progress and open judging
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.database import get_db
from ksef.orm.project import ProjectLevel
from ksef.orm.user import UserRole
from ksef.rbac import ActorContext, ADMIN_ROLES, get_current_actor, require_roles
from ksef.schemas.project import ProjectCreate
from ksef.services.progress_service import get_aggregated_judging_status, get_project_progress
from ksef.services.project_service import get_project, list_projects, register_project
from ksef.services.scoring_service import begin_judging

router = APIRouter(prefix="/projects", tags=["Projects"])


# =============================================================================
# Registration
# =============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles([UserRole.PATRON] + ADMIN_ROLES)),
) -> Dict[str, Any]:
    """Register a Sub-County project. The registration number is allocated here."""
    project = await register_project(db, data, actor)
    return {"success": True, "project": project.to_dict()}


@router.get("")
async def get_projects(
    level: Optional[ProjectLevel] = Query(default=None),
    category: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor),
) -> Dict[str, Any]:
    projects = await list_projects(db, actor, level=level, category=category)
    return {"success": True, "count": len(projects), "projects": [p.to_dict() for p in projects]}


# =============================================================================
# Judging progress
# =============================================================================

@router.get("/judging-status")
async def judging_status(
    level: ProjectLevel = Query(default=ProjectLevel.SUB_COUNTY),
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    """Per-category judging status at a level, limited to the actor's scope."""
    by_category = await get_aggregated_judging_status(db, level, actor)
    return {
        "success": True,
        "level": level.value,
        "categories": {name: entry.model_dump() for name, entry in by_category.items()},
    }


@router.get("/{project_id}")
async def get_project_detail(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor),
) -> Dict[str, Any]:
    project = await get_project(db, project_id)
    return {"success": True, "project": project.to_dict()}


@router.get("/{project_id}/progress")
async def project_progress(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES + [UserRole.COORDINATOR])),
) -> Dict[str, Any]:
    project = await get_project(db, project_id)
    progress = await get_project_progress(db, project)
    return {"success": True, "progress": progress.model_dump()}


@router.post("/{project_id}/begin-judging")
async def open_judging(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    project = await begin_judging(db, project_id, actor)
    return {"success": True, "project": project.to_dict()}
