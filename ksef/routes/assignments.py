"""
Judge Assignment API Routes

Administrators place judges on project sections, by hand, in bulk or by
auto-assignment. Rule failures come back as AssignmentResult data with a
code; missing records and scope violations are errors.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.database import get_db
from ksef.errors import ErrorCode
from ksef.orm.judge_assignment import Section
from ksef.orm.user import UserRole
from ksef.rbac import ActorContext, ADMIN_ROLES, require_roles
from ksef.schemas.assignment import (
    AutoAssignRequest, AvailableJudge, BulkAssignRequest, CreateAssignmentRequest
)
from ksef.services.judge_assignment_service import (
    auto_assign_judges, bulk_assign, create_assignment, get_assignment_stats,
    get_available_judges, get_judge_assignments, get_project_assignments,
    remove_assignment, assignments_to_dicts, active_load_by_judge,
    check_judge_in_scope, load_project_in_scope,
)

router = APIRouter(prefix="/assignments", tags=["Judge Assignments"])


# =============================================================================
# Commands
# =============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def assign_judge(
    request: CreateAssignmentRequest,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    result = await create_assignment(
        db, request.judge_id, request.project_id, request.section, actor, notes=request.notes
    )
    if not result.success:
        http_status = status.HTTP_409_CONFLICT
        if result.code in (ErrorCode.NOT_ELIGIBLE, ErrorCode.CONFLICT_OF_INTEREST, ErrorCode.INVALID_STATE):
            http_status = status.HTTP_400_BAD_REQUEST
        raise HTTPException(
            status_code=http_status,
            detail={"success": False, "message": result.message, "code": result.code},
        )
    return result.model_dump()


@router.delete("/{assignment_id}")
async def unassign_judge(
    assignment_id: int,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    result = await remove_assignment(db, assignment_id, actor)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"success": False, "message": result.message, "code": result.code},
        )
    return result.model_dump()


@router.post("/auto")
async def auto_assign(
    request: AutoAssignRequest,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    """Fill the open slots of a section. One result per slot."""
    results = await auto_assign_judges(db, request.project_id, request.section, actor)
    return {
        "success": all(r.success for r in results),
        "assigned": sum(1 for r in results if r.success),
        "results": [r.model_dump() for r in results],
    }


@router.post("/bulk")
async def assign_bulk(
    request: BulkAssignRequest,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    results = await bulk_assign(db, request.items, actor)
    return {
        "success": all(r.success for r in results),
        "assigned": sum(1 for r in results if r.success),
        "results": [r.model_dump() for r in results],
    }


# =============================================================================
# Queries
# =============================================================================

@router.get("/available")
async def available_judges(
    project_id: int = Query(..., ge=1),
    section: Section = Query(...),
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    await load_project_in_scope(db, project_id, actor)
    judges = await get_available_judges(db, project_id, section)
    load = await active_load_by_judge(db)
    return {
        "success": True,
        "judges": [
            AvailableJudge(
                id=j.id, name=j.name, email=j.email, school=j.school,
                active_assignments=load.get(j.id, 0),
            ).model_dump()
            for j in judges
        ],
    }


@router.get("/stats")
async def assignment_stats(
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    stats = await get_assignment_stats(db)
    return {"success": True, "stats": stats.model_dump()}


@router.get("/judge/{judge_id}")
async def judge_assignments(
    judge_id: int,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES + [UserRole.JUDGE])),
) -> Dict[str, Any]:
    """A judge may only list their own assignments; admins those of judges in their jurisdiction."""
    if actor.role == UserRole.JUDGE and actor.id != judge_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"success": False, "message": "Judges can only view their own assignments", "code": ErrorCode.FORBIDDEN},
        )
    if actor.role != UserRole.JUDGE:
        await check_judge_in_scope(db, judge_id, actor)
    assignments = await get_judge_assignments(db, judge_id)
    return {"success": True, "assignments": assignments_to_dicts(assignments)}


@router.get("/project/{project_id}")
async def project_assignments(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES + [UserRole.COORDINATOR])),
) -> Dict[str, Any]:
    await load_project_in_scope(db, project_id, actor)
    assignments = await get_project_assignments(db, project_id)
    return {"success": True, "assignments": assignments_to_dicts(assignments)}
