"""
Score Sheet API Routes
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.database import get_db
from ksef.orm.user import UserRole
from ksef.rbac import ActorContext, ADMIN_ROLES, get_current_actor, require_roles
from ksef.schemas.scoring import ScoreSheetSubmission
from ksef.services.project_service import get_project
from ksef.services.scoring_service import (
    load_project_scores, load_project_sheets, individual_score, resolve_conflict, submit_score_sheet
)

router = APIRouter(prefix="/scores", tags=["Scoring"])


@router.post("/projects/{project_id}", status_code=status.HTTP_201_CREATED)
async def submit_sheet(
    project_id: int,
    submission: ScoreSheetSubmission,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles([UserRole.JUDGE])),
) -> Dict[str, Any]:
    """
    Submit the calling judge's sheet for one section of a project.

    Invalid scores are rejected with 422 and every problem listed. A second
    sheet for the same section and level is rejected with 409.
    """
    sheet = await submit_score_sheet(db, actor, project_id, submission)
    project = await get_project(db, project_id)
    return {
        "success": True,
        "score_sheet": sheet.to_dict(),
        "project_status": project.status.value,
    }


@router.get("/projects/{project_id}")
async def project_scores(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor),
) -> Dict[str, Any]:
    """Aggregated scores once the project is complete, else the sheets so far."""
    project = await get_project(db, project_id)
    aggregate = await load_project_scores(db, project)
    if aggregate is not None:
        return {"success": True, "complete": True, "scores": aggregate.model_dump()}

    sheets = await load_project_sheets(db, project)
    return {
        "success": True,
        "complete": False,
        "judge_scores": [individual_score(s).model_dump() for s in sheets],
    }


@router.post("/projects/{project_id}/resolve-conflict")
async def resolve_project_conflict(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES + [UserRole.COORDINATOR])),
) -> Dict[str, Any]:
    project = await resolve_conflict(db, project_id, actor)
    return {"success": True, "project": project.to_dict()}
