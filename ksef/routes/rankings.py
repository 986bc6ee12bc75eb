"""
Rankings and Promotion API Routes
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.database import get_db
from ksef.orm.project import Project, ProjectLevel
from ksef.orm.user import UserRole
from ksef.rbac import ActorContext, ADMIN_ROLES, require_roles
from ksef.services.promotion_service import apply_promotions, process_projects
from ksef.services.ranking_service import RankingService
from ksef.services.scoring_service import load_scores_for_projects

router = APIRouter(prefix="/rankings", tags=["Rankings"])


@router.get("")
async def ranking_report(
    level: Optional[ProjectLevel] = Query(default=None, description="Only count projects at this level"),
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    """Regions, counties, sub-counties, zones and schools ranked by points."""
    report = await RankingService.build_ranking_report(db, level, actor)
    return {"success": True, "level": level.value if level else None, "rankings": report.model_dump()}


@router.get("/promotion-status")
async def promotion_status(
    level: Optional[ProjectLevel] = Query(default=None),
    category: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles(ADMIN_ROLES)),
) -> Dict[str, Any]:
    """Each project's effective level and status if promotions were applied now."""
    query = select(Project)
    if level is not None:
        query = query.where(Project.level == level)
    if category is not None:
        query = query.where(Project.category == category)
    result = await db.execute(query.order_by(Project.id))
    projects = list(result.scalars().all())

    scores = await load_scores_for_projects(db, projects)
    views = process_projects(projects, {pid: s.final_score for pid, s in scores.items()})
    visible = {p.id for p in projects if actor.covers(p.region, p.county, p.sub_county)}
    return {
        "success": True,
        "projects": [v.model_dump() for v in views if v.project_id in visible],
    }


@router.post("/promote")
async def promote_cohort(
    level: ProjectLevel = Query(...),
    category: str = Query(...),
    db: AsyncSession = Depends(get_db),
    actor: ActorContext = Depends(require_roles([UserRole.SUPERADMIN, UserRole.NATIONAL_ADMIN])),
) -> Dict[str, Any]:
    outcome = await apply_promotions(db, level, category, actor)
    return {"success": not outcome.pending, "outcome": outcome.model_dump()}
