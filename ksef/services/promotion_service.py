"""
Promotion Service

Ranks each (level, category) cohort and moves the top projects up a level.

Cohort rules:
- A cohort is ranked only when every member is Completed; until then its
  Completed members are Pending Ranking
- Order: final score DESC, then reg_no ASC, then id ASC
- The first PROMOTION_SLOTS projects are Promoted; with the include_ties
  policy anyone level with the last slot is Promoted too
- National is the final level: nothing is promoted beyond it
- Members eliminated by an earlier application keep Not Promoted and are
  left out; the rest of the cohort is ranked by the rules above
"""
import logging
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.config.judging_policy import JudgingPolicy, TiePolicy, judging_policy
from ksef.errors import ErrorCode, ServiceError
from ksef.orm.project import Project, ProjectLevel, ProjectStatus, LEVEL_ORDER
from ksef.rbac import ActorContext
from ksef.schemas.ranking import PromotionStatus, ProjectPromotionView, PromotionOutcome
from ksef.services.judge_assignment_service import close_project_assignments
from ksef.services.scoring_service import load_scores_for_projects
from ksef.state_machines.project_status import ProjectStatusMachine

logger = logging.getLogger(__name__)


# =============================================================================
# Custom Exceptions
# =============================================================================

class PromotionError(ServiceError):
    """Base exception for promotion errors."""
    def __init__(self, message: str, code: str = "PROMOTION_ERROR"):
        super().__init__(message, code)


class TerminalLevelError(PromotionError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self):
        super().__init__(
            f"{ProjectLevel.NATIONAL.value} is the final level; there is nothing to promote to",
            ErrorCode.TERMINAL_LEVEL,
        )


class PromotionPermissionError(PromotionError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.FORBIDDEN)


# =============================================================================
# Pure Ranking
# =============================================================================

def next_level(level: ProjectLevel) -> Optional[ProjectLevel]:
    """The level above, or None at National."""
    index = LEVEL_ORDER.index(ProjectLevel(level))
    if index + 1 >= len(LEVEL_ORDER):
        return None
    return LEVEL_ORDER[index + 1]


def _cohort_key(project: Project) -> Tuple[ProjectLevel, str]:
    return project.level, project.category


def _group_cohorts(
    projects: Sequence[Project],
    level: Optional[ProjectLevel] = None,
    category: Optional[str] = None,
) -> Dict[Tuple[ProjectLevel, str], List[Project]]:
    cohorts: Dict[Tuple[ProjectLevel, str], List[Project]] = defaultdict(list)
    for project in projects:
        if level is not None and project.level != level:
            continue
        if category is not None and project.category != category:
            continue
        cohorts[_cohort_key(project)].append(project)
    return cohorts


def _rank_cohort(
    cohort: List[Project],
    final_scores: Mapping[int, float],
    policy: JudgingPolicy,
) -> Dict[int, PromotionStatus]:
    # Eliminated members lost an earlier application; only the rest are ranked
    outcome = {p.id: PromotionStatus.NOT_PROMOTED for p in cohort if p.eliminated}
    contenders = [p for p in cohort if not p.eliminated]
    if not contenders:
        return outcome

    ready = all(
        p.status == ProjectStatus.COMPLETED and p.id in final_scores
        for p in contenders
    )
    if not ready:
        outcome.update({
            p.id: PromotionStatus.PENDING_RANKING
            for p in contenders if p.status == ProjectStatus.COMPLETED
        })
        return outcome

    ordered = sorted(contenders, key=lambda p: (-final_scores[p.id], p.reg_no or "", p.id))
    slots = policy.PROMOTION_SLOTS
    cutoff = final_scores[ordered[slots - 1].id] if len(ordered) >= slots else None

    for index, project in enumerate(ordered):
        promoted = index < slots
        if (
            not promoted
            and policy.PROMOTION_TIE_POLICY == TiePolicy.INCLUDE_TIES
            and cutoff is not None
            and final_scores[project.id] == cutoff
        ):
            promoted = True
        outcome[project.id] = PromotionStatus.PROMOTED if promoted else PromotionStatus.NOT_PROMOTED
    return outcome


def rank_and_promote(
    projects: Sequence[Project],
    final_scores: Mapping[int, float],
    level: Optional[ProjectLevel] = None,
    category: Optional[str] = None,
    policy: Optional[JudgingPolicy] = None,
) -> Dict[int, PromotionStatus]:
    """
    Promotion status per project id for every cohort in projects.

    final_scores maps project id to its aggregated final score. Projects
    that are not Completed in a pending cohort get no entry.
    """
    policy = policy or judging_policy
    statuses: Dict[int, PromotionStatus] = {}
    for cohort in _group_cohorts(projects, level, category).values():
        statuses.update(_rank_cohort(cohort, final_scores, policy))
    return statuses


def process_projects(
    projects: Sequence[Project],
    final_scores: Mapping[int, float],
    policy: Optional[JudgingPolicy] = None,
) -> List[ProjectPromotionView]:
    """
    Each project with the level and status it effectively has once promotion
    outcomes are taken into account. Stored records are not changed.
    """
    statuses = rank_and_promote(projects, final_scores, policy=policy)
    views = []
    for project in projects:
        promotion = statuses.get(project.id)
        effective_level = project.level
        effective_status = project.status
        if project.status == ProjectStatus.COMPLETED and promotion == PromotionStatus.PROMOTED:
            above = next_level(project.level)
            if above is not None:
                effective_level = above
                effective_status = ProjectStatus.QUALIFIED
        views.append(ProjectPromotionView(
            project_id=project.id,
            level=project.level.value,
            status=project.status.value,
            effective_level=effective_level.value,
            effective_status=effective_status.value,
            promotion_status=promotion,
            final_score=final_scores.get(project.id),
        ))
    return views


# =============================================================================
# Persistence
# =============================================================================

async def load_cohort(db: AsyncSession, level: ProjectLevel, category: str) -> List[Project]:
    result = await db.execute(
        select(Project)
        .where(Project.level == level, Project.category == category)
        .order_by(Project.id)
    )
    return list(result.scalars().all())


async def apply_promotions(
    db: AsyncSession,
    level: ProjectLevel,
    category: str,
    actor: ActorContext,
    policy: Optional[JudgingPolicy] = None,
) -> PromotionOutcome:
    """
    Rank one cohort and persist the outcome.

    Promoted projects close their remaining assignments and re-enter at the
    next level as Qualified. The rest are marked eliminated. A cohort that is
    still being judged is left untouched and reported as pending.
    """
    policy = policy or judging_policy
    level = ProjectLevel(level)
    if not actor.is_national:
        raise PromotionPermissionError("Cohorts span the whole country; national administrators promote them")
    above = next_level(level)
    if above is None:
        raise TerminalLevelError()

    cohort = [p for p in await load_cohort(db, level, category) if not p.eliminated]
    outcome = PromotionOutcome(level=level.value, category=category)
    if not cohort:
        outcome.message = "No projects left to rank in this cohort"
        return outcome

    scores = await load_scores_for_projects(db, cohort, policy)
    final_scores = {pid: s.final_score for pid, s in scores.items()}
    statuses = rank_and_promote(cohort, final_scores, policy=policy)

    if any(s == PromotionStatus.PENDING_RANKING for s in statuses.values()) or len(statuses) < len(cohort):
        outcome.pending = True
        outcome.message = "Cohort is still being judged"
        return outcome

    for project in cohort:
        if statuses[project.id] == PromotionStatus.PROMOTED:
            await close_project_assignments(db, project.id)
            ProjectStatusMachine(project).reset_for_level(above)
            outcome.promoted_project_ids.append(project.id)
        else:
            project.eliminated = True
            outcome.not_promoted_project_ids.append(project.id)

    await db.commit()
    outcome.message = (
        f"{len(outcome.promoted_project_ids)} promoted to {above.value}, "
        f"{len(outcome.not_promoted_project_ids)} not promoted"
    )
    logger.info(f"Promotion {level.value}/{category} by user {actor.id}: {outcome.message}")
    return outcome
