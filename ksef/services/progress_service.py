"""
Judging Progress Service

Read-only views of how far judging has got: per project (sheets in of the
four required) and per category at one level, with each assigned judge and
whether they have scored yet.
"""
import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.config.judging_policy import JudgingPolicy, judging_policy
from ksef.orm.judge_assignment import JudgeProjectAssignment, Section, AssignmentStatus
from ksef.orm.project import Project, ProjectLevel, ProjectStatus
from ksef.orm.score_sheet import JudgeScoreSheet
from ksef.rbac import ActorContext
from ksef.schemas.project import CategoryJudgingStatus, JudgeSlot, ProjectJudgingProgress

logger = logging.getLogger(__name__)


def build_project_progress(
    project: Project,
    assignments: Sequence[JudgeProjectAssignment],
    sheets: Sequence[JudgeScoreSheet],
    policy: Optional[JudgingPolicy] = None,
) -> ProjectJudgingProgress:
    """Combine a project's assignments and sheets at its current level."""
    policy = policy or judging_policy
    judged = {
        (s.judge_id, s.section) for s in sheets if s.level == project.level
    }
    slots: Dict[Section, List[JudgeSlot]] = {section: [] for section in Section}
    for assignment in sorted(assignments, key=lambda a: a.id):
        if assignment.level != project.level or assignment.status == AssignmentStatus.REASSIGNED:
            continue
        slots[assignment.section].append(JudgeSlot(
            judge_id=assignment.judge_id,
            judge_name=assignment.judge.name if assignment.judge else f"Judge {assignment.judge_id}",
            has_judged=(assignment.judge_id, assignment.section) in judged,
        ))

    required = policy.JUDGES_PER_SECTION * len(Section)
    return ProjectJudgingProgress(
        project_id=project.id,
        title=project.title,
        category=project.category,
        status=project.status.value,
        judges_scored=min(len(judged), required),
        judges_required=required,
        section_a=slots[Section.A],
        section_bc=slots[Section.BC],
    )


async def _load_progress_inputs(db: AsyncSession, project_ids: List[int]):
    assignments = await db.execute(
        select(JudgeProjectAssignment).where(
            JudgeProjectAssignment.project_id.in_(project_ids),
            JudgeProjectAssignment.status != AssignmentStatus.REASSIGNED,
        ).execution_options(populate_existing=True)
    )
    sheets = await db.execute(
        select(JudgeScoreSheet)
        .where(JudgeScoreSheet.project_id.in_(project_ids))
        .execution_options(populate_existing=True)
    )
    by_project_assignments = defaultdict(list)
    for assignment in assignments.scalars().all():
        by_project_assignments[assignment.project_id].append(assignment)
    by_project_sheets = defaultdict(list)
    for sheet in sheets.scalars().all():
        by_project_sheets[sheet.project_id].append(sheet)
    return by_project_assignments, by_project_sheets


async def get_project_progress(db: AsyncSession, project: Project) -> ProjectJudgingProgress:
    assignments, sheets = await _load_progress_inputs(db, [project.id])
    return build_project_progress(project, assignments[project.id], sheets[project.id])


async def get_aggregated_judging_status(
    db: AsyncSession,
    level: ProjectLevel,
    actor: ActorContext,
) -> Dict[str, CategoryJudgingStatus]:
    """Judging status by category for projects at the level in the actor's scope."""
    query = select(Project).where(Project.level == level)
    for field, value in actor.scope().items():
        query = query.where(getattr(Project, field) == value)
    result = await db.execute(query.order_by(Project.category, Project.id))
    projects = list(result.scalars().all())
    if not projects:
        return {}

    assignments, sheets = await _load_progress_inputs(db, [p.id for p in projects])

    by_category: Dict[str, CategoryJudgingStatus] = {}
    for project in projects:
        entry = by_category.setdefault(
            project.category,
            CategoryJudgingStatus(category=project.category, total_projects=0, completed_projects=0),
        )
        entry.total_projects += 1
        if project.status == ProjectStatus.COMPLETED:
            entry.completed_projects += 1
        entry.projects.append(
            build_project_progress(project, assignments[project.id], sheets[project.id])
        )
    return by_category
