"""
Judge Assignment Service

Persisted judge-to-project assignment: the system of record for who scores
which section of which project.

Core Principles:
- Deterministic auto-assignment (fewest active assignments first, then id)
- At most one Active row per (judge, project, section); the pre-insert check
  is backed by a partial unique index so a concurrent insert cannot slip in
- Rows are never deleted; removal soft-deletes to Reassigned
- Expected failures (duplicate, not eligible, section full) come back as
  AssignmentResult values; only missing records raise
"""
import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from fastapi import status
from sqlalchemy import select, func, and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.config.judging_policy import JudgingPolicy, judging_policy
from ksef.errors import ErrorCode, ServiceError
from ksef.orm.judge_assignment import JudgeProjectAssignment, Section, AssignmentStatus
from ksef.orm.project import Project, ProjectStatus
from ksef.orm.user import User, UserRole, UserStatus
from ksef.rbac import ActorContext
from ksef.schemas.assignment import AssignmentResult, AssignmentStats, CreateAssignmentRequest
from ksef.services.eligibility_service import (
    eligible_judges, ineligibility_reason, has_school_conflict, unassignable_message
)

logger = logging.getLogger(__name__)

# Projects still open for judge assignment at their current level
ASSIGNABLE_STATUSES = {ProjectStatus.QUALIFIED, ProjectStatus.JUDGING}

# Serializes assignment writes within one process (SQLite has no row locks)
_assignment_lock = asyncio.Lock()


# =============================================================================
# Custom Exceptions
# =============================================================================

class JudgeAssignmentError(ServiceError):
    """Base exception for judge assignment errors."""
    def __init__(self, message: str, code: str = "ASSIGNMENT_ERROR"):
        super().__init__(message, code)


class AssignmentNotFoundError(JudgeAssignmentError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, assignment_id: int):
        super().__init__(f"Assignment {assignment_id} not found", ErrorCode.ASSIGNMENT_NOT_FOUND)


class ProjectNotFoundError(JudgeAssignmentError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, project_id: int):
        super().__init__(f"Project {project_id} not found", ErrorCode.PROJECT_NOT_FOUND)


class JudgeNotFoundError(JudgeAssignmentError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, judge_id: int):
        super().__init__(f"Judge {judge_id} not found", ErrorCode.USER_NOT_FOUND)


class AssignmentScopeError(JudgeAssignmentError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.SCOPE_VIOLATION)


# =============================================================================
# Helpers
# =============================================================================

def _failure(message: str, code: str, judge_id: Optional[int] = None) -> AssignmentResult:
    return AssignmentResult(success=False, message=message, code=code, judge_id=judge_id)


def _check_actor(actor: ActorContext, project: Project) -> Optional[str]:
    if not actor.is_admin:
        return f"{actor.role.value} cannot manage judge assignments"
    if not actor.covers(project.region, project.county, project.sub_county):
        return "Project is outside your jurisdiction"
    return None


async def load_project_in_scope(db: AsyncSession, project_id: int, actor: ActorContext) -> Project:
    """The project, provided it lies inside the actor's jurisdiction."""
    project = await db.get(Project, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    if not actor.covers(project.region, project.county, project.sub_county):
        raise AssignmentScopeError("Project is outside your jurisdiction")
    return project


async def check_judge_in_scope(db: AsyncSession, judge_id: int, actor: ActorContext) -> None:
    """Admins read only judges placed inside their jurisdiction; national judges belong to everyone."""
    judge = await db.get(User, judge_id)
    if judge is None or judge.role != UserRole.JUDGE:
        raise JudgeNotFoundError(judge_id)
    if actor.is_national or judge.is_national_scope:
        return
    if not actor.covers(judge.assigned_region, judge.assigned_county, judge.assigned_sub_county):
        raise AssignmentScopeError("Judge is outside your jurisdiction")


async def _find_active_assignment(
    db: AsyncSession,
    judge_id: int,
    project_id: int,
    section: Section,
) -> Optional[JudgeProjectAssignment]:
    result = await db.execute(
        select(JudgeProjectAssignment).where(
            JudgeProjectAssignment.judge_id == judge_id,
            JudgeProjectAssignment.project_id == project_id,
            JudgeProjectAssignment.section == section,
            JudgeProjectAssignment.status == AssignmentStatus.ACTIVE,
        )
    )
    return result.scalars().first()


def _holds_section(project: Project, section: Section):
    """Active assignments, and Completed ones at the project's current level."""
    return and_(
        JudgeProjectAssignment.project_id == project.id,
        JudgeProjectAssignment.section == section,
        or_(
            JudgeProjectAssignment.status == AssignmentStatus.ACTIVE,
            and_(
                JudgeProjectAssignment.status == AssignmentStatus.COMPLETED,
                JudgeProjectAssignment.level == project.level,
            ),
        ),
    )


async def count_filled_for_section(db: AsyncSession, project: Project, section: Section) -> int:
    """Slots taken on a section: judges still scoring plus judges who have scored."""
    result = await db.execute(
        select(func.count(JudgeProjectAssignment.id)).where(_holds_section(project, section))
    )
    return result.scalar() or 0


async def _judges_already_on_section(db: AsyncSession, project: Project, section: Section) -> Set[int]:
    result = await db.execute(
        select(JudgeProjectAssignment.judge_id).where(_holds_section(project, section))
    )
    return set(result.scalars().all())


async def active_load_by_judge(db: AsyncSession) -> Dict[int, int]:
    result = await db.execute(
        select(JudgeProjectAssignment.judge_id, func.count(JudgeProjectAssignment.id))
        .where(JudgeProjectAssignment.status == AssignmentStatus.ACTIVE)
        .group_by(JudgeProjectAssignment.judge_id)
    )
    return {judge_id: count for judge_id, count in result.all()}


async def load_active_judges(db: AsyncSession) -> List[User]:
    result = await db.execute(
        select(User)
        .where(User.role == UserRole.JUDGE, User.status == UserStatus.ACTIVE)
        .order_by(User.id)
    )
    return list(result.scalars().all())


# =============================================================================
# Queries
# =============================================================================

async def get_judge_assignments(db: AsyncSession, judge_id: int) -> List[JudgeProjectAssignment]:
    """Active assignments for a judge, newest first, with judge/project/assigner joined."""
    result = await db.execute(
        select(JudgeProjectAssignment)
        .where(
            JudgeProjectAssignment.judge_id == judge_id,
            JudgeProjectAssignment.status == AssignmentStatus.ACTIVE,
        )
        .order_by(JudgeProjectAssignment.created_at.desc(), JudgeProjectAssignment.id.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_project_assignments(db: AsyncSession, project_id: int) -> List[JudgeProjectAssignment]:
    """Active assignments for a project ordered by section."""
    result = await db.execute(
        select(JudgeProjectAssignment)
        .where(
            JudgeProjectAssignment.project_id == project_id,
            JudgeProjectAssignment.status == AssignmentStatus.ACTIVE,
        )
        .order_by(JudgeProjectAssignment.section, JudgeProjectAssignment.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_available_judges(
    db: AsyncSession,
    project_id: int,
    section: Section,
) -> List[User]:
    """
    Eligible judges for (project, section) who are not already on it.

    Sorted deterministically:
    1. active assignment count ASC
    2. user id ASC
    """
    section = Section(section)
    project = await db.get(Project, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)

    already = await _judges_already_on_section(db, project, section)
    candidates = await load_active_judges(db)
    pool = eligible_judges(project, section, candidates, exclude_judge_ids=already)

    load = await active_load_by_judge(db)
    pool.sort(key=lambda judge: (load.get(judge.id, 0), judge.id))
    return pool


async def get_assignment_stats(db: AsyncSession) -> AssignmentStats:
    """Assignment counts for admin dashboards."""
    by_status_rows = await db.execute(
        select(JudgeProjectAssignment.status, func.count(JudgeProjectAssignment.id))
        .group_by(JudgeProjectAssignment.status)
    )
    by_status = {row[0]: row[1] for row in by_status_rows.all()}

    by_section_rows = await db.execute(
        select(JudgeProjectAssignment.section, func.count(JudgeProjectAssignment.id))
        .group_by(JudgeProjectAssignment.section)
    )
    by_section = {section.value: 0 for section in Section}
    for section, count in by_section_rows.all():
        by_section[section.value] = count

    judges = await db.execute(
        select(func.count(func.distinct(JudgeProjectAssignment.judge_id)))
        .where(JudgeProjectAssignment.status == AssignmentStatus.ACTIVE)
    )
    projects = await db.execute(
        select(func.count(func.distinct(JudgeProjectAssignment.project_id)))
        .where(JudgeProjectAssignment.status == AssignmentStatus.ACTIVE)
    )

    return AssignmentStats(
        total=sum(by_status.values()),
        active=by_status.get(AssignmentStatus.ACTIVE, 0),
        completed=by_status.get(AssignmentStatus.COMPLETED, 0),
        reassigned=by_status.get(AssignmentStatus.REASSIGNED, 0),
        by_section=by_section,
        judges_with_active_assignments=judges.scalar() or 0,
        projects_with_active_assignments=projects.scalar() or 0,
    )


# =============================================================================
# Commands
# =============================================================================

async def create_assignment(
    db: AsyncSession,
    judge_id: int,
    project_id: int,
    section: Section,
    actor: ActorContext,
    notes: Optional[str] = None,
    policy: Optional[JudgingPolicy] = None,
) -> AssignmentResult:
    """
    Assign a judge to one section of a project.

    Checks, in order: records exist, actor may manage the project, project is
    open, no Active duplicate, judge is eligible, section has a free slot.
    Commits on success. A concurrent duplicate that passes the pre-check is
    caught by the partial unique index and reported as DUPLICATE_ASSIGNMENT.
    """
    policy = policy or judging_policy
    section = Section(section)
    logger.info(f"[ASSIGNMENT START] judge={judge_id} project={project_id} section={section.value}")

    async with _assignment_lock:
        judge = await db.get(User, judge_id)
        if judge is None:
            return _failure(f"Judge {judge_id} not found", ErrorCode.USER_NOT_FOUND, judge_id)
        project = await db.get(Project, project_id)
        if project is None:
            return _failure(f"Project {project_id} not found", ErrorCode.PROJECT_NOT_FOUND, judge_id)

        denied = _check_actor(actor, project)
        if denied:
            return _failure(denied, ErrorCode.SCOPE_VIOLATION, judge_id)

        if project.status not in ASSIGNABLE_STATUSES:
            return _failure(
                f"Project is {project.status.value} and no longer takes judges",
                ErrorCode.INVALID_STATE,
                judge_id,
            )

        existing = await _find_active_assignment(db, judge_id, project_id, section)
        if existing is not None:
            return _failure(
                "Judge is already assigned to this project for this section",
                ErrorCode.DUPLICATE_ASSIGNMENT,
                judge_id,
            )

        if has_school_conflict(judge, project):
            return _failure(
                "Judge cannot score a project from their own school",
                ErrorCode.CONFLICT_OF_INTEREST,
                judge_id,
            )
        reason = ineligibility_reason(judge, project, section)
        if reason:
            return _failure(reason, ErrorCode.NOT_ELIGIBLE, judge_id)

        if judge_id in await _judges_already_on_section(db, project, section):
            return _failure(
                "Judge has already scored this project section at this level",
                ErrorCode.DUPLICATE_ASSIGNMENT,
                judge_id,
            )

        filled = await count_filled_for_section(db, project, section)
        if filled >= policy.JUDGES_PER_SECTION:
            return _failure(
                f"Section {section.value} already has {policy.JUDGES_PER_SECTION} judges",
                ErrorCode.SECTION_FULL,
                judge_id,
            )

        assignment = JudgeProjectAssignment(
            judge_id=judge_id,
            project_id=project_id,
            section=section,
            level=project.level,
            assigned_by=actor.id,
            status=AssignmentStatus.ACTIVE,
            notes=notes,
        )
        db.add(assignment)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning(
                f"[ASSIGNMENT RACE] judge={judge_id} project={project_id} section={section.value} "
                f"lost to a concurrent insert"
            )
            return _failure(
                "Judge is already assigned to this project for this section",
                ErrorCode.DUPLICATE_ASSIGNMENT,
                judge_id,
            )

    logger.info(f"[ASSIGNMENT SUCCESS] assignment={assignment.id} judge={judge_id} project={project_id}")
    return AssignmentResult(
        success=True,
        message="Judge assigned successfully",
        assignment_id=assignment.id,
        judge_id=judge_id,
    )


async def remove_assignment(
    db: AsyncSession,
    assignment_id: int,
    actor: ActorContext,
) -> AssignmentResult:
    """Soft delete: the row stays for audit with status Reassigned."""
    assignment = await db.get(JudgeProjectAssignment, assignment_id)
    if assignment is None:
        raise AssignmentNotFoundError(assignment_id)

    project = await db.get(Project, assignment.project_id)
    denied = _check_actor(actor, project)
    if denied:
        raise AssignmentScopeError(denied)

    if assignment.status != AssignmentStatus.ACTIVE:
        return _failure(
            f"Assignment is already {assignment.status.value}",
            ErrorCode.INVALID_STATE,
            assignment.judge_id,
        )

    assignment.status = AssignmentStatus.REASSIGNED
    await db.commit()
    logger.info(f"Assignment {assignment_id} reassigned by user {actor.id}")
    return AssignmentResult(
        success=True,
        message="Assignment removed successfully",
        assignment_id=assignment_id,
        judge_id=assignment.judge_id,
    )


async def auto_assign_judges(
    db: AsyncSession,
    project_id: int,
    section: Section,
    actor: ActorContext,
    policy: Optional[JudgingPolicy] = None,
) -> List[AssignmentResult]:
    """
    Fill the open slots of a section from the available judges.

    Returns one result per open slot; a slot with no judge left to take it
    gets a NOT_ELIGIBLE failure. A full section returns an empty list.
    """
    policy = policy or judging_policy
    section = Section(section)
    project = await db.get(Project, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    denied = _check_actor(actor, project)
    if denied:
        raise AssignmentScopeError(denied)

    open_slots = policy.JUDGES_PER_SECTION - await count_filled_for_section(db, project, section)
    if open_slots <= 0:
        logger.info(f"Auto-assign: project {project_id} section {section.value} already full")
        return []

    no_judge_message = unassignable_message(project, section)
    candidates = await get_available_judges(db, project_id, section)
    results: List[AssignmentResult] = []
    for _ in range(open_slots):
        placed = False
        while candidates:
            judge = candidates.pop(0)
            result = await create_assignment(db, judge.id, project_id, section, actor, policy=policy)
            if result.success:
                results.append(result)
                placed = True
                break
            logger.info(f"Auto-assign skipped judge {result.judge_id}: {result.message}")
        if not placed:
            results.append(_failure(no_judge_message, ErrorCode.NOT_ELIGIBLE))

    logger.info(
        f"Auto-assign project={project_id} section={section.value}: "
        f"{sum(r.success for r in results)}/{open_slots} slots filled"
    )
    return results


async def bulk_assign(
    db: AsyncSession,
    items: Iterable[CreateAssignmentRequest],
    actor: ActorContext,
) -> List[AssignmentResult]:
    """Create assignments one by one; each item gets its own result."""
    results = []
    for item in items:
        results.append(
            await create_assignment(db, item.judge_id, item.project_id, item.section, actor, notes=item.notes)
        )
    return results


async def close_project_assignments(
    db: AsyncSession,
    project_id: int,
    section: Optional[Section] = None,
    judge_id: Optional[int] = None,
) -> int:
    """
    Mark Active assignments as Completed. Flushes but does not commit, so the
    caller's surrounding change is saved in the same transaction.
    """
    query = select(JudgeProjectAssignment).where(
        JudgeProjectAssignment.project_id == project_id,
        JudgeProjectAssignment.status == AssignmentStatus.ACTIVE,
    )
    if section is not None:
        query = query.where(JudgeProjectAssignment.section == Section(section))
    if judge_id is not None:
        query = query.where(JudgeProjectAssignment.judge_id == judge_id)

    result = await db.execute(query)
    closed = 0
    for assignment in result.scalars().all():
        assignment.status = AssignmentStatus.COMPLETED
        closed += 1
    await db.flush()
    return closed


def assignments_to_dicts(assignments: Iterable[JudgeProjectAssignment]) -> List[Dict[str, Any]]:
    return [a.to_dict(include_related=True) for a in assignments]
