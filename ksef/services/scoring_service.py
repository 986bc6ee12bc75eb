"""
Scoring Service

Turns judges' score sheets into project totals and drives the project status
through judging.

Aggregation rule (per competition level):
    total_score_a = mean of the two Section A judges' Part A totals
    total_score_b = mean of the two Section BC judges' Part B totals
    total_score_c = mean of the two Section BC judges' Part C totals
    final_score   = total_score_a + total_score_b + total_score_c   (max 80)

A project without two A sheets and two BC sheets at its current level has no
aggregate (None), which is a normal state rather than an error.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.config.judging_policy import JudgingPolicy, judging_policy
from ksef.errors import ErrorCode, ServiceError
from ksef.orm.judge_assignment import JudgeProjectAssignment, Section, AssignmentStatus
from ksef.orm.project import Project, ProjectStatus, ConflictType
from ksef.orm.score_sheet import JudgeScoreSheet
from ksef.orm.user import User, UserRole, UserStatus
from ksef.rbac import ActorContext
from ksef.reference.criteria import CRITERIA_BY_PART, SECTION_PARTS, section_max
from ksef.schemas.ranking import DetailedProjectScores, IndividualJudgeScore
from ksef.schemas.scoring import ScoreSheetSubmission
from ksef.services.judge_assignment_service import close_project_assignments
from ksef.state_machines.project_status import ProjectStatusMachine, InvalidTransitionError

logger = logging.getLogger(__name__)

_PART_IDS: Dict[str, set] = {
    part: {c.id for c in criteria} for part, criteria in CRITERIA_BY_PART.items()
}

SCORABLE_STATUSES = {ProjectStatus.QUALIFIED, ProjectStatus.JUDGING}


# =============================================================================
# Custom Exceptions
# =============================================================================

class ScoringError(ServiceError):
    """Base exception for scoring errors."""
    def __init__(self, message: str, code: str = "SCORING_ERROR"):
        super().__init__(message, code)


class ProjectNotFoundError(ScoringError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, project_id: int):
        super().__init__(f"Project {project_id} not found", ErrorCode.PROJECT_NOT_FOUND)


class NotAssignedError(ScoringError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, judge_id: Optional[int], project_id: int, section: str):
        super().__init__(
            f"Judge {judge_id} has no active assignment for project {project_id} section {section}",
            ErrorCode.NOT_ASSIGNED,
        )


class DuplicateScoreSheetError(ScoringError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, project_id: int, section: str):
        super().__init__(
            f"A score sheet for project {project_id} section {section} was already submitted",
            ErrorCode.DUPLICATE_SCORE_SHEET,
        )


class ScoringStateError(ScoringError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.INVALID_STATE)


class ScoringPermissionError(ScoringError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.FORBIDDEN)


# =============================================================================
# Pure Aggregation
# =============================================================================

def part_total(part: str, scores: Dict[str, float]) -> float:
    ids = _PART_IDS[part]
    return sum(value for criterion_id, value in scores.items() if criterion_id in ids)


def section_total(section: str, scores: Dict[str, float]) -> float:
    """Total of all parts a section's judge fills in (A: 30 max, BC: 50 max)."""
    return sum(part_total(part, scores) for part in SECTION_PARTS[Section(section).value])


def _sheets_by_section(sheets: Iterable[JudgeScoreSheet], level) -> Dict[Section, List[JudgeScoreSheet]]:
    grouped: Dict[Section, List[JudgeScoreSheet]] = defaultdict(list)
    for sheet in sorted(sheets, key=lambda s: s.id or 0):
        if sheet.level == level:
            grouped[sheet.section].append(sheet)
    return grouped


def has_complete_sheets(project: Project, sheets: Iterable[JudgeScoreSheet], required: int = 2) -> bool:
    grouped = _sheets_by_section(sheets, project.level)
    return all(len(grouped.get(section, [])) >= required for section in Section)


def _judge_name(sheet: JudgeScoreSheet) -> str:
    if sheet.judge is not None:
        return sheet.judge.name
    return f"Judge {sheet.judge_id}"


def individual_score(sheet: JudgeScoreSheet) -> IndividualJudgeScore:
    scores = dict(sheet.scores or {})
    entry = IndividualJudgeScore(
        judge_id=sheet.judge_id,
        judge_name=_judge_name(sheet),
        section=sheet.section.value,
        scores=scores,
        feedback_strengths=sheet.feedback_strengths or "",
        feedback_recommendations=sheet.feedback_recommendations or "",
    )
    if sheet.section == Section.A:
        entry.total_score_a = part_total("A", scores)
    else:
        entry.total_score_b = part_total("B", scores)
        entry.total_score_c = part_total("C", scores)
    return entry


def aggregate_scores(
    project: Project,
    sheets: Sequence[JudgeScoreSheet],
    judges_per_section: int = 2,
) -> Optional[DetailedProjectScores]:
    """
    Aggregate a Completed project's sheets at its current level.

    Returns None when the project is not Completed or either section has
    fewer than judges_per_section sheets.
    """
    if project.status != ProjectStatus.COMPLETED:
        return None

    grouped = _sheets_by_section(sheets, project.level)
    sheets_a = grouped.get(Section.A, [])[:judges_per_section]
    sheets_bc = grouped.get(Section.BC, [])[:judges_per_section]
    if len(sheets_a) < judges_per_section or len(sheets_bc) < judges_per_section:
        return None

    individual = [individual_score(s) for s in sheets_a + sheets_bc]
    avg_a = sum(s.total_score_a for s in individual[:judges_per_section]) / judges_per_section
    avg_b = sum(s.total_score_b for s in individual[judges_per_section:]) / judges_per_section
    avg_c = sum(s.total_score_c for s in individual[judges_per_section:]) / judges_per_section

    return DetailedProjectScores(
        project_id=project.id,
        total_score_a=avg_a,
        total_score_b=avg_b,
        total_score_c=avg_c,
        final_score=avg_a + avg_b + avg_c,
        judge_scores=individual,
    )


def detect_score_discrepancy(
    sheets: Sequence[JudgeScoreSheet],
    level,
    threshold: float,
) -> List[str]:
    """
    Sections whose two judges disagree by more than threshold x section max.
    Sections with fewer than two sheets are never discrepant.
    """
    discrepant = []
    grouped = _sheets_by_section(sheets, level)
    for section in Section:
        pair = grouped.get(section, [])[:2]
        if len(pair) < 2:
            continue
        gap = abs(
            section_total(section, pair[0].scores or {})
            - section_total(section, pair[1].scores or {})
        )
        if gap > threshold * section_max(section.value):
            discrepant.append(section.value)
    return discrepant


# =============================================================================
# Loading
# =============================================================================

async def load_project_sheets(db: AsyncSession, project: Project) -> List[JudgeScoreSheet]:
    """Sheets recorded at the project's current level, oldest first."""
    result = await db.execute(
        select(JudgeScoreSheet)
        .where(
            JudgeScoreSheet.project_id == project.id,
            JudgeScoreSheet.level == project.level,
        )
        .order_by(JudgeScoreSheet.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def load_project_scores(
    db: AsyncSession,
    project: Project,
    policy: Optional[JudgingPolicy] = None,
) -> Optional[DetailedProjectScores]:
    policy = policy or judging_policy
    sheets = await load_project_sheets(db, project)
    return aggregate_scores(project, sheets, policy.JUDGES_PER_SECTION)


async def load_scores_for_projects(
    db: AsyncSession,
    projects: Sequence[Project],
    policy: Optional[JudgingPolicy] = None,
) -> Dict[int, DetailedProjectScores]:
    """Aggregates for every project that has one, keyed by project id."""
    policy = policy or judging_policy
    if not projects:
        return {}

    result = await db.execute(
        select(JudgeScoreSheet)
        .where(JudgeScoreSheet.project_id.in_([p.id for p in projects]))
        .order_by(JudgeScoreSheet.id)
        .execution_options(populate_existing=True)
    )
    by_project: Dict[int, List[JudgeScoreSheet]] = defaultdict(list)
    for sheet in result.scalars().all():
        by_project[sheet.project_id].append(sheet)

    scores = {}
    for project in projects:
        aggregate = aggregate_scores(project, by_project.get(project.id, []), policy.JUDGES_PER_SECTION)
        if aggregate is not None:
            scores[project.id] = aggregate
    return scores


async def find_category_coordinator(db: AsyncSession, category: str) -> Optional[User]:
    """Active coordinator for the category with the lowest id."""
    result = await db.execute(
        select(User)
        .where(
            User.role == UserRole.COORDINATOR,
            User.status == UserStatus.ACTIVE,
            User.coordinator_category == category,
        )
        .order_by(User.id)
        .limit(1)
    )
    return result.scalars().first()


async def _get_project(db: AsyncSession, project_id: int) -> Project:
    project = await db.get(Project, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


# =============================================================================
# Commands
# =============================================================================

async def submit_score_sheet(
    db: AsyncSession,
    actor: ActorContext,
    project_id: int,
    submission: ScoreSheetSubmission,
    policy: Optional[JudgingPolicy] = None,
) -> JudgeScoreSheet:
    """
    Record a judge's sheet for one section of a project.

    The judge must hold an Active assignment for the section. Saving the sheet
    closes that assignment, moves a Qualified project to Judging, and once
    every section has its sheets either completes the project or flags a
    score discrepancy for the category coordinator.
    """
    policy = policy or judging_policy
    section = submission.section
    project = await _get_project(db, project_id)

    if actor.role != UserRole.JUDGE:
        raise ScoringPermissionError("Only judges can submit score sheets")
    if project.status not in SCORABLE_STATUSES:
        raise ScoringStateError(f"Project {project_id} is {project.status.value} and no longer takes scores")

    assignment = await db.execute(
        select(JudgeProjectAssignment.id).where(
            JudgeProjectAssignment.judge_id == actor.id,
            JudgeProjectAssignment.project_id == project_id,
            JudgeProjectAssignment.section == section,
            JudgeProjectAssignment.status == AssignmentStatus.ACTIVE,
        )
    )
    if assignment.scalar_one_or_none() is None:
        raise NotAssignedError(actor.id, project_id, section.value)

    scores = submission.validated_scores()

    existing = await db.execute(
        select(JudgeScoreSheet.id).where(
            JudgeScoreSheet.judge_id == actor.id,
            JudgeScoreSheet.project_id == project_id,
            JudgeScoreSheet.section == section,
            JudgeScoreSheet.level == project.level,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise DuplicateScoreSheetError(project_id, section.value)

    sheet = JudgeScoreSheet(
        judge_id=actor.id,
        project_id=project_id,
        section=section,
        level=project.level,
        scores=scores,
        feedback_strengths=submission.feedback_strengths,
        feedback_recommendations=submission.feedback_recommendations,
    )
    db.add(sheet)

    try:
        await close_project_assignments(db, project_id, section=section, judge_id=actor.id)

        machine = ProjectStatusMachine(project)
        machine.begin_judging()

        sheets = await load_project_sheets(db, project)
        if has_complete_sheets(project, sheets, policy.JUDGES_PER_SECTION):
            discrepant = detect_score_discrepancy(sheets, project.level, policy.SCORE_DISCREPANCY_THRESHOLD)
            if discrepant:
                coordinator = await find_category_coordinator(db, project.category)
                machine.raise_conflict(
                    ConflictType.SCORE_DISCREPANCY,
                    coordinator.id if coordinator else None,
                )
                logger.warning(
                    f"Score discrepancy on project {project_id} sections {discrepant}; "
                    f"routed to coordinator {coordinator.id if coordinator else None}"
                )
            else:
                machine.complete()

        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateScoreSheetError(project_id, section.value)

    logger.info(
        f"Score sheet {sheet.id} saved: judge={actor.id} project={project_id} "
        f"section={section.value} status={project.status.value}"
    )
    return sheet


async def begin_judging(db: AsyncSession, project_id: int, actor: ActorContext) -> Project:
    """Explicitly open judging on a Qualified project."""
    project = await _get_project(db, project_id)
    if not actor.is_admin or not actor.covers(project.region, project.county, project.sub_county):
        raise ScoringPermissionError("Project is outside your jurisdiction")
    try:
        ProjectStatusMachine(project).begin_judging()
    except InvalidTransitionError as e:
        raise ScoringStateError(e.message)
    await db.commit()
    return project


async def resolve_conflict(db: AsyncSession, project_id: int, actor: ActorContext) -> Project:
    """
    Close a pending conflict. Allowed for the coordinator it was routed to,
    or an administrator whose scope covers the project.
    """
    project = await _get_project(db, project_id)

    is_assigned_coordinator = (
        actor.role == UserRole.COORDINATOR and actor.id == project.conflict_coordinator_id
    )
    is_scoped_admin = actor.is_admin and actor.covers(project.region, project.county, project.sub_county)
    if not (is_assigned_coordinator or is_scoped_admin):
        raise ScoringPermissionError("Only the assigned coordinator or an administrator can resolve this conflict")

    try:
        ProjectStatusMachine(project).resolve_conflict()
    except InvalidTransitionError as e:
        raise ScoringStateError(e.message)

    await db.commit()
    logger.info(f"Conflict on project {project_id} resolved by user {actor.id}")
    return project
