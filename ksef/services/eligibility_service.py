"""
Judge Eligibility Service

Pure filtering of candidate judges for one (project, section). No database
access: callers load the candidate pool and pass it in.

Filters, applied in order:
1. Active judge
2. Qualified for the project's category in this section
3. Not from the project's school (hard rule, never relaxed)
4. Geographic scope matches the project's current level
5. Not in the caller's exclusion set
"""
import logging
from typing import Iterable, List, Optional, Set

from ksef.orm.judge_assignment import Section
from ksef.orm.project import Project, ProjectLevel
from ksef.orm.user import User, UserRole

logger = logging.getLogger(__name__)

MIN_PANEL_SIZE = 2


# =============================================================================
# Individual Rules
# =============================================================================

def is_active_judge(judge: User) -> bool:
    return judge.role == UserRole.JUDGE and judge.is_active


def is_qualified(judge: User, category: str, section: str) -> bool:
    return judge.has_assignment(category, section)


def has_school_conflict(judge: User, project: Project) -> bool:
    """A judge may never score a project from their own school."""
    return bool(judge.school) and judge.school == project.school


def matches_geographic_scope(judge: User, project: Project) -> bool:
    """
    Sub-County projects need a judge of that sub-county, County projects a
    judge of that county, Regional a judge of that region. National projects
    take national judges (no region or the 'National' marker).
    """
    level = project.level
    if level == ProjectLevel.SUB_COUNTY:
        return judge.assigned_sub_county == project.sub_county
    if level == ProjectLevel.COUNTY:
        return judge.assigned_county == project.county
    if level == ProjectLevel.REGIONAL:
        return judge.assigned_region == project.region
    if level == ProjectLevel.NATIONAL:
        return judge.is_national_scope
    return False


def ineligibility_reason(judge: User, project: Project, section: str) -> Optional[str]:
    """First failed rule for this judge, or None if eligible."""
    section = Section(section).value
    if not is_active_judge(judge):
        return "Judge is not an active judge"
    if not is_qualified(judge, project.category, section):
        return f"Judge is not assigned to {project.category} section {section}"
    if has_school_conflict(judge, project):
        return "Judge is from the project's school"
    if not matches_geographic_scope(judge, project):
        return f"Judge is outside the project's {project.level.value} jurisdiction"
    return None


# =============================================================================
# Pool Filtering
# =============================================================================

def eligible_judges(
    project: Project,
    section: str,
    candidates: Iterable[User],
    exclude_judge_ids: Optional[Set[int]] = None,
) -> List[User]:
    """
    Judges eligible to score this project section, in candidate order.

    An empty result is valid: the project is unassignable for that section
    until the judge roster changes.
    """
    section = Section(section).value
    excluded = exclude_judge_ids or set()
    pool = [
        judge for judge in candidates
        if ineligibility_reason(judge, project, section) is None
        and judge.id not in excluded
    ]
    if not pool:
        logger.info(
            f"No eligible judges for project {project.id} section {section} "
            f"({project.category}, {project.level.value})"
        )
    return pool


def widen_with_national_judges(
    pool: List[User],
    project: Project,
    section: str,
    candidates: Iterable[User],
) -> List[User]:
    """
    Seeding fallback: when fewer than two judges qualify locally, append
    active national judges for the category and section. The school rule
    still applies. Never used when persisting assignments.
    """
    if len(pool) >= MIN_PANEL_SIZE:
        return pool
    section = Section(section).value
    seen = {judge.id for judge in pool}
    widened = list(pool)
    for judge in candidates:
        if judge.id in seen:
            continue
        if (
            is_active_judge(judge)
            and judge.is_national_scope
            and is_qualified(judge, project.category, section)
            and not has_school_conflict(judge, project)
        ):
            widened.append(judge)
            seen.add(judge.id)
    return widened


def unassignable_message(project: Project, section: str) -> str:
    section = Section(section).value
    return (
        f"No eligible judges for {project.category} section {section} at "
        f"{project.level.value} level. Assign judges to this category and "
        f"jurisdiction, or check for school conflicts."
    )
