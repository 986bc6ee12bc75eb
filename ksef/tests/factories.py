"""
Test data builders. Every builder commits, because the services under test
commit or roll back on their own.
"""
import itertools
import math
from typing import Dict, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ksef.orm.judge_assignment import JudgeProjectAssignment, Section, AssignmentStatus
from ksef.orm.project import Project, ProjectLevel, ProjectStatus
from ksef.orm.score_sheet import JudgeScoreSheet
from ksef.orm.user import User, UserRole, UserStatus
from ksef.reference.criteria import criteria_for_section

_sequence = itertools.count(1)


def sheet_scores(section: str, fraction: float = 1.0) -> Dict[str, float]:
    """Valid scores at about `fraction` of each criterion's maximum."""
    return {
        c.id: math.floor(c.max_score * fraction / c.step + 0.5) * c.step
        for c in criteria_for_section(Section(section).value)
    }


async def create_user(db: AsyncSession, role: UserRole = UserRole.JUDGE, **fields) -> User:
    n = next(_sequence)
    fields.setdefault("name", f"{role.value} {n}")
    fields.setdefault("email", f"user{n}@test.ksef.ke")
    fields.setdefault("status", UserStatus.ACTIVE)
    user = User(role=role, **fields)
    db.add(user)
    await db.commit()
    return user


async def create_judge(
    db: AsyncSession,
    categories: Iterable[str] = ("Physics",),
    sections: Iterable[str] = ("A", "BC"),
    school: str = "Mvita Teachers College",
    region: Optional[str] = "Coast",
    county: Optional[str] = "Mombasa",
    sub_county: Optional[str] = "Mvita",
    **fields,
) -> User:
    sections = list(sections)
    return await create_user(
        db,
        UserRole.JUDGE,
        school=school,
        assigned_region=region,
        assigned_county=county,
        assigned_sub_county=sub_county,
        assignments=[{"category": c, "section": s} for c in categories for s in sections],
        **fields,
    )


async def create_project(
    db: AsyncSession,
    category: str = "Physics",
    school: str = "Mombasa High",
    region: str = "Coast",
    county: str = "Mombasa",
    sub_county: str = "Mvita",
    level: ProjectLevel = ProjectLevel.SUB_COUNTY,
    status: ProjectStatus = ProjectStatus.QUALIFIED,
    **fields,
) -> Project:
    n = next(_sequence)
    fields.setdefault("title", f"Project {n}")
    fields.setdefault("reg_no", f"KSEF/2024/TST/{n:04d}")
    fields.setdefault("presenters", ["Student One"])
    project = Project(
        category=category,
        school=school,
        region=region,
        county=county,
        sub_county=sub_county,
        level=level,
        status=status,
        eliminated=False,
        **fields,
    )
    db.add(project)
    await db.commit()
    return project


async def create_assignment_row(
    db: AsyncSession,
    judge: User,
    project: Project,
    section: str,
    status: AssignmentStatus = AssignmentStatus.ACTIVE,
    level: Optional[ProjectLevel] = None,
) -> JudgeProjectAssignment:
    assignment = JudgeProjectAssignment(
        judge_id=judge.id,
        project_id=project.id,
        section=Section(section),
        level=level or project.level,
        status=status,
    )
    db.add(assignment)
    await db.commit()
    return assignment


async def create_sheet(
    db: AsyncSession,
    judge: User,
    project: Project,
    section: str,
    fraction: float = 1.0,
    level: Optional[ProjectLevel] = None,
) -> JudgeScoreSheet:
    sheet = JudgeScoreSheet(
        judge_id=judge.id,
        project_id=project.id,
        section=Section(section),
        level=level or project.level,
        scores=sheet_scores(section, fraction),
        feedback_strengths="",
        feedback_recommendations="",
    )
    db.add(sheet)
    await db.commit()
    return sheet


async def create_completed_project(
    db: AsyncSession,
    final_fraction: float = 1.0,
    **fields,
) -> Project:
    """A Completed project with two identical sheets per section at `final_fraction`."""
    project = await create_project(db, status=ProjectStatus.COMPLETED, **fields)
    for section in ("A", "A", "BC", "BC"):
        judge = await create_judge(db, categories=(project.category,), sections=(section,))
        await create_sheet(db, judge, project, section, final_fraction)
    return project
