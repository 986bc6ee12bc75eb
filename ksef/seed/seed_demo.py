"""
Demo data seeding.

Creates administrators, judges, coordinators, patrons and one Sub-County
project per mapped school and demo category, then drives every project
through judging: virtual panels become persisted assignments and generated
sheets are submitted through the scoring service, exactly as live judges
would.
"""
import logging
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.orm.judge_assignment import Section
from ksef.orm.project import Project, ProjectStatus
from ksef.orm.user import User, UserRole, UserStatus, NATIONAL_SCOPE
from ksef.rbac import ActorContext
from ksef.reference.geography import is_valid_location
from ksef.reference.schools import SCHOOL_MAPPINGS
from ksef.schemas.project import ProjectCreate
from ksef.schemas.scoring import ScoreSheetSubmission
from ksef.seed.virtual_panels import virtual_panel, generate_sheet_scores, generate_feedback, judge_seed
from ksef.services.judge_assignment_service import create_assignment
from ksef.services.project_service import register_project
from ksef.services.scoring_service import submit_score_sheet, resolve_conflict

logger = logging.getLogger(__name__)

DEMO_CATEGORIES = ["Physics", "Computer Science"]
DEMO_EMAIL_DOMAIN = "demo.ksef.ke"
JUDGES_PER_SECTION_PER_SUB_COUNTY = 3

DEMO_SCHOOLS = [
    m for m in SCHOOL_MAPPINGS if is_valid_location(m.region, m.county, m.sub_county)
]


def _email(handle: str) -> str:
    return f"{handle}@{DEMO_EMAIL_DOMAIN}"


def _slug(text: str) -> str:
    return "".join(ch for ch in text.lower() if ch.isalnum())


async def demo_already_seeded(db: AsyncSession) -> bool:
    result = await db.execute(select(User.id).where(User.email == _email("superadmin")))
    return result.scalar_one_or_none() is not None


def _demo_users() -> List[User]:
    qualifications = {
        section: [{"category": c, "section": section.value} for c in DEMO_CATEGORIES]
        for section in Section
    }
    users = [
        User(name="Demo Super Admin", email=_email("superadmin"), role=UserRole.SUPERADMIN),
        User(name="Demo National Admin", email=_email("national"), role=UserRole.NATIONAL_ADMIN),
    ]

    seen_regions, seen_sub_counties = set(), set()
    for mapping in DEMO_SCHOOLS:
        if mapping.region not in seen_regions:
            seen_regions.add(mapping.region)
            users.append(User(
                name=f"{mapping.region} Regional Admin",
                email=_email(f"regional.{_slug(mapping.region)}"),
                role=UserRole.REGIONAL_ADMIN,
                assigned_region=mapping.region,
            ))
        if mapping.sub_county in seen_sub_counties:
            continue
        seen_sub_counties.add(mapping.sub_county)
        for section in Section:
            for n in range(1, JUDGES_PER_SECTION_PER_SUB_COUNTY + 1):
                users.append(User(
                    name=f"{mapping.sub_county} Judge {section.value}{n}",
                    email=_email(f"judge.{_slug(mapping.sub_county)}.{section.value.lower()}{n}"),
                    role=UserRole.JUDGE,
                    school=f"{mapping.sub_county} Teachers College",
                    assigned_region=mapping.region,
                    assigned_county=mapping.county,
                    assigned_sub_county=mapping.sub_county,
                    assignments=qualifications[section],
                ))

    for section in Section:
        for n in (1, 2):
            users.append(User(
                name=f"National Judge {section.value}{n}",
                email=_email(f"judge.national.{section.value.lower()}{n}"),
                role=UserRole.JUDGE,
                school="KSEF Secretariat",
                assigned_region=NATIONAL_SCOPE,
                assignments=qualifications[section],
            ))

    for category in DEMO_CATEGORIES:
        users.append(User(
            name=f"{category} Coordinator",
            email=_email(f"coordinator.{_slug(category)}"),
            role=UserRole.COORDINATOR,
            coordinator_category=category,
        ))

    for mapping in DEMO_SCHOOLS:
        users.append(User(
            name=f"{mapping.school} Patron",
            email=_email(f"patron.{_slug(mapping.school)}"),
            role=UserRole.PATRON,
            school=mapping.school,
            assigned_region=mapping.region,
            assigned_county=mapping.county,
            assigned_sub_county=mapping.sub_county,
        ))
    return users


async def seed_demo(db: AsyncSession) -> Dict[str, Any]:
    """Seed the demo dataset. Does nothing if it is already present."""
    if await demo_already_seeded(db):
        logger.info("Demo data already present; skipping")
        return {"skipped": True}

    users = _demo_users()
    for user in users:
        user.status = UserStatus.ACTIVE
        db.add(user)
    await db.commit()
    logger.info(f"Seeded {len(users)} demo users")

    judges = [u for u in users if u.role == UserRole.JUDGE]
    patrons = {u.school: u for u in users if u.role == UserRole.PATRON}
    system = ActorContext.system()

    projects: List[Project] = []
    for mapping in DEMO_SCHOOLS:
        patron = ActorContext.from_user(patrons[mapping.school])
        for category in DEMO_CATEGORIES:
            data = ProjectCreate(
                title=f"{category} study from {mapping.school}",
                category=category,
                presenters=[f"{mapping.school} Student 1", f"{mapping.school} Student 2"],
                school=mapping.school,
                region=mapping.region,
                county=mapping.county,
                sub_county=mapping.sub_county,
                zone=mapping.zone,
            )
            projects.append(await register_project(db, data, patron))
    logger.info(f"Seeded {len(projects)} demo projects")

    sheets = 0
    unjudged = 0
    for project in projects:
        panel = virtual_panel(project, judges)
        if panel is None:
            unjudged += 1
            logger.warning(f"No virtual panel for project {project.id}; left Qualified")
            continue
        for section, pair in panel.items():
            for judge in pair:
                result = await create_assignment(db, judge.id, project.id, section, system)
                if not result.success:
                    logger.warning(f"Demo assignment failed for project {project.id}: {result.message}")
                    continue
                strengths, recommendations = generate_feedback(judge_seed(project.id, judge.id))
                await submit_score_sheet(
                    db,
                    ActorContext.from_user(judge),
                    project.id,
                    ScoreSheetSubmission(
                        section=section,
                        scores=generate_sheet_scores(project.id, judge.id, section),
                        feedback_strengths=strengths,
                        feedback_recommendations=recommendations,
                    ),
                )
                sheets += 1
        if project.status == ProjectStatus.CONFLICT:
            await resolve_conflict(db, project.id, system)

    summary = {
        "skipped": False,
        "users": len(users),
        "projects": len(projects),
        "score_sheets": sheets,
        "unjudged_projects": unjudged,
    }
    logger.info(f"Demo seeding complete: {summary}")
    return summary
