"""
Tests for judging progress views.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.orm.judge_assignment import AssignmentStatus
from ksef.orm.project import ProjectLevel, ProjectStatus
from ksef.orm.user import UserRole
from ksef.rbac import ActorContext
from ksef.services.progress_service import get_aggregated_judging_status, get_project_progress
from ksef.tests.factories import create_assignment_row, create_judge, create_project, create_sheet


class TestProjectProgress:

    async def test_counts_sheets_and_lists_slots(self, db: AsyncSession):
        project = await create_project(db, status=ProjectStatus.JUDGING)
        scored = await create_judge(db, name="Scored Judge")
        waiting = await create_judge(db, name="Waiting Judge")
        replaced = await create_judge(db)
        await create_assignment_row(db, scored, project, "A", status=AssignmentStatus.COMPLETED)
        await create_assignment_row(db, waiting, project, "A")
        await create_assignment_row(db, replaced, project, "BC", status=AssignmentStatus.REASSIGNED)
        await create_sheet(db, scored, project, "A")

        progress = await get_project_progress(db, project)

        assert progress.judges_scored == 1
        assert progress.judges_required == 4
        assert [(s.judge_name, s.has_judged) for s in progress.section_a] == [
            ("Scored Judge", True),
            ("Waiting Judge", False),
        ]
        assert progress.section_bc == []

    async def test_earlier_level_work_is_ignored(self, db: AsyncSession):
        project = await create_project(db, level=ProjectLevel.COUNTY)
        judge = await create_judge(db)
        await create_assignment_row(db, judge, project, "A", level=ProjectLevel.SUB_COUNTY,
                                    status=AssignmentStatus.COMPLETED)
        await create_sheet(db, judge, project, "A", level=ProjectLevel.SUB_COUNTY)

        progress = await get_project_progress(db, project)

        assert progress.judges_scored == 0
        assert progress.section_a == []


class TestAggregatedStatus:

    async def test_grouped_by_category_within_scope(self, db: AsyncSession):
        await create_project(db, category="Physics", status=ProjectStatus.COMPLETED)
        await create_project(db, category="Physics")
        await create_project(db, category="Chemistry")
        await create_project(db, category="Physics", region="Central", county="Kiambu",
                             sub_county="Kikuyu", school="Alliance High School")
        coast = ActorContext(id=1, role=UserRole.REGIONAL_ADMIN, region="Coast")

        status = await get_aggregated_judging_status(db, ProjectLevel.SUB_COUNTY, coast)

        assert set(status) == {"Physics", "Chemistry"}
        assert status["Physics"].total_projects == 2
        assert status["Physics"].completed_projects == 1
        assert len(status["Physics"].projects) == 2

    async def test_empty_level(self, db: AsyncSession):
        assert await get_aggregated_judging_status(db, ProjectLevel.NATIONAL, ActorContext.system()) == {}
