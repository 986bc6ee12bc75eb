"""
Integration tests for persisted judge assignment.

Tests for:
- Successful assignment and duplicate prevention
- Race safety (partial unique index backs the pre-insert check)
- School conflict and eligibility failures
- Section capacity, including judges who have already scored
- Soft delete to Reassigned
- Auto-assignment ordering and statistics
"""
import pytest
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.errors import ErrorCode
from ksef.orm.judge_assignment import JudgeProjectAssignment, AssignmentStatus
from ksef.orm.project import ProjectStatus
from ksef.orm.user import User, UserRole
from ksef.rbac import ActorContext
from ksef.schemas.scoring import ScoreSheetSubmission
from ksef.services import judge_assignment_service as service
from ksef.services.judge_assignment_service import (
    AssignmentScopeError, auto_assign_judges, create_assignment,
    get_assignment_stats, get_available_judges, get_project_assignments, remove_assignment,
)
from ksef.services.scoring_service import submit_score_sheet
from ksef.tests.factories import create_assignment_row, create_judge, create_project, sheet_scores

SYSTEM = ActorContext.system()


async def count_active(db: AsyncSession, project_id: int) -> int:
    result = await db.execute(
        select(func.count(JudgeProjectAssignment.id)).where(
            JudgeProjectAssignment.project_id == project_id,
            JudgeProjectAssignment.status == AssignmentStatus.ACTIVE,
        )
    )
    return result.scalar()


class TestCreateAssignment:

    async def test_assigns_eligible_judge(self, db: AsyncSession):
        judge = await create_judge(db)
        project = await create_project(db)

        result = await create_assignment(db, judge.id, project.id, "A", SYSTEM)

        assert result.success
        assert result.assignment_id is not None
        row = await db.get(JudgeProjectAssignment, result.assignment_id)
        assert row.status == AssignmentStatus.ACTIVE
        assert row.level == project.level

    async def test_duplicate_is_rejected(self, db: AsyncSession):
        judge = await create_judge(db)
        project = await create_project(db)

        first = await create_assignment(db, judge.id, project.id, "A", SYSTEM)
        second = await create_assignment(db, judge.id, project.id, "A", SYSTEM)

        assert first.success
        assert not second.success
        assert second.code == ErrorCode.DUPLICATE_ASSIGNMENT
        assert await count_active(db, project.id) == 1

    async def test_race_lost_to_unique_index(self, db: AsyncSession, monkeypatch):
        """With the pre-checks blind, the partial unique index still stops the second insert."""
        judge = await create_judge(db)
        project = await create_project(db)
        judge_id, project_id = judge.id, project.id

        async def no_existing(*args, **kwargs):
            return None

        async def nobody_on_section(*args, **kwargs):
            return set()

        monkeypatch.setattr(service, "_find_active_assignment", no_existing)
        monkeypatch.setattr(service, "_judges_already_on_section", nobody_on_section)

        first = await create_assignment(db, judge_id, project_id, "A", SYSTEM)
        second = await create_assignment(db, judge_id, project_id, "A", SYSTEM)

        assert first.success
        assert not second.success
        assert second.code == ErrorCode.DUPLICATE_ASSIGNMENT
        assert await count_active(db, project_id) == 1

    async def test_school_conflict_is_hard_rule(self, db: AsyncSession):
        judge = await create_judge(db, school="Mombasa High")
        project = await create_project(db, school="Mombasa High")

        result = await create_assignment(db, judge.id, project.id, "A", SYSTEM)

        assert not result.success
        assert result.code == ErrorCode.CONFLICT_OF_INTEREST

    async def test_out_of_scope_judge_not_eligible(self, db: AsyncSession):
        judge = await create_judge(db, sub_county="Kisauni")
        project = await create_project(db)

        result = await create_assignment(db, judge.id, project.id, "A", SYSTEM)

        assert not result.success
        assert result.code == ErrorCode.NOT_ELIGIBLE

    async def test_section_capacity(self, db: AsyncSession):
        project = await create_project(db)
        judges = [await create_judge(db) for _ in range(3)]

        results = [await create_assignment(db, j.id, project.id, "BC", SYSTEM) for j in judges]

        assert [r.success for r in results] == [True, True, False]
        assert results[2].code == ErrorCode.SECTION_FULL

    async def test_completed_project_takes_no_judges(self, db: AsyncSession):
        judge = await create_judge(db)
        project = await create_project(db, status=ProjectStatus.COMPLETED)

        result = await create_assignment(db, judge.id, project.id, "A", SYSTEM)

        assert result.code == ErrorCode.INVALID_STATE

    async def test_admin_outside_scope(self, db: AsyncSession):
        judge = await create_judge(db)
        project = await create_project(db)
        nairobi_admin = ActorContext(id=99, role=UserRole.REGIONAL_ADMIN, region="Nairobi")

        result = await create_assignment(db, judge.id, project.id, "A", nairobi_admin)

        assert result.code == ErrorCode.SCOPE_VIOLATION

    async def test_missing_judge(self, db: AsyncSession):
        project = await create_project(db)
        result = await create_assignment(db, 4040, project.id, "A", SYSTEM)
        assert result.code == ErrorCode.USER_NOT_FOUND


class TestRemoveAssignment:

    async def test_soft_delete_frees_slot(self, db: AsyncSession):
        judge = await create_judge(db)
        project = await create_project(db)
        judge_id, project_id = judge.id, project.id
        created = await create_assignment(db, judge_id, project_id, "A", SYSTEM)

        removed = await remove_assignment(db, created.assignment_id, SYSTEM)

        assert removed.success
        row = await db.get(JudgeProjectAssignment, created.assignment_id)
        assert row.status == AssignmentStatus.REASSIGNED
        assert await get_project_assignments(db, project_id) == []

        again = await create_assignment(db, judge_id, project_id, "A", SYSTEM)
        assert again.success

    async def test_remove_twice_reports_state(self, db: AsyncSession):
        judge = await create_judge(db)
        project = await create_project(db)
        created = await create_assignment(db, judge.id, project.id, "A", SYSTEM)

        await remove_assignment(db, created.assignment_id, SYSTEM)
        second = await remove_assignment(db, created.assignment_id, SYSTEM)

        assert not second.success
        assert second.code == ErrorCode.INVALID_STATE

    async def test_remove_outside_scope_raises(self, db: AsyncSession):
        judge = await create_judge(db)
        project = await create_project(db)
        created = await create_assignment(db, judge.id, project.id, "A", SYSTEM)
        outsider = ActorContext(id=5, role=UserRole.COUNTY_ADMIN, region="Central", county="Kiambu")

        with pytest.raises(AssignmentScopeError):
            await remove_assignment(db, created.assignment_id, outsider)


class TestAutoAssign:

    async def test_available_judges_sorted_by_load_then_id(self, db: AsyncSession):
        busy = await create_judge(db)
        free = await create_judge(db)
        other_project = await create_project(db)
        project = await create_project(db)
        await create_assignment_row(db, busy, other_project, "A")

        pool = await get_available_judges(db, project.id, "A")

        assert [j.id for j in pool] == [free.id, busy.id]

    async def test_fills_open_slots(self, db: AsyncSession):
        project = await create_project(db)
        judges = [await create_judge(db) for _ in range(3)]

        results = await auto_assign_judges(db, project.id, "A", SYSTEM)

        assert len(results) == 2
        assert all(r.success for r in results)
        assert {r.judge_id for r in results} == {judges[0].id, judges[1].id}
        assert await auto_assign_judges(db, project.id, "A", SYSTEM) == []

    async def test_reports_unfilled_slot(self, db: AsyncSession):
        project = await create_project(db)
        await create_judge(db)

        results = await auto_assign_judges(db, project.id, "A", SYSTEM)

        assert [r.success for r in results] == [True, False]
        assert results[1].code == ErrorCode.NOT_ELIGIBLE
        assert "No eligible judges for Physics section A" in results[1].message

    async def test_stats(self, db: AsyncSession):
        project = await create_project(db)
        judges = [await create_judge(db) for _ in range(2)]
        await create_assignment_row(db, judges[0], project, "A")
        await create_assignment_row(db, judges[1], project, "BC", status=AssignmentStatus.COMPLETED)

        stats = await get_assignment_stats(db)

        assert stats.total == 2
        assert stats.active == 1
        assert stats.completed == 1
        assert stats.by_section == {"A": 1, "BC": 1}
        assert stats.judges_with_active_assignments == 1


class TestSectionCapacityAfterScoring:
    """A judge who has submitted still holds their slot on the section."""

    async def submit(self, db: AsyncSession, judge_id: int, project_id: int, section: str):
        judge = await db.get(User, judge_id)
        submission = ScoreSheetSubmission(section=section, scores=sheet_scores(section))
        await submit_score_sheet(db, ActorContext.from_user(judge), project_id, submission)

    async def test_scored_judge_keeps_slot(self, db: AsyncSession):
        project = await create_project(db)
        judges = [await create_judge(db, sections=("A",)) for _ in range(3)]
        project_id = project.id
        judge_ids = [j.id for j in judges]
        for judge_id in judge_ids[:2]:
            assert (await create_assignment(db, judge_id, project_id, "A", SYSTEM)).success

        await self.submit(db, judge_ids[0], project_id, "A")
        third = await create_assignment(db, judge_ids[2], project_id, "A", SYSTEM)

        assert not third.success
        assert third.code == ErrorCode.SECTION_FULL
        assert await auto_assign_judges(db, project_id, "A", SYSTEM) == []

    async def test_auto_assign_fills_only_the_remaining_slot(self, db: AsyncSession):
        project = await create_project(db)
        judges = [await create_judge(db, sections=("A",)) for _ in range(3)]
        project_id = project.id
        judge_ids = [j.id for j in judges]
        assert (await create_assignment(db, judge_ids[0], project_id, "A", SYSTEM)).success
        await self.submit(db, judge_ids[0], project_id, "A")

        results = await auto_assign_judges(db, project_id, "A", SYSTEM)

        assert len(results) == 1
        assert results[0].success
        assert results[0].judge_id == judge_ids[1]
