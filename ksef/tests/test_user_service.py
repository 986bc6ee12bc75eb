"""
Tests for user profile management.
"""
import pytest
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.orm.judge_assignment import Section
from ksef.orm.user import UserRole, UserStatus
from ksef.rbac import ActorContext
from ksef.schemas.user import JudgeQualification, UserCreate
from ksef.services.user_service import (
    DuplicateEmailError, UserPermissionError, UserServiceError,
    create_user, list_judges, set_judge_assignments, set_user_status,
)
from ksef.tests.factories import create_judge

SYSTEM = ActorContext.system()
COAST = ActorContext(id=2, role=UserRole.REGIONAL_ADMIN, region="Coast")


def judge_payload(email="judge@school.ke", region="Coast", county="Mombasa", sub_county="Mvita"):
    return UserCreate(
        name="Jane Judge",
        email=email,
        role=UserRole.JUDGE,
        school="Mvita Teachers College",
        assigned_region=region,
        assigned_county=county,
        assigned_sub_county=sub_county,
        assignments=[{"category": "Physics", "section": "A"}],
    )


class TestCreateUser:

    async def test_regional_admin_creates_judge_in_region(self, db: AsyncSession):
        user = await create_user(db, judge_payload(email="Jane@School.ke"), COAST)
        assert user.id is not None
        assert user.email == "jane@school.ke"
        assert user.status == UserStatus.ACTIVE
        assert user.assignments == [{"category": "Physics", "section": "A"}]

    async def test_judge_outside_region_rejected(self, db: AsyncSession):
        payload = judge_payload(region="Central", county="Kiambu", sub_county="Kikuyu")
        with pytest.raises(UserPermissionError):
            await create_user(db, payload, COAST)

    async def test_cannot_create_higher_role(self, db: AsyncSession):
        payload = UserCreate(name="Nat Admin", email="nat@ksef.ke", role=UserRole.NATIONAL_ADMIN)
        with pytest.raises(UserPermissionError):
            await create_user(db, payload, COAST)

    async def test_duplicate_email(self, db: AsyncSession):
        await create_user(db, judge_payload(), SYSTEM)
        with pytest.raises(DuplicateEmailError):
            await create_user(db, judge_payload(), SYSTEM)

    async def test_unknown_location(self, db: AsyncSession):
        payload = judge_payload(region="Coast", county="Kiambu", sub_county="Kikuyu")
        with pytest.raises(UserServiceError):
            await create_user(db, payload, SYSTEM)

    def test_scoped_role_needs_its_fields(self):
        with pytest.raises(ValidationError):
            UserCreate(name="County Admin", email="ca@ksef.ke", role=UserRole.COUNTY_ADMIN, assigned_region="Coast")

    def test_coordinator_needs_category(self):
        with pytest.raises(ValidationError):
            UserCreate(name="Coord", email="co@ksef.ke", role=UserRole.COORDINATOR)


class TestJudgeManagement:

    async def test_qualifications_replace_and_collapse(self, db: AsyncSession):
        judge = await create_judge(db)
        qualifications = [
            JudgeQualification(category="Chemistry", section=Section.BC),
            JudgeQualification(category="Chemistry", section=Section.BC),
            JudgeQualification(category="Physics", section=Section.A),
        ]

        updated = await set_judge_assignments(db, judge.id, qualifications, COAST)

        assert updated.assignments == [
            {"category": "Chemistry", "section": "BC"},
            {"category": "Physics", "section": "A"},
        ]

    async def test_other_region_cannot_manage_judge(self, db: AsyncSession):
        judge = await create_judge(db)
        nairobi = ActorContext(id=3, role=UserRole.REGIONAL_ADMIN, region="Nairobi")
        with pytest.raises(UserPermissionError):
            await set_judge_assignments(db, judge.id, [], nairobi)

    async def test_deactivate(self, db: AsyncSession):
        judge = await create_judge(db)
        user = await set_user_status(db, judge.id, UserStatus.INACTIVE, COAST)
        assert user.status == UserStatus.INACTIVE

    async def test_list_judges_in_scope(self, db: AsyncSession):
        coast_judge = await create_judge(db)
        await create_judge(db, region="Central", county="Kiambu", sub_county="Kikuyu")

        judges = await list_judges(db, COAST)

        assert [j.id for j in judges] == [coast_judge.id]
        assert len(await list_judges(db, SYSTEM)) == 2
