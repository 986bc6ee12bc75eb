"""
Tests for cohort ranking and promotion.
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from ksef.config.judging_policy import JudgingPolicy, TiePolicy
from ksef.orm.project import Project, ProjectLevel, ProjectStatus
from ksef.orm.user import UserRole
from ksef.rbac import ActorContext
from ksef.schemas.ranking import PromotionStatus
from ksef.services.promotion_service import (
    PromotionPermissionError, TerminalLevelError,
    apply_promotions, next_level, process_projects, rank_and_promote,
)
from ksef.services.scoring_service import load_project_scores
from ksef.tests.factories import create_completed_project, create_project

STRICT = JudgingPolicy(PROMOTION_TIE_POLICY=TiePolicy.STRICT)
INCLUDE_TIES = JudgingPolicy(PROMOTION_TIE_POLICY=TiePolicy.INCLUDE_TIES)
BIOLOGY = "Biology and Biotechnology"


def cohort(scores, level=ProjectLevel.COUNTY, category=BIOLOGY, status=ProjectStatus.COMPLETED):
    projects = [
        Project(
            id=i,
            reg_no=f"KSEF/2024/KIA/{i:04d}",
            category=category,
            level=level,
            status=status,
            eliminated=False,
        )
        for i in range(1, len(scores) + 1)
    ]
    return projects, {p.id: s for p, s in zip(projects, scores)}


class TestRanking:

    def test_top_four_promoted(self):
        projects, scores = cohort([70, 65, 65, 40, 30])
        statuses = rank_and_promote(projects, scores, policy=STRICT)
        assert [statuses[i] for i in range(1, 6)] == [PromotionStatus.PROMOTED] * 4 + [PromotionStatus.NOT_PROMOTED]

    def test_strict_cut_at_boundary_tie(self):
        projects, scores = cohort([70, 65, 50, 50, 50])
        statuses = rank_and_promote(projects, scores, policy=STRICT)
        promoted = [pid for pid, s in statuses.items() if s == PromotionStatus.PROMOTED]
        assert sorted(promoted) == [1, 2, 3, 4]

    def test_include_ties_at_boundary(self):
        projects, scores = cohort([70, 65, 50, 50, 50, 20])
        statuses = rank_and_promote(projects, scores, policy=INCLUDE_TIES)
        promoted = [pid for pid, s in statuses.items() if s == PromotionStatus.PROMOTED]
        assert sorted(promoted) == [1, 2, 3, 4, 5]
        assert statuses[6] == PromotionStatus.NOT_PROMOTED

    def test_small_cohort_all_promoted(self):
        projects, scores = cohort([55, 45])
        statuses = rank_and_promote(projects, scores, policy=STRICT)
        assert set(statuses.values()) == {PromotionStatus.PROMOTED}

    def test_pending_until_cohort_completes(self):
        projects, scores = cohort([70, 65, 60])
        projects[2].status = ProjectStatus.JUDGING
        del scores[3]
        statuses = rank_and_promote(projects, scores, policy=STRICT)
        assert statuses == {1: PromotionStatus.PENDING_RANKING, 2: PromotionStatus.PENDING_RANKING}

    def test_eliminated_members_are_not_reranked(self):
        projects, scores = cohort([70, 30])
        projects[1].eliminated = True
        late = Project(id=3, reg_no="KSEF/2024/KIA/0003", category=BIOLOGY, level=ProjectLevel.COUNTY,
                       status=ProjectStatus.QUALIFIED, eliminated=False)
        statuses = rank_and_promote(projects + [late], scores, policy=STRICT)
        assert statuses == {1: PromotionStatus.PENDING_RANKING, 2: PromotionStatus.NOT_PROMOTED}

    def test_cohorts_are_per_category(self):
        bio, bio_scores = cohort([70, 60, 50, 40, 30])
        chem = [
            Project(id=10 + i, reg_no=f"C{i}", category="Chemistry", level=ProjectLevel.COUNTY,
                    status=ProjectStatus.COMPLETED, eliminated=False)
            for i in range(2)
        ]
        scores = dict(bio_scores)
        scores.update({10: 10, 11: 5})
        statuses = rank_and_promote(bio + chem, scores, policy=STRICT)
        assert statuses[10] == PromotionStatus.PROMOTED
        assert statuses[11] == PromotionStatus.PROMOTED
        assert statuses[5] == PromotionStatus.NOT_PROMOTED

    def test_effective_level_view(self):
        projects, scores = cohort([70, 65, 65, 40, 30])
        views = {v.project_id: v for v in process_projects(projects, scores, policy=STRICT)}
        assert views[1].effective_level == "Regional"
        assert views[1].effective_status == "Qualified"
        assert views[5].effective_level == "County"
        assert views[5].effective_status == "Completed"
        assert projects[0].level == ProjectLevel.COUNTY

    def test_national_is_terminal(self):
        assert next_level(ProjectLevel.NATIONAL) is None
        assert next_level(ProjectLevel.SUB_COUNTY) == ProjectLevel.COUNTY
        projects, scores = cohort([70, 65], level=ProjectLevel.NATIONAL)
        views = process_projects(projects, scores, policy=STRICT)
        assert all(v.effective_level == "National" for v in views)


NATIONAL_ADMIN = ActorContext(id=1, role=UserRole.NATIONAL_ADMIN)


class TestApplyPromotions:

    async def test_promotes_and_resets_for_next_level(self, db: AsyncSession):
        projects = [
            await create_completed_project(db, final_fraction=f, level=ProjectLevel.COUNTY, category=BIOLOGY)
            for f in (1.0, 0.8, 0.6, 0.4, 0.2)
        ]
        ids = [p.id for p in projects]

        outcome = await apply_promotions(db, ProjectLevel.COUNTY, BIOLOGY, NATIONAL_ADMIN, policy=STRICT)

        assert not outcome.pending
        assert outcome.promoted_project_ids == ids[:4]
        assert outcome.not_promoted_project_ids == ids[4:]

        promoted = await db.get(Project, ids[0])
        assert promoted.level == ProjectLevel.REGIONAL
        assert promoted.status == ProjectStatus.QUALIFIED
        assert await load_project_scores(db, promoted) is None

        dropped = await db.get(Project, ids[4])
        assert dropped.level == ProjectLevel.COUNTY
        assert dropped.eliminated

    async def test_reapplying_changes_nothing(self, db: AsyncSession):
        for f in (1.0, 0.8, 0.6, 0.4, 0.2):
            await create_completed_project(db, final_fraction=f, level=ProjectLevel.COUNTY, category=BIOLOGY)

        await apply_promotions(db, ProjectLevel.COUNTY, BIOLOGY, NATIONAL_ADMIN, policy=STRICT)
        again = await apply_promotions(db, ProjectLevel.COUNTY, BIOLOGY, NATIONAL_ADMIN, policy=STRICT)

        assert again.promoted_project_ids == []
        assert again.not_promoted_project_ids == []
        assert not again.pending

    async def test_late_project_is_not_eliminated_unjudged(self, db: AsyncSession):
        """A project entering an already applied cohort waits to be judged."""
        for f in (1.0, 0.8, 0.6, 0.4, 0.2):
            await create_completed_project(db, final_fraction=f, level=ProjectLevel.COUNTY, category=BIOLOGY)
        await apply_promotions(db, ProjectLevel.COUNTY, BIOLOGY, NATIONAL_ADMIN, policy=STRICT)

        late = await create_project(db, level=ProjectLevel.COUNTY, category=BIOLOGY)
        late_id = late.id
        again = await apply_promotions(db, ProjectLevel.COUNTY, BIOLOGY, NATIONAL_ADMIN, policy=STRICT)

        assert again.pending
        assert late_id not in again.not_promoted_project_ids
        late = await db.get(Project, late_id)
        assert late.status == ProjectStatus.QUALIFIED
        assert not late.eliminated

    async def test_pending_cohort_is_untouched(self, db: AsyncSession):
        done = await create_completed_project(db, level=ProjectLevel.COUNTY, category=BIOLOGY)
        done_id = done.id
        await create_project(db, level=ProjectLevel.COUNTY, category=BIOLOGY, status=ProjectStatus.JUDGING)

        outcome = await apply_promotions(db, ProjectLevel.COUNTY, BIOLOGY, NATIONAL_ADMIN, policy=STRICT)

        assert outcome.pending
        assert (await db.get(Project, done_id)).level == ProjectLevel.COUNTY

    async def test_national_cannot_be_promoted(self, db: AsyncSession):
        with pytest.raises(TerminalLevelError):
            await apply_promotions(db, ProjectLevel.NATIONAL, BIOLOGY, NATIONAL_ADMIN)

    async def test_only_national_admins_promote(self, db: AsyncSession):
        regional = ActorContext(id=2, role=UserRole.REGIONAL_ADMIN, region="Coast")
        with pytest.raises(PromotionPermissionError):
            await apply_promotions(db, ProjectLevel.COUNTY, BIOLOGY, regional)

    async def test_empty_cohort(self, db: AsyncSession):
        outcome = await apply_promotions(db, ProjectLevel.COUNTY, "Robotics", NATIONAL_ADMIN)
        assert outcome.promoted_project_ids == []
        assert not outcome.pending
