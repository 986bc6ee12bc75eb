"""
Unit tests for judge eligibility filtering.
"""
from ksef.orm.project import Project, ProjectLevel, ProjectStatus
from ksef.orm.user import User, UserRole, UserStatus
from ksef.services.eligibility_service import (
    eligible_judges, ineligibility_reason, matches_geographic_scope,
    unassignable_message, widen_with_national_judges,
)


def make_judge(judge_id, category="Physics", section="A", school="Other School",
               region="Central", county="Kiambu", sub_county="Kikuyu",
               status=UserStatus.ACTIVE, role=UserRole.JUDGE):
    return User(
        id=judge_id,
        name=f"Judge {judge_id}",
        email=f"j{judge_id}@test",
        role=role,
        status=status,
        school=school,
        assigned_region=region,
        assigned_county=county,
        assigned_sub_county=sub_county,
        assignments=[{"category": category, "section": section}],
    )


def make_project(level=ProjectLevel.COUNTY, category="Physics", school="A High"):
    return Project(
        id=1,
        title="P",
        category=category,
        school=school,
        region="Central",
        county="Kiambu",
        sub_county="Kikuyu",
        level=level,
        status=ProjectStatus.QUALIFIED,
    )


class TestIndividualRules:

    def test_county_level_needs_same_county(self):
        project = make_project(ProjectLevel.COUNTY)
        assert matches_geographic_scope(make_judge(1), project)
        assert not matches_geographic_scope(make_judge(2, county="Nyeri"), project)

    def test_sub_county_level_needs_same_sub_county(self):
        project = make_project(ProjectLevel.SUB_COUNTY)
        assert matches_geographic_scope(make_judge(1), project)
        assert not matches_geographic_scope(make_judge(2, sub_county="Limuru"), project)

    def test_regional_level_needs_same_region(self):
        project = make_project(ProjectLevel.REGIONAL)
        assert matches_geographic_scope(make_judge(1, county="Nyeri", sub_county=None), project)
        assert not matches_geographic_scope(make_judge(2, region="Coast"), project)

    def test_national_level_takes_unscoped_or_national_judges(self):
        project = make_project(ProjectLevel.NATIONAL)
        assert matches_geographic_scope(make_judge(1, region=None, county=None, sub_county=None), project)
        assert matches_geographic_scope(make_judge(2, region="National", county=None, sub_county=None), project)
        assert not matches_geographic_scope(make_judge(3), project)

    def test_reasons_reported_in_rule_order(self):
        project = make_project()
        inactive = make_judge(1, status=UserStatus.INACTIVE, school="A High")
        assert ineligibility_reason(inactive, project, "A") == "Judge is not an active judge"

        wrong_section = make_judge(2, section="BC", school="A High")
        assert "not assigned to Physics section A" in ineligibility_reason(wrong_section, project, "A")

        same_school = make_judge(3, school="A High")
        assert ineligibility_reason(same_school, project, "A") == "Judge is from the project's school"

    def test_non_judge_role_is_never_eligible(self):
        admin = make_judge(1, role=UserRole.COUNTY_ADMIN)
        assert ineligibility_reason(admin, make_project(), "A") is not None


class TestEligibleJudges:

    def test_filters_and_keeps_candidate_order(self):
        project = make_project()
        candidates = [
            make_judge(5),
            make_judge(2, school="A High"),
            make_judge(3, category="Chemistry"),
            make_judge(1),
            make_judge(4, county="Nyeri"),
        ]
        pool = eligible_judges(project, "A", candidates)
        assert [j.id for j in pool] == [5, 1]

    def test_exclusion_set(self):
        project = make_project()
        pool = eligible_judges(project, "A", [make_judge(1), make_judge(2)], exclude_judge_ids={1})
        assert [j.id for j in pool] == [2]

    def test_empty_pool_is_valid(self):
        project = make_project(category="Robotics")
        assert eligible_judges(project, "A", [make_judge(1)]) == []
        message = unassignable_message(project, "A")
        assert "Robotics section A" in message
        assert "County level" in message

    def test_national_judge_at_national_level(self):
        """An unscoped Chemistry/A judge can score a National Chemistry project."""
        project = make_project(ProjectLevel.NATIONAL, category="Chemistry")
        national = make_judge(1, category="Chemistry", region=None, county=None, sub_county=None)
        assert [j.id for j in eligible_judges(project, "A", [national])] == [1]

    def test_unscoped_judge_not_eligible_below_national(self):
        """
        Below National an unscoped judge is outside every geographic scope.
        Such judges only join a County panel through the seeding fallback.
        """
        project = make_project(ProjectLevel.COUNTY, category="Chemistry")
        national = make_judge(1, category="Chemistry", region=None, county=None, sub_county=None)
        assert eligible_judges(project, "A", [national]) == []
        assert not matches_geographic_scope(national, project)
        assert ineligibility_reason(national, project, "A") is not None


class TestNationalFallback:

    def test_widens_short_pool_with_national_judges(self):
        project = make_project(ProjectLevel.COUNTY, category="Chemistry")
        local = make_judge(1, category="Chemistry")
        national = make_judge(2, category="Chemistry", region=None, county=None, sub_county=None)
        conflicted = make_judge(3, category="Chemistry", region=None, county=None, sub_county=None, school="A High")
        candidates = [local, national, conflicted]

        pool = eligible_judges(project, "A", candidates)
        widened = widen_with_national_judges(pool, project, "A", candidates)
        assert [j.id for j in widened] == [1, 2]

    def test_full_pool_is_left_alone(self):
        project = make_project()
        pool = [make_judge(1), make_judge(2)]
        national = make_judge(3, region=None, county=None, sub_county=None)
        assert widen_with_national_judges(pool, project, "A", pool + [national]) == pool
