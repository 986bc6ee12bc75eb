"""
Tests for deterministic seeding panels and generated score sheets.
"""
from ksef.orm.project import Project, ProjectLevel, ProjectStatus
from ksef.orm.user import User, UserRole, UserStatus
from ksef.reference.criteria import PART_A_CRITERIA, criteria_for_section
from ksef.schemas.scoring import validate_score_sheet
from ksef.seed.virtual_panels import (
    RECOMMENDATIONS_OPTIONS, STRENGTHS_OPTIONS,
    generate_feedback, generate_scores_for_criteria, generate_sheet_scores,
    pick_two_unique_judges, stable_hash, virtual_panel,
)


def judge(judge_id, section, sub_county="Mvita", region="Coast", county="Mombasa"):
    return User(
        id=judge_id,
        name=f"Judge {judge_id}",
        email=f"j{judge_id}@test",
        role=UserRole.JUDGE,
        status=UserStatus.ACTIVE,
        school="Teachers College",
        assigned_region=region,
        assigned_county=county,
        assigned_sub_county=sub_county,
        assignments=[{"category": "Physics", "section": section}],
    )


def project():
    return Project(
        id=7,
        title="P",
        category="Physics",
        school="Mombasa High",
        region="Coast",
        county="Mombasa",
        sub_county="Mvita",
        level=ProjectLevel.SUB_COUNTY,
        status=ProjectStatus.QUALIFIED,
    )


class TestStableHash:

    def test_matches_31_multiplier_string_hash(self):
        assert stable_hash("") == 0
        assert stable_hash("abc") == 96354
        assert stable_hash("hello") == 99162322

    def test_wraps_to_32_bits_and_is_non_negative(self):
        value = stable_hash("a fairly long string that overflows 32 bits")
        assert 0 <= value <= 2 ** 31


class TestPanels:

    def test_pick_two_is_distinct_and_repeatable(self):
        pool = [judge(i, "A") for i in range(1, 6)]
        first = pick_two_unique_judges(pool, 7, "A")
        second = pick_two_unique_judges(pool, 7, "A")
        assert first[0].id != first[1].id
        assert [j.id for j in first] == [j.id for j in second]

    def test_pick_two_needs_two_judges(self):
        assert pick_two_unique_judges([judge(1, "A")], 7, "A") is None

    def test_virtual_panel_covers_both_sections(self):
        judges = [judge(1, "A"), judge(2, "A"), judge(3, "BC"), judge(4, "BC")]
        panel = virtual_panel(project(), judges)
        assert {j.id for j in panel["A"]} == {1, 2}
        assert {j.id for j in panel["BC"]} == {3, 4}

    def test_virtual_panel_uses_national_fallback(self):
        judges = [
            judge(1, "A"),
            judge(2, "A", region=None, county=None, sub_county=None),
            judge(3, "BC"),
            judge(4, "BC"),
        ]
        panel = virtual_panel(project(), judges)
        assert {j.id for j in panel["A"]} == {1, 2}

    def test_virtual_panel_none_when_a_section_is_short(self):
        judges = [judge(1, "A"), judge(2, "A"), judge(3, "BC")]
        assert virtual_panel(project(), judges) is None


class TestGeneratedScores:

    def test_scores_respect_step_and_maximum(self):
        for seed in (0, 1, 12345, 987654321):
            scores = generate_scores_for_criteria(PART_A_CRITERIA, seed)
            for criterion in PART_A_CRITERIA:
                value = scores[criterion.id]
                assert 0 <= value <= criterion.max_score
                assert criterion.is_on_step(value)

    def test_generated_sheets_pass_validation(self):
        for judge_id in range(1, 6):
            for section in ("A", "BC"):
                scores = generate_sheet_scores(11, judge_id, section)
                assert set(scores) == {c.id for c in criteria_for_section(section)}
                validate_score_sheet(section, scores)

    def test_generation_is_deterministic(self):
        assert generate_sheet_scores(3, 4, "BC") == generate_sheet_scores(3, 4, "BC")

    def test_feedback_rotates_through_options(self):
        assert generate_feedback(0) == (STRENGTHS_OPTIONS[0], RECOMMENDATIONS_OPTIONS[1])
        assert generate_feedback(9) == (STRENGTHS_OPTIONS[4], RECOMMENDATIONS_OPTIONS[0])
