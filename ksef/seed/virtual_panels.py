"""
Deterministic virtual judge panels and generated score sheets.

Used to seed demo and test data only. Production decisions read persisted
assignments and submitted sheets; nothing here is consulted for them.

Every choice is derived from stable_hash, so the same project, judges and
criteria always give the same panel, scores and feedback.
"""
import math
from typing import Dict, List, Optional, Sequence, Tuple

from ksef.config.judging_policy import JudgingPolicy, judging_policy
from ksef.orm.judge_assignment import Section
from ksef.orm.project import Project
from ksef.orm.user import User
from ksef.reference.criteria import Criterion, PART_A_CRITERIA, PART_B_CRITERIA, PART_C_CRITERIA
from ksef.services.eligibility_service import eligible_judges, widen_with_national_judges

STRENGTHS_OPTIONS = [
    "Excellent background research and a well-structured write-up. The scientific language used was appropriate and clear.",
    "The oral presentation was highly engaging and demonstrated a deep, confident understanding of the research topic.",
    "A very creative and innovative approach to solving a relevant, real-world problem. The authenticity of the work is commendable.",
    "The project's methodology was sound, logical, and well-documented, showing a clear thought process.",
    "Strong data collection and analysis, leading to valid and well-supported conclusions. The use of graphs was effective.",
]

RECOMMENDATIONS_OPTIONS = [
    "Consider expanding the sample size or conducting more trials to provide more robust and statistically significant data.",
    "The display board could be reorganized for a more logical flow to better guide the viewer through the project story.",
    "While knowledgeable, practicing the oral presentation more could enhance self-confidence and reduce reliance on notes.",
    "A more extensive literature review could further strengthen the introduction and provide more context for the discussion section.",
    "Explore the practical, real-world applications and potential future extensions of the project's findings in greater detail.",
]


def stable_hash(text: str) -> int:
    """
    31-multiplier string hash over UTF-16 code units with signed 32-bit
    wraparound, returned as an absolute value.
    """
    value = 0
    encoded = text.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value)


def pick_two_unique_judges(
    pool: Sequence[User],
    project_id: int,
    section: str,
) -> Optional[Tuple[User, User]]:
    """Two distinct judges chosen by hash, or None when fewer than two exist."""
    if len(pool) < 2:
        return None
    section = Section(section).value
    first = pool[stable_hash(f"{project_id}{section}1") % len(pool)]
    remaining = [judge for judge in pool if judge.id != first.id]
    second = remaining[stable_hash(f"{project_id}{section}2") % len(remaining)]
    return first, second


def section_pool(
    project: Project,
    section: str,
    judges: Sequence[User],
    policy: Optional[JudgingPolicy] = None,
) -> List[User]:
    policy = policy or judging_policy
    pool = eligible_judges(project, section, judges)
    if policy.NATIONAL_FALLBACK_ENABLED:
        pool = widen_with_national_judges(pool, project, section, judges)
    return pool


def virtual_panel(
    project: Project,
    judges: Sequence[User],
    policy: Optional[JudgingPolicy] = None,
) -> Optional[Dict[Section, Tuple[User, User]]]:
    """A judge pair for each section, or None if either section lacks two judges."""
    panel = {}
    for section in Section:
        pair = pick_two_unique_judges(section_pool(project, section, judges, policy), project.id, section)
        if pair is None:
            return None
        panel[section] = pair
    return panel


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def generate_scores_for_criteria(criteria: Sequence[Criterion], seed: int) -> Dict[str, float]:
    """Plausible scores on each criterion's step, never above its maximum."""
    scores = {}
    for index, criterion in enumerate(criteria):
        base_ratio = (stable_hash(f"{criterion.id}{seed}{index}") % 70) / 100
        jitter = (stable_hash(f"{seed}{criterion.id}") % 30) / 100
        ratio = min(1.0, base_ratio + jitter + 0.1)
        step = criterion.step
        score = _round_half_up(criterion.max_score * ratio / step) * step
        scores[criterion.id] = min(criterion.max_score, score)
    return scores


def generate_feedback(seed: int) -> Tuple[str, str]:
    return (
        STRENGTHS_OPTIONS[seed % len(STRENGTHS_OPTIONS)],
        RECOMMENDATIONS_OPTIONS[(seed + 1) % len(RECOMMENDATIONS_OPTIONS)],
    )


def judge_seed(project_id: int, judge_id: int) -> int:
    return stable_hash(f"{project_id}{judge_id}")


def generate_sheet_scores(project_id: int, judge_id: int, section: str) -> Dict[str, float]:
    """Scores a judge would enter for their section of a project."""
    seed = judge_seed(project_id, judge_id)
    if Section(section) == Section.A:
        return generate_scores_for_criteria(PART_A_CRITERIA, seed)
    scores = generate_scores_for_criteria(PART_B_CRITERIA, seed)
    scores.update(generate_scores_for_criteria(PART_C_CRITERIA, seed + 1))
    return scores
