"""
Score Sheet Schemas

A judge submits one sheet per section: Part A criteria for Section A, Part B
and Part C criteria for Section BC. Scores are checked against the criterion
definitions and rejected, never clamped.
"""
from typing import Dict, List, Optional

from fastapi import status
from pydantic import BaseModel, Field, field_validator

from ksef.errors import ErrorCode, ServiceError
from ksef.orm.judge_assignment import Section
from ksef.reference.criteria import criteria_for_section


class InvalidScoreInputError(ServiceError):
    """Raised when a score sheet has unknown, missing, out-of-range or off-step scores."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__(
            "Invalid score sheet: " + "; ".join(problems),
            ErrorCode.INVALID_SCORE_INPUT,
            {"problems": problems},
        )


def validate_score_sheet(section: str, scores: Dict[str, float]) -> Dict[str, float]:
    """
    Check a sheet against the criteria of its section.

    Returns the scores keyed in criterion order. Raises InvalidScoreInputError
    listing every problem found.
    """
    criteria = criteria_for_section(section)
    known = {c.id for c in criteria}
    problems: List[str] = []

    for criterion_id in scores:
        if criterion_id not in known:
            problems.append(f"unknown criterion '{criterion_id}' for section {section}")

    for criterion in criteria:
        if criterion.id not in scores or scores[criterion.id] is None:
            problems.append(f"missing score for '{criterion.id}'")
            continue
        value = scores[criterion.id]
        if value < 0:
            problems.append(f"'{criterion.id}' is below 0")
        elif value > criterion.max_score:
            problems.append(f"'{criterion.id}' exceeds maximum of {criterion.max_score:g}")
        elif not criterion.is_on_step(value):
            problems.append(f"'{criterion.id}' must be a multiple of {criterion.step:g}")

    if problems:
        raise InvalidScoreInputError(problems)

    return {c.id: float(scores[c.id]) for c in criteria}


class ScoreSheetSubmission(BaseModel):
    """Request schema for submitting a score sheet."""
    section: Section
    scores: Dict[str, Optional[float]] = Field(..., description="criterion id -> score")
    feedback_strengths: str = Field(default="", max_length=4000)
    feedback_recommendations: str = Field(default="", max_length=4000)

    @field_validator("feedback_strengths", "feedback_recommendations")
    @classmethod
    def strip_feedback(cls, v: str) -> str:
        return v.strip()

    def validated_scores(self) -> Dict[str, float]:
        return validate_score_sheet(self.section.value, self.scores)


class ScoreSheetResponse(BaseModel):
    id: int
    judge_id: int
    project_id: int
    section: str
    level: str
    scores: Dict[str, float]
    feedback: Dict[str, str]
    created_at: Optional[str] = None

    class Config:
        from_attributes = True
