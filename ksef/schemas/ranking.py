"""
Ranking and Promotion Schemas
"""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class PromotionStatus(str, Enum):
    PROMOTED = "Promoted"
    NOT_PROMOTED = "Not Promoted"
    PENDING_RANKING = "Pending Ranking"


class IndividualJudgeScore(BaseModel):
    """One judge's sheet with its section totals."""
    judge_id: int
    judge_name: str
    section: str
    scores: Dict[str, float] = Field(default_factory=dict)
    feedback_strengths: str = ""
    feedback_recommendations: str = ""
    total_score_a: Optional[float] = None
    total_score_b: Optional[float] = None
    total_score_c: Optional[float] = None


class DetailedProjectScores(BaseModel):
    """
    Aggregated scores for a fully judged project.

    Each part total is the mean of the two judges who scored it, and
    final_score = total_score_a + total_score_b + total_score_c (max 80).
    """
    project_id: int
    total_score_a: float
    total_score_b: float
    total_score_c: float
    final_score: float
    judge_scores: List[IndividualJudgeScore] = Field(default_factory=list)


class ProjectPromotionView(BaseModel):
    """Where a project effectively stands once promotion outcomes are applied."""
    project_id: int
    level: str
    status: str
    effective_level: str
    effective_status: str
    promotion_status: Optional[PromotionStatus] = None
    final_score: Optional[float] = None


class RankedItem(BaseModel):
    name: str
    total_points: float = 0
    rank: int


class HierarchicalRankings(BaseModel):
    regions: List[RankedItem] = Field(default_factory=list)
    counties: List[RankedItem] = Field(default_factory=list)
    sub_counties: List[RankedItem] = Field(default_factory=list)
    zones: List[RankedItem] = Field(default_factory=list)
    schools: List[RankedItem] = Field(default_factory=list)


class PromotionOutcome(BaseModel):
    """Result of applying promotions for one cohort."""
    level: str
    category: str
    promoted_project_ids: List[int] = Field(default_factory=list)
    not_promoted_project_ids: List[int] = Field(default_factory=list)
    pending: bool = False
    message: str = ""
