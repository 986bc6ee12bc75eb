"""
Project and Judging Progress Schemas
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ksef.reference.categories import is_valid_category
from ksef.reference.geography import is_valid_location


class ProjectCreate(BaseModel):
    """Request schema for registering a project."""
    title: str = Field(..., min_length=3, max_length=255)
    category: str
    presenters: List[str] = Field(..., min_length=1, max_length=2)
    school: str = Field(..., min_length=2, max_length=255)
    region: str
    county: str
    sub_county: str
    zone: Optional[str] = None

    @field_validator("title", "school")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("presenters")
    @classmethod
    def clean_presenters(cls, v: List[str]) -> List[str]:
        names = [name.strip() for name in v if name and name.strip()]
        if not names:
            raise ValueError("At least one presenter is required")
        return names

    @field_validator("category")
    @classmethod
    def known_category(cls, v: str) -> str:
        if not is_valid_category(v):
            raise ValueError(f"Unknown category: {v}")
        return v

    @model_validator(mode="after")
    def location_consistent(self):
        if not is_valid_location(self.region, self.county, self.sub_county):
            raise ValueError(
                f"{self.sub_county} is not a sub-county of {self.county} in {self.region}"
            )
        return self


class JudgeSlot(BaseModel):
    judge_id: int
    judge_name: str
    has_judged: bool


class ProjectJudgingProgress(BaseModel):
    project_id: int
    title: str
    category: str
    status: str
    judges_scored: int
    judges_required: int
    section_a: List[JudgeSlot] = Field(default_factory=list)
    section_bc: List[JudgeSlot] = Field(default_factory=list)


class CategoryJudgingStatus(BaseModel):
    category: str
    total_projects: int
    completed_projects: int
    projects: List[ProjectJudgingProgress] = Field(default_factory=list)
