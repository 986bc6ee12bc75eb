"""
User Profile Schemas
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ksef.orm.judge_assignment import Section
from ksef.orm.user import UserRole
from ksef.rbac import validate_scope_fields
from ksef.reference.categories import is_valid_category


class JudgeQualification(BaseModel):
    category: str
    section: Section

    @field_validator("category")
    @classmethod
    def known_category(cls, v: str) -> str:
        if not is_valid_category(v):
            raise ValueError(f"Unknown category: {v}")
        return v


class UserCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    role: UserRole
    school: Optional[str] = None
    phone_number: Optional[str] = None
    assigned_region: Optional[str] = None
    assigned_county: Optional[str] = None
    assigned_sub_county: Optional[str] = None
    assignments: List[JudgeQualification] = Field(default_factory=list)
    coordinator_category: Optional[str] = None

    @model_validator(mode="after")
    def role_fields(self):
        validate_scope_fields(
            self.role,
            region=self.assigned_region,
            county=self.assigned_county,
            sub_county=self.assigned_sub_county,
        )
        if self.role == UserRole.COORDINATOR and not self.coordinator_category:
            raise ValueError("Coordinator requires a coordinator_category")
        return self
