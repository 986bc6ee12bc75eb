"""
Judge Assignment Schemas
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ksef.orm.judge_assignment import Section


class AssignmentResult(BaseModel):
    """Outcome of a single assignment attempt. Failures are data, not exceptions."""
    success: bool
    message: str
    assignment_id: Optional[int] = None
    judge_id: Optional[int] = None
    code: Optional[str] = None


class CreateAssignmentRequest(BaseModel):
    judge_id: int = Field(..., ge=1)
    project_id: int = Field(..., ge=1)
    section: Section
    notes: Optional[str] = Field(default=None, max_length=1000)


class AutoAssignRequest(BaseModel):
    project_id: int = Field(..., ge=1)
    section: Section


class BulkAssignRequest(BaseModel):
    items: List[CreateAssignmentRequest] = Field(..., min_length=1, max_length=500)


class AssignmentStats(BaseModel):
    total: int = 0
    active: int = 0
    completed: int = 0
    reassigned: int = 0
    by_section: Dict[str, int] = Field(default_factory=dict)
    judges_with_active_assignments: int = 0
    projects_with_active_assignments: int = 0


class AvailableJudge(BaseModel):
    id: int
    name: str
    email: str
    school: Optional[str] = None
    active_assignments: int = 0
