"""
Judge-Project Assignment ORM Model

Persisted system of record for who scores which project section.

- At most one Active row per (judge, project, section), enforced by a
  partial unique index so concurrent inserts cannot both succeed
- Rows are never deleted; removal sets status to Reassigned
"""
from enum import Enum
from typing import Any, Dict

from sqlalchemy import Column, Integer, Text, ForeignKey, Index, text
from sqlalchemy.orm import relationship

from ksef.orm.base import BaseModel, enum_column
from ksef.orm.project import ProjectLevel


# =============================================================================
# Enums
# =============================================================================

class Section(str, Enum):
    """Score sheet sections: A is the written report, BC the oral + project."""
    A = "A"
    BC = "BC"


class AssignmentStatus(str, Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    REASSIGNED = "Reassigned"


# =============================================================================
# Model: JudgeProjectAssignment
# =============================================================================

class JudgeProjectAssignment(BaseModel):
    __tablename__ = "judge_assignments"

    judge_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False
    )
    project_id = Column(
        Integer,
        ForeignKey("projects.id", ondelete="RESTRICT"),
        nullable=False
    )
    section = Column(enum_column(Section, "assignment_section"), nullable=False)
    # Level the project was at when the judge was assigned
    level = Column(enum_column(ProjectLevel, "assignment_level"), nullable=False)
    assigned_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    status = Column(
        enum_column(AssignmentStatus, "assignment_status"),
        nullable=False,
        default=AssignmentStatus.ACTIVE
    )
    notes = Column(Text, nullable=True)

    # Relationships
    judge = relationship("User", foreign_keys=[judge_id], lazy="joined")
    project = relationship("Project", lazy="joined")
    assigned_by_user = relationship("User", foreign_keys=[assigned_by], lazy="joined")

    __table_args__ = (
        Index(
            "uq_active_judge_project_section",
            "judge_id", "project_id", "section",
            unique=True,
            sqlite_where=text("status = 'Active'"),
            postgresql_where=text("status = 'Active'"),
        ),
        Index("idx_assignment_project", "project_id", "status"),
        Index("idx_assignment_judge", "judge_id", "status"),
    )

    def to_dict(self, include_related: bool = False) -> Dict[str, Any]:
        result = {
            "id": self.id,
            "judge_id": self.judge_id,
            "project_id": self.project_id,
            "section": self.section.value if self.section else None,
            "level": self.level.value if self.level else None,
            "assigned_by": self.assigned_by,
            "status": self.status.value if self.status else None,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

        if include_related:
            result["judge"] = self.judge.summary() if self.judge else None
            result["project"] = {
                "id": self.project.id,
                "title": self.project.title,
                "category": self.project.category,
                "status": self.project.status.value,
                "level": self.project.level.value,
                "school": self.project.school,
            } if self.project else None
            result["assigned_by_user"] = (
                self.assigned_by_user.summary() if self.assigned_by_user else None
            )

        return result
