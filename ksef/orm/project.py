"""
ksef/orm/project.py
Science fair project model.

A project sits at exactly one competition level at a time. Score sheets are
recorded against the level they were submitted at, so a promoted project
starts its new level with no scores.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, Integer, String, Boolean, JSON, ForeignKey, Index

from ksef.orm.base import BaseModel, enum_column


class ProjectLevel(str, Enum):
    """Competition tiers, lowest first"""
    SUB_COUNTY = "Sub-County"
    COUNTY = "County"
    REGIONAL = "Regional"
    NATIONAL = "National"


LEVEL_ORDER: List[ProjectLevel] = [
    ProjectLevel.SUB_COUNTY,
    ProjectLevel.COUNTY,
    ProjectLevel.REGIONAL,
    ProjectLevel.NATIONAL,
]


class ProjectStatus(str, Enum):
    QUALIFIED = "Qualified"
    JUDGING = "Judging"
    COMPLETED = "Completed"
    CONFLICT = "Conflict"


class ConflictType(str, Enum):
    SCHOOL = "School"
    SCORE_DISCREPANCY = "ScoreDiscrepancy"


class ConflictStatus(str, Enum):
    PENDING = "Pending"
    RESOLVED = "Resolved"


class Project(BaseModel):
    __tablename__ = "projects"

    patron_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    title = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    reg_no = Column(String(40), nullable=False, unique=True)
    presenters = Column(JSON, nullable=False, default=list)

    # Location
    school = Column(String(255), nullable=False, index=True)
    zone = Column(String(100), nullable=True)
    sub_county = Column(String(100), nullable=False)
    county = Column(String(100), nullable=False, index=True)
    region = Column(String(100), nullable=False)

    # Pipeline position
    level = Column(
        enum_column(ProjectLevel, "project_level"),
        nullable=False,
        default=ProjectLevel.SUB_COUNTY,
        index=True
    )
    status = Column(
        enum_column(ProjectStatus, "project_status"),
        nullable=False,
        default=ProjectStatus.QUALIFIED,
        index=True
    )

    # Set when the project was ranked at its current level and not promoted
    eliminated = Column(Boolean, nullable=False, default=False)

    # Conflict routing
    conflict_type = Column(enum_column(ConflictType, "conflict_type"), nullable=True)
    conflict_status = Column(enum_column(ConflictStatus, "conflict_status"), nullable=True)
    conflict_coordinator_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    __table_args__ = (
        Index("idx_project_level_category", "level", "category"),
    )

    @property
    def has_pending_conflict(self) -> bool:
        return (
            self.status == ProjectStatus.CONFLICT
            and self.conflict_status == ConflictStatus.PENDING
        )

    def to_dict(self) -> Dict[str, Any]:
        conflict: Optional[Dict[str, Any]] = None
        if self.conflict_type:
            conflict = {
                "type": self.conflict_type.value,
                "status": self.conflict_status.value if self.conflict_status else None,
                "coordinator_id": self.conflict_coordinator_id,
            }
        return {
            "id": self.id,
            "patron_id": self.patron_id,
            "title": self.title,
            "category": self.category,
            "reg_no": self.reg_no,
            "presenters": list(self.presenters or []),
            "school": self.school,
            "zone": self.zone,
            "sub_county": self.sub_county,
            "county": self.county,
            "region": self.region,
            "level": self.level.value if self.level else None,
            "status": self.status.value if self.status else None,
            "eliminated": bool(self.eliminated),
            "conflict": conflict,
        }

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, reg_no='{self.reg_no}', level='{self.level}')>"
