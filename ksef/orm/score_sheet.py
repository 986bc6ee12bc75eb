"""
ksef/orm/score_sheet.py
A judge's submitted score sheet for one section of one project.

Section A sheets hold Part A criterion scores; Section BC sheets hold Part B
and Part C criterion scores together. The level column pins the sheet to the
competition level the project was at when it was scored.
"""
from typing import Any, Dict

from sqlalchemy import Column, Integer, Text, JSON, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from ksef.orm.base import BaseModel, enum_column
from ksef.orm.judge_assignment import Section
from ksef.orm.project import ProjectLevel


class JudgeScoreSheet(BaseModel):
    __tablename__ = "judge_score_sheets"

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
    section = Column(enum_column(Section, "score_section"), nullable=False)
    level = Column(enum_column(ProjectLevel, "score_level"), nullable=False)

    # criterion id -> score
    scores = Column(JSON, nullable=False, default=dict)

    feedback_strengths = Column(Text, nullable=True)
    feedback_recommendations = Column(Text, nullable=True)

    judge = relationship("User", lazy="joined")

    __table_args__ = (
        UniqueConstraint(
            "judge_id", "project_id", "section", "level",
            name="uq_score_sheet_judge_project_section_level"
        ),
        Index("idx_score_sheet_project_level", "project_id", "level"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "judge_id": self.judge_id,
            "project_id": self.project_id,
            "section": self.section.value if self.section else None,
            "level": self.level.value if self.level else None,
            "scores": dict(self.scores or {}),
            "feedback": {
                "strengths": self.feedback_strengths or "",
                "recommendations": self.feedback_recommendations or "",
            },
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
