from .base import Base

from .user import User, UserRole, UserStatus
from .project import Project, ProjectLevel, ProjectStatus, ConflictType, ConflictStatus, LEVEL_ORDER
from .judge_assignment import JudgeProjectAssignment, Section, AssignmentStatus
from .score_sheet import JudgeScoreSheet

__all__ = [
    "Base",
    "User", "UserRole", "UserStatus",
    "Project", "ProjectLevel", "ProjectStatus", "ConflictType", "ConflictStatus", "LEVEL_ORDER",
    "JudgeProjectAssignment", "Section", "AssignmentStatus",
    "JudgeScoreSheet",
]
