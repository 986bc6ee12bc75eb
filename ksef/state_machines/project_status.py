"""
Project Status State Machine
Server-side enforcement of the judging lifecycle at one competition level.

    Qualified -> Judging -> Completed
    Judging -> Conflict -> Completed (coordinator resolution)

Promotion is not a status transition: the project moves to the next level
and re-enters as Qualified (see ProjectStatusMachine.reset_for_level).
"""
import logging
from typing import Dict, List, Optional

from ksef.orm.project import (
    Project, ProjectLevel, ProjectStatus, ConflictType, ConflictStatus
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    def __init__(self, message: str):
        self.message = message
        self.code = "STATE_TRANSITION_INVALID"
        super().__init__(message)


class ProjectStatusMachine:
    """Validates and applies status changes on a Project instance."""

    # Valid state transitions: {current_state: [allowed_next_states]}
    ALLOWED_TRANSITIONS: Dict[ProjectStatus, List[ProjectStatus]] = {
        ProjectStatus.QUALIFIED: [
            ProjectStatus.JUDGING,
        ],
        ProjectStatus.JUDGING: [
            ProjectStatus.COMPLETED,
            ProjectStatus.CONFLICT,
        ],
        ProjectStatus.CONFLICT: [
            ProjectStatus.COMPLETED,
        ],
        ProjectStatus.COMPLETED: [],
    }

    def __init__(self, project: Project):
        self.project = project

    def can_transition(self, new_status: ProjectStatus) -> bool:
        return new_status in self.ALLOWED_TRANSITIONS.get(self.project.status, [])

    def transition(self, new_status: ProjectStatus) -> Project:
        current = self.project.status
        if not self.can_transition(new_status):
            raise InvalidTransitionError(
                f"Cannot transition project {self.project.id} from {current.value} to {new_status.value}. "
                f"Allowed: {[s.value for s in self.ALLOWED_TRANSITIONS.get(current, [])]}"
            )
        self.project.status = new_status
        logger.info(f"Project {self.project.id}: {current.value} -> {new_status.value}")
        return self.project

    def begin_judging(self) -> Project:
        """Idempotent: a project already being judged is left alone."""
        if self.project.status == ProjectStatus.JUDGING:
            return self.project
        return self.transition(ProjectStatus.JUDGING)

    def complete(self) -> Project:
        return self.transition(ProjectStatus.COMPLETED)

    def raise_conflict(self, conflict_type: ConflictType, coordinator_id: Optional[int]) -> Project:
        self.transition(ProjectStatus.CONFLICT)
        self.project.conflict_type = conflict_type
        self.project.conflict_status = ConflictStatus.PENDING
        self.project.conflict_coordinator_id = coordinator_id
        return self.project

    def resolve_conflict(self) -> Project:
        if not self.project.has_pending_conflict:
            raise InvalidTransitionError(
                f"Project {self.project.id} has no pending conflict"
            )
        self.project.conflict_status = ConflictStatus.RESOLVED
        return self.transition(ProjectStatus.COMPLETED)

    def reset_for_level(self, level: ProjectLevel) -> Project:
        """Enter a new competition level with a clean judging state."""
        if self.project.status != ProjectStatus.COMPLETED:
            raise InvalidTransitionError(
                f"Project {self.project.id} must be Completed to change level "
                f"(currently {self.project.status.value})"
            )
        previous = self.project.level
        self.project.level = level
        self.project.status = ProjectStatus.QUALIFIED
        self.project.conflict_type = None
        self.project.conflict_status = None
        self.project.conflict_coordinator_id = None
        logger.info(f"Project {self.project.id}: {previous.value} -> {level.value} (Qualified)")
        return self.project
