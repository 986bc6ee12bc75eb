"""
ksef/orm/user.py
User profile model: administrators, judges, coordinators and patrons.

Judges carry a list of {category, section} assignments describing which
score sheets they are qualified to fill in. Administrators carry the
geographic scope they manage.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, String, JSON
from sqlalchemy.orm import validates

from ksef.orm.base import BaseModel, enum_column


NATIONAL_SCOPE = "National"


class UserRole(str, Enum):
    """Administrative hierarchy roles"""
    SUPERADMIN = "Super Administrator"
    NATIONAL_ADMIN = "National Admin"
    REGIONAL_ADMIN = "Regional Admin"
    COUNTY_ADMIN = "County Admin"
    SUB_COUNTY_ADMIN = "Sub-County Admin"
    JUDGE = "Judge"
    COORDINATOR = "Coordinator"
    PATRON = "Patron (Advisor)"


class UserStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class User(BaseModel):
    """
    User profile.

    KEY FIELDS:
    - assigned_region / assigned_county / assigned_sub_county: geographic
      scope; which of them are required depends on the role
      (see ksef.rbac.ROLE_SCOPE_FIELDS)
    - assignments: judge qualifications, list of {"category", "section"}
    - coordinator_category: the single category a coordinator handles
    """
    __tablename__ = "users"

    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(enum_column(UserRole, "user_role"), nullable=False, index=True)
    status = Column(
        enum_column(UserStatus, "user_status"),
        nullable=False,
        default=UserStatus.ACTIVE,
        index=True
    )

    school = Column(String(255), nullable=True)
    phone_number = Column(String(50), nullable=True)

    # Geographic scope
    assigned_region = Column(String(100), nullable=True, index=True)
    assigned_county = Column(String(100), nullable=True, index=True)
    assigned_sub_county = Column(String(100), nullable=True, index=True)

    # Judge-specific
    assignments = Column(JSON, nullable=True, default=list)

    # Coordinator-specific
    coordinator_category = Column(String(100), nullable=True)

    @validates("assignments")
    def _dedupe_assignments(self, key, value):
        """A judge holds at most one qualification per (category, section)."""
        if not value:
            return []
        seen = set()
        cleaned = []
        for item in value:
            pair = (item["category"], item["section"])
            if pair in seen:
                continue
            seen.add(pair)
            cleaned.append({"category": pair[0], "section": pair[1]})
        return cleaned

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    @property
    def is_national_scope(self) -> bool:
        """National judges have no scoped region, or the literal 'National'."""
        return not self.assigned_region or self.assigned_region == NATIONAL_SCOPE

    def has_assignment(self, category: str, section: str) -> bool:
        return any(
            a.get("category") == category and a.get("section") == section
            for a in (self.assignments or [])
        )

    def judge_sections(self) -> List[str]:
        return sorted({a.get("section") for a in (self.assignments or [])})

    def summary(self) -> Dict[str, Any]:
        """Short form used when joining users onto assignments."""
        return {"id": self.id, "name": self.name, "email": self.email}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value if self.role else None,
            "status": self.status.value if self.status else None,
            "school": self.school,
            "assigned_region": self.assigned_region,
            "assigned_county": self.assigned_county,
            "assigned_sub_county": self.assigned_sub_county,
            "assignments": list(self.assignments or []),
            "coordinator_category": self.coordinator_category,
        }

    def __repr__(self) -> str:
        role: Optional[str] = self.role.value if self.role else None
        return f"<User(id={self.id}, name='{self.name}', role='{role}')>"
