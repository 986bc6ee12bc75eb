"""
ksef/rbac.py
Role-based access control and geographic scope for the judging engine.

Identity is issued by the hosted auth provider; this module only verifies the
bearer token, loads the user profile and builds an explicit ActorContext that
services receive as an argument.
"""
import os
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError, jwt

from ksef.database import get_db
from ksef.errors import ErrorCode
from ksef.orm.user import User, UserRole

logger = logging.getLogger(__name__)

# ================= CONFIG =================

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")

# ================= ROLE HIERARCHY =================

ROLE_HIERARCHY = {
    UserRole.SUPERADMIN: 6,
    UserRole.NATIONAL_ADMIN: 5,
    UserRole.REGIONAL_ADMIN: 4,
    UserRole.COUNTY_ADMIN: 3,
    UserRole.SUB_COUNTY_ADMIN: 2,
    UserRole.COORDINATOR: 1,
    UserRole.JUDGE: 1,
    UserRole.PATRON: 0,
}

ADMIN_ROLES = [
    UserRole.SUPERADMIN,
    UserRole.NATIONAL_ADMIN,
    UserRole.REGIONAL_ADMIN,
    UserRole.COUNTY_ADMIN,
    UserRole.SUB_COUNTY_ADMIN,
]

# Geographic fields each role must carry. Shared by user validation and by
# ranking scope filtering.
ROLE_SCOPE_FIELDS: Dict[UserRole, Tuple[str, ...]] = {
    UserRole.REGIONAL_ADMIN: ("region",),
    UserRole.COUNTY_ADMIN: ("region", "county"),
    UserRole.SUB_COUNTY_ADMIN: ("region", "county", "sub_county"),
}


class ScopeValidationError(ValueError):
    """Raised when a user's geographic fields do not satisfy their role."""
    def __init__(self, role: UserRole, missing: List[str]):
        self.role = role
        self.missing = missing
        self.code = ErrorCode.INVALID_INPUT
        super().__init__(
            f"{role.value} requires: {', '.join(missing)}"
        )


def required_scope_fields(role: UserRole) -> Tuple[str, ...]:
    return ROLE_SCOPE_FIELDS.get(role, ())


def validate_scope_fields(
    role: UserRole,
    region: Optional[str] = None,
    county: Optional[str] = None,
    sub_county: Optional[str] = None,
) -> None:
    """Raise ScopeValidationError if a scoped role lacks one of its fields."""
    values = {"region": region, "county": county, "sub_county": sub_county}
    missing = [f for f in required_scope_fields(role) if not values[f]]
    if missing:
        raise ScopeValidationError(role, missing)


# ================= ACTOR CONTEXT =================

@dataclass(frozen=True)
class ActorContext:
    """Who is performing an operation, and over which part of the country."""
    id: Optional[int]
    role: UserRole
    region: Optional[str] = None
    county: Optional[str] = None
    sub_county: Optional[str] = None
    coordinator_category: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "ActorContext":
        return cls(
            id=user.id,
            role=user.role,
            region=user.assigned_region,
            county=user.assigned_county,
            sub_county=user.assigned_sub_county,
            coordinator_category=user.coordinator_category,
        )

    @classmethod
    def system(cls) -> "ActorContext":
        """Actor used by the CLI and seeding jobs."""
        return cls(id=None, role=UserRole.SUPERADMIN)

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_national(self) -> bool:
        return self.role in (UserRole.SUPERADMIN, UserRole.NATIONAL_ADMIN)

    def scope(self) -> Dict[str, str]:
        """Geographic constraints implied by the role; empty means nationwide."""
        values = {"region": self.region, "county": self.county, "sub_county": self.sub_county}
        return {f: values[f] for f in required_scope_fields(self.role) if values[f]}

    def covers(self, region: Optional[str], county: Optional[str] = None, sub_county: Optional[str] = None) -> bool:
        """True if a location lies inside this actor's scope."""
        location = {"region": region, "county": county, "sub_county": sub_county}
        return all(location[f] == v for f, v in self.scope().items())


# ================= TOKEN UTILS =================

def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a token in the auth provider's format."""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode({"sub": str(user_id), "exp": expire}, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


# ================= AUTH DEPENDENCIES =================

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Load the profile for the bearer token's subject.
    Returns 401 if the token is invalid or the user is inactive.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "success": False,
            "error": "Unauthorized",
            "message": "Invalid or expired token",
            "code": ErrorCode.AUTH_INVALID
        },
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(token)
    if not payload:
        raise credentials_exception

    subject = payload.get("sub")
    if not subject or not str(subject).isdigit():
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == int(subject)))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise credentials_exception

    return user


async def get_current_actor(user: User = Depends(get_current_user)) -> ActorContext:
    return ActorContext.from_user(user)


def require_roles(allowed_roles: List[UserRole]):
    """
    Dependency factory: the actor's role must be one of allowed_roles.
    Usage: actor: ActorContext = Depends(require_roles(ADMIN_ROLES))
    """
    async def dependency(actor: ActorContext = Depends(get_current_actor)) -> ActorContext:
        if actor.role not in allowed_roles:
            logger.warning(
                f"Access denied: User {actor.id} with role {actor.role.value} "
                f"attempted to access resource requiring {[r.value for r in allowed_roles]}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "success": False,
                    "error": "Forbidden",
                    "message": f"This action requires one of: {[r.value for r in allowed_roles]}",
                    "code": ErrorCode.FORBIDDEN,
                    "current_role": actor.role.value
                }
            )
        return actor
    return dependency
