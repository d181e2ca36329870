from dataclasses import dataclass
from enum import Enum
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from marketplace.config import SECRET_KEY, ALGORITHM
from marketplace.exceptions import ForbiddenException, UnauthorizedException

security = HTTPBearer(auto_error=False)


class Role(str, Enum):
    user = "user"
    provider = "provider"
    admin = "admin"


@dataclass(frozen=True)
class Principal:
    """An authenticated caller, as handed over by the auth collaborator."""

    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


def decode_principal(token: str) -> Principal:
    """Read the principal out of a bearer token issued by the auth service"""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise UnauthorizedException("Could not validate credentials")

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or role not in Role._value2member_map_:
        raise UnauthorizedException("Could not validate credentials")
    return Principal(user_id=str(user_id), role=Role(role))


def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedException("Not authenticated")
    return decode_principal(credentials.credentials)


def get_current_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Get current principal and ensure they are admin"""
    if not principal.is_admin:
        raise ForbiddenException("Admin access required")
    return principal
