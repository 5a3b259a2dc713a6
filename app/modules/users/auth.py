"""
Authentication and Authorization utilities for JWT-based auth.

Users are managed by the hosted auth provider; this service only verifies
the bearer tokens it issues and exposes the signed-in user as a dependency.
"""

from typing import Optional, Any, Dict, List
from dataclasses import dataclass
import jwt
from jwt.exceptions import PyJWTError, ExpiredSignatureError
from datetime import datetime, timedelta, timezone
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import config
from app.core.exceptions import AuthRequiredError, ForbiddenError, UnauthorizedError


# HTTP Bearer token security scheme; a missing header is handled by the caller
security = HTTPBearer(auto_error=False)


@dataclass
class TokenData:
    """Token payload data structure with type safety"""
    user_id: str
    username: str
    role: str


class AuthService:
    """
    Token creation and verification.
    """

    @staticmethod
    def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a JWT access token with user data and expiration.

        Args:
            data: Dictionary containing user data (user_id, sub, role)
            expires_delta: Optional custom expiration time, defaults to config value

        Returns:
            Encoded JWT token as string
        """
        to_encode = data.copy()
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=config.access_token_expire_minutes))
        to_encode.update({
            "exp": expire,
            "iat": now,
            "type": "access"
        })
        return jwt.encode(to_encode, config.jwt_secret, algorithm=config.algorithm)

    @staticmethod
    def verify_token(token: str) -> Optional[TokenData]:
        """
        Verify and decode a JWT token.

        Returns:
            TokenData object if valid, None if invalid

        Raises:
            UnauthorizedError: If the token has expired
        """
        try:
            payload: Dict[str, Any] = jwt.decode(
                token, config.jwt_secret, algorithms=[config.algorithm]
            )
        except ExpiredSignatureError:
            raise UnauthorizedError("Token has expired")
        except PyJWTError:
            return None

        user_id = payload.get("user_id")
        username: Optional[str] = payload.get("sub")
        role: Optional[str] = payload.get("role")
        if username is None or user_id is None or role is None:
            return None
        return TokenData(user_id=str(user_id), username=username, role=role)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenData]:
    """
    The signed-in user, or None when no Authorization header was sent.

    Raises:
        UnauthorizedError: If a token was sent but is invalid or expired
    """
    if credentials is None:
        return None
    token_data = AuthService.verify_token(credentials.credentials)
    if token_data is None:
        raise UnauthorizedError("Invalid authentication credentials")
    return token_data


async def get_current_user(
    current_user: Optional[TokenData] = Depends(get_optional_user)
) -> TokenData:
    """
    Dependency to get the current authenticated user from JWT token.

    Raises:
        AuthRequiredError: If no token was sent
    """
    if current_user is None:
        raise AuthRequiredError()
    return current_user


class RoleChecker:
    """
    Dependency class for role-based access control.
    Checks if the current user has one of the required roles.
    """

    def __init__(self, allowed_roles: List[str]) -> None:
        self.allowed_roles: List[str] = allowed_roles

    async def __call__(self, current_user: TokenData = Depends(get_current_user)) -> TokenData:
        if current_user.role not in self.allowed_roles:
            raise ForbiddenError(
                f"Operation not permitted. Required roles: {', '.join(self.allowed_roles)}"
            )
        return current_user


require_admin: RoleChecker = RoleChecker(["ADMIN"])
