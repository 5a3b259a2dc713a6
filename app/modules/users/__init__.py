"""Users module (authentication only; accounts live in the hosted auth provider)"""

from .auth import AuthService, TokenData, get_current_user, get_optional_user, require_admin

__all__ = ["AuthService", "TokenData", "get_current_user", "get_optional_user", "require_admin"]
