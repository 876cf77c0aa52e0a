"""Authentication package for the application."""
from .models import User, Token, TokenData, UserResponse
from .service import AuthService, get_current_user, get_current_active_user, require_roles
from .router import router as auth_router

__all__ = [
    'User',
    'Token',
    'TokenData',
    'UserResponse',
    'AuthService',
    'get_current_user',
    'get_current_active_user',
    'require_roles',
    'auth_router'
]
