from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from event_campus.models.auth import UserOrm, UserRole
from event_campus.services.auth import AuthService




security = HTTPBearer()

async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Resolve the current user from the bearer session token"""
    session_token = credentials.credentials
    
    user = await AuthService.get_user_by_token(session_token)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid or expired session token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    return user


async def get_session_token(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Raw session token, for logout"""
    return credentials.credentials


async def get_current_organizer(current_user: UserOrm = Depends(get_current_user)):
    """Current user, if they may create and manage events"""
    if not current_user.can_create_event():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="only approved organizers can manage events"
        )
    return current_user


async def get_current_admin(current_user: UserOrm = Depends(get_current_user)):
    """Current user, if they are an admin"""
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="admin access required"
        )
    return current_user
