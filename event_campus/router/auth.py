import logging
from fastapi import APIRouter, HTTPException, Depends

from event_campus.models.auth import UserOrm
from event_campus.schemas.auth import SUserRegister, SUserLogin, SUserSession, SUser
from event_campus.services.auth import AuthService
from event_campus.utils.errors import ServiceError
from event_campus.utils.security import get_current_user, get_session_token




logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)


@router.post("/register", response_model=SUserSession, status_code=201)
async def register_user(user_data: SUserRegister):
    """Create an account and log in"""
    try:
        return await AuthService.register(user_data)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Registration failed")
        raise HTTPException(status_code=500, detail="failed to register user")


@router.post("/login", response_model=SUserSession)
async def login_user(credentials: SUserLogin):
    """Log in with email and password"""
    try:
        return await AuthService.login(credentials)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Login failed")
        raise HTTPException(status_code=500, detail="failed to log in")


@router.post("/logout")
async def logout(session_token: str = Depends(get_session_token)):
    """Revoke the current session"""
    try:
        await AuthService.logout(session_token)
        return {"success": True, "message": "logged out"}
    except Exception:
        logger.exception("Logout failed")
        raise HTTPException(status_code=500, detail="failed to log out")


@router.get("/me", response_model=SUser)
async def get_current_user_info(current_user: UserOrm = Depends(get_current_user)):
    """Current user profile"""
    return current_user
