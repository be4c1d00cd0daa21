import logging

from event_campus.database import new_session
from event_campus.models.auth import UserOrm, UserRole
from event_campus.repositories.auth import UserRepository
from event_campus.schemas.auth import SUserLogin, SUserRegister
from event_campus.utils.errors import AuthenticationError, ValidationError
from event_campus.utils.passwords import hash_password, verify_password
from event_campus.utils.validators import is_uii_email, is_valid_email, is_valid_phone, normalize_phone




logger = logging.getLogger(__name__)


class AuthService:
    @classmethod
    async def register(cls, user_data: SUserRegister) -> dict:
        """Create a mahasiswa account and open a session for it"""
        email = user_data.email.strip().lower()
        if not is_valid_email(email):
            raise ValidationError("invalid email format")
        if not is_valid_phone(user_data.phone_number):
            raise ValidationError("invalid phone number format")
        if len(user_data.password) < 8:
            raise ValidationError("password must be at least 8 characters")

        async with new_session() as session, session.begin():
            if await UserRepository.get_user_by_email(session, email):
                raise ValidationError("user with this email already exists")

            user = await UserRepository.create_user(
                session,
                UserOrm(
                    email=email,
                    password_hash=hash_password(user_data.password),
                    full_name=user_data.full_name,
                    phone_number=normalize_phone(user_data.phone_number),
                    role=UserRole.MAHASISWA,
                    is_uii_civitas=is_uii_email(email),
                    is_approved=False,
                ),
            )
            session_token, expires_at = await UserRepository.create_user_session(session, user.id)

        logger.info("User %s registered", user.id)
        return {"session_token": session_token, "expires_at": expires_at, "user": user}


    @classmethod
    async def login(cls, credentials: SUserLogin) -> dict:
        """Check credentials and open a new session"""
        async with new_session() as session, session.begin():
            user = await UserRepository.get_user_by_email(session, credentials.email.strip())
            if not user or not verify_password(credentials.password, user.password_hash):
                raise AuthenticationError("invalid email or password")

            session_token, expires_at = await UserRepository.create_user_session(session, user.id)

        logger.info("User %s logged in", user.id)
        return {"session_token": session_token, "expires_at": expires_at, "user": user}


    @classmethod
    async def logout(cls, session_token: str) -> bool:
        async with new_session() as session, session.begin():
            return await UserRepository.delete_user_session(session, session_token)


    @classmethod
    async def get_user_by_token(cls, session_token: str):
        async with new_session() as session:
            return await UserRepository.get_user_by_session_token(session, session_token)
