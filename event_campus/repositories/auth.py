import secrets
from datetime import datetime, timedelta
from sqlalchemy import select, delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from event_campus.config import SESSION_EXPIRE_DAYS
from event_campus.models.auth import UserOrm, UserSessionOrm
from event_campus.utils.time import utcnow




class UserRepository:
    @classmethod
    async def create_user(cls, session: AsyncSession, user: UserOrm):
        """Insert a new user"""
        session.add(user)
        await session.flush()
        await session.refresh(user)
        return user


    @classmethod
    async def get_user_by_id(cls, session: AsyncSession, user_id: int):
        """Get a user by ID"""
        query = select(UserOrm).where(UserOrm.id == user_id)
        result = await session.execute(query)
        return result.scalars().first()


    @classmethod
    async def get_user_by_email(cls, session: AsyncSession, email: str):
        """Get a user by email (case-insensitive)"""
        query = select(UserOrm).where(UserOrm.email == email.lower())
        result = await session.execute(query)
        return result.scalars().first()


    @classmethod
    async def get_users_by_ids(cls, session: AsyncSession, user_ids: list[int]) -> dict[int, UserOrm]:
        if not user_ids:
            return {}
        query = select(UserOrm).where(UserOrm.id.in_(user_ids))
        result = await session.execute(query)
        return {user.id: user for user in result.scalars().all()}


    @classmethod
    async def update_role(cls, session: AsyncSession, user_id: int, role: str, is_approved: bool):
        """Change a user's role and approval flag"""
        stmt = (
            update(UserOrm)
            .where(UserOrm.id == user_id)
            .values(role=role, is_approved=is_approved, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount > 0


    @classmethod
    async def get_user_by_session_token(cls, session: AsyncSession, session_token: str):
        """Get the user owning a non-expired session token"""
        query = select(UserSessionOrm).where(UserSessionOrm.session_token == session_token)
        result = await session.execute(query)
        session_obj = result.scalars().first()
        
        if not session_obj or session_obj.expires_at < utcnow():
            return None
        
        return await cls.get_user_by_id(session, session_obj.user_id)


    @classmethod
    async def create_user_session(cls, session: AsyncSession, user_id: int) -> tuple[str, datetime]:
        """Issue a new session token for the user"""
        session_token = secrets.token_urlsafe(32)
        expires_at = utcnow() + timedelta(days=SESSION_EXPIRE_DAYS)
        
        session_obj = UserSessionOrm(
            user_id=user_id,
            session_token=session_token,
            expires_at=expires_at
        )
        session.add(session_obj)
        await session.flush()
        return session_token, expires_at


    @classmethod
    async def delete_user_session(cls, session: AsyncSession, session_token: str):
        """Revoke a session token"""
        query = delete(UserSessionOrm).where(UserSessionOrm.session_token == session_token)
        result = await session.execute(query)
        return result.rowcount > 0
