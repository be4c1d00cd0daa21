import logging
from event_campus import config
from event_campus.database import new_session
from event_campus.models.auth import UserOrm, UserRole
from event_campus.repositories.auth import UserRepository
from event_campus.utils.passwords import hash_password
from event_campus.utils.validators import is_uii_email




logger = logging.getLogger(__name__)


async def init_admin(email: str = None, password: str = None):
    """Seed the admin account from ADMIN_EMAIL / ADMIN_PASSWORD if it does not exist yet"""
    email = (email or config.ADMIN_EMAIL).strip().lower()
    password = password or config.ADMIN_PASSWORD
    if not email or not password:
        logger.info("ADMIN_EMAIL/ADMIN_PASSWORD not set, skipping admin seed")
        return None

    async with new_session() as session, session.begin():
        existing = await UserRepository.get_user_by_email(session, email)
        if existing:
            return existing

        admin = await UserRepository.create_user(
            session,
            UserOrm(
                email=email,
                password_hash=hash_password(password),
                full_name="Administrator",
                phone_number="+620000000000",
                role=UserRole.ADMIN,
                is_uii_civitas=is_uii_email(email),
                is_approved=True,
            ),
        )

    logger.info("Admin account %s created", email)
    return admin
