import logging
from fastapi import APIRouter, HTTPException, Depends

from event_campus.models.auth import UserOrm
from event_campus.schemas.registration import SRegistration, SRegistrationWithEvent, SRegistrationListResponse
from event_campus.services.registration import RegistrationService
from event_campus.utils.errors import ServiceError
from event_campus.utils.security import get_current_user




logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/registrations",
    tags=["Registrations"]
)


@router.get("/my", response_model=SRegistrationListResponse)
async def get_my_registrations(current_user: UserOrm = Depends(get_current_user)):
    """Registrations of the current user, newest first"""
    try:
        registrations = await RegistrationService.get_my_registrations(current_user.id)
        items = [
            SRegistrationWithEvent(
                **SRegistration.model_validate(item["registration"]).model_dump(),
                event_title=item["event_title"],
                event_start_date=item["event_start_date"],
                event_status=item["event_status"],
            )
            for item in registrations
        ]
        return SRegistrationListResponse(registrations=items, total_count=len(items))
    except Exception:
        logger.exception("Listing registrations of user %s failed", current_user.id)
        raise HTTPException(status_code=500, detail="failed to get registrations")


@router.delete("/{registration_id}", response_model=SRegistration)
async def cancel_registration(
    registration_id: int,
    current_user: UserOrm = Depends(get_current_user)
):
    """Cancel a registration or leave the waitlist"""
    try:
        return await RegistrationService.cancel_registration(current_user.id, registration_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Cancelling registration %s failed", registration_id)
        raise HTTPException(status_code=500, detail="failed to cancel registration")
