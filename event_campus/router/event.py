import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, Query

from event_campus.models.auth import UserOrm
from event_campus.schemas.event import (
    SEventCreate, SEventUpdate, SEventFilter, SEventWithOrganizer, SEventOwnerView,
    SEventListResponse, SEventOwnerListResponse, SEventDeleteResult, SReminderResult,
    EventCategoryLiteral, EventStatusLiteral
)
from event_campus.schemas.registration import (
    SRegistration, SRegistrationResult, SRegistrationWithUser, SEventRegistrationsResponse
)
from event_campus.schemas.attendance import (
    SAttendanceMark, SAttendanceBulkMark, SAttendance, SAttendanceWithUser, SEventAttendanceResponse
)
from event_campus.services import scheduler
from event_campus.services.attendance import AttendanceService
from event_campus.services.event import EventService
from event_campus.services.registration import RegistrationService
from event_campus.utils.errors import ServiceError
from event_campus.utils.security import get_current_user, get_current_organizer




logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/events",
    tags=["Events"]
)


def _event_view(event, organizer_name: Optional[str] = None, schema=SEventWithOrganizer):
    return schema.model_validate(event).model_copy(update={"organizer_name": organizer_name})


def _total_pages(total_count: int, page_size: int) -> int:
    return (total_count + page_size - 1) // page_size if page_size > 0 else 0


@router.get("", response_model=SEventListResponse)
async def list_events(
    category: Optional[EventCategoryLiteral] = Query(None, description="Filter by category"),
    status: Optional[EventStatusLiteral] = Query(None, description="Filter by status, published by default"),
    is_uii_only: Optional[bool] = Query(None, description="Filter UII-only events"),
    start_from: Optional[datetime] = Query(None, description="Only events starting at or after this time"),
    start_until: Optional[datetime] = Query(None, description="Only events starting before this time"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Page size")
):
    """Public event listing"""
    try:
        event_filter = SEventFilter(
            category=category,
            status=status,
            is_uii_only=is_uii_only,
            start_from=start_from,
            start_until=start_until,
        )
        events, total_count = await EventService.list_events(event_filter, page, page_size)

        return SEventListResponse(
            events=[_event_view(item["event"], item["organizer_name"]) for item in events],
            total_count=total_count,
            page=page,
            page_size=page_size,
            total_pages=_total_pages(total_count, page_size)
        )
    except Exception:
        logger.exception("Listing events failed")
        raise HTTPException(status_code=500, detail="failed to get events")


@router.get("/my-events", response_model=SEventOwnerListResponse)
async def get_my_events(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Page size"),
    current_user: UserOrm = Depends(get_current_organizer)
):
    """Events created by the current organizer, in every status"""
    try:
        events, total_count = await EventService.get_organizer_events(current_user.id, page, page_size)

        return SEventOwnerListResponse(
            events=[_event_view(item["event"], item["organizer_name"], SEventOwnerView) for item in events],
            total_count=total_count,
            page=page,
            page_size=page_size,
            total_pages=_total_pages(total_count, page_size)
        )
    except Exception:
        logger.exception("Listing events of organizer %s failed", current_user.id)
        raise HTTPException(status_code=500, detail="failed to get events")


@router.get("/{event_id}", response_model=SEventWithOrganizer)
async def get_event(event_id: int):
    """Event details"""
    try:
        event_data = await EventService.get_event(event_id)
        return _event_view(event_data["event"], event_data["organizer_name"])
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Loading event %s failed", event_id)
        raise HTTPException(status_code=500, detail="failed to get event")


@router.post("", response_model=SEventOwnerView, status_code=201)
async def create_event(
    event_data: SEventCreate,
    current_user: UserOrm = Depends(get_current_organizer)
):
    """Create a draft event"""
    try:
        event = await EventService.create_event(current_user.id, event_data)
        return _event_view(event, current_user.full_name, SEventOwnerView)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Creating event failed")
        raise HTTPException(status_code=500, detail="failed to create event")


@router.put("/{event_id}", response_model=SEventOwnerView)
async def update_event(
    event_id: int,
    event_data: SEventUpdate,
    current_user: UserOrm = Depends(get_current_organizer)
):
    """Update an event owned by the current organizer"""
    try:
        event = await EventService.update_event(current_user.id, event_id, event_data)
        return _event_view(event, current_user.full_name, SEventOwnerView)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Updating event %s failed", event_id)
        raise HTTPException(status_code=500, detail="failed to update event")


@router.delete("/{event_id}", response_model=SEventDeleteResult)
async def delete_event(
    event_id: int,
    current_user: UserOrm = Depends(get_current_organizer)
):
    """Delete a draft event, or cancel a published one"""
    try:
        outcome = await EventService.delete_event(current_user.id, event_id)
        return SEventDeleteResult(success=True, outcome=outcome, message=f"event {outcome}")
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Deleting event %s failed", event_id)
        raise HTTPException(status_code=500, detail="failed to delete event")


@router.post("/{event_id}/publish", response_model=SEventOwnerView)
async def publish_event(
    event_id: int,
    current_user: UserOrm = Depends(get_current_organizer)
):
    """Open a draft event for registration"""
    try:
        event = await EventService.publish_event(current_user.id, event_id)
        return _event_view(event, current_user.full_name, SEventOwnerView)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Publishing event %s failed", event_id)
        raise HTTPException(status_code=500, detail="failed to publish event")


@router.post("/{event_id}/reminders", response_model=SReminderResult)
async def send_event_reminders(
    event_id: int,
    current_user: UserOrm = Depends(get_current_organizer)
):
    """Send pending reminders for the event now"""
    try:
        sent = await scheduler.send_event_reminders(current_user.id, event_id)
        return SReminderResult(event_id=event_id, reminders_sent=sent)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Sending reminders for event %s failed", event_id)
        raise HTTPException(status_code=500, detail="failed to send reminders")


@router.post("/{event_id}/register", response_model=SRegistrationResult, status_code=201)
async def register_for_event(
    event_id: int,
    current_user: UserOrm = Depends(get_current_user)
):
    """Take a seat, or a waitlist place when the event is full"""
    try:
        result = await RegistrationService.register_for_event(current_user.id, event_id)
        return SRegistrationResult(
            registration=SRegistration.model_validate(result["registration"]),
            waitlist_position=result["waitlist_position"],
            message=result["message"]
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Registering user %s for event %s failed", current_user.id, event_id)
        raise HTTPException(status_code=500, detail="failed to register for event")


@router.get("/{event_id}/registrations", response_model=SEventRegistrationsResponse)
async def get_event_registrations(
    event_id: int,
    status: Optional[str] = Query(None, description="Filter by registration status"),
    current_user: UserOrm = Depends(get_current_organizer)
):
    """Participants of an event (organizer)"""
    try:
        registrations = await RegistrationService.get_event_registrations(current_user.id, event_id, status)
        items = [
            SRegistrationWithUser(
                **SRegistration.model_validate(item["registration"]).model_dump(),
                user_name=item["user_name"],
                user_email=item["user_email"],
                user_phone=item["user_phone"],
            )
            for item in registrations
        ]
        return SEventRegistrationsResponse(event_id=event_id, registrations=items, total_count=len(items))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Listing registrations of event %s failed", event_id)
        raise HTTPException(status_code=500, detail="failed to get registrations")


@router.post("/{event_id}/attendance", response_model=SAttendance, status_code=201)
async def mark_attendance(
    event_id: int,
    attendance_data: SAttendanceMark,
    current_user: UserOrm = Depends(get_current_organizer)
):
    """Check in one participant"""
    try:
        return await AttendanceService.mark_attendance(
            current_user.id, event_id, attendance_data.user_id, attendance_data.notes
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Marking attendance for event %s failed", event_id)
        raise HTTPException(status_code=500, detail="failed to mark attendance")


@router.post("/{event_id}/attendance/bulk")
async def bulk_mark_attendance(
    event_id: int,
    attendance_data: SAttendanceBulkMark,
    current_user: UserOrm = Depends(get_current_organizer)
):
    """Check in several participants at once"""
    try:
        marked = await AttendanceService.bulk_mark_attendance(current_user.id, event_id, attendance_data.user_ids)
        return {
            "success": True,
            "message": f"attendance marked for {marked} participants",
            "marked_count": marked
        }
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Bulk attendance for event %s failed", event_id)
        raise HTTPException(status_code=500, detail="failed to mark attendance")


@router.get("/{event_id}/attendance", response_model=SEventAttendanceResponse)
async def get_event_attendance(
    event_id: int,
    current_user: UserOrm = Depends(get_current_organizer)
):
    """Attendance list of an event (organizer)"""
    try:
        attendances = await AttendanceService.get_event_attendance(current_user.id, event_id)
        items = [
            SAttendanceWithUser(
                **SAttendance.model_validate(item["attendance"]).model_dump(),
                user_name=item["user_name"],
                user_email=item["user_email"],
            )
            for item in attendances
        ]
        return SEventAttendanceResponse(event_id=event_id, attendances=items, total_count=len(items))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Loading attendance of event %s failed", event_id)
        raise HTTPException(status_code=500, detail="failed to get attendance")
