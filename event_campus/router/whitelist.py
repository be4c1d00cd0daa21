import logging
from typing import Optional, Literal
from fastapi import APIRouter, HTTPException, Depends, Query

from event_campus.models.auth import UserOrm
from event_campus.schemas.whitelist import (
    SWhitelistSubmit, SWhitelistReview, SWhitelistRequest, SWhitelistRequestWithUser, SWhitelistListResponse
)
from event_campus.services.whitelist import WhitelistService
from event_campus.utils.errors import ServiceError
from event_campus.utils.security import get_current_user, get_current_admin




logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/whitelist",
    tags=["Organizer whitelist"]
)


@router.post("/request", response_model=SWhitelistRequest, status_code=201)
async def submit_whitelist_request(
    request_data: SWhitelistSubmit,
    current_user: UserOrm = Depends(get_current_user)
):
    """Ask to become an event organizer"""
    try:
        return await WhitelistService.submit_request(current_user.id, request_data)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Submitting whitelist request failed")
        raise HTTPException(status_code=500, detail="failed to submit whitelist request")


@router.get("/my-request", response_model=SWhitelistRequest)
async def get_my_whitelist_request(current_user: UserOrm = Depends(get_current_user)):
    """Latest whitelist request of the current user"""
    try:
        return await WhitelistService.get_my_request(current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Loading whitelist request failed")
        raise HTTPException(status_code=500, detail="failed to get whitelist request")


@router.get("/requests", response_model=SWhitelistListResponse)
async def list_whitelist_requests(
    status: Optional[Literal["pending", "approved", "rejected"]] = Query(None, description="Filter by status"),
    current_admin: UserOrm = Depends(get_current_admin)
):
    """All whitelist requests (admin)"""
    try:
        requests = await WhitelistService.list_requests(status)
        items = [
            SWhitelistRequestWithUser(
                **SWhitelistRequest.model_validate(item["request"]).model_dump(),
                user_name=item["user_name"],
                user_email=item["user_email"],
            )
            for item in requests
        ]
        return SWhitelistListResponse(requests=items, total_count=len(items))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Listing whitelist requests failed")
        raise HTTPException(status_code=500, detail="failed to get whitelist requests")


@router.patch("/{request_id}/review", response_model=SWhitelistRequest)
async def review_whitelist_request(
    request_id: int,
    review: SWhitelistReview,
    current_admin: UserOrm = Depends(get_current_admin)
):
    """Approve or reject a pending request (admin)"""
    try:
        return await WhitelistService.review_request(current_admin.id, request_id, review)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        logger.exception("Reviewing whitelist request %s failed", request_id)
        raise HTTPException(status_code=500, detail="failed to review whitelist request")
