from typing import Any

from fastapi import APIRouter, Depends

from app.api import deps
from app.schemas.meeting import MeetingResponse, VideoTokenRequest, VideoTokenResponse
from app.services.meeting_service import ZoomClient, create_hms_token, get_zoom_client

router = APIRouter(dependencies=[Depends(deps.require_subscription)])


@router.post("/zoom/create-meeting", response_model=MeetingResponse)
async def create_zoom_meeting(zoom: ZoomClient = Depends(get_zoom_client)) -> Any:
    """
    Schedule a Zoom meeting and return its id and join link.
    """
    return await zoom.create_meeting()


@router.post("/hms/token", response_model=VideoTokenResponse)
async def create_video_token(token_in: VideoTokenRequest) -> Any:
    """
    Issue a 100ms app token for joining a video room.
    """
    return VideoTokenResponse(token=create_hms_token(token_in.room_id, token_in.role))
