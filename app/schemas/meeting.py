from pydantic import BaseModel, Field


class MeetingResponse(BaseModel):
    meeting_id: int
    join_url: str


class VideoTokenRequest(BaseModel):
    room_id: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)


class VideoTokenResponse(BaseModel):
    token: str
