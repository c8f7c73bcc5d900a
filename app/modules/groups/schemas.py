from pydantic import BaseModel, EmailStr
from typing import Optional, Literal
from datetime import datetime
from app.modules.events.schemas import EventResponse

Role = Literal["admin", "member"]


class GroupCreate(BaseModel):
    name: str
    description: Optional[str] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class GroupResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class UserGroupResponse(GroupResponse):
    role: Role


class GroupMemberAdd(BaseModel):
    user_id: str
    role: Role = "member"


class GroupMemberResponse(BaseModel):
    group_id: str
    user_id: str
    role: Role
    joined_at: datetime

    class Config:
        from_attributes = True


class GroupInviteCreate(BaseModel):
    email: EmailStr


class GroupInviteResponse(BaseModel):
    id: str
    group_id: str
    email: str
    invited_by: str
    status: Literal["pending", "accepted", "declined"]
    created_at: datetime

    class Config:
        from_attributes = True


class AvailabilityEvent(EventResponse):
    member_name: Optional[str] = None
    member_email: Optional[str] = None
