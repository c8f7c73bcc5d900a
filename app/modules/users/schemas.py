from pydantic import BaseModel, EmailStr
from typing import Optional, List, Dict
from datetime import datetime


class UserProfileCreate(BaseModel):
    first_name: str
    last_name: str = ""
    email: EmailStr


class UserResponse(BaseModel):
    id: str
    first_name: str
    last_name: str = ""
    email: str
    signup_date: datetime

    class Config:
        from_attributes = True


class UserLookupRequest(BaseModel):
    user_ids: List[str]


class UserSummary(BaseModel):
    name: str
    email: str


class UserLookupResponse(BaseModel):
    users: Dict[str, UserSummary]


class UserByEmailResponse(BaseModel):
    user: Optional[UserResponse] = None
