from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, EmailStr


# Users / Auth

class SignupRequest(BaseModel):
    """Request model to register a new user"""
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="User email, used as login key")
    password: str = Field(..., description="Plaintext password")


class LoginRequest(BaseModel):
    """Request model to log in with email and password"""
    email: str = Field(..., description="User email")
    password: str = Field(..., description="Plaintext password")


class UserResponse(BaseModel):
    """User response without sensitive fields"""
    id: int
    name: str
    email: str
    created_at: datetime

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """Signed session token plus the public user projection"""
    token: str = Field(..., description="JWT bearer token")
    user: UserResponse


# Notes

class NoteCreateRequest(BaseModel):
    """Create note request"""
    title: str = Field(..., max_length=255)
    content: str = Field(..., description="Note content")
    color: Optional[str] = Field(None, max_length=50, description="Color tag, defaults to 'default'")
    pinned: bool = Field(False)


class NoteUpdateRequest(BaseModel):
    """Update note request (partial)"""
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = Field(None)
    color: Optional[str] = Field(None, max_length=50)
    pinned: Optional[bool] = Field(None)
    archived: Optional[bool] = Field(None)


class NoteResponse(BaseModel):
    """Note response model"""
    id: int
    title: str
    content: str
    color: str
    pinned: bool
    archived: bool
    deleted: bool
    user_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class NoteEnvelope(BaseModel):
    note: NoteResponse


class NotesListResponse(BaseModel):
    notes: List[NoteResponse]


class MessageResponse(BaseModel):
    message: str
