"""
Request and response models for the Composition API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..playback.grid import MAX_GRID_SIZE, MIN_GRID_SIZE
from ..playback.tone import WaveType

MAX_TEMPO = 600


# Auth


class RegisterRequest(BaseModel):
    """Schema for user registration"""

    username: str = Field(..., description="3 to 50 characters")
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="Password (min 6 characters)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"username": "fourier", "email": "fourier@example.com", "password": "harmonic"}
        }
    )

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not 3 <= len(v) <= 50:
            raise ValueError("Username must be between 3 and 50 characters")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v


class LoginRequest(BaseModel):
    """Schema for user login"""

    email: str
    password: str


class UserOut(BaseModel):
    id: str
    username: str
    email: str
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    message: str
    user: UserOut
    token: str


class MeResponse(BaseModel):
    user: UserOut


# Compositions


class PlaybackSettings(BaseModel):
    """How a composition should be played back."""

    model_config = ConfigDict(extra="ignore")

    wave_type: WaveType = WaveType.SINE
    tempo: int = Field(120, ge=1, le=MAX_TEMPO)
    grid_size: Optional[int] = Field(None, ge=MIN_GRID_SIZE, le=MAX_GRID_SIZE)


class CompositionIn(BaseModel):
    """Body for creating or fully replacing a composition."""

    title: str = Field(..., max_length=255)
    description: Optional[str] = None
    equations: List[str] = Field(..., min_length=MIN_GRID_SIZE, max_length=MAX_GRID_SIZE)
    settings: PlaybackSettings = Field(default_factory=PlaybackSettings)
    is_public: bool = False

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Squares",
                "description": "x^2 walking up the scale",
                "equations": ["x", "x^2", "sin(x)*8", "i*x"],
                "settings": {"wave_type": "triangle", "tempo": 140},
                "is_public": True,
            }
        }
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title and equations are required")
        return v


class CompositionOut(BaseModel):
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    equations: List[str]
    settings: Optional[Dict[str, Any]] = None
    is_public: bool
    play_count: int
    created_at: datetime
    updated_at: datetime


class CompositionWithCounts(CompositionOut):
    likes_count: int = 0
    comments_count: int = 0


class CompositionDetail(CompositionWithCounts):
    username: str
    user_has_liked: bool = False


class GalleryItem(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    created_at: datetime
    play_count: int
    username: str
    likes_count: int = 0
    comments_count: int = 0


class CompositionResponse(BaseModel):
    message: str
    composition: CompositionOut


class CompositionDetailResponse(BaseModel):
    composition: CompositionDetail


class CompositionListResponse(BaseModel):
    compositions: List[CompositionWithCounts]


class GalleryResponse(BaseModel):
    compositions: List[GalleryItem]


class LikeResponse(BaseModel):
    message: str
    liked: bool


# Comments


class CommentIn(BaseModel):
    content: str = Field("", validate_default=True)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Comment content required")
        return v


class CommentOut(BaseModel):
    id: str
    composition_id: str
    user_id: str
    username: str
    content: str
    created_at: datetime
    updated_at: datetime


class CommentResponse(BaseModel):
    message: str
    comment: CommentOut


class CommentListResponse(BaseModel):
    comments: List[CommentOut]


class MessageResponse(BaseModel):
    message: str
