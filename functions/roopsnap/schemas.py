"""
Pydantic schemas for the studio site API.
"""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

DEFAULT_CATEGORY = "Portrait"
DEFAULT_PROFILE_NAME = "Roop"
DEFAULT_PROFILE_TITLE = "Professional Photographer & Visual Storyteller"


class ContactRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=1, max_length=320)
    phone: Optional[str] = Field(default=None, max_length=64)
    message: str = Field(..., min_length=1, max_length=5000)


class ContactMessage(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    message: str
    created_at: str


class ContactCreatedResponse(BaseModel):
    success: Literal[True] = True
    data: ContactMessage


class DeleteRequest(BaseModel):
    id: Optional[Union[str, int]] = None


class SuccessResponse(BaseModel):
    success: bool = True


class PhotoUrlRequest(BaseModel):
    url: Optional[str] = None
    category: Optional[str] = None
    created_at: Optional[str] = None


class Photo(BaseModel):
    id: str
    url: str
    category: str = DEFAULT_CATEGORY
    created_at: str


class PhotoCreatedResponse(BaseModel):
    success: Literal[True] = True
    data: Photo


class ProfileRequest(BaseModel):
    profileImage: Optional[str] = None
    name: Optional[str] = None
    title: Optional[str] = None
    bio: Optional[list[str]] = None


def _text_or(value, default):
    return value if isinstance(value, str) and value else default


class Profile(BaseModel):
    profileImage: Optional[str] = None
    name: str = DEFAULT_PROFILE_NAME
    title: str = DEFAULT_PROFILE_TITLE
    bio: list[str] = Field(default_factory=list)

    @classmethod
    def from_document(cls, document: Optional[dict]) -> "Profile":
        """
        Build a profile from a stored document. Empty fields and fields of the
        wrong type fall back to their defaults; a single bio string becomes a
        one-paragraph bio.
        """
        document = document if isinstance(document, dict) else {}
        bio = document.get("bio")
        if isinstance(bio, str):
            bio = [bio] if bio else []
        elif isinstance(bio, list):
            bio = [paragraph for paragraph in bio if isinstance(paragraph, str)]
        else:
            bio = []
        return cls(
            profileImage=_text_or(document.get("profileImage"), None),
            name=_text_or(document.get("name"), DEFAULT_PROFILE_NAME),
            title=_text_or(document.get("title"), DEFAULT_PROFILE_TITLE),
            bio=bio,
        )


class ProfileUpdatedResponse(BaseModel):
    success: Literal[True] = True
    message: str = "Profile updated successfully"


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    database: Literal["ok", "unreachable", "not configured"]
    backends: dict
