"""
HTTP routes for the contact, gallery and profile API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile

from roopsnap.backends import FallbackChain, sort_newest_first, utc_now_iso
from roopsnap.dependencies import (
    get_contact_chain,
    get_document_store,
    get_object_storage,
    get_photo_chain,
    get_profile_store,
)
from roopsnap.docstore import DocumentStore
from roopsnap.errors import BackendError, NotFoundError, ValidationError
from roopsnap.profile import ProfileStore
from roopsnap.schemas import (
    ContactCreatedResponse,
    ContactMessage,
    ContactRequest,
    DeleteRequest,
    HealthResponse,
    Photo,
    PhotoCreatedResponse,
    PhotoUrlRequest,
    Profile,
    ProfileRequest,
    ProfileUpdatedResponse,
    SuccessResponse,
)
from roopsnap.storage import ObjectStorage
from roopsnap.uploads import normalize_upload

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_id(payload: Optional[DeleteRequest]) -> str:
    if payload is None or payload.id is None or payload.id == "":
        raise ValidationError("No ID provided")
    return str(payload.id)


async def _read_json_object(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationError("Invalid JSON body", details=str(e)) from e
    if not isinstance(body, dict):
        raise ValidationError("Invalid JSON body", details="Expected a JSON object")
    return body


def _validate(model, body: dict):
    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid request", details=e.errors(include_url=False, include_context=False)
        ) from e


@router.get("/contact", response_model=list[ContactMessage])
def list_contact_messages(contacts: FallbackChain = Depends(get_contact_chain)):
    messages = contacts.call("list", lambda backend: backend.list_messages())
    return sort_newest_first(messages)


@router.post("/contact", response_model=ContactCreatedResponse)
def create_contact_message(
    payload: ContactRequest, contacts: FallbackChain = Depends(get_contact_chain)
):
    fields = payload.model_dump()
    fields["created_at"] = utc_now_iso()
    saved = contacts.call("insert", lambda backend: backend.insert_message(fields))
    return ContactCreatedResponse(data=saved)


@router.delete("/contact", response_model=SuccessResponse)
def delete_contact_message(
    payload: Optional[DeleteRequest] = None,
    contacts: FallbackChain = Depends(get_contact_chain),
):
    record_id = _require_id(payload)
    deleted = contacts.call("delete", lambda backend: backend.delete_message(record_id))
    if not deleted:
        raise NotFoundError("Message not found")
    return SuccessResponse()


@router.get("/photos", response_model=list[Photo])
def list_photos(photos: FallbackChain = Depends(get_photo_chain)):
    records = photos.call("list", lambda backend: backend.list_photos())
    return sort_newest_first(records)


@router.post("/photos", response_model=PhotoCreatedResponse)
async def create_photo(
    request: Request,
    photos: FallbackChain = Depends(get_photo_chain),
    storage: Optional[ObjectStorage] = Depends(get_object_storage),
):
    """
    Add a photo either from a multipart file upload or from a JSON body that
    already carries its URL (a public link or a data URI).
    """
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" in content_type:
        form = await request.form()
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise ValidationError("No file uploaded")
        data = await upload.read()
        url = normalize_upload(data, upload.filename, upload.content_type, storage)
        category = form.get("category")
        fields = {
            "url": url,
            "category": category if isinstance(category, str) else None,
            "created_at": utc_now_iso(),
        }
    elif "application/json" in content_type:
        payload = _validate(PhotoUrlRequest, await _read_json_object(request))
        if not payload.url:
            raise ValidationError("No URL provided")
        fields = {
            "url": payload.url,
            "category": payload.category,
            "created_at": payload.created_at or utc_now_iso(),
        }
    else:
        raise ValidationError("Invalid content type")

    saved = photos.call("insert", lambda backend: backend.insert_photo(fields))
    return PhotoCreatedResponse(data=saved)


def _stored_object_key(
    photos: FallbackChain, storage: Optional[ObjectStorage], record_id: str
) -> Optional[str]:
    """Bucket key of the photo's image when it was uploaded to our storage."""
    if storage is None:
        return None
    try:
        records = photos.call("list", lambda backend: backend.list_photos())
    except BackendError as e:
        logger.warning("Photo lookup before delete failed: %s", e.details)
        return None
    for record in records:
        if record["id"] == record_id:
            return storage.object_key(record["url"])
    return None


@router.delete("/photos", response_model=SuccessResponse)
def delete_photo(
    payload: Optional[DeleteRequest] = None,
    photos: FallbackChain = Depends(get_photo_chain),
    storage: Optional[ObjectStorage] = Depends(get_object_storage),
):
    record_id = _require_id(payload)
    object_key = _stored_object_key(photos, storage, record_id)
    deleted = photos.call("delete", lambda backend: backend.delete_photo(record_id))
    if not deleted:
        raise NotFoundError("Photo not found")
    if object_key:
        try:
            storage.delete(object_key)
        except Exception as e:
            logger.warning("Could not remove stored object %s: %s", object_key, e)
    return SuccessResponse()


@router.get("/profile", response_model=Profile)
def get_profile(profiles: Optional[ProfileStore] = Depends(get_profile_store)):
    stored = None
    if profiles is not None:
        try:
            stored = profiles.get()
        except Exception as e:
            logger.warning("Profile lookup failed, serving defaults: %s", e)
    return Profile.from_document(stored)


@router.post("/profile", response_model=ProfileUpdatedResponse)
async def update_profile(
    request: Request,
    profiles: Optional[ProfileStore] = Depends(get_profile_store),
):
    if "application/json" not in request.headers.get("content-type", ""):
        raise ValidationError("Invalid content type")
    payload = _validate(ProfileRequest, await _read_json_object(request))

    if profiles is None:
        raise BackendError(
            "MongoDB not configured",
            details="Please set MONGODB_URI environment variable.",
        )
    try:
        profiles.update(payload.model_dump(exclude_unset=True))
    except Exception as e:
        logger.error("Profile update failed: %s", e)
        raise BackendError("Database error", details=str(e)) from e
    logger.info("Profile updated")
    return ProfileUpdatedResponse()


@router.get("/health", response_model=HealthResponse)
def health(
    document_store: Optional[DocumentStore] = Depends(get_document_store),
    contacts: FallbackChain = Depends(get_contact_chain),
    photos: FallbackChain = Depends(get_photo_chain),
    storage: Optional[ObjectStorage] = Depends(get_object_storage),
    profiles: Optional[ProfileStore] = Depends(get_profile_store),
):
    if document_store is None:
        database = "not configured"
    else:
        try:
            document_store.ping()
            database = "ok"
        except Exception as e:
            logger.warning("Document store ping failed: %s", e)
            database = "unreachable"
    return HealthResponse(
        database=database,
        backends={
            "contact": contacts.names,
            "photos": photos.names,
            "uploads": "object-storage" if storage is not None else "data-uri",
            "profile": "document" if profiles is not None else "defaults",
        },
    )
