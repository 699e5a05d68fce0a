# =============================================================================
# app/routers/ambassadors.py - Ambassador Profile Endpoints
# =============================================================================
# Endpoints:
# - POST  /ambassadors          Signup (multipart: form fields + headshot + video)
# - GET   /ambassadors/me       The caller's profile
# - PATCH /ambassadors/me       Edit profile (only sent fields change; media optional)
# - GET   /ambassadors/options  Role/skill/language choices
#
# Signup and edit answer 207 when the profile saved but its
# role/skill/language links did not.
# =============================================================================

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from pydantic import ValidationError

from app.auth import AuthUser, get_current_user
from app.config import settings
from app.dependencies import SupabaseDep
from app.exceptions import InvalidRequestError
from core.models.ambassador import (
    AmbassadorCreate,
    AmbassadorProfile,
    AmbassadorUpdate,
    ProfileOptions,
    SignupResult,
)
from core.services.ambassador_service import AmbassadorService, media_error
from core.services.storage_service import StorageService
from lib.media import MediaError, MediaFile, check_size
from lib.supabase_client import SupabaseClients

logger = logging.getLogger(__name__)

router = APIRouter()

PARTIAL_STATUS = 207


# =============================================================================
# Form parsing
# =============================================================================

def _ids(values: list[str]) -> list[int]:
    """Repeated fields or comma lists of integer ids; junk is dropped."""
    ids: list[int] = []
    for value in values:
        for part in value.split(","):
            part = part.strip()
            if part.isdigit():
                ids.append(int(part))
    return ids


def profile_form(
    full_name: str = Form(...),
    phone_number: Optional[str] = Form(None),
    instagram_handle: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    state_region: Optional[str] = Form(None),
    country: Optional[str] = Form(None),
    timezone: Optional[str] = Form(None),
    experience_level: str = Form("new"),
    availability_status: str = Form("available"),
    bio: Optional[str] = Form(None),
    willing_to_travel: bool = Form(False),
    has_vehicle: bool = Form(False),
    can_work_weekends: bool = Form(True),
    can_work_nights: bool = Form(True),
    role_ids: list[str] = Form([]),
    skill_ids: list[str] = Form([]),
    language_ids: list[str] = Form([]),
) -> dict[str, Any]:
    """Profile fields shared by signup and edit."""
    return {
        "full_name": full_name,
        "phone_number": phone_number,
        "instagram_handle": instagram_handle,
        "city": city,
        "state_region": state_region,
        "country": country,
        "timezone": timezone,
        "experience_level": experience_level,
        "availability_status": availability_status,
        "bio": bio,
        "willing_to_travel": willing_to_travel,
        "has_vehicle": has_vehicle,
        "can_work_weekends": can_work_weekends,
        "can_work_nights": can_work_nights,
        "role_ids": _ids(role_ids),
        "skill_ids": _ids(skill_ids),
        "language_ids": _ids(language_ids),
    }


def profile_patch_form(
    full_name: Optional[str] = Form(None),
    phone_number: Optional[str] = Form(None),
    instagram_handle: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    state_region: Optional[str] = Form(None),
    country: Optional[str] = Form(None),
    timezone: Optional[str] = Form(None),
    experience_level: Optional[str] = Form(None),
    availability_status: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    willing_to_travel: Optional[bool] = Form(None),
    has_vehicle: Optional[bool] = Form(None),
    can_work_weekends: Optional[bool] = Form(None),
    can_work_nights: Optional[bool] = Form(None),
    role_ids: Optional[list[str]] = Form(None),
    skill_ids: Optional[list[str]] = Form(None),
    language_ids: Optional[list[str]] = Form(None),
) -> dict[str, Any]:
    """Only the profile fields present in the edit request."""
    fields = {
        "full_name": full_name,
        "phone_number": phone_number,
        "instagram_handle": instagram_handle,
        "city": city,
        "state_region": state_region,
        "country": country,
        "timezone": timezone,
        "experience_level": experience_level,
        "availability_status": availability_status,
        "bio": bio,
        "willing_to_travel": willing_to_travel,
        "has_vehicle": has_vehicle,
        "can_work_weekends": can_work_weekends,
        "can_work_nights": can_work_nights,
    }
    sent = {name: value for name, value in fields.items() if value is not None}
    for name, values in (("role_ids", role_ids), ("skill_ids", skill_ids), ("language_ids", language_ids)):
        if values is not None:
            sent[name] = _ids(values)
    return sent


def _command(model, **fields):
    """Build a command model, turning validation errors into a 400."""
    try:
        return model(**fields)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        raise InvalidRequestError(f"{where}: {first.get('msg')}" if where else first.get("msg"))


async def _media(upload: Optional[UploadFile], field: str, max_bytes: int) -> Optional[MediaFile]:
    """Read an upload into memory, refusing oversized bodies before reading them."""
    if upload is None or not upload.filename:
        return None
    try:
        check_size(field, upload.size, max_bytes)
    except MediaError as e:
        raise media_error(e)
    return MediaFile(
        filename=upload.filename,
        content_type=upload.content_type or "",
        content=await upload.read(),
    )


def _service(clients: SupabaseClients, user: AuthUser) -> AmbassadorService:
    # Row writes run as the user (RLS); media goes through the service role
    return AmbassadorService(
        clients.for_user(user.access_token),
        StorageService(clients.admin()),
        settings,
    )


def _respond(result: SignupResult, response: Response, ok_status: int) -> SignupResult:
    response.status_code = PARTIAL_STATUS if result.status == "partial" else ok_status
    return result


# =============================================================================
# Endpoints
# =============================================================================

@router.post("", response_model=SignupResult, status_code=status.HTTP_201_CREATED)
async def create_ambassador(
    response: Response,
    clients: SupabaseDep,
    form: dict = Depends(profile_form),
    email: Optional[str] = Form(None),
    headshot: UploadFile = File(...),
    video: UploadFile = File(...),
    user: AuthUser = Depends(get_current_user),
) -> SignupResult:
    """
    Create the caller's ambassador profile.

    Raises:
        400: Invalid fields or media, or the profile insert was rejected
        413: Media over the size limit
        502: Storage upload failed
    """
    command = _command(AmbassadorCreate, email=email or user.email or "", **form)

    headshot_file = await _media(headshot, "headshot", settings.headshot_max_bytes)
    video_file = await _media(video, "video", settings.video_max_bytes)
    if headshot_file is None or video_file is None:
        raise InvalidRequestError("Please add a headshot and an intro video.")

    result = await _service(clients, user).signup(user.id, command, headshot_file, video_file)
    return _respond(result, response, status.HTTP_201_CREATED)


@router.get("/options", response_model=ProfileOptions)
async def profile_options(
    clients: SupabaseDep,
    user: AuthUser = Depends(get_current_user),
) -> ProfileOptions:
    """Role, skill and language choices for the profile forms."""
    return _service(clients, user).options()


@router.get("/me", response_model=AmbassadorProfile)
async def get_my_profile(
    clients: SupabaseDep,
    user: AuthUser = Depends(get_current_user),
) -> AmbassadorProfile:
    """
    The caller's profile.

    Raises:
        404: No profile yet
    """
    return _service(clients, user).get_own_profile(user.id)


@router.patch("/me", response_model=SignupResult)
async def update_my_profile(
    response: Response,
    clients: SupabaseDep,
    form: dict = Depends(profile_patch_form),
    headshot: Optional[UploadFile] = File(None),
    video: Optional[UploadFile] = File(None),
    user: AuthUser = Depends(get_current_user),
) -> SignupResult:
    """
    Edit the caller's profile. Fields left out keep their values; new media
    replaces the old files.

    Raises:
        404: No profile yet
        400 / 413 / 502: As for signup
    """
    command = _command(AmbassadorUpdate, **form)
    result = await _service(clients, user).update(
        user.id,
        command,
        headshot=await _media(headshot, "headshot", settings.headshot_max_bytes),
        video=await _media(video, "video", settings.video_max_bytes),
        email=user.email,
    )
    return _respond(result, response, status.HTTP_200_OK)
