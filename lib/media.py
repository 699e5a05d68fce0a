# =============================================================================
# lib/media.py - Headshot & Intro Video Validation
# =============================================================================
# Checks uploaded media before anything is sent to storage:
# - headshot: JPEG/PNG/WebP, size limit
# - intro video: MP4/WebM/QuickTime, size limit, duration limit
#
# Video duration is read by opening the bytes in a throwaway PyAV container;
# nothing is written to disk.
#
# Usage:
#   from lib.media import MediaFile, validate_headshot
#   validate_headshot(MediaFile("me.png", "image/png", content), max_bytes=5 * 1024 * 1024)
# =============================================================================

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

import av
import av.error

logger = logging.getLogger(__name__)

HEADSHOT_TYPES = ("image/jpeg", "image/png", "image/webp")
VIDEO_TYPES = ("video/mp4", "video/webm", "video/quicktime")

# Fallback extension when the filename has none
_DEFAULT_EXT = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/quicktime": "mov",
}


class MediaError(Exception):
    """
    Media file rejected.

    `field` names the form field ("headshot" or "video"); `too_large` lets
    the HTTP layer answer 413 instead of 400.
    """

    def __init__(self, message: str, field: str, too_large: bool = False):
        super().__init__(message)
        self.message = message
        self.field = field
        self.too_large = too_large


@dataclass(frozen=True)
class MediaFile:
    """An uploaded file held in memory."""
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        """Lower-cased extension from the filename, else one implied by the MIME type."""
        if "." in self.filename:
            ext = self.filename.rsplit(".", 1)[-1].lower()
            if ext:
                return ext
        return _DEFAULT_EXT.get(self.content_type, "bin")


def _mb(max_bytes: int) -> int:
    return max_bytes // (1024 * 1024)


def check_size(field: str, size: int | None, max_bytes: int) -> None:
    """
    Raise a too-large MediaError for `field` ("headshot" or "video").

    An unknown size (None) passes; the full check runs once the bytes are read.
    """
    if size is not None and size > max_bytes:
        raise MediaError(
            f"{field.capitalize()} must be under {_mb(max_bytes)} MB.",
            field=field,
            too_large=True,
        )


def validate_headshot(file: MediaFile, max_bytes: int) -> None:
    """
    Raise MediaError unless the headshot is an allowed image under the size limit.
    """
    if file.content_type not in HEADSHOT_TYPES:
        raise MediaError("Headshot must be a JPEG, PNG, or WebP image.", field="headshot")
    check_size("headshot", file.size, max_bytes)


def read_duration(content: bytes) -> float:
    """
    Duration of a video in seconds.

    Uses the container duration when present, else the longest stream.

    Raises:
        MediaError: If the bytes can't be decoded or carry no duration
    """
    try:
        with av.open(io.BytesIO(content), mode="r") as container:
            if container.duration is not None:
                return container.duration / av.time_base
            durations = [
                float(stream.duration * stream.time_base)
                for stream in container.streams
                if stream.duration is not None and stream.time_base is not None
            ]
    except av.error.FFmpegError as e:
        logger.info(f"Could not decode video: {e}")
        raise MediaError("Could not read video file. Try a different format.", field="video")

    if not durations:
        raise MediaError("Could not read video file. Try a different format.", field="video")
    return max(durations)


def validate_video(file: MediaFile, max_bytes: int, max_seconds: int) -> float:
    """
    Raise MediaError unless the video is an allowed type, size and length.

    Returns:
        The measured duration in seconds
    """
    if file.content_type not in VIDEO_TYPES:
        raise MediaError("Video must be MP4, WebM, or MOV.", field="video")
    check_size("video", file.size, max_bytes)

    duration = read_duration(file.content)
    if duration > max_seconds:
        raise MediaError(
            f"Video must be {max_seconds} seconds or shorter. Yours is {round(duration)}s.",
            field="video",
        )
    return duration
