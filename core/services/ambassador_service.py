# =============================================================================
# core/services/ambassador_service.py - Ambassador Profile Intake & Edit
# =============================================================================
# Signup writes to two storage buckets and three tables with no transaction
# spanning them, so it runs as a saga (lib/saga.py):
#
#   upload_headshot -> upload_video -> insert_profile -> insert_joins
#
# Upload and profile failures undo the uploads already made. A failure in
# insert_joins leaves the profile in place and is reported as partial.
#
# Blocking Supabase calls run in worker threads so the join inserts can be
# issued concurrently.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from supabase import Client

from app.exceptions import (
    AmbassadorHubException,
    MediaValidationError,
    ProfileNotFoundError,
    ProfileWriteError,
)
from core.models.ambassador import (
    AmbassadorCreate,
    AmbassadorProfile,
    AmbassadorUpdate,
    ProfileOptions,
    SignupResult,
    VocabularyItem,
)
from core.services.storage_service import (
    HEADSHOT_BUCKET,
    VIDEO_BUCKET,
    StorageService,
    headshot_path,
    object_path,
    video_path,
)
from lib.media import MediaError, MediaFile, validate_headshot, validate_video
from lib.saga import Saga, SagaFailed, SagaOutcome, SagaStep
from lib.supabase_client import error_message

logger = logging.getLogger(__name__)

PROFILE_TABLE = "ambassadors"

# (join table, id column, attribute on the command)
JOIN_TABLES = (
    ("ambassador_roles", "role_id", "role_ids"),
    ("ambassador_skills", "skill_id", "skill_ids"),
    ("ambassador_languages", "language_id", "language_ids"),
)

PARTIAL_MESSAGE = "Ambassador saved, but roles/skills/languages failed to save: {error}"


def load_vocabulary(client: Client, table: str) -> list[VocabularyItem]:
    """All rows of a roles/skills/languages table, sorted by name."""
    result = client.table(table).select("id, name").order("name").execute()
    return [VocabularyItem(**row) for row in result.data or []]


def media_error(e: MediaError) -> MediaValidationError:
    return MediaValidationError(e.message, field=e.field, status_code=413 if e.too_large else 400)


class AmbassadorService:
    """
    Profile signup, edit and read for the signed-in ambassador.

    `client` should be scoped to the user so RLS ownership rules apply to
    row writes; `storage` may use the service-role client.
    """

    def __init__(self, client: Client, storage: StorageService, settings: Any):
        self.client = client
        self.storage = storage
        self.settings = settings

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate_media(self, headshot: MediaFile | None, video: MediaFile | None) -> None:
        """
        Check media before anything touches the network.

        Raises:
            MediaValidationError: 400 for type/duration, 413 for size
        """
        try:
            if headshot is not None:
                validate_headshot(headshot, self.settings.headshot_max_bytes)
            if video is not None:
                validate_video(video, self.settings.video_max_bytes, self.settings.VIDEO_MAX_SECONDS)
        except MediaError as e:
            raise media_error(e)

    # -------------------------------------------------------------------------
    # Saga steps
    # -------------------------------------------------------------------------

    def _upload_step(
        self,
        name: str,
        bucket: str,
        path: str,
        file: MediaFile,
        urls: dict[str, str],
        upsert: bool = False,
    ) -> SagaStep:
        """Upload `file` and record its public URL in `urls[name]`."""
        async def upload() -> str:
            urls[name] = await asyncio.to_thread(self.storage.upload, bucket, path, file, upsert)
            return urls[name]

        async def delete() -> None:
            await asyncio.to_thread(self.storage.delete, bucket, path)

        # an overwritten object can't be restored
        return SagaStep(name, upload, compensation=None if upsert else delete)

    def _insert_links(self, table: str, column: str, ambassador_id: str, ids: list[int]) -> None:
        rows = [{"ambassador_id": ambassador_id, column: i} for i in ids]
        self.client.table(table).insert(rows).execute()

    async def _insert_joins(self, ambassador_id: str, links: dict[str, list[int]]) -> int:
        """Insert all join rows concurrently; raise the first failure."""
        tasks = [
            asyncio.to_thread(self._insert_links, table, column, ambassador_id, links[attr])
            for table, column, attr in JOIN_TABLES
            if links.get(attr)
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        errors = [r for r in results if isinstance(r, Exception)]
        if errors:
            raise errors[0]
        return len(tasks)

    async def _replace_joins(self, ambassador_id: str, links: dict[str, list[int]]) -> int:
        """Delete the existing rows of each sent selection, then insert the new ids."""
        def clear(table: str) -> None:
            self.client.table(table).delete().eq("ambassador_id", ambassador_id).execute()

        await asyncio.gather(*(
            asyncio.to_thread(clear, table) for table, _, attr in JOIN_TABLES if attr in links
        ))
        return await self._insert_joins(ambassador_id, links)

    async def _remove_stale(self, bucket: str, old_url: str | None, new_path: str) -> None:
        """Delete the previous object when the new upload landed under another key."""
        old_path = object_path(bucket, old_url)
        if old_path is None or old_path == new_path:
            return
        try:
            await asyncio.to_thread(self.storage.delete, bucket, old_path)
        except Exception as e:
            logger.warning(f"Could not remove replaced media {bucket}/{old_path}: {e}")

    @staticmethod
    def _error_for(failure: SagaFailed) -> AmbassadorHubException:
        """API error for a failed step, keeping the raw database message."""
        if isinstance(failure.error, AmbassadorHubException):
            return failure.error
        return ProfileWriteError(error_message(failure.error))

    @staticmethod
    def _result(outcome: SagaOutcome, ambassador_id: UUID, message: str, urls: dict[str, str]) -> SignupResult:
        if outcome.partial:
            return SignupResult(
                status="partial",
                ambassador_id=ambassador_id,
                message=PARTIAL_MESSAGE.format(error=error_message(outcome.error)),
                headshot_url=urls.get("upload_headshot"),
                video_url=urls.get("upload_video"),
            )
        return SignupResult(
            status="ok",
            ambassador_id=ambassador_id,
            message=message,
            headshot_url=urls.get("upload_headshot"),
            video_url=urls.get("upload_video"),
        )

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def signup(
        self,
        user_id: UUID | str,
        command: AmbassadorCreate,
        headshot: MediaFile,
        video: MediaFile,
    ) -> SignupResult:
        """
        Create an ambassador profile with its media and role/skill/language links.

        Returns:
            SignupResult with status "ok", or "partial" when only the links failed

        Raises:
            MediaValidationError: If media is rejected (nothing uploaded)
            StorageUploadError: If an upload fails (earlier uploads deleted)
            ProfileWriteError: If the profile insert fails (uploads deleted)
        """
        self.validate_media(headshot, video)

        ambassador_id = uuid4()
        aid = str(ambassador_id)
        urls: dict[str, str] = {}

        async def insert_profile() -> None:
            row = command.to_row(
                ambassador_id,
                UUID(str(user_id)),
                urls.get("upload_headshot"),
                urls.get("upload_video"),
                datetime.now(timezone.utc),
            )
            await asyncio.to_thread(lambda: self.client.table(PROFILE_TABLE).insert(row).execute())

        saga = Saga("ambassador_signup", [
            self._upload_step(
                "upload_headshot", HEADSHOT_BUCKET, headshot_path(aid, headshot.extension), headshot, urls
            ),
            self._upload_step(
                "upload_video", VIDEO_BUCKET, video_path(aid, video.extension), video, urls
            ),
            SagaStep("insert_profile", insert_profile),
            SagaStep(
                "insert_joins",
                lambda: self._insert_joins(aid, command.links()),
                rollback_on_failure=False,
            ),
        ])

        try:
            outcome = await saga.run()
        except SagaFailed as failure:
            logger.error(f"Ambassador signup failed at {failure.step}: {failure.error}")
            raise self._error_for(failure) from failure.error

        logger.info(f"Ambassador {aid} created for user {user_id} ({'partial' if outcome.partial else 'ok'})")
        return self._result(outcome, ambassador_id, "Ambassador profile created.", urls)

    async def update(
        self,
        user_id: UUID | str,
        command: AmbassadorUpdate,
        headshot: MediaFile | None = None,
        video: MediaFile | None = None,
        email: str | None = None,
    ) -> SignupResult:
        """
        Edit the caller's profile.

        Only the fields sent on `command` are written; a role, skill or
        language selection is replaced only when its ids were sent. Media is
        optional and overwrites in place.

        Raises:
            ProfileNotFoundError: If the caller has no profile
            MediaValidationError / StorageUploadError / ProfileWriteError
        """
        existing = self._own_row(user_id)
        self.validate_media(headshot, video)

        aid = str(existing["id"])
        urls: dict[str, str] = {}
        steps: list[SagaStep] = []
        # (bucket, previous public URL, new key) per uploaded file
        replaced: list[tuple[str, str | None, str]] = []

        if headshot is not None:
            path = headshot_path(aid, headshot.extension)
            steps.append(self._upload_step(
                "upload_headshot", HEADSHOT_BUCKET, path, headshot, urls, upsert=True,
            ))
            replaced.append((HEADSHOT_BUCKET, existing.get("headshot_url"), path))
        if video is not None:
            path = video_path(aid, video.extension)
            steps.append(self._upload_step(
                "upload_video", VIDEO_BUCKET, path, video, urls, upsert=True,
            ))
            replaced.append((VIDEO_BUCKET, existing.get("video_url"), path))

        async def update_profile() -> None:
            row = command.to_row(
                email, urls.get("upload_headshot"), urls.get("upload_video"), datetime.now(timezone.utc)
            )
            await asyncio.to_thread(
                lambda: self.client.table(PROFILE_TABLE).update(row).eq("id", aid).execute()
            )

        steps.append(SagaStep("update_profile", update_profile))
        links = command.links()
        if links:
            steps.append(
                SagaStep("replace_joins", lambda: self._replace_joins(aid, links), rollback_on_failure=False)
            )

        try:
            outcome = await Saga("ambassador_update", steps).run()
        except SagaFailed as failure:
            logger.error(f"Ambassador update failed at {failure.step}: {failure.error}")
            raise self._error_for(failure) from failure.error

        for bucket, old_url, new_path in replaced:
            await self._remove_stale(bucket, old_url, new_path)

        urls.setdefault("upload_headshot", existing.get("headshot_url"))
        urls.setdefault("upload_video", existing.get("video_url"))
        return self._result(outcome, UUID(aid), "Profile updated.", urls)

    def _own_row(self, user_id: UUID | str) -> dict[str, Any]:
        result = (
            self.client.table(PROFILE_TABLE)
            .select("*")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not result.data:
            raise ProfileNotFoundError(str(user_id))
        return result.data[0]

    def get_own_profile(self, user_id: UUID | str) -> AmbassadorProfile:
        """
        The caller's profile with its role/skill/language ids.

        Raises:
            ProfileNotFoundError: If the caller has no profile
        """
        row = self._own_row(user_id)
        links: dict[str, list[int]] = {}
        for table, column, attr in JOIN_TABLES:
            result = self.client.table(table).select(column).eq("ambassador_id", row["id"]).execute()
            links[attr] = [r[column] for r in result.data or []]
        return AmbassadorProfile(**{**row, **links})

    def options(self) -> ProfileOptions:
        """Role, skill and language choices for the forms."""
        return ProfileOptions(
            roles=load_vocabulary(self.client, "roles"),
            skills=load_vocabulary(self.client, "skills"),
            languages=load_vocabulary(self.client, "languages"),
        )
