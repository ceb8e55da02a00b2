"""Media store: upload materialized artifacts to Supabase storage and record them."""

import logging
import random
import string
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from genstudio.media.materializer import Artifact
from genstudio.models.job import GenerationJob, JobKind
from genstudio.utils.errors import PersistenceError
from genstudio.utils.retry import with_retry

logger = logging.getLogger(__name__)

FOLDER_BY_KIND = {
    JobKind.IMAGE: "images",
    JobKind.VIDEO: "videos",
    JobKind.AUDIO: "audio",
}

EXTENSION_BY_TYPE = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
}

DEFAULT_EXTENSION = {
    JobKind.IMAGE: "png",
    JobKind.VIDEO: "mp4",
    JobKind.AUDIO: "mp3",
}


class SavedMedia(BaseModel):
    """Location of a persisted artifact."""

    public_url: str
    record_id: Optional[str] = None
    storage_path: str


def model_label(job: GenerationJob) -> str:
    params = job.submitted_params
    return str(params.get("model_name") or params.get("model") or job.operation)


class MediaStore:
    """Uploads artifacts to a Supabase bucket and inserts a metadata record."""

    def __init__(
        self,
        supabase_client: Any,
        bucket: str = "ai-generated-media",
        table: str = "ai_media_assets",
        max_retry_attempts: int = 3,
        base_delay: float = 1.0,
    ) -> None:
        """
        Initialize the MediaStore.

        Args:
            supabase_client: Supabase client instance
            bucket: Storage bucket receiving the files
            table: Table receiving one metadata row per file
            max_retry_attempts: Upload attempts before giving up
            base_delay: Base delay between upload attempts in seconds
        """
        self.supabase = supabase_client
        self.bucket = bucket
        self.table = table
        self.max_retry_attempts = max_retry_attempts
        self.base_delay = base_delay

    def storage_path(self, job: GenerationJob, artifact: Artifact) -> str:
        """Bucket path: ``{folder}/{provider}_{model}_{timestamp}_{suffix}.{ext}``."""
        folder = FOLDER_BY_KIND[job.kind]
        ext = EXTENSION_BY_TYPE.get(artifact.content_type or "", DEFAULT_EXTENSION[job.kind])
        provider = job.operation.split("-")[0]
        timestamp = int(datetime.utcnow().timestamp() * 1000)
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
        return f"{folder}/{provider}_{model_label(job)}_{timestamp}_{suffix}.{ext}"

    def build_record(
        self,
        job: GenerationJob,
        artifact: Artifact,
        path: str,
        user_id: Optional[str],
    ) -> dict[str, Any]:
        size = artifact.size
        return {
            "bucket_path": path,
            "file_name": path.rsplit("/", 1)[-1],
            "file_type": job.kind.value.upper(),
            "mime_type": artifact.content_type,
            "size_in_bytes": size,
            "user_id": user_id,
            "metadata": {
                "operation": job.operation,
                "model": model_label(job),
                "prompt": job.submitted_params.get("prompt"),
                "task_id": job.job_id,
                "original_url": artifact.source_url,
                "transport": artifact.transport,
                "file_size_mb": round(size / (1024 * 1024), 2),
                "generated_at": datetime.utcnow().isoformat(),
                "params": job.submitted_params,
            },
        }

    async def _upload(self, path: str, content: bytes, content_type: str) -> None:
        result = self.supabase.storage.from_(self.bucket).upload(
            path=path,
            file=content,
            file_options={"content-type": content_type, "cache-control": "3600"},
        )
        if not result:
            raise PersistenceError("Upload returned empty result")

    async def save(
        self,
        artifact: Artifact,
        job: GenerationJob,
        user_id: Optional[str] = None,
    ) -> SavedMedia:
        """
        Upload an artifact and record its metadata.

        Args:
            artifact: Materialized result with content
            job: The job that produced it
            user_id: Owner recorded with the media row

        Returns:
            SavedMedia with the public URL and record id

        Raises:
            PersistenceError: On any failure; the artifact rides along on the error
        """
        if not self.supabase:
            raise PersistenceError("Supabase client not configured", artifact=artifact)
        if not artifact.content:
            raise PersistenceError("Artifact has no content to upload", artifact=artifact)

        path = self.storage_path(job, artifact)
        content_type = artifact.content_type or "application/octet-stream"

        try:
            upload = with_retry(
                max_attempts=self.max_retry_attempts, base_delay=self.base_delay
            )(self._upload)
            await upload(path, artifact.content, content_type)

            public_url = self.supabase.storage.from_(self.bucket).get_public_url(path)

            record = self.build_record(job, artifact, path, user_id)
            result = self.supabase.table(self.table).insert(record).execute()
            if not result.data:
                raise PersistenceError("Failed to insert media record", artifact=artifact)

        except PersistenceError as e:
            e.artifact = artifact
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to save media: {e}", artifact=artifact)

        record_id = result.data[0].get("id")
        if record_id is not None:
            record_id = str(record_id)
        logger.info(f"Saved {job.kind.value} for job {job.job_id} to {path}")
        return SavedMedia(public_url=public_url, record_id=record_id, storage_path=path)


def create_media_store(supabase_client: Optional[Any] = None) -> MediaStore:
    """
    Create a MediaStore using application settings.

    Args:
        supabase_client: Optional Supabase client (built from settings when omitted)

    Returns:
        Configured MediaStore instance
    """
    from genstudio.config import get_settings

    settings = get_settings()
    if supabase_client is None and settings.supabase_url and settings.supabase_key:
        from supabase import create_client

        supabase_client = create_client(settings.supabase_url, settings.supabase_key)

    return MediaStore(
        supabase_client=supabase_client,
        bucket=settings.storage_bucket,
        table=settings.media_table,
        max_retry_attempts=settings.max_retry_attempts,
        base_delay=settings.base_delay_seconds,
    )
