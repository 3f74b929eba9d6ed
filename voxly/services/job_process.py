"""
Job processing service - shared logic for the HTTP endpoint and the CLI.

Validation returns a result object instead of raising; callers decide how
each outcome is reported.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import BinaryIO, Literal, Union

from celery.result import AsyncResult

from voxly.db.jobs import Job, JobStatus
from voxly.logger import logger
from voxly.pipelines.main_file_pipeline import task_pipeline_file_process
from voxly.settings import settings
from voxly.storage import get_audio_storage
from voxly.utils import generate_uuid4


@dataclass
class ValidationOk:
    job_id: str
    storage_key: str


@dataclass
class ValidationAlreadyRunning:
    detail: str = "already running"


@dataclass
class ValidationNotReady:
    detail: str


ValidationResult = Union[ValidationOk, ValidationAlreadyRunning, ValidationNotReady]


@dataclass
class DispatchOk:
    task_id: str | None = None
    status: Literal["ok"] = "ok"


def is_job_stale(job: Job) -> bool:
    """A `processing` job nobody touched for PIPELINE_STALE_AFTER seconds."""
    updated_at = job.updated_at
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    max_age = timedelta(seconds=settings.PIPELINE_STALE_AFTER)
    return datetime.now(timezone.utc) - updated_at > max_age


def validate_job_for_processing(job: Job, force: bool = False) -> ValidationResult:
    """
    Check a job can be (re)processed.

    A job in `processing` is reported as already running, unless `force` is
    set or the job looks stuck (worker killed mid-run).
    """
    if job.status == JobStatus.PROCESSING and not force:
        if not is_job_stale(job):
            return ValidationAlreadyRunning()
        logger.warning(
            "Job stuck in processing, reprocessing",
            job_id=job.id,
            updated_at=job.updated_at,
        )

    if not job.storage_key:
        return ValidationNotReady(detail="Job has no audio file")

    return ValidationOk(job_id=job.id, storage_key=job.storage_key)


def dispatch_job_processing(
    validation: ValidationOk, template: str | None = None
) -> DispatchOk:
    payload = {"job_id": validation.job_id, "storage_key": validation.storage_key}
    if template:
        payload["template"] = template

    result: AsyncResult = task_pipeline_file_process.delay(**payload)
    logger.info(
        "Job processing dispatched",
        job_id=validation.job_id,
        template=template,
        task_id=result.id,
    )
    return DispatchOk(task_id=result.id)


async def upload_job_audio(filename: str, data: Union[bytes, BinaryIO]) -> str:
    """Store an audio file under a fresh `uploads/` key and return the key."""
    storage_key = f"uploads/{generate_uuid4()}/{filename}"
    await get_audio_storage().put_file(storage_key, data)
    logger.info("Audio uploaded", storage_key=storage_key)
    return storage_key
