from datetime import datetime
from pathlib import PurePath
from typing import Annotated

from fastapi import APIRouter, Form, HTTPException, UploadFile
from fastapi_pagination import Page
from fastapi_pagination.ext.databases import apaginate
from pydantic import BaseModel

from voxly.db import get_database
from voxly.db.jobs import Job, JobStatus, jobs_controller
from voxly.llm.prompts import parse_template_param
from voxly.services.job_process import (
    ValidationOk,
    dispatch_job_processing,
    upload_job_audio,
)

router = APIRouter()


class GetJobMinimal(BaseModel):
    id: str
    storage_key: str
    template: str | None
    status: JobStatus
    created_at: datetime
    updated_at: datetime


class GetJob(GetJobMinimal):
    transcript: str | None
    summary: dict | None


class UpdateJob(BaseModel):
    template: str


def job_response(job: Job) -> GetJob:
    return GetJob(**job.model_dump(), summary=job.summary)


async def get_job_or_404(job_id: str) -> Job:
    job = await jobs_controller.get_by_id(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.post("/jobs", response_model=GetJob)
async def jobs_create(
    file: UploadFile,
    template: Annotated[str | None, Form()] = None,
):
    filename = PurePath(file.filename or "").name
    if not filename:
        raise HTTPException(status_code=400, detail="File name is required")

    # ensure the upload is back to the beginning
    await file.seek(0)
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="File is empty")

    storage_key = await upload_job_audio(filename, data)
    job = await jobs_controller.add(
        storage_key=storage_key,
        template=parse_template_param(template) if template else None,
    )

    # launch a background task to process the file
    dispatch_job_processing(ValidationOk(job_id=job.id, storage_key=storage_key))
    return job_response(job)


@router.get("/jobs", response_model=Page[GetJobMinimal])
async def jobs_list(status: JobStatus | None = None):
    return await apaginate(
        get_database(),
        await jobs_controller.get_all(
            status=status,
            order_by="-created_at",
            return_query=True,
        ),
    )


@router.get("/jobs/{job_id}", response_model=GetJob)
async def job_get(job_id: str):
    return job_response(await get_job_or_404(job_id))


@router.patch("/jobs/{job_id}", response_model=GetJob)
async def job_update(job_id: str, info: UpdateJob):
    job = await get_job_or_404(job_id)
    template = parse_template_param(info.template)
    await jobs_controller.update(job.id, {"template": template})
    return job_response(await get_job_or_404(job_id))
