from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from voxly.db.jobs import jobs_controller
from voxly.llm.prompts import parse_template_param
from voxly.services.job_process import (
    ValidationAlreadyRunning,
    ValidationNotReady,
    ValidationOk,
    dispatch_job_processing,
    validate_job_for_processing,
)

router = APIRouter()


class ProcessRequest(BaseModel):
    template: str | None = None
    # reprocess even if the job is still marked as processing
    force: bool = False


class ProcessStatus(BaseModel):
    status: str


@router.post("/jobs/{job_id}/process")
async def job_process(job_id: str, body: ProcessRequest | None = None) -> ProcessStatus:
    job = await jobs_controller.get_by_id(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    validation = validate_job_for_processing(job, force=bool(body and body.force))
    if isinstance(validation, ValidationNotReady):
        raise HTTPException(status_code=400, detail=validation.detail)
    elif isinstance(validation, ValidationAlreadyRunning):
        return ProcessStatus(status=validation.detail)
    elif not isinstance(validation, ValidationOk):
        raise TypeError(f"Unexpected validation result: {validation!r}")

    template = None
    if body and body.template:
        template = parse_template_param(body.template)

    dispatch_job_processing(validation, template=template)
    return ProcessStatus(status="ok")
