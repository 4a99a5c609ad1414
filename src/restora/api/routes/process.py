"""Processing endpoints."""

from pathlib import Path

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, Field

from restora.api.dependencies import get_app_settings, get_pipeline_manager
from restora.config import Settings
from restora.models.errors import ValidationError
from restora.models.options import RestoreOptions
from restora.models.pipeline import PipelineStage
from restora.pipeline.manager import PipelineManager

router = APIRouter(prefix="/api/v1", tags=["process"])


class ProcessRequest(BaseModel):
    job_id: str
    options: RestoreOptions = Field(default_factory=RestoreOptions)


@router.post("/process")
async def start_processing(
    request: ProcessRequest,
    background_tasks: BackgroundTasks,
    manager: PipelineManager = Depends(get_pipeline_manager),
    settings: Settings = Depends(get_app_settings),
):
    """Start restoration for an uploaded recording."""
    state = manager.get_job_state(request.job_id)
    if not state:
        raise ValidationError(f"Job {request.job_id} not found")

    if not state.input_path:
        raise ValidationError("No recording uploaded for this job")
    if state.stage != PipelineStage.QUEUED:
        raise ValidationError(f"Job already started (current stage: {state.stage.value})")
    if not (request.options.denoise or request.options.sync or request.options.upscale):
        raise ValidationError("At least one of denoise, sync or upscale must be enabled")

    background_tasks.add_task(
        manager.process,
        job_id=request.job_id,
        input_path=Path(state.input_path),
        options=request.options,
        output_dir=settings.output_dir / request.job_id,
    )

    return {
        "job_id": request.job_id,
        "status": "processing",
        "message": "Processing started",
    }


@router.delete("/process/{job_id}")
async def cancel_processing(
    job_id: str,
    manager: PipelineManager = Depends(get_pipeline_manager),
):
    """Cancel a running job at the next stage or segment boundary."""
    state = manager.get_job_state(job_id)
    if not state:
        raise ValidationError(f"Job {job_id} not found")
    if not manager.cancel_job(job_id):
        raise ValidationError(f"Job already finished (current stage: {state.stage.value})")
    return {"job_id": job_id, "status": "cancelled"}
