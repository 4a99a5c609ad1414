"""Download endpoint."""

from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from restora.api.dependencies import get_pipeline_manager
from restora.models.errors import ValidationError
from restora.models.pipeline import PipelineStage
from restora.pipeline.manager import PipelineManager

router = APIRouter(prefix="/api/v1", tags=["download"])


@router.get("/download/{job_id}")
async def download_output(
    job_id: str,
    manager: PipelineManager = Depends(get_pipeline_manager),
):
    """Download the restored recording."""
    state = manager.get_job_state(job_id)
    if not state:
        raise ValidationError(f"Job {job_id} not found")

    if state.stage != PipelineStage.COMPLETE:
        raise ValidationError(f"Job is not complete (current stage: {state.stage.value})")

    if not state.output_path or not Path(state.output_path).exists():
        raise ValidationError("Output file not found")

    output = Path(state.output_path)
    return FileResponse(path=output, media_type="video/mp4", filename=output.name)
