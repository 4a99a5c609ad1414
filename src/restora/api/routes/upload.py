"""Upload endpoint."""

import shutil
from pathlib import Path

from fastapi import APIRouter, Depends, UploadFile

from restora.api.dependencies import get_app_settings, get_pipeline_manager, get_temp_store
from restora.config import Settings
from restora.extractors.validators import validate_file_format, validate_input_video
from restora.models.errors import ValidationError
from restora.pipeline.manager import PipelineManager
from restora.storage.temp_store import TempFileManager

router = APIRouter(prefix="/api/v1", tags=["upload"])


@router.post("/upload")
async def upload_recording(
    file: UploadFile,
    manager: PipelineManager = Depends(get_pipeline_manager),
    temp: TempFileManager = Depends(get_temp_store),
    settings: Settings = Depends(get_app_settings),
):
    """Upload a captured recording and create a job for it."""
    if not file.filename:
        raise ValidationError("No filename provided")

    filename = Path(file.filename).name
    validate_file_format(Path(filename), settings.allowed_video_formats)

    state = manager.create_job()
    job_dir = temp.get_job_dir(state.job_id) or temp.create_job_dir(state.job_id)
    file_path = job_dir / filename

    with open(file_path, "wb") as f:
        shutil.copyfileobj(file.file, f)

    try:
        info = validate_input_video(file_path, settings)
    except Exception:
        manager.delete_job_data(state.job_id)
        raise

    state.input_path = str(file_path)
    return {
        "job_id": state.job_id,
        "filename": filename,
        "path": str(file_path),
        "channels": info.channels if info.has_audio else 0,
        "frame_rate": info.frame_rate,
        "duration": info.container_duration,
        "message": "Recording uploaded successfully",
    }
