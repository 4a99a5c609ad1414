"""Celery task definitions."""

from pathlib import Path

from celery import Celery

from restora.config import get_settings
from restora.models.options import RestoreOptions

settings = get_settings()

celery_app = Celery(
    "restora",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    worker_concurrency=settings.max_concurrent_jobs,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)


@celery_app.task(bind=True, name="restora.restore_video")
def restore_video_task(
    self,
    job_id: str,
    input_path: str,
    options: dict | None = None,
    output_dir: str | None = None,
):
    """Celery task wrapping PipelineManager.process()."""
    from restora.pipeline.manager import PipelineManager

    manager = PipelineManager()

    # Ensure job exists
    if not manager.get_job_state(job_id):
        state = manager.create_job(Path(input_path))
        job_id = state.job_id

    try:
        result = manager.process(
            job_id=job_id,
            input_path=Path(input_path),
            options=RestoreOptions(**(options or {})),
            output_dir=Path(output_dir) if output_dir else None,
        )
        return {
            "job_id": result.job_id,
            "status": result.stage.value,
            "output_path": result.output_path,
        }
    except Exception as e:
        return {
            "job_id": job_id,
            "status": "failed",
            "error": str(e),
        }
