"""Pipeline manager: denoise, then sync, then upscale for one recording."""

import logging
import shutil
import uuid
from datetime import UTC, datetime
from pathlib import Path

from restora.audio.denoise import denoise_video
from restora.config import Settings, get_settings
from restora.extractors.validators import validate_input_video
from restora.models.errors import ProcessingError, RestoraError
from restora.models.job import DenoiseParams, Job, UpscaleParams
from restora.models.options import RestoreOptions
from restora.models.pipeline import PipelineStage, PipelineState
from restora.models.segment import Segment
from restora.storage.temp_store import TempFileManager
from restora.sync.drift import correct_drift
from restora.upscale.pipeline import upscale_video

logger = logging.getLogger(__name__)

FINISHED_STAGES = (PipelineStage.COMPLETE, PipelineStage.FAILED)


def stage_output_paths(
    input_path: Path, options: RestoreOptions, final_scale: int, output_dir: Path | None = None
) -> dict[PipelineStage, Path]:
    """Output file per enabled stage: `<base>-NR`, `-NR-sync`, `-NR-sync-x2`."""
    output_dir = output_dir or input_path.parent
    suffix = input_path.suffix or ".mp4"
    name = input_path.stem
    paths: dict[PipelineStage, Path] = {}
    if options.denoise:
        name += "-NR"
        paths[PipelineStage.DENOISE] = output_dir / f"{name}{suffix}"
    if options.sync:
        name += "-sync"
        paths[PipelineStage.SYNC] = output_dir / f"{name}{suffix}"
    if options.upscale:
        name += f"-x{final_scale}"
        paths[PipelineStage.UPSCALE] = output_dir / f"{name}{suffix}"
    return paths


class PipelineManager:
    """Manages restoration jobs and runs the stage sequence."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.temp_store = TempFileManager(self.settings.temp_dir)
        self._jobs: dict[str, PipelineState] = {}
        self._cancelled: set[str] = set()

    def create_job(self, input_path: Path | None = None) -> PipelineState:
        """Create a new restoration job."""
        job_id = str(uuid.uuid4())
        state = PipelineState(
            job_id=job_id,
            stage=PipelineStage.QUEUED,
            started_at=datetime.now(UTC),
            updated_at=datetime.now(UTC),
            input_path=str(input_path) if input_path else None,
        )
        self._jobs[job_id] = state
        self.temp_store.create_job_dir(job_id)
        return state

    def get_job_state(self, job_id: str) -> PipelineState | None:
        """Get current state of a job."""
        return self._jobs.get(job_id)

    def cancel_job(self, job_id: str) -> bool:
        """Cancel a job. Takes effect at the next stage or segment boundary.

        Returns False for unknown jobs and for jobs that already finished.
        """
        state = self._jobs.get(job_id)
        if state is not None and state.stage not in FINISHED_STAGES:
            self._cancelled.add(job_id)
            self._update_state(job_id, PipelineStage.CANCELLED, message="Job cancelled")
            return True
        return False

    def process(
        self,
        job_id: str,
        input_path: Path,
        options: RestoreOptions | None = None,
        output_dir: Path | None = None,
    ) -> PipelineState:
        """Run the enabled stages in order: denoise -> sync -> upscale.

        Each stage reads the previous stage's output. A skipped drift
        correction hands the denoised file straight to the upscaler.
        """
        if job_id not in self._jobs:
            raise ProcessingError(f"Job {job_id} not found")

        options = options or RestoreOptions()
        state = self._jobs[job_id]
        state.input_path = str(input_path)
        outputs = stage_output_paths(
            input_path, options, self.settings.final_scale, output_dir
        )
        job = Job.from_settings(
            job_id,
            input_path,
            list(outputs.values())[-1] if outputs else input_path,
            self.settings,
            segment_seconds=options.segment_seconds,
            denoise=self._denoise_params(options),
            upscale=self._upscale_params(options),
        )
        current = input_path

        try:
            self._check_cancelled(job_id)
            self._update_state(job_id, PipelineStage.VALIDATION, 0.02, "Validating input...")
            validate_input_video(input_path, self.settings)
            if output_dir is not None:
                output_dir.mkdir(parents=True, exist_ok=True)

            if options.denoise:
                self._check_cancelled(job_id)
                self._update_state(job_id, PipelineStage.DENOISE, 0.05, "Denoising audio...")
                current = denoise_video(
                    current,
                    outputs[PipelineStage.DENOISE],
                    job.denoise,
                    self.settings,
                )
                state.denoised_path = str(current)

            if options.sync:
                self._check_cancelled(job_id)
                self._update_state(job_id, PipelineStage.SYNC, 0.25, "Correcting drift...")

                def on_sync_progress(progress: float):
                    self._update_state(
                        job_id,
                        PipelineStage.SYNC,
                        0.25 + progress * 0.1,
                        f"Correcting drift: {progress * 100:.0f}%",
                    )

                current = correct_drift(
                    current, outputs[PipelineStage.SYNC], self.settings, on_sync_progress
                )
                state.synced_path = str(current)

            if options.upscale:
                self._check_cancelled(job_id)
                self._update_state(job_id, PipelineStage.UPSCALE, 0.35, "Upscaling video...")

                def on_segment(segment: Segment, total: int):
                    state.segments_done = segment.index + 1
                    state.segments_total = total
                    self._update_state(
                        job_id,
                        PipelineStage.UPSCALE,
                        0.35 + 0.6 * state.segments_done / max(total, 1),
                        f"Upscaled segment {state.segments_done}/{total}",
                    )
                    self._check_cancelled(job_id)

                current = upscale_video(
                    current,
                    outputs[PipelineStage.UPSCALE],
                    reset_segments=options.reset_segments,
                    settings=self.settings,
                    on_segment=on_segment,
                    job=job,
                )

            current = self._keep_output(job, current)
            self._update_state(job_id, PipelineStage.COMPLETE, 1.0, "Restoration complete!")
            state.output_path = str(current)
            state.completed_at = datetime.now(UTC)
            self.temp_store.cleanup_job(job_id)
            return state

        except RestoraError as e:
            self._mark_failed(job_id, str(e))
            raise
        except Exception as e:
            self._mark_failed(job_id, str(e))
            raise ProcessingError(f"Pipeline failed: {e}")

    def _keep_output(self, job: Job, path: Path) -> Path:
        """Move a final output that lives in the job temp dir out of it.

        A stage that leaves its input unchanged (negligible drift) returns that
        input, which for uploads sits in the temp dir removed on completion.
        """
        job_dir = self.temp_store.get_job_dir(job.job_id)
        if job_dir is None or not path.resolve().is_relative_to(job_dir.resolve()):
            return path
        target = job.output_path
        if target.resolve().is_relative_to(job_dir.resolve()):
            target = self.settings.output_dir / job.job_id / target.name
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(path, target)
        logger.info("Moved final output %s to %s", path, target)
        return target

    def _denoise_params(self, options: RestoreOptions) -> DenoiseParams:
        params = DenoiseParams.from_settings(self.settings)
        overrides = {}
        if options.nr_amount is not None:
            overrides["nr_amount"] = options.nr_amount
        if options.norm_db is not None:
            overrides["norm_db"] = options.norm_db
        return params.model_copy(update=overrides)

    def _upscale_params(self, options: RestoreOptions) -> UpscaleParams:
        params = UpscaleParams.from_settings(self.settings)
        overrides = {}
        if options.crf is not None:
            overrides["crf"] = options.crf
        if options.tile_size is not None:
            overrides["tile_size"] = options.tile_size
        return params.model_copy(update=overrides)

    def _mark_failed(self, job_id: str, message: str):
        if job_id in self._cancelled:
            self._update_state(job_id, PipelineStage.CANCELLED, message="Job cancelled")
        else:
            self._update_state(job_id, PipelineStage.FAILED, message=message)

    def _update_state(
        self, job_id: str, stage: PipelineStage, progress: float | None = None, message: str = ""
    ):
        """Update pipeline state. A cancelled job only accepts CANCELLED."""
        if job_id in self._cancelled and stage != PipelineStage.CANCELLED:
            return
        if job_id in self._jobs:
            state = self._jobs[job_id]
            state.stage = stage
            if progress is not None:
                state.progress = min(1.0, progress)
            state.message = message
            state.updated_at = datetime.now(UTC)
            if stage == PipelineStage.FAILED:
                state.error = message

    def _check_cancelled(self, job_id: str):
        """Check if job has been cancelled and raise if so."""
        if job_id in self._cancelled:
            raise ProcessingError("Job was cancelled", component="pipeline")

    def delete_job_data(self, job_id: str) -> None:
        """Delete all temporary data for a job."""
        self.temp_store.cleanup_job(job_id)
        if job_id in self._jobs:
            del self._jobs[job_id]
        self._cancelled.discard(job_id)
