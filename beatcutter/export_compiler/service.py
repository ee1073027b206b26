"""ExportCompiler service: turns a project into a render plan and renders it."""

import logging
import os
from pathlib import Path

from beatcutter.common.errors import MissingSourceError, NoValidSegmentsError, RenderFailedError
from beatcutter.export_compiler.filter_graph import (
    AUDIO_OUTPUT_LABEL,
    VIDEO_OUTPUT_LABEL,
    SegmentSource,
    audio_chain,
    build_video_graph,
    format_number,
    is_frame_aligned,
)
from beatcutter.export_compiler.schemas import ExportSettings, RenderPlan
from beatcutter.render.runner import ProgressCallback, RenderRunner
from beatcutter.render.schemas import RenderJobRequest, RenderJobResult
from beatcutter.timeline.schemas import ProjectState, SourceClip

logger = logging.getLogger(__name__)


def _ensure_readable(clip: SourceClip) -> None:
    path = Path(clip.file_path)
    if not path.is_file() or not os.access(path, os.R_OK):
        raise MissingSourceError(str(path), clip.id)


class ExportCompilerService:
    """Service for compiling a timeline into renderer arguments."""

    def compile(self, project: ProjectState, settings: ExportSettings) -> RenderPlan:
        """Compile the project's video and audio tracks into a render plan.

        Every source file is checked before anything is built, so a missing
        file fails the export before any render starts.

        Args:
            project: The finalized project.
            settings: Output format.

        Returns:
            The RenderPlan with the full renderer argument list.

        Raises:
            MissingSourceError: If a referenced source file is unreadable.
            NoValidSegmentsError: If the video track has nothing to render.
        """
        input_paths: list[str] = []
        input_indices: dict[str, int] = {}
        sources: list[SegmentSource] = []

        video_track = project.video_track
        segments = video_track.ordered_segments if video_track is not None else []
        for segment in segments:
            clip = project.find_clip(segment.source_clip_id)
            if clip is None:
                logger.warning(
                    "Skipping segment %s: clip %s is not in the pool",
                    segment.id,
                    segment.source_clip_id,
                )
                continue

            index = input_indices.get(clip.id)
            if index is None:
                _ensure_readable(clip)
                index = len(input_paths)
                input_indices[clip.id] = index
                input_paths.append(clip.file_path)
            sources.append(SegmentSource(segment, index, clip.duration_ms))

        if not sources:
            raise NoValidSegmentsError()

        audio = self._audio_source(project)
        audio_index: int | None = None
        if audio is not None:
            audio_clip, _ = audio
            _ensure_readable(audio_clip)
            audio_index = len(input_paths)
            input_paths.append(audio_clip.file_path)

        constant_frame_rate = is_frame_aligned(
            (s.segment for s in sources), settings.frame_rate
        )
        chains, total_ms = build_video_graph(sources, settings, constant_frame_rate)
        total_duration_sec = total_ms / 1000

        if audio is not None and audio_index is not None:
            _, lead_ms = audio
            chains.append(audio_chain(audio_index, lead_ms, total_duration_sec))

        filter_complex = ";".join(chains)
        args = self._encode_args(
            input_paths,
            filter_complex,
            settings,
            total_duration_sec,
            constant_frame_rate,
            has_audio=audio is not None,
        )

        logger.info(
            "Compiled %d segments from %d inputs: %.3fs, %s",
            len(sources),
            len(input_paths),
            total_duration_sec,
            "constant frame rate" if constant_frame_rate else "variable frame rate",
        )
        return RenderPlan(
            args=args,
            filter_complex=filter_complex,
            input_paths=input_paths,
            output_path=settings.output_path,
            total_duration_sec=total_duration_sec,
            constant_frame_rate=constant_frame_rate,
            segment_count=len(sources),
            has_audio=audio is not None,
        )

    def _audio_source(self, project: ProjectState) -> tuple[SourceClip, int] | None:
        """Soundtrack clip and its time at timeline 0, in ms."""
        track = project.audio_track
        if track is None or not track.segments:
            return None

        segment = track.ordered_segments[0]
        clip = project.find_clip(segment.source_clip_id)
        if clip is None:
            logger.warning(
                "Exporting without audio: clip %s is not in the pool",
                segment.source_clip_id,
            )
            return None

        lead_ms = (
            project.intro_skip_ms
            + segment.source_start_offset_ms
            - segment.timeline_start_ms
        )
        return clip, lead_ms

    def _encode_args(
        self,
        input_paths: list[str],
        filter_complex: str,
        settings: ExportSettings,
        total_duration_sec: float,
        constant_frame_rate: bool,
        has_audio: bool,
    ) -> list[str]:
        args = ["-hide_banner", "-y"]
        for path in input_paths:
            args.extend(["-i", path])

        args.extend(["-filter_complex", filter_complex, "-map", f"[{VIDEO_OUTPUT_LABEL}]"])
        if has_audio:
            args.extend(
                [
                    "-map",
                    f"[{AUDIO_OUTPUT_LABEL}]",
                    "-c:a",
                    "aac",
                    "-b:a",
                    settings.audio_bitrate,
                ]
            )
        else:
            args.append("-an")

        args.extend(
            [
                "-c:v",
                "libx264",
                "-preset",
                settings.preset,
                "-b:v",
                settings.video_bitrate,
                "-pix_fmt",
                "yuv420p",
            ]
        )
        if constant_frame_rate:
            args.extend(["-r", format_number(settings.frame_rate), "-fps_mode", "cfr"])
        else:
            args.extend(["-fps_mode", "vfr"])

        args.extend(
            [
                "-t",
                format_number(total_duration_sec),
                "-movflags",
                "+faststart",
                settings.output_path,
            ]
        )
        return args


class ExportService:
    """Service that compiles a project and runs the render."""

    def __init__(self, compiler: ExportCompilerService, runner: RenderRunner) -> None:
        self.compiler = compiler
        self.runner = runner

    async def export(
        self,
        project: ProjectState,
        settings: ExportSettings,
        job_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> RenderJobResult:
        """Compile and render in one step."""
        plan = self.compiler.compile(project, settings)
        return await self.render(plan, job_id, on_progress)

    async def render(
        self,
        plan: RenderPlan,
        job_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> RenderJobResult:
        """Run a compiled plan through the renderer.

        Failures are not retried.

        Raises:
            RenderFailedError: If the renderer exits non-zero or is killed.
        """
        request = RenderJobRequest(
            job_id=job_id,
            args=plan.args,
            expected_duration_sec=plan.total_duration_sec or None,
        )
        result = await self.runner.run(request, on_progress)
        if not result.succeeded:
            error = RenderFailedError(job_id, result.exit_code, result.termination_signal)
            logger.error("[job=%s] %s", job_id, error)
            for line in result.log_tail[-5:]:
                logger.error("[job=%s] ffmpeg: %s", job_id, line)
            raise error

        logger.info("[job=%s] Rendered %s", job_id, plan.output_path)
        return result
