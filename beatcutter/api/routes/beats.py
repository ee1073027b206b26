"""Beat analysis routes."""

import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool

from beatcutter.api.schemas import AnalyzeBeatsRequest, BeatGridRequest
from beatcutter.beat_analyzer.beat_grid import build_beat_grid
from beatcutter.beat_analyzer.metronome import analyze_audio_file
from beatcutter.beat_analyzer.schemas import BeatAnalysis, BeatGrid

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/grid", response_model=BeatGrid)
def beat_grid(request: BeatGridRequest) -> BeatGrid:
    """Build a beat grid from a tempo and anchor."""
    return build_beat_grid(request.bpm, request.offset, request.duration_sec)


@router.post("/analyze", response_model=BeatAnalysis)
async def analyze(request: AnalyzeBeatsRequest) -> BeatAnalysis:
    """Detect tempo and beats of an audio file."""
    audio_path = Path(request.audio_path)
    if not audio_path.is_file():
        raise HTTPException(status_code=404, detail=f"Audio file not found: {audio_path}")

    # Decoding and analysis are CPU bound
    analysis = await run_in_threadpool(analyze_audio_file, audio_path)
    logger.info(
        "Analyzed %s: %.1f BPM, %d beats",
        audio_path.name,
        analysis.beat_grid.bpm,
        len(analysis.beat_grid.beats),
    )
    return analysis
