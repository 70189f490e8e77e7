"""Deck size tuning API routes."""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from ...config import Settings
from ...models.level import ConfigurationError
from ...models.schemas import (
    TuneRequest,
    TuneResponse,
    ExportRequest,
    OptimizedLevelRequest,
    OptimizedLevelResponse,
    ErrorResponse,
)
from ...core.exporter import (
    build_optimized_level,
    export_run_csv,
    optimized_level_filename,
)
from ...core.tuner import DifficultyTuner, TuningRun
from ..deps import get_app_settings, get_difficulty_tuner, parse_level_or_400

router = APIRouter(prefix="/api/tune", tags=["tune"])


def _run_tuning(request: TuneRequest, tuner: DifficultyTuner, settings: Settings) -> TuningRun:
    level = parse_level_or_400(request.level_json)
    try:
        tuning_request = request.to_tuning_request(
            geometry=settings.geometry(),
            max_workers=settings.max_workers,
            turn_cap=settings.turn_cap,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if tuning_request.seed is None and settings.default_seed is not None:
        tuning_request.seed = settings.default_seed
    return tuner.run_range(level, tuning_request)


@router.post(
    "",
    response_model=TuneResponse,
    responses={400: {"model": ErrorResponse}},
)
def tune_level(
    request: TuneRequest,
    tuner: DifficultyTuner = Depends(get_difficulty_tuner),
    settings: Settings = Depends(get_app_settings),
) -> TuneResponse:
    """
    Sweep the deck size range and recommend a deck size.

    Args:
        request: TuneRequest with level, range, simulations and parameters.

    Returns:
        TuneResponse with one result per deck size, the optimal range and,
        when requested, the optimized level JSON.
    """
    run = _run_tuning(request, tuner, settings)
    data = run.to_dict()
    data.pop("request")

    if request.include_optimized_level and run.optimal is not None:
        data["optimized_level"] = build_optimized_level(
            request.level_json, run.optimal.recommended_size
        )

    return TuneResponse(**data)


@router.post(
    "/export",
    response_class=PlainTextResponse,
    responses={400: {"model": ErrorResponse}},
)
def export_tuning(
    request: ExportRequest,
    tuner: DifficultyTuner = Depends(get_difficulty_tuner),
    settings: Settings = Depends(get_app_settings),
) -> PlainTextResponse:
    """Run a tuning sweep and return the result table as delimited text."""
    run = _run_tuning(request, tuner, settings)
    text = export_run_csv(run, request.delimiter, request.include_metadata)
    return PlainTextResponse(text, media_type="text/csv")


@router.post(
    "/optimized-level",
    response_model=OptimizedLevelResponse,
    responses={400: {"model": ErrorResponse}},
)
async def optimized_level(request: OptimizedLevelRequest) -> OptimizedLevelResponse:
    """Build a copy of the level with an all-random draw pile of the given size."""
    parse_level_or_400(request.level_json)
    original = request.level_json.get("settings", {}).get("cards_in_stack") or []
    return OptimizedLevelResponse(
        file_name=optimized_level_filename(request.source_name, request.deck_size),
        original_deck_size=len(original),
        deck_size=request.deck_size,
        level_json=build_optimized_level(request.level_json, request.deck_size),
    )
