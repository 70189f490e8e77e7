"""Simulation API routes: one deck size or one seeded playout."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from ...config import Settings
from ...models.level import ConfigurationError
from ...models.schemas import (
    SimulateRequest,
    SimulateResponse,
    DeckSizeResultItem,
    PlayoutRequest,
    PlayoutResponse,
    ErrorResponse,
)
from ...core.playout import PlayoutEngine
from ...core.tuner import DifficultyTuner, new_base_seed
from ..deps import get_app_settings, get_difficulty_tuner, parse_level_or_400

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/simulate", tags=["simulate"])


@router.post(
    "",
    response_model=SimulateResponse,
    responses={400: {"model": ErrorResponse}},
)
def simulate_deck_size(
    request: SimulateRequest,
    tuner: DifficultyTuner = Depends(get_difficulty_tuner),
    settings: Settings = Depends(get_app_settings),
) -> SimulateResponse:
    """
    Play `iterations` games at one deck size and aggregate the outcomes.

    Args:
        request: SimulateRequest with level, deck size and parameters.

    Returns:
        SimulateResponse with the per-size statistics and the seed used.
    """
    level = parse_level_or_400(request.level_json)

    seed = request.seed if request.seed is not None else settings.default_seed
    if seed is None:
        seed = new_base_seed()

    try:
        result = tuner.run_for_size(
            level,
            request.deck_size,
            request.iterations,
            favorable=request.favorable.to_params(),
            target_close_win_rate=request.target_close_win_rate,
            base_seed=seed,
            geometry=settings.geometry(),
            turn_cap=settings.turn_cap,
            batches=settings.max_workers,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return SimulateResponse(
        level_id=level.level_id,
        seed=seed,
        result=DeckSizeResultItem(**result.to_dict()),
    )


@router.post(
    "/playout",
    response_model=PlayoutResponse,
    responses={400: {"model": ErrorResponse}},
)
def simulate_playout(
    request: PlayoutRequest,
    settings: Settings = Depends(get_app_settings),
) -> PlayoutResponse:
    """
    Play a single seeded game, optionally with move history.

    With `use_level_stack` the level's own cards_in_stack is used: fixed
    entries are dealt as-is and only random markers go through the
    favorable generator.
    """
    level = parse_level_or_400(request.level_json)

    try:
        engine = PlayoutEngine(
            level,
            favorable=request.favorable.to_params(),
            geometry=settings.geometry(),
            turn_cap=settings.turn_cap,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    draw_pile_spec = level.draw_pile_spec() if request.use_level_stack else None
    deck_size = request.deck_size if request.deck_size is not None else level.settings.nominal_deck_size

    outcome = engine.play(
        deck_size,
        seed=request.seed,
        draw_pile_spec=draw_pile_spec,
        record=request.record_history,
    )
    logger.debug(
        "Playout of '%s' (seed %d): %s after %d moves",
        level.level_id, request.seed, "won" if outcome.won else "lost", outcome.moves,
    )
    return PlayoutResponse(**outcome.to_dict())
