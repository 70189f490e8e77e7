"""Pydantic schemas for API request/response validation."""
from pydantic import BaseModel, Field, model_validator
from typing import Dict, List, Any, Optional

from .level import FavorableParams, TuningRequest


class FavorableConfig(BaseModel):
    """Favorable draw probabilities."""
    base: float = Field(default=0.51, ge=0.0, le=1.0, description="Base favorable probability")
    final_boost: float = Field(default=0.25, ge=0.0, le=1.0, description="Boost near the end of the draw pile")
    bomb_boost: float = Field(default=0.33, ge=0.0, le=1.0, description="Boost while a bomb is urgent")
    final_stage_threshold: int = Field(default=2, ge=0, description="Draw pile cards left to trigger the final boost")
    bomb_urgency_threshold: int = Field(default=3, ge=0, description="Bomb countdown that counts as urgent")

    def to_params(self) -> FavorableParams:
        return FavorableParams(
            base=self.base,
            final_boost=self.final_boost,
            bomb_boost=self.bomb_boost,
            final_stage_threshold=self.final_stage_threshold,
            bomb_urgency_threshold=self.bomb_urgency_threshold,
        )


class AnalyzeRequest(BaseModel):
    """Request schema for layout analysis."""
    level_json: Dict[str, Any] = Field(..., description="Level JSON data to analyze")


class AnalyzeResponse(BaseModel):
    """Response schema for layout analysis."""
    level_id: str = Field(..., description="Level id")
    metrics: Dict[str, Any] = Field(..., description="Layout metrics")
    warnings: List[str] = Field(default=[], description="Layout warnings")


class SimulateRequest(BaseModel):
    """Request schema for simulating one deck size."""
    level_json: Dict[str, Any] = Field(..., description="Level JSON to simulate")
    deck_size: int = Field(..., ge=0, le=200, description="Draw pile size")
    iterations: int = Field(default=500, ge=1, le=20000, description="Number of playouts")
    target_close_win_rate: float = Field(default=0.7, ge=0.0, le=1.0, description="Close-win rate target")
    favorable: FavorableConfig = Field(default_factory=FavorableConfig)
    seed: Optional[int] = Field(default=None, ge=0, description="Base seed for reproducible runs")


class DeckSizeResultItem(BaseModel):
    """Aggregate statistics for one deck size."""
    deck_size: int
    total_games: int
    wins: int
    close_wins: int
    win_rate: float = Field(..., ge=0, le=1)
    close_win_rate: float = Field(..., ge=0, le=1)
    avg_moves_on_win: float
    avg_cards_remaining_on_win: float
    meets_target: bool
    loss_reasons: Dict[str, int] = Field(default={})


class SimulateResponse(BaseModel):
    """Response schema for one deck size."""
    level_id: str
    seed: int = Field(..., description="Base seed actually used")
    result: DeckSizeResultItem


class PlayoutRequest(BaseModel):
    """Request schema for a single seeded playout."""
    level_json: Dict[str, Any] = Field(..., description="Level JSON to play")
    deck_size: Optional[int] = Field(default=None, ge=0, le=200, description="Draw pile size (random pile)")
    use_level_stack: bool = Field(default=False, description="Play the level's own cards_in_stack")
    seed: int = Field(default=0, ge=0, description="Playout seed")
    favorable: FavorableConfig = Field(default_factory=FavorableConfig)
    record_history: bool = Field(default=True, description="Include move-by-move history")

    @model_validator(mode="after")
    def check_deck_source(self) -> "PlayoutRequest":
        if self.deck_size is None and not self.use_level_stack:
            raise ValueError("deck_size is required unless use_level_stack is true")
        return self


class PlayoutResponse(BaseModel):
    """Response schema for a single playout."""
    won: bool
    close_win: bool
    cards_remaining: int
    moves: int
    loss_reason: Optional[str] = None
    history: Optional[List[Dict[str, Any]]] = None


class TuneRequest(BaseModel):
    """Request schema for a full deck size tuning run."""
    level_json: Dict[str, Any] = Field(..., description="Level JSON to tune")
    min_deck_size: int = Field(default=10, ge=0, le=200, description="Smallest deck size tested")
    max_deck_size: int = Field(default=50, ge=0, le=200, description="Largest deck size tested")
    simulations_per_size: int = Field(default=500, ge=1, le=20000, description="Playouts per deck size")
    target_close_win_rate: float = Field(default=0.7, ge=0.0, le=1.0, description="Close-win rate target")
    favorable: FavorableConfig = Field(default_factory=FavorableConfig)
    seed: Optional[int] = Field(default=None, ge=0, description="Base seed for reproducible runs")
    include_optimized_level: bool = Field(default=False, description="Return the optimized level JSON")

    @model_validator(mode="after")
    def check_range(self) -> "TuneRequest":
        if self.max_deck_size < self.min_deck_size:
            raise ValueError("max_deck_size must be >= min_deck_size")
        return self

    def to_tuning_request(self, **engine: Any) -> TuningRequest:
        return TuningRequest(
            min_deck_size=self.min_deck_size,
            max_deck_size=self.max_deck_size,
            simulations_per_size=self.simulations_per_size,
            target_close_win_rate=self.target_close_win_rate,
            favorable=self.favorable.to_params(),
            seed=self.seed,
            **engine,
        )


class OptimalRangeItem(BaseModel):
    """Recommended deck size range."""
    min_size: int
    max_size: int
    qualifying_sizes: List[int]
    recommended_size: int
    recommended_stats: DeckSizeResultItem
    meets_target: bool


class TuneResponse(BaseModel):
    """Response schema for a tuning run."""
    level_id: str
    base_seed: int
    results: List[DeckSizeResultItem]
    optimal: Optional[OptimalRangeItem] = None
    cancelled: bool = False
    elapsed_seconds: float = 0.0
    optimized_level: Optional[Dict[str, Any]] = None


class ExportRequest(TuneRequest):
    """Request schema for a tuning run exported as delimited text."""
    delimiter: str = Field(default=",", min_length=1, max_length=1, description="Field separator")
    include_metadata: bool = Field(default=True, description="Prefix '#' metadata lines")


class OptimizedLevelRequest(BaseModel):
    """Request schema for building an optimized level."""
    level_json: Dict[str, Any] = Field(..., description="Source level JSON")
    deck_size: int = Field(..., ge=0, le=200, description="Recommended deck size")
    source_name: str = Field(default="level.json", description="Source file name used for the output name")


class OptimizedLevelResponse(BaseModel):
    """Response schema for an optimized level."""
    file_name: str
    original_deck_size: int
    deck_size: int
    level_json: Dict[str, Any]


class ErrorResponse(BaseModel):
    """Error response schema (body of a 400 from HTTPException)."""
    detail: str = Field(..., description="Error message")
