"""Layout analysis API routes."""
from fastapi import APIRouter, Depends

from ...models.schemas import AnalyzeRequest, AnalyzeResponse, ErrorResponse
from ...core.analyzer import LevelAnalyzer
from ..deps import get_level_analyzer, parse_level_or_400

router = APIRouter(prefix="/api", tags=["analyze"])


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    responses={400: {"model": ErrorResponse}},
)
async def analyze_level(
    request: AnalyzeRequest,
    analyzer: LevelAnalyzer = Depends(get_level_analyzer),
) -> AnalyzeResponse:
    """
    Analyze a level layout and return metrics and warnings.

    Args:
        request: AnalyzeRequest with level_json.
        analyzer: LevelAnalyzer dependency.

    Returns:
        AnalyzeResponse with metrics and warnings.
    """
    level = parse_level_or_400(request.level_json)
    report = analyzer.analyze(level)
    return AnalyzeResponse(**report.to_dict())
