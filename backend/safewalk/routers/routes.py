from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from safewalk.schemas.route import RankRoutesRequest, RankRoutesResponse
from safewalk.services.providers import ProviderSet, get_providers
from safewalk.services.route_ranking import NoRoutesFoundError, rank_routes

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/rank", response_model=RankRoutesResponse)
async def rank(req: RankRoutesRequest, providers: ProviderSet = Depends(get_providers)):
    """Candidate walking routes between two points, scored and ordered by preference."""
    try:
        routes = await rank_routes(
            req.origin,
            req.destination,
            preference=req.preference,
            providers=providers,
            as_of=req.as_of or datetime.now(timezone.utc),
            purpose=req.purpose,
        )
    except NoRoutesFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return RankRoutesResponse(preference=req.preference, routes=routes)
