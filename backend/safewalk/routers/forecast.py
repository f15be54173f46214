from fastapi import APIRouter, Depends

from safewalk.schemas.forecast import ForecastRequest, RiskForecast
from safewalk.services.providers import ProviderSet, get_providers
from safewalk.services.risk_forecaster import forecast_risk

router = APIRouter(prefix="/forecast", tags=["forecast"])


@router.post("/", response_model=RiskForecast)
async def forecast(req: ForecastRequest, providers: ProviderSet = Depends(get_providers)):
    """Safety outlook for a route or a single point: now, +30 min and after 22:00."""
    return await forecast_risk(req.sample_source(), providers=providers, as_of=req.as_of)
