"""
Weather widget endpoint
"""
from fastapi import APIRouter, Depends, HTTPException, Query

from pilotage.api.deps import get_current_user_id
from pilotage.application.weather import (
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    WeatherError,
    WeatherService,
)


router = APIRouter(prefix="/api/v1/weather", tags=["weather"])


@router.get("/")
def get_weather(
    lat: float = Query(default=DEFAULT_LATITUDE, ge=-90, le=90),
    lon: float = Query(default=DEFAULT_LONGITUDE, ge=-180, le=180),
    user_id: str = Depends(get_current_user_id),
):
    """Météo actuelle et prévisions à 5 jours"""
    try:
        return WeatherService().fetch(lat, lon)
    except WeatherError as e:
        raise HTTPException(status_code=502, detail=str(e))
