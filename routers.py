"""API routers for the natal chart service."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Response
from fastapi.responses import PlainTextResponse

from analysis import export_analysis_text, generate_analysis
from chart import AspectDefinition, CelestialBody, ChartConfig, HouseCusp, aspect_catalog, make_body
from ephemeris import SwissEphemeris, get_ephemeris, to_utc
from exceptions import ChartAPIException, ChartCalculationError, ProfileNotFoundError
from models import (
    AnalysisRequest,
    AspectDefinitionResponse,
    BatchResponse,
    BatchResultItem,
    BatchSummary,
    BirthData,
    BodyInput,
    ChartAnalysis,
    ChartBatchRequest,
    ChartCalculationRequest,
    ChartSnapshot,
    ChartSnapshotRequest,
    ConfigAspectsResponse,
    ConfigHouseSystemsResponse,
    ErrorDetail,
    Profile,
    TransitCalculationRequest,
    TransitMoment,
)
from profiles import ProfileStore
from settings import Settings, get_settings
from snapshot import build_snapshot, merge_transit

logger = logging.getLogger(__name__)

router = APIRouter()


# Dependencies
@lru_cache
def _store_for(path: Path) -> ProfileStore:
    return ProfileStore(path)


def get_profile_store(settings: Settings = Depends(get_settings)) -> ProfileStore:
    """One store per file so its lock covers every request."""
    return _store_for(settings.profiles_path)


# Helper Functions
def _position_source(settings: Settings, house_system: Optional[str]):
    path = str(settings.ephemeris_path) if settings.ephemeris_path else None
    return get_ephemeris(settings.ephemeris_mode, path, house_system or settings.house_system)


def _catalog(request: ChartCalculationRequest, settings: Settings) -> list[AspectDefinition]:
    include_minor = request.include_minor_aspects
    if include_minor is None:
        include_minor = settings.include_minor_aspects
    orb_factor = request.orb_factor if request.orb_factor is not None else settings.orb_factor
    return aspect_catalog(include_minor, orb_factor)


def _natal_snapshot(birth: BirthData, source, catalog: list[AspectDefinition]) -> ChartSnapshot:
    moment = to_utc(birth.local_datetime(), birth.timezone)
    positions = source.positions(moment, birth.latitude, birth.longitude)
    return build_snapshot(
        birth, positions.bodies, positions.cusps, catalog, positions.ascendant, positions.midheaven
    )


def _with_transits(snapshot: ChartSnapshot, transit: TransitMoment, source,
                   catalog: list[AspectDefinition]) -> ChartSnapshot:
    moment = to_utc(transit.date, transit.timezone)
    positions = source.positions(moment, transit.latitude, transit.longitude)
    return merge_transit(snapshot, transit.date, positions.bodies, catalog)


def _calculate(request: ChartCalculationRequest, settings: Settings,
               transit: Optional[TransitMoment] = None) -> ChartSnapshot:
    """Run the position source and the engine for one request."""
    try:
        source = _position_source(settings, request.house_system)
        catalog = _catalog(request, settings)
        snapshot = _natal_snapshot(request.birth, source, catalog)
        if transit is not None:
            snapshot = _with_transits(snapshot, transit, source, catalog)
        return snapshot
    except (ChartAPIException, ValueError):
        raise
    except Exception as e:
        raise ChartCalculationError(f"Chart calculation failed: {str(e)}")


def _body_from_input(body: BodyInput) -> CelestialBody:
    default = make_body(body.id, body.longitude)
    return CelestialBody(
        id=body.id,
        name=body.name or default.name,
        symbol=body.symbol or default.symbol,
        longitude=body.longitude,
        retrograde=body.is_retrograde,
        latitude=body.latitude,
        color=body.color or default.color,
    )


def _aspect_response(asp: AspectDefinition) -> AspectDefinitionResponse:
    return AspectDefinitionResponse(
        aspect=asp.aspect,
        name=asp.name,
        symbol=asp.symbol,
        angle=asp.angle,
        orb=asp.orb,
    )


# Configuration Endpoints
@router.get(
    "/config/house-systems",
    response_model=ConfigHouseSystemsResponse,
    summary="List Available House Systems",
    description="House systems accepted when the Swiss Ephemeris position source is active."
)
async def get_house_systems():
    """List all available house systems."""
    return ConfigHouseSystemsResponse(
        house_systems=list(SwissEphemeris.HOUSE_SYSTEMS.keys())
    )


@router.get(
    "/config/aspects",
    response_model=ConfigAspectsResponse,
    summary="List Aspect Definitions",
    description="""
    Get the default aspect catalog, split into major and minor aspects.

    Catalog order is significant: when two aspects match a separation
    equally well, the one listed first is reported.
    """
)
async def get_aspects():
    """List all aspect definitions with orb information."""
    return ConfigAspectsResponse(
        major_aspects=[_aspect_response(asp) for asp in ChartConfig.ASPECTS if asp.major],
        minor_aspects=[_aspect_response(asp) for asp in ChartConfig.ASPECTS if not asp.major],
    )


# Chart Endpoints
@router.post(
    "/chart/snapshot",
    response_model=ChartSnapshot,
    summary="Build Snapshot From Positions",
    description="""
    Build a chart snapshot from positions supplied by the caller:
    - Bodies with longitudes and retrograde flags
    - The 12 house cusps in house order
    - Ascendant and midheaven longitudes

    No position source is consulted.
    """,
    responses={
        200: {"description": "Snapshot built"},
        422: {"description": "Validation error - unknown body id, bad cusps, etc."}
    }
)
async def create_snapshot(request: ChartSnapshotRequest):
    """Place caller-supplied positions and detect aspects."""
    bodies = [_body_from_input(b) for b in request.bodies]
    cusps = [HouseCusp(c.house_number, c.longitude) for c in request.cusps]
    catalog = aspect_catalog(request.include_minor_aspects, request.orb_factor)
    return build_snapshot(
        request.birth, bodies, cusps, catalog, request.ascendant.longitude, request.midheaven.longitude
    )


@router.post(
    "/chart/calculate",
    response_model=ChartSnapshot,
    summary="Calculate Natal Chart",
    description="""
    Calculate a natal chart snapshot from birth data:
    - Planetary positions in signs and houses
    - House cusps, ascendant and midheaven
    - Aspects between planets

    Positions come from the configured position source (mock or Swiss Ephemeris).
    """,
    responses={
        200: {"description": "Successful calculation"},
        422: {"description": "Validation error - invalid input parameters"},
        500: {"description": "Calculation error"},
        503: {"description": "Position source unavailable"}
    }
)
async def calculate_chart(request: ChartCalculationRequest, settings: Settings = Depends(get_settings)):
    """Calculate a single natal chart."""
    snapshot = _calculate(request, settings)
    logger.debug("Calculated chart for %s", request.birth.name or "unnamed subject")
    return snapshot


@router.post(
    "/chart/calculate/batch",
    response_model=BatchResponse,
    summary="Calculate Multiple Natal Charts",
    description="""
    Calculate multiple natal charts in a single request.

    Each chart is processed independently - partial failures are allowed.
    The response includes individual results for each chart with success/error status,
    plus summary statistics of total, successful, and failed calculations.
    """,
    responses={
        200: {"description": "Batch processing complete (may include partial failures)"},
        422: {"description": "Validation error in request structure"}
    }
)
async def calculate_chart_batch(request: ChartBatchRequest, settings: Settings = Depends(get_settings)):
    """Calculate multiple natal charts in batch."""
    results = []

    for idx, chart_req in enumerate(request.charts):
        try:
            results.append(BatchResultItem(
                id=chart_req.id or f"chart_{idx}",
                success=True,
                data=_calculate(chart_req, settings),
                error=None
            ))
        except Exception as e:
            logger.warning("Batch chart %s failed: %s", chart_req.id or idx, e)
            results.append(BatchResultItem(
                id=chart_req.id or f"chart_{idx}",
                success=False,
                data=None,
                error=ErrorDetail(
                    type=type(e).__name__,
                    message=str(e),
                    detail=None
                )
            ))

    return BatchResponse(
        results=results,
        summary=BatchSummary(
            total=len(results),
            successful=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success)
        )
    )


# Transit Endpoints
@router.post(
    "/transits/calculate",
    response_model=ChartSnapshot,
    summary="Calculate Transits",
    description="""
    Calculate a natal chart and the transits for a given moment.

    Returns the natal snapshot with a nested transits section:
    - Transiting planet positions in signs and natal houses
    - Aspects from transiting planets to natal planets
    - Aspects among the transiting planets
    """,
    responses={
        200: {"description": "Successful calculation"},
        422: {"description": "Validation error - invalid input parameters"},
        500: {"description": "Calculation error"}
    }
)
async def calculate_transits(request: TransitCalculationRequest, settings: Settings = Depends(get_settings)):
    """Calculate transits for a specific date."""
    return _calculate(request, settings, request.transit)


# Analysis Endpoints
@router.post(
    "/chart/analysis",
    response_model=ChartAnalysis,
    summary="Analyze Chart",
    description="Generate interpretation text sections for a natal chart, with transits when a transit moment is given."
)
async def analyze_chart(request: AnalysisRequest, settings: Settings = Depends(get_settings)):
    """Analysis sections for a chart."""
    return generate_analysis(_calculate(request, settings, request.transit))


@router.post(
    "/chart/analysis/text",
    response_class=PlainTextResponse,
    summary="Analyze Chart As Text",
    description="Same analysis as /chart/analysis rendered as a single markdown document."
)
async def analyze_chart_text(request: AnalysisRequest, settings: Settings = Depends(get_settings)):
    """Analysis as one markdown document."""
    return PlainTextResponse(export_analysis_text(_calculate(request, settings, request.transit)))


# Profile Endpoints
@router.get(
    "/profiles",
    response_model=list[Profile],
    summary="List Profiles"
)
def list_profiles(store: ProfileStore = Depends(get_profile_store)):
    return store.list()


@router.post(
    "/profiles",
    response_model=Profile,
    summary="Save Profile",
    description="Create a profile, or replace the stored profile with the same id."
)
def save_profile(profile: Profile, store: ProfileStore = Depends(get_profile_store)):
    return store.save(profile)


@router.get(
    "/profiles/{profile_id}",
    response_model=Profile,
    summary="Get Profile",
    responses={404: {"description": "Profile not found"}}
)
def get_profile(profile_id: str, store: ProfileStore = Depends(get_profile_store)):
    return store.get(profile_id)


@router.delete(
    "/profiles/{profile_id}",
    status_code=204,
    summary="Delete Profile",
    responses={404: {"description": "Profile not found"}}
)
def delete_profile(profile_id: str, store: ProfileStore = Depends(get_profile_store)):
    if not store.delete(profile_id):
        raise ProfileNotFoundError(f"Profile not found: {profile_id}")
    return Response(status_code=204)
