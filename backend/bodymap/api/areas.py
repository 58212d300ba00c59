"""POST /api/areas: drawn area per sensation category, per participant."""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from bodymap.api.streaming import job_stream_response
from bodymap.dependencies import get_raster_config, get_surface
from bodymap.engine.config import RasterConfig
from bodymap.engine.jobs import AreasRequest, drain, run_areas_job
from bodymap.engine.surface import SurfaceFactory
from bodymap.models.requests import ParticipantsRequestModel
from bodymap.models.responses import AreasResponse, ParticipantAreasResponse

router = APIRouter()


def _to_job_request(req: ParticipantsRequestModel) -> AreasRequest:
    try:
        # Survey rejects duplicate participant ids
        survey = req.to_survey()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return AreasRequest(participants=tuple(survey.participants.values()))


@router.post("/areas", response_model=AreasResponse)
def areas(
    req: ParticipantsRequestModel,
    surface_factory: SurfaceFactory = Depends(get_surface),
    config: RasterConfig = Depends(get_raster_config),
) -> AreasResponse:
    start = time.perf_counter()
    result = drain(run_areas_job(_to_job_request(req), surface_factory, config))
    return AreasResponse(
        areas=[ParticipantAreasResponse(**row) for row in result.params],
        processing_time_ms=round((time.perf_counter() - start) * 1000, 1),
    )


@router.post("/areas/stream")
async def areas_stream(
    req: ParticipantsRequestModel,
    surface_factory: SurfaceFactory = Depends(get_surface),
    config: RasterConfig = Depends(get_raster_config),
) -> StreamingResponse:
    job = _to_job_request(req)
    return job_stream_response(lambda: run_areas_job(job, surface_factory, config))
