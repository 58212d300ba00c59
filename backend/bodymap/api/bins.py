"""POST /api/bins: cross-participant binning of one anatomical side."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from bodymap.api.streaming import job_stream_response
from bodymap.config import Settings
from bodymap.dependencies import get_raster_config, get_settings, get_surface
from bodymap.engine.config import RasterConfig
from bodymap.engine.errors import DomainMismatchError
from bodymap.engine.jobs import BinsRequest, drain, run_bins_job
from bodymap.engine.surface import SurfaceFactory
from bodymap.models.requests import BinsRequestModel
from bodymap.models.responses import BinsResponse

router = APIRouter()


def _to_job_request(req: BinsRequestModel, settings: Settings) -> BinsRequest:
    if (req.width is None) != (req.height is None):
        raise HTTPException(status_code=422, detail="width and height must be given together")
    return BinsRequest(
        side=req.side,
        drawings=tuple(d.to_domain() for d in req.drawings),
        bin_width=req.bin_width or settings.default_bin_width,
        bin_height=req.bin_height or settings.default_bin_height,
        width=req.width,
        height=req.height,
        lazy=req.lazy,
    )


@router.post("/bins", response_model=BinsResponse)
def bins(
    req: BinsRequestModel,
    settings: Settings = Depends(get_settings),
    surface_factory: SurfaceFactory = Depends(get_surface),
    config: RasterConfig = Depends(get_raster_config),
) -> BinsResponse:
    job = _to_job_request(req, settings)
    try:
        result = drain(run_bins_job(job, surface_factory, config))
    except DomainMismatchError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return BinsResponse(**result.params)


@router.post("/bins/stream")
async def bins_stream(
    req: BinsRequestModel,
    settings: Settings = Depends(get_settings),
    surface_factory: SurfaceFactory = Depends(get_surface),
    config: RasterConfig = Depends(get_raster_config),
) -> StreamingResponse:
    job = _to_job_request(req, settings)
    return job_stream_response(lambda: run_bins_job(job, surface_factory, config))
