"""POST /api/export: pixel maps of every participant side as one ZIP of CSVs."""

from __future__ import annotations

import io
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from bodymap.dependencies import get_raster_config, get_surface
from bodymap.engine.config import RasterConfig
from bodymap.engine.jobs import ExportRequest, drain, run_export_job
from bodymap.engine.surface import SurfaceFactory
from bodymap.models.requests import ParticipantsRequestModel

router = APIRouter()
logger = logging.getLogger(__name__)

_ARCHIVE_NAME = "pixelmaps.zip"


@router.post("/export")
def export(
    req: ParticipantsRequestModel,
    surface_factory: SurfaceFactory = Depends(get_surface),
    config: RasterConfig = Depends(get_raster_config),
) -> Response:
    try:
        survey = req.to_survey()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    buffer = io.BytesIO()
    result = drain(run_export_job(ExportRequest(survey=survey, sink=buffer), surface_factory, config))
    logger.info("Export delivered: %s", result.params)

    return Response(
        content=buffer.getvalue(),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{_ARCHIVE_NAME}"'},
    )
