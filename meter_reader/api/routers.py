from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from .dependencies import get_service
from .schemas import (
    ConfirmRequest, ConfirmResponse, ErrorResponse, HealthResponse, MeasureItem,
    MeasureListResponse, UploadRequest, UploadResponse,
)
from .. import __version__
from ..measurements import ImageNotFound, MeasurementService

router = APIRouter(tags=["measures"])

ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.get("/health", response_model=HealthResponse)
def health(service: MeasurementService = Depends(get_service)):
    """Health check endpoint."""
    return HealthResponse(status="ok", service="meter-reader", version=__version__, measures=len(service.store))


@router.post("/upload", response_model=UploadResponse, responses=ERRORS)
async def upload(body: UploadRequest, service: MeasurementService = Depends(get_service)):
    """
    Register a meter reading from a base64 image and return the recognised value.
    """
    record = await service.upload(
        image=body.image,
        customer_code=body.customer_code,
        measure_datetime=body.measure_datetime,
        measure_type=body.measure_type,
    )
    return UploadResponse(
        image_url=record.artifact_reference,
        measure_value=record.recognized_value,
        measure_uuid=record.id,
    )


@router.patch("/confirm", response_model=ConfirmResponse, responses=ERRORS)
def confirm(body: ConfirmRequest, service: MeasurementService = Depends(get_service)):
    """
    Confirm or correct the recognised value of a measure, once.
    """
    service.confirm(body.measure_uuid, body.confirmed_value)
    return ConfirmResponse(success=True)


@router.get("/images/{filename}", responses={404: {"model": ErrorResponse}})
def get_image(filename: str, service: MeasurementService = Depends(get_service)):
    """
    Return a stored meter image
    """
    path = service.codec.artifact_path(filename)
    if path is None:
        raise ImageNotFound()
    return FileResponse(path)


@router.get("/{customer_code}/list", response_model=MeasureListResponse, responses=ERRORS)
def list_measures(customer_code: str, measure_type: Optional[str] = Query(default=None),
                  service: MeasurementService = Depends(get_service)):
    """
    List a customer's measures, optionally filtered by WATER or GAS.
    """
    summaries = service.list_measures(customer_code, measure_type)
    return MeasureListResponse(
        customer_code=customer_code,
        measures=[MeasureItem.from_summary(summary) for summary in summaries],
    )
