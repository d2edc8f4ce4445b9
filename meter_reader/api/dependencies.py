from fastapi import Request

from ..measurements import MeasurementService


def get_service(request: Request) -> MeasurementService:
    return request.app.state.service
