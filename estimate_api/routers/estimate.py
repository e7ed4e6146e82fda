import logging
from fastapi import APIRouter, BackgroundTasks, Depends, Response
from ..core.config import settings
from ..core.errors import EstimationError, InvalidInput, UpstreamError
from ..schemas import EstimateRequest, EstimateResponse, ErrorResponse, NoticeProperty
from ..services.estimation_service import EstimationService
from ..services.notification_service import NotificationService, render_estimation
from .notifications import notification_dep

logger = logging.getLogger(__name__)

router = APIRouter()

def service_dep() -> EstimationService:
    # Cheap factory; collaborators are plain HTTP clients opened per call.
    return EstimationService()

@router.post(
    "/estimate",
    response_model=EstimateResponse,
    responses={400: {"model": ErrorResponse}},
)
async def post_estimate(
    body: EstimateRequest,
    background: BackgroundTasks,
    svc: EstimationService = Depends(service_dep),
    notifier: NotificationService = Depends(notification_dep),
):
    if not body.address or not body.address.strip():
        raise InvalidInput("address missing")

    try:
        result = await svc.estimate(body.to_query())
        payload = EstimateResponse.from_result(result)
        if settings.NOTIFY_ON_ESTIMATE:
            prop = NoticeProperty.model_validate(body.model_dump(by_alias=True))
            background.add_task(notifier.dispatch, "estimation", render_estimation(prop, payload))
    except EstimationError:
        raise
    except Exception as exc:
        # Internals stay in the log, the visitor gets a generic message
        logger.exception("estimation failed")
        raise UpstreamError("estimation temporarily unavailable") from exc
    return payload

@router.options("/estimate", include_in_schema=False)
async def options_estimate():
    # Browsers' pre-flights are answered by the CORS middleware; this covers bare OPTIONS.
    return Response(status_code=204, headers={
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    })
