from fastapi import APIRouter, BackgroundTasks, Depends
from ..core.security import rate_limit
from ..schemas import Accepted, ContactRequest, ErrorResponse, EstimationNotice
from ..services.notification_service import NotificationService, render_contact, render_estimation

router = APIRouter()

def notification_dep() -> NotificationService:
    return NotificationService()

# Mail goes out after the response; a failed dispatch is only logged.

@router.post(
    "/estimation",
    response_model=Accepted,
    status_code=202,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def post_estimation_notice(
    body: EstimationNotice,
    background: BackgroundTasks,
    _lim = Depends(rate_limit),
    notifier: NotificationService = Depends(notification_dep),
):
    message = render_estimation(body.property, body.estimate, body.ownership)
    background.add_task(notifier.dispatch, "estimation", message)
    return Accepted()

@router.post(
    "/contact",
    response_model=Accepted,
    status_code=202,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def post_contact_request(
    body: ContactRequest,
    background: BackgroundTasks,
    _lim = Depends(rate_limit),
    notifier: NotificationService = Depends(notification_dep),
):
    message = render_contact(body)
    background.add_task(notifier.dispatch, "contact", message)
    return Accepted()
