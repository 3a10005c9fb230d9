"""Notification API endpoints."""

from fastapi import APIRouter, HTTPException

from orderdesk.api.v1.dependencies import AdminDep, NotificationServiceDep
from orderdesk.api.v1.schemas import DeliveryResponse, SendTestEmailRequest
from orderdesk.services.exceptions import ValidationError

router = APIRouter(tags=["notifications"])


@router.post("/notifications/test-email", response_model=DeliveryResponse, operation_id="sendTestEmail")
async def send_test_email(
    body: SendTestEmailRequest,
    service: NotificationServiceDep,
    _admin: AdminDep,
) -> DeliveryResponse:
    """Send a branded test email to check the mail transport configuration."""
    try:
        delivery_id = await service.send_test_email(body.to, subject=body.subject, message=body.message)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return DeliveryResponse(id=delivery_id)
