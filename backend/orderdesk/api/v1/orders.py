"""Order API endpoints."""

import structlog
from fastapi import APIRouter, HTTPException

from orderdesk.api.v1.dependencies import AdminDep, NotificationServiceDep, OrderServiceDep, StaffDep
from orderdesk.api.v1.schemas import (
    CorrectionEmailsRequest,
    CorrectionEmailsResponse,
    DeliveryResponse,
    OrderCreateRequest,
    OrderDetailResponse,
    OrderNumberResponse,
    OrderUpdateRequest,
)
from orderdesk.models.enums import OrderStream
from orderdesk.services.exceptions import ValidationError
from orderdesk.services.orders.exceptions import MissingDispatchDetails, OrderNotFound

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["orders"])


@router.post(
    "/orders/{stream}",
    response_model=OrderNumberResponse,
    status_code=201,
    operation_id="submitOrder",
)
async def submit_order(
    stream: OrderStream,
    body: OrderCreateRequest,
    service: OrderServiceDep,
) -> OrderNumberResponse:
    """Public order form submission.

    The order number is assigned in the background; poll
    ``GET /orders/{stream}/{order_id}/number`` to pick it up.
    """
    order = await service.create_order(stream, body.to_new_order())
    return OrderNumberResponse.from_model(order)


@router.get(
    "/orders/{stream}/{order_id}/number",
    response_model=OrderNumberResponse,
    operation_id="getOrderNumber",
)
async def get_order_number(
    stream: OrderStream,
    order_id: str,
    service: OrderServiceDep,
) -> OrderNumberResponse:
    """Public lookup used by the order form to show the assigned number."""
    try:
        order = await service.get_order(stream, order_id)
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="Order not found")
    return OrderNumberResponse.from_model(order)


@router.get(
    "/orders/{stream}/{order_id}",
    response_model=OrderDetailResponse,
    operation_id="getOrder",
)
async def get_order(
    stream: OrderStream,
    order_id: str,
    service: OrderServiceDep,
    _staff: StaffDep,
) -> OrderDetailResponse:
    try:
        order = await service.get_order(stream, order_id)
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="Order not found")
    return OrderDetailResponse.from_model(order)


@router.patch(
    "/orders/{stream}/{order_id}",
    response_model=OrderDetailResponse,
    operation_id="updateOrder",
)
async def update_order(
    stream: OrderStream,
    order_id: str,
    body: OrderUpdateRequest,
    service: OrderServiceDep,
    _staff: StaffDep,
) -> OrderDetailResponse:
    """Dashboard edit. A status change notifies the customer and admins in the background."""
    try:
        order = await service.update_order(stream, order_id, body.to_changes())
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="Order not found")
    return OrderDetailResponse.from_model(order)


@router.post(
    "/orders/{stream}/{order_id}/dispatch-notification",
    response_model=DeliveryResponse,
    operation_id="sendDispatchNotification",
)
async def send_dispatch_notification(
    stream: OrderStream,
    order_id: str,
    service: NotificationServiceDep,
    staff: StaffDep,
) -> DeliveryResponse:
    """Email the customer that their order is being prepared for dispatch."""
    try:
        result = await service.request_dispatch_notification(stream, order_id)
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="Order not found")
    except MissingDispatchDetails as e:
        raise HTTPException(status_code=422, detail=str(e))
    logger.info("Dispatch notification requested", order_id=order_id, requested_by=staff.email)
    return DeliveryResponse(id=result.delivery_id)


@router.post(
    "/orders/{stream}/correction-emails",
    response_model=CorrectionEmailsResponse,
    operation_id="sendCorrectionEmails",
)
async def send_correction_emails(
    stream: OrderStream,
    body: CorrectionEmailsRequest,
    service: NotificationServiceDep,
    admin: AdminDep,
) -> CorrectionEmailsResponse:
    """Email a correction to the customers of the listed orders.

    Orders that do not exist or have no email address are skipped.
    """
    try:
        result = await service.send_correction_emails(
            stream, body.order_ids, subject=body.subject, message=body.message
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    logger.info("Correction emails requested", stream=stream, sent=result.sent, requested_by=admin.email)
    return CorrectionEmailsResponse.from_result(result)
