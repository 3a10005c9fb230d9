"""Stock API endpoints."""

from fastapi import APIRouter, HTTPException

from orderdesk.api.v1.dependencies import AdminDep, NotificationServiceDep, StaffDep, StockServiceDep
from orderdesk.api.v1.schemas import DeliveryResponse, StockItemRequest, StockItemResponse, StockSummaryRequest
from orderdesk.services.exceptions import ValidationError
from orderdesk.services.stock.stock_service import StockItemNotFound

router = APIRouter(tags=["stock"])


@router.get("/stock", response_model=list[StockItemResponse], operation_id="listStock")
async def list_stock(service: StockServiceDep, _staff: StaffDep) -> list[StockItemResponse]:
    items = await service.list_items()
    return [StockItemResponse.from_model(item) for item in items]


@router.post("/stock", response_model=StockItemResponse, status_code=201, operation_id="createStockItem")
async def create_stock_item(
    body: StockItemRequest,
    service: StockServiceDep,
    _staff: StaffDep,
) -> StockItemResponse:
    try:
        item = await service.create_item(body.to_changes())
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return StockItemResponse.from_model(item)


@router.patch("/stock/{item_id}", response_model=StockItemResponse, operation_id="updateStockItem")
async def update_stock_item(
    item_id: str,
    body: StockItemRequest,
    service: StockServiceDep,
    _staff: StaffDep,
) -> StockItemResponse:
    """Edit a stock item. Dropping to or below the threshold alerts the admins."""
    try:
        item = await service.update_item(item_id, body.to_changes())
    except StockItemNotFound:
        raise HTTPException(status_code=404, detail="Stock item not found")
    return StockItemResponse.from_model(item)


@router.post("/stock/summary", response_model=DeliveryResponse, operation_id="sendStockSummary")
async def send_stock_summary(
    body: StockSummaryRequest,
    service: NotificationServiceDep,
    _admin: AdminDep,
) -> DeliveryResponse:
    """Send a stock summary email to the admins now."""
    delivery_id = await service.send_stock_report(body.report)
    return DeliveryResponse(id=delivery_id)
