"""HTTP client for the public order form."""

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from orderdesk.client.poller import DEFAULT_INTERVAL, DEFAULT_MAX_ATTEMPTS, wait_for_number
from orderdesk.models.enums import OrderStream

logger = structlog.get_logger(__name__)

SUCCESS_WITH_NUMBER = "Order submitted! Your order number is {number}. Please use it as your payment reference."
SUCCESS_WITHOUT_NUMBER = "Order submitted successfully! Thank you for your support."


@dataclass(frozen=True)
class SubmissionResult:
    order_id: str
    order_number: str | None
    message: str


def confirmation_message(order_number: str | None) -> str:
    if order_number:
        return SUCCESS_WITH_NUMBER.format(number=order_number)
    return SUCCESS_WITHOUT_NUMBER


class OrderDeskClient:
    """Submits orders and waits briefly for their number.

    Usage:
        async with OrderDeskClient("https://orders.example.com") as client:
            result = await client.submit_order(OrderStream.EGG_ORDERS, form_data)
            print(result.message)
    """

    def __init__(
        self,
        base_url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL,
    ):
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self.max_attempts = max_attempts
        self.interval = interval

    async def __aenter__(self) -> "OrderDeskClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def create_order(self, stream: OrderStream, order: dict[str, Any]) -> str:
        """Submit the order form and return the new order id."""
        response = await self._client.post(f"/api/v1/orders/{stream}", json=order)
        response.raise_for_status()
        order_id: str = response.json()["id"]
        return order_id

    async def fetch_order_number(self, stream: OrderStream, order_id: str) -> str | None:
        response = await self._client.get(f"/api/v1/orders/{stream}/{order_id}/number")
        response.raise_for_status()
        number: str | None = response.json().get("order_number")
        return number

    async def submit_order(self, stream: OrderStream, order: dict[str, Any]) -> SubmissionResult:
        """Submit an order, poll briefly for its number and build the confirmation message.

        Raises:
            httpx.HTTPStatusError: If the submission itself is rejected
        """
        order_id = await self.create_order(stream, order)
        number = await wait_for_number(
            lambda: self.fetch_order_number(stream, order_id),
            max_attempts=self.max_attempts,
            interval=self.interval,
        )
        logger.info("Order submitted", stream=stream, order_id=order_id, order_number=number)
        return SubmissionResult(order_id=order_id, order_number=number, message=confirmation_message(number))
