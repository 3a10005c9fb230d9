"""Order domain exceptions."""

from orderdesk.services.exceptions import NotFoundError, ValidationError


class OrderNotFound(NotFoundError):
    """Order not found."""

    def __init__(self, stream: str, order_id: str):
        self.stream = stream
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found in {stream}")


class MissingDispatchDetails(ValidationError):
    """Order lacks the email or send date needed for a dispatch notification."""

    pass
