"""Dramatiq background tasks package.

Trigger handlers (order created/updated, stock written), scheduled stock
summaries and worker-start recovery. Run workers with
``orderdesk worker``.
"""

# Broker must be configured before any actor is declared
from orderdesk.tasks.broker import broker

# Import all tasks to register them with Dramatiq (must be after broker setup)
# These imports are required for task discovery, not for re-export
import orderdesk.tasks.orders.order_events  # noqa: E402, F401
import orderdesk.tasks.stock.stock_events  # noqa: E402, F401
import orderdesk.tasks.utils.recovery  # noqa: E402, F401

__all__ = ["broker"]
