"""FastAPI dependencies for service injection and staff authentication."""

from dataclasses import dataclass
from typing import Annotated

import jwt
import structlog
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from orderdesk.config import Settings, get_settings
from orderdesk.db import TriggerSession, get_session
from orderdesk.models.enums import ADMIN_ROLES, STAFF_ROLES, StaffRole
from orderdesk.services.events.dispatcher import DeliveryClient
from orderdesk.services.exceptions import PermissionDeniedError
from orderdesk.services.external.resend import ResendService
from orderdesk.services.notifications.notification_service import NotificationService
from orderdesk.services.orders.order_service import OrderService
from orderdesk.services.stock.stock_service import StockService

logger = structlog.get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Authenticated dashboard user."""

    subject: str
    email: str
    role: StaffRole | None

    def require(self, roles: frozenset[StaffRole]) -> None:
        if self.role is None or self.role not in roles:
            raise PermissionDeniedError(f"Role {self.role or 'none'} may not perform this operation")


def get_request_settings() -> Settings:
    """Settings re-read per request so credential changes apply without restart."""
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_request_settings)]
SessionDep = Annotated[TriggerSession, Depends(get_session)]


def get_principal(
    settings: SettingsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> Principal:
    """Decode the bearer token issued by the identity provider.

    The ``role`` claim carries the staff role; addresses listed in
    BOOTSTRAP_ADMINS are treated as admins whatever the claim says.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Sign in required.")
    try:
        claims = jwt.decode(
            credentials.credentials,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
        )
    except jwt.PyJWTError as e:
        logger.info("Rejected bearer token", error=str(e))
        raise HTTPException(status_code=401, detail="Invalid token.") from e

    email = str(claims.get("email") or "")
    role: StaffRole | None
    try:
        role = StaffRole(claims.get("role"))
    except ValueError:
        role = None
    if email and email.casefold() in settings.bootstrap_admins and role is not StaffRole.SUPER_ADMIN:
        role = StaffRole.ADMIN
    return Principal(subject=str(claims.get("sub") or ""), email=email, role=role)


PrincipalDep = Annotated[Principal, Depends(get_principal)]


def _require(principal: Principal, roles: frozenset[StaffRole]) -> Principal:
    try:
        principal.require(roles)
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    return principal


def require_staff(principal: PrincipalDep) -> Principal:
    return _require(principal, STAFF_ROLES)


def require_admin(principal: PrincipalDep) -> Principal:
    return _require(principal, ADMIN_ROLES)


StaffDep = Annotated[Principal, Depends(require_staff)]
AdminDep = Annotated[Principal, Depends(require_admin)]


async def get_order_service(session: SessionDep) -> OrderService:
    """Get an OrderService instance with the current session."""
    return OrderService(session)


async def get_stock_service(session: SessionDep) -> StockService:
    """Get a StockService instance with the current session."""
    return StockService(session)


def get_delivery_client(settings: SettingsDep) -> DeliveryClient:
    """Get the mail transport client."""
    return ResendService(settings)


async def get_notification_service(
    session: SessionDep,
    delivery: Annotated[DeliveryClient, Depends(get_delivery_client)],
    settings: SettingsDep,
) -> NotificationService:
    """Get a NotificationService instance with the current session."""
    return NotificationService(session, delivery, settings)


# Type aliases for cleaner endpoint signatures
OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
StockServiceDep = Annotated[StockService, Depends(get_stock_service)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
