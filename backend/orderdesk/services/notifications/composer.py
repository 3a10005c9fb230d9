"""Notification composition.

Turns orders, stock signals and reports into ready-to-send payloads. The
composer is pure: it reads configuration handed to it, never the database
or the network, and returns zero or more payloads per notification kind.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from orderdesk.config import Settings
from orderdesk.models.enums import SILENT_STATUSES, Audience, NotificationKind, status_label
from orderdesk.models.order import Order
from orderdesk.models.stock import StockItem
from orderdesk.services.notifications.formatting import (
    breakdown,
    calculate_totals,
    escape_html,
    format_quantity,
    normalize_url,
    paid_label,
)
from orderdesk.services.notifications.templates import (
    Branding,
    PaymentDetails,
    breakdown_list_html,
    email_html,
    field_html,
    payment_section_html,
    summary_card_html,
    tracking_html,
)
from orderdesk.services.orders.exceptions import MissingDispatchDetails
from orderdesk.services.stock.threshold import ThresholdSignal

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class NotificationPayload:
    """One email, ready for the delivery client."""

    kind: NotificationKind
    audience: Audience
    subject: str
    recipients: tuple[str, ...]
    html_body: str
    text_body: str


def branding_from_settings(settings: Settings) -> Branding:
    return Branding(
        name=settings.brand_name,
        logo_url=settings.brand_logo_url,
        whatsapp_number=settings.whatsapp_number,
        currency_prefix=settings.currency_prefix,
        payment=PaymentDetails(
            bank=settings.payment_bank,
            account_name=settings.payment_account_name,
            account_type=settings.payment_account_type,
            account_number=settings.payment_account_number,
            branch_code=settings.payment_branch_code,
        ),
    )


def _number_suffix(order: Order) -> str:
    return f" {order.order_number}" if order.order_number else ""


def _text(*lines: str) -> str:
    return "\n".join(line for line in lines if line) + "\n"


def _is_low(item: StockItem) -> bool:
    return item.threshold > 0 and item.quantity <= item.threshold


class NotificationComposer:
    """Builds notification payloads for every NotificationKind.

    Admin recipient lists are resolved by the caller and passed in; an empty
    list means no admin payload is produced. Customer payloads are produced
    only when the order has an email address.
    """

    def __init__(self, settings: Settings):
        self.branding = branding_from_settings(settings)

    def compose(self, kind: NotificationKind, **kwargs: Any) -> list[NotificationPayload]:
        """Build the payloads for ``kind`` with the keyword arguments of the matching method."""
        if kind is NotificationKind.ORDER_CREATED:
            return self.order_created(**kwargs)
        if kind is NotificationKind.ORDER_STATUS_CHANGED:
            return self.order_status_changed(**kwargs)
        if kind is NotificationKind.DISPATCH_REQUESTED:
            return [self.dispatch_requested(**kwargs)]
        if kind is NotificationKind.CORRECTION_NOTICE:
            return self.correction_notice(**kwargs)
        if kind is NotificationKind.STOCK_THRESHOLD_CROSSED:
            return self.stock_threshold_crossed(**kwargs)
        if kind is NotificationKind.STOCK_SUMMARY:
            return self.stock_summary(**kwargs)
        if kind is NotificationKind.TEST_EMAIL:
            return [self.test_email(**kwargs)]
        raise ValueError(f"Unknown notification kind: {kind}")

    # --- orders ---

    def _summary_card(self, order: Order, heading: str) -> str:
        return summary_card_html(
            heading=heading,
            lines=breakdown(order.line_items),
            totals=calculate_totals(order.line_items, order.delivery_cost),
            item_label=order.stream.item_label,
            branding=self.branding,
        )

    def _totals_text(self, order: Order) -> str:
        totals = calculate_totals(order.line_items, order.delivery_cost)
        lines = [
            f"- {line.label} x {format_quantity(line.quantity)} @ {self.branding.money(line.unit_price)}"
            f" = {self.branding.money(line.line_total)}"
            for line in breakdown(order.line_items)
        ] or ["No items listed."]
        return "\n".join(
            [
                *lines,
                f"{order.stream.item_label} total: {self.branding.money(totals.subtotal)}",
                f"Delivery: {self.branding.money(totals.delivery)}",
                f"Grand total: {self.branding.money(totals.total)}",
            ]
        )

    def order_created(self, order: Order, admin_recipients: Sequence[str]) -> list[NotificationPayload]:
        """Customer confirmation plus the admin "new order" alert."""
        payloads: list[NotificationPayload] = []
        order_type = order.stream.order_type_label
        suffix = _number_suffix(order)
        status = status_label(order.status)
        paid = paid_label(order.paid)
        details = (
            field_html("Delivery option", order.delivery_option)
            + field_html("Send date", order.send_date)
            + field_html("Order number", order.order_number)
            + field_html("Status", status)
            + field_html("Paid", paid)
            + field_html("Notes", order.notes)
        )

        if order.email:
            intro = f"We've received your {order_type} order and will keep you updated."
            whatsapp = ""
            if self.branding.whatsapp_number:
                whatsapp = (
                    f"Please follow up via WhatsApp ({self.branding.whatsapp_number}) for order updates "
                    "and to confirm payment by sending proof of payment."
                )
            body = (
                f"<p>Hi {escape_html(order.customer_name)},</p>"
                f"<p>{escape_html(intro)}</p>"
                f"{self._summary_card(order, 'Your order')}"
                f"{details}"
                '<p class="muted">If you need to change anything, reply to this email.</p>'
                + (f'<p class="muted">{escape_html(whatsapp)}</p>' if whatsapp else "")
                + payment_section_html(order.order_number or "", self.branding)
            )
            payloads.append(
                NotificationPayload(
                    kind=NotificationKind.ORDER_CREATED,
                    audience=Audience.CUSTOMER,
                    subject=f"Your order{suffix} with {self.branding.name}",
                    recipients=(order.email,),
                    html_body=email_html(
                        self.branding, title="Thank you for your order!", intro=intro, preheader=intro, body=body
                    ),
                    text_body=_text(
                        f"Hi {order.customer_name},",
                        intro,
                        self._totals_text(order),
                        f"Order number: {order.order_number}" if order.order_number else "",
                        f"Status: {status}",
                        f"Paid: {paid}",
                        whatsapp,
                    ),
                )
            )

        if admin_recipients:
            intro = f"A new {order_type} order has been placed."
            body = (
                f"<p><strong>Customer:</strong> {escape_html(order.customer_name)}</p>"
                f"<p><strong>Email:</strong> {escape_html(order.email or '-')}</p>"
                f"<p><strong>Cellphone:</strong> {escape_html(order.cellphone or '-')}</p>"
                f"<p><strong>Address:</strong> {escape_html(order.address or '-')}</p>"
                f"{self._summary_card(order, 'Order summary')}"
                f"{details}"
                "<p><strong>Items:</strong></p>"
                f"<ul>{breakdown_list_html(breakdown(order.line_items), self.branding)}</ul>"
                f"<p><strong>Order ID:</strong> {escape_html(order.id)}</p>"
            )
            subject = f"New {order_type} order{suffix}"
            payloads.append(
                NotificationPayload(
                    kind=NotificationKind.ORDER_CREATED,
                    audience=Audience.ADMIN,
                    subject=subject,
                    recipients=tuple(admin_recipients),
                    html_body=email_html(self.branding, title=subject, intro=intro, preheader=intro, body=body),
                    text_body=_text(
                        intro,
                        f"Customer: {order.customer_name}",
                        f"Email: {order.email or '-'}",
                        f"Cellphone: {order.cellphone or '-'}",
                        f"Address: {order.address or '-'}",
                        self._totals_text(order),
                        f"Order ID: {order.id}",
                    ),
                )
            )
        return payloads

    def order_status_changed(
        self,
        order: Order,
        previous_status: str | None,
        admin_recipients: Sequence[str],
        status: str | None = None,
    ) -> list[NotificationPayload]:
        """Status update emails; nothing for unchanged or silent statuses.

        ``status`` is the status the change moved to (defaults to the order's
        current status); the trigger message carries it so a later edit does
        not change what this notification says.
        """
        new_status = status or order.status
        if previous_status == new_status:
            return []
        if new_status in SILENT_STATUSES:
            logger.info("Status notification suppressed", order_id=order.id, status=new_status)
            return []

        payloads: list[NotificationPayload] = []
        suffix = _number_suffix(order)
        label = status_label(new_status)
        tracking = normalize_url(order.tracking_link)
        card = self._summary_card(order, "Order summary")

        if order.email:
            intro = f"Your order status has been updated to {label}."
            body = (
                f"<p>Hi {escape_html(order.customer_name)},</p>"
                f"<p>Your order{escape_html(suffix)} status has been updated.</p>"
                f'<p><span class="pill">{escape_html(label)}</span></p>'
                f"{card}"
                f"{field_html('Delivery option', order.delivery_option)}"
                f"{field_html('Send date', order.send_date)}"
                f"{tracking_html(tracking)}"
                '<p class="muted">If you have questions, reply to this email.</p>'
            )
            payloads.append(
                NotificationPayload(
                    kind=NotificationKind.ORDER_STATUS_CHANGED,
                    audience=Audience.CUSTOMER,
                    subject=f"Your order{suffix} status update",
                    recipients=(order.email,),
                    html_body=email_html(
                        self.branding, title="Order status update", intro=intro, preheader=intro, body=body
                    ),
                    text_body=_text(
                        f"Hi {order.customer_name},",
                        intro,
                        f"Tracking: {tracking}" if tracking else "",
                        self._totals_text(order),
                    ),
                )
            )

        if admin_recipients:
            intro = f"Order status updated to {label}."
            subject = f"Order status updated{suffix}"
            previous = status_label(previous_status)
            body = (
                f"<p><strong>Order:</strong> {escape_html(order.order_number or order.id)}</p>"
                f"<p><strong>Customer:</strong> {escape_html(order.customer_name)}</p>"
                f"<p><strong>Previous status:</strong> {escape_html(previous)}</p>"
                f"<p><strong>New status:</strong> {escape_html(label)}</p>"
                f"{tracking_html(tracking)}"
                f"{card}"
            )
            payloads.append(
                NotificationPayload(
                    kind=NotificationKind.ORDER_STATUS_CHANGED,
                    audience=Audience.ADMIN,
                    subject=subject,
                    recipients=tuple(admin_recipients),
                    html_body=email_html(self.branding, title=subject, intro=intro, preheader=intro, body=body),
                    text_body=_text(
                        intro,
                        f"Order: {order.order_number or order.id}",
                        f"Customer: {order.customer_name}",
                        f"Previous status: {previous}",
                        f"New status: {label}",
                    ),
                )
            )
        return payloads

    def dispatch_requested(self, order: Order) -> NotificationPayload:
        """Customer dispatch notice, requested explicitly by staff.

        Raises:
            MissingDispatchDetails: If the order has no email or no send date
        """
        email = (order.email or "").strip()
        if not email:
            raise MissingDispatchDetails("Order email is missing.")
        if not (order.send_date or "").strip():
            raise MissingDispatchDetails("Order send date is missing.")

        suffix = _number_suffix(order)
        tracking = normalize_url(order.tracking_link)
        intro = f"Your order{suffix} is being prepared for dispatch."
        body = (
            f"<p>Hi {escape_html(order.customer_name)},</p>"
            f"<p>{escape_html(intro)}</p>"
            f"{self._summary_card(order, 'Order summary')}"
            f"{field_html('Delivery option', order.delivery_option)}"
            f"{field_html('Send date', order.send_date)}"
            f"{tracking_html(tracking)}"
            '<p class="muted">If you have questions, reply to this email.</p>'
        )
        return NotificationPayload(
            kind=NotificationKind.DISPATCH_REQUESTED,
            audience=Audience.CUSTOMER,
            subject=f"Your order{suffix} update from {self.branding.name}",
            recipients=(email,),
            html_body=email_html(self.branding, title="Dispatch update", intro=intro, preheader=intro, body=body),
            text_body=_text(
                f"Hi {order.customer_name},",
                intro,
                f"Send date: {order.send_date}",
                f"Tracking: {tracking}" if tracking else "",
                self._totals_text(order),
            ),
        )

    def correction_notice(
        self,
        order: Order,
        *,
        subject: str | None = None,
        message: str | None = None,
    ) -> list[NotificationPayload]:
        """Free-form correction sent to a customer about an earlier email."""
        email = (order.email or "").strip()
        if not email:
            return []

        subject = subject or f"Order update from {self.branding.name}"
        message = message or "Please note an update to your order."
        reference = (
            f"<p><strong>Order reference:</strong> {escape_html(order.order_number)}</p>"
            if order.order_number
            else ""
        )
        body = (
            f"<p>Hi {escape_html(order.customer_name)},</p>"
            f"<p>{escape_html(message)}</p>"
            f"{reference}"
            '<p class="muted">If you have questions, reply to this email.</p>'
        )
        return [
            NotificationPayload(
                kind=NotificationKind.CORRECTION_NOTICE,
                audience=Audience.CUSTOMER,
                subject=subject,
                recipients=(email,),
                html_body=email_html(self.branding, title=subject, intro=message, preheader=message, body=body),
                text_body=_text(
                    f"Hi {order.customer_name},",
                    message,
                    f"Order reference: {order.order_number}" if order.order_number else "",
                ),
            )
        ]

    # --- stock ---

    def stock_threshold_crossed(
        self, signal: ThresholdSignal, admin_recipients: Sequence[str]
    ) -> list[NotificationPayload]:
        if not admin_recipients:
            return []
        quantity = format_quantity(signal.quantity)
        threshold = format_quantity(signal.threshold)
        intro = f"{signal.name} is now below threshold."
        body = (
            f"<p><strong>{escape_html(signal.name)}</strong> is now below threshold.</p>"
            '<div class="summary">'
            f"<p><strong>Quantity:</strong> {quantity}</p>"
            f"<p><strong>Threshold:</strong> {threshold}</p>"
            "</div>"
        )
        return [
            NotificationPayload(
                kind=NotificationKind.STOCK_THRESHOLD_CROSSED,
                audience=Audience.ADMIN,
                subject=f"Stock alert: {signal.name} low",
                recipients=tuple(admin_recipients),
                html_body=email_html(
                    self.branding, title="Stock threshold alert", intro=intro, preheader=intro, body=body
                ),
                text_body=_text(intro, f"Quantity: {quantity}", f"Threshold: {threshold}"),
            )
        ]

    def stock_summary(
        self,
        items: Sequence[StockItem],
        admin_recipients: Sequence[str],
        *,
        title: str,
        include_all: bool,
    ) -> list[NotificationPayload]:
        """Stock report; low-stock items only unless ``include_all``."""
        if not admin_recipients:
            return []
        low = [item for item in items if _is_low(item)]
        listed = list(items) if include_all else low

        entries_html: list[str] = []
        entries_text: list[str] = []
        for item in listed:
            category = " / ".join(part for part in (item.category, item.sub_category) if part)
            label = f"{item.name} ({category})" if category else item.name
            threshold = format_quantity(item.threshold) if item.threshold else "-"
            flag = " (LOW)" if _is_low(item) else ""
            entries_html.append(
                f"<li>{escape_html(label)}: {format_quantity(item.quantity)} (threshold {threshold})"
                + (" <strong>(LOW)</strong>" if flag else "")
                + "</li>"
            )
            entries_text.append(f"- {label}: {format_quantity(item.quantity)} (threshold {threshold}){flag}")

        list_html = f"<ul>{''.join(entries_html)}</ul>" if entries_html else "<p>No items to report.</p>"
        intro = "Here is the latest stock summary report."
        body = (
            '<div class="summary">'
            f"<p><strong>Total items:</strong> {len(items)}</p>"
            f"<p><strong>Low stock items:</strong> {len(low)}</p>"
            f"{list_html}"
            "</div>"
        )
        return [
            NotificationPayload(
                kind=NotificationKind.STOCK_SUMMARY,
                audience=Audience.ADMIN,
                subject=title,
                recipients=tuple(admin_recipients),
                html_body=email_html(self.branding, title=title, intro=intro, preheader=intro, body=body),
                text_body=_text(
                    intro,
                    f"Total items: {len(items)}",
                    f"Low stock items: {len(low)}",
                    "\n".join(entries_text) or "No items to report.",
                ),
            )
        ]

    # --- misc ---

    def test_email(
        self,
        recipients: Sequence[str],
        subject: str | None = None,
        message: str | None = None,
    ) -> NotificationPayload:
        subject = subject or f"{self.branding.name} test email"
        message = message or "It works!"
        return NotificationPayload(
            kind=NotificationKind.TEST_EMAIL,
            audience=Audience.ADMIN,
            subject=subject,
            recipients=tuple(recipients),
            html_body=email_html(
                self.branding,
                title=subject,
                intro="Test email",
                preheader="Test email",
                body=f"<p>{escape_html(message)}</p>",
            ),
            text_body=_text(message),
        )
