"""HTML building blocks for notification emails.

Every function here takes already-escaped fragments or escapes its own
arguments; callers never pass raw customer text into ``body``.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from orderdesk.services.notifications.formatting import (
    BreakdownLine,
    OrderTotals,
    escape_html,
    format_currency,
    format_quantity,
)

EMAIL_STYLES = """
  body { margin:0; padding:0; background:#f8fafc; color:#0f172a; }
  .container { max-width:640px; margin:20px auto; padding:24px; background:#ffffff;
    border:1px solid #e2e8f0; border-radius:16px; font-family:'Helvetica Neue', Arial, sans-serif; }
  h1,h2,h3 { color:#064e3b; margin:0 0 12px; }
  p { margin:6px 0; color:#334155; line-height:1.5; }
  ul { margin:6px 0; padding-left:20px; color:#334155; }
  li { margin-bottom:4px; }
  .pill { display:inline-block; padding:4px 10px; border-radius:999px; background:#ecfdf3;
    color:#047857; font-weight:600; font-size:12px; }
  .summary { margin:16px 0; padding:14px; background:#f1f5f9; border-radius:12px; border:1px solid #e2e8f0; }
  .muted { color:#64748b; font-size:13px; }
  .total { font-size:18px; font-weight:700; color:#064e3b; }
  .divider { border-bottom:1px solid #e2e8f0; margin:16px 0; }
  a { color:#0f766e; }
"""


@dataclass(frozen=True)
class PaymentDetails:
    bank: str = ""
    account_name: str = ""
    account_type: str = ""
    account_number: str = ""
    branch_code: str = ""

    def rows(self) -> list[tuple[str, str]]:
        rows = [
            ("Bank", self.bank),
            ("Account Name", self.account_name),
            ("Account Type", self.account_type),
            ("Account Number", self.account_number),
            ("Branch Code", self.branch_code),
        ]
        return [(label, value) for label, value in rows if value]


@dataclass(frozen=True)
class Branding:
    """Shop identity and copy used across all emails."""

    name: str
    logo_url: str = ""
    whatsapp_number: str = ""
    currency_prefix: str = "R"
    payment: PaymentDetails = PaymentDetails()

    def money(self, value: object) -> str:
        return format_currency(value, self.currency_prefix)


def header_html(branding: Branding) -> str:
    name = escape_html(branding.name)
    logo = ""
    if branding.logo_url:
        logo = (
            f'<img src="{escape_html(branding.logo_url)}" alt="{name}" '
            'style="height:80px; width:auto; border-radius:12px; border:1px solid #e2e8f0;" />'
        )
    return (
        '<div style="margin-bottom:12px; text-align:center;">'
        f'{logo}<span style="font-weight:700; color:#0f172a; font-size:20px;">{name}</span>'
        "</div>"
    )


def email_html(
    branding: Branding,
    *,
    title: str,
    body: str,
    intro: str = "",
    preheader: str = "",
    footer: str = "",
) -> str:
    """Full HTML document. ``title``, ``intro`` and ``preheader`` are plain text; ``body`` is HTML."""
    preheader_html = ""
    if preheader:
        preheader_html = (
            '<span style="display:none; font-size:1px; color:#f8fafc; line-height:1px; '
            f'max-height:0; max-width:0; opacity:0; overflow:hidden;">{escape_html(preheader)}</span>'
        )
    intro_html = f'<p class="muted" style="margin-top:0;">{escape_html(intro)}</p>' if intro else ""
    title_html = f"<h2>{escape_html(title)}</h2>" if title else ""
    return (
        "<!DOCTYPE html><html><head>"
        '<meta name="viewport" content="width=device-width, initial-scale=1.0" />'
        '<meta http-equiv="Content-Type" content="text/html; charset=UTF-8" />'
        f"<title>{escape_html(title or branding.name)}</title>"
        f"<style>{EMAIL_STYLES}</style>"
        '</head><body><div class="container">'
        f"{preheader_html}{intro_html}{header_html(branding)}{title_html}{body}{footer}"
        "</div></body></html>"
    )


def _breakdown_entry(line: BreakdownLine, branding: Branding) -> str:
    return (
        f"{escape_html(line.label)} x {format_quantity(line.quantity)} @ "
        f"{branding.money(line.unit_price)} = {branding.money(line.line_total)}"
    )


def breakdown_html(lines: Sequence[BreakdownLine], branding: Branding) -> str:
    if not lines:
        return "No items listed."
    return "<br/>".join(_breakdown_entry(line, branding) for line in lines)


def breakdown_list_html(lines: Sequence[BreakdownLine], branding: Branding) -> str:
    if not lines:
        return "<li>No items listed.</li>"
    return "".join(f"<li>{_breakdown_entry(line, branding)}</li>" for line in lines)


def summary_card_html(
    *,
    heading: str,
    lines: Sequence[BreakdownLine],
    totals: OrderTotals,
    item_label: str,
    branding: Branding,
) -> str:
    return (
        '<div class="summary">'
        f'<h3 style="margin: 0 0 8px;">{escape_html(heading)}</h3>'
        f'<p style="margin: 0 0 8px;">{breakdown_html(lines, branding)}</p>'
        f"<p><strong>{escape_html(item_label)} total:</strong> {branding.money(totals.subtotal)}</p>"
        f"<p><strong>Delivery:</strong> {branding.money(totals.delivery)}</p>"
        f'<p class="total">Grand total: {branding.money(totals.total)}</p>'
        "</div>"
    )


def payment_section_html(order_number: str, branding: Branding) -> str:
    reference = f"your name or order number ({escape_html(order_number)})" if order_number else "your name"
    rows = "".join(
        f'<p style="margin: 0;"><strong>{label}:</strong> {escape_html(value)}</p>'
        for label, value in branding.payment.rows()
    )
    return (
        '<div class="divider"></div>'
        '<h3 style="margin: 0 0 8px;">Payment</h3>'
        "<p>We are an <strong>EFT and Cash Only</strong> business. "
        "Please use the details below to make an EFT payment:</p>"
        f"{rows}"
        f'<p class="muted">Reference: {reference}</p>'
    )


def field_html(label: str, value: object) -> str:
    """``<p><strong>Label:</strong> value</p>``, or nothing when value is empty."""
    if value is None or value == "":
        return ""
    return f"<p><strong>{escape_html(label)}:</strong> {escape_html(value)}</p>"


def tracking_html(url: str) -> str:
    if not url:
        return ""
    safe = escape_html(url)
    return f'<p><strong>Tracking:</strong> <a href="{safe}">{safe}</a></p>'
