"""Operational CLI: scheduled stock reports and mail checks.

Cron example (Africa/Johannesburg):
    0 8 * * *  orderdesk stock-summary --report morning
    0 18 * * * orderdesk stock-summary --report evening
    0 20 * * * orderdesk stock-summary --report daily
"""

import asyncio
import os
import shutil

import click
import structlog

from orderdesk.config import get_settings
from orderdesk.logging import setup_logging
from orderdesk.services.exceptions import ServiceError
from orderdesk.services.external.resend import ResendService
from orderdesk.services.notifications.notification_service import NotificationService, StockReport

logger = structlog.get_logger(__name__)


@click.group()
def cli() -> None:
    """Order Desk operational commands."""
    setup_logging()


async def _send_stock_report(report: StockReport) -> str | None:
    from orderdesk.tasks.utils.task_db import task_db_session

    settings = get_settings()
    async with task_db_session() as session:
        service = NotificationService(session, ResendService(settings), settings)
        return await service.send_stock_report(report)


async def _send_test_email(to: list[str], subject: str | None, message: str | None) -> str | None:
    from orderdesk.tasks.utils.task_db import task_db_session

    settings = get_settings()
    async with task_db_session() as session:
        service = NotificationService(session, ResendService(settings), settings)
        return await service.send_test_email(to, subject=subject, message=message)


@cli.command("stock-summary")
@click.option(
    "--report",
    type=click.Choice([report.value for report in StockReport]),
    default=StockReport.DAILY.value,
    show_default=True,
    help="Morning/evening list low stock only; daily/test list every item",
)
@click.option("--enqueue", is_flag=True, help="Hand the report to a Dramatiq worker instead of sending inline")
def stock_summary(report: str, enqueue: bool) -> None:
    """Email a stock summary to the admin recipients."""
    selected = StockReport(report)
    if enqueue:
        from orderdesk.tasks.stock.stock_events import send_stock_summary

        send_stock_summary.send(selected.value)
        click.echo(f"Queued {selected.title}")
        return

    try:
        delivery_id = asyncio.run(_send_stock_report(selected))
    except ServiceError as e:
        raise click.ClickException(str(e)) from e

    if delivery_id is None:
        click.secho("No admin recipients configured, nothing sent.", fg="yellow")
    else:
        click.echo(f"Sent {selected.title} ({delivery_id})")


@cli.command("test-email")
@click.option("--to", "to", multiple=True, required=True, help="Recipient address (repeatable)")
@click.option("--subject", default=None, help="Subject line")
@click.option("--message", default=None, help="Plain-text message body")
def test_email(to: tuple[str, ...], subject: str | None, message: str | None) -> None:
    """Send a branded test email through the configured transport."""
    try:
        delivery_id = asyncio.run(_send_test_email(list(to), subject, message))
    except ServiceError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Sent test email ({delivery_id})")


@cli.command("worker", context_settings={"ignore_unknown_options": True})
@click.argument("dramatiq_args", nargs=-1, type=click.UNPROCESSED)
def worker(dramatiq_args: tuple[str, ...]) -> None:
    """Queue recovery, then exec into the Dramatiq worker CLI.

    Extra arguments go to dramatiq unchanged, e.g. ``orderdesk worker --processes 2``.
    """
    from orderdesk.tasks.utils.recovery import run_recovery

    run_recovery.send()
    logger.info("Dispatched recovery task")

    dramatiq_path = shutil.which("dramatiq")
    if dramatiq_path is None:
        raise click.ClickException("Dramatiq executable not found in PATH")
    os.execv(dramatiq_path, [dramatiq_path, "orderdesk.tasks", *dramatiq_args])


@cli.command("recover")
def recover() -> None:
    """Queue the recovery task (re-sends create handlers for unnumbered orders)."""
    from orderdesk.tasks.utils.recovery import run_recovery

    run_recovery.send()
    click.echo("Queued recovery task")


if __name__ == "__main__":
    cli()
