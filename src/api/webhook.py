"""
Web form endpoint: accepts reservation submissions from the public site.

Check order: required fields, global online block, date parse, then the
admission-checked booking with the web form policy (rejections fail hard,
nothing is waitlisted).
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from fastapi import APIRouter, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.app_context import AppContext
from src.config import settings
from src.errors import BookingRejected
from src.integrations.notifications import LogNotifier, StaffNotifier
from src.logging_context import get_request_logger, new_request_id
from src.prompts.message_templates import build_new_booking_notification
from src.prompts.messages import WEB_CLOSED_MESSAGE
from src.schemas.reservation_schema import Channel, WebBookingRequest
from src.tools.booking import book_with_capacity_check
from src.utils import parse_instant, parse_party_size

logger = get_request_logger(__name__)

router = APIRouter()


class BackgroundService(Protocol):
    """Something started and stopped with the HTTP server (the chat bot)."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


def _error(status_code: int, error: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, **extra})


@router.get("/")
def health() -> dict[str, str]:
    return {
        "status": "running",
        "service": f"{settings.restaurant.name} booking assistant",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/webhook")
async def webhook(body: WebBookingRequest, request: Request) -> JSONResponse:
    context: AppContext = request.app.state.context
    notifier: StaffNotifier = request.app.state.notifier
    new_request_id("web")

    name = (body.name or "").strip()
    if not name or body.party_size in (None, "") or not body.date_time:
        return _error(400, "Missing required fields: name, partySize, dateTime")
    party_size = parse_party_size(body.party_size)
    if party_size is None:
        return _error(400, "partySize must be a positive integer")

    if context.state.online_booking_blocked:
        logger.info("Web booking for %s refused: online bookings blocked", name)
        return _error(423, "Online bookings temporarily closed", message=WEB_CLOSED_MESSAGE)

    instant = parse_instant(body.date_time, context.state.tz)
    if instant is None:
        return _error(400, "Invalid dateTime format")

    logger.info("Web booking request: %s, %d ppl, %s", name, party_size, instant.isoformat())
    try:
        confirmation = await run_in_threadpool(
            book_with_capacity_check,
            context.writer,
            context.waitlist,
            name,
            party_size,
            instant,
            Channel.WEB_FORM,
            email=body.email or None,
        )
    except BookingRejected as exc:
        return _error(409, "Service unavailable", message=str(exc), fullBooking=True)

    record = confirmation.record
    availability = confirmation.availability
    try:
        await notifier.notify(build_new_booking_notification(
            record, availability.remaining, availability.service, web=True
        ))
    except Exception:
        logger.exception("Staff notification failed for row %d", record.row_index)

    return JSONResponse(status_code=200, content={
        "success": True,
        "message": "Reservation created",
        "reservation": {
            "name": record.customer_name,
            "partySize": record.party_size,
            "dateTime": record.scheduled_at.isoformat(),
        },
        "remaining": availability.remaining,
        "service": availability.service,
    })


async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected malformed body on %s: %s", request.url.path, exc.errors())
    return _error(400, "Invalid request body")


async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return _error(500, "Server error")


def create_app(
    context: AppContext,
    notifier: Optional[StaffNotifier] = None,
    background: Optional[BackgroundService] = None,
) -> FastAPI:
    """Build the FastAPI app around a shared AppContext."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if background is not None:
            await background.start()
        logger.info("Web endpoint ready on %s:%d", settings.server.host, settings.server.port)
        yield
        if background is not None:
            await background.stop()

    app = FastAPI(title=f"{settings.restaurant.name} bookings", version="1.0.0", lifespan=lifespan)
    app.state.context = context
    app.state.notifier = notifier or LogNotifier()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _invalid_body)
    app.add_exception_handler(Exception, _unexpected)
    app.include_router(router)
    return app
