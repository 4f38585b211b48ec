"""FastAPI application — HTTP endpoints over the availability store.

Endpoints:

  GET    /health                               Health check
  POST   /availabilities                       Create an availability
  GET    /availabilities                       The caller's availabilities
  GET    /availabilities/search?email=         Another user's availabilities
  GET    /availabilities/{id}                  One availability
  PATCH  /availabilities/{id}                  Update title/description/slots/timezone
  DELETE /availabilities/{id}                  Delete
  POST   /availabilities/{id}/favorite         Make it the caller's favorite
  POST   /availabilities/{id}/regenerate-id    Issue a fresh share id
  PUT    /availabilities/{id}/busy-times       Replace uploaded busy blocks
  GET    /availabilities/{id}/week             Day columns for the grid
  GET    /availabilities/{id}/mutual?with=     Common free time with another availability
  GET    /summary?ids=&start=&end=             Combined free/busy timeline

Every endpoint except /health identifies the caller by bearer token.
"""

from __future__ import annotations

from dotenv import load_dotenv
load_dotenv()

import logging
import time
from datetime import date, datetime, timedelta
from typing import Optional

# Configure root logger early so all app loggers have a handler and are
# visible when run via `uvicorn availability.app:app`.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-20s %(levelname)-7s %(message)s",
)

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, Response
from zoneinfo import ZoneInfoNotFoundError

from availability.auth import require_caller
from availability.config import settings
from availability.converter import build_days, offset_between, zone
from availability.errors import (
    AvailabilityNotFoundError,
    PermissionDeniedError,
    SlotValidationError,
)
from availability.grid import column_height, leading_spacer
from availability.models.availability import (
    Availability,
    BusyBlock,
    CreateAvailabilityRequest,
    UpdateAvailabilityRequest,
)
from availability.mutual import availability_summary, busy_from_blocks, mutual_availability
from availability.store import MemoryAvailabilityStore

log = logging.getLogger("availability.app")

_START_TIME = time.time()
MAX_DAYS = 31


def _viewer_zone(name: Optional[str]):
    try:
        return zone(name or settings.display_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown timezone: {name}",
        ) from None


def create_app(store: Optional[MemoryAvailabilityStore] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    for warning in settings.validate_startup():
        log.warning(warning)

    app = FastAPI(
        title="Availability Grid",
        description="Weekly availability, day-column layout and mutual free time",
        version="0.1.0",
    )
    app.state.store = store or MemoryAvailabilityStore()

    def get_store() -> MemoryAvailabilityStore:
        return app.state.store

    # ── Error mapping ──────────────────────────────────────────

    @app.exception_handler(AvailabilityNotFoundError)
    async def not_found(request: Request, exc: AvailabilityNotFoundError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_404_NOT_FOUND)

    @app.exception_handler(PermissionDeniedError)
    async def forbidden(request: Request, exc: PermissionDeniedError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_403_FORBIDDEN)

    @app.exception_handler(SlotValidationError)
    async def invalid(request: Request, exc: SlotValidationError) -> JSONResponse:
        return JSONResponse(
            {"detail": str(exc)}, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        """Lightweight health check — confirms the event loop is responsive."""
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({"status": "ok", "uptime": uptime})

    # ── Availability CRUD ──────────────────────────────────────

    @app.post("/availabilities", status_code=status.HTTP_201_CREATED)
    async def create_availability(
        req: CreateAvailabilityRequest,
        caller: str = Depends(require_caller),
        store: MemoryAvailabilityStore = Depends(get_store),
    ) -> Availability:
        return store.create(caller, req)

    @app.get("/availabilities")
    async def list_availabilities(
        caller: str = Depends(require_caller),
        store: MemoryAvailabilityStore = Depends(get_store),
    ) -> list[Availability]:
        return store.list_for_owner(caller)

    @app.get("/availabilities/search")
    async def search_availabilities(
        email: str,
        caller: str = Depends(require_caller),
        store: MemoryAvailabilityStore = Depends(get_store),
    ) -> list[Availability]:
        return store.search_by_email(email)

    @app.get("/availabilities/{availability_id}")
    async def get_availability(
        availability_id: str,
        caller: str = Depends(require_caller),
        store: MemoryAvailabilityStore = Depends(get_store),
    ) -> Availability:
        return store.get(availability_id)

    @app.patch("/availabilities/{availability_id}")
    async def update_availability(
        availability_id: str,
        req: UpdateAvailabilityRequest,
        caller: str = Depends(require_caller),
        store: MemoryAvailabilityStore = Depends(get_store),
    ) -> Availability:
        return store.update(caller, availability_id, req)

    @app.delete("/availabilities/{availability_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_availability(
        availability_id: str,
        caller: str = Depends(require_caller),
        store: MemoryAvailabilityStore = Depends(get_store),
    ) -> Response:
        store.delete(caller, availability_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/availabilities/{availability_id}/favorite")
    async def set_favorite(
        availability_id: str,
        caller: str = Depends(require_caller),
        store: MemoryAvailabilityStore = Depends(get_store),
    ) -> list[Availability]:
        store.set_favorite(caller, availability_id)
        return store.list_for_owner(caller)

    @app.post("/availabilities/{availability_id}/regenerate-id")
    async def regenerate_id(
        availability_id: str,
        caller: str = Depends(require_caller),
        store: MemoryAvailabilityStore = Depends(get_store),
    ) -> JSONResponse:
        return JSONResponse({"id": store.regenerate_id(caller, availability_id)})

    @app.put("/availabilities/{availability_id}/busy-times")
    async def update_busy_times(
        availability_id: str,
        busy_times: list[BusyBlock],
        caller: str = Depends(require_caller),
        store: MemoryAvailabilityStore = Depends(get_store),
    ) -> Availability:
        store.update_busy_times(caller, availability_id, busy_times)
        return store.get(availability_id)

    # ── Derived views ──────────────────────────────────────────

    @app.get("/availabilities/{availability_id}/week")
    async def week_view(
        availability_id: str,
        start: date,
        days: int = Query(default=7, ge=1, le=MAX_DAYS),
        tz: Optional[str] = None,
        caller: str = Depends(require_caller),
        store: MemoryAvailabilityStore = Depends(get_store),
    ) -> JSONResponse:
        """Day columns in the viewer's zone, with pixel heights and leading spacers."""
        availability = store.get(availability_id)
        viewer_tz = _viewer_zone(tz)
        offset = offset_between(availability.timezone, viewer_tz, start)
        columns = build_days(start, days, availability.slots, offset)
        return JSONResponse({
            "id": availability.id,
            "title": availability.title,
            "days": [
                {
                    **day.to_dict(),
                    "height": column_height(day),
                    "spacer": leading_spacer(day, columns),
                }
                for day in columns
            ],
        })

    @app.get("/availabilities/{availability_id}/mutual")
    async def mutual_view(
        availability_id: str,
        start: date,
        with_id: str = Query(alias="with"),
        days: int = Query(default=7, ge=1, le=MAX_DAYS),
        tz: Optional[str] = None,
        caller: str = Depends(require_caller),
        store: MemoryAvailabilityStore = Depends(get_store),
    ) -> JSONResponse:
        """Common free time between the caller's ``with`` availability and this one."""
        owner = store.get(availability_id)
        viewer = store.get(with_id)
        if viewer.owner != caller:
            raise PermissionDeniedError("Only the owner can compare this availability")

        viewer_tz = _viewer_zone(tz)
        mutual = mutual_availability(
            viewer.slots,
            owner.slots,
            week_start=start,
            week_end=start + timedelta(days=days),
            busy=busy_from_blocks(owner.busy_times or []),
            tz=viewer_tz,
            viewer_offset=offset_between(viewer.timezone, viewer_tz, start),
            owner_offset=offset_between(owner.timezone, viewer_tz, start),
        )
        return JSONResponse({"days": [d.to_dict() for d in mutual]})

    @app.get("/summary")
    async def summary(
        start: datetime,
        end: datetime,
        ids: list[str] = Query(default=[]),
        tz: Optional[str] = None,
        caller: str = Depends(require_caller),
        store: MemoryAvailabilityStore = Depends(get_store),
    ) -> JSONResponse:
        if end <= start:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="end must be after start",
            )
        viewer_tz = _viewer_zone(tz)
        if start.tzinfo is None:
            start = start.replace(tzinfo=viewer_tz)
        if end.tzinfo is None:
            end = end.replace(tzinfo=viewer_tz)

        availabilities = [store.get(i) for i in ids]
        busy = []
        for availability in availabilities:
            busy.extend(busy_from_blocks(availability.busy_times or []))

        blocks = availability_summary(
            [a.slots for a in availabilities], busy, start, end, viewer_tz,
        )
        return JSONResponse({"blocks": [b.to_dict() for b in blocks]})

    return app


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


if __name__ == "__main__":
    import uvicorn

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    uvicorn.run(
        "availability.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=log_config,
    )
