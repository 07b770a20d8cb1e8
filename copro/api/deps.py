"""Request-scoped dependencies shared by the API routers."""

from dataclasses import dataclass
from datetime import date

from fastapi import Depends, Header, Query

from copro.config import Settings, get_settings


@dataclass
class RequestContext:
    """Encapsulates who is acting and the reference date of a request."""

    actor_id: int | None
    """Administrator performing the request (X-Actor-Id header), if known."""

    today: date
    """Reference date for activity windows and overdue checks."""

    settings: Settings


def get_request_context(
    x_actor_id: int | None = Header(None, description="Administrator performing the request"),
    as_of: date | None = Query(None, description="Reference date (default: today)"),
    settings: Settings = Depends(get_settings),
) -> RequestContext:
    """Build the request context passed explicitly to the services."""
    return RequestContext(actor_id=x_actor_id, today=as_of or date.today(), settings=settings)


__all__ = ["RequestContext", "get_request_context"]
