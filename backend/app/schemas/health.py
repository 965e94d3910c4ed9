"""Health check schemas."""

from typing import Literal, Optional

from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    """Store and cache reachability for the category API.

    ``categories`` is the row count seen by the health query, or None when the
    store could not be reached. A cache outage only degrades the service:
    reads fall back to the store.
    """

    status: Literal["ok", "degraded", "unavailable"]
    database: str
    cache: str
    categories: Optional[int] = None
