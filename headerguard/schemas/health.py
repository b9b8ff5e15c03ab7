from headerguard.schemas import AppBaseModel


class HealthResponse(AppBaseModel):
    """GET /health response."""

    status: str
