# This project was developed with assistance from AI tools.
"""RFC 7807 Problem Details error response schema."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Problem Details body returned by every failing compliance request.

    ``type`` is ``about:blank`` for plain HTTP errors and names the engine
    error kind otherwise; ``source`` is set only when a collaborator read
    failed.
    """

    type: str = Field(
        default="about:blank",
        description="about:blank, source_unavailable or invalid_input.",
    )
    title: str = Field(description="Short human-readable summary of the problem.")
    status: int = Field(description="HTTP status code.")
    detail: str = Field(default="", description="What went wrong for this request.")
    request_id: str = Field(default="", description="Correlation ID for the request logs.")
    source: str | None = Field(
        default=None,
        description="directory, requirement_catalog or record_store when a read failed.",
    )
