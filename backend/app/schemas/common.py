from pydantic import BaseModel


class Envelope(BaseModel):
    """Every response body carries success; failures add error (see app.main)."""

    success: bool = True

