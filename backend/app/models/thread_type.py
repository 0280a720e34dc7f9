import enum


class ThreadType(str, enum.Enum):
    """Owner of a Document or Message row."""

    connection = "connection"
    partner_request = "partner_request"
    funding_request = "funding_request"
