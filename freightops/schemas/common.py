from datetime import datetime, timezone
from typing import Annotated
from pydantic import AfterValidator


def to_naive_utc(value: datetime) -> datetime:
    """Stored times are naive UTC; offset-aware input is converted before it reaches the services."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UTCDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]
