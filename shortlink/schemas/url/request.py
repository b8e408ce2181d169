from pydantic import BaseModel, Field
from typing import Optional

# 100 years; negative values are accepted and produce an already-expired link
MAX_EXPIRES_IN_HOURS = 24 * 365 * 100


# Request DTOs
class ShortenRequest(BaseModel):
    # Validated by the registry so a malformed URL maps to 400 like any other invalid URL
    url: str
    expires_in: Optional[int] = Field(
        None,
        ge=-MAX_EXPIRES_IN_HOURS,
        le=MAX_EXPIRES_IN_HOURS,
        description="Lifetime of the link in hours",
    )
