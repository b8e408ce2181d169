# re-export common schemas for simpler imports
from .url.request import ShortenRequest
from .url.response import GenerateResponse, ShortenResponse, StatsResponse

__all__ = [
    "ShortenRequest",
    "ShortenResponse",
    "GenerateResponse",
    "StatsResponse",
]
