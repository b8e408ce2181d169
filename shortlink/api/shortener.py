from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
import logging

from shortlink.api.deps import get_code_generator, get_deadline, get_registry
from shortlink.core.deadline import Deadline
from shortlink.core.errors import ExpiredError, InactiveError, InvalidURLError, NotFoundError
from shortlink.schemas import GenerateResponse, ShortenRequest, ShortenResponse, StatsResponse
from shortlink.services.keygen import CodeGenerator
from shortlink.services.shortener import LinkRegistry

logger = logging.getLogger(__name__)

api_router = APIRouter(prefix="/api/v1", tags=["shortener"])
redirect_router = APIRouter(tags=["redirect"])


@api_router.post(
    "/shorten",
    response_model=ShortenResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
def shorten_url_endpoint(
    url_request: ShortenRequest,
    request: Request,
    registry: LinkRegistry = Depends(get_registry),
    deadline: Deadline = Depends(get_deadline),
):
    expires_after = timedelta(hours=url_request.expires_in) if url_request.expires_in is not None else None
    try:
        link = registry.create_short_link(url_request.url, expires_after, deadline)
    except InvalidURLError as e:
        logger.info(f"Rejected URL {url_request.url[:50]!r}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid URL")

    base_url = request.app.state.settings.BASE_URL.rstrip("/")
    return ShortenResponse(
        short_url=f"{base_url}/{link.short_code}",
        short_code=link.short_code,
        original_url=link.original_url,
        expires_at=link.expires_at,
    )


@api_router.get("/generate", response_model=GenerateResponse)
def generate_code_endpoint(code_generator: CodeGenerator = Depends(get_code_generator)):
    return GenerateResponse(short_code=code_generator.generate_code())


@api_router.get("/{short_code}/stats", response_model=StatsResponse, response_model_exclude_none=True)
def get_stats_endpoint(
    short_code: str,
    registry: LinkRegistry = Depends(get_registry),
    deadline: Deadline = Depends(get_deadline),
):
    try:
        link = registry.get_stats(short_code, deadline)
    except NotFoundError:
        logger.info(f"Stats 404: Short code not found: {short_code}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Short URL not found")
    return StatsResponse.model_validate(link)


@redirect_router.get("/{short_code}")
def redirect_to_url_endpoint(
    short_code: str,
    registry: LinkRegistry = Depends(get_registry),
    deadline: Deadline = Depends(get_deadline),
):
    """
    Access the shortened URL and get redirected to the original long URL.
    """
    try:
        original_url = registry.resolve_short_link(short_code, deadline)
    except NotFoundError:
        logger.info(f"Redirect 404: Short code not found: {short_code}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="URL not found")
    except ExpiredError:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="URL has expired")
    except InactiveError:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="URL is inactive")

    return RedirectResponse(url=original_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
