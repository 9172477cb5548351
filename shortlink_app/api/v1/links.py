from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse
from shortlink_app.schemas.url import ShortenRequest, ShortenResponse
from shortlink_app.services.url_service import URLService
from shortlink_app.dependencies import get_url_service

router = APIRouter(tags=["links"])


@router.post("/", response_model=ShortenResponse, status_code=status.HTTP_201_CREATED)
async def shorten_url(
    body: ShortenRequest,
    url_service: URLService = Depends(get_url_service)
):
    """
    Shorten a URL.

    Submitting the same URL again returns the same short link.
    """
    short_link = await url_service.shorten(body.url)
    return ShortenResponse(url=short_link)


@router.get("/{short_id}")
async def redirect_to_url(
    short_id: str,
    url_service: URLService = Depends(get_url_service)
):
    """
    Redirect to the original URL (308, method and body preserved).

    Unknown ids surface as ShortIdNotFoundError, mapped to 404 by the app.
    """
    url = await url_service.resolve(short_id)
    return RedirectResponse(url=url, status_code=status.HTTP_308_PERMANENT_REDIRECT)
