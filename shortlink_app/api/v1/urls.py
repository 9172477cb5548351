from fastapi import APIRouter, Depends
from shortlink_app.schemas.url import URLRecordResponse
from shortlink_app.services.url_service import URLService
from shortlink_app.dependencies import get_url_service

router = APIRouter(prefix="/urls", tags=["urls"])


@router.get("/{short_id}", response_model=URLRecordResponse)
async def get_url_info(
    short_id: str,
    url_service: URLService = Depends(get_url_service)
):
    """Get the stored record for a short id without redirecting"""
    record = await url_service.get_record(short_id)
    return URLRecordResponse(
        id=record.id,
        url=record.url,
        short_url=url_service.build_short_link(record.id),
    )
