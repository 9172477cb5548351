from pydantic import BaseModel, Field


class ShortenRequest(BaseModel):
    # No format validation: any non-empty string is accepted as a URL
    url: str = Field(..., min_length=1, description="The original URL to be shortened")


class ShortenResponse(BaseModel):
    url: str = Field(..., description="Fully-qualified short link")


class URLRecordResponse(BaseModel):
    """A stored record plus its short link"""
    id: str
    url: str
    short_url: str
