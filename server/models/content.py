"""Request models for admin-managed content."""

from typing import Annotated, List

from pydantic import AfterValidator, AnyUrl, BaseModel, TypeAdapter, ValidationError, field_validator

_url_adapter = TypeAdapter(AnyUrl)

# Social links that are not web URLs
NON_WEB_SCHEMES = ("tel:", "mailto:")


def validate_url(value: str) -> str:
    """Reject values that are not absolute URLs; keep the caller's string as-is."""
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        raise ValueError(f"Invalid URL: {value}")
    return value


UrlStr = Annotated[str, AfterValidator(validate_url)]


class BannerRequest(BaseModel):
    image_url: UrlStr
    link_href: UrlStr


class VideoRequest(BaseModel):
    youtube_url: str


class SocialLink(BaseModel):
    type: str
    link: str

    @field_validator("type", "link")
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Each social needs a type and a link")
        return v

    @field_validator("link")
    @classmethod
    def link_is_url(cls, v):
        if v.startswith(NON_WEB_SCHEMES):
            return v
        return validate_url(v)


class SocialsRequest(BaseModel):
    socials: List[SocialLink]


class PopupRequest(BaseModel):
    image_url: UrlStr
    link_url: UrlStr
