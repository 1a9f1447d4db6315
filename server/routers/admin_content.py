"""Admin content management routes: banners, video, socials, popup."""

from fastapi import APIRouter, Depends, HTTPException

from constants import BANNER_TYPES
from core.container import container
from core.logging import get_logger
from models.content import BannerRequest, PopupRequest, SocialsRequest, VideoRequest
from services.content import ContentService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin-content"])


def get_content_service() -> ContentService:
    return container.content_service()


def _check_banner_type(banner_type: str) -> None:
    if banner_type not in BANNER_TYPES:
        raise HTTPException(status_code=400, detail="Type must be banner1 or banner2")


# =============================================================================
# BANNERS
# =============================================================================

@router.get("/banners")
async def get_banners(content: ContentService = Depends(get_content_service)):
    return {"success": True, "banners": await content.get_banners()}


@router.post("/banners/{banner_type}")
async def add_banner(
    banner_type: str,
    request: BannerRequest,
    content: ContentService = Depends(get_content_service)
):
    _check_banner_type(banner_type)
    banner, total = await content.add_banner(banner_type, request.image_url, request.link_href)
    return {
        "success": True,
        "message": f"Banner added to {banner_type}",
        "banner": banner,
        "total": total,
    }


@router.put("/banners/{banner_type}/{banner_id}")
async def update_banner(
    banner_type: str,
    banner_id: str,
    request: BannerRequest,
    content: ContentService = Depends(get_content_service)
):
    _check_banner_type(banner_type)
    banner = await content.update_banner(banner_type, banner_id, request.image_url, request.link_href)
    if banner is None:
        raise HTTPException(status_code=404, detail="Banner not found")
    return {"success": True, "message": "Banner updated", "banner": banner}


@router.delete("/banners/{banner_type}/{banner_id}")
async def delete_banner(
    banner_type: str,
    banner_id: str,
    content: ContentService = Depends(get_content_service)
):
    _check_banner_type(banner_type)
    result = await content.delete_banner(banner_type, banner_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Banner not found")
    deleted, remaining = result
    return {
        "success": True,
        "message": "Banner deleted",
        "deletedBanner": deleted,
        "remaining": remaining,
    }


# =============================================================================
# VIDEO
# =============================================================================

@router.get("/video")
async def get_video(content: ContentService = Depends(get_content_service)):
    return {"success": True, "video": await content.get_video()}


@router.post("/video")
async def set_video(
    request: VideoRequest,
    content: ContentService = Depends(get_content_service)
):
    if not request.youtube_url:
        raise HTTPException(status_code=400, detail="youtube_url is required")
    video = await content.set_video(request.youtube_url)
    if video is None:
        raise HTTPException(status_code=400, detail="Invalid YouTube URL")
    return {"success": True, "message": "Video updated", "video": video}


@router.delete("/video")
async def delete_video(content: ContentService = Depends(get_content_service)):
    await content.delete_video()
    return {"success": True, "message": "Video deleted"}


# =============================================================================
# SOCIALS
# =============================================================================

@router.get("/socials")
async def get_socials(content: ContentService = Depends(get_content_service)):
    return {"success": True, "socials": await content.get_socials()}


@router.post("/socials")
async def set_socials(
    request: SocialsRequest,
    content: ContentService = Depends(get_content_service)
):
    socials = await content.set_socials([social.model_dump() for social in request.socials])
    return {"success": True, "message": "Social links updated", "socials": socials}


# =============================================================================
# POPUP
# =============================================================================

@router.get("/popup")
async def get_popup(content: ContentService = Depends(get_content_service)):
    return {"success": True, "popup": await content.get_popup()}


@router.post("/popup")
async def set_popup(
    request: PopupRequest,
    content: ContentService = Depends(get_content_service)
):
    popup = await content.set_popup(request.image_url, request.link_url)
    return {"success": True, "message": "Popup updated", "popup": popup}


@router.delete("/popup")
async def delete_popup(content: ContentService = Depends(get_content_service)):
    await content.delete_popup()
    return {"success": True, "message": "Popup deleted"}
