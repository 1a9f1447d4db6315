"""Public content routes (no auth)."""

from fastapi import APIRouter, Depends

from core.container import container
from services.content import ContentService

router = APIRouter(prefix="/api", tags=["content"])


def get_content_service() -> ContentService:
    return container.content_service()


@router.get("/banners")
async def public_banners(content: ContentService = Depends(get_content_service)):
    return {"success": True, "banners": await content.get_banners()}


@router.get("/video")
async def public_video(content: ContentService = Depends(get_content_service)):
    return {"success": True, "video": await content.get_video()}


@router.get("/socials")
async def public_socials(content: ContentService = Depends(get_content_service)):
    return {"success": True, "socials": await content.get_socials()}


@router.get("/popup")
async def public_popup(content: ContentService = Depends(get_content_service)):
    return {"success": True, "popup": await content.get_popup()}
