"""Admin-managed promotional content.

Documents are stored in CacheStore without TTL:
    banner1, banner2 -> list of banners
    video_frame      -> embedded YouTube video
    socials          -> list of {type, link}
    popup            -> {image_url, link_url}

Updates are read-modify-write with no versioning; two admins editing the
same banner list concurrently can lose an update (last write wins).
"""

import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from constants import BANNER_TYPES, POPUP_KEY, SOCIALS_KEY, VIDEO_KEY
from core.cache import CacheStore
from core.logging import get_logger

logger = get_logger(__name__)

YOUTUBE_ID_PATTERN = re.compile(
    r"(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?|live)/|.*[?&]v=)|youtu\.be/)([^\"&?/\s]{11})"
)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def extract_youtube_id(url: str) -> Optional[str]:
    match = YOUTUBE_ID_PATTERN.search(url)
    return match.group(1) if match else None


class ContentService:
    """CRUD over banner, video, social and popup documents."""

    def __init__(self, cache: CacheStore):
        self.cache = cache

    async def _get_list(self, key: str) -> List[Dict[str, Any]]:
        value = await self.cache.get(key)
        return value if isinstance(value, list) else []

    # =========================================================================
    # BANNERS
    # =========================================================================

    async def get_banners(self) -> Dict[str, List[Dict[str, Any]]]:
        return {banner_type: await self._get_list(banner_type) for banner_type in sorted(BANNER_TYPES)}

    async def add_banner(self, banner_type: str, image_url: str, link_href: str) -> Tuple[Dict[str, Any], int]:
        """Append a banner; returns (banner, new total)."""
        banners = await self._get_list(banner_type)
        banner = {
            "id": uuid.uuid4().hex[:12],
            "image_url": image_url,
            "link_href": link_href,
            "created_at": _utc_now_iso(),
        }
        banners.append(banner)
        await self.cache.set(banner_type, banners, None)
        logger.info("Banner added", banner_type=banner_type, banner_id=banner["id"])
        return banner, len(banners)

    async def update_banner(self, banner_type: str, banner_id: str,
                            image_url: str, link_href: str) -> Optional[Dict[str, Any]]:
        banners = await self._get_list(banner_type)
        for index, banner in enumerate(banners):
            if banner.get("id") == banner_id:
                banners[index] = {
                    **banner,
                    "image_url": image_url,
                    "link_href": link_href,
                    "updated_at": _utc_now_iso(),
                }
                await self.cache.set(banner_type, banners, None)
                logger.info("Banner updated", banner_type=banner_type, banner_id=banner_id)
                return banners[index]
        return None

    async def delete_banner(self, banner_type: str, banner_id: str) -> Optional[Tuple[Dict[str, Any], int]]:
        """Remove a banner; returns (deleted banner, remaining count) or None."""
        banners = await self._get_list(banner_type)
        for index, banner in enumerate(banners):
            if banner.get("id") == banner_id:
                deleted = banners.pop(index)
                await self.cache.set(banner_type, banners, None)
                logger.info("Banner deleted", banner_type=banner_type, banner_id=banner_id)
                return deleted, len(banners)
        return None

    # =========================================================================
    # VIDEO
    # =========================================================================

    async def get_video(self) -> Optional[Dict[str, Any]]:
        return await self.cache.get(VIDEO_KEY)

    async def set_video(self, youtube_url: str) -> Optional[Dict[str, Any]]:
        """Store the embed for a YouTube URL; None if the URL has no video id."""
        video_id = extract_youtube_id(youtube_url)
        if video_id is None:
            return None
        video = {
            "youtube_url": youtube_url,
            "video_id": video_id,
            "embed_url": f"https://www.youtube.com/embed/{video_id}",
            "updated_at": _utc_now_iso(),
        }
        await self.cache.set(VIDEO_KEY, video, None)
        return video

    async def delete_video(self) -> None:
        await self.cache.delete(VIDEO_KEY)

    # =========================================================================
    # SOCIALS
    # =========================================================================

    async def get_socials(self) -> List[Dict[str, Any]]:
        return await self._get_list(SOCIALS_KEY)

    async def set_socials(self, socials: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        await self.cache.set(SOCIALS_KEY, socials, None)
        return socials

    # =========================================================================
    # POPUP
    # =========================================================================

    async def get_popup(self) -> Optional[Dict[str, Any]]:
        return await self.cache.get(POPUP_KEY)

    async def set_popup(self, image_url: str, link_url: str) -> Dict[str, Any]:
        popup = {
            "image_url": image_url,
            "link_url": link_url,
            "updated_at": _utc_now_iso(),
        }
        await self.cache.set(POPUP_KEY, popup, None)
        return popup

    async def delete_popup(self) -> None:
        await self.cache.delete(POPUP_KEY)
