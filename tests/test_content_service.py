"""ContentService document CRUD and request validation."""

import asyncio

import pytest
from pydantic import ValidationError

from models.content import BannerRequest, SocialsRequest
from services.content import ContentService, extract_youtube_id


def run(coro):
    return asyncio.run(coro)


def test_banner_lifecycle(remote_cache):
    content = ContentService(remote_cache)

    async def scenario():
        first, total = await content.add_banner("banner1", "https://cdn.example.com/1.png", "https://example.com/a")
        assert total == 1
        second, total = await content.add_banner("banner1", "https://cdn.example.com/2.png", "https://example.com/b")
        assert total == 2

        updated = await content.update_banner("banner1", first["id"], "https://cdn.example.com/1b.png", "https://example.com/a2")
        assert updated["image_url"] == "https://cdn.example.com/1b.png"
        assert updated["created_at"] == first["created_at"]

        deleted, remaining = await content.delete_banner("banner1", second["id"])
        assert deleted["id"] == second["id"]
        assert remaining == 1
        return await content.get_banners()

    banners = run(scenario())
    assert banners["banner2"] == []
    assert [b["image_url"] for b in banners["banner1"]] == ["https://cdn.example.com/1b.png"]


def test_unknown_banner_id(local_cache):
    content = ContentService(local_cache)
    assert run(content.update_banner("banner1", "missing", "https://x", "https://y")) is None
    assert run(content.delete_banner("banner2", "missing")) is None


def test_content_is_stored_without_ttl(local_cache, clock):
    content = ContentService(local_cache)
    run(content.set_popup("https://cdn.example.com/p.png", "https://promo"))
    clock.advance(30 * 24 * 3600)
    assert run(content.get_popup())["link_url"] == "https://promo"


def test_video_set_and_delete(remote_cache):
    content = ContentService(remote_cache)
    video = run(content.set_video("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=10"))
    assert video["video_id"] == "dQw4w9WgXcQ"
    assert video["embed_url"] == "https://www.youtube.com/embed/dQw4w9WgXcQ"
    assert run(content.get_video())["video_id"] == "dQw4w9WgXcQ"

    run(content.delete_video())
    assert run(content.get_video()) is None


def test_video_rejects_non_youtube_url(local_cache):
    assert run(ContentService(local_cache).set_video("https://vimeo.com/12345")) is None


@pytest.mark.parametrize("url, video_id", [
    ("https://youtu.be/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
    ("https://www.youtube.com/embed/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
    ("https://www.youtube.com/live/dQw4w9WgXcQ?si=abc", "dQw4w9WgXcQ"),
    ("https://example.com/watch?v=dQw4w9WgXcQ", None),
])
def test_extract_youtube_id(url, video_id):
    assert extract_youtube_id(url) == video_id


def test_socials_replace_whole_list(local_cache):
    content = ContentService(local_cache)
    run(content.set_socials([{"type": "facebook", "link": "https://fb.com/x"}]))
    run(content.set_socials([{"type": "phone", "link": "tel:+84123"}]))
    assert run(content.get_socials()) == [{"type": "phone", "link": "tel:+84123"}]


def test_request_models_validate_urls():
    BannerRequest(image_url="https://cdn.example.com/1.png", link_href="https://example.com/a")
    with pytest.raises(ValidationError):
        BannerRequest(image_url="not a url", link_href="https://example.com/a")

    SocialsRequest(socials=[{"type": "mail", "link": "mailto:a@b.c"}])
    with pytest.raises(ValidationError):
        SocialsRequest(socials=[{"type": " ", "link": "https://fb.com"}])
    with pytest.raises(ValidationError):
        SocialsRequest(socials=[{"type": "facebook", "link": "fb.com"}])
