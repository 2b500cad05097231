import pytest

from application.services.header_refresh_service import HeaderRefreshService
from domain.deploy.policy import CachePolicy


@pytest.mark.asyncio
async def test_refresh_rewrites_only_stale_headers(store):
    store.objects.update({
        "index.html": {"content_type": "text/html", "cache_control": "max-age=0", "content_encoding": "gzip"},
        "assets/app-1.js": {
            "content_type": "application/javascript",
            "cache_control": "public, max-age=31536000, immutable",
            "content_encoding": "gzip",
        },
        "img/a.png": {"content_type": "image/png", "cache_control": None, "content_encoding": None},
    })
    policy = CachePolicy.from_table({"image/*": "public, max-age=2592000"})

    report = await HeaderRefreshService(store, policy).run()

    assert sorted(report.updated) == ["img/a.png", "index.html"]
    assert report.unchanged == ["assets/app-1.js"]
    assert store.objects["index.html"]["cache_control"] == "public, max-age=3600"
    # encoding stored on the object survives the copy
    assert store.objects["index.html"]["content_encoding"] == "gzip"
    assert store.objects["img/a.png"]["cache_control"] == "public, max-age=2592000"


@pytest.mark.asyncio
async def test_per_object_failure_is_a_warning(store):
    store.objects.update({
        "a.html": {"content_type": "text/html", "cache_control": None},
        "b.html": {"content_type": "text/html", "cache_control": None},
    })
    store.fail_keys.add("a.html")
    report = await HeaderRefreshService(store).run()
    assert report.failed == ["a.html"]
    assert report.updated == ["b.html"]
