import gzip

import pytest

from application.services.uploader import ObjectUploader
from application.utils import compression
from application.utils.compression import CompressionError, compressed_path_for, discard, gzip_file
from domain.deploy.entities import UploadTask


@pytest.mark.asyncio
async def test_gzip_file_round_trip_and_deterministic(tmp_path):
    source = tmp_path / "index.html"
    payload = b"<html>" + b"hello world " * 500 + b"</html>"
    source.write_bytes(payload)

    first = await gzip_file(source)
    second = await gzip_file(source)

    assert first == tmp_path / "index.html.gz"
    assert second != first
    assert gzip.decompress(first.read_bytes()) == payload
    assert first.read_bytes() == second.read_bytes()
    assert first.stat().st_size < len(payload)
    assert source.read_bytes() == payload


def test_compressed_path_never_clobbers_existing_file(tmp_path):
    source = tmp_path / "app.js"
    source.write_text("x")
    (tmp_path / "app.js.gz").write_text("prebuilt")
    target = compressed_path_for(source)
    assert target.name.startswith("app.js.")
    assert target.name.endswith(".gz")
    assert target.name != "app.js.gz"


@pytest.mark.asyncio
async def test_discard_removes_and_tolerates_missing(tmp_path):
    path = tmp_path / "tmp.gz"
    path.write_bytes(b"x")
    await discard(path)
    assert not path.exists()
    await discard(path)


@pytest.mark.asyncio
async def test_failed_compression_removes_partial_output(tmp_path, monkeypatch):
    source = tmp_path / "app.js"
    source.write_text("console.log('x');" * 100)

    def _disk_full(src, target, level):
        target.write_bytes(b"\x1f\x8b partial")
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(compression, "_gzip_copy", _disk_full)

    with pytest.raises(CompressionError) as exc_info:
        await gzip_file(source)

    assert "No space left on device" in str(exc_info.value)
    assert list(tmp_path.rglob("*.gz")) == []


def _task(build_dir, key):
    return UploadTask(
        local_path=build_dir / key,
        key=key,
        content_type="text/html",
        cache_control="public, max-age=3600",
        compress=True,
    )


@pytest.mark.asyncio
async def test_uploader_removes_temp_file_when_put_fails(build_dir, store):
    store.fail_keys.add("index.html")

    result = await ObjectUploader(store).upload(_task(build_dir, "index.html"))

    assert not result.success
    assert result.status_code == 500
    assert list(build_dir.rglob("*.gz")) == []


@pytest.mark.asyncio
async def test_uploader_removes_temp_file_after_success(build_dir, store):
    result = await ObjectUploader(store).upload(_task(build_dir, "about/index.html"))

    assert result.success
    assert store.objects["about/index.html"]["content_encoding"] == "gzip"
    assert list(build_dir.rglob("*.gz")) == []
