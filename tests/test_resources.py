from __future__ import annotations

import base64

import pytest

from giftbook.pipeline import resources
from giftbook.pipeline.options import BookOptions
from giftbook.pipeline.resources import ResourceError, ResourceSet, fetch_resource, load_image, load_resources


class _Response:
    def __init__(self, content: bytes, status: int = 200) -> None:
        self.content = content
        self.status = status

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise resources.requests.HTTPError(f"status {self.status}")


def test_fetch_local_file(tmp_path) -> None:
    path = tmp_path / "font.ttf"
    path.write_bytes(b"font-bytes")
    assert fetch_resource(str(path)) == b"font-bytes"
    assert fetch_resource(None) is None
    assert fetch_resource("") is None


def test_fetch_missing_file_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        fetch_resource(str(tmp_path / "missing.ttf"))


def test_fetch_http(monkeypatch) -> None:
    seen = {}

    def fake_get(url, timeout):
        seen["url"] = url
        seen["timeout"] = timeout
        return _Response(b"remote")

    monkeypatch.setattr(resources.requests, "get", fake_get)
    assert fetch_resource("https://example.com/bg.png") == b"remote"
    assert seen["url"] == "https://example.com/bg.png"
    assert seen["timeout"] == resources.config.FETCH_TIMEOUT


def test_fetch_http_error_propagates(monkeypatch) -> None:
    monkeypatch.setattr(resources.requests, "get", lambda url, timeout: _Response(b"", status=404))
    with pytest.raises(resources.requests.HTTPError):
        fetch_resource("http://example.com/missing.png")


def test_load_image_decodes_data_uri() -> None:
    payload = base64.b64encode(b"\x89PNG-data").decode("ascii")
    assert load_image(f"data:image/png;base64,{payload}") == b"\x89PNG-data"


def test_load_image_rejects_bad_base64() -> None:
    with pytest.raises(ResourceError):
        load_image("data:image/png;base64,***not base64***")


def test_load_resources_fetches_only_configured(tmp_path) -> None:
    formal = tmp_path / "formal.ttf"
    formal.write_bytes(b"formal")
    options = BookOptions(formal_font=str(formal))
    loaded = load_resources(options)
    # 금액/표지 폰트는 정식 폰트로 대체된다
    assert loaded.formal_font == b"formal"
    assert loaded.amount_font == b"formal"
    assert loaded.cover_font == b"formal"
    assert loaded.main_font is None
    assert loaded.background_image is None


def test_load_resources_without_locators() -> None:
    assert load_resources(BookOptions()) == ResourceSet()


def test_load_resources_surfaces_first_failure(tmp_path) -> None:
    options = BookOptions(main_font=str(tmp_path / "nope.ttf"))
    with pytest.raises(FileNotFoundError):
        load_resources(options)
