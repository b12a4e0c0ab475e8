"""
Unit tests for the Frontend generic proxy helpers and handler.
"""

import gzip
from urllib.parse import quote

import httpx
import pytest
from fastapi import Request

from service_frontend.app.adapters.upstream_fetcher import UpstreamFetcher
from service_frontend.app.proxy.generic_proxy import GenericProxyHandler, decode_target, forwarded_headers
from shared.errors import InvalidTargetError


def make_request(path: str, query: bytes = b"", method: str = "GET", headers=None, body: bytes = b"") -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode(),
        "query_string": query,
        "headers": raw_headers,
        "scheme": "http",
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 5000),
        "root_path": "",
    }
    sent = False

    async def receive():
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


class TestDecodeTarget:
    """Test cases for decode_target."""

    def test_decodes_and_reattaches_query(self):
        raw_path = "/a/" + quote("https://example.com/x.json", safe="")
        assert decode_target(raw_path, "v=2") == "https://example.com/x.json?v=2"

    def test_no_query_leaves_url_untouched(self):
        raw_path = "/a/" + quote("https://example.com/x.json", safe="")
        assert decode_target(raw_path, "") == "https://example.com/x.json"

    def test_decodes_only_once(self):
        raw_path = "/a/" + quote("https://example.com/a%20b.txt", safe="")
        assert decode_target(raw_path, "") == "https://example.com/a%20b.txt"

    @pytest.mark.parametrize(
        "target",
        ["example.com/x.json", "ftp://example.com/x", "/relative/path", "https://"],
    )
    def test_rejects_non_absolute_targets(self, target):
        with pytest.raises(InvalidTargetError):
            decode_target("/a/" + quote(target, safe=""), "")

    def test_rejects_malformed_encoding(self):
        with pytest.raises(InvalidTargetError):
            decode_target("/a/https%3A%2F%2Fexample.com%2F%FF%FE", "")

    def test_rejects_non_proxy_path(self):
        with pytest.raises(InvalidTargetError):
            decode_target("/b/https%3A%2F%2Fexample.com", "")


class TestForwardedHeaders:
    """Test cases for forwarded_headers."""

    def test_drops_host_and_hop_by_hop_headers(self):
        request = make_request("/a/x", headers={
            "Host": "frontend.local",
            "Connection": "keep-alive",
            "Content-Length": "10",
            "Accept-Encoding": "gzip, deflate, br, zstd",
            "X-Custom": "1",
            "Accept": "application/json",
        })

        headers = forwarded_headers(request)

        assert headers == {"x-custom": "1", "accept": "application/json"}


class TestGenericProxyHandler:
    """Test cases for GenericProxyHandler."""

    @pytest.fixture
    def seen(self):
        return []

    def make_handler(self, handler, seen):
        def recording_handler(request: httpx.Request):
            seen.append(request)
            return handler(request)

        fetcher = UpstreamFetcher(transport=httpx.MockTransport(recording_handler))
        return GenericProxyHandler(fetcher), fetcher

    @pytest.mark.asyncio
    async def test_forwards_method_headers_body_and_query(self, seen):
        proxy, fetcher = self.make_handler(lambda r: httpx.Response(200, content=b'{"ok": true}'), seen)
        request = make_request(
            "/a/" + quote("https://example.com/x.json", safe=""),
            query=b"v=2",
            method="PUT",
            headers={"X-Custom": "1"},
            body=b"payload",
        )

        response = await proxy.handle(request)
        await fetcher.close()

        assert response.status_code == 200
        assert response.body == b'{"ok": true}'
        assert response.headers["content-type"] == "application/json"
        assert str(seen[0].url) == "https://example.com/x.json?v=2"
        assert seen[0].method == "PUT"
        assert seen[0].headers["x-custom"] == "1"
        assert seen[0].content == b"payload"

    @pytest.mark.asyncio
    async def test_browser_accept_encoding_not_forwarded(self, seen):
        def handler(request):
            return httpx.Response(
                200,
                content=gzip.compress(b'{"ok": true}'),
                headers={"Content-Encoding": "gzip"},
            )

        proxy, fetcher = self.make_handler(handler, seen)
        request = make_request(
            "/a/" + quote("https://example.com/x.json", safe=""),
            headers={"Accept-Encoding": "gzip, deflate, br, zstd"},
        )

        response = await proxy.handle(request)
        await fetcher.close()

        with httpx.Client() as client:
            negotiated = client.headers["accept-encoding"]
        assert seen[0].headers["accept-encoding"] == negotiated
        assert response.body == b'{"ok": true}'
        assert "content-encoding" not in response.headers

    @pytest.mark.asyncio
    async def test_non_2xx_status_surfaced(self, seen):
        proxy, fetcher = self.make_handler(lambda r: httpx.Response(403, content=b"denied"), seen)

        response = await proxy.handle(make_request("/a/" + quote("https://example.com/x.json", safe="")))
        await fetcher.close()

        assert response.status_code == 403
        assert response.body == b"Proxy Error"

    @pytest.mark.asyncio
    async def test_unreachable_upstream_is_502(self, seen):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        proxy, fetcher = self.make_handler(handler, seen)

        response = await proxy.handle(make_request("/a/" + quote("https://down.example/", safe="")))
        await fetcher.close()

        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_timeout_is_504(self, seen):
        def handler(request):
            raise httpx.ConnectTimeout("slow", request=request)

        proxy, fetcher = self.make_handler(handler, seen)

        response = await proxy.handle(make_request("/a/" + quote("https://slow.example/", safe="")))
        await fetcher.close()

        assert response.status_code == 504

    @pytest.mark.asyncio
    async def test_invalid_target_propagates(self, seen):
        proxy, fetcher = self.make_handler(lambda r: httpx.Response(200), seen)

        with pytest.raises(InvalidTargetError):
            await proxy.handle(make_request("/a/not-a-url"))
        await fetcher.close()

        assert seen == []
