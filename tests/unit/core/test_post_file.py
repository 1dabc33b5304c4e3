"""
Tests for multipart file upload.
"""

import asyncio
import io
import os

import httpx
import pytest
import respx

from prom_request.core.exceptions import ResponseError


def capture_uploads(base_url):
    """Mock the upload endpoint and keep each multipart body."""
    uploads = []

    def handler(request):
        uploads.append(request.read())
        return httpx.Response(200, text="OK")

    respx.post(f"{base_url}/upload").mock(side_effect=handler)
    return uploads


class TestPostFile:

    @respx.mock
    @pytest.mark.asyncio
    async def test_upload_from_path(self, client, base_url):
        def check_upload(request):
            content = request.read()
            assert request.method == "POST"
            assert b'name="file"' in content
            assert b'filename="test_post_file.py"' in content
            return httpx.Response(200, text="OK")

        respx.post(f"{base_url}/upload").mock(side_effect=check_upload)

        response = await client.post_file(f"{base_url}/upload", __file__)

        assert response.body == "OK"

    @respx.mock
    @pytest.mark.asyncio
    async def test_upload_from_open_file(self, client, base_url, tmp_path):
        path = tmp_path / "report.csv"
        path.write_bytes(b"a,b\n1,2\n")
        uploads = capture_uploads(base_url)

        with open(path, "rb") as f:
            await client.post_file(f"{base_url}/upload", f)

        content = uploads[0]
        assert b'filename="report.csv"' in content
        assert b"a,b\n1,2\n" in content

    @respx.mock
    @pytest.mark.asyncio
    async def test_upload_from_readable_without_name(self, client, base_url):
        uploads = capture_uploads(base_url)

        await client.post_file(f"{base_url}/upload", io.BytesIO(b"raw bytes"))

        content = uploads[0]
        assert b'name="file"' in content
        assert b"filename=" not in content
        assert b"raw bytes" in content

    @respx.mock
    @pytest.mark.asyncio
    async def test_extra_headers_kept(self, client, base_url):
        route = respx.post(f"{base_url}/upload").mock(return_value=httpx.Response(200))

        await client.post_file(f"{base_url}/upload", __file__, headers={"X-Token": "abc"})

        request = route.calls.last.request
        assert request.headers["X-Token"] == "abc"
        assert request.headers["Content-Type"].startswith("multipart/form-data")

    @respx.mock
    @pytest.mark.asyncio
    async def test_classified_like_request(self, client, base_url):
        respx.post(f"{base_url}/upload").mock(return_value=httpx.Response(413))

        with pytest.raises(ResponseError) as exc_info:
            await client.post_file(f"{base_url}/upload", io.BytesIO(b"x"))

        assert exc_info.value.status_code == 413

    @pytest.mark.asyncio
    async def test_opened_file_closed_after_call(self, fake_client, fake_transport, base_url, tmp_path, monkeypatch):
        path = tmp_path / "data.bin"
        path.write_bytes(b"payload")
        opened = []
        real_open = open

        def tracking_open(*args, **kwargs):
            f = real_open(*args, **kwargs)
            opened.append(f)
            return f

        monkeypatch.setattr("prom_request.core.client.open", tracking_open, raising=False)

        task = asyncio.create_task(fake_client.post_file(base_url, os.fspath(path)))
        await asyncio.sleep(0)

        form = fake_transport.last.form()
        assert len(form) == 1
        assert not opened[0].closed

        fake_transport.last.respond(200)
        await task

        assert opened[0].closed

    @pytest.mark.asyncio
    async def test_missing_path(self, fake_client, fake_transport, base_url):
        with pytest.raises(FileNotFoundError):
            await fake_client.post_file(base_url, "/nonexistent/file.txt")

        assert fake_transport.calls == []
