import pytest

from config import settings


@pytest.mark.asyncio
async def test_upload_returns_public_url_and_serves_file(client, auth_headers):
    headers = auth_headers("ext-uploader")
    response = await client.post(
        "/uploads",
        files={"file": ("My Notes (final).pdf", b"%PDF-1.4 study notes", "application/pdf")},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["url"].startswith("/uploads/")
    assert body["url"].endswith(".pdf")
    assert body["file_name"] == "My_Notes__final_.pdf"
    assert body["size"] == len(b"%PDF-1.4 study notes")
    assert body["mime_type"] == "application/pdf"

    served = await client.get(body["url"])
    assert served.status_code == 200
    assert served.content == b"%PDF-1.4 study notes"


@pytest.mark.asyncio
async def test_upload_rejects_oversized_files(client, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_MAX_BYTES", 10)
    response = await client.post(
        "/uploads",
        files={"file": ("big.txt", b"x" * 11, "text/plain")},
        headers=auth_headers("ext-uploader"),
    )
    assert response.status_code == 413
    assert "10 bytes" in response.json()["detail"]


@pytest.mark.asyncio
async def test_upload_rejects_unknown_extensions_and_empty_files(client, auth_headers):
    headers = auth_headers("ext-uploader")
    executable = await client.post("/uploads", files={"file": ("run.exe", b"MZ", "application/octet-stream")}, headers=headers)
    assert executable.status_code == 400

    empty = await client.post("/uploads", files={"file": ("empty.txt", b"", "text/plain")}, headers=headers)
    assert empty.status_code == 400


@pytest.mark.asyncio
async def test_upload_requires_identity(client):
    response = await client.post("/uploads", files={"file": ("a.txt", b"hi", "text/plain")})
    assert response.status_code == 401
