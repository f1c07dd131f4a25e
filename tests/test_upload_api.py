"""Image upload tests — standalone upload and attaching an image to a task."""

import uuid
from pathlib import Path

import pytest

from conftest import bearer

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.mark.asyncio
async def test_upload_requires_auth(client):
    r = await client.post("/api/upload", files={"image": ("a.png", PNG, "image/png")})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_upload_image(client, register, settings):
    token, _ = await register()
    r = await client.post(
        "/api/upload",
        files={"image": ("My Photo.png", PNG, "image/png")},
        headers=bearer(token),
    )
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Image uploaded successfully"
    blob = body["data"]
    assert blob["format"] == "png"
    assert blob["size_bytes"] == len(PNG)
    assert blob["url"].startswith("http://test/uploads/task-images/")
    assert blob["url"].endswith("-My-Photo.png")

    stored = Path(settings.upload_dir) / f"{blob['public_id']}.png"
    assert stored.read_bytes() == PNG

    # Served back by the static mount
    served = await client.get(blob["url"].removeprefix("http://test"))
    assert served.status_code == 200
    assert served.content == PNG


@pytest.mark.asyncio
async def test_upload_rejects_non_image(client, register):
    token, _ = await register()
    r = await client.post(
        "/api/upload",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=bearer(token),
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid file type"
    assert r.json()["errors"][0]["field"] == "image"


@pytest.mark.asyncio
async def test_upload_rejects_oversize(client, register, settings):
    token, _ = await register()
    big = b"\x00" * (settings.upload_max_bytes + 1)
    r = await client.post(
        "/api/upload",
        files={"image": ("big.jpg", big, "image/jpeg")},
        headers=bearer(token),
    )
    assert r.status_code == 400
    assert r.json()["message"] == "File too large"


@pytest.mark.asyncio
async def test_attach_image_to_task(client, register):
    token, _ = await register()
    task = (
        await client.post("/api/tasks", json={"title": "Paint"}, headers=bearer(token))
    ).json()["data"]

    r = await client.post(
        f"/api/tasks/{task['id']}/image",
        files={"image": ("wall.png", PNG, "image/png")},
        headers=bearer(token),
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Image attached successfully"
    assert r.json()["data"]["image"].endswith("-wall.png")


@pytest.mark.asyncio
async def test_attach_image_to_foreign_task(client, register, settings):
    owner_token, _ = await register()
    other_token, _ = await register()
    task = (
        await client.post("/api/tasks", json={"title": "Mine"}, headers=bearer(owner_token))
    ).json()["data"]

    r = await client.post(
        f"/api/tasks/{task['id']}/image",
        files={"image": ("x.png", PNG, "image/png")},
        headers=bearer(other_token),
    )
    assert r.status_code == 404
    # Nothing was written for the rejected request
    assert [p for p in Path(settings.upload_dir).rglob("*") if p.is_file()] == []


@pytest.mark.asyncio
async def test_attach_image_unknown_task(client, register):
    token, _ = await register()
    r = await client.post(
        f"/api/tasks/{uuid.uuid4()}/image",
        files={"image": ("x.png", PNG, "image/png")},
        headers=bearer(token),
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_missing_upload_is_not_found(client):
    """The static mount answers 404 before anything was ever uploaded."""
    r = await client.get("/uploads/task-images/missing.png")
    assert r.status_code == 404
    assert r.json()["success"] is False
