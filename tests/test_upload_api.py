import uuid

from sqlalchemy import func, select

from app.models import Image


async def count_images(db) -> int:
    return await db.scalar(select(func.count()).select_from(Image))


async def test_upload_files(client, db, media, group, make_png):
    response = await client.post(
        "/api/images/upload",
        files=[
            ("files", ("beach-day.png", make_png(), "image/png")),
            ("files", ("sunset.png", make_png(color=(0, 0, 255)), "image/png")),
        ],
        data={"groupId": group.id, "tags": "Summer, beach,summer"},
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["count"] == 2
    assert data["errors"] == []

    captions = sorted(image["caption"] for image in data["images"])
    assert captions == ["beach-day", "sunset"]

    image = data["images"][0]
    assert image["groupId"] == group.id
    assert image["group"]["name"] == "Paris 2023"
    assert image["tags"] == ["summer", "beach"]
    # Dimensions come from Pillow when storage reports none
    assert image["metadata"]["width"] == 4
    assert image["metadata"]["height"] == 3
    assert image["url"].startswith("https://")

    assert all(upload["folder"] == "test-gallery" for upload in media.uploads)
    assert all(upload["tags"] == ["summer", "beach", "uploaded"] for upload in media.uploads)
    assert await count_images(db) == 2


async def test_upload_reports_partial_failure(client, media, make_png):
    broken = make_png(color=(0, 255, 0))
    media.fail_upload_for.add(broken)

    response = await client.post(
        "/api/images/upload",
        files=[
            ("files", ("good.png", make_png(), "image/png")),
            ("files", ("bad.png", broken, "image/png")),
        ],
        data={"caption": "Trip"},
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["count"] == 1
    assert data["images"][0]["caption"] == "Trip"
    assert data["errors"] == [{"filename": "bad.png", "error": "Cloudinary unavailable"}]


async def test_upload_all_failed(client, db, media, make_png):
    broken = make_png()
    media.fail_upload_for.add(broken)

    response = await client.post(
        "/api/images/upload",
        files=[("files", ("bad.png", broken, "image/png"))],
    )

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "All uploads failed"
    assert body["details"] == [{"filename": "bad.png", "error": "Cloudinary unavailable"}]
    assert await count_images(db) == 0


async def test_upload_rejects_unsupported_type(client, media):
    response = await client.post(
        "/api/images/upload",
        files=[("files", ("notes.txt", b"hello", "text/plain"))],
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Unsupported file type: text/plain"
    assert media.uploads == []


async def test_upload_rejects_fake_image(client, media):
    response = await client.post(
        "/api/images/upload",
        files=[("files", ("fake.png", b"not really a png", "image/png"))],
    )

    assert response.status_code == 400
    assert response.json()["error"] == "File 'fake.png' is not a valid image file"
    assert media.uploads == []


async def test_upload_rejects_oversized_file(client, settings, media, make_png):
    settings.MAX_UPLOAD_SIZE = 10

    response = await client.post(
        "/api/images/upload",
        files=[("files", ("big.png", make_png(), "image/png"))],
    )

    assert response.status_code == 413
    assert media.uploads == []


async def test_upload_rejects_long_caption(client, media, make_png):
    response = await client.post(
        "/api/images/upload",
        files=[("files", ("a.png", make_png(), "image/png"))],
        data={"caption": "x" * 501},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Caption must be at most 500 characters"
    assert media.uploads == []


async def test_upload_cuts_long_filename_to_caption_size(client, make_png):
    response = await client.post(
        "/api/images/upload",
        files=[("files", ("f" * 600 + ".png", make_png(), "image/png"))],
    )

    assert response.status_code == 201
    assert response.json()["data"]["images"][0]["caption"] == "f" * 500


async def test_upload_rejects_long_tag(client, media, make_png):
    response = await client.post(
        "/api/images/upload",
        files=[("files", ("a.png", make_png(), "image/png"))],
        data={"tags": "ok," + "t" * 51},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Tags must be at most 50 characters"
    assert media.uploads == []


async def test_upload_requires_files(client):
    response = await client.post("/api/images/upload", data={"caption": "nothing"}, files=[])

    assert response.status_code == 400


async def test_upload_to_unknown_group(client, media, make_png):
    response = await client.post(
        "/api/images/upload",
        files=[("files", ("a.png", make_png(), "image/png"))],
        data={"groupId": str(uuid.uuid4())},
    )

    assert response.status_code == 404
    assert media.uploads == []


async def test_upload_from_url(client, media, web_link):
    response = await client.post(
        "/api/images/upload",
        json={"imageUrl": "https://example.com/photo.jpg", "webLinkId": web_link.id, "tags": ["Gift"]},
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["caption"] == "Uploaded from URL"
    assert data["webLinkId"] == web_link.id
    assert data["metadata"]["originalFilename"] == "from-url"
    assert data["metadata"]["width"] == 800
    assert data["formattedSize"] == "2.0 KB"
    assert media.uploads[0]["source"] == "https://example.com/photo.jpg"
    assert media.uploads[0]["tags"] == ["gift", "url-upload"]


async def test_upload_from_url_validation(client):
    response = await client.post("/api/images/upload", json={"imageUrl": "ftp://example.com/a.jpg"})

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "imageUrl"


async def test_upload_from_url_storage_failure(client, db, media):
    media.fail_url_upload = True

    response = await client.post("/api/images/upload", json={"imageUrl": "https://example.com/a.jpg"})

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to upload image from URL"
    assert await count_images(db) == 0


async def test_upload_with_unsupported_content_type(client):
    response = await client.post(
        "/api/images/upload", content=b"raw", headers={"content-type": "application/octet-stream"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Unsupported content type"


async def test_upload_from_url_rejects_long_tag(client, db, media):
    response = await client.post(
        "/api/images/upload",
        json={"imageUrl": "https://example.com/a.jpg", "tags": ["t" * 80]},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Tags must be at most 50 characters"
    assert media.uploads == []
    assert await count_images(db) == 0


async def test_upload_from_url_rejects_long_caption(client, media):
    response = await client.post(
        "/api/images/upload",
        json={"imageUrl": "https://example.com/a.jpg", "caption": "x" * 501},
    )

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "caption"
    assert media.uploads == []
