async def test_root(client, settings):
    response = await client.get("/")

    assert response.json() == {
        "message": settings.API_TITLE,
        "status": "healthy",
        "version": settings.API_VERSION,
    }


async def test_health_db(client):
    response = await client.get("/health/db")

    assert response.json()["database"] == "connected"
    assert response.json()["result"] == 1


async def test_health_cloudinary(client):
    response = await client.get("/health/cloudinary")

    assert response.json()["cloudinary"] == "configured"


async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found"}
