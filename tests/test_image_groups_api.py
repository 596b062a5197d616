import uuid

from sqlalchemy import select

from app.models import Image, ImageGroup


async def test_create_group_then_duplicate_conflicts(client):
    response = await client.post("/api/image-groups", json={"name": "Paris 2023"})

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["name"] == "Paris 2023"
    assert body["data"]["imageCount"] == 0
    assert body["data"]["description"] == ""

    duplicate = await client.post("/api/image-groups", json={"name": "Paris 2023"})

    assert duplicate.status_code == 409
    assert duplicate.json() == {"success": False, "error": "A group with this name already exists"}


async def test_create_group_requires_name(client):
    response = await client.post("/api/image-groups", json={"name": "   "})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["details"][0]["field"] == "name"


async def test_create_group_rejects_reversed_date_range(client):
    response = await client.post(
        "/api/image-groups",
        json={
            "name": "Trip",
            "dateRange": {"start": "2023-06-10T00:00:00", "end": "2023-06-01T00:00:00"},
        },
    )

    assert response.status_code == 400


async def test_list_groups_includes_image_counts(client, db, group, make_image):
    db.add(ImageGroup(name="Berlin", description="Winter"))
    db.add_all([make_image(group_id=group.id), make_image(group_id=group.id), make_image()])
    await db.commit()

    response = await client.get("/api/image-groups")

    assert response.status_code == 200
    groups = response.json()["data"]
    assert [g["name"] for g in groups] == ["Berlin", "Paris 2023"]
    assert [g["imageCount"] for g in groups] == [0, 2]


async def test_delete_group_ungroups_its_images(client, db, group, make_image):
    image = make_image(group_id=group.id)
    db.add(image)
    await db.commit()

    response = await client.delete(f"/api/image-groups/{group.id}")

    assert response.status_code == 200
    assert response.json()["data"] == {"id": group.id, "ungroupedImages": 1}

    remaining = await db.execute(
        select(Image).where(Image.id == image.id).execution_options(populate_existing=True)
    )
    assert remaining.scalar_one().group_id is None
    assert await db.get(ImageGroup, group.id, populate_existing=True) is None


async def test_delete_unknown_group(client):
    response = await client.delete(f"/api/image-groups/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json()["error"] == "Group not found"


async def test_delete_group_with_malformed_id(client):
    response = await client.delete("/api/image-groups/not-an-id")

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid group ID"
