import io
from typing import List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image as PILImage

from app.config import Settings
from app.database import SQLITE_MEMORY_URL, Database
from app.main import create_app
from app.models import Image, ImageGroup, WebLink
from app.services.cloudinary_service import StoredMedia


class FakeMediaStorage:
    """Records calls instead of talking to Cloudinary."""

    def __init__(self):
        self.uploads: List[dict] = []
        self.deleted: List[str] = []
        self.fail_delete = False
        self.fail_upload_for: set = set()
        self.fail_url_upload = False

    async def upload(self, data, *, folder, tags, public_id):
        if data in self.fail_upload_for:
            raise RuntimeError("Cloudinary unavailable")
        self.uploads.append({"public_id": public_id, "folder": folder, "tags": tags})
        return StoredMedia(
            public_id=f"{folder}/{public_id}",
            secure_url=f"https://res.cloudinary.com/demo/image/upload/{folder}/{public_id}.png",
            width=None,
            height=None,
            format="png",
            bytes=len(data),
        )

    async def upload_from_url(self, url, *, folder, tags, public_id):
        if self.fail_url_upload:
            raise RuntimeError("Remote image not reachable")
        self.uploads.append({"public_id": public_id, "folder": folder, "tags": tags, "source": url})
        return StoredMedia(
            public_id=f"{folder}/{public_id}",
            secure_url=f"https://res.cloudinary.com/demo/image/upload/{folder}/{public_id}.jpg",
            width=800,
            height=600,
            format="jpg",
            bytes=2048,
        )

    async def delete(self, public_id):
        if self.fail_delete:
            raise RuntimeError("Cloudinary delete failed")
        self.deleted.append(public_id)

    def is_configured(self) -> bool:
        return True


@pytest.fixture
def make_png():
    def _make(width: int = 4, height: int = 3, color=(255, 0, 0)) -> bytes:
        buffer = io.BytesIO()
        PILImage.new("RGB", (width, height), color).save(buffer, format="PNG")
        return buffer.getvalue()

    return _make


@pytest.fixture
def settings():
    return Settings(DATABASE_URL=SQLITE_MEMORY_URL, CLOUDINARY_FOLDER="test-gallery")


@pytest_asyncio.fixture
async def database():
    database = Database(SQLITE_MEMORY_URL)
    await database.create_all()
    yield database
    await database.dispose()


@pytest.fixture
def media():
    return FakeMediaStorage()


@pytest_asyncio.fixture
async def db(database):
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def client(settings, database, media):
    app = create_app(settings=settings, database=database, media_storage=media)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def make_image():
    counter = {"n": 0}

    def _make(**overrides) -> Image:
        counter["n"] += 1
        n = counter["n"]
        values = {
            "url": f"https://res.cloudinary.com/demo/image/upload/img{n}.jpg",
            "storage_id": f"gallery/img{n}",
            "caption": f"Image {n}",
        }
        tags = overrides.pop("tags", [])
        values.update(overrides)
        image = Image(**values)
        image.set_tags(tags)
        return image

    return _make


@pytest_asyncio.fixture
async def group(db):
    group = ImageGroup(name="Paris 2023", description="")
    db.add(group)
    await db.commit()
    return group


@pytest_asyncio.fixture
async def web_link(db):
    web_link = WebLink(title="Anniversary", url="https://example.com/anniversary")
    web_link.set_tags(["love"])
    db.add(web_link)
    await db.commit()
    return web_link
