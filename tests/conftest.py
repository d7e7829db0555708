"""
Shared pytest fixtures for the gallery tests.
"""

import io
from collections.abc import Generator
from pathlib import Path

import pytest
from PIL import Image

from src.core.app_core import GalleryCore
from src.core.listing_cache import ListingCache, MemoryListingStore
from src.db.manager import DatabaseManager
from src.utils.config import GalleryConfig
from src.web.server import create_flask_app


def make_jpeg_bytes(width: int = 64, height: int = 48, color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def images_root(tmp_path: Path) -> Path:
    """
    Gallery tree:

        b.jpg  a.png  c.gif  notes.txt
        .thumbs/
        trips/
            x.JPG
            2024/
                y.webp
        empty/
    """
    root = tmp_path / "images"
    root.mkdir()
    (root / "b.jpg").write_bytes(make_jpeg_bytes())
    (root / "a.png").write_bytes(b"png")
    (root / "c.gif").write_bytes(b"GIF89a")
    (root / "notes.txt").write_text("not an image")
    (root / ".thumbs").mkdir()
    (root / "trips" / "2024").mkdir(parents=True)
    (root / "trips" / "x.JPG").write_bytes(b"jpg")
    (root / "trips" / "2024" / "y.webp").write_bytes(b"webp")
    (root / "empty").mkdir()
    return root


@pytest.fixture
def config(images_root: Path, tmp_path: Path) -> GalleryConfig:
    return GalleryConfig(
        images_dir=images_root,
        cache_backend="memory",
        likes_db=tmp_path / "data" / "likes.db",
        thumb_width=32,
    )


@pytest.fixture
def store() -> MemoryListingStore:
    return MemoryListingStore()


@pytest.fixture
def db(config: GalleryConfig) -> Generator[DatabaseManager, None, None]:
    manager = DatabaseManager(config.likes_db)
    yield manager
    manager.close()


@pytest.fixture
def core(config: GalleryConfig, store: MemoryListingStore, db: DatabaseManager) -> GalleryCore:
    return GalleryCore(config, ListingCache(store, ttl_seconds=30), db)


@pytest.fixture
def client(core: GalleryCore):
    app = create_flask_app(core)
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c
