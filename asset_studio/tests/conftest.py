import base64
from io import BytesIO
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image
from sqlalchemy.orm import sessionmaker

from asset_studio.assets.model import GeneratedImage, HistoryItem
from asset_studio.database.core import Base, make_engine
from asset_studio.generation.service import GenerationClient
from asset_studio.storage.backend import RecordBackend
from asset_studio.storage.service import Persister
from asset_studio.workspace import Workspace


# In-memory SQLite shares one connection, so every session sees the same table
@pytest.fixture(scope="function")
def engine():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def backend(session_factory) -> RecordBackend:
    """Storage backend without a quota."""
    return RecordBackend(session_factory, quota=None)


@pytest.fixture
def persister(backend) -> Persister:
    return Persister(backend, user_id="user-test")


@pytest.fixture
def png_factory():
    """Builds solid-colour PNG data URIs."""

    def make_png(width: int = 40, height: int = 30, color=(200, 30, 30)) -> str:
        buffer = BytesIO()
        Image.new("RGB", (width, height), color).save(buffer, format="PNG")
        data = base64.b64encode(buffer.getvalue()).decode("utf-8")
        return f"data:image/png;base64,{data}"

    return make_png


@pytest.fixture
def png_src(png_factory) -> str:
    return png_factory()


@pytest.fixture
def make_run():
    """Builds a HistoryItem with ``count`` images."""

    def _make_run(prompt: str = "a red fox", count: int = 1, favorite: bool = False, src: str = "data:image/png;base64,AAAA") -> HistoryItem:
        return HistoryItem(
            prompt=prompt,
            generated_images=[
                GeneratedImage(src=src, is_favorite=favorite) for _ in range(count)
            ],
        )

    return _make_run


@pytest.fixture
def mock_client() -> MagicMock:
    """A GenerationClient whose network calls are AsyncMocks."""
    client = MagicMock(spec=GenerationClient)
    client.generate = AsyncMock(return_value=["data:image/png;base64,R0VO"])
    client.edit_in_place = AsyncMock(return_value="data:image/png;base64,RURJVA==")
    client.upscale = AsyncMock(return_value=["data:image/png;base64,VVBTQ0FMRQ=="])
    client.refine = AsyncMock(return_value="a refined prompt")
    client.narrate = AsyncMock(return_value="a short story")
    return client


@pytest.fixture
def workspace(backend, mock_client) -> Workspace:
    return Workspace(backend, client=mock_client).load()
