"""
Pytest configuration and shared fixtures.
"""

import sys
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from media import ResolvedImage  # noqa: E402
from presentation import Presentation  # noqa: E402


def make_png(width: int = 4, height: int = 3, color=(200, 30, 30)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeResolver:
    """Image resolver that serves fixed images and records every load."""

    def __init__(self, images=None, failing=()):
        self.images = images or {}
        self.failing = set(failing)
        self.calls = []

    async def load(self, path, image_format):
        self.calls.append((path, image_format))
        if path in self.failing:
            raise FileNotFoundError(path)
        data = self.images.get(path, make_png())
        with Image.open(BytesIO(data)) as image:
            width, height = image.size
        return ResolvedImage(data, width, height)


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def png_file(tmp_path: Path) -> Path:
    path = tmp_path / "logo.png"
    path.write_bytes(make_png(10, 20))
    return path


@pytest.fixture
def presentation() -> Presentation:
    return Presentation(title="Quarterly Review", author="Finance")


@pytest.fixture
def fake_resolver() -> FakeResolver:
    return FakeResolver()
