import pytest
from PIL import Image

from photobooth.config.settings import settings
from photobooth.domain.layouts import LAYOUT_CATALOG


@pytest.fixture
def layout():
    return LAYOUT_CATALOG.get(1)


@pytest.fixture
def sticker_image():
    return Image.new("RGBA", (200, 100), (0, 200, 0, 255))


@pytest.fixture
def auth():
    return (settings.BASIC_AUTH_USERNAME, settings.BASIC_AUTH_PASSWORD)
