import asyncio

import pytest
from PIL import Image

from photobooth.domain.image_pipeline import DecodeError, ImagePreparationPipeline, decode_image
from photobooth.domain.models import Rectangle
from photobooth.infrastructure.imaging.image_process import calculate_center_crop, crop_to_fill
from tests.images import png_bytes, png_data_url


def test_center_crop_height_bound():
    assert calculate_center_crop((1600, 900), 400, 300) == pytest.approx((200.0, 0.0, 1200.0, 900.0))


def test_center_crop_width_bound():
    crop_x, crop_y, crop_w, crop_h = calculate_center_crop((900, 1600), 400, 300)
    assert (crop_x, crop_w) == (0.0, 900.0)
    assert crop_h == pytest.approx(675.0)
    assert crop_y == pytest.approx((1600 - 675) / 2)


def test_crop_to_fill_returns_exact_size():
    out = crop_to_fill(Image.new("RGB", (1600, 900)), 400, 300)
    assert out.size == (400, 300)


def test_crop_to_rectangle_from_bytes():
    pipeline = ImagePreparationPipeline()
    rect = Rectangle(x=0, y=0, width=400, height=300)

    async def run():
        return await pipeline.crop_to_rectangle(png_bytes(1600, 900), rect)

    out = asyncio.run(run())
    assert out.size == (400, 300)
    assert out.getpixel((200, 150)) == (255, 0, 0, 255)


def test_crop_to_rectangle_accepts_decoded_image():
    pipeline = ImagePreparationPipeline()
    rect = Rectangle(x=0, y=0, width=50, height=70)
    out = asyncio.run(pipeline.crop_to_rectangle(Image.new("RGB", (33, 17)), rect))
    assert out.size == (50, 70)


def test_decode_failure_raises_decode_error():
    pipeline = ImagePreparationPipeline()
    rect = Rectangle(x=0, y=0, width=10, height=10)
    with pytest.raises(DecodeError):
        asyncio.run(pipeline.crop_to_rectangle(b"definitely not an image", rect))


def test_decode_empty_data():
    with pytest.raises(DecodeError):
        decode_image(None)
    with pytest.raises(DecodeError):
        decode_image(b"")


def test_decode_downscales_large_images():
    img = decode_image(png_bytes(400, 100), max_side=200)
    assert img.size == (200, 50)
    assert img.mode == "RGBA"


def test_same_source_shares_one_decode():
    pipeline = ImagePreparationPipeline()
    source = png_data_url(40, 30)

    async def run():
        first = pipeline.get_or_load(source)
        second = pipeline.get_or_load(source)
        assert first is second
        return await first.wait(), await second.wait(), first

    a, b, handle = asyncio.run(run())
    assert a is b
    assert handle.ready and not handle.failed
    assert len(pipeline) == 1


def test_failed_handle_is_retried():
    pipeline = ImagePreparationPipeline()

    async def run():
        handle = pipeline.get_or_load(b"garbage")
        with pytest.raises(DecodeError):
            await handle.wait()
        assert handle.failed
        return pipeline.get_or_load(b"garbage") is handle

    assert asyncio.run(run()) is False


def test_evict_and_clear():
    pipeline = ImagePreparationPipeline()
    source = png_bytes(10, 10)

    async def run():
        await pipeline.get_or_crop(source, Rectangle(x=0, y=0, width=5, height=5)).wait()
        assert len(pipeline) == 1
        pipeline.evict(source)
        assert len(pipeline) == 0
        pipeline.get_or_load(source)
        pipeline.clear()

    asyncio.run(run())
    assert len(pipeline) == 0


def test_decompression_bomb_is_decode_error(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(DecodeError):
        decode_image(png_bytes(50, 50))
