#!/usr/bin/env python3
"""
HappyBadge - Testes do Image Loader

Testa:
1. Decodificação de PNG/JPEG em RGBA (com orientação EXIF)
2. Rejeição por tamanho ANTES de decodificar
3. Formato não suportado vs arquivo corrompido
4. Download do frame: erro de rede vs 404
5. Carregamento paralelo frame + foto

Uso:
    pytest scripts/test_loader.py
"""

import asyncio
from io import BytesIO

import httpx
import pytest
from PIL import Image

from conftest import FRAME_URL, encode, solid, frame_with_hole
from happybadge.config import settings
from happybadge.exceptions import ImageLoadError
from happybadge.services.image_loader import ImageLoader


def loader_serving(handler) -> ImageLoader:
    return ImageLoader(timeout=2, transport=httpx.MockTransport(handler))


# ============================================
# Decodificação
# ============================================

def test_png_is_decoded_to_rgba():
    bitmap = ImageLoader().load_from_bytes(encode(solid(40, 30, mode="RGB")), "image/png")

    assert bitmap.mode == "RGBA"
    assert bitmap.size == (40, 30)


def test_exif_orientation_is_applied():
    exif = Image.Exif()
    exif[0x0112] = 6  # rotacionar 90°
    data = encode(solid(60, 20, mode="RGB"), "JPEG", exif=exif)

    bitmap = ImageLoader().load_from_bytes(data, "image/jpeg")
    assert bitmap.size == (20, 60)


def test_mismatched_content_type_is_not_blocking():
    bitmap = ImageLoader().load_from_bytes(encode(solid(10, 10)), "image/jpeg")
    assert bitmap.size == (10, 10)


# ============================================
# Tamanho
# ============================================

def test_oversized_upload_is_rejected_before_decoding(monkeypatch):
    """6MB com limite de 5MB: nenhuma tentativa de decodificação."""
    def fail_open(*args, **kwargs):
        raise AssertionError("Image.open não deveria ser chamado")

    monkeypatch.setattr(Image, "open", fail_open)
    data = b"\x89PNG\r\n\x1a\n" + b"\x00" * (6 * 1024 * 1024)

    with pytest.raises(ImageLoadError) as exc:
        ImageLoader().load_from_bytes(data, "image/png")

    assert exc.value.reason == "too_large"
    assert exc.value.source == "photo"
    assert not exc.value.is_network


def test_too_many_pixels(monkeypatch):
    monkeypatch.setattr(settings, "MAX_IMAGE_DIMENSION", 50)

    with pytest.raises(ImageLoadError) as exc:
        ImageLoader().load_from_bytes(encode(solid(100, 20)))
    assert exc.value.reason == "too_many_pixels"


def test_decompression_bomb_is_too_many_pixels():
    """PNG 1-bit de 15000x15000 (poucos KB) passa no limite de bytes."""
    data = encode(Image.new("1", (15000, 15000)))
    assert len(data) < settings.MAX_UPLOAD_SIZE_BYTES

    with pytest.raises(ImageLoadError) as exc:
        ImageLoader().load_from_bytes(data, "image/png")

    assert exc.value.reason == "too_many_pixels"
    assert exc.value.source == "photo"


# ============================================
# Formato
# ============================================

def test_gif_is_unsupported():
    with pytest.raises(ImageLoadError) as exc:
        ImageLoader().load_from_bytes(encode(solid(10, 10, mode="RGB"), "GIF"), "image/gif")
    assert exc.value.reason == "unsupported_format"


def test_empty_payload_is_unsupported():
    with pytest.raises(ImageLoadError) as exc:
        ImageLoader().load_from_bytes(b"")
    assert exc.value.reason == "unsupported_format"


def test_truncated_png_is_corrupt():
    data = encode(solid(64, 64))
    with pytest.raises(ImageLoadError) as exc:
        ImageLoader().load_from_bytes(data[:40])
    assert exc.value.reason == "corrupt"


def test_photo_and_frame_errors_have_distinct_messages():
    photo_error = ImageLoadError("corrupt", "photo")
    frame_error = ImageLoadError("network", "frame")
    assert photo_error.user_message != frame_error.user_message


# ============================================
# Rede
# ============================================

def test_frame_network_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ImageLoadError) as exc:
        asyncio.run(loader_serving(handler).load_from_url(FRAME_URL))

    assert exc.value.reason == "network"
    assert exc.value.source == "frame"
    assert exc.value.is_network


def test_frame_not_found():
    with pytest.raises(ImageLoadError) as exc:
        asyncio.run(loader_serving(lambda request: httpx.Response(404)).load_from_url(FRAME_URL))
    assert exc.value.reason == "not_found"


def test_frame_server_error_is_network():
    with pytest.raises(ImageLoadError) as exc:
        asyncio.run(loader_serving(lambda request: httpx.Response(503)).load_from_url(FRAME_URL))
    assert exc.value.reason == "network"


def test_frame_that_is_not_an_image():
    loader = loader_serving(lambda request: httpx.Response(200, content=b"<html>oops</html>"))
    with pytest.raises(ImageLoadError) as exc:
        asyncio.run(loader.load_from_url(FRAME_URL))

    assert exc.value.reason == "unsupported_format"
    assert exc.value.source == "frame"
    assert not exc.value.is_network


def test_load_pair_returns_frame_and_photo(photo_jpeg):
    frame_bytes = encode(frame_with_hole())
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, content=frame_bytes, headers={"content-type": "image/png"})

    frame, photo = asyncio.run(loader_serving(handler).load_pair(FRAME_URL, photo_jpeg, "image/jpeg"))

    assert seen == [FRAME_URL]
    assert frame.size == (512, 512)
    assert photo.size == (1024, 768)
    assert frame.mode == photo.mode == "RGBA"


def test_load_pair_propagates_photo_error():
    frame_bytes = encode(frame_with_hole())
    loader = loader_serving(lambda request: httpx.Response(200, content=frame_bytes))

    with pytest.raises(ImageLoadError) as exc:
        asyncio.run(loader.load_pair(FRAME_URL, b"not an image"))
    assert exc.value.source == "photo"
