"""
Fixtures compartilhadas dos testes do HappyBadge.

Imagens são geradas em memória com Pillow; nenhum teste acessa rede
ou Supabase.
"""

import sys
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

# Adicionar diretório raiz ao path
sys.path.insert(0, str(Path(__file__).parent.parent))

from happybadge.config import TemplateShape
from happybadge.schemas import BadgeTemplate


FRAME_URL = "https://cdn.happybadge.test/frames/frame.png"


def encode(image: Image.Image, format: str = "PNG", **kwargs) -> bytes:
    with BytesIO() as buffer:
        image.save(buffer, format=format, **kwargs)
        return buffer.getvalue()


def solid(width: int, height: int, color=(255, 0, 0, 255), mode: str = "RGBA") -> Image.Image:
    if mode == "RGB":
        color = color[:3]
    return Image.new(mode, (width, height), color)


def frame_with_hole(size: int = 512, hole_radius: int = 230, color=(0, 0, 255, 255)) -> Image.Image:
    """Frame opaco com furo circular transparente no centro."""
    frame = Image.new("RGBA", (size, size), color)
    draw = ImageDraw.Draw(frame)
    c = size // 2
    draw.ellipse((c - hole_radius, c - hole_radius, c + hole_radius, c + hole_radius), fill=(0, 0, 0, 0))
    return frame


@pytest.fixture
def square_template() -> BadgeTemplate:
    return BadgeTemplate(id="tpl-square", frame_image_url=FRAME_URL, shape=TemplateShape.SQUARE)


@pytest.fixture
def circle_template() -> BadgeTemplate:
    return BadgeTemplate(id="tpl-circle", frame_image_url=FRAME_URL, shape=TemplateShape.CIRCLE)


@pytest.fixture
def photo_jpeg() -> bytes:
    """Foto 1024x768 JPEG, vermelha."""
    return encode(solid(1024, 768, mode="RGB"), "JPEG", quality=95)


@pytest.fixture
def frame_png() -> bytes:
    """Frame 512x512 com furo central."""
    return encode(frame_with_hole())
