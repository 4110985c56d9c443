#!/usr/bin/env python3
"""
HappyBadge - Testes de templates, schemas e utilitários

Uso:
    pytest scripts/test_templates.py
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from happybadge.config import Settings, TemplateShape
from happybadge.exceptions import TemplateNotFoundError, ValidationError
from happybadge.schemas import BadgeTemplate, CompositionParameters, GenerationEvent
from happybadge.services import templates as templates_module
from happybadge.services.templates import TemplateService
from happybadge.utils import badge_filename, detect_image_format, validate_content_type


RECORD = {
    "id": "0b7c",
    "event_id": 42,
    "name": "Meetup",
    "frame_image_url": "https://cdn.happybadge.test/f.png",
    "shape": "circle",
    "width": 1080,
    "height": 1080,
    "is_public": True,
}


# ============================================
# TemplateService
# ============================================

def test_get_template(monkeypatch):
    monkeypatch.setattr(templates_module, "get_public_template", lambda template_id: RECORD)

    template = TemplateService().get_template(" 0b7c ")

    assert template.shape == TemplateShape.CIRCLE
    assert template.event_id == "42"
    assert template.canvas_size(500, 500) == (1080, 1080)


def test_missing_template(monkeypatch):
    monkeypatch.setattr(templates_module, "get_public_template", lambda template_id: None)

    with pytest.raises(TemplateNotFoundError):
        TemplateService().get_template("nope")


def test_template_without_frame(monkeypatch):
    monkeypatch.setattr(
        templates_module, "get_public_template",
        lambda template_id: {**RECORD, "frame_image_url": None}
    )

    with pytest.raises(TemplateNotFoundError):
        TemplateService().get_template("0b7c")


def test_blank_template_id():
    with pytest.raises(ValidationError) as exc:
        TemplateService().get_template("   ")
    assert exc.value.field == "templateId"


# ============================================
# Schemas
# ============================================

def test_template_defaults_to_square_and_frame_size():
    template = BadgeTemplate.from_record({"id": 1, "frame_image_url": "https://x/f.png"})

    assert template.id == "1"
    assert template.shape == TemplateShape.SQUARE
    assert template.canvas_size(640, 480) == (640, 480)


def test_composition_parameters_reject_non_finite():
    with pytest.raises(PydanticValidationError):
        CompositionParameters(scale=1.0, offset_x=float("nan"), offset_y=0)


def test_generation_event_metadata():
    assert GenerationEvent(template_id="t", success=True).metadata() == {"success": True}
    assert GenerationEvent(template_id="t", success=False, error="x").metadata() == {"success": False, "error": "x"}


# ============================================
# Utils
# ============================================

@pytest.mark.parametrize("identifier,expected", [
    ("tpl-1", "badge-tpl-1.png"),
    ('a"b/c', "badge-a-b-c.png"),
    ("", "badge-download.png"),
    (None, "badge-download.png"),
])
def test_badge_filename(identifier, expected):
    assert badge_filename(identifier) == expected


def test_detect_image_format():
    assert detect_image_format(b"\x89PNG\r\n\x1a\n0000") == "png"
    assert detect_image_format(b"\xff\xd8\xff\xe0000000") == "jpeg"
    assert detect_image_format(b"RIFF\x00\x00\x00\x00WEBP") == "webp"
    assert detect_image_format(b"RIFF\x00\x00\x00\x00WAVE") is None
    assert detect_image_format(b"GIF89a..") is None


def test_validate_content_type():
    assert validate_content_type("image/png; charset=binary")
    assert not validate_content_type("image/gif")
    assert not validate_content_type(None)


def test_settings_validate_inset_ratio(monkeypatch):
    monkeypatch.setattr(Settings, "CIRCLE_INSET_RATIO", 1.5)
    assert any("CIRCLE_INSET_RATIO" in warning for warning in Settings.validate())
