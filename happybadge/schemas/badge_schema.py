"""
Schemas de badge - HappyBadge

Modelos Pydantic dos registros consumidos e produzidos pelo compositor:
- BadgeTemplate: registro do template (somente leitura para este serviço)
- CompositionParameters: escala/posição da foto escolhidas no editor
- BadgeResult: PNG gerado + nome do arquivo de download
- GenerationEvent: evento de analytics (best effort)

Uso:
    from happybadge.schemas import BadgeTemplate

    template = BadgeTemplate.from_record(response.data)
"""

import math
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from happybadge.config import TemplateShape
from happybadge.utils import badge_filename


class BadgeTemplate(BaseModel):
    """Template de badge criado pelo organizador do evento."""
    id: str
    frame_image_url: str
    shape: TemplateShape = TemplateShape.SQUARE
    target_width: Optional[int] = Field(None, gt=0, description="Largura do badge (px)")
    target_height: Optional[int] = Field(None, gt=0, description="Altura do badge (px)")
    event_id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_record(cls, record: dict) -> "BadgeTemplate":
        """
        Constrói a partir de uma linha de event_badge_templates.

        Colunas desconhecidas são ignoradas; shape ausente vira 'square'.
        """
        return cls(
            id=str(record["id"]),
            frame_image_url=record["frame_image_url"],
            shape=record.get("shape") or TemplateShape.SQUARE,
            target_width=record.get("target_width") or record.get("width"),
            target_height=record.get("target_height") or record.get("height"),
            event_id=str(record["event_id"]) if record.get("event_id") else None,
            name=record.get("name")
        )

    def canvas_size(self, frame_width: int, frame_height: int) -> tuple[int, int]:
        """Tamanho do badge: dimensões do registro ou, na falta, as do frame."""
        return (
            self.target_width or frame_width,
            self.target_height or frame_height
        )


class CompositionParameters(BaseModel):
    """Posicionamento manual da foto (canto superior esquerdo + escala)."""
    scale: float = Field(..., gt=0)
    offset_x: Optional[float] = None  # None = centralizado
    offset_y: Optional[float] = None

    @field_validator("scale", "offset_x", "offset_y")
    @classmethod
    def _finite(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not math.isfinite(value):
            raise ValueError("deve ser um número finito")
        return value


class BadgeResult(BaseModel):
    """Badge gerado."""
    png: bytes
    width: int
    height: int
    template_id: str
    filename: str

    @classmethod
    def build(cls, png: bytes, width: int, height: int, template_id: str,
              identifier: Optional[str] = None) -> "BadgeResult":
        return cls(
            png=png,
            width=width,
            height=height,
            template_id=template_id,
            filename=badge_filename(identifier or template_id)
        )


class GenerationEvent(BaseModel):
    """Evento de geração enviado ao analytics."""
    template_id: str
    success: bool
    error: Optional[str] = None

    def metadata(self) -> dict:
        data = {"success": self.success}
        if self.error:
            data["error"] = self.error
        return data
