"""
Geometry Calculator - HappyBadge

Calcula escala e posição da foto do participante dentro do canvas do badge.

Modos:
- cover: preenche o alvo inteiro (excesso é recortado pelo canvas)
- contain: cabe inteiro no alvo (pode sobrar espaço)
- manual: escala/offsets vindos do editor (arrastar/zoom), com clamp

Offsets são o canto superior esquerdo da foto escalada no canvas.
Valores fracionários são preservados; o arredondamento acontece apenas
no desenho final (ImageComposer).
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from happybadge.config import FitMode, settings
from happybadge.exceptions import ValidationError


@dataclass(frozen=True)
class Placement:
    """
    Posicionamento calculado da foto.

    Attributes:
        scale: Fator de escala (> 0)
        offset_x: X do canto superior esquerdo (px, float)
        offset_y: Y do canto superior esquerdo (px, float)
        source_width: Largura original da foto
        source_height: Altura original da foto
    """
    scale: float
    offset_x: float
    offset_y: float
    source_width: int
    source_height: int

    @property
    def size(self) -> Tuple[float, float]:
        """Tamanho escalado (sem arredondamento)."""
        return self.source_width * self.scale, self.source_height * self.scale

    def translated(self, dx: float, dy: float) -> "Placement":
        return Placement(self.scale, self.offset_x + dx, self.offset_y + dy,
                         self.source_width, self.source_height)

    def to_dict(self) -> dict:
        """Converte para dicionário serializável."""
        return {
            "scale": self.scale,
            "offset_x": self.offset_x,
            "offset_y": self.offset_y
        }


def _require_dimension(name: str, value) -> None:
    if not isinstance(value, (int, float)) or isinstance(value, bool) or not math.isfinite(value) or value <= 0:
        raise ValidationError(
            f"{name} deve ser positivo, recebido: {value!r}",
            "Dimensões de imagem inválidas.",
            field=name
        )


def _centered(scale: float, sw: int, sh: int, tw: int, th: int) -> Tuple[float, float]:
    return (tw - sw * scale) / 2, (th - sh * scale) / 2


def clamp_offsets(
    scale: float,
    offset_x: float,
    offset_y: float,
    source_width: int,
    source_height: int,
    target_width: int,
    target_height: int,
    min_visible: Optional[float] = None
) -> Tuple[float, float]:
    """
    Restringe offsets para manter ao menos `min_visible` da foto escalada
    dentro do alvo em cada eixo.
    """
    fraction = settings.MIN_VISIBLE_FRACTION if min_visible is None else min_visible
    scaled_w = source_width * scale
    scaled_h = source_height * scale

    # Interseção mínima por eixo (não pode exceder o próprio alvo)
    keep_x = min(scaled_w * fraction, target_width)
    keep_y = min(scaled_h * fraction, target_height)

    x = min(max(offset_x, keep_x - scaled_w), target_width - keep_x)
    y = min(max(offset_y, keep_y - scaled_h), target_height - keep_y)
    return x, y


def compute_fit(
    source_width: int,
    source_height: int,
    target_width: int,
    target_height: int,
    mode: Union[FitMode, str] = FitMode.COVER,
    scale: Optional[float] = None,
    offset_x: Optional[float] = None,
    offset_y: Optional[float] = None
) -> Placement:
    """
    Calcula o posicionamento da foto no alvo.

    Args:
        source_width, source_height: Dimensões da foto (px)
        target_width, target_height: Dimensões do alvo (px)
        mode: cover | contain | manual
        scale, offset_x, offset_y: Obrigatórios apenas no modo manual

    Returns:
        Placement com escala e offsets

    Raises:
        ValidationError: Dimensão não positiva, modo desconhecido,
                         escala <= 0 ou offsets não finitos (manual)
    """
    _require_dimension("source_width", source_width)
    _require_dimension("source_height", source_height)
    _require_dimension("target_width", target_width)
    _require_dimension("target_height", target_height)

    try:
        mode = FitMode(mode)
    except ValueError:
        raise ValidationError(
            f"Modo de encaixe inválido: {mode!r}. Válidos: {FitMode.values()}",
            "Modo de encaixe inválido.",
            field="mode"
        )

    if mode == FitMode.COVER:
        fit_scale = max(target_width / source_width, target_height / source_height)
        x, y = _centered(fit_scale, source_width, source_height, target_width, target_height)
        return Placement(fit_scale, x, y, source_width, source_height)

    if mode == FitMode.CONTAIN:
        fit_scale = min(target_width / source_width, target_height / source_height)
        x, y = _centered(fit_scale, source_width, source_height, target_width, target_height)
        return Placement(fit_scale, x, y, source_width, source_height)

    # Manual
    if scale is None or isinstance(scale, bool) or not isinstance(scale, (int, float)) \
            or not math.isfinite(scale) or scale <= 0:
        raise ValidationError(
            f"Escala deve ser um número positivo, recebido: {scale!r}",
            "Zoom inválido.",
            field="scale"
        )

    if offset_x is None or offset_y is None:
        # Sem offsets: centraliza com a escala informada
        offset_x, offset_y = _centered(scale, source_width, source_height, target_width, target_height)

    for name, value in (("offset_x", offset_x), ("offset_y", offset_y)):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValidationError(
                f"{name} deve ser um número finito, recebido: {value!r}",
                "Posição da foto inválida.",
                field=name
            )

    x, y = clamp_offsets(
        scale, offset_x, offset_y,
        source_width, source_height,
        target_width, target_height
    )
    return Placement(float(scale), x, y, source_width, source_height)
