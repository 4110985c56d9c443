"""
Badge Renderer - HappyBadge

Rotina única de composição do badge, usada pelo endpoint e pelo editor
interativo.

Ordem das camadas (fundo → topo):
- square: foto (canvas inteiro) → frame
- circle: foto recortada em círculo (região central) → frame

O diâmetro do círculo é floor(min(largura, altura) * CIRCLE_INSET_RATIO).
"""

import math
from typing import Optional, Tuple, Union

from PIL import Image

from happybadge.config import FitMode, TemplateShape, settings
from happybadge.exceptions import MaskError, ValidationError
from happybadge.schemas import BadgeTemplate, BadgeResult, CompositionParameters
from happybadge.services.geometry import Placement, compute_fit
from happybadge.services.image_composer import ImageComposer, Layer, image_composer
from happybadge.services.mask import apply_circular_mask


class BadgeRenderer:
    """
    Monta as camadas do badge e delega ao ImageComposer.

    Stateless: cada chamada aloca seus próprios bitmaps.
    """

    def __init__(
        self,
        composer: Optional[ImageComposer] = None,
        inset_ratio: Optional[float] = None
    ):
        self.composer = composer or image_composer
        self.inset_ratio = settings.CIRCLE_INSET_RATIO if inset_ratio is None else inset_ratio

    # ==========================================================================
    # Geometria do template
    # ==========================================================================

    def circle_diameter(self, canvas_width: int, canvas_height: int) -> int:
        """Diâmetro do recorte circular para o canvas."""
        return math.floor(min(canvas_width, canvas_height) * self.inset_ratio)

    def photo_region(
        self,
        template: BadgeTemplate,
        canvas_width: int,
        canvas_height: int
    ) -> Tuple[int, int, int, int]:
        """
        Região do canvas ocupada pela foto.

        Returns:
            Tuple (x, y, largura, altura)

        Raises:
            MaskError: Canvas circle pequeno demais (diâmetro zero)
        """
        if template.shape == TemplateShape.CIRCLE:
            diameter = self.circle_diameter(canvas_width, canvas_height)
            if diameter <= 0:
                raise MaskError(
                    f"Canvas {canvas_width}x{canvas_height} pequeno demais para o recorte circular"
                )
            return (
                (canvas_width - diameter) // 2,
                (canvas_height - diameter) // 2,
                diameter,
                diameter
            )
        return 0, 0, canvas_width, canvas_height

    def place_photo(
        self,
        photo: Image.Image,
        region_width: int,
        region_height: int,
        params: Optional[CompositionParameters] = None,
        mode: Union[FitMode, str] = FitMode.COVER
    ) -> Placement:
        """
        Posiciona a foto na região.

        Com params, o modo é sempre manual (escala/offsets do editor,
        relativos à região). Sem params, usa `mode` (cover por padrão).
        """
        if params is not None:
            return compute_fit(
                photo.width, photo.height,
                region_width, region_height,
                FitMode.MANUAL,
                scale=params.scale,
                offset_x=params.offset_x,
                offset_y=params.offset_y
            )

        if mode == FitMode.MANUAL:
            raise ValidationError(
                "Modo manual exige escala e posição",
                "Parâmetros de posicionamento ausentes.",
                field="scale"
            )

        return compute_fit(photo.width, photo.height, region_width, region_height, mode)

    # ==========================================================================
    # Composição
    # ==========================================================================

    def build_layers(
        self,
        template: BadgeTemplate,
        frame: Image.Image,
        photo: Image.Image,
        placement: Placement,
        canvas_width: int,
        canvas_height: int
    ) -> list[Layer]:
        """Camadas ordenadas (primeira = fundo)."""
        region_x, region_y, region_w, region_h = self.photo_region(template, canvas_width, canvas_height)
        photo_w, photo_h = placement.size

        photo_layer = Layer(photo, placement.offset_x, placement.offset_y, photo_w, photo_h)

        if template.shape == TemplateShape.CIRCLE:
            # Foto desenhada na região e recortada antes do frame
            region = self.composer.compose_image([photo_layer], region_w, region_h)
            masked = apply_circular_mask(region, region_w)
            photo_layer = Layer(masked, region_x, region_y, region_w, region_h)

        frame_layer = Layer(frame, 0, 0, canvas_width, canvas_height)
        return [photo_layer, frame_layer]

    def render(
        self,
        template: BadgeTemplate,
        frame: Image.Image,
        photo: Image.Image,
        params: Optional[CompositionParameters] = None,
        mode: Union[FitMode, str] = FitMode.COVER,
        identifier: Optional[str] = None
    ) -> BadgeResult:
        """
        Gera o badge final em PNG.

        Args:
            template: Template do evento
            frame: Frame decodificado (RGBA)
            photo: Foto do participante decodificada (RGBA)
            params: Posicionamento manual (editor); None = encaixe `mode`
            mode: cover (padrão) ou contain quando params é None
            identifier: Usado no nome do arquivo (padrão: template.id)

        Returns:
            BadgeResult com PNG de exatamente target_width x target_height

        Raises:
            ValidationError, MaskError, CompositionError
        """
        canvas_width, canvas_height = template.canvas_size(frame.width, frame.height)
        _, _, region_w, region_h = self.photo_region(template, canvas_width, canvas_height)

        placement = self.place_photo(photo, region_w, region_h, params, mode)
        print(f"[RENDER] Template {template.id} ({template.shape.value}): "
              f"canvas {canvas_width}x{canvas_height}, scale={placement.scale:.3f}")

        layers = self.build_layers(template, frame, photo, placement, canvas_width, canvas_height)
        png = self.composer.compose(layers, canvas_width, canvas_height)

        return BadgeResult.build(png, canvas_width, canvas_height, template.id, identifier)

    def render_preview(
        self,
        template: BadgeTemplate,
        frame: Image.Image,
        photo: Optional[Image.Image],
        placement: Optional[Placement] = None
    ) -> Image.Image:
        """
        Redesenho ao vivo do editor: retorna o canvas (sem codificar PNG).

        Sem foto, mostra apenas o frame.
        """
        canvas_width, canvas_height = template.canvas_size(frame.width, frame.height)

        if photo is None or placement is None:
            return self.composer.compose_image(
                [Layer(frame, 0, 0, canvas_width, canvas_height)],
                canvas_width, canvas_height
            )

        layers = self.build_layers(template, frame, photo, placement, canvas_width, canvas_height)
        return self.composer.compose_image(layers, canvas_width, canvas_height)


# =============================================================================
# Singleton Export
# =============================================================================

badge_renderer = BadgeRenderer()
