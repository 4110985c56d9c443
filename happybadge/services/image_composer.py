"""
Image Composer Service - HappyBadge

Compõe camadas RGBA em um canvas transparente e codifica em PNG.

Regras:
- Camadas desenhadas em ordem (primeira = mais ao fundo), source-over
- Canvas sempre canvas_width x canvas_height; excesso é recortado
- Camada com largura/altura zero é ignorada (não aborta o badge)
- Saída sempre PNG sem perdas (preserva a transparência do frame)
"""

from PIL import Image
from io import BytesIO
from dataclasses import dataclass
from typing import Sequence

from happybadge.exceptions import CompositionError


@dataclass
class Layer:
    """
    Camada a desenhar no canvas.

    Attributes:
        bitmap: Imagem fonte
        x, y: Canto superior esquerdo no canvas (px, aceita fração)
        width, height: Tamanho de desenho (px, aceita fração)
    """
    bitmap: Image.Image
    x: float
    y: float
    width: float
    height: float


class ImageComposer:
    """
    Compositor de camadas para badges.

    O canvas é um alvo descartável: cada chamada cria o seu próprio,
    sem estado compartilhado entre chamadas.
    """

    # ==========================================================================
    # Configurações
    # ==========================================================================

    BACKGROUND = (0, 0, 0, 0)  # Transparente
    RESAMPLING = Image.Resampling.LANCZOS
    PNG_OPTIMIZE: bool = True

    # ==========================================================================
    # Métodos Públicos
    # ==========================================================================

    def compose_image(
        self,
        layers: Sequence[Layer],
        canvas_width: int,
        canvas_height: int
    ) -> Image.Image:
        """
        Desenha as camadas e retorna o canvas RGBA.

        Raises:
            CompositionError: Canvas com área zero
        """
        if canvas_width <= 0 or canvas_height <= 0:
            raise CompositionError(f"Canvas com área zero: {canvas_width}x{canvas_height}")

        canvas = Image.new("RGBA", (canvas_width, canvas_height), self.BACKGROUND)

        for index, layer in enumerate(layers):
            self._draw_layer(canvas, layer, index)

        return canvas

    def compose(
        self,
        layers: Sequence[Layer],
        canvas_width: int,
        canvas_height: int
    ) -> bytes:
        """
        Versão para API: compõe e retorna PNG (bytes).

        Raises:
            CompositionError: Canvas com área zero ou falha do encoder
        """
        canvas = self.compose_image(layers, canvas_width, canvas_height)

        try:
            with BytesIO() as output:
                canvas.save(output, format="PNG", optimize=self.PNG_OPTIMIZE)
                data = output.getvalue()
        except (OSError, ValueError) as e:
            raise CompositionError(f"Falha ao codificar PNG: {e}") from e
        finally:
            canvas.close()

        print(f"[COMPOSER] ✓ Composição completa: {canvas_width}x{canvas_height}px, "
              f"{len(layers)} camada(s), {len(data) / 1024:.1f}KB")
        return data

    # ==========================================================================
    # Métodos Privados
    # ==========================================================================

    def _draw_layer(self, canvas: Image.Image, layer: Layer, index: int) -> None:
        """Desenha uma camada (source-over), recortando ao canvas."""
        # Arredondamento acontece apenas aqui
        width = int(round(layer.width))
        height = int(round(layer.height))
        x = int(round(layer.x))
        y = int(round(layer.y))

        if width <= 0 or height <= 0:
            print(f"[COMPOSER] ⚠️ Camada {index} ignorada: tamanho {width}x{height}")
            return

        # Fora do canvas: nada a desenhar
        if x >= canvas.width or y >= canvas.height or x + width <= 0 or y + height <= 0:
            return

        source = layer.bitmap if layer.bitmap.mode == "RGBA" else layer.bitmap.convert("RGBA")

        # Região visível (interseção com o canvas), em coordenadas da camada
        left = max(0, -x)
        top = max(0, -y)
        right = min(width, canvas.width - x)
        bottom = min(height, canvas.height - y)

        # Redimensiona apenas o trecho visível (zoom alto não aloca a foto inteira)
        sx = width / source.width
        sy = height / source.height
        visible = source.resize(
            (right - left, bottom - top),
            self.RESAMPLING,
            box=(left / sx, top / sy, right / sx, bottom / sy)
        )
        canvas.alpha_composite(visible, dest=(x + left, y + top))


# =============================================================================
# Singleton Export
# =============================================================================

image_composer = ImageComposer()
