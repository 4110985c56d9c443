"""
Mask Applicator - HappyBadge

Recorte circular da foto do participante via canal alpha.

Função pura: sem I/O, determinística. A máscara é binária (0 ou 255),
portanto aplicar duas vezes com o mesmo diâmetro produz o mesmo resultado.
"""

import numpy as np
from PIL import Image, ImageChops

from happybadge.exceptions import MaskError


def circle_mask(width: int, height: int, diameter: float) -> Image.Image:
    """
    Cria máscara 'L' com um círculo centralizado.

    Um pixel é opaco (255) se o seu centro está dentro do círculo.
    """
    radius = diameter / 2
    cx = width / 2
    cy = height / 2

    # Centros dos pixels
    ys = np.arange(height, dtype=np.float64)[:, None] + 0.5
    xs = np.arange(width, dtype=np.float64)[None, :] + 0.5
    inside = (xs - cx) ** 2 + (ys - cy) ** 2 <= radius ** 2

    return Image.fromarray(np.where(inside, 255, 0).astype(np.uint8))


def apply_circular_mask(bitmap: Image.Image, diameter: float) -> Image.Image:
    """
    Zera o alpha de todos os pixels fora do círculo centralizado.

    Args:
        bitmap: Imagem de entrada (qualquer modo; convertida para RGBA)
        diameter: Diâmetro do círculo em pixels

    Returns:
        Nova imagem RGBA (a entrada não é modificada)

    Raises:
        MaskError: diameter <= 0 ou diameter > min(largura, altura)
    """
    width, height = bitmap.size

    if diameter <= 0:
        raise MaskError(f"Diâmetro deve ser positivo, recebido: {diameter}")

    if diameter > min(width, height):
        raise MaskError(
            f"Diâmetro {diameter} excede a menor dimensão da imagem ({width}x{height})"
        )

    rgba = bitmap.convert("RGBA") if bitmap.mode != "RGBA" else bitmap.copy()
    mask = circle_mask(width, height, diameter)

    # alpha_out = alpha_in * mask / 255 (mask binária: mantém ou zera)
    alpha = ImageChops.multiply(rgba.getchannel("A"), mask)
    rgba.putalpha(alpha)
    return rgba
