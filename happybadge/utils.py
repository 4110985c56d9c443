"""
HappyBadge Compositor - Utility Functions
Funções auxiliares para validação de imagens e nomes de arquivo.
"""

import re
from typing import Optional


# =============================================================================
# Magic Numbers (File Signatures)
# =============================================================================
# Referência: https://en.wikipedia.org/wiki/List_of_file_signatures

IMAGE_MAGIC_NUMBERS = {
    "jpeg": [b'\xff\xd8\xff'],  # JPEG (JFIF, EXIF, ICC, raw...)
    "png": [b'\x89PNG\r\n\x1a\n'],  # PNG signature
    "webp": [b'RIFF'],  # WebP começa com RIFF (precisa verificar WEBP depois)
}

ALLOWED_CONTENT_TYPES = frozenset([
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
])

ALLOWED_PIL_FORMATS = frozenset(["JPEG", "PNG", "WEBP"])

CONTENT_TYPE_TO_FORMAT = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}


def validate_content_type(content_type: Optional[str]) -> bool:
    """
    Validação RÁPIDA: Verifica apenas o header Content-Type.

    ⚠️ VULNERÁVEL a spoofing! Use apenas como primeira camada de filtro.
    A validação real acontece no ImageLoader (magic numbers + Pillow).
    """
    if not content_type:
        return False
    return content_type.split(";")[0].strip().lower() in ALLOWED_CONTENT_TYPES


def detect_image_format(file_bytes: bytes) -> Optional[str]:
    """
    Verifica os magic numbers (assinatura) do arquivo.

    Args:
        file_bytes: Primeiros bytes do arquivo (mínimo 12 bytes recomendado)

    Returns:
        Tipo da imagem detectado ('jpeg', 'png', 'webp') ou None
    """
    if len(file_bytes) < 8:
        return None

    for format_name, signatures in IMAGE_MAGIC_NUMBERS.items():
        for sig in signatures:
            if file_bytes.startswith(sig):
                # WebP: RIFF....WEBP
                if format_name == "webp":
                    if len(file_bytes) >= 12 and file_bytes[8:12] == b'WEBP':
                        return "webp"
                else:
                    return format_name

    return None


def badge_filename(identifier: Optional[str]) -> str:
    """
    Gera o nome de arquivo do download: badge-<identifier>.png

    Caracteres fora de [A-Za-z0-9_-] são substituídos para manter o
    header Content-Disposition seguro.
    """
    safe = re.sub(r"[^A-Za-z0-9_-]+", "-", identifier or "").strip("-")
    return f"badge-{safe or 'download'}.png"
