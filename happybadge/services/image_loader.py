"""
Image Loader Service - HappyBadge

Obtém e decodifica as duas imagens de entrada do badge:
- Frame do organizador (URL pública, baixada via httpx)
- Foto do participante (bytes do upload)

Falhas de rede e falhas de decodificação são reportadas separadamente
(ImageLoadError.reason = "network" vs "unsupported_format"/"corrupt").
"""

import asyncio
from io import BytesIO
from typing import Optional, Tuple

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from happybadge.config import settings
from happybadge.exceptions import ImageLoadError
from happybadge.utils import (
    detect_image_format, validate_content_type,
    CONTENT_TYPE_TO_FORMAT, ALLOWED_PIL_FORMATS
)


class ImageLoader:
    """
    Carregador de imagens com validação em camadas.

    Pipeline de validação (load_from_bytes):
    1. Tamanho em bytes (antes de qualquer decodificação)
    2. Magic numbers
    3. Pillow verify() + formato permitido
    4. Dimensões máximas (previne decompression bomb)
    5. Decodificação completa, orientação EXIF, conversão RGBA
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.timeout = timeout if timeout is not None else settings.FRAME_FETCH_TIMEOUT
        # Transport injetável (httpx.MockTransport nos testes)
        self._transport = transport

    # ==========================================================================
    # Decodificação
    # ==========================================================================

    def load_from_bytes(
        self,
        data: bytes,
        declared_mime: Optional[str] = None,
        max_bytes: Optional[int] = None,
        source: str = "photo"
    ) -> Image.Image:
        """
        Decodifica bytes de imagem em bitmap RGBA.

        Args:
            data: Bytes completos do arquivo
            declared_mime: Content-Type informado pelo cliente (apenas log)
            max_bytes: Limite de tamanho (usa MAX_UPLOAD_SIZE_BYTES se None)
            source: "photo" ou "frame" (contexto do erro)

        Returns:
            Imagem PIL em modo RGBA, já carregada em memória

        Raises:
            ImageLoadError: too_large, unsupported_format, corrupt, too_many_pixels
        """
        limit = max_bytes if max_bytes is not None else settings.MAX_UPLOAD_SIZE_BYTES

        # 1. Tamanho (nunca decodifica arquivos acima do limite)
        size = len(data) if data else 0
        if size > limit:
            raise ImageLoadError(
                "too_large", source,
                f"Arquivo muito grande: {size / (1024 * 1024):.1f}MB. "
                f"Limite: {limit / (1024 * 1024):.0f}MB"
            )

        # 2. Magic numbers
        detected = detect_image_format(data or b"")
        if not detected:
            raise ImageLoadError(
                "unsupported_format", source,
                "Assinatura de arquivo não corresponde a PNG, JPEG ou WebP"
            )

        # 3. Integridade estrutural
        try:
            with BytesIO(data) as buffer:
                with Image.open(buffer) as probe:
                    pil_format = probe.format
                    width, height = probe.size
                    probe.verify()
        except Image.DecompressionBombError as e:
            # Pillow recusa a abertura antes do nosso limite de dimensão
            raise ImageLoadError(
                "too_many_pixels", source,
                f"Imagem muito grande: {e}"
            ) from e
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            raise ImageLoadError("corrupt", source, f"Arquivo corrompido: {e}") from e

        if pil_format not in ALLOWED_PIL_FORMATS:
            raise ImageLoadError(
                "unsupported_format", source,
                f"Formato '{pil_format}' não é suportado. Use: PNG, JPEG ou WebP"
            )

        if declared_mime:
            expected = CONTENT_TYPE_TO_FORMAT.get(declared_mime.split(";")[0].strip().lower())
            if not validate_content_type(declared_mime):
                print(f"[LOADER] ⚠ Content-Type '{declared_mime}' não permitido; usando formato real '{pil_format}'")
            elif expected != pil_format:
                # Apenas log, não bloqueia (Content-Type pode ser errado do browser)
                print(f"[LOADER] ⚠ Content-Type '{declared_mime}' não corresponde ao formato real '{pil_format}'")

        # 4. Dimensões
        if max(width, height) > settings.MAX_IMAGE_DIMENSION:
            raise ImageLoadError(
                "too_many_pixels", source,
                f"Imagem muito grande: {width}x{height}px. "
                f"Dimensão máxima: {settings.MAX_IMAGE_DIMENSION}px"
            )

        # 5. Decodificação completa (verify() invalida o objeto anterior)
        try:
            with BytesIO(data) as buffer:
                with Image.open(buffer) as image:
                    image.load()
                    oriented = ImageOps.exif_transpose(image)
                    bitmap = oriented.convert("RGBA")
        except (OSError, ValueError) as e:
            raise ImageLoadError("corrupt", source, f"Falha ao decodificar: {e}") from e

        print(f"[LOADER] ✓ {source}: {pil_format} {bitmap.width}x{bitmap.height}px ({size / 1024:.1f}KB)")
        return bitmap

    # ==========================================================================
    # Rede
    # ==========================================================================

    async def fetch(self, url: str, source: str = "frame") -> bytes:
        """
        Baixa uma imagem por URL.

        Raises:
            ImageLoadError: reason="network" (conexão/timeout/HTTP 5xx)
                            ou reason="not_found" (HTTP 4xx)
        """
        if not url:
            raise ImageLoadError("not_found", source, "URL da imagem ausente")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            reason = "not_found" if 400 <= status_code < 500 else "network"
            print(f"[LOADER] ❌ HTTP {status_code} ao baixar {source}: {url[:80]}")
            raise ImageLoadError(reason, source, f"HTTP {status_code} ao baixar {url}") from e
        except httpx.HTTPError as e:
            print(f"[LOADER] ❌ Erro de rede ao baixar {source}: {e}")
            raise ImageLoadError("network", source, f"Erro de rede: {e}") from e

    async def load_from_url(
        self,
        url: str,
        source: str = "frame",
        max_bytes: Optional[int] = None
    ) -> Image.Image:
        """Baixa e decodifica uma imagem."""
        data = await self.fetch(url, source)
        limit = max_bytes if max_bytes is not None else settings.MAX_FRAME_SIZE_BYTES
        return self.load_from_bytes(data, max_bytes=limit, source=source)

    async def load_pair(
        self,
        frame_url: str,
        photo_bytes: bytes,
        photo_mime: Optional[str] = None
    ) -> Tuple[Image.Image, Image.Image]:
        """
        Carrega frame e foto em paralelo.

        O download do frame e a decodificação da foto são independentes;
        ambos precisam terminar antes da composição. O primeiro erro é
        propagado.

        Returns:
            Tuple (frame, photo) em RGBA
        """
        frame_task = self.load_from_url(frame_url, source="frame")
        photo_task = asyncio.to_thread(
            self.load_from_bytes, photo_bytes, photo_mime, None, "photo"
        )
        frame, photo = await asyncio.gather(frame_task, photo_task)
        return frame, photo


# =============================================================================
# Singleton Export
# =============================================================================

image_loader = ImageLoader()
