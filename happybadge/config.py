"""
HappyBadge Compositor - Configuration Module
Gerenciamento centralizado de variáveis de ambiente e configurações.
"""

import os
from enum import Enum
from pathlib import Path
from dotenv import load_dotenv


# =============================================================================
# Versão do Aplicativo (Centralizada)
# =============================================================================

APP_VERSION = "1.2.0"


# =============================================================================
# Enums para templates, modos de encaixe e estados do editor
# =============================================================================

class TemplateShape(str, Enum):
    """Formatos de recorte suportados pelos templates."""
    SQUARE = "square"
    CIRCLE = "circle"

    @classmethod
    def values(cls) -> list[str]:
        """Retorna lista de valores válidos."""
        return [e.value for e in cls]

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Verifica se um valor é um formato válido."""
        return value in cls.values()


class FitMode(str, Enum):
    """Políticas de encaixe da foto no canvas."""
    COVER = "cover"
    CONTAIN = "contain"
    MANUAL = "manual"

    @classmethod
    def values(cls) -> list[str]:
        """Retorna lista de valores válidos."""
        return [e.value for e in cls]

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Verifica se um valor é um modo válido."""
        return value in cls.values()


class SessionState(str, Enum):
    """Estados do editor interativo de badge."""
    NO_PHOTO = "no_photo"
    PHOTO_LOADED = "photo_loaded"
    ADJUSTING = "adjusting"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"

    @classmethod
    def values(cls) -> list[str]:
        """Retorna lista de valores válidos."""
        return [e.value for e in cls]


# =============================================================================
# Settings
# =============================================================================

# Carrega variáveis do .env
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


class Settings:
    """Configurações globais do compositor."""

    # Supabase
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_KEY: str = os.getenv("SUPABASE_KEY", "")
    SUPABASE_TEMPLATES_TABLE: str = os.getenv("SUPABASE_TEMPLATES_TABLE", "event_badge_templates")
    SUPABASE_GENERATIONS_TABLE: str = os.getenv("SUPABASE_GENERATIONS_TABLE", "event_badge_generations")

    # Analytics (best effort)
    ANALYTICS_ENABLED: bool = os.getenv("ANALYTICS_ENABLED", "true").lower() == "true"

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "true").lower() == "true"
    CORS_ORIGINS: list[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
        if origin.strip()
    ]
    RATE_LIMIT_GENERATE: str = os.getenv("RATE_LIMIT_GENERATE", "20/minute")

    # Image Processing
    CIRCLE_INSET_RATIO: float = float(os.getenv("CIRCLE_INSET_RATIO", "0.8"))  # Diâmetro do círculo / lado do frame
    MIN_VISIBLE_FRACTION: float = 0.1  # Fração mínima da foto visível no modo manual
    ZOOM_MIN: float = 0.1  # Zoom relativo ao encaixe cover
    ZOOM_MAX: float = 3.0

    # DoS Protection - Limites de arquivo
    MAX_UPLOAD_SIZE_MB: int = int(os.getenv("MAX_UPLOAD_SIZE_MB", "5"))  # Fotos de participantes
    MAX_UPLOAD_SIZE_BYTES: int = MAX_UPLOAD_SIZE_MB * 1024 * 1024
    MAX_FRAME_SIZE_MB: int = 10  # Frames enviados por organizadores
    MAX_FRAME_SIZE_BYTES: int = MAX_FRAME_SIZE_MB * 1024 * 1024
    MAX_IMAGE_DIMENSION: int = 8000  # Dimensão máxima (largura ou altura) em pixels
    FRAME_FETCH_TIMEOUT: float = float(os.getenv("FRAME_FETCH_TIMEOUT", "10"))  # segundos

    @classmethod
    def validate(cls) -> list[str]:
        """Valida configurações e retorna avisos."""
        errors = []

        if not cls.SUPABASE_URL or not cls.SUPABASE_KEY:
            errors.append("SUPABASE_URL/SUPABASE_KEY não configuradas")

        if not 0 < cls.CIRCLE_INSET_RATIO <= 1:
            errors.append(f"CIRCLE_INSET_RATIO fora do intervalo (0, 1]: {cls.CIRCLE_INSET_RATIO}")

        return errors


settings = Settings()
