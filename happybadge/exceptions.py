"""
HappyBadge Compositor - Exceptions
Taxonomia de erros do compositor de badges.

Todos os erros são irrecuperáveis para a chamada atual (sem retry automático).
Cada um carrega um `code` estável e uma `user_message` específica, para que
o front-end exiba uma mensagem distinta por causa.
"""

from typing import Optional


class BadgeError(Exception):
    """Base para erros do compositor."""

    code: str = "badge_error"
    user_message: str = "Não foi possível gerar o badge."

    def __init__(self, detail: Optional[str] = None, user_message: Optional[str] = None):
        self.detail = detail
        if user_message:
            self.user_message = user_message
        super().__init__(detail or self.user_message)

    def to_dict(self) -> dict:
        """Converte para dicionário serializável."""
        return {
            "error": self.code,
            "message": self.user_message,
            "detail": self.detail
        }


class ImageLoadError(BadgeError):
    """
    Falha ao obter ou decodificar uma imagem.

    Attributes:
        reason: network | not_found | too_large | unsupported_format | corrupt | too_many_pixels
        source: frame | photo
    """

    code = "image_load_error"

    MESSAGES = {
        ("frame", "network"): "Imagem do frame inacessível.",
        ("frame", "not_found"): "Imagem do frame inacessível.",
        ("photo", "too_large"): "A foto excede o tamanho máximo permitido.",
        ("photo", "unsupported_format"): "Formato da foto não suportado. Use PNG, JPEG ou WebP.",
        ("photo", "corrupt"): "A foto está corrompida ou não é uma imagem válida.",
        ("photo", "too_many_pixels"): "A foto tem dimensões grandes demais.",
    }

    def __init__(self, reason: str, source: str = "photo", detail: Optional[str] = None):
        self.reason = reason
        self.source = source
        message = self.MESSAGES.get(
            (source, reason),
            "Imagem do frame inválida." if source == "frame" else "Não foi possível ler a foto."
        )
        super().__init__(detail, message)

    @property
    def is_network(self) -> bool:
        return self.reason in ("network", "not_found")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["reason"] = self.reason
        data["source"] = self.source
        return data


class MaskError(BadgeError):
    """Geometria de máscara inválida."""

    code = "mask_error"
    user_message = "Recorte circular inválido para este template."


class CompositionError(BadgeError):
    """Falha do encoder ao gerar o PNG final."""

    code = "composition_error"
    user_message = "Não foi possível codificar o badge."


class ValidationError(BadgeError):
    """Entrada obrigatória ausente ou inválida."""

    code = "validation_error"
    user_message = "Dados inválidos."

    def __init__(self, detail: Optional[str] = None, user_message: Optional[str] = None, field: Optional[str] = None):
        self.field = field
        super().__init__(detail, user_message or detail)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["field"] = self.field
        return data


class TemplateNotFoundError(ValidationError):
    """Template inexistente ou não público."""

    code = "template_not_found"

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(
            f"Template {template_id} não encontrado ou não público",
            "Template de badge não encontrado.",
            field="templateId"
        )
