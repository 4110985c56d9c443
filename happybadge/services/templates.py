"""
HappyBadge - Template Service
Resolve o template público usado na geração do badge.
"""

from happybadge.database import get_public_template
from happybadge.exceptions import TemplateNotFoundError, ValidationError
from happybadge.schemas import BadgeTemplate


class TemplateService:
    """Leitura de templates públicos no Supabase."""

    def get_template(self, template_id: str) -> BadgeTemplate:
        """
        Busca o template e valida o registro.

        Raises:
            ValidationError: template_id vazio
            TemplateNotFoundError: inexistente ou não público
        """
        if not template_id or not template_id.strip():
            raise ValidationError(
                "templateId ausente",
                "Template de badge não informado.",
                field="templateId"
            )

        record = get_public_template(template_id.strip())
        if not record:
            raise TemplateNotFoundError(template_id)

        if not record.get("frame_image_url"):
            print(f"[TEMPLATES] ⚠️ Template {template_id} sem frame_image_url")
            raise TemplateNotFoundError(template_id)

        return BadgeTemplate.from_record(record)
