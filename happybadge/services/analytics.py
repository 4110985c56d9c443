"""
HappyBadge - Analytics Service
Registro best-effort das gerações de badge na tabela event_badge_generations.

IMPORTANTE: Este serviço é NÃO-BLOQUEANTE. Uma falha ao registrar nunca
falha a geração do badge; ela é apenas logada.
"""

from typing import Callable, Optional

from happybadge.config import settings
from happybadge.database import insert_badge_generation
from happybadge.schemas import GenerationEvent


class AnalyticsService:
    """
    Reporter de eventos de geração.

    Args:
        insert: Função de persistência (template_id, metadata) -> id.
                Padrão: insert_badge_generation (Supabase).
        enabled: Liga/desliga o envio (padrão: settings.ANALYTICS_ENABLED)
    """

    def __init__(
        self,
        insert: Optional[Callable[[str, dict], Optional[str]]] = None,
        enabled: Optional[bool] = None
    ):
        self._insert = insert or insert_badge_generation
        self.enabled = settings.ANALYTICS_ENABLED if enabled is None else enabled
        self.failures = 0

    def record(self, event: GenerationEvent) -> bool:
        """
        Registra o evento.

        Returns:
            True se registrado, False se desabilitado ou se falhou
        """
        if not self.enabled:
            return False

        try:
            record_id = self._insert(event.template_id, event.metadata())
            print(f"[ANALYTICS] ✓ Geração registrada: template={event.template_id} "
                  f"success={event.success} id={record_id}")
            return True
        except Exception as e:
            self.failures += 1
            print(f"[ANALYTICS] ⚠️ Falha ao registrar geração (ignorada): {e}")
            return False

    def record_generation(self, template_id: str, success: bool, error: Optional[str] = None) -> bool:
        """Atalho para record(GenerationEvent(...))."""
        return self.record(GenerationEvent(template_id=template_id, success=success, error=error))
