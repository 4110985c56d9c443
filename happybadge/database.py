"""
Database helper usando Supabase Client.
Funções minimalistas para ler templates públicos e registrar gerações.

IMPORTANTE:
- O CRUD de eventos/templates vive no front-end (Supabase + RLS)
- Este serviço apenas LÊ templates públicos e INSERE eventos de analytics
- Funções sync (def, não async)
"""

from typing import Optional, Dict, Any
from supabase import Client, create_client

from happybadge.config import settings


def get_supabase_client() -> Client:
    """
    Retorna Supabase Client configurado.

    IMPORTANTE: Cria cliente novo a cada chamada (sem singleton/cache).
    Isso garante que sempre usa a API key atual do .env.

    Raises:
        ValueError: Se SUPABASE_URL ou SUPABASE_KEY não configurados
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
        raise ValueError(
            "SUPABASE_URL e SUPABASE_KEY são obrigatórios. "
            "Verifique arquivo .env"
        )

    return create_client(
        supabase_url=settings.SUPABASE_URL,
        supabase_key=settings.SUPABASE_KEY
    )


# =============================================================================
# Templates
# =============================================================================

def get_public_template(template_id: str) -> Optional[Dict[str, Any]]:
    """
    Busca template público por ID.

    Args:
        template_id: UUID do template

    Returns:
        Dict com a linha de event_badge_templates ou None se não
        encontrado / não público

    Raises:
        Exception: Se query falhar por erro de conexão/DB
    """
    try:
        client = get_supabase_client()

        response = client.table(settings.SUPABASE_TEMPLATES_TABLE)\
            .select("*")\
            .eq("id", template_id)\
            .eq("is_public", True)\
            .limit(1)\
            .execute()

        if response.data and len(response.data) > 0:
            return response.data[0]

        return None

    except Exception as e:
        print(f"[DATABASE] ❌ Erro ao buscar template {template_id}: {str(e)}")
        raise


# =============================================================================
# Analytics
# =============================================================================

def insert_badge_generation(template_id: str, metadata: Dict[str, Any]) -> Optional[str]:
    """
    Registra uma geração de badge.

    Args:
        template_id: UUID do template usado
        metadata: {"success": bool, "error": str opcional}

    Returns:
        ID do registro criado ou None

    Raises:
        Exception: Se falha ao inserir no banco
    """
    client = get_supabase_client()

    response = client.table(settings.SUPABASE_GENERATIONS_TABLE).insert({
        "template_id": template_id,
        "metadata": metadata
    }).execute()

    if response.data and len(response.data) > 0:
        return response.data[0].get("id")

    return None
