"""
HappyBadge Compositor - FastAPI Main Application
Ponto de entrada da API e definição das rotas de geração de badges.
"""

from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, UploadFile, File, Form, Depends, Request, BackgroundTasks, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, HTMLResponse, Response
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

# Rate Limiting
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from happybadge.config import settings, APP_VERSION, FitMode, TemplateShape
from happybadge.exceptions import (
    BadgeError, ImageLoadError, MaskError, CompositionError,
    ValidationError, TemplateNotFoundError
)
from happybadge.schemas import BadgeTemplate, BadgeResult, CompositionParameters
from happybadge.services.image_loader import ImageLoader, image_loader
from happybadge.services.badge_renderer import BadgeRenderer, badge_renderer
from happybadge.services.templates import TemplateService
from happybadge.services.analytics import AnalyticsService


# =============================================================================
# Response Models
# =============================================================================

class TemplateResponse(BaseModel):
    """Metadados públicos de um template (para o editor do cliente)."""
    id: str
    shape: str
    frame_image_url: str
    target_width: Optional[int] = None
    target_height: Optional[int] = None
    circle_inset_ratio: Optional[float] = None
    event_id: Optional[str] = None
    name: Optional[str] = None


class HealthResponse(BaseModel):
    """Resposta do health check com status detalhado."""
    status: str
    version: str
    services: dict  # Status de cada serviço
    ready: bool
    configuration: dict
    warnings: Optional[list] = None


# =============================================================================
# Service Instances
# =============================================================================

template_service: Optional[TemplateService] = None
analytics_service: Optional[AnalyticsService] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gerencia o ciclo de vida da aplicação.

    Supabase é necessário para ler templates; sem ele a API sobe em modo
    degradado (health = "degraded") e /generate-badge responde 404/503.
    """
    global template_service, analytics_service

    # =========================================================================
    # STARTUP
    # =========================================================================
    print(f"[STARTUP] Iniciando HappyBadge Compositor v{APP_VERSION}...")

    template_service = TemplateService()
    analytics_service = AnalyticsService()

    for warning in settings.validate():
        print(f"[STARTUP] ⚠ {warning}")

    print(f"[STARTUP] ✓ Upload máximo: {settings.MAX_UPLOAD_SIZE_MB}MB, "
          f"recorte circular: {settings.CIRCLE_INSET_RATIO:.0%} do frame")
    print(f"[STARTUP] ✓ Analytics {'habilitado' if settings.ANALYTICS_ENABLED else 'DESABILITADO'}")
    print(f"[STARTUP] ✓ Servidor pronto em http://{settings.HOST}:{settings.PORT}")
    print("[STARTUP] ======================================")

    yield

    # =========================================================================
    # SHUTDOWN
    # =========================================================================
    print("[SHUTDOWN] ✓ Encerramento completo")


# =============================================================================
# App Initialization
# =============================================================================

app = FastAPI(
    title="HappyBadge Compositor",
    description="Geração de badges \"J'y serai\" a partir de um frame e da foto do participante",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Rate Limiting Configuration
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS para permitir requests do frontend Next.js
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


# =============================================================================
# Error Handling
# =============================================================================

def status_code_for(error: BadgeError) -> int:
    """Mapeia a taxonomia de erros para HTTP."""
    if isinstance(error, TemplateNotFoundError):
        return 404
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, ImageLoadError):
        if error.source == "frame":
            return 502
        if error.reason == "too_large":
            return 413
        if error.reason == "unsupported_format":
            return 415
        return 400
    if isinstance(error, MaskError):
        return 422
    if isinstance(error, CompositionError):
        return 500
    return 500


async def badge_error_handler(request: Request, exc: BadgeError) -> JSONResponse:
    """Resposta estruturada com mensagem específica por tipo de erro."""
    status_code = status_code_for(exc)
    print(f"[ERROR] {request.url.path} → {status_code} {exc.code}: {exc}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


app.add_exception_handler(BadgeError, badge_error_handler)


# =============================================================================
# Dependencies (substituíveis via app.dependency_overrides)
# =============================================================================

def get_template_service() -> TemplateService:
    return template_service or TemplateService()


def get_analytics_service() -> AnalyticsService:
    return analytics_service or AnalyticsService()


def get_image_loader() -> ImageLoader:
    return image_loader


def get_badge_renderer() -> BadgeRenderer:
    return badge_renderer


# =============================================================================
# Pipeline compartilhado pelas rotas de geração
# =============================================================================

async def generate_badge_bytes(
    template_id: Optional[str],
    user_image: Optional[UploadFile],
    templates: TemplateService,
    loader: ImageLoader,
    renderer: BadgeRenderer,
    analytics: AnalyticsService,
    background_tasks: BackgroundTasks,
    params: Optional[CompositionParameters] = None,
    mode: FitMode = FitMode.COVER
) -> BadgeResult:
    """
    Template → frame + foto (em paralelo) → composição → PNG.

    O evento de analytics é registrado em background no sucesso e
    de forma síncrona (best effort) na falha, antes de propagar o erro.
    """
    if not template_id:
        raise ValidationError("templateId ausente", "Template de badge não informado.", field="templateId")

    if user_image is None or (not user_image.filename and not user_image.size):
        raise ValidationError("userImage ausente", "Escolha uma foto primeiro.", field="userImage")

    try:
        template = await run_in_threadpool(templates.get_template, template_id)
    except BadgeError:
        raise
    except Exception as e:
        print(f"[GENERATE] ❌ Erro ao buscar template {template_id}: {e}")
        raise HTTPException(
            status_code=503,
            detail="Serviço de templates indisponível. Tente novamente."
        )

    try:
        content = await user_image.read()
        print(f"[GENERATE] Template {template_id}: foto '{user_image.filename}' "
              f"({len(content) / 1024:.1f}KB, {user_image.content_type})")

        frame, photo = await loader.load_pair(
            template.frame_image_url,
            content,
            user_image.content_type
        )

        result = await run_in_threadpool(
            renderer.render, template, frame, photo, params, mode
        )

    except BadgeError as e:
        await run_in_threadpool(analytics.record_generation, template_id, False, e.user_message)
        raise
    except Exception as e:
        print(f"[GENERATE] ❌ Erro inesperado para template {template_id}: {e}")
        await run_in_threadpool(analytics.record_generation, template_id, False, str(e))
        raise HTTPException(
            status_code=500,
            detail="Erro ao gerar badge"
        )

    background_tasks.add_task(analytics.record_generation, template_id, True)
    print(f"[GENERATE] ✓ {result.filename} ({result.width}x{result.height}px)")
    return result


def png_response(result: BadgeResult) -> Response:
    return Response(
        content=result.png,
        media_type="image/png",
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"'
        }
    )


# =============================================================================
# Routes
# =============================================================================

@app.get("/", response_class=HTMLResponse)
async def root():
    """Página inicial com informações da API."""
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <title>HappyBadge Compositor</title>
        <style>
            body {{ font-family: 'Helvetica Neue', sans-serif; max-width: 600px; margin: 100px auto; padding: 20px; }}
            h1 {{ font-weight: 300; letter-spacing: 4px; }}
            a {{ color: #000; }}
        </style>
    </head>
    <body>
        <h1>HAPPYBADGE</h1>
        <p>Compositor de badges v{APP_VERSION}</p>
        <p><a href="/docs">📖 Documentação Swagger</a></p>
        <p><a href="/health">💚 Health Check</a></p>
    </body>
    </html>
    """


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Verifica o status da API.

    - status: "healthy" se Supabase está configurado (templates disponíveis)
    - status: "degraded" caso contrário (nenhum template pode ser lido)
    """
    supabase_ok = bool(settings.SUPABASE_URL and settings.SUPABASE_KEY)

    services_status = {
        "compositor": "ok",
        "templates": "ok" if supabase_ok else "not_configured",
        "analytics": "ok" if (supabase_ok and settings.ANALYTICS_ENABLED) else "disabled"
    }

    configuration = {
        "supabase_configured": supabase_ok,
        "analytics_enabled": settings.ANALYTICS_ENABLED,
        "max_upload_size_mb": settings.MAX_UPLOAD_SIZE_MB,
        "circle_inset_ratio": settings.CIRCLE_INSET_RATIO,
        "frame_fetch_timeout": settings.FRAME_FETCH_TIMEOUT
    }

    warnings = settings.validate()

    return HealthResponse(
        status="healthy" if supabase_ok else "degraded",
        version=APP_VERSION,
        services=services_status,
        ready=supabase_ok,
        configuration=configuration,
        warnings=warnings if warnings else None
    )


@app.get("/templates/{template_id}", response_model=TemplateResponse)
def get_template_endpoint(
    template_id: str,
    templates: TemplateService = Depends(get_template_service)
):
    """
    Metadados de um template público.

    O editor do cliente usa estes dados para desenhar o frame e o
    recorte circular antes de chamar POST /render-badge.
    """
    try:
        template: BadgeTemplate = templates.get_template(template_id)
    except BadgeError:
        raise
    except Exception as e:
        print(f"[TEMPLATES] ❌ Erro ao buscar template {template_id}: {e}")
        raise HTTPException(
            status_code=503,
            detail="Serviço de templates indisponível. Tente novamente."
        )

    return TemplateResponse(
        id=template.id,
        shape=template.shape.value,
        frame_image_url=template.frame_image_url,
        target_width=template.target_width,
        target_height=template.target_height,
        circle_inset_ratio=settings.CIRCLE_INSET_RATIO if template.shape == TemplateShape.CIRCLE else None,
        event_id=template.event_id,
        name=template.name
    )


@app.post("/generate-badge")
@limiter.limit(settings.RATE_LIMIT_GENERATE)
async def generate_badge(
    request: Request,
    background_tasks: BackgroundTasks,
    user_image: Optional[UploadFile] = File(None, alias="userImage", description="Foto do participante (PNG/JPEG, máx. 5MB)"),
    template_id: Optional[str] = Form(None, alias="templateId", description="ID do template público"),
    templates: TemplateService = Depends(get_template_service),
    loader: ImageLoader = Depends(get_image_loader),
    renderer: BadgeRenderer = Depends(get_badge_renderer),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    """
    Gera o badge e retorna o PNG para download.

    Pipeline:
    1. Busca o template público (Supabase)
    2. Baixa o frame e decodifica a foto em paralelo
    3. Encaixe cover da foto (recorte circular se shape = circle)
    4. Frame por cima, PNG sem perdas
    5. Registra o evento de analytics (best effort)

    Stateless: sempre usa encaixe cover, sem parâmetros interativos.
    """
    result = await generate_badge_bytes(
        template_id, user_image,
        templates, loader, renderer, analytics, background_tasks
    )
    return png_response(result)


@app.post("/render-badge")
@limiter.limit(settings.RATE_LIMIT_GENERATE)
async def render_badge(
    request: Request,
    background_tasks: BackgroundTasks,
    user_image: Optional[UploadFile] = File(None, alias="userImage", description="Foto do participante (PNG/JPEG, máx. 5MB)"),
    template_id: Optional[str] = Form(None, alias="templateId", description="ID do template público"),
    scale: Optional[float] = Form(None, description="Escala escolhida no editor"),
    offset_x: Optional[float] = Form(None, alias="offsetX", description="X do canto superior esquerdo da foto"),
    offset_y: Optional[float] = Form(None, alias="offsetY", description="Y do canto superior esquerdo da foto"),
    mode: Optional[str] = Form(None, description="cover | contain (ignorado quando scale é enviado)"),
    templates: TemplateService = Depends(get_template_service),
    loader: ImageLoader = Depends(get_image_loader),
    renderer: BadgeRenderer = Depends(get_badge_renderer),
    analytics: AnalyticsService = Depends(get_analytics_service)
):
    """
    Gera o badge com o posicionamento ajustado no editor do cliente.

    Com `scale`, usa modo manual (offsets relativos à região da foto:
    canvas inteiro em square, quadrado do círculo em circle). Sem `scale`,
    usa `mode` (cover por padrão).
    """
    params = None
    if scale is not None:
        try:
            params = CompositionParameters(
                scale=scale,
                offset_x=offset_x,
                offset_y=offset_y
            )
        except PydanticValidationError as e:
            raise ValidationError(
                f"Parâmetros de posicionamento inválidos: {e.errors()[0]['msg']}",
                "Zoom ou posição da foto inválidos.",
                field="scale"
            )

    fit_mode = FitMode.COVER
    if params is None and mode:
        if mode not in (FitMode.COVER.value, FitMode.CONTAIN.value):
            raise ValidationError(
                f"Modo inválido: {mode}. Use cover ou contain",
                "Modo de encaixe inválido.",
                field="mode"
            )
        fit_mode = FitMode(mode)

    result = await generate_badge_bytes(
        template_id, user_image,
        templates, loader, renderer, analytics, background_tasks,
        params=params, mode=fit_mode
    )
    return png_response(result)


# =============================================================================
# Run with Uvicorn
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "happybadge.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
