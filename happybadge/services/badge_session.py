"""
Badge Editor Session - HappyBadge

Editor interativo de um participante: carrega a foto, aplica zoom/arraste
com redesenho ao vivo e gera o PNG final.

Máquina de estados:
    NO_PHOTO → PHOTO_LOADED → ADJUSTING ⟲ → GENERATING → DONE | FAILED

- ADJUSTING volta para si mesmo a cada mudança de parâmetro (redesenho)
- GENERATING só é alcançado a partir de PHOTO_LOADED/ADJUSTING
- FAILED retorna imediatamente para ADJUSTING: foto e parâmetros são mantidos

Redesenhos são serializados por um lock: um evento que chega durante um
desenho espera e é processado depois dele.

Uso:
    session = BadgeEditorSession(template, frame)
    session.load_photo(upload_bytes, "image/jpeg")
    session.set_zoom(1.4)
    session.pan(-20, 15)
    result = session.generate()
"""

import threading
from typing import Callable, Optional

from PIL import Image

from happybadge.config import FitMode, SessionState, settings
from happybadge.exceptions import ValidationError
from happybadge.schemas import BadgeTemplate, BadgeResult, CompositionParameters
from happybadge.services.badge_renderer import BadgeRenderer, badge_renderer
from happybadge.services.geometry import Placement, compute_fit
from happybadge.services.image_loader import ImageLoader, image_loader


# Transições permitidas
TRANSITIONS = {
    SessionState.NO_PHOTO: {SessionState.PHOTO_LOADED},
    SessionState.PHOTO_LOADED: {SessionState.PHOTO_LOADED, SessionState.ADJUSTING, SessionState.GENERATING},
    SessionState.ADJUSTING: {SessionState.PHOTO_LOADED, SessionState.ADJUSTING, SessionState.GENERATING},
    SessionState.GENERATING: {SessionState.DONE, SessionState.FAILED},
    SessionState.FAILED: {SessionState.ADJUSTING},
    SessionState.DONE: {SessionState.PHOTO_LOADED, SessionState.ADJUSTING},
}


class BadgeEditorSession:
    """
    Sessão de edição (estado local, não persistido).

    Args:
        template: Template do evento
        frame: Frame já decodificado (RGBA)
        renderer: BadgeRenderer (padrão: singleton)
        loader: ImageLoader (padrão: singleton)
        on_redraw: Callback chamado com o canvas a cada redesenho
    """

    def __init__(
        self,
        template: BadgeTemplate,
        frame: Image.Image,
        renderer: Optional[BadgeRenderer] = None,
        loader: Optional[ImageLoader] = None,
        on_redraw: Optional[Callable[[Image.Image], None]] = None
    ):
        self.template = template
        self.frame = frame
        self.renderer = renderer or badge_renderer
        self.loader = loader or image_loader
        self.on_redraw = on_redraw

        self.state = SessionState.NO_PHOTO
        self.photo: Optional[Image.Image] = None
        self.placement: Optional[Placement] = None
        self.cover_scale: Optional[float] = None
        self.canvas: Optional[Image.Image] = None
        self.result: Optional[BadgeResult] = None
        self.last_error: Optional[Exception] = None
        self.history: list[SessionState] = [self.state]

        self._draw_lock = threading.Lock()

        canvas_w, canvas_h = template.canvas_size(frame.width, frame.height)
        _, _, self.region_width, self.region_height = self.renderer.photo_region(
            template, canvas_w, canvas_h
        )

    # ==========================================================================
    # Estado
    # ==========================================================================

    def _transition(self, new_state: SessionState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Transição inválida: {self.state.value} → {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def _require_photo(self) -> None:
        if self.photo is None or self.placement is None:
            raise ValidationError(
                "Nenhuma foto carregada",
                "Escolha uma foto primeiro.",
                field="photo"
            )

    @property
    def parameters(self) -> Optional[CompositionParameters]:
        """Parâmetros atuais (para enviar ao POST /render-badge)."""
        if self.placement is None:
            return None
        return CompositionParameters(
            scale=self.placement.scale,
            offset_x=self.placement.offset_x,
            offset_y=self.placement.offset_y
        )

    @property
    def zoom(self) -> Optional[float]:
        """Zoom relativo ao encaixe cover."""
        if self.placement is None or not self.cover_scale:
            return None
        return self.placement.scale / self.cover_scale

    # ==========================================================================
    # Eventos do usuário
    # ==========================================================================

    def load_photo(self, data: bytes, mime: Optional[str] = None) -> Placement:
        """
        Carrega (ou troca) a foto e reinicia o posicionamento em cover.

        Em caso de erro, a foto anterior (se houver) é mantida.
        """
        photo = self.loader.load_from_bytes(data, mime, source="photo")
        placement = compute_fit(
            photo.width, photo.height,
            self.region_width, self.region_height,
            FitMode.COVER
        )

        self.photo = photo
        self.placement = placement
        self.cover_scale = placement.scale
        self.result = None
        self._transition(SessionState.PHOTO_LOADED)

        print(f"[SESSION] Foto carregada: {photo.width}x{photo.height}px, scale={placement.scale:.3f}")
        self.preview()
        return placement

    def set_zoom(self, zoom: float) -> Placement:
        """
        Ajusta o zoom (relativo ao cover), mantendo o centro da foto.

        Limitado a [ZOOM_MIN, ZOOM_MAX].
        """
        self._require_photo()
        zoom = min(max(zoom, settings.ZOOM_MIN), settings.ZOOM_MAX)
        scale = self.cover_scale * zoom

        old_w, old_h = self.placement.size
        center_x = self.placement.offset_x + old_w / 2
        center_y = self.placement.offset_y + old_h / 2
        new_w = self.photo.width * scale
        new_h = self.photo.height * scale

        return self._adjust(scale, center_x - new_w / 2, center_y - new_h / 2)

    def pan(self, dx: float, dy: float) -> Placement:
        """Arrasta a foto (delta em px do canvas)."""
        self._require_photo()
        return self._adjust(
            self.placement.scale,
            self.placement.offset_x + dx,
            self.placement.offset_y + dy
        )

    def set_position(self, offset_x: float, offset_y: float) -> Placement:
        """Define a posição absoluta do canto superior esquerdo."""
        self._require_photo()
        return self._adjust(self.placement.scale, offset_x, offset_y)

    def reset(self) -> Placement:
        """Volta ao encaixe cover centralizado."""
        self._require_photo()
        placement = compute_fit(
            self.photo.width, self.photo.height,
            self.region_width, self.region_height,
            FitMode.COVER
        )
        return self._adjust(placement.scale, placement.offset_x, placement.offset_y)

    def _adjust(self, scale: float, offset_x: float, offset_y: float) -> Placement:
        # Validação + clamp (mínimo de 10% visível)
        self.placement = compute_fit(
            self.photo.width, self.photo.height,
            self.region_width, self.region_height,
            FitMode.MANUAL,
            scale=scale, offset_x=offset_x, offset_y=offset_y
        )
        self.result = None
        self._transition(SessionState.ADJUSTING)
        self.preview()
        return self.placement

    # ==========================================================================
    # Desenho
    # ==========================================================================

    def preview(self) -> Image.Image:
        """Redesenho ao vivo do canvas (serializado)."""
        with self._draw_lock:
            canvas = self.renderer.render_preview(self.template, self.frame, self.photo, self.placement)
            self.canvas = canvas

        if self.on_redraw:
            self.on_redraw(canvas)
        return canvas

    def generate(self, identifier: Optional[str] = None) -> BadgeResult:
        """
        Gera o PNG final com os parâmetros atuais.

        Em DONE (nada mudou desde a última geração) devolve o mesmo resultado.
        Chamadas concorrentes esperam a geração em andamento.

        Raises:
            ValidationError: Sem foto carregada
            Exception: Qualquer falha na composição; a sessão volta a ADJUSTING
        """
        with self._draw_lock:
            if self.state == SessionState.DONE and self.result is not None:
                return self.result

            self._require_photo()
            self._transition(SessionState.GENERATING)

            try:
                result = self.renderer.render(
                    self.template,
                    self.frame,
                    self.photo,
                    params=self.parameters,
                    identifier=identifier
                )
            except Exception as e:
                self.last_error = e
                self._transition(SessionState.FAILED)
                print(f"[SESSION] ❌ Geração falhou ({getattr(e, 'code', type(e).__name__)}): {e}")
                # Nunca perde a foto nem os parâmetros
                self._transition(SessionState.ADJUSTING)
                raise

            self.result = result
            self.last_error = None
            self._transition(SessionState.DONE)

        print(f"[SESSION] ✓ Badge gerado: {result.filename}")
        return result

    @classmethod
    async def open(
        cls,
        template: BadgeTemplate,
        loader: Optional[ImageLoader] = None,
        **kwargs
    ) -> "BadgeEditorSession":
        """Baixa o frame do template e abre a sessão."""
        loader = loader or image_loader
        frame = await loader.load_from_url(template.frame_image_url, source="frame")
        return cls(template, frame, loader=loader, **kwargs)
