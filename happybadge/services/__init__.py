"""
HappyBadge - Services Package
"""

from .image_loader import ImageLoader, image_loader
from .geometry import Placement, compute_fit, clamp_offsets
from .mask import apply_circular_mask, circle_mask
from .image_composer import ImageComposer, Layer, image_composer
from .badge_renderer import BadgeRenderer, badge_renderer
from .badge_session import BadgeEditorSession
from .templates import TemplateService
from .analytics import AnalyticsService

__all__ = [
    "ImageLoader",
    "image_loader",
    "Placement",
    "compute_fit",
    "clamp_offsets",
    "apply_circular_mask",
    "circle_mask",
    "ImageComposer",
    "Layer",
    "image_composer",
    "BadgeRenderer",
    "badge_renderer",
    "BadgeEditorSession",
    "TemplateService",
    "AnalyticsService"
]
