"""
HappyBadge - Schemas Module
Pydantic schemas for data validation.
"""

from happybadge.schemas.badge_schema import (
    BadgeTemplate,
    CompositionParameters,
    BadgeResult,
    GenerationEvent,
)

__all__ = [
    "BadgeTemplate",
    "CompositionParameters",
    "BadgeResult",
    "GenerationEvent",
]
