"""Renderer dispatch for event history and pending-change lists."""

from project_governance.rendering.renderers import (
    GenericRenderer,
    RenderedEvent,
    RendererRegistry,
    RenderStrategy,
    build_default_renderers,
)

__all__ = [
    "GenericRenderer",
    "RenderStrategy",
    "RenderedEvent",
    "RendererRegistry",
    "build_default_renderers",
]
