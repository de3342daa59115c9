from .options import RenderOptions
from .portal import DEFAULT_PORTALS, PortalLinkGenerator
from .renderer import GemtextRenderer, title_for_event
from .width import clamp_width

__all__ = [
    "DEFAULT_PORTALS",
    "GemtextRenderer",
    "PortalLinkGenerator",
    "RenderOptions",
    "clamp_width",
    "title_for_event",
]
