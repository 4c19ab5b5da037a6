"""
Presentation Module.

Responsibilities:
- Compositor interface (advanced mask / basic styling)
- OpenCV desktop preview and headless backends
"""

from .compositor import Compositor, NullCompositor, PreviewCompositor
