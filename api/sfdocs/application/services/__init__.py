"""
Servicios de aplicacion.
"""
from .template_demo import DEMO_CONTEXTS, render_demo

__all__ = ["DEMO_CONTEXTS", "render_demo"]
