"""
Casos de uso de la aplicacion.
"""
from .sync_use_cases import SyncUseCases

__all__ = ["SyncUseCases"]
