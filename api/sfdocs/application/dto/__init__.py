"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sync_dto import (
    SyncJobRequestDTO,
    SyncJobResponseDTO,
    SyncJobStatusDTO,
    TemplateInfoDTO,
)

__all__ = [
    "SyncJobRequestDTO",
    "SyncJobResponseDTO",
    "SyncJobStatusDTO",
    "TemplateInfoDTO",
]
