"""
DTOs para los jobs de sincronizacion de documentacion (Salesforce -> Notion).

El job se ejecuta en background; el cliente hace polling del estado.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from sfdocs.domain.entities.metadata import EntityKind


class SyncJobRequestDTO(BaseModel):
    """
    Request para iniciar un job.

    - path: archivo o directorio con metadata en formato source
    - from_cache: ignora `path` y lee las entidades del cache local
    - names: filtra por api_name (solo con from_cache)
    """
    kind: EntityKind
    path: Optional[str] = Field(None, description="Archivo o directorio de metadata")
    skip_cache: bool = Field(False, description="No guardar lo parseado en el cache local")
    from_cache: bool = Field(False, description="Leer entidades del cache en vez de parsear XML")
    names: Optional[List[str]] = Field(None, description="api_names a sincronizar desde el cache")

    @model_validator(mode="after")
    def path_required_unless_cache(self) -> "SyncJobRequestDTO":
        if not self.from_cache and not self.path:
            raise ValueError("path es obligatorio salvo con from_cache=true")
        return self


class SyncJobResponseDTO(BaseModel):
    """Respuesta inmediata al iniciar un job."""

    job_id: str
    kind: EntityKind
    status: str
    progress: int
    message: str
    created_at: datetime


class SyncJobStatusDTO(BaseModel):
    """Estado actual del job (polling)."""

    job_id: str
    kind: EntityKind
    status: str
    progress: int
    message: str
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    results: List[Dict[str, Any]] = Field(default_factory=list)


class TemplateInfoDTO(BaseModel):
    kind: EntityKind
    name: str
    has_page: bool
    table_title: Optional[str] = None
    columns: List[str] = Field(default_factory=list)
    key_columns: List[str] = Field(default_factory=list)
    required_context: List[str] = Field(default_factory=list)
