"""
Endpoints para sincronizar metadata de Salesforce con Notion.

El sync corre como job en background; el cliente hace polling del estado.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from sfdocs.application.dto.sync_dto import (
    SyncJobRequestDTO,
    SyncJobResponseDTO,
    SyncJobStatusDTO,
)
from sfdocs.application.use_cases.sync_use_cases import SyncUseCases
from sfdocs.api.v1.dependencies.use_case_deps import get_sync_use_cases


router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post(
    "/jobs",
    response_model=SyncJobResponseDTO,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Iniciar sincronizacion de documentacion"
)
async def start_sync_job(
    dto: SyncJobRequestDTO,
    use_cases: SyncUseCases = Depends(get_sync_use_cases),
) -> SyncJobResponseDTO:
    """
    Inicia un job asíncrono que parsea la metadata (o la lee del cache),
    la guarda en el cache local y la proyecta en Notion.
    """
    logger.info(f"Iniciando job de sync: kind={dto.kind.value} path={dto.path} from_cache={dto.from_cache}")
    return await use_cases.start_sync(dto)


@router.get(
    "/jobs/{job_id}",
    response_model=SyncJobStatusDTO,
    summary="Obtener estado de un job de sync (polling)"
)
async def get_sync_job_status(
    job_id: str,
    use_cases: SyncUseCases = Depends(get_sync_use_cases),
) -> SyncJobStatusDTO:
    """
    Retorna el estado actual del job y, al terminar, el resultado por entidad.
    """
    try:
        return await use_cases.get_job_status(job_id)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job no encontrado")
