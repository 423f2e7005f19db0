"""
Casos de uso para sincronizar metadata de Salesforce con Notion.

Patron asincrono:
- El endpoint inicia el job en background y retorna inmediatamente un job_id.
- El cliente hace polling al endpoint de status hasta que el job termine.
- Un sync grande (cientos de campos, miles de permisos) tarda minutos.

El CLI usa `execute_sync_process` directamente, sin job.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from sfdocs.application.dto.sync_dto import (
    SyncJobRequestDTO,
    SyncJobResponseDTO,
    SyncJobStatusDTO,
)
from sfdocs.core.config import settings
from sfdocs.domain.entities.metadata import EntityKind, ParsedEntity
from sfdocs.infrastructure.database.session import AsyncSessionLocal
from sfdocs.infrastructure.notion_sync.notion_client import NotionClient
from sfdocs.infrastructure.notion_sync.sync_service import (
    EntitySyncResult,
    NotionDocumentationSync,
)
from sfdocs.infrastructure.notion_sync.template_registry import (
    TemplateRegistry,
    build_default_registry,
)
from sfdocs.infrastructure.repositories.metadata_repository import MetadataRepository
from sfdocs.infrastructure.salesforce.flow_parser import find_flow_files, parse_flow
from sfdocs.infrastructure.salesforce.object_parser import find_object_dirs, parse_object
from sfdocs.infrastructure.salesforce.profile_parser import find_profile_files, parse_profile
from sfdocs.shared.exceptions.domain import MetadataParseError

ProgressCallback = Callable[[str, int], Awaitable[None]]


@dataclass
class _JobState:
    """Estado interno de un job de sincronizacion."""

    job_id: str
    kind: EntityKind
    status: str  # running, completed, failed
    progress: int
    message: str
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    results: List[Dict[str, Any]] = field(default_factory=list)


def parse_source(kind: EntityKind, path: str) -> Tuple[List[ParsedEntity], List[EntitySyncResult]]:
    """
    Parsea todas las entidades de `kind` bajo `path`.

    Un XML inválido no detiene el resto: la entidad se reporta como fallida.
    """
    if kind == EntityKind.OBJECT:
        sources: Sequence[Path] = find_object_dirs(path)
        parse = parse_object
    elif kind == EntityKind.PROFILE:
        sources = find_profile_files(path)
        parse = lambda p: parse_profile(p, settings.PROFILE_CHUNK_SIZE)  # noqa: E731
    else:
        sources = find_flow_files(path)
        parse = parse_flow

    entities: List[ParsedEntity] = []
    failures: List[EntitySyncResult] = []
    for source in sources:
        try:
            entities.append(parse(source))
        except MetadataParseError as e:
            logger.warning(f"[{kind.value}] Se omite '{source}': {e.message}")
            failures.append(EntitySyncResult(kind, Path(source).name, error=e.message))
    return entities, failures


class SyncUseCases:
    """
    Orquestador de jobs de sincronizacion de documentacion.

    Los jobs se guardan en memoria (dict). Es suficiente para un servicio
    de una sola instancia y no introduce infraestructura extra.
    """

    _jobs: Dict[str, _JobState] = {}
    _jobs_lock = asyncio.Lock()

    def __init__(
        self,
        session_factory: Callable[[], Any] = AsyncSessionLocal,
        client_factory: Optional[Callable[[], NotionClient]] = None,
        registry: Optional[TemplateRegistry] = None,
    ) -> None:
        self._session_factory = session_factory
        self._client_factory = client_factory or (lambda: NotionClient.from_settings(settings))
        self._registry = registry

    @property
    def registry(self) -> TemplateRegistry:
        if self._registry is None:
            self._registry = build_default_registry()
        return self._registry

    async def start_sync(self, dto: SyncJobRequestDTO) -> SyncJobResponseDTO:
        """
        Inicia un job de sincronizacion en background.

        Returns:
            SyncJobResponseDTO: Respuesta inmediata con job_id para polling
        """
        job_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)

        job = _JobState(
            job_id=job_id,
            kind=dto.kind,
            status="running",
            progress=0,
            message=f"Iniciando sincronizacion de {dto.kind.value}...",
            created_at=now,
            updated_at=now,
        )

        async with self._jobs_lock:
            self._jobs[job_id] = job

        # Ejecutar en background sin bloquear la request
        asyncio.create_task(self._run_job(job_id=job_id, dto=dto))

        return SyncJobResponseDTO(
            job_id=job_id,
            kind=job.kind,
            status=job.status,
            progress=job.progress,
            message=job.message,
            created_at=job.created_at,
        )

    async def get_job_status(self, job_id: str) -> SyncJobStatusDTO:
        """
        Obtiene el estado actual de un job (para polling).

        Raises:
            KeyError: Si el job no existe
        """
        async with self._jobs_lock:
            job = self._jobs.get(job_id)

        if job is None:
            raise KeyError("job_not_found")

        return SyncJobStatusDTO(
            job_id=job.job_id,
            kind=job.kind,
            status=job.status,
            progress=job.progress,
            message=job.message,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
            error=job.error,
            results=list(job.results),
        )

    async def _update_job(self, job_id: str, **changes: Any) -> None:
        """Actualiza campos del job bajo el lock."""
        async with self._jobs_lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            for k, v in changes.items():
                setattr(job, k, v)
            job.updated_at = datetime.now(timezone.utc)

    async def load_entities(
        self,
        kind: EntityKind,
        path: Optional[str],
        *,
        from_cache: bool = False,
        names: Optional[Sequence[str]] = None,
    ) -> Tuple[List[ParsedEntity], List[EntitySyncResult]]:
        """Entidades a sincronizar: parseadas desde `path` o leídas del cache."""
        if not from_cache:
            return await asyncio.to_thread(parse_source, kind, path)

        entities: List[ParsedEntity] = []
        async with self._session_factory() as db:
            repo = MetadataRepository(db)
            if kind == EntityKind.OBJECT:
                list_names, load = repo.list_objects, repo.load_object
            elif kind == EntityKind.PROFILE:
                list_names = repo.list_profiles
                load = lambda n: repo.load_profile(n, settings.PROFILE_CHUNK_SIZE)  # noqa: E731
            else:
                list_names, load = repo.list_flows, repo.load_flow

            for api_name in names or await list_names():
                entity = await load(api_name)
                if entity is None:
                    logger.warning(f"[{kind.value}] '{api_name}' no está en el cache")
                    continue
                entities.append(entity)
        return entities, []

    async def save_to_cache(self, entities: Sequence[ParsedEntity]) -> int:
        """Guarda lo parseado en el cache local. Retorna cuántas entidades se guardaron."""
        async with self._session_factory() as db:
            repo = MetadataRepository(db)
            for entity in entities:
                if entity.kind == EntityKind.OBJECT:
                    await repo.save_object(entity)
                elif entity.kind == EntityKind.PROFILE:
                    await repo.save_profile(entity)
                else:
                    await repo.save_flow(entity)
            await db.commit()
        return len(entities)

    async def execute_sync_process(
        self,
        kind: EntityKind,
        path: Optional[str] = None,
        *,
        skip_cache: bool = False,
        from_cache: bool = False,
        names: Optional[Sequence[str]] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Dict[str, Any]:
        """
        Ejecuta la sincronizacion de forma directa.

        Returns:
            Dict con success, message y results (uno por entidad)
        """
        result: Dict[str, Any] = {"success": False, "message": "", "results": []}

        async def report(msg: str, prog: int) -> None:
            if progress_callback:
                await progress_callback(msg, prog)

        await report("Cargando metadata...", 5)
        entities, failures = await self.load_entities(
            kind, path, from_cache=from_cache, names=names
        )
        logger.info(
            f"[{kind.value}] {len(entities)} entidades cargadas, {len(failures)} con error de parseo"
        )

        if entities and not (skip_cache or from_cache):
            await report("Guardando en cache local...", 20)
            try:
                saved = await self.save_to_cache(entities)
                logger.info(f"[{kind.value}] {saved} entidades guardadas en cache")
            except Exception as e:
                # el cache es auxiliar; el sync a Notion sigue
                logger.error(f"[{kind.value}] Error guardando cache: {e}")

        results: List[EntitySyncResult] = list(failures)
        if entities:
            async with self._client_factory() as client:
                sync = NotionDocumentationSync.from_settings(settings, client, self.registry)
                total = len(entities)
                for i, entity in enumerate(entities, start=1):
                    await report(
                        f"Sincronizando {entity.api_name} ({i}/{total})...",
                        25 + int(70 * (i - 1) / total),
                    )
                    results.extend(await sync.sync_many([entity]))

        ok = sum(1 for r in results if r.ok)
        failed = len(results) - ok
        result["results"] = [r.to_dict() for r in results]
        result["success"] = ok > 0 or not results
        if not results:
            result["message"] = f"No se encontraron {kind.value} para sincronizar"
        elif failed:
            result["message"] = f"{ok}/{len(results)} entidades sincronizadas, {failed} con error"
        else:
            result["message"] = f"{ok} entidades sincronizadas"
        logger.info(f"[{kind.value}] {result['message']}")
        return result

    async def _run_job(self, *, job_id: str, dto: SyncJobRequestDTO) -> None:
        """Ejecuta el job en background usando execute_sync_process."""
        try:
            async def job_callback(msg: str, prog: int) -> None:
                await self._update_job(job_id, message=msg, progress=prog)

            result = await self.execute_sync_process(
                dto.kind,
                dto.path,
                skip_cache=dto.skip_cache,
                from_cache=dto.from_cache,
                names=dto.names,
                progress_callback=job_callback,
            )

            if result["success"]:
                await self._update_job(
                    job_id,
                    status="completed",
                    progress=100,
                    message=result["message"],
                    results=result["results"],
                    completed_at=datetime.now(timezone.utc),
                )
            else:
                await self._update_job(
                    job_id,
                    status="failed",
                    progress=100,
                    message=result["message"],
                    error=result["message"],
                    results=result["results"],
                    completed_at=datetime.now(timezone.utc),
                )

        except Exception as e:
            logger.exception(f"[sync-job:{job_id}] Error wrapper: {e}")
            await self._update_job(
                job_id,
                status="failed",
                progress=100,
                message="Error inesperado en job",
                error=str(e),
                completed_at=datetime.now(timezone.utc),
            )
