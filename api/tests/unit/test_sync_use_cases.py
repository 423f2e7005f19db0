"""
Tests unitarios para SyncUseCases.

Verifican el patron asincrono con jobs en memoria y el proceso completo
(parseo -> cache -> Notion) con un Notion falso y SQLite en memoria.
"""
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError

from sfdocs.application.dto.sync_dto import SyncJobRequestDTO
from sfdocs.application.use_cases.sync_use_cases import SyncUseCases, _JobState, parse_source
from sfdocs.domain.entities.metadata import EntityKind
from sfdocs.infrastructure.repositories.metadata_repository import MetadataRepository

NS = 'xmlns="http://soap.sforce.com/2006/04/metadata"'


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f'<?xml version="1.0" encoding="UTF-8"?>\n{content}', encoding="utf-8")


def _object_tree(root: Path, *names: str) -> Path:
    objects = root / "objects"
    for name in names:
        _write(objects / name / f"{name}.object-meta.xml", f"<CustomObject {NS}><label>{name}</label></CustomObject>")
        _write(
            objects / name / "fields" / "Code__c.field-meta.xml",
            f"<CustomField {NS}><fullName>Code__c</fullName><label>Code</label><type>Text</type></CustomField>",
        )
    return objects


class TestSyncJobs:
    """Jobs en memoria: start_sync, get_job_status y _run_job."""

    @pytest.fixture
    def use_cases(self, session_factory, fake_notion):
        # Limpiar jobs de tests anteriores
        SyncUseCases._jobs = {}
        return SyncUseCases(session_factory=session_factory, client_factory=lambda: fake_notion)

    @pytest.fixture
    def dto(self):
        return SyncJobRequestDTO(kind=EntityKind.OBJECT, path="/tmp/objects")

    def _job(self, job_id: str, status: str = "running") -> _JobState:
        now = datetime.now(timezone.utc)
        return _JobState(
            job_id=job_id,
            kind=EntityKind.OBJECT,
            status=status,
            progress=0,
            message="Iniciando...",
            created_at=now,
            updated_at=now,
        )

    @pytest.mark.asyncio
    async def test_start_sync_returns_job_response(self, use_cases, dto):
        with patch.object(use_cases, "_run_job", new_callable=AsyncMock):
            response = await use_cases.start_sync(dto)

        assert len(response.job_id) == 36  # UUID
        assert response.kind == EntityKind.OBJECT
        assert response.status == "running"
        assert response.progress == 0
        assert "Iniciando" in response.message
        assert response.job_id in SyncUseCases._jobs

    @pytest.mark.asyncio
    async def test_start_sync_launches_background_task(self, use_cases, dto):
        with patch("asyncio.create_task") as mock_create_task:
            with patch.object(use_cases, "_run_job", new_callable=AsyncMock):
                await use_cases.start_sync(dto)

        mock_create_task.assert_called_once()

    @pytest.mark.asyncio
    async def test_get_job_status_raises_keyerror_for_unknown_job(self, use_cases):
        with pytest.raises(KeyError, match="job_not_found"):
            await use_cases.get_job_status("nonexistent-job")

    @pytest.mark.asyncio
    async def test_get_job_status_returns_current_state(self, use_cases):
        SyncUseCases._jobs["job-1"] = self._job("job-1")

        status = await use_cases.get_job_status("job-1")

        assert status.status == "running"
        assert status.results == []

    @pytest.mark.asyncio
    async def test_run_job_completed(self, use_cases, dto):
        SyncUseCases._jobs["job-ok"] = self._job("job-ok")
        result = {"success": True, "message": "1 entidades sincronizadas", "results": [{"api_name": "Account"}]}

        with patch.object(use_cases, "execute_sync_process", AsyncMock(return_value=result)) as mock_exec:
            await use_cases._run_job(job_id="job-ok", dto=dto)

        job = SyncUseCases._jobs["job-ok"]
        assert job.status == "completed"
        assert job.progress == 100
        assert job.results == [{"api_name": "Account"}]
        assert job.completed_at is not None
        assert mock_exec.call_args.kwargs["progress_callback"] is not None

    @pytest.mark.asyncio
    async def test_run_job_failed_when_every_entity_failed(self, use_cases, dto):
        SyncUseCases._jobs["job-ko"] = self._job("job-ko")
        result = {"success": False, "message": "0/1 entidades sincronizadas, 1 con error", "results": []}

        with patch.object(use_cases, "execute_sync_process", AsyncMock(return_value=result)):
            await use_cases._run_job(job_id="job-ko", dto=dto)

        job = SyncUseCases._jobs["job-ko"]
        assert job.status == "failed"
        assert job.error == result["message"]

    @pytest.mark.asyncio
    async def test_run_job_unexpected_exception(self, use_cases, dto):
        SyncUseCases._jobs["job-boom"] = self._job("job-boom")

        with patch.object(use_cases, "execute_sync_process", AsyncMock(side_effect=RuntimeError("boom"))):
            await use_cases._run_job(job_id="job-boom", dto=dto)

        job = SyncUseCases._jobs["job-boom"]
        assert job.status == "failed"
        assert job.error == "boom"
        assert job.message == "Error inesperado en job"


class TestExecuteSyncProcess:
    """Proceso completo contra Notion falso y cache en memoria."""

    @pytest.fixture
    def use_cases(self, session_factory, fake_notion):
        return SyncUseCases(session_factory=session_factory, client_factory=lambda: fake_notion)

    @pytest.mark.asyncio
    async def test_parses_caches_and_syncs(self, use_cases, session_factory, fake_notion, tmp_path):
        objects = _object_tree(tmp_path, "Account", "Contact")
        progress = AsyncMock()

        result = await use_cases.execute_sync_process(EntityKind.OBJECT, str(objects), progress_callback=progress)

        assert result["success"] is True
        assert result["message"] == "2 entidades sincronizadas"
        assert [r["api_name"] for r in result["results"]] == ["Account", "Contact"]
        assert result["results"][0]["tables"]["fields"]["created"] == 1
        assert progress.await_count >= 3
        # un solo contenedor para todo el lote
        workspace_pages = [p for p in fake_notion.pages.values() if p["parent"].get("type") == "workspace"]
        assert len(workspace_pages) == 1

        async with session_factory() as db:
            assert await MetadataRepository(db).list_objects() == ["Account", "Contact"]

    @pytest.mark.asyncio
    async def test_skip_cache_does_not_write_cache(self, use_cases, session_factory, tmp_path):
        objects = _object_tree(tmp_path, "Account")

        await use_cases.execute_sync_process(EntityKind.OBJECT, str(objects), skip_cache=True)

        async with session_factory() as db:
            assert await MetadataRepository(db).list_objects() == []

    @pytest.mark.asyncio
    async def test_from_cache_reads_selected_names(self, use_cases, tmp_path):
        objects = _object_tree(tmp_path, "Account", "Contact")
        entities, _ = parse_source(EntityKind.OBJECT, str(objects))
        await use_cases.save_to_cache(entities)

        result = await use_cases.execute_sync_process(
            EntityKind.OBJECT, from_cache=True, names=["Contact", "Missing"]
        )

        assert [r["api_name"] for r in result["results"]] == ["Contact"]
        assert result["success"] is True

    @pytest.mark.asyncio
    async def test_parse_error_is_isolated(self, use_cases, tmp_path):
        objects = _object_tree(tmp_path, "Account")
        _write(objects / "Broken" / "fields" / "X__c.field-meta.xml", "<CustomField>")

        result = await use_cases.execute_sync_process(EntityKind.OBJECT, str(objects))

        assert result["success"] is True
        assert "1 con error" in result["message"]
        by_name = {r["api_name"]: r for r in result["results"]}
        assert by_name["Broken"]["ok"] is False
        assert by_name["Account"]["ok"] is True

    @pytest.mark.asyncio
    async def test_cache_error_does_not_stop_sync(self, use_cases, tmp_path):
        objects = _object_tree(tmp_path, "Account")

        with patch.object(use_cases, "save_to_cache", AsyncMock(side_effect=RuntimeError("db down"))):
            result = await use_cases.execute_sync_process(EntityKind.OBJECT, str(objects))

        assert result["success"] is True

    @pytest.mark.asyncio
    async def test_nothing_found(self, use_cases, fake_notion, tmp_path):
        result = await use_cases.execute_sync_process(EntityKind.FLOW, str(tmp_path))

        assert result == {"success": True, "message": "No se encontraron flows para sincronizar", "results": []}
        assert fake_notion.calls == []

    @pytest.mark.asyncio
    async def test_all_entities_failed(self, use_cases, tmp_path):
        _write(tmp_path / "Bad.flow-meta.xml", "<Flow>")

        result = await use_cases.execute_sync_process(EntityKind.FLOW, str(tmp_path))

        assert result["success"] is False
        assert result["results"][0]["api_name"] == "Bad.flow-meta.xml"


def test_request_requires_path_unless_from_cache():
    with pytest.raises(ValidationError):
        SyncJobRequestDTO(kind="objects")

    dto = SyncJobRequestDTO(kind="profiles", from_cache=True, names=["Admin"])
    assert dto.kind == EntityKind.PROFILE
