"""
Tests del CLI de sincronización.
"""
import json
from unittest.mock import AsyncMock, patch

import pytest

from sfdocs import cli
from sfdocs.domain.entities.metadata import EntityKind


def test_sync_command_requires_path_without_cache() -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["objects"])
    assert exc.value.code == 2


def test_sync_command_dispatches_to_run_sync() -> None:
    with patch.object(cli, "run_sync", new=AsyncMock(return_value={})) as mock_run, patch.object(
        cli, "configure_logging"
    ):
        code = cli.main(["profiles", "force-app/main/default/profiles", "--skip-cache"])

    assert code == 0
    args, kwargs = mock_run.call_args
    assert args == (EntityKind.PROFILE, "force-app/main/default/profiles")
    assert kwargs == {"skip_cache": True, "from_cache": False, "names": None}


def test_from_cache_accepts_repeated_names() -> None:
    with patch.object(cli, "run_sync", new=AsyncMock(return_value={})) as mock_run, patch.object(
        cli, "configure_logging"
    ):
        code = cli.main(["flows", "--from-cache", "--name", "A_Flow", "--name", "B_Flow"])

    assert code == 0
    assert mock_run.call_args.kwargs["names"] == ["A_Flow", "B_Flow"]
    assert mock_run.call_args.args[1] is None


def test_templates_lists_registry(capsys) -> None:
    assert cli.main(["templates"]) == 0

    out = capsys.readouterr().out
    assert "objects   fields" in out
    assert "🔐 Object Permissions" in out


def test_template_demo_prints_json_lines(capsys) -> None:
    assert cli.main(["template-demo", "--kind", "flows"]) == 0

    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert {entry["template"] for entry in lines} == {"overview", "decisions", "recordUpdates"}
    assert all(entry["kind"] == "flows" for entry in lines)


def test_unknown_command_is_usage_error() -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["widgets"])
    assert exc.value.code == 2


@pytest.mark.asyncio
async def test_run_sync_always_closes_db() -> None:
    use_cases = AsyncMock()
    use_cases.execute_sync_process = AsyncMock(side_effect=RuntimeError("boom"))

    with patch.object(cli, "init_db", new=AsyncMock()) as mock_init, patch.object(
        cli, "close_db", new=AsyncMock()
    ) as mock_close:
        with pytest.raises(RuntimeError):
            await cli.run_sync(EntityKind.OBJECT, "objects", use_cases=use_cases)

    mock_init.assert_awaited_once()
    mock_close.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_sync_returns_process_result() -> None:
    result = {
        "success": True,
        "message": "1 entidades sincronizadas",
        "results": [
            {"kind": "objects", "api_name": "Account", "ok": True, "error": None, "page_id": "p1"},
            {"kind": "objects", "api_name": "Broken", "ok": False, "error": "XML inválido"},
        ],
    }
    use_cases = AsyncMock()
    use_cases.execute_sync_process = AsyncMock(return_value=result)

    with patch.object(cli, "init_db", new=AsyncMock()), patch.object(cli, "close_db", new=AsyncMock()):
        returned = await cli.run_sync(EntityKind.OBJECT, "objects", from_cache=False, use_cases=use_cases)

    assert returned is result
    kwargs = use_cases.execute_sync_process.call_args.kwargs
    assert kwargs["skip_cache"] is False
    assert callable(kwargs["progress_callback"])
