"""
Configuración de fixtures para pytest.
"""
import asyncio
import itertools
from typing import Any, AsyncGenerator, Callable, Dict, List, Mapping, Optional, Sequence
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from sfdocs.infrastructure.database import models  # noqa: F401  (registra modelos)
from sfdocs.infrastructure.database.session import Base
from sfdocs.infrastructure.notion_sync.notion_client import (
    RemoteRequestError,
    display_value,
    timeout_error,
)
from sfdocs.infrastructure.notion_sync.types import ParentRef
from sfdocs.shared.utils.retry import RetryPolicy


# URL de base de datos de prueba
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """
    Session factory sobre una base de datos en memoria (una por test).
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Sesión de base de datos para tests de repositorio."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Notion falso en memoria
# ---------------------------------------------------------------------------


def _as_response_property(value: Mapping[str, Any]) -> Dict[str, Any]:
    """Payload de escritura -> propiedad como la devuelve la API."""
    prop_type = next(iter(value))
    body = value[prop_type]
    if prop_type in ("title", "rich_text"):
        body = [
            {**item, "plain_text": (item.get("text") or {}).get("content", "")}
            for item in body or []
        ]
    return {"type": prop_type, prop_type: body}


class FakeNotionClient:
    """
    Implementa los métodos de NotionClient que usa el pipeline.

    - `fail`: método -> callable(args) que retorna una excepción a lanzar
      (o None para dejar pasar la llamada)
    - `calls`: (método, args) en orden
    """

    def __init__(self, search_results: Optional[List[Dict[str, Any]]] = None) -> None:
        self._ids = itertools.count(1)
        self.pages: Dict[str, Dict[str, Any]] = {}
        self.databases: Dict[str, Dict[str, Any]] = {}
        self.search_results = list(search_results or [])
        self.calls: List[tuple] = []
        self.fail: Dict[str, Callable[..., Optional[Exception]]] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    async def __aenter__(self) -> "FakeNotionClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    async def _enter(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # cede el loop para que las filas de una ventana se solapen
            await asyncio.sleep(0)
        finally:
            self.in_flight -= 1
        check = self.fail.get(method)
        if check is not None:
            error = check(*args)
            if error is not None:
                raise error

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)

    # -- API ------------------------------------------------------------

    async def search_pages(self, *, page_size: int = 1) -> List[Dict[str, Any]]:
        await self._enter("search_pages")
        return self.search_results[:page_size]

    async def query_database(
        self, database_id: str, *, filter: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        await self._enter("query_database", database_id, filter)
        rows = [
            p for p in self.pages.values()
            if p["parent"] == {"type": "database_id", "database_id": database_id}
        ]
        if filter:
            wanted = filter["rich_text"]["equals"]
            rows = [r for r in rows if display_value(r["properties"].get(filter["property"])) == wanted]
        return [{"id": r["id"], "properties": dict(r["properties"])} for r in rows]

    async def create_page(
        self,
        parent: ParentRef,
        properties: Mapping[str, Any],
        children: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> Dict[str, Any]:
        assert len(children or []) <= 100, "la API acepta hasta 100 bloques por request"
        await self._enter("create_page", parent, properties)
        page_id = self._next_id("page")
        self.pages[page_id] = {
            "id": page_id,
            "parent": parent.to_payload(),
            "properties": {k: _as_response_property(v) for k, v in properties.items()},
            "children": list(children or []),
        }
        return {"id": page_id, "url": f"https://notion.so/{page_id}"}

    async def append_block_children(
        self, block_id: str, children: Sequence[Mapping[str, Any]]
    ) -> Dict[str, Any]:
        assert len(children) <= 100, "la API acepta hasta 100 bloques por request"
        await self._enter("append_block_children", block_id, children)
        self.pages[block_id]["children"].extend(children)
        return {"results": list(children)}

    async def update_page(self, page_id: str, properties: Mapping[str, Any]) -> Dict[str, Any]:
        await self._enter("update_page", page_id, properties)
        page = self.pages[page_id]
        for name, value in properties.items():
            page["properties"][name] = _as_response_property(value)
        return {"id": page_id}

    async def create_database(
        self, parent_page_id: str, title: str, properties: Mapping[str, Any]
    ) -> Dict[str, Any]:
        await self._enter("create_database", parent_page_id, title)
        database_id = self._next_id("db")
        self.databases[database_id] = {
            "id": database_id,
            "parent_page_id": parent_page_id,
            "title": title,
            "properties": dict(properties),
        }
        return {"id": database_id, "title": [{"plain_text": title}]}

    async def list_block_children(self, block_id: str) -> List[Dict[str, Any]]:
        await self._enter("list_block_children", block_id)
        blocks = []
        for page in self.pages.values():
            if page["parent"] == {"type": "page_id", "page_id": block_id}:
                title = display_value(page["properties"].get("title"))
                blocks.append({"id": page["id"], "type": "child_page", "child_page": {"title": title}})
        for database in self.databases.values():
            if database["parent_page_id"] == block_id:
                blocks.append(
                    {
                        "id": database["id"],
                        "type": "child_database",
                        "child_database": {"title": database["title"]},
                    }
                )
        return blocks

    async def list_child_databases(self, page_id: str) -> Dict[str, str]:
        await self._enter("list_child_databases", page_id)
        index: Dict[str, str] = {}
        for database in self.databases.values():
            if database["parent_page_id"] == page_id:
                index.setdefault(database["title"], database["id"])
        return index

    # -- Helpers de test --------------------------------------------------

    def rows(self, database_id: str) -> List[Dict[str, Any]]:
        return [
            p for p in self.pages.values()
            if p["parent"] == {"type": "database_id", "database_id": database_id}
        ]

    def database_by_title(self, title: str) -> Dict[str, Any]:
        return next(d for d in self.databases.values() if d["title"] == title)


@pytest.fixture
def fake_notion() -> FakeNotionClient:
    return FakeNotionClient()


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Política por defecto (3 intentos, backoff 1s) con sleep mockeado."""
    return RetryPolicy(
        timeout=5.0,
        max_retries=2,
        base_delay=1.0,
        retry_on=(RemoteRequestError,),
        timeout_error=timeout_error,
        sleep=AsyncMock(),
    )
