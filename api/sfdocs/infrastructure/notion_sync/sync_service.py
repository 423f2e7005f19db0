"""
Orquestador del sync de documentación (una entidad = una unidad de sync).

Máquina de estados por entidad:
  ResolveParent -> EnsureMainPage -> {EnsureTable -> PopulateTable}* -> Done | Failed

Aislamiento de fallos:
- Una tabla fallida (error remoto tras reintentos, plantilla inexistente)
  se registra y el resto de tablas continúa.
- Una entidad fallida no detiene a las demás en `sync_many`.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from loguru import logger

from sfdocs.domain.entities.metadata import (
    EntityKind,
    MetadataRecord,
    ParsedEntity,
    ParsedFlow,
    ParsedObject,
    ParsedProfile,
)
from sfdocs.shared.exceptions.domain import TemplateNotFoundError
from sfdocs.shared.utils.retry import RetryPolicy

from .notion_client import (
    MAX_CHILDREN_PER_REQUEST,
    NotionClient,
    RemoteRequestError,
    plain_text,
    timeout_error,
)
from .properties import blocks_from_structure, rich_text, schema_properties
from .reconciler import TableReconciler
from .row_mapper import RowMapper
from .template_registry import TemplateRegistry
from .types import ParentRef, RemoteContainer, RemoteTable

API_NAME_PROPERTY = "API Name"
OVERVIEW_TEMPLATE = "overview"


@dataclass
class EntitySyncResult:
    """Resultado de una entidad dentro de un sync múltiple."""

    kind: EntityKind
    api_name: str
    container: Optional[RemoteContainer] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "kind": self.kind.value,
            "api_name": self.api_name,
            "ok": self.ok,
            "error": self.error,
        }
        if self.container is not None:
            data["page_id"] = self.container.id
            data["reused"] = self.container.reused
            data["tables"] = {
                name: (
                    {"error": t.error}
                    if t.error
                    else (t.report.to_dict() if t.report else {"table": name})
                )
                for name, t in self.container.tables.items()
            }
        return data


def default_retry_policy(
    *, timeout: float = 30.0, max_retries: int = 2, base_delay: float = 1.0
) -> RetryPolicy:
    """Política usada en toda escritura a Notion."""
    return RetryPolicy(
        timeout=timeout,
        max_retries=max_retries,
        base_delay=base_delay,
        retry_on=(RemoteRequestError,),
        timeout_error=timeout_error,
    )


class NotionDocumentationSync:
    """
    Proyecta entidades parseadas en páginas y tablas de Notion.

    El padre resuelto se cachea por instancia: un lote crea como mucho un
    contenedor nuevo.
    """

    def __init__(
        self,
        client: NotionClient,
        registry: TemplateRegistry,
        *,
        mapper: Optional[RowMapper] = None,
        policy: Optional[RetryPolicy] = None,
        concurrency: int = 3,
        database_id: str = "",
        root_page_id: str = "",
        database_title_property: str = "Name",
        container_title: str = "Salesforce Metadata Documentation",
    ) -> None:
        self._client = client
        self._registry = registry
        self._mapper = mapper or RowMapper()
        self._policy = policy or default_retry_policy()
        self._reconciler = TableReconciler(client, policy=self._policy, concurrency=concurrency)
        self._database_id = database_id
        self._root_page_id = root_page_id
        self._database_title_property = database_title_property
        self._container_title = container_title
        self._parent: Optional[ParentRef] = None
        self._parent_lock = asyncio.Lock()
        # bases de datos hijas por página principal reutilizada
        self._child_databases: Dict[str, Dict[str, str]] = {}

    @classmethod
    def from_settings(
        cls, settings: Any, client: NotionClient, registry: TemplateRegistry
    ) -> "NotionDocumentationSync":
        return cls(
            client,
            registry,
            policy=default_retry_policy(
                timeout=settings.SYNC_REQUEST_TIMEOUT,
                max_retries=settings.SYNC_MAX_RETRIES,
                base_delay=settings.SYNC_RETRY_BASE_DELAY,
            ),
            concurrency=settings.SYNC_CONCURRENCY,
            database_id=settings.NOTION_DATABASE_ID,
            root_page_id=settings.NOTION_ROOT_PAGE_ID,
            database_title_property=settings.NOTION_DATABASE_TITLE_PROPERTY,
            container_title=settings.NOTION_CONTAINER_TITLE,
        )

    # ------------------------------------------------------------------
    # API pública: una operación por tipo de entidad
    # ------------------------------------------------------------------

    async def sync_object(self, parsed: ParsedObject) -> RemoteContainer:
        return await self.sync_entity(parsed)

    async def sync_profile(self, parsed: ParsedProfile) -> RemoteContainer:
        return await self.sync_entity(parsed)

    async def sync_flow(self, parsed: ParsedFlow) -> RemoteContainer:
        return await self.sync_entity(parsed)

    async def sync_entity(self, entity: ParsedEntity) -> RemoteContainer:
        """
        Crea o actualiza el árbol de documentación completo de una entidad.

        Raises:
            ContextValidationError: antes de cualquier escritura remota
            TemplateNotFoundError: si falta la plantilla overview
            RemoteRequestError: si falla la resolución del padre o la página principal
        """
        kind = entity.kind
        context = entity.template_context()
        collections = {name: records for name, records in entity.collections().items() if records}

        self._validate(kind, context, collections)

        parent = await self.resolve_parent()
        container = await self.ensure_main_page(kind, entity.api_name, context, parent)

        for table_name, records in collections.items():
            try:
                table = await self.ensure_table(container, kind, table_name, context)
                await self.populate_table(table, kind, table_name, records)
            except Exception as e:
                logger.error(
                    f"[{kind.value}:{entity.api_name}] Tabla '{table_name}' fallida: {e}"
                )
                failed = container.tables.get(table_name)
                if failed is None:
                    failed = RemoteTable(id="", name=table_name, title="")
                    container.tables[table_name] = failed
                failed.error = str(e)

        logger.info(
            f"[{kind.value}:{entity.api_name}] Sync terminado ({container.id}); "
            f"{len(container.tables)} tablas, {len(container.failed_tables)} fallidas"
        )
        return container

    async def sync_many(self, entities: Iterable[ParsedEntity]) -> List[EntitySyncResult]:
        """Sincroniza varias entidades; un fallo no detiene a las siguientes."""
        results: List[EntitySyncResult] = []
        for entity in entities:
            try:
                container = await self.sync_entity(entity)
                results.append(EntitySyncResult(entity.kind, entity.api_name, container=container))
            except Exception as e:
                logger.error(f"[{entity.kind.value}:{entity.api_name}] Sync fallido: {e}")
                results.append(EntitySyncResult(entity.kind, entity.api_name, error=str(e)))
        return results

    # ------------------------------------------------------------------
    # Estados
    # ------------------------------------------------------------------

    def _validate(
        self,
        kind: EntityKind,
        context: Mapping[str, Any],
        collections: Mapping[str, Sequence[MetadataRecord]],
    ) -> None:
        self._registry.validate_context(kind, OVERVIEW_TEMPLATE, context)
        for table_name in collections:
            try:
                self._registry.validate_context(kind, table_name, context)
            except TemplateNotFoundError:
                # se reporta como fallo de esa tabla al poblarla
                continue

    async def resolve_parent(self) -> ParentRef:
        """Base de datos configurada > página configurada > primera página accesible > contenedor nuevo."""
        async with self._parent_lock:
            if self._parent is not None:
                return self._parent

            if self._database_id:
                parent = ParentRef("database_id", self._database_id)
            elif self._root_page_id:
                parent = ParentRef("page_id", self._root_page_id)
            else:
                pages = await self._policy.run(self._client.search_pages, label="search")
                if pages:
                    parent = ParentRef("page_id", pages[0]["id"])
                    logger.info(f"Usando página accesible como padre: {parent.id}")
                else:
                    page = await self._policy.run(
                        lambda: self._client.create_page(
                            ParentRef("workspace"),
                            {"title": {"title": rich_text(self._container_title)}},
                        ),
                        label="crear contenedor",
                    )
                    parent = ParentRef("page_id", page["id"])
                    logger.info(f"Contenedor creado en el workspace: {parent.id}")

            self._parent = parent
            return parent

    async def _find_main_page(self, parent: ParentRef, api_name: str, title: str) -> Optional[Dict[str, Any]]:
        if parent.is_database:
            pages = await self._policy.run(
                lambda: self._client.query_database(
                    parent.id,
                    filter={"property": API_NAME_PROPERTY, "rich_text": {"equals": api_name}},
                ),
                label=f"buscar página '{api_name}'",
            )
            return pages[0] if pages else None

        if parent.type == "page_id":
            children = await self._policy.run(
                lambda: self._client.list_block_children(parent.id),
                label=f"buscar página '{title}'",
            )
            for block in children:
                if block.get("type") == "child_page" and (block.get("child_page") or {}).get("title") == title:
                    return block
        return None

    async def ensure_main_page(
        self,
        kind: EntityKind,
        api_name: str,
        context: Mapping[str, Any],
        parent: Optional[ParentRef] = None,
    ) -> RemoteContainer:
        """Reutiliza la página principal de la entidad o la crea desde la plantilla overview."""
        parent = parent or await self.resolve_parent()
        rendered = self._registry.render(kind, OVERVIEW_TEMPLATE, context)

        existing = await self._find_main_page(parent, api_name, rendered.title)
        if existing is not None:
            logger.info(f"[{kind.value}:{api_name}] Página principal reutilizada ({existing['id']})")
            return RemoteContainer(
                id=existing["id"],
                title=rendered.title,
                api_name=api_name,
                url=existing.get("url"),
                reused=True,
            )

        if parent.is_database:
            properties = {
                self._database_title_property: {"title": rich_text(rendered.title)},
                API_NAME_PROPERTY: {"rich_text": rich_text(api_name)},
            }
        else:
            properties = {"title": {"title": rich_text(rendered.title)}}

        blocks = blocks_from_structure(rendered.page_structure)
        page = await self._policy.run(
            lambda: self._client.create_page(parent, properties, blocks[:MAX_CHILDREN_PER_REQUEST]),
            label=f"crear página '{api_name}'",
        )
        # cada lote se reintenta solo, contra la página ya creada
        for start in range(MAX_CHILDREN_PER_REQUEST, len(blocks), MAX_CHILDREN_PER_REQUEST):
            batch = blocks[start : start + MAX_CHILDREN_PER_REQUEST]
            await self._policy.run(
                lambda: self._client.append_block_children(page["id"], batch),
                label=f"agregar bloques a '{api_name}'",
            )
        logger.info(f"[{kind.value}:{api_name}] Página principal creada ({page['id']})")
        return RemoteContainer(id=page["id"], title=rendered.title, api_name=api_name, url=page.get("url"))

    async def ensure_table(
        self,
        container: RemoteContainer,
        kind: EntityKind,
        table_name: str,
        context: Mapping[str, Any],
    ) -> RemoteTable:
        """Reutiliza la base de datos hija con el mismo título o la crea."""
        descriptor = self._registry.render(kind, table_name, context)
        schema = descriptor.table_schema
        if schema is None:
            raise TemplateNotFoundError(kind.value, table_name)

        if container.reused:
            children = self._child_databases.get(container.id)
            if children is None:
                children = await self._policy.run(
                    lambda: self._client.list_child_databases(container.id),
                    label=f"listar tablas de {container.id}",
                )
                self._child_databases[container.id] = children
            database_id = children.get(schema.title)
            if database_id:
                logger.info(f"[{table_name}] Tabla reutilizada '{schema.title}' ({database_id})")
                table = RemoteTable(id=database_id, name=table_name, title=schema.title, reused=True)
                container.tables[table_name] = table
                return table

        database = await self._policy.run(
            lambda: self._client.create_database(
                container.id, schema.title, schema_properties(schema)
            ),
            label=f"crear tabla '{schema.title}'",
        )
        title = plain_text(database.get("title")) or schema.title
        logger.info(f"[{table_name}] Tabla creada '{title}' ({database['id']})")
        if container.id in self._child_databases:
            self._child_databases[container.id][schema.title] = database["id"]
        table = RemoteTable(id=database["id"], name=table_name, title=schema.title)
        container.tables[table_name] = table
        return table

    async def populate_table(
        self,
        table: RemoteTable,
        kind: EntityKind,
        table_name: str,
        records: Sequence[MetadataRecord],
    ) -> RemoteTable:
        schema = self._registry.get(kind, table_name).table_schema
        if schema is None:
            raise TemplateNotFoundError(kind.value, table_name)
        rows = self._mapper.map_records(kind, table_name, schema, records)
        table.report = await self._reconciler.populate(table.id, table_name, schema, rows)
        return table
