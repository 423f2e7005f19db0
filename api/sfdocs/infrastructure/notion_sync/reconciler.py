"""
Motor de reconciliación por tabla (upsert con diff).

Algoritmo para un lote de filas ya mapeadas:
1) Dedupe por firma (todos los valores en orden de columnas).
2) Descarta filas vacuas (todos los valores vacíos/False/None).
3) Trae las filas existentes UNA vez y las indexa por SyncKey.
4) Por fila: crea si la clave no existe; si existe, parchea solo las
   columnas en blanco en Notion con valor propuesto no vacío; si no hay
   nada que completar, se omite sin escribir.
5) Ventanas fijas de `concurrency` filas concurrentes; la ventana N+1 no
   arranca hasta que la N termina (reintentos incluidos).
6) Cada escritura pasa por RetryPolicy (timeout + backoff lineal). Un
   fallo permanente se registra y no aborta el lote.

El índice de filas existentes es un snapshot inmutable durante la llamada.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from sfdocs.shared.utils.retry import RetryPolicy
from sfdocs.shared.utils.values import is_empty_value

from .notion_client import KEY_SEPARATOR, NotionClient, index_by_property
from .properties import encode_properties, is_blank_property
from .types import ParentRef, RowFailure, RowOutcome, TableSchema, TableSyncReport

Row = Dict[str, Any]


def row_signature(schema: TableSchema, values: Mapping[str, Any]) -> str:
    """Firma de deduplicación: todos los valores en orden de columnas."""
    return json.dumps(
        [values.get(name) for name in schema.column_names],
        ensure_ascii=False,
        default=str,
    )


def _key_part(value: Any) -> str:
    if value is None or value is False:
        return ""
    if value is True:
        return "true"
    return str(value)


def row_key(schema: TableSchema, values: Mapping[str, Any]) -> str:
    """SyncKey de una fila mapeada (compuesta con " | " si hay varias columnas)."""
    parts = [_key_part(values.get(name)) for name in schema.key_columns]
    return KEY_SEPARATOR.join(p for p in parts if p)


def is_vacuous(values: Mapping[str, Any]) -> bool:
    return all(is_empty_value(v) for v in values.values())


def prepare_rows(schema: TableSchema, rows: Sequence[Row], report: TableSyncReport) -> List[Tuple[str, str, Row]]:
    """
    Aplica dedupe y filtro de vacuas. Retorna (clave, firma, fila).

    Las filas sin SyncKey se descartan con warning. Dos filas distintas con
    la misma SyncKey se conservan ambas y se avisa con warning.
    """
    seen = set()
    keys = set()
    prepared: List[Tuple[str, str, Row]] = []
    for values in rows:
        signature = row_signature(schema, values)
        if signature in seen:
            report.duplicates_dropped += 1
            continue
        seen.add(signature)

        if is_vacuous(values):
            report.vacuous_dropped += 1
            continue

        key = row_key(schema, values)
        if not key:
            report.missing_key_dropped += 1
            logger.warning(
                f"[{report.table}] Fila sin clave ({', '.join(schema.key_columns)}) "
                f"omitida. firma={signature}"
            )
            continue
        if key in keys:
            logger.warning(
                f"[{report.table}] Clave repetida '{key}' con valores distintos; "
                f"ambas filas se envían. firma={signature}"
            )
        keys.add(key)
        prepared.append((key, signature, values))
    return prepared


class TableReconciler:
    """Puebla una tabla de Notion de forma idempotente."""

    def __init__(
        self,
        client: NotionClient,
        *,
        policy: Optional[RetryPolicy] = None,
        concurrency: int = 3,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency debe ser >= 1")
        self._client = client
        self._policy = policy or RetryPolicy()
        self._concurrency = concurrency

    async def fetch_existing(self, database_id: str, schema: TableSchema) -> Dict[str, Dict[str, Any]]:
        rows = await self._policy.run(
            lambda: self._client.query_database(database_id),
            label=f"query {database_id}",
        )
        return index_by_property(rows, schema.key_columns)

    async def populate(
        self,
        database_id: str,
        table_name: str,
        schema: TableSchema,
        rows: Sequence[Row],
    ) -> TableSyncReport:
        """
        Reconcilia `rows` contra la tabla `database_id`.

        Los errores por fila nunca se propagan; un fallo al leer las filas
        existentes sí (la tabla completa no se puede reconciliar).
        """
        report = TableSyncReport(table=table_name)
        prepared = prepare_rows(schema, rows, report)
        if report.duplicates_dropped or report.vacuous_dropped:
            logger.info(
                f"[{table_name}] {report.duplicates_dropped} duplicadas y "
                f"{report.vacuous_dropped} vacías descartadas"
            )
        if not prepared:
            return report

        existing = await self.fetch_existing(database_id, schema)
        logger.info(
            f"[{table_name}] {len(prepared)} filas a reconciliar, "
            f"{len(existing)} existentes en Notion"
        )

        for i in range(0, len(prepared), self._concurrency):
            window = prepared[i : i + self._concurrency]
            outcomes = await asyncio.gather(
                *(
                    self._upsert(database_id, table_name, schema, key, signature, values, existing, report)
                    for key, signature, values in window
                )
            )
            for outcome in outcomes:
                report.record(outcome)

        logger.info(
            f"[{table_name}] creadas={report.created} actualizadas={report.updated} "
            f"omitidas={report.skipped} fallidas={report.failed}"
        )
        return report

    async def _upsert(
        self,
        database_id: str,
        table_name: str,
        schema: TableSchema,
        key: str,
        signature: str,
        values: Row,
        existing: Mapping[str, Dict[str, Any]],
        report: TableSyncReport,
    ) -> RowOutcome:
        current = existing.get(key)
        try:
            if current is None:
                page = await self._policy.run(
                    lambda: self._client.create_page(
                        ParentRef("database_id", database_id),
                        encode_properties(schema, values),
                    ),
                    label=f"[{table_name}] crear '{key}'",
                )
                logger.info(f"[{table_name}] Fila creada '{key}' ({page.get('id')})")
                return RowOutcome.CREATED

            update_set = self.columns_to_fill(schema, values, current.get("properties") or {})
            if not update_set:
                logger.debug(f"[{table_name}] Fila sin cambios '{key}' ({current.get('id')})")
                return RowOutcome.SKIPPED

            await self._policy.run(
                lambda: self._client.update_page(
                    current["id"], encode_properties(schema, values, only=update_set)
                ),
                label=f"[{table_name}] actualizar '{key}'",
            )
            logger.info(
                f"[{table_name}] Fila actualizada '{key}' ({current.get('id')}): "
                f"{', '.join(update_set)}"
            )
            return RowOutcome.UPDATED
        except Exception as e:
            logger.error(
                f"[{table_name}] Fila fallida '{key}' "
                f"({current.get('id') if current else 'nueva'}) tras "
                f"{self._policy.max_attempts} intentos: {e}. firma={signature}"
            )
            report.failures.append(RowFailure(key=key, signature=signature, error=str(e)))
            return RowOutcome.FAILED

    @staticmethod
    def columns_to_fill(
        schema: TableSchema, values: Mapping[str, Any], remote_properties: Mapping[str, Any]
    ) -> List[str]:
        """Columnas en blanco en Notion con valor propuesto no vacío."""
        return [
            name
            for name in schema.column_names
            if is_blank_property(remote_properties.get(name))
            and not is_empty_value(values.get(name))
        ]
