"""
CLI: metadata de Salesforce (formato source) -> documentación en Notion.

Comandos:
  objects PATH      parsea objetos, los guarda en cache y sincroniza
  profiles PATH     idem para perfiles (*.profile-meta.xml)
  flows PATH        idem para flows (*.flow-meta.xml)
  templates         lista las plantillas registradas
  template-demo     renderiza las plantillas con datos de ejemplo

Opciones de sync:
  --skip-cache      no guarda lo parseado en el cache local
  --from-cache      sincroniza desde el cache (PATH no requerido)
  --name NAME       con --from-cache, limita a esas entidades (repetible)

Un fallo de entidad o de tabla se reporta pero no cambia el exit code;
solo un uso incorrecto termina con código distinto de 0.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import List, Optional, Sequence

from loguru import logger

from sfdocs.application.services.template_demo import render_demo
from sfdocs.application.use_cases.sync_use_cases import SyncUseCases
from sfdocs.core.events import configure_logging
from sfdocs.domain.entities.metadata import EntityKind
from sfdocs.infrastructure.database.session import close_db, init_db
from sfdocs.infrastructure.notion_sync.template_registry import build_default_registry

SYNC_COMMANDS = {
    "objects": EntityKind.OBJECT,
    "profiles": EntityKind.PROFILE,
    "flows": EntityKind.FLOW,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sync_metadata",
        description="Documenta metadata de Salesforce en Notion.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for command, kind in SYNC_COMMANDS.items():
        p = sub.add_parser(command, help=f"Sincroniza {kind.value} con Notion")
        p.add_argument("path", nargs="?", help="Archivo o directorio de metadata")
        p.add_argument("--skip-cache", action="store_true", help="No guardar en el cache local")
        p.add_argument("--from-cache", action="store_true", help="Leer del cache local en vez de XML")
        p.add_argument(
            "--name",
            dest="names",
            action="append",
            help="api_name a sincronizar desde el cache (repetible)",
        )

    sub.add_parser("templates", help="Lista las plantillas registradas")

    demo = sub.add_parser("template-demo", help="Renderiza las plantillas con datos de ejemplo")
    demo.add_argument(
        "--kind",
        choices=[k.value for k in EntityKind],
        help="Solo este tipo de entidad (por defecto todos)",
    )
    return parser


async def run_sync(
    kind: EntityKind,
    path: Optional[str],
    *,
    skip_cache: bool = False,
    from_cache: bool = False,
    names: Optional[Sequence[str]] = None,
    use_cases: Optional[SyncUseCases] = None,
) -> dict:
    """Ejecuta un sync completo y loguea el resultado por entidad."""
    use_cases = use_cases or SyncUseCases()

    async def progress(msg: str, prog: int) -> None:
        logger.info(f"[{prog:3d}%] {msg}")

    await init_db()
    try:
        result = await use_cases.execute_sync_process(
            kind,
            path,
            skip_cache=skip_cache,
            from_cache=from_cache,
            names=names,
            progress_callback=progress,
        )
    finally:
        await close_db()

    for item in result["results"]:
        if item["ok"]:
            logger.success(f"{item['kind']}:{item['api_name']} -> {item.get('page_id')}")
        else:
            logger.error(f"{item['kind']}:{item['api_name']} fallido: {item['error']}")
    logger.info(result["message"])
    return result


def print_templates() -> None:
    registry = build_default_registry()
    for item in registry.describe():
        table = item["table_title"] or "-"
        print(f"{item['kind']:<9} {item['name']:<24} {table}")
        if item["columns"]:
            print(f"{'':<34} columnas: {', '.join(item['columns'])}")


def print_template_demo(kind: Optional[str]) -> None:
    registry = build_default_registry()
    kinds: List[EntityKind] = [EntityKind(kind)] if kind else list(EntityKind)
    for k in kinds:
        for entry in render_demo(registry, k):
            print(json.dumps(entry, ensure_ascii=False))


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command in SYNC_COMMANDS:
        if not args.from_cache and not args.path:
            parser.error(f"{args.command}: PATH es obligatorio salvo con --from-cache")
        configure_logging()
        asyncio.run(
            run_sync(
                SYNC_COMMANDS[args.command],
                args.path,
                skip_cache=args.skip_cache,
                from_cache=args.from_cache,
                names=args.names,
            )
        )
        return 0

    if args.command == "templates":
        print_templates()
        return 0

    if args.command == "template-demo":
        print_template_demo(args.kind)
        return 0

    parser.print_help()
    return 2
