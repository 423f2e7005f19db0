"""
Script para inicializar (o reiniciar) el cache local de metadata.

Ejecución:
  python scripts/init_db.py            crea las tablas que falten
  python scripts/init_db.py --reset    borra y vuelve a crear todas las tablas
"""
import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

load_dotenv(_API_ROOT / ".env", override=False)

from sfdocs.core.config import settings  # noqa: E402
from sfdocs.infrastructure.database.session import Base, close_db, engine, init_db  # noqa: E402


async def main(reset: bool) -> None:
    """Crea el esquema del cache; con `reset` lo borra primero."""
    logger.info(f"Inicializando cache local en {settings.DATABASE_URL}...")

    try:
        if reset:
            from sfdocs.infrastructure.database import models  # noqa: F401

            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.drop_all)
            logger.warning("Tablas del cache eliminadas")

        await init_db()
        logger.success(f"Cache listo: {', '.join(sorted(Base.metadata.tables))}")
    except Exception as e:
        logger.error(f"Error al inicializar el cache: {e}")
        raise
    finally:
        await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Inicializa el cache local de metadata.")
    parser.add_argument("--reset", action="store_true", help="Borra las tablas antes de crearlas")
    args = parser.parse_args()
    asyncio.run(main(args.reset))
