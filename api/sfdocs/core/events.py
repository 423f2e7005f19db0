"""
Manejadores de eventos de inicio y cierre de la aplicacion.
"""
from typing import Callable
from fastapi import FastAPI
from loguru import logger

from sfdocs.core.config import settings
from sfdocs.infrastructure.database.session import init_db, close_db


def configure_logging() -> None:
    """Agrega el sink de archivo con rotacion (LOG_FILE, LOG_LEVEL)."""
    logger.add(
        settings.LOG_FILE,
        rotation="50 MB",
        retention="10 days",
        level=settings.LOG_LEVEL
    )


def startup_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de inicio de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de inicio
    """
    async def startup() -> None:
        """Inicializa recursos al inicio de la aplicacion."""
        try:
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            validate_config()

            # Crea las tablas del cache local si no existen
            await init_db()
            logger.info("Cache local inicializado")

            configure_logging()

            logger.success("Aplicacion iniciada correctamente")

        except Exception as e:
            logger.error(f"Error durante startup: {e}")
            logger.exception("Detalle del error:")
            raise

    return startup


def validate_config() -> None:
    """Valida que la configuracion critica este presente."""
    warnings = []

    if not settings.NOTION_TOKEN:
        warnings.append("NOTION_TOKEN no configurado - el sync a Notion fallara")
    if not settings.notion_parent_configured:
        warnings.append(
            "Sin NOTION_DATABASE_ID ni NOTION_ROOT_PAGE_ID - se usara la primera pagina accesible"
        )

    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def shutdown_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de cierre de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de cierre
    """
    async def shutdown() -> None:
        """Libera recursos al cerrar la aplicacion."""
        logger.info("Cerrando aplicacion...")

        await close_db()
        logger.info("Conexiones de base de datos cerradas")

        logger.success("Aplicacion cerrada correctamente")

    return shutdown
