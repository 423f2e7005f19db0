"""
Configuracion central del servicio.
Gestiona variables de entorno para la API de Notion, el cache local y el
motor de sincronizacion.
"""
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion del servicio.
    Lee variables de entorno (o `.env`) y proporciona valores por defecto.

    Destino de la documentacion:
    - NOTION_DATABASE_ID: base de datos padre (tiene prioridad)
    - NOTION_ROOT_PAGE_ID: pagina padre
    - Si no hay ninguno, se busca una pagina accesible o se crea un contenedor
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Salesforce Metadata Docs")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Cache local (SQLite por defecto)
    DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./sfmeta.db")

    # Notion
    NOTION_API_URL: str = Field(default="https://api.notion.com/v1")
    NOTION_TOKEN: str = Field(default="")
    NOTION_VERSION: str = Field(default="2022-06-28")
    NOTION_DATABASE_ID: str = Field(default="")
    NOTION_ROOT_PAGE_ID: str = Field(default="")
    # Nombre de la propiedad titulo cuando el padre es una base de datos
    NOTION_DATABASE_TITLE_PROPERTY: str = Field(default="Name")
    NOTION_CONTAINER_TITLE: str = Field(default="Salesforce Metadata Documentation")
    NOTION_HTTP_TIMEOUT: float = Field(default=60.0)

    # Motor de sincronizacion
    SYNC_CONCURRENCY: int = Field(default=3, ge=1)
    SYNC_REQUEST_TIMEOUT: float = Field(default=30.0, gt=0)
    SYNC_MAX_RETRIES: int = Field(default=2, ge=0)
    SYNC_RETRY_BASE_DELAY: float = Field(default=1.0, ge=0)

    # Parser
    PROFILE_CHUNK_SIZE: int = Field(default=100, ge=1)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/sfdocs.log")

    @computed_field
    @property
    def notion_parent_configured(self) -> bool:
        """Indica si hay un padre fijo configurado (base de datos o pagina)."""
        return bool(self.NOTION_DATABASE_ID or self.NOTION_ROOT_PAGE_ID)

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


# Instancia global de configuracion
settings = Settings()
