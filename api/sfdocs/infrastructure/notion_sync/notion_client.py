"""
Cliente mínimo de la API REST de Notion (sin SDKs externos).

Requisitos cubiertos:
- httpx.AsyncClient
- errores tipados: RemoteRequestError (no-2xx, respuesta mal formada,
  error de transporte) y RemoteTimeoutError
- paginación por cursor (start_cursor / has_more / next_cursor)
- índice de filas por valor de una propiedad (title, rich_text, select)

El cliente NO reintenta: la política de reintentos se compone por encima
(RetryPolicy) en cada punto de escritura.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import httpx
from loguru import logger

from .types import ParentRef

PAGE_SIZE = 100
MAX_CHILDREN_PER_REQUEST = 100
KEY_SEPARATOR = " | "


class RemoteRequestError(RuntimeError):
    """Error de integración con Notion."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Any = None,
        retry_after: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.retry_after = retry_after


class RemoteTimeoutError(RemoteRequestError):
    """Timeout de una llamada remota (se reintenta igual que un error)."""


def timeout_error(seconds: float) -> RemoteTimeoutError:
    return RemoteTimeoutError(f"La llamada a Notion superó el timeout de {seconds}s")


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def plain_text(items: Optional[Iterable[Mapping[str, Any]]]) -> str:
    """Concatena el plain_text de todos los fragmentos rich_text."""
    out = []
    for item in items or []:
        text = item.get("plain_text")
        if text is None:
            text = (item.get("text") or {}).get("content", "")
        out.append(text or "")
    return "".join(out)


def display_value(prop: Optional[Mapping[str, Any]]) -> str:
    """Valor visible de una propiedad de Notion como string ("" si vacío)."""
    if not prop:
        return ""
    prop_type = prop.get("type")
    if prop_type in ("title", "rich_text"):
        return plain_text(prop.get(prop_type))
    if prop_type == "select":
        select = prop.get("select") or {}
        return select.get("name") or ""
    if prop_type == "number":
        number = prop.get("number")
        return "" if number is None else str(number)
    if prop_type == "checkbox":
        return "true" if prop.get("checkbox") is True else ""
    return ""


def index_by_property(
    items: Iterable[Mapping[str, Any]],
    property_names: Union[str, Sequence[str]],
) -> Dict[str, Dict[str, Any]]:
    """
    Indexa páginas por el valor visible de una propiedad.

    Con varias propiedades la clave es la composición "a | b". Las páginas
    sin valor se ignoran; ante claves repetidas gana la primera.
    """
    names = [property_names] if isinstance(property_names, str) else list(property_names)
    index: Dict[str, Dict[str, Any]] = {}
    for item in items:
        props = item.get("properties") or {}
        parts = [display_value(props.get(name)) for name in names]
        key = KEY_SEPARATOR.join(p for p in parts if p)
        if key and key not in index:
            index[key] = dict(item)
    return index


class NotionClient:
    """
    Cliente HTTP de Notion.

    Importante:
    - `request` es la única puerta de salida; el resto son helpers.
    - Acepta un httpx.AsyncClient externo (tests con MockTransport).
    """

    def __init__(
        self,
        *,
        token: str = "",
        base_url: str = "https://api.notion.com/v1",
        notion_version: str = "2022-06-28",
        timeout_s: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        headers = {"Notion-Version": notion_version, "Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._headers = headers

    @classmethod
    def from_settings(cls, settings: Any, client: Optional[httpx.AsyncClient] = None) -> "NotionClient":
        return cls(
            token=settings.NOTION_TOKEN,
            base_url=settings.NOTION_API_URL,
            notion_version=settings.NOTION_VERSION,
            timeout_s=settings.NOTION_HTTP_TIMEOUT,
            client=client,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "NotionClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Mapping[str, Any]] = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Request HTTP a Notion.

        Raises:
            RemoteTimeoutError: timeout del transporte
            RemoteRequestError: no-2xx, error de red o JSON inválido
        """
        url = f"{self._base_url}/{endpoint.lstrip('/')}"
        try:
            resp = await self._client.request(
                method,
                url,
                json=dict(body) if body is not None else None,
                params=dict(params) if params else None,
                headers=self._headers,
            )
        except httpx.TimeoutException as e:
            raise RemoteTimeoutError(f"Timeout en {method} {endpoint}: {e}") from e
        except httpx.HTTPError as e:
            raise RemoteRequestError(f"Error de red en {method} {endpoint}: {e}") from e

        if not 200 <= resp.status_code < 300:
            try:
                payload: Any = resp.json()
            except ValueError:
                payload = resp.text
            raise RemoteRequestError(
                f"Notion request falló {resp.status_code} en {method} {endpoint}: {payload}",
                status_code=resp.status_code,
                body=payload,
                retry_after=_parse_retry_after(resp.headers.get("Retry-After")),
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise RemoteRequestError(
                f"Respuesta no JSON en {method} {endpoint}",
                status_code=resp.status_code,
                body=resp.text,
            ) from e
        if not isinstance(data, dict):
            raise RemoteRequestError(
                f"Respuesta inesperada en {method} {endpoint}",
                status_code=resp.status_code,
                body=data,
            )
        return data

    async def paginate(
        self,
        endpoint: str,
        method: str = "POST",
        body: Optional[Mapping[str, Any]] = None,
        *,
        page_size: int = PAGE_SIZE,
    ) -> List[Dict[str, Any]]:
        """
        Recorre todas las páginas de un listado y concatena `results`.

        POST envía el cursor en el body; GET lo envía como query string.
        """
        results: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        while True:
            if method.upper() == "GET":
                params: Dict[str, Any] = {"page_size": page_size}
                if cursor:
                    params["start_cursor"] = cursor
                page = await self.request(endpoint, "GET", params=params)
            else:
                payload: Dict[str, Any] = dict(body or {})
                payload["page_size"] = page_size
                if cursor:
                    payload["start_cursor"] = cursor
                page = await self.request(endpoint, method, payload)

            results.extend(page.get("results") or [])
            cursor = page.get("next_cursor")
            if not page.get("has_more") or not cursor:
                break
        return results

    # ------------------------------------------------------------------
    # Helpers de recursos
    # ------------------------------------------------------------------

    async def search_pages(self, *, page_size: int = 1) -> List[Dict[str, Any]]:
        """Páginas accesibles por la integración (sin paginar)."""
        data = await self.request(
            "/search",
            "POST",
            {"filter": {"property": "object", "value": "page"}, "page_size": page_size},
        )
        return data.get("results") or []

    async def query_database(
        self, database_id: str, *, filter: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        body = {"filter": dict(filter)} if filter else None
        return await self.paginate(f"/databases/{database_id}/query", "POST", body)

    async def create_page(
        self,
        parent: ParentRef,
        properties: Mapping[str, Any],
        children: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Crea una página con a lo sumo 100 bloques hijos (límite de la API).

        El resto se agrega con `append_block_children` sobre el id retornado,
        fuera de esta llamada: reintentar la creación no debe duplicar la página.
        """
        children = list(children or [])
        if len(children) > MAX_CHILDREN_PER_REQUEST:
            raise ValueError(f"create_page acepta hasta {MAX_CHILDREN_PER_REQUEST} bloques")
        payload: Dict[str, Any] = {
            "parent": parent.to_payload(),
            "properties": dict(properties),
        }
        if children:
            payload["children"] = children
        return await self.request("/pages", "POST", payload)

    async def update_page(self, page_id: str, properties: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.request(f"/pages/{page_id}", "PATCH", {"properties": dict(properties)})

    async def create_database(
        self, parent_page_id: str, title: str, properties: Mapping[str, Any]
    ) -> Dict[str, Any]:
        payload = {
            "parent": {"type": "page_id", "page_id": parent_page_id},
            "title": [{"type": "text", "text": {"content": title}}],
            "properties": dict(properties),
        }
        return await self.request("/databases", "POST", payload)

    async def list_block_children(self, block_id: str) -> List[Dict[str, Any]]:
        return await self.paginate(f"/blocks/{block_id}/children", "GET")

    async def append_block_children(
        self, block_id: str, children: Sequence[Mapping[str, Any]]
    ) -> Dict[str, Any]:
        """Un lote de hasta 100 bloques por llamada."""
        children = list(children)
        if len(children) > MAX_CHILDREN_PER_REQUEST:
            raise ValueError(f"append_block_children acepta hasta {MAX_CHILDREN_PER_REQUEST} bloques")
        return await self.request(f"/blocks/{block_id}/children", "PATCH", {"children": children})

    async def list_child_databases(self, page_id: str) -> Dict[str, str]:
        """Bases de datos hijas de una página, indexadas por título."""
        index: Dict[str, str] = {}
        for block in await self.list_block_children(page_id):
            if block.get("type") != "child_database":
                continue
            title = (block.get("child_database") or {}).get("title")
            if title and title not in index:
                index[title] = block["id"]
        logger.debug(f"Página {page_id}: {len(index)} bases de datos hijas")
        return index
