"""
Combinadores de timeout y reintento para llamadas remotas.

- with_timeout: corre la operación contra un límite fijo; el timeout se
  convierte en la excepción que indique el llamador.
- with_retry: reintenta con backoff lineal (intento * base). Si la
  excepción trae `retry_after` (429), se espera max(backoff, retry_after).
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from loguru import logger

Operation = Callable[[], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]


async def with_timeout(
    operation: Operation,
    timeout: float,
    *,
    on_timeout: Optional[Callable[[float], Exception]] = None,
) -> Any:
    """Ejecuta `operation()` con un timeout fijo por intento."""
    try:
        return await asyncio.wait_for(operation(), timeout=timeout)
    except asyncio.TimeoutError:
        if on_timeout is None:
            raise
        raise on_timeout(timeout) from None


def linear_backoff(attempt: int, base_delay: float) -> float:
    """Espera antes del reintento N (1-based): N * base."""
    return attempt * base_delay


async def with_retry(
    operation: Operation,
    *,
    max_retries: int,
    base_delay: float,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Sleep = asyncio.sleep,
    label: str = "operación",
) -> Any:
    """
    Ejecuta `operation()` hasta `max_retries + 1` veces.

    Propaga la última excepción cuando se agotan los intentos.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except retry_on as e:
            if attempt > max_retries:
                raise
            delay = linear_backoff(attempt, base_delay)
            retry_after = getattr(e, "retry_after", None)
            if retry_after:
                delay = max(delay, float(retry_after))
            logger.warning(
                f"{label} falló (intento {attempt}/{max_retries + 1}): {e}. "
                f"Reintentando en {delay:.1f}s"
            )
            await sleep(delay)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Política de reintento aplicada a toda escritura remota.

    Por defecto: timeout de 30s por intento, 2 reintentos (3 intentos en
    total) y backoff lineal de 1s por intento.
    """

    timeout: float = 30.0
    max_retries: int = 2
    base_delay: float = 1.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    timeout_error: Optional[Callable[[float], Exception]] = None
    sleep: Sleep = asyncio.sleep

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    async def run(self, operation: Operation, *, label: str = "operación") -> Any:
        """Compone with_timeout dentro de with_retry alrededor de `operation`."""

        async def attempt() -> Any:
            return await with_timeout(operation, self.timeout, on_timeout=self.timeout_error)

        return await with_retry(
            attempt,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            retry_on=self.retry_on,
            sleep=self.sleep,
            label=label,
        )
