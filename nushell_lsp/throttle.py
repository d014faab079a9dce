"""
throttle.py - Throttle de validação

Propósito:
    Limita a frequência do `nu --ide-check` durante rajadas de edição:
    se a última validação bem-sucedida terminou há menos de 500ms, a
    nova é descartada em silêncio.

Notas de implementação:
    - Relógio único por sessão (não por documento)
    - Marca o instante de conclusão, não de início
    - Throttle, não debounce: não há validação garantida após a última edição
    - didOpen valida diretamente, sem passar pelo throttle
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

THROTTLE_INTERVAL = timedelta(milliseconds=500)


class ValidationThrottle:
    """Portão de intervalo mínimo entre validações."""

    def __init__(
        self,
        interval: timedelta = THROTTLE_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interval = interval
        self.clock = clock
        self._lock = threading.Lock()
        self._last_validated = clock()

    @property
    def last_validated(self) -> float:
        with self._lock:
            return self._last_validated

    def should_skip(self) -> bool:
        elapsed = self.clock() - self.last_validated
        return elapsed < self.interval.total_seconds()

    async def throttled_validate(
        self, uri: str, validate: Callable[[str], Awaitable[None]]
    ) -> bool:
        """
        Valida `uri` se o intervalo mínimo já passou.

        Returns:
            True se a validação rodou, False se foi descartada

        Raises:
            Qualquer erro de `validate`; nesse caso o relógio não avança
        """
        if self.should_skip():
            logger.debug(f"Validação descartada pelo throttle: {uri}")
            return False

        await validate(uri)

        with self._lock:
            self._last_validated = self.clock()
        return True
