import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

TOTAL_KEY = "total_time_ms"


class TimingTracker:
    """
    Rastreador de métricas de tiempo para las etapas de una solicitud.

    Cada etapa se mide con measure() y queda registrada en milisegundos;
    el total se calcula siempre a partir de las etapas registradas.
    """

    def __init__(self, timings: Optional[Dict[str, float]] = None):
        self.timings: Dict[str, float] = {
            name: value for name, value in (timings or {}).items() if name != TOTAL_KEY
        }

    @contextmanager
    def measure(self, operation: str) -> Iterator[None]:
        """Mide el bloque y lo registra como 'operation', aunque el bloque falle."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.add_timing(operation, (time.perf_counter() - start) * 1000)

    def add_timing(self, operation: str, elapsed_ms: float):
        """Agrega una métrica de tiempo."""
        if operation == TOTAL_KEY:
            raise ValueError(f"'{TOTAL_KEY}' is computed, it cannot be recorded")
        self.timings[operation] = elapsed_ms

    def get_timings(self) -> Dict[str, float]:
        """Retorna todas las métricas registradas, incluyendo el total."""
        timings = self.timings.copy()
        timings[TOTAL_KEY] = self.get_total_time()
        return timings

    def get_total_time(self) -> float:
        """Retorna el tiempo total de todas las operaciones."""
        return sum(self.timings.values())
