"""Forecasting service: the caller-side wrapper around the orchestrator.

Orchestrates:
- Running the ForecastOrchestrator for a validated request
- Memoizing results keyed by the request hash

The engine itself holds no state; the cache lives here, with the caller.
Identical requests produce bit-identical results, so serving a cached
result is indistinguishable from recomputing it.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from functools import lru_cache

import structlog

from forecast_engine.core.config import Settings, get_settings
from forecast_engine.features.forecasting.orchestrator import ForecastOrchestrator
from forecast_engine.features.forecasting.schemas import ForecastRequest, ForecastResult

logger = structlog.get_logger()


class ForecastCache:
    """Thread-safe LRU cache of ForecastResults keyed by request hash.

    Attributes:
        max_size: Maximum number of cached results (0 disables caching).
    """

    def __init__(self, max_size: int) -> None:
        self.max_size = max(0, max_size)
        self._entries: OrderedDict[str, ForecastResult] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> ForecastResult | None:
        """Return the cached result and mark it most recently used."""
        with self._lock:
            result = self._entries.get(key)
            if result is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return result

    def put(self, key: str, result: ForecastResult) -> None:
        """Store a result, evicting the least recently used entry if full."""
        if self.max_size == 0:
            return
        with self._lock:
            self._entries[key] = result
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        """Drop every cached result."""
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ForecastingService:
    """Service for producing seasonal forecasts from API requests.

    CRITICAL: All operations use Settings for reproducibility.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the forecasting service.

        Args:
            settings: Engine settings (defaults to get_settings()).
        """
        self.settings = settings or get_settings()
        self.orchestrator = ForecastOrchestrator(self.settings)
        self.cache = ForecastCache(self.settings.forecast_cache_size)

    def forecast(self, request: ForecastRequest) -> ForecastResult:
        """Forecast a series, serving repeated requests from the cache.

        Args:
            request: Validated forecast request.

        Returns:
            ForecastResult for the request.
        """
        key = request.request_hash()
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("forecasting.cache_hit", request_hash=key[:16])
            return cached

        start_time = time.perf_counter()
        result = self.orchestrator.run(
            request.historical_series,
            current_period_partial=request.current_period_partial,
            target_horizon=request.forecast_horizon,
            manual_parameters=request.manual_parameters,
            season_length=request.season_length,
        )
        self.cache.put(key, result)

        logger.info(
            "forecasting.forecast_computed",
            request_hash=key[:16],
            n_observations=len(request.historical_series),
            cache_size=len(self.cache),
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )
        return result


@lru_cache
def get_forecasting_service() -> ForecastingService:
    """Get the process-wide forecasting service (shared cache)."""
    return ForecastingService()
