"""Grid search over Holt-Winters smoothing weights.

Each candidate is scored by fitting on all but the last ``k`` points and
measuring MAE on the held-out tail, where
``k = min(holdout_max, floor(holdout_fraction * n))``.

The search space is an explicit list of candidates, so scoring is a plain
map that can run sequentially or through joblib without changing the
result. Ties go to the first candidate in alpha -> beta -> gamma order.
"""

from __future__ import annotations

import math
import time
from collections.abc import Sequence
from dataclasses import dataclass
from itertools import product
from typing import Any, Literal

import numpy as np
import structlog
from joblib import Parallel, delayed  # type: ignore[import-untyped]

from forecast_engine.core.config import Settings, get_settings
from forecast_engine.core.exceptions import ForecastEngineError
from forecast_engine.features.forecasting.holt_winters import FittedModel, fit_and_forecast
from forecast_engine.features.forecasting.schemas import ModelParameters

logger = structlog.get_logger()

FloatArray = np.ndarray[Any, np.dtype[np.floating[Any]]]


@dataclass(frozen=True)
class SearchResult:
    """Outcome of a parameter search.

    Attributes:
        parameters: Selected smoothing weights.
        fitted: Model fitted on the full series with the selected weights.
        holdout_mae: Holdout MAE of the winner (None when exhausted).
        n_candidates: Size of the search space.
        n_failed: Candidates that could not be scored.
        source: ``search`` for a scored winner, ``default`` for the fallback.
    """

    parameters: ModelParameters
    fitted: FittedModel
    holdout_mae: float | None
    n_candidates: int
    n_failed: int
    source: Literal["search", "default"] = "search"

    @property
    def exhausted(self) -> bool:
        """Whether every candidate failed and the default triple was used."""
        return self.source == "default"


def build_search_space(
    alpha_grid: Sequence[float],
    beta_grid: Sequence[float],
    gamma_grid: Sequence[float],
) -> list[ModelParameters]:
    """Cross product of the grids in alpha -> beta -> gamma iteration order."""
    return [
        ModelParameters(alpha=alpha, beta=beta, gamma=gamma)
        for alpha, beta, gamma in product(alpha_grid, beta_grid, gamma_grid)
    ]


def holdout_size(n_observations: int, holdout_max: int = 3, holdout_fraction: float = 0.2) -> int:
    """Number of trailing points held out for scoring."""
    return min(holdout_max, math.floor(holdout_fraction * n_observations))


def score_candidate(
    train: FloatArray,
    test: FloatArray,
    parameters: ModelParameters,
    season_length: int,
) -> float | None:
    """Holdout MAE of one candidate.

    Args:
        train: Points the candidate is fitted on.
        test: Held-out points the forecast is compared against.
        parameters: Candidate smoothing weights.
        season_length: Periods per seasonal cycle.

    Returns:
        MAE over the holdout, or None if the candidate cannot be fitted.
    """
    if len(test) == 0:
        return None
    try:
        fitted = fit_and_forecast(train, season_length, len(test), *parameters.as_tuple())
    except (ForecastEngineError, ValueError):
        return None
    mae = float(np.mean(np.abs(test - fitted.forecast)))
    return mae if math.isfinite(mae) else None


class ParameterSearch:
    """Select Holt-Winters smoothing weights by holdout grid search.

    Attributes:
        season_length: Periods per seasonal cycle.
        candidates: Explicit search space.
        n_jobs: Worker threads for scoring (1 = sequential).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        season_length: int | None = None,
        alpha_grid: Sequence[float] | None = None,
        beta_grid: Sequence[float] | None = None,
        gamma_grid: Sequence[float] | None = None,
        n_jobs: int | None = None,
    ) -> None:
        """Initialize the search.

        Args:
            settings: Engine settings (defaults to get_settings()).
            season_length: Periods per seasonal cycle.
            alpha_grid: Level weights to try.
            beta_grid: Trend weights to try.
            gamma_grid: Seasonal weights to try.
            n_jobs: Worker threads for scoring.
        """
        self.settings = settings or get_settings()
        self.season_length = season_length or self.settings.forecast_season_length
        self.candidates = build_search_space(
            alpha_grid or self.settings.forecast_alpha_grid,
            beta_grid or self.settings.forecast_beta_grid,
            gamma_grid or self.settings.forecast_gamma_grid,
        )
        self.n_jobs = n_jobs if n_jobs is not None else self.settings.forecast_search_n_jobs

    def _score_all(self, train: FloatArray, test: FloatArray) -> list[float | None]:
        if self.n_jobs == 1:
            return [
                score_candidate(train, test, candidate, self.season_length)
                for candidate in self.candidates
            ]
        scores: list[float | None] = Parallel(n_jobs=self.n_jobs, prefer="threads")(
            delayed(score_candidate)(train, test, candidate, self.season_length)
            for candidate in self.candidates
        )
        return scores

    def run(self, series: Sequence[float] | FloatArray, horizon: int = 1) -> SearchResult:
        """Search the grid and fit the winner on the full series.

        Args:
            series: Chronological observations.
            horizon: Steps the returned model forecasts.

        Returns:
            SearchResult with the selected weights and fitted model.

        Raises:
            InsufficientDataError: If even the default triple cannot be
                fitted on the full series.
        """
        start_time = time.perf_counter()
        y = np.asarray(series, dtype=np.float64)
        k = holdout_size(
            len(y),
            self.settings.forecast_search_holdout_max,
            self.settings.forecast_search_holdout_fraction,
        )

        if k >= 1:
            train, test = y[:-k], y[-k:]
            scores = self._score_all(train, test)
        else:
            scores = [None] * len(self.candidates)

        best_index: int | None = None
        best_mae = math.inf
        for index, score in enumerate(scores):
            if score is not None and score < best_mae:
                best_index = index
                best_mae = score

        n_failed = sum(1 for score in scores if score is None)

        if best_index is None:
            parameters = ModelParameters.defaults(self.settings)
            logger.warning(
                "forecasting.search_exhausted",
                n_observations=len(y),
                holdout=k,
                n_candidates=len(self.candidates),
                season_length=self.season_length,
                fallback=parameters.as_tuple(),
            )
            fitted = fit_and_forecast(y, self.season_length, horizon, *parameters.as_tuple())
            return SearchResult(
                parameters=parameters,
                fitted=fitted,
                holdout_mae=None,
                n_candidates=len(self.candidates),
                n_failed=n_failed,
                source="default",
            )

        parameters = self.candidates[best_index]
        fitted = fit_and_forecast(y, self.season_length, horizon, *parameters.as_tuple())

        logger.info(
            "forecasting.search_completed",
            n_observations=len(y),
            holdout=k,
            n_candidates=len(self.candidates),
            n_failed=n_failed,
            alpha=parameters.alpha,
            beta=parameters.beta,
            gamma=parameters.gamma,
            holdout_mae=best_mae,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )

        return SearchResult(
            parameters=parameters,
            fitted=fitted,
            holdout_mae=best_mae,
            n_candidates=len(self.candidates),
            n_failed=n_failed,
        )


def search_best_parameters(
    series: Sequence[float] | FloatArray,
    season_length: int,
    horizon: int = 1,
) -> tuple[ModelParameters, FittedModel]:
    """Select smoothing weights for ``series`` with the configured grids.

    Returns:
        Tuple of (selected parameters, model fitted on the full series).
    """
    result = ParameterSearch(season_length=season_length).run(series, horizon)
    return result.parameters, result.fitted
