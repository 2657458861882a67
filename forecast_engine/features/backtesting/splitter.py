"""Walk-forward splitter for out-of-sample backtesting.

CRITICAL: Respects temporal order - no future data in training.

Expanding window with a fixed step (min_train=6, step=1, n=9):
    Fold 0: [0..6) train, [6..7) test
    Fold 1: [0..7) train, [7..8) test   (training grows)
    Fold 2: [0..8) train, [8..9) test

The last fold is shorter than ``step`` when the series length is not a
multiple of it, so every point after the first prefix is forecast exactly once.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import numpy as np

from forecast_engine.features.backtesting.schemas import WalkForwardConfig


@dataclass
class WalkForwardSplit:
    """A single walk-forward fold.

    Attributes:
        fold_index: Index of the fold (0-based).
        train_indices: Prefix positions used for fitting.
        test_indices: Positions forecast in this fold.
    """

    fold_index: int
    train_indices: np.ndarray[Any, np.dtype[np.intp]]
    test_indices: np.ndarray[Any, np.dtype[np.intp]]

    @property
    def train_end(self) -> int:
        """Exclusive end of the training prefix."""
        return int(self.train_indices[-1]) + 1 if len(self.train_indices) else 0


class WalkForwardSplitter:
    """Generate expanding-window folds that only ever grow forward in time.

    Attributes:
        config: Walk-forward configuration.
    """

    def __init__(self, config: WalkForwardConfig) -> None:
        """Initialize the splitter.

        Args:
            config: Walk-forward configuration.
        """
        self.config = config

    def n_folds(self, n_samples: int) -> int:
        """Number of folds produced for a series of the given length."""
        remaining = n_samples - self.config.min_train_size
        if remaining <= 0:
            return 0
        return -(-remaining // self.config.step)

    def split(self, n_samples: int) -> Iterator[WalkForwardSplit]:
        """Generate walk-forward folds.

        Args:
            n_samples: Length of the series.

        Yields:
            WalkForwardSplit objects in chronological order. Nothing is
            yielded when the series is not longer than the first prefix.
        """
        step = self.config.step
        train_end = self.config.min_train_size
        fold_idx = 0

        while train_end < n_samples:
            test_end = min(train_end + step, n_samples)
            yield WalkForwardSplit(
                fold_index=fold_idx,
                train_indices=np.arange(0, train_end),
                test_indices=np.arange(train_end, test_end),
            )
            train_end += step
            fold_idx += 1

    def validate_no_leakage(self, n_samples: int) -> bool:
        """Validate that no fold trains on data at or after its forecasts.

        Checks that for all folds:
        1. Every training index is below every test index
        2. Training starts at the beginning of the series
        3. Consecutive folds never shrink the training prefix

        Args:
            n_samples: Length of the series.

        Returns:
            True if no leakage detected, False otherwise.
        """
        previous_train_end = 0
        for split in self.split(n_samples):
            if len(split.train_indices) == 0 or len(split.test_indices) == 0:
                return False
            if int(split.train_indices.max()) >= int(split.test_indices.min()):
                return False
            if int(split.train_indices[0]) != 0:
                return False
            if split.train_end < previous_train_end:
                return False
            previous_train_end = split.train_end

        return True
