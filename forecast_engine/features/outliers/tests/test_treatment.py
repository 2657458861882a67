"""Tests for outlier detection and winsorization."""

import numpy as np
import pytest

from forecast_engine.features.outliers.treatment import (
    OutlierReport,
    assess_data_quality,
    detect_and_treat,
)


def _report_with_count(count: int, n: int = 24) -> OutlierReport:
    return OutlierReport(
        indices=tuple(range(count)),
        original_values=tuple(float(i) for i in range(count)),
        winsorized_data=np.full(n, 100.0),
        mean=100.0,
        std=0.0,
        sensitivity=2.0,
    )


class TestLengthInvariant:
    """Winsorized output always matches the input length."""

    @pytest.mark.parametrize("n", [0, 1, 2, 3, 5, 12, 24, 37])
    def test_length_preserved(self, n: int) -> None:
        """Test len(winsorized) == len(input) for every length."""
        series = np.arange(n, dtype=np.float64) ** 2
        report = detect_and_treat(series)
        assert len(report.winsorized_data) == n

    def test_unflagged_positions_copied_unchanged(self, spike_series: np.ndarray) -> None:
        """Test only flagged positions differ from the input."""
        report = detect_and_treat(spike_series)
        unflagged = [i for i in range(len(spike_series)) if i not in report.indices]
        np.testing.assert_array_equal(report.winsorized_data[unflagged], spike_series[unflagged])

    def test_input_not_mutated(self, spike_series: np.ndarray) -> None:
        """Test the caller's series is left untouched."""
        original = spike_series.copy()
        detect_and_treat(spike_series)
        np.testing.assert_array_equal(spike_series, original)


class TestDetection:
    """Tests for the mean/standard-deviation rule."""

    def test_first_pass_caps_at_mean_plus_k_sigma(self) -> None:
        """Test a single pass caps flagged points at mean + k*std."""
        series = np.array([10.0] * 9 + [50.0])
        # mean = 14, std = 12, cap = 14 + 2 * 12 = 38
        report = detect_and_treat(series, sensitivity=2.0, max_passes=1)

        assert report.indices == (9,)
        assert report.original_values == (50.0,)
        assert report.winsorized_data[9] == pytest.approx(38.0)
        assert report.mean == pytest.approx(14.0)
        assert report.std == pytest.approx(12.0)

    def test_spike_is_flagged_and_capped(self, spike_series: np.ndarray) -> None:
        """Test a dominant spike is flagged and pulled to the general level."""
        report = detect_and_treat(spike_series)

        assert report.indices == (12,)
        assert report.original_values == (10_000.0,)
        assert report.winsorized_data[12] == pytest.approx(100.0, abs=1e-3)

    def test_low_outlier_capped_from_below(self) -> None:
        """Test points below the mean are capped at mean - k*std."""
        series = np.array([100.0] * 11 + [0.0])
        report = detect_and_treat(series)

        assert 11 in report.indices
        assert report.winsorized_data[11] > 0.0

    def test_higher_sensitivity_flags_fewer_points(self, noisy_series: np.ndarray) -> None:
        """Test sensitivity is a threshold: larger values flag no more points."""
        loose = detect_and_treat(noisy_series, sensitivity=1.5, max_passes=500)
        strict = detect_and_treat(noisy_series, sensitivity=3.0, max_passes=500)
        assert strict.count <= loose.count

    def test_invalid_sensitivity_falls_back_to_default(self) -> None:
        """Test a non-positive sensitivity is replaced and reported."""
        report = detect_and_treat([1.0, 2.0, 3.0], sensitivity=-1.0)

        assert report.sensitivity == 2.0
        assert report.warnings


class TestDegenerateInput:
    """Tests for series that cannot contain outliers."""

    def test_constant_series_has_no_outliers(self) -> None:
        """Test zero standard deviation flags nothing."""
        report = detect_and_treat(np.full(24, 100.0))
        assert report.count == 0
        assert report.treated is False

    def test_all_zero_series_has_no_outliers(self) -> None:
        """Test an all-zero series degrades to no outliers."""
        report = detect_and_treat([0.0] * 24)
        assert report.count == 0
        np.testing.assert_array_equal(report.winsorized_data, np.zeros(24))

    def test_single_point_returned_unchanged(self) -> None:
        """Test fewer than two points returns the input unchanged."""
        report = detect_and_treat([42.0])
        assert report.count == 0
        assert list(report.winsorized_data) == [42.0]

    def test_empty_series(self) -> None:
        """Test an empty series never raises."""
        report = detect_and_treat([])
        assert report.count == 0
        assert len(report.winsorized_data) == 0

    def test_winsorized_data_is_read_only(self) -> None:
        """Test the treated copy cannot be mutated by callers."""
        report = detect_and_treat([1.0, 2.0, 3.0])
        with pytest.raises(ValueError):
            report.winsorized_data[0] = 99.0


class TestIdempotence:
    """Treating a treated series flags nothing further."""

    def test_spike_treatment_is_idempotent(self, spike_series: np.ndarray) -> None:
        """Test second treatment of a spike series flags zero outliers."""
        first = detect_and_treat(spike_series)
        second = detect_and_treat(first.winsorized_data)

        assert second.count == 0
        np.testing.assert_array_equal(second.winsorized_data, first.winsorized_data)

    @pytest.mark.parametrize("sensitivity", [1.5, 2.0, 2.5])
    def test_noisy_treatment_is_idempotent(
        self, noisy_series: np.ndarray, sensitivity: float
    ) -> None:
        """Test idempotence on noisy data at several sensitivities."""
        first = detect_and_treat(noisy_series, sensitivity=sensitivity, max_passes=500)
        second = detect_and_treat(
            first.winsorized_data, sensitivity=sensitivity, max_passes=500
        )
        assert second.count == 0


class TestImpact:
    """Tests for outlier impact classification."""

    @pytest.mark.parametrize(
        ("count", "expected"),
        [(0, "low"), (1, "medium"), (2, "medium"), (3, "high"), (7, "high")],
    )
    def test_impact_by_count(self, count: int, expected: str) -> None:
        """Test more than two outliers is high impact, one or two medium."""
        assert _report_with_count(count).impact == expected


class TestDataQuality:
    """Tests for history quality assessment."""

    def test_constant_series_is_high_quality(self) -> None:
        """Test no outliers and no dispersion is high quality."""
        assert assess_data_quality(detect_and_treat(np.full(24, 100.0))) == "high"

    def test_moderate_dispersion_is_medium_quality(self) -> None:
        """Test a coefficient of variation of 0.5 is medium quality."""
        series = np.tile([50.0, 150.0], 6)
        assert assess_data_quality(detect_and_treat(series)) == "medium"

    def test_high_dispersion_is_low_quality(self) -> None:
        """Test a coefficient of variation of 0.9 is low quality."""
        series = np.tile([10.0, 190.0], 6)
        assert assess_data_quality(detect_and_treat(series)) == "low"

    def test_many_outliers_is_low_quality(self) -> None:
        """Test an outlier share of 20% or more cannot be high or medium."""
        report = _report_with_count(5, n=24)
        assert assess_data_quality(report) == "low"

    def test_all_zero_is_low_quality(self) -> None:
        """Test a zero mean is low quality."""
        assert assess_data_quality(detect_and_treat([0.0] * 12)) == "low"
