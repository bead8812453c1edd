"""Tests for significance and uniformity tests."""

import numpy as np
import pytest

from scenario_sim._warnings import DataQualityWarning
from scenario_sim.statistical_tests import (
    ChiSquareCriticalValue,
    SignificanceTest,
    chi_square_uniformity_test,
    erf,
    normal_cdf,
    welch_t_test,
)


class TestNormalApproximation:
    """Test erf and normal CDF approximations."""

    def test_erf_values(self):
        """erf is odd and close to reference values."""
        assert erf(0.0) == pytest.approx(0.0, abs=1e-7)
        assert erf(1.0) == pytest.approx(0.8427007929, abs=1e-6)
        assert erf(-1.0) == pytest.approx(-erf(1.0))

    def test_normal_cdf(self):
        """Normal CDF matches standard quantiles."""
        assert normal_cdf(0.0) == pytest.approx(0.5, abs=1e-7)
        assert normal_cdf(1.96) == pytest.approx(0.975, abs=1e-3)
        assert normal_cdf(-1.96) == pytest.approx(0.025, abs=1e-3)


class TestWelchTTest:
    """Test the two-sample Welch t-test."""

    def test_identical_samples(self):
        """Identical samples give t = 0 and are not significant."""
        sample = np.random.default_rng(0).normal(size=200)
        result = welch_t_test(sample, sample)
        assert result.test_type is SignificanceTest.TTEST
        assert result.statistic_value == pytest.approx(0.0)
        assert result.p_value == pytest.approx(1.0, abs=1e-6)
        assert not result.is_significant

    def test_shifted_samples_significant(self):
        """A clear mean shift is detected."""
        rng = np.random.default_rng(1)
        a = rng.normal(1.0, 1.0, 500)
        b = rng.normal(0.0, 1.0, 500)
        result = welch_t_test(a, b)
        assert result.statistic_value > 0
        assert result.is_significant
        assert result.confidence == pytest.approx((1 - result.p_value) * 100)

    def test_zero_variance_warns(self):
        """Constant samples report t = 0, p = 1 with a warning."""
        with pytest.warns(DataQualityWarning):
            result = welch_t_test([1.0, 1.0, 1.0], [1.0, 1.0])
        assert result.statistic_value == 0.0
        assert result.p_value == 1.0

    def test_too_few_values(self):
        """Samples need at least two values."""
        with pytest.raises(ValueError):
            welch_t_test([1.0], [1.0, 2.0])

    def test_summary(self):
        """Summary mentions the test and verdict."""
        rng = np.random.default_rng(2)
        summary = welch_t_test(rng.normal(size=50), rng.normal(size=50)).summary()
        assert summary.startswith("ttest")


class TestChiSquareUniformity:
    """Test the binned chi-square uniformity check."""

    def test_perfectly_uniform(self):
        """Evenly spread samples pass with chi-square 0."""
        samples = (np.arange(10_000) + 0.5) / 10_000
        result = chi_square_uniformity_test(samples)
        assert result.chi_square == pytest.approx(0.0)
        assert result.degrees_of_freedom == 9
        assert result.critical_value == 16.919
        assert result.p_value == 0.95
        assert result.exact_p_value == pytest.approx(1.0)
        assert result.is_valid

    def test_concentrated_samples_fail(self):
        """Samples in a single bin fail the test."""
        result = chi_square_uniformity_test(np.full(1000, 0.05))
        assert result.p_value == 0.01
        assert result.exact_p_value < 1e-6
        assert not result.is_valid

    def test_invalid_inputs(self):
        """Empty samples and fewer than two bins are rejected."""
        with pytest.raises(ValueError):
            chi_square_uniformity_test([])
        with pytest.raises(ValueError):
            chi_square_uniformity_test([0.5], bins=1)

    def test_critical_value_table(self):
        """Tabulated degrees of freedom resolve; others fall back to 9 df."""
        assert ChiSquareCriticalValue.for_degrees_of_freedom(8) == 15.507
        assert ChiSquareCriticalValue.for_degrees_of_freedom(10) == 18.307
        assert ChiSquareCriticalValue.for_degrees_of_freedom(3) == 16.919
