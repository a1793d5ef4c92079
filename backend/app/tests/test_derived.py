import pytest

from app.engine.derived import PERIOD_LABELS, compute_intensity, to_twelve


def test_zero_production_is_guarded():
    result = compute_intensity([100], [0])
    assert result.intensity[0] == 100.0
    assert result.intensity[1:] == [0.0] * 11


def test_intensity_is_rounded_to_four_places():
    result = compute_intensity([10], [3])
    assert result.intensity[0] == 3.3333


def test_to_twelve_pads_and_zero_fills_non_numbers():
    assert to_twelve([1, "2", None, float("nan")]) == [1.0, 0.0, 0.0, 0.0] + [0.0] * 8
    assert len(to_twelve(list(range(20)))) == 12
    assert to_twelve(None) == [0.0] * 12


def test_baseline_current_and_self_benchmark():
    energy = [0, 200, 300, 400, 0, 500]
    production = [1, 100, 100, 100, 1, 100]
    result = compute_intensity(energy, production)
    # non-zero intensities: 2, 3, 4, 5
    assert result.baseline == pytest.approx(3.0)
    assert result.current == 5.0
    assert result.benchmark == pytest.approx(3.0)
    assert result.delta == pytest.approx(2.0)
    assert result.percent == pytest.approx(200 / 3)


def test_external_benchmark_is_preferred():
    result = compute_intensity([100, 200], [100, 100], benchmark=4.0)
    assert result.benchmark == 4.0
    assert result.delta == pytest.approx(-2.0)
    assert result.percent == pytest.approx(-50.0)


def test_zero_benchmark_leaves_percent_unknown():
    result = compute_intensity([100], [100], benchmark=0)
    assert result.delta == pytest.approx(1.0)
    assert result.percent is None


def test_all_zero_series_is_empty_and_unknown():
    result = compute_intensity([], [])
    assert result.is_empty is True
    assert result.baseline is None
    assert result.current is None
    assert result.benchmark is None
    assert result.delta is None
    assert result.percent is None
    assert result.labels == PERIOD_LABELS


def test_latest_values_come_from_last_period():
    energy = [0] * 11 + [120]
    production = [0] * 11 + [40]
    result = compute_intensity(energy, production)
    assert result.latest_energy_use == 120
    assert result.latest_production == 40
    assert result.latest_intensity == 3.0
    assert result.is_empty is False
