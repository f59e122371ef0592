"""
Unit tests for the scores computed from a match result
"""

import numpy as np
import pytest

from note_eval import metrics
from note_eval import velocity
from note_eval.result import Match, Single, Multiple


A_TOL = 1e-12


def _match(ref_index, est_index, overlap_ratio=1.0, ref_velocity=None,
           est_velocity=None, scaled=None):
    if isinstance(est_index, list):
        est_index = Multiple(tuple(est_index))
        overlap_ratio = Multiple((overlap_ratio,) * len(est_index.values))
    else:
        est_index = Single(est_index)
        overlap_ratio = Single(overlap_ratio)
    return Match(ref_index=ref_index, est_index=est_index, ref_pitch=60,
                 est_pitch=None, ref_onset=0.0, est_onset=None,
                 onset_diff=None, offset_diff=None, pitch_diff=None,
                 overlap_ratio=overlap_ratio, ref_velocity=ref_velocity,
                 est_velocity=(Single(est_velocity)
                               if est_velocity is not None else None),
                 scaled_est_velocity=(Single(scaled)
                                      if scaled is not None else None),
                 velocity_diff=None, confidence=1.0)


@pytest.mark.parametrize('n_matches, n_ref, n_est, expected', [
    (3, 4, 5, (0.6, 0.75, 2 * 0.6 * 0.75 / 1.35)),
    (0, 4, 5, (0.0, 0.0, 0.0)),
    (0, 0, 5, (0.0, 0.0, 0.0)),
    (0, 4, 0, (0.0, 0.0, 0.0)),
])
def test_precision_recall_f1(n_matches, n_ref, n_est, expected):
    scores = metrics.precision_recall_f1(n_matches, n_ref, n_est)
    assert np.allclose(scores, expected, atol=A_TOL)


def test_average_overlap_ratio():
    matches = [_match(0, 0, 0.5), _match(1, 1, 1.0)]
    assert np.isclose(metrics.average_overlap_ratio(matches), 0.75)
    assert metrics.average_overlap_ratio([]) == 0.0


def test_percentiles():
    values = np.arange(11, dtype=float)
    result = metrics.percentiles(values, (25, 50, 95))
    assert list(result.keys()) == [25, 50, 95]
    assert np.allclose(list(result.values()), [2.5, 5.0, 9.5])

    empty = metrics.percentiles([])
    assert list(empty.keys()) == list(metrics.ERROR_PERCENTILES)
    assert all(v == 0 for v in empty.values())


def test_pearson_correlation():
    assert np.isclose(metrics.pearson_correlation([1, 2, 3], [2, 4, 6]), 1.0)
    assert np.isclose(metrics.pearson_correlation([1, 2, 3], [3, 2, 1]),
                      -1.0)
    assert metrics.pearson_correlation([1, 1, 1], [1, 2, 3]) == 0.0
    assert metrics.pearson_correlation([], []) == 0.0


@pytest.mark.parametrize('error, mode, expected', [
    (0.1, 'threshold', True),
    (0.10004, 'threshold', True),
    (0.11, 'threshold', False),
    (0.04, 'weighted', True),
    (0.06, 'weighted', False),
])
def test_velocity_correct(error, mode, expected):
    assert metrics.velocity_correct(error, 0.1, mode) == expected


def test_velocity_correct_bad_mode():
    with pytest.raises(ValueError):
        metrics.velocity_correct(0.0, 0.1, 'fuzzy')


def test_velocity_metrics():
    scaling = velocity.VelocityScaling(1.0, 0.0, 0.0, 1.0)
    matches = [_match(0, 0, ref_velocity=0.5, est_velocity=0.5, scaled=0.5),
               _match(1, 1, ref_velocity=0.5, est_velocity=0.8, scaled=0.8),
               _match(2, 2)]
    result = metrics.velocity_metrics(matches, n_ref=4, scaling=scaling)

    assert result.n_velocity_correct == 1
    # Precision counts every note match, recall every reference note
    assert np.isclose(result.precision, 1 / 3.0)
    assert np.isclose(result.recall, 0.25)
    assert np.isclose(result.mean_abs_error, 0.15)
    assert np.isclose(result.rmse, np.sqrt(0.09 / 2))
    assert np.isclose(result.mean_scaled_error, 0.15)
    assert np.isclose(result.tolerance_midi, 12.7)
    assert result.correlation == 0.0


def test_velocity_metrics_without_velocities():
    assert metrics.velocity_metrics([_match(0, 0)], n_ref=1) is None
    assert metrics.velocity_metrics([], n_ref=1) is None


def test_velocity_metrics_bad_mode():
    with pytest.raises(ValueError):
        metrics.velocity_metrics([], n_ref=1, mode='fuzzy')


def test_matching_stats():
    matches = [_match(0, [0, 1, 2]), _match(1, 3), _match(2, [4, 5])]
    stats = metrics.matching_stats(matches)
    assert np.isclose(stats.avg_matches_per_ref, 2.0)
    assert stats.max_matches_per_ref == 3
    assert stats.refs_with_multiple_matches == 2
    assert stats.total_secondary_matches == 3

    empty = metrics.matching_stats([])
    assert empty == metrics.MatchingStats(0., 0, 0, 0)
