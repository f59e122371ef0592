'''
Scores computed from a :class:`note_eval.result.MatchResult`.

Metrics
-------

* :func:`precision_recall_f1`: note precision, recall and F-measure from the
  number of matches and the sizes of both note sets.
* :func:`average_overlap_ratio`: mean interval intersection-over-union of the
  matched pairs.
* :func:`velocity_metrics`: velocity-aware precision, recall and F-measure,
  plus absolute and RMS velocity errors, the Pearson correlation between
  reference and scaled estimated velocities, and percentiles of the scaled
  error.
* :func:`matching_stats`: diagnostics of 1:N matchings.
'''

import collections

import numpy as np

from . import util
from . import velocity
from .adjacency import N_DECIMALS


VELOCITY_MODES = ('threshold', 'weighted')

ERROR_PERCENTILES = (25, 50, 75, 90, 95)

NoteMetrics = collections.namedtuple('NoteMetrics', [
    'precision', 'recall', 'f_measure', 'average_overlap_ratio', 'n_correct',
    'n_ref', 'n_est', 'velocity', 'matching_stats', 'result'])

VelocityMetrics = collections.namedtuple('VelocityMetrics', [
    'mode', 'tolerance_normalized', 'tolerance_midi', 'n_velocity_correct',
    'precision', 'recall', 'f_measure', 'mean_abs_error', 'rmse',
    'mean_scaled_error', 'rmse_scaled', 'correlation', 'error_percentiles'])

MatchingStats = collections.namedtuple('MatchingStats', [
    'avg_matches_per_ref', 'max_matches_per_ref', 'refs_with_multiple_matches',
    'total_secondary_matches'])


def precision_recall_f1(n_matches, n_ref, n_est, beta=1.0):
    """Precision, recall and F-measure of a matching.

    Parameters
    ----------
    n_matches : int
        Number of matched reference notes
    n_ref : int
        Number of reference notes
    n_est : int
        Number of estimated notes
    beta : float > 0
        Weighting factor for f-measure (default value = 1.0).

    Returns
    -------
    precision : float
    recall : float
    f_measure : float
        0 when both precision and recall are 0.
    """
    precision = float(n_matches) / n_est if n_est > 0 else 0.
    recall = float(n_matches) / n_ref if n_ref > 0 else 0.
    return precision, recall, util.f_measure(precision, recall, beta=beta)


def average_overlap_ratio(matches):
    """Mean overlap ratio of the primary (best) estimate of every match; 0
    when there are no matches."""
    if len(matches) == 0:
        return 0.
    return float(np.mean([m.overlap_ratio.first() for m in matches]))


def percentiles(values, q=ERROR_PERCENTILES):
    """Percentiles with linear interpolation between the two bracketing
    sorted samples.

    Returns
    -------
    percentiles : collections.OrderedDict
        Maps each requested percentile to its value; all zeros for an empty
        input.
    """
    if len(values) == 0:
        return collections.OrderedDict((p, 0.) for p in q)
    computed = np.percentile(np.asarray(values, dtype=float), q)
    return collections.OrderedDict(
        (p, float(v)) for p, v in zip(q, computed))


def pearson_correlation(x, y):
    """Pearson correlation coefficient; 0 when either input is constant or
    empty."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.shape != y.shape or x.size == 0:
        return 0.
    x_centered = x - np.mean(x)
    y_centered = y - np.mean(y)
    denominator = np.sqrt(np.sum(x_centered**2) * np.sum(y_centered**2))
    if denominator == 0:
        return 0.
    return float(np.sum(x_centered * y_centered) / denominator)


def velocity_correct(error, tolerance, mode='threshold'):
    """Whether a (scaled) velocity error is acceptable.

    In ``'threshold'`` mode the error must not exceed ``tolerance``.  In
    ``'weighted'`` mode the score ``max(0, 1 - error / tolerance)`` must
    reach 0.5.
    """
    if mode == 'threshold':
        return bool(np.around(error, decimals=N_DECIMALS) <= tolerance)
    if mode == 'weighted':
        score = max(0., 1. - error / max(1e-12, tolerance))
        return score >= 0.5
    raise ValueError('velocity mode must be one of {}, not '
                     '{!r}'.format(VELOCITY_MODES, mode))


def velocity_metrics(matches, n_ref, tolerance=0.1, mode='threshold',
                     scaling=None, beta=1.0):
    """Velocity statistics over matched notes.

    Only matches whose reference note and primary estimated note both carry a
    velocity contribute errors.  Errors are measured between the (scaled)
    estimated velocity and the reference velocity expressed in the same
    space as the scaling fit.

    Parameters
    ----------
    matches : list of Match
        Matches, as in :attr:`MatchResult.matches`
    n_ref : int
        Number of reference notes
    tolerance : float > 0
        Velocity tolerance, in normalized units
    mode : str
        ``'threshold'`` or ``'weighted'``; see :func:`velocity_correct`
    scaling : VelocityScaling or None
        Scaling applied to the estimated velocities, if any
    beta : float > 0
        Weighting factor for f-measure

    Returns
    -------
    metrics : VelocityMetrics or None
        ``None`` when no match carries velocities on both sides.
    """
    if mode not in VELOCITY_MODES:
        raise ValueError('velocity mode must be one of {}, not '
                         '{!r}'.format(VELOCITY_MODES, mode))

    ref_values, scaled_values, raw_errors, scaled_errors = [], [], [], []
    for m in matches:
        if m.ref_velocity is None or m.est_velocity is None:
            continue
        est = m.est_velocity.first()
        if est is None:
            continue
        scaled = m.scaled_est_velocity.first()
        if scaling is not None:
            ref = float(velocity.scaled_reference(m.ref_velocity, scaling))
        else:
            ref = m.ref_velocity
        ref_values.append(ref)
        scaled_values.append(scaled)
        raw_errors.append(abs(est - m.ref_velocity))
        scaled_errors.append(abs(scaled - ref))

    if not ref_values:
        return None

    n_correct = sum(velocity_correct(e, tolerance, mode)
                    for e in scaled_errors)
    precision = float(n_correct) / len(matches)
    recall = float(n_correct) / n_ref if n_ref > 0 else 0.

    raw_errors = np.asarray(raw_errors)
    scaled_errors = np.asarray(scaled_errors)

    return VelocityMetrics(
        mode=mode,
        tolerance_normalized=float(tolerance),
        tolerance_midi=float(tolerance) * 127,
        n_velocity_correct=int(n_correct),
        precision=precision,
        recall=recall,
        f_measure=util.f_measure(precision, recall, beta=beta),
        mean_abs_error=float(np.mean(raw_errors)),
        rmse=float(np.sqrt(np.mean(raw_errors**2))),
        mean_scaled_error=float(np.mean(scaled_errors)),
        rmse_scaled=float(np.sqrt(np.mean(scaled_errors**2))),
        correlation=pearson_correlation(ref_values, scaled_values),
        error_percentiles=percentiles(scaled_errors))


def matching_stats(matches):
    """Diagnostics of a 1:N matching."""
    counts = [len(m.est_index.to_list()) for m in matches]
    total = sum(counts)
    return MatchingStats(
        avg_matches_per_ref=float(total) / len(counts) if counts else 0.,
        max_matches_per_ref=max(counts) if counts else 0,
        refs_with_multiple_matches=sum(1 for c in counts if c > 1),
        total_secondary_matches=total - len(counts))
