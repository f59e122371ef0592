'''
Construction of the candidate graph between reference and estimated notes.

A reference note ``i`` and an estimated note ``j`` are joined by an edge when

1. their onsets differ by at most ``onset_tolerance`` seconds,
2. their pitches differ by at most ``pitch_tolerance`` semitones (or, in
   chroma mode, by at most ``pitch_tolerance`` semitones modulo the octave),
3. if ``offset_ratio`` is not ``None``, their offsets differ by at most
   ``max(offset_min_tolerance, offset_ratio * ref_duration[i])``, and
4. if a velocity tolerance is given, their normalized velocities differ by at
   most that tolerance.  Pairs where either velocity is missing are kept or
   dropped according to the ``missing_velocity`` policy.

Every admissible edge also receives a quality weight in [0, 1], used by the
weighted and 1:N matching modes to rank candidates.
'''

import warnings

import numpy as np

from . import util


# The number of decimals to keep for onset/offset threshold checks
N_DECIMALS = 4

# Composite edge quality weights
ONSET_WEIGHT = 0.3
PITCH_WEIGHT = 0.3
OFFSET_WEIGHT = 0.2
OVERLAP_WEIGHT = 0.1
VELOCITY_WEIGHT = 0.1

MISSING_VELOCITY_POLICIES = ('ignore', 'reject')


def _comparator(strict):
    if strict:
        return np.less
    return np.less_equal


def onset_distances(ref_intervals, est_intervals):
    """Absolute onset differences, shape=(n, m), rounded to
    :data:`N_DECIMALS`."""
    distances = np.abs(np.subtract.outer(ref_intervals[:, 0],
                                         est_intervals[:, 0]))
    # Round distances to a target precision to avoid the situation where
    # if the distance is exactly 50ms (and strict=False) it erroneously
    # doesn't match the notes because of precision issues.
    return np.around(distances, decimals=N_DECIMALS)


def offset_distances(ref_intervals, est_intervals):
    """Absolute offset differences, shape=(n, m), rounded to
    :data:`N_DECIMALS`."""
    distances = np.abs(np.subtract.outer(ref_intervals[:, 1],
                                         est_intervals[:, 1]))
    return np.around(distances, decimals=N_DECIMALS)


def pitch_distances(ref_pitches, est_pitches, chroma=False):
    """Absolute pitch differences in semitones, shape=(n, m).

    With ``chroma=True`` the distance is taken modulo the octave, i.e.
    ``min(d % 12, 12 - d % 12)``, so that octave errors cost nothing.
    """
    distances = np.abs(np.subtract.outer(np.asarray(ref_pitches, dtype=float),
                                         np.asarray(est_pitches, dtype=float)))
    if chroma:
        wrapped = np.mod(distances, 12)
        distances = np.minimum(wrapped, 12 - wrapped)
    return distances


def offset_tolerances(ref_intervals, offset_ratio, offset_min_tolerance):
    """Per-reference-note offset tolerance, shape=(n,)."""
    ref_durations = util.intervals_to_durations(ref_intervals)
    return np.maximum(offset_ratio * ref_durations, offset_min_tolerance)


def overlap_matrix(ref_intervals, est_intervals):
    """Interval intersection-over-union for every pair, shape=(n, m)."""
    intersection = np.maximum(
        0., np.minimum.outer(ref_intervals[:, 1], est_intervals[:, 1]) -
        np.maximum.outer(ref_intervals[:, 0], est_intervals[:, 0]))
    union = (np.maximum.outer(ref_intervals[:, 1], est_intervals[:, 1]) -
             np.minimum.outer(ref_intervals[:, 0], est_intervals[:, 0]))
    positive = union > 0
    return np.where(positive, intersection / np.where(positive, union, 1.), 0.)


def hit_matrix(ref_intervals, ref_pitches, est_intervals, est_pitches,
               onset_tolerance=0.05, pitch_tolerance=0.0, offset_ratio=0.2,
               offset_min_tolerance=0.05, strict=False, chroma=False):
    """Boolean matrix of pairs satisfying the onset, pitch and offset gates.

    Parameters
    ----------
    ref_intervals : np.ndarray, shape=(n,2)
        Array of reference notes time intervals (onset and offset times)
    ref_pitches : np.ndarray, shape=(n,)
        Array of reference MIDI pitches
    est_intervals : np.ndarray, shape=(m,2)
        Array of estimated notes time intervals (onset and offset times)
    est_pitches : np.ndarray, shape=(m,)
        Array of estimated MIDI pitches
    onset_tolerance : float > 0 or None
        Onset tolerance in seconds.  ``None`` disables the onset gate.
    pitch_tolerance : float >= 0 or None
        Pitch tolerance in semitones.  ``None`` disables the pitch gate.
    offset_ratio : float > 0 or None
        Fraction of the reference duration allowed as offset deviation.
        ``None`` disables the offset gate.
    offset_min_tolerance : float > 0
        Lower bound on the offset tolerance, in seconds.
    strict : bool
        Use ``<`` instead of ``<=`` for every threshold check.
    chroma : bool
        Compare pitches modulo the octave.

    Returns
    -------
    hits : np.ndarray, shape=(n, m), dtype=bool
    """
    cmp_func = _comparator(strict)
    hits = np.ones((len(ref_intervals), len(est_intervals)), dtype=bool)

    if onset_tolerance is not None:
        hits &= cmp_func(onset_distances(ref_intervals, est_intervals),
                         onset_tolerance)

    if pitch_tolerance is not None:
        hits &= cmp_func(pitch_distances(ref_pitches, est_pitches, chroma),
                         pitch_tolerance)

    if offset_ratio is not None:
        tolerances = offset_tolerances(ref_intervals, offset_ratio,
                                       offset_min_tolerance)
        hits &= cmp_func(offset_distances(ref_intervals, est_intervals),
                         tolerances.reshape(-1, 1))

    return hits


def velocity_gate(ref_velocities, est_velocities, tolerance,
                  missing_velocity='ignore', strict=False):
    """Boolean matrix of pairs whose normalized velocities agree.

    Parameters
    ----------
    ref_velocities : np.ndarray, shape=(n,)
        Normalized reference velocities, ``NaN`` where missing
    est_velocities : np.ndarray, shape=(m,)
        Normalized estimated velocities, ``NaN`` where missing
    tolerance : float > 0
        Maximum absolute velocity difference, in normalized units
    missing_velocity : str
        ``'ignore'`` keeps pairs where either velocity is missing,
        ``'reject'`` drops them.
    strict : bool
        Use ``<`` instead of ``<=``.

    Returns
    -------
    gate : np.ndarray, shape=(n, m), dtype=bool
    """
    if missing_velocity not in MISSING_VELOCITY_POLICIES:
        raise ValueError('missing_velocity must be one of {}, not '
                         '{!r}'.format(MISSING_VELOCITY_POLICIES,
                                       missing_velocity))

    differences = np.abs(np.subtract.outer(ref_velocities, est_velocities))
    missing = np.isnan(differences)
    if np.any(missing):
        warnings.warn('Velocity gating with missing velocities; affected '
                      'pairs are handled with policy '
                      '{!r}.'.format(missing_velocity))

    differences = np.around(np.where(missing, 0., differences),
                            decimals=N_DECIMALS)
    gate = _comparator(strict)(differences, tolerance)
    gate[missing] = (missing_velocity == 'ignore')
    return gate


def _sub_score(distances, tolerance):
    """``max(0, 1 - distance / tolerance)``; a zero tolerance scores 1 for an
    exact hit and 0 otherwise."""
    tolerance = np.broadcast_to(np.asarray(tolerance, dtype=float),
                                distances.shape)
    positive = tolerance > 0
    scores = np.where(positive,
                      1. - distances / np.where(positive, tolerance, 1.),
                      (distances == 0).astype(float))
    return np.maximum(scores, 0.)


def edge_weights(ref_intervals, ref_pitches, est_intervals, est_pitches,
                 hits, ref_velocities=None, est_velocities=None,
                 onset_tolerance=0.05, pitch_tolerance=0.0, offset_ratio=0.2,
                 offset_min_tolerance=0.05, chroma=False,
                 velocity_tolerance=None):
    """Composite quality of every admissible edge.

    The weight is ``0.3 * onset + 0.3 * pitch + 0.2 * offset + 0.1 * overlap
    + 0.1 * velocity`` where each term except ``overlap`` (the interval IoU)
    is ``max(0, 1 - diff / tolerance)``.  The offset term is 1 when offsets
    are not gated, and the velocity term is 1 unless velocities are gated and
    both are present.

    Returns
    -------
    weights : np.ndarray, shape=(n, m)
        Edge weights, 0 for inadmissible pairs.
    """
    onset_score = _sub_score(onset_distances(ref_intervals, est_intervals),
                             onset_tolerance)
    pitch_score = _sub_score(
        pitch_distances(ref_pitches, est_pitches, chroma), pitch_tolerance)

    if offset_ratio is not None:
        tolerances = offset_tolerances(ref_intervals, offset_ratio,
                                       offset_min_tolerance)
        offset_score = _sub_score(
            offset_distances(ref_intervals, est_intervals),
            tolerances.reshape(-1, 1))
    else:
        offset_score = np.ones(hits.shape)

    overlap_score = overlap_matrix(ref_intervals, est_intervals)

    velocity_score = np.ones(hits.shape)
    if (velocity_tolerance is not None and ref_velocities is not None and
            est_velocities is not None):
        differences = np.abs(np.subtract.outer(ref_velocities, est_velocities))
        present = ~np.isnan(differences)
        velocity_score[present] = _sub_score(differences[present],
                                             velocity_tolerance)

    weights = (ONSET_WEIGHT * onset_score +
               PITCH_WEIGHT * pitch_score +
               OFFSET_WEIGHT * offset_score +
               OVERLAP_WEIGHT * overlap_score +
               VELOCITY_WEIGHT * velocity_score)

    return np.where(hits, weights, 0.)


def adjacency_lists(hits):
    """Convert a hit matrix to per-reference lists of estimated indices, in
    ascending order."""
    return [np.flatnonzero(row).tolist() for row in hits]


def build_adjacency(ref_intervals, ref_pitches, est_intervals, est_pitches,
                    ref_velocities=None, est_velocities=None,
                    onset_tolerance=0.05, pitch_tolerance=0.0,
                    offset_ratio=0.2, offset_min_tolerance=0.05, strict=False,
                    chroma=False, velocity_tolerance=None,
                    missing_velocity='ignore'):
    """Build the admissible-edge graph between reference and estimated notes.

    Parameters
    ----------
    ref_intervals : np.ndarray, shape=(n,2)
        Array of reference notes time intervals (onset and offset times)
    ref_pitches : np.ndarray, shape=(n,)
        Array of reference MIDI pitches
    est_intervals : np.ndarray, shape=(m,2)
        Array of estimated notes time intervals (onset and offset times)
    est_pitches : np.ndarray, shape=(m,)
        Array of estimated MIDI pitches
    ref_velocities : np.ndarray, shape=(n,) or None
        Normalized reference velocities, ``NaN`` where missing
    est_velocities : np.ndarray, shape=(m,) or None
        Normalized estimated velocities, ``NaN`` where missing
    onset_tolerance : float > 0
        Onset tolerance in seconds. Default is 0.05 (50 ms).
    pitch_tolerance : float >= 0
        Pitch tolerance in semitones. Default is 0 (exact pitch).
    offset_ratio : float > 0 or None
        Offset tolerance as a fraction of the reference duration. Default is
        0.2.  ``None`` ignores offsets.
    offset_min_tolerance : float > 0
        Minimum offset tolerance in seconds. Default is 0.05.
    strict : bool
        Use ``<`` instead of ``<=`` for threshold checks.
    chroma : bool
        Compare pitches modulo the octave.
    velocity_tolerance : float > 0 or None
        Normalized velocity tolerance.  ``None`` disables velocity gating.
    missing_velocity : str
        ``'ignore'`` or ``'reject'``; see :func:`velocity_gate`.

    Returns
    -------
    adjacency : list of list of int
        ``adjacency[i]`` lists the estimated notes admissible for reference
        note ``i``, in ascending order.
    weights : np.ndarray, shape=(n, m)
        Edge quality weights, 0 for inadmissible pairs.
    """
    hits = hit_matrix(ref_intervals, ref_pitches, est_intervals, est_pitches,
                      onset_tolerance=onset_tolerance,
                      pitch_tolerance=pitch_tolerance,
                      offset_ratio=offset_ratio,
                      offset_min_tolerance=offset_min_tolerance,
                      strict=strict, chroma=chroma)

    gated = (velocity_tolerance is not None and ref_velocities is not None
             and est_velocities is not None)
    if gated:
        hits &= velocity_gate(ref_velocities, est_velocities,
                              velocity_tolerance,
                              missing_velocity=missing_velocity,
                              strict=strict)

    weights = edge_weights(ref_intervals, ref_pitches, est_intervals,
                           est_pitches, hits,
                           ref_velocities=ref_velocities,
                           est_velocities=est_velocities,
                           onset_tolerance=onset_tolerance,
                           pitch_tolerance=pitch_tolerance,
                           offset_ratio=offset_ratio,
                           offset_min_tolerance=offset_min_tolerance,
                           chroma=chroma,
                           velocity_tolerance=(velocity_tolerance
                                               if gated else None))

    return adjacency_lists(hits), weights
