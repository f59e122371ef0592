'''
Array-style note transcription metrics, with the calling conventions of
:mod:`mir_eval.transcription` so that scores can be compared side by side.

An estimated note is correct when it is matched to a reference note whose
onset is within ``onset_tolerance`` seconds, whose pitch is within
``pitch_tolerance`` cents and, unless ``offset_ratio`` is ``None``, whose
offset is within ``max(offset_min_tolerance, offset_ratio * ref_duration)``
seconds.  The matching is a maximum bipartite matching, so every note is
used at most once.

Conventions
-----------

Notes are an ``(n, 2)`` array of onset and offset times in seconds plus an
``(n,)`` array of MIDI note numbers (fractional values are allowed).  Unlike
:mod:`note_eval.evaluation`, the pitch tolerance is in cents and is divided
by 100 to get semitones.

Every function below takes the same keyword arguments, where relevant:

onset_tolerance : float > 0
    Onset tolerance in seconds.  Default is 0.05.
pitch_tolerance : float > 0
    Pitch tolerance in cents.  Default is 50.0, a quarter tone.
offset_ratio : float > 0 or None
    Fraction of the reference duration allowed as offset deviation, or
    ``None`` to ignore offsets.  Default is 0.2.
offset_min_tolerance : float > 0
    Lower bound on the offset tolerance, in seconds.  Default is 0.05.
strict : bool
    Use ``<`` instead of ``<=`` for the threshold checks.
beta : float > 0
    Weighting factor for f-measure.  Default is 1.0.

Matching functions return a list of ``(i, j)`` tuples, sorted by reference
index, where reference note ``i`` matches estimated note ``j``.
'''

import collections
import warnings

import numpy as np

from . import adjacency
from . import metrics
from . import util


NOTE_SCORES = ('Precision', 'Recall', 'F-measure', 'Average_Overlap_Ratio')


def validate(ref_intervals, ref_pitches, est_intervals, est_pitches):
    """Checks that the input annotations to a metric look like time intervals
    and a pitch list, and throws helpful errors if not.

    Parameters
    ----------
    ref_intervals : np.ndarray, shape=(n,2)
    ref_pitches : np.ndarray, shape=(n,)
    est_intervals : np.ndarray, shape=(m,2)
    est_pitches : np.ndarray, shape=(m,)
    """
    if not len(ref_intervals) == len(ref_pitches):
        raise ValueError('Reference intervals and pitches have different '
                         'lengths.')
    if not len(est_intervals) == len(est_pitches):
        raise ValueError('Estimate intervals and pitches have different '
                         'lengths.')

    validate_intervals(ref_intervals, est_intervals)

    for label, pitches in [('Reference', ref_pitches),
                           ('Estimate', est_pitches)]:
        pitches = np.asarray(pitches, dtype=float)
        if pitches.size == 0:
            continue
        if not np.all(np.isfinite(pitches)):
            raise ValueError("{} contains at least one non-finite pitch "
                             "value".format(label))
        if np.min(pitches) < 0:
            raise ValueError("{} contains at least one negative MIDI "
                             "pitch".format(label))


def validate_intervals(ref_intervals, est_intervals):
    """Checks both interval arrays, warning when either is empty."""
    if np.asarray(ref_intervals).size == 0:
        warnings.warn("Reference notes are empty.")
    if np.asarray(est_intervals).size == 0:
        warnings.warn("Estimate notes are empty.")

    for label, intervals in [('Reference', ref_intervals),
                             ('Estimate', est_intervals)]:
        intervals = np.asarray(intervals, dtype=float)
        if intervals.size > 0:
            util.validate_intervals(intervals, label)


def _maximum_matching(hits):
    pair_ref, _ = util.bipartite_match(adjacency.adjacency_lists(hits),
                                       hits.shape[1])
    return [(i, j) for i, j in enumerate(pair_ref) if j != -1]


def match_note_offsets(ref_intervals, est_intervals, offset_ratio=0.2,
                       offset_min_tolerance=0.05, strict=False):
    """Maximum matching on note offsets alone."""
    hits = adjacency.hit_matrix(np.asarray(ref_intervals, dtype=float), None,
                                np.asarray(est_intervals, dtype=float), None,
                                onset_tolerance=None, pitch_tolerance=None,
                                offset_ratio=offset_ratio,
                                offset_min_tolerance=offset_min_tolerance,
                                strict=strict)
    return _maximum_matching(hits)


def match_note_onsets(ref_intervals, est_intervals, onset_tolerance=0.05,
                      strict=False):
    """Maximum matching on note onsets alone."""
    hits = adjacency.hit_matrix(np.asarray(ref_intervals, dtype=float), None,
                                np.asarray(est_intervals, dtype=float), None,
                                onset_tolerance=onset_tolerance,
                                pitch_tolerance=None, offset_ratio=None,
                                strict=strict)
    return _maximum_matching(hits)


def match_notes(ref_intervals, ref_pitches, est_intervals, est_pitches,
                onset_tolerance=0.05, pitch_tolerance=50.0, offset_ratio=0.2,
                offset_min_tolerance=0.05, strict=False, chroma=False):
    """Maximum matching subject to the onset, pitch and (optionally) offset
    gates.

    Parameters
    ----------
    ref_intervals : np.ndarray, shape=(n,2)
    ref_pitches : np.ndarray, shape=(n,)
    est_intervals : np.ndarray, shape=(m,2)
    est_pitches : np.ndarray, shape=(m,)
    chroma : bool
        Compare pitches modulo the octave.

    Returns
    -------
    matching : list of tuples
    """
    hits = adjacency.hit_matrix(np.asarray(ref_intervals, dtype=float),
                                ref_pitches,
                                np.asarray(est_intervals, dtype=float),
                                est_pitches,
                                onset_tolerance=onset_tolerance,
                                pitch_tolerance=pitch_tolerance / 100.,
                                offset_ratio=offset_ratio,
                                offset_min_tolerance=offset_min_tolerance,
                                strict=strict, chroma=chroma)
    return _maximum_matching(hits)


def match_notes_chroma(ref_intervals, ref_pitches, est_intervals,
                       est_pitches, onset_tolerance=0.05, pitch_tolerance=50.0,
                       offset_ratio=0.2, offset_min_tolerance=0.05,
                       strict=False):
    """:func:`match_notes` with pitches ``d`` semitones apart compared as
    ``min(d % 12, 12 - d % 12)``."""
    return match_notes(ref_intervals, ref_pitches, est_intervals, est_pitches,
                       onset_tolerance=onset_tolerance,
                       pitch_tolerance=pitch_tolerance,
                       offset_ratio=offset_ratio,
                       offset_min_tolerance=offset_min_tolerance,
                       strict=strict, chroma=True)


def average_overlap_ratio(ref_intervals, est_intervals, matching):
    """Mean overlap ratio of the matched pairs.

    The overlap ratio of two notes is the length of their intersection over
    the length of their combined span, so it goes from 0 (disjoint) to 1
    (identical).  An empty matching gives 0.
    """
    ratios = [util.interval_overlap_ratio(ref_intervals[i], est_intervals[j])
              for i, j in matching]
    if len(ratios) == 0:
        return 0
    return np.mean(ratios)


def precision_recall_f1_overlap(ref_intervals, ref_pitches, est_intervals,
                                est_pitches, onset_tolerance=0.05,
                                pitch_tolerance=50.0, offset_ratio=0.2,
                                offset_min_tolerance=0.05, strict=False,
                                beta=1.0):
    """Precision, recall and F-measure of the notes found by
    :func:`match_notes`, and their average overlap ratio.

    Examples
    --------
    >>> p, r, f, aor = note_eval.transcription.precision_recall_f1_overlap(
    ...     ref_intervals, ref_pitches, est_intervals, est_pitches,
    ...     offset_ratio=None)

    Returns
    -------
    precision : float
    recall : float
    f_measure : float
    avg_overlap_ratio : float
        All four are 0 when either side is empty.
    """
    return _precision_recall_f1_overlap(
        ref_intervals, ref_pitches, est_intervals, est_pitches,
        onset_tolerance, pitch_tolerance, offset_ratio, offset_min_tolerance,
        strict, beta, chroma=False)


def chroma_precision_recall_f1_overlap(ref_intervals, ref_pitches,
                                       est_intervals, est_pitches,
                                       onset_tolerance=0.05,
                                       pitch_tolerance=50.0, offset_ratio=0.2,
                                       offset_min_tolerance=0.05, strict=False,
                                       beta=1.0):
    """:func:`precision_recall_f1_overlap` with octave errors forgiven."""
    return _precision_recall_f1_overlap(
        ref_intervals, ref_pitches, est_intervals, est_pitches,
        onset_tolerance, pitch_tolerance, offset_ratio, offset_min_tolerance,
        strict, beta, chroma=True)


def _precision_recall_f1_overlap(ref_intervals, ref_pitches, est_intervals,
                                 est_pitches, onset_tolerance,
                                 pitch_tolerance, offset_ratio,
                                 offset_min_tolerance, strict, beta, chroma):
    validate(ref_intervals, ref_pitches, est_intervals, est_pitches)
    if len(ref_pitches) == 0 or len(est_pitches) == 0:
        return 0., 0., 0., 0.

    matching = match_notes(ref_intervals, ref_pitches, est_intervals,
                           est_pitches, onset_tolerance=onset_tolerance,
                           pitch_tolerance=pitch_tolerance,
                           offset_ratio=offset_ratio,
                           offset_min_tolerance=offset_min_tolerance,
                           strict=strict, chroma=chroma)
    precision, recall, f_measure = metrics.precision_recall_f1(
        len(matching), len(ref_pitches), len(est_pitches), beta=beta)
    return (precision, recall, f_measure,
            average_overlap_ratio(ref_intervals, est_intervals, matching))


def onset_precision_recall_f1(ref_intervals, est_intervals,
                              onset_tolerance=0.05, strict=False, beta=1.0):
    """Precision, recall and F-measure of note onsets, ignoring pitch and
    offset entirely."""
    validate_intervals(ref_intervals, est_intervals)
    if len(ref_intervals) == 0 or len(est_intervals) == 0:
        return 0., 0., 0.

    matching = match_note_onsets(ref_intervals, est_intervals,
                                 onset_tolerance=onset_tolerance,
                                 strict=strict)
    return metrics.precision_recall_f1(len(matching), len(ref_intervals),
                                       len(est_intervals), beta=beta)


def offset_precision_recall_f1(ref_intervals, est_intervals, offset_ratio=0.2,
                               offset_min_tolerance=0.05, strict=False,
                               beta=1.0):
    """Precision, recall and F-measure of note offsets, ignoring pitch and
    onset entirely."""
    validate_intervals(ref_intervals, est_intervals)
    if len(ref_intervals) == 0 or len(est_intervals) == 0:
        return 0., 0., 0.

    matching = match_note_offsets(ref_intervals, est_intervals,
                                  offset_ratio=offset_ratio,
                                  offset_min_tolerance=offset_min_tolerance,
                                  strict=strict)
    return metrics.precision_recall_f1(len(matching), len(ref_intervals),
                                       len(est_intervals), beta=beta)


def evaluate(ref_intervals, ref_pitches, est_intervals, est_pitches, **kwargs):
    """Compute all metrics for the given reference and estimated annotations.

    Examples
    --------
    >>> scores = note_eval.transcription.evaluate(ref_intervals, ref_pitches,
    ...     est_intervals, est_pitches)

    Parameters
    ----------
    ref_intervals, ref_pitches, est_intervals, est_pitches
        As in :func:`match_notes`.
    kwargs
        Passed to each metric function that accepts them.  With
        ``offset_ratio=None`` the offset-aware scores are left out.

    Returns
    -------
    scores : dict
        Dictionary of scores, where the key is the metric name (str) and
        the value is the (float) score achieved.
    """
    offset_ratio = kwargs.pop('offset_ratio', 0.2)
    with_offset = dict(kwargs, offset_ratio=offset_ratio)
    no_offset = dict(kwargs, offset_ratio=None)

    note_metrics = []
    if offset_ratio is not None:
        note_metrics.append(('{}', precision_recall_f1_overlap, with_offset))
    note_metrics.append(('{}_no_offset', precision_recall_f1_overlap,
                         no_offset))
    note_metrics.append(('Chroma_{}_no_offset',
                         chroma_precision_recall_f1_overlap, no_offset))

    scores = collections.OrderedDict()
    for template, metric, metric_kwargs in note_metrics:
        values = util.filter_kwargs(metric, ref_intervals, ref_pitches,
                                    est_intervals, est_pitches,
                                    **metric_kwargs)
        scores.update(zip([template.format(name) for name in NOTE_SCORES],
                          values))

    values = util.filter_kwargs(onset_precision_recall_f1, ref_intervals,
                                est_intervals, **kwargs)
    scores.update(zip(['Onset_' + name for name in NOTE_SCORES[:3]], values))

    if offset_ratio is not None:
        values = util.filter_kwargs(offset_precision_recall_f1,
                                    ref_intervals, est_intervals,
                                    **with_offset)
        scores.update(zip(['Offset_' + name for name in NOTE_SCORES[:3]],
                          values))

    return scores
