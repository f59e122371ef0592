"""
Velocity-aware variant of the array-style transcription metrics, with the
calling conventions of :mod:`mir_eval.transcription_velocity`.

Notes are first matched by :func:`note_eval.transcription.match_notes`.
Reference velocities are then min-max re-scaled to [0, 1] over the whole
reference set, and :func:`note_eval.velocity.fit_velocity_scaling` maps the
matched estimated velocities onto them.  A matched pair is kept only when the
re-scaled velocities differ by less than ``velocity_tolerance``.

Unlike :mod:`note_eval.evaluation`, scaled velocities are not clipped, so
that scores agree with :mod:`mir_eval`.  Velocities are MIDI velocities in
[0, 127]; every other argument is as in :mod:`note_eval.transcription`.
"""

import collections

import numpy as np

from . import metrics
from . import transcription
from . import util
from . import velocity


def _validate_velocities(label, velocities, n_notes):
    velocities = np.asarray(velocities, dtype=float)
    if velocities.shape != (n_notes,):
        raise ValueError('{} velocities must have the same length as '
                         'pitches and intervals.'.format(label))
    if velocities.size == 0:
        return
    if not np.all(np.isfinite(velocities)):
        raise ValueError('{} velocities must be finite.'.format(label))
    if np.min(velocities) < 0 or np.max(velocities) > 127:
        raise ValueError('{} velocities must be MIDI velocities between '
                         '0 and 127.'.format(label))


def validate(ref_intervals, ref_pitches, ref_velocities, est_intervals,
             est_pitches, est_velocities):
    """Checks the notes as :func:`note_eval.transcription.validate` does,
    and that each velocity array is a finite MIDI velocity per note."""
    transcription.validate(ref_intervals, ref_pitches, est_intervals,
                           est_pitches)
    _validate_velocities('Reference', ref_velocities, len(ref_pitches))
    _validate_velocities('Estimated', est_velocities, len(est_pitches))


def match_notes(
        ref_intervals, ref_pitches, ref_velocities, est_intervals, est_pitches,
        est_velocities, onset_tolerance=0.05, pitch_tolerance=50.0,
        offset_ratio=0.2, offset_min_tolerance=0.05, strict=False,
        velocity_tolerance=0.1):
    """Match notes on onset, pitch, offset and velocity.

    Parameters
    ----------
    ref_velocities : np.ndarray, shape=(n,)
        MIDI velocities of the reference notes
    est_velocities : np.ndarray, shape=(m,)
        MIDI velocities of the estimated notes
    velocity_tolerance : float > 0
        Largest (exclusive) difference between re-scaled velocities of a
        correct pair.  Default is 0.1.

    Returns
    -------
    matching : list of tuples
        ``(i, j)`` pairs of :func:`note_eval.transcription.match_notes`
        whose velocities also agree.
    """
    matching = transcription.match_notes(
        ref_intervals, ref_pitches, est_intervals, est_pitches,
        onset_tolerance, pitch_tolerance, offset_ratio, offset_min_tolerance,
        strict)
    if not matching:
        return []

    ref_index, est_index = [list(k) for k in zip(*matching)]
    ref_norm, _, _ = velocity.normalize_reference(
        np.asarray(ref_velocities, dtype=float) / 127.)
    ref_matched = ref_norm[ref_index]
    est_matched = np.asarray(est_velocities, dtype=float)[est_index]

    scaling = velocity.fit_velocity_scaling(ref_matched, est_matched)
    velocity_diff = np.abs(
        velocity.apply_velocity_scaling(est_matched, scaling, clip=False) -
        ref_matched)
    return [pair for pair, diff in zip(matching, velocity_diff)
            if diff < velocity_tolerance]


def precision_recall_f1_overlap(
        ref_intervals, ref_pitches, ref_velocities, est_intervals, est_pitches,
        est_velocities, onset_tolerance=0.05, pitch_tolerance=50.0,
        offset_ratio=0.2, offset_min_tolerance=0.05, strict=False,
        velocity_tolerance=0.1, beta=1.0):
    """Precision, recall, F-measure and average overlap ratio of the notes
    found by :func:`match_notes`; all 0 when either side is empty."""
    validate(ref_intervals, ref_pitches, ref_velocities, est_intervals,
             est_pitches, est_velocities)
    if len(ref_pitches) == 0 or len(est_pitches) == 0:
        return 0., 0., 0., 0.

    matching = match_notes(
        ref_intervals, ref_pitches, ref_velocities, est_intervals, est_pitches,
        est_velocities, onset_tolerance, pitch_tolerance, offset_ratio,
        offset_min_tolerance, strict, velocity_tolerance)

    precision, recall, f_measure = metrics.precision_recall_f1(
        len(matching), len(ref_pitches), len(est_pitches), beta=beta)
    return (precision, recall, f_measure,
            transcription.average_overlap_ratio(ref_intervals, est_intervals,
                                                matching))


def evaluate(ref_intervals, ref_pitches, ref_velocities, est_intervals,
             est_pitches, est_velocities, **kwargs):
    """Velocity-aware note scores, with and without offsets, keyed as in
    :func:`note_eval.transcription.evaluate`.

    Returns
    -------
    scores : dict
        Dictionary of scores, where the key is the metric name (str) and
        the value is the (float) score achieved.
    """
    offset_ratio = kwargs.pop('offset_ratio', 0.2)
    runs = [('{}_no_offset', None)]
    if offset_ratio is not None:
        runs.insert(0, ('{}', offset_ratio))

    scores = collections.OrderedDict()
    for template, ratio in runs:
        values = util.filter_kwargs(
            precision_recall_f1_overlap, ref_intervals, ref_pitches,
            ref_velocities, est_intervals, est_pitches, est_velocities,
            offset_ratio=ratio, **kwargs)
        scores.update(zip([template.format(name)
                           for name in transcription.NOTE_SCORES], values))
    return scores
