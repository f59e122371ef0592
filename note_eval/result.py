'''
Result types returned by :func:`note_eval.evaluation.match_notes`, and the
assembly of a :class:`MatchResult` from a raw matching.

Under 1:1 matching every per-estimate field of a :class:`Match` holds a
:class:`Single` value.  Under 1:N matching a reference note matched to several
estimated notes holds :class:`Multiple` values instead, index-aligned across
fields and ordered best (highest edge weight) first.  Consumers should
dispatch on the type rather than probing for list-ness; :meth:`Single.to_list`
and :meth:`Multiple.to_list` give a uniform view when one is needed.
'''

import collections

import numpy as np

from . import util
from . import velocity


class Single(collections.namedtuple('Single', ['value'])):
    """A per-estimate field of a 1:1 match."""
    __slots__ = ()

    def to_list(self):
        return [self.value]

    def first(self):
        return self.value


class Multiple(collections.namedtuple('Multiple', ['values'])):
    """A per-estimate field of a 1:N match, best estimate first."""
    __slots__ = ()

    def to_list(self):
        return list(self.values)

    def first(self):
        return self.values[0]


Match = collections.namedtuple('Match', [
    'ref_index', 'est_index', 'ref_pitch', 'est_pitch', 'ref_onset',
    'est_onset', 'onset_diff', 'offset_diff', 'pitch_diff', 'overlap_ratio',
    'ref_velocity', 'est_velocity', 'scaled_est_velocity', 'velocity_diff',
    'confidence'])

MatchResult = collections.namedtuple('MatchResult', [
    'matches', 'false_negatives', 'false_positives', 'velocity_scaling'])


def wrap(values):
    """Wrap a list of per-estimate values as :class:`Single` or
    :class:`Multiple`."""
    if len(values) == 1:
        return Single(values[0])
    return Multiple(tuple(values))


def _optional(value):
    value = float(value)
    if np.isnan(value):
        return None
    return value


def build_match(ref_index, est_indices, ref_intervals, ref_pitches,
                ref_velocities, est_intervals, est_pitches, est_velocities,
                ref_onsets, est_onsets, weights, scaling=None, chroma=False):
    """Build the :class:`Match` for one reference note.

    Parameters
    ----------
    ref_index : int
        Reference note index
    est_indices : list of int
        Matched estimated note indices, best first
    ref_intervals, est_intervals : np.ndarray, shape=(n,2), (m,2)
        Intervals used for the tolerance checks (possibly tempo-scaled)
    ref_pitches, est_pitches : np.ndarray
        MIDI pitches
    ref_velocities, est_velocities : np.ndarray
        Normalized velocities, ``NaN`` where missing
    ref_onsets, est_onsets : np.ndarray
        Original onset times, reported for display
    weights : np.ndarray, shape=(n, m)
        Edge quality weights
    scaling : VelocityScaling or None
        Velocity scaling to apply, if any
    chroma : bool
        Report pitch differences modulo the octave

    Returns
    -------
    match : Match
    """
    i = ref_index
    ref_interval = ref_intervals[i]
    ref_velocity = _optional(ref_velocities[i])
    if ref_velocity is not None and scaling is not None:
        ref_compared = float(velocity.scaled_reference(ref_velocity, scaling))
    else:
        ref_compared = ref_velocity

    fields = collections.defaultdict(list)
    for j in est_indices:
        est_interval = est_intervals[j]
        pitch_diff = abs(float(est_pitches[j]) - float(ref_pitches[i]))
        if chroma:
            wrapped = pitch_diff % 12
            pitch_diff = min(wrapped, 12 - wrapped)

        est_velocity = _optional(est_velocities[j])
        if est_velocity is not None and scaling is not None:
            scaled = float(velocity.apply_velocity_scaling(
                est_velocity, scaling))
        else:
            scaled = est_velocity

        fields['est_index'].append(int(j))
        fields['est_pitch'].append(int(est_pitches[j]))
        fields['est_onset'].append(float(est_onsets[j]))
        fields['onset_diff'].append(
            abs(float(est_interval[0]) - float(ref_interval[0])))
        fields['offset_diff'].append(
            abs(float(est_interval[1]) - float(ref_interval[1])))
        fields['pitch_diff'].append(pitch_diff)
        fields['overlap_ratio'].append(
            util.interval_overlap_ratio(ref_interval, est_interval))
        fields['est_velocity'].append(est_velocity)
        fields['scaled_est_velocity'].append(scaled)
        fields['velocity_diff'].append(
            abs(scaled - ref_compared)
            if scaled is not None and ref_compared is not None else None)
        fields['weight'].append(float(weights[i, j]))

    has_est_velocity = any(v is not None for v in fields['est_velocity'])
    has_diff = any(v is not None for v in fields['velocity_diff'])

    return Match(
        ref_index=int(i),
        est_index=wrap(fields['est_index']),
        ref_pitch=int(ref_pitches[i]),
        est_pitch=wrap(fields['est_pitch']),
        ref_onset=float(ref_onsets[i]),
        est_onset=wrap(fields['est_onset']),
        onset_diff=wrap(fields['onset_diff']),
        offset_diff=wrap(fields['offset_diff']),
        pitch_diff=wrap(fields['pitch_diff']),
        overlap_ratio=wrap(fields['overlap_ratio']),
        ref_velocity=ref_velocity,
        est_velocity=(wrap(fields['est_velocity'])
                      if has_est_velocity else None),
        scaled_est_velocity=(wrap(fields['scaled_est_velocity'])
                             if has_est_velocity else None),
        velocity_diff=wrap(fields['velocity_diff']) if has_diff else None,
        confidence=max(fields['weight']))


def unmatched(n_notes, matched):
    """Ascending indices in ``range(n_notes)`` absent from ``matched``."""
    matched = set(matched)
    return [k for k in range(n_notes) if k not in matched]


def assemble_result(matches, n_ref, n_est, scaling=None):
    """Package matches with the unmatched reference ("false negative") and
    unmatched estimated ("false positive") indices.

    Parameters
    ----------
    matches : iterable of Match
    n_ref : int
        Number of reference notes
    n_est : int
        Number of estimated notes
    scaling : VelocityScaling or None

    Returns
    -------
    result : MatchResult
        Matches sorted by reference index; both index lists ascending.
    """
    matches = sorted(matches, key=lambda m: m.ref_index)
    matched_ref = [m.ref_index for m in matches]
    matched_est = [j for m in matches for j in m.est_index.to_list()]
    return MatchResult(matches=matches,
                       false_negatives=unmatched(n_ref, matched_ref),
                       false_positives=unmatched(n_est, matched_est),
                       velocity_scaling=scaling)
