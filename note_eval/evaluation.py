'''
Evaluation of an estimated note collection against a reference note
collection.

This is the main entry point of :mod:`note_eval`.  It takes two note
collections (see :mod:`note_eval.notes`), builds the admissible-edge graph
between them (:mod:`note_eval.adjacency`), selects a matching
(:mod:`note_eval.matching`), optionally fits a global velocity scaling
(:mod:`note_eval.velocity`), and reports the matching
(:mod:`note_eval.result`) together with its scores (:mod:`note_eval.metrics`).

Configuration
-------------

Behaviour is controlled by three configuration tuples.  Each entry point
accepts either an instance, a ``dict`` of fields to override, or ``None`` for
the defaults.

* :class:`ToleranceConfig`: onset tolerance (seconds), pitch tolerance
  (semitones; 0 requires the exact pitch), offset ratio (fraction of the
  reference duration, or ``None`` to ignore offsets), minimum offset
  tolerance (seconds), and ``strict`` (``<`` instead of ``<=``).
* :class:`VelocityConfig`: velocity tolerance and its unit (``'normalized'``
  or ``'midi'``), scoring mode (``'threshold'`` or ``'weighted'``), whether
  velocity gates the matching, and the policy for notes without velocity
  (``'ignore'`` or ``'reject'``).
* :class:`MatchingConfig`: per-side cardinality caps, weighted matching and
  its method (``'greedy'`` or ``'optimal'``), velocity scaling, chroma
  (octave-invariant) pitch comparison, time-pitch sorting before matching,
  and tempo normalization.

Examples
--------
>>> reference = [note_eval.Note(pitch=60, onset=0.0, duration=1.0,
...                             velocity=0.8)]
>>> estimated = [note_eval.Note(pitch=60, onset=0.02, duration=1.0,
...                             velocity=0.8)]
>>> result = note_eval.evaluation.match_notes(reference, estimated)
>>> scores = note_eval.evaluation.evaluate(reference, estimated)
'''

import collections
import warnings
from collections.abc import Mapping

import numpy as np

from . import adjacency
from . import matching
from . import metrics
from . import notes
from . import result
from . import util
from . import velocity


VELOCITY_UNITS = ('normalized', 'midi')

ToleranceConfig = collections.namedtuple('ToleranceConfig', [
    'onset_tolerance', 'pitch_tolerance', 'offset_ratio',
    'offset_min_tolerance', 'strict'])
ToleranceConfig.__new__.__defaults__ = (0.05, 0.0, 0.2, 0.05, False)

VelocityConfig = collections.namedtuple('VelocityConfig', [
    'tolerance', 'unit', 'mode', 'include_in_matching', 'missing_velocity'])
VelocityConfig.__new__.__defaults__ = (0.1, 'normalized', 'threshold', False,
                                       'ignore')

MatchingConfig = collections.namedtuple('MatchingConfig', [
    'max_matches_per_ref', 'max_matches_per_est', 'use_weighted_matching',
    'weighted_method', 'apply_velocity_scaling', 'chroma', 'sort_by_time',
    'normalize_tempo'])
MatchingConfig.__new__.__defaults__ = (1, 1, False, 'greedy', True, False,
                                       False, False)


def resolve_config(config_type, value):
    """Build a configuration tuple from ``None``, a ``dict`` of overrides, or
    an existing instance.

    Raises
    ------
    ValueError
        If ``value`` names a field ``config_type`` does not have.
    """
    if value is None:
        return config_type()
    if isinstance(value, config_type):
        return value
    if isinstance(value, Mapping):
        unknown = sorted(set(value) - set(config_type._fields))
        if unknown:
            raise ValueError('Unknown {} field(s): {}'.format(
                config_type.__name__, ', '.join(unknown)))
        return config_type()._replace(**value)
    raise ValueError('{} must be given as a {}, a dict or None, not '
                     '{!r}'.format(config_type.__name__, config_type.__name__,
                                   value))


def normalized_velocity_tolerance(config):
    """Velocity tolerance of a :class:`VelocityConfig` in normalized
    units."""
    if config.unit not in VELOCITY_UNITS:
        raise ValueError('velocity unit must be one of {}, not '
                         '{!r}'.format(VELOCITY_UNITS, config.unit))
    if config.unit == 'midi':
        return config.tolerance / 127.
    return float(config.tolerance)


def validate(ref_intervals, est_intervals):
    """Checks that extracted note intervals are well-formed, and warns when
    either note collection is empty."""
    if ref_intervals.size == 0:
        warnings.warn("Reference notes are empty.")
    if est_intervals.size == 0:
        warnings.warn("Estimate notes are empty.")

    util.validate_intervals(ref_intervals, 'Reference')
    util.validate_intervals(est_intervals, 'Estimated')


def match_notes(reference, estimated, tolerances=None, velocity_config=None,
                matching_config=None, reference_tempos=None,
                estimated_tempos=None):
    """Match an estimated note collection against a reference.

    Parameters
    ----------
    reference : sequence of Note or dict
        Reference ("ground truth") notes
    estimated : sequence of Note or dict
        Estimated (transcribed) notes
    tolerances : ToleranceConfig, dict or None
        Onset, pitch and offset tolerances
    velocity_config : VelocityConfig, dict or None
        Velocity tolerance and policies
    matching_config : MatchingConfig, dict or None
        Matching strategy options
    reference_tempos : sequence of TempoEvent or None
        Tempo events of the reference, used when ``normalize_tempo`` is set
    estimated_tempos : sequence of TempoEvent or None
        Tempo events of the estimate, used when ``normalize_tempo`` is set

    Returns
    -------
    result : MatchResult
        Matches sorted by reference index, the ascending indices of unmatched
        reference ("false negatives") and estimated ("false positives")
        notes, and the velocity scaling applied, if any.
    """
    tolerances = resolve_config(ToleranceConfig, tolerances)
    velocity_config = resolve_config(VelocityConfig, velocity_config)
    matching_config = resolve_config(MatchingConfig, matching_config)
    velocity_tolerance = normalized_velocity_tolerance(velocity_config)

    ref_intervals, ref_pitches, ref_velocities = notes.notes_to_arrays(
        reference)
    est_intervals, est_pitches, est_velocities = notes.notes_to_arrays(
        estimated)
    validate(ref_intervals, est_intervals)

    n_ref, n_est = len(ref_pitches), len(est_pitches)
    # With either side empty there is nothing to match
    if n_ref == 0 or n_est == 0:
        return result.assemble_result([], n_ref, n_est)

    # Tolerances are checked on tempo-normalized times, but the original
    # onsets are reported
    compared_intervals = est_intervals
    if matching_config.normalize_tempo:
        compared_intervals = notes.scale_intervals_for_bpm(
            est_intervals, notes.initial_bpm(estimated_tempos),
            notes.initial_bpm(reference_tempos))

    if matching_config.sort_by_time:
        ref_order = notes.time_pitch_order(ref_intervals, ref_pitches)
        est_order = notes.time_pitch_order(compared_intervals, est_pitches)
    else:
        ref_order = np.arange(n_ref)
        est_order = np.arange(n_est)

    graph, sorted_weights = adjacency.build_adjacency(
        ref_intervals[ref_order], ref_pitches[ref_order],
        compared_intervals[est_order], est_pitches[est_order],
        ref_velocities=ref_velocities[ref_order],
        est_velocities=est_velocities[est_order],
        onset_tolerance=tolerances.onset_tolerance,
        pitch_tolerance=tolerances.pitch_tolerance,
        offset_ratio=tolerances.offset_ratio,
        offset_min_tolerance=tolerances.offset_min_tolerance,
        strict=tolerances.strict,
        chroma=matching_config.chroma,
        velocity_tolerance=(velocity_tolerance
                            if velocity_config.include_in_matching
                            else None),
        missing_velocity=velocity_config.missing_velocity)

    sorted_matches = matching.match(
        graph, sorted_weights, n_est,
        max_matches_per_ref=matching_config.max_matches_per_ref,
        max_matches_per_est=matching_config.max_matches_per_est,
        use_weighted_matching=matching_config.use_weighted_matching,
        weighted_method=matching_config.weighted_method)

    # Map indices back to the original note order
    weights = np.empty_like(sorted_weights)
    weights[np.ix_(ref_order, est_order)] = sorted_weights
    matches = dict((int(ref_order[i]), [int(est_order[j]) for j in js])
                   for i, js in sorted_matches.items())

    scaling = None
    if matching_config.apply_velocity_scaling:
        pairs = [(i, j) for i in sorted(matches) for j in matches[i]
                 if not (np.isnan(ref_velocities[i]) or
                         np.isnan(est_velocities[j]))]
        if pairs:
            ref_index, est_index = zip(*pairs)
            scaling = velocity.fit_velocity_scaling(
                ref_velocities[list(ref_index)],
                est_velocities[list(est_index)])

    built = [result.build_match(i, matches[i], ref_intervals, ref_pitches,
                                ref_velocities, compared_intervals,
                                est_pitches, est_velocities,
                                ref_intervals[:, 0], est_intervals[:, 0],
                                weights, scaling=scaling,
                                chroma=matching_config.chroma)
             for i in sorted(matches)]

    return result.assemble_result(built, n_ref, n_est, scaling)


def _any_velocity(note_collection):
    return any(notes.as_note(n).velocity is not None for n in note_collection)


def evaluate_notes(reference, estimated, tolerances=None,
                   velocity_config=None, matching_config=None,
                   reference_tempos=None, estimated_tempos=None, beta=1.0):
    """Match two note collections and compute every note-level metric.

    Parameters are as in :func:`match_notes`, plus

    beta : float > 0
        Weighting factor for f-measure (default value = 1.0).

    Returns
    -------
    metrics : NoteMetrics
        Precision, recall, F-measure and average overlap ratio; the
        velocity block when both collections carry velocities; the 1:N
        diagnostics when more than one match per note is allowed; and the
        underlying :class:`MatchResult`.
    """
    reference, estimated = list(reference), list(estimated)
    velocity_config = resolve_config(VelocityConfig, velocity_config)
    matching_config = resolve_config(MatchingConfig, matching_config)

    match_result = match_notes(reference, estimated, tolerances,
                               velocity_config, matching_config,
                               reference_tempos=reference_tempos,
                               estimated_tempos=estimated_tempos)

    n_ref, n_est = len(reference), len(estimated)
    n_correct = len(match_result.matches)
    precision, recall, f_measure = metrics.precision_recall_f1(
        n_correct, n_ref, n_est, beta=beta)

    velocity_metrics = None
    if _any_velocity(reference) and _any_velocity(estimated):
        velocity_metrics = metrics.velocity_metrics(
            match_result.matches, n_ref,
            tolerance=normalized_velocity_tolerance(velocity_config),
            mode=velocity_config.mode,
            scaling=match_result.velocity_scaling, beta=beta)

    matching_stats = None
    if (matching_config.max_matches_per_ref > 1 or
            matching_config.max_matches_per_est > 1):
        matching_stats = metrics.matching_stats(match_result.matches)

    return metrics.NoteMetrics(
        precision=precision,
        recall=recall,
        f_measure=f_measure,
        average_overlap_ratio=metrics.average_overlap_ratio(
            match_result.matches),
        n_correct=n_correct,
        n_ref=n_ref,
        n_est=n_est,
        velocity=velocity_metrics,
        matching_stats=matching_stats,
        result=match_result)


def evaluate(reference, estimated, velocity_config=None, matching_config=None,
             reference_tempos=None, estimated_tempos=None, **kwargs):
    """Compute all metrics for the given reference and estimated note
    collections.

    Parameters
    ----------
    reference : sequence of Note or dict
        Reference notes
    estimated : sequence of Note or dict
        Estimated notes
    velocity_config : VelocityConfig, dict or None
    matching_config : MatchingConfig, dict or None
    reference_tempos, estimated_tempos : sequence of TempoEvent or None
    kwargs
        Tolerance fields (see :class:`ToleranceConfig`) and ``beta``.  Other
        keyword arguments are ignored.

    Returns
    -------
    scores : dict
        Dictionary of scores, where the key is the metric name (str) and
        the value is the (float) score achieved.
    """
    reference, estimated = list(reference), list(estimated)
    tolerances = dict((k, v) for k, v in kwargs.items()
                      if k in ToleranceConfig._fields)
    beta = kwargs.get('beta', 1.0)

    def run(offset_ratio):
        fields = dict(tolerances, offset_ratio=offset_ratio)
        return evaluate_notes(reference, estimated, fields, velocity_config,
                              matching_config,
                              reference_tempos=reference_tempos,
                              estimated_tempos=estimated_tempos, beta=beta)

    # Compute all the metrics
    scores = collections.OrderedDict()

    # Precision, recall and f-measure taking note offsets into account
    offset_ratio = tolerances.get('offset_ratio', 0.2)
    with_offset = None
    if offset_ratio is not None:
        with_offset = run(offset_ratio)
        scores['Precision'] = with_offset.precision
        scores['Recall'] = with_offset.recall
        scores['F-measure'] = with_offset.f_measure
        scores['Average_Overlap_Ratio'] = with_offset.average_overlap_ratio

    # Precision, recall and f-measure NOT taking note offsets into account
    no_offset = run(None)
    scores['Precision_no_offset'] = no_offset.precision
    scores['Recall_no_offset'] = no_offset.recall
    scores['F-measure_no_offset'] = no_offset.f_measure
    scores['Average_Overlap_Ratio_no_offset'] = \
        no_offset.average_overlap_ratio

    velocity_metrics = (with_offset or no_offset).velocity
    if velocity_metrics is not None:
        scores['Velocity_Precision'] = velocity_metrics.precision
        scores['Velocity_Recall'] = velocity_metrics.recall
        scores['Velocity_F-measure'] = velocity_metrics.f_measure
        scores['Velocity_Mean_Abs_Error'] = velocity_metrics.mean_abs_error
        scores['Velocity_RMSE'] = velocity_metrics.rmse
        scores['Velocity_Correlation'] = velocity_metrics.correlation

    return scores
