'''
Helpers for inspecting a :class:`note_eval.result.MatchResult`: per-pair
intersection windows, and JSON or CSV renderings suitable for saving next to
an evaluation run.
'''

import csv
import io
import json

import numpy as np

from . import notes
from .result import Single, Multiple


PAIRS_CSV_HEADER = ('ref_index', 'est_index', 'ref_pitch', 'est_pitch',
                    'ref_onset', 'est_onset')


def _pairs(match_result):
    """(ref_index, est_index) for every matched pair, one entry per
    estimate."""
    for m in match_result.matches:
        for j in m.est_index.to_list():
            yield m.ref_index, j


def _note_summary(note):
    return {'onset': float(note.onset), 'duration': float(note.duration),
            'pitch': int(note.pitch)}


def intersection_window(ref_note, est_note):
    """Time window shared by two notes.

    Returns
    -------
    window : dict or None
        ``{'start', 'end', 'duration'}``, or ``None`` when the notes do not
        overlap.
    """
    start = max(ref_note.onset, est_note.onset)
    end = min(ref_note.onset + ref_note.duration,
              est_note.onset + est_note.duration)
    if end <= start:
        return None
    return {'start': float(start), 'end': float(end),
            'duration': float(end - start)}


def match_visualization(reference, estimated, match_result):
    """Describe every matched pair of a match result for display.

    Parameters
    ----------
    reference : sequence of Note or dict
        Reference notes the result was computed from
    estimated : sequence of Note or dict
        Estimated notes the result was computed from
    match_result : MatchResult
        Output of :func:`note_eval.evaluation.match_notes`

    Returns
    -------
    visualization : dict
        ``pairs`` holds one dict per matched (reference, estimate) pair with
        both notes and their :func:`intersection_window`;
        ``false_negatives`` and ``false_positives`` copy the unmatched
        indices.
    """
    reference = [notes.as_note(n) for n in reference]
    estimated = [notes.as_note(n) for n in estimated]

    pairs = []
    for i, j in _pairs(match_result):
        ref_note, est_note = reference[i], estimated[j]
        pairs.append({
            'ref_index': i,
            'est_index': j,
            'ref': _note_summary(ref_note),
            'est': _note_summary(est_note),
            'intersection': intersection_window(ref_note, est_note)})

    return {'pairs': pairs,
            'false_negatives': list(match_result.false_negatives),
            'false_positives': list(match_result.false_positives)}


def _to_builtin(value):
    """Recursively convert result tuples and numpy scalars to JSON-ready
    builtins."""
    if isinstance(value, Single):
        return _to_builtin(value.value)
    if isinstance(value, Multiple):
        return [_to_builtin(v) for v in value.values]
    if isinstance(value, tuple) and hasattr(value, '_asdict'):
        return dict((k, _to_builtin(v)) for k, v in value._asdict().items())
    if isinstance(value, (list, tuple)):
        return [_to_builtin(v) for v in value]
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    return value


def export_match_result(match_result, pretty=False):
    """Serialize a match result to a JSON string.

    :class:`Single` fields become scalars and :class:`Multiple` fields become
    lists; the velocity scaling, when present, becomes an object.
    """
    return json.dumps(_to_builtin(match_result),
                      indent=2 if pretty else None)


def export_pairs_csv(match_result):
    """Render the matched pairs as CSV, one row per (reference, estimate)
    pair, under the header ``ref_index,est_index,ref_pitch,est_pitch,
    ref_onset,est_onset``."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator='\n')
    writer.writerow(PAIRS_CSV_HEADER)
    for m in match_result.matches:
        est_pitches = m.est_pitch.to_list()
        est_onsets = m.est_onset.to_list()
        for k, j in enumerate(m.est_index.to_list()):
            writer.writerow([m.ref_index, j, m.ref_pitch, est_pitches[k],
                             m.ref_onset, est_onsets[k]])
    return buf.getvalue().rstrip('\n')
