'''
Conversion of note collections into the parallel arrays consumed by the
matching and scoring code.

A note collection is any sequence of :class:`Note` tuples, or of mappings with
``pitch``, ``onset``, ``duration`` and (optionally) ``velocity`` keys.  Times
are in seconds, pitches are MIDI note numbers, and velocities are normalized
to the range [0, 1].  A missing velocity is represented by ``None`` on the note
and by ``NaN`` in the extracted velocity array.

Tempo handling
--------------

Two renditions of the same piece may have been rendered at different tempi.
:func:`initial_bpm` picks the tempo in effect at the start of a collection,
and :func:`scale_intervals_for_bpm` rescales one collection's time axis onto
another's so that onset and offset tolerances compare like with like.
'''

import collections
from collections.abc import Mapping

import numpy as np


# Floor applied to zero note durations, in seconds
MIN_DURATION = 1e-6

DEFAULT_BPM = 120.
MIN_BPM = 20.
MAX_BPM = 300.

Note = collections.namedtuple('Note', ['pitch', 'onset', 'duration',
                                       'velocity'])
Note.__new__.__defaults__ = (None,)

TempoEvent = collections.namedtuple('TempoEvent', ['time', 'bpm'])


def as_note(note):
    """Coerce a :class:`Note` or a note mapping into a :class:`Note`."""
    if isinstance(note, Note):
        return note
    if isinstance(note, Mapping):
        return Note(pitch=note['pitch'], onset=note['onset'],
                    duration=note['duration'],
                    velocity=note.get('velocity'))
    return Note(*note)


def notes_to_arrays(notes):
    """Convert a note collection into interval, pitch and velocity arrays.

    The arrays are index-aligned with ``notes`` and keep its order.

    Parameters
    ----------
    notes : sequence of Note or dict
        Note collection.

    Returns
    -------
    intervals : np.ndarray, shape=(n, 2)
        Onset and offset times, in seconds.  Non-negative durations
        below :data:`MIN_DURATION` are raised to it.
    pitches : np.ndarray, shape=(n,)
        MIDI pitch of each note.
    velocities : np.ndarray, shape=(n,)
        Normalized velocity of each note, ``NaN`` where absent.
    """
    notes = [as_note(n) for n in notes]
    n_notes = len(notes)

    intervals = np.empty((n_notes, 2), dtype=float)
    pitches = np.empty(n_notes, dtype=int)
    velocities = np.full(n_notes, np.nan)

    for i, note in enumerate(notes):
        duration = float(note.duration)
        # Negative and non-finite durations are left for validation to reject
        if 0 <= duration < MIN_DURATION:
            duration = MIN_DURATION
        intervals[i, 0] = note.onset
        intervals[i, 1] = note.onset + duration
        pitches[i] = int(round(note.pitch))
        if note.velocity is not None:
            velocities[i] = note.velocity

    return intervals, pitches, velocities


def has_velocities(velocities):
    """True if at least one velocity in the array is present."""
    return bool(np.any(~np.isnan(velocities)))


def time_pitch_order(intervals, pitches):
    """Stable permutation sorting notes by onset, then by ascending pitch.

    Parameters
    ----------
    intervals : np.ndarray, shape=(n, 2)
    pitches : np.ndarray, shape=(n,)

    Returns
    -------
    order : np.ndarray, shape=(n,)
        ``intervals[order]`` is sorted by onset time.
    """
    # np.lexsort sorts by the last key first and is stable
    return np.lexsort((pitches, intervals[:, 0]))


def _as_tempo_event(tempo):
    if isinstance(tempo, Mapping):
        time, bpm = tempo.get('time'), tempo.get('bpm')
    else:
        time, bpm = tempo
    return TempoEvent(time or 0., bpm)


def initial_bpm(tempos):
    """Tempo in effect at the start of a collection.

    The tempo event at time 0 is used.  When there is none, the earliest
    event is used instead.  The result is clamped to [20, 300] BPM, and
    defaults to 120 BPM when there is no usable tempo information.

    Parameters
    ----------
    tempos : sequence of TempoEvent or (time, bpm) or None

    Returns
    -------
    bpm : float
    """
    if not tempos:
        return DEFAULT_BPM

    events = [_as_tempo_event(t) for t in tempos]

    at_zero = [e for e in events if abs(e.time) <= 1e-3]
    first = min(at_zero or events, key=lambda e: e.time)

    if not first.bpm or first.bpm <= 0:
        return DEFAULT_BPM
    return float(min(MAX_BPM, max(MIN_BPM, first.bpm)))


def scale_intervals_for_bpm(intervals, source_bpm, target_bpm):
    """Rescale note times recorded at ``source_bpm`` onto ``target_bpm``.

    All interval endpoints are multiplied by ``target_bpm / source_bpm``.  The
    input is returned untouched when either tempo is non-positive or the two
    are effectively equal.
    """
    if source_bpm <= 0 or target_bpm <= 0:
        return intervals

    scale = float(target_bpm) / source_bpm
    if abs(scale - 1) < 1e-6:
        return intervals

    return intervals * scale
