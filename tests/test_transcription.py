import note_eval
import numpy as np
import pytest

A_TOL = 1e-12

# Onset, offset, MIDI pitch
REF = np.array(
    [
        [0.100, 0.300, 57.0],
        [0.300, 0.400, 59.0],
        [0.500, 0.600, 61.0],
        [0.550, 0.650, 62.0],
    ]
)

EST = np.array(
    [
        [0.120, 0.290, 57.389],
        [0.300, 0.340, 59.0],
        [0.500, 0.600, 71.213],
        [0.550, 0.600, 62.0],
        [0.560, 0.650, 62.0],
    ]
)

SCORES = {
    "Precision": 0.4,
    "Recall": 0.5,
    "F-measure": 0.4444444444444445,
    "Average_Overlap_Ratio": 0.675,
    "Precision_no_offset": 0.6,
    "Recall_no_offset": 0.75,
    "F-measure_no_offset": 0.6666666666666665,
    "Average_Overlap_Ratio_no_offset": 0.5833333333333333,
    "Chroma_Precision_no_offset": 0.6,
    "Chroma_Recall_no_offset": 0.75,
    "Chroma_F-measure_no_offset": 0.6666666666666665,
    "Chroma_Average_Overlap_Ratio_no_offset": 0.5833333333333333,
    "Onset_Precision": 0.8,
    "Onset_Recall": 1.0,
    "Onset_F-measure": 0.8888888888888889,
    "Offset_Precision": 0.6,
    "Offset_Recall": 0.75,
    "Offset_F-measure": 0.6666666666666665,
}


def test_match_note_offsets():
    ref_int = REF[:, :2]
    est_int = EST[:, :2]

    matching = note_eval.transcription.match_note_offsets(ref_int, est_int)

    assert matching == [(0, 0), (2, 2), (3, 3)]


def test_match_note_offsets_strict():
    ref_int = REF[:, :2]
    est_int = EST[:, :2]

    matching = note_eval.transcription.match_note_offsets(ref_int, est_int,
                                                          strict=True)

    assert matching == [(0, 0), (2, 2), (3, 4)]


def test_match_note_onsets():
    ref_int = REF[:, :2]
    est_int = EST[:, :2]

    matching = note_eval.transcription.match_note_onsets(ref_int, est_int)

    assert matching == [(0, 0), (1, 1), (2, 2), (3, 3)]


def test_match_notes():
    ref_int, ref_pitch = REF[:, :2], REF[:, 2]
    est_int, est_pitch = EST[:, :2], EST[:, 2]

    matching = note_eval.transcription.match_notes(
        ref_int, ref_pitch, est_int, est_pitch
    )

    assert matching == [(0, 0), (3, 3)]

    matching = note_eval.transcription.match_notes(
        ref_int, ref_pitch, est_int, est_pitch, offset_ratio=None
    )

    assert matching == [(0, 0), (1, 1), (3, 3)]


def test_match_notes_pitch_tolerance():
    ref_int, ref_pitch = np.array([[0, 1]]), np.array([60.0])
    est_int, est_pitch = np.array([[0, 1]]), np.array([60.3])

    assert note_eval.transcription.match_notes(
        ref_int, ref_pitch, est_int, est_pitch) == [(0, 0)]
    assert note_eval.transcription.match_notes(
        ref_int, ref_pitch, est_int, est_pitch, pitch_tolerance=25.0) == []


def test_match_notes_strict():
    ref_int, ref_pitch = np.array([[0, 1]]), np.array([60])
    est_int, est_pitch = np.array([[0.05, 1]]), np.array([60])

    matching = note_eval.transcription.match_notes(
        ref_int, ref_pitch, est_int, est_pitch, strict=True
    )

    assert matching == []


def test_match_notes_chroma():
    ref_int, ref_pitch = np.array([[0, 1], [1, 2]]), np.array([60, 62])
    est_int, est_pitch = np.array([[0, 1], [1, 2]]), np.array([72, 49])

    assert note_eval.transcription.match_notes(
        ref_int, ref_pitch, est_int, est_pitch) == []
    assert note_eval.transcription.match_notes_chroma(
        ref_int, ref_pitch, est_int, est_pitch) == [(0, 0)]
    assert note_eval.transcription.match_notes_chroma(
        ref_int, ref_pitch, est_int, est_pitch,
        pitch_tolerance=100.0) == [(0, 0), (1, 1)]


def test_precision_recall_f1_overlap():
    ref_int, ref_pitch = REF[:, :2], REF[:, 2]
    est_int, est_pitch = EST[:, :2], EST[:, 2]

    scores_gen = np.array(
        note_eval.transcription.precision_recall_f1_overlap(
            ref_int, ref_pitch, est_int, est_pitch))
    scores_exp = np.array(
        [
            SCORES["Precision"],
            SCORES["Recall"],
            SCORES["F-measure"],
            SCORES["Average_Overlap_Ratio"],
        ]
    )
    assert np.allclose(scores_exp, scores_gen, atol=A_TOL)

    scores_gen = np.array(
        note_eval.transcription.precision_recall_f1_overlap(
            ref_int, ref_pitch, est_int, est_pitch, offset_ratio=None))
    scores_exp = np.array(
        [
            SCORES["Precision_no_offset"],
            SCORES["Recall_no_offset"],
            SCORES["F-measure_no_offset"],
            SCORES["Average_Overlap_Ratio_no_offset"],
        ]
    )
    assert np.allclose(scores_exp, scores_gen, atol=A_TOL)


def test_onset_precision_recall_f1():
    ref_int = REF[:, :2]
    est_int = EST[:, :2]

    scores_gen = np.array(
        note_eval.transcription.onset_precision_recall_f1(ref_int, est_int))
    scores_exp = np.array(
        [
            SCORES["Onset_Precision"],
            SCORES["Onset_Recall"],
            SCORES["Onset_F-measure"],
        ]
    )
    assert np.allclose(scores_exp, scores_gen, atol=A_TOL)


def test_offset_precision_recall_f1():
    ref_int = REF[:, :2]
    est_int = EST[:, :2]

    scores_gen = np.array(
        note_eval.transcription.offset_precision_recall_f1(ref_int, est_int))
    scores_exp = np.array(
        [
            SCORES["Offset_Precision"],
            SCORES["Offset_Recall"],
            SCORES["Offset_F-measure"],
        ]
    )
    assert np.allclose(scores_exp, scores_gen, atol=A_TOL)


def test_evaluate():
    scores = note_eval.transcription.evaluate(REF[:, :2], REF[:, 2],
                                              EST[:, :2], EST[:, 2])
    assert set(scores.keys()) == set(SCORES.keys())
    for metric in scores:
        assert np.allclose(scores[metric], SCORES[metric], atol=A_TOL), metric


def test_evaluate_without_offsets():
    scores = note_eval.transcription.evaluate(REF[:, :2], REF[:, 2],
                                              EST[:, :2], EST[:, 2],
                                              offset_ratio=None)
    assert 'Precision' not in scores
    assert 'Offset_Precision' not in scores
    assert np.allclose(scores['Precision_no_offset'], 0.6, atol=A_TOL)


@pytest.mark.parametrize(
    "ref_pitch, est_pitch",
    [(np.array([-1]), np.array([60])), (np.array([60]), np.array([np.nan]))],
)
def test_invalid_pitch(ref_pitch, est_pitch):
    ref_int = np.array([[0, 1]])
    with pytest.raises(ValueError):
        note_eval.transcription.validate(ref_int, ref_pitch, ref_int,
                                         est_pitch)


@pytest.mark.parametrize(
    "ref_int, est_int",
    [
        (np.array([[0, 1], [2, 3]]), np.array([[0, 1]])),
        (np.array([[0, 1]]), np.array([[0, 1], [2, 3]])),
    ],
)
def test_inconsistent_int_pitch(ref_int, est_int):
    ref_pitch = np.array([60])
    with pytest.raises(ValueError):
        note_eval.transcription.validate(ref_int, ref_pitch, est_int,
                                         ref_pitch)


@pytest.mark.parametrize(
    "bad_int",
    [np.array([[1, 0]]), np.array([[0, np.inf]]), np.array([0, 1])],
)
def test_invalid_intervals(bad_int):
    good_int, pitch = np.array([[0, 1]]), np.array([60])
    with pytest.raises(ValueError):
        note_eval.transcription.validate(bad_int, pitch, good_int, pitch)


def test_empty_ref():
    ref_int, ref_pitch = np.empty(shape=(0, 2)), np.array([])
    est_int, est_pitch = np.array([[0, 1]]), np.array([60])

    with pytest.warns(UserWarning, match="Reference notes are empty"):
        note_eval.transcription.validate(ref_int, ref_pitch, est_int,
                                         est_pitch)


def test_empty_est():
    ref_int, ref_pitch = np.array([[0, 1]]), np.array([60])
    est_int, est_pitch = np.empty(shape=(0, 2)), np.array([])

    with pytest.warns(UserWarning, match="Estimate notes are empty"):
        note_eval.transcription.validate(ref_int, ref_pitch, est_int,
                                         est_pitch)


@pytest.mark.filterwarnings("ignore:.*notes are empty")
def test_precision_recall_f1_overlap_empty():
    ref_int, ref_pitch = np.empty(shape=(0, 2)), np.array([])
    est_int, est_pitch = np.array([[0, 1]]), np.array([60])

    precision, recall, f1, _ = \
        note_eval.transcription.precision_recall_f1_overlap(
            ref_int, ref_pitch, est_int, est_pitch)
    assert (precision, recall, f1) == (0, 0, 0)

    precision, recall, f1, _ = \
        note_eval.transcription.chroma_precision_recall_f1_overlap(
            est_int, est_pitch, ref_int, ref_pitch)
    assert (precision, recall, f1) == (0, 0, 0)


@pytest.mark.filterwarnings("ignore:.*notes are empty")
def test_onset_offset_precision_recall_f1_empty():
    ref_int = np.empty(shape=(0, 2))
    est_int = np.array([[0, 1]])

    for metric in [note_eval.transcription.onset_precision_recall_f1,
                   note_eval.transcription.offset_precision_recall_f1]:
        assert metric(ref_int, est_int) == (0, 0, 0)
        assert metric(est_int, ref_int) == (0, 0, 0)


def test_average_overlap_ratio():
    ref_int = np.array([[0.0, 1.0], [2.0, 2.0]])
    est_int = np.array([[0.5, 1.5], [2.0, 2.0]])
    ratio = note_eval.transcription.average_overlap_ratio(
        ref_int, est_int, [(0, 0), (1, 1)])
    assert np.allclose(ratio, 1 / 6.0, atol=A_TOL)
    assert note_eval.transcription.average_overlap_ratio(
        ref_int, est_int, []) == 0
