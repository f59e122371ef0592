""" Unit tests for utils
"""

import pytest
import numpy as np
from note_eval import util


def test_f_measure():
    assert util.f_measure(0, 0) == 0.0
    assert np.allclose(util.f_measure(0.5, 0.5), 0.5)
    assert np.allclose(util.f_measure(1.0, 0.5), 2 / 3.0)
    # beta > 1 favors recall
    assert util.f_measure(0.5, 1.0, beta=2.0) > util.f_measure(1.0, 0.5,
                                                               beta=2.0)


def test_intervals_to_durations():
    intervals = np.array([[0.0, 1.0], [1.5, 1.75], [2.0, 2.0]])
    assert np.allclose(util.intervals_to_durations(intervals),
                       [1.0, 0.25, 0.0])


@pytest.mark.parametrize('ref, est, expected', [
    ([0.0, 1.0], [0.0, 1.0], 1.0),
    ([0.0, 1.0], [0.5, 1.5], 1 / 3.0),
    ([0.0, 1.0], [2.0, 3.0], 0.0),
    ([0.0, 0.0], [0.0, 0.0], 0.0),
])
def test_interval_overlap_ratio(ref, est, expected):
    assert np.allclose(util.interval_overlap_ratio(ref, est), expected)


@pytest.mark.parametrize('intervals', [
    np.array([0.0, 1.0]),
    np.array([[0.0, 1.0, 2.0]]),
    np.array([[0.0, np.inf]]),
    np.array([[0.0, np.nan]]),
    np.array([[0.0, 1.0], [2.0, 1.0]]),
])
def test_validate_intervals_invalid(intervals):
    with pytest.raises(ValueError):
        util.validate_intervals(intervals)


def test_validate_intervals_reports_index():
    intervals = np.array([[0.0, 1.0], [1.0, 2.0], [3.0, 2.5]])
    with pytest.raises(ValueError, match='index 2'):
        util.validate_intervals(intervals, 'Reference')


def test_validate_intervals_zero_duration():
    util.validate_intervals(np.array([[1.0, 1.0]]))
    util.validate_intervals(np.empty((0, 2)))


def test_bipartite_match():
    # This test constructs a graph as follows:
    #   v9 -- (u0)
    #   v8 -- (u0, u1)
    #   v7 -- (u0, u1, u2)
    #   ...
    #   v0 -- (u0, u1, ..., u9)
    #
    # This structure and ordering of this graph should force Hopcroft-Karp to
    # hit each algorithm/layering phase
    #
    n_u = 10
    adjacency = [list(range(n_u - v)) if v < n_u else []
                 for v in range(n_u + 1)]

    pair_left, pair_right = util.bipartite_match(adjacency, n_u)

    # Make sure that each u vertex is matched
    assert sum(1 for u in pair_right if u != -1) == n_u

    # Make sure that there are no duplicates
    matched = [(v, u) for v, u in enumerate(pair_left) if u != -1]
    assert len(set(u for _, u in matched)) == len(matched)

    # Both directions agree
    for v, u in matched:
        assert pair_right[u] == v

    # Finally, make sure that all detected edges are present in the graph
    for v, u in matched:
        assert u in adjacency[v]


def test_bipartite_match_needs_augmenting_path():
    # A first-fit matching takes (0, 0) and strands left vertex 1
    adjacency = [[0, 1], [0]]
    pair_left, _ = util.bipartite_match(adjacency, 2)
    assert pair_left == [1, 0]


def test_bipartite_match_empty():
    assert util.bipartite_match([], 3) == ([], [-1, -1, -1])
    assert util.bipartite_match([[], []], 0) == ([-1, -1], [])


def test_bipartite_match_long_chain():
    # Left vertex i is connected to right vertices i and i + 1, listed so
    # that every phase must walk a long alternating path
    n = 5000
    adjacency = [[i + 1, i] if i + 1 < n else [i] for i in range(n)]
    pair_left, _ = util.bipartite_match(adjacency, n)
    assert sorted(pair_left) == list(range(n))


def test_filter_kwargs():
    def f(a, b=1):
        return a + b

    def g(a, **kwargs):
        return a + sum(kwargs.values())

    assert util.filter_kwargs(f, 1, b=2, c=10) == 3
    assert util.filter_kwargs(g, 1, b=2, c=10) == 13
    assert util.has_kwargs(g)
    assert not util.has_kwargs(f)
