'''
Selection of correspondences from the admissible-edge graph built by
:mod:`note_eval.adjacency`.

Four strategies are provided:

* :func:`maximum_matching`: a maximum-cardinality 1:1 matching (Hopcroft-Karp,
  see :func:`note_eval.util.bipartite_match`).  This is the default, and the
  only strategy that guarantees no augmenting path is left undiscovered.
* :func:`greedy_weighted_matching`: 1:1, taking edges in order of descending
  quality weight.  Fast, but not a maximum-weight assignment.
* :func:`optimal_weighted_matching`: 1:1 maximum-weight assignment over the
  admissible edges, via :func:`scipy.optimize.linear_sum_assignment`.
* :func:`bounded_matching`: 1:N, where each reference note may take up to
  ``max_per_ref`` estimated notes and each estimated note may be shared by up
  to ``max_per_est`` reference notes.  Greedy in descending weight.

Every strategy returns a dict mapping each matched reference index to the
list of its estimated indices, best first.
'''

import numpy as np
import scipy.optimize

from . import util


WEIGHTED_METHODS = ('greedy', 'optimal')


def maximum_matching(adjacency, n_est):
    """Maximum-cardinality 1:1 matching.

    Parameters
    ----------
    adjacency : list of list of int
        ``adjacency[i]`` lists the estimated notes admissible for reference
        note ``i``.
    n_est : int
        Number of estimated notes.

    Returns
    -------
    matches : dict
        ``matches[i] == [j]`` where reference note ``i`` matches estimated
        note ``j``.
    """
    pair_ref, _ = util.bipartite_match(adjacency, n_est)
    return dict((i, [j]) for i, j in enumerate(pair_ref) if j != -1)


def _ranked_edges(adjacency, weights):
    """Admissible edges sorted by descending weight; ties keep (ref, est)
    order."""
    edges = [(i, j) for i, row in enumerate(adjacency) for j in row]
    return sorted(edges, key=lambda edge: -weights[edge[0], edge[1]])


def greedy_weighted_matching(adjacency, weights):
    """1:1 matching taking edges by descending weight while both ends are
    free.

    This approximates the maximum-weight assignment; use
    :func:`optimal_weighted_matching` for the exact optimum.
    """
    matches = {}
    used = set()
    for i, j in _ranked_edges(adjacency, weights):
        if i not in matches and j not in used:
            matches[i] = [j]
            used.add(j)
    return matches


def optimal_weighted_matching(adjacency, weights):
    """1:1 maximum-weight assignment restricted to admissible edges.

    Inadmissible pairs carry zero weight in the assignment problem and are
    discarded from the solution afterwards.
    """
    n_ref, n_est = weights.shape
    if n_ref == 0 or n_est == 0:
        return {}

    admissible = np.zeros(weights.shape, dtype=bool)
    for i, row in enumerate(adjacency):
        admissible[i, row] = True

    profit = np.where(admissible, weights, 0.)
    rows, cols = scipy.optimize.linear_sum_assignment(profit, maximize=True)

    return dict((int(i), [int(j)]) for i, j in zip(rows, cols)
                if admissible[i, j])


def bounded_matching(adjacency, weights, max_per_ref=1, max_per_est=1):
    """1:N matching with per-side caps.

    Reference notes are visited in index order.  Each takes its admissible
    estimated notes by descending weight until it holds ``max_per_ref`` of
    them; an estimated note already taken ``max_per_est`` times is skipped.
    """
    if max_per_ref < 1 or max_per_est < 1:
        raise ValueError('max_matches_per_ref and max_matches_per_est must be '
                         'at least 1')

    matches = {}
    est_counts = {}
    for i, row in enumerate(adjacency):
        candidates = sorted(row, key=lambda j: -weights[i, j])
        selected = []
        for j in candidates:
            if len(selected) >= max_per_ref:
                break
            if est_counts.get(j, 0) < max_per_est:
                selected.append(j)
                est_counts[j] = est_counts.get(j, 0) + 1
        if selected:
            matches[i] = selected
    return matches


def match(adjacency, weights, n_est, max_matches_per_ref=1,
          max_matches_per_est=1, use_weighted_matching=False,
          weighted_method='greedy'):
    """Dispatch to the matching strategy selected by the cardinality and
    weighting options.

    Parameters
    ----------
    adjacency : list of list of int
        Admissible estimated notes for each reference note
    weights : np.ndarray, shape=(n, m)
        Edge quality weights
    n_est : int
        Number of estimated notes
    max_matches_per_ref : int >= 1
        Cap on estimated notes per reference note
    max_matches_per_est : int >= 1
        Cap on reference notes per estimated note
    use_weighted_matching : bool
        In 1:1 mode, rank edges by weight instead of maximizing cardinality
    weighted_method : str
        ``'greedy'`` or ``'optimal'``

    Returns
    -------
    matches : dict
        Reference index to list of estimated indices.
    """
    if weighted_method not in WEIGHTED_METHODS:
        raise ValueError('weighted_method must be one of {}, not '
                         '{!r}'.format(WEIGHTED_METHODS, weighted_method))

    if max_matches_per_ref == 1 and max_matches_per_est == 1:
        if not use_weighted_matching:
            return maximum_matching(adjacency, n_est)
        if weighted_method == 'optimal':
            return optimal_weighted_matching(adjacency, weights)
        return greedy_weighted_matching(adjacency, weights)

    return bounded_matching(adjacency, weights, max_matches_per_ref,
                            max_matches_per_est)
