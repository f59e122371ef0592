"""Utility sub-module for note_eval"""

import inspect
import collections

import numpy as np


def f_measure(precision, recall, beta=1.0):
    '''Compute the f-measure from precision and recall scores.

    :parameters:
        - precision : float in (0, 1]
            Precision

        - recall : float in (0, 1]
            Recall

        - beta : float > 0
            Weighting factor for f-measure

    :returns:
        - f_measure : float
            The weighted f-measure
    '''

    if precision == 0 and recall == 0:
        return 0.0

    return (1 + beta**2) * precision * recall / ((beta**2) * precision + recall)


def intervals_to_durations(intervals):
    """Converts an array of n intervals to their n durations.

    Parameters
    ----------
    intervals : np.ndarray, shape=(n, 2)
        An array of time intervals, as returned by
        :func:`note_eval.notes.notes_to_arrays`.
        The ``i`` th interval spans time ``intervals[i, 0]`` to
        ``intervals[i, 1]``.

    Returns
    -------
    durations : np.ndarray, shape=(n,)
        Array of the duration of each interval.
    """
    return np.abs(np.diff(intervals, axis=-1)).flatten()


def interval_overlap_ratio(ref_interval, est_interval):
    """Intersection over union of two ``(onset, offset)`` intervals.

    Returns 0 when the union of the two intervals is not positive.
    """
    intersection = max(0., min(ref_interval[1], est_interval[1]) -
                       max(ref_interval[0], est_interval[0]))
    union = (max(ref_interval[1], est_interval[1]) -
             min(ref_interval[0], est_interval[0]))
    if union <= 0:
        return 0.
    return float(intersection) / union


def validate_intervals(intervals, label='Interval'):
    """Checks that an (n, 2) interval ndarray is well-formed, and raises
    errors if not.

    Unlike segment intervals, note intervals may have zero duration; only an
    offset which precedes its onset is rejected.

    Parameters
    ----------
    intervals : np.ndarray, shape=(n, 2)
        Array of interval start/end locations.
    label : str
        Prefix used in error messages, e.g. ``'Reference'``.
    """
    # Validate interval shape
    if intervals.ndim != 2 or intervals.shape[1] != 2:
        raise ValueError('{} intervals must have shape (n, 2), not '
                         '{}'.format(label, intervals.shape))

    if not np.all(np.isfinite(intervals)):
        bad = np.flatnonzero(~np.all(np.isfinite(intervals), axis=1))
        raise ValueError('{} interval has non-finite values at index '
                         '{}'.format(label, bad[0]))

    # Make sure no interval ends before it begins
    backwards = np.flatnonzero(intervals[:, 1] < intervals[:, 0])
    if backwards.size > 0:
        raise ValueError('{} interval must satisfy end >= start at index '
                         '{}: {}'.format(label, backwards[0],
                                         intervals[backwards[0]]))


def bipartite_match(adjacency, n_right):
    """Compute a maximum-cardinality matching of a bipartite graph with the
    Hopcroft-Karp algorithm.

    Each phase performs a breadth-first layering from every unmatched left
    vertex, then augments along vertex-disjoint shortest paths found by a
    depth-first search over the layered edges. Phases repeat until no
    augmenting path remains.

    The depth-first search runs on an explicit stack of
    ``(vertex, edge position)`` frames, so graphs with thousands of vertices
    do not exhaust the interpreter's call stack.

    Parameters
    ----------
    adjacency : list of list of int
        ``adjacency[u]`` lists the right vertices connected to left vertex
        ``u``.  Edges are explored in the order given, which fixes the
        tie-breaking between equally large matchings.
    n_right : int
        Number of right vertices.

    Returns
    -------
    pair_left : list of int
        ``pair_left[u]`` is the right vertex matched to ``u``, or -1.
    pair_right : list of int
        ``pair_right[v]`` is the left vertex matched to ``v``, or -1.
    """
    n_left = len(adjacency)
    infinity = float('inf')

    pair_left = [-1] * n_left
    pair_right = [-1] * n_right
    dist = [0] * n_left

    def layer():
        queue = collections.deque()
        for u in range(n_left):
            if pair_left[u] == -1:
                dist[u] = 0
                queue.append(u)
            else:
                dist[u] = infinity

        found = False
        while queue:
            u = queue.popleft()
            for v in adjacency[u]:
                w = pair_right[v]
                if w == -1:
                    found = True
                elif dist[w] == infinity:
                    dist[w] = dist[u] + 1
                    queue.append(w)
        return found

    def augment(root):
        # Each frame is [left vertex, position of the next edge to try]
        stack = [[root, 0]]
        # via[k] is the right vertex taken out of stack[k]
        via = []
        while stack:
            frame = stack[-1]
            u, pos = frame
            edges = adjacency[u]
            descended = False
            while pos < len(edges):
                v = edges[pos]
                pos += 1
                w = pair_right[v]
                if w == -1:
                    # Free right vertex: flip every edge along the path
                    via.append(v)
                    for (x, _), y in zip(stack, via):
                        pair_left[x] = y
                        pair_right[y] = x
                    return True
                if dist[w] == dist[u] + 1:
                    frame[1] = pos
                    via.append(v)
                    stack.append([w, 0])
                    descended = True
                    break
            if descended:
                continue
            # Dead end; remove u from this phase
            dist[u] = infinity
            stack.pop()
            if via:
                via.pop()
        return False

    while layer():
        for u in range(n_left):
            if pair_left[u] == -1:
                augment(u)

    return pair_left, pair_right


def has_kwargs(function):
    r'''Determine whether a function has \*\*kwargs.

    Parameters
    ----------
    function : callable
        The function to test

    Returns
    -------
    True if function accepts arbitrary keyword arguments.
    False otherwise.
    '''

    sig = inspect.signature(function)

    for param in sig.parameters.values():
        if param.kind == param.VAR_KEYWORD:
            return True

    return False


def filter_kwargs(_function, *args, **kwargs):
    """Given a function and args and keyword args to pass to it, call the
    function but using only the keyword arguments which it accepts.  This is
    equivalent to redefining the function with an additional \\*\\*kwargs to
    accept slop keyword args.

    If the target function already accepts \\*\\*kwargs parameters, no
    filtering is performed.

    Parameters
    ----------
    _function : callable
        Function to call.  Can take in any number of args or kwargs

    """

    if has_kwargs(_function):
        return _function(*args, **kwargs)

    # Get the list of function arguments
    func_code = _function.__code__
    function_args = func_code.co_varnames[:func_code.co_argcount]
    # Construct a dict of those kwargs which appear in the function
    filtered_kwargs = {}
    for kwarg, value in list(kwargs.items()):
        if kwarg in function_args:
            filtered_kwargs[kwarg] = value
    # Call the function with the supplied args and the filtered kwarg dict
    return _function(*args, **filtered_kwargs)
