'''
Global velocity scaling between matched reference and estimated notes.

Following [#hawthorne2018onsets]_, a linear regression finds the slope and
intercept minimizing the L2 distance between matched estimated velocities
and the reference velocities.  The mapping is then applied to the estimated
velocities.

Note collections carry velocities already normalized to [0, 1] (MIDI
velocity / 127), so the regression target is the reference velocity itself
and identical velocities on both sides fit ``slope = 1, intercept = 0``.
Velocities on some other scale can be min-max re-scaled to [0, 1] first
with ``normalize=True``; the re-scaling range never falls below one MIDI
velocity step, so equal reference velocities do not divide by ~0.

References
----------
  .. [#hawthorne2018onsets] Curtis Hawthorne, Erich Elsen, Jialin Song, Adam
      Roberts, Ian Simon, Colin Raffel, Jesse Engel, Sageev Oore, and Douglas
      Eck, "Onsets and Frames: Dual-Objective Piano Transcription", Proceedings
      of the 19th International Society for Music Information Retrieval
      Conference, 2018.
'''

import collections

import numpy as np


# One MIDI velocity step, in normalized units
MIN_VELOCITY_RANGE = 1. / 127

VelocityScaling = collections.namedtuple(
    'VelocityScaling', ['slope', 'intercept', 'reference_min',
                        'reference_range'])

IDENTITY_SCALING = VelocityScaling(1., 0., 0., 1.)


def normalize_reference(ref_velocities, min_range=MIN_VELOCITY_RANGE):
    """Min-max scale reference velocities to [0, 1].

    Returns
    -------
    ref_norm : np.ndarray
        Re-scaled velocities
    reference_min : float
    reference_range : float
        Denominator used, at least ``min_range``
    """
    ref_velocities = np.asarray(ref_velocities, dtype=float)
    min_velocity, max_velocity = np.min(ref_velocities), np.max(ref_velocities)
    velocity_range = max(min_range, max_velocity - min_velocity)
    ref_norm = (ref_velocities - min_velocity) / velocity_range
    return ref_norm, float(min_velocity), float(velocity_range)


def fit_velocity_scaling(ref_velocities, est_velocities, normalize=False):
    """Fit ``ref ~= slope * est + intercept`` over matched pairs.

    Parameters
    ----------
    ref_velocities : np.ndarray, shape=(k,)
        Velocities of matched reference notes
    est_velocities : np.ndarray, shape=(k,)
        Normalized velocities of the corresponding estimated notes
    normalize : bool
        Min-max re-scale ``ref_velocities`` with :func:`normalize_reference`
        before fitting.  Leave off for velocities already in [0, 1].

    Returns
    -------
    scaling : VelocityScaling
        When the estimated velocities have no variance the regression is
        singular, and ``slope = 1``, ``intercept = mean(ref) - mean(est)`` is
        used instead.
    """
    ref_velocities = np.asarray(ref_velocities, dtype=float)
    est_velocities = np.asarray(est_velocities, dtype=float)
    if ref_velocities.shape != est_velocities.shape:
        raise ValueError('Matched reference and estimated velocities must '
                         'have the same length.')
    if ref_velocities.size == 0:
        return IDENTITY_SCALING

    if normalize:
        target, min_velocity, velocity_range = normalize_reference(
            ref_velocities)
    else:
        target, min_velocity, velocity_range = ref_velocities, 0., 1.

    if np.var(est_velocities) < 1e-12:
        slope = 1.
        intercept = np.mean(target) - np.mean(est_velocities)
    else:
        slope, intercept = np.linalg.lstsq(
            np.vstack([est_velocities,
                       np.ones(len(est_velocities))]).T,
            target, rcond=None)[0]

    return VelocityScaling(float(slope), float(intercept), min_velocity,
                           velocity_range)


def apply_velocity_scaling(est_velocities, scaling, clip=True):
    """Map estimated velocities through ``scaling``, clipped to [0, 1]
    unless ``clip`` is off.  ``NaN`` (missing) velocities stay ``NaN``."""
    scaled = scaling.slope * np.asarray(est_velocities, dtype=float) + \
        scaling.intercept
    if clip:
        scaled = np.clip(scaled, 0., 1.)
    return scaled


def scaled_reference(ref_velocities, scaling):
    """Reference velocities in the same space as the fit."""
    return ((np.asarray(ref_velocities, dtype=float) - scaling.reference_min)
            / scaling.reference_range)
