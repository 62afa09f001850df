import logging

import numpy as np
import scipy.special as sps

from streamdepl.streamdepl_exceptions import StreamdeplException

logger = logging.getLogger(__name__)

""" File of stream depletion analytical solutions
    as part of the streamdepl suite.

    Each solution returns Q times the fraction of the pumping rate
    captured from the stream at the requested elapsed times, so calling
    with Q=1 gives the dimensionless step response used by the
    convolution engine.
"""

# arguments of erfc above this are treated as zero when summing image wells
U_CUTOFF = 2.9
# upper bound on image-well pairs evaluated by glover_alluvial_depletion
MAX_IMAGE_WELLS = 10000


def _time_dist_error(funcname):
    """Function for trying to call both time and distance
    as arrays in a function
    """
    raise StreamdeplException(
        "cannot have both time and distance as arrays\n"
        + f"in the {funcname} method.  Need to externally loop\n"
        + "over one of the arrays and pass the other"
    )


def _make_arrays(a):
    """private function to force values to
    arrays from lists or scalars
    """
    if isinstance(a, np.ndarray):
        return a.astype(float)
    else:
        return np.atleast_1d(a).astype(float)


def _check_nones(all_vars, var_dict):
    """Function to check if any of the required parameters are
    set to None (default) value.

    Parameters
    ----------
    all_vars: dictionary
        dictionary of variable values passed from calling
        routine, can be generated using locals()
    var_dict: dictionary
        key is the function name and value is a list of
        required parameter names.
    """
    fxn_name = list(var_dict.keys())[0]

    nonevars = {
        k: v
        for k, v in all_vars.items()
        if (k in var_dict[fxn_name]) & (v is None)
    }
    if len(nonevars) > 0:
        raise StreamdeplException(
            f"The function: {fxn_name} requires the following\n"
            + "additional arguments which were missing\n"
            + "in the function call:\n"
            + ", ".join(nonevars.keys())
        )


def _check_positive(fxn_name, **kwargs):
    """Function to check that aquifer parameters are finite and
    greater than zero. NaN, infinite, zero or negative values
    raise a StreamdeplException naming the offending parameters.
    """
    bad = []
    for k, v in kwargs.items():
        v = np.atleast_1d(v).astype(float)
        if (~np.isfinite(v)).any() or (v <= 0).any():
            bad.append(k)
    if len(bad) > 0:
        raise StreamdeplException(
            f"The function: {fxn_name} requires finite, positive\n"
            + "values for the following arguments:\n"
            + ", ".join(bad)
        )


def _unpack(depl):
    """return a scalar for a single value, otherwise the array"""
    if len(depl) == 1:
        return depl[0]
    return depl


# define stream depletion methods here
def glover_depletion(T, S, time, dist, Q, **kwargs):
    """
    Calculate Glover and Balmer (1954) solution for stream depletion

    Depletion solution for a well near a river where the river fully
    penetrates an aquifer of infinite extent and there is no
    streambed resistance.

    Glover, R.E. and Balmer, G.G., 1954, River depletion from pumping
    a well near a river, Eos Transactions of the American Geophysical Union,
    v. 35, no. 3, pg. 468-470, https://doi.org/10.1029/TR035i003p00468.

    Parameters
    ----------
    T: float
        transmissivity [L**2/T]
    S: float
        storage [unitless]
    time: float, optionally np.array or list
        time at which to calculate results [T]
    dist: float, optionally np.array or list
        distance between well and stream [L]
    Q: float
        pumping rate (+ is extraction) [L**3/T]
    **kwargs: included to all depletion methods for extra values required in some calls

    Returns
    -------
    depletion: float or array of floats
        depletion values at input parameter times/distances.
        Depletion at time zero (or earlier) is zero.
    """
    _check_positive("glover_depletion", T=T, S=S, dist=dist)
    # turn lists into np.array so they get handled correctly
    time = _make_arrays(time)
    dist = _make_arrays(dist)
    if len(dist) > 1 and len(time) > 1:
        _time_dist_error("glover_depletion")

    time, dist = np.broadcast_arrays(time, dist)
    # handle zero time condition, erfc argument is undefined there
    depl = np.zeros_like(time)
    active = time > 0
    z = dist[active] / np.sqrt(4 * (T / S) * time[active])
    depl[active] = Q * sps.erfc(z)
    return _unpack(depl)


def _image_well_term(well_distance, denom):
    """erfc contribution of a single image well, zero beyond U_CUTOFF"""
    u = well_distance / denom
    return np.where(u > U_CUTOFF, 0.0, sps.erfc(u))


def glover_alluvial_depletion(
    T,
    S,
    time,
    dist,
    Q,
    boundary_dist=None,
    max_image_wells=MAX_IMAGE_WELLS,
    **kwargs,
):
    """
    Calculate Glover (1974) depletion for a well in a bounded alluvial aquifer

    The stream fully penetrates the aquifer at x=0 and an impermeable
    valley wall runs parallel to it at x=boundary_dist. Both boundaries
    are honored by summing pairs of alternating-sign image wells located
    at distances d, 2b-d (added), 2b+d, 4b-d (subtracted), 4b+d, 6b-d
    (added) and so on. Terms whose erfc argument exceeds U_CUTOFF are
    taken as zero, and the series ends at the first vanishing term.

    Glover, R.E., 1974, Transient Ground Water Hydraulics: Water Resources
    Publications, Fort Collins, Colorado.

    Parameters
    ----------
    T: float
        transmissivity [L**2/T]
    S: float
        specific yield [unitless]
    time: float, optionally np.array or list
        time at which to calculate results [T]
    dist: float
        distance between well and stream [L]
    Q: float
        pumping rate (+ is extraction) [L**3/T]
    **kwargs: included to all depletion methods for extra values required in some calls

    Returns
    -------
    depletion: float or array of floats
        depletion values at input times. Depletion at time zero
        (or earlier) is zero.

    Other Parameters
    ----------------
    boundary_dist: float
        distance between the stream and the no-flow boundary [L],
        must not be less than dist
    max_image_wells: int
        maximum number of image-well pairs to sum before giving up
        on convergence. Defaults to MAX_IMAGE_WELLS.
    """
    _check_nones(
        locals(), {"glover_alluvial_depletion": ["boundary_dist"]}
    )
    _check_positive(
        "glover_alluvial_depletion",
        T=T,
        S=S,
        dist=dist,
        boundary_dist=boundary_dist,
    )
    if len(_make_arrays(dist)) > 1:
        raise StreamdeplException(
            "glover_alluvial_depletion can only accept a single distance argument"
        )
    dist = float(np.atleast_1d(dist)[0])
    boundary_dist = float(np.atleast_1d(boundary_dist)[0])
    if boundary_dist < dist:
        raise StreamdeplException(
            f"boundary_dist ({boundary_dist}) must not be less than\n"
            + f"the well to stream distance ({dist})"
        )

    time = _make_arrays(time)
    depl = np.zeros_like(time)
    active = time > 0
    denom = np.sqrt(4.0 * T * time[active] / S)

    frac = np.zeros_like(denom)
    image_factor = 1.0
    # start negative so the first pass lands on the real well
    well_distance = -dist
    for _ in range(max_image_wells):
        well_distance += 2.0 * dist
        term = _image_well_term(well_distance, denom)
        frac += term * image_factor
        if not term.any():
            break

        # reflect across the no-flow boundary
        well_distance += 2.0 * boundary_dist - 2.0 * dist
        term = _image_well_term(well_distance, denom)
        frac += term * image_factor
        if not term.any():
            break

        image_factor *= -1.0
    else:
        logger.warning(
            "image well series did not converge after %d pairs "
            "(T=%g, S=%g, dist=%g, boundary_dist=%g)",
            max_image_wells,
            T,
            S,
            dist,
            boundary_dist,
        )

    depl[active] = Q * frac
    return _unpack(depl)


def sdf_depletion(sdf, time, Q, **kwargs):
    """
    Calculate Glover depletion parameterized by a Stream Depletion Factor

    The SDF lumps distance, storage and transmissivity into a single
    time scale (dist**2 * S / T), so the Glover and Balmer fraction
    becomes erfc(sqrt(SDF / (4 * t))).

    Parameters
    ----------
    sdf: float
        stream depletion factor [T]
    time: float, optionally np.array or list
        time at which to calculate results [T]
    Q: float
        pumping rate (+ is extraction) [L**3/T]
    **kwargs: included to all depletion methods for extra values required in some calls

    Returns
    -------
    depletion: float or array of floats
        depletion values at input times. Depletion at time zero
        (or earlier) is zero.
    """
    _check_positive("sdf_depletion", sdf=sdf)
    time = _make_arrays(time)
    depl = np.zeros_like(time)
    active = time > 0
    depl[active] = Q * sps.erfc(np.sqrt(sdf / (4.0 * time[active])))
    return _unpack(depl)


def sdf(T, S, dist, **kwargs):
    """
    Stream Depletion Factor

    Stream Depletion Factor was defined by Jenkins (1968) and described
    in Jenkins as the time when the volume of stream depletion is
    28 percent of the net volume pumped from the well.
    SDF = dist**2 * S/T.

    Jenkins, C.T., Computation of rate and volume of stream depletion
    by wells: U.S. Geological Survey Techniques of Water-Resources
    Investigations, Chapter D1, Book 4, https://pubs.usgs.gov/twri/twri4d1/.

    Parameters
    ----------
    T: float
        transmissivity [L**2/T]
    S: float
        storage [unitless]
    dist: float, optionally np.array or list
        distance at which to calculate results in [L]

    Returns
    -------
    SDF: float
        Stream depletion factor [T]
    """
    _check_positive("sdf", T=T, S=S)
    if isinstance(dist, list):
        dist = np.array(dist)
    return dist**2 * S / T


# List depletion methods so they can be called
# programatically, with the parameters each one requires
ALL_DEPL_METHODS = {
    "glover_depletion": glover_depletion,
    "glover_alluvial_depletion": glover_alluvial_depletion,
    "sdf_depletion": sdf_depletion,
}

DEPL_METHOD_PARAMS = {
    "glover_depletion": ["T", "S", "dist"],
    "glover_alluvial_depletion": ["T", "S", "dist", "boundary_dist"],
    "sdf_depletion": ["sdf"],
}

AF2CF = 43560.0  # cubic feet per acre-foot
GPD_FT2FT2_DAY = 1 / 7.481  # gal/day/ft to ft**2/day
SEC2DAY = 60 * 60 * 24  # factor to conver x/sec to x/day
