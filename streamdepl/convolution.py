"""Convolution engine turning monthly pumping into monthly stream depletion

A unit step response is evaluated once per elapsed day from one of the
analytical solutions, monthly pumping volumes are spread to daily rates,
and every pumping day is superposed as a time-shifted copy of the
incremental response. Daily depletion is then rolled up to calendar
months and windowed into the returned result sequence.
"""

import logging

import numpy as np
import pandas as pd

from streamdepl.solutions import AF2CF, ALL_DEPL_METHODS, DEPL_METHOD_PARAMS
from streamdepl.solutions import _check_nones, _check_positive
from streamdepl.streamdepl_exceptions import StreamdeplException
from streamdepl.utilities import _usage_to_series, add_months, monthly_to_daily

logger = logging.getLogger(__name__)

# monthly depletion at or below this [acre-ft/month] is not reported
NOISE_THRESHOLD = 0.001


def _get_depl_method(depl_method):
    """look up a depletion solution by name"""
    try:
        return ALL_DEPL_METHODS[depl_method.lower()]
    except (KeyError, AttributeError):
        raise StreamdeplException(
            f"unknown depletion method: {depl_method}\n"
            + "available methods are: "
            + ", ".join(ALL_DEPL_METHODS.keys())
        ) from None


def total_days(days_per_month, total_months):
    """length of the step response array for a simulation horizon"""
    _check_positive("total_days", days_per_month=days_per_month)
    if int(total_months) != total_months or total_months < 0:
        raise StreamdeplException(
            f"total_months must be a non-negative integer, got {total_months}"
        )
    return int(np.ceil(total_months * days_per_month))


def step_response(depl_method, ndays, **params):
    """Evaluate the unit step response of a depletion solution

    Parameters
    ----------
    depl_method: string
        key in ALL_DEPL_METHODS
    ndays: int
        number of elapsed days to evaluate, starting at day 0
    **params: parameters for the solution, e.g. T, S, dist,
        boundary_dist or sdf

    Returns
    -------
    response: np.array
        depletion fraction at elapsed days 0, 1, ..., ndays-1
    """
    depl_f = _get_depl_method(depl_method)
    required = DEPL_METHOD_PARAMS[depl_method.lower()]
    _check_nones(
        {k: params.get(k) for k in required}, {depl_method: required}
    )
    times = np.arange(ndays, dtype=float)
    return np.atleast_1d(depl_f(time=times, Q=1.0, **params)).astype(float)


def incremental_response(response):
    """First difference of a cumulative step response.

    The first element is kept as-is, so inc[0] = response[0] and
    inc[i] = response[i] - response[i-1]. A stress that started i days
    ago contributes rate * inc[i] on top of what it already contributed.
    """
    return np.diff(np.asarray(response, dtype=float), prepend=0.0)


def superpose_daily(rates_daily, response):
    """Superpose the step response of every pumping day

    A day pumping at rate r > 0 adds r * inc[i] to the day i+1 days
    after it, inc being the incremental_response. Depletion therefore
    starts the day after pumping. Days with rate <= 0 are skipped.

    Parameters
    ----------
    rates_daily: pandas Series
        daily pumping rate [ft**3/day] indexed by day
    response: array-like
        step response fraction at elapsed days 0, 1, ...

    Returns
    -------
    depletion: pandas Series
        daily depletion [ft**3/day] indexed by day
    """
    inc = incremental_response(response)
    if len(inc) == 0 or len(rates_daily) == 0:
        return pd.Series(dtype=float, index=pd.DatetimeIndex([]))

    start = rates_daily.index.min()
    days = pd.date_range(start, rates_daily.index.max(), freq="D")
    rates = rates_daily.groupby(level=0).sum().reindex(days, fill_value=0.0)
    rates = np.where(rates.values > 0, rates.values, 0.0)

    depl = np.convolve(rates, inc)
    index = pd.date_range(
        start + pd.Timedelta(days=1), periods=len(depl), freq="D"
    )
    logger.debug(
        "superposed %d pumping days over a %d day response",
        np.count_nonzero(rates),
        len(inc),
    )
    return pd.Series(depl, index=index)


def monthly_depletion(daily):
    """Sum daily depletion [ft**3/day] into calendar months [acre-ft]"""
    if len(daily) == 0:
        return pd.Series(dtype=float, index=pd.DatetimeIndex([]))
    return daily.resample("MS").sum() / AF2CF


def results_sequence(usage, total_months, monthly):
    """Window monthly depletion into the reported result sequence

    Starting at the first usage month, step one calendar month at a
    time for total_months months. A strictly negative month is taken to
    mean the source is fully depleted and ends the sequence. Months at
    or below NOISE_THRESHOLD are left out, so the result is sparse.

    Parameters
    ----------
    usage: dict or pandas Series
        monthly pumping volumes, only the first month is used
    total_months: int
        number of months to walk
    monthly: pandas Series
        monthly depletion [acre-ft] indexed by month start

    Returns
    -------
    results: list of (datetime.date, float) tuples
    """
    start_date = _usage_to_series(usage).index.min()
    results = []
    for month in range(int(total_months)):
        result_date = add_months(start_date, month)
        if result_date is None:
            logger.info(
                "no valid date %d months after %s, ending results",
                month,
                start_date.date(),
            )
            break
        monthly_depl = monthly.get(result_date, 0.0)

        if monthly_depl < 0.0:
            logger.info(
                "negative depletion (%g) on %s, source fully depleted",
                monthly_depl,
                result_date.date(),
            )
            break

        if monthly_depl > NOISE_THRESHOLD:
            results.append((result_date.date(), float(monthly_depl)))
    return results


def results_to_series(results):
    """convert a result sequence into a pandas Series indexed by month"""
    return pd.Series(
        [v for _, v in results],
        index=pd.DatetimeIndex([pd.Timestamp(d) for d, _ in results]),
        dtype=float,
        name="depletion",
    )


def _calculate_streamflow_depletion(
    pumping_volumes_monthly, depl_method, days_per_month, total_months, **params
):
    """shared driver for all depletion calculators"""
    usage = _usage_to_series(pumping_volumes_monthly)
    ndays = total_days(days_per_month, total_months)

    response = step_response(depl_method, ndays, **params)
    rates_daily = monthly_to_daily(usage)
    daily = superpose_daily(rates_daily, response)
    monthly = monthly_depletion(daily)
    return results_sequence(usage, total_months, monthly)


def calculate_streamflow_depletion_infinite(
    pumping_volumes_monthly,
    distance_to_well,
    specific_yield,
    transmissivity,
    days_per_month,
    total_months,
):
    """Monthly stream depletion for a well in an infinite aquifer (Glover)

    Parameters
    ----------
    pumping_volumes_monthly: dict or pandas Series
        monthly pumping volumes [acre-ft] keyed by month
    distance_to_well: float
        distance from the well to the stream [ft]
    specific_yield: float
        specific yield or storativity [unitless]
    transmissivity: float
        transmissivity [ft**2/day]
    days_per_month: float
        average days per month used to size the response
    total_months: int
        number of months to report

    Returns
    -------
    results: list of (datetime.date, float) tuples
        month start and depletion [acre-ft/month], only for months
        above 0.001 acre-ft, ending early at the first negative month
    """
    return _calculate_streamflow_depletion(
        pumping_volumes_monthly,
        "glover_depletion",
        days_per_month,
        total_months,
        T=transmissivity,
        S=specific_yield,
        dist=distance_to_well,
    )


def calculate_streamflow_depletion_alluvial(
    pumping_volumes_monthly,
    distance_to_well,
    distance_to_boundary,
    specific_yield,
    transmissivity,
    days_per_month,
    total_months,
):
    """Monthly stream depletion for a well in a bounded alluvial aquifer

    Same as calculate_streamflow_depletion_infinite, with
    distance_to_boundary [ft] locating the no-flow boundary
    measured from the stream.
    """
    return _calculate_streamflow_depletion(
        pumping_volumes_monthly,
        "glover_alluvial_depletion",
        days_per_month,
        total_months,
        T=transmissivity,
        S=specific_yield,
        dist=distance_to_well,
        boundary_dist=distance_to_boundary,
    )


def calculate_streamflow_depletion_sdf(
    pumping_volumes_monthly, sdf, days_per_month, total_months
):
    """Monthly stream depletion from a Stream Depletion Factor [days]"""
    return _calculate_streamflow_depletion(
        pumping_volumes_monthly,
        "sdf_depletion",
        days_per_month,
        total_months,
        sdf=sdf,
    )
