"""Unit Response Function (URF) lagging of monthly usage to stream reaches

A URF table gives, for each reach, the fraction of a unit monthly release
that shows up in that reach 0, 1, 2, ... months later. Lagging convolves
a monthly usage series with those short tables.
"""

from collections import namedtuple

import pandas as pd

from streamdepl.streamdepl_exceptions import StreamdeplException
from streamdepl.utilities import _usage_to_series

# one row of a URF table: month offset, reach id and weight
UrfValue = namedtuple("UrfValue", ["month", "reach", "urf_val"])


def _urf_to_frame(urf):
    """private function to put URF rows into a DataFrame"""
    if isinstance(urf, pd.DataFrame):
        df = urf.loc[:, ["month", "reach", "urf_val"]].copy()
    else:
        df = pd.DataFrame(
            [tuple(u) for u in urf], columns=["month", "reach", "urf_val"]
        )
    if df["urf_val"].isna().any():
        raise StreamdeplException("URF table contains missing weights")
    return df


def urf_lagging(usage, urf):
    """Lag monthly usage onto each reach with its unit response weights

    Weights of a reach are sorted by month offset and applied by
    position: the first weight lands in the usage month itself, the
    k-th weight k calendar months later. Contributions to the same
    month are summed.

    Parameters
    ----------
    usage: dict or pandas Series
        monthly usage volumes keyed by month
    urf: iterable of UrfValue (or (month, reach, urf_val) tuples),
        or a DataFrame with month, reach and urf_val columns

    Returns
    -------
    lagged: dict
        reach id -> pandas Series of lagged volumes indexed by
        month start, sorted by date
    """
    usage = _usage_to_series(usage)
    urf = _urf_to_frame(urf)

    lagged_result = {}
    for reach in urf["reach"].drop_duplicates().tolist():
        reach_urf = (
            urf.loc[urf["reach"] == reach]
            .sort_values("month", kind="stable")["urf_val"]
            .values
        )

        reach_lagged = {}
        for usage_date, month_usage in usage.items():
            for i, urf_val in enumerate(reach_urf):
                urf_date = usage_date + pd.DateOffset(months=i)
                reach_lagged[urf_date] = (
                    reach_lagged.get(urf_date, 0.0) + month_usage * urf_val
                )

        lagged_result[reach] = pd.Series(reach_lagged, dtype=float).sort_index()

    return lagged_result


def combined_urf_results(lagged):
    """Sum lagged results over all reaches

    Parameters
    ----------
    lagged: dict
        output of urf_lagging

    Returns
    -------
    results: list of (datetime.date, float) tuples sorted by date
    """
    if len(lagged) == 0:
        return []
    combined = pd.concat(list(lagged.values())).groupby(level=0).sum()
    return [(d.date(), float(v)) for d, v in combined.sort_index().items()]


def read_urf_csv(filename):
    """Read a URF table from a CSV file with month, reach
    and urf_val columns, returning a list of UrfValue"""
    df = pd.read_csv(filename)
    missing = {"month", "reach", "urf_val"} - set(df.columns)
    if len(missing) > 0:
        raise StreamdeplException(
            f"URF file {filename} is missing columns: "
            + ", ".join(sorted(missing))
        )
    return [
        UrfValue(r.month, r.reach, r.urf_val)
        for r in df.loc[:, ["month", "reach", "urf_val"]].itertuples(index=False)
    ]
