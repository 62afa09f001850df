import numpy as np
import pandas as pd

from streamdepl.solutions import AF2CF
from streamdepl.streamdepl_exceptions import StreamdeplException


def add_months(date, months):
    """Add a number of calendar months to a date, keeping the day of month.

    Year rollover is handled in both directions. Unlike pandas offsets,
    the day is never clamped to the end of a shorter month.

    Parameters
    ----------
    date: datetime.date, datetime.datetime or pandas.Timestamp
        starting date
    months: int
        number of months to add, may be negative

    Returns
    -------
    date: same type as the input, or None
        None when the day of month does not exist in the target
        month (e.g. January 31 plus one month)
    """
    year = date.year + (date.month + months - 1) // 12
    month = (date.month + months - 1) % 12 + 1
    try:
        return date.replace(year=year, month=month)
    except ValueError:
        return None


def days_in_month(date):
    """number of calendar days in the month containing date"""
    return pd.Timestamp(date).days_in_month


def month_start(date):
    """first day of the month containing date, as a pandas.Timestamp"""
    return pd.Timestamp(date).normalize().replace(day=1)


def _usage_to_series(usage):
    """private function to coerce a monthly usage mapping into a
    pandas Series indexed by month start

    Parameters
    ----------
    usage: dict or pandas Series
        pumping volumes [acre-ft] keyed by any date within the month.
        Dates can be datetime.date, datetime, Timestamp or ISO strings.

    Returns
    -------
    usage: pandas Series
        volumes indexed by sorted, unique month-start Timestamps.
        Entries falling in the same month are summed.
    """
    if isinstance(usage, pd.Series):
        dates = usage.index
        volumes = usage.values
    else:
        dates = list(usage.keys())
        volumes = list(usage.values())
    if len(volumes) == 0:
        raise StreamdeplException("monthly usage series is empty")
    try:
        index = pd.to_datetime(dates).to_period("M").to_timestamp()
    except (ValueError, TypeError) as e:
        raise StreamdeplException(
            f"could not interpret usage dates as calendar dates: {e}"
        ) from e
    volumes = np.asarray(volumes, dtype=float)
    if (~np.isfinite(volumes)).any():
        raise StreamdeplException(
            "monthly usage volumes must be finite numbers"
        )
    usage = pd.Series(volumes, index=index)
    return usage.groupby(level=0).sum().sort_index()


def monthly_to_daily(usage):
    """Spread monthly pumping volumes evenly over the days of each month

    Each month's volume is converted from acre-feet to cubic feet and
    divided by the actual number of days in that month (28-31).
    Contributions landing on the same day are summed.

    Parameters
    ----------
    usage: dict or pandas Series
        monthly pumping volumes [acre-ft] keyed by month

    Returns
    -------
    rates: pandas Series
        daily pumping rate [ft**3/day] indexed by day
    """
    usage = _usage_to_series(usage)
    pieces = []
    for month, volume in usage.items():
        ndays = month.days_in_month
        days = pd.date_range(month, periods=ndays, freq="D")
        pieces.append(pd.Series(volume * AF2CF / ndays, index=days))
    return pd.concat(pieces).groupby(level=0).sum().sort_index()


def read_usage_csv(filename, well=None):
    """Read monthly pumping volumes from a CSV file

    The file needs a "date" column and one column of monthly
    volumes [acre-ft] per well.

    Parameters
    ----------
    filename: string or pathlib.Path
        CSV file to read
    well: string, optional
        column to return. Defaults to None, which returns all columns.

    Returns
    -------
    usage: pandas DataFrame, or pandas Series if well is given
    """
    df = pd.read_csv(filename, parse_dates=["date"]).set_index("date")
    if well is None:
        return df
    if well not in df.columns:
        raise StreamdeplException(
            f"well {well} is not a column in usage file {filename}"
        )
    return df[well]


def create_usage_template(
    filename, well_ids, start_date="2025-01-01", nmonths=12
):
    """Write a blank monthly usage CSV file to be filled in by the user

    Parameters
    ----------
    filename: string or pathlib.Path
        CSV file to write
    well_ids: list of strings
        one column is made per well
    start_date: str or date, optional
        first month of the template. Defaults to "2025-01-01"
    nmonths: int, optional
        number of monthly rows. Defaults to 12.

    Returns
    -------
    df: pandas DataFrame
        the template that was written
    """
    dates = pd.date_range(month_start(start_date), periods=nmonths, freq="MS")
    df = pd.DataFrame(index=dates, columns=well_ids, data=0.0)
    df.index.name = "date"
    df.to_csv(filename, date_format="%Y-%m-%d")
    return df
