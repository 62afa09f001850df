import datetime
import logging

import numpy as np
import pandas as pd
import pytest

import streamdepl
from streamdepl import StreamdeplException
from streamdepl.convolution import total_days


@pytest.fixture
def reference_aquifer():
    """aquifer and pumping setup shared by the monthly reference runs:
    a single 100 acre-ft month of pumping in January 2025
    """
    return {
        "usage": {datetime.date(2025, 1, 1): 100.0},
        "dist": 4000.0,
        "S": 0.2,
        "T": 261800.0 * streamdepl.GPD_FT2FT2_DAY,  # 261,800 gpd/ft
        "days_per_month": 30.42,
        "total_months": 120,
    }


def test_glover_depletion():
    """Test for the glover calculations
    against the Glover & Balmer (1954) paper
    """
    dist = [1000, 5000, 10000]
    Q = 1
    time = 365 * 5  # paper evaluates at 5 years in days
    K = 0.001  # ft/sec
    D = 100  # thickness in feet
    T = K * D * streamdepl.SEC2DAY  # converting to ft/day
    S = 0.2
    Qs = streamdepl.glover_depletion(T, S, time, dist, Q)
    assert not any(np.isnan(Qs))
    assert np.allclose(Qs, [0.9365, 0.6906, 0.4259], atol=1e-3)


def test_sdf():
    """Test for streamflow depletion factor
    using values from original Jenkins (1968) paper
    https://doi.org/10.1111/j.1745-6584.1968.tb01641.x
    note Jenkins rounded to nearest 10 (page 42)
    """

    dist = 5280.0 / 2.0
    T = 5.0e4 / 7.48
    S = 0.5
    sdf = streamdepl.sdf(T, S, dist)
    assert np.allclose(sdf, 520, atol=1.5)


def test_sdf_depletion_matches_glover():
    """SDF form of the solution is the Glover solution with
    distance, storage and transmissivity lumped together"""
    T, S, dist = 35000.0, 0.2, 4000.0
    time = [1.0, 30.0, 365.0, 3650.0]
    glover = streamdepl.glover_depletion(T, S, time, dist, 1.0)
    sdf_depl = streamdepl.sdf_depletion(streamdepl.sdf(T, S, dist), time, 1.0)
    assert np.allclose(glover, sdf_depl)

    # Jenkins (1968) Table 1, t/sdf = 1, 2, 6
    sdf = 100.0
    assert np.allclose(
        streamdepl.sdf_depletion(sdf, [sdf, 2 * sdf, 6 * sdf], 1.0),
        [0.480, 0.617, 0.773],
        atol=5e-3,
    )


@pytest.mark.parametrize(
    "depl_f, kwargs",
    [
        (streamdepl.glover_depletion, {"T": 35000.0, "S": 0.2, "dist": 4000.0}),
        (
            streamdepl.glover_alluvial_depletion,
            {"T": 35000.0, "S": 0.2, "dist": 4000.0, "boundary_dist": 8000.0},
        ),
        (streamdepl.sdf_depletion, {"sdf": 265.0}),
    ],
)
def test_zero_time(depl_f, kwargs):
    """depletion at (or before) time zero is zero, never NaN"""
    depl = depl_f(time=[0.0, -1.0, 10.0], Q=1.0, **kwargs)
    assert not np.isnan(depl).any()
    assert np.allclose(depl[:2], 0.0)
    assert depl[2] > 0.0
    assert depl_f(time=0, Q=1.0, **kwargs) == 0


@pytest.mark.parametrize(
    "depl_method, params",
    [
        ("glover_depletion", {"T": 35000.0, "S": 0.2, "dist": 4000.0}),
        (
            "glover_alluvial_depletion",
            {"T": 35000.0, "S": 0.2, "dist": 4000.0, "boundary_dist": 8000.0},
        ),
        ("sdf_depletion", {"sdf": 265.0}),
    ],
)
def test_monotonic_response(depl_method, params):
    """step response never decreases with elapsed time. The image well
    cutoff can introduce steps of about erfc(2.9) in the bounded case."""
    resp = streamdepl.step_response(depl_method, 3651, **params)
    assert len(resp) == 3651
    assert resp[0] == 0.0
    assert np.all(resp >= 0.0)
    if depl_method == "glover_alluvial_depletion":
        assert np.all(np.diff(resp) >= -1e-4)
        assert np.all(resp <= 1.0 + 1e-3)
    else:
        assert np.all(np.diff(resp) >= 0.0)
        assert np.all(resp <= 1.0)


def test_alluvial_far_boundary_matches_glover():
    """with the boundary very far away no image wells contribute and
    the bounded solution collapses to the infinite aquifer"""
    T, S, dist = 35000.0, 0.2, 4000.0
    time = np.array([10.0, 100.0, 1000.0])
    alluvial = streamdepl.glover_alluvial_depletion(
        T, S, time, dist, 1.0, boundary_dist=1.0e6
    )
    glover = streamdepl.glover_depletion(T, S, time, dist, 1.0)
    assert np.allclose(alluvial, glover)


def test_alluvial_long_time_full_capture():
    """a well between a stream and a valley wall eventually takes all
    of its water from the stream, and sooner than in an infinite aquifer"""
    T, S, dist, bdist = 35000.0, 0.2, 4000.0, 8000.0
    frac = streamdepl.glover_alluvial_depletion(
        T, S, [365.0, 3650.0], dist, 1.0, boundary_dist=bdist
    )
    assert np.isclose(frac[1], 1.0, atol=0.02)
    assert frac[0] > streamdepl.glover_depletion(T, S, 365.0, dist, 1.0)


def test_alluvial_image_well_cap(caplog):
    """series that cannot finish within max_image_wells pairs warns"""
    with caplog.at_level(logging.WARNING, logger="streamdepl.solutions"):
        streamdepl.glover_alluvial_depletion(
            35000.0, 0.2, 3650.0, 4000.0, 1.0, boundary_dist=8000.0,
            max_image_wells=1,
        )
    assert "did not converge" in caplog.text


def test_incremental_response():
    inc = streamdepl.incremental_response([0.2, 0.5, 0.9])
    assert np.allclose(inc, [0.2, 0.3, 0.4])


def test_superpose_single_day():
    """one pumping day: depletion starts the day after pumping and
    follows the first difference of the step response"""
    rates = pd.Series([10.0], index=pd.DatetimeIndex(["2025-01-01"]))
    depl = streamdepl.superpose_daily(rates, [0.0, 0.5, 0.8, 1.0])
    expected = pd.Series(
        [0.0, 5.0, 3.0, 2.0],
        index=pd.date_range("2025-01-02", periods=4, freq="D"),
    )
    assert depl.index.equals(expected.index)
    assert np.allclose(depl.values, expected.values)


def test_superpose_overlapping_days():
    """later pumping days add shifted copies of the incremental
    response, negative rates are ignored"""
    rates = pd.Series(
        [10.0, 10.0, -50.0],
        index=pd.DatetimeIndex(["2025-01-01", "2025-01-02", "2025-01-03"]),
    )
    depl = streamdepl.superpose_daily(rates, [0.0, 0.5, 0.8, 1.0])
    assert depl.index[0] == pd.Timestamp("2025-01-02")
    assert np.allclose(depl.values, [0.0, 5.0, 8.0, 5.0, 2.0, 0.0])


def test_superpose_continuous_pumping_reaches_rate():
    """steady pumping gives rate times the cumulative response"""
    resp = streamdepl.step_response("sdf_depletion", 400, sdf=50.0)
    days = pd.date_range("2025-01-01", periods=400, freq="D")
    rates = pd.Series(100.0, index=days)
    depl = streamdepl.superpose_daily(rates, resp)
    # day k+1 after the start sees the response at elapsed day k
    assert np.allclose(depl.values[: len(resp)], 100.0 * resp)


def test_daily_expansion_conserves_volume():
    """daily spreading keeps the monthly volume, using actual month lengths"""
    usage = {
        "2024-01-01": 31.0,
        "2024-02-01": 29.0,  # leap year
        "2024-04-15": 30.0,  # any day in the month identifies it
        "2024-04-01": 10.0,  # same month, summed
        "2023-02-01": 56.0,
    }
    daily = streamdepl.monthly_to_daily(usage)
    assert np.isclose(daily.sum(), sum(usage.values()) * streamdepl.AF2CF)
    assert np.isclose(daily[pd.Timestamp("2024-01-31")], streamdepl.AF2CF)
    assert np.isclose(daily[pd.Timestamp("2024-02-29")], streamdepl.AF2CF)
    assert np.isclose(daily[pd.Timestamp("2024-04-30")], 40.0 / 30.0 * streamdepl.AF2CF)
    assert np.isclose(daily[pd.Timestamp("2023-02-28")], 2.0 * streamdepl.AF2CF)
    assert len(daily) == 31 + 29 + 30 + 28


def test_monthly_aggregation_conserves_depletion():
    days = pd.date_range("2025-01-20", periods=30, freq="D")
    daily = pd.Series(streamdepl.AF2CF, index=days)
    monthly = streamdepl.monthly_depletion(daily)
    assert np.allclose(monthly.values, [12.0, 18.0])
    assert monthly.index[0] == pd.Timestamp("2025-01-01")


def test_infinite_aquifer_results(reference_aquifer):
    """monthly depletion for the Glover infinite aquifer"""
    p = reference_aquifer
    value = streamdepl.calculate_streamflow_depletion_infinite(
        p["usage"],
        p["dist"],
        p["S"],
        p["T"],
        p["days_per_month"],
        p["total_months"],
    )
    assert len(value) <= p["total_months"]
    assert value[0][0] == datetime.date(2025, 1, 1)
    assert value[5][0] == datetime.date(2025, 6, 1)
    assert np.allclose(
        [v for _, v in value[:6]],
        [
            8.169915278703847,
            20.979264088137487,
            13.514164851251204,
            7.75855587035028,
            5.433551969020377,
            3.857354439468754,
        ],
        atol=1e-5,
    )


def test_sdf_results(reference_aquifer):
    """monthly depletion for SDF = 265 days"""
    p = reference_aquifer
    value = streamdepl.calculate_streamflow_depletion_sdf(
        p["usage"], 265, p["days_per_month"], p["total_months"]
    )
    assert len(value) <= p["total_months"]
    assert np.allclose(
        [v for _, v in value[:6]],
        [
            0.7680351810235876,
            6.842148015576688,
            10.08458908541661,
            7.8994824450947645,
            6.35488902954355,
            4.885147733308235,
        ],
        atol=1e-5,
    )


def test_alluvial_results(reference_aquifer):
    """bounded aquifer returns all of the pumped water sooner than
    the infinite aquifer does"""
    p = reference_aquifer
    alluvial = streamdepl.calculate_streamflow_depletion_alluvial(
        p["usage"],
        p["dist"],
        8000.0,
        p["S"],
        p["T"],
        p["days_per_month"],
        p["total_months"],
    )
    infinite = streamdepl.calculate_streamflow_depletion_infinite(
        p["usage"],
        p["dist"],
        p["S"],
        p["T"],
        p["days_per_month"],
        p["total_months"],
    )
    assert len(alluvial) > 0
    assert all(v > streamdepl.NOISE_THRESHOLD for _, v in alluvial)
    # first month the nearby boundary barely matters
    assert np.isclose(alluvial[0][1], infinite[0][1], rtol=0.05)
    # after a year nearly all 100 acre-ft has been taken from the stream
    first_year = sum(v for d, v in alluvial if d < datetime.date(2026, 1, 1))
    first_year_inf = sum(v for d, v in infinite if d < datetime.date(2026, 1, 1))
    assert first_year > first_year_inf
    assert first_year < 100.0 + 1e-3


def test_alluvial_narrow_aquifer_stops_at_negative_month():
    """well on the boundary: image terms switching on at the cutoff put
    small negative steps in the response, and results end at the first
    negative month"""
    usage = {
        datetime.date(2025, m, 1): v
        for m, v in zip(range(1, 7), [50.0, 80.0, 0.0, 120.0, 30.0, 10.0])
    }
    T, S, dist, days_per_month, total_months = 35000.0, 0.2, 4000.0, 30.42, 120
    results = streamdepl.calculate_streamflow_depletion_alluvial(
        usage, dist, dist, S, T, days_per_month, total_months
    )
    assert len(results) > 0

    response = streamdepl.step_response(
        "glover_alluvial_depletion",
        total_days(days_per_month, total_months),
        T=T,
        S=S,
        dist=dist,
        boundary_dist=dist,
    )
    monthly = streamdepl.monthly_depletion(
        streamdepl.superpose_daily(streamdepl.monthly_to_daily(usage), response)
    )
    window = monthly.loc[
        pd.date_range("2025-01-01", periods=total_months, freq="MS")
        .intersection(monthly.index)
    ]
    negative = window.index[window.values < 0.0]
    if len(negative) > 0:
        # nothing reported on or after the first negative month
        assert all(pd.Timestamp(d) < negative[0] for d, _ in results)
        window = window.loc[window.index < negative[0]]
    expected = window.loc[window > streamdepl.NOISE_THRESHOLD]
    assert [d for d, _ in results] == [d.date() for d in expected.index]
    assert np.allclose([v for _, v in results], expected.values)
    assert sum(v for _, v in results) < sum(usage.values()) + 1e-3


def test_results_sparse_and_conserving(reference_aquifer):
    """reported months are all above the noise threshold and
    do not exceed the pumped volume"""
    p = reference_aquifer
    value = streamdepl.calculate_streamflow_depletion_infinite(
        p["usage"], p["dist"], p["S"], p["T"], p["days_per_month"], 120
    )
    assert all(v > streamdepl.NOISE_THRESHOLD for _, v in value)
    assert sum(v for _, v in value) <= 100.0
    dates = [d for d, _ in value]
    assert dates == sorted(dates)


@pytest.mark.parametrize(
    "calc, args",
    [
        (streamdepl.calculate_streamflow_depletion_infinite, (4000.0, 0.2, 35000.0)),
        (
            streamdepl.calculate_streamflow_depletion_alluvial,
            (4000.0, 8000.0, 0.2, 35000.0),
        ),
        (streamdepl.calculate_streamflow_depletion_sdf, (265.0,)),
    ],
)
def test_zero_pumping(calc, args):
    """no pumping, no depletion"""
    usage = {datetime.date(2025, m, 1): 0.0 for m in range(1, 13)}
    assert calc(usage, *args, 30.42, 24) == []


def test_results_sequence_windowing():
    """negative months end the sequence, tiny months are dropped"""
    months = pd.date_range("2025-01-01", periods=5, freq="MS")
    monthly = pd.Series([5.0, 0.0005, 2.0, -0.1, 7.0], index=months)
    usage = {datetime.date(2025, 1, 1): 1.0}
    results = streamdepl.results_sequence(usage, 5, monthly)
    assert results == [
        (datetime.date(2025, 1, 1), 5.0),
        (datetime.date(2025, 3, 1), 2.0),
    ]
    # horizon shorter than the series
    assert streamdepl.results_sequence(usage, 1, monthly) == [
        (datetime.date(2025, 1, 1), 5.0)
    ]
    # months missing from the monthly series count as zero
    assert streamdepl.results_sequence(
        {datetime.date(2024, 11, 1): 1.0}, 3, monthly
    ) == [(datetime.date(2025, 1, 1), 5.0)]


def test_total_days():
    assert total_days(30.42, 120) == 3651
    assert total_days(30.0, 2) == 60
    with pytest.raises(StreamdeplException):
        total_days(30.42, -1)
    with pytest.raises(StreamdeplException):
        total_days(0.0, 12)


def test_add_months():
    assert streamdepl.add_months(
        datetime.date(2023, 5, 15), 1
    ) == datetime.date(2023, 6, 15)
    assert streamdepl.add_months(
        datetime.date(2023, 12, 15), 3
    ) == datetime.date(2024, 3, 15)
    assert streamdepl.add_months(
        datetime.date(2023, 3, 15), -5
    ) == datetime.date(2022, 10, 15)
    assert streamdepl.add_months(datetime.date(2023, 1, 31), 1) is None
    assert streamdepl.add_months(
        pd.Timestamp("2024-01-29"), 1
    ) == pd.Timestamp("2024-02-29")


def test_date_helpers():
    assert streamdepl.days_in_month(datetime.date(2024, 2, 10)) == 29
    assert streamdepl.days_in_month("2023-02-01") == 28
    assert streamdepl.month_start("2024-07-19") == pd.Timestamp("2024-07-01")


def test_input_validation():
    usage = {datetime.date(2025, 1, 1): 100.0}
    with pytest.raises(StreamdeplException):
        streamdepl.calculate_streamflow_depletion_infinite(
            usage, 4000.0, 0.2, 0.0, 30.42, 12
        )
    with pytest.raises(StreamdeplException):
        streamdepl.calculate_streamflow_depletion_infinite(
            usage, 4000.0, np.nan, 35000.0, 30.42, 12
        )
    with pytest.raises(StreamdeplException):
        streamdepl.calculate_streamflow_depletion_alluvial(
            usage, 4000.0, 2000.0, 0.2, 35000.0, 30.42, 12
        )
    with pytest.raises(StreamdeplException):
        streamdepl.calculate_streamflow_depletion_sdf(usage, -5.0, 30.42, 12)
    with pytest.raises(StreamdeplException):
        streamdepl.calculate_streamflow_depletion_sdf({}, 265.0, 30.42, 12)
    with pytest.raises(StreamdeplException):
        streamdepl.calculate_streamflow_depletion_sdf(
            {datetime.date(2025, 1, 1): np.nan}, 265.0, 30.42, 12
        )
    with pytest.raises(StreamdeplException):
        streamdepl.glover_alluvial_depletion(35000.0, 0.2, 10.0, 4000.0, 1.0)
    with pytest.raises(StreamdeplException):
        streamdepl.step_response("theis_depletion", 10, T=1.0, S=1.0, dist=1.0)
    with pytest.raises(StreamdeplException):
        streamdepl.step_response("glover_depletion", 10, T=1.0, S=1.0)


def test_well(reference_aquifer):
    """Well objects give the same answer as the calculator functions"""
    p = reference_aquifer
    well = streamdepl.Well(
        "irr1",
        p["usage"],
        depl_method="sdf_depletion",
        days_per_month=p["days_per_month"],
        total_months=p["total_months"],
        T=p["T"],
        S=p["S"],
        dist=p["dist"],
    )
    assert np.isclose(well.sdf, streamdepl.sdf(p["T"], p["S"], p["dist"]))
    direct = streamdepl.calculate_streamflow_depletion_sdf(
        p["usage"], well.sdf, p["days_per_month"], p["total_months"]
    )
    assert well.depletion == direct
    assert np.isclose(well.total_depletion, sum(v for _, v in direct))
    ts = well.depletion_series
    assert ts.name == "irr1"
    assert ts.index[0] == pd.Timestamp("2025-01-01")
    assert np.isclose(ts.max(), well.max_depletion)

    # sdf from T, S and dist is the Glover infinite aquifer solution
    glover = streamdepl.Well(
        "irr1",
        p["usage"],
        days_per_month=p["days_per_month"],
        total_months=p["total_months"],
        T=p["T"],
        S=p["S"],
        dist=p["dist"],
    )
    assert np.allclose(
        [v for _, v in glover.depletion[:12]],
        [v for _, v in well.depletion[:12]],
    )

    with pytest.raises(StreamdeplException):
        streamdepl.Well("bad", p["usage"], depl_method="glover_alluvial_depletion",
                        T=p["T"], S=p["S"], dist=p["dist"])
    with pytest.raises(StreamdeplException):
        streamdepl.Well("bad", p["usage"], depl_method="hunt_99_depletion")
    # fractional horizons are rejected, not truncated
    with pytest.raises(StreamdeplException):
        streamdepl.Well("bad", p["usage"], total_months=12.5,
                        T=p["T"], S=p["S"], dist=p["dist"])
    whole = streamdepl.Well("ok", p["usage"], total_months=12.0,
                            T=p["T"], S=p["S"], dist=p["dist"])
    assert len(whole.depletion) == 12
