import numpy as np

import streamdepl
from streamdepl.convolution import (
    _calculate_streamflow_depletion,
    results_to_series,
    total_days,
)
from streamdepl.solutions import DEPL_METHOD_PARAMS, _check_nones
from streamdepl.streamdepl_exceptions import StreamdeplException
from streamdepl.utilities import _usage_to_series


class Well:
    """Class to facilitate depletion calculations for a single well

    Objects from this class hold the aquifer parameters and monthly
    usage needed to call any of the depletion methods in the package.
    The intent is that users will not have to call the convolution
    engine directly. Wells are generally created through a Project.
    """

    def __init__(
        self,
        name,
        usage,
        depl_method="glover_depletion",
        days_per_month=30.42,
        total_months=120,
        T=None,
        S=None,
        dist=None,
        boundary_dist=None,
        sdf=None,
    ) -> None:
        """
        Parameters
        ----------
        name: string
            pumping well name
        usage: dict or pandas Series
            monthly pumping volumes [acre-ft] keyed by month
        depl_method: string, optional
            Method to be used for depletion calculations.
            Defaults to 'glover_depletion'.
        days_per_month: float, optional
            average days per month. Defaults to 30.42
        total_months: int, optional
            number of months to report. Defaults to 120.
        T: float
            Aquifer Transmissivity [ft**2/day]
        S: float
            Aquifer specific yield [unitless]
        dist: float
            Distance between well and stream [ft]
        boundary_dist: float
            Distance between stream and no-flow boundary [ft],
            only used by 'glover_alluvial_depletion'
        sdf: float
            Stream Depletion Factor [days], only used by 'sdf_depletion'.
            If not given for 'sdf_depletion' it is computed from T, S
            and dist.
        """
        self._depletion = None
        self.name = name
        self.usage = _usage_to_series(usage)
        self.depl_method = depl_method.lower()
        if self.depl_method not in streamdepl.ALL_DEPL_METHODS:
            raise StreamdeplException(
                f"well {name}: unknown depletion method {depl_method}"
            )
        self.days_per_month = days_per_month
        self.total_months = total_months
        total_days(days_per_month, total_months)
        self.T = T
        self.S = S
        self.dist = dist
        self.boundary_dist = boundary_dist
        if self.depl_method == "sdf_depletion" and sdf is None:
            if None not in (T, S, dist):
                sdf = streamdepl.sdf(T, S, dist)
        self.sdf = sdf

        all_params = {
            "T": T,
            "S": S,
            "dist": dist,
            "boundary_dist": boundary_dist,
            "sdf": sdf,
        }
        required = DEPL_METHOD_PARAMS[self.depl_method]
        _check_nones(all_params, {self.depl_method: required})
        self.params = {k: all_params[k] for k in required}

    def _calc_depletion(self):
        """calculate the monthly depletion result sequence"""
        return _calculate_streamflow_depletion(
            self.usage,
            self.depl_method,
            self.days_per_month,
            self.total_months,
            **self.params,
        )

    @property
    def depletion(self):
        if self._depletion is None:
            self._depletion = self._calc_depletion()
        return self._depletion

    @property
    def depletion_series(self):
        return results_to_series(self.depletion).rename(self.name)

    @property
    def total_depletion(self):
        return np.sum([v for _, v in self.depletion])

    @property
    def max_depletion(self):
        if len(self.depletion) == 0:
            return 0.0
        return np.max([v for _, v in self.depletion])
