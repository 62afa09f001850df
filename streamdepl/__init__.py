from .streamdepl_exceptions import StreamdeplException
from .solutions import (
    AF2CF,
    ALL_DEPL_METHODS,
    DEPL_METHOD_PARAMS,
    GPD_FT2FT2_DAY,
    SEC2DAY,
    glover_alluvial_depletion,
    glover_depletion,
    sdf,
    sdf_depletion,
)
from .utilities import (
    add_months,
    create_usage_template,
    days_in_month,
    monthly_to_daily,
    month_start,
    read_usage_csv,
)
from .convolution import (
    NOISE_THRESHOLD,
    calculate_streamflow_depletion_alluvial,
    calculate_streamflow_depletion_infinite,
    calculate_streamflow_depletion_sdf,
    incremental_response,
    monthly_depletion,
    results_sequence,
    results_to_series,
    step_response,
    superpose_daily,
)
from .urf import UrfValue, combined_urf_results, read_urf_csv, urf_lagging
from .wells import Well

__version__ = "0.1.0"
