import logging
import os
from pathlib import Path

import pandas as pd
import yaml

from streamdepl.solutions import GPD_FT2FT2_DAY
from streamdepl.streamdepl_exceptions import StreamdeplException
from streamdepl.urf import combined_urf_results, read_urf_csv, urf_lagging
from streamdepl.utilities import read_usage_csv
from streamdepl.wells import Well

logger = logging.getLogger(__name__)


def _print_to_screen_and_file(s, ofp):
    """function to print formatted output to both
    the screen and a file

    Parameters
    ----------
    s: string
        string to point
    ofp: file pointer
        handle to an open output file for printing to

    Returns
    -------
    None
    """
    ofp.write(f"{s}\n")
    print(s)


def _print_single_well_header(ofp, wname, wmethod):
    ofp.write("#" * 50 + "\n")
    ofp.write(f"Well Name: {wname}\n")
    ofp.write(f"Depletion method: {wmethod}\n")


def _print_depl(ofp, cw_total, cw_max, cw_nmonths):
    ofp.write(
        f"{'Total depletion (acre-ft)':35s}{cw_total:<20.4f}\n"
        + f"{'Max monthly depletion (acre-ft)':35s}{cw_max:<20.4f}\n"
        + f"{'Months reported':35s}{cw_nmonths:<20d}\n"
    )


class Project:
    def __init__(self, ymlfile, write_results_to_files=True, project_dict=None):
        """
        Highest-level Class for a stream depletion analysis of one or
        more wells and URF-lagged usage series.

        Parameters
        ----------
        ymlfile: string or pathlib.Path
            Path to a yml file containing configuration information for a project.
            If None, project is initiated from the project_dict arg, if present. If
            both are None, throw an error.

        write_results_to_files: Bool
            True means all output files are written to disk. False means results are
            only held in memory and not written. Default is True

        project_dict: dictionary
            Dictionary containing all the data from a yml configuration. Only read if
            ymlfile is None. This option is to allow an in-memory-only driving of the
            project to avoid any interaction with the disk. Relative file names
            in the dictionary are resolved from the current directory.
        """
        self.write_results_to_files = write_results_to_files
        self.wells = {}  # dictionary to hold well objects
        self.urfs = {}  # dictionary to hold URF tables and usage
        self.depl_method = "glover_depletion"  # default, can specify in the yml file
        self.days_per_month = 30.42
        self.total_months = 120
        self.usage_df = None

        # populate the project data from YML or directly from a dictionary
        if ymlfile is not None:
            self.ymlfile = Path(ymlfile)
            with open(self.ymlfile) as ifp:
                d = yaml.safe_load(ifp)
            self.basepath = self.ymlfile.parent
        elif project_dict is not None:
            d = project_dict
            self.ymlfile = Path("./default.yml")
            self.basepath = Path(".")
        else:
            raise StreamdeplException(
                "Must either provide a YML file or a project dictionary"
            )
        if not isinstance(d, dict):
            raise StreamdeplException(
                f"Configuration {self.ymlfile} is not a mapping of blocks"
            )

        if self.write_results_to_files:
            # make a home for the report file
            self.outpath = self.basepath / "output"
            if not os.path.exists(self.outpath):
                os.mkdir(self.outpath)

        # parse project_properties block
        if "project_properties" in d.keys():
            self._parse_project_properties(d["project_properties"])
        else:
            raise StreamdeplException(
                'Configuration YAML file must have a "project_properties" block'
            )

        # get the keys for all the remaining blocks
        self.wellkeys = [i for i in d.keys() if i.lower().startswith("well")]
        self.urfkeys = [i for i in d.keys() if i.lower().startswith("urf")]
        if len(self.wellkeys) + len(self.urfkeys) == 0:
            raise StreamdeplException(
                "No wells or URF blocks were defined in the input file. Goodbye"
            )

        # parse well and URF blocks, then make the well objects
        self._parse_wells(d)
        self._parse_urfs(d)
        self._create_well_objects()

        # report out on yaml input to screen and logfile
        if self.write_results_to_files:
            self._report_yaml_input()

    def _resolve(self, filename):
        """resolve a file name relative to the yml file location"""
        filename = Path(filename)
        if filename.is_absolute():
            return filename
        return self.basepath / filename

    def _parse_project_properties(self, pp):
        """Method to parse all the project properties from the YAML file block

        Parameters
        ----------
        pp: dict
            Project properties block read from YML file
        """
        if "depl_method" in pp.keys():
            self.depl_method = pp["depl_method"]
        if "days_per_month" in pp.keys():
            self.days_per_month = float(pp["days_per_month"])
        if "total_months" in pp.keys():
            self.total_months = pp["total_months"]
        try:
            self.name = pp["name"]
        except KeyError as e:
            raise StreamdeplException(
                'Formatting problem with "project_properties" block, '
                + "missing name"
            ) from e
        # project-wide aquifer defaults, overridden in well blocks
        self.default_parameters = {
            k: pp[k]
            for k in ("T", "T_gpd_ft", "S", "boundary_dist")
            if k in pp.keys()
        }
        if "usage_file" in pp.keys():
            self.usage_file = self._resolve(pp["usage_file"])
            self.usage_df = read_usage_csv(self.usage_file)

    def _get_usage(self, block, column):
        """usage for a block, inline or from the project usage file"""
        if "usage" in block.keys():
            return block["usage"]
        if self.usage_df is not None and column in self.usage_df.columns:
            return self.usage_df[column]
        raise StreamdeplException(
            f"no usage given for {column}: supply a usage mapping in its "
            + "block or a column in the project usage_file"
        )

    def _parse_wells(self, d):
        """populate information about wells, filling in project defaults

        Parameters
        ----------
        d: dict
            yml file data
        """
        self.__well_data = {}

        for ck in self.wellkeys:
            if "name" not in d[ck].keys():
                raise StreamdeplException(f"block {ck} is missing a name")
            cw = dict(self.default_parameters)
            cw.update(d[ck])
            cw.setdefault("depl_method", self.depl_method)
            # transmissivity may be supplied in gal/day/ft, a well block
            # value takes precedence over any project default
            if "T_gpd_ft" in d[ck].keys() and "T" not in d[ck].keys():
                cw["T"] = d[ck]["T_gpd_ft"] * GPD_FT2FT2_DAY
            elif "T" not in cw.keys() and "T_gpd_ft" in cw.keys():
                cw["T"] = cw["T_gpd_ft"] * GPD_FT2FT2_DAY
            cw["usage"] = self._get_usage(d[ck], cw["name"])
            self.__well_data[cw["name"]] = cw

    def _parse_urfs(self, d):
        """populate URF tables and the usage lagged through them

        Parameters
        ----------
        d: dict
            yml file data
        """
        for ck in self.urfkeys:
            block = d[ck]
            if "name" not in block.keys():
                raise StreamdeplException(f"block {ck} is missing a name")
            if "urf_file" in block.keys():
                urf = read_urf_csv(self._resolve(block["urf_file"]))
            elif "urf" in block.keys():
                urf = [tuple(i) for i in block["urf"]]
            else:
                raise StreamdeplException(
                    f"URF block {ck} needs either urf_file or urf"
                )
            usage = self._get_usage(
                block, block.get("usage_column", block["name"])
            )
            self.urfs[block["name"]] = {"urf": urf, "usage": usage}

    def _create_well_objects(self):
        """
        Populate a Well object for each well
        """
        for ck, cw in self._Project__well_data.items():
            self.wells[ck] = Well(
                ck,
                cw["usage"],
                depl_method=cw["depl_method"],
                days_per_month=self.days_per_month,
                total_months=self.total_months,
                T=cw.get("T"),
                S=cw.get("S"),
                dist=cw.get("dist"),
                boundary_dist=cw.get("boundary_dist"),
                sdf=cw.get("sdf"),
            )

    def _report_yaml_input(self):
        """
        summarize broad details of the YAML file read in
        """
        logfile = str(self.outpath / self.ymlfile.name)
        logfile = logfile.replace(".yaml", ".yml").replace(
            ".yml", ".yml.import_report"
        )
        with open(logfile, "w") as ofp:
            print(f"Writing report to {logfile}\n\n")
            _print_to_screen_and_file("", ofp)
            _print_to_screen_and_file(
                f"Successfully parsed {self.ymlfile} (high five!)", ofp
            )
            _print_to_screen_and_file("*" * 25, ofp)
            _print_to_screen_and_file("Summary follows:", ofp)
            _print_to_screen_and_file("\nWELLS:", ofp)
            if len(self.wells) > 0:
                for ck, cw in self.wells.items():
                    _print_to_screen_and_file(f"\t{ck} ({cw.depl_method})", ofp)
            else:
                _print_to_screen_and_file("No wells in the yml file", ofp)
            _print_to_screen_and_file("\nURF LAGGING:", ofp)
            if len(self.urfs) > 0:
                for ck, cu in self.urfs.items():
                    nreach = len({i[1] for i in cu["urf"]})
                    _print_to_screen_and_file(f"\t{ck} ({nreach} reaches)", ofp)
            else:
                _print_to_screen_and_file("No URF blocks in the yml file", ofp)

    def aggregate_results(self):
        """
        Aggregate all results from the Project
        """
        logger.debug(
            "aggregating %d wells and %d URF blocks",
            len(self.wells),
            len(self.urfs),
        )
        # one column of monthly depletion per well
        if len(self.wells) > 0:
            self.all_depl_ts = pd.concat(
                [cw.depletion_series for cw in self.wells.values()], axis=1
            ).fillna(0.0)
            self.all_depl_ts.columns = list(self.wells.keys())
            self.all_depl_ts["total"] = self.all_depl_ts.sum(axis=1)
        else:
            self.all_depl_ts = pd.DataFrame()

        # URF lagging by reach, then combined over reaches
        self.urf_results = {}
        self.urf_combined = {}
        for ck, cu in self.urfs.items():
            self.urf_results[ck] = urf_lagging(cu["usage"], cu["urf"])
            self.urf_combined[ck] = combined_urf_results(self.urf_results[ck])
        urf_cols = []
        for ck, lagged in self.urf_results.items():
            for reach, v in lagged.items():
                urf_cols.append(v.rename(f"{ck}:{reach}"))
        if len(urf_cols) > 0:
            self.all_urf_ts = pd.concat(urf_cols, axis=1).fillna(0.0)
        else:
            self.all_urf_ts = pd.DataFrame()

        # summary table, one row per well
        self.agg_df = pd.DataFrame(
            index=list(self.wells.keys()),
            columns=[
                "depl_method",
                "total_depletion (acre-ft)",
                "max_monthly_depletion (acre-ft)",
                "months_reported",
            ],
        )
        for ck, cw in self.wells.items():
            self.agg_df.loc[ck] = [
                cw.depl_method,
                cw.total_depletion,
                cw.max_depletion,
                len(cw.depletion),
            ]

    def report_responses(self):
        """
        make a report file - named from the YML name
        """
        self.aggregate_results()
        if not self.write_results_to_files:
            return

        ymlbase = self.ymlfile.name
        outfile = ymlbase.replace(".yml", ".report.txt")
        self.report_filename = self.outpath / outfile
        with open(self.report_filename, "w") as ofp:
            ofp.write(
                f"Stream depletion report for {self.name}, configured from: {ymlbase}\n"
            )
            ofp.write(
                f"{self.total_months} months at {self.days_per_month} days per month\n"
            )

            ofp.write("\nINDIVIDUAL WELL REPORTS\n")
            if len(self.wells) == 0:
                ofp.write(
                    "  there were no wells in the configuration file!\n"
                )
            for ck, cw in self.wells.items():
                _print_single_well_header(ofp, ck, cw.depl_method)
                _print_depl(
                    ofp, cw.total_depletion, cw.max_depletion, len(cw.depletion)
                )
            ofp.write("\n")

            ofp.write("\n\nURF LAGGING REPORTS\n" + "#" * 50 + "\n")
            if len(self.urfs) == 0:
                ofp.write(
                    "  there were no URF blocks in the configuration file!\n"
                )
            for ck, lagged in self.urf_results.items():
                ofp.write(f"URF: {ck}\n{'Reach':30s}{'Total (acre-ft)':30s}\n")
                for reach, v in lagged.items():
                    ofp.write(f"{str(reach):30s}{v.sum():<30.4f}\n")

    def write_responses_csv(self):
        """
        Write the summary table and all monthly time series to CSV files
        """
        self.aggregate_results()

        if self.write_results_to_files:
            ymlbase = self.ymlfile.name
            outfile = ymlbase.replace(".yml", ".table_report.csv")
            self.csv_output_filename = self.outpath / outfile
            self.agg_df.to_csv(self.csv_output_filename)
            self.csv_output_ts_filename = self.outpath / outfile.replace(
                ".csv", ".all_ts.csv"
            )
            self.all_depl_ts.to_csv(
                self.csv_output_ts_filename, date_format="%Y-%m-%d"
            )
            self.csv_urf_ts_filename = self.outpath / outfile.replace(
                ".csv", ".urf_ts.csv"
            )
            self.all_urf_ts.to_csv(
                self.csv_urf_ts_filename, date_format="%Y-%m-%d"
            )
