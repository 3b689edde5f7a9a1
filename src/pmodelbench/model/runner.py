"""
Running the simulation model over all sites of a driver table
"""

import pandas as pd
from loguru import logger

from pmodelbench.config import SimulationSettings
from pmodelbench.exceptions import ConfigurationError
from pmodelbench.model.parameters import ParameterSet
from pmodelbench.utils import object_series
from pmodelbench.utils.parallel import run_tasks

OUTPUT_COLUMNS = ['date', 'gpp']


def _empty_output():
    return pd.DataFrame({'date': pd.Series(dtype='datetime64[ns]'),
                         'gpp': pd.Series(dtype=float)})


class SimulationRunner:

    def __init__(self, model, settings: SimulationSettings = None):
        self.model = model
        self.settings = settings or SimulationSettings()

    def _run_site(self, site, row, params):
        df_out = self.model.run_site(site, row['site_info'],
                                     row['params_soil'], row['forcing'],
                                     params)
        if df_out is None:
            return _empty_output()
        missing = [c for c in OUTPUT_COLUMNS if c not in df_out.columns]
        if missing:
            raise ValueError(f'MODEL OUTPUT MISSES {missing}')
        return df_out.reset_index(drop=True)

    def run_model(self, df_drivers: pd.DataFrame,
                  parameter_set: ParameterSet,
                  quiet=False) -> pd.DataFrame:
        """
        Run the model for every site of the driver table.

        A site for which the model fails, times out or returns no
        time steps is kept with an empty series; it is up to the
        evaluation to leave it out.

        :param df_drivers: driver table indexed on sitename
        :param parameter_set: the parameters used for all sites
        :param quiet: only log the failures (used during calibration)
        :return: table indexed on sitename with the columns 'data'
            (the output series) and 'n_steps'
        """
        if df_drivers.index.duplicated().any():
            raise ConfigurationError('DUPLICATE SITES IN DRIVER TABLE')
        missing = [name for name in getattr(self.model, 'required_params', ())
                   if name not in parameter_set]
        if missing:
            raise ConfigurationError(f'PARAMETER(S) {missing} HAVE NO VALUE')
        params = parameter_set.as_dict(model_only=True)

        tasks = [(site, lambda site=site, row=row:
                  self._run_site(site, row, params))
                 for site, row in df_drivers.iterrows()]
        results = run_tasks(tasks, max_workers=self.settings.max_workers,
                            timeout=self.settings.timeout,
                            desc=None if quiet else 'RUN SIMULATIONS')

        sites = list(df_drivers.index)
        lst_out = []
        for site in sites:
            result = results.get(site)
            if isinstance(result, Exception):
                logger.warning(f'SIMULATION FAILED FOR {site}: {result}')
                result = _empty_output()
            elif result.empty and not quiet:
                logger.warning(f'NO OUTPUT FOR {site}')
            lst_out.append(result)

        index = pd.Index(sites, name='sitename')
        df_output = pd.DataFrame({
            'data': object_series(lst_out, index),
            'n_steps': pd.Series([df.shape[0] for df in lst_out],
                                 index=index, dtype=int)
        }, index=index)
        if not quiet:
            logger.info(f'SIMULATED {int((df_output.n_steps > 0).sum())} '
                        f'OF {len(sites)} SITES')
        return df_output


def unnest_output(df_output: pd.DataFrame) -> pd.DataFrame:
    """Long table of the simulated series with a sitename column"""
    lst_df = []
    for site, df_site in df_output['data'].items():
        if df_site.empty:
            continue
        df_site = df_site.copy()
        df_site.insert(0, 'sitename', site)
        lst_df.append(df_site)
    if not lst_df:
        return pd.DataFrame(columns=['sitename'] + OUTPUT_COLUMNS)
    df_long = pd.concat(lst_df, ignore_index=True)
    df_long['date'] = pd.to_datetime(df_long['date'])
    return df_long
