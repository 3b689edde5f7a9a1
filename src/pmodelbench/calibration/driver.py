"""
Calibration of the model parameters against the observed GPP
of the calibration sites.

The optimizer only sees an objective function, the parameter bounds,
the initial values, a seed and an iteration budget. Which global search
is used is a setting.
"""

from dataclasses import dataclass, field
from typing import Dict

import numpy as np
import pandas as pd
from loguru import logger

from pmodelbench.calibration.cost import COST_FUNCTIONS
from pmodelbench.calibration.methods import get_optimizer
from pmodelbench.config import CalibrationSettings
from pmodelbench.constants import ERR_PARAM
from pmodelbench.exceptions import (
    ConfigurationError,
    InvalidBoundsError,
    OptimizerError)
from pmodelbench.model.parameters import ParameterSet
from pmodelbench.model.runner import SimulationRunner, unnest_output
from pmodelbench.utils.timeseries import pair_with_observations


@dataclass
class CalibrationResult:
    parameters: ParameterSet
    values: Dict[str, float]
    diagnostics: Dict[str, object] = field(default_factory=dict)
    n_objective_calls: int = 0


def check_bounds(params: Dict[str, tuple]):
    """
    Each parameter needs lower < upper and an initial
    value within these bounds.
    """
    invalid = []
    for name, (lower, upper, init) in params.items():
        if not (np.isfinite(lower) and np.isfinite(upper)) or lower >= upper:
            invalid.append(f'{name}: lower={lower} >= upper={upper}')
        elif not lower <= init <= upper:
            invalid.append(f'{name}: init={init} outside [{lower}, {upper}]')
    if invalid:
        raise InvalidBoundsError('INVALID PARAMETER BOUNDS: '
                                 + '; '.join(invalid))


class CalibrationDriver:

    def __init__(self, runner: SimulationRunner, optimizer=None):
        self.runner = runner
        self.optimizer = optimizer

    def _objective(self, df_drivers, df_obs, prior, names, cost_fn):
        counter = {'calls': 0}

        def objective(x):
            counter['calls'] += 1
            values = dict(zip(names, x))
            err_gpp = values.get(ERR_PARAM)
            params = prior.update(values)
            df_output = self.runner.run_model(df_drivers, params, quiet=True)
            df_pairs = pair_with_observations(unnest_output(df_output),
                                              df_obs)
            return cost_fn(df_pairs, err_gpp=err_gpp)
        return objective, counter

    def calibrate(self, df_drivers: pd.DataFrame, df_obs: pd.DataFrame,
                  prior: ParameterSet,
                  settings: CalibrationSettings) -> CalibrationResult:
        """
        Search the parameter values which minimize the cost between
        the simulated and observed GPP of all calibration sites.

        :param df_drivers: driver table of the calibration sites
        :param df_obs: observed GPP (sitename, date, gpp, gpp_unc)
        :param prior: the default parameter set
        :param settings: bounds, method, cost, budget and seed
        :return: the calibrated parameter set and the diagnostics
        """
        # configuration checks before any model run
        check_bounds(settings.params)
        names = settings.names
        prior.check_calibratable(names)
        missing = [name for name in
                   getattr(self.runner.model, 'required_params', ())
                   if name not in prior]
        if missing:
            raise ConfigurationError(f'PARAMETER(S) {missing} HAVE NO VALUE')
        if settings.cost == 'rmse' and ERR_PARAM in names:
            raise ConfigurationError(f'{ERR_PARAM} IS ONLY USED BY '
                                     'THE LIKELIHOOD COST')
        if settings.cost == 'likelihood' and ERR_PARAM not in names \
                and not (df_obs['gpp_unc'] > 0).any():
            raise ConfigurationError('LIKELIHOOD COST NEEDS EITHER '
                                     f'{ERR_PARAM} OR OBSERVATION '
                                     'UNCERTAINTIES')

        sites = sorted(set(df_drivers.index) & set(df_obs['sitename']))
        no_target = sorted(set(df_drivers.index) - set(sites))
        if no_target:
            logger.warning(f'NO TARGET FOR {no_target} --> NOT USED '
                           'IN CALIBRATION')
        if not sites:
            raise ConfigurationError('NO CALIBRATION SITE WITH BOTH '
                                     'DRIVERS AND TARGETS')
        df_drivers = df_drivers.loc[sites]
        df_obs = df_obs.loc[df_obs['sitename'].isin(sites)]

        optimizer = self.optimizer or get_optimizer(settings.method)
        objective, counter = self._objective(df_drivers, df_obs, prior,
                                             names,
                                             COST_FUNCTIONS[settings.cost])
        bounds = [(lower, upper) for lower, upper, _ in
                  settings.params.values()]
        init = [triple[2] for triple in settings.params.values()]

        logger.info(f'START CALIBRATION OF {names} ON {len(sites)} SITES '
                    f'({settings.method}, {settings.cost}, '
                    f'maxit={settings.maxit}, seed={settings.seed})')
        np.random.seed(settings.seed)
        try:
            best, diagnostics = optimizer(objective, bounds, init,
                                          settings.seed, settings.maxit)
        except ConfigurationError:
            raise
        except (ValueError, RuntimeError, ArithmeticError) as e:
            raise OptimizerError(e) from e
        if not diagnostics.get('success', True):
            raise OptimizerError('OPTIMIZER DID NOT CONVERGE: '
                                 f'{diagnostics.get("message")}',
                                 diagnostics=diagnostics)

        values = {name: float(v) for name, v in zip(names, best)}
        calibrated = prior.update(values)
        logger.info(f'FINISHED CALIBRATION: {values} '
                    f'(cost={diagnostics.get("fun")}, '
                    f'{counter["calls"]} model evaluations)')
        return CalibrationResult(calibrated, values, diagnostics,
                                 counter['calls'])
