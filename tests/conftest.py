"""
Fixtures with synthetic sites and fake collaborators.
"""

import numpy as np
import pandas as pd
import pytest
from loguru import logger

from pmodelbench.exceptions import CollaboratorError
from pmodelbench.model.lue import LightUseEfficiencyModel


def make_forcing(site, start='2005-01-01', end='2005-12-31', seed=0):
    dates = pd.date_range(start, end, freq='D')
    rng = np.random.default_rng(seed)
    doy = dates.dayofyear.values
    season = np.sin((doy - 80) / 365 * 2 * np.pi)
    return pd.DataFrame({
        'sitename': site,
        'date': dates,
        'temp': 10 + 10 * season + rng.normal(0, 1, len(dates)),
        'prec': rng.gamma(0.5, 4, len(dates)),
        'ppfd': 30 + 20 * season,
        'vpd': 500 + 300 * season,
        'patm': 101325.0,
        'co2': 380.0,
        'fapar': np.clip(0.5 + 0.3 * season, 0, 1)
    })


def make_siteinfo(sites):
    return pd.DataFrame({
        'sitename': sites,
        'lon': [5.0 + i for i in range(len(sites))],
        'lat': [50.0 + i for i in range(len(sites))],
        'elv': [100.0] * len(sites),
        'whc': [240.0] * len(sites),
        'classid': ['ENF', 'GRA', 'CRO', 'DBF'][:len(sites)]
        + ['ENF'] * max(0, len(sites) - 4),
        'c4': [False, False, True, False][:len(sites)]
        + [False] * max(0, len(sites) - 4),
        'koeppen_code': ['Cfb'] * len(sites)
    })


def make_soil(sites):
    return pd.DataFrame({
        'sitename': sites,
        'layer': ['top'] * len(sites),
        'fsand': [0.4] * len(sites),
        'fclay': [0.3] * len(sites),
        'forg': [0.1] * len(sites),
        'fgravel': [0.1] * len(sites)
    })


@pytest.fixture
def raw_drivers():
    sites = ['AA-Aaa', 'BB-Bbb', 'CC-Ccc']
    forcing = pd.concat([make_forcing(site, seed=i)
                         for i, site in enumerate(sites)],
                        ignore_index=True)
    return forcing, make_siteinfo(sites), make_soil(sites)


@pytest.fixture
def log_messages():
    """Messages logged with loguru during the test"""
    messages = []
    handler_id = logger.add(lambda msg: messages.append(msg.record),
                            level='DEBUG')
    yield messages
    logger.remove(handler_id)


def simulate_obs(df_drivers, kphio=0.06, unc=1.0):
    """Observations generated with the light use efficiency model"""
    model = LightUseEfficiencyModel()
    lst_obs = []
    for site, row in df_drivers.iterrows():
        df_out = model.run_site(site, row['site_info'], row['params_soil'],
                                row['forcing'], {'kphio': kphio})
        lst_obs.append(pd.DataFrame({'sitename': site,
                                     'date': pd.to_datetime(df_out['date']),
                                     'gpp': df_out['gpp'],
                                     'gpp_unc': unc}))
    return pd.concat(lst_obs, ignore_index=True)


class FakeIngestor:
    """
    Serves fixed observations, can fail a number of
    times for certain sites.
    """

    def __init__(self, df_obs, failing=None):
        self.df_obs = df_obs
        # site -> number of times the fetch should still fail
        self.failing = dict(failing or {})
        self.calls = []

    def fetch_observations(self, site_ids, source='fluxnet2015',
                           variable_map=None, quality_options=None):
        results = {}
        for site in site_ids:
            self.calls.append(site)
            if self.failing.get(site, 0) != 0:
                self.failing[site] -= 1
                raise CollaboratorError('connection reset', site=site,
                                        stage='ingestion')
            results[site] = self.df_obs.loc[
                self.df_obs['sitename'] == site].reset_index(drop=True)
        return results


class CountingOptimizer:
    """Optimizer returning the initial values, counts the evaluations"""

    def __init__(self, success=True):
        self.objective_calls = 0
        self.invocations = 0
        self.success = success

    def __call__(self, objective_fn, bounds, init, seed, budget):
        self.invocations += 1

        def counted(x):
            self.objective_calls += 1
            return objective_fn(x)
        fun = counted(np.asarray(init))
        return np.asarray(init), {'fun': fun, 'nfev': 1, 'nit': 1,
                                  'success': self.success,
                                  'message': 'done'}
