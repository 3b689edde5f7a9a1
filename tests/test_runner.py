import time

import numpy as np
import pandas as pd
import pytest

from pmodelbench.config import SimulationSettings
from pmodelbench.drivers.harmonize import build_driver_table
from pmodelbench.exceptions import ConfigurationError
from pmodelbench.model.lue import (
    CallableModel,
    Eco2,
    Et,
    LightUseEfficiencyModel)
from pmodelbench.model.parameters import ParameterSet
from pmodelbench.model.runner import SimulationRunner, unnest_output
from pmodelbench.sites.filters import filter_sites, sites_with_output
from pmodelbench.drivers.harmonize import site_metadata
from pmodelbench.utils import object_series


@pytest.fixture
def df_drivers(raw_drivers):
    return build_driver_table(*raw_drivers, 'v3.0')


@pytest.fixture
def params():
    return ParameterSet.default('v3.0')


def test_output_has_same_sites_as_input(df_drivers, params):
    df_output = SimulationRunner(LightUseEfficiencyModel())\
        .run_model(df_drivers, params)
    assert list(df_output.index) == list(df_drivers.index)
    assert (df_output['n_steps'] == 365).all()
    df_site = df_output.loc['AA-Aaa', 'data']
    assert {'date', 'gpp', 'ftemp', 'fco2'} <= set(df_site.columns)
    assert (df_site['gpp'] >= 0).all()


def test_empty_forcing_gives_empty_output(df_drivers, params):
    lst_forcing = [forcing.iloc[0:0] if site == 'BB-Bbb' else forcing
                   for site, forcing in df_drivers['forcing'].items()]
    df_drivers['forcing'] = object_series(lst_forcing, df_drivers.index)
    df_output = SimulationRunner(LightUseEfficiencyModel())\
        .run_model(df_drivers, params)
    assert set(df_output.index) == set(df_drivers.index)
    assert df_output.loc['BB-Bbb', 'n_steps'] == 0
    assert df_output.loc['BB-Bbb', 'data'].empty
    # the evaluation selection leaves it out
    assert sites_with_output(df_output) == ['AA-Aaa', 'CC-Ccc']
    df_meta = site_metadata(df_drivers)
    df_meta = df_meta.loc[df_meta['sitename'].isin(
        sites_with_output(df_output))]
    assert 'BB-Bbb' not in filter_sites(df_meta)
    assert set(unnest_output(df_output)['sitename']) == {'AA-Aaa', 'CC-Ccc'}


def test_failing_site_is_recorded_empty(df_drivers, params, log_messages):
    model = LightUseEfficiencyModel()

    def run_site(sitename, site_info, params_soil, forcing, params):
        if sitename == 'CC-Ccc':
            raise RuntimeError('model crashed')
        return model.run_site(sitename, site_info, params_soil,
                              forcing, params)

    df_output = SimulationRunner(CallableModel(run_site))\
        .run_model(df_drivers, params)
    assert list(df_output.index) == list(df_drivers.index)
    assert df_output.loc['CC-Ccc', 'n_steps'] == 0
    assert df_output.loc['AA-Aaa', 'n_steps'] == 365
    assert any('CC-Ccc' in m['message'] and m['level'].name == 'WARNING'
               for m in log_messages)


def test_timeout_is_a_partial_failure(df_drivers, params):
    model = LightUseEfficiencyModel()

    def run_site(sitename, site_info, params_soil, forcing, params):
        if sitename == 'AA-Aaa':
            time.sleep(1.0)
        return model.run_site(sitename, site_info, params_soil,
                              forcing, params)

    runner = SimulationRunner(CallableModel(run_site),
                              SimulationSettings(max_workers=3, timeout=0.2))
    df_output = runner.run_model(df_drivers, params)
    assert list(df_output.index) == list(df_drivers.index)
    assert df_output.loc['AA-Aaa', 'n_steps'] == 0
    assert df_output.loc['BB-Bbb', 'n_steps'] == 365


def test_hung_site_does_not_hold_the_only_worker(df_drivers, params):
    model = LightUseEfficiencyModel()

    def run_site(sitename, site_info, params_soil, forcing, params):
        if sitename == 'AA-Aaa':
            time.sleep(3.0)
        return model.run_site(sitename, site_info, params_soil,
                              forcing, params)

    runner = SimulationRunner(CallableModel(run_site),
                              SimulationSettings(max_workers=1, timeout=0.2))
    start = time.monotonic()
    df_output = runner.run_model(df_drivers, params)
    assert time.monotonic() - start < 1.5
    assert df_output.loc['AA-Aaa', 'n_steps'] == 0
    assert df_output.loc['BB-Bbb', 'n_steps'] == 365
    assert df_output.loc['CC-Ccc', 'n_steps'] == 365


def test_parallel_run_equals_serial_run(df_drivers, params):
    serial = SimulationRunner(LightUseEfficiencyModel())\
        .run_model(df_drivers, params)
    parallel = SimulationRunner(LightUseEfficiencyModel(),
                                SimulationSettings(max_workers=3))\
        .run_model(df_drivers, params)
    for site in df_drivers.index:
        pd.testing.assert_frame_equal(serial.loc[site, 'data'],
                                      parallel.loc[site, 'data'])


def test_missing_model_parameter(df_drivers):
    params = ParameterSet({'soilm_par_a': 0.3})
    with pytest.raises(ConfigurationError):
        SimulationRunner(LightUseEfficiencyModel()).run_model(df_drivers,
                                                              params)


def test_gpp_scales_with_kphio(df_drivers, params):
    runner = SimulationRunner(LightUseEfficiencyModel())
    out1 = runner.run_model(df_drivers, params.update({'kphio': 0.05}))
    out2 = runner.run_model(df_drivers, params.update({'kphio': 0.10}))
    np.testing.assert_allclose(out2.loc['AA-Aaa', 'data']['gpp'],
                               2 * out1.loc['AA-Aaa', 'data']['gpp'])


def test_temperature_and_co2_response():
    T = np.array([273.15, 298.15, 318.15])
    f_temp = Et(T)
    assert f_temp[1] > f_temp[0]
    assert np.all((f_temp > 0) & (f_temp < 1.5))
    # more CO2 gives a larger fertilization effect
    assert np.all(Eco2(400.0, T) > Eco2(300.0, T))
