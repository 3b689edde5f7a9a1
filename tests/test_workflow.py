import json

import pandas as pd
import pytest

from pmodelbench.config import BenchmarkSettings
from pmodelbench.drivers.harmonize import build_driver_table
from pmodelbench.exceptions import ConfigurationError, InvalidBoundsError
from pmodelbench.utils.storage import MemoryCache
from pmodelbench.workflow import main, run_benchmark

from conftest import FakeIngestor, simulate_obs


@pytest.fixture
def driver_files(raw_drivers, tmp_path):
    forcing, siteinfo, soil = raw_drivers
    files = {'FORCING_FILE': tmp_path / 'forcing.csv',
             'SITEINFO_FILE': tmp_path / 'siteinfo.csv',
             'SOIL_FILE': tmp_path / 'soil.csv'}
    forcing.to_csv(files['FORCING_FILE'], index=False)
    siteinfo.to_csv(files['SITEINFO_FILE'], index=False)
    soil.to_csv(files['SOIL_FILE'], index=False)
    return {k: str(v) for k, v in files.items()}


@pytest.fixture
def df_obs(raw_drivers):
    return simulate_obs(build_driver_table(*raw_drivers, 'v3.0'),
                        kphio=0.06)


def make_settings(driver_files, **kwargs):
    settings = {
        'MODEL_VERSION': 'v3.0',
        'DRIVERS': driver_files,
        'CALIBRATION_SITES': {'ATTRIBUTES_NOT_EQUAL': {'c4': True}},
        'EVALUATION_SITES': {'EXCLUDE': {'AA-Aaa': 'used for calibration'}},
        'CALIBRATION': {'PARAMS': {'kphio': [0.02, 0.15, 0.09]},
                        'MAXIT': 5}
    }
    settings.update(kwargs)
    return settings


def test_benchmark_end_to_end(driver_files, df_obs):
    settings = BenchmarkSettings.from_dict(make_settings(driver_files))
    ingestor = FakeIngestor(df_obs)
    results = run_benchmark(settings, cache=MemoryCache(),
                            ingestor=ingestor)
    assert results['calibration_sites'] == ['AA-Aaa', 'BB-Bbb']
    assert results['evaluation_sites'] == ['BB-Bbb', 'CC-Ccc']
    assert results['parameters'].calibrated
    assert results['parameters']['kphio'] == pytest.approx(0.06, abs=5e-3)
    assert list(results['output'].index) == ['AA-Aaa', 'BB-Bbb', 'CC-Ccc']
    df_metrics = results['metrics']
    assert set(df_metrics.index.get_level_values('sitename')) == \
        {'ALL', 'BB-Bbb', 'CC-Ccc'}
    assert df_metrics.loc[('day', 'ALL'), 'RMSE'] < 0.1


def test_rerun_uses_the_cache(driver_files, df_obs):
    settings = BenchmarkSettings.from_dict(make_settings(driver_files))
    cache = MemoryCache()
    ingestor = FakeIngestor(df_obs)
    first = run_benchmark(settings, cache=cache, ingestor=ingestor)
    n_calls = len(ingestor.calls)
    second = run_benchmark(settings, cache=cache, ingestor=ingestor)
    assert len(ingestor.calls) == n_calls
    assert first['parameters'] == second['parameters']
    pd.testing.assert_frame_equal(first['metrics'], second['metrics'])


def test_invalid_bounds_before_reading_data(tmp_path):
    missing = {'FORCING_FILE': str(tmp_path / 'nope.csv'),
               'SITEINFO_FILE': str(tmp_path / 'nope.csv'),
               'SOIL_FILE': str(tmp_path / 'nope.csv')}
    settings = BenchmarkSettings.from_dict(make_settings(
        missing, CALIBRATION={'PARAMS': {'kphio': [0.15, 0.02, 0.09]}}))
    ingestor = FakeIngestor(pd.DataFrame())
    with pytest.raises(InvalidBoundsError):
        run_benchmark(settings, cache=MemoryCache(), ingestor=ingestor)
    assert ingestor.calls == []


def test_calibration_without_observations(driver_files):
    settings = BenchmarkSettings.from_dict(make_settings(driver_files))
    with pytest.raises(ConfigurationError):
        run_benchmark(settings, cache=MemoryCache())


def test_no_calibration_site_selected(driver_files, df_obs):
    settings = BenchmarkSettings.from_dict(make_settings(
        driver_files,
        CALIBRATION_SITES={'ATTRIBUTES_EQUAL': {'classid': 'WET'}}))
    with pytest.raises(ConfigurationError):
        run_benchmark(settings, cache=MemoryCache(),
                      ingestor=FakeIngestor(df_obs))


def test_main_writes_results(driver_files, tmp_path):
    settings = make_settings(driver_files, VERSION='V2')
    del settings['CALIBRATION']
    results = main(tmp_path, settings)
    assert results['metrics'] is None
    target_dir = tmp_path / 'results' / 'v3.0' / 'V2'
    df_params = pd.read_csv(target_dir / 'parameters.csv',
                            index_col='parameter')
    assert df_params.loc['kphio', 'value'] == pytest.approx(0.09423773)
    df_gpp = pd.read_csv(target_dir / 'gpp_simulated.csv')
    assert list(df_gpp.columns[:3]) == ['sitename', 'date', 'gpp']
    assert df_gpp.shape[0] == 3 * 365
    with open(target_dir / 'metadata_V2.json') as f:
        assert json.load(f)['VERSION'] == 'V2'


def test_existing_results_are_not_mixed_with_a_new_run(driver_files,
                                                       tmp_path):
    settings = make_settings(driver_files)
    del settings['CALIBRATION']
    main(tmp_path, settings)
    target_dir = tmp_path / 'results' / 'v3.0' / 'V1'
    first = pd.read_csv(target_dir / 'gpp_simulated.csv')

    forcing = pd.read_csv(driver_files['FORCING_FILE'])
    forcing['ppfd'] = 2 * forcing['ppfd']
    forcing.to_csv(driver_files['FORCING_FILE'], index=False)
    # without OVERWRITE the folder of the previous run is left alone
    with pytest.raises(ConfigurationError):
        main(tmp_path, settings)
    pd.testing.assert_frame_equal(
        pd.read_csv(target_dir / 'gpp_simulated.csv'), first)

    settings['OVERWRITE'] = True
    results = main(tmp_path, settings)
    second = pd.read_csv(target_dir / 'gpp_simulated.csv')
    assert second['gpp'].values == pytest.approx(2 * first['gpp'].values)
    assert second['gpp'].iloc[0] == pytest.approx(
        results['output'].iloc[0]['data']['gpp'].iloc[0])
    with open(target_dir / 'metadata_V1.json') as f:
        assert json.load(f)['OVERWRITE'] is True
