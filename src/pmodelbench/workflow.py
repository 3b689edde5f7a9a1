"""
Workflow of a benchmark run:
- harmonize the driver data of all sites
- select the calibration sites and load their observed GPP
- calibrate the model parameters (if asked for)
- run the model on all sites with the (calibrated) parameters
- compare the output of the evaluation sites against the observations

Every intermediate result is cached on the inputs that produced it,
such that a rerun with identical inputs does not redo the work.
"""

import os
from dataclasses import asdict
from pathlib import Path

import pandas as pd
from loguru import logger

from pmodelbench.calibration.driver import CalibrationDriver, check_bounds
from pmodelbench.config import BenchmarkSettings
from pmodelbench.drivers.harmonize import (
    build_driver_table,
    read_raw_drivers,
    site_metadata)
from pmodelbench.evaluation.metrics import evaluate
from pmodelbench.exceptions import ConfigurationError
from pmodelbench.model.lue import LightUseEfficiencyModel
from pmodelbench.model.parameters import ParameterSet
from pmodelbench.model.runner import SimulationRunner, unnest_output
from pmodelbench.sites.filters import (
    filter_sites,
    predicates_from_settings,
    sites_with_output)
from pmodelbench.targets.fluxnet import FluxnetIngestor
from pmodelbench.targets.loader import TargetLoader
from pmodelbench.utils.storage import (
    MemoryCache,
    PickleCache,
    content_key,
    write_metadata)


def get_driver_table(settings: BenchmarkSettings, cache):
    forcing, siteinfo, soil = read_raw_drivers(
        settings.drivers.forcing_file,
        settings.drivers.siteinfo_file,
        settings.drivers.soil_file)
    key = content_key('drivers', forcing, siteinfo, soil,
                      settings.model_version)
    df_drivers = cache.get(key)
    if df_drivers is None or settings.overwrite:
        df_drivers = build_driver_table(forcing, siteinfo, soil,
                                        settings.model_version)
        cache.put(key, df_drivers)
    else:
        logger.info('LOADED DRIVER TABLE FROM CACHE')
    return df_drivers, key


def calibrate_parameters(settings: BenchmarkSettings, df_drivers,
                         drivers_key, cal_sites, loader, runner, cache):
    prior = ParameterSet.default(settings.model_version)
    if settings.calibration is None:
        logger.info('NO CALIBRATION SETTINGS --> USE PRIOR PARAMETERS')
        return prior
    df_obs = loader.load(cal_sites)
    key = content_key('calibration', drivers_key, cal_sites, df_obs,
                      asdict(settings.calibration),
                      asdict(settings.simulation))
    values = cache.get(key)
    if values is None or settings.overwrite:
        driver = CalibrationDriver(runner)
        result = driver.calibrate(df_drivers.loc[cal_sites], df_obs,
                                  prior, settings.calibration)
        values = result.values
        cache.put(key, values)
    else:
        logger.info(f'LOADED CALIBRATED PARAMETERS FROM CACHE: {values}')
    return prior.update(values)


def run_benchmark(settings: BenchmarkSettings, model=None, cache=None,
                  ingestor=None):
    """
    Run the full benchmark and return the intermediate results.

    :param settings: the checked settings of the run
    :param model: simulation model, the light use efficiency model
        if not given
    :param cache: cache of the intermediate results, a pickle cache in
        the CACHE_FOLDER (or in memory if not set) if not given
    :param ingestor: source of the observations, the FLUXNET2015 files
        of the FLUXNET_FOLDER if not given
    """
    # fail on the bounds before any data is read
    if settings.calibration is not None:
        check_bounds(settings.calibration.params)
    if cache is None:
        cache = (PickleCache(settings.cache_folder)
                 if settings.cache_folder else MemoryCache())
    if ingestor is None and settings.targets.fluxnet_folder is not None:
        ingestor = FluxnetIngestor(settings.targets.fluxnet_folder)
    if ingestor is None and settings.calibration is not None:
        raise ConfigurationError('CALIBRATION REQUIRES TARGETS.FLUXNET_FOLDER')
    model = model or LightUseEfficiencyModel()

    runner = SimulationRunner(model, settings.simulation)
    loader = TargetLoader(ingestor, settings.targets, cache,
                          max_workers=settings.simulation.max_workers)

    df_drivers, drivers_key = get_driver_table(settings, cache)
    df_meta = site_metadata(df_drivers)

    cal_sites = filter_sites(df_meta,
                             predicates_from_settings(
                                 settings.calibration_sites),
                             label='FOR CALIBRATION')
    if settings.calibration is not None and not cal_sites:
        raise ConfigurationError('NO CALIBRATION SITES SELECTED')
    params = calibrate_parameters(settings, df_drivers, drivers_key,
                                  cal_sites, loader, runner, cache)

    df_output = runner.run_model(df_drivers, params)

    df_meta_output = df_meta.loc[
        df_meta['sitename'].isin(sites_with_output(df_output))]
    eval_sites = filter_sites(df_meta_output,
                              predicates_from_settings(
                                  settings.evaluation_sites),
                              label='FOR EVALUATION')
    df_metrics = None
    if ingestor is None:
        logger.warning('NO OBSERVATIONS CONFIGURED --> SKIP EVALUATION')
    elif eval_sites:
        df_obs_eval = loader.load(eval_sites)
        df_metrics = evaluate(df_output.loc[eval_sites], df_obs_eval)

    return {'drivers': df_drivers,
            'parameters': params,
            'calibration_sites': cal_sites,
            'evaluation_sites': eval_sites,
            'output': df_output,
            'metrics': df_metrics}


def check_target_dir(target_dir, overwrite=False):
    """
    A results folder holds the output of a single run. Existing
    results are only replaced when OVERWRITE is set.
    """
    target_dir = Path(target_dir)
    if target_dir.is_dir() and any(target_dir.iterdir()) and not overwrite:
        raise ConfigurationError(f'RESULTS ALREADY EXIST IN {target_dir}, '
                                 'set OVERWRITE or use another VERSION')


def write_results(results, target_dir):
    target_dir = Path(target_dir)
    os.makedirs(target_dir, exist_ok=True)
    pd.DataFrame(results['parameters'].as_dict(), index=['value']).T\
        .to_csv(target_dir / 'parameters.csv', index_label='parameter')
    unnest_output(results['output']).to_csv(
        target_dir / 'gpp_simulated.csv', index=False)
    metrics_file = target_dir / 'metrics.csv'
    if results['metrics'] is not None:
        results['metrics'].to_csv(metrics_file, index=True)
    elif metrics_file.exists():
        # no metrics of a previous run next to the new output
        os.remove(metrics_file)


def main(basedir, settings: dict, model=None):
    """
    Run the benchmark with the settings read from the
    Generic_settings.json and store the results in the basedir.
    """
    checked = BenchmarkSettings.from_dict(settings)
    target_dir = Path(basedir).joinpath('results', checked.model_version,
                                        checked.version)
    check_target_dir(target_dir, overwrite=checked.overwrite)
    logger.info(f'START BENCHMARK {checked.version} FOR MODEL '
                f'{checked.model_version}')
    results = run_benchmark(checked, model=model)
    write_results(results, target_dir)
    # write out the used settings next to the results
    write_metadata(target_dir, settings, checked.version, overwrite=True)
    logger.success('FINISHED SUCESSFULLY')
    return results
