"""
Settings of a benchmark run.

The settings are stored in a JSON file (Generic_settings.json) with
upper-case keys. They are converted into the frozen structures below,
which check every option when they are created, such that a wrong
configuration fails before any data is loaded.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pmodelbench.constants import MODEL_VERSIONS
from pmodelbench.exceptions import ConfigurationError


OPTIMIZER_METHODS = ['simulated_annealing', 'differential_evolution']
COST_FUNCTIONS = ['rmse', 'likelihood']
TARGET_SOURCES = ['fluxnet2015']


def _check_keys(section: dict, allowed, name: str):
    if not isinstance(section, dict):
        raise ConfigurationError(f'{name} should be a mapping, '
                                 f'got {type(section).__name__}')
    unknown = set(section) - set(allowed)
    if unknown:
        raise ConfigurationError(f'UNKNOWN OPTION(S) {sorted(unknown)} '
                                 f'IN {name}')


def _check_type(value, types, name):
    # bool is a subclass of int, which is never wanted here
    if isinstance(value, bool) and bool not in types:
        raise ConfigurationError(f'{name} should be of type {types}')
    if not isinstance(value, types):
        raise ConfigurationError(f'{name} should be of type {types}, '
                                 f'got {value!r}')


@dataclass(frozen=True)
class DriverSettings:
    forcing_file: str
    siteinfo_file: str
    soil_file: str

    _keys = {'FORCING_FILE': 'forcing_file',
             'SITEINFO_FILE': 'siteinfo_file',
             'SOIL_FILE': 'soil_file'}

    @classmethod
    def from_dict(cls, d):
        _check_keys(d, cls._keys, 'DRIVERS')
        missing = [k for k in cls._keys if k not in d]
        if missing:
            raise ConfigurationError(f'MISSING OPTION(S) {missing} IN DRIVERS')
        for key in cls._keys:
            _check_type(d[key], (str,), f'DRIVERS.{key}')
        return cls(**{v: d[k] for k, v in cls._keys.items()})


@dataclass(frozen=True)
class SiteSelection:
    """
    Predicates that define a set of sites. All of them
    should hold for a site to be selected.
    """
    exclude: Dict[str, str] = field(default_factory=dict)
    attributes_equal: Dict[str, object] = field(default_factory=dict)
    attributes_not_equal: Dict[str, object] = field(default_factory=dict)
    site_list_file: Optional[str] = None
    site_list_query: Dict[str, List[object]] = field(default_factory=dict)

    _keys = {'EXCLUDE': 'exclude',
             'ATTRIBUTES_EQUAL': 'attributes_equal',
             'ATTRIBUTES_NOT_EQUAL': 'attributes_not_equal',
             'SITE_LIST_FILE': 'site_list_file',
             'SITE_LIST_QUERY': 'site_list_query'}

    def __post_init__(self):
        for name in ['exclude', 'attributes_equal',
                     'attributes_not_equal', 'site_list_query']:
            _check_type(getattr(self, name), (dict,), name.upper())
        for site, reason in self.exclude.items():
            if not isinstance(reason, str) or not reason.strip():
                raise ConfigurationError(
                    f'EXCLUDED SITE {site} NEEDS A DOCUMENTED REASON')
        for column, values in self.site_list_query.items():
            _check_type(values, (list, tuple), f'SITE_LIST_QUERY.{column}')
        if self.site_list_query and self.site_list_file is None:
            raise ConfigurationError('SITE_LIST_QUERY GIVEN WITHOUT '
                                     'SITE_LIST_FILE')

    @classmethod
    def from_dict(cls, d, name='SITES'):
        if d is None:
            return cls()
        _check_keys(d, cls._keys, name)
        return cls(**{v: d[k] for k, v in cls._keys.items() if k in d})


@dataclass(frozen=True)
class TargetSettings:
    source: str = 'fluxnet2015'
    fluxnet_folder: Optional[str] = None
    threshold_gpp: float = 0.8
    remove_negative: bool = False
    filter_nighttime: bool = True
    max_retries: int = 0

    _keys = {'SOURCE': 'source',
             'FLUXNET_FOLDER': 'fluxnet_folder',
             'THRESHOLD_GPP': 'threshold_gpp',
             'REMOVE_NEGATIVE': 'remove_negative',
             'FILTER_NIGHTTIME': 'filter_nighttime',
             'MAX_RETRIES': 'max_retries'}

    def __post_init__(self):
        if self.source not in TARGET_SOURCES:
            raise ConfigurationError(f'TARGET SOURCE {self.source} '
                                     'NOT SUPPORTED')
        _check_type(self.threshold_gpp, (int, float), 'THRESHOLD_GPP')
        if not 0 <= self.threshold_gpp <= 1:
            raise ConfigurationError('THRESHOLD_GPP should be a fraction '
                                     f'in [0, 1], got {self.threshold_gpp}')
        _check_type(self.remove_negative, (bool,), 'REMOVE_NEGATIVE')
        _check_type(self.filter_nighttime, (bool,), 'FILTER_NIGHTTIME')
        _check_type(self.max_retries, (int,), 'MAX_RETRIES')
        if self.max_retries < 0:
            raise ConfigurationError('MAX_RETRIES should be >= 0')

    @property
    def quality_options(self):
        return {'threshold': self.threshold_gpp,
                'remove_negative': self.remove_negative,
                'filter_nighttime': self.filter_nighttime}

    @classmethod
    def from_dict(cls, d):
        if d is None:
            return cls()
        _check_keys(d, cls._keys, 'TARGETS')
        return cls(**{v: d[k] for k, v in cls._keys.items() if k in d})


@dataclass(frozen=True)
class CalibrationSettings:
    params: Dict[str, Tuple[float, float, float]]
    method: str = 'simulated_annealing'
    cost: str = 'rmse'
    maxit: int = 100
    seed: int = 1982

    _keys = {'PARAMS': 'params', 'METHOD': 'method', 'COST': 'cost',
             'MAXIT': 'maxit', 'SEED': 'seed'}

    def __post_init__(self):
        if self.method not in OPTIMIZER_METHODS:
            raise ConfigurationError(f'OPTIMIZER {self.method} NOT '
                                     f'SUPPORTED, use {OPTIMIZER_METHODS}')
        if self.cost not in COST_FUNCTIONS:
            raise ConfigurationError(f'COST {self.cost} NOT SUPPORTED, '
                                     f'use {COST_FUNCTIONS}')
        _check_type(self.params, (dict,), 'PARAMS')
        if not self.params:
            raise ConfigurationError('NO PARAMETERS TO CALIBRATE')
        for name, triple in self.params.items():
            _check_type(triple, (list, tuple), f'PARAMS.{name}')
            if len(triple) != 3:
                raise ConfigurationError(
                    f'PARAMS.{name} should be [lower, upper, init]')
            for value in triple:
                _check_type(value, (int, float), f'PARAMS.{name}')
        _check_type(self.maxit, (int,), 'MAXIT')
        if self.maxit <= 0:
            raise ConfigurationError('MAXIT should be > 0')
        _check_type(self.seed, (int,), 'SEED')

    @property
    def names(self):
        return list(self.params.keys())

    @classmethod
    def from_dict(cls, d):
        _check_keys(d, cls._keys, 'CALIBRATION')
        if 'PARAMS' not in d:
            raise ConfigurationError('MISSING PARAMS IN CALIBRATION')
        kwargs = {v: d[k] for k, v in cls._keys.items() if k in d}
        kwargs['params'] = {name: tuple(triple) if isinstance(triple, list)
                            else triple
                            for name, triple in d['PARAMS'].items()}
        return cls(**kwargs)


@dataclass(frozen=True)
class SimulationSettings:
    max_workers: int = 1
    timeout: Optional[float] = None

    _keys = {'MAX_WORKERS': 'max_workers', 'TIMEOUT': 'timeout'}

    def __post_init__(self):
        _check_type(self.max_workers, (int,), 'MAX_WORKERS')
        if self.max_workers < 1:
            raise ConfigurationError('MAX_WORKERS should be >= 1')
        if self.timeout is not None:
            _check_type(self.timeout, (int, float), 'TIMEOUT')
            if self.timeout <= 0:
                raise ConfigurationError('TIMEOUT should be > 0')

    @classmethod
    def from_dict(cls, d):
        if d is None:
            return cls()
        _check_keys(d, cls._keys, 'SIMULATION')
        return cls(**{v: d[k] for k, v in cls._keys.items() if k in d})


@dataclass(frozen=True)
class BenchmarkSettings:
    model_version: str
    drivers: DriverSettings
    calibration_sites: SiteSelection = field(default_factory=SiteSelection)
    evaluation_sites: SiteSelection = field(default_factory=SiteSelection)
    targets: TargetSettings = field(default_factory=TargetSettings)
    calibration: Optional[CalibrationSettings] = None
    simulation: SimulationSettings = field(default_factory=SimulationSettings)
    cache_folder: Optional[str] = None
    version: str = 'V1'
    overwrite: bool = False

    _keys = ['MODEL_VERSION', 'DRIVERS', 'CALIBRATION_SITES',
             'EVALUATION_SITES', 'TARGETS', 'CALIBRATION', 'SIMULATION',
             'CACHE_FOLDER', 'VERSION', 'OVERWRITE']

    def __post_init__(self):
        if self.model_version not in MODEL_VERSIONS:
            raise ConfigurationError(f'MODEL VERSION {self.model_version} '
                                     f'NOT SUPPORTED, use {MODEL_VERSIONS}')
        _check_type(self.overwrite, (bool,), 'OVERWRITE')

    @classmethod
    def from_dict(cls, d):
        _check_keys(d, cls._keys, 'SETTINGS')
        if 'MODEL_VERSION' not in d or 'DRIVERS' not in d:
            raise ConfigurationError('MODEL_VERSION AND DRIVERS ARE REQUIRED')
        calibration = d.get('CALIBRATION')
        if calibration is not None:
            calibration = CalibrationSettings.from_dict(calibration)
        return cls(
            model_version=d['MODEL_VERSION'],
            drivers=DriverSettings.from_dict(d['DRIVERS']),
            calibration_sites=SiteSelection.from_dict(
                d.get('CALIBRATION_SITES'), 'CALIBRATION_SITES'),
            evaluation_sites=SiteSelection.from_dict(
                d.get('EVALUATION_SITES'), 'EVALUATION_SITES'),
            targets=TargetSettings.from_dict(d.get('TARGETS')),
            calibration=calibration,
            simulation=SimulationSettings.from_dict(d.get('SIMULATION')),
            cache_folder=d.get('CACHE_FOLDER'),
            version=d.get('VERSION', 'V1'),
            overwrite=d.get('OVERWRITE', False))


def load_settings(settingsfile) -> Tuple[dict, BenchmarkSettings]:
    """
    Read the JSON settings file. Returns the raw dictionary
    (to be written out with the results) and the checked settings.
    """
    settingsfile = Path(settingsfile)
    with open(settingsfile, 'r') as f:
        raw = json.load(f)
    return raw, BenchmarkSettings.from_dict(raw)
