""""
Function that will prepare the driver data of the sites such that
it can be used directly for the simulation call.

The following pre-processing steps are conducted, in this order:
- Remove the Feb-29 records (the model runs on 365-day years)
- Bring precipitation and radiation from a daily total to a flux per second
- Derive the fields only the newer model version asks for
- Rename the fields to the schema of the model version
- Nest the forcing below its site, together with site info and soil
"""

from loguru import logger
import pandas as pd

from pmodelbench.constants import (
    sec_per_day,
    FLUX_FIELDS,
    FORCING_REQUIRED,
    FORCING_PASSTHROUGH,
    FORCING_SCHEMA,
    FORCING_RENAME,
    MODEL_VERSIONS,
    SITEINFO_COLUMNS,
    SOIL_COLUMNS)
from pmodelbench.exceptions import (
    ConfigurationError,
    DuplicateSiteError,
    MissingForcingError,
    MissingMetadataError,
    UnitConversionError)
from pmodelbench.utils import object_series

# The source data holds no snow partitioning, all precipitation
# is passed on as rain. Known simplification, not valid for sites
# with a considerable snow fraction.
ALL_PRECIPITATION_LIQUID = True

FLUX_UNIT_ATTR = 'flux_unit'


def _check_columns(df, required, name):
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ConfigurationError(f'MISSING COLUMN(S) {missing} IN {name}')


def remove_feb29(forcing: pd.DataFrame) -> pd.DataFrame:
    dates = pd.to_datetime(forcing['date'])
    leap = (dates.dt.month == 2) & (dates.dt.day == 29)
    return forcing.loc[~leap.values]


def convert_flux_units(forcing: pd.DataFrame,
                       fields=FLUX_FIELDS) -> pd.DataFrame:
    """
    Divide the daily totals of the flux fields by the number of seconds
    in a day. The conversion can only be done once on a dataframe,
    a second call raises an UnitConversionError.

    :param forcing: the forcing of a site with daily totals
    :param fields: the columns to convert
    :return: copy of the forcing with the fields per second
    """
    if forcing.attrs.get(FLUX_UNIT_ATTR) == 'per_second':
        raise UnitConversionError('FLUX FIELDS ARE ALREADY EXPRESSED '
                                  'PER SECOND')
    converted = forcing.copy()
    for field in fields:
        converted[field] = converted[field] / sec_per_day
    converted.attrs[FLUX_UNIT_ATTR] = 'per_second'
    return converted


def derive_fields(forcing: pd.DataFrame, model_version: str) -> pd.DataFrame:
    if model_version == 'v3.0':
        return forcing
    derived = forcing.copy()
    if ALL_PRECIPITATION_LIQUID:
        derived['snow'] = 0.0
    # without a true daily min/max the mean is used for both
    for col in ['tmin', 'tmax']:
        if col not in derived.columns:
            derived[col] = derived['temp']
        else:
            derived[col] = derived[col].fillna(derived['temp'])
    return derived


def rename_fields(forcing: pd.DataFrame, model_version: str) -> pd.DataFrame:
    renamed = forcing.rename(columns=FORCING_RENAME.get(model_version))
    # keep the optional columns which the model can use
    extra = [c for c in FORCING_PASSTHROUGH if c in renamed.columns]
    return renamed[FORCING_SCHEMA[model_version] + extra]


def harmonize_site(forcing_site: pd.DataFrame,
                   model_version: str) -> pd.DataFrame:
    forcing_site = forcing_site.copy()
    forcing_site['date'] = pd.to_datetime(forcing_site['date'])
    if forcing_site['date'].duplicated().any():
        raise ConfigurationError('DUPLICATE DATES IN FORCING OF SITE '
                                 f'{forcing_site["sitename"].iloc[0]}')
    forcing_site = remove_feb29(forcing_site)
    forcing_site = convert_flux_units(forcing_site)
    forcing_site = derive_fields(forcing_site, model_version)
    forcing_site = rename_fields(forcing_site, model_version)
    forcing_site = forcing_site.sort_values('date').reset_index(drop=True)
    forcing_site.attrs[FLUX_UNIT_ATTR] = 'per_second'
    return forcing_site


def build_driver_table(forcing: pd.DataFrame,
                       siteinfo: pd.DataFrame,
                       soil: pd.DataFrame,
                       model_version: str) -> pd.DataFrame:
    """
    Combine the raw forcing with the static site information and soil
    parameters in a table with one row per site.

    :param forcing: long table with the daily forcing of all sites
    :param siteinfo: one row per site with the site meta information
    :param soil: soil texture per site (can hold multiple layers)
    :param model_version: the model version defining the forcing schema
    :return: table indexed on sitename with the columns
        'site_info' (dict), 'params_soil' (dataframe), 'forcing' (dataframe)
    """
    if model_version not in MODEL_VERSIONS:
        raise ConfigurationError(f'MODEL VERSION {model_version} '
                                 'NOT SUPPORTED')
    _check_columns(forcing, FORCING_REQUIRED, 'FORCING')
    _check_columns(siteinfo, ['sitename'], 'SITEINFO')
    _check_columns(soil, SOIL_COLUMNS, 'SOIL')

    duplicated = siteinfo['sitename'][siteinfo['sitename'].duplicated()]
    if not duplicated.empty:
        raise DuplicateSiteError('DUPLICATE SITE IDENTIFIERS IN SITEINFO: '
                                 f'{sorted(duplicated.unique())}')

    sites_meta = set(siteinfo['sitename'])
    sites_forcing = set(forcing['sitename'].unique())
    sites_soil = set(soil['sitename'].unique())

    # every forcing series needs exactly one meta data row
    orphans = sorted(sites_forcing - sites_meta)
    if orphans:
        raise MissingMetadataError(f'NO SITE INFO FOR {orphans}')
    orphans = sorted(sites_forcing - sites_soil)
    if orphans:
        raise MissingMetadataError(f'NO SOIL PARAMETERS FOR {orphans}')
    no_forcing = sorted(sites_meta - sites_forcing)
    if no_forcing:
        raise MissingForcingError(f'NO FORCING FOR {no_forcing}')

    logger.info(f'START DRIVER HARMONIZATION FOR {len(sites_meta)} SITES '
                f'({model_version})')

    info_cols = [c for c in siteinfo.columns if c != 'sitename']
    sites = sorted(sites_meta)
    lst_info, lst_soil, lst_forcing = [], [], []
    for site in sites:
        row = siteinfo.loc[siteinfo['sitename'] == site].iloc[0]
        lst_info.append({col: row[col] for col in info_cols})
        soil_site = soil.loc[soil['sitename'] == site]
        lst_soil.append(soil_site.drop(columns='sitename')
                        .reset_index(drop=True))
        forcing_site = forcing.loc[forcing['sitename'] == site]
        n_raw = forcing_site.shape[0]
        forcing_site = harmonize_site(forcing_site, model_version)
        if forcing_site.shape[0] != n_raw:
            logger.debug(f'{site}: DROPPED {n_raw - forcing_site.shape[0]} '
                         'FEB-29 RECORDS')
        lst_forcing.append(forcing_site)

    index = pd.Index(sites, name='sitename')
    df_drivers = pd.DataFrame({
        'site_info': object_series(lst_info, index),
        'params_soil': object_series(lst_soil, index),
        'forcing': object_series(lst_forcing, index)
    }, index=index)
    df_drivers.attrs['model_version'] = model_version
    logger.info('FINISHED DRIVER HARMONIZATION')
    return df_drivers


def site_metadata(df_drivers: pd.DataFrame) -> pd.DataFrame:
    """Flat table of the site information held in a driver table"""
    df_meta = pd.DataFrame(list(df_drivers['site_info'].values),
                           index=df_drivers.index)
    return df_meta.reset_index()


def read_raw_drivers(forcing_file, siteinfo_file, soil_file):
    """
    Load the raw driver tables from CSV. The forcing file holds
    the long table of all sites.
    """
    forcing = pd.read_csv(forcing_file, parse_dates=['date'])
    siteinfo = pd.read_csv(siteinfo_file)
    soil = pd.read_csv(soil_file)
    keep = [c for c in SITEINFO_COLUMNS if c in siteinfo.columns]
    return forcing, siteinfo[keep], soil
