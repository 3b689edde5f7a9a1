"""
Functions to retrieve the daily GPP of the flux sites
from the FLUXNET2015 FULLSET files
"""

import glob
import os
from typing import Dict, List

import numpy as np
import pandas as pd
from loguru import logger

from pmodelbench.constants import (
    FLX_FILE_PATTERN,
    FLX_MISSING,
    FLX_VARIABLE_MAP,
    FLX_QC_NIGHT,
    FLX_QC_DAY)
from pmodelbench.exceptions import CollaboratorError


def clean_gpp(df_flx: pd.DataFrame, variable_map: Dict[str, str],
              threshold=0.8, remove_negative=False,
              filter_nighttime=True) -> pd.DataFrame:
    """
    Keep only the daily values with a sufficient fraction of good
    quality half-hourly data.

    :param df_flx: the raw daily data of the site, indexed on date
    :param variable_map: output name -> FLUXNET column
    :param threshold: the minimum fraction of good quality records
    :param remove_negative: drop the negative GPP values
    :param filter_nighttime: use the quality flag of the nighttime
        partitioning instead of the overall NEE flag
    """
    df_flx = df_flx.mask(df_flx <= FLX_MISSING)
    qc_col = FLX_QC_NIGHT if filter_nighttime else FLX_QC_DAY
    if qc_col not in df_flx.columns:
        raise KeyError(f'NO QUALITY FLAG {qc_col}')

    df_out = pd.DataFrame(index=df_flx.index)
    for name, column in variable_map.items():
        if column in df_flx.columns:
            df_out[name] = df_flx[column]
        else:
            df_out[name] = np.nan

    # a missing flag counts as bad quality
    bad = ~(df_flx[qc_col] >= threshold)
    df_out.loc[bad, 'gpp'] = np.nan
    if remove_negative:
        df_out.loc[df_out['gpp'] < 0, 'gpp'] = np.nan
    # drop empty dates:
    df_out = df_out.dropna(subset=['gpp'])
    leap = (df_out.index.month == 2) & (df_out.index.day == 29)
    return df_out.loc[~leap]


class FluxnetIngestor:
    """
    Reads the daily (DD) FLUXNET2015 files of the sites from a folder
    in which the archive of each site is unpacked.
    """

    def __init__(self, folder):
        self.folder = folder

    def _find_file(self, site):
        pattern = FLX_FILE_PATTERN.format(site=site)
        files = glob.glob(os.path.join(self.folder, pattern))
        if not files:
            files = glob.glob(os.path.join(self.folder, '*', pattern))
        if len(files) > 1:
            logger.warning(f'Multiple data matched found for site: {site} '
                           '--> take first one')
        if not files:
            raise CollaboratorError('NO FLUXNET2015 DD FILE FOUND',
                                    site=site, stage='ingestion')
        return sorted(files)[0]

    def fetch_site(self, site, variable_map=None, quality_options=None):
        variable_map = variable_map or FLX_VARIABLE_MAP
        quality_options = quality_options or {}
        fp_csv = self._find_file(site)
        try:
            df_csv = pd.read_csv(fp_csv)
            df_csv.index = pd.to_datetime(df_csv['TIMESTAMP'].astype(str),
                                          format='%Y%m%d')
            df_site = clean_gpp(df_csv, variable_map, **quality_options)
        except (OSError, KeyError, ValueError) as e:
            raise CollaboratorError(e, site=site, stage='ingestion') from e
        df_site.index.name = 'date'
        df_site = df_site.reset_index()
        df_site.insert(0, 'sitename', site)
        return df_site

    def fetch_observations(self, site_ids: List[str], source='fluxnet2015',
                           variable_map=None, quality_options=None):
        """
        Per-site daily series of the observed GPP as a dictionary
        site -> dataframe. Raises a CollaboratorError for the first
        site that could not be read.
        """
        if source != 'fluxnet2015':
            raise CollaboratorError(f'SOURCE {source} NOT SUPPORTED',
                                    stage='ingestion')
        return {site: self.fetch_site(site, variable_map, quality_options)
                for site in site_ids}
