"""
Loading of the observed GPP used as calibration target.

The observations are first looked up in the cache, keyed on the sites,
the source, the variables and the quality options. On a miss they are
fetched per site from the ingestion collaborator and written to the
cache before they are returned, as long as no site failed.
"""

from typing import List

import pandas as pd
from loguru import logger

from pmodelbench.config import TargetSettings
from pmodelbench.constants import FLX_VARIABLE_MAP
from pmodelbench.exceptions import CollaboratorError, ConfigurationError
from pmodelbench.utils.parallel import run_tasks
from pmodelbench.utils.storage import MemoryCache, content_key

OBS_COLUMNS = ['sitename', 'date', 'gpp', 'gpp_unc']


class TargetLoader:

    def __init__(self, ingestor, settings: TargetSettings = None,
                 cache=None, variable_map=None, max_workers=1):
        self.ingestor = ingestor
        self.settings = settings or TargetSettings()
        self.cache = cache if cache is not None else MemoryCache()
        self.variable_map = variable_map or dict(FLX_VARIABLE_MAP)
        self.max_workers = max_workers

    def cache_key(self, sites):
        return content_key('observations', sorted(set(sites)),
                           self.settings.source, self.variable_map,
                           self.settings.quality_options)

    def _fetch_once(self, site):
        try:
            return self.ingestor.fetch_observations(
                [site], self.settings.source, self.variable_map,
                self.settings.quality_options)
        except (ConfigurationError, CollaboratorError):
            raise
        except Exception as e:
            raise CollaboratorError(f'{type(e).__name__}: {e}', site=site,
                                    stage='ingestion') from e

    def _fetch_site(self, site):
        """Fetch a single site, retrying on a failure of the collaborator"""
        attempts = self.settings.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                fetched = self._fetch_once(site)
            except CollaboratorError as e:
                if attempt == attempts:
                    raise
                logger.warning(f'FETCH OF {site} FAILED ({e}), RETRY '
                               f'{attempt}/{self.settings.max_retries}')
                continue
            if site not in fetched:
                raise CollaboratorError('NO DATA RETURNED', site=site,
                                        stage='ingestion')
            return fetched[site]

    def load(self, sites: List[str]) -> pd.DataFrame:
        """
        Observed daily GPP of the sites as a long table with the
        columns sitename, date, gpp and gpp_unc. Sites that could not
        be fetched are left out of the table.
        """
        key = self.cache_key(sites)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f'LOADED OBSERVATIONS OF {len(sites)} SITES '
                        'FROM CACHE')
            return cached.copy()

        logger.info(f'FETCHING OBSERVATIONS FOR {len(sites)} SITES')
        tasks = [(site, lambda site=site: self._fetch_site(site))
                 for site in sorted(set(sites))]
        results = run_tasks(tasks, max_workers=self.max_workers,
                            desc='FETCH OBSERVATIONS')

        lst_df_sites, failed = [], []
        for site in sorted(results):
            result = results[site]
            if isinstance(result, CollaboratorError):
                logger.warning(f'NO OBSERVATIONS FOR {site}, SITE IS '
                               f'EXCLUDED FROM CALIBRATION: {result}')
                failed.append(site)
                continue
            if isinstance(result, Exception):
                raise result
            lst_df_sites.append(result)

        if lst_df_sites:
            df_obs = pd.concat(lst_df_sites, ignore_index=True)
        else:
            logger.warning('NO OBSERVATIONS COULD BE FETCHED')
            df_obs = pd.DataFrame(columns=OBS_COLUMNS)
        df_obs = df_obs.reindex(columns=OBS_COLUMNS)
        df_obs['date'] = pd.to_datetime(df_obs['date'])
        df_obs = df_obs.sort_values(['sitename', 'date'])\
            .reset_index(drop=True)

        # an incomplete fetch is not cached, the failed sites are
        # fetched again on the next load
        if failed:
            logger.warning(f'NOT CACHED, FETCH FAILED FOR {failed}')
        else:
            self.cache.put(key, df_obs.copy())
        return df_obs
