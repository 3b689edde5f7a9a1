"""
Selection of the sites used for calibration and evaluation.

A selection is a chain of predicates that are combined with AND. Every
predicate returns the set of site identifiers of the meta data table
that fulfil it, the selection is the intersection of these sets.
"""

from typing import Dict, Iterable, List

from loguru import logger
import pandas as pd

from pmodelbench.config import SiteSelection
from pmodelbench.exceptions import ConfigurationError


class SitePredicate:
    """Base class, returns the selected site identifiers"""

    def select(self, df_meta: pd.DataFrame) -> set:
        raise NotImplementedError

    def __repr__(self):
        return f'{type(self).__name__}({self.__dict__})'


class ExcludeSites(SitePredicate):
    """
    Manual override of sites that should not be used. Each site
    should come with the reason why it is excluded.
    """

    def __init__(self, reasons: Dict[str, str]):
        for site, reason in reasons.items():
            if not reason:
                raise ConfigurationError(f'NO REASON GIVEN TO EXCLUDE {site}')
        self.reasons = dict(reasons)

    def select(self, df_meta):
        sites = set(df_meta['sitename'])
        for site in sorted(sites & set(self.reasons)):
            logger.info(f'EXCLUDE {site}: {self.reasons.get(site)}')
        return sites - set(self.reasons)


class AttributeEquals(SitePredicate):

    def __init__(self, column: str, value):
        self.column = column
        self.value = value

    def select(self, df_meta):
        if self.column not in df_meta.columns:
            raise ConfigurationError(f'NO ATTRIBUTE {self.column} IN '
                                     'SITE META DATA')
        return set(df_meta.loc[df_meta[self.column] == self.value,
                               'sitename'])


class AttributeNotEquals(AttributeEquals):

    def select(self, df_meta):
        return set(df_meta['sitename']) - super().select(df_meta)


class InSiteList(SitePredicate):
    """
    Keep only the sites that are part of an external list
    (e.g. the sites of a flux partitioning uncertainty cluster).
    """

    def __init__(self, sites: Iterable[str], name='site list'):
        self.sites = set(sites)
        self.name = name

    @classmethod
    def from_csv(cls, path, query: Dict[str, List] = None,
                 id_column='sitename'):
        """
        Load the list from a companion table, optionally filtered
        on the allowed values of some of its columns.
        """
        df_list = pd.read_csv(path)
        if id_column not in df_list.columns:
            raise ConfigurationError(f'NO {id_column} COLUMN IN {path}')
        for column, values in (query or {}).items():
            if column not in df_list.columns:
                raise ConfigurationError(f'NO {column} COLUMN IN {path}')
            df_list = df_list.loc[df_list[column].isin(values)]
        return cls(df_list[id_column].unique(), name=str(path))

    def select(self, df_meta):
        return set(df_meta['sitename']) & self.sites


def predicates_from_settings(selection: SiteSelection) -> List[SitePredicate]:
    predicates = []
    if selection.exclude:
        predicates.append(ExcludeSites(selection.exclude))
    for column, value in selection.attributes_equal.items():
        predicates.append(AttributeEquals(column, value))
    for column, value in selection.attributes_not_equal.items():
        predicates.append(AttributeNotEquals(column, value))
    if selection.site_list_file is not None:
        predicates.append(InSiteList.from_csv(selection.site_list_file,
                                              selection.site_list_query))
    return predicates


def filter_sites(df_meta: pd.DataFrame,
                 predicates: Iterable[SitePredicate] = (),
                 label='') -> List[str]:
    """
    Apply the predicates on the site meta data.

    :param df_meta: table with one row per site and a 'sitename' column
    :param predicates: predicates that all should hold
    :param label: name of the selection used in the logging
    :return: the sorted list of selected site identifiers
    """
    if df_meta['sitename'].duplicated().any():
        raise ConfigurationError('DUPLICATE SITE IDENTIFIERS IN META DATA')
    selected = set(df_meta['sitename'])
    for predicate in predicates:
        selected &= predicate.select(df_meta)
    if not selected:
        logger.warning(f'NO SITES LEFT AFTER FILTERING {label}'.strip()
                       + ' --> check the filter settings')
    else:
        logger.info(f'SELECTED {len(selected)} OF {df_meta.shape[0]} '
                    f'SITES {label}'.strip())
    return sorted(selected)


def sites_with_output(df_output: pd.DataFrame) -> List[str]:
    """Sites for which the simulation produced at least one time step"""
    return sorted(df_output.index[df_output['n_steps'] > 0])
