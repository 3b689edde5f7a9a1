"""
Functions to pair and aggregate the simulated
and observed GPP timeseries
"""

import pandas as pd

# pandas period aliases of the supported temporal scales
PERIODS = {'day': 'D', 'week': 'W', 'month': 'M', 'year': 'Y'}


def pair_with_observations(df_sim: pd.DataFrame,
                           df_obs: pd.DataFrame) -> pd.DataFrame:
    """
    Join the simulated and observed GPP on site and date. Only the
    dates with both a simulated and observed value are retained.

    :param df_sim: long table with sitename, date and gpp (simulated)
    :param df_obs: long table with sitename, date, gpp and gpp_unc
    :return: dataframe with sitename, date, gpp_mod, gpp_obs, gpp_unc
    """
    sim = df_sim[['sitename', 'date', 'gpp']]\
        .rename(columns={'gpp': 'gpp_mod'})
    obs = df_obs.reindex(columns=['sitename', 'date', 'gpp', 'gpp_unc'])\
        .rename(columns={'gpp': 'gpp_obs'})
    sim = sim.assign(date=pd.to_datetime(sim['date']))
    obs = obs.assign(date=pd.to_datetime(obs['date']))
    df_pairs = sim.merge(obs, on=['sitename', 'date'], how='inner')
    # drop empty dates:
    df_pairs = df_pairs.dropna(subset=['gpp_mod', 'gpp_obs'])
    return df_pairs.sort_values(['sitename', 'date']).reset_index(drop=True)


def aggregate_TS(df_TS: pd.DataFrame, period: str,
                 reducer: str = 'mean') -> pd.DataFrame:
    """"
    Function that allows to aggregate timeseries to a certain temporal scale
    (e.g., week, month, year) for every site separately.

    :param df_TS: the dataframe with sitename, date and the values
    :param period: the temporal scale for aggregation (.e.g, month, year)
    :param reducer: the statistical way the data should be aggregated
        (.e.g., mean, median)
    :return: dataframe that contains the aggregated timeseries, the date
        is the start of the period
    """
    if period not in PERIODS:
        raise ValueError(f'AGGREGATION TO {period} NOT SUPPORTED')
    if reducer not in ['mean', 'median', 'sum']:
        raise ValueError(f'REDUCER {reducer} NOT SUPPORTED')
    if period == 'day' or df_TS.empty:
        return df_TS
    start = pd.to_datetime(df_TS['date']).dt.to_period(PERIODS.get(period))\
        .dt.start_time
    grouped = df_TS.drop(columns='date').assign(date=start)\
        .groupby(['sitename', 'date'])
    df_agg = getattr(grouped, reducer)(numeric_only=True)
    return df_agg.reset_index()
