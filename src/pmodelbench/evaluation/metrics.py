"""
Script with evaluation metrics to determine the performance
of the simulated GPP against the observations
"""

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.metrics import r2_score

from pmodelbench.model.runner import unnest_output
from pmodelbench.sites.filters import sites_with_output
from pmodelbench.utils.timeseries import pair_with_observations, aggregate_TS


def precision(MAE_out, RMSE_out):
    return RMSE_out**2 - MAE_out**2


def RMSE(pred, obs):
    return np.sqrt(((pred-obs)**2).mean())


def MAE(pred, obs):
    return np.mean(np.abs(pred-obs))


def bias(pred, obs):
    return np.mean(pred - obs)


def get_val_metrics(pred, obs):
    pred = np.asarray(pred, dtype=float)
    obs = np.asarray(obs, dtype=float)
    dict_VAL = {'N': len(obs)}
    if len(obs) == 0:
        dict_VAL.update({'RMSE': np.nan, 'MAE': np.nan,
                         'PRECISION': np.nan, 'BIAS': np.nan,
                         'R2': np.nan})
        return dict_VAL
    RMSE_out = np.round(RMSE(pred, obs), 2)
    MAE_out = np.round(MAE(pred, obs), 2)
    # R2 is not defined on a single value
    R2_out = np.round(r2_score(obs, pred), 2) if len(obs) > 1 else np.nan
    Prec_out = np.round(precision(MAE_out, RMSE_out), 2)

    dict_VAL.update({'RMSE': RMSE_out,
                     'MAE': MAE_out,
                     'PRECISION': Prec_out,
                     'BIAS': np.round(bias(pred, obs), 2),
                     'R2': R2_out})
    return dict_VAL


def evaluate(df_output: pd.DataFrame, df_obs: pd.DataFrame,
             scales=('day', 'month', 'year'), per_site=True) -> pd.DataFrame:
    """
    Compare the simulated with the observed GPP. Sites without any
    simulated time step are not considered.

    :param df_output: output table of the simulation runner
    :param df_obs: long table with the observed GPP
    :param scales: temporal scales at which the metrics are computed
    :param per_site: also compute the metrics for each site
    :return: table with a row per scale and site ('ALL' for pooled)
    """
    sites_eval = sites_with_output(df_output)
    dropped = sorted(set(df_output.index) - set(sites_eval))
    if dropped:
        logger.warning(f'{len(dropped)} SITES WITHOUT OUTPUT NOT '
                       f'EVALUATED: {dropped}')
    df_sim = unnest_output(df_output.loc[sites_eval])
    df_pairs = pair_with_observations(df_sim, df_obs)

    lst_rows = []
    for scale in scales:
        df_scale = aggregate_TS(df_pairs, scale)
        row = get_val_metrics(df_scale['gpp_mod'], df_scale['gpp_obs'])
        row.update({'scale': scale, 'sitename': 'ALL'})
        lst_rows.append(row)
        if not per_site:
            continue
        for site, df_site in df_scale.groupby('sitename'):
            row = get_val_metrics(df_site['gpp_mod'], df_site['gpp_obs'])
            row.update({'scale': scale, 'sitename': site})
            lst_rows.append(row)
    df_metrics = pd.DataFrame(lst_rows)
    return df_metrics.set_index(['scale', 'sitename'])
