"""
Cost functions between the simulated and observed GPP,
summed over all calibration sites and days
"""

import numpy as np
from scipy.stats import norm

from pmodelbench.evaluation.metrics import RMSE

# cost returned when no simulated value can be matched with an observation
MAX_COST = 1e12


def cost_rmse(df_pairs, err_gpp=None):
    if df_pairs.empty:
        return MAX_COST
    return float(RMSE(df_pairs['gpp_mod'].values,
                      df_pairs['gpp_obs'].values))


def cost_likelihood(df_pairs, err_gpp=None):
    """
    Negative log-likelihood of the observations with a normal error
    model. The standard deviation is the calibrated error parameter,
    or the observation uncertainty when it is not calibrated.
    """
    if df_pairs.empty:
        return MAX_COST
    if err_gpp is not None:
        sd = np.full(df_pairs.shape[0], err_gpp, dtype=float)
        valid = np.ones(df_pairs.shape[0], dtype=bool)
    else:
        sd = df_pairs['gpp_unc'].values.astype(float)
        valid = np.isfinite(sd) & (sd > 0)
        if not valid.any():
            return MAX_COST
    loglik = norm.logpdf(df_pairs['gpp_obs'].values[valid],
                         loc=df_pairs['gpp_mod'].values[valid],
                         scale=sd[valid])
    return float(-np.sum(loglik))


COST_FUNCTIONS = {
    'rmse': cost_rmse,
    'likelihood': cost_likelihood
}
