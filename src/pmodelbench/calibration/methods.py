"""
Methods that can be used for calibration.

Each method minimizes an objective function within the parameter bounds
and returns the best parameter vector together with some diagnostics:
    minimize(objective_fn, bounds, init, seed, budget) -> (best, diagnostics)
"""

# import needed packages
import numpy as np
from scipy.optimize import differential_evolution, dual_annealing


def _diagnostics(result):
    return {'fun': float(result.fun),
            'nfev': int(result.nfev),
            'nit': int(getattr(result, 'nit', -1)),
            'success': bool(result.success),
            'message': str(result.message)}


def simulated_annealing(objective_fn, bounds, init, seed, budget):
    result = dual_annealing(objective_fn, bounds=list(bounds),
                            maxiter=budget, seed=seed,
                            x0=np.asarray(init, dtype=float))
    return np.asarray(result.x), _diagnostics(result)


def differential_evolution_search(objective_fn, bounds, init, seed, budget):
    # no local polishing afterwards, such that the
    # number of iterations stays within the budget
    result = differential_evolution(objective_fn, bounds=list(bounds),
                                    maxiter=budget, seed=seed,
                                    x0=np.asarray(init, dtype=float),
                                    polish=False)
    return np.asarray(result.x), _diagnostics(result)


OPTIMIZERS = {
    'simulated_annealing': simulated_annealing,
    'differential_evolution': differential_evolution_search
}


def get_optimizer(method):
    if method not in OPTIMIZERS:
        raise ValueError(f'{method} not yet supported!!')
    return OPTIMIZERS.get(method)
