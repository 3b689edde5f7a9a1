import numpy as np
import pandas as pd


def object_series(values, index, name=None):
    """Series of arbitrary python objects (e.g. dataframes per site)

    pandas would otherwise try to unpack nested frames or lists
    """
    arr = np.empty(len(values), dtype=object)
    for i, value in enumerate(values):
        arr[i] = value
    return pd.Series(arr, index=index, name=name, dtype=object)
