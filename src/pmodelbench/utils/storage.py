"""
Functions that will contribute in storing the data
"""

# import needed packages
import hashlib
import json
import os
import threading
from pathlib import Path

import numpy as np
import pandas as pd
from loguru import logger


def _make_serial(d):
    """
    Function that will ensure that an input object,
    will be convert to a JSON like format for saving
    """
    if isinstance(d, dict):
        return {_make_serial(k): _make_serial(v)
                for k, v in d.items()}
    elif isinstance(d, (list, tuple)):
        return [_make_serial(i) for i in d]
    elif isinstance(d, (set, frozenset)):
        return sorted(_make_serial(i) for i in d)
    elif isinstance(d, Path):
        return str(d)
    elif isinstance(d, np.generic):
        return _make_serial(d.item())
    elif callable(d):
        return d.__name__
    elif (isinstance(d, float)) and (np.isnan(d)):
        return 'NaN'
    else:
        return d


def content_key(*parts) -> str:
    """
    Stable key derived from the content of the inputs. Dataframes are
    hashed on their values, index and column names; all other
    inputs should be JSON serialisable after _make_serial.
    """
    sha = hashlib.sha256()
    for part in parts:
        if isinstance(part, pd.DataFrame):
            sha.update(json.dumps([str(c) for c in part.columns]).encode())
            hashed = pd.util.hash_pandas_object(part, index=True)
            sha.update(hashed.values.tobytes())
        else:
            sha.update(json.dumps(_make_serial(part), sort_keys=True,
                                  default=str).encode())
        # separator such that ('ab', 'c') != ('a', 'bc')
        sha.update(b'\x00')
    return sha.hexdigest()


class MemoryCache:
    """In-memory cache, mainly meant for testing."""

    def __init__(self):
        self._store = {}
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            return self._store.get(key)

    def put(self, key, value):
        with self._lock:
            self._store[key] = value

    def __contains__(self, key):
        with self._lock:
            return key in self._store


class PickleCache:
    """
    Cache that stores every entry as a pickle file in a folder.
    Concurrent writers on the same key are allowed, the last
    write wins.
    """

    def __init__(self, folder, namespace=None):
        self.folder = Path(folder)
        if namespace is not None:
            self.folder = self.folder / namespace
        self.folder.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, key):
        return self.folder / f'{key}.pkl'

    def get(self, key):
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return None
            return pd.read_pickle(path)

    def put(self, key, value):
        path = self._path(key)
        # write first to a temporary file so that readers
        # never see a half-written entry
        tmp = path.with_suffix(f'.{threading.get_ident()}.tmp')
        with self._lock:
            pd.to_pickle(value, tmp)
            os.replace(tmp, path)
        logger.debug(f'CACHED {key[:12]} IN {self.folder}')

    def __contains__(self, key):
        return self._path(key).exists()


def write_metadata(target_dir, settings, version, overwrite=False):
    """
    Write out the used settings next to the results
    """
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    meta_name = f'metadata_{version}.json'
    if not os.path.exists(target_dir.joinpath(meta_name)) or overwrite:
        with open(target_dir / meta_name, 'w') as f:
            json.dump(_make_serial(settings), f, ensure_ascii=False)
    return target_dir / meta_name
