import json

import numpy as np
import pandas as pd

from pmodelbench.utils.storage import (
    MemoryCache,
    PickleCache,
    _make_serial,
    content_key,
    write_metadata)


def test_content_key_is_stable():
    df = pd.DataFrame({'a': [1.0, 2.0], 'b': ['x', 'y']})
    key = content_key('targets', df, {'threshold': 0.8}, ['AA-Aaa'])
    assert key == content_key('targets', df.copy(), {'threshold': 0.8},
                              ['AA-Aaa'])
    assert len(key) == 64


def test_content_key_changes_with_content():
    df = pd.DataFrame({'a': [1.0, 2.0]})
    key = content_key(df, 0.8)
    assert key != content_key(df.assign(a=[1.0, 2.5]), 0.8)
    assert key != content_key(df.rename(columns={'a': 'b'}), 0.8)
    assert key != content_key(df, 0.5)
    assert content_key('ab', 'c') != content_key('a', 'bc')


def test_memory_cache():
    cache = MemoryCache()
    assert cache.get('key') is None
    cache.put('key', {'kphio': 0.05})
    assert 'key' in cache
    assert cache.get('key') == {'kphio': 0.05}


def test_pickle_cache_last_write_wins(tmp_path):
    cache = PickleCache(tmp_path, namespace='targets')
    cache.put('key', pd.DataFrame({'a': [1]}))
    cache.put('key', pd.DataFrame({'a': [2]}))
    assert 'key' in cache
    assert cache.get('key')['a'].iloc[0] == 2
    assert (tmp_path / 'targets' / 'key.pkl').exists()
    assert not list((tmp_path / 'targets').glob('*.tmp'))


def test_write_metadata(tmp_path):
    settings = {'MODEL_VERSION': 'v4.2', 'SITES': ('AA-Aaa',),
                'SEED': np.int64(3), 'OVERWRITE': False}
    path = write_metadata(tmp_path, settings, 'V1')
    assert path.name == 'metadata_V1.json'
    with open(path) as f:
        meta = json.load(f)
    assert meta == {'MODEL_VERSION': 'v4.2', 'SITES': ['AA-Aaa'],
                    'SEED': 3, 'OVERWRITE': False}
    # existing metadata is only replaced when asked for
    write_metadata(tmp_path, {'MODEL_VERSION': 'v3.0'}, 'V1')
    with open(path) as f:
        assert json.load(f)['MODEL_VERSION'] == 'v4.2'


def test_make_serial_nan():
    assert _make_serial({'a': float('nan')}) == {'a': 'NaN'}
