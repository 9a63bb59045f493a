"""
Data management submodule: storage engines and the file helpers behind them.
"""

from .engine import DataStore, MemoryStore, YAMLStore
from .io import atomic_write, load_yaml_file

__all__ = [
    'DataStore',
    'MemoryStore',
    'YAMLStore',
    'atomic_write',
    'load_yaml_file',
]
