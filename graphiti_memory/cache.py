"""
LRU Cache implementation for Graphiti Memory
Copyright 2025 Jurden Bruce
"""

from collections import OrderedDict


class LRUCache(OrderedDict):
    """Directory fingerprint memo for NamespaceResolver.

    Keys are absolute directory paths. With ``maxsize=None`` nothing is ever
    evicted, so git runs at most once per directory; a numeric ``maxsize``
    drops the least recently used path once the bound is exceeded.
    """
    def __init__(self, maxsize=None):
        if maxsize is not None and maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.maxsize = maxsize
        super().__init__()

    def __setitem__(self, key, value):
        super().__setitem__(key, value)
        self.move_to_end(key)
        if self.maxsize is not None and len(self) > self.maxsize:
            self.popitem(last=False)

    def __getitem__(self, key):
        value = super().__getitem__(key)
        self.move_to_end(key)
        return value

    def get(self, key, default=None):
        if key in self:
            return self[key]
        return default
