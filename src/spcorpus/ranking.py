# spcorpus/ranking.py
from __future__ import annotations
from typing import Iterable, List, Mapping, Optional, Tuple, TypeVar, Union

K = TypeVar("K")
V = TypeVar("V", int, float)


def _sort_key(item: Tuple[K, V]):
    # weight descending, key ascending on ties
    return (-item[1], item[0])


def rank(mapping: Union[Mapping[K, V], Iterable[Tuple[K, V]]]) -> List[Tuple[K, V]]:
    """
    Deterministic frequency ranking.

    Total order: value descending, then key ascending. The result depends only
    on the (key, value) content, never on the iteration order of `mapping`.

    >>> rank({"x": 5, "y": 5, "a": 5})
    [('a', 5), ('x', 5), ('y', 5)]
    """
    items = mapping.items() if isinstance(mapping, Mapping) else mapping
    return sorted(items, key=_sort_key)


def top_k(mapping: Union[Mapping[K, V], Iterable[Tuple[K, V]]], k: Optional[int]) -> List[Tuple[K, V]]:
    """First k entries of rank(mapping); k=None returns all of them."""
    ranked = rank(mapping)
    if k is None:
        return ranked
    return ranked[:max(0, int(k))]
