"""Similarity functions and ranked neighbour search over a FingerprintStore."""
import math
from typing import Callable, Sequence

import structlog
from rdkit import DataStructs

logger = structlog.get_logger(__name__)

BulkSimilarity = Callable[[object, Sequence[object]], Sequence[float]]


def tanimoto(query, descriptors) -> list[float]:
    return list(DataStructs.BulkTanimotoSimilarity(query, list(descriptors)))


def dice(query, descriptors) -> list[float]:
    return list(DataStructs.BulkDiceSimilarity(query, list(descriptors)))


SIMILARITIES: dict[str, BulkSimilarity] = {"tanimoto": tanimoto, "dice": dice}


def get_similarity(name_or_fn) -> BulkSimilarity:
    if callable(name_or_fn):
        return name_or_fn
    try:
        return SIMILARITIES[name_or_fn]
    except KeyError:
        raise ValueError(f"Unknown similarity '{name_or_fn}'. Choose from {sorted(SIMILARITIES)}") from None


def search(store, query, cutoff: float = 0.0, exclude_index: int | None = None) -> list[tuple[int, float]]:
    """Rank store entries by descending similarity to `query`.

    `exclude_index` is removed from the candidate pool before ranking. Scores
    below `cutoff` and undefined (NaN) scores are discarded. Ties keep
    ascending index order.
    """
    if len(store) == 0:
        return []
    scores = store.similarity(query, store.descriptors)
    if len(scores) != len(store):
        raise ValueError(f"Similarity returned {len(scores)} scores for {len(store)} descriptors")
    hits, undefined = [], 0
    for i, s in enumerate(scores):
        if i == exclude_index:
            continue
        s = float(s)
        if math.isnan(s):
            undefined += 1
            continue
        if s >= cutoff:
            hits.append((i, s))
    if undefined:
        logger.warning("undefined_similarity", count=undefined)
    # sorted() is stable, so equal scores stay in index order
    return sorted(hits, key=lambda h: -h[1])


def nearest(store, query, cutoff: float = 0.0, exclude_index: int | None = None) -> tuple[int, float] | None:
    hits = search(store, query, cutoff, exclude_index)
    return hits[0] if hits else None
