"""Nearest-neighbour classifier: LOOCV on a labeled store, extension to unlabeled compounds."""
import math
from dataclasses import dataclass, asdict

import numpy as np
import pandas as pd
import structlog
from joblib import Parallel, delayed, effective_n_jobs

from ..exceptions import InsufficientDataError, NoNeighborFound
from ..search import nearest

logger = structlog.get_logger(__name__)

OK, NO_NEIGHBOR, BUILD_FAILED = "ok", "no_neighbor", "build_failed"


@dataclass(frozen=True)
class Prediction:
    identity: str
    position: int
    actual_label: int | None = None
    neighbor: str | None = None
    neighbor_label: int | None = None
    similarity: float | None = None
    probability: float | None = None
    predicted_class: int | None = None
    status: str = OK

    @property
    def missing(self) -> bool:
        return self.probability is None


def neighbor_probability(neighbor_label: int, score: float) -> float:
    """0.5 moved towards the neighbour's class in proportion to similarity."""
    if neighbor_label not in (0, 1):
        raise ValueError(f"neighbor_label must be 0 or 1, got {neighbor_label!r}")
    if math.isnan(score) or not 0.0 <= score <= 1.0:
        raise ValueError(f"similarity must lie in [0, 1], got {score!r}")
    return 0.5 + 0.5 * score if neighbor_label == 1 else 0.5 - 0.5 * score


def _chunks(n: int, n_jobs: int) -> list[range]:
    k = max(1, min(n, effective_n_jobs(n_jobs)))
    return [range(int(c[0]), int(c[-1]) + 1) for c in np.array_split(np.arange(n), k) if len(c)]


class NeighborClassifier:
    """Predicts the class of the single most similar labeled compound.

    No parameters are learned; `cutoff` is the minimum similarity a
    neighbour must reach. Queries are independent, so they are spread over
    `n_jobs` joblib workers in contiguous chunks and reassembled in order.
    """

    def __init__(self, cutoff: float = 0.01, n_jobs: int = 1):
        if not 0.0 <= cutoff <= 1.0:
            raise ValueError(f"cutoff must lie in [0, 1], got {cutoff}")
        self.cutoff = cutoff
        self.n_jobs = n_jobs

    def classify(self, reference, query, identity=None, exclude_index=None) -> tuple[int, float, float]:
        """(neighbour index, similarity, probability); NoNeighborFound below the cutoff."""
        hit = nearest(reference, query, self.cutoff, exclude_index)
        if hit is None:
            raise NoNeighborFound(identity, self.cutoff)
        idx, score = hit
        return idx, score, neighbor_probability(reference[idx].label, score)

    def _predict_one(self, reference, entry, exclude_index=None) -> Prediction:
        try:
            idx, score, p = self.classify(reference, entry.descriptor, entry.identity, exclude_index)
        except NoNeighborFound:
            return Prediction(entry.identity, entry.position, entry.label, status=NO_NEIGHBOR)
        nb = reference[idx]
        return Prediction(entry.identity, entry.position, entry.label,
                          neighbor=nb.identity, neighbor_label=nb.label, similarity=score,
                          probability=p, predicted_class=nb.label)

    def _loocv_chunk(self, store, rows):
        return [self._predict_one(store, store[i], exclude_index=i) for i in rows]

    def _extend_chunk(self, reference, queries, rows):
        return [self._predict_one(reference, queries[i]) for i in rows]

    def loocv(self, store) -> list[Prediction]:
        """Predict every labeled compound from all the others."""
        if len(store) < 2:
            raise InsufficientDataError(f"LOOCV needs at least 2 labeled compounds, store holds {len(store)}")
        unlabeled = [e.identity for e in store if e.label not in (0, 1)]
        if unlabeled:
            raise InsufficientDataError(f"LOOCV store holds compounds without a binary label: {unlabeled[:5]}")
        parts = Parallel(n_jobs=self.n_jobs)(
            delayed(self._loocv_chunk)(store, rows) for rows in _chunks(len(store), self.n_jobs))
        return self._finish([p for part in parts for p in part], store, "loocv")

    def predict(self, reference, queries) -> list[Prediction]:
        """Predict compounds of `queries` from their nearest neighbour in `reference`."""
        if len(reference) == 0:
            raise InsufficientDataError("Reference store is empty")
        parts = Parallel(n_jobs=self.n_jobs)(
            delayed(self._extend_chunk)(reference, queries, rows) for rows in _chunks(len(queries), self.n_jobs))
        return self._finish([p for part in parts for p in part], queries, "extension")

    def _finish(self, preds, store, mode):
        failed = [Prediction(f.identity, f.position, f.label, status=BUILD_FAILED) for f in store.failures]
        preds = sorted(preds + failed, key=lambda p: p.position)
        n_missing = sum(p.status == NO_NEIGHBOR for p in preds)
        if n_missing:
            logger.warning("no_neighbor_found", mode=mode, count=n_missing, cutoff=self.cutoff)
        logger.info("predictions_done", mode=mode, n=len(preds), missing=sum(p.missing for p in preds))
        return preds


def predictions_to_frame(predictions) -> pd.DataFrame:
    """One row per input compound; absent values stay NA."""
    cols = list(Prediction.__dataclass_fields__)
    df = pd.DataFrame([asdict(p) for p in predictions], columns=cols)
    for c in ("actual_label", "neighbor_label", "predicted_class"):
        df[c] = df[c].astype("Int64")
    for c in ("similarity", "probability"):
        df[c] = df[c].astype(float)
    return df
