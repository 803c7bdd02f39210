"""Immutable, index-addressed fingerprint store."""
from dataclasses import dataclass
from typing import Iterable, Sequence

import structlog
from joblib import Parallel, delayed

from .data import Compound
from .exceptions import BuildError
from .search import BulkSimilarity, get_similarity

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Entry:
    identity: str
    descriptor: object
    label: int | None
    position: int


@dataclass(frozen=True)
class BuildFailure:
    identity: str
    position: int
    reason: str
    label: int | None = None


def _describe(provider, structure):
    try:
        return provider(structure), None
    except BuildError as exc:
        return None, exc.reason


class FingerprintStore:
    """Descriptors for an ordered compound collection, addressed 0..n-1.

    Built once; indices stay stable for the store's lifetime. Compounds whose
    descriptor could not be computed are listed in `failures`.
    """

    def __init__(self, entries: Sequence[Entry], similarity="tanimoto", failures: Sequence[BuildFailure] = ()):
        self._entries = tuple(entries)
        self._descriptors = tuple(e.descriptor for e in self._entries)
        self.similarity: BulkSimilarity = get_similarity(similarity)
        self.failures = tuple(failures)

    @classmethod
    def build(cls, compounds: Iterable[Compound], provider, similarity="tanimoto", n_jobs: int = 1) -> "FingerprintStore":
        compounds = list(compounds)
        results = Parallel(n_jobs=n_jobs)(delayed(_describe)(provider, c.smiles) for c in compounds)
        entries, failures = [], []
        for pos, (c, (desc, reason)) in enumerate(zip(compounds, results)):
            if desc is None:
                failures.append(BuildFailure(c.name, pos, reason, c.label))
                logger.warning("descriptor_build_failed", identity=c.name, position=pos, reason=reason)
                continue
            entries.append(Entry(c.name, desc, c.label, pos))
        logger.info("store_built", stored=len(entries), failed=len(failures))
        return cls(entries, similarity, failures)

    @classmethod
    def from_descriptors(cls, items: Iterable[tuple], similarity="tanimoto") -> "FingerprintStore":
        """Store from precomputed (identity, descriptor[, label]) tuples."""
        entries = []
        for pos, item in enumerate(items):
            identity, descriptor, *rest = item
            entries.append(Entry(identity, descriptor, rest[0] if rest else None, pos))
        return cls(entries, similarity)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __getitem__(self, i: int) -> Entry:
        return self._entries[i]

    def get(self, i: int):
        return self._entries[i].descriptor

    @property
    def descriptors(self) -> tuple:
        return self._descriptors

    @property
    def n_inputs(self) -> int:
        return len(self._entries) + len(self.failures)

    def labels(self) -> list[int | None]:
        return [e.label for e in self._entries]
