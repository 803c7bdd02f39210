"""Shared fixtures: a lookup-table similarity and small RDKit-backed sets."""
import pytest
import structlog

from nfix_ml.data import Compound
from nfix_ml.features import fingerprint_provider
from nfix_ml.store import FingerprintStore

PAIR_SIMILARITY = {
    frozenset("AB"): 0.2,
    frozenset("AC"): 0.9,
    frozenset("BC"): 0.1,
}


def table_similarity(query, descriptors):
    """Descriptors are single letters; identical letters score 1.0."""
    return [1.0 if query == d else PAIR_SIMILARITY.get(frozenset((query, d)), 0.0) for d in descriptors]


@pytest.fixture(autouse=True, scope="session")
def _route_structlog_to_stdlib():
    """Keep log events off stdout so CLI output stays parseable."""
    structlog.configure(
        processors=[structlog.processors.KeyValueRenderer(key_order=["event"])],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def abc_store() -> FingerprintStore:
    """A:1, B:0, C:1 with sim(A,B)=0.2, sim(A,C)=0.9, sim(B,C)=0.1."""
    return FingerprintStore.from_descriptors(
        [("A", "A", 1), ("B", "B", 0), ("C", "C", 1)], similarity=table_similarity)


@pytest.fixture
def labeled_compounds() -> list[Compound]:
    return [
        Compound("ethanol", "CCO", 0),
        Compound("propanol", "CCCO", 0),
        Compound("butanol", "CCCCO", 0),
        Compound("benzene", "c1ccccc1", 1),
        Compound("toluene", "Cc1ccccc1", 1),
        Compound("ethylbenzene", "CCc1ccccc1", 1),
    ]


@pytest.fixture
def ecfp4():
    return fingerprint_provider("ecfp4", n_bits=2048)


@pytest.fixture
def labeled_store(labeled_compounds, ecfp4) -> FingerprintStore:
    return FingerprintStore.build(labeled_compounds, ecfp4)
