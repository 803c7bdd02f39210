"""Tests for fingerprint providers and the store build."""
import pytest
from rdkit import DataStructs

from nfix_ml.data import Compound
from nfix_ml.exceptions import BuildError
from nfix_ml.features import FingerprintProvider, fingerprint_provider
from nfix_ml.store import FingerprintStore


class TestProvider:
    """Structure -> descriptor."""

    @pytest.mark.parametrize("kind", ["ecfp4", "morgan", "fcfp4", "maccs", "rdkit"])
    def test_kinds(self, kind) -> None:
        fp = fingerprint_provider(kind, n_bits=1024)("c1ccccc1O")
        assert fp.GetNumOnBits() > 0

    def test_size(self) -> None:
        assert fingerprint_provider("ecfp4", n_bits=512)("CCO").GetNumBits() == 512
        assert fingerprint_provider("maccs")("CCO").GetNumBits() == 167

    @pytest.mark.parametrize("smiles", ["C1CC", "not a smiles", "", None])
    def test_bad_structure(self, smiles) -> None:
        with pytest.raises(BuildError):
            fingerprint_provider()(smiles)

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValueError):
            FingerprintProvider("atompair")

    def test_identical_structures(self, ecfp4) -> None:
        assert DataStructs.TanimotoSimilarity(ecfp4("OCC"), ecfp4("CCO")) == 1.0


class TestStore:
    """Index-addressed store with a build report."""

    def test_build_keeps_order(self, labeled_compounds, labeled_store) -> None:
        assert len(labeled_store) == len(labeled_compounds)
        assert [e.identity for e in labeled_store] == [c.name for c in labeled_compounds]
        assert [e.position for e in labeled_store] == list(range(len(labeled_compounds)))
        assert labeled_store.labels() == [c.label for c in labeled_compounds]
        assert labeled_store.get(0) is labeled_store.descriptors[0]
        assert labeled_store.failures == ()

    def test_failures_reported_and_dropped(self, ecfp4) -> None:
        compounds = [Compound("ok1", "CCO", 0), Compound("broken", "C1CC", 1), Compound("ok2", "CCN", 1)]
        store = FingerprintStore.build(compounds, ecfp4)
        assert [e.identity for e in store] == ["ok1", "ok2"]
        assert [e.position for e in store] == [0, 2]
        (failure,) = store.failures
        assert (failure.identity, failure.position) == ("broken", 1)
        assert failure.label == 1
        assert failure.reason
        assert store.n_inputs == 3

    def test_parallel_build(self, labeled_compounds, ecfp4, labeled_store) -> None:
        store = FingerprintStore.build(labeled_compounds, ecfp4, n_jobs=2)
        assert [e.identity for e in store] == [e.identity for e in labeled_store]
        assert all(a == b for a, b in zip(store.descriptors, labeled_store.descriptors))

    def test_from_descriptors(self, abc_store) -> None:
        assert len(abc_store) == 3
        assert abc_store[1].label == 0
        assert abc_store.get(2) == "C"

    def test_other_errors_propagate(self) -> None:
        def broken(smiles):
            raise RuntimeError("provider crashed")
        with pytest.raises(RuntimeError):
            FingerprintStore.build([Compound("a", "CCO")], broken)
