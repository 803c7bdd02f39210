"""Tests for the evaluator."""
import json
import math

import numpy as np
import pytest

from nfix_ml.analysis.eval import _ef_at_frac, evaluate, gains_table
from nfix_ml.models.knn import NO_NEIGHBOR, NeighborClassifier, Prediction


def _pred(i, actual, neighbor_label, score):
    p = 0.5 + 0.5 * score if neighbor_label == 1 else 0.5 - 0.5 * score
    return Prediction(f"c{i}", i, actual, neighbor=f"n{i}", neighbor_label=neighbor_label,
                      similarity=score, probability=p, predicted_class=neighbor_label)


def _missing(i, actual):
    return Prediction(f"m{i}", i, actual, status=NO_NEIGHBOR)


class TestConfusion:
    """Confusion matrix and rate metrics."""

    def test_worked_example(self, abc_store) -> None:
        report = evaluate(NeighborClassifier(cutoff=0.01).loocv(abc_store))
        assert (report.tp, report.fp, report.tn, report.fn) == (2, 1, 0, 0)
        assert report.accuracy == pytest.approx(2 / 3)
        assert report.sensitivity == 1.0
        assert report.specificity == 0.0
        assert report.precision == pytest.approx(2 / 3)
        assert report.auc == 1.0

    def test_counts_sum_to_non_missing(self) -> None:
        preds = [_pred(0, 1, 1, 0.8), _pred(1, 1, 0, 0.3), _pred(2, 0, 0, 0.7),
                 _pred(3, 0, 1, 0.1), _pred(4, 0, 0, 0.4), _missing(5, 1), _missing(6, 0)]
        r = evaluate(preds)
        assert r.tp + r.fp + r.tn + r.fn == r.n_predictions == 5
        assert r.n_missing == 2
        assert r.tp + r.fn == 2
        assert r.tn + r.fp == 3
        assert r.confusion.tolist() == [[r.tn, r.fp], [r.fn, r.tp]]
        assert r.per_class[1]["sensitivity"] == pytest.approx(r.sensitivity)
        assert r.per_class[0]["sensitivity"] == pytest.approx(r.specificity)
        assert r.per_class[1]["support"] == 2 and r.per_class[0]["support"] == 3

    def test_missing_not_counted_as_class(self) -> None:
        """An absent prediction leaves accuracy untouched."""
        preds = [_pred(0, 1, 1, 0.8), _pred(1, 0, 0, 0.8)]
        assert evaluate(preds).accuracy == evaluate(preds + [_missing(2, 1)]).accuracy == 1.0

    def test_undefined_rates_are_nan(self) -> None:
        r = evaluate([_pred(0, 1, 1, 0.8), _pred(1, 1, 1, 0.4)])
        assert math.isnan(r.specificity)
        assert math.isnan(r.per_class[0]["precision"])

    def test_no_predictions(self) -> None:
        r = evaluate([_missing(0, 1)])
        assert r.n_predictions == 0 and r.n_missing == 1
        assert math.isnan(r.accuracy) and math.isnan(r.auc)
        assert r.gains.empty


class TestRanking:
    """ROC AUC, PR AUC, enrichment."""

    def test_auc_half_without_signal(self) -> None:
        """Zero similarity everywhere means every probability is 0.5."""
        preds = [_pred(i, i % 2, (i + 1) % 2, 0.0) for i in range(6)]
        assert all(p.probability == 0.5 for p in preds)
        assert evaluate(preds).auc == pytest.approx(0.5)

    def test_auc_one_with_perfect_separation(self) -> None:
        preds = [_pred(0, 1, 1, 0.9), _pred(1, 1, 1, 0.2), _pred(2, 0, 0, 0.1), _pred(3, 0, 0, 0.8)]
        r = evaluate(preds)
        assert r.auc == 1.0
        assert r.pr_auc == 1.0
        assert r.roc["fpr"][0] == 0.0 and r.roc["tpr"][-1] == 1.0

    def test_auc_nan_with_one_class(self) -> None:
        r = evaluate([_pred(0, 1, 1, 0.9), _pred(1, 1, 0, 0.9)])
        assert math.isnan(r.auc) and math.isnan(r.pr_auc) and math.isnan(r.mcc)

    def test_enrichment(self) -> None:
        y = np.array([1, 0, 0, 0, 1, 0, 0, 0, 0, 0])
        s = np.array([0.9, 0.1, 0.2, 0.3, 0.8, 0.4, 0.1, 0.2, 0.3, 0.1])
        # top 10% (1 compound) is active; prevalence 0.2
        assert _ef_at_frac(y, s, 0.10) == pytest.approx(5.0)
        assert math.isnan(_ef_at_frac(np.zeros(4, dtype=int), np.ones(4), 0.5))

    def test_report_is_repeatable(self, abc_store) -> None:
        clf = NeighborClassifier(cutoff=0.01)
        assert evaluate(clf.loocv(abc_store)).to_dict() == evaluate(clf.loocv(abc_store)).to_dict()

    def test_to_dict_is_strict_json(self) -> None:
        r = evaluate([_pred(0, 1, 1, 0.9), _pred(1, 1, 1, 0.4)])
        out = json.loads(json.dumps(r.to_dict(), allow_nan=False))
        assert out["auc"] is None
        assert out["per_class"]["1"]["support"] == 2
        assert set(out["enrichment"]) == {"EF1%", "EF5%", "EF10%"}


class TestGains:
    """Gains/lift table."""

    def test_worked_example(self, abc_store) -> None:
        gains = evaluate(NeighborClassifier(cutoff=0.01).loocv(abc_store), n_groups=3).gains
        assert list(gains["group"]) == [1, 2, 3]
        assert list(gains["cum_responses"]) == [1, 2, 2]
        assert list(gains["cum_response_rate"]) == pytest.approx([0.5, 1.0, 1.0])
        assert list(gains["lift"]) == pytest.approx([1.5, 1.5, 1.0])

    def test_groups_cover_all_predictions(self) -> None:
        y = np.array([1, 0, 1, 0, 0, 1, 0, 0, 0, 1, 0])
        s = np.linspace(1.0, 0.0, len(y))
        gains = gains_table(y, s, n_groups=4)
        assert list(gains["n"]) == [3, 3, 3, 2]
        assert gains["cum_n"].iloc[-1] == len(y)
        assert gains["cum_response_rate"].iloc[-1] == 1.0
        assert gains["baseline"].iloc[-1] == 1.0
        assert gains["lift"].iloc[-1] == pytest.approx(1.0)

    def test_ties_keep_input_order(self) -> None:
        gains = gains_table(np.array([0, 1, 1, 0]), np.full(4, 0.5), n_groups=4)
        assert list(gains["responses"]) == [0, 1, 1, 0]

    def test_fewer_predictions_than_groups(self) -> None:
        gains = gains_table(np.array([1, 0]), np.array([0.9, 0.1]), n_groups=10)
        assert len(gains) == 2

    def test_invalid_group_count(self) -> None:
        with pytest.raises(ValueError):
            gains_table(np.array([1]), np.array([0.9]), n_groups=0)
