"""Evaluation of neighbour predictions: confusion matrix, rates, ROC/AUC, gains/lift, EF."""
import math
from dataclasses import dataclass, field, asdict

import numpy as np
import pandas as pd
import structlog
from sklearn.metrics import (
    auc, average_precision_score, confusion_matrix, matthews_corrcoef,
    precision_recall_fscore_support, roc_curve,
)

logger = structlog.get_logger(__name__)

GAINS_COLUMNS = ["group", "n", "cum_n", "responses", "cum_responses", "cum_response_rate", "baseline", "lift"]


def _ratio(num, den) -> float:
    return float(num / den) if den else math.nan


def _ef_at_frac(y_true: np.ndarray, scores: np.ndarray, frac=0.05) -> float:
    n = len(y_true)
    if n == 0:
        return math.nan
    k = max(1, int(round(frac * n)))
    idx = np.argsort(-scores, kind="stable")[:k]
    hitrate_at_k = y_true[idx].sum() / k
    base_rate = y_true.mean()
    return float(hitrate_at_k / base_rate) if base_rate > 0 else math.nan


def gains_table(y_true: np.ndarray, scores: np.ndarray, n_groups: int = 10) -> pd.DataFrame:
    """Cumulative captured positives per probability-ranked group vs. the random diagonal."""
    if n_groups < 1:
        raise ValueError(f"n_groups must be >= 1, got {n_groups}")
    n = len(y_true)
    if n == 0:
        return pd.DataFrame(columns=GAINS_COLUMNS)
    y_sorted = np.asarray(y_true)[np.argsort(-np.asarray(scores), kind="stable")]
    total_pos = int(y_sorted.sum())
    rows, cum_n, cum_resp = [], 0, 0
    for g, chunk in enumerate(np.array_split(y_sorted, min(n_groups, n)), start=1):
        cum_n += len(chunk)
        cum_resp += int(chunk.sum())
        captured = _ratio(cum_resp, total_pos)
        baseline = cum_n / n
        rows.append({"group": g, "n": len(chunk), "cum_n": cum_n, "responses": int(chunk.sum()),
                     "cum_responses": cum_resp, "cum_response_rate": captured,
                     "baseline": baseline, "lift": captured / baseline})
    return pd.DataFrame(rows, columns=GAINS_COLUMNS)


@dataclass(frozen=True)
class EvaluationReport:
    tp: int
    fp: int
    tn: int
    fn: int
    n_predictions: int
    n_missing: int
    prevalence: float
    accuracy: float
    balanced_accuracy: float
    sensitivity: float
    specificity: float
    precision: float
    npv: float
    f1: float
    mcc: float
    auc: float
    pr_auc: float
    per_class: dict = field(default_factory=dict)
    enrichment: dict = field(default_factory=dict)
    roc: dict = field(default_factory=dict)
    gains: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=GAINS_COLUMNS))

    @property
    def confusion(self) -> np.ndarray:
        """Rows: actual 0/1, columns: predicted 0/1."""
        return np.array([[self.tn, self.fp], [self.fn, self.tp]])

    def to_dict(self) -> dict:
        out = {k: v for k, v in asdict(self).items() if k != "gains"}
        out["gains"] = self.gains.to_dict(orient="records")
        return _jsonable(out)


def _jsonable(obj):
    """NaN/inf become None so the report stays strict JSON."""
    if isinstance(obj, dict):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, np.ndarray)):
        return [_jsonable(v) for v in obj]
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (float, np.floating)):
        return float(obj) if math.isfinite(obj) else None
    return obj


def evaluate(predictions, n_groups: int = 10, ef_fracs=(0.01, 0.05, 0.10)) -> EvaluationReport:
    """Score LOOCV predictions against their actual labels.

    Missing predictions are counted in `n_missing` and otherwise ignored.
    """
    scored = [p for p in predictions if p.probability is not None and p.actual_label in (0, 1)]
    n_missing = len(predictions) - len(scored)
    y = np.array([p.actual_label for p in scored], dtype=int)
    y_hat = np.array([p.predicted_class for p in scored], dtype=int)
    proba = np.array([p.probability for p in scored], dtype=float)
    n = len(scored)

    if n:
        tn, fp, fn, tp = (int(v) for v in confusion_matrix(y, y_hat, labels=[0, 1]).ravel())
        prec, rec, f1, support = precision_recall_fscore_support(
            y, y_hat, labels=[0, 1], zero_division=np.nan)
    else:
        tn = fp = fn = tp = 0
        prec = rec = f1 = np.full(2, np.nan)
        support = np.zeros(2, dtype=int)
    per_class = {
        c: {"precision": float(prec[c]), "sensitivity": float(rec[c]),
            "specificity": float(rec[1 - c]), "f1": float(f1[c]), "support": int(support[c])}
        for c in (0, 1)
    }

    sensitivity, specificity = _ratio(tp, tp + fn), _ratio(tn, tn + fp)
    both_classes = n and len(np.unique(y)) == 2
    if both_classes:
        fpr, tpr, thr = roc_curve(y, proba)
        roc_auc = float(auc(fpr, tpr))
        pr_auc = float(average_precision_score(y, proba))
        mcc = float(matthews_corrcoef(y, y_hat))
        roc = {"fpr": fpr.tolist(), "tpr": tpr.tolist(), "thresholds": thr.tolist()}
    else:
        logger.warning("ranking_metrics_undefined", n=n, reason="fewer than two actual classes")
        roc_auc = pr_auc = mcc = math.nan
        roc = {"fpr": [], "tpr": [], "thresholds": []}

    report = EvaluationReport(
        tp=tp, fp=fp, tn=tn, fn=fn,
        n_predictions=n, n_missing=n_missing,
        prevalence=float(y.mean()) if n else math.nan,
        accuracy=_ratio(tp + tn, n),
        balanced_accuracy=(sensitivity + specificity) / 2,
        sensitivity=sensitivity, specificity=specificity,
        precision=_ratio(tp, tp + fp), npv=_ratio(tn, tn + fn),
        f1=_ratio(2 * tp, 2 * tp + fp + fn), mcc=mcc,
        auc=roc_auc, pr_auc=pr_auc,
        per_class=per_class,
        enrichment={f"EF{round(f * 100)}%": _ef_at_frac(y, proba, f) for f in ef_fracs},
        roc=roc,
        gains=gains_table(y, proba, n_groups),
    )
    logger.info("evaluation_done", n=n, missing=n_missing, accuracy=report.accuracy, auc=report.auc)
    return report
