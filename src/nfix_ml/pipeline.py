"""End-to-end run: LOOCV on labeled compounds, extension to unlabeled ones, per-group summary."""
import argparse
import json
import os
import sys

import pandas as pd
import structlog

from . import data as D
from .analysis.aggregate import aggregate, group_members
from .analysis.eval import evaluate
from .config import RunConfig, read_cfg
from .exceptions import NfixError
from .features import fingerprint_provider
from .log import setup_logging
from .models.knn import NeighborClassifier, predictions_to_frame
from .store import FingerprintStore

logger = structlog.get_logger(__name__)


def build_store(compounds, cfg: RunConfig) -> FingerprintStore:
    provider = fingerprint_provider(cfg.fingerprint, n_bits=cfg.n_bits, radius=cfg.radius)
    return FingerprintStore.build(compounds, provider, similarity=cfg.similarity, n_jobs=cfg.n_jobs)


def _failures_frame(store):
    return pd.DataFrame([vars(f) for f in store.failures], columns=["identity", "position", "reason", "label"])


def run(cfg: RunConfig, labeled_csv: str, out_dir: str,
        unlabeled_csv: str | None = None, membership_csv: str | None = None) -> dict:
    """Run the classifier and write its tables to `out_dir`; returns a summary dict."""
    os.makedirs(out_dir, exist_ok=True)
    clf = NeighborClassifier(cutoff=cfg.cutoff, n_jobs=cfg.n_jobs)

    # 1) LOOCV on the labeled set
    cols = (cfg.name_col, cfg.smiles_col, cfg.label_col)
    labeled = D.labeled_set(D.read_table(labeled_csv, keep=cols), *cols)
    labeled_store = build_store(labeled, cfg)
    loocv = clf.loocv(labeled_store)
    report = evaluate(loocv, n_groups=cfg.n_gain_groups)

    predictions_to_frame(loocv).to_csv(os.path.join(out_dir, "loocv_predictions.csv"), index=False, encoding="utf-8")
    report.gains.to_csv(os.path.join(out_dir, "gains.csv"), index=False, encoding="utf-8")
    with open(os.path.join(out_dir, "evaluation.json"), "w", encoding="utf-8") as f:
        json.dump({"config": cfg.to_dict(), "report": report.to_dict()}, f, indent=2)
    failures = [_failures_frame(labeled_store).assign(set="labeled")]

    summary = {
        "n_labeled": len(labeled), "n_labeled_stored": len(labeled_store),
        "n_loocv_missing": report.n_missing, "accuracy": report.accuracy, "auc": report.auc,
    }

    # 2) Extension to unlabeled compounds against the labeled store only
    if unlabeled_csv:
        cols = (cfg.name_col, cfg.smiles_col)
        queries = D.unlabeled_set(D.read_table(unlabeled_csv, keep=cols), *cols)
        query_store = build_store(queries, cfg)
        preds = clf.predict(labeled_store, query_store)
        predictions_to_frame(preds).to_csv(os.path.join(out_dir, "predictions.csv"), index=False, encoding="utf-8")
        failures.append(_failures_frame(query_store).assign(set="unlabeled"))
        summary.update({"n_unlabeled": len(queries), "n_predicted": sum(not p.missing for p in preds)})

        # 3) Per-group summary
        if membership_csv:
            membership = D.membership_from_frame(
                D.read_table(membership_csv, keep=(cfg.name_col, cfg.group_col)),
                cfg.name_col, cfg.group_col, cfg.group_sep)
            groups = aggregate(preds, membership, sort_by=cfg.sort_by)
            groups.to_csv(os.path.join(out_dir, "group_summary.csv"), index=False, encoding="utf-8")
            group_members(preds, membership).to_csv(
                os.path.join(out_dir, "group_members.csv"), index=False, encoding="utf-8")
            summary["n_groups"] = int(len(groups))
    elif membership_csv:
        logger.warning("membership_ignored", reason="no unlabeled compounds to aggregate")

    pd.concat(failures, ignore_index=True).to_csv(
        os.path.join(out_dir, "build_failures.csv"), index=False, encoding="utf-8")
    summary["output_dir"] = os.path.abspath(out_dir)
    return summary


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Nearest-neighbour classification of nitrogen-fixation metabolites.")
    ap.add_argument("--labeled", required=True, help="CSV with name, smiles, label (0/1)")
    ap.add_argument("--unlabeled", help="CSV with name, smiles to predict")
    ap.add_argument("--membership", help="CSV joining compound name to group key(s), e.g. strain")
    ap.add_argument("--outdir", default="reports")
    ap.add_argument("--config", help="JSON config file")
    ap.add_argument("--cutoff", type=float)
    ap.add_argument("--fingerprint")
    ap.add_argument("--similarity")
    ap.add_argument("--n-gain-groups", type=int)
    ap.add_argument("--n-jobs", type=int)
    ap.add_argument("--sort-by")
    ap.add_argument("--log-level", default="INFO", type=str.upper,
                    choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    args = ap.parse_args(argv)

    setup_logging(args.log_level)
    try:
        cfg = read_cfg(args.config).updated(
            cutoff=args.cutoff, fingerprint=args.fingerprint, similarity=args.similarity,
            n_gain_groups=args.n_gain_groups, n_jobs=args.n_jobs, sort_by=args.sort_by)
        summary = run(cfg, args.labeled, args.outdir, args.unlabeled, args.membership)
    except NfixError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    print(json.dumps(summary, indent=2))
    return 0
