"""Per-group summaries of compound predictions (e.g. per producing strain)."""
from typing import Mapping

import pandas as pd

from ..data import membership_pairs

SUMMARY_COLUMNS = ["key", "count", "min_prob", "max_prob", "mean_prob", "median_prob"]


def group_members(predictions, group_membership: Mapping[str, list[str]]) -> pd.DataFrame:
    """(key, identity, probability) rows, one per compound and group it belongs to.

    Compounds without a prediction or without any group are left out. A
    repeated identity keeps its first prediction only.
    """
    scored = pd.DataFrame(
        [(p.identity, p.probability) for p in predictions if p.probability is not None],
        columns=["identity", "probability"]).drop_duplicates("identity", keep="first")
    pairs = membership_pairs(group_membership)
    members = pairs.merge(scored, on="identity", how="inner")
    return members[["key", "identity", "probability"]]


def aggregate(predictions, group_membership: Mapping[str, list[str]],
              sort_by: str = "max_prob", ascending: bool = False) -> pd.DataFrame:
    """count/min/max/mean/median probability per group key, ordered by `sort_by`."""
    if sort_by not in SUMMARY_COLUMNS:
        raise ValueError(f"sort_by must be one of {SUMMARY_COLUMNS}, got '{sort_by}'")
    members = group_members(predictions, group_membership)
    if members.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    summary = (members
        .groupby("key", sort=True)
        .agg(count=("identity", "nunique"),
             min_prob=("probability", "min"),
             max_prob=("probability", "max"),
             mean_prob=("probability", "mean"),
             median_prob=("probability", "median"))
        .reset_index())
    order = [sort_by] if sort_by == "key" else [sort_by, "key"]
    asc = [ascending] if sort_by == "key" else [ascending, True]
    return summary.sort_values(order, ascending=asc, kind="stable").reset_index(drop=True)[SUMMARY_COLUMNS]
