"""Compound records, column aliasing, labeled/unlabeled sets, group membership."""
from dataclasses import dataclass
from typing import Mapping

import pandas as pd
import structlog

from .exceptions import DataError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Compound:
    name: str
    smiles: str
    label: int | None = None


def alias_columns(df: pd.DataFrame, keep=()) -> pd.DataFrame:
    """Normalise headers; columns named in `keep` are never renamed."""
    df = df.copy()
    df.columns = [str(c).replace("\ufeff", "").strip() for c in df.columns]
    rename = {}
    for c in df.columns:
        if c in keep: continue
        lc = c.lower()
        if lc in {"smiles", "canonical_smiles", "can_smiles"} and "smiles" not in df.columns: rename[c] = "smiles"
        if lc in {"y", "label", "activity", "active", "nfix"} and "label" not in df.columns: rename[c] = "label"
        if lc in {"name", "compound", "compound_name", "metabolite", "id"} and "name" not in df.columns: rename[c] = "name"
    # first spelling wins when several aliases are present
    seen, chosen = {k for k in keep if k in df.columns}, {}
    for c, target in rename.items():
        if target not in seen:
            chosen[c] = target; seen.add(target)
    return df.rename(columns=chosen)


def read_table(path: str, keep=()) -> pd.DataFrame:
    return alias_columns(pd.read_csv(path, encoding="utf-8-sig"), keep=keep)


def _require(df: pd.DataFrame, cols) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise DataError(missing, df.columns)


def _names(df: pd.DataFrame, name_col: str) -> list:
    """Name cells; a configured name column must exist, the default one may be absent."""
    if name_col in df.columns:
        return list(df[name_col])
    if name_col != "name":
        raise DataError([name_col], df.columns)
    return [None] * len(df)


def _identity(name, smiles: str) -> str:
    if name is None or pd.isna(name) or not str(name).strip():
        return smiles
    return str(name).strip()


def _binary(value) -> int | None:
    if pd.isna(value):
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    return int(v) if v in (0.0, 1.0) else None


def labeled_set(df: pd.DataFrame, name_col="name", smiles_col="smiles", label_col="label") -> list[Compound]:
    """Ordered labeled compounds, first occurrence kept for each (name, label) pair."""
    _require(df, [smiles_col, label_col])
    out, seen = [], set()
    dropped = duplicates = 0
    for name, row in zip(_names(df, name_col), df.to_dict("records")):
        smiles = row.get(smiles_col)
        label = _binary(row.get(label_col))
        if not isinstance(smiles, str) or label is None:
            dropped += 1
            continue
        name = _identity(name, smiles)
        if (name, label) in seen:
            duplicates += 1
            continue
        seen.add((name, label))
        out.append(Compound(name, smiles, label))
    if dropped:
        logger.warning("labeled_rows_dropped", count=dropped, reason="missing smiles or non-binary label")
    if duplicates:
        logger.info("labeled_duplicates_removed", count=duplicates)
    return out


def unlabeled_set(df: pd.DataFrame, name_col="name", smiles_col="smiles") -> list[Compound]:
    """Ordered unlabeled compounds, first occurrence kept for each name."""
    _require(df, [smiles_col])
    out, seen = [], set()
    duplicates = 0
    for name, smiles in zip(_names(df, name_col), df[smiles_col]):
        if not isinstance(smiles, str):
            logger.warning("unlabeled_row_dropped", name=name, reason="missing smiles")
            continue
        ident = _identity(name, smiles)
        if ident in seen:
            duplicates += 1
            continue
        seen.add(ident)
        out.append(Compound(ident, smiles))
    if duplicates:
        logger.info("unlabeled_duplicates_removed", count=duplicates)
    return out


def membership_from_frame(df: pd.DataFrame, identity_col="name", group_col="group", sep=";") -> dict[str, list[str]]:
    """Identity -> group keys from a flat join table.

    A compound may appear on several rows and a cell may list several keys
    joined by `sep`; all of them are kept, in first-seen order.
    """
    _require(df, [identity_col, group_col])
    membership: dict[str, list[str]] = {}
    for ident, cell in zip(df[identity_col], df[group_col]):
        if pd.isna(ident) or pd.isna(cell):
            continue
        keys = membership.setdefault(str(ident).strip(), [])
        for key in str(cell).split(sep) if sep else [str(cell)]:
            key = key.strip()
            if key and key not in keys:
                keys.append(key)
    return membership


def membership_pairs(membership: Mapping[str, list[str]]) -> pd.DataFrame:
    """Explode a membership mapping to unique (identity, key) rows."""
    rows = [(ident, key) for ident, keys in membership.items() for key in keys]
    return pd.DataFrame(rows, columns=["identity", "key"]).drop_duplicates(ignore_index=True)
