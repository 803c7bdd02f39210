"""Run configuration: defaults, JSON loading, validation."""
import json
from dataclasses import dataclass, asdict, fields, replace

from .exceptions import ConfigError

FINGERPRINTS = ("ecfp4", "morgan", "fcfp4", "maccs", "rdkit")
SIMILARITIES = ("tanimoto", "dice")
SORT_KEYS = ("key", "count", "min_prob", "max_prob", "mean_prob", "median_prob")


@dataclass(frozen=True)
class RunConfig:
    fingerprint: str = "ecfp4"
    radius: int = 2
    n_bits: int = 2048
    similarity: str = "tanimoto"
    cutoff: float = 0.01
    n_gain_groups: int = 10
    n_jobs: int = 1
    sort_by: str = "max_prob"
    name_col: str = "name"
    smiles_col: str = "smiles"
    label_col: str = "label"
    group_col: str = "group"
    group_sep: str = ";"

    def validate(self) -> "RunConfig":
        if self.fingerprint not in FINGERPRINTS:
            raise ConfigError(f"fingerprint must be one of {FINGERPRINTS}, got '{self.fingerprint}'")
        if self.similarity not in SIMILARITIES:
            raise ConfigError(f"similarity must be one of {SIMILARITIES}, got '{self.similarity}'")
        if self.sort_by not in SORT_KEYS:
            raise ConfigError(f"sort_by must be one of {SORT_KEYS}, got '{self.sort_by}'")
        if not 0.0 <= float(self.cutoff) <= 1.0:
            raise ConfigError(f"cutoff must lie in [0, 1], got {self.cutoff}")
        if int(self.n_gain_groups) < 1:
            raise ConfigError(f"n_gain_groups must be >= 1, got {self.n_gain_groups}")
        if int(self.n_bits) < 1 or int(self.radius) < 0:
            raise ConfigError("n_bits must be >= 1 and radius >= 0")
        if int(self.n_jobs) == 0:
            raise ConfigError("n_jobs must be non-zero (use -1 for all cores)")
        return self

    def updated(self, **overrides) -> "RunConfig":
        """Copy with the non-None overrides applied (CLI flags over file values)."""
        given = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **given).validate()

    def to_dict(self) -> dict:
        return asdict(self)


def read_cfg(path: str | None) -> RunConfig:
    """Load a JSON config over the defaults; unknown keys are rejected."""
    if not path:
        return RunConfig().validate()
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            cfg = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read config '{path}': {exc}") from exc
    if not isinstance(cfg, dict):
        raise ConfigError(f"Config '{path}' must hold a JSON object")

    known = {f.name for f in fields(RunConfig)}
    unknown = sorted(set(cfg) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys {unknown}. Known keys: {sorted(known)}")
    try:
        return RunConfig(**cfg).validate()
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config '{path}': {exc}") from exc
