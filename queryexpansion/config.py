from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from queryexpansion.errors import InvalidConfiguration

DOC_WEIGHTINGS = ("uniform", "score")


@dataclass(frozen=True)
class ExpansionConfig:
    """RM3 parameters shared by every query of a batch."""

    fb_docs: int = 10
    fb_terms: int = 10
    original_query_weight: float = 0.5
    mu: float = 1000.0
    precision: int = 4
    doc_weighting: str = "uniform"  # "uniform" | "score"
    filter_terms: bool = False
    threads: Optional[int] = None  # None -> os.cpu_count()
    doc_timeout: Optional[float] = None  # seconds per feedback document
    topic_field: str = "title"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> "ExpansionConfig":
        if not _is_int(self.fb_docs) or self.fb_docs <= 0:
            raise InvalidConfiguration(f"fb_docs must be a positive integer, got {self.fb_docs!r}")
        if not _is_int(self.fb_terms) or self.fb_terms <= 0:
            raise InvalidConfiguration(f"fb_terms must be a positive integer, got {self.fb_terms!r}")
        if not 0.0 <= self.original_query_weight <= 1.0:
            raise InvalidConfiguration(
                f"original_query_weight must be in [0, 1], got {self.original_query_weight!r}"
            )
        if not self.mu > 0:
            raise InvalidConfiguration(f"mu must be positive, got {self.mu!r}")
        if not _is_int(self.precision) or self.precision < 0:
            raise InvalidConfiguration(f"precision must be a non-negative integer, got {self.precision!r}")
        if not isinstance(self.filter_terms, bool):
            raise InvalidConfiguration(f"filter_terms must be a boolean, got {self.filter_terms!r}")
        if self.doc_weighting not in DOC_WEIGHTINGS:
            raise InvalidConfiguration(
                f"doc_weighting must be one of {DOC_WEIGHTINGS}, got {self.doc_weighting!r}"
            )
        if self.threads is not None and (not _is_int(self.threads) or self.threads <= 0):
            raise InvalidConfiguration(f"threads must be a positive integer, got {self.threads!r}")
        if self.doc_timeout is not None and not self.doc_timeout > 0:
            raise InvalidConfiguration(f"doc_timeout must be positive, got {self.doc_timeout!r}")
        return self

    def with_overrides(self, **overrides: Any) -> "ExpansionConfig":
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, cfg: Optional[Mapping[str, Any]]) -> "ExpansionConfig":
        """Build a validated config from an ``rm3:`` YAML section.

        Keys are matched case-insensitively and the Anserini-style spellings
        (``fbDocs``, ``fbTerms``, ``originalQueryWeight``) are accepted.
        """
        cfg = dict(cfg or {})
        defaults = cls()
        try:
            config = cls(
                fb_docs=int(cfg_get(cfg, "fb_docs", "fbDocs", default=defaults.fb_docs)),
                fb_terms=int(cfg_get(cfg, "fb_terms", "fbTerms", default=defaults.fb_terms)),
                original_query_weight=float(
                    cfg_get(
                        cfg,
                        "original_query_weight",
                        "originalQueryWeight",
                        default=defaults.original_query_weight,
                    )
                ),
                mu=float(cfg_get(cfg, "mu", default=defaults.mu)),
                precision=int(cfg_get(cfg, "precision", default=defaults.precision)),
                doc_weighting=str(cfg_get(cfg, "doc_weighting", default=defaults.doc_weighting)).lower(),
                filter_terms=_as_bool(cfg_get(cfg, "filter_terms", default=defaults.filter_terms)),
                threads=_optional(cfg_get(cfg, "threads", default=None), int),
                doc_timeout=_optional(cfg_get(cfg, "doc_timeout", default=None), float),
                topic_field=str(cfg_get(cfg, "topic_field", "topicfield", default=defaults.topic_field)),
            )
        except InvalidConfiguration:
            raise
        except (TypeError, ValueError) as exc:
            raise InvalidConfiguration(f"invalid rm3 configuration: {exc}") from exc
        return config


def load_yaml_config(path: str | Path) -> Dict[str, Any]:
    cfg_path = Path(path)
    with open(cfg_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)
    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        raise InvalidConfiguration(f"{cfg_path}: top level of the config must be a mapping")
    return cfg


def cfg_get(cfg: Mapping[str, Any], *keys, default=None):
    for k in keys:
        if k in cfg:
            return cfg[k]
    for k in keys:
        lk, uk = k.lower(), k.upper()
        if lk in cfg:
            return cfg[lk]
        if uk in cfg:
            return cfg[uk]
    return default


def _optional(value: Any, cast):
    if value in (None, "NONE", "None", "Null", "null"):
        return None
    return cast(value)


_TRUE = ("true", "yes", "on", "1")
_FALSE = ("false", "no", "off", "0")


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in _TRUE + _FALSE:
        return value.strip().lower() in _TRUE
    raise ValueError(f"expected a boolean, got {value!r}")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
