"""Weighted bag-of-terms query representation.

A :class:`QueryModel` is used both for the analyzed original query and for
the expanded query written to disk. Serialized lines look like::

    301<TAB>crime^0.3125 organized^0.2500 international^0.2500 drug^0.0625

Terms are ordered by descending weight and ties are broken by the term string,
so the same model always produces the same bytes.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_EVEN, Decimal, localcontext
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from queryexpansion.errors import SerializationError

# rescaling a model this close to 1 would only move the last bits
_NORMALIZED_TOLERANCE = 1e-12


class QueryModel:
    """Mapping from term to non-negative weight."""

    __slots__ = ("_weights",)

    def __init__(self, weights: Optional[Mapping[str, float]] = None) -> None:
        self._weights: Dict[str, float] = {}
        for term, weight in (weights or {}).items():
            weight = float(weight)
            if weight < 0:
                raise ValueError(f"negative weight {weight!r} for term '{term}'")
            self._weights[term] = weight

    @classmethod
    def from_terms(cls, terms: Iterable[str]) -> "QueryModel":
        """Uniform weight for every distinct term."""
        distinct = list(dict.fromkeys(t for t in terms if t))
        if not distinct:
            return cls()
        share = 1.0 / len(distinct)
        return cls({t: share for t in distinct})

    # ------------------------- mapping API -------------------------

    def __len__(self) -> int:
        return len(self._weights)

    def __iter__(self) -> Iterator[str]:
        return iter(self._weights)

    def __contains__(self, term: object) -> bool:
        return term in self._weights

    def __getitem__(self, term: str) -> float:
        return self._weights[term]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, QueryModel):
            return self._weights == other._weights
        return NotImplemented

    def __repr__(self) -> str:
        return f"QueryModel({self.ranked()!r})"

    def get(self, term: str, default: float = 0.0) -> float:
        return self._weights.get(term, default)

    def items(self):
        return self._weights.items()

    def terms(self) -> List[str]:
        return [t for t, _ in self.ranked()]

    def to_dict(self) -> Dict[str, float]:
        return dict(self._weights)

    @property
    def total(self) -> float:
        return math.fsum(self._weights.values())

    # ------------------------- transformations -------------------------

    def normalized(self) -> "QueryModel":
        """Scale weights so they sum to 1. Empty, all-zero and already normalized models are returned as is."""
        total = self.total
        if total <= 0 or abs(total - 1.0) <= _NORMALIZED_TOLERANCE:
            return QueryModel(self._weights)
        return QueryModel({t: w / total for t, w in self._weights.items()})

    def ranked(self) -> List[Tuple[str, float]]:
        """(term, weight) pairs by descending weight, ties broken lexicographically."""
        return sorted(self._weights.items(), key=lambda kv: (-kv[1], kv[0]))

    def truncated(self, size: int) -> "QueryModel":
        return QueryModel(dict(self.ranked()[: max(0, size)]))

    def interpolate(self, other: "QueryModel", weight: float) -> "QueryModel":
        """``weight * self + (1 - weight) * other`` over the union of terms.

        Both sides are expected to be normalized. Terms ending up with a zero
        weight are dropped, so ``weight == 1`` keeps exactly the terms of
        ``self`` and ``weight == 0`` exactly the terms of ``other``.
        """
        if weight >= 1.0:
            return QueryModel(self._weights)
        if weight <= 0.0:
            return QueryModel(other._weights)
        combined: Dict[str, float] = {}
        for term in set(self._weights) | set(other._weights):
            score = weight * self.get(term) + (1.0 - weight) * other.get(term)
            if score > 0:
                combined[term] = score
        return QueryModel(combined)

    # ------------------------- serialization -------------------------

    def to_line(self, qid: str, precision: int = 4) -> str:
        tokens = []
        for term, weight in self.ranked():
            if not math.isfinite(weight):
                raise SerializationError(qid, term, weight)
            tokens.append(f"{term}^{format_weight(weight, precision)}")
        return f"{qid}\t{' '.join(tokens)}"


def format_weight(weight: float, precision: int = 4) -> str:
    """Fixed-point rendering with round-half-to-even on the shortest repr of ``weight``."""
    value = Decimal(repr(float(weight)))
    quantum = Decimal(1).scaleb(-precision)
    with localcontext() as ctx:
        # enough digits for the integer part plus every requested decimal
        ctx.prec = max(ctx.prec, value.adjusted() + precision + 2)
        return format(value.quantize(quantum, rounding=ROUND_HALF_EVEN), "f")


def parse_expanded_line(line: str) -> Tuple[str, QueryModel]:
    """Inverse of :meth:`QueryModel.to_line`."""
    qid, sep, body = line.rstrip("\r\n").partition("\t")
    if not sep:
        raise ValueError(f"expanded query line has no tab separator: {line!r}")
    weights: Dict[str, float] = {}
    for token in body.split():
        term, caret, value = token.rpartition("^")
        if not caret or not term:
            raise ValueError(f"malformed term^weight token {token!r} in query '{qid}'")
        weights[term] = float(value)
    return qid, QueryModel(weights)
