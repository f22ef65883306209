"""
Query registry: the fixed, named set of variants under comparison.

Registration order is significant. It is the default execution order, which the
engine interleaves round-robin so no variant inherits a warmer cache from the
one that ran before it.

Usage:
    from querybench.registry import QueryRegistry

    registry = QueryRegistry()
    registry.register(QueryVariant(id="lateral", display_name="LATERAL", statement="..."))
    registry.freeze()  # the orchestrator does this when the run begins
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from querybench.domain.models import QueryVariant
from querybench.errors import DuplicateVariantError, RegistryFrozenError


class QueryRegistry:
    """Ordered, id-unique collection of query variants."""

    def __init__(self, variants: Optional[Iterable[QueryVariant]] = None) -> None:
        self._variants: Dict[str, QueryVariant] = {}
        self._frozen = False
        for variant in variants or ():
            self.register(variant)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError("Query registry cannot change once the benchmark has started")

    def register(self, variant: QueryVariant) -> QueryVariant:
        """
        Add a variant at the end of the execution order.

        Raises
        ------
        DuplicateVariantError
            If a variant with the same id is already registered.
        RegistryFrozenError
            If the registry has been frozen.
        """
        self._ensure_mutable()
        if variant.id in self._variants:
            raise DuplicateVariantError(variant.id)
        self._variants[variant.id] = variant
        return variant

    def remove(self, variant_id: str) -> QueryVariant:
        self._ensure_mutable()
        try:
            return self._variants.pop(variant_id)
        except KeyError:
            raise KeyError(f"Unknown query variant '{variant_id}'") from None

    def get(self, variant_id: str) -> QueryVariant:
        try:
            return self._variants[variant_id]
        except KeyError:
            available = ", ".join(self._variants) or "none"
            raise KeyError(f"Unknown query variant '{variant_id}'. Available: {available}") from None

    def list(self) -> List[QueryVariant]:
        """Registered variants in registration order."""
        return list(self._variants.values())

    def ids(self) -> List[str]:
        return list(self._variants)

    def select(self, variant_ids: Iterable[str]) -> "QueryRegistry":
        """Build a new registry holding only the given ids, in registration order."""
        wanted = set(variant_ids)
        for variant_id in wanted:
            self.get(variant_id)
        return QueryRegistry(v for v in self._variants.values() if v.id in wanted)

    def freeze(self) -> None:
        self._frozen = True

    def __contains__(self, variant_id: object) -> bool:
        return variant_id in self._variants

    def __iter__(self) -> Iterator[QueryVariant]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._variants)


__all__ = ["QueryRegistry"]
