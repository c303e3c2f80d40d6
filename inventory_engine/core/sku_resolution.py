# inventory_engine/core/sku_resolution.py
from typing import Dict, Iterable, List, Optional, Set, Tuple

from inventory_engine.core.sku_rules import normalize_sku, variant_base
from inventory_engine.exceptions import CycleDetected, ValidationError


class SkuResolution:
    """Outcome of resolving a raw sales SKU."""

    DIRECT = 'direct'
    MAPPED = 'mapped'
    VARIANT = 'variant'
    UNMAPPED = 'unmapped'

    def __init__(self, raw_sku: str, canonical_sku: Optional[str], method: str, chain: Optional[List[str]] = None):
        self.raw_sku = raw_sku
        self.canonical_sku = canonical_sku
        self.method = method
        self.chain = chain or []

    @property
    def is_unmapped(self) -> bool:
        return self.method == self.UNMAPPED

    def __repr__(self):
        return f"SkuResolution({self.raw_sku!r} -> {self.canonical_sku!r}, {self.method})"

    def to_dict(self) -> Dict:
        return {
            'raw_sku': self.raw_sku,
            'canonical_sku': self.canonical_sku,
            'method': self.method,
            'chain': list(self.chain)
        }


def follow_mappings(sku: str, mappings: Dict[str, str]) -> Tuple[str, List[str]]:
    """Follow explicit mappings from a SKU to its terminal SKU.

    Args:
        sku: Normalized starting SKU
        mappings: Normalized old_sku -> current_sku edges

    Returns:
        Tuple of (terminal SKU, list of SKUs visited including the terminal)

    Raises:
        CycleDetected: If a SKU is visited twice
    """
    chain = [sku]
    visited = {sku}
    current = sku

    while current in mappings:
        current = mappings[current]
        if current in visited:
            raise CycleDetected(
                f"SKU mapping cycle detected at {current}",
                details={'chain': chain + [current]}
            )
        visited.add(current)
        chain.append(current)

    return current, chain


def validate_new_mapping(old_sku: str, current_sku: str, mappings: Dict[str, str]) -> None:
    """Check that adding old_sku -> current_sku keeps the mapping graph acyclic.

    Args:
        old_sku: Normalized SKU being mapped
        current_sku: Normalized target SKU
        mappings: Existing normalized mappings

    Raises:
        ValidationError: If the mapping points a SKU at itself
        CycleDetected: If following the target ever reaches old_sku
    """
    if old_sku == current_sku:
        raise ValidationError(
            "A SKU cannot be mapped to itself",
            details={'old_sku': old_sku}
        )

    _, chain = follow_mappings(current_sku, mappings)
    if old_sku in chain:
        raise CycleDetected(
            f"Mapping {old_sku} -> {current_sku} would create a cycle",
            details={'chain': [old_sku] + chain[:chain.index(old_sku) + 1]}
        )


class SkuResolver:
    """Resolves raw sales SKUs to canonical catalog SKUs.

    Built from a snapshot of the mapping table and the set of SKUs known to
    the catalog (product SKUs plus any SKU with bill of materials rows).
    """

    def __init__(self, mappings: Dict[str, str], catalog_skus: Iterable[str]):
        self.mappings = {normalize_sku(old): normalize_sku(new) for old, new in mappings.items()}
        self.catalog_skus: Set[str] = {normalize_sku(s) for s in catalog_skus}
        self._cache: Dict[str, SkuResolution] = {}

    def resolve(self, raw_sku: str) -> SkuResolution:
        """Resolve a raw SKU.

        Explicit mappings are followed first. A SKU with no usable mapping
        that is absent from the catalog is retried with its personalisation
        suffix removed. Anything else is unmapped.

        Raises:
            ValidationError: If the SKU is blank
            CycleDetected: If the stored mappings contain a cycle
        """
        sku = normalize_sku(raw_sku)
        if sku in self._cache:
            return self._cache[sku]

        resolution = self._resolve(sku)
        self._cache[sku] = resolution
        return resolution

    def _resolve(self, sku: str) -> SkuResolution:
        terminal, chain = follow_mappings(sku, self.mappings)
        mapped = terminal != sku

        if terminal in self.catalog_skus:
            return SkuResolution(sku, terminal, SkuResolution.MAPPED if mapped else SkuResolution.DIRECT, chain)

        base = variant_base(terminal)
        if base is not None:
            base_terminal, base_chain = follow_mappings(base, self.mappings)
            if base_terminal in self.catalog_skus:
                return SkuResolution(sku, base_terminal, SkuResolution.VARIANT, chain + base_chain)

        # An explicit mapping is authoritative even when the target has no catalog row yet
        if mapped:
            return SkuResolution(sku, terminal, SkuResolution.MAPPED, chain)

        return SkuResolution(sku, None, SkuResolution.UNMAPPED, chain)
