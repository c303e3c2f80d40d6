# inventory_engine/services/sku_mapping_service.py
import logging
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_engine.core.sku_matcher import SkuCandidate, generate_all_suggestions, suggestions_for_sku
from inventory_engine.core.sku_resolution import SkuResolution, SkuResolver, validate_new_mapping
from inventory_engine.core.sku_rules import is_excluded_product, normalize_sku
from inventory_engine.db import lock_table
from inventory_engine.exceptions import (
    ConflictError, CycleDetected, DatabaseError, InventoryEngineError, NotFoundError, ValidationError
)
from inventory_engine.models import SalesLine, SkuMapping
from inventory_engine.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

BULK_VALID_STATUS = 'AUTO_MAPPED'


def mapping_to_dict(mapping: SkuMapping) -> Dict:
    return {
        'id': mapping.id,
        'old_sku': mapping.old_sku,
        'current_sku': mapping.current_sku,
        'platform': mapping.platform,
        'brand_id': mapping.brand_id,
        'notes': mapping.notes,
        'created_at': mapping.created_at.isoformat() if mapping.created_at else None
    }


class SkuMappingService:
    """Service for SKU aliasing: mappings, resolution, discovery and suggestions."""

    def __init__(self, session: Session):
        """Initialize the SKU mapping service.

        Args:
            session: Database session
        """
        self.session = session

    def _mapping_edges(self) -> Dict[str, str]:
        return {old.upper(): current.upper() for old, current in
                self.session.query(SkuMapping.old_sku, SkuMapping.current_sku).all()}

    def build_resolver(self) -> SkuResolver:
        """Resolver over a snapshot of the current mappings and catalog."""
        catalog_skus = CatalogService(self.session).get_catalog_skus()
        return SkuResolver(self._mapping_edges(), catalog_skus)

    def resolve(self, raw_sku: str) -> SkuResolution:
        return self.build_resolver().resolve(raw_sku)

    def get_mapping(self, mapping_id: int) -> SkuMapping:
        mapping = self.session.get(SkuMapping, mapping_id)
        if not mapping:
            raise NotFoundError(f"SKU mapping with ID {mapping_id} not found")
        return mapping

    def get_mappings(self, search: Optional[str] = None) -> List[SkuMapping]:
        query = self.session.query(SkuMapping)
        if search:
            pattern = f"%{search.strip().upper()}%"
            query = query.filter(or_(SkuMapping.old_sku.like(pattern), SkuMapping.current_sku.like(pattern)))
        return query.order_by(SkuMapping.old_sku).all()

    def _validate(self, old_sku: str, current_sku: str, edges: Dict[str, str]) -> None:
        if old_sku in edges:
            raise ConflictError(
                f"SKU {old_sku} is already mapped to {edges[old_sku]}",
                code='ALREADY_MAPPED',
                details={'old_sku': old_sku, 'current_sku': edges[old_sku]}
            )
        validate_new_mapping(old_sku, current_sku, edges)

    def create_mapping(
        self,
        old_sku: str,
        current_sku: str,
        platform: Optional[str] = None,
        notes: Optional[str] = None,
        brand_id: Optional[int] = None
    ) -> SkuMapping:
        """Create an old_sku -> current_sku mapping.

        Raises:
            ValidationError: Blank SKU or self mapping
            ConflictError: old_sku is already mapped
            CycleDetected: The mapping would close a cycle
        """
        old = normalize_sku(old_sku)
        current = normalize_sku(current_sku)

        # Mapping writers are serialized so validation sees every committed edge
        lock_table(self.session, SkuMapping.__table__)
        try:
            self._validate(old, current, self._mapping_edges())
        except InventoryEngineError:
            self.session.rollback()
            raise

        mapping = SkuMapping(
            old_sku=old,
            current_sku=current,
            platform=platform.strip().lower() if platform else None,
            notes=notes or None,
            brand_id=brand_id
        )
        self.session.add(mapping)

        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ConflictError(f"SKU {old} is already mapped", code='ALREADY_MAPPED', details={'old_sku': old})
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to create SKU mapping: {str(e)}")

        logger.info(f"Created SKU mapping {old} -> {current}")
        return mapping

    def delete_mapping(self, mapping_id: Optional[int] = None, old_sku: Optional[str] = None) -> bool:
        """Delete a mapping by id or by old SKU.

        Raises:
            ValidationError: Neither id nor old_sku given
            NotFoundError: No such mapping
        """
        if mapping_id is None and not old_sku:
            raise ValidationError("Either id or old_sku is required")

        if mapping_id is not None:
            mapping = self.get_mapping(mapping_id)
        else:
            mapping = self.session.query(SkuMapping).filter(SkuMapping.old_sku == normalize_sku(old_sku)).first()
            if not mapping:
                raise NotFoundError(f"SKU mapping for {old_sku} not found")

        self.session.delete(mapping)
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to delete SKU mapping: {str(e)}")

        logger.info(f"Deleted SKU mapping {mapping.old_sku} -> {mapping.current_sku}")
        return True

    def bulk_import(self, entries: List[Dict], dry_run: bool = False) -> Dict:
        """Import mappings from an audit file.

        Only rows with status AUTO_MAPPED and differing SKUs are considered;
        SKUs already mapped are skipped. Each row is validated against the
        mappings accepted so far, so a file cannot introduce a cycle.

        Args:
            entries: Dicts with legacy_sku, proposed_new_sku, status, notes,
                platform and brand
            dry_run: Validate and preview without writing

        Returns:
            Dictionary with summary counts, preview rows and row errors
        """
        if not isinstance(entries, list):
            raise ValidationError("mappings array is required")

        valid_rows = []
        for row in entries:
            legacy = (row.get('legacy_sku') or '').strip().upper()
            proposed = (row.get('proposed_new_sku') or '').strip().upper()
            if row.get('status') == BULK_VALID_STATUS and legacy and proposed and legacy != proposed:
                valid_rows.append((legacy, proposed, row))

        if not dry_run:
            lock_table(self.session, SkuMapping.__table__)
        edges = self._mapping_edges()
        existing = set(edges)
        to_insert = []
        errors = []
        skipped_existing = 0

        for legacy, proposed, row in valid_rows:
            if legacy in existing:
                skipped_existing += 1
                continue
            try:
                self._validate(legacy, proposed, edges)
            except (ConflictError, ValidationError) as e:
                errors.append({'legacy_sku': legacy, 'error': e.message})
                continue

            edges[legacy] = proposed
            to_insert.append({
                'old_sku': legacy,
                'current_sku': proposed,
                'platform': (row.get('platform') or None),
                'notes': row.get('notes') or f"Imported from SKU audit - {row.get('brand', 'unknown')}"
            })

        summary = {
            'total_in_file': len(entries),
            'valid_mappings': len(valid_rows),
            'skipped_existing': skipped_existing,
            'errors': len(errors)
        }

        if dry_run:
            summary['to_insert'] = len(to_insert)
            return {'dry_run': True, 'summary': summary, 'preview': to_insert[:10], 'errors': errors}

        for values in to_insert:
            self.session.add(SkuMapping(**values))

        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to import SKU mappings: {str(e)}")

        summary['inserted'] = len(to_insert)
        logger.info(f"Bulk imported {len(to_insert)} SKU mappings ({skipped_existing} skipped, {len(errors)} errors)")
        return {'dry_run': False, 'summary': summary, 'errors': errors}

    def discover_skus(self, limit: Optional[int] = None) -> List[Dict]:
        """Raw SKU usage statistics from the sales feed.

        Returns:
            List of dicts sorted by order count, each with sku, product_name,
            order_count, total_quantity, platforms, first_seen, last_seen,
            resolution method and canonical SKU
        """
        query = self.session.query(SalesLine).order_by(SalesLine.order_date.desc())
        if limit:
            query = query.limit(limit)

        stats: Dict[str, Dict] = {}
        for line in query.all():
            if not line.raw_sku or not line.raw_sku.strip():
                continue
            key = line.raw_sku.strip().upper()
            entry = stats.get(key)
            if entry is None:
                entry = stats[key] = {
                    'sku': key,
                    'product_names': [],
                    'order_count': 0,
                    'total_quantity': 0,
                    'platforms': set(),
                    'first_seen': line.order_date,
                    'last_seen': line.order_date
                }
            entry['order_count'] += 1
            entry['total_quantity'] += line.quantity or 1
            entry['platforms'].add(line.platform or 'unknown')
            if line.product_name and line.product_name not in entry['product_names']:
                entry['product_names'].append(line.product_name)
            entry['first_seen'] = min(entry['first_seen'], line.order_date)
            entry['last_seen'] = max(entry['last_seen'], line.order_date)

        resolver = self.build_resolver()
        results = []
        for entry in stats.values():
            product_name = entry['product_names'][0] if entry['product_names'] else ''
            if is_excluded_product(entry['sku'], product_name):
                continue
            try:
                resolution = resolver.resolve(entry['sku'])
                method, canonical = resolution.method, resolution.canonical_sku
            except CycleDetected:
                method, canonical = 'cycle', None
            results.append({
                'sku': entry['sku'],
                'product_name': product_name,
                'order_count': entry['order_count'],
                'total_quantity': entry['total_quantity'],
                'platforms': sorted(entry['platforms']),
                'first_seen': entry['first_seen'].isoformat(),
                'last_seen': entry['last_seen'].isoformat(),
                'resolution': method,
                'canonical_sku': canonical
            })

        results.sort(key=lambda r: (-r['order_count'], r['sku']))
        return results

    def generate_suggestions(self, source_sku: Optional[str] = None, max_suggestions: int = 3) -> List[Dict]:
        """Scored mapping candidates among discovered SKUs. Never applied automatically.

        Args:
            source_sku: Only suggest targets for this SKU
            max_suggestions: Maximum suggestions for a single source SKU

        Returns:
            List of suggestion dicts
        """
        discovered = self.discover_skus()
        candidates = [
            SkuCandidate(d['sku'], d['product_name'], d['order_count'], d['platforms'])
            for d in discovered
        ]

        if source_sku:
            source = normalize_sku(source_sku)
            match = next((c for c in candidates if c.sku == source), None)
            if match is None:
                match = SkuCandidate(source)
            return suggestions_for_sku(match, candidates, max_suggestions)

        mapped = set(self._mapping_edges())
        return generate_all_suggestions(candidates, mapped)

    def check_mappings(self) -> Dict:
        """Walk every stored mapping; reports chains that cycle."""
        edges = self._mapping_edges()
        resolver = SkuResolver(edges, [])
        cycles = []
        for old_sku in edges:
            try:
                resolver.resolve(old_sku)
            except CycleDetected as e:
                cycles.append({'old_sku': old_sku, 'error': e.message})
        return {'checked': len(edges), 'cycles': cycles}
