# inventory_engine/services/stock_service.py
import logging
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_engine.db import hold_write_lock
from inventory_engine.exceptions import (
    ConflictError, DatabaseError, InventoryEngineError, NotFoundError, ValidationError
)
from inventory_engine.logging_setup import log_stock_movement
from inventory_engine.models import (
    AdjustmentType, Component, OPEN_PO_STATUSES, POLine, PurchaseOrder,
    StockAdjustment, StockLevel
)
from inventory_engine.utils.validation import require_int

logger = logging.getLogger(__name__)


def adjustment_to_dict(adjustment: StockAdjustment) -> Dict:
    return {
        'id': adjustment.id,
        'component_id': adjustment.component_id,
        'adjustment_type': adjustment.adjustment_type.value,
        'quantity': adjustment.quantity,
        'delta': adjustment.delta,
        'previous_on_hand': adjustment.previous_on_hand,
        'new_on_hand': adjustment.new_on_hand,
        'notes': adjustment.notes,
        'reference_type': adjustment.reference_type,
        'reference_id': adjustment.reference_id,
        'request_id': adjustment.request_id,
        'created_at': adjustment.created_at.isoformat() if adjustment.created_at else None
    }


def stock_level_to_dict(level: StockLevel) -> Dict:
    return {
        'component_id': level.component_id,
        'on_hand': level.on_hand,
        'reserved': level.reserved,
        'available': level.available,
        'on_order': level.on_order,
        'last_count_date': level.last_count_date.isoformat() if level.last_count_date else None,
        'last_movement_at': level.last_movement_at.isoformat() if level.last_movement_at else None
    }


def compute_new_on_hand(adjustment_type: AdjustmentType, previous_on_hand: int, quantity: int) -> int:
    """On hand after an adjustment.

    count sets an absolute value, add increases, remove decreases and
    clamps at zero.
    """
    if adjustment_type == AdjustmentType.COUNT:
        return quantity
    if adjustment_type == AdjustmentType.ADD:
        return previous_on_hand + quantity
    return max(0, previous_on_hand - quantity)


class StockService:
    """Stock ledger: the only writer of StockLevel.on_hand.

    Every change appends a StockAdjustment in the same transaction. Writes
    to a component's stock level hold a row lock from read to commit.
    """

    def __init__(self, session: Session):
        """Initialize the stock service.

        Args:
            session: Database session
        """
        self.session = session

    def get_stock_level(self, component_id: int) -> StockLevel:
        component = self.session.get(Component, component_id)
        if not component:
            raise NotFoundError(f"Component with ID {component_id} not found")
        level = self.session.query(StockLevel).filter(StockLevel.component_id == component_id).first()
        if level is None:
            level = StockLevel(component_id=component_id, on_hand=0, reserved=0, on_order=0)
        return level

    def lock_stock_level(self, component_id: int) -> StockLevel:
        """Lock a component's stock row for the rest of the transaction.

        Creates a zero stock level when the component has none.
        """
        hold_write_lock(self.session, StockLevel.__table__)
        stmt = (
            select(StockLevel)
            .where(StockLevel.component_id == component_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        level = self.session.execute(stmt).scalar_one_or_none()

        if level is None:
            level = StockLevel(component_id=component_id, on_hand=0, reserved=0, on_order=0)
            self.session.add(level)
            self.session.flush()

        return level

    def _find_by_request_id(self, request_id: str) -> Optional[StockAdjustment]:
        return self.session.query(StockAdjustment).filter(StockAdjustment.request_id == request_id).first()

    def _replay(self, existing: StockAdjustment, component_id: int,
                adjustment_type: AdjustmentType, quantity: int) -> Dict:
        if (existing.component_id != component_id or existing.adjustment_type != adjustment_type
                or existing.quantity != quantity):
            raise ConflictError(
                f"Request {existing.request_id} was already used for a different adjustment",
                code='REQUEST_ID_REUSED',
                details={'adjustment_id': existing.id}
            )
        return {
            'previous_on_hand': existing.previous_on_hand,
            'new_on_hand': existing.new_on_hand,
            'delta': existing.delta,
            'adjustment': adjustment_to_dict(existing),
            'duplicate': True
        }

    def apply_adjustment(
        self,
        component_id: int,
        adjustment_type: AdjustmentType,
        quantity: int,
        notes: Optional[str] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        request_id: Optional[str] = None
    ) -> StockAdjustment:
        """Apply an adjustment inside the caller's transaction without committing.

        Used by adjust() and by purchase order receiving so that the stock
        change commits atomically with the caller's other writes.
        """
        level = self.lock_stock_level(component_id)

        previous_on_hand = level.on_hand or 0
        new_on_hand = compute_new_on_hand(adjustment_type, previous_on_hand, quantity)
        now = datetime.now()

        adjustment = StockAdjustment(
            component_id=component_id,
            adjustment_type=adjustment_type,
            quantity=quantity,
            delta=new_on_hand - previous_on_hand,
            previous_on_hand=previous_on_hand,
            new_on_hand=new_on_hand,
            notes=notes,
            reference_type=reference_type,
            reference_id=reference_id,
            request_id=request_id,
            created_at=now
        )
        self.session.add(adjustment)

        level.on_hand = new_on_hand
        level.last_movement_at = now
        if adjustment_type == AdjustmentType.COUNT:
            level.last_count_date = now.date()

        self.session.flush()
        return adjustment

    def adjust(
        self,
        component_id: int,
        adjustment_type: str,
        quantity: int,
        notes: Optional[str] = None,
        request_id: Optional[str] = None
    ) -> Dict:
        """Adjust a component's on-hand stock.

        Args:
            component_id: Component to adjust
            adjustment_type: 'count' (absolute), 'add' or 'remove'
            quantity: Counted value for count, amount for add/remove
            notes: Justification; required for counts
            request_id: Optional caller identity; a repeated id returns the
                recorded result instead of applying the adjustment again

        Returns:
            Dictionary with previous_on_hand, new_on_hand, delta, the
            adjustment record and whether it was a duplicate

        Raises:
            ValidationError: Bad type, negative quantity or missing count notes
            NotFoundError: Unknown component
            ConflictError: request_id reused for a different adjustment
        """
        try:
            type_value = AdjustmentType.from_string(adjustment_type) \
                if not isinstance(adjustment_type, AdjustmentType) else adjustment_type
        except ValueError as e:
            raise ValidationError(str(e), details={'adjustment_type': adjustment_type})

        quantity = require_int(quantity, 'quantity', minimum=0)
        notes = notes.strip() if isinstance(notes, str) and notes.strip() else None
        if type_value == AdjustmentType.COUNT and not notes:
            raise ValidationError("Notes are required for stock count adjustments")
        component_id = require_int(component_id, 'component_id')

        if request_id:
            existing = self._find_by_request_id(request_id)
            if existing:
                return self._replay(existing, component_id, type_value, quantity)

        if not self.session.get(Component, component_id):
            raise NotFoundError(f"Component with ID {component_id} not found")

        try:
            adjustment = self.apply_adjustment(
                component_id, type_value, quantity, notes=notes, request_id=request_id
            )
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if request_id:
                existing = self._find_by_request_id(request_id)
                if existing:
                    return self._replay(existing, component_id, type_value, quantity)
            raise DatabaseError(f"Failed to adjust stock: {str(e)}")
        except InventoryEngineError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to adjust stock: {str(e)}")

        log_stock_movement(adjustment)

        return {
            'previous_on_hand': adjustment.previous_on_hand,
            'new_on_hand': adjustment.new_on_hand,
            'delta': adjustment.delta,
            'adjustment': adjustment_to_dict(adjustment),
            'duplicate': False
        }

    def change_on_order(self, component_id: int, delta: int) -> StockLevel:
        """Move a component's on_order inside the caller's transaction.

        Only purchase order transitions and receiving call this.
        """
        level = self.lock_stock_level(component_id)
        new_on_order = (level.on_order or 0) + delta
        if new_on_order < 0:
            logger.warning(
                f"on_order for component {component_id} would go negative "
                f"({level.on_order} + {delta}); clamping to 0"
            )
            new_on_order = 0
        level.on_order = new_on_order
        return level

    def get_adjustments(self, component_id: int, limit: int = 50) -> List[StockAdjustment]:
        if not self.session.get(Component, component_id):
            raise NotFoundError(f"Component with ID {component_id} not found")
        return (
            self.session.query(StockAdjustment)
            .filter(StockAdjustment.component_id == component_id)
            .order_by(StockAdjustment.created_at.desc(), StockAdjustment.id.desc())
            .limit(limit)
            .all()
        )

    def expected_on_order(self, component_id: Optional[int] = None) -> Dict[int, int]:
        """Outstanding quantity per component over open purchase order lines."""
        query = (
            self.session.query(
                POLine.component_id,
                func.sum(POLine.quantity_ordered - POLine.quantity_received)
            )
            .join(PurchaseOrder, POLine.purchase_order_id == PurchaseOrder.id)
            .filter(PurchaseOrder.status.in_(OPEN_PO_STATUSES))
        )
        if component_id is not None:
            query = query.filter(POLine.component_id == component_id)

        return {cid: int(total or 0) for cid, total in query.group_by(POLine.component_id).all()}

    def reconcile_on_order(self, component_id: Optional[int] = None) -> Dict:
        """Compare stored on_order with open purchase order lines. Read only.

        Returns:
            Dictionary with checked count, consistent flag and drifts
        """
        expected = self.expected_on_order(component_id)

        query = self.session.query(StockLevel, Component).join(Component, StockLevel.component_id == Component.id)
        if component_id is not None:
            query = query.filter(StockLevel.component_id == component_id)

        drifts = []
        checked = 0
        seen = set()
        for level, component in query.all():
            checked += 1
            seen.add(level.component_id)
            want = expected.get(level.component_id, 0)
            if (level.on_order or 0) != want:
                drifts.append({
                    'component_id': level.component_id,
                    'sku': component.sku,
                    'on_order': level.on_order or 0,
                    'expected': want,
                    'difference': (level.on_order or 0) - want
                })

        # Open lines for components with no stock row at all
        for cid, want in expected.items():
            if cid not in seen and want:
                checked += 1
                drifts.append({'component_id': cid, 'sku': None, 'on_order': 0,
                               'expected': want, 'difference': -want})

        if drifts:
            logger.warning(f"on_order drift on {len(drifts)} component(s)")

        return {
            'checked': checked,
            'consistent': not drifts,
            'drifts': drifts,
            'checked_at': date.today().isoformat()
        }
