# inventory_engine/services/purchase_order_service.py
import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_engine.config import config
from inventory_engine.db import hold_write_lock
from inventory_engine.exceptions import (
    ConflictError, DatabaseError, InventoryEngineError, NotFoundError, ValidationError
)
from inventory_engine.logging_setup import log_stock_movement
from inventory_engine.models import (
    AdjustmentType, Component, OPEN_PO_STATUSES, POLine, POStatus, PurchaseOrder, Supplier
)
from inventory_engine.services.stock_service import StockService
from inventory_engine.utils.date_utils import add_days, convert_to_date, month_prefix
from inventory_engine.utils.validation import require_int, require_non_negative_number

logger = logging.getLogger(__name__)

RECEIPT_REFERENCE = 'purchase_order_line'

# Manual transitions; partial and received are reached only by receiving
MANUAL_TRANSITIONS = {
    POStatus.DRAFT: (POStatus.SENT,),
    POStatus.SENT: (POStatus.CONFIRMED,),
}


def po_line_to_dict(line: POLine) -> Dict:
    component = line.component
    return {
        'id': line.id,
        'component_id': line.component_id,
        'component_sku': component.sku if component else None,
        'component_name': component.name if component else None,
        'quantity_ordered': line.quantity_ordered,
        'quantity_received': line.quantity_received,
        'remaining': line.remaining,
        'unit_price': line.unit_price,
        'line_total': line.line_total
    }


def po_to_dict(po: PurchaseOrder, include_lines: bool = True) -> Dict:
    data = {
        'id': po.id,
        'po_number': po.po_number,
        'supplier_id': po.supplier_id,
        'supplier_name': po.supplier.name if po.supplier else None,
        'brand_id': po.brand_id,
        'status': po.status.value,
        'ordered_date': po.ordered_date.isoformat() if po.ordered_date else None,
        'expected_date': po.expected_date.isoformat() if po.expected_date else None,
        'received_date': po.received_date.isoformat() if po.received_date else None,
        'subtotal': po.subtotal,
        'shipping_cost': po.shipping_cost,
        'total': po.total,
        'currency': po.currency,
        'notes': po.notes
    }
    if include_lines:
        data['lines'] = [po_line_to_dict(line) for line in po.lines]
    return data


class PurchaseOrderService:
    """Purchase order state machine: draft -> sent -> confirmed -> partial -> received.

    Owns every change to StockLevel.on_order. Receiving writes on_hand
    through the stock ledger in the same transaction.
    """

    def __init__(self, session: Session):
        """Initialize the purchase order service.

        Args:
            session: Database session
        """
        self.session = session
        self.stock_service = StockService(session)

    def _lock_po(self, po_id: int) -> PurchaseOrder:
        hold_write_lock(self.session, PurchaseOrder.__table__)
        stmt = (
            select(PurchaseOrder)
            .where(PurchaseOrder.id == po_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        po = self.session.execute(stmt).scalar_one_or_none()
        if po is None:
            raise NotFoundError(f"Purchase order with ID {po_id} not found")
        return po

    def _commit(self, action: str):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to {action}: {str(e)}")

    def get_po(self, po_id: int) -> PurchaseOrder:
        po = self.session.get(PurchaseOrder, po_id)
        if not po:
            raise NotFoundError(f"Purchase order with ID {po_id} not found")
        return po

    def next_po_number(self, today: Optional[date] = None) -> str:
        """Next sequential number for the month, formatted PO-YYYYMM####."""
        prefix = f"PO-{month_prefix(today or date.today())}"
        latest = self.session.query(func.max(PurchaseOrder.po_number)).filter(
            PurchaseOrder.po_number.like(f"{prefix}%")
        ).scalar()

        sequence = 1
        if latest:
            try:
                sequence = int(latest[len(prefix):]) + 1
            except ValueError:
                logger.warning(f"Unexpected purchase order number format: {latest}")

        return f"{prefix}{sequence:04d}"

    def _apply_on_order(self, po: PurchaseOrder, sign: int):
        for line in sorted(po.lines, key=lambda l: l.component_id):
            self.stock_service.change_on_order(line.component_id, sign * line.remaining)

    def _recalculate_total(self, po: PurchaseOrder):
        po.subtotal = round(sum(line.line_total for line in po.lines), 2)
        po.total = round(po.subtotal + (po.shipping_cost or 0.0), 2)

    def create_po(
        self,
        supplier_id: int,
        items: List[Dict],
        status: str = 'draft',
        expected_date=None,
        shipping_cost: float = 0.0,
        notes: Optional[str] = None,
        brand_id: Optional[int] = None,
        currency: Optional[str] = None
    ) -> PurchaseOrder:
        """Create a purchase order in draft or sent.

        Args:
            supplier_id: Supplier ID
            items: List of {component_id, quantity, unit_price}
            status: 'draft' or 'sent'; sent raises on_order immediately
            expected_date: Expected delivery; defaults to today plus lead time
            shipping_cost: Shipping cost added to the total
            notes: Optional notes
            brand_id: Optional brand
            currency: Currency; defaults to the supplier's

        Returns:
            Created purchase order

        Raises:
            ValidationError: Bad status, empty items or bad line values
            NotFoundError: Unknown supplier or component
        """
        try:
            status_value = POStatus.from_string(status or 'draft')
        except ValueError as e:
            raise ValidationError(str(e))
        if status_value not in (POStatus.DRAFT, POStatus.SENT):
            raise ValidationError("Purchase orders can only be created as draft or sent",
                                  details={'status': status_value.value})

        if not items:
            raise ValidationError("At least one line item is required")

        supplier_id = require_int(supplier_id, 'supplier_id')
        supplier = self.session.get(Supplier, supplier_id)
        if not supplier:
            raise NotFoundError(f"Supplier with ID {supplier_id} not found")

        lines = []
        for index, item in enumerate(items):
            component_id = require_int(item.get('component_id'), f'items[{index}].component_id')
            quantity = require_int(item.get('quantity'), f'items[{index}].quantity', minimum=1)
            unit_price = require_non_negative_number(item.get('unit_price'), f'items[{index}].unit_price', default=0.0)
            if not self.session.get(Component, component_id):
                raise NotFoundError(f"Component with ID {component_id} not found")
            lines.append(POLine(
                component_id=component_id,
                quantity_ordered=quantity,
                quantity_received=0,
                unit_price=unit_price
            ))

        try:
            expected = convert_to_date(expected_date)
        except (TypeError, ValueError):
            raise ValidationError("expected_date must be a YYYY-MM-DD date", details={'expected_date': expected_date})

        today = date.today()
        if expected is None:
            lead_time = supplier.default_lead_time_days
            if lead_time is None:
                lead_time = config.business_rules['default_lead_time']
            expected = add_days(today, lead_time)

        po = PurchaseOrder(
            po_number=self.next_po_number(today),
            supplier_id=supplier_id,
            brand_id=brand_id,
            status=status_value,
            expected_date=expected,
            shipping_cost=require_non_negative_number(shipping_cost, 'shipping_cost', default=0.0),
            currency=(currency or supplier.currency or config.business_rules['default_currency']).upper(),
            notes=notes or None,
            lines=lines
        )
        self._recalculate_total(po)
        self.session.add(po)

        try:
            self.session.flush()
            if status_value == POStatus.SENT:
                po.ordered_date = today
                self._apply_on_order(po, 1)
            self.session.commit()
        except InventoryEngineError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to create purchase order: {str(e)}")

        logger.info(f"Created purchase order {po.po_number} ({status_value.value}) with {len(lines)} line(s)")
        return po

    def list_pos(
        self,
        status: Optional[str] = None,
        supplier_id: Optional[int] = None,
        limit: int = 50
    ) -> Dict:
        """List purchase orders, newest first, with summary counts.

        Returns:
            Dictionary with purchase_orders and summary (count per status,
            open count and open value)
        """
        query = self.session.query(PurchaseOrder)
        if status and status != 'all':
            try:
                query = query.filter(PurchaseOrder.status == POStatus.from_string(status))
            except ValueError as e:
                raise ValidationError(str(e))
        if supplier_id is not None:
            query = query.filter(PurchaseOrder.supplier_id == supplier_id)

        pos = query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc()).limit(limit).all()

        summary = {s.value: 0 for s in POStatus}
        open_value = 0.0
        for po_status, total in self.session.query(PurchaseOrder.status, PurchaseOrder.total).all():
            summary[po_status.value] += 1
            if po_status in OPEN_PO_STATUSES:
                open_value += total or 0.0
        summary['open'] = sum(summary[s.value] for s in OPEN_PO_STATUSES)
        summary['open_value'] = round(open_value, 2)

        return {
            'purchase_orders': [po_to_dict(po, include_lines=False) for po in pos],
            'summary': summary
        }

    def update(
        self,
        po_id: int,
        status: Optional[str] = None,
        expected_date=None,
        shipping_cost: Optional[float] = None,
        notes: Optional[str] = None
    ) -> PurchaseOrder:
        """Apply a status transition and/or detail edits in one transaction.

        draft -> sent raises on_order for every line; sent -> confirmed has
        no stock effect. Detail edits recompute the total. A rejected
        transition leaves the details untouched.

        Raises:
            ValidationError: Unknown status, bad field value or nothing to update
            NotFoundError: Unknown purchase order
            ConflictError: Transition not allowed from the current status
        """
        if status is None and expected_date is None and shipping_cost is None and notes is None:
            raise ValidationError("No fields to update")

        target = None
        if status is not None:
            try:
                target = POStatus.from_string(status)
            except ValueError as e:
                raise ValidationError(str(e))

        if expected_date is not None:
            try:
                expected_date = convert_to_date(expected_date)
            except (TypeError, ValueError):
                raise ValidationError("expected_date must be a YYYY-MM-DD date",
                                      details={'expected_date': expected_date})
        if shipping_cost is not None:
            shipping_cost = require_non_negative_number(shipping_cost, 'shipping_cost')

        try:
            po = self._lock_po(po_id)
            previous = po.status
            if target is not None and target not in MANUAL_TRANSITIONS.get(po.status, ()):
                raise ConflictError(
                    f"Cannot move purchase order {po.po_number} from {po.status.value} to {target.value}",
                    code='INVALID_TRANSITION',
                    details={'from': po.status.value, 'to': target.value}
                )

            if expected_date is not None:
                po.expected_date = expected_date
            if shipping_cost is not None:
                po.shipping_cost = shipping_cost
            if notes is not None:
                po.notes = notes or None
            self._recalculate_total(po)

            if target is not None:
                if po.status == POStatus.DRAFT and target == POStatus.SENT:
                    po.ordered_date = date.today()
                    self._apply_on_order(po, 1)
                po.status = target

            self.session.commit()
        except InventoryEngineError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to update purchase order: {str(e)}")

        if target is not None:
            logger.info(f"Purchase order {po.po_number}: {previous.value} -> {target.value}")
        return po

    def update_status(self, po_id: int, new_status: str) -> PurchaseOrder:
        """Move a purchase order through a manual transition."""
        if not new_status:
            raise ValidationError("status is required")
        return self.update(po_id, status=new_status)

    def update_details(
        self,
        po_id: int,
        expected_date=None,
        shipping_cost: Optional[float] = None,
        notes: Optional[str] = None
    ) -> PurchaseOrder:
        """Update expected date, shipping cost and notes; recomputes the total."""
        return self.update(po_id, expected_date=expected_date, shipping_cost=shipping_cost, notes=notes)

    def delete_po(self, po_id: int) -> bool:
        """Delete a purchase order. Only drafts can be deleted.

        Raises:
            NotFoundError: Unknown purchase order
            ConflictError: The purchase order has left draft
        """
        po = self.get_po(po_id)
        if po.status != POStatus.DRAFT:
            raise ConflictError(
                f"Purchase order {po.po_number} is {po.status.value}; only drafts can be deleted",
                code='NOT_DRAFT'
            )

        self.session.delete(po)
        self._commit('delete purchase order')
        logger.info(f"Deleted draft purchase order {po.po_number}")
        return True

    def _validate_receipt(self, po: PurchaseOrder, lines: List[Dict]) -> Dict[int, int]:
        """Check a whole receiving call before anything is written.

        Returns:
            Quantity to receive now per line ID, repeated lines summed
        """
        if not lines:
            raise ValidationError("At least one line is required")

        by_id = {line.id: line for line in po.lines}
        requested: Dict[int, int] = {}
        for index, entry in enumerate(lines):
            line_id = require_int(entry.get('line_item_id'), f'lines[{index}].line_item_id')
            quantity = require_int(entry.get('quantity_received'), f'lines[{index}].quantity_received', minimum=1)
            if line_id not in by_id:
                raise NotFoundError(
                    f"Line {line_id} does not belong to purchase order {po.po_number}",
                    details={'line_item_id': line_id}
                )
            requested[line_id] = requested.get(line_id, 0) + quantity

        for line_id, quantity in requested.items():
            line = by_id[line_id]
            if line.quantity_received + quantity > line.quantity_ordered:
                raise ConflictError(
                    f"Receiving {quantity} on line {line_id} would exceed the ordered quantity",
                    code='OVER_RECEIPT',
                    details={
                        'line_item_id': line_id,
                        'quantity_ordered': line.quantity_ordered,
                        'quantity_received': line.quantity_received,
                        'quantity_requested': quantity
                    }
                )

        return requested

    def receive(self, po_id: int, lines: List[Dict]) -> Dict:
        """Receive stock against purchase order lines.

        The call is atomic: every line is validated before any write, and
        line updates, stock adjustments and on_order changes commit together.

        Args:
            po_id: Purchase order ID
            lines: List of {line_item_id, quantity_received}

        Returns:
            Dictionary with po_id, po_number, status and per-line results

        Raises:
            ValidationError: Empty call or quantity below 1
            NotFoundError: Unknown purchase order or line
            ConflictError: Purchase order not open, or a line would be over-received
        """
        po_id = require_int(po_id, 'po_id')

        try:
            po = self._lock_po(po_id)
            if po.status not in OPEN_PO_STATUSES:
                raise ConflictError(
                    f"Purchase order {po.po_number} is {po.status.value} and cannot be received",
                    code='NOT_RECEIVABLE',
                    details={'status': po.status.value}
                )

            requested = self._validate_receipt(po, lines)
            by_id = {line.id: line for line in po.lines}

            results = []
            adjustments = []
            # Lock stock rows in a stable order
            for line_id in sorted(requested, key=lambda i: (by_id[i].component_id, i)):
                line = by_id[line_id]
                quantity = requested[line_id]

                line.quantity_received += quantity
                adjustment = self.stock_service.apply_adjustment(
                    line.component_id,
                    AdjustmentType.ADD,
                    quantity,
                    notes=f"Received against {po.po_number}",
                    reference_type=RECEIPT_REFERENCE,
                    reference_id=line.id
                )
                adjustments.append(adjustment)
                level = self.stock_service.change_on_order(line.component_id, -quantity)

                results.append({
                    'line_item_id': line.id,
                    'component_id': line.component_id,
                    'quantity_received_now': quantity,
                    'quantity_received': line.quantity_received,
                    'quantity_ordered': line.quantity_ordered,
                    'new_on_hand': adjustment.new_on_hand,
                    'on_order': level.on_order
                })

            previous = po.status
            if all(line.is_complete for line in po.lines):
                po.status = POStatus.RECEIVED
                po.received_date = date.today()
            elif any(line.quantity_received > 0 for line in po.lines):
                po.status = POStatus.PARTIAL

            self.session.commit()
        except InventoryEngineError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to receive purchase order: {str(e)}")

        for adjustment in adjustments:
            log_stock_movement(adjustment, source=po.po_number)
        logger.info(
            f"Received {sum(requested.values())} unit(s) on {po.po_number}: "
            f"{previous.value} -> {po.status.value}"
        )

        return {
            'po_id': po.id,
            'po_number': po.po_number,
            'status': po.status.value,
            'lines': results
        }
