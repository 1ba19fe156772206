"""
Order Service

Creates and updates orders and fires commission processing when an order
becomes COMPLETED or PAID. Commissions run after the order is committed;
a commission failure is logged and leaves the order in place so the run
can be retried from the commissions endpoint.
"""
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy import select, func, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_commerce.core.exceptions import (
    AppError,
    NotFoundError,
    BadRequestError,
    InternalServiceError,
)
from mlm_commerce.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from mlm_commerce.models.product import Product
from mlm_commerce.models.user import User
from mlm_commerce.services.commission_service import CommissionService

logger = logging.getLogger(__name__)


class OrderService:
    """Order lifecycle and the commission trigger."""

    def __init__(self, db: AsyncSession, commission_service: Optional[CommissionService] = None):
        self.db = db
        self.commission_service = commission_service or CommissionService(db)

    # ==================== ORDER NUMBER GENERATION ====================

    async def generate_order_number(self) -> str:
        """Generate unique order number: ORD-YYYYMMDD-XXXX"""
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        prefix = f"ORD-{today}-"

        stmt = select(func.count(Order.id)).where(
            Order.order_number.like(f"{prefix}%")
        )
        count = (await self.db.execute(stmt)).scalar() or 0

        return f"{prefix}{(count + 1):04d}"

    # ==================== Lookups ====================

    async def get_order_by_id(self, order_id: uuid.UUID) -> Order:
        result = await self.db.execute(select(Order).where(Order.id == order_id))
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def get_orders(
        self,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[OrderStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Order], int]:
        """Get paginated orders with filters."""
        filters = []
        if user_id:
            filters.append(Order.user_id == user_id)
        if status:
            filters.append(Order.status == OrderStatus(status).value)
        if payment_status:
            filters.append(Order.payment_status == PaymentStatus(payment_status).value)

        stmt = select(Order)
        count_stmt = select(func.count(Order.id))
        if filters:
            stmt = stmt.where(and_(*filters))
            count_stmt = count_stmt.where(and_(*filters))

        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    # ==================== Lifecycle ====================

    async def create_order(
        self,
        user_id: uuid.UUID,
        items: List[Dict[str, Any]],
        status: OrderStatus = OrderStatus.PENDING,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        notes: Optional[str] = None,
    ) -> Order:
        """
        Create an order from line items.

        Args:
            items: [{"product_id": UUID, "quantity": int}, ...]

        Order and items are committed together; stock is decremented in the
        same transaction.
        """
        if not items:
            raise BadRequestError("Order must contain at least one item")

        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")

        order_number = await self.generate_order_number()

        try:
            order = Order(
                order_number=order_number,
                user_id=user_id,
                status=OrderStatus(status).value,
                payment_status=PaymentStatus(payment_status).value,
                notes=notes,
            )

            subtotal = Decimal("0")
            pv_points = 0
            for item in items:
                quantity = int(item["quantity"])
                if quantity <= 0:
                    raise BadRequestError("Quantity must be positive")

                product = await self.db.get(Product, item["product_id"])
                if not product or not product.is_active:
                    raise NotFoundError(f"Product {item['product_id']} not found")
                if product.stock < quantity:
                    raise BadRequestError(f"Insufficient stock for {product.name}")

                line_total = (Decimal(str(product.price)) * quantity).quantize(Decimal("0.01"))
                order.items.append(OrderItem(
                    product_id=product.id,
                    quantity=quantity,
                    unit_price=product.price,
                    total_price=line_total,
                    pv_points=product.pv_value * quantity,
                ))
                product.stock -= quantity
                subtotal += line_total
                pv_points += product.pv_value * quantity

            order.subtotal = subtotal
            order.total = subtotal
            order.pv_points = pv_points

            self.db.add(order)
            await self.db.commit()
            await self.db.refresh(order)

        except AppError:
            await self.db.rollback()
            raise
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(f"Database integrity error creating order: {e}")
            raise InternalServiceError("Failed to create order") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error creating order: {e}")
            raise InternalServiceError("Failed to create order") from e

        logger.info(f"Created order {order.order_number} for {user.email}, total {order.total}")
        await self._trigger_commissions(order)
        return order

    async def update_order(
        self,
        order_id: uuid.UUID,
        status: Optional[OrderStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        notes: Optional[str] = None,
    ) -> Order:
        """
        Update status fields; fires commissions on COMPLETED or PAID.

        A CANCELLED status is handled by cancel_order.
        """
        order = await self.get_order_by_id(order_id)

        if order.status == OrderStatus.CANCELLED.value:
            raise BadRequestError("Cancelled orders cannot be updated")

        if status is not None and OrderStatus(status) == OrderStatus.CANCELLED:
            return await self.cancel_order(order_id)

        try:
            if status is not None:
                order.status = OrderStatus(status).value
            if payment_status is not None:
                order.payment_status = PaymentStatus(payment_status).value
            if notes is not None:
                order.notes = notes

            await self.db.commit()
            await self.db.refresh(order)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error updating order {order_id}: {e}")
            raise InternalServiceError("Failed to update order") from e

        logger.info(f"Order {order.order_number} now {order.status}/{order.payment_status}")
        await self._trigger_commissions(order)
        return order

    async def cancel_order(self, order_id: uuid.UUID) -> Order:
        """Cancel a PENDING order and put its stock back."""
        order = await self.get_order_by_id(order_id)

        if order.status != OrderStatus.PENDING.value:
            raise BadRequestError("Only pending orders can be cancelled")

        try:
            for item in order.items:
                product = await self.db.get(Product, item.product_id)
                if product:
                    product.stock += item.quantity

            order.status = OrderStatus.CANCELLED.value
            order.payment_status = PaymentStatus.REFUNDED.value
            await self.db.commit()
            await self.db.refresh(order)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error cancelling order {order_id}: {e}")
            raise InternalServiceError("Failed to cancel order") from e

        logger.info(f"Cancelled order {order.order_number}")
        return order

    async def _trigger_commissions(self, order: Order) -> None:
        """Run commissions for a commissionable order; failures are logged only."""
        if not order.is_commissionable:
            return

        order_number = order.order_number
        try:
            await self.commission_service.process_order_commission(order.id)
        except AppError as e:
            logger.error(f"Commission processing failed for order {order_number}: {e.message}")
            # The failed run rolled the session back, reload the committed order
            await self.db.refresh(order)

    # ==================== Stats ====================

    async def get_order_stats(self, user_id: Optional[uuid.UUID] = None) -> Dict[str, Any]:
        """Order counts by status and completed revenue."""
        base_filter = []
        if user_id:
            base_filter.append(Order.user_id == user_id)

        result = await self.db.execute(
            select(Order.status, func.count(Order.id))
            .where(*base_filter)
            .group_by(Order.status)
        )
        status_counts = {status.value: 0 for status in OrderStatus}
        status_counts.update({status: count for status, count in result.all()})

        revenue_result = await self.db.execute(
            select(func.coalesce(func.sum(Order.total), 0)).where(
                *base_filter,
                Order.status == OrderStatus.COMPLETED.value,
            )
        )
        pv_result = await self.db.execute(
            select(func.coalesce(func.sum(Order.pv_points), 0)).where(
                *base_filter,
                Order.status == OrderStatus.COMPLETED.value,
            )
        )

        return {
            "total_orders": sum(status_counts.values()),
            "pending_orders": status_counts[OrderStatus.PENDING.value],
            "processing_orders": status_counts[OrderStatus.PROCESSING.value],
            "completed_orders": status_counts[OrderStatus.COMPLETED.value],
            "cancelled_orders": status_counts[OrderStatus.CANCELLED.value],
            "total_revenue": Decimal(str(revenue_result.scalar() or 0)).quantize(Decimal("0.01")),
            "total_pv_points": int(pv_result.scalar() or 0),
        }
