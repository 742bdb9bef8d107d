# Overview: Pytest coverage for StockManager (deltas, set-level, low stock, ledger replay).

"""
Stock Manager Tests

Covers the single stock mutation path:
1. Deltas update stock and write exactly one movement
2. Stock never goes negative; a refused delta writes nothing
3. Set-level derives its delta from the current value
4. Low-stock listing and tenant scoping
5. Replaying the movement ledger reproduces current stock
"""

import pytest

from barpos.errors import NotFoundError, InsufficientStockError, InvalidInputError
from barpos.models import Product, StockMovement, StockMovementType
from barpos.services.stock_service import StockManager


def _movements(db_session, product_id):
    return (
        db_session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.id.asc())
        .all()
    )


# =============================================================================
# RELATIVE ADJUSTMENTS
# =============================================================================


class TestAdjustStock:
    """adjust_stock / apply_stock_delta behavior."""

    def test_sale_to_low_stock(self, db_session, tenant_a, product_factory):
        p = product_factory(tenant_a.id, "Lager", stock=10, low_stock_threshold=5)
        manager = StockManager(db_session)

        movement = manager.adjust_stock(
            tenant_id=tenant_a.id, product_id=p.id, delta=-7, movement_type=StockMovementType.SALE
        )

        assert movement.delta == -7
        assert movement.previous_stock == 10
        assert movement.new_stock == 3
        assert movement.type == StockMovementType.SALE

        product = db_session.get(Product, p.id)
        assert product.stock_quantity == 3
        assert product.is_available is True

        low = manager.get_low_stock_products(tenant_id=tenant_a.id)
        assert [x.id for x in low] == [p.id]

    def test_sale_down_to_zero_marks_unavailable(self, db_session, tenant_a, product_factory):
        p = product_factory(tenant_a.id, "Lager", stock=3)
        manager = StockManager(db_session)

        movement = manager.adjust_stock(tenant_id=tenant_a.id, product_id=p.id, delta=-3, movement_type="SALE")

        assert movement.new_stock == 0
        product = db_session.get(Product, p.id)
        assert product.stock_quantity == 0
        assert product.is_available is False

    def test_insufficient_stock_writes_nothing(self, db_session, tenant_a, product_factory):
        p = product_factory(tenant_a.id, "Lager", stock=0)
        manager = StockManager(db_session)
        before = len(_movements(db_session, p.id))

        with pytest.raises(InsufficientStockError) as exc_info:
            manager.adjust_stock(tenant_id=tenant_a.id, product_id=p.id, delta=-1, movement_type="SALE")

        assert exc_info.value.details == {"product_id": p.id, "available": 0, "requested": 1}
        assert db_session.get(Product, p.id).stock_quantity == 0
        assert len(_movements(db_session, p.id)) == before

    def test_restock_makes_available(self, db_session, tenant_a, product_factory):
        p = product_factory(tenant_a.id, "Lager", stock=0)
        manager = StockManager(db_session)

        manager.adjust_stock(tenant_id=tenant_a.id, product_id=p.id, delta=12, movement_type="restock")

        product = db_session.get(Product, p.id)
        assert product.stock_quantity == 12
        assert product.is_available is True

    def test_type_defaults_to_adjustment(self, db_session, tenant_a, beer):
        movement = StockManager(db_session).adjust_stock(tenant_id=tenant_a.id, product_id=beer.id, delta=2)
        assert movement.type == StockMovementType.ADJUSTMENT

    @pytest.mark.parametrize("delta", [0, None, 1.5, True, "3"])
    def test_rejects_invalid_delta(self, db_session, tenant_a, beer, delta):
        with pytest.raises(InvalidInputError):
            StockManager(db_session).adjust_stock(tenant_id=tenant_a.id, product_id=beer.id, delta=delta)

    def test_rejects_unknown_type(self, db_session, tenant_a, beer):
        with pytest.raises(InvalidInputError):
            StockManager(db_session).adjust_stock(
                tenant_id=tenant_a.id, product_id=beer.id, delta=1, movement_type="GIFT"
            )

    def test_missing_product(self, db_session, tenant_a):
        with pytest.raises(NotFoundError):
            StockManager(db_session).adjust_stock(tenant_id=tenant_a.id, product_id=99999, delta=1)

    def test_actor_and_note_recorded(self, db_session, tenant_a, beer):
        movement = StockManager(db_session).adjust_stock(
            tenant_id=tenant_a.id, product_id=beer.id, delta=-1,
            movement_type=StockMovementType.SPOILAGE, note="dropped bottle", actor_id=42,
        )
        assert movement.note == "dropped bottle"
        assert movement.created_by_id == 42


# =============================================================================
# ABSOLUTE LEVEL
# =============================================================================


class TestSetStockLevel:

    def test_count_from_zero(self, db_session, tenant_a, product_factory):
        p = product_factory(tenant_a.id, "Lager", stock=0)

        movement = StockManager(db_session).set_stock_level(
            tenant_id=tenant_a.id, product_id=p.id, quantity=20
        )

        assert movement.delta == 20
        assert movement.type == StockMovementType.INVENTORY_COUNT
        assert movement.new_stock == 20
        assert db_session.get(Product, p.id).stock_quantity == 20

    def test_count_down(self, db_session, tenant_a, beer):
        movement = StockManager(db_session).set_stock_level(
            tenant_id=tenant_a.id, product_id=beer.id, quantity=6
        )
        assert movement.delta == -4
        assert movement.previous_stock == 10

    def test_same_level_records_zero_delta(self, db_session, tenant_a, beer):
        manager = StockManager(db_session)
        before = len(_movements(db_session, beer.id))

        movement = manager.set_stock_level(tenant_id=tenant_a.id, product_id=beer.id, quantity=10)

        assert movement.delta == 0
        assert db_session.get(Product, beer.id).stock_quantity == 10
        assert len(_movements(db_session, beer.id)) == before + 1

    def test_set_to_zero_marks_unavailable(self, db_session, tenant_a, beer):
        StockManager(db_session).set_stock_level(tenant_id=tenant_a.id, product_id=beer.id, quantity=0)
        assert db_session.get(Product, beer.id).is_available is False

    @pytest.mark.parametrize("quantity", [-1, None, 2.0])
    def test_rejects_invalid_quantity(self, db_session, tenant_a, beer, quantity):
        with pytest.raises(InvalidInputError):
            StockManager(db_session).set_stock_level(
                tenant_id=tenant_a.id, product_id=beer.id, quantity=quantity
            )


# =============================================================================
# QUERIES
# =============================================================================


class TestStockQueries:

    def test_low_stock_ordering_and_threshold(self, db_session, tenant_a, product_factory):
        a = product_factory(tenant_a.id, "A", stock=5, low_stock_threshold=5)
        b = product_factory(tenant_a.id, "B", stock=1, low_stock_threshold=2)
        product_factory(tenant_a.id, "C", stock=6, low_stock_threshold=5)
        d = product_factory(tenant_a.id, "D", stock=0, low_stock_threshold=0)

        low = StockManager(db_session).get_low_stock_products(tenant_id=tenant_a.id)

        assert [p.id for p in low] == [d.id, b.id, a.id]

    def test_low_stock_scoped_to_tenant(self, db_session, tenant_a, tenant_b, product_factory):
        product_factory(tenant_b.id, "Other", stock=0)
        assert StockManager(db_session).get_low_stock_products(tenant_id=tenant_a.id) == []

    def test_check_availability(self, db_session, tenant_a, beer, wine, product_b):
        levels = StockManager(db_session).check_stock_availability(
            tenant_id=tenant_a.id, product_ids=[beer.id, wine.id, product_b.id]
        )
        assert levels == {beer.id: 10, wine.id: 4}

    def test_get_stock_level(self, db_session, tenant_a, beer):
        assert StockManager(db_session).get_stock_level(tenant_id=tenant_a.id, product_id=beer.id) == 10

    def test_movements_newest_first_with_limit(self, db_session, tenant_a, beer):
        manager = StockManager(db_session)
        for delta in (1, 2, 3):
            manager.adjust_stock(tenant_id=tenant_a.id, product_id=beer.id, delta=delta)

        rows = manager.list_stock_movements(tenant_id=tenant_a.id, product_id=beer.id, limit=2)

        assert [r.delta for r in rows] == [3, 2]

    def test_movements_limit_is_clamped(self, db_session, tenant_a, beer):
        manager = StockManager(db_session)
        for _ in range(3):
            manager.adjust_stock(tenant_id=tenant_a.id, product_id=beer.id, delta=1)

        rows = manager.list_stock_movements(
            tenant_id=tenant_a.id, product_id=beer.id, limit=500, max_limit=2
        )
        assert len(rows) == 2


# =============================================================================
# TENANT ISOLATION
# =============================================================================


class TestStockTenantIsolation:

    def test_cannot_adjust_other_tenant_product(self, db_session, tenant_a, product_b):
        with pytest.raises(NotFoundError):
            StockManager(db_session).adjust_stock(tenant_id=tenant_a.id, product_id=product_b.id, delta=1)
        assert db_session.get(Product, product_b.id).stock_quantity == 8

    def test_cannot_set_other_tenant_product(self, db_session, tenant_a, product_b):
        with pytest.raises(NotFoundError):
            StockManager(db_session).set_stock_level(
                tenant_id=tenant_a.id, product_id=product_b.id, quantity=0
            )


# =============================================================================
# LEDGER REPLAY
# =============================================================================


class TestLedgerReplay:

    def test_replay_matches_stock(self, db_session, tenant_a, beer):
        manager = StockManager(db_session)
        manager.adjust_stock(tenant_id=tenant_a.id, product_id=beer.id, delta=-4, movement_type="SALE")
        manager.set_stock_level(tenant_id=tenant_a.id, product_id=beer.id, quantity=15)
        manager.adjust_stock(tenant_id=tenant_a.id, product_id=beer.id, delta=-2, movement_type="SPOILAGE")

        report = manager.verify_ledger(tenant_id=tenant_a.id, product_id=beer.id)

        assert report["consistent"] is True
        assert report["movement_count"] == 4  # initial stock + three changes
        assert report["replayed_stock"] == 13
        assert report["stock_quantity"] == 13
        assert report["broken_movements"] == []

    def test_each_movement_continues_previous(self, db_session, tenant_a, beer):
        manager = StockManager(db_session)
        manager.adjust_stock(tenant_id=tenant_a.id, product_id=beer.id, delta=-1)
        manager.adjust_stock(tenant_id=tenant_a.id, product_id=beer.id, delta=5)

        rows = _movements(db_session, beer.id)
        running = 0
        for m in rows:
            assert m.previous_stock == running
            assert m.new_stock == m.previous_stock + m.delta
            running = m.new_stock
        assert running == db_session.get(Product, beer.id).stock_quantity

    def test_detects_stock_written_outside_ledger(self, db_session, tenant_a, beer):
        product = db_session.get(Product, beer.id)
        product.stock_quantity = 99
        db_session.commit()

        report = StockManager(db_session).verify_ledger(tenant_id=tenant_a.id, product_id=beer.id)

        assert report["consistent"] is False
        assert report["replayed_stock"] == 10
        assert report["stock_quantity"] == 99
