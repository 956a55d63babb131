"""
Unit tests for the inventory ledger (reserve / release / availability).
"""

import pytest

from storefront.database import unit_of_work
from storefront.exceptions import (
    InsufficientStockError, InvalidArgumentError, NotFoundError, ProductUnavailableError
)
from storefront.services import inventory_service
from storefront.services.inventory_service import StockIssueKind


class TestCheckAvailability:
    """Read-only checks return issues instead of raising."""

    def test_available(self, session, headphones):
        assert inventory_service.check_availability(session, headphones.id, 10) is None

    def test_insufficient_stock(self, session, headphones):
        issue = inventory_service.check_availability(session, headphones.id, 11)

        assert issue.kind is StockIssueKind.INSUFFICIENT_STOCK
        assert issue.available == 10
        assert issue.requested == 11
        assert isinstance(issue.to_error(), InsufficientStockError)

    def test_inactive_product(self, session, make_product):
        product = make_product('Retired', '5.00', 3, active=False)
        issue = inventory_service.check_availability(session, product.id, 1)

        assert issue.kind is StockIssueKind.INACTIVE
        assert isinstance(issue.to_error(), ProductUnavailableError)

    def test_unknown_product(self, session):
        issue = inventory_service.check_availability(session, 9999, 1)

        assert issue.kind is StockIssueKind.NOT_FOUND
        assert isinstance(issue.to_error(), NotFoundError)

    def test_archived_product_counts_as_missing(self, session, headphones):
        headphones.archived = True
        session.commit()

        issue = inventory_service.check_availability(session, headphones.id, 1)
        assert issue.kind is StockIssueKind.NOT_FOUND


class TestReserve:
    """Stock decrements."""

    def test_reserve_decrements_stock(self, session, headphones, refetch):
        with unit_of_work(session):
            product = inventory_service.reserve(session, headphones.id, 4)

        assert product.stock == 6
        assert refetch(headphones).stock == 6

    def test_reserve_more_than_available_leaves_stock_unchanged(self, session, headphones, refetch):
        with pytest.raises(InsufficientStockError) as exc_info:
            with unit_of_work(session):
                inventory_service.reserve(session, headphones.id, 11)

        assert exc_info.value.available == 10
        assert exc_info.value.requested == 11
        assert exc_info.value.status_code == 409
        assert refetch(headphones).stock == 10

    def test_last_unit_goes_to_exactly_one_reservation(self, session, yoga_mat, refetch):
        """Two reservations for the last unit: the second one loses."""
        with unit_of_work(session):
            inventory_service.reserve(session, yoga_mat.id, 1)

        with pytest.raises(InsufficientStockError):
            with unit_of_work(session):
                inventory_service.reserve(session, yoga_mat.id, 1)

        assert refetch(yoga_mat).stock == 0

    def test_reserve_inactive_product(self, session, make_product):
        product = make_product('Retired', '5.00', 3, active=False)

        with pytest.raises(ProductUnavailableError):
            inventory_service.reserve(session, product.id, 1)

    def test_reserve_unknown_product(self, session):
        with pytest.raises(NotFoundError):
            inventory_service.reserve(session, 9999, 1)

    @pytest.mark.parametrize('quantity', [0, -3])
    def test_reserve_requires_positive_quantity(self, session, headphones, quantity):
        with pytest.raises(InvalidArgumentError):
            inventory_service.reserve(session, headphones.id, quantity)

    def test_rollback_discards_reservation(self, session, headphones, refetch):
        """Reservations live and die with the surrounding transaction."""
        with pytest.raises(RuntimeError):
            with unit_of_work(session):
                inventory_service.reserve(session, headphones.id, 3)
                raise RuntimeError('order creation failed')

        assert refetch(headphones).stock == 10


class TestRelease:
    """Stock increments."""

    def test_release_increments_stock(self, session, headphones, refetch):
        with unit_of_work(session):
            inventory_service.release(session, headphones.id, 5)

        assert refetch(headphones).stock == 15

    def test_release_archived_product(self, session, headphones, refetch):
        """Units come back even if the product was archived meanwhile."""
        headphones.archived = True
        session.commit()

        with unit_of_work(session):
            inventory_service.release(session, headphones.id, 2)

        assert refetch(headphones).stock == 12

    def test_release_unknown_product(self, session):
        with pytest.raises(NotFoundError):
            inventory_service.release(session, 9999, 1)


class TestAdjustStock:

    def test_positive_and_negative_deltas(self, session, headphones):
        with unit_of_work(session):
            assert inventory_service.adjust_stock(session, headphones.id, 5).stock == 15
        with unit_of_work(session):
            assert inventory_service.adjust_stock(session, headphones.id, -15).stock == 0

    def test_cannot_go_negative(self, session, headphones, refetch):
        with pytest.raises(InsufficientStockError):
            inventory_service.adjust_stock(session, headphones.id, -11)

        session.rollback()
        assert refetch(headphones).stock == 10
