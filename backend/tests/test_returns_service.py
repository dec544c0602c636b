from decimal import Decimal

import pytest

from paintledger.records import Product, Return
from paintledger.services import balance_service, payment_service, return_service, sales_service
from paintledger.services.return_service import ReturnError


@pytest.fixture
def paid_sale(store, customer, product):
    """3 x 10.00 sold and paid in full."""
    sale = sales_service.create_sale(
        store,
        {"customer_id": customer.id, "payment_method": "cash", "discount_amount": 0},
        [{"product_id": product.id, "quantity": 3, "unit_price": 10}],
    )
    payment_service.create_payment(store, {"sale_id": sale.id, "amount": 30, "payment_method": "cash"})
    return sale


@pytest.mark.returns
class TestCreateReturn:
    def test_return_restocks_and_credits_balance(self, store, customer, product, paid_sale):
        """
        SCENARIO: one unit of a paid 30.00 sale comes back
        EXPECTED: stock +1, balance {30, 30, 10, -10}
        """
        stock_after_sale = store.get(Product, product.id).stock

        ret = return_service.create_return(
            store,
            {"sale_id": paid_sale.id, "reason": "damaged can"},
            [{"product_id": product.id, "quantity": 1, "unit_price": 10}],
        )

        assert ret.total_amount == Decimal("10.00")
        assert store.get(Product, product.id).stock == stock_after_sale + 1

        balance = balance_service.get_customer_balance(store, customer.id)
        assert balance.total_sales == Decimal("30")
        assert balance.total_payments == Decimal("30")
        assert balance.total_returns == Decimal("10")
        assert balance.balance == Decimal("-10")

    def test_total_returns_is_sum_of_return_totals(self, store, customer, product, paid_sale):
        for quantity in (1, 2):
            return_service.create_return(
                store,
                {"sale_id": paid_sale.id},
                [{"product_id": product.id, "quantity": quantity, "unit_price": 10}],
            )

        balance = balance_service.get_customer_balance(store, customer.id)
        assert balance.total_returns == Decimal("30.00")
        assert store.get(Product, product.id).stock == product.stock

    def test_customer_defaults_to_sale_customer(self, store, customer, product, paid_sale):
        ret = return_service.create_return(
            store, {"sale_id": paid_sale.id}, [{"product_id": product.id, "quantity": 1, "unit_price": 10}]
        )

        assert ret.customer_id == customer.id
        assert ret.customer.name == customer.name
        assert ret.items[0].product.id == product.id

    def test_return_numbers_use_their_own_counter(self, store, customer, product, paid_sale):
        ret = return_service.create_return(
            store, {"sale_id": paid_sale.id}, [{"product_id": product.id, "quantity": 1, "unit_price": 10}]
        )

        assert ret.return_number.startswith("RET-")
        assert ret.return_number.endswith("-0001")

    def test_unknown_sale_without_customer_is_rejected(self, store, product):
        with pytest.raises(ReturnError):
            return_service.create_return(
                store, {"sale_id": 999}, [{"product_id": product.id, "quantity": 1, "unit_price": 10}]
            )

        assert store.count(Return) == 0
        assert store.get(Product, product.id).stock == product.stock

    def test_unknown_sale_with_explicit_customer_is_accepted(self, store, customer, product):
        ret = return_service.create_return(
            store,
            {"sale_id": 999, "customer_id": customer.id},
            [{"product_id": product.id, "quantity": 2, "unit_price": 10}],
        )

        assert ret.customer_id == customer.id
        assert balance_service.get_customer_balance(store, customer.id).balance == Decimal("-20.00")

    def test_sale_is_required(self, store):
        with pytest.raises(ReturnError):
            return_service.create_return(store, {}, [])

    def test_non_positive_quantity_is_rejected(self, store, product, paid_sale):
        with pytest.raises(ReturnError):
            return_service.create_return(
                store, {"sale_id": paid_sale.id}, [{"product_id": product.id, "quantity": 0, "unit_price": 10}]
            )


@pytest.mark.returns
class TestReadReturns:
    def test_list_and_filter_by_sale(self, store, customer, product, paid_sale):
        other_sale = sales_service.create_sale(
            store,
            {"customer_id": customer.id, "payment_method": "check"},
            [{"product_id": product.id, "quantity": 1, "unit_price": 10}],
        )
        for sale in (paid_sale, other_sale):
            return_service.create_return(
                store, {"sale_id": sale.id}, [{"product_id": product.id, "quantity": 1, "unit_price": 10}]
            )

        assert len(return_service.list_returns(store)) == 2
        assert [r.sale_id for r in return_service.get_returns_for_sale(store, other_sale.id)] == [other_sale.id]

    def test_get_missing_return(self, store):
        assert return_service.get_return(store, 12) is None
