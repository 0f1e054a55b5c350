"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.gateway import get_gateway
from ordering.order.order import Order
from protean import current_domain
from pytest_bdd import given, parsers, then


@pytest.fixture()
def outcome():
    """Holds the last result or error of a When step."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an order {order_id:d} paid by "{method}" with payment status "{payment_status}"'))
def _(seed_order, order_id, method, payment_status):
    seed_order(order_id=order_id, payment_method=method, payment_status=payment_status)


@given(parsers.cfparse('a payin "{code}" of {amount:d} from account "{account}" at bank "{bank}"'))
def _(seed_payin, code, amount, account, bank):
    seed_payin(amount=float(amount), transaction_code=code, account_number=account, bank_code=bank)


@given(parsers.cfparse("the payout account balance is {balance:d}"))
def _(balance):
    get_gateway().configure(should_succeed=True, balance=float(balance))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('order {order_id:d} is "{status}" with payment status "{payment_status}"'))
def _(order_id, status, payment_status):
    order = current_domain.repository_for(Order).get(order_id)
    assert order.status == status
    assert order.payment_status == payment_status


@then("no payout was sent")
def _():
    assert get_gateway().payout_calls() == []


@then(parsers.cfparse("exactly {count:d} payout was sent"))
def _(count):
    assert len(get_gateway().payout_calls()) == count
