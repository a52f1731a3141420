from datetime import timedelta
from decimal import Decimal

import pytest

from chalicelib.constants.constants import UserRole, OrderStatus
from chalicelib.constants.status_codes import http200, http403
from chalicelib.inputs import CreateOrderInput, GetOrdersInput
from test.utils.fixtures import TEST_NOW
from test.utils.request_utils import make_request, create_user, create_restaurant, create_dish

DISH_OPTIONS = [
    {'name': 'Size', 'choices': [{'name': 'L', 'extra': 2}, {'name': 'S'}]},
    {'name': 'Extra cheese', 'extra': 1}
]


@pytest.fixture
def menu(services):
    owner, owner_token = create_user(services, 'owner@test.com', UserRole.owner)
    restaurant_id = create_restaurant(services, owner)
    dish_id = create_dish(services, owner, restaurant_id, price=10, options=DISH_OPTIONS)
    return owner, owner_token, restaurant_id, dish_id


@pytest.fixture
def customer(services):
    return create_user(services, 'client@test.com', UserRole.client)


def place_order(services, customer_user, restaurant_id, dish_id, options=None):
    output = services.orders.create_order(customer_user, CreateOrderInput(
        restaurant_id=restaurant_id, items=[{'dish_id': dish_id, 'options': options or []}]))
    assert output['ok'], output
    return output['order_id']


def test_create_order(chalice_client, services, menu, customer):
    _, _, restaurant_id, dish_id = menu
    customer_user, token = customer

    response = make_request(chalice_client, endpoint='/orders', method='POST', token=token, json_body={
        'restaurant_id': restaurant_id,
        'items': [
            {'dish_id': dish_id, 'options': [{'name': 'Size', 'choice': 'L'}, {'name': 'Extra cheese'}]},
            {'dish_id': dish_id, 'options': [{'name': 'Size', 'choice': 'S'}, {'name': 'Unknown'}]}
        ]
    })
    assert response.status_code == http200
    order = services.orders.orders.find_by_id(response.json_body['order_id'])

    assert order.customer_id == customer_user.id_
    assert order.driver_id is None
    assert order.status == OrderStatus.pending
    assert [item['price'] for item in order.items] == [Decimal('13.00'), Decimal('10.00')]
    assert order.total == Decimal('23.00')


def test_create_order_requires_client_role(chalice_client, menu):
    _, owner_token, restaurant_id, dish_id = menu
    response = make_request(chalice_client, endpoint='/orders', method='POST', token=owner_token, json_body={
        'restaurant_id': restaurant_id,
        'items': [{'dish_id': dish_id}]
    })
    assert response.status_code == http403


def test_create_order_not_found(services, menu, customer):
    _, _, restaurant_id, dish_id = menu
    customer_user, _ = customer

    output = services.orders.create_order(customer_user, CreateOrderInput(
        restaurant_id='missing', items=[{'dish_id': dish_id}]))
    assert output == {'ok': False, 'error': 'Restaurant not found', 'error_type': 'NotFound'}

    output = services.orders.create_order(customer_user, CreateOrderInput(
        restaurant_id=restaurant_id, items=[{'dish_id': 'missing'}]))
    assert output == {'ok': False, 'error': 'Dish not found', 'error_type': 'NotFound'}


def test_get_orders_by_role(services, menu, customer):
    owner, _, restaurant_id, dish_id = menu
    customer_user, _ = customer
    other_customer, _ = create_user(services, 'other-client@test.com', UserRole.client)
    other_owner, _ = create_user(services, 'other-owner@test.com', UserRole.owner)
    driver, _ = create_user(services, 'delivery@test.com', UserRole.delivery)
    order_id = place_order(services, customer_user, restaurant_id, dish_id)

    def order_ids(user, status=None):
        output = services.orders.get_orders(user, GetOrdersInput(status=status))
        assert output['ok'], output
        return [order['id'] for order in output['orders']]

    assert order_ids(customer_user) == [order_id]
    assert order_ids(owner) == [order_id]
    assert order_ids(other_customer) == []
    assert order_ids(other_owner) == []
    assert order_ids(driver) == []
    assert order_ids(customer_user, status=OrderStatus.cooking) == []


def test_get_orders_route_filters_status(chalice_client, services, menu, customer):
    _, _, restaurant_id, dish_id = menu
    customer_user, token = customer
    order_id = place_order(services, customer_user, restaurant_id, dish_id)

    response = make_request(chalice_client, endpoint='/orders', query='status=Pending', token=token)
    assert [order['id'] for order in response.json_body['orders']] == [order_id]

    response = make_request(chalice_client, endpoint='/orders', query='status=Lost', token=token)
    assert response.json_body['error_type'] == 'ValidationFailed'


def test_get_order(chalice_client, services, menu, customer):
    _, owner_token, restaurant_id, dish_id = menu
    customer_user, token = customer
    _, other_token = create_user(services, 'other-client@test.com', UserRole.client)
    order_id = place_order(services, customer_user, restaurant_id, dish_id)

    response = make_request(chalice_client, endpoint=f'/orders/{order_id}', token=token)
    assert response.json_body['order']['id'] == order_id
    assert response.json_body['order']['total'] == 10

    response = make_request(chalice_client, endpoint=f'/orders/{order_id}', token=owner_token)
    assert response.json_body['order']['id'] == order_id

    response = make_request(chalice_client, endpoint=f'/orders/{order_id}', token=other_token)
    assert response.json_body == {'ok': False, 'error': "You can't see that", 'error_type': 'NotAuthorized'}

    response = make_request(chalice_client, endpoint='/orders/missing', token=token)
    assert response.json_body == {'ok': False, 'error': 'Order not found.', 'error_type': 'NotFound'}


def test_orders_are_dated_by_clock(services, menu, customer, clock):
    _, _, restaurant_id, dish_id = menu
    customer_user, _ = customer
    first_id = place_order(services, customer_user, restaurant_id, dish_id)
    clock.now = TEST_NOW + timedelta(minutes=5)
    second_id = place_order(services, customer_user, restaurant_id, dish_id)

    assert services.orders.orders.find_by_id(first_id).date_created == TEST_NOW.isoformat()
    output = services.orders.get_orders(customer_user, GetOrdersInput())
    assert [order['id'] for order in output['orders']] == [second_id, first_id]
