from datetime import datetime
from decimal import Decimal
from typing import Tuple, List, Dict, Optional, Callable
from uuid import uuid4

from boto3.dynamodb.conditions import Attr

from chalicelib import ownership
from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import OrderStatus, UserRole
from chalicelib.dishes import Dish, DishRepository, to_price
from chalicelib.inputs import CreateOrderInput, GetOrdersInput
from chalicelib.restaurants import RestaurantRepository
from chalicelib.utils import app as utils_app, exceptions
from chalicelib.utils.app import core_output
from chalicelib.utils.data import utc_now, to_iso
from chalicelib.utils.db import DbTable
from chalicelib.utils.logger import logger


class Order(EntityBase):
    pk = keys_structure.orders_pk
    sk = keys_structure.orders_sk
    record_type = 'order'

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'customer_id': lambda x: isinstance(x, str),
        'restaurant_id': lambda x: isinstance(x, str),
        'items': lambda x: isinstance(x, list) and len(x) > 0,
        'total': lambda x: isinstance(x, Decimal),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'status': lambda x: x in OrderStatus.all,
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'driver_id': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.customer_id: str = kwargs.get('customer_id')
        self.driver_id: Optional[str] = kwargs.get('driver_id')
        self.restaurant_id: str = kwargs.get('restaurant_id')
        self.items: List[Dict] = kwargs.get('items') or []
        self.total: Decimal = to_price(kwargs.get('total'))
        self.status: str = kwargs.get('status', OrderStatus.pending)
        self.date_created: str = kwargs.get('date_created') or to_iso(utc_now())
        self.date_updated: str = kwargs.get('date_updated') or self.date_created

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(order_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'customer_id': self.customer_id,
            'driver_id': self.driver_id,
            'restaurant_id': self.restaurant_id,
            'items': self.items,
            'total': self.total,
            'status': self.status,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }


def get_item_price(dish: Dish, chosen_options: List[Dict]) -> Decimal:
    """
    Dish price plus the extra of every chosen option,
    an option without its own extra adds the extra of the chosen choice
    """
    price = dish.price
    for chosen_option in chosen_options:
        dish_option = dish.find_option(chosen_option.get('name'))
        if dish_option is None:
            continue
        if dish_option.get('extra'):
            price += to_price(dish_option['extra'])
            continue
        dish_choice = next((choice for choice in dish_option.get('choices') or []
                            if choice.get('name') == chosen_option.get('choice')), None)
        if dish_choice is not None and dish_choice.get('extra'):
            price += to_price(dish_choice['extra'])
    return price


class OrderRepository:
    def __init__(self, table: DbTable):
        self.table = table

    def find_by_id(self, order_id: str) -> Optional[Order]:
        db_record = self.table.find_db_item(Order.pk, Order.sk.format(order_id=order_id))
        return Order.from_db_record(db_record) if db_record else None

    def find(self, filter_expression) -> List[Order]:
        db_records = self.table.query_items_paged(Order.pk, filter_expression=filter_expression)
        return sorted([Order.from_db_record(record) for record in db_records],
                      key=lambda order: order.date_created, reverse=True)


class OrderService:
    def __init__(self, table: DbTable, orders: OrderRepository, restaurants: RestaurantRepository,
                 dishes: DishRepository, clock: Callable[[], datetime] = utc_now):
        self.table = table
        self.orders = orders
        self.restaurants = restaurants
        self.dishes = dishes
        self.clock = clock

    @utils_app.log_start_finish
    @utils_app.service_boundary('Could not create order.')
    def create_order(self, customer, order_input: CreateOrderInput):
        restaurant = ownership.ensure_exists(self.restaurants.find_by_id(order_input.restaurant_id),
                                             'Restaurant not found')
        order_items = []
        for item in order_input.items:
            dish = self.dishes.find_by_id(item['dish_id'])
            if dish is None or dish.restaurant_id != restaurant.id_:
                raise exceptions.RecordNotFound('Dish not found')
            chosen_options = item.get('options') or []
            order_items.append({
                'dish_id': dish.id_,
                'name': dish.name,
                'options': chosen_options,
                'price': get_item_price(dish, chosen_options)
            })

        order = Order(
            id_=str(uuid4()),
            customer_id=customer.id_,
            restaurant_id=restaurant.id_,
            items=order_items,
            total=sum((item['price'] for item in order_items), Decimal('0')),
            status=OrderStatus.pending,
            date_created=to_iso(self.clock())
        )
        order.create_db_record(self.table)
        logger.info(f'create_order ::: order_id={order.id_} total={order.total}')
        return core_output(order_id=order.id_)

    def _visible_orders_filter(self, user):
        if user.role == UserRole.client:
            return Attr('customer_id').eq(user.id_)
        if user.role == UserRole.delivery:
            return Attr('driver_id').eq(user.id_)
        restaurant_ids = [restaurant.id_ for restaurant in self.restaurants.find(Attr('owner_id').eq(user.id_))]
        if not restaurant_ids:
            return None
        return Attr('restaurant_id').is_in(restaurant_ids)

    @utils_app.service_boundary('Could not get orders')
    def get_orders(self, user, orders_input: GetOrdersInput):
        filter_expression = self._visible_orders_filter(user)
        if filter_expression is None:
            return core_output(orders=[])
        if orders_input.status:
            filter_expression = filter_expression & Attr('status').eq(orders_input.status)
        return core_output(orders=[order.to_ui() for order in self.orders.find(filter_expression)])

    def can_see_order(self, user, order: Order) -> bool:
        if user.role == UserRole.client:
            return order.customer_id == user.id_
        if user.role == UserRole.delivery:
            return order.driver_id == user.id_
        restaurant = self.restaurants.find_by_id(order.restaurant_id)
        return restaurant is not None and restaurant.owner_id == user.id_

    @utils_app.service_boundary('Could not load order.')
    def get_order(self, user, order_id: str):
        order = ownership.ensure_exists(self.orders.find_by_id(order_id), 'Order not found.')
        if not self.can_see_order(user, order):
            raise exceptions.AccessDenied("You can't see that")
        return core_output(order=order.to_ui())
