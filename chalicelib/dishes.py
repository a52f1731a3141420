from datetime import datetime
from decimal import Decimal
from typing import List, Tuple, Optional, Callable
from uuid import uuid4

from boto3.dynamodb.conditions import Attr

from chalicelib import ownership
from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.inputs import CreateDishInput, EditDishInput
from chalicelib.utils import app as utils_app
from chalicelib.utils.app import core_output
from chalicelib.utils.data import utc_now, to_iso
from chalicelib.utils.db import DbTable
from chalicelib.utils.logger import logger


def to_price(value) -> Optional[Decimal]:
    if type(value) in [int, float, Decimal]:
        return Decimal(str(value)).quantize(Decimal('1.00'))
    return None


class Dish(EntityBase):
    pk = keys_structure.dishes_pk
    sk = keys_structure.dishes_sk
    record_type = 'dish'

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'restaurant_id': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'name': lambda x: isinstance(x, str),
        'price': lambda x: isinstance(x, Decimal),
        'options': lambda x: isinstance(x, list),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'description': lambda x: isinstance(x, str),
        'photo': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, restaurant_id, **kwargs):
        EntityBase.__init__(self, id_)

        self.restaurant_id: str = restaurant_id
        self.name: str = kwargs.get('name')
        self.price: Decimal = to_price(kwargs.get('price'))
        self.description: str = kwargs.get('description')
        self.photo: str = kwargs.get('photo')
        self.options: list = kwargs.get('options') or []
        self.date_created: str = kwargs.get('date_created') or to_iso(utc_now())
        self.date_updated: str = kwargs.get('date_updated') or self.date_created

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(dish_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'restaurant_id': self.restaurant_id,
            'name': self.name,
            'price': self.price,
            'description': self.description,
            'photo': self.photo,
            'options': self.options,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }

    def find_option(self, name: str) -> Optional[dict]:
        return next((option for option in self.options if option.get('name') == name), None)


class DishRepository:
    def __init__(self, table: DbTable):
        self.table = table

    def find_by_id(self, dish_id: str) -> Optional[Dish]:
        db_record = self.table.find_db_item(Dish.pk, Dish.sk.format(dish_id=dish_id))
        return Dish.from_db_record(db_record) if db_record else None

    def find_by_restaurant(self, restaurant_id: str) -> List[Dish]:
        db_records = self.table.query_items_paged(Dish.pk, filter_expression=Attr('restaurant_id').eq(restaurant_id))
        return sorted([Dish.from_db_record(record) for record in db_records], key=lambda dish: dish.date_created)

    def delete_by_restaurant(self, restaurant_id: str):
        for dish in self.find_by_restaurant(restaurant_id):
            dish.delete_db_record(self.table)


class DishService:
    def __init__(self, table: DbTable, dishes: DishRepository, restaurants,
                 clock: Callable[[], datetime] = utc_now):
        self.table = table
        self.dishes = dishes
        self.restaurants = restaurants
        self.clock = clock

    def _get_owned_dish(self, owner, dish_id: str) -> Dish:
        dish = ownership.ensure_exists(self.dishes.find_by_id(dish_id), 'Dish not found')
        self.restaurants.get_owned_restaurant(owner, dish.restaurant_id, not_owner_message="You can't do that.")
        return dish

    @utils_app.log_start_finish
    @utils_app.service_boundary('Could not create dish')
    def create_dish(self, owner, dish_input: CreateDishInput):
        restaurant = self.restaurants.get_owned_restaurant(owner, dish_input.restaurant_id)
        dish = Dish(
            id_=str(uuid4()),
            restaurant_id=restaurant.id_,
            name=dish_input.name.strip(),
            price=dish_input.price,
            description=dish_input.description,
            photo=dish_input.photo,
            options=dish_input.options,
            date_created=to_iso(self.clock())
        )
        dish.create_db_record(self.table)
        return core_output(dish_id=dish.id_)

    @utils_app.log_start_finish
    @utils_app.service_boundary('Could not edit dish')
    def edit_dish(self, owner, dish_input: EditDishInput):
        dish = self._get_owned_dish(owner, dish_input.dish_id)
        fields_to_update = []
        for key in ('name', 'price', 'description', 'photo', 'options'):
            value = getattr(dish_input, key)
            if value is not None:
                setattr(dish, key, to_price(value) if key == 'price' else value)
                fields_to_update.append(key)
        dish.update_db_record(self.table, fields_to_update, now=to_iso(self.clock()))
        logger.info(f'edit_dish ::: dish_id={dish.id_} {fields_to_update=}')
        return core_output()

    @utils_app.log_start_finish
    @utils_app.service_boundary('Could not delete dish')
    def delete_dish(self, owner, dish_id: str):
        dish = self._get_owned_dish(owner, dish_id)
        dish.delete_db_record(self.table)
        return core_output()
