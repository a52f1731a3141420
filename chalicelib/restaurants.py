from datetime import datetime
from typing import Tuple, List, Optional, Callable
from uuid import uuid4

from boto3.dynamodb.conditions import Attr

from chalicelib import ownership
from chalicelib.base_class_entity import EntityBase
from chalicelib.categories import Category, CategoryRepository
from chalicelib.constants import keys_structure
from chalicelib.dishes import DishRepository
from chalicelib.inputs import (CreateRestaurantInput, EditRestaurantInput, PaginationInput, SearchRestaurantInput,
                               CategoryInput)
from chalicelib.utils import app as utils_app
from chalicelib.utils.app import core_output
from chalicelib.utils.data import paginate, utc_now, to_iso
from chalicelib.utils.db import DbTable
from chalicelib.utils.logger import logger


def to_search_text(value: str) -> str:
    return value.strip().lower()


class Restaurant(EntityBase):
    pk = keys_structure.restaurants_pk
    sk = keys_structure.restaurants_sk
    record_type = 'restaurant'

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'owner_id': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    required_mutable_fields_validation = {
        'name': lambda x: isinstance(x, str),
        'name_search': lambda x: isinstance(x, str),
        'address': lambda x: isinstance(x, str),
        'category_id': lambda x: isinstance(x, str),
        'is_promoted': lambda x: isinstance(x, bool),
        'date_updated': lambda x: isinstance(x, str)
    }

    optional_fields_validation = {
        'cover_img': lambda x: isinstance(x, str),
        'promoted_until': lambda x: isinstance(x, str)
    }

    deletable_fields = ['promoted_until']

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.name: str = kwargs.get('name')
        self.name_search: str = to_search_text(self.name) if self.name else None
        self.address: str = kwargs.get('address')
        self.cover_img: str = kwargs.get('cover_img')
        self.owner_id: str = kwargs.get('owner_id')
        self.category_id: str = kwargs.get('category_id')
        self.is_promoted: bool = kwargs.get('is_promoted', False)
        self.promoted_until: Optional[str] = kwargs.get('promoted_until')
        self.date_created: str = kwargs.get('date_created') or to_iso(utc_now())
        self.date_updated: str = kwargs.get('date_updated') or self.date_created

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(restaurant_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'name': self.name,
            'name_search': self.name_search,
            'address': self.address,
            'cover_img': self.cover_img,
            'owner_id': self.owner_id,
            'category_id': self.category_id,
            'is_promoted': self.is_promoted,
            'promoted_until': self.promoted_until,
            'date_created': self.date_created,
            'date_updated': self.date_updated
        }

    def set_name(self, name: str):
        self.name = name.strip()
        self.name_search = to_search_text(name)


class RestaurantRepository:
    def __init__(self, table: DbTable):
        self.table = table

    def find_by_id(self, restaurant_id: str) -> Optional[Restaurant]:
        db_record = self.table.find_db_item(Restaurant.pk, Restaurant.sk.format(restaurant_id=restaurant_id))
        return Restaurant.from_db_record(db_record) if db_record else None

    def get_owned_restaurant(self, owner, restaurant_id: str,
                             not_owner_message: str = ownership.NOT_OWNER_MESSAGE) -> Restaurant:
        restaurant = ownership.ensure_exists(self.find_by_id(restaurant_id), 'Restaurant not found')
        ownership.ensure_owner(owner, restaurant.owner_id, not_owner_message)
        return restaurant

    def find(self, filter_expression=None) -> List[Restaurant]:
        """
        Promoted restaurants go first, then ordering by name
        """
        db_records = self.table.query_items_paged(Restaurant.pk, filter_expression=filter_expression)
        restaurants = [Restaurant.from_db_record(record) for record in db_records]
        return sorted(restaurants, key=lambda restaurant: (not restaurant.is_promoted, restaurant.name_search or ''))

    def find_expired_promotions(self, now: str) -> List[Restaurant]:
        return self.find(Attr('is_promoted').eq(True) & Attr('promoted_until').lt(now))

    def count(self, filter_expression=None) -> int:
        return self.table.count_items(Restaurant.pk, filter_expression=filter_expression)


class RestaurantService:
    def __init__(self, table: DbTable, restaurants: RestaurantRepository, categories: CategoryRepository,
                 dishes: DishRepository, clock: Callable[[], datetime] = utc_now):
        self.table = table
        self.restaurants = restaurants
        self.categories = categories
        self.dishes = dishes
        self.clock = clock

    @utils_app.log_start_finish
    @utils_app.service_boundary('Could not create restaurant')
    def create_restaurant(self, owner, restaurant_input: CreateRestaurantInput):
        category = self.categories.get_or_create(restaurant_input.category_name)
        restaurant = Restaurant(
            id_=str(uuid4()),
            address=restaurant_input.address,
            cover_img=restaurant_input.cover_img,
            owner_id=owner.id_,
            category_id=category.id_,
            date_created=to_iso(self.clock())
        )
        restaurant.set_name(restaurant_input.name)
        restaurant.create_db_record(self.table)
        return core_output(restaurant_id=restaurant.id_)

    @utils_app.log_start_finish
    @utils_app.service_boundary('Could not edit restaurant')
    def edit_restaurant(self, owner, restaurant_input: EditRestaurantInput):
        restaurant = self.restaurants.get_owned_restaurant(owner, restaurant_input.restaurant_id)
        fields_to_update = []
        if restaurant_input.category_name:
            restaurant.category_id = self.categories.get_or_create(restaurant_input.category_name).id_
            fields_to_update.append('category_id')
        if restaurant_input.name:
            restaurant.set_name(restaurant_input.name)
            fields_to_update.extend(['name', 'name_search'])
        for key in ('address', 'cover_img'):
            value = getattr(restaurant_input, key)
            if value is not None:
                setattr(restaurant, key, value)
                fields_to_update.append(key)
        restaurant.update_db_record(self.table, fields_to_update, now=to_iso(self.clock()))
        return core_output()

    @utils_app.log_start_finish
    @utils_app.service_boundary('Could not delete restaurant')
    def delete_restaurant(self, owner, restaurant_id: str):
        restaurant = self.restaurants.get_owned_restaurant(owner, restaurant_id)
        restaurant.delete_db_record(self.table)
        self.dishes.delete_by_restaurant(restaurant.id_)
        return core_output()

    @utils_app.service_boundary('Could not load categories')
    def all_categories(self):
        categories = [
            {**category.to_ui(), 'restaurant_count': self.count_restaurants(category)}
            for category in self.categories.find_all()
        ]
        return core_output(categories=categories)

    def count_restaurants(self, category: Category) -> int:
        return self.restaurants.count(Attr('category_id').eq(category.id_))

    @utils_app.service_boundary('Could not load category')
    def find_category_by_slug(self, category_input: CategoryInput):
        category = ownership.ensure_exists(self.categories.find_by_slug(category_input.slug), 'Category not found')
        restaurants = self.restaurants.find(Attr('category_id').eq(category.id_))
        page, total_pages = paginate(restaurants, category_input.page, category_input.count)
        return core_output(
            category=category.to_ui(),
            restaurants=[restaurant.to_ui() for restaurant in page],
            total_pages=total_pages,
            total_results=len(restaurants)
        )

    @utils_app.service_boundary('Could not load restaurants')
    def all_restaurants(self, pagination_input: PaginationInput):
        restaurants = self.restaurants.find()
        page, total_pages = paginate(restaurants, pagination_input.page, pagination_input.count)
        return core_output(
            restaurants=[restaurant.to_ui() for restaurant in page],
            total_pages=total_pages,
            total_results=len(restaurants)
        )

    @utils_app.service_boundary('Could not load restaurant')
    def find_restaurant_by_id(self, restaurant_id: str):
        restaurant = ownership.ensure_exists(self.restaurants.find_by_id(restaurant_id),
                                             'Could not find restaurant by ID')
        menu = [dish.to_ui() for dish in self.dishes.find_by_restaurant(restaurant.id_)]
        return core_output(restaurant={**restaurant.to_ui(), 'menu': menu})

    @utils_app.service_boundary('Could not load search')
    def search_restaurant_by_name(self, search_input: SearchRestaurantInput):
        query = to_search_text(search_input.query)
        restaurants = self.restaurants.find(Attr('name_search').contains(query))
        logger.info(f'search_restaurant_by_name ::: {query=} found {len(restaurants)} restaurants')
        page, total_pages = paginate(restaurants, search_input.page, search_input.count)
        return core_output(
            restaurants=[restaurant.to_ui() for restaurant in page],
            total_pages=total_pages,
            total_results=len(restaurants)
        )

    @utils_app.service_boundary('Could not find restaurants')
    def my_restaurants(self, owner):
        restaurants = self.restaurants.find(Attr('owner_id').eq(owner.id_))
        return core_output(restaurants=[restaurant.to_ui() for restaurant in restaurants])
