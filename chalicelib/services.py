from collections import namedtuple

from chalicelib.categories import CategoryRepository
from chalicelib.dishes import DishRepository, DishService
from chalicelib.orders import OrderRepository, OrderService
from chalicelib.payments import PaymentRepository, PaymentService
from chalicelib.restaurants import RestaurantRepository, RestaurantService
from chalicelib.uploads import UploadService
from chalicelib.users import UserRepository, UserService
from chalicelib.utils.boto_clients import create_s3_client, create_ses_client
from chalicelib.utils.data import utc_now
from chalicelib.utils.db import DbTable, get_gen_table
from chalicelib.utils.notifications import Mailer
from chalicelib.utils.s3 import S3Uploader

Services = namedtuple('Services', ['users', 'restaurants', 'dishes', 'payments', 'orders', 'uploads'])


def build_services(table: DbTable = None, s3_client=None, ses_client=None, clock=utc_now) -> Services:
    table = table or get_gen_table()
    restaurant_repository = RestaurantRepository(table)
    dish_repository = DishRepository(table)
    return Services(
        users=UserService(table, UserRepository(table), Mailer(ses_client or create_ses_client())),
        restaurants=RestaurantService(table, restaurant_repository, CategoryRepository(table), dish_repository,
                                      clock=clock),
        dishes=DishService(table, dish_repository, restaurant_repository, clock=clock),
        payments=PaymentService(table, PaymentRepository(table), restaurant_repository, clock=clock),
        orders=OrderService(table, OrderRepository(table), restaurant_repository, dish_repository, clock=clock),
        uploads=UploadService(S3Uploader(s3_client or create_s3_client()))
    )
