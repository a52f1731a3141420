from datetime import datetime
from typing import Tuple, List, Callable
from uuid import uuid4

from boto3.dynamodb.conditions import Attr

from chalicelib.base_class_entity import EntityBase
from chalicelib.constants import keys_structure
from chalicelib.constants.constants import PROMOTION_DAYS
from chalicelib.inputs import CreatePaymentInput
from chalicelib.restaurants import Restaurant, RestaurantRepository
from chalicelib.utils import app as utils_app
from chalicelib.utils.app import core_output
from chalicelib.utils.data import utc_now, to_iso, add_days
from chalicelib.utils.db import DbTable
from chalicelib.utils.logger import logger, log_exception

NOT_ALLOWED_TO_PAY_MESSAGE = 'you are not allowed to do this.'


class Payment(EntityBase):
    pk = keys_structure.payments_pk
    sk = keys_structure.payments_sk
    record_type = 'payment'

    required_immutable_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'transaction_id': lambda x: isinstance(x, str),
        'user_id': lambda x: isinstance(x, str),
        'restaurant_id': lambda x: isinstance(x, str),
        'date_created': lambda x: isinstance(x, str)
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.transaction_id: str = kwargs.get('transaction_id')
        self.user_id: str = kwargs.get('user_id')
        self.restaurant_id: str = kwargs.get('restaurant_id')
        self.date_created: str = kwargs.get('date_created') or to_iso(utc_now())

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(payment_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'transaction_id': self.transaction_id,
            'user_id': self.user_id,
            'restaurant_id': self.restaurant_id,
            'date_created': self.date_created
        }


class PaymentRepository:
    def __init__(self, table: DbTable):
        self.table = table

    def find_by_user(self, user_id: str) -> List[Payment]:
        db_records = self.table.query_items_paged(Payment.pk, filter_expression=Attr('user_id').eq(user_id))
        return sorted([Payment.from_db_record(record) for record in db_records],
                      key=lambda payment: payment.date_created)


class PaymentService:
    def __init__(self, table: DbTable, payments: PaymentRepository, restaurants: RestaurantRepository,
                 clock: Callable[[], datetime] = utc_now):
        self.table = table
        self.payments = payments
        self.restaurants = restaurants
        self.clock = clock

    @utils_app.log_start_finish
    @utils_app.service_boundary('Could not create payment')
    def create_payment(self, owner, payment_input: CreatePaymentInput):
        restaurant = self.restaurants.get_owned_restaurant(owner, payment_input.restaurant_id,
                                                           not_owner_message=NOT_ALLOWED_TO_PAY_MESSAGE)
        now = self.clock()
        payment = Payment(
            id_=str(uuid4()),
            transaction_id=payment_input.transaction_id,
            user_id=owner.id_,
            restaurant_id=restaurant.id_,
            date_created=to_iso(now)
        )
        payment.create_db_record(self.table)

        restaurant.is_promoted = True
        restaurant.promoted_until = to_iso(add_days(now, PROMOTION_DAYS))
        restaurant.update_db_record(self.table, ['is_promoted', 'promoted_until'], now=to_iso(now))
        logger.info(f'create_payment ::: restaurant_id={restaurant.id_} promoted until {restaurant.promoted_until}')
        return core_output()

    @utils_app.service_boundary('Could not get payments')
    def get_payments(self, owner):
        return core_output(payments=[payment.to_ui() for payment in self.payments.find_by_user(owner.id_)])

    def check_promoted_restaurants(self, now: datetime = None) -> int:
        """
        Un-promotes every restaurant whose promotion has expired.
        Each restaurant is updated on its own, a failed update is logged and the sweep goes on
        :return:
        number of restaurants un-promoted
        """
        now_iso = to_iso(now or self.clock())
        expired: List[Restaurant] = self.restaurants.find_expired_promotions(now_iso)
        logger.info(f'check_promoted_restaurants ::: {len(expired)} expired promotions at {now_iso}')

        unpromoted = 0
        for restaurant in expired:
            restaurant.is_promoted = False
            restaurant.promoted_until = None
            try:
                restaurant.update_db_record(self.table, ['is_promoted', 'promoted_until'], now=now_iso)
                unpromoted += 1
            except Exception as error:
                log_exception(error, status_code=500,
                              msg=f'check_promoted_restaurants ::: could not un-promote restaurant_id={restaurant.id_}')
        return unpromoted
