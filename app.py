import os

from chalice import Chalice, Rate

from chalicelib.constants.constants import UserRole, PROMOTION_SWEEP_RATE_MINUTES
from chalicelib.inputs import (CreateAccountInput, LoginInput, EditProfileInput, VerifyEmailInput,
                               CreateRestaurantInput, EditRestaurantInput, PaginationInput, SearchRestaurantInput,
                               CategoryInput, CreateDishInput, EditDishInput, CreatePaymentInput, CreateOrderInput,
                               GetOrdersInput)
from chalicelib.scheduler import PromotionSweepRunner
from chalicelib.services import build_services, Services
from chalicelib.uploads import parse_multipart_request_data
from chalicelib.utils import app as utils_app, auth as utils_auth, data as utils_data
from chalicelib.utils.app import output_response
from chalicelib.utils.logger import logger, log_request, set_request_id

app = Chalice(app_name='eats-marketplace')

app.api.binary_types.insert(0, 'multipart/form-data')

_services = None


def get_services() -> Services:
    global _services
    if _services is None:
        _services = build_services()
    return _services


def authenticate(roles=None):
    return utils_auth.authenticate(app.current_request, get_services().users.find_user, roles)


def public_request():
    request = app.current_request
    set_request_id(request)
    log_request(request)
    return request


@app.route('/health-check', methods=['GET'], cors=True)
def health_check():
    return {'health': 'check'}


# USERS
@app.route('/users', methods=['POST'], cors=True)
@utils_app.request_exception_handler
def create_account():
    account_input = CreateAccountInput.from_body(utils_data.parse_raw_body(public_request()))
    return output_response(get_services().users.create_account(account_input))


@app.route('/users/login', methods=['POST'], cors=True)
@utils_app.request_exception_handler
def login():
    login_input = LoginInput.from_body(utils_data.parse_raw_body(public_request()))
    return output_response(get_services().users.login(login_input))


@app.route('/users/verify-email', methods=['POST'], cors=True)
@utils_app.request_exception_handler
def verify_email():
    verify_input = VerifyEmailInput.from_body(utils_data.parse_raw_body(public_request()))
    return output_response(get_services().users.verify_email(verify_input))


@app.route('/users/me', methods=['GET'], cors=True)
@utils_app.request_exception_handler
def me():
    user = authenticate()
    return output_response(get_services().users.user_profile(user.id_))


@app.route('/users/me', methods=['PUT'], cors=True)
@utils_app.request_exception_handler
def edit_profile():
    user = authenticate()
    profile_input = EditProfileInput.from_body(utils_data.parse_raw_body(app.current_request))
    return output_response(get_services().users.edit_profile(user, profile_input))


@app.route('/users/{user_id}', methods=['GET'], cors=True)
@utils_app.request_exception_handler
def user_profile(user_id):
    authenticate()
    return output_response(get_services().users.user_profile(user_id))


# RESTAURANTS
@app.route('/restaurants', methods=['GET'], cors=True)
@utils_app.request_exception_handler
def all_restaurants():
    pagination_input = PaginationInput.from_query_params(public_request().query_params)
    return output_response(get_services().restaurants.all_restaurants(pagination_input))


@app.route('/restaurants/search', methods=['GET'], cors=True)
@utils_app.request_exception_handler
def search_restaurant_by_name():
    search_input = SearchRestaurantInput.from_query_params(public_request().query_params)
    return output_response(get_services().restaurants.search_restaurant_by_name(search_input))


@app.route('/restaurants/mine', methods=['GET'], cors=True)
@utils_app.request_exception_handler
def my_restaurants():
    owner = authenticate([UserRole.owner])
    return output_response(get_services().restaurants.my_restaurants(owner))


@app.route('/restaurants/{restaurant_id}', methods=['GET'], cors=True)
@utils_app.request_exception_handler
def find_restaurant_by_id(restaurant_id):
    public_request()
    return output_response(get_services().restaurants.find_restaurant_by_id(restaurant_id))


@app.route('/restaurants', methods=['POST'], cors=True)
@utils_app.request_exception_handler
def create_restaurant():
    owner = authenticate([UserRole.owner])
    restaurant_input = CreateRestaurantInput.from_body(utils_data.parse_raw_body(app.current_request))
    return output_response(get_services().restaurants.create_restaurant(owner, restaurant_input))


@app.route('/restaurants/{restaurant_id}', methods=['PUT'], cors=True)
@utils_app.request_exception_handler
def edit_restaurant(restaurant_id):
    owner = authenticate([UserRole.owner])
    restaurant_input = EditRestaurantInput.from_body(
        {**utils_data.parse_raw_body(app.current_request), 'restaurant_id': restaurant_id})
    return output_response(get_services().restaurants.edit_restaurant(owner, restaurant_input))


@app.route('/restaurants/{restaurant_id}', methods=['DELETE'], cors=True)
@utils_app.request_exception_handler
def delete_restaurant(restaurant_id):
    owner = authenticate([UserRole.owner])
    return output_response(get_services().restaurants.delete_restaurant(owner, restaurant_id))


# CATEGORIES
@app.route('/categories', methods=['GET'], cors=True)
@utils_app.request_exception_handler
def all_categories():
    public_request()
    return output_response(get_services().restaurants.all_categories())


@app.route('/categories/{slug}', methods=['GET'], cors=True)
@utils_app.request_exception_handler
def find_category_by_slug(slug):
    category_input = CategoryInput.from_query_params(public_request().query_params, slug=slug)
    return output_response(get_services().restaurants.find_category_by_slug(category_input))


# DISHES
@app.route('/restaurants/{restaurant_id}/dishes', methods=['POST'], cors=True)
@utils_app.request_exception_handler
def create_dish(restaurant_id):
    owner = authenticate([UserRole.owner])
    dish_input = CreateDishInput.from_body(
        {**utils_data.parse_raw_body(app.current_request), 'restaurant_id': restaurant_id})
    return output_response(get_services().dishes.create_dish(owner, dish_input))


@app.route('/dishes/{dish_id}', methods=['PUT'], cors=True)
@utils_app.request_exception_handler
def edit_dish(dish_id):
    owner = authenticate([UserRole.owner])
    dish_input = EditDishInput.from_body({**utils_data.parse_raw_body(app.current_request), 'dish_id': dish_id})
    return output_response(get_services().dishes.edit_dish(owner, dish_input))


@app.route('/dishes/{dish_id}', methods=['DELETE'], cors=True)
@utils_app.request_exception_handler
def delete_dish(dish_id):
    owner = authenticate([UserRole.owner])
    return output_response(get_services().dishes.delete_dish(owner, dish_id))


# PAYMENTS
@app.route('/payments', methods=['POST'], cors=True)
@utils_app.request_exception_handler
def create_payment():
    owner = authenticate([UserRole.owner])
    payment_input = CreatePaymentInput.from_body(utils_data.parse_raw_body(app.current_request))
    return output_response(get_services().payments.create_payment(owner, payment_input))


@app.route('/payments', methods=['GET'], cors=True)
@utils_app.request_exception_handler
def get_payments():
    owner = authenticate([UserRole.owner])
    return output_response(get_services().payments.get_payments(owner))


@app.schedule(Rate(PROMOTION_SWEEP_RATE_MINUTES, unit=Rate.MINUTES))
def check_promoted_restaurants(event):
    unpromoted = get_services().payments.check_promoted_restaurants()
    logger.info(f'check_promoted_restaurants ::: {unpromoted} restaurants un-promoted')


# ORDERS
@app.route('/orders', methods=['POST'], cors=True)
@utils_app.request_exception_handler
def create_order():
    customer = authenticate([UserRole.client])
    order_input = CreateOrderInput.from_body(utils_data.parse_raw_body(app.current_request))
    return output_response(get_services().orders.create_order(customer, order_input))


@app.route('/orders', methods=['GET'], cors=True)
@utils_app.request_exception_handler
def get_orders():
    user = authenticate()
    orders_input = GetOrdersInput.from_body(app.current_request.query_params or {})
    return output_response(get_services().orders.get_orders(user, orders_input))


@app.route('/orders/{order_id}', methods=['GET'], cors=True)
@utils_app.request_exception_handler
def get_order(order_id):
    user = authenticate()
    return output_response(get_services().orders.get_order(user, order_id))


# UPLOADS
@app.route('/uploads', methods=['POST'], content_types=['multipart/form-data'], cors=True)
@utils_app.request_exception_handler
def upload_file():
    authenticate()
    uploaded_file = parse_multipart_request_data(app.current_request)
    return output_response(get_services().uploads.upload_file(uploaded_file))


def start_local_scheduler():
    runner = PromotionSweepRunner(lambda: get_services().payments.check_promoted_restaurants())
    runner.start()
    return runner


if os.environ.get('RUN_LOCAL_SCHEDULER', 'false').lower() == 'true':
    local_scheduler = start_local_scheduler()
