"""
Explicit input structs of the API operations.

Each struct lists exactly the fields its operation accepts, unknown body keys are
dropped and every present value is checked by the struct's validator before
a service is called.
"""
import re
from dataclasses import dataclass, field, fields, MISSING
from decimal import Decimal
from typing import Dict, List, Optional

from chalicelib.constants.constants import UserRole, OrderStatus, DEFAULT_PAGE_SIZE
from chalicelib.utils.exceptions import ValidationException

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MAX_PAGE_SIZE = 100


def is_text(value) -> bool:
    return isinstance(value, str) and value.strip() != ''


def is_number(value) -> bool:
    return isinstance(value, (int, Decimal)) and not isinstance(value, bool) and value >= 0


def is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def is_dish_choice(value) -> bool:
    return isinstance(value, dict) and is_text(value.get('name')) and \
        (value.get('extra') is None or is_number(value.get('extra')))


def is_dish_option(value) -> bool:
    return isinstance(value, dict) and is_text(value.get('name')) and \
        (value.get('extra') is None or is_number(value.get('extra'))) and \
        (value.get('choices') is None or
         (isinstance(value.get('choices'), list) and all(is_dish_choice(choice) for choice in value['choices'])))


def is_order_item_option(value) -> bool:
    return isinstance(value, dict) and is_text(value.get('name')) and \
        (value.get('choice') is None or is_text(value.get('choice')))


def is_order_item(value) -> bool:
    return isinstance(value, dict) and is_text(value.get('dish_id')) and \
        (value.get('options') is None or
         (isinstance(value.get('options'), list) and all(is_order_item_option(option) for option in value['options'])))


class InputBase:
    fields_validation = {}

    @classmethod
    def from_body(cls, body: Dict):
        values = {}
        for struct_field in fields(cls):
            name = struct_field.name
            value = body.get(name)
            if value is None:
                if struct_field.default is MISSING and struct_field.default_factory is MISSING:
                    raise ValidationException(f'Field {name} is required')
                continue
            validator = cls.fields_validation.get(name)
            if validator is not None and validator(value) is False:
                raise ValidationException(f'Validation error occurred while validating the field={name}')
            values[name] = value
        return cls(**values)


class PaginatedInputBase(InputBase):
    @classmethod
    def from_query_params(cls, query_params: Optional[Dict], **path_params):
        body = {**(query_params or {}), **path_params}
        for name in ('page', 'count'):
            if name in body:
                try:
                    body[name] = int(body[name])
                except (TypeError, ValueError):
                    raise ValidationException(f'Validation error occurred while validating the field={name}')
        return cls.from_body(body)


@dataclass
class CreateAccountInput(InputBase):
    email: str
    password: str
    role: str

    fields_validation = {
        'email': lambda x: isinstance(x, str) and EMAIL_PATTERN.match(x) is not None,
        'password': is_text,
        'role': lambda x: x in UserRole.all
    }


@dataclass
class LoginInput(InputBase):
    email: str
    password: str

    fields_validation = {
        'email': lambda x: isinstance(x, str) and EMAIL_PATTERN.match(x) is not None,
        'password': is_text
    }


@dataclass
class EditProfileInput(InputBase):
    email: Optional[str] = None
    password: Optional[str] = None

    fields_validation = {
        'email': lambda x: isinstance(x, str) and EMAIL_PATTERN.match(x) is not None,
        'password': is_text
    }


@dataclass
class VerifyEmailInput(InputBase):
    code: str

    fields_validation = {
        'code': is_text
    }


@dataclass
class CreateRestaurantInput(InputBase):
    name: str
    address: str
    category_name: str
    cover_img: Optional[str] = None

    fields_validation = {
        'name': lambda x: is_text(x) and len(x.strip()) >= 5,
        'address': is_text,
        'category_name': is_text,
        'cover_img': is_text
    }


@dataclass
class EditRestaurantInput(InputBase):
    restaurant_id: str
    name: Optional[str] = None
    address: Optional[str] = None
    category_name: Optional[str] = None
    cover_img: Optional[str] = None

    fields_validation = CreateRestaurantInput.fields_validation


@dataclass
class PaginationInput(PaginatedInputBase):
    page: int = 1
    count: int = DEFAULT_PAGE_SIZE

    fields_validation = {
        'page': is_positive_int,
        'count': lambda x: is_positive_int(x) and x <= MAX_PAGE_SIZE
    }


@dataclass
class SearchRestaurantInput(PaginatedInputBase):
    query: str
    page: int = 1
    count: int = DEFAULT_PAGE_SIZE

    fields_validation = {
        **PaginationInput.fields_validation,
        'query': is_text
    }


@dataclass
class CategoryInput(PaginatedInputBase):
    slug: str
    page: int = 1
    count: int = DEFAULT_PAGE_SIZE

    fields_validation = {
        **PaginationInput.fields_validation,
        'slug': is_text
    }


@dataclass
class CreateDishInput(InputBase):
    restaurant_id: str
    name: str
    price: Decimal
    description: Optional[str] = None
    photo: Optional[str] = None
    options: List[Dict] = field(default_factory=list)

    fields_validation = {
        'restaurant_id': is_text,
        'name': is_text,
        'price': is_number,
        'description': lambda x: isinstance(x, str) and len(x) <= 140,
        'photo': is_text,
        'options': lambda x: isinstance(x, list) and all(is_dish_option(option) for option in x)
    }


@dataclass
class EditDishInput(InputBase):
    dish_id: str
    name: Optional[str] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None
    photo: Optional[str] = None
    options: Optional[List[Dict]] = None

    fields_validation = {
        **CreateDishInput.fields_validation,
        'dish_id': is_text
    }


@dataclass
class CreatePaymentInput(InputBase):
    transaction_id: str
    restaurant_id: str

    fields_validation = {
        'transaction_id': is_text,
        'restaurant_id': is_text
    }


@dataclass
class CreateOrderInput(InputBase):
    restaurant_id: str
    items: List[Dict]

    fields_validation = {
        'restaurant_id': is_text,
        'items': lambda x: isinstance(x, list) and len(x) > 0 and all(is_order_item(item) for item in x)
    }


@dataclass
class GetOrdersInput(InputBase):
    status: Optional[str] = None

    fields_validation = {
        'status': lambda x: x in OrderStatus.all
    }
