from datetime import timedelta

import pytest

from chalicelib.categories import slugify
from chalicelib.constants.constants import UserRole
from chalicelib.constants.status_codes import http200, http400, http403
from chalicelib.inputs import EditRestaurantInput, PaginationInput, SearchRestaurantInput, CategoryInput
from chalicelib.utils import exceptions
from test.utils.fixtures import TEST_NOW
from test.utils.request_utils import make_request, create_user, create_restaurant, create_dish


@pytest.fixture
def owner(services):
    return create_user(services, 'owner@test.com', UserRole.owner)


@pytest.fixture
def other_owner(services):
    return create_user(services, 'other-owner@test.com', UserRole.owner)


@pytest.mark.parametrize('name, slug', [
    ('Italian Food', 'italian-food'),
    ('  italian   food ', 'italian-food'),
    ('Fast - Food', 'fast-food'),
    ('-Sushi-', 'sushi'),
    ('Café Crème', 'café-crème'),
    ('Bar/Grill', 'bar-grill'),
    ('Fish & Chips?', 'fish-chips'),
    ('snake_case #1', 'snake-case-1'),
])
def test_slugify(name, slug):
    assert slugify(name) == slug


def test_create_restaurant(chalice_client, services, owner):
    owner_user, token = owner
    response = make_request(chalice_client, endpoint='/restaurants', method='POST', token=token, json_body={
        'name': 'Pizza Palace',
        'address': 'Time Square, New York',
        'category_name': 'Italian Food',
        'cover_img': 'https://img.test/pizza.png'
    })
    assert response.status_code == http200
    restaurant_id = response.json_body['restaurant_id']

    restaurant = services.restaurants.restaurants.find_by_id(restaurant_id)
    assert restaurant.name == 'Pizza Palace'
    assert restaurant.owner_id == owner_user.id_
    assert restaurant.is_promoted is False
    assert restaurant.promoted_until is None
    assert restaurant.category_id == services.restaurants.categories.find_by_slug('italian-food').id_


def test_create_restaurant_requires_owner_role(chalice_client, services):
    _, token = create_user(services, 'client@test.com', UserRole.client)
    response = make_request(chalice_client, endpoint='/restaurants', method='POST', token=token, json_body={
        'name': 'Pizza Palace',
        'address': 'Time Square, New York',
        'category_name': 'Italian Food'
    })
    assert response.status_code == http403
    assert services.restaurants.restaurants.find() == []


def test_create_restaurant_short_name(chalice_client, owner):
    _, token = owner
    response = make_request(chalice_client, endpoint='/restaurants', method='POST', token=token, json_body={
        'name': 'Pie',
        'address': 'Time Square, New York',
        'category_name': 'Italian Food'
    })
    assert response.status_code == http400
    assert response.json_body['error_type'] == 'ValidationFailed'

    response = make_request(chalice_client, endpoint='/restaurants', method='POST', token=token, json_body={
        'name': '   ab   ',
        'address': 'Time Square, New York',
        'category_name': 'Italian Food'
    })
    assert response.status_code == http400


def test_category_get_or_create_is_idempotent(services, owner):
    owner_user, _ = owner
    create_restaurant(services, owner_user, name='Pizza Palace', category_name='Italian Food')
    create_restaurant(services, owner_user, name='Pasta House', category_name='  italian food ')

    output = services.restaurants.all_categories()
    assert output['ok'] is True
    assert len(output['categories']) == 1
    assert output['categories'][0]['name'] == 'Italian Food'
    assert output['categories'][0]['slug'] == 'italian-food'
    assert output['categories'][0]['restaurant_count'] == 2


def test_category_get_or_create_recovers_lost_race(services, monkeypatch):
    categories = services.restaurants.categories
    existing = categories.get_or_create('Italian Food')

    # the lookup misses once, as if the category was created right after it
    find_by_slug = categories.find_by_slug
    calls = []

    def racing_find_by_slug(slug):
        calls.append(slug)
        return None if len(calls) == 1 else find_by_slug(slug)

    monkeypatch.setattr(categories, 'find_by_slug', racing_find_by_slug)
    assert categories.get_or_create('italian food').id_ == existing.id_
    assert len(calls) == 2


def test_category_with_empty_slug(services):
    with pytest.raises(exceptions.ValidationException):
        services.restaurants.categories.get_or_create(' - ')


def test_find_category_by_slug(chalice_client, services, owner):
    owner_user, _ = owner
    restaurant_id = create_restaurant(services, owner_user, name='Pizza Palace', category_name='Italian Food')
    create_restaurant(services, owner_user, name='Sushi Place', category_name='Japanese')

    response = make_request(chalice_client, endpoint='/categories/italian-food')
    assert response.json_body['category']['slug'] == 'italian-food'
    assert [restaurant['id'] for restaurant in response.json_body['restaurants']] == [restaurant_id]
    assert response.json_body['total_pages'] == 1

    output = services.restaurants.find_category_by_slug(CategoryInput(slug='mexican'))
    assert output == {'ok': False, 'error': 'Category not found', 'error_type': 'NotFound'}


def test_edit_restaurant_by_owner(services, owner):
    owner_user, _ = owner
    restaurant_id = create_restaurant(services, owner_user)

    output = services.restaurants.edit_restaurant(owner_user, EditRestaurantInput(
        restaurant_id=restaurant_id, name='Pizza Palace Deluxe', category_name='Pizza'))
    assert output == {'ok': True}

    restaurant = services.restaurants.find_restaurant_by_id(restaurant_id)['restaurant']
    assert restaurant['name'] == 'Pizza Palace Deluxe'
    assert restaurant['address'] == 'Time Square, New York'
    assert restaurant['category_id'] == services.restaurants.categories.find_by_slug('pizza').id_


def test_edit_restaurant_by_non_owner(chalice_client, services, owner, other_owner):
    owner_user, _ = owner
    _, other_token = other_owner
    restaurant_id = create_restaurant(services, owner_user)

    response = make_request(chalice_client, endpoint=f'/restaurants/{restaurant_id}', method='PUT',
                            token=other_token, json_body={'name': 'Stolen Palace'})
    assert response.status_code == http403
    assert response.json_body == {'ok': False, 'error': 'Not owner of restaurant', 'error_type': 'NotAuthorized'}
    assert services.restaurants.restaurants.find_by_id(restaurant_id).name == 'Pizza Palace'


def test_edit_missing_restaurant(services, owner):
    owner_user, _ = owner
    output = services.restaurants.edit_restaurant(owner_user, EditRestaurantInput(
        restaurant_id='missing', name='Pizza Palace'))
    assert output == {'ok': False, 'error': 'Restaurant not found', 'error_type': 'NotFound'}


def test_delete_restaurant(chalice_client, services, owner, other_owner):
    owner_user, token = owner
    _, other_token = other_owner
    restaurant_id = create_restaurant(services, owner_user)
    create_dish(services, owner_user, restaurant_id)

    response = make_request(chalice_client, endpoint=f'/restaurants/{restaurant_id}', method='DELETE',
                            token=other_token)
    assert response.json_body['error_type'] == 'NotAuthorized'
    assert services.restaurants.restaurants.find_by_id(restaurant_id) is not None

    response = make_request(chalice_client, endpoint=f'/restaurants/{restaurant_id}', method='DELETE', token=token)
    assert response.json_body == {'ok': True}
    assert services.restaurants.restaurants.find_by_id(restaurant_id) is None
    assert services.restaurants.dishes.find_by_restaurant(restaurant_id) == []


def test_find_restaurant_by_id_with_menu(chalice_client, services, owner):
    owner_user, _ = owner
    restaurant_id = create_restaurant(services, owner_user)
    dish_id = create_dish(services, owner_user, restaurant_id, price=12)

    response = make_request(chalice_client, endpoint=f'/restaurants/{restaurant_id}')
    assert response.status_code == http200
    restaurant = response.json_body['restaurant']
    assert restaurant['id'] == restaurant_id
    assert 'name_search' not in restaurant
    assert [dish['id'] for dish in restaurant['menu']] == [dish_id]
    assert restaurant['menu'][0]['price'] == 12

    response = make_request(chalice_client, endpoint='/restaurants/missing')
    assert response.json_body == {
        'ok': False,
        'error': 'Could not find restaurant by ID',
        'error_type': 'NotFound'
    }


def test_search_is_case_insensitive(chalice_client, services, owner):
    owner_user, _ = owner
    restaurant_id = create_restaurant(services, owner_user, name='Pizza Palace')
    create_restaurant(services, owner_user, name='Sushi Place', category_name='Japanese')

    response = make_request(chalice_client, endpoint='/restaurants/search', query='query=pizza')
    assert [restaurant['id'] for restaurant in response.json_body['restaurants']] == [restaurant_id]
    assert response.json_body['total_results'] == 1

    output = services.restaurants.search_restaurant_by_name(SearchRestaurantInput(query='PALACE'))
    assert [restaurant['id'] for restaurant in output['restaurants']] == [restaurant_id]

    output = services.restaurants.search_restaurant_by_name(SearchRestaurantInput(query='burger'))
    assert output['restaurants'] == []
    assert output['total_pages'] == 0


def test_all_restaurants_pagination(chalice_client, services, owner):
    owner_user, _ = owner
    for name in ('Cafe Charlie', 'Bistro Bravo', 'Alpha Diner'):
        create_restaurant(services, owner_user, name=name)

    first_page = services.restaurants.all_restaurants(PaginationInput(page=1, count=2))
    assert [restaurant['name'] for restaurant in first_page['restaurants']] == ['Alpha Diner', 'Bistro Bravo']
    assert first_page['total_pages'] == 2
    assert first_page['total_results'] == 3

    response = make_request(chalice_client, endpoint='/restaurants', query='page=2&count=2')
    assert [restaurant['name'] for restaurant in response.json_body['restaurants']] == ['Cafe Charlie']


def test_promoted_restaurants_go_first(services, owner, table):
    owner_user, _ = owner
    create_restaurant(services, owner_user, name='Alpha Diner')
    promoted_id = create_restaurant(services, owner_user, name='Zeta Grill')

    restaurant = services.restaurants.restaurants.find_by_id(promoted_id)
    restaurant.is_promoted = True
    restaurant.promoted_until = '2026-02-04T10:00:00+00:00'
    restaurant.update_db_record(table, ['is_promoted', 'promoted_until'])

    output = services.restaurants.all_restaurants(PaginationInput())
    assert [restaurant['name'] for restaurant in output['restaurants']] == ['Zeta Grill', 'Alpha Diner']


def test_my_restaurants(chalice_client, services, owner, other_owner):
    owner_user, token = owner
    other_owner_user, _ = other_owner
    restaurant_id = create_restaurant(services, owner_user)
    create_restaurant(services, other_owner_user, name='Other Palace')

    response = make_request(chalice_client, endpoint='/restaurants/mine', token=token)
    assert [restaurant['id'] for restaurant in response.json_body['restaurants']] == [restaurant_id]


def test_find_category_with_url_unsafe_name(chalice_client, services, owner):
    owner_user, _ = owner
    restaurant_id = create_restaurant(services, owner_user, name='Grill House', category_name='Bar/Grill')

    response = make_request(chalice_client, endpoint='/categories/bar-grill')
    assert response.status_code == http200
    assert response.json_body['category']['name'] == 'Bar/Grill'
    assert [restaurant['id'] for restaurant in response.json_body['restaurants']] == [restaurant_id]


def test_restaurant_timestamps_follow_clock(services, owner, clock):
    owner_user, _ = owner
    restaurant_id = create_restaurant(services, owner_user)
    restaurant = services.restaurants.restaurants.find_by_id(restaurant_id)
    assert restaurant.date_created == TEST_NOW.isoformat()
    assert restaurant.date_updated == TEST_NOW.isoformat()

    clock.now = TEST_NOW + timedelta(hours=2)
    output = services.restaurants.edit_restaurant(
        owner_user, EditRestaurantInput(restaurant_id=restaurant_id, address='Broadway, New York'))
    assert output == {'ok': True}

    restaurant = services.restaurants.restaurants.find_by_id(restaurant_id)
    assert restaurant.date_created == TEST_NOW.isoformat()
    assert restaurant.date_updated == (TEST_NOW + timedelta(hours=2)).isoformat()
