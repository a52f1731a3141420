import os
from typing import Callable, Iterable, Optional

import jwt
from chalice.app import Request

from chalicelib.constants.constants import JWT_ALGORITHM
from chalicelib.utils import exceptions as utils_exceptions
from chalicelib.utils.logger import log_request, logger, set_request_id


def jwt_secret_key():
    return os.environ['JWT_SECRET_KEY']


def sign_token(user_id: str) -> str:
    return jwt.encode({'id': user_id}, jwt_secret_key(), algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> dict:
    return jwt.decode(token, jwt_secret_key(), algorithms=[JWT_ALGORITHM])


def get_request_token(request: Request) -> Optional[str]:
    token = request.headers.get('authorization')
    if token and token.lower().startswith('bearer '):
        token = token[len('bearer '):]
    return token or None


def authenticate(request: Request, load_user: Callable, roles: Iterable[str] = None):
    """
    Resolves the principal of the request and checks its role
    :param load_user:
    callable returning the user entity by id or None
    :param roles:
    roles allowed to call the route, any authenticated user if None
    :return:
    user entity of the principal
    """
    set_request_id(request)
    log_request(request)

    token = get_request_token(request)
    if token is None:
        raise utils_exceptions.NotAuthorizedException('Authorization token is missing')
    try:
        payload = verify_token(token)
    except jwt.PyJWTError as error:
        logger.warning(f'authenticate ::: token could not be decoded, {error=}')
        raise utils_exceptions.NotAuthorizedException('Authorization token is invalid')

    user = load_user(payload.get('id'))
    if user is None:
        raise utils_exceptions.NotAuthorizedException('User of the token does not exist')
    if roles is not None and user.role not in roles:
        raise utils_exceptions.AccessDenied(f"{user.role} role is not allowed to do this")

    logger.info(f'authenticate ::: SUCCESS, user_id={user.id_}, role={user.role}')
    return user
