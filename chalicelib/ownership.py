"""
Ownership authorization policy.

Mutations of restaurants and dishes, and payments for a restaurant, are allowed
only to the owner of the restaurant. The target has to be found first: a
missing target is reported as not found, so nothing is revealed about ownership
of entities that do not exist. The check always happens before any write.
"""
from chalicelib.utils.exceptions import AccessDenied, RecordNotFound
from chalicelib.utils.logger import logger

NOT_OWNER_MESSAGE = 'Not owner of restaurant'


def ensure_exists(entity, not_found_message: str):
    if entity is None:
        raise RecordNotFound(not_found_message)
    return entity


def ensure_owner(principal, owner_id: str, not_owner_message: str = NOT_OWNER_MESSAGE):
    if principal.id_ != owner_id:
        logger.warning(f'ensure_owner ::: user_id={principal.id_} is not the owner, {owner_id=}')
        raise AccessDenied(not_owner_message)
