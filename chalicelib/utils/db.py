import functools
import os
import time
from random import uniform
from typing import Dict, List, Optional, Tuple

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from chalicelib.utils import exceptions
from chalicelib.utils.boto_clients import create_dynamodb_resource
from chalicelib.utils.logger import logger, log_exception

# For safe db operations
RETRY_EXCEPTIONS = ('ProvisionedThroughputExceededException', 'ThrottlingException')
MAX_RETRIES = 15
BACKOFF_BASE_SECONDS = 0.05
BACKOFF_CAP_SECONDS = 5

CONDITIONAL_CHECK_FAILED = 'ConditionalCheckFailedException'


def exp_db_backoff(func):
    """
        should be used for any atomic
        get/put/update/delete item in the code
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.debug(f'{func.__name__}:: args={args}, kwargs={kwargs}')

        for retries in range(MAX_RETRIES):
            try:
                result = func(*args, **kwargs)
                logger.info(f'{func.__name__}:: SUCCESS')
                return result

            except ClientError as e:
                if e.response.get('Error', {}).get('Code') not in RETRY_EXCEPTIONS:
                    raise
                log_exception(e, msg=f'Got throttled while trying to {func.__name__}, {retries=}: ')
                time.sleep(min(BACKOFF_CAP_SECONDS, BACKOFF_BASE_SECONDS * 2 ** retries) * uniform(0.5, 1))

        raise exceptions.NumberOfRetriesExceeded(
            f"MaxNumber={MAX_RETRIES} of DB retries has exceeded"
        )

    return wrapper


def is_conditional_check_failed(error: ClientError) -> bool:
    return error.response.get('Error', {}).get('Code') == CONDITIONAL_CHECK_FAILED


def generate_update_expression(update_body: dict, allowed_attrs_to_update: list, allowed_attrs_to_delete: list):
    """
    Generate one expression to update and delete attributes.
    if a key of update_body is empty - the attribute is deleted, else - attribute is updated
    """
    expr_attr_values = {}
    expr_attr_names = {}
    set_parts = []
    remove_parts = []
    for field in allowed_attrs_to_update:
        field_value = update_body.get(field, None)
        if field_value is None:
            continue
        expr_attr_names[f'#{field}'] = field
        # if field is in update_body but is equal to empty string, list etc. - delete field
        if field_value in ['', [], {}] and field in allowed_attrs_to_delete:
            remove_parts.append(f'#{field}')
        else:
            expr_attr_values[f':{field}'] = field_value
            set_parts.append(f'#{field}=:{field}')

    update_expr = ''
    if set_parts:
        update_expr += 'SET ' + ', '.join(set_parts)
    if remove_parts:
        update_expr += (' ' if update_expr else '') + 'REMOVE ' + ', '.join(remove_parts)

    return update_expr, expr_attr_names, expr_attr_values


class DbTable:
    """
    Persistence collaborator over the single DynamoDB table.
    Every record is addressed by partkey (entity type) and sortkey (entity id).
    """

    def __init__(self, table):
        self.table = table
        self._put_item = exp_db_backoff(table.put_item)
        self._get_item = exp_db_backoff(table.get_item)
        self._update_item = exp_db_backoff(table.update_item)
        self._delete_item = exp_db_backoff(table.delete_item)
        self._query = exp_db_backoff(table.query)

    def find_db_item(self, partkey: str, sortkey: str) -> Optional[Dict]:
        result = self._get_item(Key={'partkey': partkey, 'sortkey': sortkey})
        return result.get('Item')

    def get_db_item(self, partkey: str, sortkey: str) -> Dict:
        item = self.find_db_item(partkey, sortkey)
        if item is None:
            logger.error(f"get_db_item ::: record partkey={partkey} sortkey={sortkey} not found")
            raise exceptions.RecordNotFound(f'record partkey={partkey} sortkey={sortkey} not found')
        return item

    def put_db_record(self, item: dict, unique: bool = False):
        kwargs = {'Item': item}
        if unique:
            kwargs['ConditionExpression'] = 'attribute_not_exists(partkey)'
        try:
            self._put_item(**kwargs)
        except ClientError as error:
            if unique and is_conditional_check_failed(error):
                raise exceptions.RecordAlreadyExists(
                    f"record partkey={item.get('partkey')} sortkey={item.get('sortkey')} already exists")
            raise

    def update_db_record(self, key: dict, update_body: dict, allowed_attrs_to_update: list,
                         allowed_attrs_to_delete: list):
        update_expr, expr_attr_names, expr_attr_values = generate_update_expression(
            update_body=update_body,
            allowed_attrs_to_update=allowed_attrs_to_update,
            allowed_attrs_to_delete=allowed_attrs_to_delete
        )
        if not update_expr:
            logger.info(f'update_db_record ::: nothing to update for {key=}')
            return None

        update_item_dict = {
            'Key': key,
            'ReturnValues': 'ALL_NEW',
            'UpdateExpression': update_expr,
            'ExpressionAttributeNames': expr_attr_names,
            'ConditionExpression': 'attribute_exists(partkey)'
        }
        if expr_attr_values:
            update_item_dict['ExpressionAttributeValues'] = expr_attr_values
        try:
            return self._update_item(**update_item_dict).get('Attributes')
        except ClientError as error:
            if is_conditional_check_failed(error):
                raise exceptions.RecordNotFound(f'record {key} not found')
            raise

    def delete_db_record(self, partkey: str, sortkey: str):
        self._delete_item(Key={'partkey': partkey, 'sortkey': sortkey})

    def query_items_paginated(self, partkey: str, filter_expression=None,
                              start_key=None, select=None) -> Tuple[Dict, Optional[Dict]]:
        kwargs = {'KeyConditionExpression': Key('partkey').eq(partkey)}
        if filter_expression is not None:
            kwargs.update({'FilterExpression': filter_expression})

        if start_key:
            kwargs.update({'ExclusiveStartKey': start_key})

        if select:
            kwargs.update({'Select': select})

        resp = self._query(**kwargs)
        return resp, resp.get('LastEvaluatedKey')

    def query_items_paged(self, partkey: str, filter_expression=None) -> List[Dict]:
        """ Collects every page of the query, DynamoDB returns at most 1mb at once """
        all_items = []
        resp, last_evaluated_key = self.query_items_paginated(partkey, filter_expression=filter_expression)
        all_items.extend(resp['Items'])

        while last_evaluated_key is not None:
            resp, last_evaluated_key = self.query_items_paginated(
                partkey, filter_expression=filter_expression, start_key=last_evaluated_key)
            all_items.extend(resp['Items'])

        return all_items

    def count_items(self, partkey: str, filter_expression=None) -> int:
        resp, last_evaluated_key = self.query_items_paginated(
            partkey, filter_expression=filter_expression, select='COUNT')
        count = resp['Count']

        while last_evaluated_key is not None:
            resp, last_evaluated_key = self.query_items_paginated(
                partkey, filter_expression=filter_expression, select='COUNT', start_key=last_evaluated_key)
            count += resp['Count']

        return count


def get_gen_table() -> DbTable:
    return DbTable(create_dynamodb_resource().Table(os.environ.get('GEN_TABLE_NAME', 'eats-marketplace')))
