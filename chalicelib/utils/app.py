import functools
from typing import Callable, Dict

from chalice import Response

from chalicelib.constants.constants import ErrorType
from chalicelib.constants.status_codes import http200, http400, http401, http403, http404, http409, http500
from chalicelib.utils.exceptions import (NotAuthorizedException, AccessDenied, RecordNotFound, RecordAlreadyExists,
                                         ValidationException)
from chalicelib.utils.logger import logger, log_exception

error_type_status_codes = {
    ErrorType.not_found: http404,
    ErrorType.not_authorized: http403,
    ErrorType.validation_failed: http400,
    ErrorType.conflict: http409,
    ErrorType.unexpected: http500
}


def core_output(**payload) -> Dict:
    return {'ok': True, **payload}


def error_output(error_type: str, error: str) -> Dict:
    return {'ok': False, 'error': error, 'error_type': error_type}


def output_response(output: Dict, status_code: int = None) -> Response:
    if status_code is None:
        status_code = http200 if output.get('ok') else error_type_status_codes.get(output.get('error_type'), http400)
    return Response(
        body=output,
        status_code=status_code,
        headers={'Content-Type': 'application/json'}
    )


def error_response(error: Exception, error_type: str, status_code: int, msg: str = ""):
    log_exception(error=error, msg=msg, status_code=status_code)
    return output_response(error_output(error_type, str(error)), status_code=status_code)


def service_boundary(fail_message: str):
    """
    Wraps a public service operation so that it always returns an output envelope.
    Business conditions raised inside the operation become typed failures,
    anything else is logged and reported with the generic fail_message.
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        def result(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except RecordNotFound as not_found:
                logger.info(f'{func.__name__} ::: not found: {not_found}')
                return error_output(ErrorType.not_found, str(not_found))
            except AccessDenied as access_denied:
                logger.warning(f'{func.__name__} ::: access denied: {access_denied}')
                return error_output(ErrorType.not_authorized, str(access_denied))
            except RecordAlreadyExists as already_exists:
                logger.info(f'{func.__name__} ::: conflict: {already_exists}')
                return error_output(ErrorType.conflict, str(already_exists))
            except ValidationException as validation_error:
                logger.info(f'{func.__name__} ::: validation failed: {validation_error}')
                return error_output(ErrorType.validation_failed, str(validation_error))
            except Exception as exception:
                log_exception(error=exception, msg=f'function = {func.__name__}', status_code=http500)
                return error_output(ErrorType.unexpected, fail_message)
        return result
    return decorator


def request_exception_handler(func: Callable):
    @functools.wraps(func)
    def result(*args, **kwargs):
        try:
            logger.info(f'Calling function {func.__name__}')
            return func(*args, **kwargs)
        except ValidationException as validation_error:
            return error_response(validation_error, ErrorType.validation_failed, http400,
                                  msg=f'function = {func.__name__} , error = {validation_error}')
        except NotAuthorizedException as not_authorized:
            return error_response(not_authorized, ErrorType.not_authorized, http401,
                                  msg=f'function = {func.__name__} , error = {not_authorized}')
        except AccessDenied as access_denied:
            return error_response(access_denied, ErrorType.not_authorized, http403,
                                  msg=f'function = {func.__name__} , error = {access_denied}')
        except Exception as exception:
            log_exception(error=exception, msg=f'function = {func.__name__}, error = {exception}', status_code=http500)
            return output_response(error_output(ErrorType.unexpected, 'Internal server error'), status_code=http500)
    return result


def log_start_finish(func: Callable):
    @functools.wraps(func)
    def result(*args, **kwargs):
        logger.info(f'{func.__name__} ::: started')
        response = func(*args, **kwargs)
        logger.info(f'{func.__name__} ::: finished')
        return response
    return result
