from .responses import ok, error, validation_error_response, csv_response, pdf_response
from .auth import auth_required, permission_required, current_user, client_ip
from .validation import validate_schema
from .db import transactional
from .dates import parse_datetime, to_naive_utc
from .jwt import (
    create_access_token,
    decode_token,
    TokenError,
)

__all__ = [
    'ok',
    'error',
    'validation_error_response',
    'csv_response',
    'pdf_response',
    'auth_required',
    'permission_required',
    'current_user',
    'client_ip',
    'create_access_token',
    'decode_token',
    'TokenError',
    'validate_schema',
    'transactional',
    'parse_datetime',
    'to_naive_utc',
]
