from typing import Dict, Optional

from flask import request

from inventory_engine.exceptions import ValidationError
from inventory_engine.utils.date_utils import convert_to_date


def json_body(required: bool = True) -> Dict:
    """Request body as a dict; anything else is a validation error.

    With required=False an empty body reads as {}.
    """
    if not required and not request.get_data():
        return {}

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def int_arg(name: str, default: Optional[int] = None) -> Optional[int]:
    value = request.args.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be a whole number", details={name: value})


def date_arg(name: str):
    value = request.args.get(name)
    try:
        return convert_to_date(value)
    except ValueError:
        raise ValidationError(f"{name} must be a YYYY-MM-DD date", details={name: value})
