"""Request body cleaning shared by the team and roster services."""

from dataclasses import fields

from registration.errors import ValidationError


def as_int(value, label):
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{label} must be a number")


def _coerce(field_type, value, label):
    if field_type is str:
        return "" if value is None else str(value).strip()
    if field_type is bool:
        if not isinstance(value, bool):
            raise ValidationError(f"{label} must be true or false")
        return value
    if field_type is int:
        return as_int(value, label)
    return None if value in (None, "") else str(value)


def clean_patch(record_cls, body, protected=()):
    """Map a camelCase request body onto record attributes.

    Unknown keys and ``protected`` attributes are dropped silently.
    """
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    types = {f.name: f.type for f in fields(record_cls)}
    cleaned = {}
    for wire, attr in record_cls.wire_names().items():
        if wire in body and attr not in protected:
            cleaned[attr] = _coerce(types[attr], body[wire], wire)
    return cleaned


def require(body, wire_names):
    for name in wire_names:
        value = body.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"Required field: {name}")


def check_choice(value, choices, label):
    if value not in choices:
        raise ValidationError(f"Invalid {label}: {value!r}. Expected one of: {', '.join(choices)}")
