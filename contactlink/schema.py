from typing import Any, Dict, List, Optional, Tuple

from .normalize import normalize_email, normalize_phone

REQUEST_FIELDS = ["email", "phoneNumber"]


def validate_request(data: Any) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.

    A request needs at least one of email/phoneNumber that is non-empty
    after normalization; present fields must be strings or null.
    """
    if not isinstance(data, dict):
        return ["Request body must be a JSON object"]

    errors: List[str] = []
    for f in REQUEST_FIELDS:
        if f in data and data[f] is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    email, phone = parse_request(data)
    if email is None and phone is None:
        errors.append("Either email or phoneNumber must be provided")
    return errors


def parse_request(data: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """Extract (email, phone) from a request body, normalized.

    Non-string values are ignored rather than rejected.
    """
    return normalize_email(data.get("email")), normalize_phone(data.get("phoneNumber"))
