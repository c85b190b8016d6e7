import re
from typing import NamedTuple, Optional

PHONE_FORMATTING = re.compile(r"[\s\-.()]")


class Observation(NamedTuple):
    email: Optional[str]
    phone: Optional[str]

    @property
    def is_empty(self) -> bool:
        return self.email is None and self.phone is None


def normalize_email(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    email = value.strip().lower()
    return email or None


def normalize_phone(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    phone = PHONE_FORMATTING.sub("", value).strip()
    return phone or None


def normalize_observation(email=None, phone=None) -> Observation:
    return Observation(normalize_email(email), normalize_phone(phone))
