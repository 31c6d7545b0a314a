from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Address(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True
    )

    id: str
    full_name: str = ""
    address_line1: str = ""
    address_line2: str | None = None
    city: str = ""
    # Two-letter code; pricing falls back to defaults for anything it does not know.
    state: str = ""
    zip_code: str = ""
    phone_number: str | None = None
    is_default: bool = False
