# schemas/base.py
from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> datetime:
    # stored naive, always UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase on input, serializes camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def require_text(value: str, field: str, max_length: Optional[int] = None) -> str:
    # "string" is what the OpenAPI "Try it out" form pre-fills
    cleaned = (value or "").strip()
    if not cleaned or cleaned.lower() == "string":
        raise ValueError(f"You cannot leave {field} empty")
    if max_length is not None and len(cleaned) > max_length:
        raise ValueError(f"{field.capitalize()} must be at most {max_length} characters")
    return cleaned
