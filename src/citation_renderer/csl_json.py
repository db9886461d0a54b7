"""Validated CSL-JSON input records."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .dates import date_from_csl
from .models import Item
from .names import names_from_csl
from .vocabulary import DATE_VARIABLES, NAME_VARIABLES, normalize_type

logger = logging.getLogger(__name__)

# Field names used by some exporters instead of the CSL variable names.
FIELD_ALIASES = {
    "journalAbbreviation": "container-title-short",
    "shortTitle": "title-short",
    "abstractNote": "abstract",
    "place": "publisher-place",
}


class CslName(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    family: Optional[str] = None
    given: Optional[str] = None
    dropping_particle: Optional[str] = Field(None, alias="dropping-particle")
    non_dropping_particle: Optional[str] = Field(None, alias="non-dropping-particle")
    suffix: Optional[str] = None
    comma_suffix: Optional[bool] = Field(None, alias="comma-suffix")
    literal: Optional[str] = None

    def as_csl(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class CslDate(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    date_parts: Optional[List[List[Union[int, str, None]]]] = Field(None, alias="date-parts")
    raw: Optional[str] = None
    literal: Optional[str] = None
    season: Optional[Union[int, str]] = None
    circa: Optional[Union[bool, int, str]] = None

    def as_csl(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class CslItem(BaseModel):
    """One CSL-JSON record; unknown variables are kept as extra fields."""

    model_config = ConfigDict(extra="allow")

    id: Union[str, int]
    type: Optional[str] = None

    @field_validator("id")
    @classmethod
    def id_not_blank(cls, value: Union[str, int]) -> Union[str, int]:
        if isinstance(value, str) and not value.strip():
            raise ValueError("id must not be empty")
        return value

    def variables(self) -> Dict[str, Any]:
        raw = dict(self.model_extra or {})
        converted: Dict[str, Any] = {}
        for key, value in raw.items():
            name = FIELD_ALIASES.get(key, key)
            if value in (None, "", []):
                continue
            if name in NAME_VARIABLES:
                entries = value if isinstance(value, list) else [value]
                names = [CslName.model_validate(entry).as_csl() if isinstance(entry, dict) else entry for entry in entries]
                converted[name] = names_from_csl(names)
            elif name in DATE_VARIABLES:
                if isinstance(value, dict):
                    value = CslDate.model_validate(value).as_csl()
                date = date_from_csl(value)
                if date is not None:
                    converted[name] = date
            elif isinstance(value, (int, float)) and not isinstance(value, bool):
                converted[name] = str(value)
            elif isinstance(value, str):
                converted[name] = value
            else:
                logger.debug("Item %s: ignoring non-scalar field %s", self.id, key)
        return converted

    def to_item(self) -> Item:
        item_type = normalize_type(self.type)
        if self.type and item_type is None:
            logger.warning("Item %s has unknown type %r; rendering it untyped", self.id, self.type)
        return Item(id=self.id, type=item_type, variables=self.variables(), raw_type=self.type)


def parse_items(records: List[Dict[str, Any]]) -> List[Item]:
    """Validate raw CSL-JSON records; raises ``pydantic.ValidationError``."""
    return [CslItem.model_validate(record).to_item() for record in records]


__all__ = ["CslDate", "CslItem", "CslName", "FIELD_ALIASES", "parse_items"]
