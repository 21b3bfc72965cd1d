"""Person records and the strictly-fielded draft used to create them.

Request-shaped input is validated into a :class:`PersonDraft` at the
engine boundary; only a validated :class:`Person` ever reaches storage.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from silsilah.domain.ids import validate_person_id
from silsilah.domain.rejections import Rejection
from silsilah.domain.types import Gender, RejectKind

MAX_NAME_LENGTH = 255


class PersonDraft(BaseModel):
    """Input for creating a person.

    ``person_id`` is optional; the engine generates a slug of the name
    when it is absent.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    person_id: str | None = None
    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    gender: Gender = Gender.UNKNOWN
    birth_date: date | None = None
    birth_place: str | None = None
    death_date: date | None = None

    @field_validator("person_id")
    @classmethod
    def _check_person_id(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return None
        if not validate_person_id(value):
            msg = (
                "must start with a letter or digit and contain only "
                "letters, digits, '.', '_' or '-'"
            )
            raise ValueError(msg)
        return value

    @field_validator("birth_place")
    @classmethod
    def _blank_place_is_none(cls, value: str | None) -> str | None:
        return value or None

    @model_validator(mode="after")
    def _check_lifespan(self) -> PersonDraft:
        if self.birth_date and self.death_date and self.death_date < self.birth_date:
            raise ValueError("death_date must be on or after birth_date")
        return self


class Person(BaseModel):
    """Canonical person record within one tree."""

    model_config = ConfigDict(frozen=True)

    person_id: str
    name: str
    gender: Gender
    birth_date: date | None = None
    birth_place: str | None = None
    death_date: date | None = None

    @classmethod
    def from_draft(cls, draft: PersonDraft, person_id: str) -> Person:
        data = draft.model_dump(exclude={"person_id"})
        return cls(person_id=person_id, **data)

    def to_record(self) -> dict[str, Any]:
        """JSON-safe dict (ISO dates) for payloads and documents."""
        return self.model_dump(mode="json")


def parse_draft(data: PersonDraft | Mapping[str, Any]) -> PersonDraft | Rejection:
    """Validate loosely-typed input into a :class:`PersonDraft`.

    Returns an ``InvalidField`` rejection listing every failing field.
    Input that is not a mapping at all is rejected under the field name
    ``draft``.
    """
    if isinstance(data, PersonDraft):
        return data
    try:
        return PersonDraft.model_validate(dict(data) if isinstance(data, Mapping) else data)
    except ValidationError as exc:
        errors = exc.errors()
        fields = [".".join(str(p) for p in err["loc"]) or "draft" for err in errors]
        problems = [f"{field}: {err['msg']}" for field, err in zip(fields, errors, strict=True)]
        return Rejection.of(RejectKind.INVALID_FIELD, "; ".join(problems), fields=fields)
