from __future__ import annotations

from typing import ClassVar, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_serializer,
)
from pydantic.alias_generators import to_camel

from tools import MathTools

STORE_VERSION = 1
MIN_SETS_PLANNED = 1
MAX_SETS_PLANNED = 20

Number = Union[int, float]


class Record(BaseModel):
    """Base for persisted records: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    # optional fields left out of the serialized form while unset
    omit_if_none: ClassVar[tuple[str, ...]] = ()

    @model_serializer(mode="wrap")
    def _drop_unset_optionals(self, handler, info):
        data = handler(self)
        for name in self.omit_if_none:
            field = type(self).model_fields[name]
            key = field.alias if info.by_alias and field.alias else name
            if key in data and data[key] is None:
                del data[key]
        return data

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Exercise(Record):
    omit_if_none: ClassVar[tuple[str, ...]] = ("notes",)

    id: str
    name: str
    notes: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


class TemplateExerciseRow(Record):
    id: str
    exercise_id: str
    sets_planned: int = 3
    target_reps: str = ""

    @field_validator("sets_planned", mode="before")
    @classmethod
    def _clamp_sets(cls, value):
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"setsPlanned must be a number, got {value!r}")
        return MathTools.clamp_int(number, MIN_SETS_PLANNED, MAX_SETS_PLANNED)


class WorkoutTemplate(Record):
    id: str
    name: str
    exercise_rows: list[TemplateExerciseRow] = Field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""


class SetEntry(Record):
    reps: Optional[Number] = None
    weight_kg: Optional[Number] = None


class SessionExerciseEntry(Record):
    omit_if_none: ClassVar[tuple[str, ...]] = ("target_reps",)

    exercise_id: str
    exercise_name: str
    target_reps: Optional[str] = None
    sets: list[SetEntry] = Field(default_factory=list)


class WorkoutSession(Record):
    omit_if_none: ClassVar[tuple[str, ...]] = ("comment", "is_draft")

    id: str
    date_iso: str = Field(alias="dateISO")
    template_id: str
    template_name: str
    entries: list[SessionExerciseEntry] = Field(default_factory=list)
    comment: Optional[str] = None
    is_draft: Optional[bool] = None
    created_at: str = ""
    updated_at: str = ""


class StoreDocument(Record):
    version: Literal[1] = STORE_VERSION
    exercises: list[Exercise] = Field(default_factory=list)
    templates: list[WorkoutTemplate] = Field(default_factory=list)
    sessions: list[WorkoutSession] = Field(default_factory=list)


def is_supported_version(value) -> bool:
    """True for the number 1 only; JSON ``true`` compares equal to 1 in Python."""
    return not isinstance(value, bool) and isinstance(value, (int, float)) and value == STORE_VERSION


def empty_document() -> StoreDocument:
    return StoreDocument()


def decode_document(data) -> StoreDocument:
    """Validate raw JSON-shaped ``data`` into a :class:`StoreDocument`.

    Raises ``ValueError`` when the version is not 1, a top-level collection is
    missing or not a list, or any nested record fails validation.
    """
    if not isinstance(data, dict):
        raise ValueError("document must be a JSON object")
    if not is_supported_version(data.get("version")):
        raise ValueError(f"unsupported document version: {data.get('version')!r}")
    for key in ("exercises", "templates", "sessions"):
        if not isinstance(data.get(key), list):
            raise ValueError(f"document field '{key}' must be a list")
    try:
        return StoreDocument.model_validate({**data, "version": STORE_VERSION})
    except ValidationError as e:
        raise ValueError(str(e))
