from __future__ import annotations

from typing import Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from lc_core.constants import MAX_CONTEXT_NAME_LENGTH, MAX_LOCALE_LENGTH, MAX_PACK_CHARS
from lc_core.errors import CatalogValidationError

BindMode = Literal["all", "addedOnly"]
FillMode = Literal["empty", "fallback", "filled"]


def _first_error_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "__root__")
    message = str(first.get("msg", "Invalid input"))
    return f"{location}: {message}" if location else message


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)

    @classmethod
    def build(cls, **values: Any) -> Self:
        """Validate ``values`` and return an instance, or raise ``CatalogValidationError``."""

        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise CatalogValidationError(_first_error_message(exc)) from exc


class BindSpec(_Request):
    enabled: bool = True
    mode: BindMode = "all"
    page_id: str | None = Field(default=None, min_length=1)
    create_page_route: str | None = Field(
        default=None, min_length=1, max_length=MAX_CONTEXT_NAME_LENGTH
    )
    create_page_title: str | None = Field(default=None, max_length=MAX_CONTEXT_NAME_LENGTH)
    module_id: str | None = Field(default=None, min_length=1)
    create_module_name: str | None = Field(
        default=None, min_length=1, max_length=MAX_CONTEXT_NAME_LENGTH
    )

    @model_validator(mode="after")
    def _check_targets(self) -> BindSpec:
        if not self.enabled:
            return self
        if self.page_id and self.create_page_route:
            raise ValueError("Choose either an existing page or a new page route, not both.")
        if not self.page_id and not self.create_page_route:
            raise ValueError("Select a page or provide a route for a new page.")
        if self.module_id and self.create_module_name:
            raise ValueError("Choose either an existing module or a new module name, not both.")
        return self


class ImportRequest(_Request):
    # Raw JSON is kept verbatim.
    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=False)

    project_id: str = Field(min_length=1)
    locale: str = Field(min_length=1, max_length=MAX_LOCALE_LENGTH)
    raw_json: str = Field(min_length=1, max_length=MAX_PACK_CHARS)
    bind: BindSpec | None = None

    @model_validator(mode="before")
    @classmethod
    def _strip_identifiers(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            for name in ("project_id", "locale"):
                if isinstance(data.get(name), str):
                    data[name] = data[name].strip()
        return data

    @property
    def wants_binding(self) -> bool:
        return self.bind is not None and self.bind.enabled


class ExportRequest(_Request):
    project_id: str = Field(min_length=1)
    locale: str = Field(min_length=1, max_length=MAX_LOCALE_LENGTH)
    mode: FillMode = "fallback"
