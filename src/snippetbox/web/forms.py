"""Form data validation for the handlers."""

import re
from collections.abc import Iterable, Mapping
from typing import Any

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)


class Form:
    """Submitted form values plus the validation errors found so far.

    Each check records at most one message per field; the first failing
    check wins.

    Example:
        form = Form(await request.form())
        form.required("title", "content")
        form.max_length("title", 100)
        if not form.valid:
            return render(..., form=form)
    """

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self.values: dict[str, str] = {}
        for key, value in (data or {}).items():
            if isinstance(value, str):
                self.values[key] = value
        self.errors: dict[str, str] = {}

    def get(self, field: str) -> str:
        return self.values.get(field, "")

    def add_error(self, field: str, message: str) -> None:
        self.errors.setdefault(field, message)

    def required(self, *fields: str) -> None:
        for field in fields:
            if not self.get(field).strip():
                self.add_error(field, "This field cannot be blank")

    def max_length(self, field: str, n: int) -> None:
        value = self.get(field)
        if value and len(value) > n:
            self.add_error(field, f"This field is too long (maximum is {n} characters)")

    def min_length(self, field: str, n: int) -> None:
        value = self.get(field)
        if value and len(value) < n:
            self.add_error(field, f"This field is too short (minimum is {n} characters)")

    def matches_pattern(self, field: str, pattern: re.Pattern[str]) -> None:
        value = self.get(field)
        if value and not pattern.match(value):
            self.add_error(field, "This field is invalid")

    def permitted_values(self, field: str, options: Iterable[str]) -> None:
        value = self.get(field)
        if value and value not in set(options):
            self.add_error(field, "This field is invalid")

    @property
    def valid(self) -> bool:
        return not self.errors
