"""Production-only redaction of sensitive columns and values.

The filter is inert for every environment except the one designated as
production: schemas and rows pass through untouched elsewhere.
"""
import re
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)

SENSITIVE_TYPE_SENTINEL = "[SENSITIVE - MASKED IN PRODUCTION]"
GENERIC_MASK = "*****"
PHONE_MASK = "***-***-****"
EMAIL_MASK = "***@***"


@dataclass(frozen=True)
class SensitivePattern:
    category: str
    matcher: re.Pattern

    def matches(self, text: str) -> bool:
        return self.matcher.search(text) is not None


def _pattern(category: str, regex: str) -> SensitivePattern:
    return SensitivePattern(category, re.compile(regex, re.IGNORECASE))


# Ordered; first match wins for reporting, any match marks the field sensitive
SENSITIVE_PATTERNS: tuple[SensitivePattern, ...] = (
    # PII
    _pattern("pii", r"(?<![a-z])sin(?![a-z])|ssn|social_insurance|social_security"),
    _pattern("pii", r"birth.*date|date.*birth|dob"),
    _pattern("pii", r"credit.*card|card.*number|cc_number"),
    _pattern("pii", r"passport|driver.*license|license.*number"),
    _pattern("pii", r"e_?mail"),
    # Personal information
    _pattern("personal", r"personal.*phone|home.*phone|mobile.*phone|phone"),
    _pattern("personal", r"personal.*address|home.*address|address"),
    _pattern("personal", r"medical.*record|health.*record"),
    # Financial
    _pattern("financial", r"bank.*account|account.*number|routing.*number"),
    _pattern("financial", r"salary|wage|income"),
    # Authentication
    _pattern("authentication", r"password|pwd|secret|token|api.*key"),
    _pattern("authentication", r"private.*key|certificate"),
)

_EMAIL_FIELD = re.compile(r"e_?mail", re.IGNORECASE)
_PHONE_FIELD = re.compile(r"phone", re.IGNORECASE)


# camelCase boundaries: fldSIN -> fld_SIN, SINNumber -> SIN_Number
_CAMEL_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_CAMEL_ACRONYM = re.compile(r"([A-Z]+)([A-Z][a-z])")


def split_segments(name: str) -> str:
    """Insert ``_`` at camelCase boundaries so name segments stand apart."""
    return _CAMEL_LOWER_UPPER.sub(r"\1_\2", _CAMEL_ACRONYM.sub(r"\1_\2", name))


def classify(name: str) -> Optional[str]:
    """Return the category of the first pattern matching ``name``."""
    segmented = split_segments(name)
    for pattern in SENSITIVE_PATTERNS:
        if pattern.matches(segmented):
            return pattern.category
    return None


def mask_email(value: str) -> str:
    if "@" not in value:
        return GENERIC_MASK
    local = value.split("@", 1)[0]
    return f"{local[:2]}{EMAIL_MASK}"


def mask_phone(value: str) -> str:
    digits = re.sub(r"\D", "", value)
    if len(digits) >= 10:
        return f"XXX-***-{digits[-4:]}"
    return PHONE_MASK


def mask_value(field_name: str, value: Any) -> Any:
    """Mask one sensitive value according to the shape of its field name.

    ``None`` is returned unchanged. Generic values always map to the same
    token, so neither length nor content leaks.
    """
    if value is None:
        return None
    text = value.decode(errors="replace") if isinstance(value, bytes) else str(value)
    if _EMAIL_FIELD.search(field_name):
        return mask_email(text)
    if _PHONE_FIELD.search(field_name):
        return mask_phone(text)
    return GENERIC_MASK


class ProductionSecurityFilter:
    """Redacts sensitive schema metadata and values for production only.

    Built once per active environment; its active/inert state never changes
    after construction.
    """

    def __init__(self, environment: str, production_label: str = "production"):
        self._environment = environment
        self._active = environment.lower() == production_label.lower()

    @property
    def active(self) -> bool:
        return self._active

    @property
    def environment(self) -> str:
        return self._environment

    def is_sensitive(self, field_name: str) -> bool:
        if not self._active or not isinstance(field_name, str):
            return False
        return classify(field_name) is not None

    def sensitive_fields(self, names: Iterable[str]) -> list[str]:
        return [n for n in names if self.is_sensitive(n)]

    def filter_schema(
        self,
        columns: list[dict[str, Any]],
        name_key: str = "name",
        type_key: str = "type",
    ) -> list[dict[str, Any]]:
        """Hide the declared type of sensitive columns and flag them."""
        if not self._active:
            return columns
        filtered = []
        for column in columns:
            if self.is_sensitive(column.get(name_key)):
                column = {**column, type_key: SENSITIVE_TYPE_SENTINEL, "sensitive": True}
            filtered.append(column)
        return filtered

    def filter_rows(self, rows: list[Any]) -> list[Any]:
        """Mask every sensitive field value in each row."""
        if not self._active:
            return rows
        filtered = []
        for row in rows:
            if not isinstance(row, dict):
                filtered.append(row)
                continue
            filtered.append(
                {
                    key: mask_value(key, value) if self.is_sensitive(key) else value
                    for key, value in row.items()
                }
            )
        return filtered

    def would_touch_sensitive_data(self, statement: str) -> bool:
        """Advisory check on raw statement text; never used to block."""
        if not self._active or not statement:
            return False
        segmented = split_segments(statement)
        return any(p.matches(segmented) for p in SENSITIVE_PATTERNS)

    def security_status(self) -> str:
        if self._active:
            return "PRODUCTION MODE: Sensitive data protection active"
        return "DEVELOPMENT MODE: No data filtering (full access)"
