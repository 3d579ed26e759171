"""Models for column metadata, mappings and catalog entries."""
import re
from dataclasses import dataclass, field, fields as dataclass_fields
from typing import Any, Dict, List, Optional, Pattern


LENGTH_PATTERN = re.compile(r"\(([^)]+)\)")

# External (camelCase) record names -> attribute names
FIELD_ALIASES = {
    "sourceDataType": "source_data_type",
    "sourceLength": "source_length",
    "targetDataType": "target_data_type",
    "targetLength": "target_length",
    "targetPosition": "target_position",
}
ATTRIBUTE_ALIASES = {attr: alias for alias, attr in FIELD_ALIASES.items()}


def extract_length(data_type: Optional[str]) -> str:
    """Return the size part of a type such as ``varchar(255)`` or ``decimal(10,2)``."""
    if not data_type:
        return ""
    match = LENGTH_PATTERN.search(data_type)
    return match.group(1) if match else ""


def make_table_key(schema: str, table: str) -> str:
    """Build the ``schema.table`` key used for mappings and cache entries."""
    return f"{schema}.{table}"


@dataclass
class ColumnInfo:
    """An introspected source column."""

    name: str
    data_type: str = "varchar"
    length: str = ""
    order: int = 0

    @classmethod
    def from_raw(cls, raw: Dict[str, Any], order: int = 0) -> "ColumnInfo":
        """Build from an introspection record (``{name, type}`` or ``{name, dataType, length}``)."""
        data_type = raw.get("dataType") or raw.get("type") or "varchar"
        length = raw.get("length")
        if length is None or length == "":
            length = extract_length(data_type)
        return cls(
            name=raw["name"],
            data_type=data_type,
            length=str(length),
            order=order,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "dataType": self.data_type,
            "length": self.length,
            "order": self.order,
        }


@dataclass
class ColumnMapping:
    """One source-to-target column correspondence plus its transformation."""

    source: Optional[str]
    target: str
    transformation: str = "direct"
    source_data_type: Optional[str] = None
    source_length: Optional[str] = None
    target_data_type: Optional[str] = None
    target_length: Optional[str] = None
    target_position: Optional[str] = None
    expression: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)
    derived: bool = False
    is_audit: bool = False

    @staticmethod
    def attribute_name(name: str) -> str:
        """Resolve an external field name to the attribute name."""
        return FIELD_ALIASES.get(name, name)

    @classmethod
    def for_column(cls, column: ColumnInfo) -> "ColumnMapping":
        """Default direct mapping for a source column."""
        return cls(
            source=column.name,
            target=column.name,
            transformation="direct",
            source_data_type=column.data_type,
            source_length=column.length or None,
        )

    @classmethod
    def audit(cls, target: str) -> "ColumnMapping":
        """Synthetic destination-only column."""
        return cls(source=None, target=target, derived=True, is_audit=True)

    def get(self, name: str) -> Any:
        """Read a field by attribute or external name; unknown names read from params."""
        attr = self.attribute_name(name)
        if attr in _ATTRIBUTES:
            return getattr(self, attr)
        return self.params.get(name)

    def set(self, name: str, value: Any) -> None:
        """Write a field by attribute or external name; unknown names go to params."""
        attr = self.attribute_name(name)
        if attr == "params" or attr not in _ATTRIBUTES:
            self.params[name] = value
        else:
            setattr(self, attr, value)

    def copy(self, **changes) -> "ColumnMapping":
        """Return a copy with its own params dict."""
        values = {f.name: getattr(self, f.name) for f in dataclass_fields(self)}
        values["params"] = dict(self.params)
        values.update(changes)
        return ColumnMapping(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the external record, params flattened alongside the fields."""
        record: Dict[str, Any] = dict(self.params)
        record.update({
            "source": self.source,
            "target": self.target,
            "transformation": self.transformation,
        })
        for attr in ("source_data_type", "source_length", "target_data_type",
                     "target_length", "target_position", "expression"):
            value = getattr(self, attr)
            if value is not None:
                record[ATTRIBUTE_ALIASES.get(attr, attr)] = value
        record["derived"] = self.derived
        record["is_audit"] = self.is_audit
        return record

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "ColumnMapping":
        """Build from an external record; unrecognised keys become params."""
        mapping = cls(
            source=record.get("source"),
            target=record.get("target") or record.get("source") or "",
            transformation=record.get("transformation") or "direct",
        )
        for key, value in record.items():
            if key in ("source", "target", "transformation"):
                continue
            if key in ("derived", "is_audit"):
                setattr(mapping, key, _as_bool(value))
                continue
            mapping.set(key, value)
        return mapping


def _as_bool(value: Any) -> bool:
    """Read a flag from JSON (bool) or CSV (text such as 'false', '0')."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


_ATTRIBUTES = {f.name for f in dataclass_fields(ColumnMapping)} - {"params"}


@dataclass
class ParamField:
    """A parameter declared by a transformation."""

    name: str
    label: str = ""
    type: str = "text"
    default: Optional[Any] = None
    required: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParamField":
        """Build from a catalog record."""
        return cls(
            name=data["name"],
            label=data.get("label", data["name"]),
            type=data.get("type", "text"),
            default=data.get("default"),
            required=bool(data.get("required", False)),
        )


@dataclass
class RuleDefinition:
    """A transformation offered to the user."""

    identifier: str
    label: str
    category: str = "general"
    expression_template: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "value": self.identifier,
            "label": self.label,
            "category": self.category,
            "expressionTemplate": self.expression_template,
        }


@dataclass
class GlobalRule:
    """Column-name pattern that selects a default transformation."""

    identifier: str
    pattern: Pattern
    target_transformation: str
    label: str = ""

    def matches(self, column_name: Optional[str]) -> bool:
        """True if the pattern occurs anywhere in the column name."""
        if not column_name:
            return False
        return self.pattern.search(column_name) is not None

    @classmethod
    def compile(
        cls,
        identifier: str,
        pattern: str,
        target_transformation: str,
        label: str = "",
    ) -> "GlobalRule":
        """Build a rule from a raw regex string, matched case-insensitively."""
        return cls(
            identifier=identifier,
            pattern=re.compile(pattern, re.IGNORECASE),
            target_transformation=target_transformation,
            label=label or identifier,
        )


ColumnList = List[ColumnInfo]
