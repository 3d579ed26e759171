"""Transformation catalog."""
import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from mapping_engine.exceptions import CatalogError
from mapping_engine.schema.models import GlobalRule, ParamField, RuleDefinition

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "pipeline_wizard.json"


class RuleCatalog:
    """Read-only registry of transformations and global rules."""

    def __init__(
        self,
        transformations: Iterable[RuleDefinition],
        global_rules: Iterable[GlobalRule] = (),
        parameter_schemas: Optional[Dict[str, List[ParamField]]] = None,
        data_types: Iterable[str] = (),
    ):
        """Initialize catalog."""
        self._transformations = list(transformations)
        self._global_rules = list(global_rules)
        self._parameter_schemas = dict(parameter_schemas or {})
        self.data_types = list(data_types)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleCatalog":
        """Build from the ``pipeline_wizard`` configuration section."""
        transformations = [
            RuleDefinition(
                identifier=item["value"],
                label=item.get("label", item["value"]),
                category=item.get("category", "general"),
                expression_template=item.get("expressionTemplate"),
            )
            for item in data.get("transformations", [])
        ]

        # Rules without a pattern can never match a column
        global_rules = [
            GlobalRule.compile(
                identifier=item["value"],
                pattern=item["pattern"],
                target_transformation=item["transformation"],
                label=item.get("label", ""),
            )
            for item in data.get("global_rules", [])
            if item.get("pattern")
        ]

        parameter_schemas = {
            name: [ParamField.from_dict(f) for f in param_fields]
            for name, param_fields in data.get("transformation_params", {}).items()
        }

        return cls(
            transformations=transformations,
            global_rules=global_rules,
            parameter_schemas=parameter_schemas,
            data_types=data.get("data_types", []),
        )

    @classmethod
    def load(cls, path: Optional[str] = None) -> "RuleCatalog":
        """
        Load catalog from a JSON file.

        Args:
            path: Catalog file, defaults to the packaged catalog

        Raises:
            CatalogError: If the file cannot be read or is malformed
        """
        catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH

        try:
            with open(catalog_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            catalog = cls.from_dict(data)
        except OSError as e:
            raise CatalogError(str(catalog_path), str(e)) from e
        except (json.JSONDecodeError, KeyError, TypeError, re.error) as e:
            raise CatalogError(str(catalog_path), f"{type(e).__name__}: {e}") from e

        logger.debug(
            f"Loaded {len(catalog._transformations)} transformations and "
            f"{len(catalog._global_rules)} global rules from {catalog_path}"
        )
        return catalog

    def list_transformations(self) -> List[RuleDefinition]:
        """All transformations in catalog order."""
        return list(self._transformations)

    def grouped_transformations(self) -> Dict[str, List[RuleDefinition]]:
        """Transformations grouped by category, keeping catalog order."""
        groups: Dict[str, List[RuleDefinition]] = {}
        for rule in self._transformations:
            groups.setdefault(rule.category, []).append(rule)
        return groups

    def get(self, identifier: str) -> Optional[RuleDefinition]:
        """Get transformation by identifier."""
        for rule in self._transformations:
            if rule.identifier == identifier:
                return rule
        return None

    def list_global_rules(self) -> List[GlobalRule]:
        """Global rules in evaluation order."""
        return list(self._global_rules)

    def get_global_rule(self, identifier: str) -> Optional[GlobalRule]:
        for rule in self._global_rules:
            if rule.identifier == identifier:
                return rule
        return None

    def parameter_schema(self, transformation_id: str) -> Optional[List[ParamField]]:
        """Declared parameters of a transformation, or None if it takes none."""
        schema = self._parameter_schemas.get(transformation_id)
        return list(schema) if schema else None

    def validate_params(self, transformation_id: str, params: Dict[str, Any]) -> List[str]:
        """
        Check params against the transformation's parameter schema.

        Returns:
            List of error messages, empty when valid or when no schema exists
        """
        schema = self.parameter_schema(transformation_id)
        if not schema:
            return []

        errors = []
        declared = {f.name for f in schema}

        for param_field in schema:
            value = params.get(param_field.name)
            if param_field.required and param_field.default is None and value in (None, ""):
                errors.append(f"Missing required parameter: {param_field.name}")

        for name in params:
            if name not in declared:
                errors.append(f"Unknown parameter for {transformation_id}: {name}")

        return errors

    def with_custom_functions(self, records: Iterable[Dict[str, Any]]) -> "RuleCatalog":
        """
        Return a catalog with user-defined functions appended.

        Args:
            records: Custom function records ``{name, label, category, expression_template}``
        """
        custom = [
            RuleDefinition(
                identifier=f"custom_{record['name']}",
                label=record.get("label") or record["name"],
                category="spark_udf" if record.get("category") == "spark_udf" else "custom",
                expression_template=record.get("expression_template"),
            )
            for record in records
        ]

        return RuleCatalog(
            transformations=self._transformations + custom,
            global_rules=self._global_rules,
            parameter_schemas=self._parameter_schemas,
            data_types=self.data_types,
        )

    def __contains__(self, identifier: str) -> bool:
        return self.get(identifier) is not None


@lru_cache(maxsize=None)
def default_catalog() -> RuleCatalog:
    """Packaged catalog, loaded once per process."""
    return RuleCatalog.load()
