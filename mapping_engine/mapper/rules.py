"""Global rule matching for source column names."""
from typing import Iterable, List, Optional

from mapping_engine.schema.models import GlobalRule


class GlobalRuleMatcher:
    """Pick a default transformation for a column from ordered regex rules."""

    def __init__(self, rules: Iterable[GlobalRule], enabled: Optional[Iterable[str]] = None):
        """
        Initialize matcher.

        Args:
            rules: Rules in catalog order
            enabled: Rule identifiers to use, None for all of them
        """
        enabled_ids = set(enabled) if enabled is not None else None
        self.rules: List[GlobalRule] = [
            rule for rule in rules
            if enabled_ids is None or rule.identifier in enabled_ids
        ]

    def match(self, column_name: str) -> Optional[GlobalRule]:
        """First rule whose pattern matches the column name."""
        for rule in self.rules:
            if rule.matches(column_name):
                return rule
        return None

    def transformation_for(self, column_name: str) -> Optional[str]:
        rule = self.match(column_name)
        return rule.target_transformation if rule else None
