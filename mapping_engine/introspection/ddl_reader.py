"""Read table columns from CREATE TABLE statements."""
import logging
import re
from typing import Dict, List, Optional, Tuple

import sqlparse

from mapping_engine.schema.models import ColumnInfo, make_table_key

logger = logging.getLogger(__name__)


class DdlReader:
    """Offline schema source: column lists from SQL DDL."""

    CREATE_TABLE_PATTERN = re.compile(
        r'CREATE\s+(?:TEMP(?:ORARY)?\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?'
        r'((?:["`\[]?\w+["`\]]?\.)?["`\[]?\w+["`\]]?)\s*\((.*)\)',
        re.IGNORECASE | re.DOTALL,
    )

    COLUMN_PATTERN = re.compile(
        r'["`\[]?(\w+)["`\]]?\s+(\w+(?:\s+varying|\s+precision)?(?:\s*\([^)]*\))?)',
        re.IGNORECASE,
    )

    CONSTRAINT_PATTERN = re.compile(
        r"^(PRIMARY\s+KEY|FOREIGN\s+KEY|UNIQUE|CHECK|CONSTRAINT|INDEX|KEY)\b",
        re.IGNORECASE,
    )

    def __init__(self, default_schema: str = "public"):
        """Initialize reader with the schema used for unqualified table names."""
        self.default_schema = default_schema

    def read(self, sql_content: str) -> Dict[str, List[ColumnInfo]]:
        """
        Parse DDL and return columns per ``schema.table`` key.

        Args:
            sql_content: One or more SQL statements

        Returns:
            Dict mapping table keys to columns in declaration order
        """
        tables: Dict[str, List[ColumnInfo]] = {}

        for statement in sqlparse.parse(sql_content):
            if statement.get_type() != "CREATE":
                continue

            parsed = self._parse_create_table(statement.value)
            if parsed:
                key, columns = parsed
                tables[key] = columns

        logger.info(f"Read {len(tables)} tables from DDL")
        return tables

    def _parse_create_table(self, statement: str) -> Optional[Tuple[str, List[ColumnInfo]]]:
        match = self.CREATE_TABLE_PATTERN.search(statement)
        if not match:
            return None

        schema, table = self._split_name(match.group(1))
        columns = []

        for definition in self._split_column_definitions(match.group(2)):
            column = self._parse_column_definition(definition, order=len(columns) + 1)
            if column:
                columns.append(column)

        return make_table_key(schema, table), columns

    def _split_name(self, qualified: str) -> Tuple[str, str]:
        parts = [p.strip('"`[]') for p in qualified.split(".")]
        if len(parts) == 2:
            return parts[0], parts[1]
        return self.default_schema, parts[0]

    @staticmethod
    def _split_column_definitions(columns_def: str) -> List[str]:
        """Split on top-level commas, ignoring those inside parentheses."""
        lines = []
        current = ""
        depth = 0

        for char in columns_def:
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            elif char == "," and depth == 0:
                lines.append(current.strip())
                current = ""
                continue

            current += char

        if current.strip():
            lines.append(current.strip())

        return lines

    def _parse_column_definition(self, line: str, order: int) -> Optional[ColumnInfo]:
        if self.CONSTRAINT_PATTERN.match(line):
            return None

        match = self.COLUMN_PATTERN.match(line)
        if not match:
            return None

        data_type = re.sub(r"\s+", " ", match.group(2)).lower()
        data_type = re.sub(r"\s*\(\s*", "(", data_type)
        data_type = re.sub(r"\s*,\s*", ",", data_type)
        return ColumnInfo.from_raw({"name": match.group(1), "type": data_type}, order=order)
