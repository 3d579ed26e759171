"""CSV import/export for column mappings."""
import csv
import logging
from datetime import date
from io import StringIO
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from mapping_engine.exceptions import CsvImportError, NothingToExportError
from mapping_engine.schema.models import ColumnMapping

logger = logging.getLogger(__name__)


class CsvCodec:
    """Serialize mapping lists to CSV text and parse them back."""

    HEADERS = [
        "source",
        "sourceDataType",
        "sourceLength",
        "target",
        "targetDataType",
        "targetLength",
        "transformation",
        "targetPosition",
    ]

    REQUIRED_HEADERS = ["source", "target", "transformation"]

    def export(self, mappings: Iterable[ColumnMapping]) -> str:
        """
        Export non-audit mappings to CSV text.

        Values containing a comma, double quote or newline are quoted, with
        inner quotes doubled. Rows are separated by ``\\n``.

        Args:
            mappings: Mappings in list order

        Returns:
            str: Header row followed by one row per non-audit mapping

        Raises:
            NothingToExportError: If there is no non-audit mapping
        """
        rows = [m for m in mappings if not m.is_audit]
        if not rows:
            raise NothingToExportError()

        buffer = StringIO()
        writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
        writer.writerow(self.HEADERS)

        for mapping in rows:
            writer.writerow([self._cell(mapping.get(header)) for header in self.HEADERS])

        text = buffer.getvalue()
        logger.info(f"Exported {len(rows)} mappings to CSV")
        return text[:-1] if text.endswith("\n") else text

    def import_(self, text: str) -> List[ColumnMapping]:
        """
        Parse CSV text into mappings.

        The header may hold any subset or order of the export columns but must
        include source, target and transformation. Rows missing one of those
        are skipped. Parsing is line based, so quoted fields cannot span lines.

        Args:
            text: CSV content

        Returns:
            List[ColumnMapping]: Parsed mappings in file order

        Raises:
            CsvImportError: If the header or all rows are unusable
        """
        lines = [
            line.rstrip("\r")
            for line in text.lstrip("\ufeff").split("\n")
            if line.strip()
        ]

        if len(lines) < 2:
            raise CsvImportError("CSV must contain header and at least one mapping")

        headers = self._parse_line(lines[0])

        missing = [h for h in self.REQUIRED_HEADERS if h not in headers]
        if missing:
            raise CsvImportError(f"Missing required columns: {', '.join(missing)}")

        mappings = []
        for line_number, line in enumerate(lines[1:], start=2):
            values = self._parse_line(line)
            if not values:
                continue

            record: Dict[str, str] = {}
            for idx, header in enumerate(headers):
                if idx < len(values) and values[idx] != "":
                    record[header] = values[idx]

            if all(record.get(h) for h in self.REQUIRED_HEADERS):
                mappings.append(ColumnMapping.from_dict(record))
            else:
                logger.warning(f"Skipping CSV line {line_number}: missing source, target or transformation")

        if not mappings:
            raise CsvImportError("No valid mappings found in CSV")

        logger.info(f"Imported {len(mappings)} mappings from CSV")
        return mappings

    parse = import_

    def export_to_file(self, mappings: Iterable[ColumnMapping], output_file: Path) -> Path:
        """Write exported CSV to a file."""
        output_file = Path(output_file)
        text = self.export(mappings)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        with open(output_file, "w", encoding="utf-8", newline="") as f:
            f.write(text)

        return output_file

    def import_file(self, input_file: Path) -> List[ColumnMapping]:
        """Read and parse a CSV file."""
        with open(input_file, "r", encoding="utf-8", newline="") as f:
            return self.import_(f.read())

    @staticmethod
    def default_filename(table_name: str = "mappings", today: Optional[date] = None) -> str:
        """Download name such as ``orders-mappings-2024-05-01.csv``."""
        today = today or date.today()
        return f"{table_name}-mappings-{today.isoformat()}.csv"

    @staticmethod
    def _cell(value) -> str:
        if value is None or value == "":
            return ""
        return str(value)

    @staticmethod
    def _parse_line(line: str) -> List[str]:
        """Split one CSV line, honoring quotes, and trim each value."""
        reader = csv.reader([line], skipinitialspace=True)
        return [value.strip() for value in next(reader, [])]
