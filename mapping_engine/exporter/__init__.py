"""
Exporter Module

Interchange formats for mapping lists:
- CSV export/import for a single table
- JSON documents for the whole mapping-by-table map
"""

from .csv_codec import CsvCodec
from .json_exporter import JsonExporter

__all__ = ["CsvCodec", "JsonExporter"]
