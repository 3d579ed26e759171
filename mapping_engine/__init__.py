"""Column mapping and transformation engine for data-movement pipelines."""

__version__ = "0.1.0"
