"""Reporting module - CSV and JSON export of results."""

from urllens.reporting.export import ColumnSpec, results_to_csv, results_to_json, write_export

__all__ = ["ColumnSpec", "results_to_csv", "results_to_json", "write_export"]
