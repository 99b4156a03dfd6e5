"""Ingest module - parse pasted text and CSV exports into URL sets."""

from urllens.ingest.parser import ParseResult, parse_csv, parse_url_file, parse_url_list

__all__ = ["ParseResult", "parse_csv", "parse_url_list", "parse_url_file"]
