"""Utility functions for bankimport."""

from bankimport.utils.date_parser import parse_date, parse_statement_date
from bankimport.utils.amount_parser import parse_amount
from bankimport.utils.logging_config import get_logger, setup_logging

__all__ = ["parse_date", "parse_statement_date", "parse_amount", "get_logger", "setup_logging"]
