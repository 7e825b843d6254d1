from app.naming.base import BaseNamingStrategy, parse_filename
from app.naming.factory import NamingStrategyFactory
from app.naming.models import ParsedFilename, ParseFailure

__all__ = [
    "BaseNamingStrategy",
    "NamingStrategyFactory",
    "ParseFailure",
    "ParsedFilename",
    "parse_filename",
]
