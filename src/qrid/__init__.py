"""qrid: turn spreadsheet rows into self-describing viewer links."""

__version__ = "0.2.0"

DEFAULT_BASE_URL: str = "https://qrid.vercel.app/"
PAIR_SEPARATOR: str = "; "
HEADER_LOOKAHEAD_ROWS: int = 10
