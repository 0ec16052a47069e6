"""month-summary — Roll up spreadsheet measures by accounting month."""

import logging

__version__ = "0.2.0"

RESULT_MONTH_HEADER: str = "会计月"
DEFAULT_OUTPUT_NAME: str = "会计月汇总表.xlsx"

logging.getLogger(__name__).addHandler(logging.NullHandler())
