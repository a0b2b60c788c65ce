"""
Knowledge-base providers: turn a tabular source into DrugRecords.

Structure of the source sheet:
    Row 1      = headers (HOẠT CHẤT, 1. PHÂN LOẠI DƯỢC LÝ, 2.1. LIỀU ..., CẬP NHẬT)
    Row 2..n   = one drug per row, cells may contain HTML

Cells are kept raw: nested accordion markup is parsed later by the
content refiner, so nothing is stripped here.
"""
import logging
import re
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Sequence

import pandas as pd

from pedmed.catalog.records import AttributeIdentifier, DrugRecord, identifier_for_header
from pedmed.core.exceptions import KnowledgeBaseError
from pedmed.utils.text import fold

logger = logging.getLogger(__name__)

NAME_HEADERS = ("HOẠT CHẤT", "Tên thuốc", "Drug Name", "Name", "Thuốc")
ALIAS_HEADERS = ("Tên khác", "Alternative Names", "Aliases")
UPDATED_HEADERS = ("CẬP NHẬT", "Last Updated")
ALIAS_SEPARATOR_RE = re.compile(r"[,;]")


class KnowledgeBaseProvider(Protocol):
    def load_records(self) -> List[DrugRecord]:
        ...


def _find_column(headers: Sequence[str], candidates: Sequence[str]) -> Optional[int]:
    wanted = [fold(candidate) for candidate in candidates]
    for candidate in wanted:
        for index, header in enumerate(headers):
            if fold(header) == candidate:
                return index
    return None


def _split_aliases(value: str) -> List[str]:
    return [alias.strip() for alias in ALIAS_SEPARATOR_RE.split(value) if alias.strip()]


def records_from_rows(rows: Sequence[Sequence]) -> List[DrugRecord]:
    """
    Build records from a header row followed by value rows.

    Rows without a drug name are skipped. Short rows are padded with "".
    Unknown headers are ignored.

    Raises:
        KnowledgeBaseError: when no name column can be found
    """
    if not rows:
        return []

    headers = [str(header).strip() for header in rows[0]]
    name_index = _find_column(headers, NAME_HEADERS)
    if name_index is None:
        raise KnowledgeBaseError(f"No drug name column in headers: {headers}")

    alias_index = _find_column(headers, ALIAS_HEADERS)
    updated_index = _find_column(headers, UPDATED_HEADERS)

    columns: Dict[int, AttributeIdentifier] = {}
    for index, header in enumerate(headers):
        identifier = identifier_for_header(header)
        if identifier is not None:
            columns[index] = identifier
        elif index not in (name_index, alias_index, updated_index):
            logger.debug(f"Ignoring unmapped column: {header}")

    records = []
    for row in rows[1:]:
        if not row:
            continue
        cells = ["" if cell is None else str(cell) for cell in row]
        cells += [""] * (len(headers) - len(cells))

        name = cells[name_index].strip()
        if not name:
            continue

        records.append(DrugRecord.create(
            name=name,
            attributes={identifier: cells[index] for index, identifier in columns.items()},
            aliases=_split_aliases(cells[alias_index]) if alias_index is not None else (),
            last_updated=cells[updated_index] if updated_index is not None else None,
        ))

    logger.info(f"Built {len(records)} drug records from {len(rows) - 1} rows")
    return records


class SheetRowsProvider:
    """
    Provider over a spreadsheet values fetcher.

    ``fetch_rows`` returns the raw values grid (header row first), e.g. the
    ``values`` of a Sheets API ``spreadsheets.values.get`` response.
    """

    def __init__(self, fetch_rows: Callable[[], Sequence[Sequence]], sheet_name: str = "pedmedvnch"):
        self.fetch_rows = fetch_rows
        self.sheet_name = sheet_name

    def load_records(self) -> List[DrugRecord]:
        try:
            rows = self.fetch_rows()
        except KnowledgeBaseError:
            raise
        except Exception as e:
            raise KnowledgeBaseError(f"Failed to fetch sheet {self.sheet_name}: {e}") from e

        if not rows:
            logger.warning(f"Empty sheet: {self.sheet_name}")
            return []
        return records_from_rows(rows)


class CsvKnowledgeBaseProvider:
    """Provider over a CSV export of the drug sheet."""

    def __init__(self, path: str, encoding: str = "utf-8-sig"):
        self.path = Path(path)
        self.encoding = encoding

    def load_records(self) -> List[DrugRecord]:
        if not self.path.exists():
            raise KnowledgeBaseError(f"Knowledge base file not found: {self.path}")

        try:
            df = pd.read_csv(self.path, dtype=str, keep_default_na=False, encoding=self.encoding)
        except (OSError, ValueError) as e:
            raise KnowledgeBaseError(f"Cannot read {self.path}: {e}") from e

        rows = [list(df.columns)] + df.values.tolist()
        return records_from_rows(rows)
