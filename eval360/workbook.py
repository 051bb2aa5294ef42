"""
Workbook reader.

Opens an uploaded spreadsheet (in memory) and exposes every sheet as a raw
grid of cell values, in workbook order. .xlsx/.xlsm go through openpyxl,
.xls through xlrd, and .csv is treated as a one-sheet workbook named after
the file.
"""

import csv
import io
import logging
import os
import re

import xlrd
from openpyxl import load_workbook

logger = logging.getLogger(__name__)

CSV_ENCODINGS = ['utf-8-sig', 'utf-8', 'cp1252', 'latin-1']


class WorkbookReadError(ValueError):
    """Raised when an uploaded file cannot be read as a workbook."""


def cell_str(val):
    """Convert a cell value to a stripped string ('' for blanks)."""
    if val is None:
        return ''
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val).strip()


def cell_number(val):
    """
    Convert a cell value to float, or None when it is not numeric.

    Accepts numeric cells and strings such as '88', '88,5' or '88%'.
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        return float(val)
    s = cell_str(val).rstrip('%').strip().replace(',', '.')
    if not re.match(r'^-?\d+(\.\d+)?$', s):
        return None
    return float(s)


def is_empty_row(row):
    return not row or all(cell_str(c) == '' for c in row)


def _trim_rows(rows):
    """Drop trailing fully-empty rows."""
    end = len(rows)
    while end > 0 and is_empty_row(rows[end - 1]):
        end -= 1
    return rows[:end]


def _load_xlsx(file_bytes):
    try:
        wb = load_workbook(io.BytesIO(file_bytes), data_only=True)
    except Exception as e:
        raise WorkbookReadError(f"No se pudo leer el archivo Excel: {e}") from e

    sheets = []
    for ws in wb.worksheets:
        rows = [list(row) for row in ws.iter_rows(values_only=True)]

        # openpyxl keeps the value in the top-left cell of a merged range
        # and leaves the rest as None; spread it across the range.
        for merge_range in ws.merged_cells.ranges:
            if merge_range.min_row - 1 >= len(rows):
                continue
            val = rows[merge_range.min_row - 1][merge_range.min_col - 1]
            for r in range(merge_range.min_row - 1, min(merge_range.max_row, len(rows))):
                for c in range(merge_range.min_col - 1, min(merge_range.max_col, len(rows[r]))):
                    rows[r][c] = val

        sheets.append((ws.title, _trim_rows(rows)))
    return sheets


def _xls_value(cell, datemode):
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate_as_datetime(cell.value, datemode)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    if cell.ctype == xlrd.XL_CELL_ERROR:
        return None
    return cell.value


def _load_xls(file_bytes):
    """Legacy .xls workbooks (BIFF) through xlrd."""
    try:
        wb = xlrd.open_workbook(file_contents=file_bytes, formatting_info=True)
    except Exception as e:
        raise WorkbookReadError(f"No se pudo leer el archivo Excel: {e}") from e

    sheets = []
    for ws in wb.sheets():
        rows = [[_xls_value(c, wb.datemode) for c in ws.row(r)] for r in range(ws.nrows)]

        # merged_cells holds (rlo, rhi, clo, chi), upper bounds exclusive
        for rlo, rhi, clo, chi in ws.merged_cells:
            if rlo >= len(rows):
                continue
            val = rows[rlo][clo] if clo < len(rows[rlo]) else None
            for r in range(rlo, min(rhi, len(rows))):
                for c in range(clo, min(chi, len(rows[r]))):
                    rows[r][c] = val

        sheets.append((ws.name, _trim_rows(rows)))
    return sheets


def _load_csv(file_bytes, sheet_name):
    for encoding in CSV_ENCODINGS:
        try:
            text = file_bytes.decode(encoding)
        except (UnicodeDecodeError, UnicodeError):
            continue
        try:
            dialect = csv.Sniffer().sniff(text[:4096], delimiters=',;\t|')
        except csv.Error:
            dialect = csv.excel
        rows = [row for row in csv.reader(io.StringIO(text), dialect)]
        return [(sheet_name, _trim_rows(rows))]
    raise WorkbookReadError("No se pudo leer el archivo CSV con ninguna codificación soportada")


def read_workbook(file_bytes, filename):
    """
    Read an uploaded workbook.

    Returns:
        list of (sheet_name, rows) tuples in workbook order, where rows
        is a list of lists of raw cell values.
    """
    if not file_bytes:
        raise WorkbookReadError("El archivo está vacío")

    stem, ext = os.path.splitext(os.path.basename(filename or ''))
    ext = ext.lower()
    if ext == '.csv':
        sheets = _load_csv(file_bytes, stem or 'CSV')
    elif ext in ('.xlsx', '.xlsm'):
        sheets = _load_xlsx(file_bytes)
    elif ext == '.xls':
        sheets = _load_xls(file_bytes)
    else:
        raise WorkbookReadError(f"Formato no soportado: {ext or filename}. Use .xlsx, .xls o .csv")

    logger.debug("Read %d sheet(s) from %s", len(sheets), filename)
    return sheets
