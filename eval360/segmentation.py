"""
User segmentation workbook parser.

Builds a directory of users (identifier -> user dict) from the secondary
workbook. Each sheet is inspected for identity columns (email, user,
name...) and segmentation columns (area, sub-area, location...). Sheets
without an identity column are skipped with a warning.

User dict:
    {'id', 'name', 'area', 'sub_area', 'location', 'attributes'}
"""

import logging

from eval360.identity import UNKNOWN_NAME
from eval360.rules import (
    IDENTITY_KEYWORDS, IDENTITY_WORDS, SEGMENTATION_KEYWORDS, USER_COLUMN_RULES,
    contains_any, contains_word, match_rule,
)
from eval360.workbook import cell_str, is_empty_row

logger = logging.getLogger(__name__)

SEGMENT_KINDS = ('area', 'sub_area', 'location')

MAX_HEADER_SCAN = 10
MIN_HEADER_CELLS = 2


def _warning(field, message):
    return {'field': field, 'message': message, 'severity': 'warning'}


def is_identity_header(text):
    return contains_any(text, IDENTITY_KEYWORDS) or contains_word(text, IDENTITY_WORDS)


def _find_header_row(rows):
    """
    First row (within the scan window) with an identity column and at
    least MIN_HEADER_CELLS filled cells, so a one-cell title such as
    "Listado de usuarios" is not taken for the header.
    """
    for i, row in enumerate(rows[:MAX_HEADER_SCAN]):
        cells = [cell_str(c) for c in row if cell_str(c) != '']
        if len(cells) < MIN_HEADER_CELLS:
            continue
        if any(is_identity_header(c) for c in cells):
            return i
    return -1


def analyze_sheet(rows):
    """
    Classify the header columns of a segmentation sheet.

    Returns a dict with 'header_row', 'identity_columns',
    'segmentation_columns' (header texts) and 'roles' (role -> column
    index, first column wins). 'valid' is False when no identity column
    exists.
    """
    header_idx = _find_header_row(rows)
    structure = {
        'valid': False,
        'header_row': header_idx,
        'identity_columns': [],
        'segmentation_columns': [],
        'roles': {},
        'attribute_columns': {},
    }
    if header_idx == -1:
        return structure

    for ci, header in enumerate(rows[header_idx]):
        text = cell_str(header)
        if not text:
            continue
        if is_identity_header(text):
            structure['identity_columns'].append(text)
        if contains_any(text, SEGMENTATION_KEYWORDS):
            structure['segmentation_columns'].append(text)
        role = match_rule(text, USER_COLUMN_RULES)
        if role and role not in structure['roles']:
            structure['roles'][role] = ci
        elif role is None and contains_any(text, SEGMENTATION_KEYWORDS):
            structure['attribute_columns'][text] = ci

    structure['valid'] = bool(structure['identity_columns'])
    return structure


def _value(row, roles, role):
    ci = roles.get(role)
    if ci is None or ci >= len(row):
        return ''
    return cell_str(row[ci])


def _extract_name(row, roles):
    # Priority: "nombre y apellido" > nombre + apellido > nombre > name > fullname
    combined = _value(row, roles, 'nombre_apellido')
    nombre = _value(row, roles, 'nombre')
    apellido = _value(row, roles, 'apellido')
    if combined:
        return combined
    if nombre and apellido:
        return f"{nombre} {apellido}".strip()
    for candidate in (nombre, _value(row, roles, 'name'), _value(row, roles, 'fullname')):
        if candidate:
            return candidate
    return UNKNOWN_NAME


def user_from_row(row, structure):
    """Build a user dict from a data row, or None without an identifier."""
    roles = structure['roles']
    user_id = (
        _value(row, roles, 'email')
        or _value(row, roles, 'usuario')
        or _value(row, roles, 'nombre')
        or _value(row, roles, 'nombre_apellido')
    )
    if not user_id:
        return None

    attributes = {}
    for header, ci in structure['attribute_columns'].items():
        val = cell_str(row[ci]) if ci < len(row) else ''
        if val:
            attributes[header] = val

    return {
        'id': user_id,
        'name': _extract_name(row, roles),
        'area': _value(row, roles, 'area') or None,
        'sub_area': _value(row, roles, 'sub_area') or None,
        'location': _value(row, roles, 'location') or None,
        'attributes': attributes,
    }


def extract_segmentations(sheets, report):
    """
    Build the user directory from a segmentation workbook.

    Args:
        sheets: list of (sheet_name, rows) from read_workbook()
        report: {'errors': [...], 'warnings': [...]} accumulator

    Returns:
        dict with 'users' (identifier -> user, last row wins) and
        'segmentations' (distinct segmentation column headers).
    """
    users = {}
    segmentations = []

    for sheet_name, rows in sheets:
        try:
            if not rows:
                report['warnings'].append(_warning(sheet_name, f'La hoja "{sheet_name}" está vacía'))
                continue

            structure = analyze_sheet(rows)
            if not structure['valid']:
                report['warnings'].append(_warning(
                    sheet_name,
                    f'La hoja "{sheet_name}" no tiene una estructura válida de usuarios',
                ))
                continue

            count = 0
            for row in rows[structure['header_row'] + 1:]:
                if is_empty_row(row):
                    continue
                user = user_from_row(row, structure)
                if user is None:
                    continue
                users[user['id']] = user
                count += 1

            for header in structure['segmentation_columns']:
                if header not in segmentations:
                    segmentations.append(header)
            logger.info("Segmentation sheet '%s': %d user row(s)", sheet_name, count)
        except Exception as e:
            report['warnings'].append(_warning(
                sheet_name, f'Error procesando hoja "{sheet_name}": {e}',
            ))

    return {'users': users, 'segmentations': segmentations}


def segmentation_values(users, kind):
    """Sorted distinct non-blank values of one segmentation attribute."""
    if kind not in SEGMENT_KINDS:
        raise ValueError(f"Unknown segmentation: {kind}. Use one of {', '.join(SEGMENT_KINDS)}")
    return sorted({u[kind] for u in users.values() if u.get(kind)})
