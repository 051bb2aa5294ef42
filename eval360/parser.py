"""
Flexible 360° evaluation workbook parser.

Auto-detects the layout of every sheet without requiring fixed sheet
names, column order or header position.

Handles:
  - Evaluation type from the sheet name (self, downward, upward, peer)
  - User-list / summary sheets (skipped without a warning)
  - Title rows above the header (header searched in the first 10 rows)
  - Spanish and English headers
  - Competency columns, numbered ("1. Compromiso: ...") or by keyword,
    with numbered question columns ("1.1 ...") grouped under them
  - Competency scores on 1-5, 1-10 or 0-100 scales
  - Evaluated/evaluator cells holding emails or names
  - The same employee appearing in several sheets (best score kept)

Diagnostics are returned, never raised: every call builds its own
{'errors': [...], 'warnings': [...]} report.
"""

import logging
import re

from eval360.identity import resolve_identity
from eval360.rules import (
    COLUMN_RULES, COMPETENCY_KEYWORDS, COMPETENCY_LABELS, HEADER_INDICATORS,
    SHEET_TYPE_RULES, STATUS_RULES, contains_any, match_rule,
)
from eval360.segmentation import extract_segmentations
from eval360.workbook import (
    WorkbookReadError, cell_number, cell_str, is_empty_row, read_workbook,
)

logger = logging.getLogger(__name__)

MAX_HEADER_SCAN = 10
MIN_HEADER_CELLS = 3

NO_AREA = 'Sin área'

# Name-column values that mark an aggregate row rather than a person
SUMMARY_ROW_NAMES = {'total', 'totales', 'promedio', 'average', 'resumen', 'summary'}

NUMBERED_NAME = re.compile(r'^\s*\d+\s*[.)]\s*(?!\d)([^:]+)')
LEADING_NUMBER = re.compile(r'^\s*(\d+)\s*[.)]')


def _diagnostic(field, message, severity):
    return {'field': field, 'message': message, 'severity': severity}


# ── Sheet structure detection ──

def classify_sheet_name(sheet_name):
    """
    Classify a sheet by its name.

    Returns 'roster' for user-list/summary sheets, one of the evaluation
    types, or None when the name is not recognised.
    """
    return match_rule(sheet_name, SHEET_TYPE_RULES)


def _is_header_row(row):
    non_empty = [cell_str(c) for c in row if cell_str(c) != '']
    if len(non_empty) < MIN_HEADER_CELLS:
        return False
    return contains_any(' '.join(non_empty), HEADER_INDICATORS)


def find_header_row(rows, max_scan=MAX_HEADER_SCAN):
    """Index of the first header-looking row within max_scan rows, or -1."""
    for i, row in enumerate(rows[:max_scan]):
        if _is_header_row(row):
            return i
    return -1


def map_columns(headers, evaluation_type):
    """
    Map each evaluation field to the first column whose header matches it.

    Fields are resolved independently; once a field has a column, later
    matching columns are ignored. Unmapped required fields are -1,
    unmapped optional fields (evaluator, total score) are None.
    """
    columns = {
        'evaluated_name': -1,
        'evaluated_area': -1,
        'evaluator_name': None,
        'status': -1,
        'total_score': None,
    }
    for ci, header in enumerate(headers):
        text = cell_str(header).lower()
        if not text:
            continue
        for field, (keywords, excluded) in COLUMN_RULES.items():
            if field == 'evaluator_name' and evaluation_type == 'autoevaluacion':
                continue
            if columns[field] not in (-1, None):
                continue
            if match_rule(text, [(field, keywords, excluded)]):
                columns[field] = ci
    return columns


def extract_competency_name(header, keyword):
    """
    Display name for a competency header.

    "1. Compromiso: se involucra..." -> "Compromiso"; otherwise the
    canonical label of the matched keyword.
    """
    m = NUMBERED_NAME.match(header)
    if m and m.group(1).strip():
        return m.group(1).strip()
    return COMPETENCY_LABELS.get(keyword, '')


def detect_competencies(headers, skip_columns=()):
    """
    Find competency names and the columns that score them.

    Returns (names, columns) where columns maps each name to a list of
    {'column', 'question'} dicts. Names are deduplicated by keyword
    containment, so near-duplicate headers fold into the first one.
    """
    names = []
    columns = {}
    numbered = {}  # leading number -> competency name

    for ci, header in enumerate(headers):
        if ci in skip_columns:
            continue
        text = cell_str(header)
        lower = text.lower()
        if not lower:
            continue

        number = LEADING_NUMBER.match(text)
        number = number.group(1) if number else None

        keyword = next((kw for kw in COMPETENCY_KEYWORDS if kw in lower), None)
        owner = None
        if keyword:
            owner = next((n for n in names if keyword in n.lower()), None)
            if owner is None:
                owner = extract_competency_name(text, keyword) or None
                if owner and owner not in names:
                    names.append(owner)
                    columns[owner] = []
            if owner and number:
                numbered.setdefault(number, owner)
        elif number in numbered:
            owner = numbered[number]

        if owner:
            columns[owner].append({'column': ci, 'question': text})

    return names, columns


def detect_sheet_structure(sheet_name, rows, report):
    """
    Infer the structure of one sheet.

    Returns a structure dict, or None when the sheet is not a usable
    evaluation sheet. User-list sheets are skipped silently; every other
    skip appends a warning to report.
    """
    category = classify_sheet_name(sheet_name)
    if category == 'roster':
        logger.info("Sheet '%s' is a user list, skipped", sheet_name)
        return None

    non_empty = [row for row in rows if not is_empty_row(row)]
    if not non_empty:
        report['warnings'].append(_diagnostic(
            sheet_name, f'La hoja "{sheet_name}" está vacía', 'warning'))
        return None
    if len(non_empty) == 1:
        report['warnings'].append(_diagnostic(
            sheet_name, f'La hoja "{sheet_name}" solo tiene encabezados, sin datos', 'warning'))
        return None

    if category is None:
        report['warnings'].append(_diagnostic(
            sheet_name,
            f'No se pudo determinar el tipo de evaluación para la hoja "{sheet_name}"',
            'warning'))
        return None

    header_idx = find_header_row(rows)
    if header_idx == -1:
        report['warnings'].append(_diagnostic(
            sheet_name, f'No se encontraron encabezados válidos en la hoja "{sheet_name}"', 'warning'))
        return None
    if all(is_empty_row(row) for row in rows[header_idx + 1:]):
        report['warnings'].append(_diagnostic(
            sheet_name, f'La hoja "{sheet_name}" solo tiene encabezados, sin datos', 'warning'))
        return None

    headers = rows[header_idx]
    columns = map_columns(headers, category)
    if columns['evaluated_name'] == -1:
        report['warnings'].append(_diagnostic(
            sheet_name, f'No se encontró la columna del evaluado en la hoja "{sheet_name}"', 'warning'))
        return None

    mapped = {ci for ci in columns.values() if ci not in (-1, None)}
    competencies, competency_columns = detect_competencies(headers, skip_columns=mapped)

    logger.info("Sheet '%s' detected as %s (header row %d, %d competencies)",
                sheet_name, category, header_idx, len(competencies))
    return {
        'name': sheet_name,
        'type': category,
        'columns': columns,
        'header_row': header_idx,
        'data_start_row': header_idx + 1,
        'competencies': competencies,
        'competency_columns': competency_columns,
    }


def detect_sheet_structures(sheets, report):
    """Detect the structure of every sheet, in workbook order."""
    structures = []
    for sheet_name, rows in sheets:
        try:
            structure = detect_sheet_structure(sheet_name, rows, report)
        except Exception as e:
            report['errors'].append(_diagnostic(
                sheet_name, f'Error al analizar la hoja "{sheet_name}": {e}', 'error'))
            continue
        if structure:
            structures.append(structure)
    return structures


# ── Record building ──

def normalize_status(val):
    """Map a status cell to 'Finalizada', 'En curso' or 'Pendiente'."""
    return match_rule(cell_str(val), STATUS_RULES) or 'Pendiente'


def _cell(row, ci):
    if ci is None or ci < 0 or ci >= len(row):
        return None
    return row[ci]


def _detect_score_scale(rows, structure):
    """Scale of the competency cells of a sheet: 5, 10 or 100."""
    nums = []
    for row in rows[structure['data_start_row']:]:
        for cols in structure['competency_columns'].values():
            for col in cols:
                n = cell_number(_cell(row, col['column']))
                if n is not None:
                    nums.append(n)
    max_val = max(nums) if nums else 0
    if max_val > 10:
        return 100
    if max_val > 5:
        return 10
    return 5


def extract_competency_scores(row, structure, scale):
    """
    Competency scores of one row.

    Question scores are kept as found; average_score is the mean
    expressed on a 0-100 scale. Competencies without any numeric cell
    are left out.
    """
    scores = []
    for name in structure['competencies']:
        questions = []
        for col in structure['competency_columns'].get(name, []):
            n = cell_number(_cell(row, col['column']))
            if n is not None:
                questions.append({'question_text': col['question'], 'score': n})
        if not questions:
            continue
        mean = sum(q['score'] for q in questions) / len(questions)
        scores.append({
            'competency_name': name,
            'questions': questions,
            'average_score': round(mean / scale * 100, 2),
        })
    return scores


def _is_summary_row(name_val):
    return name_val.lower().strip() in SUMMARY_ROW_NAMES


def process_evaluation_sheet(structure, rows, directory, sheet_index=0):
    """
    Build the evaluations of one sheet.

    Returns a list of (evaluation, identity) tuples; identity is the
    resolve_identity() result for the evaluated person.
    """
    columns = structure['columns']
    eval_type = structure['type']
    scale = _detect_score_scale(rows, structure)
    results = []

    for i in range(structure['data_start_row'], len(rows)):
        row = rows[i]
        if is_empty_row(row):
            continue
        raw_name = cell_str(_cell(row, columns['evaluated_name']))
        if not raw_name or _is_summary_row(raw_name):
            continue

        identity = resolve_identity(raw_name, directory)
        segmentation = identity['segmentation']
        area = (segmentation or {}).get('area') or cell_str(_cell(row, columns['evaluated_area'])) or NO_AREA

        evaluator_name = None
        if eval_type != 'autoevaluacion' and columns['evaluator_name'] is not None:
            raw_evaluator = cell_str(_cell(row, columns['evaluator_name']))
            if raw_evaluator:
                evaluator_name = resolve_identity(raw_evaluator, directory)['name']

        evaluation = {
            'id': f"eval_{eval_type}_{sheet_index}_{i + 1}",
            'sheet': structure['name'],
            'evaluated_id': identity['email'],
            'evaluated_name': identity['name'],
            'evaluated_area': area,
            'evaluator_name': evaluator_name,
            'type': eval_type,
            'status': normalize_status(_cell(row, columns['status'])),
            'total_score': cell_number(_cell(row, columns['total_score'])),
            'competencies': extract_competency_scores(row, structure, scale),
        }
        results.append((evaluation, identity))

    logger.debug("Sheet '%s': %d evaluation(s)", structure['name'], len(results))
    return results


def _upsert_employee(employees, index, evaluation, identity):
    """Create the (name, area) employee on first sight; keep the best score."""
    key = (evaluation['evaluated_name'], evaluation['evaluated_area'])
    score = evaluation['total_score']
    employee = index.get(key)
    if employee is None:
        segmentation = identity['segmentation'] or {}
        employee = {
            'id': f"emp_{len(employees) + 1}",
            'email': identity['email'],
            'name': evaluation['evaluated_name'],
            'area': evaluation['evaluated_area'],
            'sub_area': segmentation.get('sub_area'),
            'location': segmentation.get('location'),
            'status': 'Finalizado' if evaluation['status'] == 'Finalizada' else 'En curso',
            'final_score': score,
        }
        employees.append(employee)
        index[key] = employee
    elif score is not None and (employee['final_score'] is None or score > employee['final_score']):
        employee['final_score'] = score


def build_competency_catalog(structures):
    """Competencies of all sheets, deduplicated by name, with their questions."""
    questions = {}
    for structure in structures:
        for name in structure['competencies']:
            texts = questions.setdefault(name, [])
            for col in structure['competency_columns'].get(name, []):
                if col['question'] not in texts:
                    texts.append(col['question'])

    catalog = []
    for i, (name, texts) in enumerate(questions.items()):
        catalog.append({
            'id': f"comp_{i}",
            'name': name,
            'description': '',
            'questions': [{'id': f"comp_{i}_q{j}", 'text': t} for j, t in enumerate(texts)],
        })
    return catalog


def build_metadata(employees, evaluations, competencies):
    evaluation_types = []
    for evaluation in evaluations:
        if evaluation['type'] not in evaluation_types:
            evaluation_types.append(evaluation['type'])
    areas = []
    for employee in employees:
        if employee['area'] not in areas:
            areas.append(employee['area'])
    return {
        'total_employees': len(employees),
        'total_evaluations': len(evaluations),
        'evaluation_types': evaluation_types,
        'areas': areas,
        'sub_areas': sorted({e['sub_area'] for e in employees if e.get('sub_area')}),
        'locations': sorted({e['location'] for e in employees if e.get('location')}),
        'competency_names': [c['name'] for c in competencies],
    }


def build_dataset(structures, sheet_rows, directory, report):
    """
    Build the normalized dataset from detected sheet structures.

    Args:
        structures: output of detect_sheet_structures()
        sheet_rows: sheet name -> raw rows
        directory: segmentation user directory (identifier -> user)
        report: diagnostics accumulator

    Returns:
        dict with 'employees', 'evaluations', 'competencies',
        'sheet_structures', 'metadata'
    """
    employees = []
    index = {}
    evaluations = []

    for sheet_index, structure in enumerate(structures):
        try:
            records = process_evaluation_sheet(
                structure, sheet_rows[structure['name']], directory, sheet_index)
        except Exception as e:
            report['errors'].append(_diagnostic(
                structure['name'], f'Error al procesar la hoja "{structure["name"]}": {e}', 'error'))
            continue
        for evaluation, identity in records:
            evaluations.append(evaluation)
            _upsert_employee(employees, index, evaluation, identity)

    competencies = build_competency_catalog(structures)
    return {
        'employees': employees,
        'evaluations': evaluations,
        'competencies': competencies,
        'sheet_structures': structures,
        'metadata': build_metadata(employees, evaluations, competencies),
    }


def _failure(report):
    return {
        'success': False,
        'data': None,
        'errors': report['errors'],
        'warnings': report['warnings'],
        'segmentation': None,
    }


def process_workbooks(evaluation_bytes, evaluation_filename,
                      segmentation_bytes=None, segmentation_filename=None):
    """
    Parse an evaluation workbook (and optional segmentation workbook).

    Returns:
        {'success', 'data', 'errors', 'warnings', 'segmentation'} where
        data is the normalized dataset or None when nothing usable was found.
    """
    report = {'errors': [], 'warnings': []}

    try:
        sheets = read_workbook(evaluation_bytes, evaluation_filename)
    except WorkbookReadError as e:
        report['errors'].append(_diagnostic('file', str(e), 'error'))
        return _failure(report)

    segmentation = {'users': {}, 'segmentations': []}
    if segmentation_bytes is not None:
        try:
            seg_sheets = read_workbook(segmentation_bytes, segmentation_filename)
        except WorkbookReadError as e:
            report['errors'].append(_diagnostic('segmentation_file', str(e), 'error'))
            return _failure(report)
        segmentation = extract_segmentations(seg_sheets, report)

    structures = detect_sheet_structures(sheets, report)
    if not structures:
        report['errors'].append(_diagnostic(
            'sheets', 'No se encontraron hojas válidas de evaluación', 'error'))
        return _failure(report)

    data = build_dataset(structures, dict(sheets), segmentation['users'], report)
    data['metadata']['segmentations'] = segmentation['segmentations']
    return {
        'success': True,
        'data': data,
        'errors': report['errors'],
        'warnings': report['warnings'],
        'segmentation': segmentation,
    }


def process_files(evaluation_path, segmentation_path=None):
    """Convenience wrapper around process_workbooks() for files on disk."""
    with open(evaluation_path, 'rb') as f:
        evaluation_bytes = f.read()
    segmentation_bytes = None
    if segmentation_path:
        with open(segmentation_path, 'rb') as f:
            segmentation_bytes = f.read()
    return process_workbooks(evaluation_bytes, evaluation_path,
                             segmentation_bytes, segmentation_path)
