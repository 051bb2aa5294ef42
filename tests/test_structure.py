import pytest

from eval360.parser import (
    classify_sheet_name, detect_competencies, detect_sheet_structure,
    detect_sheet_structures, extract_competency_name, find_header_row, map_columns,
)
from eval360.rules import SHEET_TYPE_RULES, match_rule


@pytest.mark.parametrize('name, expected', [
    ('Evaluación Ascendente', 'ascendente'),
    ('Evaluación Descendente', 'descendente'),
    ('Autoevaluación', 'autoevaluacion'),
    ('Self Assessment', 'autoevaluacion'),
    ('Manager Review', 'descendente'),
    ('Upward feedback', 'ascendente'),
    ('Evaluación de Pares', 'pares'),
    ('Peer Review', 'pares'),
    ('Feedback 360', 'pares'),
    ('Lista de Usuarios', 'roster'),
    ('Employees', 'roster'),
    ('Resumen', 'roster'),
    ('Hoja1', None),
])
def test_classify_sheet_name(name, expected):
    assert classify_sheet_name(name) == expected


def test_sheet_rules_first_category_wins():
    # A user-list name mentioning a type is still a user list
    assert match_rule('Lista de evaluados ascendente', SHEET_TYPE_RULES) == 'roster'


def test_roster_sheet_skipped_without_warning(report):
    rows = [['Email', 'Nombre', 'Área'], ['a@x.com', 'Ana', 'Ventas']]
    assert detect_sheet_structure('Lista de Usuarios', rows, report) is None
    assert report == {'errors': [], 'warnings': []}


def test_unknown_sheet_type_warns(report):
    rows = [['Evaluado', 'Área', 'Estado'], ['Ana', 'Ventas', 'Finalizada']]
    assert detect_sheet_structure('Hoja1', rows, report) is None
    assert len(report['warnings']) == 1
    warning = report['warnings'][0]
    assert warning['field'] == 'Hoja1'
    assert warning['severity'] == 'warning'
    assert 'tipo de evaluación' in warning['message']


def test_empty_sheet_warns(report):
    assert detect_sheet_structure('Autoevaluación', [], report) is None
    assert 'vacía' in report['warnings'][0]['message']


def test_headers_only_sheet_warns_distinctly(report):
    rows = [['Evaluado', 'Área', 'Estado', 'Puntaje'], [None, None, None, None]]
    assert detect_sheet_structure('Autoevaluación', rows, report) is None
    message = report['warnings'][0]['message']
    assert 'solo tiene encabezados' in message
    assert 'vacía' not in message


def test_header_row_after_title_rows():
    rows = [
        ['Reporte 360'],
        [None, None, None],
        ['Evaluado', 'Área', 'Estado', 'Puntaje'],
        ['Ana', 'Ventas', 'Finalizada', 90],
    ]
    assert find_header_row(rows) == 2


def test_header_row_needs_three_cells():
    rows = [['Nombre', 'Área'], ['Ana', 'Ventas', 'x']]
    assert find_header_row(rows) == -1


def test_header_row_only_scans_first_ten_rows(report):
    rows = [['x', 'y', 'z']] * 10 + [['Evaluado', 'Área', 'Estado'], ['Ana', 'Ventas', 'Finalizada']]
    assert find_header_row(rows) == -1
    assert detect_sheet_structure('Autoevaluación', rows, report) is None
    assert 'encabezados válidos' in report['warnings'][0]['message']


def test_map_columns_first_match_wins():
    headers = ['Nombre evaluado', 'Área', 'Departamento', 'Estado', 'Puntaje total', 'Promedio']
    columns = map_columns(headers, 'descendente')
    assert columns['evaluated_name'] == 0
    assert columns['evaluated_area'] == 1
    assert columns['status'] == 3
    assert columns['total_score'] == 4
    assert columns['evaluator_name'] is None


def test_map_columns_evaluator_does_not_shadow_evaluated():
    headers = ['Nombre del evaluador', 'Evaluado', 'Área', 'Estado']
    columns = map_columns(headers, 'pares')
    assert columns['evaluator_name'] == 0
    assert columns['evaluated_name'] == 1


def test_map_columns_self_evaluation_has_no_evaluator():
    headers = ['Evaluado', 'Evaluador', 'Área', 'Estado']
    assert map_columns(headers, 'autoevaluacion')['evaluator_name'] is None


def test_map_columns_english_headers():
    headers = ['Employee', 'Department', 'Reviewer', 'Status', 'Score']
    columns = map_columns(headers, 'pares')
    assert columns == {
        'evaluated_name': 0,
        'evaluated_area': 1,
        'evaluator_name': 2,
        'status': 3,
        'total_score': 4,
    }


def test_extract_competency_name():
    assert extract_competency_name('1. Compromiso: cumple acuerdos', 'compromiso') == 'Compromiso'
    assert extract_competency_name('Orientación a resultados', 'resultados') == 'Orientación a Resultados'
    assert extract_competency_name('Nivel de iniciativa', 'iniciativa') == 'Iniciativa y Autonomía'


def test_detect_competencies_groups_numbered_questions():
    headers = [
        'Evaluado',
        '1. Compromiso: cumple acuerdos',
        '1.1 Llega a tiempo',
        '2. Comunicación efectiva: escucha',
        'Liderazgo',
        'Compromiso con la calidad',
    ]
    names, columns = detect_competencies(headers, skip_columns={0})
    assert names == ['Compromiso', 'Comunicación efectiva', 'Liderazgo']
    assert [c['column'] for c in columns['Compromiso']] == [1, 2, 5]
    assert columns['Liderazgo'] == [{'column': 4, 'question': 'Liderazgo'}]


def test_detect_competencies_containment_dedup():
    headers = ['Iniciativa', 'Autonomía']
    names, columns = detect_competencies(headers)
    assert names == ['Iniciativa y Autonomía']
    assert len(columns['Iniciativa y Autonomía']) == 2


def test_detect_sheet_structure(evaluation_sheets, report):
    structure = detect_sheet_structure(
        'Autoevaluación', evaluation_sheets['Autoevaluación'], report)
    assert structure['type'] == 'autoevaluacion'
    assert structure['header_row'] == 1
    assert structure['data_start_row'] == 2
    assert structure['columns']['evaluated_name'] == 0
    assert structure['columns']['total_score'] == 3
    assert structure['competencies'] == ['Compromiso', 'Liderazgo']
    assert report['warnings'] == []


def test_missing_evaluated_column_warns(report):
    rows = [['Área', 'Estado', 'Puntaje'], ['Ventas', 'Finalizada', 80]]
    assert detect_sheet_structure('Autoevaluación', rows, report) is None
    assert 'evaluado' in report['warnings'][0]['message']


def test_detect_sheet_structures_keeps_workbook_order(evaluation_sheets, report):
    structures = detect_sheet_structures(list(evaluation_sheets.items()), report)
    assert [s['name'] for s in structures] == [
        'Autoevaluación', 'Evaluación Descendente', 'Evaluación Ascendente', 'Evaluación de Pares',
    ]
    assert report['warnings'] == []


def test_sheet_failure_becomes_error_diagnostic(report):
    # A non-list row makes the detector fail; the next sheet still processes
    sheets = [
        ('Autoevaluación', [['Evaluado', 'Área', 'Estado'], 42]),
        ('Peer Review', [['Evaluado', 'Área', 'Estado'], ['Ana', 'Ventas', 'Finalizada']]),
    ]
    structures = detect_sheet_structures(sheets, report)
    assert [s['name'] for s in structures] == ['Peer Review']
    assert report['errors'][0]['field'] == 'Autoevaluación'
    assert report['errors'][0]['severity'] == 'error'
