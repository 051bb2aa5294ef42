import csv
import json
import os

import pytest

from eval360.analytics import generate_analytics
from eval360.export import export_csv, export_json
from eval360.parser import process_workbooks


@pytest.fixture
def result(make_workbook, evaluation_sheets, segmentation_sheets):
    return process_workbooks(
        make_workbook(evaluation_sheets), 'evaluaciones.xlsx',
        make_workbook(segmentation_sheets), 'usuarios.xlsx',
    )


def _read(path):
    with open(path, newline='', encoding='utf-8-sig') as f:
        return list(csv.reader(f))


def test_export_csv_tables(tmp_path, result):
    data = result['data']
    files = export_csv(data, generate_analytics(data), str(tmp_path / 'out'))
    assert [os.path.basename(f) for f in files] == [
        'Employees.csv', 'Evaluations.csv', 'CompetencyScores.csv',
        'AreaComparison.csv', 'TalentHeatMap.csv', 'Completion.csv',
    ]

    employees = _read(files[0])
    assert employees[0][0] == 'EmployeeID'
    assert len(employees) == 4
    assert employees[1][2:5] == ['Ana Gomez', 'Comercial', 'Ventas Norte']

    evaluations = _read(files[1])
    assert len(evaluations) == 10
    # blank scores are written as empty cells
    luis_self = [r for r in evaluations if r[1] == 'Autoevaluación' and r[4] == 'Luis Diaz']
    assert luis_self[0][8] == ''

    scores = _read(files[2])
    assert [r[1] for r in scores[1:]] == ['Compromiso', 'Liderazgo']

    completion = _read(files[5])
    assert completion[1] == ['overall', 'all', '6', '3', '9', '66.67']


def test_export_json(tmp_path, result):
    path = str(tmp_path / 'out.json')
    analytics = generate_analytics(result['data'])
    assert export_json(result, analytics, path) == path

    with open(path, encoding='utf-8') as f:
        payload = json.load(f)
    assert set(payload) == {'data', 'analytics', 'errors', 'warnings'}
    assert payload['data']['metadata']['areas'] == ['Comercial', 'Operaciones', 'Dirección']
    assert payload['analytics']['peer_matrix']['reciprocity'] == {'mutual': 1, 'one_way': 1}
