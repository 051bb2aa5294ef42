import io

import pytest
from openpyxl import Workbook


def build_workbook(sheets):
    """xlsx bytes for {sheet_name: [row, ...]}, sheets in insertion order."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def make_workbook():
    return build_workbook


@pytest.fixture
def report():
    return {'errors': [], 'warnings': []}


@pytest.fixture
def evaluation_sheets():
    return {
        'Autoevaluación': [
            ['Reporte de evaluación 360'],
            ['Evaluado', 'Área', 'Estado', 'Puntaje total', '1. Compromiso: cumple acuerdos', '1.1 Llega a tiempo', 'Liderazgo'],
            ['ana.gomez@empresa.com', 'Ventas', 'Finalizada', 92, 5, 4, 3],
            ['Luis Diaz', 'Operaciones', 'Pendiente', None, None, None, None],
        ],
        'Evaluación Descendente': [
            ['Evaluado', 'Área', 'Evaluador', 'Estado', 'Puntaje'],
            ['ana.gomez@empresa.com', 'Ventas', 'Marta Ruiz', 'Finalizada', 96],
            ['Luis Diaz', 'Operaciones', 'Marta Ruiz', 'En curso', 64],
        ],
        'Evaluación Ascendente': [
            ['Evaluado', 'Área', 'Evaluador', 'Estado', 'Puntaje'],
            ['Marta Ruiz', 'Dirección', 'Ana Gomez', 'Finalizada', 72],
            ['Marta Ruiz', 'Dirección', 'Luis Diaz', 'Finalizada', 68],
        ],
        'Evaluación de Pares': [
            ['Evaluado', 'Área', 'Evaluador', 'Estado', 'Puntaje'],
            ['Ana Gomez', 'Ventas', 'Luis Diaz', 'Finalizada', 85],
            ['Luis Diaz', 'Operaciones', 'Ana Gomez', 'Finalizada', 70],
            ['Luis Diaz', 'Operaciones', 'Marta Ruiz', 'Pendiente', None],
        ],
        'Lista de Usuarios': [
            ['Email', 'Nombre', 'Área'],
            ['ana.gomez@empresa.com', 'Ana Gomez', 'Ventas'],
        ],
    }


@pytest.fixture
def segmentation_sheets():
    return {
        'Usuarios': [
            ['Email', 'Nombre', 'Apellido', 'Área', 'Sub área', 'Ubicación', 'Cargo'],
            ['ana.gomez@empresa.com', 'Ana', 'Gomez', 'Comercial', 'Ventas Norte', 'Lima', 'Analista'],
            ['marta.ruiz@empresa.com', 'Marta', 'Ruiz', 'Dirección', None, 'Lima', 'Gerente'],
        ],
    }
