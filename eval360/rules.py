"""
Keyword rule tables used to recognise sheets, headers and columns.

Every vocabulary lives here as data. The parsers consult them through
match_rule(), so a rule can be changed or tested without touching the
detection code.

A rule table is an ordered list of (category, keywords) or
(category, keywords, excluded) tuples. The first category whose keywords
appear in the lower-cased text wins, unless one of its excluded terms is
also present.
"""

import re

# Sheet-name classification. 'roster' comes first so user lists are skipped
# quietly before any evaluation type is considered.
SHEET_TYPE_RULES = [
    ('roster', ['usuarios', 'empleados', 'users', 'employees', 'lista', 'list',
                'resumen', 'summary']),
    ('autoevaluacion', ['autoevaluac', 'self']),
    ('descendente', ['descendente', 'downward', 'manager']),
    ('ascendente', ['ascendente', 'upward', 'subordinate']),
    ('pares', ['pares', 'peer', '360']),
]

EVALUATION_TYPES = ['autoevaluacion', 'descendente', 'ascendente', 'pares']

# Any of these in the joined text of a row marks it as a header row
HEADER_INDICATORS = [
    'nombre', 'name', 'evaluado', 'evaluated',
    'area', 'área', 'department', 'departamento',
    'evaluador', 'evaluator',
    'puntaje', 'score', 'estado', 'status',
]

# Evaluation-sheet column mapping. Each field is resolved independently,
# first matching column wins.
COLUMN_RULES = {
    'evaluated_name': (
        ['evaluado', 'evaluated', 'nombre y apellido', 'nombre', 'name',
         'colaborador', 'empleado', 'employee'],
        ['evaluador', 'evaluator', 'puntaje', 'score'],
    ),
    'evaluated_area': (
        ['área', 'area', 'department', 'departamento'],
        ['sub'],
    ),
    'evaluator_name': (
        ['evaluador', 'evaluator', 'reviewer'],
        [],
    ),
    'status': (
        ['estado', 'status'],
        [],
    ),
    'total_score': (
        ['puntaje', 'score', 'puntuación', 'puntuacion', 'calificación',
         'calificacion', 'total', 'promedio', 'average'],
        [],
    ),
}

# 'resultados' precedes 'orientación' so "Orientación a resultados"
# resolves to the results competency.
COMPETENCY_KEYWORDS = [
    'compromiso', 'commitment',
    'comunicación', 'comunicacion', 'communication',
    'resultados', 'results',
    'orientación', 'orientacion', 'orientation',
    'colaboración', 'colaboracion', 'collaboration',
    'iniciativa', 'initiative',
    'autonomía', 'autonomia', 'autonomy',
    'liderazgo', 'leadership',
]

COMPETENCY_LABELS = {
    'compromiso': 'Compromiso',
    'commitment': 'Commitment',
    'comunicación': 'Comunicación',
    'comunicacion': 'Comunicación',
    'communication': 'Communication',
    'resultados': 'Orientación a Resultados',
    'results': 'Results Orientation',
    'orientación': 'Orientación al Cliente',
    'orientacion': 'Orientación al Cliente',
    'orientation': 'Customer Orientation',
    'colaboración': 'Colaboración',
    'colaboracion': 'Colaboración',
    'collaboration': 'Collaboration',
    'iniciativa': 'Iniciativa y Autonomía',
    'initiative': 'Initiative',
    'autonomía': 'Iniciativa y Autonomía',
    'autonomia': 'Iniciativa y Autonomía',
    'autonomy': 'Autonomy',
    'liderazgo': 'Liderazgo',
    'leadership': 'Leadership',
}

STATUS_RULES = [
    ('Finalizada', ['finaliz', 'complet', 'terminad', 'done', 'closed', 'finished'],
     ['incomplet', 'sin complet', 'no complet', 'not complet', 'sin finaliz', 'no finaliz']),
    ('En curso', ['en curso', 'en progreso', 'iniciad', 'in progress', 'started'],
     ['no iniciad', 'sin iniciar', 'not started']),
    ('Pendiente', ['pendiente', 'pending', 'no iniciad', 'not started']),
]

# Segmentation workbook: columns that identify a user
IDENTITY_KEYWORDS = [
    'usuario', 'user', 'email', 'correo', 'mail',
    'nombre', 'name', 'apellido', 'surname', 'fullname',
]
# Matched as whole words only ('Ciudad', 'Unidad' are not identifiers)
IDENTITY_WORDS = ['id']

# Segmentation workbook: columns that segment the organisation
SEGMENTATION_KEYWORDS = [
    'area', 'área', 'department', 'departamento',
    'subarea', 'subárea', 'sub área', 'sub-area', 'sub area',
    'ubicacion', 'ubicación', 'location', 'sede',
    'region', 'región', 'zona', 'zone',
    'cargo', 'position', 'rol', 'role',
    'nivel', 'level', 'categoria', 'categoría', 'category',
]

# Role of each segmentation-workbook column. Order matters: the combined
# name column must be tried before plain 'nombre'.
USER_COLUMN_RULES = [
    ('email', ['email', 'e-mail', 'correo', 'mail'], []),
    ('nombre_apellido', ['nombre y apellido', 'nombre completo'], []),
    ('fullname', ['fullname', 'full name'], []),
    ('apellido', ['apellido', 'surname', 'last name'], []),
    ('usuario', ['usuario', 'username', 'user', 'login'], []),
    ('nombre', ['nombre'], []),
    ('name', ['name'], []),
    ('sub_area', ['subarea', 'subárea', 'sub área', 'sub-area', 'sub area'], []),
    ('area', ['área', 'area', 'department', 'departamento'], []),
    ('location', ['ubicacion', 'ubicación', 'location', 'sede'], []),
]


def match_rule(text, rules):
    """
    Return the category of the first rule matching text, or None.

    text is lower-cased and stripped before matching. Rules may be
    (category, keywords) or (category, keywords, excluded).
    """
    lower = str(text or '').strip().lower()
    if not lower:
        return None
    for rule in rules:
        category, keywords = rule[0], rule[1]
        excluded = rule[2] if len(rule) > 2 else []
        if any(kw in lower for kw in excluded):
            continue
        if any(kw in lower for kw in keywords):
            return category
    return None


def contains_any(text, keywords):
    """True if the lower-cased text contains any of keywords."""
    lower = str(text or '').strip().lower()
    return any(kw in lower for kw in keywords)


def contains_word(text, words):
    """True if any of words appears in the lower-cased text as a whole word."""
    tokens = re.findall(r'\w+', str(text or '').lower())
    return any(w in tokens for w in words)
