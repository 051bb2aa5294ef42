"""
Identity resolution for the "evaluated" and "evaluator" cells.

A cell may hold an email address or a free-text name. The segmentation
directory (identifier -> user dict) is consulted first; without a match a
display name or a placeholder email is derived from the raw value.
"""

import re

from eval360.workbook import cell_str

PLACEHOLDER_DOMAIN = 'empresa.com'
UNKNOWN_NAME = 'Sin nombre'
UNKNOWN_EMAIL = 'sin@email.com'


def _find_segmentation(value, directory):
    user = directory.get(value)
    if user is not None:
        return user
    for user in directory.values():
        if user.get('name') == value and value != UNKNOWN_NAME:
            return user
    return None


def _name_from_raw(value):
    if '@' in value:
        return name_from_email(value) or value
    return value


def name_from_email(email):
    """'juan.perez@empresa.com' -> 'Juan Perez'."""
    local = email.split('@', 1)[0]
    tokens = [t for t in re.split(r'[._\-]+', local) if t]
    return ' '.join(t[:1].upper() + t[1:].lower() for t in tokens)


def resolve_identity(raw, directory=None):
    """
    Resolve a raw cell value to {'name', 'email', 'segmentation'}.

    Never fails: blank input resolves to the 'Sin nombre' sentinel.
    'segmentation' is the matched directory entry, or None.
    """
    value = cell_str(raw)
    if not value:
        return {'name': UNKNOWN_NAME, 'email': UNKNOWN_EMAIL, 'segmentation': None}

    user = _find_segmentation(value, directory or {})
    if user is not None:
        # Directory rows without a name column carry the sentinel; two such
        # users must not collapse into one person.
        name = user['name']
        if not name or name == UNKNOWN_NAME:
            name = _name_from_raw(value)
        return {'name': name, 'email': user['id'], 'segmentation': user}

    if '@' in value:
        return {'name': _name_from_raw(value), 'email': value, 'segmentation': None}

    return {
        'name': value,
        'email': f"{value.lower().replace(' ', '.')}@{PLACEHOLDER_DOMAIN}",
        'segmentation': None,
    }
