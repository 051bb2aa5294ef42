import pytest

from eval360.identity import name_from_email, resolve_identity


@pytest.fixture
def directory():
    return {
        'ana.gomez@empresa.com': {
            'id': 'ana.gomez@empresa.com', 'name': 'Ana Gomez', 'area': 'Comercial',
            'sub_area': None, 'location': 'Lima', 'attributes': {},
        },
        'mruiz': {
            'id': 'mruiz', 'name': 'Marta Ruiz', 'area': 'Dirección',
            'sub_area': None, 'location': None, 'attributes': {},
        },
    }


@pytest.mark.parametrize('raw', ['', '   ', None])
def test_blank_resolves_to_sentinel(raw):
    identity = resolve_identity(raw)
    assert identity['name'] == 'Sin nombre'
    assert identity['email'] == 'sin@email.com'
    assert identity['segmentation'] is None


def test_email_derives_display_name():
    identity = resolve_identity('juan.perez@empresa.com', {})
    assert identity['name'] == 'Juan Perez'
    assert identity['email'] == 'juan.perez@empresa.com'


def test_name_from_email_splits_separators():
    assert name_from_email('maria_jose-LOPEZ@x.org') == 'Maria Jose Lopez'


def test_plain_name_gets_placeholder_email():
    identity = resolve_identity('Juan Perez')
    assert identity == {
        'name': 'Juan Perez',
        'email': 'juan.perez@empresa.com',
        'segmentation': None,
    }


def test_exact_identifier_match(directory):
    identity = resolve_identity('ana.gomez@empresa.com', directory)
    assert identity['name'] == 'Ana Gomez'
    assert identity['email'] == 'ana.gomez@empresa.com'
    assert identity['segmentation']['area'] == 'Comercial'


def test_display_name_match(directory):
    identity = resolve_identity('Marta Ruiz', directory)
    assert identity['email'] == 'mruiz'
    assert identity['segmentation'] is directory['mruiz']


def test_numeric_cell_is_stringified():
    assert resolve_identity(1042.0)['name'] == '1042'


def test_unnamed_directory_entry_keeps_raw_name():
    directory = {
        'ana@x.com': {'id': 'ana@x.com', 'name': 'Sin nombre', 'area': 'Finance',
                      'sub_area': None, 'location': None, 'attributes': {}},
    }
    identity = resolve_identity('ana@x.com', directory)
    assert identity['name'] == 'Ana'
    assert identity['segmentation']['area'] == 'Finance'
    # the sentinel name is never matched as a display name
    assert resolve_identity('Sin nombre', directory)['segmentation'] is None
