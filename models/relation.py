"""Anatomical relation records and their snapshot representation."""
from engine.codes import normalize_relation_type

SNAPSHOT_FIELDS = {
    'code': 'codigo',
    'type': 'tipo',
    'origin_code': 'idOrigen',
    'dest_code': 'idDestino',
    'description': 'descripcion',
}


def make(code, rel_type, origin_code, dest_code, description=None):
    normalized = normalize_relation_type(rel_type)
    if normalized is None:
        raise ValueError(f'Unknown relation type: {rel_type!r}')
    return {
        'code': code,
        'type': normalized,
        'origin_code': origin_code,
        'dest_code': dest_code,
        'description': description,
    }


def to_snapshot(relation):
    return {field: relation.get(key) for key, field in SNAPSHOT_FIELDS.items()}


def from_snapshot(data):
    """Build a relation from a snapshot object (legacy or snake_case keys)."""
    if not isinstance(data, dict):
        raise ValueError(f'Relation entry must be an object, got {type(data).__name__}')
    values = {key: data.get(field, data.get(key)) for key, field in SNAPSHOT_FIELDS.items()}
    if not values['code']:
        raise ValueError('Relation entry without code')
    return make(
        values['code'], values['type'], values['origin_code'] or '',
        values['dest_code'] or '', values['description'],
    )
