"""Anatomical node records and their snapshot representation."""

# internal key -> snapshot field name (legacy cache contract)
SNAPSHOT_FIELDS = {
    'code': 'codigo',
    'raw_id': 'idCode',
    'classification': 'clasificacion',
    'name_local': 'nombreEspanol',
    'name_latin': 'nombreLatin',
    'description': 'descripcion',
    'functions': 'funciones',
    'reference': 'referencia',
    'image_reference': 'imagenReferencia',
}


def make(code, raw_id, classification, name_local, name_latin='',
         description='', functions=None, reference='', image_reference=None):
    return {
        'code': code,
        'raw_id': raw_id,
        'classification': classification,
        'name_local': name_local,
        'name_latin': name_latin,
        'description': description,
        'functions': list(functions or []),
        'reference': reference,
        'image_reference': image_reference,
    }


def split_functions(text):
    """Split source function text on '. ' into trimmed, non-empty items.

    Falls back to [text] when nothing is left after splitting.
    """
    items = [part.strip() for part in (text or '').split('. ')]
    items = [part for part in items if part]
    return items if items else [text]


def to_snapshot(node):
    return {field: node.get(key) for key, field in SNAPSHOT_FIELDS.items()}


def from_snapshot(data):
    """Build a node from a snapshot object.

    Accepts the legacy field names and the internal snake_case ones.
    Raises ValueError when the object has no code.
    """
    if not isinstance(data, dict):
        raise ValueError(f'Node entry must be an object, got {type(data).__name__}')
    values = {}
    for key, field in SNAPSHOT_FIELDS.items():
        values[key] = data.get(field, data.get(key))
    if not values['code']:
        raise ValueError('Node entry without code')
    functions = values['functions']
    if isinstance(functions, str):
        functions = [functions]
    return make(
        code=values['code'],
        raw_id=values['raw_id'] or '',
        classification=values['classification'] or '',
        name_local=values['name_local'] or '',
        name_latin=values['name_latin'] or '',
        description=values['description'] or '',
        functions=functions,
        reference=values['reference'] or '',
        image_reference=values['image_reference'],
    )
