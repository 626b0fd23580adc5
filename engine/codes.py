"""Hierarchical node and relation codes.

Node code:      NA-{system}-{category}-{region}-{entity}-{seq:03d}
                e.g. NA-SC-SG-CTX-MotorPrimary-001
Relation code:  RE-{TYPE}-{origin_code}-{dest_code}-{seq:03d}

Node and relation codes both use '-' as separator, so relation codes are
decoded from the right: the last segment is the sequence number and the
segment before it is the destination. When the destination is itself a
full node code this misparses (the destination comes back as its own
trailing sequence segment).
"""

NODE_PREFIX = 'NA'
RELATION_PREFIX = 'RE'

SYSTEMS = {
    'SC': 'CENTRAL',
    'SP': 'PERIPHERAL',
    'SV': 'VASCULAR',
    'SE': 'SPACES',
}
SYSTEM_CODES = {name: code for code, name in SYSTEMS.items()}

SYSTEM_NAMES = {
    'CENTRAL': 'Central Nervous System',
    'PERIPHERAL': 'Peripheral Nervous System',
    'VASCULAR': 'Neurovascular System',
    'SPACES': 'Spaces and Cisterns',
}

RELATION_TYPES = (
    'IRRIGATES', 'DRAINS', 'CONNECTS', 'INNERVATES', 'BORDERS', 'ASSOCIATES',
)

# Values written by older caches
LEGACY_RELATION_TYPES = {
    'IRRIGA': 'IRRIGATES',
    'DRENA': 'DRAINS',
    'CONECTA': 'CONNECTS',
    'INERVA': 'INNERVATES',
    'LIMITA': 'BORDERS',
    'ASOCIA': 'ASSOCIATES',
}

RELATION_DESCRIPTIONS = {
    'IRRIGATES': 'Supplies blood to',
    'DRAINS': 'Receives blood from',
    'CONNECTS': 'Connects with',
    'INNERVATES': 'Provides innervation to',
    'BORDERS': 'Defines the boundary of',
    'ASSOCIATES': 'Is functionally associated with',
}

# (category code, display name, system code)
CATEGORIES = [
    ('SG', 'Gray Matter', 'SC'),
    ('SB', 'White Matter', 'SC'),
    ('NUC', 'Nuclei', 'SC'),
    ('SF', 'Sulci and Fissures', 'SC'),
    ('VT', 'Ventricular System', 'SC'),
    ('CRB', 'Cerebellum', 'SC'),
    ('BST', 'Brainstem', 'SC'),
    ('AR', 'Arteries', 'SV'),
    ('VN', 'Veins', 'SV'),
    ('SIN', 'Venous Sinuses', 'SV'),
    ('NC', 'Cranial Nerves', 'SP'),
    ('NE', 'Spinal Nerves', 'SP'),
    ('GNG', 'Ganglia', 'SP'),
    ('ESA', 'Subarachnoid Spaces', 'SE'),
    ('CIS', 'Cisterns', 'SE'),
]


def normalize_relation_type(value):
    """Return the canonical relation type for value, or None."""
    if value is None:
        return None
    value = str(value).upper()
    if value in RELATION_TYPES:
        return value
    return LEGACY_RELATION_TYPES.get(value)


def system_code(system):
    """Accept 'CENTRAL' or 'SC' and return 'SC' (None if unknown)."""
    if system is None:
        return None
    system = str(system).upper()
    if system in SYSTEMS:
        return system
    return SYSTEM_CODES.get(system)


def category_name(category):
    for code, name, _system in CATEGORIES:
        if code == category:
            return name
    return f'Category {category}'


def categories_for_system(system):
    """Categories belonging to a system, as dicts in display order."""
    code = system_code(system)
    return [
        {'id': cat, 'name': name, 'system': SYSTEMS[sys_code]}
        for cat, name, sys_code in CATEGORIES
        if sys_code == code
    ]


def system_menu():
    """Every system with its display name and categories, for browsing."""
    return [
        {'id': code, 'system': name, 'name': SYSTEM_NAMES[name],
         'categories': categories_for_system(code)}
        for code, name in SYSTEMS.items()
    ]


def relation_description(rel_type):
    """Reading of a relation type, e.g. 'Supplies blood to' (None if unknown)."""
    return RELATION_DESCRIPTIONS.get(normalize_relation_type(rel_type))


def _parse_seq(text):
    if not text or not text.isdigit():
        return None
    return int(text)


def encode_node(system, category, region, entity, seq):
    return f'{NODE_PREFIX}-{system}-{category}-{region}-{entity}-{int(seq):03d}'


def decode_node(code):
    """Split a node code into its components.

    Returns dict with system, category, region, entity, seq, or None when
    the code has fewer than 6 segments, does not start with NA, or its
    sixth segment is not a non-negative integer.
    """
    if not code:
        return None
    parts = code.split('-')
    if len(parts) < 6 or parts[0] != NODE_PREFIX:
        return None
    seq = _parse_seq(parts[5])
    if seq is None:
        return None
    return {
        'system': parts[1],
        'category': parts[2],
        'region': parts[3],
        'entity': parts[4],
        'seq': seq,
    }


def decode_node_lenient(code):
    """Like decode_node but lets the entity contain dashes.

    Imported entities such as VERM-LING produce codes with more than six
    segments; the sequence is then the last segment. Only used to rebuild
    counters.
    """
    strict = decode_node(code)
    if strict is not None and len(code.split('-')) == 6:
        return strict
    if not code:
        return None
    parts = code.split('-')
    if len(parts) < 6 or parts[0] != NODE_PREFIX:
        return None
    seq = _parse_seq(parts[-1])
    if seq is None:
        return None
    return {
        'system': parts[1],
        'category': parts[2],
        'region': parts[3],
        'entity': '-'.join(parts[4:-1]),
        'seq': seq,
    }


def encode_relation(rel_type, origin_code, dest_code, seq):
    rel_type = normalize_relation_type(rel_type)
    if rel_type is None:
        raise ValueError('Unknown relation type')
    return f'{RELATION_PREFIX}-{rel_type}-{origin_code}-{dest_code}-{int(seq):03d}'


def decode_relation(code):
    """Split a relation code, scanning from the right.

    Returns dict with type, origin_code, dest_code, seq, or None.
    """
    if not code:
        return None
    parts = code.split('-')
    if len(parts) < 4 or parts[0] != RELATION_PREFIX:
        return None
    rel_type = normalize_relation_type(parts[1])
    if rel_type is None or parts[1].upper() != parts[1]:
        return None

    rest = code[len(f'{RELATION_PREFIX}-{parts[1]}-'):]
    ids, sep, seq_text = rest.rpartition('-')
    if not sep:
        return None
    origin_code, sep, dest_code = ids.rpartition('-')
    if not sep or not origin_code or not dest_code:
        return None
    seq = _parse_seq(seq_text)
    if seq is None:
        return None
    return {
        'type': rel_type,
        'origin_code': origin_code,
        'dest_code': dest_code,
        'seq': seq,
    }


# --- Components derived from a stored node code ---

def _segment(code, index):
    parts = (code or '').split('-')
    return parts[index] if len(parts) > index else ''


def node_system(node):
    """System name (CENTRAL, ...) of a node, or None when unresolvable."""
    return SYSTEMS.get(_segment(node['code'], 1))


def node_category(node):
    return _segment(node['code'], 2)


def node_region(node):
    return _segment(node['code'], 3)


def node_entity(node):
    return _segment(node['code'], 4)


def node_sequence(node):
    seq = _parse_seq(_segment(node['code'], 5))
    return seq if seq is not None else 0


def relation_sequence(relation):
    """Sequence number of a relation, read from the last code segment."""
    seq = _parse_seq((relation['code'] or '').rpartition('-')[2])
    return seq if seq is not None else 0
