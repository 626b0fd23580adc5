"""Import raw catalog records into the knowledge graph.

Raw identifiers look like CB-VERM-LING: the first segment is a prefix
mapped through lookup tables to the system, category and classification,
and the remaining segments give the region and entity. Unknown prefixes
fall back to defaults and never fail an import.
"""
import json
import logging

from engine import codes
from models import node as node_model

logger = logging.getLogger(__name__)

# Wire field -> RawRecord key
CATALOG_FIELDS = {
    'id_code': 'raw_id',
    'nombre_espanol': 'name_local',
    'nombre_latin': 'name_latin',
    'descripcion': 'description',
    'funcion': 'function_text',
    'referencia': 'reference',
}

DEFAULT_SYSTEM = 'SC'
DEFAULT_CATEGORY = 'SG'
DEFAULT_REGION = 'GEN'
DEFAULT_CLASSIFICATION = 'ANAT'

CEREBELLAR_MARKERS = ('VERM', 'FLOC')

SYSTEM_BY_PREFIX = {
    # Cortex
    'CTX': 'SC', 'GYR': 'SC', 'SUL': 'SC', 'FIS': 'SC', 'LOB': 'SC',
    'LOBPAR': 'SC',
    # Cerebellum
    'CB': 'SC', 'PED': 'SC', 'NUC': 'SC',
    # Brainstem
    'PONS': 'SC', 'MES': 'SC', 'MED': 'SC',
    # Other CNS
    'CORP': 'SC', 'HEM': 'SC', 'INS': 'SC', 'AMYG': 'SC', 'HIP': 'SC',
    # Vascular
    'ART': 'SV', 'VEN': 'SV',
    # Peripheral
    'NERV': 'SP',
    # Spaces
    'CIS': 'SE',
}

CATEGORY_BY_PREFIX = {
    # Gray matter
    'CTX': 'SG', 'GYR': 'SG', 'LOB': 'SG', 'LOBPAR': 'SG',
    'NUC': 'NUC',
    # White matter
    'CORP': 'SB', 'TRC': 'SB', 'FIMB': 'SB', 'FORN': 'SB', 'CING': 'SB',
    # Sulci and fissures
    'SUL': 'SF', 'FIS': 'SF',
    'VEN': 'VT',
    'CB': 'CRB',
    'ART': 'AR',
    'CIS': 'CIS',
}

CLASSIFICATION_BY_PREFIX = {
    'CTX': 'CORT', 'GYR': 'CORT', 'LOB': 'CORT', 'INS': 'CORT',
    'SUL': 'SULC', 'FIS': 'SULC',
    'NUC': 'NUCL',
    'CB': 'CRBM',
    'VEN': 'VENT',
    'CORP': 'SBST', 'TRC': 'SBST',
    'PONS': 'BSTM', 'MES': 'BSTM', 'MED': 'BSTM',
    'PED': 'CONN',
    'HIP': 'LIMC', 'AMYG': 'LIMC',
}

REGION_DEFAULTS = ('GYR', 'SUL', 'LOB')


def _has_cerebellar_marker(raw_id):
    return any(marker in raw_id for marker in CEREBELLAR_MARKERS)


def resolve_system(prefix, raw_id):
    if prefix in SYSTEM_BY_PREFIX:
        return SYSTEM_BY_PREFIX[prefix]
    # Cerebellar structures and ventricles both live in the central system
    return DEFAULT_SYSTEM


def resolve_category(prefix, raw_id):
    if prefix in CATEGORY_BY_PREFIX:
        return CATEGORY_BY_PREFIX[prefix]
    if raw_id.startswith('VEN-'):
        return 'VT'
    if _has_cerebellar_marker(raw_id) or 'CB-' in raw_id:
        return 'CRB'
    return DEFAULT_CATEGORY


def resolve_region(parts, raw_id):
    if len(parts) > 1:
        return parts[1]
    for prefix in REGION_DEFAULTS:
        if raw_id.startswith(prefix):
            return prefix
    return DEFAULT_REGION


def resolve_entity(parts, raw_id):
    if len(parts) > 2:
        return '-'.join(parts[1:])
    if len(parts) > 1:
        return parts[1]
    return raw_id


def resolve_classification(prefix, raw_id):
    if prefix in CLASSIFICATION_BY_PREFIX:
        return CLASSIFICATION_BY_PREFIX[prefix]
    if _has_cerebellar_marker(raw_id) or 'CB-' in raw_id:
        return 'CRBM'
    return DEFAULT_CLASSIFICATION


def classify_raw_id(raw_id):
    """Derive system, category, region, entity and classification."""
    raw_id = raw_id or ''
    parts = [p for p in raw_id.split('-') if p]
    prefix = parts[0] if parts else ''
    return {
        'system': resolve_system(prefix, raw_id),
        'category': resolve_category(prefix, raw_id),
        'region': resolve_region(parts, raw_id),
        'entity': resolve_entity(parts, raw_id),
        'classification': resolve_classification(prefix, raw_id),
    }


def convert_record(repository, record):
    """Turn one RawRecord into a node, allocating its sequence number."""
    derived = classify_raw_id(record['raw_id'])
    seq = repository.next_node_sequence(
        derived['system'], derived['category'], derived['region'], derived['entity'],
    )
    code = codes.encode_node(
        derived['system'], derived['category'], derived['region'],
        derived['entity'], seq,
    )
    return node_model.make(
        code=code,
        raw_id=record['raw_id'],
        classification=derived['classification'],
        name_local=record['name_local'],
        name_latin=record['name_latin'],
        description=record['description'],
        functions=node_model.split_functions(record['function_text']),
        reference=record['reference'],
    )


def import_catalog(repository, raw_records):
    """Convert RawRecords to nodes, storing each one as it is created.

    Records whose generated code collides with an existing node replace it.
    Returns the list of created nodes in input order.
    """
    created = []
    for record in raw_records:
        node = convert_record(repository, record)
        repository.add_node(node)
        created.append(node)
    logger.info('Imported %d anatomical structures', len(created))
    return created


def parse_catalog(data):
    """Validate wire-format catalog data and map it to RawRecords.

    Raises ValueError if data is not a list of objects carrying every
    catalog field as a string.
    """
    if not isinstance(data, list):
        raise ValueError(f'Catalog must be a JSON array, got {type(data).__name__}')
    records = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValueError(f'Catalog entry {i} is not an object')
        record = {}
        for field, key in CATALOG_FIELDS.items():
            value = item.get(field)
            if not isinstance(value, str):
                raise ValueError(f'Catalog entry {i}: missing or invalid "{field}"')
            record[key] = value
        records.append(record)
    return records


def import_catalog_json(repository, text):
    """Parse a JSON catalog and import it.

    The whole import fails (json.JSONDecodeError / ValueError) before
    anything is stored when the input is malformed.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error('Catalog JSON could not be decoded: %s', e)
        raise
    records = parse_catalog(data)
    return import_catalog(repository, records)


def import_catalog_file(repository, path):
    with open(path, 'r', encoding='utf-8') as f:
        text = f.read()
    return import_catalog_json(repository, text)
