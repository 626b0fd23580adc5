"""Infer relations between catalog nodes from their text.

For every ordered pair (origin, candidate) the origin's description and
functions are searched for the candidate's name. A mention becomes a
relation whose type is picked by keyword adjacency: a keyword right before
or after the candidate's local name, optionally with one article or
preposition in between ("irriga el Tálamo"). Types are tried in priority
order and ASSOCIATES is the fallback.

This is a keyword heuristic, O(n²) in the number of nodes.
"""
import logging
import re

logger = logging.getLogger(__name__)

AUTO_DESCRIPTION = 'Automatically detected relation'

# Priority order matters: the first type with a matching keyword wins.
RELATION_KEYWORDS = [
    ('IRRIGATES', ['irrigates', 'irrigated', 'irrigation', 'vascularizes',
                   'supplies blood', 'irriga', 'irrigada', 'irrigación',
                   'vasculariza', 'suministra sangre']),
    ('DRAINS', ['drains', 'drainage', 'receives blood',
                'drena', 'drenaje', 'recibe sangre']),
    ('CONNECTS', ['connects', 'connection', 'joined', 'unites', 'communicates',
                  'conecta', 'conexión', 'unido', 'une', 'comunica']),
    ('INNERVATES', ['innervates', 'innervation', 'nerve',
                    'inerva', 'inervación', 'nervio']),
    ('BORDERS', ['borders', 'boundary', 'edge', 'separates', 'adjacent',
                 'limita', 'límite', 'borde', 'separa', 'adyacente']),
]
DEFAULT_RELATION = 'ASSOCIATES'

CONNECTORS = ['el', 'la', 'los', 'las', 'al', 'del', 'de', 'a', 'the', 'to', 'of']
_CONNECTOR = r'(?:\s+(?:' + '|'.join(CONNECTORS) + r'))?\s+'


def haystack(node):
    return node.get('description', '') + ' ' + ' '.join(node.get('functions') or [])


def mentions(text, node):
    """True if text contains the node's local or Latin name (case-insensitive)."""
    folded = text.casefold()
    for name in (node.get('name_local'), node.get('name_latin')):
        if name and name.casefold() in folded:
            return True
    return False


def _adjacent(text, keyword, name):
    kw = re.escape(keyword)
    nm = re.escape(name)
    pattern = rf'\b{kw}\b{_CONNECTOR}{nm}|{nm}{_CONNECTOR}\b{kw}\b'
    return re.search(pattern, text, re.IGNORECASE) is not None


def classify_relation(text, candidate):
    """Pick the relation type for a mention of candidate inside text."""
    name = candidate.get('name_local')
    if name:
        for rel_type, keywords in RELATION_KEYWORDS:
            for keyword in keywords:
                if _adjacent(text, keyword, name):
                    return rel_type
    return DEFAULT_RELATION


def infer_relations(repository, classifier=classify_relation, only_codes=None):
    """Scan every node's text for other nodes and create relations.

    classifier(text, candidate) returns the relation type; swap it to use a
    different strategy. With only_codes, pairs where neither end is in that
    set are skipped, so relations already inferred are not created again.
    Returns the list of created relations.
    """
    nodes = repository.all_nodes()
    created = []
    for origin in nodes:
        text = haystack(origin)
        for candidate in nodes:
            if origin['code'] == candidate['code']:
                continue
            if (only_codes is not None and origin['code'] not in only_codes
                    and candidate['code'] not in only_codes):
                continue
            if not mentions(text, candidate):
                continue
            rel_type = classifier(text, candidate)
            created.append(repository.create_relation(
                rel_type, origin['code'], candidate['code'], AUTO_DESCRIPTION,
            ))
    logger.info('Inferred %d relations across %d nodes', len(created), len(nodes))
    return created
