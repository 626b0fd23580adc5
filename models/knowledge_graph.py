"""In-memory store of anatomical nodes and relations with JSON snapshots.

Nodes and relations are kept in dicts keyed by code (upsert semantics).
Sequence counters hand out the next number per (system, category, region,
entity) for nodes and per (type, origin, dest) for relations. After a
snapshot is loaded both counters are rebuilt from the stored codes.
"""
import json
import logging
import os
import tempfile

from engine import codes
from models import node as node_model
from models import relation as relation_model

logger = logging.getLogger(__name__)


def _name_key(node):
    return (node.get('name_local') or '').casefold()


def _sorted_nodes(nodes):
    return sorted(nodes, key=_name_key)


def _sorted_relations(relations):
    return sorted(relations, key=lambda r: r['code'])


class KnowledgeGraph:
    """Nodes, relations and sequence counters for the anatomy catalog."""

    def __init__(self):
        self.nodes = {}
        self.relations = {}
        self.node_counters = {}
        self.relation_counters = {}
        self.skipped_codes = 0

    # --- Writes ---

    def add_node(self, node):
        self.nodes[node['code']] = node
        return node

    def add_relation(self, relation):
        self.relations[relation['code']] = relation
        return relation

    def next_node_sequence(self, system, category, region, entity):
        key = (system, category, region, entity)
        nxt = self.node_counters.get(key, 0) + 1
        self.node_counters[key] = nxt
        return nxt

    def next_relation_sequence(self, rel_type, origin_code, dest_code):
        key = (codes.normalize_relation_type(rel_type), origin_code, dest_code)
        nxt = self.relation_counters.get(key, 0) + 1
        self.relation_counters[key] = nxt
        return nxt

    def create_node(self, system, category, region, entity, raw_id,
                    classification, name_local, name_latin='',
                    description='', functions=None, reference='',
                    image_reference=None):
        """Allocate a sequence number, build the code and store the node.

        system may be given as 'SC' or 'CENTRAL'.
        """
        sys_code = codes.system_code(system) or system
        seq = self.next_node_sequence(sys_code, category, region, entity)
        code = codes.encode_node(sys_code, category, region, entity, seq)
        node = node_model.make(
            code, raw_id, classification, name_local, name_latin,
            description, functions, reference, image_reference,
        )
        return self.add_node(node)

    def create_relation(self, rel_type, origin_code, dest_code, description=None):
        rel_type = codes.normalize_relation_type(rel_type)
        if rel_type is None:
            raise ValueError('Unknown relation type')
        seq = self.next_relation_sequence(rel_type, origin_code, dest_code)
        code = codes.encode_relation(rel_type, origin_code, dest_code, seq)
        relation = relation_model.make(code, rel_type, origin_code, dest_code, description)
        return self.add_relation(relation)

    # --- Queries ---

    def all_nodes(self):
        return _sorted_nodes(self.nodes.values())

    def all_relations(self):
        return _sorted_relations(self.relations.values())

    def find_by_system(self, system):
        name = codes.SYSTEMS.get(codes.system_code(system))
        if name is None:
            return []
        return _sorted_nodes(n for n in self.nodes.values()
                             if codes.node_system(n) == name)

    def find_by_category(self, category):
        return _sorted_nodes(n for n in self.nodes.values()
                             if codes.node_category(n) == category)

    def find_by_region(self, region):
        return _sorted_nodes(n for n in self.nodes.values()
                             if codes.node_region(n) == region)

    def find_relations_by_type(self, rel_type):
        rel_type = codes.normalize_relation_type(rel_type)
        return _sorted_relations(r for r in self.relations.values()
                                 if r['type'] == rel_type)

    def find_relations_from(self, node_code):
        return _sorted_relations(r for r in self.relations.values()
                                 if r['origin_code'] == node_code)

    def find_relations_to(self, node_code):
        return _sorted_relations(r for r in self.relations.values()
                                 if r['dest_code'] == node_code)

    def find_node_by_code(self, code):
        return self.nodes.get(code)

    def find_node_by_raw_id(self, raw_id):
        for n in self.nodes.values():
            if n['raw_id'] == raw_id:
                return n
        return None

    def search(self, text):
        """Nodes whose names, description or raw id contain text (case-insensitive)."""
        if not text:
            return self.all_nodes()
        needle = text.casefold()
        fields = ('name_local', 'name_latin', 'description', 'raw_id')
        return _sorted_nodes(
            n for n in self.nodes.values()
            if any(needle in (n.get(f) or '').casefold() for f in fields)
        )

    def nodes_with_relation_type(self, rel_type):
        """Nodes at either end of a relation of the given type."""
        wanted = set()
        for r in self.find_relations_by_type(rel_type):
            wanted.add(r['origin_code'])
            wanted.add(r['dest_code'])
        return _sorted_nodes(n for code, n in self.nodes.items() if code in wanted)

    def related_nodes(self, node_code):
        """Resolve a node's relations to (relation, node) pairs.

        Relations pointing at a missing node are left out.
        """
        outgoing = []
        for r in self.find_relations_from(node_code):
            target = self.nodes.get(r['dest_code'])
            if target is not None:
                outgoing.append((r, target))
        incoming = []
        for r in self.find_relations_to(node_code):
            source = self.nodes.get(r['origin_code'])
            if source is not None:
                incoming.append((r, source))
        return {'outgoing': outgoing, 'incoming': incoming}

    def stats(self):
        by_system = {name: 0 for name in codes.SYSTEMS.values()}
        for n in self.nodes.values():
            name = codes.node_system(n)
            if name is not None:
                by_system[name] += 1
        by_type = {t: 0 for t in codes.RELATION_TYPES}
        for r in self.relations.values():
            by_type[r['type']] += 1
        return {
            'nodes': len(self.nodes),
            'relations': len(self.relations),
            'nodes_by_system': by_system,
            'relations_by_type': by_type,
        }

    # --- Counter recovery ---

    def rebuild_counters(self):
        """Recompute both counters from the stored codes.

        Codes that cannot be decoded are skipped and counted in
        skipped_codes. Running this repeatedly gives the same result.
        """
        node_counters = {}
        relation_counters = {}
        skipped = 0

        for code in self.nodes:
            parts = codes.decode_node_lenient(code)
            if parts is None:
                logger.warning('Counter rebuild: skipping unparsable node code %s', code)
                skipped += 1
                continue
            key = (parts['system'], parts['category'], parts['region'], parts['entity'])
            node_counters[key] = max(node_counters.get(key, 0), parts['seq'])

        for code, relation in self.relations.items():
            parts = codes.decode_relation(code)
            if parts is None:
                logger.warning('Counter rebuild: skipping unparsable relation code %s', code)
                skipped += 1
                continue
            # The right-to-left split cannot recover origin/dest when they are
            # full node codes, so the key comes from the stored record.
            key = (relation['type'], relation['origin_code'], relation['dest_code'])
            relation_counters[key] = max(relation_counters.get(key, 0), parts['seq'])

        self.node_counters = node_counters
        self.relation_counters = relation_counters
        self.skipped_codes = skipped
        if skipped:
            logger.info('Counter rebuild skipped %d codes', skipped)

    # --- Persistence ---

    def to_snapshot(self):
        return {
            'nodos': [node_model.to_snapshot(n) for n in self.all_nodes()],
            'relaciones': [relation_model.to_snapshot(r) for r in self.all_relations()],
        }

    def export_to_json(self, path):
        """Write the snapshot to path. Returns False on any I/O error."""
        try:
            payload = json.dumps(self.to_snapshot(), ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as e:
            logger.error('Snapshot serialization failed: %s', e)
            return False

        directory = os.path.dirname(os.path.abspath(path))
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error('Could not write snapshot %s: %s', path, e)
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            return False
        logger.info('Saved snapshot %s (%d nodes, %d relations)',
                    path, len(self.nodes), len(self.relations))
        return True

    def import_from_json(self, path):
        """Replace the whole graph with the snapshot at path.

        Returns False, leaving the current graph untouched, when the file is
        missing, unreadable or malformed.
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning('Could not read snapshot %s: %s', path, e)
            return False

        try:
            if not isinstance(data, dict):
                raise ValueError('Snapshot root must be an object')
            nodes = [node_model.from_snapshot(d) for d in data.get('nodos', data.get('nodes', []))]
            relations = [relation_model.from_snapshot(d)
                         for d in data.get('relaciones', data.get('relations', []))]
        except (TypeError, ValueError) as e:
            logger.warning('Malformed snapshot %s: %s', path, e)
            return False

        self.nodes = {n['code']: n for n in nodes}
        self.relations = {r['code']: r for r in relations}
        self.rebuild_counters()
        logger.info('Loaded snapshot %s (%d nodes, %d relations)',
                    path, len(self.nodes), len(self.relations))
        return True
