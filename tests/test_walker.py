import pytest
from neo4j.graph import Graph, Node

from graphview.ingest.models import EdgeObservation, NodeObservation
from graphview.ingest.registry import IdentityRegistry
from graphview.ingest.walker import RecordWalker, normalize_identity

from fakes import make_node, make_path_from_nodes, make_record, make_relationship


def _split(observations):
    nodes = [o for o in observations if isinstance(o, NodeObservation)]
    edges = [o for o in observations if isinstance(o, EdgeObservation)]
    return nodes, edges


def test_bare_node_yields_one_node_observation():
    node = make_node(["Person"], {"name": "Ada"})
    nodes, edges = _split(RecordWalker().walk(make_record([node])))
    assert edges == []
    assert [(n.identity, n.labels, n.properties) for n in nodes] == [(node.id, ("Person",), {"name": "Ada"})]


def test_bare_relationship_backfills_its_endpoints():
    a, b = make_node(["A"]), make_node(["B"])
    rel = make_relationship("KNOWS", a, b, {"since": 2001})
    nodes, edges = _split(RecordWalker().walk(make_record([rel])))

    assert {n.identity for n in nodes} == {a.id, b.id}
    assert len(edges) == 1
    assert (edges[0].start, edges[0].end, edges[0].type) == (a.id, b.id, "KNOWS")
    assert edges[0].properties == {"since": 2001}


def test_endpoints_present_in_record_are_not_repeated():
    a, b = make_node(["A"]), make_node(["B"])
    rel = make_relationship("KNOWS", a, b)
    nodes, edges = _split(RecordWalker().walk(make_record([a, b, rel])))
    assert len(nodes) == 2
    assert len(edges) == 1


def test_nodes_precede_edges():
    a, b = make_node(["A"]), make_node(["B"])
    rel = make_relationship("KNOWS", a, b)
    observations = RecordWalker().walk(make_record([rel, a, b]))
    kinds = [type(o) for o in observations]
    assert kinds == [NodeObservation, NodeObservation, EdgeObservation]


def test_path_yields_each_node_and_relationship():
    path = make_path_from_nodes([make_node(["A"]), make_node(["A"]), make_node(["A"])], "NEXT")
    nodes, edges = _split(RecordWalker().walk(make_record([path])))
    assert len(nodes) == 3
    assert len(edges) == 2


def test_path_edges_follow_relationship_direction_not_position():
    a, b = make_node(["A"]), make_node(["B"])
    backwards = make_relationship("OWNS", b, a)
    path = make_path_from_nodes([a, b], "UNUSED")
    path.relationships = (backwards,)

    _, edges = _split(RecordWalker().walk(make_record([path])))
    assert (edges[0].start, edges[0].end) == (b.id, a.id)


def test_lists_are_walked_and_scalars_ignored():
    a, b = make_node(["A"]), make_node(["B"])
    nodes, edges = _split(RecordWalker().walk(make_record([[a, b], 42, "text", None])))
    assert {n.identity for n in nodes} == {a.id, b.id}
    assert edges == []


def test_mapping_records_walk_their_values():
    a = make_node(["A"])
    nodes, _ = _split(RecordWalker().walk({"n": a, "count": 3}))
    assert [n.identity for n in nodes] == [a.id]


def test_set_labels_are_ordered():
    node = make_node([])
    node.labels = frozenset({"Zeta", "Alpha"})
    nodes, _ = _split(RecordWalker().walk(make_record([node])))
    assert nodes[0].labels == ("Alpha", "Zeta")


def test_relationship_without_identity_gets_synthesized_one():
    a, b = make_node(["A"]), make_node(["B"])
    rel = make_relationship("KNOWS", a, b)
    rel.id = rel.element_id = None
    _, edges = _split(RecordWalker().walk(make_record([rel])))
    assert edges[0].identity == (a.id, "KNOWS", b.id)


def test_identity_normalization():
    assert normalize_identity(7) == 7
    assert normalize_identity("7") == 7
    assert normalize_identity("-3") == -3
    assert normalize_identity("4:abc:7") == "4:abc:7"


@pytest.mark.parametrize("text", ["--5", "\u00b2", "5-", ""])
def test_identity_normalization_keeps_non_integer_strings(text):
    assert normalize_identity(text) == text


def test_driver_node_identity_is_its_integer_id():
    node = Node(Graph(), "4:c0a8b3c2-0000-0000-0000-000000000000:7", 7, ["Person"], {"name": "Ada"})
    [obs] = RecordWalker().walk(make_record([node]))
    assert obs.identity == 7
    assert obs.labels == ("Person",)
    assert obs.properties == {"name": "Ada"}


def test_element_id_is_used_without_integer_id():
    node = make_node(["A"])
    node.id = None
    [obs] = RecordWalker().walk(make_record([node]))
    assert obs.identity == node.element_id


# --- IdentityRegistry ---

def test_registry_allocates_sequential_ids():
    registry = IdentityRegistry()
    assert registry.local_id_for(100) == 1
    assert registry.local_id_for(200) == 2
    assert registry.local_id_for(100) == 1
    assert len(registry) == 2


def test_registry_matches_by_value():
    registry = IdentityRegistry()
    first = registry.local_id_for(normalize_identity("12"))
    assert registry.local_id_for(normalize_identity(12)) == first


def test_registry_lookup_does_not_allocate():
    registry = IdentityRegistry()
    assert registry.lookup(5) is None
    assert 5 not in registry
    registry.local_id_for(5)
    assert registry.lookup(5) == 1
