import json

import pytest

from exception_graph.analyzer import build_database
from exception_graph.snapshot import (chains_to_json, database_from_dict, database_to_dict,
                                      dump_snapshot, load_snapshot)


def _all_chains(db):
    chains = []
    for source in db.exception_sources():
        chains.extend(db.chains_from_source(source))
    return chains_to_json(chains)


def test_reloaded_snapshot_gives_byte_equal_chains(shop_project):
    db = build_database(shop_project)
    data = json.loads(json.dumps(database_to_dict(db)))

    reloaded = database_from_dict(data)
    assert not reloaded.sealed
    reloaded.build()

    assert set(reloaded.method_to_info) == set(db.method_to_info)
    assert _all_chains(reloaded) == _all_chains(db)


def test_snapshot_file_round_trip(tmp_path, exceptions):
    a_f = exceptions.method("A", "f")
    b_g = exceptions.method("B", "g")
    lib = exceptions.method("java.io.Reader", "read", throws=("java.io.IOException",),
                            package="java.io", body=False)
    exceptions.throw(a_f, "E1")
    exceptions.call(b_g, a_f, catches=("E0",))
    exceptions.call(b_g, lib)
    db = exceptions.build()

    path = tmp_path / "snapshot.json"
    dump_snapshot(db, path)
    reloaded = load_snapshot(path)
    reloaded.build()

    assert reloaded.method_to_info[b_g].calling_to_handlers == {a_f: {"E0"}}
    assert reloaded.is_exception_source(lib)
    assert _all_chains(reloaded) == _all_chains(db)

    dump_snapshot(reloaded, tmp_path / "again.json")
    assert (tmp_path / "again.json").read_bytes() == path.read_bytes()


def test_unknown_snapshot_version_is_rejected():
    with pytest.raises(ValueError):
        database_from_dict({"version": 99, "methods": [], "bound_methods": [], "classes": []})
