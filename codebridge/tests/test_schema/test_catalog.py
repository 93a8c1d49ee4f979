import pytest

from codebridge.schema import CATALOG, contract, MUTATION, QUERY
from codebridge.schema.fs import Stat


def test_catalog_names_are_unique():
    names = [c.name for c in CATALOG]

    assert len(names) == len(set(names))


def test_catalog_contents():
    kinds = {c.name: c.kind for c in CATALOG}

    assert kinds == {
        "fs.exists": QUERY,
        "fs.mkdir": MUTATION,
        "fs.readdir": QUERY,
        "fs.readFile": QUERY,
        "fs.stat": QUERY,
        "fs.writeFile": MUTATION,
        "fs.fileSize": QUERY,
        "fs.delete": MUTATION,
        "process.spawn": MUTATION,
        "process.exec": MUTATION,
    }


def test_contract_lookup():
    stat = contract("fs.stat")

    assert stat.namespace == "fs"
    assert stat.procedure == "stat"
    assert stat.output_type is Stat

    with pytest.raises(KeyError):
        contract("fs.chmod")


def test_output_round_trip():
    readdir = contract("fs.readdir")

    assert readdir.load_output(readdir.dump_output(["a", "b"])) == ["a", "b"]

    wire = [
        {"name": "a", "isFile": True, "isDirectory": False, "isSymbolicLink": False}
    ]
    dirents = readdir.load_output(wire)

    assert dirents[0].is_file
    assert readdir.dump_output(dirents) == wire


def test_mkdir_output_may_be_null():
    mkdir = contract("fs.mkdir")

    assert mkdir.load_output(None) is None
    assert mkdir.load_output("/tmp/a") == "/tmp/a"
