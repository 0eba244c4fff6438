"""
Shared fixtures for semantic-similarity-engine tests.

Builders live in builders.py; fixtures here assemble the small program
models most tests need.
"""

import json

import pytest

from semantic_similarity.config import SimilaritySettings

from builders import (
    add_function,
    call,
    block,
    document,
    field,
    function,
    model,
    prop,
    snapshot_data,
    type_decl,
    STRING,
)


@pytest.fixture
def settings():
    """Default settings with a single worker for deterministic logs."""
    return SimilaritySettings(max_workers=1)


@pytest.fixture
def duplicate_adders():
    """Two classes in different files that each define Add(int, int) -> int."""
    return model(
        document("src/MathA.cs", type_decl("MathA", [add_function("Shop.MathA")])),
        document("src/MathB.cs", type_decl("MathB", [add_function("Shop.MathB")])),
    )


def repository_members(owner, extra_fields=()):
    """Members of a small repository-like class."""
    return [
        field("_items", type_=STRING, is_readonly=True),
        prop("Name"),
        prop("Count", is_read_only=True),
        function("Load", owner=owner, start_line=5, body=block(call("Store.Read()"), call("Log.Info(string)"))),
        function("Save", owner=owner, start_line=20, body=block(call("Store.Write()"), call("Log.Info(string)"))),
        *extra_fields,
    ]


@pytest.fixture
def twin_types():
    """Two classes that differ only in one extra private field."""
    first = type_decl("CustomerRepository", repository_members("Shop.CustomerRepository"), lines=40)
    second = type_decl(
        "SupplierRepository",
        repository_members("Shop.SupplierRepository", extra_fields=[field("_cache")]),
        lines=40,
    )
    return model(
        document("src/CustomerRepository.cs", first, usings=("System",)),
        document("src/SupplierRepository.cs", second, usings=("System",)),
    )


@pytest.fixture
def snapshot_path(tmp_path):
    """snapshot_data() written to a JSON file in a fresh directory."""
    path = tmp_path / "shop.json"
    path.write_text(json.dumps(snapshot_data()), encoding="utf-8")
    return path
