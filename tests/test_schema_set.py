"""Tests for formxml.schema_set: loading, composition and export of the bundled XSDs."""

import threading

import pytest

from formxml.errors import SchemaLoadError
from formxml.schema_set import (
    FILTER_SCHEMA,
    LAYOUT_SCHEMA,
    ROOT_SCHEMA,
    SCHEMA_DELIMITER,
    SchemaSetLoader,
    _read_bundled_schema,
)
from formxml.validator import FormXmlValidator


class _CountingReader:
    def __init__(self, overrides=None, missing=()):
        self.calls = []
        self.overrides = overrides or {}
        self.missing = set(missing)
        self._lock = threading.Lock()

    def __call__(self, name):
        with self._lock:
            self.calls.append(name)
        if name in self.missing:
            raise FileNotFoundError(name)
        if name in self.overrides:
            return self.overrides[name]
        return _read_bundled_schema(name)


class TestSchemaSetLoader:
    def test_documents_in_composition_order(self):
        schema_set = SchemaSetLoader().get_schema_set()
        assert [d.name for d in schema_set.documents] == [ROOT_SCHEMA, LAYOUT_SCHEMA, FILTER_SCHEMA]
        assert all(d.target_namespace is None for d in schema_set.documents)

    def test_global_elements(self):
        schema_set = SchemaSetLoader().get_schema_set()
        assert schema_set.global_elements == frozenset({"form", "grid", "fetch"})

    def test_schema_set_is_cached(self):
        reader = _CountingReader()
        loader = SchemaSetLoader(reader)
        first = loader.get_schema_set()
        second = loader.get_schema_set()
        assert first is second
        assert sorted(reader.calls) == sorted([ROOT_SCHEMA, LAYOUT_SCHEMA, FILTER_SCHEMA])

    def test_concurrent_first_calls_build_once(self):
        reader = _CountingReader()
        loader = SchemaSetLoader(reader)
        barrier = threading.Barrier(8)
        seen = []

        def worker():
            barrier.wait()
            seen.append(loader.get_schema_set())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(seen) == 8
        assert all(s is seen[0] for s in seen)
        assert len(reader.calls) == 3

    def test_missing_resource_raises_schema_load_error(self):
        loader = SchemaSetLoader(_CountingReader(missing={FILTER_SCHEMA}))
        with pytest.raises(SchemaLoadError, match="FilterXml.xsd"):
            loader.get_schema_set()

    def test_failure_is_remembered(self):
        reader = _CountingReader(missing={LAYOUT_SCHEMA})
        loader = SchemaSetLoader(reader)
        with pytest.raises(SchemaLoadError) as first:
            loader.get_schema_set()
        calls_after_first = len(reader.calls)
        with pytest.raises(SchemaLoadError) as second:
            loader.get_schema_set()
        assert first.value is second.value
        assert len(reader.calls) == calls_after_first

    def test_malformed_resource(self):
        loader = SchemaSetLoader(_CountingReader(overrides={LAYOUT_SCHEMA: b"<xs:schema"}))
        with pytest.raises(SchemaLoadError, match="not well-formed"):
            loader.get_schema_set()

    def test_uncompilable_resource(self):
        broken = (
            b'<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">'
            b'<xs:element name="grid" type="NoSuchType"/></xs:schema>'
        )
        loader = SchemaSetLoader(_CountingReader(overrides={LAYOUT_SCHEMA: broken}))
        with pytest.raises(SchemaLoadError, match="compile"):
            loader.get_schema_set()

    def test_validator_construction_fails_on_broken_set(self):
        loader = SchemaSetLoader(_CountingReader(missing={ROOT_SCHEMA}))
        with pytest.raises(SchemaLoadError):
            FormXmlValidator(loader)


class TestExport:
    def test_export_lists_every_schema(self):
        text = SchemaSetLoader().export_schema_text()
        assert text.startswith("Schema 1:\nTarget Namespace: (null)\n\n")
        assert "Schema 2:" in text
        assert "Schema 3:" in text
        assert text.count(SCHEMA_DELIMITER) == 3
        assert text.endswith(SCHEMA_DELIMITER + "\n")

    def test_export_is_deterministic(self):
        loader = SchemaSetLoader()
        assert loader.export_schema_text() == loader.export_schema_text()
        assert loader.export_schema_text() == SchemaSetLoader().export_schema_text()

    def test_export_is_pretty_printed(self):
        text = SchemaSetLoader().export_schema_text()
        assert '\n  <xs:element name="form"' in text

    def test_read_schema_resource(self):
        text = SchemaSetLoader().read_schema_resource(LAYOUT_SCHEMA)
        assert 'name="grid"' in text

    def test_read_unknown_resource(self):
        with pytest.raises(SchemaLoadError):
            SchemaSetLoader().read_schema_resource("Nope.xsd")
