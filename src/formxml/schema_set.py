"""
Loading and composition of the bundled XSD schema set.

FormXml.xsd is the root document; it pulls in LayoutXml.xsd and FilterXml.xsd
through xs:include. All three ship inside the package (formxml/schemas) and are
served to the schema compiler by a resolver, so compilation never touches the
network or the working directory.

A SchemaSetLoader compiles the set at most once. Concurrent first callers
wait on a single lock and observe the same SchemaSet, or the same
SchemaLoadError when the resources are broken. After that, get_schema_set()
returns the cached object without locking.
"""

import logging
import posixpath
import threading
from dataclasses import dataclass, field
from importlib import resources
from typing import Callable, Optional

from lxml import etree

from formxml.errors import SchemaLoadError

logger = logging.getLogger(__name__)

ROOT_SCHEMA = "FormXml.xsd"
LAYOUT_SCHEMA = "LayoutXml.xsd"
FILTER_SCHEMA = "FilterXml.xsd"

SCHEMA_DELIMITER = "-" * 40

_XS = "{http://www.w3.org/2001/XMLSchema}"
_REFERENCE_TAGS = (_XS + "include", _XS + "import", _XS + "redefine")


def _read_bundled_schema(name: str) -> bytes:
    return (resources.files("formxml") / "schemas" / name).read_bytes()


class _BundledSchemaResolver(etree.Resolver):
    """Serve xs:include/xs:import targets from already loaded resources."""

    def __init__(self, documents: dict[str, bytes]):
        super().__init__()
        self._documents = documents

    def resolve(self, system_url, public_id, context):
        name = posixpath.basename(system_url or "")
        data = self._documents.get(name)
        if data is None:
            return None
        return self.resolve_string(data, context, base_url=name)


@dataclass(frozen=True)
class SchemaDocument:
    name: str
    target_namespace: Optional[str]
    text: str  # pretty-printed source


@dataclass(frozen=True)
class SchemaSet:
    """Compiled schema plus the source documents it was composed from."""

    schema: etree.XMLSchema = field(repr=False)
    documents: tuple[SchemaDocument, ...]
    global_elements: frozenset[str]
    # lxml keeps the last error log on the schema object itself.
    _validate_lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def validate(self, tree) -> list:
        """Validate an lxml tree; return the engine's error log entries in order."""
        with self._validate_lock:
            self.schema.validate(tree)
            return list(self.schema.error_log)


class SchemaSetLoader:
    """Builds the SchemaSet once and keeps it for the loader's lifetime.

    ``resource_reader`` maps a schema file name to its bytes and must raise
    FileNotFoundError (or OSError) for unknown names. It defaults to the
    package's ``schemas`` directory.
    """

    def __init__(
        self,
        resource_reader: Optional[Callable[[str], bytes]] = None,
        root_schema: str = ROOT_SCHEMA,
    ):
        self._read = resource_reader or _read_bundled_schema
        self._root_schema = root_schema
        self._lock = threading.Lock()
        self._schema_set: Optional[SchemaSet] = None
        self._failure: Optional[SchemaLoadError] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_schema_set(self) -> SchemaSet:
        schema_set = self._schema_set
        if schema_set is not None:
            return schema_set

        with self._lock:
            if self._schema_set is None and self._failure is None:
                try:
                    self._schema_set = self._build()
                except SchemaLoadError as e:
                    logger.error("Schema set could not be loaded: %s", e)
                    self._failure = e
            if self._failure is not None:
                raise self._failure
            return self._schema_set

    def export_schema_text(self) -> str:
        """Every schema of the set as pretty-printed XML, one block per schema."""
        blocks = []
        for index, document in enumerate(self.get_schema_set().documents, start=1):
            blocks.append(
                f"Schema {index}:\n"
                f"Target Namespace: {document.target_namespace or '(null)'}\n\n"
                f"{document.text.rstrip()}\n\n"
                f"{SCHEMA_DELIMITER}\n"
            )
        return "".join(blocks)

    def read_schema_resource(self, name: str) -> str:
        """Raw text of one bundled schema file."""
        return self._load(name).decode("utf-8")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _load(self, name: str) -> bytes:
        try:
            return self._read(name)
        except OSError as e:
            raise SchemaLoadError(f"Schema resource '{name}' not found: {e}") from e

    def _build(self) -> SchemaSet:
        raw: dict[str, bytes] = {}
        documents: list[SchemaDocument] = []
        global_elements: set[str] = set()
        pretty_parser = etree.XMLParser(remove_blank_text=True, no_network=True)

        # Breadth-first over include/import references, root first.
        pending = [self._root_schema]
        while pending:
            name = pending.pop(0)
            if name in raw:
                continue
            data = self._load(name)
            try:
                root = etree.fromstring(data, pretty_parser)
            except etree.XMLSyntaxError as e:
                raise SchemaLoadError(f"Schema resource '{name}' is not well-formed: {e}") from e
            raw[name] = data
            documents.append(
                SchemaDocument(
                    name=name,
                    target_namespace=root.get("targetNamespace"),
                    text=etree.tostring(root, pretty_print=True, encoding="unicode"),
                )
            )
            global_elements.update(
                el.get("name") for el in root.iterchildren(_XS + "element") if el.get("name")
            )
            for reference in root.iterchildren(*_REFERENCE_TAGS):
                location = reference.get("schemaLocation")
                if location:
                    pending.append(posixpath.basename(location))

        parser = etree.XMLParser(no_network=True)
        parser.resolvers.add(_BundledSchemaResolver(raw))
        try:
            root_document = etree.fromstring(raw[self._root_schema], parser, base_url=self._root_schema)
            schema = etree.XMLSchema(root_document)
        except (etree.XMLSchemaParseError, etree.XMLSyntaxError) as e:
            raise SchemaLoadError(f"Schema set failed to compile: {e}") from e

        logger.info(
            "Loaded schema set: %s", ", ".join(document.name for document in documents)
        )
        return SchemaSet(
            schema=schema,
            documents=tuple(documents),
            global_elements=frozenset(global_elements),
        )
