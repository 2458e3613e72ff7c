"""
ParameterXml for the Dataverse PublishXml action.

Form and view changes stay in the unpublished layer until the owning table
is published. The builder collects table logical names and renders:

    <importexportxml>
      <entities>
        <entity>account</entity>
      </entities>
    </importexportxml>
"""

from lxml import etree


class PublishXmlBuilder:
    def __init__(self):
        self._tables: list[str] = []

    def add_table(self, logical_name: str) -> "PublishXmlBuilder":
        """Queue *logical_name* for publishing; duplicates are ignored."""
        name = logical_name.strip().lower()
        if not name:
            raise ValueError("Table logical name must not be empty.")
        if name not in self._tables:
            self._tables.append(name)
        return self

    @property
    def tables(self) -> list[str]:
        return list(self._tables)

    def __bool__(self) -> bool:
        return bool(self._tables)

    def build(self) -> str:
        if not self._tables:
            raise ValueError("Nothing to publish: no table was added.")
        root = etree.Element("importexportxml")
        entities = etree.SubElement(root, "entities")
        for name in self._tables:
            etree.SubElement(entities, "entity").text = name
        return etree.tostring(root, encoding="unicode")

    def clear(self) -> None:
        self._tables.clear()
