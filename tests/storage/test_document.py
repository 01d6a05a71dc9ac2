"""Tests specific to the XML document backend."""

import xml.etree.ElementTree as ET

import pytest
from sample_records import Account, Person

from recdao.core.exceptions import (
    DuplicateIdentifier,
    DuplicateRecord,
    IdentifierConflict,
)
from recdao.storage.backends.document import (
    AttributeLayout,
    Layout,
    TagLayout,
    XmlDocumentDAO,
)

ATTRIBUTE_DOCUMENT = """<?xml version="1.0" encoding="UTF-8"?>
<people>
  <person id="1" name="Ann" age="30"/>
  <person id="2" name="Bo" age="41"/>
</people>
"""

TAG_DOCUMENT = """<?xml version="1.0" encoding="UTF-8"?>
<people>
  <meta>kept</meta>
  <person>
    <id>1</id>
    <name>  Ann  </name>
    <age>30</age>
  </person>
</people>
"""


def person_elements(path):
    return ET.parse(path).getroot().findall("person")


class TestAttributeLayout:
    """Test documents storing fields as attributes."""

    @pytest.fixture
    def dao(self, xml_path):
        xml_path.write_text(ATTRIBUTE_DOCUMENT)
        return XmlDocumentDAO(Person, xml_path, Layout.ATTRIBUTE, identifier="id")

    def test_read(self, dao):
        assert dao.get_all() == [
            Person(id=1, name="Ann", age=30),
            Person(id=2, name="Bo", age=41),
        ]

    def test_update_touches_one_attribute(self, dao, xml_path):
        assert dao.update_property_by_id(2, "age", 50) is True

        first, second = person_elements(xml_path)
        assert first.attrib == {"id": "1", "name": "Ann", "age": "30"}
        assert second.attrib == {"id": "2", "name": "Bo", "age": "50"}
        assert ET.parse(xml_path).getroot().tag == "people"

    def test_added_element(self, dao, xml_path):
        dao.add(Person(id=3, name="Cy", age=22))
        assert person_elements(xml_path)[-1].attrib == {
            "id": "3",
            "name": "Cy",
            "age": "22",
        }

    def test_layout_from_string(self, xml_path):
        xml_path.write_text(ATTRIBUTE_DOCUMENT)
        dao = XmlDocumentDAO(Person, xml_path, "ATTRIBUTE")
        assert dao.layout is Layout.ATTRIBUTE
        assert len(dao.get_all()) == 2


class TestTagLayout:
    """Test documents storing fields as child elements."""

    @pytest.fixture
    def dao(self, xml_path):
        xml_path.write_text(TAG_DOCUMENT)
        return XmlDocumentDAO(Person, xml_path, identifier="id")

    def test_text_is_trimmed(self, dao):
        assert dao.get_all() == [Person(id=1, name="Ann", age=30)]
        ann = Person(id=1, name="Ann", age=30)
        assert dao.get_by_property("name", "Ann") == [ann]

    def test_other_elements_kept(self, dao, xml_path):
        dao.add(Person(id=2, name="Bo", age=41))
        root = ET.parse(xml_path).getroot()
        assert root.find("meta").text == "kept"
        names = [e.findtext("name").strip() for e in root.findall("person")]
        assert names == ["Ann", "Bo"]

    def test_update_in_place(self, dao, xml_path):
        dao.update_by_id(1, Person(id=1, name="Ann", age=31))
        (element,) = person_elements(xml_path)
        assert element.findtext("age") == "31"


class TestDocumentFile:
    """Test document creation and formatting."""

    def test_created_when_missing(self, xml_path):
        XmlDocumentDAO(Person, xml_path)
        root = ET.parse(xml_path).getroot()
        assert root.tag == "records"
        assert len(root) == 0

    def test_indentation(self, xml_path):
        dao = XmlDocumentDAO(Person, xml_path)
        dao.add(Person(id=1, name="Ann", age=30))

        lines = xml_path.read_text(encoding="utf-8").splitlines()
        assert lines[0].startswith("<?xml")
        assert lines[1:] == [
            "<records>",
            "    <person>",
            "        <id>1</id>",
            "        <name>Ann</name>",
            "        <age>30</age>",
            "    </person>",
            "</records>",
        ]

    def test_malformed_document(self, xml_path):
        xml_path.write_text("<people><person></people>")
        with pytest.raises(ET.ParseError):
            XmlDocumentDAO(Person, xml_path)

    def test_element_named_after_type(self, temp_dir):
        path = temp_dir / "accounts.xml"
        dao = XmlDocumentDAO(Account, path, Layout.ATTRIBUTE, identifier="number")
        account = Account()
        account.set_number(4)
        account.set_blocked(True)
        dao.add(account)

        (element,) = ET.parse(path).getroot()
        assert element.tag == "account"
        assert element.attrib == {"number": "4", "owner": "", "blocked": "true"}
        assert dao.get_by_id(4).is_blocked() is True

    def test_failed_call_leaves_document(self, xml_path):
        xml_path.write_text(ATTRIBUTE_DOCUMENT)
        dao = XmlDocumentDAO(Person, xml_path, Layout.ATTRIBUTE, identifier="id")
        with pytest.raises(IdentifierConflict):
            dao.update_by_id(1, Person(id=2, name="Ann", age=30))
        assert xml_path.read_text() == ATTRIBUTE_DOCUMENT


class TestDuplicates:
    """Test detection of duplicates written by other programs."""

    def test_duplicate_elements(self, xml_path):
        xml_path.write_text(
            '<people><person id="1" name="A" age="1"/>'
            '<person id="1" name="A" age="1"/></people>'
        )
        dao = XmlDocumentDAO(Person, xml_path, Layout.ATTRIBUTE)
        with pytest.raises(DuplicateRecord):
            dao.get_all()

    def test_duplicate_identifiers(self, xml_path):
        xml_path.write_text(
            '<people><person id="1" name="A" age="1"/>'
            '<person id="1" name="B" age="1"/></people>'
        )
        dao = XmlDocumentDAO(Person, xml_path, Layout.ATTRIBUTE, identifier="id")
        with pytest.raises(DuplicateIdentifier):
            dao.get_ids()


class TestLayouts:
    """Test the layout strategies on bare elements."""

    def test_tag_layout(self):
        layout = TagLayout()
        element = layout.build("person", {"id": "1", "name": "Ann"})
        assert layout.read(element, "name") == "Ann"
        assert layout.read(element, "age") == ""

        layout.write(element, "age", "30")
        assert element.findtext("age") == "30"

    def test_attribute_layout(self):
        layout = AttributeLayout()
        element = layout.build("person", {"id": "1"})
        assert layout.read(element, "id") == "1"
        assert layout.read(element, "name") == ""

        layout.write(element, "name", "Bo")
        assert element.get("name") == "Bo"


class TestStoredText:
    """Test values written in a form other than the one records render to."""

    def test_attribute_update_keeps_unchanged_values(self, xml_path):
        xml_path.write_text('<people><person id="1" name="Ann" age="030"/></people>')
        dao = XmlDocumentDAO(Person, xml_path, Layout.ATTRIBUTE, identifier="id")

        assert dao.update_property_by_id(1, "name", "Zed") is True
        (element,) = person_elements(xml_path)
        assert element.attrib == {"id": "1", "name": "Zed", "age": "030"}

    def test_attribute_delete_by_property(self, xml_path):
        xml_path.write_text('<people><person id="1" name="Ann" age="030"/></people>')
        dao = XmlDocumentDAO(Person, xml_path, Layout.ATTRIBUTE)
        assert dao.delete_by_property("name", "Ann") == 1
        assert person_elements(xml_path) == []

    def test_tag_delete(self, xml_path):
        xml_path.write_text(
            "<people><person><id>1</id><name>Ann</name><age>030</age></person>"
            "</people>"
        )
        dao = XmlDocumentDAO(Person, xml_path)
        assert dao.delete(Person(id=1, name="Ann", age=30)) is True
        assert person_elements(xml_path) == []
