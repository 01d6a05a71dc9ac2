"""Tests specific to the delimited text file backend."""

from datetime import date

import pytest
from sample_records import Event, Person

from recdao.core.exceptions import (
    DuplicateIdentifier,
    DuplicateRecord,
    IdentifierConflict,
    InvalidHeader,
    MalformedRow,
)
from recdao.storage.backends.delimited import DelimitedFileDAO


@pytest.fixture
def people_file(csv_path):
    csv_path.write_text("id,name,age\n1,Ann,30\n2,Bo,41\n")
    return csv_path


class TestScenario:
    """Walk through a typical editing session."""

    def test_delete_then_add(self, people_file):
        dao = DelimitedFileDAO(Person, people_file, identifier="id")

        assert dao.delete_by_property("name", "Ann") == 1
        assert people_file.read_text() == "id,name,age\n2,Bo,41\n"

        assert dao.add(Person(id=3, name="Cy", age=22)) is True
        assert people_file.read_text().splitlines()[-1] == "3,Cy,22"

        with pytest.raises(IdentifierConflict):
            dao.add(Person(id=3, name="Zz", age=99))
        assert people_file.read_text() == "id,name,age\n2,Bo,41\n3,Cy,22\n"


class TestFileFormat:
    """Test header handling and file normalization."""

    def test_missing_file_gets_header(self, csv_path):
        DelimitedFileDAO(Person, csv_path)
        assert csv_path.read_text() == "id,name,age\n"

    def test_empty_file_gets_header(self, csv_path):
        csv_path.write_text("")
        DelimitedFileDAO(Person, csv_path)
        assert csv_path.read_text() == "id,name,age\n"

    def test_blank_lines_removed(self, csv_path):
        csv_path.write_text("id,name,age\n\n1,Ann,30\n   \n2,Bo,41\n\n")
        DelimitedFileDAO(Person, csv_path)
        assert csv_path.read_text() == "id,name,age\n1,Ann,30\n2,Bo,41\n"

    def test_permuted_header(self, csv_path):
        """Columns map through the header, whatever its order."""
        csv_path.write_text("name,age,id\nAnn,30,1\n")
        dao = DelimitedFileDAO(Person, csv_path)

        assert dao.get_all() == [Person(id=1, name="Ann", age=30)]
        dao.add(Person(id=2, name="Bo", age=41))
        assert csv_path.read_text() == "name,age,id\nAnn,30,1\nBo,41,2\n"

    @pytest.mark.parametrize(
        "header",
        ["id,name", "id,name,age,height", "id,name,name", "ID,Name,Age"],
    )
    def test_invalid_header(self, csv_path, header):
        csv_path.write_text(header + "\n")
        with pytest.raises(InvalidHeader) as exc_info:
            DelimitedFileDAO(Person, csv_path)
        assert exc_info.value.expected == ["id", "name", "age"]

    def test_header_checked_on_every_call(self, people_file):
        dao = DelimitedFileDAO(Person, people_file)
        people_file.write_text("id,name\n1,Ann\n")
        with pytest.raises(InvalidHeader):
            dao.get_all()

    def test_separator(self, csv_path):
        csv_path.write_text("id;name;age\n1;Ann;30\n")
        dao = DelimitedFileDAO(Person, csv_path, separator=";")
        dao.add(Person(id=2, name="Bo, Jr", age=41))
        assert csv_path.read_text() == "id;name;age\n1;Ann;30\n2;Bo, Jr;41\n"

    @pytest.mark.parametrize("separator", ["", ";;", "\n"])
    def test_bad_separator(self, csv_path, separator):
        with pytest.raises(ValueError, match="Separator"):
            DelimitedFileDAO(Person, csv_path, separator=separator)

    def test_malformed_row(self, csv_path):
        csv_path.write_text("id,name,age\n1,Ann,30\n2,Bo\n")
        with pytest.raises(MalformedRow) as exc_info:
            DelimitedFileDAO(Person, csv_path)
        assert exc_info.value.line == 3

    def test_typed_values(self, csv_path):
        dao = DelimitedFileDAO(Event, csv_path)
        dao.add(Event(code="E1", day=date(2024, 2, 29), active=True, score=0.5))
        dao.add(Event(code="E2"))
        assert csv_path.read_text() == (
            "code,day,active,score\nE1,2024-02-29,true,0.5\nE2,,false,0.0\n"
        )
        assert dao.get_all()[1] == Event(code="E2")


class TestDuplicates:
    """Test detection of duplicates written by other programs."""

    def test_duplicate_rows(self, csv_path):
        csv_path.write_text("id,name,age\n1,Ann,30\n1,Ann,30\n")
        dao = DelimitedFileDAO(Person, csv_path)
        with pytest.raises(DuplicateRecord):
            dao.get_all()

    def test_duplicate_identifiers(self, csv_path):
        csv_path.write_text("id,name,age\n1,Ann,30\n1,Bo,41\n")
        dao = DelimitedFileDAO(Person, csv_path, identifier="id")
        assert len(dao.get_all()) == 2
        with pytest.raises(DuplicateIdentifier):
            dao.get_ids()


class TestRewrites:
    """Test when and how the file is rewritten."""

    def test_update_keeps_line_position(self, people_file):
        dao = DelimitedFileDAO(Person, people_file, identifier="id")
        dao.update_property_by_id(1, "age", 31)
        assert people_file.read_text() == "id,name,age\n1,Ann,31\n2,Bo,41\n"

    def test_reads_do_not_rewrite(self, people_file):
        dao = DelimitedFileDAO(Person, people_file)
        before = people_file.stat().st_mtime_ns
        dao.get_all()
        dao.get_by_pattern("name", ".*")
        dao.delete_by_property("name", "Nobody")
        assert people_file.stat().st_mtime_ns == before

    def test_set_rewrites_once(self, people_file, monkeypatch):
        import recdao.storage.backends.delimited as delimited

        writes = []
        original = delimited.atomic_write_text

        def counting(path, text):
            writes.append(text)
            original(path, text)

        dao = DelimitedFileDAO(Person, people_file)
        monkeypatch.setattr(delimited, "atomic_write_text", counting)
        assert dao.set(["age"], [0], lambda p: True) == 2
        assert writes == ["id,name,age\n1,Ann,0\n2,Bo,0\n"]

    def test_sees_external_changes(self, people_file):
        """Nothing is cached between calls."""
        dao = DelimitedFileDAO(Person, people_file)
        with people_file.open("a") as f:
            f.write("3,Cy,22\n")
        assert len(dao.get_all()) == 3


class TestStoredText:
    """Test cells written in a form other than the one records render to."""

    def test_update_keeps_unchanged_cells(self, csv_path):
        csv_path.write_text("id,name,age\n01,Ann,030\n2,Bo,41\n")
        dao = DelimitedFileDAO(Person, csv_path, identifier="id")
        assert dao.update_property_by_id(1, "name", "Zed") is True
        assert csv_path.read_text() == "id,name,age\n01,Zed,030\n2,Bo,41\n"

    def test_boolean_and_float_cells(self, csv_path):
        """``1`` reads as true and as 1.0, and the row can still be deleted."""
        csv_path.write_text("code,day,active,score\nA,2020-01-01,1,1\n")
        dao = DelimitedFileDAO(Event, csv_path)
        event = Event(code="A", day=date(2020, 1, 1), active=True, score=1.0)

        assert dao.get_all() == [event]
        assert dao.get_by_property("active", True) == [event]
        assert dao.delete_where(lambda e: True) == 1
        assert csv_path.read_text() == "code,day,active,score\n"

    def test_equal_values_are_duplicates(self, csv_path):
        csv_path.write_text("id,name,age\n1,Ann,30\n1,Ann,030\n")
        dao = DelimitedFileDAO(Person, csv_path)
        with pytest.raises(DuplicateRecord):
            dao.get_all()
