"""Tests for loader.py — reading relationship, social and character records."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from regionforce.errors import GraphDataError
from regionforce.loader import load_records, read_relationships
from regionforce.model import Relationship

# ─── Helpers ──────────────────────────────────────────────────────────────────

CSV_HEADER = "CharacterID,TargetCharacterID,SocialCapitalStatus,SocialCapital\n"


def write_data(
    root: Path,
    rows: str,
    social: list[dict] | None = None,
    characters: list[dict] | None = None,
    header: str = CSV_HEADER,
) -> Path:
    (root / "relationships.csv").write_text(header + rows, encoding="utf-8")
    if social is not None:
        (root / "social.json").write_text(json.dumps(social), encoding="utf-8")
    if characters is not None:
        (root / "characters.json").write_text(json.dumps(characters), encoding="utf-8")
    return root


# ─── Tests ────────────────────────────────────────────────────────────────────


class TestReadRelationships:
    def test_rows(self, tmp_path):
        write_data(tmp_path, "HarryPotter,RonWeasley,Friend,5\nRonWeasley,HarryPotter,Friend,\n")
        rels = read_relationships(tmp_path / "relationships.csv")
        assert rels == [
            Relationship("HarryPotter", "RonWeasley", "Friend", 5.0),
            Relationship("RonWeasley", "HarryPotter", "Friend", 0.0),
        ]

    def test_bad_capital_is_zero(self, tmp_path):
        write_data(tmp_path, "A,B,Rival,lots\n")
        assert read_relationships(tmp_path / "relationships.csv")[0].capital_weight == 0.0

    def test_missing_column_raises(self, tmp_path):
        write_data(tmp_path, "A,B\n", header="CharacterID,TargetCharacterID\n")
        with pytest.raises(GraphDataError, match="SocialCapitalStatus"):
            read_relationships(tmp_path / "relationships.csv")


class TestLoadRecords:
    def test_entities_from_relationships(self, tmp_path):
        write_data(
            tmp_path,
            "HarryPotter,DracoMalfoy,Rival,1\nDracoMalfoy,HarryPotter,Rival,1\n",
            social=[
                {"CharacterID": "HarryPotter", "Groups": ["Student", "Gryffindor"]},
                {"CharacterID": "DracoMalfoy", "Groups": ["Student", "Slytherin"]},
                {"CharacterID": "Unlinked", "Groups": ["Student"]},
            ],
            characters=[{"CharacterID": "HarryPotter", "Name": "Harry Potter", "image": "harry.png"}],
        )
        records = load_records(tmp_path)
        assert [e.id for e in records.entities] == ["HarryPotter", "DracoMalfoy"]
        harry, draco = records.entities
        assert harry.display_name == "Harry Potter"
        assert harry.image_ref == "harry.png"
        assert harry.categories == frozenset({"Student", "Gryffindor"})
        assert draco.display_name == "Draco Malfoy"
        assert draco.image_ref is None
        assert len(records.relationships) == 2

    def test_missing_social_record_means_outsider(self, tmp_path):
        write_data(tmp_path, "A,B,Friend,0\n", social=[])
        records = load_records(tmp_path)
        assert all(e.categories == frozenset({"Outside of Hogwarts"}) for e in records.entities)

    def test_optional_files_may_be_absent(self, tmp_path):
        write_data(tmp_path, "A,B,Friend,0\n")
        assert len(load_records(tmp_path).entities) == 2

    def test_non_list_json_raises(self, tmp_path):
        write_data(tmp_path, "A,B,Friend,0\n")
        (tmp_path / "social.json").write_text('{"CharacterID": "A"}', encoding="utf-8")
        with pytest.raises(GraphDataError):
            load_records(tmp_path)

    def test_empty_id_raises(self, tmp_path):
        write_data(tmp_path, ",B,Friend,0\n")
        with pytest.raises(GraphDataError):
            load_records(tmp_path)

    def test_missing_relationships_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_records(tmp_path)
