"""Record loader — relationships.csv, social.json and characters.json.

Only entities named by at least one relationship are loaded. An entity with
no social record is treated as an outsider; one with no character record is
named from its id (``HarryPotter`` → ``Harry Potter``).
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from pathlib import Path

from regionforce.errors import GraphDataError
from regionforce.model import DEFAULT_REGION_KEY, Entity, Relationship, split_camel_case

logger = logging.getLogger(__name__)

RELATIONSHIPS_FILE = "relationships.csv"
SOCIAL_FILE = "social.json"
CHARACTERS_FILE = "characters.json"

_REQUIRED_COLUMNS = ("CharacterID", "TargetCharacterID", "SocialCapitalStatus")


@dataclass
class Records:
    entities: list[Entity]
    relationships: list[Relationship]


def _read_json_list(path: Path) -> list[dict]:
    if not path.exists():
        logger.info("%s not found; continuing without it", path)
        return []
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise GraphDataError(f"{path}: expected a JSON list")
    return data


def read_relationships(path: Path) -> list[Relationship]:
    with path.open(newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        missing = [c for c in _REQUIRED_COLUMNS if c not in (reader.fieldnames or [])]
        if missing:
            raise GraphDataError(f"{path}: missing columns {', '.join(missing)}")
        relationships: list[Relationship] = []
        for row in reader:
            try:
                capital = float(row.get("SocialCapital") or 0)
            except ValueError:
                capital = 0.0
            relationships.append(
                Relationship(
                    source_id=row["CharacterID"].strip(),
                    target_id=row["TargetCharacterID"].strip(),
                    status=row["SocialCapitalStatus"].strip(),
                    capital_weight=capital,
                )
            )
    logger.info("read %d relationships from %s", len(relationships), path)
    return relationships


def load_records(data_dir: str | Path) -> Records:
    """Load entities and raw relationships from a data directory."""
    data_dir = Path(data_dir)
    relationships = read_relationships(data_dir / RELATIONSHIPS_FILE)
    social = {rec["CharacterID"]: rec for rec in _read_json_list(data_dir / SOCIAL_FILE) if "CharacterID" in rec}
    characters = {
        rec["CharacterID"]: rec for rec in _read_json_list(data_dir / CHARACTERS_FILE) if "CharacterID" in rec
    }

    ids: dict[str, None] = {}
    for rel in relationships:
        ids.setdefault(rel.source_id)
        ids.setdefault(rel.target_id)

    entities: list[Entity] = []
    for entity_id in ids:
        if not entity_id:
            raise GraphDataError("relationship row with an empty character id")
        groups = social.get(entity_id, {}).get("Groups") or [DEFAULT_REGION_KEY]
        info = characters.get(entity_id, {})
        entities.append(
            Entity(
                id=entity_id,
                display_name=info.get("Name") or split_camel_case(entity_id),
                categories=frozenset(groups),
                image_ref=info.get("image"),
            )
        )
    return Records(entities=entities, relationships=relationships)
