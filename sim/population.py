"""People the settlement can put to work.

Buildings only ever hold worker ids; skills, role and availability are
resolved through a :class:`PopulationDirectory`. :class:`Roster` is the
in-memory directory the engine owns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)

WORKER = "worker"
WARRIOR = "warrior"


@dataclass
class Person:
    id: str
    name: str
    role: str = WORKER
    skills: Dict[str, float] = field(default_factory=dict)
    available: bool = True

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "skills": dict(self.skills),
            "available": self.available,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Person":
        from sim.safe_parse import to_amounts

        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            role=str(data.get("role", WORKER)),
            skills=to_amounts(data.get("skills")),
            available=bool(data.get("available", True)),
        )


class PopulationDirectory(Protocol):
    def get(self, person_id: str) -> Optional[Person]:
        ...

    def total(self) -> int:
        ...

    def available_count(self, role: str) -> int:
        ...


class Roster:
    """Simple dictionary-backed population directory."""

    def __init__(self, people: Optional[Iterable[Person]] = None) -> None:
        self._people: Dict[str, Person] = {}
        for p in people or []:
            self.add(p)

    def add(self, person: Person) -> None:
        if person.id in self._people:
            raise ValueError(f"duplicate person id {person.id!r}")
        self._people[person.id] = person
        logger.debug("%s joined as %s", person.name, person.role)

    def get(self, person_id: str) -> Optional[Person]:
        return self._people.get(person_id)

    def list(self, role: Optional[str] = None) -> List[Person]:
        return [p for p in self._people.values() if role is None or p.role == role]

    def total(self) -> int:
        return len(self._people)

    def available_count(self, role: str) -> int:
        return sum(1 for p in self._people.values() if p.role == role and p.available)

    def to_dict(self) -> Dict[str, object]:
        return {"people": [p.to_dict() for p in self._people.values()]}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Roster":
        return cls(Person.from_dict(pd) for pd in data.get("people", []))


__all__ = ["Person", "PopulationDirectory", "Roster", "WORKER", "WARRIOR"]
