"""PersonStore: canonical person records for one tree, keyed by person id."""

from __future__ import annotations

from collections.abc import Iterator

from silsilah.domain.person import Person


class PersonStore:
    """In-memory key-value store of a tree's persons.

    Loaded whole from storage by :class:`TreeRepository`; new records are
    flushed by the repository on commit.
    """

    def __init__(self, tree_id: str, persons: list[Person] | None = None) -> None:
        self.tree_id = tree_id
        self._persons: dict[str, Person] = {p.person_id: p for p in persons or []}

    def get(self, person_id: str) -> Person | None:
        return self._persons.get(person_id)

    def __contains__(self, person_id: object) -> bool:
        return person_id in self._persons

    def __len__(self) -> int:
        return len(self._persons)

    def __iter__(self) -> Iterator[Person]:
        return iter(self._persons.values())

    def insert(self, person: Person) -> None:
        """Add *person*. Raises KeyError if the id is taken."""
        if person.person_id in self._persons:
            raise KeyError(person.person_id)
        self._persons[person.person_id] = person

    def remove(self, person_id: str) -> Person | None:
        """Drop a record (rollback of an uncommitted insert only)."""
        return self._persons.pop(person_id, None)

    def snapshot(self) -> list[Person]:
        return sorted(self._persons.values(), key=lambda p: p.person_id)
