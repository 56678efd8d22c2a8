"""Data structures describing a fetched minutes document and its section hierarchy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator


@dataclass(slots=True, frozen=True)
class MinutesDocument:
    """Raw minutes HTML together with the canonical URL it was resolved from."""

    url: str
    html: str


@dataclass(slots=True)
class Section:
    """A node of the section hierarchy inferred from the minutes headings.

    ``parent`` and ``children`` hold arena indexes into the owning
    :class:`SectionTree` rather than object references.
    """

    index: int
    level: int
    anchor: str | None
    title: str
    html_body: str = ""
    parent: int | None = None
    children: list[int] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.anchor is None and self.parent is None


@dataclass(slots=True)
class SectionTree:
    """Arena owning every :class:`Section` of a document, in document order.

    Index ``0`` is always the synthetic root section.
    """

    sections: list[Section]

    @property
    def root(self) -> Section:
        return self.sections[0]

    def __len__(self) -> int:
        return len(self.sections)

    def __getitem__(self, index: int) -> Section:
        return self.sections[index]

    def walk(self) -> Iterator[Section]:
        """Yield every section, the root first, in document order."""

        yield from self.sections

    def parent_of(self, section: Section) -> Section | None:
        if section.parent is None:
            return None
        return self.sections[section.parent]

    def children_of(self, section: Section) -> list[Section]:
        return [self.sections[index] for index in section.children]

    def find(self, anchor: str) -> Section | None:
        """Return the section whose heading carries ``anchor``, if any."""

        for section in self.sections:
            if section.anchor == anchor:
                return section
        return None
