"""The paper store: the collection of records the shell operates on.

Papers are kept in insertion order and referred to by their index.  The
store is persisted as a YAML document of the form

    papers:
      - title: ShadowTutor
        authors: [Jae-Won Chung, ...]
        venue: ICPP
        year: 2020
"""
from typing import Annotated, Iterable, Iterator, List, Optional
import logging
import os
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from reason.command.core import ReasonError

logger = logging.getLogger(__name__)


class StoreError(ReasonError):
    """Raised when the store cannot be read from or written to disk."""


class Paper(BaseModel):
    """One paper in the collection."""

    title: str
    authors: List[str] = Field(default_factory=list)
    venue: Optional[str] = None
    year: Optional[int] = None
    filepath: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title cannot be empty")
        return value

    @property
    def first_author(self) -> Optional[str]:
        return self.authors[0] if self.authors else None


class PaperStore:
    """An ordered, in-memory collection of papers with YAML load/save.

    Attributes:
        dirty: True when the store was changed since it was loaded or saved.
    """

    def __init__(self, papers: Optional[Iterable[Paper]] = None):
        self._papers: List[Paper] = list(papers or [])
        self.dirty = False

    @classmethod
    def load(cls, path: Annotated[str, "Path to the YAML state file"]) -> "PaperStore":
        """Load a store from disk.  A missing file gives an empty store.

        Raises:
            StoreError: If the file cannot be read or does not describe papers.
        """
        path = os.path.expanduser(path)
        if not os.path.exists(path):
            logger.info(f"State file {path} not found, starting with an empty store")
            return cls()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Could not read state file {path}: {e}") from e

        if data is None:
            return cls()
        if not isinstance(data, dict) or not isinstance(data.get("papers", []), list):
            raise StoreError(f"State file {path} does not contain a list of papers")

        try:
            papers = [Paper(**entry) for entry in data.get("papers", [])]
        except (TypeError, ValidationError) as e:
            raise StoreError(f"Invalid paper in state file {path}: {e}") from e

        logger.info(f"Loaded {len(papers)} papers from {path}")
        return cls(papers)

    def save(self, path: Annotated[str, "Path to the YAML state file"]) -> None:
        """Write the store to disk, creating parent directories as needed.

        Raises:
            StoreError: If the file cannot be written.
        """
        path = os.path.expanduser(path)
        data = {"papers": [paper.model_dump(exclude_none=True) for paper in self._papers]}
        try:
            parent = os.path.dirname(path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        except OSError as e:
            raise StoreError(f"Could not write state file {path}: {e}") from e
        self.dirty = False
        logger.info(f"Saved {len(self._papers)} papers to {path}")

    def add(self, paper: Paper) -> int:
        """Append a paper and return its index."""
        self._papers.append(paper)
        self.dirty = True
        return len(self._papers) - 1

    def replace(self, index: int, paper: Paper) -> None:
        self._papers[index] = paper
        self.dirty = True

    def remove(self, indices: Iterable[int]) -> List[Paper]:
        """Remove the papers at the given indices.

        Indices of the remaining papers shift down to stay contiguous.

        Returns:
            The removed papers, in store order.
        """
        doomed = sorted(set(indices))
        for index in doomed:
            if not 0 <= index < len(self._papers):
                raise IndexError(f"No paper at index {index}")
        removed = [self._papers[i] for i in doomed]
        for index in reversed(doomed):
            del self._papers[index]
        if removed:
            self.dirty = True
        return removed

    def indices(self) -> List[int]:
        return list(range(len(self._papers)))

    def __getitem__(self, index: int) -> Paper:
        return self._papers[index]

    def __iter__(self) -> Iterator[Paper]:
        return iter(self._papers)

    def __len__(self) -> int:
        return len(self._papers)
