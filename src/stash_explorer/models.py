"""Domain records produced by the git backend."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StashEntry:
    """A saved stash as reported by ``git stash list``."""

    reference: str
    message: str
    relative_age: str

    @property
    def title(self) -> str:
        return f"{self.reference}: {self.message}"

    @property
    def subtitle(self) -> str:
        return self.relative_age

    @property
    def filter_key(self) -> str:
        return f"{self.reference} {self.message}"


@dataclass(frozen=True)
class FileChange:
    """One side (staged or unstaged) of a changed path in the working tree."""

    path: str
    status_code: str
    staged: bool

    @property
    def identity(self) -> tuple[str, bool]:
        return (self.path, self.staged)

    @property
    def untracked(self) -> bool:
        return self.status_code == "?"

    @property
    def title(self) -> str:
        return self.path

    @property
    def subtitle(self) -> str:
        if self.untracked:
            return "untracked"
        side = "staged" if self.staged else "unstaged"
        return f"{side} {self.status_code}"

    @property
    def filter_key(self) -> str:
        return self.path
