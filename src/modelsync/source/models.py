"""In-memory view of the generated C# project."""

from __future__ import annotations

import codecs
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from modelsync.csharp.parser import parse
from modelsync.csharp.syntax import ClassNode, CompilationUnit


@dataclass(frozen=True)
class SourceFile:
    """One ``.cs`` file with its parsed unit.

    ``bom`` records whether the file started with a UTF-8 byte order mark so
    that rewrites keep it.
    """

    path: Path
    text: str
    unit: CompilationUnit
    bom: bool = False

    @classmethod
    def from_text(cls, path: Path, text: str, *, bom: bool = False) -> SourceFile:
        return cls(path=path, text=text, unit=parse(text, path=str(path)), bom=bom)

    @classmethod
    def read(cls, path: Path) -> SourceFile:
        raw = path.read_bytes()
        bom = raw.startswith(codecs.BOM_UTF8)
        text = raw.decode("utf-8-sig", errors="replace")
        return cls.from_text(path, text, bom=bom)

    @property
    def primary_class(self) -> ClassNode | None:
        """The class named after the file, else the first class declared."""
        classes = self.unit.classes
        for cls in classes:
            if cls.name == self.path.stem:
                return cls
        return classes[0] if classes else None

    @property
    def class_name(self) -> str | None:
        cls = self.primary_class
        return cls.name if cls is not None else None

    @property
    def namespace(self) -> str:
        cls = self.primary_class
        return cls.namespace if cls is not None else ""


@dataclass
class SourceTree:
    """Everything loaded from the project before reconciliation starts.

    Model and wrapper files are keyed by lower-cased class name; files with no
    class declaration are kept in ``unclassified`` and never swept.
    """

    root: Path
    root_namespace: str
    models_dir: Path
    dao_dir: Path
    schema_dir: Path
    registry_path: Path
    models_namespace: str
    dao_namespace: str
    registry_namespace: str
    models: dict[str, SourceFile] = field(default_factory=dict)
    daos: dict[str, SourceFile] = field(default_factory=dict)
    unclassified: list[SourceFile] = field(default_factory=list)
    registry: SourceFile | None = None
    sentinel_present: bool = False

    def model(self, class_name: str) -> SourceFile | None:
        return self.models.get(class_name.lower())

    def dao(self, class_name: str) -> SourceFile | None:
        return self.daos.get(class_name.lower())


FileAction = Literal["created", "updated", "deleted"]


@dataclass
class FileDelta:
    """Delta for a single file."""

    path: str
    action: FileAction
    old_hash: str | None = None
    new_hash: str | None = None
    insertions: int = 0
    deletions: int = 0
