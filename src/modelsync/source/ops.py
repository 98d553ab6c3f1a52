"""Source tree operations: loading the project and writing results.

Writes are content-addressed: a file is only touched when its rendered text
differs from what is on disk, and every write or delete is recorded as a
``FileDelta`` so a run can report (or, in dry-run mode, only compute) its
changes.
"""

from __future__ import annotations

import codecs
import hashlib
import re
import threading
from collections.abc import Iterable
from pathlib import Path

import structlog

from modelsync.config.models import LayoutConfig
from modelsync.core.errors import SourceError
from modelsync.source.models import FileDelta, SourceFile, SourceTree

logger = structlog.get_logger()

_ROOT_NAMESPACE = re.compile(r"<RootNamespace>\s*([^<]+?)\s*</RootNamespace>")


class SourceOps:
    """Loads the model, wrapper and registry files of one project."""

    def __init__(self, project_root: Path, layout: LayoutConfig) -> None:
        self._root = project_root
        self._layout = layout

    def load(self) -> SourceTree:
        """Read and parse every source file the run may touch.

        Raises:
            SourceError: When the project directory does not exist.
        """
        if not self._root.is_dir():
            raise SourceError.not_found(str(self._root))

        layout = self._layout
        root_namespace = discover_root_namespace(self._root)
        tree = SourceTree(
            root=self._root,
            root_namespace=root_namespace,
            models_dir=self._root / layout.models_dir,
            dao_dir=self._root / layout.dao_dir,
            schema_dir=self._root / layout.schema_dir,
            registry_path=self._root / layout.registry_file,
            models_namespace="",
            dao_namespace="",
            registry_namespace="",
        )

        self._load_dir(tree.models_dir, tree.models, tree.unclassified)
        self._load_dir(tree.dao_dir, tree.daos, tree.unclassified)
        if tree.registry_path.is_file():
            tree.registry = SourceFile.read(tree.registry_path)
        tree.sentinel_present = (tree.models_dir / layout.identity_sentinel).is_file()

        tree.models_namespace = _first_namespace(tree.models.values()) or _join(
            root_namespace, layout.models_dir
        )
        tree.dao_namespace = _first_namespace(tree.daos.values()) or _join(
            root_namespace, layout.dao_dir
        )
        tree.registry_namespace = (
            tree.registry.namespace if tree.registry and tree.registry.namespace else root_namespace
        )

        logger.info(
            "source_loaded",
            root=str(self._root),
            namespace=root_namespace,
            models=len(tree.models),
            daos=len(tree.daos),
            registry=tree.registry is not None,
        )
        return tree

    def _load_dir(
        self, directory: Path, into: dict[str, SourceFile], unclassified: list[SourceFile]
    ) -> None:
        if not directory.is_dir():
            return
        for path in sorted(directory.rglob("*.cs")):
            source = SourceFile.read(path)
            name = source.class_name
            if name is None:
                unclassified.append(source)
                continue
            if name.lower() in into:
                logger.warning(
                    "duplicate_class",
                    class_name=name,
                    path=str(path),
                    kept=str(into[name.lower()].path),
                )
                continue
            into[name.lower()] = source


def discover_root_namespace(root: Path) -> str:
    """Root namespace from the project file, else the directory name."""
    for csproj in sorted(root.glob("*.csproj")):
        match = _ROOT_NAMESPACE.search(csproj.read_text(encoding="utf-8", errors="replace"))
        if match:
            return match.group(1)
        return csproj.stem
    return root.resolve().name


def _first_namespace(files: Iterable[SourceFile]) -> str:
    for source in files:
        if source.namespace:
            return source.namespace
    return ""


def _join(namespace: str, directory: str) -> str:
    suffix = ".".join(part for part in Path(directory).parts if part not in (".", ""))
    return f"{namespace}.{suffix}" if suffix else namespace


class SourceWriter:
    """Applies rendered files to disk and records what changed.

    Safe to share between worker threads; no two workers are expected to
    write the same path within a phase.
    """

    def __init__(self, project_root: Path, *, dry_run: bool = False) -> None:
        self._root = project_root
        self._dry_run = dry_run
        self._lock = threading.Lock()
        self._deltas: list[FileDelta] = []

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def deltas(self) -> list[FileDelta]:
        with self._lock:
            return list(self._deltas)

    def write(self, path: Path, content: str, *, bom: bool = False) -> FileDelta | None:
        """Write ``content`` unless the file already holds exactly that text.

        Raises:
            SourceError: When the file cannot be written.
        """
        data = (codecs.BOM_UTF8 if bom else b"") + content.encode("utf-8")
        old_content: str | None = None
        if path.is_file():
            old_data = path.read_bytes()
            if old_data == data:
                return None
            old_content = old_data.decode("utf-8-sig", errors="replace")

        if old_content is None:
            delta = FileDelta(
                path=self._relative(path),
                action="created",
                new_hash=_hash_content(content),
                insertions=content.count("\n") + 1,
            )
        else:
            old_lines = old_content.splitlines()
            new_lines = content.splitlines()
            delta = FileDelta(
                path=self._relative(path),
                action="updated",
                old_hash=_hash_content(old_content),
                new_hash=_hash_content(content),
                insertions=max(0, len(new_lines) - len(old_lines)),
                deletions=max(0, len(old_lines) - len(new_lines)),
            )

        if not self._dry_run:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(data)
            except OSError as e:
                raise SourceError.write_failed(str(path), str(e)) from e
        return self._record(delta)

    def delete(self, path: Path) -> FileDelta | None:
        if not path.is_file():
            return None
        old_content = path.read_bytes().decode("utf-8-sig", errors="replace")
        delta = FileDelta(
            path=self._relative(path),
            action="deleted",
            old_hash=_hash_content(old_content),
            deletions=old_content.count("\n") + 1,
        )
        if not self._dry_run:
            try:
                path.unlink()
            except OSError as e:
                raise SourceError.write_failed(str(path), str(e)) from e
        return self._record(delta)

    def _record(self, delta: FileDelta) -> FileDelta:
        logger.debug("file_delta", path=delta.path, action=delta.action, dry_run=self._dry_run)
        with self._lock:
            self._deltas.append(delta)
        return delta

    def _relative(self, path: Path) -> str:
        try:
            return path.relative_to(self._root).as_posix()
        except ValueError:
            return path.as_posix()


def _hash_content(content: str) -> str:
    """Hash content for delta tracking."""
    return hashlib.sha256(content.encode()).hexdigest()[:12]
