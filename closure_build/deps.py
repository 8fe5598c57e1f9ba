"""Namespace dependency index and ordering.

- :func:`build_index` maps namespace names and file identities to descriptors.
- :func:`dependency_order` sorts descriptors (or artifacts) so that every
  dependency comes before its dependents.
- :class:`RuntimeLibrary` reads the runtime library's ``deps.js`` manifest once
  and resolves the transitive runtime dependencies of a set of namespaces.
"""

from dataclasses import dataclass
from collections.abc import Iterable
import pathlib
import re
import threading
import typing
import zipfile

from closure_build.artifact import Artifact, Location


class ResolutionError(LookupError):
    """Raised in strict mode when a required namespace has no descriptor."""


class CyclicDependencyError(ValueError):
    """Raised when namespaces require each other in a cycle.

    :ivar cycle: Names along the cycle; the first and last entries are the
        same descriptor.
    """

    def __init__(self, cycle: list[str]) -> None:
        self.cycle: list[str] = cycle
        super().__init__(f"Cyclic dependency: {' -> '.join(cycle)}")


@dataclass(frozen=True, slots=True)
class DependencyDescriptor:
    """Static metadata about one runtime-library file.

    :ivar file: Path relative to the library root (e.g. ``goog/array/array.js``).
    :ivar provides: Namespaces provided by the file.
    :ivar requires: Namespaces required by the file.
    """

    file: str
    provides: tuple[str, ...]
    requires: tuple[str, ...]


class Dependent(typing.Protocol):
    """Anything that can be indexed and ordered: descriptors and artifacts."""

    @property
    def file(self) -> str | None: ...

    @property
    def provides(self) -> tuple[str, ...]: ...

    @property
    def requires(self) -> tuple[str, ...]: ...


D = typing.TypeVar("D", bound=Dependent)


def build_index(deps: Iterable[D]) -> dict[str, D]:
    """Index dependencies by every namespace they provide and by file.

    Later entries overwrite earlier ones on collision. Entries with neither a
    namespace nor a file are kept under a synthetic key so that ordering never
    drops them.

    :param deps: Descriptors or artifacts.
    :returns: Name/file to dependency mapping, in insertion order.
    """

    index: dict[str, D] = {}
    for i, dep in enumerate(deps):
        for ns in dep.provides:
            index[ns] = dep
        if dep.file is not None:
            index[dep.file] = dep
        elif len(dep.provides) == 0:
            index[f"<anonymous {i}>"] = dep
    return index


def dependency_order(coll: Iterable[D]) -> list[D]:
    """Topologically sort a collection of dependencies.

    Every key of the index is visited depth-first; requires are emitted before
    the dependency itself. Required names with no entry in ``coll`` are
    skipped. Each dependency appears once.

    :param coll: Descriptors or artifacts.
    :returns: Dependencies in load order.
    :raises CyclicDependencyError: If the requires graph has a cycle.
    """

    index: dict[str, D] = build_index(coll)
    order: list[D] = []
    done: set[int] = set()
    active: dict[int, int] = {}
    path: list[str] = []

    def visit(name: str) -> None:
        dep: D | None = index.get(name)
        if dep is None:
            return
        key: int = id(dep)
        if key in done:
            return
        if key in active:
            raise CyclicDependencyError(path[active[key] :] + [name])

        active[key] = len(path)
        path.append(name)
        for required in dep.requires:
            visit(required)
        path.pop()
        del active[key]
        done.add(key)
        order.append(dep)

    for name in list(index):
        visit(name)
    return order


_ADD_DEPENDENCY_RE: re.Pattern[str] = re.compile(
    r"^goog\.addDependency\(['\"](.*?)['\"],\s*\[(.*?)\],\s*\[(.*?)\](?:,\s*(?:\{.*?\}|true|false))?\);.*"
)
_QUOTED_RE: re.Pattern[str] = re.compile(r"['\"]([^'\"]*)['\"]")


def parse_manifest(text: str, *, base_dir: str, vendor_prefix: str) -> list[DependencyDescriptor]:
    """Parse ``goog.addDependency(...)`` lines from a deps manifest.

    :param text: Manifest text.
    :param base_dir: Directory of the manifest relative to the library root;
        manifest paths are relative to it.
    :param vendor_prefix: Paths starting with this prefix are skipped.
    :returns: Descriptors in manifest order.
    """

    descriptors: list[DependencyDescriptor] = []
    for line in text.splitlines():
        m = _ADD_DEPENDENCY_RE.match(line.strip())
        if m is None:
            continue
        rel: str = m.group(1)
        if rel.startswith(vendor_prefix) is True:
            continue
        descriptors.append(
            DependencyDescriptor(
                file=_join(base_dir, rel),
                provides=tuple(_QUOTED_RE.findall(m.group(2))),
                requires=tuple(_QUOTED_RE.findall(m.group(3))),
            )
        )
    return descriptors


def _join(base_dir: str, rel: str) -> str:
    if len(base_dir) == 0:
        return rel
    return f"{base_dir}/{rel}"


class RuntimeLibrary:
    """The static runtime library (Closure Library layout).

    The library root is either a directory or a zip/jar archive containing
    ``<base_dir>/<bootstrap>`` and ``<base_dir>/<manifest>``. The manifest
    index is built on first use and kept for the lifetime of the instance.
    """

    def __init__(
        self,
        root: pathlib.Path,
        *,
        base_dir: str = "goog",
        bootstrap: str = "base.js",
        manifest: str = "deps.js",
        vendor_prefix: str = "../../third_party",
    ) -> None:
        self.root: pathlib.Path = root
        self.base_dir: str = base_dir
        self.bootstrap_path: str = _join(base_dir, bootstrap)
        self.manifest_path: str = _join(base_dir, manifest)
        self.vendor_prefix: str = vendor_prefix
        self._archived: bool = root.is_file() is True and zipfile.is_zipfile(root) is True
        self._index: dict[str, DependencyDescriptor] | None = None
        self._lock: threading.Lock = threading.Lock()

    @property
    def archived(self) -> bool:
        """``True`` when the library lives in a zip/jar archive."""

        return self._archived

    def resource(self, relpath: str) -> Location:
        """Locate a file relative to the library root."""

        if self.archived is True:
            return Location(path=self.root, member=relpath)
        return Location(path=self.root / relpath)

    def descriptors(self) -> list[DependencyDescriptor]:
        """Parse the library manifest.

        :raises FileNotFoundError: If the manifest is missing.
        """

        text: str = self.resource(self.manifest_path).read_text()
        return parse_manifest(text, base_dir=self.base_dir, vendor_prefix=self.vendor_prefix)

    def index(self) -> dict[str, DependencyDescriptor]:
        """Return the namespace/file index of the manifest, built once."""

        with self._lock:
            if self._index is None:
                self._index = build_index(self.descriptors())
            return self._index

    def dependencies(self, requires: Iterable[str], *, strict: bool = False) -> list[str]:
        """Resolve the runtime-library files needed by some namespaces.

        :param requires: Requested namespace names.
        :param strict: Raise instead of skipping names with no descriptor.
        :returns: Library-relative paths: the bootstrap file first, then every
            transitively required file in load order.
        :raises ResolutionError: In strict mode, for an unknown namespace.
        :raises CyclicDependencyError: If the manifest has a cycle.
        """

        index: dict[str, DependencyDescriptor] = self.index()
        queue: list[str] = list(requires)
        seen: set[str] = set(queue)
        deps: list[DependencyDescriptor] = []
        i: int = 0
        while i < len(queue):
            name: str = queue[i]
            i += 1
            node: DependencyDescriptor | None = index.get(name)
            if node is None:
                if strict is True:
                    raise ResolutionError(f"No runtime library file provides {name!r}")
                continue
            for required in node.requires:
                if required not in seen:
                    seen.add(required)
                    queue.append(required)
            deps.append(node)

        return [self.bootstrap_path, *(d.file for d in dependency_order(deps))]

    def artifact(self, relpath: str) -> Artifact:
        """Build a library artifact for a library-relative path."""

        node: DependencyDescriptor | None = self.index().get(relpath)
        return Artifact(
            location=self.resource(relpath),
            provides=node.provides if node is not None else (),
            requires=node.requires if node is not None else (),
            library=True,
            resource_path=relpath,
        )


_LIBRARIES: dict[pathlib.Path, RuntimeLibrary] = {}
_LIBRARIES_LOCK: threading.Lock = threading.Lock()


def runtime_library(root: pathlib.Path) -> RuntimeLibrary:
    """Return the process-wide :class:`RuntimeLibrary` for a root.

    Repeated builds in one process share the parsed manifest index.
    """

    key: pathlib.Path = root.resolve()
    with _LIBRARIES_LOCK:
        lib: RuntimeLibrary | None = _LIBRARIES.get(key)
        if lib is None:
            lib = RuntimeLibrary(key)
            _LIBRARIES[key] = lib
        return lib
