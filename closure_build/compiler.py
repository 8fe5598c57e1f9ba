"""Source-language compiler collaborators.

The build only needs a handful of capabilities from a compiler, described by
:class:`Compiler`. :class:`PassthroughCompiler` implements them for projects
written directly in Closure-style JavaScript.
"""

from collections.abc import Sequence
import os
import pathlib
import typing

from closure_build.artifact import Artifact, Location, parse_js_namespaces
from closure_build.deps import dependency_order


class CompileError(RuntimeError):
    """Raised when a source unit fails to compile."""


class Compiler(typing.Protocol):
    """What the build needs from a source-language compiler.

    Compilers report the namespaces of what they compile directly on the
    returned artifacts.
    """

    source_extension: str

    def compile_unit(self, source: Location, *, output_file: pathlib.Path | None) -> Artifact:
        """Compile one source unit.

        With ``output_file`` the JavaScript is written there and the artifact
        points at it; otherwise the artifact is in memory.
        """
        ...

    def compile_forms(self, forms: Sequence[str]) -> Artifact:
        """Compile a sequence of source forms to an in-memory artifact."""
        ...

    def compile_tree(self, directory: pathlib.Path, *, output_dir: pathlib.Path) -> list[Artifact]:
        """Compile every unit below ``directory``, in dependency order.

        Compilers that write JavaScript place it under ``output_dir``.
        """
        ...

    def find_namespace_source(self, relpath: str) -> Location | None:
        """Locate a namespace's source file by its relative path (e.g. ``cljs/core.cljs``)."""
        ...


class PassthroughCompiler:
    """Treat Closure-style ``.js`` sources as already compiled.

    :ivar source_paths: Roots searched by :meth:`find_namespace_source`.
    """

    source_extension: str = ".js"

    def __init__(self, source_paths: Sequence[pathlib.Path] = ()) -> None:
        self.source_paths: list[pathlib.Path] = list(source_paths)

    def compile_unit(self, source: Location, *, output_file: pathlib.Path | None) -> Artifact:
        try:
            text: str = source.read_text()
        except FileNotFoundError as e:
            raise CompileError(f"Source not found: {source.as_uri()}") from e

        if output_file is None:
            if source.is_archived() is True:
                return Artifact.from_text(text)
            return Artifact.from_text(text, location=source)

        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(text, encoding="utf-8")
        provides, requires = parse_js_namespaces(text.splitlines())
        return Artifact(location=Location(path=output_file), provides=provides, requires=requires)

    def compile_forms(self, forms: Sequence[str]) -> Artifact:
        return Artifact.from_text("\n".join(forms))

    def compile_tree(self, directory: pathlib.Path, *, output_dir: pathlib.Path) -> list[Artifact]:
        """Collect the ``.js`` files below ``directory`` in dependency order.

        Sources are used in place; nothing is written to ``output_dir``.
        """

        units: list[Artifact] = []
        for root_str, dirs, files in os.walk(directory, topdown=True):
            dirs[:] = sorted(d for d in dirs if d.startswith(".") is False)
            for name in sorted(files):
                if name.endswith(self.source_extension) is False:
                    continue
                units.append(Artifact.from_location(Location(path=pathlib.Path(root_str) / name)))
        return dependency_order(units)

    def find_namespace_source(self, relpath: str) -> Location | None:
        for root in self.source_paths:
            candidate: pathlib.Path = root / relpath
            if candidate.is_file() is True:
                return Location(path=candidate)
        return None
