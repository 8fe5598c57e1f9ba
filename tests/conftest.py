from collections.abc import Sequence
import os
import pathlib
import zipfile

import pytest

from closure_build.artifact import Artifact, Location
from closure_build.compiler import CompileError
from closure_build.deps import RuntimeLibrary, dependency_order
from closure_build.options import BuildOptions


DEPS_JS = """\
// This file was autogenerated by depswriter.py.
goog.addDependency('array/array.js', ['goog.array'], ['goog.asserts']);
goog.addDependency('asserts/asserts.js', ['goog.asserts'], ['goog.string']);
goog.addDependency('string/string.js', ['goog.string'], []);
goog.addDependency('dom/dom.js', ['goog.dom', 'goog.dom.NodeType'], ['goog.array', 'goog.string'], {'lang': 'es6'});
goog.addDependency('../../third_party/closure/goog/mochikit/async/deferred.js', ['goog.async.Deferred'], []);
"""

LIBRARY_FILES: dict[str, str] = {
    "goog/base.js": "var goog = goog || {};\n",
    "goog/deps.js": DEPS_JS,
    "goog/array/array.js": "goog.provide('goog.array');\ngoog.require('goog.asserts');\n",
    "goog/asserts/asserts.js": "goog.provide('goog.asserts');\ngoog.require('goog.string');\n",
    "goog/string/string.js": "goog.provide('goog.string');\n",
    "goog/dom/dom.js": "goog.provide('goog.dom');\ngoog.provide('goog.dom.NodeType');\n",
}


@pytest.fixture
def library_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    root: pathlib.Path = tmp_path / "closure-library"
    for rel, text in LIBRARY_FILES.items():
        p: pathlib.Path = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text, encoding="utf-8")
    return root


@pytest.fixture
def library_jar(tmp_path: pathlib.Path) -> pathlib.Path:
    jar: pathlib.Path = tmp_path / "closure-library.jar"
    with zipfile.ZipFile(jar, "w") as zf:
        for rel, text in LIBRARY_FILES.items():
            zf.writestr(rel, text)
    return jar


@pytest.fixture
def library(library_dir: pathlib.Path) -> RuntimeLibrary:
    return RuntimeLibrary(library_dir)


@pytest.fixture
def out_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "out"


@pytest.fixture
def options(out_dir: pathlib.Path) -> BuildOptions:
    return BuildOptions(output_dir=out_dir)


class FakeCompiler:
    """In-process compiler for a toy source language.

    ``ns NAME`` declares the namespace, ``require NAME`` a dependency, ``error``
    fails the compile, and every other line is copied as JavaScript.
    """

    source_extension = ".cljs"

    def __init__(self, source_paths: Sequence[pathlib.Path] = ()) -> None:
        self.source_paths = list(source_paths)
        self.compiled: list[str] = []

    def _emit(self, lines: Sequence[str]) -> tuple[str, list[str], list[str]]:
        provides: list[str] = []
        requires: list[str] = []
        body: list[str] = []
        for line in lines:
            line = line.strip()
            if line.startswith("ns "):
                provides.append(line[3:].strip())
            elif line.startswith("require "):
                requires.append(line[8:].strip())
            elif line == "error":
                raise CompileError("toy compiler: error form")
            elif len(line) > 0:
                body.append(line)
        js: list[str] = [f"goog.provide('{p}');" for p in provides]
        js.extend(f"goog.require('{r}');" for r in requires)
        js.extend(body)
        return "\n".join(js) + "\n", provides, requires

    def compile_unit(self, source: Location, *, output_file: pathlib.Path | None) -> Artifact:
        text, provides, requires = self._emit(source.read_text().splitlines())
        self.compiled.extend(provides)
        if output_file is None:
            return Artifact(location=None, provides=tuple(provides), requires=tuple(requires), text=text)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(text, encoding="utf-8")
        return Artifact(location=Location(path=output_file), provides=tuple(provides), requires=tuple(requires))

    def compile_forms(self, forms: Sequence[str]) -> Artifact:
        lines: list[str] = [line for form in forms for line in form.splitlines()]
        text, provides, requires = self._emit(lines)
        return Artifact(location=None, provides=tuple(provides), requires=tuple(requires), text=text)

    def compile_tree(self, directory: pathlib.Path, *, output_dir: pathlib.Path) -> list[Artifact]:
        compiled: list[Artifact] = []
        for root_str, dirs, files in os.walk(directory):
            dirs.sort()
            for name in sorted(files):
                if name.endswith(self.source_extension) is False:
                    continue
                src: pathlib.Path = pathlib.Path(root_str) / name
                rel: pathlib.Path = src.relative_to(directory).with_suffix(".js")
                compiled.append(self.compile_unit(Location(path=src), output_file=output_dir / rel))
        return dependency_order(compiled)

    def find_namespace_source(self, relpath: str) -> Location | None:
        for root in self.source_paths:
            candidate: pathlib.Path = root / relpath
            if candidate.is_file():
                return Location(path=candidate)
        return None


@pytest.fixture
def cljs_src(tmp_path: pathlib.Path) -> pathlib.Path:
    root: pathlib.Path = tmp_path / "cljs-src"
    sources: dict[str, str] = {
        "cljs/core.cljs": "ns cljs.core\nrequire goog.string\nrequire goog.array\nvar core = 1;\n",
        "cljs/set.cljs": "ns cljs.set\nrequire cljs.core\nvar set = 1;\n",
        "cljs/string.cljs": "ns cljs.string\nrequire cljs.core\nrequire cljs.set\nrequire goog.string\n",
        "cljs/broken.cljs": "ns cljs.broken\nerror\n",
    }
    for rel, text in sources.items():
        p: pathlib.Path = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text, encoding="utf-8")
    return root


@pytest.fixture
def compiler(cljs_src: pathlib.Path) -> FakeCompiler:
    return FakeCompiler([cljs_src])
