import pathlib

from closure_build.artifact import Artifact, Location
from closure_build.deps import RuntimeLibrary
from closure_build.options import STDOUT, BuildOptions
from closure_build.output import (
    add_dep_string,
    deps_file,
    ensure_on_disk,
    output_one_file,
    output_path,
    output_unoptimized,
    path_relative_to,
)


def test_path_relative_to(tmp_path: pathlib.Path) -> None:
    base = tmp_path / "out" / "goog" / "base.js"
    assert path_relative_to(base, tmp_path / "out" / "cljs" / "core.js") == "../cljs/core.js"
    assert path_relative_to(base, tmp_path / "out" / "goog" / "array" / "array.js") == "array/array.js"
    assert path_relative_to(base, tmp_path / "src" / "app.js") == "../../src/app.js"


def test_add_dep_string_format(tmp_path: pathlib.Path) -> None:
    base = tmp_path / "out" / "goog" / "base.js"
    js = Artifact(
        location=Location(path=tmp_path / "out" / "cljs" / "core.js"),
        provides=("cljs.core",),
        requires=("goog.string", "goog.array"),
    )
    assert add_dep_string(base, js) == (
        "goog.addDependency(\"../cljs/core.js\", ['cljs.core'], ['goog.string', 'goog.array']);"
    )


def test_add_dep_string_empty_lists(tmp_path: pathlib.Path) -> None:
    js = Artifact(location=Location(path=tmp_path / "out" / "x.js"))
    assert add_dep_string(tmp_path / "out" / "goog" / "base.js", js) == 'goog.addDependency("../x.js", [], []);'


def test_output_path() -> None:
    in_memory = Artifact.from_text("alert(1);")
    assert output_path(in_memory) == output_path(Artifact.from_text("alert(1);"))
    assert output_path(in_memory).endswith(".js")
    archived = Artifact(location=Location(path=pathlib.Path("lib.jar"), member="goog/base.js"))
    assert output_path(archived) == "goog/base.js"


def test_ensure_on_disk_is_idempotent(options: BuildOptions, out_dir: pathlib.Path) -> None:
    js = Artifact.from_text("goog.provide('demo');\nalert('hello');\n")
    first = ensure_on_disk(options, js)
    assert first.location is not None
    written = first.location.path
    assert written.parent == out_dir
    mtime = written.stat().st_mtime_ns

    second = ensure_on_disk(options, js)
    assert second.location == first.location
    assert written.stat().st_mtime_ns == mtime
    assert written.read_text(encoding="utf-8") == js.source()
    assert second.provides == ("demo",)


def test_ensure_on_disk_leaves_plain_files(tmp_path: pathlib.Path, options: BuildOptions) -> None:
    p = tmp_path / "src" / "app.js"
    p.parent.mkdir()
    p.write_text("goog.provide('app');\n", encoding="utf-8")
    js = Artifact.from_location(Location(path=p))
    assert ensure_on_disk(options, js) is js


def test_ensure_on_disk_copies_archived_library_file(library_jar: pathlib.Path, options: BuildOptions, out_dir: pathlib.Path) -> None:
    lib = RuntimeLibrary(library_jar)
    on_disk = ensure_on_disk(options, lib.artifact("goog/array/array.js"))
    assert on_disk.library is True
    assert on_disk.location == Location(path=out_dir / "goog" / "array" / "array.js")
    assert on_disk.location.read_text() == "goog.provide('goog.array');\ngoog.require('goog.asserts');\n"


def test_output_one_file(tmp_path: pathlib.Path, capsys) -> None:
    assert output_one_file(BuildOptions(), "x") == "x"

    target = tmp_path / "dist" / "app.js"
    assert output_one_file(BuildOptions(output_to=target), "y") == "y"
    assert target.read_text(encoding="utf-8") == "y"

    assert output_one_file(BuildOptions(output_to=STDOUT), "z") == "z"
    assert capsys.readouterr().out == "z\n"


def test_unoptimized_manifest_order(library: RuntimeLibrary, options: BuildOptions, out_dir: pathlib.Path) -> None:
    a = Artifact(location=None, provides=("a",), requires=(), text="goog.provide('a');\n")
    b = Artifact(location=None, provides=("b",), requires=("a",), text="goog.provide('b');\ngoog.require('a');\n")
    manifest = output_unoptimized(options, [library.artifact("goog/base.js"), a, b], library=library)

    lines = manifest.split("\n")
    assert len(lines) == 2
    assert lines[0].endswith("['a'], []);")
    assert lines[1].endswith("['b'], ['a']);")
    assert lines[0].startswith('goog.addDependency("../')
    assert (out_dir / "goog" / "base.js").is_file()
    assert (out_dir / "goog" / "deps.js").read_text(encoding="utf-8").startswith("// This file")


def test_deps_file_joins_lines(tmp_path: pathlib.Path) -> None:
    base = tmp_path / "out" / "goog" / "base.js"
    sources = [
        Artifact(location=Location(path=tmp_path / "out" / "a.js"), provides=("a",)),
        Artifact(location=Location(path=tmp_path / "out" / "b.js"), provides=("b",), requires=("a",)),
    ]
    assert deps_file(base, sources) == (
        "goog.addDependency(\"../a.js\", ['a'], []);\n"
        "goog.addDependency(\"../b.js\", ['b'], ['a']);"
    )
