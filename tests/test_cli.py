import logging
import pathlib

import pytest

from closure_build.cli import load_compiler, main
from closure_build.compiler import PassthroughCompiler
from closure_build.options import OptionsError


@pytest.fixture(autouse=True)
def restore_logger():
    logger = logging.getLogger("closure_build")
    level, propagate, handlers = logger.level, logger.propagate, list(logger.handlers)
    yield
    logger.setLevel(level)
    logger.propagate = propagate
    logger.handlers[:] = handlers


@pytest.fixture
def js_project(tmp_path: pathlib.Path) -> pathlib.Path:
    src = tmp_path / "src"
    (src / "app").mkdir(parents=True)
    (src / "app" / "main.js").write_text(
        "goog.provide('app.main');\ngoog.require('app.util');\ngoog.require('goog.array');\n",
        encoding="utf-8",
    )
    (src / "app" / "util.js").write_text("goog.provide('app.util');\n", encoding="utf-8")
    return src


def test_build_unoptimized(js_project: pathlib.Path, library_jar: pathlib.Path, tmp_path: pathlib.Path) -> None:
    out = tmp_path / "out"
    target = tmp_path / "app-deps.js"
    code = main(["build", str(js_project), "--library", str(library_jar), "-d", str(out), "-o", str(target), "-q"])
    assert code == 0
    assert target.read_text(encoding="utf-8") == (
        "goog.addDependency(\"../../src/app/util.js\", ['app.util'], []);\n"
        "goog.addDependency(\"../../src/app/main.js\", ['app.main'], ['app.util', 'goog.array']);"
    )
    assert (out / "goog" / "base.js").is_file()
    assert (out / "goog" / "array" / "array.js").is_file()
    assert (out / "goog" / "deps.js").is_file()


def test_build_reports_errors(library_jar: pathlib.Path, tmp_path: pathlib.Path) -> None:
    code = main(["build", str(tmp_path / "missing.js"), "--library", str(library_jar), "-d", str(tmp_path / "out"), "-q", "-q"])
    assert code == 1


def test_build_rejects_bad_optimizations(js_project: pathlib.Path, library_jar: pathlib.Path) -> None:
    assert main(["build", str(js_project), "--library", str(library_jar), "-O", "extreme", "-q", "-q"]) == 1


def test_load_compiler(tmp_path: pathlib.Path) -> None:
    compiler = load_compiler(None, [tmp_path])
    assert isinstance(compiler, PassthroughCompiler)
    assert compiler.source_paths == [tmp_path]

    loaded = load_compiler("closure_build.compiler:PassthroughCompiler", [tmp_path])
    assert isinstance(loaded, PassthroughCompiler)

    with pytest.raises(OptionsError):
        load_compiler("no_colon", [])
    with pytest.raises(OptionsError):
        load_compiler("closure_build_missing_module:factory", [])
    with pytest.raises(OptionsError):
        load_compiler("closure_build.compiler:Missing", [])
