"""Command line interface for closure-build."""

import argparse
import importlib
import logging
import pathlib
import shlex
import sys

from closure_build.builder import BuildContext, BuildError, build
from closure_build.compiler import CompileError, Compiler, PassthroughCompiler
from closure_build.deps import CyclicDependencyError, ResolutionError, runtime_library
from closure_build.optimizer import ClosureCompilerOptimizer, OptimizeError
from closure_build.options import BuildOptions, OptionsError, resolve_build_options


def _configure_logging(*, verbose: int, quiet: int) -> logging.Logger:
    """Configure the closure-build logger.

    :param verbose: Verbosity count (0+).
    :param quiet: Quietness count (0+).
    :returns: Configured logger.
    """

    level: int = logging.INFO
    if quiet >= 2:
        level = logging.ERROR
    elif quiet >= 1:
        level = logging.WARNING
    elif verbose >= 1:
        level = logging.DEBUG

    logger: logging.Logger = logging.getLogger("closure_build")
    logger.setLevel(level)
    logger.propagate = False

    handler: logging.Handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger.handlers.clear()
    logger.addHandler(handler)
    return logger


def load_compiler(reference: str | None, source_paths: list[pathlib.Path]) -> Compiler:
    """Instantiate the compiler named by a ``module:attribute`` reference.

    The attribute is called with the list of source paths. Without a
    reference, sources are treated as Closure-style JavaScript.

    :param reference: ``module:attribute`` or ``None``.
    :param source_paths: Roots holding language-level namespace sources.
    :returns: Compiler.
    :raises OptionsError: If the reference cannot be loaded.
    """

    if reference is None:
        return PassthroughCompiler(source_paths)

    module_name, sep, attr = reference.partition(":")
    if len(sep) == 0 or len(module_name) == 0 or len(attr) == 0:
        raise OptionsError(f"Invalid --compiler {reference!r}; expected 'module:attribute'.")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise OptionsError(f"Cannot import compiler module {module_name!r}: {e}") from e
    factory = getattr(module, attr, None)
    if factory is None:
        raise OptionsError(f"Compiler module {module_name!r} has no attribute {attr!r}.")
    return factory(source_paths)


def main(argv: list[str] | None = None) -> int:
    """Run the closure-build CLI.

    :param argv: Optional argv list (excluding program name).
    :returns: Exit code.
    """

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="closure-build",
        description="Compile sources and their namespace dependencies into runnable JavaScript.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_build = subparsers.add_parser(
        "build",
        help="Build a bundle or an unoptimized deps file.",
    )
    p_build.add_argument(
        "input",
        type=str,
        help="Source file, source directory, or jar:/file: URI.",
    )
    p_build.add_argument(
        "-l",
        "--library",
        type=pathlib.Path,
        required=True,
        help="Runtime library root: a directory or zip/jar containing goog/base.js and goog/deps.js.",
    )
    p_build.add_argument(
        "-d",
        "--output-dir",
        type=pathlib.Path,
        default=None,
        help="Working directory for written files (default: out).",
    )
    p_build.add_argument(
        "-o",
        "--output-to",
        type=str,
        default="-",
        help="Where to write the bundle or deps file; '-' prints it (default).",
    )
    p_build.add_argument(
        "-O",
        "--optimizations",
        type=str,
        default="none",
        help="none, whitespace, simple or advanced. Anything but none produces a bundle.",
    )
    p_build.add_argument(
        "--pretty-print",
        action="store_true",
        help="Pretty-print the optimized bundle.",
    )
    p_build.add_argument(
        "--externs",
        type=pathlib.Path,
        action="append",
        default=[],
        help="Extra externs file for the optimizer. May be repeated.",
    )
    p_build.add_argument(
        "--use-only-custom-externs",
        action="store_true",
        help="Do not use the optimizer's default externs.",
    )
    p_build.add_argument(
        "--language-prefix",
        type=str,
        default=None,
        help="Namespace prefix of language-level namespaces compiled on demand (default: cljs.).",
    )
    p_build.add_argument(
        "--freshness",
        type=str,
        default=None,
        help="When compiled namespaces on disk are reused: exists (default) or mtime.",
    )
    p_build.add_argument(
        "-s",
        "--source-path",
        type=pathlib.Path,
        action="append",
        default=[],
        help="Root containing language-level namespace sources. May be repeated.",
    )
    p_build.add_argument(
        "--compiler",
        type=str,
        default=None,
        help="Compiler factory as 'module:attribute'. Defaults to treating sources as JavaScript.",
    )
    p_build.add_argument(
        "--optimizer-command",
        type=str,
        default="google-closure-compiler",
        help="Closure Compiler command, e.g. 'java -jar compiler.jar'.",
    )
    p_build.add_argument(
        "--strict",
        action="store_true",
        help="Fail when a required namespace is not provided by anything.",
    )
    p_build.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable verbose logging. Pass multiple times for more detail.",
    )
    p_build.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Reduce logging. Pass multiple times to suppress more output.",
    )

    ns = parser.parse_args(argv)
    if ns.command == "build":
        logger: logging.Logger = _configure_logging(verbose=ns.verbose, quiet=ns.quiet)
        try:
            options: BuildOptions = resolve_build_options(
                output_dir=ns.output_dir,
                output_to=ns.output_to,
                optimizations=ns.optimizations,
                flags=["pretty-print"] if ns.pretty_print is True else None,
                externs=ns.externs,
                use_only_custom_externs=ns.use_only_custom_externs,
                language_prefix=ns.language_prefix,
                freshness=ns.freshness,
            )
            context: BuildContext = BuildContext(
                library=runtime_library(ns.library),
                compiler=load_compiler(ns.compiler, ns.source_path),
                optimizer=ClosureCompilerOptimizer(shlex.split(ns.optimizer_command), logger=logger),
                strict=ns.strict,
                logger=logger,
            )
            build(ns.input, options, context=context)
        except (
            OptionsError,
            BuildError,
            CompileError,
            OptimizeError,
            CyclicDependencyError,
            ResolutionError,
            OSError,
        ) as e:
            logger.error(f"closure-build: {e}")
            return 1
        return 0

    raise AssertionError(f"Unhandled command: {ns.command}")
