"""JavaScript optimizer collaborators.

:class:`ClosureCompilerOptimizer` drives the Google Closure Compiler command
line: every artifact is written to a temporary directory, the compiler is run
once over all of them in order, and its stdout is the bundle.
"""

from dataclasses import dataclass
from collections.abc import Sequence
import logging
import pathlib
import re
import subprocess
import tempfile
import typing

from closure_build.artifact import Artifact
from closure_build.options import BuildOptions, OptimizationLevel


DEFAULT_JAVASCRIPT_NAME: str = "cljs/user.js"

_COMPILATION_LEVELS: dict[OptimizationLevel, str] = {
    OptimizationLevel.WHITESPACE: "WHITESPACE_ONLY",
    OptimizationLevel.SIMPLE: "SIMPLE_OPTIMIZATIONS",
    OptimizationLevel.ADVANCED: "ADVANCED_OPTIMIZATIONS",
}

_DIAGNOSTIC_RE: re.Pattern[str] = re.compile(r".*\b(ERROR|WARNING) - .*")


@dataclass(frozen=True, slots=True)
class OptimizeResult:
    """Outcome of one optimizer run.

    :ivar success: ``True`` when the optimizer produced a bundle.
    :ivar text: The bundle, empty on failure.
    :ivar errors: Error messages.
    :ivar warnings: Warning messages.
    """

    success: bool
    text: str
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


class OptimizeError(RuntimeError):
    """Raised when the optimizer reports errors.

    :ivar errors: Every error message.
    :ivar warnings: Every warning message.
    """

    def __init__(self, errors: Sequence[str], warnings: Sequence[str] = ()) -> None:
        self.errors: tuple[str, ...] = tuple(errors)
        self.warnings: tuple[str, ...] = tuple(warnings)
        lines: list[str] = [f"Optimization failed with {len(self.errors)} error(s):"]
        lines.extend(f"ERROR: {e}" for e in self.errors)
        lines.extend(f"WARNING: {w}" for w in self.warnings)
        super().__init__("\n".join(lines))


class Optimizer(typing.Protocol):
    """Merges and rewrites many artifacts into one JavaScript string."""

    def optimize(self, options: BuildOptions, artifacts: Sequence[Artifact]) -> OptimizeResult: ...


def javascript_name(artifact: Artifact) -> str:
    """Name an artifact for the optimizer's diagnostics.

    Files use their path, in-memory artifacts their first provided namespace.
    """

    if artifact.location is not None:
        if artifact.location.member is not None:
            return artifact.location.member
        return artifact.location.path.as_posix()
    if len(artifact.provides) > 0:
        return artifact.provides[0]
    return DEFAULT_JAVASCRIPT_NAME


def staged_name(name: str) -> pathlib.PurePosixPath:
    """Turn an artifact name into a relative path that stays below its staging directory.

    Anchors, ``.`` and ``..`` segments are dropped.
    """

    parts: list[str] = [p for p in pathlib.PurePosixPath(name).parts if p not in ("/", ".", "..")]
    if len(parts) == 0:
        return pathlib.PurePosixPath(DEFAULT_JAVASCRIPT_NAME)
    return pathlib.PurePosixPath(*parts)


class ClosureCompilerOptimizer:
    """Run the Closure Compiler command line.

    :ivar command: Command prefix, e.g. ``["google-closure-compiler"]`` or
        ``["java", "-jar", "compiler.jar"]``.
    """

    def __init__(self, command: Sequence[str] = ("google-closure-compiler",), *, logger: logging.Logger | None = None) -> None:
        self.command: list[str] = list(command)
        self.logger: logging.Logger = logger if logger is not None else logging.getLogger("closure_build")

    def arguments(self, options: BuildOptions, inputs: Sequence[pathlib.Path]) -> list[str]:
        """Build the compiler arguments for some input files.

        :param options: Build options; ``optimizations`` must be set.
        :param inputs: Input files in load order.
        :returns: Arguments after the command prefix.
        """

        if options.optimizations is None:
            raise ValueError("The optimizer needs an optimization level.")

        args: list[str] = ["--compilation_level", _COMPILATION_LEVELS[options.optimizations]]
        if "pretty-print" in options.flags:
            args.extend(["--formatting", "PRETTY_PRINT"])
        if options.use_only_custom_externs is True:
            args.extend(["--env", "CUSTOM"])
        for extern in options.externs:
            args.extend(["--externs", str(extern)])
        for p in inputs:
            args.extend(["--js", str(p)])
        return args

    def optimize(self, options: BuildOptions, artifacts: Sequence[Artifact]) -> OptimizeResult:
        with tempfile.TemporaryDirectory(prefix="closure_build_optimize_") as td:
            root: pathlib.Path = pathlib.Path(td)
            inputs: list[pathlib.Path] = []
            for i, artifact in enumerate(artifacts):
                input_path: pathlib.Path = root / f"{i:05d}" / staged_name(javascript_name(artifact))
                input_path.parent.mkdir(parents=True, exist_ok=True)
                input_path.write_text(artifact.source(), encoding="utf-8")
                inputs.append(input_path)

            cmd: list[str] = [*self.command, *self.arguments(options, inputs)]
            if self.logger.isEnabledFor(logging.DEBUG) is True:
                self.logger.debug(f"closure-build: running optimizer: {' '.join(self.command)} ({len(inputs)} inputs)")
            try:
                proc = subprocess.run(cmd, check=False, capture_output=True, text=True)
            except FileNotFoundError as e:
                raise OSError(f"Optimizer command not found: {self.command[0]}") from e

        errors, warnings = parse_diagnostics(proc.stderr)
        if proc.returncode != 0:
            if len(errors) == 0:
                errors = [f"optimizer exited with status {proc.returncode}: {proc.stderr.strip()}"]
            return OptimizeResult(success=False, text="", errors=tuple(errors), warnings=tuple(warnings))
        return OptimizeResult(success=True, text=proc.stdout, errors=tuple(errors), warnings=tuple(warnings))


def parse_diagnostics(stderr: str) -> tuple[list[str], list[str]]:
    """Split Closure Compiler stderr into error and warning messages."""

    errors: list[str] = []
    warnings: list[str] = []
    for line in stderr.splitlines():
        m = _DIAGNOSTIC_RE.fullmatch(line.strip())
        if m is None:
            continue
        if m.group(1) == "ERROR":
            errors.append(line.strip())
        else:
            warnings.append(line.strip())
    return errors, warnings
