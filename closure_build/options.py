"""Build option resolution.

This module is intentionally small:

- It accepts loosely typed user values (strings from the command line, or
  Python values from an embedding program).
- It produces one frozen :class:`BuildOptions` that the rest of the build reads.
"""

from dataclasses import dataclass, field, replace
import enum
import pathlib


class OptionsError(ValueError):
    """Raised when build options cannot be resolved."""


class OptimizationLevel(enum.Enum):
    """Optimizer compilation levels."""

    WHITESPACE = "whitespace"
    SIMPLE = "simple"
    ADVANCED = "advanced"


class FreshnessPolicy(enum.Enum):
    """How the compile cache decides that a compiled file on disk is usable.

    ``EXISTS`` trusts any existing output file. ``MTIME`` recompiles when the
    namespace source is newer than the output file.
    """

    EXISTS = "exists"
    MTIME = "mtime"


KNOWN_FLAGS: frozenset[str] = frozenset({"pretty-print"})

DEFAULT_OUTPUT_DIR: str = "out"
DEFAULT_LANGUAGE_PREFIX: str = "cljs."
STDOUT: str = "-"


@dataclass(frozen=True, slots=True)
class BuildOptions:
    """Build configuration.

    :ivar output_dir: Working directory for every file the build writes.
    :ivar output_to: Destination of the final string: a path, ``"-"`` for
        stdout, or ``None`` to only return it.
    :ivar optimizations: Optimization level, ``None`` selects unoptimized output.
    :ivar flags: Cosmetic optimizer flags (e.g. ``pretty-print``).
    :ivar externs: Extra extern files for the optimizer.
    :ivar use_only_custom_externs: Drop the optimizer's default externs.
    :ivar language_prefix: Namespace prefix of language-level namespaces.
    :ivar freshness: Compile cache freshness policy.
    :ivar output_file: Output file (relative to ``output_dir``) for a single compile.
    """

    output_dir: pathlib.Path = pathlib.Path(DEFAULT_OUTPUT_DIR)
    output_to: pathlib.Path | str | None = None
    optimizations: OptimizationLevel | None = None
    flags: frozenset[str] = field(default_factory=frozenset)
    externs: tuple[pathlib.Path, ...] = ()
    use_only_custom_externs: bool = False
    language_prefix: str = DEFAULT_LANGUAGE_PREFIX
    freshness: FreshnessPolicy = FreshnessPolicy.EXISTS
    output_file: str | None = None

    @property
    def optimized(self) -> bool:
        """``True`` when bundle mode is selected."""

        return self.optimizations is not None

    def with_output_file(self, output_file: str | None) -> "BuildOptions":
        """Return a copy of these options targeting a single output file.

        :param output_file: Path relative to ``output_dir``.
        :returns: Updated options.
        """

        return replace(self, output_file=output_file)


def resolve_build_options(
    *,
    output_dir: str | pathlib.Path | None = None,
    output_to: str | pathlib.Path | None = None,
    optimizations: str | OptimizationLevel | None = None,
    flags: list[str] | set[str] | frozenset[str] | tuple[str, ...] | None = None,
    externs: list[str | pathlib.Path] | tuple[str | pathlib.Path, ...] | None = None,
    use_only_custom_externs: bool = False,
    language_prefix: str | None = None,
    freshness: str | FreshnessPolicy | None = None,
) -> BuildOptions:
    """Resolve user-supplied build settings into :class:`~BuildOptions`.

    :param output_dir: Working directory. Defaults to ``out``.
    :param output_to: Final output destination, ``"-"`` for stdout.
    :param optimizations: ``none``, ``whitespace``, ``simple`` or ``advanced``.
    :param flags: Cosmetic flags.
    :param externs: Extra extern files.
    :param use_only_custom_externs: Drop the default externs.
    :param language_prefix: Language-level namespace prefix. Defaults to ``cljs.``.
    :param freshness: ``exists`` or ``mtime``.
    :returns: Resolved options.
    :raises OptionsError: If any value is invalid.
    """

    out_dir: pathlib.Path = pathlib.Path(output_dir) if output_dir is not None else pathlib.Path(DEFAULT_OUTPUT_DIR)
    if len(str(out_dir)) == 0:
        raise OptionsError("output_dir must not be empty.")

    dest: pathlib.Path | str | None
    if output_to is None or output_to == STDOUT:
        dest = output_to
    else:
        dest = pathlib.Path(output_to)

    prefix: str = language_prefix if language_prefix is not None else DEFAULT_LANGUAGE_PREFIX
    if len(prefix) == 0:
        raise OptionsError("language_prefix must not be empty.")

    extern_paths: tuple[pathlib.Path, ...] = tuple(pathlib.Path(p) for p in (externs or ()))
    if use_only_custom_externs is True and len(extern_paths) == 0:
        raise OptionsError("use_only_custom_externs requires at least one extern file.")

    return BuildOptions(
        output_dir=out_dir,
        output_to=dest,
        optimizations=_resolve_optimizations(optimizations),
        flags=_resolve_flags(flags),
        externs=extern_paths,
        use_only_custom_externs=use_only_custom_externs,
        language_prefix=prefix,
        freshness=_resolve_freshness(freshness),
    )


def _resolve_optimizations(optimizations: str | OptimizationLevel | None) -> OptimizationLevel | None:
    """Resolve the optimization level.

    :param optimizations: Level name, enum member or ``None``.
    :returns: Level, or ``None`` for unoptimized output.
    :raises OptionsError: If the level is unknown.
    """

    if optimizations is None or isinstance(optimizations, OptimizationLevel):
        return optimizations

    name: str = optimizations.strip().lower()
    if name == "none":
        return None
    try:
        return OptimizationLevel(name)
    except ValueError as e:
        choices: str = ", ".join(["none", *(lvl.value for lvl in OptimizationLevel)])
        raise OptionsError(f"Invalid optimizations {optimizations!r}; expected one of: {choices}.") from e


def _resolve_flags(flags: list[str] | set[str] | frozenset[str] | tuple[str, ...] | None) -> frozenset[str]:
    """Normalize and validate cosmetic flags.

    :param flags: Flag names; a leading ``:`` and underscores are tolerated.
    :returns: Normalized flag set.
    :raises OptionsError: If a flag is unknown.
    """

    if flags is None:
        return frozenset()

    normalized: set[str] = set()
    for flag in flags:
        name: str = flag.lstrip(":").replace("_", "-").lower()
        if name not in KNOWN_FLAGS:
            raise OptionsError(f"Unknown flag {flag!r}; expected one of: {', '.join(sorted(KNOWN_FLAGS))}.")
        normalized.add(name)
    return frozenset(normalized)


def _resolve_freshness(freshness: str | FreshnessPolicy | None) -> FreshnessPolicy:
    """Resolve the compile cache freshness policy.

    :param freshness: Policy name, enum member or ``None``.
    :returns: Policy (``EXISTS`` by default).
    :raises OptionsError: If the policy is unknown.
    """

    if freshness is None:
        return FreshnessPolicy.EXISTS
    if isinstance(freshness, FreshnessPolicy):
        return freshness
    try:
        return FreshnessPolicy(freshness.strip().lower())
    except ValueError as e:
        raise OptionsError(f"Invalid freshness policy {freshness!r}; expected 'exists' or 'mtime'.") from e
