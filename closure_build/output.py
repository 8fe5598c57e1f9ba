"""Build output.

The result of a build is always a single string of JavaScript. If
``output_to`` is set the string is also written to that file (or printed for
``"-"``).

Optimized builds produce the whole application as that string. Unoptimized
builds copy every artifact into ``output_dir`` (runtime library included) and
produce a Closure deps file instead: one ``goog.addDependency`` line per
non-library artifact, with paths relative to the runtime bootstrap file, so a
page can load each file in its own script tag.
"""

from collections.abc import Iterable, Sequence
import hashlib
import logging
import pathlib

from closure_build.artifact import Artifact, Location
from closure_build.deps import RuntimeLibrary
from closure_build.options import STDOUT, BuildOptions


def path_relative_to(base: pathlib.Path, target: pathlib.Path) -> str:
    """Path to ``target`` relative to the directory containing ``base``.

    :param base: A file; the result is relative to its directory.
    :param target: The file to reach.
    :returns: POSIX relative path.
    """

    base_parts: tuple[str, ...] = base.resolve().parts
    target_parts: tuple[str, ...] = target.resolve().parts
    common: int = 0
    for a, b in zip(base_parts, target_parts):
        if a != b:
            break
        common += 1
    prefix: list[str] = [".."] * (len(base_parts) - common - 1)
    return "/".join([*prefix, *target_parts[common:]])


def _ns_list(names: Iterable[str]) -> str:
    return ", ".join(f"'{n}'" for n in names)


def add_dep_string(base: pathlib.Path, artifact: Artifact) -> str:
    """Return the ``goog.addDependency`` line for an artifact on disk.

    :param base: The runtime bootstrap file in the output directory.
    :param artifact: Artifact with a plain-file location.
    :returns: One manifest line.
    """

    if artifact.location is None or artifact.location.is_archived() is True:
        raise ValueError(f"Artifact is not on disk: {artifact!r}")
    rel: str = path_relative_to(base, artifact.location.path)
    return f'goog.addDependency("{rel}", [{_ns_list(artifact.provides)}], [{_ns_list(artifact.requires)}]);'


def deps_file(base: pathlib.Path, sources: Iterable[Artifact]) -> str:
    """Return a deps file string for a sequence of on-disk artifacts."""

    return "\n".join(add_dep_string(base, s) for s in sources)


def output_path(artifact: Artifact) -> str:
    """Path, relative to the output directory, where an artifact is materialized.

    Library and archived files keep their library/archive path; in-memory
    artifacts are named after a digest of their text.
    """

    if artifact.resource_path is not None:
        return artifact.resource_path
    if artifact.location is not None and artifact.location.member is not None:
        return artifact.location.member
    digest: str = hashlib.sha256(artifact.source().encode("utf-8")).hexdigest()
    return f"{digest[0:16]}.js"


def write_javascript(options: BuildOptions, artifact: Artifact, *, logger: logging.Logger | None = None) -> Artifact:
    """Write an artifact into the output directory unless the file already exists.

    :param options: Build options.
    :param artifact: Artifact to write.
    :param logger: Optional logger.
    :returns: Artifact for the file on disk.
    """

    out_file: pathlib.Path = options.output_dir / output_path(artifact)
    if out_file.exists() is False:
        out_file.parent.mkdir(parents=True, exist_ok=True)
        out_file.write_text(artifact.source(), encoding="utf-8")
        if logger is not None and logger.isEnabledFor(logging.DEBUG) is True:
            logger.debug(f"closure-build: wrote {out_file}")
    return Artifact(
        location=Location(path=out_file),
        provides=artifact.provides,
        requires=artifact.requires,
        library=artifact.library,
        resource_path=artifact.resource_path,
    )


def ensure_on_disk(options: BuildOptions, artifact: Artifact, *, logger: logging.Logger | None = None) -> Artifact:
    """Make sure an artifact exists as a plain file.

    In-memory artifacts, archived files and runtime-library files are written
    to the output directory; other files stay where they are.

    :returns: Artifact pointing at the file on disk.
    """

    location: Location | None = artifact.location
    if location is None or location.is_archived() is True or artifact.library is True:
        return write_javascript(options, artifact, logger=logger)
    return artifact


def output_one_file(options: BuildOptions, js: str) -> str:
    """Deliver the final build string according to ``output_to``.

    :returns: ``js`` unchanged.
    """

    if options.output_to is None:
        return js
    if options.output_to == STDOUT:
        print(js)
        return js
    out_file: pathlib.Path = pathlib.Path(options.output_to)
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(js, encoding="utf-8")
    return js


def output_unoptimized(
    options: BuildOptions,
    sources: Sequence[Artifact],
    *,
    library: RuntimeLibrary,
    logger: logging.Logger | None = None,
) -> str:
    """Write every artifact to disk and produce the deps file.

    :param options: Build options.
    :param sources: Artifacts in load order.
    :param library: Runtime library providing the bootstrap and manifest.
    :param logger: Optional logger.
    :returns: The deps file string.
    """

    if logger is None:
        logger = logging.getLogger("closure_build")

    disk_sources: list[Artifact] = [ensure_on_disk(options, s, logger=logger) for s in sources]
    write_javascript(options, library.artifact(library.manifest_path), logger=logger)

    base: pathlib.Path = options.output_dir / library.bootstrap_path
    app_sources: list[Artifact] = [s for s in disk_sources if s.library is False]
    logger.info(
        f"closure-build: {len(disk_sources)} files in {options.output_dir} "
        f"({len(app_sources)} listed in deps file)"
    )
    return output_one_file(options, deps_file(base, app_sources))
