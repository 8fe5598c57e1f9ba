"""Things that can be compiled into JavaScript artifacts.

:data:`Compilable` is a closed union; :func:`compile_source` handles every
member of it and nothing else.
"""

from dataclasses import dataclass
import logging
import pathlib

from closure_build.artifact import Artifact, Location
from closure_build.compiler import Compiler
from closure_build.options import BuildOptions


@dataclass(frozen=True, slots=True)
class FileSource:
    """A source file or a directory of source files."""

    path: pathlib.Path


@dataclass(frozen=True, slots=True)
class ArchiveSource:
    """A source file inside a zip/jar archive."""

    location: Location


@dataclass(frozen=True, slots=True)
class TextSource:
    """Literal source-language text held in memory."""

    text: str


@dataclass(frozen=True, slots=True)
class FormsSource:
    """A sequence of source-language forms."""

    forms: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ArtifactSource:
    """JavaScript that is already an artifact."""

    artifact: Artifact


Compilable = FileSource | ArchiveSource | TextSource | FormsSource | ArtifactSource


def as_compilable(value: object) -> Compilable:
    """Coerce a loosely typed value into a :data:`Compilable`.

    Strings and paths name files or directories; ``jar:``/``file:`` URIs name
    locations; lists and tuples are forms; artifacts pass through.

    :param value: Value to coerce.
    :returns: Compilable.
    :raises TypeError: If the value has no compilable meaning.
    """

    if isinstance(value, (FileSource, ArchiveSource, TextSource, FormsSource, ArtifactSource)):
        return value
    if isinstance(value, Artifact):
        return ArtifactSource(value)
    if isinstance(value, Location):
        if value.is_archived() is True:
            return ArchiveSource(value)
        return FileSource(value.path)
    if isinstance(value, pathlib.Path):
        return FileSource(value)
    if isinstance(value, str):
        if value.startswith("jar:") is True or value.startswith("file:") is True:
            return as_compilable(Location.from_uri(value))
        return FileSource(pathlib.Path(value))
    if isinstance(value, (list, tuple)):
        return FormsSource(tuple(str(f) for f in value))
    raise TypeError(f"Cannot compile a value of type {type(value).__name__}")


def compile_source(
    source: Compilable,
    options: BuildOptions,
    *,
    compiler: Compiler,
    logger: logging.Logger | None = None,
) -> list[Artifact]:
    """Compile a source into one or more artifacts.

    Disk writes only happen when ``options.output_file`` is set or when a file
    is extracted from an archive.

    :param source: What to compile.
    :param options: Build options.
    :param compiler: Compiler collaborator.
    :param logger: Optional logger.
    :returns: Compiled artifacts; directories yield them in dependency order.
    :raises FileNotFoundError: If a file source does not exist.
    :raises CompileError: If the compiler rejects a unit.
    """

    if logger is None:
        logger = logging.getLogger("closure_build")

    if isinstance(source, ArtifactSource):
        return [source.artifact]

    if isinstance(source, TextSource):
        return [compiler.compile_forms([source.text])]

    if isinstance(source, FormsSource):
        return [compiler.compile_forms(source.forms)]

    if isinstance(source, ArchiveSource):
        out_file: pathlib.Path = archive_file_to_disk(source.location, options.output_dir)
        logger.info(f"closure-build: extracted {source.location.member} to {out_file}")
        return compile_source(FileSource(out_file), options, compiler=compiler, logger=logger)

    if isinstance(source, FileSource):
        if source.path.is_dir() is True:
            logger.info(f"closure-build: compiling directory {source.path}")
            return compiler.compile_tree(source.path, output_dir=options.output_dir)
        if source.path.is_file() is False:
            raise FileNotFoundError(f"Source does not exist: {source.path}")
        target: pathlib.Path | None = None
        if options.output_file is not None:
            target = options.output_dir / options.output_file
        if logger.isEnabledFor(logging.DEBUG) is True:
            logger.debug(f"closure-build: compiling {source.path} (output={target})")
        return [compiler.compile_unit(Location(path=source.path), output_file=target)]

    raise TypeError(f"Unsupported compilable: {source!r}")


def archive_file_to_disk(location: Location, out_dir: pathlib.Path) -> pathlib.Path:
    """Copy a file contained in an archive to disk, keeping its archive path.

    :param location: Archive member location.
    :param out_dir: Destination root.
    :returns: The created file.
    """

    if location.member is None:
        raise ValueError(f"Not an archive location: {location.as_uri()}")
    out_file: pathlib.Path = out_dir / location.member
    content: str = location.read_text()
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(content, encoding="utf-8")
    return out_file
