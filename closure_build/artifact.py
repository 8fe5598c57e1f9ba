"""JavaScript artifacts.

An :class:`Artifact` is one unit of JavaScript: where it lives (if anywhere),
which namespaces it provides and requires, and how to get its text. Artifacts
either live in memory, in a plain file, or inside a zip/jar archive; the last
two are described by a :class:`Location`.
"""

from dataclasses import dataclass, field
from collections.abc import Iterable
import pathlib
import re
import time
import urllib.parse
import urllib.request
import zipfile


_ARCHIVE_SEP: str = "!/"

_FUNCTION_LITERAL_RE: re.Pattern[str] = re.compile(r".*=\s*function\(.*\)\s*\{.*")
_NS_STATEMENT_RE: re.Pattern[str] = re.compile(r".*goog\.(provide|require)\((['\"])(.*)\2\)")


@dataclass(frozen=True, slots=True)
class Location:
    """Where an artifact's text lives.

    :ivar path: A file on disk, or the archive holding the file.
    :ivar member: POSIX path inside the archive, ``None`` for plain files.
    """

    path: pathlib.Path
    member: str | None = None

    @classmethod
    def from_uri(cls, uri: str) -> "Location":
        """Parse a ``file:`` or ``jar:file:...!/member`` URI.

        :param uri: Location URI.
        :returns: Parsed location.
        :raises ValueError: If the scheme is not supported.
        """

        if uri.startswith("jar:") is True:
            archive_uri, sep, member = uri[len("jar:") :].partition(_ARCHIVE_SEP)
            if len(sep) == 0 or len(member) == 0:
                raise ValueError(f"Archive URI has no member path: {uri!r}")
            return cls(path=_file_uri_to_path(archive_uri), member=member)
        if uri.startswith("file:") is True:
            return cls(path=_file_uri_to_path(uri))
        raise ValueError(f"Unsupported location URI: {uri!r}")

    def is_archived(self) -> bool:
        """Return ``True`` when the text lives inside an archive."""

        return self.member is not None

    def as_uri(self) -> str:
        """Render this location as a URI."""

        file_uri: str = self.path.resolve().as_uri()
        if self.member is None:
            return file_uri
        return f"jar:{file_uri}{_ARCHIVE_SEP}{self.member}"

    def read_text(self) -> str:
        """Read the UTF-8 text at this location.

        :returns: File contents.
        :raises FileNotFoundError: If the file or archive member is missing.
        """

        if self.member is None:
            return self.path.read_text(encoding="utf-8")
        with zipfile.ZipFile(self.path, "r") as zf:
            try:
                data: bytes = zf.read(self.member)
            except KeyError as e:
                raise FileNotFoundError(f"{self.member} not found in archive {self.path}") from e
        return data.decode("utf-8")

    def mtime(self) -> float:
        """Modification time in seconds since the epoch.

        Archive members report the timestamp stored in the archive.
        """

        if self.member is None:
            return self.path.stat().st_mtime
        with zipfile.ZipFile(self.path, "r") as zf:
            try:
                info: zipfile.ZipInfo = zf.getinfo(self.member)
            except KeyError as e:
                raise FileNotFoundError(f"{self.member} not found in archive {self.path}") from e
        return time.mktime(info.date_time + (0, 0, -1))


def _file_uri_to_path(uri: str) -> pathlib.Path:
    parsed: urllib.parse.ParseResult = urllib.parse.urlparse(uri)
    if parsed.scheme != "file":
        raise ValueError(f"Expected a file: URI, got {uri!r}")
    return pathlib.Path(urllib.request.url2pathname(parsed.path))


def parse_js_namespaces(lines: Iterable[str]) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Parse ``goog.provide`` / ``goog.require`` statements from JavaScript lines.

    Lines are split on ``;`` and scanning stops at the first function literal
    assignment, so statements appearing after it are ignored. This is a
    textual scan, not a parse; compiled units should report their namespaces
    directly instead.

    :param lines: Source lines.
    :returns: ``(provides, requires)`` in source order.
    """

    provides: list[str] = []
    requires: list[str] = []
    for line in lines:
        for statement in line.split(";"):
            stmt: str = statement.strip()
            if _FUNCTION_LITERAL_RE.fullmatch(stmt) is not None:
                return tuple(provides), tuple(requires)
            m = _NS_STATEMENT_RE.fullmatch(stmt)
            if m is None:
                continue
            if m.group(1) == "require":
                requires.append(m.group(3))
            else:
                provides.append(m.group(3))
    return tuple(provides), tuple(requires)


@dataclass(frozen=True, slots=True)
class Artifact:
    """One unit of JavaScript.

    :ivar location: Where the text lives, ``None`` for in-memory artifacts.
    :ivar provides: Namespaces defined by this artifact.
    :ivar requires: Namespaces this artifact depends on.
    :ivar text: In-memory text; required when ``location`` is ``None``.
    :ivar library: ``True`` for runtime-library files.
    :ivar resource_path: Path relative to the library or archive root, used
        when the artifact is copied into the output directory.
    """

    location: Location | None
    provides: tuple[str, ...] = ()
    requires: tuple[str, ...] = ()
    text: str | None = field(default=None, repr=False)
    library: bool = False
    resource_path: str | None = None

    def __post_init__(self) -> None:
        if self.location is None and self.text is None:
            raise ValueError("An in-memory artifact must carry its text.")

    @property
    def file(self) -> str | None:
        """Identity of the artifact's file (its URI), ``None`` in memory."""

        if self.location is None:
            return None
        return self.location.as_uri()

    def source(self) -> str:
        """Return the JavaScript text, reading it from ``location`` if needed."""

        if self.text is not None:
            return self.text
        if self.location is None:
            raise ValueError("An in-memory artifact must carry its text.")
        return self.location.read_text()

    @classmethod
    def from_text(cls, text: str, *, location: Location | None = None) -> "Artifact":
        """Build an artifact from JavaScript text, parsing its namespaces.

        :param text: JavaScript source.
        :param location: Optional location the text was read from.
        :returns: Artifact.
        """

        provides, requires = parse_js_namespaces(text.splitlines())
        return cls(location=location, provides=provides, requires=requires, text=text)

    @classmethod
    def from_location(cls, location: Location) -> "Artifact":
        """Read a file (or archive member) and parse its namespaces.

        The text is not retained; :meth:`source` re-reads it on demand.

        :param location: File location.
        :returns: Artifact.
        """

        provides, requires = parse_js_namespaces(location.read_text().splitlines())
        return cls(location=location, provides=provides, requires=requires)


def javascript_file(
    location: Location,
    provides: Iterable[str],
    requires: Iterable[str],
    *,
    library: bool = False,
    resource_path: str | None = None,
) -> Artifact:
    """Build an artifact for a file whose namespaces are already known."""

    return Artifact(
        location=location,
        provides=tuple(str(p) for p in provides),
        requires=tuple(str(r) for r in requires),
        library=library,
        resource_path=resource_path,
    )
