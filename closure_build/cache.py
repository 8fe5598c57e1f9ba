"""Compile-on-demand cache for language-level namespaces.

Language-level namespaces (``cljs.*`` by default) are not described by the
runtime library manifest. They are compiled into the output directory the
first time a build needs them and remembered for the life of the cache, so
repeated builds in one process (a REPL, a watch loop) compile each namespace
once.

A compiled file already present in the output directory is reused without
recompiling. With :attr:`FreshnessPolicy.EXISTS` its existence is the only
check; :attr:`FreshnessPolicy.MTIME` also recompiles when the namespace
source is newer than the compiled file.
"""

from collections.abc import Iterable
import logging
import pathlib
import threading
import time

from closure_build.artifact import Artifact, Location
from closure_build.compilable import as_compilable, compile_source
from closure_build.compiler import CompileError, Compiler
from closure_build.deps import dependency_order
from closure_build.options import BuildOptions, FreshnessPolicy


def namespace_path(namespace: str, extension: str) -> str:
    """Relative path of a namespace's file (``cljs.core`` -> ``cljs/core.js``)."""

    return namespace.replace(".", "/") + extension


class CompileCache:
    """Compiled language-level namespaces, keyed by namespace name.

    Check, compile and insert run under a per-namespace lock, so concurrent
    builds sharing a cache compile a namespace at most once.
    """

    def __init__(self, *, compiler: Compiler, logger: logging.Logger | None = None) -> None:
        self.compiler: Compiler = compiler
        self.logger: logging.Logger = logger if logger is not None else logging.getLogger("closure_build")
        self._entries: dict[str, Artifact] = {}
        self._lock: threading.Lock = threading.Lock()
        self._key_locks: dict[str, threading.Lock] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, namespace: object) -> bool:
        with self._lock:
            return namespace in self._entries

    def get(self, namespace: str) -> Artifact | None:
        with self._lock:
            return self._entries.get(namespace)

    def _key_lock(self, namespace: str) -> threading.Lock:
        with self._lock:
            lock: threading.Lock | None = self._key_locks.get(namespace)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[namespace] = lock
            return lock

    def get_compiled_namespace(self, options: BuildOptions, namespace: str) -> Artifact:
        """Return the compiled artifact for a namespace, compiling it if needed.

        :param options: Build options (output directory, freshness policy).
        :param namespace: Language-level namespace name.
        :returns: Artifact for the compiled file in the output directory.
        :raises CompileError: If the namespace has no source or fails to compile.
        """

        js_relpath: str = namespace_path(namespace, ".js")
        src_relpath: str = namespace_path(namespace, self.compiler.source_extension)
        out_file: pathlib.Path = options.output_dir / js_relpath

        with self._key_lock(namespace):
            fresh: bool = self._is_fresh(options, src_relpath, out_file)
            cached: Artifact | None = self.get(namespace)
            javascript: Artifact
            if fresh is True and cached is not None and _points_at(cached, out_file) is True:
                if self.logger.isEnabledFor(logging.DEBUG) is True:
                    self.logger.debug(f"closure-build: compile cache hit for {namespace}")
                javascript = cached
            elif fresh is True:
                self.logger.info(f"closure-build: reusing compiled {namespace} from {out_file}")
                javascript = Artifact.from_location(Location(path=out_file))
            else:
                javascript = self._compile(options, namespace, src_relpath, js_relpath)

            with self._lock:
                self._entries[namespace] = javascript
            return javascript

    def _is_fresh(self, options: BuildOptions, src_relpath: str, out_file: pathlib.Path) -> bool:
        if out_file.is_file() is False:
            return False
        if options.freshness is FreshnessPolicy.EXISTS:
            return True
        source: Location | None = self.compiler.find_namespace_source(src_relpath)
        if source is None:
            return True
        return source.mtime() <= out_file.stat().st_mtime

    def _compile(self, options: BuildOptions, namespace: str, src_relpath: str, js_relpath: str) -> Artifact:
        source: Location | None = self.compiler.find_namespace_source(src_relpath)
        if source is None:
            raise CompileError(f"No source found for namespace {namespace!r} (looked for {src_relpath})")

        self.logger.info(f"closure-build: compiling {namespace}")
        t0: float = time.perf_counter()
        compiled: list[Artifact] = compile_source(
            as_compilable(source),
            options.with_output_file(js_relpath),
            compiler=self.compiler,
            logger=self.logger,
        )
        t1: float = time.perf_counter()
        if len(compiled) != 1:
            raise CompileError(f"Expected one artifact for {namespace!r}, got {len(compiled)}")
        if self.logger.isEnabledFor(logging.DEBUG) is True:
            self.logger.debug(f"closure-build: compiled {namespace} in {t1 - t0:.2f}s")
        return compiled[0]

    def language_dependencies(self, options: BuildOptions, requires: Iterable[str]) -> list[Artifact]:
        """Compile the language-level closure of some required namespaces.

        Only names starting with ``options.language_prefix`` are considered.

        :param options: Build options.
        :param requires: Required namespace names (any kind).
        :returns: Artifacts for every transitively required language-level
            namespace, in dependency order.
        :raises CompileError: If a namespace cannot be compiled.
        :raises CyclicDependencyError: If the namespaces require each other in a cycle.
        """

        prefix: str = options.language_prefix

        def language_names(names: Iterable[str]) -> list[str]:
            return [n for n in names if n.startswith(prefix) is True]

        queue: list[str] = list(dict.fromkeys(language_names(requires)))
        deps: dict[str, Artifact] = {}
        while len(queue) > 0:
            next_ns: str = queue.pop(0)
            js: Artifact = self.get_compiled_namespace(options, next_ns)
            for required in language_names(js.requires):
                if required not in deps and required not in queue and required != next_ns:
                    queue.append(required)
            deps[next_ns] = js

        return dependency_order(deps.values())


def _points_at(artifact: Artifact, out_file: pathlib.Path) -> bool:
    if artifact.location is None or artifact.location.is_archived() is True:
        return False
    return artifact.location.path.resolve() == out_file.resolve()
