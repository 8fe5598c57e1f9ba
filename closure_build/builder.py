"""Build orchestration.

build = compile -> add dependencies -> optimize | write unoptimized -> output

- :func:`add_dependencies` expands compiled artifacts into the full list the
  application needs: runtime library files, then compiled language-level
  namespaces, then the inputs themselves.
- :func:`build` runs the whole pipeline and returns one string of
  JavaScript: the optimized bundle, or the deps file of an unoptimized build.
"""

from dataclasses import dataclass, field
import logging
import time

from closure_build.artifact import Artifact
from closure_build.cache import CompileCache
from closure_build.compilable import as_compilable, compile_source
from closure_build.compiler import Compiler
from closure_build.deps import RuntimeLibrary
from closure_build.optimizer import OptimizeError, OptimizeResult, Optimizer
from closure_build.options import BuildOptions
from closure_build.output import output_one_file, output_unoptimized


class BuildError(RuntimeError):
    """Raised when a build cannot be carried out as configured."""


@dataclass(slots=True)
class BuildContext:
    """Collaborators and caches shared by the builds of one session.

    Reusing a context across builds keeps the runtime manifest index and the
    compile cache warm.

    :ivar library: Runtime library.
    :ivar compiler: Source-language compiler.
    :ivar optimizer: Optimizer, required for optimized builds.
    :ivar cache: Compile cache; created from ``compiler`` when omitted.
    :ivar strict: Fail on required namespaces nothing provides.
    :ivar logger: Logger for build progress.
    """

    library: RuntimeLibrary
    compiler: Compiler
    optimizer: Optimizer | None = None
    cache: CompileCache | None = None
    strict: bool = False
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("closure_build"))

    def __post_init__(self) -> None:
        if self.cache is None:
            self.cache = CompileCache(compiler=self.compiler, logger=self.logger)

    @property
    def compile_cache(self) -> CompileCache:
        if self.cache is None:
            raise BuildError("The build context has no compile cache.")
        return self.cache


def add_dependencies(context: BuildContext, options: BuildOptions, *inputs: Artifact) -> list[Artifact]:
    """Add every dependency of some artifacts, in load order.

    :param context: Build context.
    :param options: Build options.
    :param inputs: Artifacts in dependency order.
    :returns: Runtime library artifacts, then language-level artifacts, then ``inputs``.
    :raises CompileError: If a language-level namespace cannot be compiled.
    :raises CyclicDependencyError: If namespaces require each other in a cycle.
    :raises ResolutionError: In strict mode, if a namespace is provided by nothing.
    """

    requires: list[str] = [r for js in inputs for r in js.requires]
    required_lang: list[Artifact] = context.compile_cache.language_dependencies(options, requires)

    provided: set[str] = {p for js in (*inputs, *required_lang) for p in js.provides}
    runtime_requires: list[str] = [
        r
        for r in [*(r for js in required_lang for r in js.requires), *requires]
        if r not in provided and r.startswith(options.language_prefix) is False
    ]
    required: list[str] = context.library.dependencies(runtime_requires, strict=context.strict)

    if context.logger.isEnabledFor(logging.DEBUG) is True:
        context.logger.debug(f"closure-build: runtime files={required}")
    context.logger.info(
        f"closure-build: resolved {len(required)} runtime files and {len(required_lang)} compiled namespaces "
        f"for {len(inputs)} inputs"
    )
    return [
        *(context.library.artifact(f) for f in required),
        *required_lang,
        *inputs,
    ]


def optimize(context: BuildContext, options: BuildOptions, sources: list[Artifact]) -> str:
    """Run the optimizer over the full artifact list.

    Warnings are logged. Errors are logged and raised.

    :returns: The optimized JavaScript.
    :raises BuildError: If the context has no optimizer or ``options`` no
        optimization level.
    :raises OptimizeError: If the optimizer reports errors.
    """

    if context.optimizer is None:
        raise BuildError("Optimizations were requested but no optimizer is configured.")
    if options.optimizations is None:
        raise BuildError("Optimizing needs an optimization level.")

    context.logger.info(f"closure-build: optimizing {len(sources)} files ({options.optimizations.value})")
    t0: float = time.perf_counter()
    result: OptimizeResult = context.optimizer.optimize(options, sources)
    t1: float = time.perf_counter()

    for warning in result.warnings:
        context.logger.warning(f"WARNING: {warning}")
    if result.success is False:
        for error in result.errors:
            context.logger.error(f"ERROR: {error}")
        raise OptimizeError(result.errors, result.warnings)

    context.logger.info(f"closure-build: optimized in {t1 - t0:.2f}s ({len(result.text)} chars)")
    return result.text


def build(source: object, options: BuildOptions, *, context: BuildContext) -> str:
    """Produce runnable JavaScript from something compilable.

    :param source: A :data:`~closure_build.compilable.Compilable`, or a value
        :func:`~closure_build.compilable.as_compilable` accepts.
    :param options: Build options.
    :param context: Build context.
    :returns: The optimized bundle, or the deps file of an unoptimized build.
    """

    logger: logging.Logger = context.logger
    t_total0: float = time.perf_counter()
    logger.info(f"closure-build: output_dir={options.output_dir}")
    if options.output_to is not None:
        logger.info(f"closure-build: output_to={options.output_to}")

    compiled: list[Artifact] = compile_source(
        as_compilable(source),
        options,
        compiler=context.compiler,
        logger=logger,
    )
    t_compile1: float = time.perf_counter()
    logger.info(f"closure-build: compiled {len(compiled)} inputs in {t_compile1 - t_total0:.2f}s")

    js_sources: list[Artifact] = add_dependencies(context, options, *compiled)

    js: str
    if options.optimized is True:
        js = output_one_file(options, optimize(context, options, js_sources))
    else:
        js = output_unoptimized(options, js_sources, library=context.library, logger=logger)

    t_total1: float = time.perf_counter()
    logger.info(f"closure-build: done in {t_total1 - t_total0:.2f}s")
    return js
