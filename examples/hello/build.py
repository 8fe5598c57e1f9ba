import logging
import pathlib
import sys

from closure_build.builder import BuildContext, build
from closure_build.compiler import PassthroughCompiler
from closure_build.deps import runtime_library
from closure_build.optimizer import ClosureCompilerOptimizer
from closure_build.options import BuildOptions, resolve_build_options


def main() -> None:
    """Build the hello example against a Closure Library checkout.

    Usage: python build.py /path/to/closure-library [simple|advanced]
    """

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    here: pathlib.Path = pathlib.Path(__file__).parent
    library_root: pathlib.Path = pathlib.Path(sys.argv[1])
    level: str = sys.argv[2] if len(sys.argv) > 2 else "none"

    context: BuildContext = BuildContext(
        library=runtime_library(library_root),
        compiler=PassthroughCompiler([here / "src"]),
        optimizer=ClosureCompilerOptimizer(),
    )
    options: BuildOptions = resolve_build_options(
        output_dir=here / "out",
        output_to=here / "hello.js",
        optimizations=level,
    )
    build(here / "src", options, context=context)


if __name__ == "__main__":
    main()
