"""closure-build.

Compiles sources and every namespace they depend on (runtime library files
and language-level namespaces compiled on demand) into runnable JavaScript:
either one optimized bundle or a directory of files plus a Closure deps file.
"""

__all__: list[str] = ["__version__"]

__version__: str = "0.1.0"
