"""depconfuse - detect dependency confusion exposure in JavaScript projects.

A package reference is exposed to dependency confusion when a project uses a
name it does not declare and that name resolves to a public npm package
which an attacker could have published. This package provides:

- Extraction of package references from JavaScript sources (tree-sitter)
  and from free-form text such as READMEs, CI workflows, Dockerfiles and
  shell scripts (pattern families)
- Memoized, concurrency-bounded existence checks against the npm registry
- Classification of each reference against the project's declared set

Public API:
    __version__: Current package version string
    __all__: Exported public symbols

Example usage::

    from depconfuse import __version__
    print(f"depconfuse v{__version__}")
"""

__version__ = "0.1.0"
__author__ = "depconfuse contributors"
__license__ = "MIT"

__all__ = ["__version__", "__author__", "__license__"]
