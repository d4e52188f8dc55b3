"""
Detecting the library's own version, as installed.

The version is determined only once at startup when the code is loaded.
If the package is not installed (e.g. imported from a source checkout),
the version is unknown.
"""
import importlib.metadata

version: str | None = None

try:
    name, *_ = __name__.split('.')  # usually "korc", unless renamed/forked.
    version = importlib.metadata.version(name)
except importlib.metadata.PackageNotFoundError:
    pass
