__path__ = __import__("pkgutil").extend_path(__path__, __name__)  # NOQA: F-821
__title__ = 'tether'
__author__ = 'Eiko Reishin (影皇嶺臣)'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from .conventions import *
from .execution import *
from .faults import *
from .mapping import *
from .model import *
from .roles import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__path__",
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the conventions
__all__ += conventions.__all__  # type: ignore[attr-defined]
# Load the exposed API of the execution
__all__ += execution.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the type mapping
__all__ += mapping.__all__  # type: ignore[attr-defined]
# Load the exposed API of the parsing model
__all__ += model.__all__  # type: ignore[attr-defined]
# Load the exposed API of the roles
__all__ += roles.__all__  # type: ignore[attr-defined]
