"""Primary key generator for models using CuidMixin."""

from cuid2 import Cuid

from repocache.core.constants import CUID_LENGTH

_cuid = Cuid(length=CUID_LENGTH)


def generate_cuid() -> str:
    """Return a new CUID2 identifier of CUID_LENGTH characters."""
    return _cuid.generate()
