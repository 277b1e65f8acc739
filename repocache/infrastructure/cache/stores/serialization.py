"""Value (de)serialization shared by stores.

Values are pickled so ORM records, pages and plain results survive the
round trip and every hit returns an independent copy.
"""

import pickle
from typing import Any


def serialize(value: Any) -> bytes:
    """Return the stored form of value."""
    return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)


def deserialize(payload: bytes) -> Any:
    """Return the value stored as payload."""
    return pickle.loads(payload)  # noqa: S301 - payloads are written by this process family only
