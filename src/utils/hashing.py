"""SHA-256 digests for render provenance.

Every saved image is logged with the digest of its pixels and of the config
that produced it, so two runs can be compared without diffing PNGs. Tests use
the same digests for determinism checks.
"""

import hashlib
import json

import numpy as np


def sha256_array(a: np.ndarray) -> str:
    """Hex digest of an array's dtype, shape and values.

    Parameters
    ----------
    a : np.ndarray
        Any shape or dtype; non-contiguous views hash like their copies

    Returns
    -------
    str
        64-character hex digest

    Notes
    -----
    A (2, 8) and an (8, 2) array holding the same bytes hash differently.
    """
    a = np.ascontiguousarray(a)
    h = hashlib.sha256(f"{a.dtype.str}{a.shape}".encode('utf-8'))
    h.update(a.tobytes())
    return h.hexdigest()


def hash_dict(d: dict) -> str:
    """Hex digest of a JSON-serializable mapping, independent of key order."""
    canonical = json.dumps(d, sort_keys=True, separators=(',', ':'))
    return hashlib.sha256(canonical.encode('utf-8')).hexdigest()
