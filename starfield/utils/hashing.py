"""SHA-256 hashing for run provenance.

Provides:
    - sha256_file(): Hash file contents (rendered frames, videos)
    - sha256_array(): Hash array values (frames held in memory)
    - hash_dict(): Hash a config dictionary (sorted keys)

Used by the run manifest:
    config_sha256: identifies the exact geometry/seed that produced a run
    frames[i].sha256: lets two runs be compared frame by frame

Deterministic hashing:
    - Arrays hashed via dtype + shape + C-contiguous bytes
    - Files read in chunks (1 MB default)
    - Results are hex strings (64 chars)
"""

import hashlib
import json
from pathlib import Path
from typing import Union

import numpy as np


def sha256_file(path: Union[str, Path], chunk_size: int = 1 << 20) -> str:
    """Compute SHA-256 hash of file contents.

    Parameters
    ----------
    path : Union[str, Path]
        File path
    chunk_size : int
        Read chunk size in bytes, default 1 MB

    Returns
    -------
    str
        SHA-256 hex digest (64 characters)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    sha256 = hashlib.sha256()
    with open(path, 'rb') as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            sha256.update(chunk)
    return sha256.hexdigest()


def sha256_array(a: np.ndarray) -> str:
    """Compute SHA-256 hash of array values.

    Parameters
    ----------
    a : np.ndarray
        Array to hash (any shape, dtype)

    Returns
    -------
    str
        SHA-256 hex digest (64 characters)

    Notes
    -----
    Dtype and shape are part of the digest: a (2, 6) and a (3, 4) array with
    the same bytes hash differently.
    """
    sha256 = hashlib.sha256()
    sha256.update(str(a.dtype).encode('utf-8'))
    sha256.update(repr(a.shape).encode('utf-8'))
    sha256.update(np.ascontiguousarray(a).tobytes())
    return sha256.hexdigest()


def sha256_string(s: str) -> str:
    """Compute SHA-256 hash of a UTF-8 string."""
    return hashlib.sha256(s.encode('utf-8')).hexdigest()


def hash_dict(d: dict) -> str:
    """Compute SHA-256 hash of a JSON-serializable dictionary (sorted keys).

    Examples
    --------
    >>> cfg_hash = hash_dict(config.model_dump())
    """
    json_str = json.dumps(d, sort_keys=True)
    return sha256_string(json_str)
