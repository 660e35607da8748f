"""
Vector Math

Normalization, cosine similarity and (de)serialization of embedding vectors.
Invalid input never raises here: normalize returns an empty list and
cosine_similarity returns 0.0, and both log why.
"""

import json
import logging
from typing import Any, List, Optional, Sequence, Union

import numpy as np

log = logging.getLogger(__name__)

EPSILON = 1e-8
UNIT_TOLERANCE = 1e-6

VectorLike = Union[Sequence[float], np.ndarray, str, bytes]


def _is_number(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return False
    return isinstance(value, (int, float, np.integer, np.floating))


def decode_vector(value: Any) -> Optional[np.ndarray]:
    """
    Convert a vector or its JSON serialization into a float64 array.

    Returns:
        1-D numpy array, or None if the value is empty, not a flat list of
        finite numbers, or cannot be decoded
    """
    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except ValueError:
            log.warning("Could not decode serialized vector")
            return None

    try:
        if isinstance(value, np.ndarray):
            if value.ndim != 1 or value.size == 0 or value.dtype.kind not in 'iuf':
                return None
            array = value.astype(np.float64)
        elif isinstance(value, (list, tuple)):
            if not value or not all(_is_number(v) for v in value):
                return None
            array = np.asarray(value, dtype=np.float64)
        else:
            return None
    except (OverflowError, ValueError, TypeError):
        # Integers beyond float range cannot be represented
        log.warning("Vector components out of float range")
        return None

    if not np.all(np.isfinite(array)):
        return None
    return array


def encode_vector(vector: Sequence[float]) -> str:
    """Serialize a vector as a JSON array of floats."""
    return json.dumps([float(v) for v in vector])


def is_valid_vector(value: Any) -> bool:
    return decode_vector(value) is not None


def is_unit_vector(value: Any, tolerance: float = UNIT_TOLERANCE) -> bool:
    """True if value decodes to a vector of length 1 within tolerance."""
    array = decode_vector(value)
    if array is None:
        return False
    return abs(float(np.linalg.norm(array)) - 1.0) <= tolerance


def normalize(vector: VectorLike) -> List[float]:
    """
    Scale a vector to unit length.

    The norm is padded with EPSILON so an all-zero vector maps to zeros
    instead of dividing by zero.

    Returns:
        Normalized components in input order, or [] for invalid input
    """
    array = decode_vector(vector)
    if array is None:
        log.error("Invalid embedding input for normalization")
        return []

    norm = float(np.linalg.norm(array)) + EPSILON
    return (array / norm).tolist()


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """
    Cosine similarity of two unit vectors (their dot product).

    Accepts decoded vectors or their JSON serialization. Returns 0.0 when
    either input is invalid or the dimensions differ; callers must read
    that as "incomparable", not as a similarity score.
    """
    first = decode_vector(a)
    second = decode_vector(b)

    if first is None or second is None:
        log.error("Invalid embedding input for similarity calculation")
        return 0.0

    if first.shape != second.shape:
        log.error(f"Incompatible embedding dimensions: {first.size} vs {second.size}")
        return 0.0

    dot = float(np.dot(first, second))
    return max(-1.0, min(1.0, dot))
