"""Taichi runtime for the grid neighbour search.

The kernels compare bond lengths in float64, so the runtime defaults to
the CPU backend with float64 and is initialized at most once per process.
"""

import enum
import logging
from typing import Optional

import taichi as ti

logger = logging.getLogger(__name__)


class Backend(enum.Enum):
    """Taichi backends with float64 support."""
    CPU = "cpu"
    CUDA = "cuda"
    AUTO = "auto"


class Precision(enum.Enum):
    """Default floating point type."""
    F32 = "f32"
    F64 = "f64"


# GPU first, CPU last
_AUTO_ORDER = (Backend.CUDA, Backend.CPU)

_initialized = False
_active_backend: Optional[Backend] = None
_active_precision: Optional[Precision] = None


def _status(already: bool) -> dict:
    return {
        "backend": _active_backend.value,
        "precision": _active_precision.value,
        "already_initialized": already,
    }


def _arch(backend: Backend):
    return {
        Backend.CPU: ti.cpu,
        Backend.CUDA: ti.cuda,
    }[backend]


def _start(backend: Backend, precision: Precision):
    ti.init(arch=_arch(backend), default_fp=ti.f64 if precision == Precision.F64 else ti.f32)


def init(backend: Backend = Backend.CPU, precision: Precision = Precision.F64) -> dict:
    """Start Taichi once; later calls only report the active settings.

    With ``Backend.AUTO`` CUDA is tried first and the CPU is the fallback.

    Args:
        backend: Backend to start
        precision: Default floating point type of Taichi fields

    Returns:
        ``{"backend", "precision", "already_initialized"}``
    """
    global _initialized, _active_backend, _active_precision

    if _initialized:
        if backend not in (Backend.AUTO, _active_backend) or precision != _active_precision:
            logger.debug(
                f"Taichi already running on {_active_backend.value}/{_active_precision.value}, "
                f"ignoring request for {backend.value}/{precision.value}"
            )
        return _status(True)

    candidates = _AUTO_ORDER if backend == Backend.AUTO else (backend,)
    for candidate in candidates:
        try:
            _start(candidate, precision)
        except Exception as e:
            if candidate == candidates[-1]:
                raise
            logger.debug(f"Taichi backend {candidate.value} unavailable: {e}")
            continue
        _active_backend = candidate
        break

    _active_precision = precision
    _initialized = True
    logger.info(f"Taichi runtime: backend={_active_backend.value}, precision={precision.value}")
    return _status(False)


def ensure_initialized() -> dict:
    """Start with the defaults unless the caller already did."""
    return init()


def get_backend() -> Optional[Backend]:
    return _active_backend


def get_precision() -> Optional[Precision]:
    return _active_precision


def is_initialized() -> bool:
    return _initialized


def reset():
    """Forget the module state so the next init calls ti.init again (tests)."""
    global _initialized, _active_backend, _active_precision
    _initialized = False
    _active_backend = None
    _active_precision = None
