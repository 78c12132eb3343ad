# qubitsim/backends.py
import logging

logger = logging.getLogger(__name__)

BACKENDS = ("serial", "numba")


def backend(name: str = "serial"):
    """Resolve a kernel module: apply_serial or apply_numba."""
    if name == "serial":
        from . import apply_serial
        return apply_serial
    elif name == "numba":
        try:
            from . import apply_numba
        except ImportError as e:
            raise RuntimeError("Numba backend not available. Did you `pip install numba`?") from e
        logger.debug("using numba backend with %d threads", apply_numba.get_threads())
        return apply_numba
    else:
        raise NotImplementedError(f"Unknown backend: {name}")
