"""Read and write NumPy .npy arrays and .npz archives."""

__version__ = "0.1.0"
__all__ = ["header", "npy", "npz", "demo"]