"""Demonstrations that write, append and read back ``.npy`` and ``.npz`` files."""

from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np

from .npy import NpyArray, npy_load, npy_save, npy_save_matrix
from .npz import npz_load, npz_save

NX = 128
NY = 64
NZ = 32
_RAND_MAX = 2**31 - 1


def _check(condition: bool, message: str) -> None:
    if not condition:
        raise RuntimeError(message)


def run_array_demo(directory=".") -> dict[str, NpyArray]:
    """Save, append and reload arrays; return the contents of the ``.npz`` file."""
    directory = Path(directory)
    rng = np.random.default_rng(0)
    count = NX * NY * NZ
    real = rng.integers(0, _RAND_MAX, size=count)
    imag = rng.integers(0, _RAND_MAX, size=count)
    data = (real + 1j * imag).astype(np.complex128)
    shape = (NZ, NY, NX)

    npy_path = directory / "arr1.npy"
    npy_save(npy_path, data, shape, "w")
    arr = npy_load(npy_path)
    _check(arr.word_size == data.itemsize, "loaded word size differs")
    _check(arr.shape == shape, "loaded shape differs")
    _check(np.array_equal(arr.as_array(np.complex128).reshape(-1), data), "loaded data differs")

    npy_save(npy_path, data, shape, "a")

    my_var1 = np.float64(1.2)
    my_var2 = np.int8(ord("a"))
    npz_path = directory / "out.npz"
    npz_save(npz_path, "myVar1", my_var1, (1,), "w")
    npz_save(npz_path, "myVar2", my_var2, (1,), "a")
    npz_save(npz_path, "arr1", data, shape, "a")

    arr2 = npz_load(npz_path, "arr1")
    _check(arr2.shape == shape, "npz array shape differs")

    my_npz = npz_load(npz_path)
    arr_mv1 = my_npz["myVar1"]
    _check(arr_mv1.shape == (1,), "myVar1 shape differs")
    _check(arr_mv1.as_vec(np.float64)[0] == my_var1, "myVar1 value differs")
    return my_npz


def run_matrix_demo(directory=".") -> list[Path]:
    """Save small matrices in column- and row-major layouts; return the paths written."""
    directory = Path(directory)
    written = []

    mat = np.array([[1, 2, 3], [3, 4, 5]], dtype=np.float32, order="F")
    print(mat)
    written.append(directory / "example2.npy")
    npy_save_matrix(written[-1], mat)

    mat = np.array([[1, 2], [3, 4]], dtype=np.float32, order="F")
    print(mat)
    written.append(directory / "example21.npy")
    npy_save_matrix(written[-1], mat)

    mat = np.array([[1, 2], [3, 4]], dtype=np.float32, order="C")
    print(mat)
    written.append(directory / "example22.npy")
    npy_save_matrix(written[-1], mat)

    return written


def main(argv=None) -> int:
    """Run both demonstrations in the given directory."""
    parser = argparse.ArgumentParser(description="Write and read back sample npy/npz files.")
    parser.add_argument("directory", nargs="?", default=".", help="where to write the files")
    args = parser.parse_args(argv)
    directory = Path(args.directory)
    directory.mkdir(parents=True, exist_ok=True)
    run_array_demo(directory)
    run_matrix_demo(directory)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())