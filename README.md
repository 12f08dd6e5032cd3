# npyfile

Read and write NumPy `.npy` array files and `.npz` archives through a small
set of functions. You can write arrays to new files or append them along the
first axis. You can grow `.npz` archives one array at a time.

## Installation

```
pip install npyfile
```

To run the tests:

```
pip install "npyfile[test]"
pytest
```

## Usage

### Single arrays (`.npy`)

```python
from npyfile.npy import npy_save, npy_load

npy_save("arr1.npy", data, (32, 64, 128))        # write a new file
npy_save("arr1.npy", data, (32, 64, 128), "a")   # append along axis 0

arr = npy_load("arr1.npy")
arr.shape          # (64, 64, 128)
arr.word_size      # bytes per element
values = arr.as_array("complex128")
```

If you leave out `shape`, the data's own shape is used. A scalar is stored
with shape `(1,)`. The modes are `"w"` and `"a"`. With `"a"`, a file that does
not exist yet is created. Appending raises `ValueError` in these cases:

- the word size differs;
- the number of dimensions differs;
- any axis other than the first differs;
- the existing file is Fortran-ordered.

An `NpyArray` holds the raw bytes in `data`, together with these members:

- `shape`
- `word_size`
- `fortran_order`
- `type_char`
- `num_vals`
- `num_bytes`

`as_vec(dtype)` returns the values as a flat list. `as_array(dtype)` returns
a NumPy array shaped like the stored one. The `dtype` argument may be left out
when the file recorded a known type code.

`load_npy_stream(stream)` reads an array from an open binary stream.

### Matrices

```python
from npyfile.npy import npy_save_matrix, npy_load_matrix

npy_save_matrix("matrix.npy", [[1, 2, 3], [3, 4, 5]])
m = npy_load_matrix("matrix.npy", "float32")
```

`npy_save_matrix` always stores matrices in row-major (C) order. A
one-dimensional input is saved as a column.

`npy_load_matrix` returns a two-dimensional array of the given dtype. The
default dtype is `float32`.

### Archives (`.npz`)

```python
from npyfile.npz import npz_save, npz_load

npz_save("out.npz", "myVar1", 1.2, (1,), "w")          # create the archive
npz_save("out.npz", "arr1", data, (32, 64, 128), "a")  # add an entry

everything = npz_load("out.npz")   # dict of name -> NpyArray, sorted by name
one = npz_load("out.npz", "arr1")  # a single entry
```

`npz_save` stores entries uncompressed. `npz_load` can also read entries that
other tools wrote with deflate compression. Asking for a name that is not in
the archive raises `KeyError`.

The lower-level pieces are also available:

- `parse_zip_footer(stream)` returns a `ZipFooter`.
- `load_npz_array(stream, compressed_size, uncompressed_size)` inflates one entry.

### Headers

`npyfile.header` holds the pieces that build and parse the `.npy` header:

- `create_npy_header`
- `parse_npy_header`
- `read_npy_header`
- `map_type`
- `byte_order_char`

Parsing returns an `NpyHeader`. Malformed headers raise `HeaderError`, which
is a subclass of `ValueError`.

Headers are written in format version 1.0. Versions 1 to 3 can be read.

## Limitations

- Only little-endian (`<`) or byte-order-free (`|`) data can be read.
- Multi-disk zip archives cannot be appended to.
- Zip archives with a comment cannot be appended to.
- Object arrays cannot be saved.

## Demo

The demo writes these files into a directory and checks that they read back
correctly:

- `arr1.npy`
- `out.npz`
- three small matrix files

The directory defaults to the current one.

```
npyfile-demo [directory]
```