# ctphash

Context-triggered piecewise hashing (CTPH) in pure Python. The package computes
spamsum-style fuzzy signatures of the form `blocksize:digest1:digest2`. It also
scores how similar two signatures are, on a scale from 0 to 100.

## Installing

```
pip install .
```

There are no runtime dependencies.

## Hashing

```python
from ctphash.engine import hash_buf, hash_filename, FuzzyState, DigestFlags

signature = hash_buf(b"some data " * 1000)

file_signature = hash_filename("sample.bin")

state = FuzzyState()
state.update(b"first chunk")
state.update(b"second chunk")
print(state.digest())
print(state.digest(DigestFlags.ELIMSEQ | DigestFlags.NOTRUNC))
```

- `hash_buf(data)` hashes a bytes-like object.
- `hash_stream(handle)` hashes an open binary stream. It reads from the current position to the end.
- `hash_file(handle)` hashes a seekable file from its start. Afterwards it puts the file position back where it was.
- `hash_filename(filename)` opens the named file and hashes all of it.

### FuzzyState

`FuzzyState` builds a hash incrementally:

- `update(data)` feeds it more bytes.
- `digest(flags)` returns the signature of everything fed so far. It does not change the state, so you can keep feeding data afterwards.
- `copy()` returns an independent copy of the state.
- `set_total_input_length(n)` declares the input size in advance, which narrows the block sizes that are tried.

`DigestFlags` controls the output of `digest`:

- `DigestFlags.NONE` is the default.
- `DigestFlags.ELIMSEQ` drops runs of more than three identical characters.
- `DigestFlags.NOTRUNC` keeps the second part at full length instead of cutting it to half.

### Errors

- `digest` raises `OverflowError` when more input was fed than the maximum, `ctphash.engine.TOTAL_SIZE_MAX`.
- `digest` raises `ValueError` when the amount of data fed differs from a length declared earlier.
- `set_total_input_length` raises `OverflowError` for a length that is too large.
- `set_total_input_length` raises `ValueError` for a negative length, or for a length that differs from one set earlier.

## Comparing

```python
from ctphash.compare import compare

score = compare(signature_a, signature_b)
```

The score is an integer from 0 to 100:

- 100 means the signatures are identical.
- 0 means no match. It is also the result when the two block sizes are neither equal nor one double the other.

`compare` raises `ValueError` in these cases:

- a signature is `None`;
- a signature has no block size;
- a signature lacks its two `:`-separated parts;
- a digest part is longer than 64 characters after runs are shortened.

## Lower-level pieces

- `ctphash.edit_distance.edit_distn(s1, s2)` is a weighted Levenshtein distance. Insertion and removal cost 1, replacement costs 2.
- `ctphash.primitives.RollingHash` is the Adler-style rolling hash over a 7-byte window. It has the methods `update(c)` and `sum()`.
- `ctphash.primitives.sum_hash(c, h)` is the six-bit partial FNV step.
- `ctphash.compare.eliminate_sequences`, `has_common_substring` and `score_strings` are the building blocks of `compare`.

## What it does not do

ctphash is a library only:

- It has no command-line tool.
- It does not scan directories.
- It does not keep a database of signatures.

It has no separate init/update/final/diff wrapper either. For incremental hashing, use `FuzzyState` directly. For scoring, use `compare`.

## Running the tests

```
pip install .[test]
pytest
```