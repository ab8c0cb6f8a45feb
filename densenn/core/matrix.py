"""Dense 2-D float64 matrices with value semantics.

Every operation except :meth:`Matrix.set` returns a new :class:`Matrix`;
operands are never mutated. The buffer is a private ``numpy`` array that is
copied on the way in and on the way out, so two matrices never share storage.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Sequence, Tuple

import numpy as np

from ..errors import DimensionMismatchError, MatrixIndexError
from .types import Array

ScalarFn = Callable[[float], float]

_PROCESS_RNG = np.random.default_rng()


def _check_dims(rows: int, cols: int) -> None:
    if int(rows) < 1 or int(cols) < 1:
        raise DimensionMismatchError(
            f"Matrix dimensions must be positive, got {rows}x{cols}"
        )


class Matrix:
    """Fixed-size rows x cols matrix of doubles."""

    __slots__ = ("_data",)
    __hash__ = None  # type: ignore[assignment]

    def __init__(self, rows: int, cols: int) -> None:
        _check_dims(rows, cols)
        self._data = np.zeros((int(rows), int(cols)), dtype=np.float64)

    # ------------------------------------------------------------------
    # Constructors

    @classmethod
    def _wrap(cls, data: Array) -> "Matrix":
        # Takes ownership of ``data``; callers must pass a fresh array.
        out = cls.__new__(cls)
        out._data = data
        return out

    @classmethod
    def create(cls, rows: int, cols: int) -> "Matrix":
        return cls(rows, cols)

    @classmethod
    def fill(cls, value: float, rows: int, cols: int) -> "Matrix":
        _check_dims(rows, cols)
        return cls._wrap(np.full((int(rows), int(cols)), float(value), dtype=np.float64))

    @classmethod
    def uniform_random(
        cls,
        rows: int,
        cols: int,
        low: float = 0.0,
        high: float = 1.0,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
    ) -> "Matrix":
        """Draw every element independently from ``[low, high)``.

        ``rng`` takes precedence over ``seed``; with neither, a process-level
        generator is used.
        """

        _check_dims(rows, cols)
        if rng is None:
            rng = np.random.default_rng(seed) if seed is not None else _PROCESS_RNG
        values = rng.uniform(low, high, size=(int(rows), int(cols)))
        return cls._wrap(values.astype(np.float64))

    @classmethod
    def from_list(cls, values: Sequence[Sequence[float]]) -> "Matrix":
        rows = [list(row) for row in values]
        if not rows or not rows[0]:
            raise DimensionMismatchError("Matrix literal must have at least one element")
        width = len(rows[0])
        for idx, row in enumerate(rows):
            if len(row) != width:
                raise DimensionMismatchError(
                    f"Row {idx} has {len(row)} elements, expected {width}"
                )
        return cls._wrap(np.array(rows, dtype=np.float64))

    @classmethod
    def from_array(cls, values: Array | Sequence[Sequence[float]]) -> "Matrix":
        data = np.array(values, dtype=np.float64)
        if data.ndim != 2:
            raise DimensionMismatchError(f"Expected a 2-D array, got {data.ndim}-D")
        _check_dims(*data.shape)
        return cls._wrap(data)

    # ------------------------------------------------------------------
    # Accessors

    @property
    def rows(self) -> int:
        return int(self._data.shape[0])

    @property
    def cols(self) -> int:
        return int(self._data.shape[1])

    @property
    def shape(self) -> Tuple[int, int]:
        return self.rows, self.cols

    def _check_index(self, row: int, col: int) -> None:
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise MatrixIndexError(
                f"Index ({row}, {col}) out of range for {self.rows}x{self.cols} matrix"
            )

    def get(self, row: int, col: int) -> float:
        self._check_index(row, col)
        return float(self._data[row, col])

    def set(self, row: int, col: int, value: float) -> None:
        self._check_index(row, col)
        self._data[row, col] = float(value)

    def row(self, index: int) -> List[float]:
        if not 0 <= index < self.rows:
            raise MatrixIndexError(f"Row {index} out of range for {self.rows} rows")
        return [float(v) for v in self._data[index]]

    def to_list(self) -> List[List[float]]:
        return self._data.tolist()

    def to_array(self) -> Array:
        return self._data.copy()

    def copy(self) -> "Matrix":
        return Matrix._wrap(self._data.copy())

    def __getitem__(self, index):
        if isinstance(index, tuple):
            return self.get(*index)
        return self.row(index)

    # ------------------------------------------------------------------
    # Element-wise arithmetic

    def _require_same_shape(self, other: "Matrix", op: str) -> None:
        if self.shape != other.shape:
            raise DimensionMismatchError(
                f"Cannot {op} {self.rows}x{self.cols} and {other.rows}x{other.cols} matrices"
            )

    def add(self, other: "Matrix") -> "Matrix":
        self._require_same_shape(other, "add")
        return Matrix._wrap(self._data + other._data)

    def subtract(self, other: "Matrix") -> "Matrix":
        self._require_same_shape(other, "subtract")
        return Matrix._wrap(self._data - other._data)

    def elementwise_multiply(self, other: "Matrix") -> "Matrix":
        self._require_same_shape(other, "multiply")
        return Matrix._wrap(self._data * other._data)

    def elementwise_divide(self, other: "Matrix") -> "Matrix":
        self._require_same_shape(other, "divide")
        with np.errstate(divide="ignore", invalid="ignore"):
            return Matrix._wrap(self._data / other._data)

    def scalar_multiply(self, value: float) -> "Matrix":
        with np.errstate(over="ignore", invalid="ignore"):
            return Matrix._wrap(self._data * float(value))

    def scalar_divide(self, value: float) -> "Matrix":
        # IEEE semantics: x / 0 -> +-inf, 0 / 0 -> nan.
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            return Matrix._wrap(self._data / np.float64(value))

    # ------------------------------------------------------------------
    # Matrix algebra

    def mat_mul(self, other: "Matrix") -> "Matrix":
        """Standard product, accumulating each element in increasing inner index."""

        if self.cols != other.rows:
            raise DimensionMismatchError(
                "Matrix dimensions must be in the form MxN x NxP, got "
                f"{self.rows}x{self.cols} x {other.rows}x{other.cols}"
            )
        out = np.zeros((self.rows, other.cols), dtype=np.float64)
        for k in range(self.cols):
            out += np.outer(self._data[:, k], other._data[k, :])
        return Matrix._wrap(out)

    def transpose(self) -> "Matrix":
        return Matrix._wrap(self._data.T.copy())

    @property
    def T(self) -> "Matrix":
        return self.transpose()

    def map(self, fn: ScalarFn | Callable[[Array], Array], *, vectorized: bool = False) -> "Matrix":
        """Apply ``fn`` independently to every element.

        With ``vectorized=True`` ``fn`` receives the whole buffer as an array
        and must return an array of the same shape.
        """

        if vectorized:
            with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
                values = np.asarray(fn(self._data.copy()), dtype=np.float64)
            if values.shape != self._data.shape:
                raise DimensionMismatchError(
                    f"Mapped function changed shape {self.shape} -> {values.shape}"
                )
            return Matrix._wrap(values.copy())
        apply = np.vectorize(fn, otypes=[np.float64])
        return Matrix._wrap(apply(self._data))

    # ------------------------------------------------------------------
    # Reductions

    def row_sum(self) -> "Matrix":
        return Matrix._wrap(self._data.sum(axis=1, keepdims=True))

    def col_sum(self) -> "Matrix":
        return Matrix._wrap(self._data.sum(axis=0, keepdims=True))

    def sum(self, axis: int) -> "Matrix":
        """``axis=0`` sums each column (1 x cols), ``axis=1`` each row (rows x 1)."""

        if axis == 0:
            return self.col_sum()
        if axis == 1:
            return self.row_sum()
        raise ValueError(f"axis must be 0 or 1, got {axis}")

    def total(self) -> float:
        return float(self._data.sum())

    def mean(self) -> float:
        return self.total() / (self.rows * self.cols)

    def argmax(self) -> int:
        return int(np.argmax(self._data))

    # ------------------------------------------------------------------
    # Element-wise helpers

    def clip(self, low: float, high: float) -> "Matrix":
        return Matrix._wrap(np.clip(self._data, low, high))

    def power(self, exponent: float) -> "Matrix":
        with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
            return Matrix._wrap(np.power(self._data, exponent))

    def sqrt(self) -> "Matrix":
        with np.errstate(invalid="ignore"):
            return Matrix._wrap(np.sqrt(self._data))

    def exp(self) -> "Matrix":
        with np.errstate(over="ignore"):
            return Matrix._wrap(np.exp(self._data))

    # ------------------------------------------------------------------
    # Comparison

    def equals(self, other: "Matrix") -> bool:
        return self.shape == other.shape and bool(np.array_equal(self._data, other._data))

    def allclose(self, other: "Matrix", rtol: float = 1e-9, atol: float = 1e-12) -> bool:
        return self.shape == other.shape and bool(
            np.allclose(self._data, other._data, rtol=rtol, atol=atol)
        )

    # ------------------------------------------------------------------
    # Operators

    def __add__(self, other: "Matrix") -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: "Matrix") -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.subtract(other)

    def __mul__(self, other):
        if isinstance(other, Matrix):
            return self.elementwise_multiply(other)
        if isinstance(other, (int, float, np.floating, np.integer)):
            return self.scalar_multiply(other)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, (int, float, np.floating, np.integer)):
            return self.scalar_multiply(other)
        return NotImplemented

    def __truediv__(self, other):
        if isinstance(other, Matrix):
            return self.elementwise_divide(other)
        if isinstance(other, (int, float, np.floating, np.integer)):
            return self.scalar_divide(other)
        return NotImplemented

    def __matmul__(self, other: "Matrix") -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.mat_mul(other)

    def __neg__(self) -> "Matrix":
        return self.scalar_multiply(-1.0)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.equals(other)

    def __repr__(self) -> str:
        return f"Matrix({self.to_list()!r})"

    def __str__(self) -> str:
        return "\n".join(str(row) for row in self.to_list())


# ----------------------------------------------------------------------
# Factory helpers


def zeros(rows: int, cols: int) -> Matrix:
    return Matrix(rows, cols)


def fill(value: float, rows: int, cols: int) -> Matrix:
    return Matrix.fill(value, rows, cols)


def uniform(
    rows: int,
    cols: int,
    low: float = 0.0,
    high: float = 1.0,
    *,
    seed: int | None = None,
    rng: np.random.Generator | None = None,
) -> Matrix:
    return Matrix.uniform_random(rows, cols, low, high, seed=seed, rng=rng)


def identity(n: int) -> Matrix:
    _check_dims(n, n)
    return Matrix._wrap(np.eye(int(n), dtype=np.float64))


def one_hot(index: int, size: int) -> Matrix:
    """Return a ``1 x size`` row with a single 1.0 at ``index``."""

    out = Matrix(1, size)
    out.set(0, index, 1.0)
    return out


def row_vector(values: Iterable[float]) -> Matrix:
    return Matrix.from_list([[float(v) for v in values]])


__all__ = [
    "Matrix",
    "fill",
    "identity",
    "one_hot",
    "row_vector",
    "uniform",
    "zeros",
]
