import math

import numpy as np
import pytest

from densenn.core.matrix import Matrix, fill, identity, one_hot, row_vector, uniform, zeros
from densenn.errors import DimensionMismatchError, MatrixIndexError


def _random(rows, cols, seed):
    return Matrix.uniform_random(rows, cols, -2.0, 2.0, seed=seed)


def test_constructors_and_accessors():
    m = Matrix.create(2, 3)
    assert m.shape == (2, 3)
    assert m.to_list() == [[0.0, 0.0, 0.0], [0.0, 0.0, 0.0]]

    f = fill(1.5, 2, 2)
    assert f.to_list() == [[1.5, 1.5], [1.5, 1.5]]
    assert zeros(1, 4).equals(Matrix(1, 4))

    lit = Matrix.from_list([[1, 2], [3, 4]])
    assert lit.get(1, 0) == 3.0
    lit.set(1, 0, 9.0)
    assert lit[1] == [9.0, 4.0]
    assert lit[0, 1] == 2.0

    assert one_hot(2, 4).to_list() == [[0.0, 0.0, 1.0, 0.0]]
    assert row_vector([1, 2, 3]).shape == (1, 3)


def test_invalid_dimensions_rejected():
    with pytest.raises(DimensionMismatchError):
        Matrix(0, 3)
    with pytest.raises(DimensionMismatchError):
        Matrix.from_list([[1.0, 2.0], [3.0]])
    with pytest.raises(DimensionMismatchError):
        Matrix.from_list([])


@pytest.mark.parametrize("index", [(2, 0), (0, 2), (-1, 0), (0, -1)])
def test_out_of_bounds_access_raises_index_error(index):
    m = Matrix(2, 2)
    with pytest.raises(MatrixIndexError):
        m.get(*index)
    with pytest.raises(IndexError):
        m.set(*index, 1.0)


def test_uniform_random_is_seeded_and_bounded():
    a = uniform(4, 5, -0.5, 0.5, seed=7)
    b = Matrix.uniform_random(4, 5, -0.5, 0.5, seed=7)
    assert a == b
    values = a.to_array()
    assert values.min() >= -0.5 and values.max() < 0.5

    rng_a = np.random.default_rng(3)
    rng_b = np.random.default_rng(3)
    assert uniform(2, 2, rng=rng_a) == uniform(2, 2, rng=rng_b)


def test_add_subtract_identity_law():
    a = _random(3, 4, seed=1)
    assert (a + a - a).allclose(a)


def test_elementwise_ops_require_matching_shapes():
    a = Matrix(2, 3)
    b = Matrix(3, 2)
    for op in (a.add, a.subtract, a.elementwise_multiply, a.elementwise_divide):
        with pytest.raises(DimensionMismatchError):
            op(b)
    with pytest.raises(ValueError):
        a + b


def test_elementwise_values():
    a = Matrix.from_list([[1.0, 2.0], [3.0, 4.0]])
    b = Matrix.from_list([[2.0, 2.0], [2.0, 8.0]])
    assert (a * b).to_list() == [[2.0, 4.0], [6.0, 32.0]]
    assert (a / b).to_list() == [[0.5, 1.0], [1.5, 0.5]]
    assert (a * 2).to_list() == [[2.0, 4.0], [6.0, 8.0]]
    assert (2 * a).to_list() == [[2.0, 4.0], [6.0, 8.0]]
    assert (a / 2).to_list() == [[0.5, 1.0], [1.5, 2.0]]
    assert (-a).to_list() == [[-1.0, -2.0], [-3.0, -4.0]]


def test_scalar_divide_by_zero_propagates_ieee_values():
    m = Matrix.from_list([[1.0, -1.0, 0.0]])
    out = m.scalar_divide(0.0)
    assert out.get(0, 0) == math.inf
    assert out.get(0, 1) == -math.inf
    assert math.isnan(out.get(0, 2))


def test_operations_do_not_mutate_operands():
    a = Matrix.from_list([[1.0, 2.0]])
    b = Matrix.from_list([[3.0, 4.0]])
    snapshot_a, snapshot_b = a.to_list(), b.to_list()
    a + b
    a * b
    a.transpose()
    a.map(lambda x: x * 10)
    a.clip(0.0, 1.0)
    assert a.to_list() == snapshot_a
    assert b.to_list() == snapshot_b


def test_exported_data_is_a_copy():
    a = Matrix.from_list([[1.0, 2.0]])
    rows = a.to_list()
    rows[0][0] = 99.0
    arr = a.to_array()
    arr[0, 1] = 99.0
    assert a.to_list() == [[1.0, 2.0]]
    twin = a.copy()
    twin.set(0, 0, -1.0)
    assert a.get(0, 0) == 1.0 and twin == Matrix.from_list([[-1.0, 2.0]])


def test_transpose_twice_is_identity():
    a = _random(2, 5, seed=2)
    t = a.transpose()
    assert t.shape == (5, 2)
    assert t.get(4, 1) == a.get(1, 4)
    assert t.transpose() == a


def test_matmul_shape_and_values():
    a = Matrix.from_list([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    b = Matrix.from_list([[7.0, 8.0], [9.0, 10.0], [11.0, 12.0]])
    out = a @ b
    assert out.to_list() == [[58.0, 64.0], [139.0, 154.0]]
    with pytest.raises(DimensionMismatchError):
        a.mat_mul(a)


def test_matmul_accumulates_in_inner_index_order():
    a = _random(3, 7, seed=4)
    b = _random(7, 2, seed=5)
    out = a.mat_mul(b)
    for i in range(3):
        for j in range(2):
            acc = 0.0
            for k in range(7):
                acc += a.get(i, k) * b.get(k, j)
            assert out.get(i, j) == acc


def test_matmul_associativity_and_identity():
    a = _random(2, 3, seed=6)
    b = _random(3, 4, seed=7)
    c = _random(4, 2, seed=8)
    assert ((a @ b) @ c).allclose(a @ (b @ c))
    assert a.mat_mul(identity(3)) == a


def test_reductions():
    m = Matrix.from_list([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    assert m.row_sum().to_list() == [[6.0], [15.0]]
    assert m.col_sum().to_list() == [[5.0, 7.0, 9.0]]
    assert m.sum(axis=0) == m.col_sum()
    assert m.sum(axis=1) == m.row_sum()
    assert m.mean() == pytest.approx(3.5)
    assert m.argmax() == 5
    with pytest.raises(ValueError):
        m.sum(axis=2)


def test_map_and_clip():
    m = Matrix.from_list([[-3.0, 0.5, 7.0]])
    assert m.map(lambda x: x * x).to_list() == [[9.0, 0.25, 49.0]]
    assert m.map(np.abs, vectorized=True).to_list() == [[3.0, 0.5, 7.0]]
    assert m.clip(-1.0, 1.0).to_list() == [[-1.0, 0.5, 1.0]]


def test_equality():
    a = Matrix.from_list([[1.0, 2.0]])
    assert a == Matrix.from_list([[1.0, 2.0]])
    assert a != Matrix.from_list([[1.0, 2.5]])
    assert not a.equals(Matrix.from_list([[1.0], [2.0]]))
    assert a != "not a matrix"
