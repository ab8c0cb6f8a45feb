from __future__ import annotations

from typing import List

import numpy as np
import pytest

from densenn.core.activations import Activation, sigmoid_deriv
from densenn.core.matrix import Matrix, one_hot
from densenn.core.types import Batch
from densenn.errors import ConfigurationError, DimensionMismatchError
from densenn.reporting.metrics import LossHistory
from densenn.training.config import TrainingConfig
from densenn.training.losses import cross_entropy
from densenn.training.network import Network
from densenn.training.optimizers import Adam


def _half_squared_error(net: Network, x: Matrix, y: Matrix) -> float:
    diff = net.predict(x).to_array() - y.to_array()
    return 0.5 * float(np.sum(diff**2))


def _regression_data() -> tuple[List[Matrix], List[Matrix]]:
    xs = np.linspace(-1.0, 1.0, 8)
    inputs = [Matrix.from_list([[x, x * x]]) for x in xs]
    targets = [Matrix.from_list([[0.5 * x - 0.25]]) for x in xs]
    return inputs, targets


def test_constructor_validates_lengths():
    with pytest.raises(ConfigurationError):
        Network([2, 3, 1], ["relu"])
    with pytest.raises(ConfigurationError):
        Network([2], [])
    with pytest.raises(ConfigurationError):
        Network([2, 0], ["relu"])


def test_forward_records_every_layer():
    net = Network([3, 4, 2], [Activation.RELU, Activation.SOFTMAX], seed=0)
    x = Matrix.from_list([[0.1, -0.2, 0.3]])
    context = net.forward(x)
    assert len(context.pre_activated) == 3
    assert len(context.activated) == 3
    assert context.activated[0] == x and context.pre_activated[0] == x
    assert context.pre_activated[1].shape == (1, 4)
    assert context.output.shape == (1, 2)
    assert context.output.total() == pytest.approx(1.0)
    assert net.last_context is context


def test_forward_rejects_wrong_input_shape():
    net = Network([3, 2], ["linear"], seed=0)
    with pytest.raises(DimensionMismatchError):
        net.predict(Matrix(1, 4))
    with pytest.raises(DimensionMismatchError):
        net.predict(Matrix(2, 3))


def test_forward_owns_its_input():
    net = Network([2, 3, 1], ["tanh", "linear"], seed=0)
    x = Matrix.from_list([[1.0, -0.5]])
    y = Matrix.from_list([[0.3]])
    context = net.forward(x)
    before = net.backward(context, y)

    x.set(0, 0, 99.0)

    assert context.activated[0].get(0, 0) == 1.0
    assert context.pre_activated[0].get(0, 0) == 1.0
    assert net.last_context.activated[0].get(0, 0) == 1.0
    after = net.backward(context, y)
    for a, b in zip(before.weights + before.biases, after.weights + after.biases):
        assert a == b


def test_cross_entropy_seeds_output_delta_with_target_minus_prediction():
    net = Network([3, 4, 2], ["sigmoid", "softmax"], loss="cross_entropy", seed=1)
    x = Matrix.from_list([[0.2, -0.4, 0.9]])
    y = one_hot(0, 2)
    context = net.forward(x)
    grads = net.backward(context, y)

    delta = y - context.output
    assert grads.deltas[-1].allclose(delta)
    assert grads.weights[-1].allclose(context.activated[-2].T @ delta)
    assert grads.biases[-1].allclose(delta)
    hidden = (delta @ net.weights[-1].T) * sigmoid_deriv(context.pre_activated[1])
    assert grads.deltas[0].allclose(hidden)
    assert grads.weights[0].allclose(x.T @ hidden)

    loss = net.train_step(x, y, learning_rate=0.1)
    assert loss == pytest.approx(cross_entropy(context.output, y))


def test_predict_is_deterministic_and_side_effect_free():
    net = Network([2, 5, 3], ["tanh", "sigmoid"], optimizer=Adam(), seed=1)
    x = Matrix.from_list([[0.4, -0.7]])
    weights_before = [w.to_list() for w in net.weights]
    first = net.predict(x)
    second = net.predict(x)
    assert first == second
    assert [w.to_list() for w in net.weights] == weights_before
    assert net.optimizer.t == 0


@pytest.mark.parametrize("hidden", ["tanh", "sigmoid", "leakyRelu", "linear"])
def test_backward_matches_finite_differences(hidden):
    net = Network([2, 3, 2], [hidden, "linear"], seed=3)
    x = Matrix.from_list([[0.3, -0.8]])
    y = Matrix.from_list([[0.2, -0.1]])
    grads = net.backward(net.forward(x), y)

    eps = 1e-6
    for layer in range(net.num_layers):
        W = net.weights[layer]
        for r in range(W.rows):
            for c in range(W.cols):
                original = W.get(r, c)
                W.set(r, c, original + eps)
                up = _half_squared_error(net, x, y)
                W.set(r, c, original - eps)
                down = _half_squared_error(net, x, y)
                W.set(r, c, original)
                numeric = (up - down) / (2 * eps)
                assert grads.weights[layer].get(r, c) == pytest.approx(numeric, abs=1e-6)
        assert grads.biases[layer].shape == net.biases[layer].shape
        assert grads.biases[layer] == grads.deltas[layer].col_sum()


def test_backward_requires_exactly_one_seed():
    net = Network([2, 2], ["linear"], seed=0)
    context = net.forward(Matrix.from_list([[1.0, 1.0]]))
    with pytest.raises(ConfigurationError):
        net.backward(context)
    with pytest.raises(ConfigurationError):
        net.backward(context, Matrix(1, 2), loss_gradient=Matrix(1, 2))
    with pytest.raises(DimensionMismatchError):
        net.backward(context, loss_gradient=Matrix(1, 3))


def test_relu_softmax_smoke_convergence():
    history = LossHistory()
    net = Network([1, 2, 2], [Activation.RELU, Activation.SOFTMAX], seed=0, callbacks=[history])
    x = Matrix.from_list([[0.5]])
    y = one_hot(1, 2)

    net.train([x], [y], learning_rate=0.01, epochs=1000)

    losses = history.series("loss")
    assert len(losses) == 1000
    tail = losses[-100:]
    assert all(later <= earlier + 1e-12 for earlier, later in zip(tail, tail[1:]))
    assert losses[-1] < losses[0]
    assert net.predict(x).argmax() == y.argmax()


def test_adam_training_reduces_regression_loss():
    inputs, targets = _regression_data()
    history = LossHistory()
    net = Network([2, 6, 1], ["tanh", "linear"], optimizer="adam", seed=5, callbacks=[history])
    net.train(inputs, targets, learning_rate=0.01, epochs=150)
    means = history.series("mean_loss")
    assert means[-1] < means[0]
    assert net.optimizer.t == 150 * len(inputs)


def test_gradient_clipping_bounds_weight_updates():
    net = Network([1, 1], ["linear"], clip_threshold=0.1, seed=0)
    w_before = net.weights[0].get(0, 0)
    b_before = net.biases[0].get(0, 0)
    x = Matrix.from_list([[1.0]])
    y = Matrix.from_list([[1000.0]])
    net.train_step(x, y, learning_rate=1.0)
    assert abs(net.weights[0].get(0, 0) - w_before) == pytest.approx(0.1)
    # bias gradients are not clipped
    assert abs(net.biases[0].get(0, 0) - b_before) > 100.0


def test_batch_of_identical_samples_matches_single_step():
    base = Network([2, 3, 2], ["relu", "sigmoid"], seed=9)
    single = base.clone()
    batched = base.clone()
    x = Matrix.from_list([[0.2, 0.9]])
    y = Matrix.from_list([[1.0, 0.0]])

    single.train_step(x, y, learning_rate=0.1)
    loss = batched.train_batch(Batch(inputs=[x, x], targets=[y, y]), learning_rate=0.1)

    assert loss == pytest.approx(base.loss(base.predict(x), y))
    for a, b in zip(single.weights + single.biases, batched.weights + batched.biases):
        assert a.allclose(b)


def test_train_batches_emits_one_record_per_epoch():
    inputs, targets = _regression_data()
    batches = [Batch(inputs[:4], targets[:4]), Batch(inputs[4:], targets[4:])]
    history = LossHistory()
    net = Network([2, 4, 1], ["leakyRelu", "linear"], seed=2, callbacks=[history])
    net.train_batches(batches, learning_rate=0.05, epochs=5)
    assert [epoch for epoch, _ in history.history] == [1, 2, 3, 4, 5]


def test_batch_validation():
    x = Matrix(1, 2)
    with pytest.raises(ConfigurationError):
        Batch(inputs=[x], targets=[])
    with pytest.raises(ConfigurationError):
        Batch(inputs=[], targets=[])


def test_dropout_masks_hidden_units_only():
    net = Network([2, 50, 3], ["sigmoid", "sigmoid"], seed=4)
    x = Matrix.from_list([[0.3, 0.3]])
    context = net.forward(x, dropout=0.5)
    hidden = context.activated[1].to_array()
    assert (hidden == 0.0).any()
    assert (context.output.to_array() > 0.0).all()
    clean = net.forward(x)
    assert (clean.activated[1].to_array() > 0.0).all()
    with pytest.raises(ConfigurationError):
        net.forward(x, dropout=1.0)


def test_train_validates_pairs_and_reports_progress(capsys):
    net = Network([2, 1], ["linear"], seed=0)
    x = Matrix.from_list([[1.0, 2.0]])
    with pytest.raises(ConfigurationError):
        net.train([x], [], learning_rate=0.1, epochs=1)

    calls = []
    net.callbacks.append(lambda epoch, metrics: calls.append((epoch, metrics["loss"])))
    net.train([x], [Matrix.from_list([[0.0]])], learning_rate=0.01, epochs=3, verbose=True)
    out = capsys.readouterr().out.splitlines()
    assert len(out) == 3
    assert out[0].startswith("epoch 1:")
    assert [epoch for epoch, _ in calls] == [1, 2, 3]


def test_clone_is_independent():
    net = Network([2, 2], ["tanh"], seed=0)
    twin = net.clone()
    assert all(a == b for a, b in zip(net.weights, twin.weights))
    twin.train([Matrix.from_list([[1.0, 1.0]])], [Matrix.from_list([[0.0, 1.0]])], 0.5, 3)
    assert any(a != b for a, b in zip(net.weights, twin.weights))
    twin.weights[0].set(0, 0, 42.0)
    assert net.weights[0].get(0, 0) != 42.0


def test_fit_and_from_config():
    config = TrainingConfig(learning_rate=0.05, epochs=4, optimizer="adam", seed=3, beta1=0.85)
    history = LossHistory()
    net = Network.from_config([2, 3, 1], ["relu", "linear"], config, callbacks=[history])
    assert isinstance(net.optimizer, Adam) and net.optimizer.beta1 == 0.85
    inputs, targets = _regression_data()
    net.fit(inputs, targets, config)
    assert len(history) == 4
