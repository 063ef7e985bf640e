import numpy as np
import pytest

from noisymin.noisy_value import (NoisyBracket, NoisyIOPair, NoisyIOPair1D, NoisyValue,
                                  gradient_arrays, is_gradient_meaningless)


def test_overlapping_values_are_equal():
    a = NoisyValue(1.0, 0.1)
    b = NoisyValue(1.15, 0.1)
    assert a == b
    assert b == a
    assert not a < b
    assert a <= b and a >= b


def test_distinguishable_values_compare():
    a = NoisyValue(1.0, 0.1)
    b = NoisyValue(1.5, 0.1)
    assert a != b
    assert a < b and b > a
    assert not a > b
    assert a <= b
    assert not b <= a


def test_equality_is_reflexive_and_not_transitive():
    a, b, c = NoisyValue(0.8, 0.15), NoisyValue(1.0, 0.15), NoisyValue(1.2, 0.15)
    assert a == a
    assert a == b and b == c
    assert a != c


def test_exact_values_behave_like_floats():
    assert NoisyValue(1.0) == NoisyValue(1.0)
    assert NoisyValue(1.0) < NoisyValue(1.0 + 1e-12)


def test_bounds_and_min_dist():
    a = NoisyValue(1.0, 0.25)
    b = NoisyValue(2.0, 0.5)
    assert a.lower_bound() == 0.75
    assert a.upper_bound() == 1.25
    assert a.min_dist(b) == pytest.approx(0.25)
    assert b.min_dist(a) == pytest.approx(0.25)
    assert a.min_dist(a) == 0.0
    assert a.min_dist(NoisyValue(1.5, 0.5)) == 0.0


def test_negative_error_raises():
    with pytest.raises(ValueError):
        NoisyValue(1.0, -0.1)


def test_comparison_with_other_types_is_not_supported():
    assert NoisyValue(1.0) != 1.0
    with pytest.raises(TypeError):
        NoisyValue(1.0) < 2.0


def test_arithmetic():
    a = NoisyValue(1.0, 0.3)
    b = NoisyValue(2.0, 0.4)
    s = a + b
    assert s.val == 3.0 and s.err == pytest.approx(0.5)
    d = b - a
    assert d.val == 1.0 and d.err == pytest.approx(0.5)
    assert (a + 1.0).val == 2.0 and (a + 1.0).err == 0.3
    assert (2.0 - a).val == 1.0
    m = -2.0 * a
    assert m.val == -2.0 and m.err == pytest.approx(0.6)
    q = a / -2.0
    assert q.val == -0.5 and q.err == pytest.approx(0.15)
    assert (-a).val == -1.0 and (-a).err == 0.3
    assert str(a) == "1.0 +- 0.3"


def test_iopair_flattens_and_copies():
    pair = NoisyIOPair([[1.0, 2.0]], NoisyValue(3.0))
    assert pair.ndim == 2
    assert pair.x.shape == (2,)
    other = pair.copy()
    other.x[0] = 10.0
    assert pair.x[0] == 1.0


def test_bracket_copy_is_independent():
    bracket = NoisyBracket(NoisyIOPair1D(0.0, NoisyValue(1.0)),
                           NoisyIOPair1D(1.0, NoisyValue(0.0)),
                           NoisyIOPair1D(2.0, NoisyValue(1.0)))
    other = bracket.copy()
    other.b.x = 1.5
    assert bracket.b.x == 1.0


def test_gradient_helpers():
    grad = [NoisyValue(0.1, 0.2), NoisyValue(-0.3, 0.5)]
    vals, errs = gradient_arrays(grad)
    assert np.array_equal(vals, [0.1, -0.3])
    assert np.array_equal(errs, [0.2, 0.5])
    assert is_gradient_meaningless(grad)
    assert not is_gradient_meaningless(grad + [NoisyValue(1.0, 0.2)])
    assert not is_gradient_meaningless([NoisyValue(1e-3, 0.0)])
