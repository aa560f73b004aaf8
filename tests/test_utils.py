import math

from utils import haversine_m, mask_secret, parse_version


def test_haversine_zero_and_known_distance():
    assert haversine_m(35.0, 139.0, 35.0, 139.0) == 0.0
    # one degree of latitude is ~111.2 km
    d = haversine_m(0.0, 0.0, 1.0, 0.0)
    assert math.isclose(d, 111195, rel_tol=1e-3)


def test_haversine_symmetric():
    a = haversine_m(35.68, 139.76, 34.69, 135.50)
    b = haversine_m(34.69, 135.50, 35.68, 139.76)
    assert math.isclose(a, b)
    assert 390_000 < a < 410_000  # Tokyo - Osaka


def test_parse_version():
    assert parse_version("1.4.2") == (1, 4, 2)
    assert parse_version("2.0") == parse_version("2.0.0") == (2,)
    assert parse_version("3.1.0-beta") == (3, 1)
    assert parse_version("") is None
    assert parse_version("abc") is None
    assert parse_version("1.10") > parse_version("1.9")


def test_mask_secret():
    assert mask_secret(None) == "unset"
    assert mask_secret("short") == "*****"
    assert mask_secret("abcdefghijkl") == "abcd...ijkl"
