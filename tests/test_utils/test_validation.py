"""Tests for input validation."""

import pytest

from server_audit.utils.validation import validate_host, validate_port, validate_user


class TestValidateHost:
    def test_accepts_ip_and_names(self) -> None:
        assert validate_host("10.0.0.5") == "10.0.0.5"
        assert validate_host("host.example") == "host.example"

    @pytest.mark.parametrize("host", ["", "a;b", "a b", "x/y", "$(id)"])
    def test_rejects_invalid(self, host: str) -> None:
        with pytest.raises(ValueError):
            validate_host(host)

    def test_rejects_long_names(self) -> None:
        with pytest.raises(ValueError, match="too long"):
            validate_host("a" * 254)


def test_user_cannot_be_empty() -> None:
    with pytest.raises(ValueError, match="User cannot be empty"):
        validate_user("")


@pytest.mark.parametrize("port", [0, 65536, -1])
def test_port_range(port: int) -> None:
    with pytest.raises(ValueError, match="between 1 and 65535"):
        validate_port(port)


def test_port_valid() -> None:
    assert validate_port(2222) == 2222
