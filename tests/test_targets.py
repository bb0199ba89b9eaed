# tests/test_targets.py
import ipaddress

import pytest

from lanprobe.scanner.targets import (
    InvertedRange,
    MalformedRange,
    RangeError,
    RangeTooLarge,
    detect_local_subnet,
    expand_range,
    parse_address,
)


def _ips(addresses):
    return [str(a) for a in addresses]


# --- CIDR ---
def test_cidr_24_drops_network_and_broadcast():
    addresses = expand_range("192.168.1.0/24")
    assert len(addresses) == 254
    assert str(addresses[0]) == "192.168.1.1"
    assert str(addresses[-1]) == "192.168.1.254"


def test_cidr_host_bits_are_masked():
    assert _ips(expand_range("192.168.1.77/30")) == ["192.168.1.77", "192.168.1.78"]


def test_cidr_31_yields_both_addresses():
    assert _ips(expand_range("10.0.0.0/31")) == ["10.0.0.0", "10.0.0.1"]


def test_cidr_32_yields_single_address():
    assert _ips(expand_range("10.0.0.9/32")) == ["10.0.0.9"]


def test_cidr_16_is_allowed():
    assert len(expand_range("10.20.0.0/16")) == 65534


def test_cidr_wider_than_16_is_too_large():
    with pytest.raises(RangeTooLarge):
        expand_range("10.0.0.0/15")


@pytest.mark.parametrize("text", ["10.0.0.0/33", "10.0.0.0/abc", "10.0.0.0/", "10.0.0/24", "1.2.3.4/8/8", "10.0.0.1/²", "10.0.0.1/٢٤"])
def test_bad_cidr_is_malformed(text):
    with pytest.raises(MalformedRange):
        expand_range(text)


# --- Ranges ---
def test_short_form_replaces_last_octet():
    addresses = expand_range("10.0.0.1-254")
    assert len(addresses) == 254
    assert str(addresses[0]) == "10.0.0.1"
    assert str(addresses[-1]) == "10.0.0.254"


def test_full_range_is_inclusive():
    assert _ips(expand_range("192.168.1.250-192.168.2.1")) == [
        "192.168.1.250", "192.168.1.251", "192.168.1.252", "192.168.1.253",
        "192.168.1.254", "192.168.1.255", "192.168.2.0", "192.168.2.1",
    ]


def test_inverted_range_rejected():
    with pytest.raises(InvertedRange):
        expand_range("10.0.0.5-10.0.0.1")


def test_inverted_short_form_rejected():
    with pytest.raises(InvertedRange):
        expand_range("10.0.0.50-10")


def test_range_of_70000_addresses_rejected():
    with pytest.raises(RangeTooLarge):
        expand_range("10.0.0.0-10.1.17.112")


def test_range_at_the_cap_is_accepted():
    addresses = expand_range("10.0.0.0-10.1.0.0")
    assert len(addresses) == 65537


@pytest.mark.parametrize("text", ["10.0.0.1-300", "10.0.0.1-", "10.0.0.1-10.0.0.2-10.0.0.3", "a-b", "10.0.0.1-²", "10.0.0.1-٢٥٤"])
def test_bad_range_is_malformed(text):
    with pytest.raises(MalformedRange):
        expand_range(text)


# --- Single addresses ---
def test_single_address():
    assert _ips(expand_range(" 192.168.1.7 ")) == ["192.168.1.7"]


@pytest.mark.parametrize("text", ["", "   ", "not-an-ip", "256.1.1.1", "1.2.3"])
def test_garbage_is_malformed(text):
    with pytest.raises(MalformedRange):
        expand_range(text)


def test_range_errors_are_value_errors():
    assert issubclass(RangeError, ValueError)
    for cls in (MalformedRange, InvertedRange, RangeTooLarge):
        assert issubclass(cls, RangeError)


def test_parse_address_returns_ipv4():
    assert parse_address("10.1.2.3") == ipaddress.IPv4Address("10.1.2.3")


# --- Local subnet ---
def test_detect_local_subnet_returns_a_24(mocker):
    fake_socket = mocker.MagicMock()
    fake_socket.getsockname.return_value = ("172.16.4.33", 50000)
    mocker.patch("lanprobe.scanner.targets.socket.socket", return_value=fake_socket)
    assert detect_local_subnet() == "172.16.4.0/24"
    fake_socket.close.assert_called_once()


def test_detect_local_subnet_falls_back_without_route(mocker):
    fake_socket = mocker.MagicMock()
    fake_socket.connect.side_effect = OSError("Network is unreachable")
    mocker.patch("lanprobe.scanner.targets.socket.socket", return_value=fake_socket)
    assert detect_local_subnet() == "192.168.1.0/24"
