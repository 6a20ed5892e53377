"""Tests for manifest path and registry URL validation."""
from __future__ import annotations

import socket

import pytest

from crates_publisher.errors import PathValidationError, RegistryValidationError
from crates_publisher.validation import (
    is_private_ip,
    resolve_host,
    validate_path,
    validate_registry_url,
)


def _resolves_to(*addresses: str):
    def resolver(host: str) -> list[str]:
        return list(addresses)

    return resolver


def _unresolvable(host: str) -> list[str]:
    raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")


# ---------------------------------------------------------------------------
# validate_path
# ---------------------------------------------------------------------------


class TestValidatePath:
    @pytest.mark.parametrize(
        "path",
        ["", "Cargo.toml", "a/b/c", "crates/lib/Cargo.toml", "./Cargo.toml", "crates/./lib/Cargo.toml"],
    )
    def test_accepts_relative_paths(self, path: str) -> None:
        validate_path(path)

    def test_rejects_absolute_path(self) -> None:
        with pytest.raises(PathValidationError, match="absolute"):
            validate_path("/etc/passwd")

    @pytest.mark.parametrize("path", ["../x", "../../../etc/passwd", "a/../../x", "crates/../../etc/passwd", ".."])
    def test_rejects_traversal(self, path: str) -> None:
        with pytest.raises(PathValidationError, match="path traversal"):
            validate_path(path)

    def test_inner_parent_segment_that_stays_inside_is_accepted(self) -> None:
        validate_path("crates/lib/../other/Cargo.toml")

    def test_dotted_file_name_is_not_traversal(self) -> None:
        validate_path("crates/..hidden/Cargo.toml")


# ---------------------------------------------------------------------------
# validate_registry_url: bare names
# ---------------------------------------------------------------------------


class TestRegistryNames:
    @pytest.mark.parametrize("name", ["my-registry", "my.registry.com", "Registry2", "a"])
    def test_accepts_valid_names(self, name: str) -> None:
        validate_registry_url(name)

    @pytest.mark.parametrize("name", ["my_bad!name", "my_registry!@#", "1registry", "-registry", "my registry"])
    def test_rejects_invalid_names(self, name: str) -> None:
        with pytest.raises(RegistryValidationError, match="invalid registry name format"):
            validate_registry_url(name)


# ---------------------------------------------------------------------------
# validate_registry_url: URLs
# ---------------------------------------------------------------------------


class TestRegistryUrls:
    def test_accepts_https(self) -> None:
        validate_registry_url("https://host/path")

    def test_accepts_sparse_https(self) -> None:
        validate_registry_url("sparse+https://host/index")

    def test_rejects_plain_http(self) -> None:
        with pytest.raises(RegistryValidationError, match="only HTTPS URLs are allowed"):
            validate_registry_url("http://example.com")

    def test_rejects_other_schemes(self) -> None:
        with pytest.raises(RegistryValidationError, match="got git"):
            validate_registry_url("git://example.com/index")

    @pytest.mark.parametrize(
        "url",
        ["http://localhost:8080/index", "http://127.0.0.1:8080/index", "http://[::1]:8080/index"],
    )
    def test_loopback_accepts_any_scheme(self, url: str) -> None:
        validate_registry_url(url, resolver=_resolves_to("10.0.0.1"))

    def test_loopback_match_ignores_case(self) -> None:
        validate_registry_url("http://LOCALHOST:8080/index", resolver=_unresolvable)

    def test_loopback_skips_resolution(self) -> None:
        calls: list[str] = []

        def resolver(host: str) -> list[str]:
            calls.append(host)
            return ["127.0.0.1"]

        validate_registry_url("http://localhost:3000", resolver=resolver)
        assert calls == []

    def test_rejects_missing_host(self) -> None:
        with pytest.raises(RegistryValidationError, match="missing host"):
            validate_registry_url("https:///index")

    def test_rejects_malformed_url(self) -> None:
        with pytest.raises(RegistryValidationError, match="invalid URL"):
            validate_registry_url("https://[::1/index")

    @pytest.mark.parametrize(
        "address",
        ["10.1.2.3", "172.16.0.5", "192.168.1.1", "169.254.169.254", "169.254.10.10", "0.0.0.0", "fd00:ec2::254", "fe80::1"],
    )
    def test_rejects_private_resolution(self, address: str) -> None:
        with pytest.raises(RegistryValidationError, match="private networks"):
            validate_registry_url("https://registry.internal/index", resolver=_resolves_to(address))

    def test_rejects_when_any_address_is_private(self) -> None:
        resolver = _resolves_to("93.184.216.34", "10.0.0.8")
        with pytest.raises(RegistryValidationError):
            validate_registry_url("https://mixed.example/index", resolver=resolver)

    def test_accepts_public_resolution(self) -> None:
        resolver = _resolves_to("93.184.216.34", "2606:2800:220:1:248:1893:25c8:1946")
        validate_registry_url("https://registry.example/index", resolver=resolver)

    def test_resolution_failure_fails_open(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("WARNING", logger="crates_publisher.validation"):
            validate_registry_url("https://unknown.invalid/index", resolver=_unresolvable)
        assert "Could not resolve registry host" in caplog.text

    def test_default_resolver_is_used(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            "crates_publisher.validation.resolve_host",
            _resolves_to("169.254.169.254"),
        )
        with pytest.raises(RegistryValidationError):
            validate_registry_url("https://metadata.example/")


# ---------------------------------------------------------------------------
# resolve_host and the system resolver
# ---------------------------------------------------------------------------


@pytest.fixture()
def system_dns(monkeypatch: pytest.MonkeyPatch) -> None:
    """Route validation through the real resolve_host."""
    monkeypatch.setattr("crates_publisher.validation.resolve_host", resolve_host)


def _getaddrinfo_returning(*addresses: str):
    def getaddrinfo(host, port, *args, **kwargs):
        return [
            (socket.AF_INET6 if ":" in a else socket.AF_INET, socket.SOCK_STREAM, 6, "", (a, 0))
            for a in addresses
        ]

    return getaddrinfo


@pytest.mark.usefixtures("system_dns")
class TestSystemResolver:
    def test_resolves_loopback_literal(self) -> None:
        assert resolve_host("127.0.0.1") == ["127.0.0.1"]

    def test_deduplicates_addresses(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            socket, "getaddrinfo", _getaddrinfo_returning("93.184.216.34", "93.184.216.34")
        )
        assert resolve_host("registry.example") == ["93.184.216.34"]

    def test_private_answer_is_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(socket, "getaddrinfo", _getaddrinfo_returning("10.1.2.3"))
        with pytest.raises(RegistryValidationError, match="private networks"):
            validate_registry_url("https://registry.example/index")

    def test_gaierror_fails_open(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        def getaddrinfo(host, port, *args, **kwargs):
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

        monkeypatch.setattr(socket, "getaddrinfo", getaddrinfo)
        with caplog.at_level("WARNING", logger="crates_publisher.validation"):
            validate_registry_url("https://unknown.example/index")
        assert "Could not resolve registry host" in caplog.text

    @pytest.mark.parametrize(
        "url",
        ["https://foo..example.com/index", "https://" + "a" * 70 + ".com/x"],
    )
    def test_unencodable_host_is_rejected(self, url: str) -> None:
        with pytest.raises(RegistryValidationError, match="invalid host"):
            validate_registry_url(url)


# ---------------------------------------------------------------------------
# is_private_ip
# ---------------------------------------------------------------------------


class TestIsPrivateIp:
    @pytest.mark.parametrize(
        "address",
        ["127.0.0.1", "::1", "10.0.0.1", "192.168.0.1", "169.254.169.254", "::ffff:169.254.169.254", "fc00::1"],
    )
    def test_private_addresses(self, address: str) -> None:
        assert is_private_ip(address) is True

    @pytest.mark.parametrize("address", ["93.184.216.34", "8.8.8.8", "2606:4700:4700::1111"])
    def test_public_addresses(self, address: str) -> None:
        assert is_private_ip(address) is False

    def test_unparseable_address_is_blocked(self) -> None:
        assert is_private_ip("not-an-ip") is True

    def test_scoped_ipv6_address(self) -> None:
        assert is_private_ip("fe80::1%eth0") is True
