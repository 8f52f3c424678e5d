"""Package boundary tests: no cross-layer imports."""

from pytest_archon import archrule


def test_core_independence() -> None:
    """
    Core modules must not depend on the optional storage adapters.
    authcore must import cleanly without the redis or sqlalchemy extras.
    """
    (
        archrule("core_is_independent")
        .match("authcore*")
        .exclude("authcore.contrib*")
        .should_not_import("authcore.contrib*")
        .should_not_import("sqlalchemy*")
        .should_not_import("redis*")
        .check("authcore")
    )


def test_crypto_is_lowest_layer() -> None:
    """Crypto primitives must not import any flow built on top of them."""
    (
        archrule("crypto_isolation")
        .match("authcore.crypto*")
        .should_not_import("authcore.totp*")
        .should_not_import("authcore.two_factor*")
        .should_not_import("authcore.webauthn*")
        .should_not_import("authcore.oauth*")
        .check("authcore")
    )


def test_oauth_independence() -> None:
    """OAuth strategies must not import the second-factor flows."""
    (
        archrule("oauth_independence")
        .match("authcore.oauth*")
        .should_not_import("authcore.two_factor*")
        .should_not_import("authcore.webauthn*")
        .should_not_import("authcore.totp*")
        .check("authcore")
    )


def test_flows_are_independent() -> None:
    """Two-factor and WebAuthn are separate flows and must not import each other."""
    (
        archrule("two_factor_independence")
        .match("authcore.two_factor*")
        .should_not_import("authcore.webauthn*")
        .check("authcore")
    )
    (
        archrule("webauthn_independence")
        .match("authcore.webauthn*")
        .should_not_import("authcore.two_factor*")
        .should_not_import("authcore.totp*")
        .check("authcore")
    )


def test_ports_layering() -> None:
    """
    Ports (interfaces) should not depend on their implementations.
    """
    (
        archrule("ports_layering")
        .match("authcore.two_factor.ports")
        .match("authcore.webauthn.ports")
        .should_not_import("authcore.two_factor.memory")
        .should_not_import("authcore.two_factor.service")
        .should_not_import("authcore.webauthn.memory")
        .should_not_import("authcore.webauthn.service")
        .should_not_import("authcore.webauthn.verifier")
        .check("authcore")
    )


def test_adapters_are_independent() -> None:
    """Each storage adapter only pulls in its own backend."""
    (
        archrule("redis_adapter_isolation")
        .match("authcore.contrib.redis*")
        .should_not_import("sqlalchemy*")
        .should_not_import("authcore.contrib.sqlalchemy*")
        .check("authcore")
    )
    (
        archrule("sqlalchemy_adapter_isolation")
        .match("authcore.contrib.sqlalchemy*")
        .should_not_import("redis*")
        .should_not_import("authcore.contrib.redis*")
        .check("authcore")
    )
