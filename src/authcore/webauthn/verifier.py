"""py_webauthn-backed implementation of :class:`IWebAuthnVerifier`."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from webauthn import verify_authentication_response, verify_registration_response
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url
from webauthn.helpers.cose import COSEAlgorithmIdentifier

from .models import VerifiedAuthentication, VerifiedRegistration
from .ports import IWebAuthnVerifier

if TYPE_CHECKING:
    from ..config import WebAuthnConfig


class PyWebAuthnVerifier(IWebAuthnVerifier):
    """Delegates attestation and assertion checks to py_webauthn.

    User verification is always required. The signature counter is
    deliberately passed as zero so py_webauthn never rejects on counter
    grounds; :class:`~authcore.webauthn.WebAuthnService` applies the
    counter policy itself, including the counter-less exemption.

    The accepted algorithms must match the ones the service advertises;
    build both from the same :class:`~authcore.config.WebAuthnConfig`
    with :meth:`from_config`.
    """

    def __init__(self, *, supported_algorithms: tuple[int, ...] = (-7, -257)) -> None:
        self._algorithms = [
            COSEAlgorithmIdentifier(alg) for alg in supported_algorithms
        ]

    @classmethod
    def from_config(cls, config: WebAuthnConfig) -> PyWebAuthnVerifier:
        return cls(supported_algorithms=config.supported_algorithms)

    @property
    def supported_algorithms(self) -> tuple[int, ...]:
        return tuple(int(alg) for alg in self._algorithms)

    def verify_registration(
        self,
        response: Mapping[str, Any],
        *,
        expected_challenge: str,
        expected_origin: str,
        expected_rp_id: str,
    ) -> VerifiedRegistration:
        verified = verify_registration_response(
            credential=dict(response),
            expected_challenge=base64url_to_bytes(expected_challenge),
            expected_origin=expected_origin,
            expected_rp_id=expected_rp_id,
            require_user_verification=True,
            supported_pub_key_algs=self._algorithms,
        )
        return VerifiedRegistration(
            credential_id=bytes_to_base64url(verified.credential_id),
            public_key=bytes_to_base64url(verified.credential_public_key),
            sign_count=verified.sign_count,
            aaguid=verified.aaguid or None,
        )

    def verify_authentication(
        self,
        response: Mapping[str, Any],
        *,
        expected_challenge: str,
        expected_origin: str,
        expected_rp_id: str,
        public_key: str,
    ) -> VerifiedAuthentication:
        verified = verify_authentication_response(
            credential=dict(response),
            expected_challenge=base64url_to_bytes(expected_challenge),
            expected_origin=expected_origin,
            expected_rp_id=expected_rp_id,
            credential_public_key=base64url_to_bytes(public_key),
            credential_current_sign_count=0,
            require_user_verification=True,
        )
        return VerifiedAuthentication(
            credential_id=bytes_to_base64url(verified.credential_id),
            new_sign_count=verified.new_sign_count,
        )


__all__: list[str] = ["PyWebAuthnVerifier"]
