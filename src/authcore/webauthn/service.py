"""WebAuthn orchestrator: registration and authentication ceremonies.

Registration::

    start_registration ──challenge stored under challenge:registration:{user}──▶
    complete_registration ──challenge consumed, attestation verified──▶ credential

Authentication, traditional (user known up front)::

    start_authentication(user_id) ──challenge:authentication:{user}──▶
    complete_authentication ──assertion verified, counter advanced──▶ user_id

Authentication, discoverable (passwordless)::

    start_authentication() ──challenge:discoverable:{challenge}──▶
    complete_authentication ──user resolved from userHandle──▶ user_id

Challenges are consumed with an atomic get-and-delete as soon as they are
looked up, so a captured response can be submitted at most once.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from webauthn import (
    generate_authentication_options,
    generate_registration_options,
    options_to_json,
)
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url
from webauthn.helpers.cose import COSEAlgorithmIdentifier
from webauthn.helpers.structs import (
    AttestationConveyancePreference,
    AuthenticatorSelectionCriteria,
    AuthenticatorTransport,
    PublicKeyCredentialDescriptor,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from ..challenges import (
    ChallengePurpose,
    IChallengeStore,
    discoverable_challenge_key,
    user_challenge_key,
)
from ..config import WebAuthnConfig
from ..exceptions import DuplicateCredentialError
from ..observability import AuthCoreMetrics
from ..result import ErrorCode, Result, catch_infrastructure_faults
from .encoding import (
    decode_user_handle,
    extract_client_challenge,
    extract_transports,
    normalize_credential_id,
)
from .models import AuthenticationOutcome, CredentialSummary, WebAuthnCredential
from .ports import IWebAuthnCredentialStore, IWebAuthnVerifier

logger = logging.getLogger("authcore.webauthn")

REGISTRATION = "registration"
AUTHENTICATION = "authentication"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _descriptors(
    credentials: list[WebAuthnCredential],
) -> list[PublicKeyCredentialDescriptor]:
    descriptors = []
    for credential in credentials:
        transports = []
        for name in credential.transports:
            try:
                transports.append(AuthenticatorTransport(name))
            except ValueError:
                logger.debug("Ignoring unknown transport %r", name)
        descriptors.append(
            PublicKeyCredentialDescriptor(
                id=base64url_to_bytes(credential.credential_id),
                transports=transports or None,
            )
        )
    return descriptors


class WebAuthnService:
    """Issues, binds and consumes WebAuthn challenges.

    Example:
        ```python
        config = WebAuthnConfig(max_devices=5)
        service = WebAuthnService(
            store=SQLAlchemyWebAuthnStore(session_factory),
            challenges=RedisChallengeStore(redis),
            verifier=PyWebAuthnVerifier.from_config(config),
            config=config,
        )

        options = await service.start_registration(
            "user-123", "alice@example.com", rp_name="Example", rp_id="example.com"
        )
        # browser: navigator.credentials.create(options.value)
        stored = await service.complete_registration(
            "user-123", response, rp_id="example.com", origin="https://example.com"
        )
        ```
    """

    def __init__(
        self,
        *,
        store: IWebAuthnCredentialStore,
        challenges: IChallengeStore,
        verifier: IWebAuthnVerifier,
        config: WebAuthnConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._challenges = challenges
        self._verifier = verifier
        self.config = config or WebAuthnConfig()
        self._clock = clock

    # ═══════════════════════════════════════════════════════════
    # REGISTRATION
    # ═══════════════════════════════════════════════════════════

    @catch_infrastructure_faults("webauthn.start_registration")
    async def start_registration(
        self,
        user_id: str,
        user_name: str,
        *,
        rp_name: str,
        rp_id: str,
        display_name: str | None = None,
    ) -> Result[dict[str, Any]]:
        """Issue creation options for a new authenticator.

        Returns:
            ``PublicKeyCredentialCreationOptions`` as a JSON-ready dict.
        """
        existing = await self._store.list_by_user(user_id)
        if len(existing) >= self.config.max_devices:
            return Result.fail(
                ErrorCode.DEVICE_LIMIT_EXCEEDED,
                f"Maximum of {self.config.max_devices} devices reached",
            )

        options = generate_registration_options(
            rp_id=rp_id,
            rp_name=rp_name,
            user_id=user_id.encode("utf-8"),
            user_name=user_name,
            user_display_name=display_name or user_name,
            timeout=self.config.timeout_ms,
            attestation=AttestationConveyancePreference.NONE,
            authenticator_selection=AuthenticatorSelectionCriteria(
                resident_key=ResidentKeyRequirement.REQUIRED,
                require_resident_key=True,
                user_verification=UserVerificationRequirement.REQUIRED,
            ),
            exclude_credentials=_descriptors(existing),
            supported_pub_key_algs=[
                COSEAlgorithmIdentifier(alg) for alg in self.config.supported_algorithms
            ],
        )
        await self._challenges.put(
            user_challenge_key(ChallengePurpose.REGISTRATION, user_id),
            bytes_to_base64url(options.challenge),
            self.config.challenge_ttl,
        )
        logger.debug("Issued registration challenge for user %s", user_id)
        return Result.ok(json.loads(options_to_json(options)))

    @catch_infrastructure_faults("webauthn.complete_registration")
    async def complete_registration(
        self,
        user_id: str,
        response: Mapping[str, Any],
        *,
        rp_id: str,
        origin: str,
        device_name: str | None = None,
    ) -> Result[CredentialSummary]:
        """Verify the attestation and persist the new credential."""
        challenge = await self._challenges.get_and_delete(
            user_challenge_key(ChallengePurpose.REGISTRATION, user_id)
        )
        if challenge is None:
            return self._fail(
                REGISTRATION,
                ErrorCode.CHALLENGE_NOT_FOUND,
                "Registration challenge not found or expired",
            )

        try:
            verified = self._verifier.verify_registration(
                response,
                expected_challenge=challenge,
                expected_origin=origin,
                expected_rp_id=rp_id,
            )
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "Registration verification failed for user %s: %s",
                user_id,
                type(e).__name__,
            )
            return self._fail(
                REGISTRATION, ErrorCode.VERIFICATION_FAILED, "Registration failed"
            )

        if await self._store.count_by_user(user_id) >= self.config.max_devices:
            return self._fail(
                REGISTRATION,
                ErrorCode.DEVICE_LIMIT_EXCEEDED,
                f"Maximum of {self.config.max_devices} devices reached",
            )
        if await self._store.find_by_credential_id(verified.credential_id):
            return self._fail(
                REGISTRATION,
                ErrorCode.INVALID_CREDENTIAL,
                "Authenticator is already registered",
            )

        credential = WebAuthnCredential(
            id=str(uuid.uuid4()),
            user_id=user_id,
            credential_id=verified.credential_id,
            public_key=verified.public_key,
            counter=verified.sign_count,
            created_at=self._clock(),
            transports=extract_transports(response),
            device_name=(device_name or "").strip() or self.config.default_device_name,
            aaguid=verified.aaguid,
        )
        try:
            await self._store.create(credential)
        except DuplicateCredentialError:
            return self._fail(
                REGISTRATION,
                ErrorCode.INVALID_CREDENTIAL,
                "Authenticator is already registered",
            )

        logger.info(
            "Registered WebAuthn credential %s for user %s", credential.id, user_id
        )
        AuthCoreMetrics.record_webauthn(REGISTRATION, "success")
        return Result.ok(credential.summary())

    # ═══════════════════════════════════════════════════════════
    # AUTHENTICATION
    # ═══════════════════════════════════════════════════════════

    @catch_infrastructure_faults("webauthn.start_authentication")
    async def start_authentication(
        self,
        *,
        rp_id: str,
        user_id: str | None = None,
    ) -> Result[dict[str, Any]]:
        """Issue request options.

        With *user_id* the allow-list names that user's credentials.
        Without it the allow-list is empty and the authenticator offers
        its resident keys (passwordless).

        Returns:
            ``PublicKeyCredentialRequestOptions`` as a JSON-ready dict.
        """
        allow: list[PublicKeyCredentialDescriptor] = []
        if user_id is not None:
            credentials = await self._store.list_by_user(user_id)
            if not credentials:
                return Result.fail(
                    ErrorCode.NOT_ENROLLED, "No WebAuthn credentials registered"
                )
            allow = _descriptors(credentials)

        options = generate_authentication_options(
            rp_id=rp_id,
            timeout=self.config.timeout_ms,
            allow_credentials=allow,
            user_verification=UserVerificationRequirement.REQUIRED,
        )
        challenge = bytes_to_base64url(options.challenge)
        if user_id is not None:
            key = user_challenge_key(ChallengePurpose.AUTHENTICATION, user_id)
        else:
            key = discoverable_challenge_key(challenge)
        await self._challenges.put(key, challenge, self.config.challenge_ttl)

        logger.debug(
            "Issued %s authentication challenge",
            "discoverable" if user_id is None else "user-bound",
        )
        return Result.ok(json.loads(options_to_json(options)))

    @catch_infrastructure_faults("webauthn.complete_authentication")
    async def complete_authentication(
        self,
        response: Mapping[str, Any],
        *,
        rp_id: str,
        origin: str,
        user_id: str | None = None,
    ) -> Result[AuthenticationOutcome]:
        """Verify an assertion and advance the credential's counter.

        The user is taken from the response's user handle when present,
        otherwise from *user_id*.
        """
        resolved_user = decode_user_handle(response) or user_id
        if not resolved_user:
            return self._fail(
                AUTHENTICATION,
                ErrorCode.INVALID_CREDENTIAL,
                "Unable to identify the user for this assertion",
            )

        challenge = await self._consume_authentication_challenge(
            resolved_user, response
        )
        if challenge is None:
            return self._fail(
                AUTHENTICATION,
                ErrorCode.CHALLENGE_NOT_FOUND,
                "Authentication challenge not found or expired",
            )

        credential_id = normalize_credential_id(response)
        credential = (
            await self._store.find_by_credential_id(credential_id)
            if credential_id
            else None
        )
        if credential is None:
            return self._fail(
                AUTHENTICATION, ErrorCode.CREDENTIAL_NOT_FOUND, "Credential not found"
            )
        if credential.user_id != resolved_user:
            logger.warning(
                "Credential %s presented for user %s but owned by another user",
                credential.id,
                resolved_user,
            )
            return self._fail(
                AUTHENTICATION,
                ErrorCode.INVALID_CREDENTIAL,
                "Credential does not belong to this user",
            )

        try:
            verified = self._verifier.verify_authentication(
                response,
                expected_challenge=challenge,
                expected_origin=origin,
                expected_rp_id=rp_id,
                public_key=credential.public_key,
            )
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "Assertion verification failed for credential %s: %s",
                credential.id,
                type(e).__name__,
            )
            return self._fail(
                AUTHENTICATION, ErrorCode.VERIFICATION_FAILED, "Authentication failed"
            )

        new_counter = verified.new_sign_count
        if not self.counter_advanced(credential.counter, new_counter) or not (
            await self._store.update_counter(
                credential.credential_id,
                expected_counter=credential.counter,
                new_counter=new_counter,
                used_at=self._clock(),
            )
        ):
            logger.warning(
                "Signature counter did not advance for credential %s "
                "(stored=%d, reported=%d); possible cloned authenticator",
                credential.id,
                credential.counter,
                new_counter,
            )
            return self._fail(
                AUTHENTICATION,
                ErrorCode.COUNTER_MISMATCH,
                "Signature counter did not increase",
            )

        AuthCoreMetrics.record_webauthn(AUTHENTICATION, "success")
        return Result.ok(
            AuthenticationOutcome(
                user_id=resolved_user, credential_id=credential.credential_id
            )
        )

    def counter_advanced(self, stored: int, reported: int) -> bool:
        """Apply the signature-counter replay policy.

        The reported counter must be strictly greater than the stored one.
        When both are zero the authenticator does not implement counters;
        this is accepted only while ``allow_counterless_authenticators``
        is enabled.
        """
        if reported > stored:
            return True
        return (
            self.config.allow_counterless_authenticators
            and stored == 0
            and reported == 0
        )

    async def _consume_authentication_challenge(
        self, user_id: str, response: Mapping[str, Any]
    ) -> str | None:
        challenge = await self._challenges.get_and_delete(
            user_challenge_key(ChallengePurpose.AUTHENTICATION, user_id)
        )
        if challenge is not None:
            return challenge

        # Passwordless: the key is the challenge itself, read from clientDataJSON
        signed = extract_client_challenge(response)
        if signed is None:
            return None
        return await self._challenges.get_and_delete(discoverable_challenge_key(signed))

    # ═══════════════════════════════════════════════════════════
    # DEVICE MANAGEMENT
    # ═══════════════════════════════════════════════════════════

    @catch_infrastructure_faults("webauthn.list_credentials")
    async def list_credentials(self, user_id: str) -> Result[list[CredentialSummary]]:
        credentials = await self._store.list_by_user(user_id)
        return Result.ok([credential.summary() for credential in credentials])

    @catch_infrastructure_faults("webauthn.rename_credential")
    async def rename_credential(
        self, user_id: str, id: str, device_name: str
    ) -> Result[CredentialSummary]:
        name = device_name.strip()
        if not name:
            return Result.fail(ErrorCode.INVALID_REQUEST, "Device name is required")

        owned = await self._owned_credential(user_id, id)
        if not owned:
            return Result.from_failure(owned.error)
        if not await self._store.update_name(id, name):
            return Result.fail(ErrorCode.CREDENTIAL_NOT_FOUND, "Credential not found")

        updated = await self._store.find_by_id(id)
        if updated is None:
            return Result.fail(ErrorCode.CREDENTIAL_NOT_FOUND, "Credential not found")
        return Result.ok(updated.summary())

    @catch_infrastructure_faults("webauthn.delete_credential")
    async def delete_credential(self, user_id: str, id: str) -> Result[bool]:
        owned = await self._owned_credential(user_id, id)
        if not owned:
            return Result.from_failure(owned.error)
        if not await self._store.delete(id):
            return Result.fail(ErrorCode.CREDENTIAL_NOT_FOUND, "Credential not found")
        logger.info("Deleted WebAuthn credential %s for user %s", id, user_id)
        return Result.ok(True)

    async def _owned_credential(
        self, user_id: str, id: str
    ) -> Result[WebAuthnCredential]:
        credential = await self._store.find_by_id(id)
        if credential is None:
            return Result.fail(ErrorCode.CREDENTIAL_NOT_FOUND, "Credential not found")
        if credential.user_id != user_id:
            return Result.fail(
                ErrorCode.INVALID_CREDENTIAL, "Credential does not belong to this user"
            )
        return Result.ok(credential)

    @staticmethod
    def _fail(ceremony: str, code: ErrorCode, message: str) -> Result[Any]:
        AuthCoreMetrics.record_webauthn(ceremony, code.value)
        return Result.fail(code, message)


__all__: list[str] = ["WebAuthnService"]
