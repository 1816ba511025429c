# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import hmac
import logging
from collections.abc import MutableMapping
from copy import deepcopy
from dataclasses import dataclass
from hashlib import sha256
from typing import TypedDict
from urllib.parse import quote

from ._http import AWSRequest, Field
from ._identity import AWSCredentialIdentity
from ._scope import ServiceScope, SigningTimestamp, resolve_service_scope
from .exceptions import EncodingError, MalformedRequestError
from .interfaces.identity import AWSCredentialsIdentity as _AWSCredentialsIdentity

logger = logging.getLogger(__name__)

ALGORITHM: str = "AWS4-HMAC-SHA256"
SCOPE_TERMINATOR: str = "aws4_request"
EMPTY_SHA256_HASH = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

AUTHORIZATION_HEADER = "Authorization"
AMZ_DATE_HEADER = "x-amz-date"
CONTENT_SHA256_HEADER = "x-amz-content-sha256"
SECURITY_TOKEN_HEADER = "x-amz-security-token"

# Printable ASCII left untouched in the canonical URI. Controls, non-ASCII, space
# and the path percent-encode set ("#<>?`{}) are escaped.
_PATH_SAFE_CHARS = "!$%&'()*+,/:;=@[\\]^|"


class SigV4SigningProperties(TypedDict, total=False):
    service: str
    region: str
    date: str


@dataclass(frozen=True)
class CanonicalRequest:
    """Output of the first signing step.

    The payload hash and signed header list are reused when building the final
    headers, so they are carried alongside the canonical request itself.
    """

    request: str
    payload_hash: str
    signed_headers: str


@dataclass(frozen=True)
class SignedHeaderSet:
    """Headers to merge into the outbound request once signing succeeds."""

    authorization: str
    amz_date: str
    content_sha256: str
    security_token: str | None = None

    def as_dict(self) -> dict[str, str]:
        headers = {
            AUTHORIZATION_HEADER: self.authorization,
            AMZ_DATE_HEADER: self.amz_date,
            CONTENT_SHA256_HEADER: self.content_sha256,
        }
        if self.security_token:
            headers[SECURITY_TOKEN_HEADER] = self.security_token
        return headers


class SigV4Signer:
    """Request signer producing AWS Signature Version 4 authorization headers.

    Every step is exposed as its own method taking and returning plain values, so
    intermediate results such as the canonical request can be compared against a
    service's expectations when diagnosing a signature mismatch. The signer holds
    no state and a single instance may be shared between threads.
    """

    def sign(
        self,
        *,
        request: AWSRequest,
        identity: AWSCredentialIdentity,
        properties: SigV4SigningProperties | None = None,
    ) -> AWSRequest:
        """Generate and apply a SigV4 signature to a copy of the supplied request.

        Signing headers replace any existing headers of the same name. The original
        request is not modified.

        :param request: An AWSRequest to sign prior to sending to the service.
        :param identity: A set of credentials representing an AWS identity.
        :param properties: Optional service, region, and date overrides.
        """
        signed = self.generate_signature_headers(
            request=request, identity=identity, properties=properties
        )
        new_request = deepcopy(request)
        for name, value in signed.as_dict().items():
            new_request.fields.set_field(Field(name=name, values=[value]))
        return new_request

    def generate_signature_headers(
        self,
        *,
        request: AWSRequest,
        identity: AWSCredentialIdentity,
        properties: SigV4SigningProperties | None = None,
    ) -> SignedHeaderSet:
        """Run every signing step and return the headers for the request.

        The clock is read at most once, and the resulting timestamp is used for the
        canonical request, the credential scope, and the ``x-amz-date`` header.

        :param request: The request to sign. It is not modified.
        :param identity: A set of credentials representing an AWS identity.
        :param properties: Optional service, region, and date overrides. Missing
            service or region values are inferred from the request host.
        """
        self._validate_identity(identity=identity)
        properties = properties or SigV4SigningProperties()

        timestamp = self._resolve_timestamp(properties=properties)
        scope = resolve_service_scope(
            self._inference_host(request=request),
            service=properties.get("service"),
            region=properties.get("region"),
        )
        # An empty token is the same as no token.
        security_token = identity.session_token or None

        canonical_request = self.canonical_request(
            request=request, timestamp=timestamp, security_token=security_token
        )
        logger.debug(
            "Canonical request:\n%s",
            self._redact(canonical_request.request, secret=security_token),
        )

        string_to_sign = self.string_to_sign(
            canonical_request=canonical_request.request,
            timestamp=timestamp,
            scope=scope,
        )
        logger.debug("String to sign:\n%s", string_to_sign)

        signature = self.signature(
            string_to_sign=string_to_sign,
            secret_key=identity.secret_access_key,
            timestamp=timestamp,
            scope=scope,
        )
        authorization = self.authorization_header(
            access_key_id=identity.access_key_id,
            credential_scope=self.credential_scope(timestamp=timestamp, scope=scope),
            signed_headers=canonical_request.signed_headers,
            signature=signature,
        )
        return self.signing_headers(
            timestamp=timestamp,
            canonical_request=canonical_request,
            authorization=authorization,
            security_token=security_token,
        )

    def canonical_query(self, query: str | None) -> str:
        """Sort raw query parameters by name.

        Parameters are split on ``&`` and ``=`` but never decoded or re-encoded, so
        values the caller already percent-encoded are signed exactly as they will be
        sent. Parameters sharing a name keep their original relative order.
        A parameter without ``=`` is intentionally signed as ``key=`` and everything
        after the first ``=`` is kept as the value, matching how AWS canonicalizes
        queries.
        """
        if not query:
            return ""

        query_pairs: list[tuple[str, str]] = []
        for part in query.split("&"):
            if not part:
                continue
            key, _, value = part.partition("=")
            query_pairs.append((key, value))

        query_pairs.sort(key=lambda pair: pair[0])
        return "&".join(f"{key}={value}" for key, value in query_pairs)

    def canonical_request(
        self,
        *,
        request: AWSRequest,
        timestamp: SigningTimestamp,
        security_token: str | None = None,
    ) -> CanonicalRequest:
        """The canonical request is a standardized string laying out the components
        used in the SigV4 signing algorithm.

        The SigV4 specification defines the canonical request to be:
            <HTTPMethod>\\n
            <CanonicalURI>\\n
            <CanonicalQueryString>\\n
            <CanonicalHeaders>\\n
            <SignedHeaders>\\n
            <HashedPayload>

        Only ``host``, ``x-amz-date`` and, for session credentials,
        ``x-amz-security-token`` are signed. Other request headers are ignored.

        :param request: An AWSRequest to use for generating a SigV4 signature.
        :param timestamp: The timestamp of this signing operation.
        :param security_token: Session token to sign, if any.
        :raises EncodingError: If a text body is not valid UTF-8.
        :raises MalformedRequestError: If no host is available for the request.
        """
        # The payload is validated first so a bad body fails before anything else
        # is assembled.
        payload_hash = self._payload_hash(request=request)
        canonical_path = self._format_canonical_path(path=request.destination.path)
        canonical_query = self.canonical_query(request.destination.query)

        canonical_headers = (
            f"host:{self._resolve_host(request=request)}\n"
            f"{AMZ_DATE_HEADER}:{timestamp.amz_date}\n"
        )
        signed_headers = f"host;{AMZ_DATE_HEADER}"
        if security_token:
            canonical_headers += f"{SECURITY_TOKEN_HEADER}:{security_token}\n"
            signed_headers += f";{SECURITY_TOKEN_HEADER}"

        canonical_request = (
            f"{request.method.upper()}\n"
            f"{canonical_path}\n"
            f"{canonical_query}\n"
            f"{canonical_headers}\n"
            f"{signed_headers}\n"
            f"{payload_hash}"
        )
        return CanonicalRequest(
            request=canonical_request,
            payload_hash=payload_hash,
            signed_headers=signed_headers,
        )

    def string_to_sign(
        self,
        *,
        canonical_request: str,
        timestamp: SigningTimestamp,
        scope: ServiceScope,
    ) -> str:
        """The string to sign concatenates the formal identifier of the signing
        algorithm, the signing timestamp, the scope of the credentials, and a hash of
        the canonical request.

        The SigV4 specification defines the string to sign as:
            Algorithm \\n
            RequestDateTime \\n
            CredentialScope  \\n
            HashedCanonicalRequest
        """
        return (
            f"{ALGORITHM}\n"
            f"{timestamp.amz_date}\n"
            f"{self.credential_scope(timestamp=timestamp, scope=scope)}\n"
            f"{sha256(canonical_request.encode()).hexdigest()}"
        )

    def credential_scope(
        self, *, timestamp: SigningTimestamp, scope: ServiceScope
    ) -> str:
        # Scope format: <YYYYMMDD>/<AWS Region>/<AWS Service>/aws4_request
        date, region, service = timestamp.datestamp, scope.region, scope.service
        return f"{date}/{region}/{service}/{SCOPE_TERMINATOR}"

    def signing_key(
        self, *, secret_key: str, timestamp: SigningTimestamp, scope: ServiceScope
    ) -> bytes:
        """Derive the signing key scoped to a date, region and service.

        Each stage is keyed with the raw digest of the previous one.
        """

        # Components of Signing Key Calculation
        #
        # DateKey              = HMAC-SHA256("AWS4"+"<SecretAccessKey>", "<YYYYMMDD>")
        # DateRegionKey        = HMAC-SHA256(<DateKey>, "<aws-region>")
        # DateRegionServiceKey = HMAC-SHA256(<DateRegionKey>, "<aws-service>")
        # SigningKey = HMAC-SHA256(<DateRegionServiceKey>, "aws4_request")
        k_date = self._hash(key=f"AWS4{secret_key}".encode(), value=timestamp.datestamp)
        k_region = self._hash(key=k_date, value=scope.region)
        k_service = self._hash(key=k_region, value=scope.service)
        return self._hash(key=k_service, value=SCOPE_TERMINATOR)

    def signature(
        self,
        *,
        string_to_sign: str,
        secret_key: str,
        timestamp: SigningTimestamp,
        scope: ServiceScope,
    ) -> str:
        """Sign the string to sign with the derived signing key."""
        k_signing = self.signing_key(
            secret_key=secret_key, timestamp=timestamp, scope=scope
        )
        return self._hash(key=k_signing, value=string_to_sign).hex()

    def authorization_header(
        self,
        *,
        access_key_id: str,
        credential_scope: str,
        signed_headers: str,
        signature: str,
    ) -> str:
        """Generate the ``Authorization`` header value.

        :param access_key_id: The access key the signature was made for.
        :param credential_scope:
            Defined as: <date>/<region>/<service>/aws4_request
        :param signed_headers: Semicolon-joined names of the signed headers.
        :param signature: Final hex digest of the string to sign.
        """
        return (
            f"{ALGORITHM} Credential={access_key_id}/{credential_scope}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )

    def signing_headers(
        self,
        *,
        timestamp: SigningTimestamp,
        canonical_request: CanonicalRequest,
        authorization: str,
        security_token: str | None = None,
    ) -> SignedHeaderSet:
        return SignedHeaderSet(
            authorization=authorization,
            amz_date=timestamp.amz_date,
            content_sha256=canonical_request.payload_hash,
            security_token=security_token,
        )

    def _redact(self, value: str, *, secret: str | None) -> str:
        if not secret:
            return value
        return value.replace(secret, "***")

    def _hash(self, key: bytes, value: str) -> bytes:
        return hmac.new(key=key, msg=value.encode(), digestmod=sha256).digest()

    def _validate_identity(self, *, identity: AWSCredentialIdentity) -> None:
        """Perform runtime and expiration checks before attempting signing."""
        if not isinstance(identity, _AWSCredentialsIdentity):  # pyright: ignore
            raise ValueError(
                "Received unexpected value for identity parameter. Expected "
                f"AWSCredentialIdentity but received {type(identity)}."
            )
        elif identity.is_expired:
            raise ValueError(
                f"Provided identity expired at {identity.expiration}. Please "
                "refresh the credentials or update the expiration parameter."
            )
        elif not identity.access_key_id or not identity.secret_access_key:
            raise MalformedRequestError(
                "Both access_key_id and secret_access_key are required to sign."
            )

    def _resolve_timestamp(
        self, *, properties: SigV4SigningProperties
    ) -> SigningTimestamp:
        if (date := properties.get("date")) is not None:
            return SigningTimestamp.from_amz_date(date)
        return SigningTimestamp.now()

    def _resolve_host(self, *, request: AWSRequest) -> str:
        # A host header supplied by the caller is signed exactly as it will be sent.
        if (host_field := request.fields.get("host")) is not None:
            return host_field.as_string()
        if not request.destination.host:
            raise MalformedRequestError(
                "Cannot sign a request without a host header or destination host."
            )
        return request.destination.netloc

    def _inference_host(self, *, request: AWSRequest) -> str:
        if request.destination.host:
            return request.destination.host
        if (host_field := request.fields.get("host")) is not None:
            host = host_field.as_string()
            # Bracketed IPv6 literals keep their colons; only a trailing port is cut.
            if host.startswith("[") and "]" in host:
                return host[: host.index("]") + 1]
            name, _, port = host.rpartition(":")
            return name if name and port.isdigit() else host
        raise MalformedRequestError(
            "Cannot infer service and region for a request without a host."
        )

    def _format_canonical_path(self, *, path: str | None) -> str:
        if not path:
            path = "/"
        return quote(string=path, safe=_PATH_SAFE_CHARS)

    def _payload_hash(self, *, request: AWSRequest) -> str:
        body = request.body
        if not request.body_is_binary:
            try:
                body.decode("utf-8")
            except UnicodeDecodeError as e:
                raise EncodingError(
                    "Request body was declared as text but is not valid UTF-8. "
                    "Set body_is_binary=True to sign arbitrary bytes."
                ) from e
        if not body:
            return EMPTY_SHA256_HASH
        return sha256(body).hexdigest()


def apply_signed_headers(
    headers: MutableMapping[str, str], signed: SignedHeaderSet
) -> None:
    """Merge signing headers into a live request's header mapping.

    Existing headers whose names match a signing header, ignoring case, are
    replaced.
    """
    for name, value in signed.as_dict().items():
        for existing in [key for key in headers if key.lower() == name.lower()]:
            headers.pop(existing, None)
        headers[name] = value
