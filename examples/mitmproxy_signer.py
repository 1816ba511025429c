"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

Sample mitmproxy add-on that signs every proxied request with SigV4.

Run with::

    AWS_REGION=us-east-1 mitmdump -s examples/mitmproxy_signer.py

Credentials are read from ``AWS_ACCESS_KEY_ID``, ``AWS_SECRET_ACCESS_KEY`` and the
optional ``AWS_SESSION_TOKEN``. The signing service is inferred from the host and
the region is taken from ``AWS_REGION`` when set.
"""

import logging
import os

from mitmproxy import http

from aws_sigv4_headers import (
    URI,
    AWSCredentialIdentity,
    AWSRequest,
    Fields,
    SigV4Signer,
    SigV4SigningProperties,
    apply_signed_headers,
)
from aws_sigv4_headers.exceptions import BaseSigV4Exception

logger = logging.getLogger(__name__)


class AwsSignatureHeaders:
    def __init__(self, region: str | None = None):
        self._signer = SigV4Signer()
        self._properties = SigV4SigningProperties()
        if region is not None:
            self._properties["region"] = region

    def _identity(self) -> AWSCredentialIdentity:
        return AWSCredentialIdentity(
            access_key_id=os.environ["AWS_ACCESS_KEY_ID"],
            secret_access_key=os.environ["AWS_SECRET_ACCESS_KEY"],
            session_token=os.environ.get("AWS_SESSION_TOKEN"),
        )

    def request(self, flow: http.HTTPFlow) -> None:
        req = flow.request
        # Only the host header is signed, so it must match what is sent upstream.
        fields = Fields.from_mapping(
            {k: v for k, v in req.headers.items() if k.lower() == "host"}
        )
        path, _, query = req.path.partition("?")
        aws_request = AWSRequest(
            destination=URI(
                scheme=req.scheme,
                host=req.pretty_host,
                port=None if req.port in (80, 443) else req.port,
                path=path,
                query=query,
            ),
            method=req.method,
            body=req.raw_content or b"",
            fields=fields,
        )
        try:
            signed = self._signer.generate_signature_headers(
                request=aws_request,
                identity=self._identity(),
                properties=self._properties,
            )
        except BaseSigV4Exception:
            logger.exception("Failed to sign request to %s", req.pretty_url)
            flow.response = http.Response.make(
                502, b"Unable to sign request", {"Content-Type": "text/plain"}
            )
            return
        apply_signed_headers(req.headers, signed)


addons = [AwsSignatureHeaders(region=os.environ.get("AWS_REGION"))]
