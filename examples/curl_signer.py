"""
Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
SPDX-License-Identifier: Apache-2.0

Sample signer producing a curl command.
"""

import shlex
import typing
from collections.abc import Mapping
from urllib.parse import urlparse, urlunparse

from aws_sigv4_headers import URI, AWSRequest, Fields, SigV4Signer

if typing.TYPE_CHECKING:
    from aws_sigv4_headers import AWSCredentialIdentity, SigV4SigningProperties


class SigV4Curl:
    """Generates a curl command with a SigV4 signature applied."""

    signer = SigV4Signer()

    @classmethod
    def generate_signed_curl_cmd(
        cls,
        properties: "SigV4SigningProperties",
        identity: "AWSCredentialIdentity",
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes = b"",
    ) -> str:
        url_parts = urlparse(url)
        uri = URI(
            scheme=url_parts.scheme,
            host=url_parts.hostname or "",
            port=url_parts.port,
            path=url_parts.path,
            query=url_parts.query,
        )
        awsrequest = AWSRequest(
            destination=uri,
            method=method,
            body=body,
            fields=Fields.from_mapping(headers),
        )
        signed_request = cls.signer.sign(
            properties=properties,
            request=awsrequest,
            identity=identity,
        )
        return cls._construct_curl_cmd(request=signed_request, url=url_parts)

    @classmethod
    def _construct_curl_cmd(cls, request: AWSRequest, url: typing.Any) -> str:
        cmd_list = ["curl", "-X", request.method.upper()]
        for header in request.fields:
            cmd_list += ["-H", f"{header.name}: {header.as_string()}"]
        if request.body:
            # Arbitrary bytes can't be passed on the command line, so binary
            # bodies are expected to be written to a file instead.
            cmd_list += ["--data-binary", request.body.decode()]
        cmd_list.append(urlunparse(url))
        return shlex.join(cmd_list)
