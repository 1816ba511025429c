# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""AWS SigV4 Headers computes AWS Signature Version 4 authentication headers for an
outbound HTTP request so a proxy or HTTP client can inject them before sending."""

from __future__ import annotations

from ._http import URI, AWSRequest, Field, Fields
from ._identity import AWSCredentialIdentity
from ._scope import (
    ServiceScope,
    SigningTimestamp,
    infer_service_scope,
    resolve_service_scope,
)
from .signers import (
    CanonicalRequest,
    SignedHeaderSet,
    SigV4Signer,
    SigV4SigningProperties,
    apply_signed_headers,
)

__license__ = "Apache-2.0"
__version__ = "0.1.0"

__all__ = (
    "URI",
    "AWSCredentialIdentity",
    "AWSRequest",
    "CanonicalRequest",
    "Field",
    "Fields",
    "ServiceScope",
    "SigV4Signer",
    "SigV4SigningProperties",
    "SignedHeaderSet",
    "SigningTimestamp",
    "apply_signed_headers",
    "infer_service_scope",
    "resolve_service_scope",
)
