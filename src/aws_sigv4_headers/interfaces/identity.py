# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Identity(Protocol):
    """An entity available to the signer representing who the caller is."""

    expiration: datetime | None = None
    """The expiration time of the identity, always in UTC."""

    @property
    def is_expired(self) -> bool:
        """Whether the identity is expired."""
        if self.expiration is None:
            return False
        return datetime.now(tz=UTC) >= self.expiration


@runtime_checkable
class AWSCredentialsIdentity(Identity, Protocol):
    """Resolved AWS credentials handed to the signer by the caller."""

    access_key_id: str
    """A unique identifier for an AWS user or role."""

    secret_access_key: str
    """The secret half of the key pair, used only to derive the signing key."""

    session_token: str | None = None
    """A temporary token for session credentials.

    When set it is signed as ``x-amz-security-token`` and returned as a header.
    """
