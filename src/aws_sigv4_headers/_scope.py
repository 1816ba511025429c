# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import datetime
import logging
import re
import warnings
from dataclasses import dataclass
from typing import Self

from .exceptions import InferenceError, MalformedRequestError, SigV4Warning

logger = logging.getLogger(__name__)

SIGV4_TIMESTAMP_FORMAT: str = "%Y%m%dT%H%M%SZ"
SIGV4_DATESTAMP_FORMAT: str = "%Y%m%d"
GLOBAL_ENDPOINT_LABEL: str = "amazonaws"
GLOBAL_ENDPOINT_REGION: str = "us-east-1"
STANDARD_ENDPOINT_SUFFIX: str = ".amazonaws.com"

_AMZ_DATE_RE = re.compile(r"\d{8}T\d{6}Z")


@dataclass(frozen=True)
class SigningTimestamp:
    """The ``x-amz-date`` timestamp and credential scope date of one signature.

    Both strings are always rendered from the same instant so the scope date can
    never disagree with the request timestamp.
    """

    amz_date: str
    """``YYYYMMDD'T'HHMMSS'Z'``"""

    datestamp: str
    """``YYYYMMDD``"""

    @classmethod
    def from_datetime(cls, instant: datetime.datetime) -> Self:
        """Render both strings from a single instant.

        Aware datetimes are converted to UTC. Naive datetimes are assumed to
        already be in UTC.
        """
        if instant.tzinfo is not None:
            instant = instant.astimezone(datetime.UTC)
        return cls(
            amz_date=instant.strftime(SIGV4_TIMESTAMP_FORMAT),
            datestamp=instant.strftime(SIGV4_DATESTAMP_FORMAT),
        )

    @classmethod
    def from_amz_date(cls, amz_date: str) -> Self:
        """Parse a pre-formatted ``x-amz-date`` value.

        The value must already be zero-padded, so it is signed exactly as given.
        """
        message = (
            f"Expected a date formatted as YYYYMMDD'T'HHMMSS'Z' but received "
            f"{amz_date!r}."
        )
        if not _AMZ_DATE_RE.fullmatch(amz_date):
            raise MalformedRequestError(message)
        try:
            instant = datetime.datetime.strptime(amz_date, SIGV4_TIMESTAMP_FORMAT)
        except ValueError as e:
            raise MalformedRequestError(message) from e
        return cls.from_datetime(instant)

    @classmethod
    def now(cls) -> Self:
        """Read the clock once and capture the current UTC instant."""
        return cls.from_datetime(datetime.datetime.now(datetime.UTC))


@dataclass(frozen=True)
class ServiceScope:
    service: str
    region: str


def infer_service_scope(host: str) -> ServiceScope:
    """Guess the signing service and region from an endpoint hostname.

    The first label is taken as the service and the second as the region, except
    for the global ``service.amazonaws.com`` shape which maps to ``us-east-1``.
    This only holds for hosts shaped like ``service.region.amazonaws.com``;
    anything else should have its service and region supplied explicitly.

    :param host: Hostname without a port, for example ``sqs.eu-west-1.amazonaws.com``.
    :raises InferenceError: If the host has fewer than two dot-separated labels.
    """
    labels = host.split(".")
    if len(labels) < 2 or not labels[0] or not labels[1]:
        raise InferenceError(
            f"Cannot infer service and region from host {host!r}. Expected a host "
            "of the form <service>.<region>.amazonaws.com; supply service and "
            "region explicitly instead."
        )
    if not host.lower().endswith(STANDARD_ENDPOINT_SUFFIX):
        warnings.warn(
            f"Inferring service and region from non-standard host {host!r}. The "
            "result may not match the endpoint's signing scope.",
            SigV4Warning,
        )
    service, region = labels[0], labels[1]
    if region == GLOBAL_ENDPOINT_LABEL:
        region = GLOBAL_ENDPOINT_REGION
    return ServiceScope(service=service, region=region)


def resolve_service_scope(
    host: str, *, service: str | None = None, region: str | None = None
) -> ServiceScope:
    """Combine explicit overrides with host inference.

    Inference only runs when at least one of ``service`` or ``region`` is missing,
    so callers supplying both never depend on the shape of ``host``.
    """
    if service is not None and region is not None:
        return ServiceScope(service=service, region=region)

    inferred = infer_service_scope(host)
    scope = ServiceScope(
        service=service if service is not None else inferred.service,
        region=region if region is not None else inferred.region,
    )
    logger.debug("Inferred signing scope %s from host %s.", scope, host)
    return scope
