# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0


class SigV4Warning(UserWarning): ...


class BaseSigV4Exception(Exception):
    """Top-level exception to capture signing-related errors."""


class EncodingError(BaseSigV4Exception, ValueError):
    """A request body declared as text is not valid UTF-8."""


class MalformedRequestError(BaseSigV4Exception, ValueError):
    """The request is missing a value that signing cannot default."""


class InferenceError(BaseSigV4Exception, ValueError):
    """Service and region could not be inferred from the request host.

    Supplying ``service`` and ``region`` explicitly in the signing properties
    avoids host inference entirely.
    """
