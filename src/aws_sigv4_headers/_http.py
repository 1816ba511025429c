# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Request value types handed to the signer by the surrounding proxy or HTTP layer.

The signer never talks to the network. These classes only describe the outbound
request well enough to canonicalize it.
"""

from __future__ import annotations

from collections import Counter, OrderedDict
from collections.abc import Iterable, Iterator, Mapping
from copy import deepcopy
from dataclasses import dataclass
from functools import cached_property


class Field:
    """A name-value pair representing a single header in an HTTP request.

    All field names are case insensitive and case-variance must be treated as
    equivalent. Names are preserved as received for transmission.
    """

    def __init__(self, *, name: str, values: Iterable[str] | None = None):
        self.name = name
        self.values: list[str] = list(values) if values is not None else []

    def add(self, value: str) -> None:
        """Append a value to a field."""
        self.values.append(value)

    def as_string(self, delimiter: str = ",") -> str:
        """Get delimited string of all values.

        If the ``Field`` has zero values, the empty string is returned. If the ``Field``
        has exactly one value, the value is returned unmodified.
        """
        if not self.values:
            return ""
        if len(self.values) == 1:
            return self.values[0]
        return delimiter.join(self.values)

    def __eq__(self, other: object) -> bool:
        """Name and values must match, including value order."""
        if not isinstance(other, Field):
            return False
        return self.name == other.name and self.values == other.values

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, values={self.values!r})"


class Fields:
    def __init__(self, initial: Iterable[Field] | None = None):
        """Collection of header entries mapped by case-insensitive name.

        :param initial: Initial list of ``Field`` objects. ``Field``s can also be added
        and later replaced.
        """
        init_fields = list(initial) if initial is not None else []
        init_field_names = [self._normalize_field_name(fld.name) for fld in init_fields]
        non_unique_names = [
            name for name, num in Counter(init_field_names).items() if num > 1
        ]
        if non_unique_names:
            raise ValueError(
                "Field names of the initial list of fields must be unique. The "
                "following normalized field names appear more than once: "
                f"{', '.join(non_unique_names)}."
            )
        self.entries: OrderedDict[str, Field] = OrderedDict(
            zip(init_field_names, init_fields)
        )

    @classmethod
    def from_mapping(cls, headers: Mapping[str, str]) -> Fields:
        """Build a collection from a plain header mapping.

        Names that differ only in case are merged into a single multi-valued
        ``Field`` in mapping order.
        """
        fields = cls()
        for name, value in headers.items():
            if name in fields:
                fields[name].add(value)
            else:
                fields.set_field(Field(name=name, values=[value]))
        return fields

    def set_field(self, field: Field) -> None:
        """Alias for __setitem__ to utilize the field.name for the entry key."""
        self.__setitem__(field.name, field)

    def __setitem__(self, name: str, field: Field) -> None:
        """Set or override entry for a Field name."""
        normalized_name = self._normalize_field_name(name)
        normalized_field_name = self._normalize_field_name(field.name)
        if normalized_name != normalized_field_name:
            raise ValueError(
                f"Supplied key {name} does not match Field.name "
                f"provided: {normalized_field_name}"
            )
        self.entries[normalized_name] = field

    def get(self, key: str, default: Field | None = None) -> Field | None:
        return self[key] if key in self else default

    def __getitem__(self, name: str) -> Field:
        """Retrieve Field entry."""
        return self.entries[self._normalize_field_name(name)]

    def _normalize_field_name(self, name: str) -> str:
        return name.lower()

    def __eq__(self, other: object) -> bool:
        """Entries must match in values and order."""
        if not isinstance(other, Fields):
            return False
        return self.entries == other.entries

    def __iter__(self) -> Iterator[Field]:
        yield from self.entries.values()

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"Fields({self.entries})"

    def __contains__(self, key: str) -> bool:
        return self._normalize_field_name(key) in self.entries


@dataclass(kw_only=True, frozen=True)
class URI:
    """Target location of an :py:class:`AWSRequest`."""

    scheme: str = "https"
    """For example ``http`` or ``https``."""

    host: str
    """The hostname, for example ``ec2.amazonaws.com``."""

    port: int | None = None
    """An explicit port number."""

    path: str | None = None
    """Path component of the URI, used as the canonical URI before encoding."""

    query: str | None = None
    """Raw query component of the URI, without the leading ``?``."""

    @property
    def netloc(self) -> str:
        """Construct netloc string in format ``{host}:{port}``.

        ``port`` is only included if set.
        """
        return self._netloc

    # cached_property does NOT behave like property, it actually allows for setting.
    # Therefore we need a layer of indirection.
    @cached_property
    def _netloc(self) -> str:
        if self.port is not None:
            return f"{self.host}:{self.port}"
        return self.host


class AWSRequest:
    """An outbound HTTP request as seen by the signer.

    :param destination: Where the request is going.
    :param method: The HTTP method, for example ``GET``.
    :param body: The complete in-memory request body.
    :param fields: Headers as received from the caller.
    :param body_is_binary: When ``False`` the body is declared as text and must
        decode as UTF-8 before it is hashed.
    """

    def __init__(
        self,
        *,
        destination: URI,
        method: str,
        body: bytes = b"",
        fields: Fields | None = None,
        body_is_binary: bool = True,
    ):
        self.destination = destination
        self.method = method
        self.body = body
        self.fields = fields if fields is not None else Fields()
        self.body_is_binary = body_is_binary

    def __deepcopy__(self, memo: dict[int, AWSRequest] | None = None) -> AWSRequest:
        if memo is None:
            memo = {}

        if id(self) in memo:
            return memo[id(self)]

        # the destination and body are immutable and don't need to be copied
        new_instance = self.__class__(
            destination=self.destination,
            method=self.method,
            body=self.body,
            fields=deepcopy(self.fields, memo),
            body_is_binary=self.body_is_binary,
        )
        memo[id(self)] = new_instance
        return new_instance

    def __repr__(self) -> str:
        return (
            f"AWSRequest(method={self.method!r}, destination={self.destination!r}, "
            f"fields={self.fields!r}, body_is_binary={self.body_is_binary!r})"
        )
