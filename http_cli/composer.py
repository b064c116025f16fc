"""Turns a RequestConfig into a ComposedRequest.

Composition is a pure function of the configuration (plus the cookie and
form files it references). Steps run in a fixed order because later steps
override earlier ones:

1. method mapping
2. JSON header block
3. Cookie header from the cookie file (replaces an explicit Cookie header)
4. raw body, when there are no form fields
5. multipart form fields (take precedence over the raw body)
6. User-Agent and basic-auth Authorization (replace supplied headers)

Any failure raises ``ConfigError`` and nothing is returned, so a request is
either fully composed or not at all.
"""

from __future__ import annotations

import base64
import json
import os
import re
import warnings

import httpx

from .config import BasicAuth, Method, RequestConfig
from .cookies import cookie_header, load_cookies
from .models import (
    ComposedRequest,
    ConfigError,
    FormPart,
    InvalidHeader,
    UnsupportedMethod,
)

# RFC 9110 token characters.
_HEADER_NAME = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
# Visible ASCII, space and tab; no CR, LF or NUL.
_HEADER_VALUE = re.compile(r"^[\t\x20-\x7e]*$")


def map_method(method: str) -> Method:
    """Map a method name onto ``Method``.

    Raises:
        UnsupportedMethod: For anything but GET/POST/PUT/PATCH/DELETE.
    """
    try:
        return Method(method.strip().upper())
    except (ValueError, AttributeError):
        raise UnsupportedMethod(method) from None


def validate_header(name: str, value: str) -> None:
    """Check that a header can be put on the wire.

    Raises:
        InvalidHeader: If the name is not a token or the value has
            control characters.
    """
    if not isinstance(name, str) or not _HEADER_NAME.match(name):
        raise InvalidHeader(str(name), "name must be a non-empty token")
    if not isinstance(value, str):
        raise InvalidHeader(name, "value must be a string")
    if not _HEADER_VALUE.match(value):
        raise InvalidHeader(name, "value contains control or non-ASCII characters")


def parse_headers(raw: str) -> dict[str, str]:
    """Parse and validate the JSON header block.

    Duplicate keys keep the last value. Names keep their case.

    Raises:
        ConfigError: If the text is not a JSON object.
        InvalidHeader: If a name or value is invalid.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"header is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("header must be a JSON object")

    for name, value in data.items():
        validate_header(name, value)
    return data


def parse_form(raw: str) -> list[tuple[str, str]]:
    """Parse the JSON form object into ordered name/value pairs.

    Raises:
        ConfigError: If the text is not a JSON object of strings.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"form is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("form must be a JSON object")

    fields = []
    for name, value in data.items():
        if not isinstance(value, str):
            raise ConfigError(f"form field {name!r} must be a string")
        fields.append((name, value))
    return fields


def build_form_part(name: str, value: str) -> FormPart:
    """Encode one form field.

    A value naming an existing path becomes a file part with the file's
    basename and bytes; anything else is a plain text part.

    Raises:
        ConfigError: If the path exists but cannot be read.
    """
    if not os.path.exists(value):
        return FormPart(name=name, value=value.encode("utf-8"))

    try:
        with open(value, "rb") as fh:
            content = fh.read()
    except OSError as e:
        raise ConfigError(f"cannot read form file {value} for field {name!r}: {e}") from e
    return FormPart(name=name, value=content, filename=os.path.basename(value))


def basic_auth_header(auth: BasicAuth) -> str:
    """Render an ``Authorization: Basic`` value."""
    token = base64.b64encode(f"{auth.username}:{auth.password}".encode("utf-8"))
    return f"Basic {token.decode('ascii')}"


def _set_header(headers: dict[str, str], name: str, value: str) -> None:
    """Replace any same-named header (case-insensitive) and append."""
    for key in [key for key in headers if key.lower() == name.lower()]:
        del headers[key]
    headers[name] = value


def _check_url(url: str) -> None:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise ConfigError(f"invalid URL {url!r}: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigError(f"invalid URL {url!r}: expected an absolute http(s) URL")


class RequestComposer:
    """Builds ComposedRequests from configurations."""

    def compose(self, config: RequestConfig) -> ComposedRequest:
        """Compose a transport-ready request.

        Args:
            config: Request description.

        Returns:
            A new ComposedRequest.

        Raises:
            ConfigError: On any invalid input; nothing is sent.
        """
        method = map_method(config.method)
        _check_url(config.url)

        headers: dict[str, str] = {}
        if config.header:
            headers.update(parse_headers(config.header))

        if config.cookie_file:
            cookies = load_cookies(config.cookie_file)
            if cookies:
                value = cookie_header(cookies)
                validate_header("Cookie", value)
                _set_header(headers, "Cookie", value)

        content: bytes | None = None
        parts: tuple[FormPart, ...] = ()
        if config.form:
            parts = tuple(build_form_part(name, value) for name, value in parse_form(config.form))
            if parts and config.body is not None:
                warnings.warn(
                    "Both a body and form fields were given; the body is ignored.",
                    UserWarning,
                    stacklevel=2,
                )
            if parts and any(key.lower() == "content-type" for key in headers):
                warnings.warn(
                    "Content-Type header dropped; multipart bodies set their own.",
                    UserWarning,
                    stacklevel=2,
                )
                headers = {k: v for k, v in headers.items() if k.lower() != "content-type"}
        if not parts and config.body is not None:
            content = config.body.encode("utf-8")

        if config.user_agent is not None:
            validate_header("User-Agent", config.user_agent)
            _set_header(headers, "User-Agent", config.user_agent)
        if config.basic_auth is not None:
            value = basic_auth_header(config.basic_auth)
            _set_header(headers, "Authorization", value)

        return ComposedRequest(
            method=method.value,
            url=config.url,
            headers=tuple(headers.items()),
            content=content,
            parts=parts,
        )
