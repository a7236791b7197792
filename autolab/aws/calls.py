"""Single choke point for mutating and reading boto3 calls.

:func:`provider_call` logs the operation, runs it once (no retries) and
turns botocore errors into :class:`~autolab.errors.ProviderCallFailure`
carrying the raw provider message.  :func:`provider_pages` does the same
for paginated listings.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Optional

from botocore.exceptions import BotoCoreError, ClientError

from autolab.errors import ProviderCallFailure

logger = logging.getLogger(__name__)


def error_code(exc: BaseException) -> Optional[str]:
    """Return the AWS error code of a :class:`ClientError`, else ``None``."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


def error_message(exc: BaseException) -> str:
    """Return the provider's error text for *exc*."""
    if isinstance(exc, ClientError):
        err = exc.response.get("Error", {})
        code = err.get("Code", "")
        msg = err.get("Message", "") or str(exc)
        return f"{code}: {msg}" if code else msg
    return str(exc)


def _label(client: Any, operation: str) -> str:
    service = getattr(getattr(client, "meta", None), "service_model", None)
    return f"{getattr(service, 'service_name', 'aws')}.{operation}"


def provider_call(client: Any, operation: str, **kwargs: Any) -> Any:
    """Invoke ``client.<operation>(**kwargs)`` and return the response.

    Raises :class:`ProviderCallFailure` on any botocore error.
    """
    label = _label(client, operation)
    logger.debug("Executing: %s %s", label, _redact(kwargs))
    try:
        return getattr(client, operation)(**kwargs)
    except (BotoCoreError, ClientError) as exc:
        raise ProviderCallFailure(
            label, error_message(exc), code=error_code(exc)
        ) from exc


def _redact(kwargs: dict) -> dict:
    """Hide bulky or sensitive arguments in debug logs."""
    hidden = {"UserData", "Body"}
    return {k: ("<redacted>" if k in hidden else v) for k, v in kwargs.items()}


def provider_pages(client: Any, operation: str, **kwargs: Any) -> Iterator[Dict[str, Any]]:
    """Yield each page of a paginated operation.

    Errors raised while fetching any page become
    :class:`ProviderCallFailure`, as with :func:`provider_call`.
    """
    label = _label(client, operation)
    logger.debug("Paginating: %s %s", label, _redact(kwargs))
    try:
        paginator = client.get_paginator(operation)
        for page in paginator.paginate(**kwargs):
            yield page
    except (BotoCoreError, ClientError) as exc:
        raise ProviderCallFailure(
            label, error_message(exc), code=error_code(exc)
        ) from exc
