"""Error taxonomy for provisioning runs.

* :class:`PreflightFailure`: credentials, region or local inputs unusable;
  raised before any resource work.
* :class:`DependencyMissing`: an upstream identifier is not in the state file.
* :class:`ProviderCallFailure`: an AWS call returned an error.
* :class:`PartialSuccess`: the primary resource was created and recorded,
  but a follow-up call (attach, attribute, rule) failed.  Nothing is rolled
  back.

A stale state entry (recorded identifier no longer in AWS) is not an error;
the creation step simply recreates the resource.
"""

from __future__ import annotations

from typing import Optional


class LabError(RuntimeError):
    """Base class for all provisioning failures."""


class PreflightFailure(LabError):
    """Environment is not usable; abort before touching any resource."""


class DependencyMissing(LabError):
    """A required upstream state key is absent."""

    def __init__(self, key: str, *, needed_by: str = "") -> None:
        self.key = key
        self.needed_by = needed_by
        msg = f"{key} not found in state file"
        if needed_by:
            msg += f" (required by {needed_by})"
        super().__init__(msg)


class ProviderCallFailure(LabError):
    """An AWS API call failed.  ``provider_message`` is the raw error text."""

    def __init__(
        self,
        operation: str,
        provider_message: str,
        *,
        code: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.provider_message = provider_message
        self.code = code
        super().__init__(f"{operation} failed: {provider_message}")


class PartialSuccess(LabError):
    """A follow-up call failed after the primary resource was created."""

    def __init__(self, resource_id: str, cause: Exception) -> None:
        self.resource_id = resource_id
        self.cause = cause
        super().__init__(
            f"{resource_id} was created but a follow-up call failed: {cause}"
        )
