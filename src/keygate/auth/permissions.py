"""Scoped permission evaluation.

Implements the allow-list checks for scoped credentials:
- General credentials pass every check without looking at permissions
- Scoped credentials pass a dimension when its list is empty, contains "*",
  or contains the exact requested value
- Domain checks compare the Origin/Referer host against the allow-list,
  with "*.example.com" covering example.com and all its subdomains

Tool, model and agent checks are run per endpoint once the requested
capability is known; only the domain check runs inside the gate.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from keygate.errors import create_error

from .models import WILDCARD, Capability, Credential, CredentialType

logger = logging.getLogger(__name__)


def is_allowed(allowed: list[str], value: str) -> bool:
    """Check a value against a single allow-list.

    Empty lists are unrestricted: a scoped key created with no entries for
    a dimension can use anything on that dimension.
    """
    if not allowed:
        return True
    return WILDCARD in allowed or value in allowed


def can_use(credential: Credential, capability: Capability, value: str) -> bool:
    """Check whether a credential may use a capability value.

    Args:
        credential: Resolved credential
        capability: Dimension being checked
        value: Requested agent id, tool name or model name

    Returns:
        True if access is allowed
    """
    if credential.type is CredentialType.GENERAL:
        return True
    if credential.type is CredentialType.SCOPED:
        if credential.permissions is None:
            # Scoped without a permissions record behaves like empty lists
            return True
        return is_allowed(credential.permissions.allow_list(capability), value)
    raise ValueError(f"Unknown credential type: {credential.type!r}")


def can_use_tool(credential: Credential, tool_name: str) -> bool:
    """Check if a credential may call a tool."""
    return can_use(credential, Capability.TOOL, tool_name)


def can_use_model(credential: Credential, model_name: str) -> bool:
    """Check if a credential may use a model."""
    return can_use(credential, Capability.MODEL, model_name)


def can_use_agent(credential: Credential, agent_id: str) -> bool:
    """Check if a credential may talk to an agent."""
    return can_use(credential, Capability.AGENT, agent_id)


def _require(credential: Credential, capability: Capability, value: str) -> None:
    if not can_use(credential, capability, value):
        logger.info(
            f"[AUTH] {credential.display_key} denied {capability.value} '{value}'"
        )
        raise create_error(
            "INSUFFICIENT_PERMISSIONS",
            capability=capability.value,
            value=value,
        )


def check_tool(credential: Credential, tool_name: str) -> None:
    """Require access to a tool.

    Raises:
        GateError: INSUFFICIENT_PERMISSIONS naming the tool
    """
    _require(credential, Capability.TOOL, tool_name)


def check_model(credential: Credential, model_name: str) -> None:
    """Require access to a model.

    Raises:
        GateError: INSUFFICIENT_PERMISSIONS naming the model
    """
    _require(credential, Capability.MODEL, model_name)


def check_agent(credential: Credential, agent_id: str) -> None:
    """Require access to an agent.

    Raises:
        GateError: INSUFFICIENT_PERMISSIONS naming the agent
    """
    _require(credential, Capability.AGENT, agent_id)


def _host_of(origin: str) -> str | None:
    """Extract the lower-cased hostname from an Origin or Referer value."""
    try:
        return urlsplit(origin).hostname
    except ValueError:
        return None


def matches_domain(origin: str, allowed_domains: list[str]) -> bool:
    """Check if an origin matches any of the allowed domains.

    Args:
        origin: Origin or Referer header value (a URL)
        allowed_domains: Patterns such as "app.example.com", "*.example.com" or "*"

    Returns:
        True if the origin host is covered by a pattern
    """
    if not allowed_domains:
        return True

    hostname = _host_of(origin)
    if not hostname:
        return False

    for pattern in allowed_domains:
        pattern = pattern.strip().lower()
        if pattern == WILDCARD:
            return True
        if pattern.startswith("*."):
            # *.example.com matches example.com and sub.example.com
            base_domain = pattern[2:]
            if hostname == base_domain or hostname.endswith("." + base_domain):
                return True
        elif hostname == pattern:
            return True

    return False
