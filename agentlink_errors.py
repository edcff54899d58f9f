"""
Error taxonomy for the AgentLink MCP server.

Provider and orchestrator code raises these; the tool registry is the only
place that turns them into error results.
"""

from __future__ import annotations


class AgentLinkError(Exception):
    """Base class for every error raised by AgentLink modules."""


class ConfigurationError(AgentLinkError):
    """Missing or invalid configuration. Fatal at startup."""


class MissingCredentialError(ConfigurationError):
    """A credential needed by one specific operation is not configured."""


class ToolAlreadyRegisteredError(ConfigurationError):
    """Raised when two tools are registered under the same name."""


class ValidationError(AgentLinkError):
    """Malformed tool arguments."""


class ProviderError(AgentLinkError):
    """A remote provider call failed."""


class MalformedResponseError(ProviderError):
    """A provider answered with a shape we cannot read."""


class SigningError(AgentLinkError):
    """A transaction could not be signed with the configured key."""


class TransportError(AgentLinkError):
    """The connection to the caller is broken."""
