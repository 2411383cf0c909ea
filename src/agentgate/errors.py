"""
Exception hierarchy for agentgate.

All agentgate exceptions inherit from AgentGateError, allowing callers to
catch every agentgate-specific exception with a single except clause.

Exception Categories:
    - PolicyViolationError: The wrapped action was refused (tool, content, URL)
    - TicketError: A capability ticket could not be issued
    - ClassifierError: A classifier adapter failed or returned garbage
    - PolicyLoadError: A policy file could not be loaded

Pure check functions (guard, redact, guard_tool, check_url, ticket
validation) report problems as negative results. Only the composition
wrapper, the ticket generator and the classifier adapters raise.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Policy violations: 1xxx
ERROR_TOOL_BLOCKED = 1001
ERROR_CONTENT_BLOCKED = 1002
ERROR_SSRF_BLOCKED = 1003

# Ticket errors: 2xxx
ERROR_TICKET_FORMAT = 2001

# Classifier errors: 3xxx
ERROR_CLASSIFIER_CONFIG = 3001
ERROR_CLASSIFIER_HTTP = 3002
ERROR_STRUCTURED_OUTPUT = 3003

# Configuration errors: 4xxx
ERROR_POLICY_LOAD = 4001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class AgentGateError(Exception):
    """
    Base exception for all agentgate errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Policy Violations
# =============================================================================


@dataclass
class PolicyViolationError(AgentGateError):
    """
    Raised by the composition wrapper when one of its layers refuses a call.

    The wrapper's contract is that the action either ran safely or did not
    run at all, so every refusal surfaces as one of these.

    Attributes:
        tool: Name of the wrapped tool
        violations: Violation type identifiers reported by the layer
    """

    tool: str = ""
    violations: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "tool": self.tool,
            "violations": list(self.violations),
        })


@dataclass
class ToolBlockedError(PolicyViolationError):
    """Raised when the tool policy check refuses the tool."""

    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = self.reason or f"Tool '{self.tool}' is blocked by policy"
        if self.code == 0:
            self.code = ERROR_TOOL_BLOCKED
        if not self.suggestion:
            self.suggestion = "Check tool_blocklist, tool_allowlist and tool_validator in policy"
        super().__post_init__()
        self.context["reason"] = self.reason


@dataclass
class ContentBlockedError(PolicyViolationError):
    """Raised when the pattern guard classifies the arguments as hostile."""

    reasoning: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Input blocked by guard: {', '.join(self.violations)}"
        if self.code == 0:
            self.code = ERROR_CONTENT_BLOCKED
        super().__post_init__()
        self.context["reasoning"] = self.reasoning


@dataclass
class SsrfBlockedError(PolicyViolationError):
    """Raised when a URL argument points at an unsafe destination."""

    url: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"SSRF check blocked {self.url}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_SSRF_BLOCKED
        if not self.suggestion:
            self.suggestion = "Only public http(s) destinations are reachable from wrapped tools"
        super().__post_init__()
        self.context.update({
            "url": self.url,
            "reason": self.reason,
        })


# =============================================================================
# Ticket Errors
# =============================================================================


@dataclass
class TicketError(AgentGateError):
    """Base class for ticket issuance errors."""


@dataclass
class TicketFormatError(TicketError):
    """Raised when ticket constraints or options fail schema validation."""

    validation_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid ticket options: {self.validation_error}"
        if self.code == 0:
            self.code = ERROR_TICKET_FORMAT
        self.context["validation_error"] = self.validation_error


# =============================================================================
# Classifier Errors
# =============================================================================


@dataclass
class ClassifierError(AgentGateError):
    """
    Base class for classifier adapter errors.

    Guards never let these escape: they are converted to a ProviderError
    at the classifier boundary and handled fail-open.

    Attributes:
        provider: Name of the classifier backend (e.g., "openai")
        model: Model identifier being used
    """

    provider: str = ""
    model: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "provider": self.provider,
            "model": self.model,
        })


@dataclass
class ClassifierConfigError(ClassifierError):
    """Raised when a classifier is missing required configuration."""

    env_var: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.provider} classifier requires an API key"
        if self.code == 0:
            self.code = ERROR_CLASSIFIER_CONFIG
        if not self.suggestion and self.env_var:
            self.suggestion = f"Pass api_key explicitly or set the {self.env_var} environment variable"
        super().__post_init__()
        self.context["env_var"] = self.env_var


@dataclass
class ClassifierHTTPError(ClassifierError):
    """Raised when the classifier backend answers with a non-2xx status."""

    status_code: int = 0
    body: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"{self.provider} API error ({self.status_code}): {self.body[:200]}"
        if self.code == 0:
            self.code = ERROR_CLASSIFIER_HTTP
        super().__post_init__()
        self.context["status_code"] = self.status_code


@dataclass
class StructuredOutputError(ClassifierError):
    """Raised when a classifier response cannot be parsed into its schema."""

    raw_response: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.code == 0:
            self.code = ERROR_STRUCTURED_OUTPUT
        super().__post_init__()
        self.context["raw_response"] = self.raw_response[:200]


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class PolicyLoadError(AgentGateError):
    """Raised when a policy file cannot be read or validated."""

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to load policy {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_POLICY_LOAD
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })
