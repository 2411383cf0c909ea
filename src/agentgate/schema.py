"""
Schema definitions for agentgate.

This module defines the Pydantic models used throughout agentgate:
- Policy: caller-supplied configuration consumed by every layer
- AuditConstraints/TicketPayload/ValidationResult: the capability ticket
- Finding/RedactResult: redaction engine output
- GuardResult/GuardResponse: pattern guard output and classifier verdicts
- TransactionMeta/RiskAssessment: settlement guard input and output
- SimulationParams/SimulationResult: transaction dry runs

Design Decisions:
    - Models are immutable (frozen=True) and reject unknown fields
    - Every Policy option defaults to None so that an absent check is
      distinguishable from an empty list
    - Classifier verdicts ignore extra keys, since models pad their JSON
"""

import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from agentgate.errors import PolicyLoadError


# =============================================================================
# Enums
# =============================================================================


class Classification(str, Enum):
    """Verdict of a guard or classifier."""

    PASS = "pass"
    BLOCK = "block"


class AuditLevel(str, Enum):
    """
    Ordered trust tier attached to a capability ticket.

    Comparison follows the tier order (Bronze < Silver < Gold < Platinum),
    not the alphabetical order of the values.
    """

    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"

    @property
    def rank(self) -> int:
        return _AUDIT_LEVEL_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, AuditLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, AuditLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, AuditLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, AuditLevel):
            return NotImplemented
        return self.rank >= other.rank


_AUDIT_LEVEL_ORDER = (
    AuditLevel.BRONZE,
    AuditLevel.SILVER,
    AuditLevel.GOLD,
    AuditLevel.PLATINUM,
)


class ValidationErrorCode(str, Enum):
    """Why a ticket failed validation."""

    EXPIRED = "EXPIRED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    INVALID_FORMAT = "INVALID_FORMAT"
    KILL_SWITCH = "KILL_SWITCH"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"


# =============================================================================
# Tool Validators
# =============================================================================


@dataclass(frozen=True)
class Allow:
    """The validator accepts the tool call."""


@dataclass(frozen=True)
class Deny:
    """The validator refuses the tool call with a specific reason."""

    reason: str


@dataclass(frozen=True)
class DenyGeneric:
    """The validator refuses the tool call without saying why."""


Verdict = Allow | Deny | DenyGeneric


class ToolValidator(ABC):
    """
    Custom per-call tool check plugged into a Policy.

    Implementations inspect the tool name and its arguments and return a
    Verdict. A Deny verdict short-circuits the tool policy check and its
    reason is surfaced verbatim.

    Example Implementation:
        class NoAdminUrls(ToolValidator):
            def validate(self, tool, args):
                if "admin" in str(args):
                    return Deny("admin endpoints are off limits")
                return Allow()
    """

    @abstractmethod
    def validate(self, tool: str, args: Any) -> Verdict:
        """Decide whether `tool` may run with `args`."""
        ...


class FunctionValidator(ToolValidator):
    """
    Adapts a plain callable into a ToolValidator.

    The callable may return a Verdict directly, False (generic denial),
    a string (denial with that reason), or any other value (allow).
    """

    def __init__(self, func: Callable[[str, Any], Any]) -> None:
        self.func = func

    def validate(self, tool: str, args: Any) -> Verdict:
        result = self.func(tool, args)
        if isinstance(result, (Allow, Deny, DenyGeneric)):
            return result
        if result is False:
            return DenyGeneric()
        if isinstance(result, str):
            return Deny(result)
        return Allow()


# =============================================================================
# Policy Models
# =============================================================================


class RedactionPattern(BaseModel):
    """
    A single redaction rule.

    Attributes:
        type: Finding type reported for matches (e.g., "email")
        pattern: Regular expression, as a string or compiled pattern
        replacement: Text substituted for each match (default "[REDACTED]")
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    type: str = Field(..., min_length=1, description="Finding type for matches")
    pattern: str | re.Pattern[str] = Field(..., description="Regex to match")
    replacement: str | None = Field(
        default=None,
        description="Replacement text (defaults to [REDACTED])",
    )

    def compiled(self) -> re.Pattern[str]:
        """Return the compiled pattern."""
        if isinstance(self.pattern, re.Pattern):
            return self.pattern
        return re.compile(self.pattern)


class Policy(BaseModel):
    """
    Caller-supplied configuration consumed by every layer.

    Every field is optional and its absence disables that check. An empty
    list is not the same as None: an empty tool_allowlist is treated like
    an absent one, but an empty injection_patterns list still means "only
    the built-in patterns".

    Attributes:
        injection_patterns: Extra regexes for the pattern guard
        redaction_patterns: Extra rules for the redaction engine
        tool_blocklist: Tool names that are always refused
        tool_allowlist: If non-empty, the only tool names accepted
        tool_validator: Custom per-call check (plain callables are wrapped)
        cwe_map: Violation type -> CWE code
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    injection_patterns: list[str | re.Pattern[str]] | None = Field(
        default=None,
        description="Extra prompt-injection regexes",
    )
    redaction_patterns: list[RedactionPattern] | None = Field(
        default=None,
        description="Extra redaction rules",
    )
    tool_blocklist: list[str] | None = Field(
        default=None,
        description="Tool names that are always refused",
    )
    tool_allowlist: list[str] | None = Field(
        default=None,
        description="If non-empty, the only accepted tool names",
    )
    tool_validator: ToolValidator | None = Field(
        default=None,
        description="Custom per-call tool check",
    )
    cwe_map: dict[str, str] | None = Field(
        default=None,
        description="Violation type -> CWE code",
    )

    @field_validator("tool_validator", mode="before")
    @classmethod
    def wrap_callable_validator(cls, v: Any) -> Any:
        """Accept plain callables for convenience."""
        if v is None or isinstance(v, ToolValidator):
            return v
        if callable(v):
            return FunctionValidator(v)
        return v


class IssuerConfig(BaseModel):
    """
    Configuration for a TicketIssuer.

    Attributes:
        signing_key: HMAC secret or PEM private key
        public_key: PEM public key for RS* verification (optional)
        algorithm: JWT signing algorithm
        issuer: Value of the `iss` claim
        default_validity: Ticket lifetime in seconds when none is given
        payment_protocol: Protocol a payment context must declare when a
            ticket requires payment proof
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    signing_key: str = Field(..., min_length=1, description="Signing secret or private key")
    public_key: str | None = Field(default=None, description="Verification key for RS*")
    algorithm: Literal["HS256", "HS384", "HS512", "RS256", "RS384", "RS512"] = Field(
        default="HS256",
        description="JWT signing algorithm",
    )
    issuer: str = Field(..., min_length=1, description="Ticket issuer identifier")
    default_validity: int = Field(default=300, description="Default lifetime in seconds")
    payment_protocol: str = Field(default="x402", description="Required payment protocol")


# =============================================================================
# Ticket Models
# =============================================================================


class AuditConstraints(BaseModel):
    """
    Operational limits embedded in a capability ticket.

    Attributes:
        max_op_value: Largest value a single operation may carry
        allowed_servers: Servers the agent may transact with
        kill_switch_active: When True the ticket is unconditionally invalid
        max_ops_per_hour: Optional rate hint for downstream enforcement
        geo_restrictions: Optional region codes for downstream enforcement
        requires_payment_proof: Whether transactions must carry payment proof
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_op_value: float = Field(..., gt=0, description="Per-operation value limit")
    allowed_servers: list[str] = Field(..., description="Servers the agent may use")
    kill_switch_active: bool = Field(..., description="Unconditional revocation flag")
    max_ops_per_hour: float | None = Field(default=None, gt=0)
    geo_restrictions: list[str] | None = Field(default=None)
    requires_payment_proof: bool | None = Field(default=None)


class TicketPayload(BaseModel):
    """The claims of a capability ticket."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    iss: str = Field(..., description="Issuer")
    sub: str = Field(..., description="Agent identifier")
    iat: int = Field(..., description="Issued at (Unix seconds)")
    exp: int = Field(..., description="Expires at (Unix seconds)")
    audit_level: AuditLevel = Field(..., description="Trust tier")
    constraints: AuditConstraints = Field(..., description="Operational limits")
    metadata: dict[str, Any] | None = Field(default=None, description="Opaque metadata")


class PaymentProof(BaseModel):
    """Evidence that a payment was made for a transaction."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    from_address: str | None = None
    to_address: str | None = None
    chain_id: str | None = None
    tx_hash: str | None = None


class PaymentContext(BaseModel):
    """Payment information accompanying a proposed transaction."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    protocol: str | None = Field(default=None, description="Payment protocol used")
    proof: PaymentProof | None = Field(default=None, description="Payment proof")


class ValidationResult(BaseModel):
    """
    Result of validating a ticket or a transaction against a ticket.

    Attributes:
        valid: Whether validation succeeded
        payload: Decoded claims (only when valid)
        error: Human-readable failure description
        error_code: Machine-readable failure code
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    valid: bool
    payload: TicketPayload | None = None
    error: str | None = None
    error_code: ValidationErrorCode | None = None

    @classmethod
    def ok(cls, payload: TicketPayload) -> "ValidationResult":
        """Create a successful result."""
        return cls(valid=True, payload=payload)

    @classmethod
    def fail(cls, error_code: ValidationErrorCode, error: str) -> "ValidationResult":
        """Create a failed result."""
        return cls(valid=False, error=error, error_code=error_code)


# =============================================================================
# Redaction Models
# =============================================================================


class Finding(BaseModel):
    """A redacted span of the original input (half-open offsets)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str
    span: tuple[int, int]
    value: str


class RedactResult(BaseModel):
    """Sanitized text plus what was removed from it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    redacted: str
    findings: list[Finding] = Field(default_factory=list)


# =============================================================================
# Guard Models
# =============================================================================


class TokenUsage(BaseModel):
    """Rough token accounting for budgeting callers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class GuardResult(BaseModel):
    """
    Outcome of the pattern guard.

    Attributes:
        classification: block iff violation_types is non-empty
        violation_types: Distinct violation identifiers, in detection order
        cwe_codes: CWE codes mapped from the violations via the policy
        reasoning: Classifier reasoning, when a deep scan ran
        provider_error: Classifier failure message, when the deep scan failed
        usage: Token usage estimate for the input
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    classification: Classification
    violation_types: list[str] = Field(default_factory=list)
    cwe_codes: list[str] = Field(default_factory=list)
    reasoning: str | None = None
    provider_error: str | None = None
    usage: TokenUsage = Field(default_factory=TokenUsage)

    @model_validator(mode="after")
    def check_classification(self) -> "GuardResult":
        """Keep classification consistent with the violation list."""
        expected = Classification.BLOCK if self.violation_types else Classification.PASS
        if self.classification != expected:
            raise ValueError(
                f"classification must be {expected.value} when "
                f"{len(self.violation_types)} violations are present"
            )
        return self


class GuardResponse(BaseModel):
    """Structured verdict returned by a classifier."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    classification: Classification
    reasoning: str


class SettlementDecision(GuardResponse):
    """Structured verdict for a settlement deep scan."""


class ToolGuardResult(BaseModel):
    """Outcome of the tool policy check."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: bool
    violations: list[str] | None = None
    reason: str | None = None


# =============================================================================
# Settlement Models
# =============================================================================


class TransactionMeta(BaseModel):
    """
    Payment metadata scored by the settlement guard.

    Attributes:
        amount: Amount as a string (currency symbols are tolerated)
        currency: Currency or token symbol
        recipient_address: Destination address
        service_description: What the payment is for
        reputation_score: Counterparty reputation in [0, 1], if known
        chain_id: Chain identifier, if known
        additional_context: Free-form context for the classifier
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    amount: str
    currency: str
    recipient_address: str
    service_description: str
    reputation_score: float | None = None
    chain_id: str | None = None
    additional_context: str | None = None


class RiskAssessment(BaseModel):
    """
    Settlement guard verdict.

    A risk score of 0.7 or more is conclusive and always blocks.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    classification: Classification
    reasoning: str
    risk_score: float = Field(..., ge=0.0, le=1.0)
    risk_factors: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_conclusive_score(self) -> "RiskAssessment":
        if self.risk_score >= 0.7 and self.classification != Classification.BLOCK:
            raise ValueError("risk_score >= 0.7 must be classified as block")
        return self


# =============================================================================
# Simulation Models
# =============================================================================


class SimulationParams(BaseModel):
    """Transaction to dry-run. Numeric fields are hex-encoded strings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    from_address: str
    to: str
    data: str | None = None
    value: str | None = None
    gas: str | None = None

    def to_rpc(self) -> dict[str, str]:
        """Render as a JSON-RPC transaction object, dropping unset fields."""
        tx = {
            "from": self.from_address,
            "to": self.to,
            "data": self.data,
            "value": self.value,
            "gas": self.gas,
        }
        return {k: v for k, v in tx.items() if v is not None}


class StateChange(BaseModel):
    """A state change reported by a simulation."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str
    address: str
    before: str | None = None
    after: str | None = None


class SimulationResult(BaseModel):
    """Outcome of a transaction dry run."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    safe: bool
    gas_estimate: int | None = Field(default=None, alias="gasEstimate")
    state_changes: list[StateChange] | None = Field(default=None, alias="stateChanges")
    warnings: list[str] | None = None
    error: str | None = None


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_policy(path: Path | str) -> Policy:
    """
    Load a policy from a YAML file.

    Tool validators cannot be expressed in YAML; attach them in code with
    `policy.model_copy(update={"tool_validator": ...})`.

    Args:
        path: Path to the YAML file

    Returns:
        Validated Policy object

    Raises:
        PolicyLoadError: If the file is missing, not YAML, or invalid
    """
    path = Path(path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise PolicyLoadError(path=str(path), underlying_error=str(e)) from e

    return _validate_policy(data, str(path))


def load_policy_from_string(content: str) -> Policy:
    """Load a policy from a YAML string."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise PolicyLoadError(path="<string>", underlying_error=str(e)) from e
    return _validate_policy(data, "<string>")


def _validate_policy(data: Any, source: str) -> Policy:
    try:
        return Policy.model_validate(data or {})
    except ValidationError as e:
        raise PolicyLoadError(path=source, underlying_error=str(e)) from e
