"""
Capability ticket issuer for agentgate.

A capability ticket is a short-lived signed JWT that states what an agent
may do: its audit level and the operational constraints (value limit,
allowed servers, kill switch, payment requirement).

Validation order (first failure wins):
    1. Signature          -> INVALID_SIGNATURE (any undecodable token too)
    2. Payload schema     -> INVALID_FORMAT
    3. Expiry (now > exp) -> EXPIRED
    4. Kill switch        -> KILL_SWITCH

Expiry is checked here rather than by PyJWT so the order above holds
regardless of library defaults.
"""

import logging
import time
from typing import Any

import jwt
from pydantic import ValidationError

from agentgate.errors import TicketFormatError
from agentgate.schema import (
    AuditConstraints,
    AuditLevel,
    IssuerConfig,
    PaymentContext,
    TicketPayload,
    ValidationErrorCode,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class TicketIssuer:
    """
    Issues and validates capability tickets.

    Usage:
        issuer = TicketIssuer(IssuerConfig(signing_key=secret, issuer="gateway"))
        ticket = issuer.generate("agent://alpha", AuditLevel.GOLD, {
            "max_op_value": 100,
            "allowed_servers": ["server-a"],
            "kill_switch_active": False,
        })
        result = issuer.validate_sync(ticket)

    Attributes:
        config: Issuer configuration
    """

    def __init__(self, config: IssuerConfig) -> None:
        """
        Initialize the issuer.

        Args:
            config: Issuer configuration

        Raises:
            ValueError: If an RS* algorithm is configured without a public key
        """
        if config.algorithm.startswith("RS") and not config.public_key:
            raise ValueError(f"{config.algorithm} requires public_key for verification")
        self.config = config

    @property
    def _verification_key(self) -> str:
        return self.config.public_key or self.config.signing_key

    # =========================================================================
    # Issuance
    # =========================================================================

    def generate(
        self,
        agent_id: str,
        audit_level: AuditLevel | str,
        constraints: AuditConstraints | dict[str, Any],
        validity_duration: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """
        Sign a new capability ticket.

        requires_payment_proof defaults to True unless the constraints set it.
        A negative validity_duration produces an already-expired ticket.

        Args:
            agent_id: Agent identifier (the `sub` claim)
            audit_level: Trust tier
            constraints: Operational limits
            validity_duration: Lifetime in seconds (default: config.default_validity)
            metadata: Opaque metadata carried in the ticket

        Returns:
            Compact JWT string

        Raises:
            TicketFormatError: If the constraints or audit level are invalid
        """
        if isinstance(constraints, AuditConstraints):
            constraints = constraints.model_dump()
        else:
            constraints = dict(constraints)
        if constraints.get("requires_payment_proof") is None:
            constraints["requires_payment_proof"] = True

        now = int(time.time())
        duration = self.config.default_validity if validity_duration is None else validity_duration

        try:
            payload = TicketPayload(
                iss=self.config.issuer,
                sub=agent_id,
                iat=now,
                exp=now + duration,
                audit_level=audit_level,
                constraints=constraints,
                metadata=metadata,
            )
        except ValidationError as e:
            raise TicketFormatError(validation_error=str(e)) from e

        logger.info(
            "Issued ticket for %s (level=%s, expires in %ds)",
            agent_id,
            payload.audit_level.value,
            duration,
        )
        return jwt.encode(
            payload.model_dump(mode="json", exclude_none=True),
            self.config.signing_key,
            algorithm=self.config.algorithm,
        )

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_sync(self, ticket: str) -> ValidationResult:
        """Validate signature, schema, expiry and kill switch."""
        try:
            claims = jwt.decode(
                ticket,
                self._verification_key,
                algorithms=[self.config.algorithm],
                # Only the signature is checked here; claims are validated below
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "verify_aud": False,
                    "verify_iss": False,
                    "verify_sub": False,
                    "verify_jti": False,
                },
            )
        except jwt.PyJWTError as e:
            logger.debug("Ticket signature check failed: %s", e)
            return ValidationResult.fail(
                ValidationErrorCode.INVALID_SIGNATURE,
                f"Invalid ticket signature: {e}",
            )

        try:
            payload = TicketPayload.model_validate(claims)
        except ValidationError as e:
            return ValidationResult.fail(
                ValidationErrorCode.INVALID_FORMAT,
                f"Invalid ticket format: {e}",
            )

        if time.time() > payload.exp:
            return ValidationResult.fail(ValidationErrorCode.EXPIRED, "Ticket has expired")

        if payload.constraints.kill_switch_active:
            logger.warning("Rejected ticket for %s: kill switch active", payload.sub)
            return ValidationResult.fail(
                ValidationErrorCode.KILL_SWITCH,
                "Kill switch is active for this agent",
            )

        return ValidationResult.ok(payload)

    async def validate(self, ticket: str) -> ValidationResult:
        """Async variant of validate_sync; results are identical."""
        return self.validate_sync(ticket)

    def validate_transaction_sync(
        self,
        ticket: str,
        value: float,
        target_server: str | None = None,
        payment_context: PaymentContext | dict[str, Any] | None = None,
    ) -> ValidationResult:
        """
        Validate the ticket, then check a proposed transaction against it.

        Args:
            ticket: Capability ticket
            value: Value of the operation
            target_server: Server the operation goes to (skipped when None)
            payment_context: Payment protocol and proof

        Returns:
            ValidationResult; CONSTRAINT_VIOLATION names the first failed check
        """
        result = self.validate_sync(ticket)
        if not result.valid or result.payload is None:
            return result

        constraints = result.payload.constraints

        if value > constraints.max_op_value:
            return ValidationResult.fail(
                ValidationErrorCode.CONSTRAINT_VIOLATION,
                f"Transaction value {value} exceeds limit of {constraints.max_op_value}",
            )

        if target_server is not None and target_server not in constraints.allowed_servers:
            allowed = ", ".join(constraints.allowed_servers) or "(none)"
            return ValidationResult.fail(
                ValidationErrorCode.CONSTRAINT_VIOLATION,
                f"Server '{target_server}' is not in allowed list: {allowed}",
            )

        if constraints.requires_payment_proof:
            if isinstance(payment_context, dict):
                try:
                    payment_context = PaymentContext.model_validate(payment_context)
                except ValidationError as e:
                    return ValidationResult.fail(
                        ValidationErrorCode.CONSTRAINT_VIOLATION,
                        f"Invalid payment context: {e}",
                    )
            protocol = payment_context.protocol if payment_context else None
            required = self.config.payment_protocol
            if protocol != required:
                return ValidationResult.fail(
                    ValidationErrorCode.CONSTRAINT_VIOLATION,
                    f"Payment protocol '{protocol}' does not match required protocol '{required}'",
                )
            proof = payment_context.proof if payment_context else None
            if proof is None or not proof.tx_hash:
                return ValidationResult.fail(
                    ValidationErrorCode.CONSTRAINT_VIOLATION,
                    "Missing payment proof: a transaction hash is required",
                )

        return result

    async def validate_transaction(
        self,
        ticket: str,
        value: float,
        target_server: str | None = None,
        payment_context: PaymentContext | dict[str, Any] | None = None,
    ) -> ValidationResult:
        """Async variant of validate_transaction_sync."""
        return self.validate_transaction_sync(ticket, value, target_server, payment_context)

    # =========================================================================
    # Inspection
    # =========================================================================

    def decode(self, ticket: str) -> TicketPayload | None:
        """
        Decode a ticket WITHOUT verifying it.

        For inspection only; never use the result for authorization.
        """
        try:
            claims = jwt.decode(ticket, options={"verify_signature": False})
            return TicketPayload.model_validate(claims)
        except (jwt.PyJWTError, ValidationError):
            return None
