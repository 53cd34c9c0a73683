"""
AuthorizationGate: one before_request hook that decides, for every request,
whether the view may run.

    Unclassified -> PublicAllowed
    Unclassified -> Authenticating -> Rejected (Unauthorized)
    Unclassified -> Authenticating -> Authenticated -> Authorized
    Unclassified -> Authenticating -> Authenticated -> Rejected (Forbidden)

What each endpoint needs comes from an explicit capability table
(endpoint -> Capability) instead of per-view decorators. Endpoints absent
from the table need a valid access token.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional

from flask import Flask, g, request
from werkzeug.exceptions import HTTPException

from utils.exceptions import Forbidden, Unauthorized
from utils.security import Principal, TokenIssuer

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Capability:
    public: bool = False
    roles: frozenset = field(default_factory=frozenset)

    @classmethod
    def open(cls) -> "Capability":
        return cls(public=True)

    @classmethod
    def authenticated(cls) -> "Capability":
        return cls()

    @classmethod
    def requires(cls, *roles: str) -> "Capability":
        return cls(roles=frozenset(getattr(r, "value", r) for r in roles))


AUTHENTICATED = Capability.authenticated()


class GateState(str, Enum):
    UNCLASSIFIED = "unclassified"
    PUBLIC_ALLOWED = "public_allowed"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    AUTHORIZED = "authorized"
    REJECTED = "rejected"


@dataclass
class GateDecision:
    state: GateState = GateState.UNCLASSIFIED
    principal: Optional[Principal] = None
    error: Optional[HTTPException] = None

    @property
    def allowed(self) -> bool:
        return self.state in (GateState.PUBLIC_ALLOWED, GateState.AUTHORIZED)


class AuthorizationGate:
    def __init__(self, issuer: TokenIssuer, capabilities: Mapping[str, Capability],
                 default: Capability = AUTHENTICATED):
        self.issuer = issuer
        self.capabilities = dict(capabilities)
        self.default = default

    def init_app(self, app: Flask) -> None:
        app.extensions["authorization_gate"] = self
        app.before_request(self._before_request)

    def capability_for(self, endpoint: str | None, blueprint: str | None = None) -> Capability:
        if endpoint in self.capabilities:
            return self.capabilities[endpoint]
        if blueprint and blueprint in self.capabilities:
            return self.capabilities[blueprint]
        return self.default

    def evaluate(self, capability: Capability, authorization: str | None) -> GateDecision:
        """Run the state machine for one request. Never raises."""
        decision = GateDecision()
        if capability.public:
            decision.state = GateState.PUBLIC_ALLOWED
            return decision

        decision.state = GateState.AUTHENTICATING
        token = extract_bearer(authorization)
        if token is None:
            return _reject(decision, Unauthorized("Missing or invalid Authorization header"))
        try:
            claims = self.issuer.verify_access_token(token)
        except Unauthorized as exc:
            return _reject(decision, exc)

        decision.state = GateState.AUTHENTICATED
        decision.principal = Principal.from_claims(claims)

        if capability.roles and decision.principal.role not in capability.roles:
            return _reject(decision, Forbidden())
        decision.state = GateState.AUTHORIZED
        return decision

    def _before_request(self):
        # No matching route (404/405 follow) and CORS preflights carry no credentials
        if request.endpoint is None or request.method == "OPTIONS":
            return None
        capability = self.capability_for(request.endpoint, request.blueprint)
        decision = self.evaluate(capability, request.headers.get("Authorization"))
        if not decision.allowed:
            logger.info("rejected %s %s: %s", request.method, request.path, decision.error.description)
            raise decision.error
        g.principal = decision.principal
        return None


def extract_bearer(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def _reject(decision: GateDecision, error: HTTPException) -> GateDecision:
    decision.state = GateState.REJECTED
    decision.error = error
    return decision


def current_principal() -> Principal:
    """The principal the gate attached; only valid inside a non-public view."""
    principal = g.get("principal")
    if principal is None:
        raise Unauthorized()
    return principal


def ensure_owner_or_admin(owner_id: str, principal: Principal | None = None) -> Principal:
    """Ownership check for resource modules: owner or admin, else Forbidden."""
    principal = principal or current_principal()
    if principal.id != owner_id and principal.role != ADMIN_ROLE:
        raise Forbidden("You can only modify your own resources")
    return principal


def has_role(principal: Principal, roles: Iterable[str]) -> bool:
    return principal.role in {getattr(r, "value", r) for r in roles}
