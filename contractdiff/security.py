"""Diff engines for security requirements, security schemes and OAuth flows."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Optional

import structlog

from .cache import ReferenceDiffCache
from .changes import is_changed
from .comparators import compare_metadata
from .elements import (
    ChangedOAuthFlow,
    ChangedOAuthFlows,
    ChangedSecurityRequirement,
    ChangedSecurityRequirements,
    ChangedSecurityScheme,
)
from .exceptions import UnresolvedRefError, UnsupportedSchemaError
from .models import DiffContext
from .schema import RefKind, RefPointer
from .utils import list_diff

if TYPE_CHECKING:
    from .engine import DiffSession


logger = structlog.get_logger()

SECURITY_SCHEME_POINTER = RefPointer(RefKind.SECURITY_SCHEMES)

SCHEME_TYPES = ("apiKey", "http", "oauth2", "openIdConnect", "mutualTLS")

OAUTH_FLOW_NAMES = ("implicit", "password", "clientCredentials", "authorizationCode")


def resolve_scheme(components: Optional[dict], name: str) -> dict:
    """Look up a security scheme by the name a requirement uses for it."""
    scheme = SECURITY_SCHEME_POINTER.resolve(components, None, name)
    if not isinstance(scheme, dict):
        raise UnresolvedRefError(name, "security scheme is not an object")
    return scheme


class SecurityRequirementsDiff:
    """
    Compares the alternative security requirements of an operation.

    Two requirements match when they combine the same scheme types at the same
    locations, whatever the schemes are called.
    """

    def __init__(self, session: DiffSession):
        self.session = session

    def _signature(self, components: Optional[dict], requirement: dict) -> dict[str, Optional[str]]:
        signature = {}
        for name in requirement:
            scheme = resolve_scheme(components, name)
            signature.setdefault(scheme.get("type"), scheme.get("in"))
        return signature

    def same(self, left: dict, right: dict) -> bool:
        return (self._signature(self.session.left_components, left)
                == self._signature(self.session.right_components, right))

    def diff(
        self,
        left: Optional[list],
        right: Optional[list],
        context: DiffContext,
    ) -> Optional[ChangedSecurityRequirements]:
        left = list(left or [])
        remaining = [dict(requirement) for requirement in right or []]

        missing = []
        changed = []
        for requirement in left:
            index = next((i for i, candidate in enumerate(remaining) if self.same(requirement, candidate)), None)
            if index is None:
                missing.append(requirement)
                continue

            matched = remaining.pop(index)
            record = self.session.security_requirement_diff.diff(requirement, matched, context)
            if record is not None:
                changed.append(record)

        return is_changed(ChangedSecurityRequirements(
            old=left,
            new=list(right or []),
            increased=remaining,
            missing=missing,
            changed=changed,
        ))


class SecurityRequirementDiff:
    """Compares one security requirement: a set of schemes that apply together."""

    def __init__(self, session: DiffSession):
        self.session = session

    def _find(self, right: dict, left_name: str) -> Optional[str]:
        left_scheme = resolve_scheme(self.session.left_components, left_name)
        for right_name in right:
            right_scheme = resolve_scheme(self.session.right_components, right_name)
            scheme_type = left_scheme.get("type")
            if scheme_type != right_scheme.get("type"):
                continue
            if scheme_type == "apiKey":
                if left_scheme.get("name") == right_scheme.get("name"):
                    return right_name
            elif scheme_type in SCHEME_TYPES:
                return right_name
            else:
                raise UnsupportedSchemaError(
                    f"Unknown security scheme type: {scheme_type}",
                    reason=f"security scheme '{left_name}' has an unsupported type",
                )
        return None

    def diff(
        self,
        left: Optional[dict],
        right: Optional[dict],
        context: DiffContext,
    ) -> Optional[ChangedSecurityRequirement]:
        remaining = dict(right or {})

        missing = {}
        changed = []
        for name, scopes in (left or {}).items():
            match = self._find(remaining, name)
            if match is None:
                logger.debug("Security scheme not matched", scheme=name)
                missing[name] = scopes
                continue

            right_scopes = remaining.pop(match)
            record = self.session.security_scheme_diff.diff(name, scopes, match, right_scopes, context)
            if record is not None:
                changed.append(record)

        return is_changed(ChangedSecurityRequirement(
            old_requirement=left,
            new_requirement=right,
            increased=remaining,
            missing=missing,
            changed=changed,
        ))


class SecuritySchemeDiff(ReferenceDiffCache):
    """
    Compares two security schemes referenced by name.

    The scheme comparison is cached per name pair; the scopes a requirement
    asks for belong to the requirement and are compared on every call.
    """

    def __init__(self, session: DiffSession):
        super().__init__()
        self.session = session

    def diff(
        self,
        left_name: str,
        left_scopes: Optional[list],
        right_name: str,
        right_scopes: Optional[list],
        context: DiffContext,
    ) -> Optional[ChangedSecurityScheme]:
        left_scheme = resolve_scheme(self.session.left_components, left_name)
        right_scheme = resolve_scheme(self.session.right_components, right_name)

        record = self.cached_diff(set(), left_scheme, right_scheme, left_name, right_name, context)
        if record is None:
            record = ChangedSecurityScheme(old_scheme=left_scheme, new_scheme=right_scheme)
        record = replace(record, name=left_name, changed_scopes=None)

        if left_scheme.get("type") == "oauth2":
            scopes = list_diff(left_scopes, right_scopes)
            if scopes.increased or scopes.missing:
                record = replace(record, changed_scopes=scopes)

        return is_changed(record)

    def compute_diff(
        self,
        ref_set: set[str],
        left: dict,
        right: dict,
        context: DiffContext,
    ) -> ChangedSecurityScheme:
        scheme_type = left.get("type")
        changed_scheme = ChangedSecurityScheme(
            old_scheme=left,
            new_scheme=right,
            type_changed=scheme_type != right.get("type"),
            description=compare_metadata(left.get("description"), right.get("description")),
            extensions=self.session.extensions_diff.diff(left, right, context),
        )

        if scheme_type == "apiKey":
            changed_scheme.in_changed = left.get("in") != right.get("in")
        elif scheme_type == "http":
            changed_scheme.scheme_changed = (left.get("scheme") or "").lower() != (right.get("scheme") or "").lower()
            changed_scheme.bearer_format_changed = left.get("bearerFormat") != right.get("bearerFormat")
        elif scheme_type == "oauth2":
            changed_scheme.oauth_flows = self.session.oauth_flows_diff.diff(left.get("flows"), right.get("flows"))
        elif scheme_type == "openIdConnect":
            changed_scheme.open_id_connect_url_changed = (
                left.get("openIdConnectUrl") != right.get("openIdConnectUrl")
            )
        elif scheme_type != "mutualTLS":
            raise UnsupportedSchemaError(
                f"Unknown security scheme type: {scheme_type}",
                reason="supported types are " + ", ".join(SCHEME_TYPES),
            )

        return changed_scheme


class OAuthFlowsDiff:
    def __init__(self, session: DiffSession):
        self.session = session

    def diff(self, left: Optional[dict], right: Optional[dict]) -> Optional[ChangedOAuthFlows]:
        if left is None and right is None:
            return None
        left = left or {}
        right = right or {}

        flows = {}
        for name in OAUTH_FLOW_NAMES:
            record = self.session.oauth_flow_diff.diff(left.get(name), right.get(name))
            if record is not None:
                flows[name] = record

        return is_changed(ChangedOAuthFlows(
            old_flows=left,
            new_flows=right,
            flows=flows,
            extensions=self.session.extensions_diff.diff(left, right),
        ))


class OAuthFlowDiff:
    def __init__(self, session: DiffSession):
        self.session = session

    def diff(self, left: Optional[dict], right: Optional[dict]) -> Optional[ChangedOAuthFlow]:
        if left is None and right is None:
            return None
        old = left or {}
        new = right or {}
        return is_changed(ChangedOAuthFlow(
            old_flow=left,
            new_flow=right,
            authorization_url_changed=old.get("authorizationUrl") != new.get("authorizationUrl"),
            token_url_changed=old.get("tokenUrl") != new.get("tokenUrl"),
            refresh_url_changed=old.get("refreshUrl") != new.get("refreshUrl"),
            extensions=self.session.extensions_diff.diff(left, right),
        ))
