"""Translation between :class:`PermissionRule` lists and IAM policy documents.

IAM documents look like::

    {
        "Version": "2012-10-17",
        "Statement": [
            {"Effect": "Allow", "Action": ["s3:GetObject"], "Resource": "*"}
        ]
    }

Document field names are case-sensitive. ``Action``/``NotAction`` and
``Resource`` may each be a scalar or a list, and ``"*"`` stands for
"everything". In the rule model "everything" is an empty tuple.
"""

from __future__ import annotations

import json
from typing import Any, Iterable
from urllib.parse import unquote

from iamjack.base.logger import ij_logger
from iamjack.base.models import WILDCARD, Effect, PermissionRule


POLICY_VERSION = "2012-10-17"

_EFFECTS = {e.value.lower(): e for e in Effect}


def _load(document: dict[str, Any] | str) -> dict[str, Any]:
    """Accept a parsed document, a JSON string or a URL-encoded JSON string.

    boto3 hands back already-decoded dicts; the raw Query API returns the
    document URL-encoded.
    """
    if isinstance(document, dict):
        return document
    text = document.strip()
    if not text.startswith("{"):
        text = unquote(text)
    loaded = json.loads(text)
    if not isinstance(loaded, dict):
        raise ValueError("Policy document must be a JSON object")
    return loaded


def _as_tuple(value: Any) -> tuple[str, ...]:
    """Normalize a scalar-or-list field; a lone wildcard means "all"."""
    if value is None:
        return ()
    if isinstance(value, str):
        items: tuple[str, ...] = (value,)
    else:
        items = tuple(str(v) for v in value)
    if items == (WILDCARD,):
        return ()
    return items


def decode_statement(statement: dict[str, Any]) -> PermissionRule | None:
    """Decode one statement, or return ``None`` if it cannot be represented.

    That covers a missing or unknown ``Effect`` and ``NotResource``
    statements, which have no rule equivalent.
    """
    effect = _EFFECTS.get(str(statement.get("Effect", "")).lower())
    if effect is None or "NotResource" in statement:
        return None
    exclusion = False
    actions = statement.get("Action")
    if actions is None:
        actions = statement.get("NotAction")
        exclusion = actions is not None
    return PermissionRule(
        effect=effect,
        actions_are_exclusion=exclusion,
        actions=_as_tuple(actions),
        resources=_as_tuple(statement.get("Resource")),
    )


def decode(document: dict[str, Any] | str) -> list[PermissionRule]:
    """Turn a policy document into rules, in statement order.

    Statements without a recognizable ``Effect`` or using ``NotResource``
    are skipped, not rejected. Unknown top-level fields (``Version``,
    ``Id``) are ignored.
    """
    statements = _load(document).get("Statement", [])
    if isinstance(statements, dict):
        statements = [statements]
    rules: list[PermissionRule] = []
    for index, statement in enumerate(statements):
        rule = decode_statement(statement) if isinstance(statement, dict) else None
        if rule is None:
            ij_logger.warning(
                f"Skipping unsupported policy statement {index}: {statement!r}",
                provider="aws",
                service="iam",
            )
            continue
        rules.append(rule)
    return rules


def _scalar_or_list(values: tuple[str, ...]) -> str | list[str]:
    if not values:
        return WILDCARD
    if len(values) == 1:
        return values[0]
    return list(values)


def encode_statement(rule: PermissionRule) -> dict[str, Any]:
    action_key = "NotAction" if rule.actions_are_exclusion else "Action"
    return {
        "Effect": rule.effect.value,
        action_key: list(rule.actions) if rule.actions else WILDCARD,
        "Resource": _scalar_or_list(rule.resources),
    }


def encode(rules: Iterable[PermissionRule]) -> dict[str, Any]:
    """Build an IAM policy document from rules, preserving their order."""
    return {
        "Version": POLICY_VERSION,
        "Statement": [encode_statement(rule) for rule in rules],
    }


def encode_json(rules: Iterable[PermissionRule]) -> str:
    """Serialized form accepted by ``PolicyDocument`` request parameters."""
    return json.dumps(encode(rules))
